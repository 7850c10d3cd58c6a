import os
import time

import pytest
from fastapi import HTTPException

from salify.services.backup import cleanup_old_backups, resolve_backup_path

API = "/api/v1"


async def test_create_list_download_delete(client, get_settings, get_activity):
    response = await client.post(f"{API}/backup/create")
    assert response.status_code == 200, response.text
    backup = response.json()["backup"]
    assert backup["filename"].startswith("backup_")
    assert backup["is_auto"] is False
    assert (await get_settings())["last_manual_backup_at"] is not None

    listing = (await client.get(f"{API}/backup/")).json()
    assert backup["filename"] in [b["filename"] for b in listing["backups"]]

    response = await client.get(f"{API}/backup/download/{backup['filename']}")
    assert response.status_code == 200
    assert response.content.startswith(b"SQLite format 3")

    response = await client.delete(f"{API}/backup/{backup['filename']}")
    assert response.status_code == 200
    listing = (await client.get(f"{API}/backup/")).json()
    assert backup["filename"] not in [b["filename"] for b in listing["backups"]]

    logs = await get_activity("DATA_BACKUP")
    assert len(logs) == 2

    assert (await client.delete(f"{API}/backup/missing.db")).status_code == 404


async def test_restore_replaces_data_and_keeps_backup_settings(client, create_product, get_settings, get_activity):
    kept = await create_product(product_code="KEEP", name="Kept")
    backup = (await client.post(f"{API}/backup/create")).json()["backup"]
    await create_product(product_code="LATER", name="Added later")
    await client.put(f"{API}/settings/", json={"auto_backup_frequency": "weekly"})

    response = await client.post(f"{API}/backup/restore/{backup['filename']}")
    assert response.status_code == 200, response.text
    assert response.json()["pre_restore_backup"].startswith("pre_restore_")

    products = (await client.get(f"{API}/products/")).json()["data"]
    assert [p["id"] for p in products] == [kept["id"]]
    assert (await get_settings())["auto_backup_frequency"] == "weekly"
    assert await get_activity("DATA_RESTORE")


def test_backup_path_must_stay_in_backup_dir():
    with pytest.raises(HTTPException) as exc_info:
        resolve_backup_path("../salify_test.db")
    assert exc_info.value.status_code == 403


def test_cleanup_keeps_newest_auto_backups(tmp_path):
    now = time.time()
    for age, name in enumerate(["auto_backup_4.db", "auto_backup_3.db", "auto_backup_2.db", "auto_backup_1.db"]):
        path = tmp_path / name
        path.write_bytes(b"")
        os.utime(path, (now - age * 60, now - age * 60))
    manual = tmp_path / "backup_old.db"
    manual.write_bytes(b"")
    os.utime(manual, (now - 3600, now - 3600))

    removed = cleanup_old_backups(str(tmp_path), keep_count=2)
    assert sorted(removed) == ["auto_backup_1.db", "auto_backup_2.db"]
    assert sorted(p.name for p in tmp_path.iterdir()) == ["auto_backup_3.db", "auto_backup_4.db", "backup_old.db"]


async def test_trigger_auto_backup(client, get_settings):
    response = await client.post(f"{API}/backup/trigger")
    assert response.status_code == 200, response.text
    assert response.json()["backup"]["is_auto"] is True
    assert (await get_settings())["last_auto_backup_at"] is not None

    status = (await client.get(f"{API}/backup/scheduler/status")).json()
    assert status["auto_backup"]["frequency"] == "disabled"
    assert status["scheduler"]["running"] is False


async def test_reset_requires_confirmation(client, create_product, get_settings):
    await create_product()
    response = await client.post(f"{API}/system/reset-business-data")
    assert response.json()["preview"] is True
    assert (await client.get(f"{API}/products/")).json()["total"] == 1


async def test_reset_clears_everything(client, create_product, create_customer, get_settings, get_activity):
    product = await create_product(stock=5)
    customer = await create_customer()
    await client.post(f"{API}/sales/", json={
        "customer_id": customer["id"],
        "items": [{"product_id": product["id"], "product_name": "Widget", "quantity": 1, "price": 100}],
    })
    await client.put(f"{API}/settings/", json={"currency": "USD"})

    response = await client.post(f"{API}/system/reset-business-data", params={"confirm": True})
    assert response.status_code == 200
    assert response.json()["cleared_tables"]["sales"] == 1

    assert (await client.get(f"{API}/products/")).json()["total"] == 0
    customers = (await client.get(f"{API}/customers/")).json()["data"]
    assert [c["is_walk_in"] for c in customers] == [True]

    settings = await get_settings()
    assert settings["currency"] == "PKR"
    assert settings["current_business_cash"] == 0
    assert settings["last_sale_numeric_id"] == 0
    assert (await client.get(f"{API}/financial/transactions")).json()["total"] == 0

    logs = await get_activity()
    assert [log["description"] for log in logs] == ["All business data was reset. Settings restored to defaults."]

from datetime import date, timedelta

import pytest

API = "/api/v1"

TODAY = date.today()


def quotation_payload(**overrides):
    payload = {
        "customer_name": "Prospect Ltd",
        "quote_date": TODAY.isoformat(),
        "valid_till_date": (TODAY + timedelta(days=30)).isoformat(),
        "items": [
            {"name": "Widget", "quantity": 2, "sale_price": 100, "discount_percentage": 10, "tax_percentage": 5},
            {"name": "Service", "quantity": 1, "sale_price": 50},
        ],
        "overall_discount_amount": 9,
        "overall_tax_amount": 1,
        "shipping_charges": 20,
        "extra_costs": 4,
    }
    payload.update(overrides)
    return payload


async def test_create_quotation_computes_totals(client, get_activity, get_settings):
    response = await client.post(f"{API}/quotations/", json=quotation_payload())
    assert response.status_code == 200, response.text
    quotation = response.json()
    assert quotation["numeric_quotation_id"] == 1
    assert quotation["status"] == "Draft"
    assert quotation["sub_total"] == pytest.approx(250)
    assert quotation["total_item_discount_amount"] == pytest.approx(20)
    assert quotation["total_item_tax_amount"] == pytest.approx(9)
    assert quotation["grand_total"] == pytest.approx(255)
    assert quotation["items"][0]["item_total"] == pytest.approx(189)

    logs = await get_activity("QUOTATION_CREATED")
    assert logs[0]["description"] == (
        "New Quotation #1 created for Prospect Ltd. Status: Draft. Total: PKR 255.00."
    )
    # 报价单不影响经营现金
    assert (await get_settings())["current_business_cash"] == 0


async def test_quotation_validation(client):
    response = await client.post(f"{API}/quotations/", json=quotation_payload(
        valid_till_date=(TODAY - timedelta(days=1)).isoformat()
    ))
    assert response.status_code == 400
    assert response.json()["detail"] == "Valid Till date cannot be before the Quote Date."

    response = await client.post(f"{API}/quotations/", json=quotation_payload(customer_name="   "))
    assert response.status_code == 422

    response = await client.post(f"{API}/quotations/", json=quotation_payload(items=[]))
    assert response.status_code == 422


async def test_customer_details_snapshot_and_unlink(client, create_customer):
    customer = await create_customer(name="Zara", email="zara@example.com", address="Gulberg")
    quotation = (await client.post(f"{API}/quotations/", json=quotation_payload(
        customer_id=customer["id"], customer_name="Zara"
    ))).json()
    assert quotation["customer_details"]["email"] == "zara@example.com"
    assert quotation["customer_details"]["address"] == "Gulberg"

    response = await client.put(f"{API}/quotations/{quotation['id']}", json={"unlink_customer": True})
    assert response.status_code == 200
    assert response.json()["customer_id"] is None
    assert response.json()["customer_details"] is None
    assert response.json()["customer_name"] == "Zara"


async def test_link_customer_copies_name(client, create_customer):
    quotation = (await client.post(f"{API}/quotations/", json=quotation_payload())).json()
    customer = await create_customer(name="Imran")

    response = await client.put(f"{API}/quotations/{quotation['id']}", json={"customer_id": customer["id"]})
    assert response.json()["customer_name"] == "Imran"
    assert response.json()["customer_details"]["phone"] == "0300-1234567"


async def test_update_items_and_status(client, get_activity):
    quotation = (await client.post(f"{API}/quotations/", json=quotation_payload())).json()

    response = await client.put(f"{API}/quotations/{quotation['id']}", json={
        "items": [{"name": "Widget", "quantity": 1, "sale_price": 80}],
        "shipping_charges": 0,
    })
    updated = response.json()
    assert len(updated["items"]) == 1
    # 80 - 9 + 1 + 0 + 4
    assert updated["grand_total"] == pytest.approx(76)
    logs = await get_activity("QUOTATION_UPDATED")
    assert logs[0]["description"] == "Quotation #1 for Prospect Ltd updated. Changes: items, totals."

    response = await client.put(f"{API}/quotations/{quotation['id']}", json={"status": "Sent"})
    assert response.json()["status"] == "Sent"
    logs = await get_activity("QUOTATION_STATUS_CHANGED")
    assert logs[0]["description"] == "Quotation #1 for Prospect Ltd status changed from Draft to Sent."

    response = await client.put(f"{API}/quotations/{quotation['id']}", json={"status": "Lost"})
    assert response.status_code == 422


async def test_update_rejects_bad_dates(client):
    quotation = (await client.post(f"{API}/quotations/", json=quotation_payload())).json()
    response = await client.put(f"{API}/quotations/{quotation['id']}", json={
        "valid_till_date": (TODAY - timedelta(days=5)).isoformat()
    })
    assert response.status_code == 400


async def test_expired_quotations_are_marked_on_list(client, get_activity):
    old = quotation_payload(quote_date="2024-01-01", valid_till_date="2024-01-10")
    expired = (await client.post(f"{API}/quotations/", json=old)).json()
    accepted = (await client.post(f"{API}/quotations/", json=old)).json()
    await client.put(f"{API}/quotations/{accepted['id']}", json={"status": "Accepted"})
    current = (await client.post(f"{API}/quotations/", json=quotation_payload())).json()

    response = await client.get(f"{API}/quotations/")
    statuses = {q["id"]: q["status"] for q in response.json()["data"]}
    assert statuses[expired["id"]] == "Expired"
    assert statuses[accepted["id"]] == "Accepted"
    assert statuses[current["id"]] == "Draft"

    logs = await get_activity("QUOTATION_STATUS_CHANGED")
    assert any("automatically expired" in log["description"] for log in logs)

    response = await client.post(f"{API}/quotations/sync-expired")
    assert response.json() == {"expired_count": 0}

    response = await client.get(f"{API}/quotations/", params={"status": "Expired"})
    assert response.json()["total"] == 1


async def test_sync_expired_endpoint(client):
    await client.post(f"{API}/quotations/", json=quotation_payload(
        quote_date="2024-03-01", valid_till_date="2024-03-02"
    ))
    response = await client.post(f"{API}/quotations/sync-expired")
    assert response.json() == {"expired_count": 1}


async def test_delete_quotation(client, get_activity):
    quotation = (await client.post(f"{API}/quotations/", json=quotation_payload())).json()
    response = await client.delete(f"{API}/quotations/{quotation['id']}")
    assert response.status_code == 200
    assert (await client.get(f"{API}/quotations/{quotation['id']}")).status_code == 404

    logs = await get_activity("QUOTATION_UPDATED")
    assert logs[0]["description"] == "Quotation #1 for Prospect Ltd was deleted."

import pytest

from salify.db import session as db_session
from salify.models.app_settings import AppSettings, SETTINGS_ROW_ID

API = "/api/v1"


async def record_invoice(client, supplier_id, product, quantity, price, invoice_date):
    response = await client.post(f"{API}/purchases/", json={
        "supplier_id": supplier_id,
        "invoice_date": invoice_date,
        "items": [{
            "product_id": product["id"],
            "product_name": product["name"],
            "quantity": quantity,
            "purchase_price": price,
        }],
    })
    assert response.status_code == 200, response.text
    return response.json()


async def test_opening_balance_sign(client, create_supplier, get_activity):
    owed = await create_supplier(name="We Owe", opening_balance=250)
    credit = await create_supplier(name="They Owe", opening_balance=80, opening_balance_type="owedByUser")
    assert owed["current_balance"] == pytest.approx(250)
    assert credit["current_balance"] == pytest.approx(-80)

    logs = await get_activity("NEW_SUPPLIER")
    assert any(log["description"] == "New supplier added: We Owe. Opening Balance: 250.00" for log in logs)


async def test_supplier_validation(client):
    response = await client.post(f"{API}/suppliers/", json={"phone": "123"})
    assert response.status_code == 422
    assert "Either Supplier Name or Company Name is required." in response.text

    response = await client.post(f"{API}/suppliers/", json={"name": "X", "opening_balance_type": "sideways"})
    assert response.status_code == 422


async def test_update_supplier(client, create_supplier):
    supplier = await create_supplier(company_name="Acme Pvt", phone="111")
    response = await client.put(f"{API}/suppliers/{supplier['id']}", json={"address": "Mall Road"})
    assert response.json()["address"] == "Mall Road"

    response = await client.put(f"{API}/suppliers/{supplier['id']}", json={"phone": " "})
    assert response.status_code == 400

    response = await client.put(f"{API}/suppliers/{supplier['id']}", json={"name": "", "company_name": ""})
    assert response.status_code == 400


async def test_payment_settles_oldest_invoice_first(client, create_product, create_supplier, get_settings):
    product = await create_product(stock=0)
    supplier = await create_supplier()
    newer = await record_invoice(client, supplier["id"], product, 1, 50, "2024-02-01T10:00:00")
    older = await record_invoice(client, supplier["id"], product, 1, 100, "2024-01-01T10:00:00")

    response = await client.get(f"{API}/suppliers/{supplier['id']}/open-invoices")
    assert [i["id"] for i in response.json()] == [older["id"], newer["id"]]

    response = await client.post(f"{API}/supplier-payments/", json={
        "supplier_id": supplier["id"], "amount": 120, "payment_method": "bank", "reference": "CHQ-9"
    })
    assert response.status_code == 200, response.text
    payment = response.json()
    assert payment["payment_no"].startswith("PAY")
    assert payment["allocations"] == [
        {"invoice_id": older["id"], "amount": 100.0},
        {"invoice_id": newer["id"], "amount": 20.0},
    ]
    assert payment["unallocated_amount"] == 0
    assert payment["supplier_balance"] == pytest.approx(30)

    assert (await client.get(f"{API}/purchases/{older['id']}")).json()["payment_status"] == "paid"
    partly = (await client.get(f"{API}/purchases/{newer['id']}")).json()
    assert partly["payment_status"] == "partially_paid"
    assert partly["amount_paid"] == pytest.approx(20)

    assert (await get_settings())["current_business_cash"] == pytest.approx(-120)

    response = await client.get(f"{API}/financial/transactions", params={"transaction_type": "supplier_payment"})
    assert response.json()["data"][0]["description"] == "Payment to supplier: Acme Traders. Method: bank. Ref: CHQ-9"


async def test_overpayment_becomes_advance(client, create_product, create_supplier):
    product = await create_product(stock=0)
    supplier = await create_supplier()
    await record_invoice(client, supplier["id"], product, 1, 40, "2024-01-01T10:00:00")

    payment = (await client.post(f"{API}/supplier-payments/", json={
        "supplier_id": supplier["id"], "amount": 100
    })).json()
    assert payment["allocated_amount"] == pytest.approx(40)
    assert payment["unallocated_amount"] == pytest.approx(60)
    assert payment["supplier_balance"] == pytest.approx(-60)

    response = await client.post(f"{API}/suppliers/{supplier['id']}/recalculate-balance")
    assert response.json()["new_balance"] == pytest.approx(-60)
    assert response.json()["difference"] == 0


async def test_delete_payment_reverses_everything(client, create_product, create_supplier, get_settings):
    product = await create_product(stock=0)
    supplier = await create_supplier()
    invoice = await record_invoice(client, supplier["id"], product, 1, 100, "2024-01-01T10:00:00")
    payment = (await client.post(f"{API}/supplier-payments/", json={
        "supplier_id": supplier["id"], "amount": 70
    })).json()

    response = await client.delete(f"{API}/supplier-payments/{payment['id']}")
    assert response.status_code == 200

    restored = (await client.get(f"{API}/purchases/{invoice['id']}")).json()
    assert restored["amount_paid"] == 0
    assert restored["payment_status"] == "unpaid"
    assert (await client.get(f"{API}/suppliers/{supplier['id']}")).json()["current_balance"] == pytest.approx(100)
    assert (await get_settings())["current_business_cash"] == 0
    assert (await client.get(f"{API}/supplier-payments/{payment['id']}")).status_code == 404


async def test_supplier_with_history_cannot_be_deleted(client, create_product, create_supplier):
    product = await create_product(stock=0)
    supplier = await create_supplier()
    await record_invoice(client, supplier["id"], product, 1, 10, "2024-01-01T10:00:00")

    response = await client.delete(f"{API}/suppliers/{supplier['id']}")
    assert response.status_code == 400
    assert "1 purchase invoice(s)" in response.json()["detail"]

    empty = await create_supplier(name="Unused")
    assert (await client.delete(f"{API}/suppliers/{empty['id']}")).status_code == 200
    assert (await client.get(f"{API}/suppliers/{empty['id']}")).status_code == 404


async def test_reconcile_after_mixed_activity(client, create_product, create_supplier):
    product = await create_product(stock=0)
    supplier = await create_supplier(opening_balance=50)
    await record_invoice(client, supplier["id"], product, 2, 30, "2024-01-01T10:00:00")
    await client.post(f"{API}/supplier-payments/", json={"supplier_id": supplier["id"], "amount": 200})

    response = await client.get(f"{API}/financial/reconcile")
    result = response.json()
    assert result["is_consistent"] is True
    assert result["ledger_sum"] == pytest.approx(-200)
    assert result["suppliers"][0]["stored_balance"] == pytest.approx(-90)
    assert result["suppliers"][0]["computed_balance"] == pytest.approx(-90)


async def test_list_payments_by_supplier(client, create_supplier):
    first = await create_supplier()
    second = await create_supplier(name="Second")
    await client.post(f"{API}/supplier-payments/", json={"supplier_id": first["id"], "amount": 10})
    await client.post(f"{API}/supplier-payments/", json={"supplier_id": second["id"], "amount": 20})

    response = await client.get(f"{API}/supplier-payments/", params={"supplier_id": second["id"]})
    assert response.json()["total"] == 1
    assert response.json()["data"][0]["supplier_name"] == "Second"


async def test_payment_numbers_follow_counter(client, create_supplier, get_settings):
    supplier = await create_supplier()

    async def pay(amount):
        response = await client.post(f"{API}/supplier-payments/", json={
            "supplier_id": supplier["id"], "amount": amount, "payment_date": "2024-03-05T23:30:00"
        })
        assert response.status_code == 200, response.text
        return response.json()

    first = await pay(10)
    second = await pay(20)
    assert [first["payment_no"], second["payment_no"]] == ["PAY20240305001", "PAY20240305002"]

    # 删除后序号不复用
    await client.delete(f"{API}/supplier-payments/{second['id']}")
    assert (await pay(30))["payment_no"] == "PAY20240305003"
    assert (await get_settings())["last_supplier_payment_numeric_id"] == 3

    async with db_session.SessionLocal() as db:
        app_settings = await db.get(AppSettings, SETTINGS_ROW_ID)
        app_settings.last_supplier_payment_numeric_id = 999
        await db.commit()

    assert (await pay(40))["payment_no"] == "PAY202403051000"
    assert (await pay(50))["payment_no"] == "PAY202403051001"

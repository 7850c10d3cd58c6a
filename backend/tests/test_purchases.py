import pytest

API = "/api/v1"


def purchase_item(product, quantity, purchase_price):
    return {
        "product_id": product["id"],
        "product_name": product["name"],
        "quantity": quantity,
        "purchase_price": purchase_price,
    }


async def test_record_purchase_restocks_and_creates_products(
    client, create_product, create_supplier, get_settings, get_activity
):
    product = await create_product(stock=0, cost_price=50)
    supplier = await create_supplier()

    response = await client.post(f"{API}/purchases/", json={
        "supplier_id": supplier["id"],
        "items": [
            purchase_item(product, 10, 55),
            {
                "product_code": "NEW-1",
                "product_name": "Brand New",
                "quantity": 4,
                "purchase_price": 20,
                "sale_price": 35,
            },
        ],
        "tax_amount": 10,
        "amount_paid": 300,
    })
    assert response.status_code == 200, response.text
    invoice = response.json()
    assert invoice["numeric_purchase_id"] == 1
    assert invoice["invoice_number"] == "AUTOGEN-1"
    assert invoice["sub_total"] == pytest.approx(630)
    assert invoice["grand_total"] == pytest.approx(640)
    assert invoice["amount_due"] == pytest.approx(340)
    assert invoice["payment_status"] == "partially_paid"
    assert invoice["supplier_name"] == "Acme Traders"

    restocked = (await client.get(f"{API}/products/{product['id']}")).json()
    assert restocked["stock"] == 10
    assert restocked["cost_price"] == pytest.approx(55)

    created = (await client.get(f"{API}/products/by-code/NEW-1")).json()
    assert created["stock"] == 4
    assert created["price"] == pytest.approx(35)
    assert created["category"] == "Uncategorized"
    assert created["supplier_id"] == supplier["id"]

    assert (await client.get(f"{API}/suppliers/{supplier['id']}")).json()["current_balance"] == pytest.approx(340)
    assert (await get_settings())["current_business_cash"] == pytest.approx(-300)

    response = await client.get(f"{API}/financial/transactions", params={"transaction_type": "purchase_payment"})
    row = response.json()["data"][0]
    assert row["description"] == "Payment for Purchase #1 to Acme Traders"
    assert row["related_document"] == f"purchase:{invoice['id']}"

    logs = await get_activity("PURCHASE_RECORDED")
    assert logs[0]["description"] == "Purchase Invoice #1 recorded from Acme Traders for PKR 640.00."
    assert await get_activity("SUPPLIER_BALANCE_UPDATE")


async def test_unpaid_purchase_has_no_ledger_row(client, create_product, create_supplier, get_settings):
    product = await create_product(stock=0)
    supplier = await create_supplier()
    response = await client.post(f"{API}/purchases/", json={
        "supplier_id": supplier["id"],
        "invoice_number": "INV-77",
        "items": [purchase_item(product, 2, 60)],
    })
    assert response.json()["payment_status"] == "unpaid"
    assert response.json()["invoice_number"] == "INV-77"
    assert (await get_settings())["current_business_cash"] == 0


async def test_paid_more_than_total_rejected(client, create_product, create_supplier, get_settings):
    product = await create_product(stock=0)
    supplier = await create_supplier()
    response = await client.post(f"{API}/purchases/", json={
        "supplier_id": supplier["id"],
        "items": [purchase_item(product, 1, 60)],
        "amount_paid": 61,
    })
    assert response.status_code == 400
    assert response.json()["detail"] == "Amount paid cannot exceed the grand total."
    assert (await get_settings())["last_purchase_numeric_id"] == 0
    assert (await client.get(f"{API}/products/{product['id']}")).json()["stock"] == 0


async def test_new_item_validation(client, create_product, create_supplier):
    await create_product(product_code="TAKEN")
    supplier = await create_supplier()

    async def post(item):
        return await client.post(f"{API}/purchases/", json={"supplier_id": supplier["id"], "items": [item]})

    response = await post({"product_name": "No Code", "quantity": 1, "purchase_price": 5, "sale_price": 9})
    assert response.status_code == 400
    assert response.json()["detail"] == 'A product code is required for the new item "No Code".'

    response = await post({"product_code": "X1", "product_name": "No Price", "quantity": 1, "purchase_price": 5})
    assert response.status_code == 400
    assert response.json()["detail"] == 'A valid sale price is required for new item "No Price".'

    response = await post({
        "product_code": "TAKEN", "product_name": "Dup", "quantity": 1, "purchase_price": 5, "sale_price": 9
    })
    assert response.status_code == 400
    assert "Received Items (from Inventory)" in response.json()["detail"]


async def test_unknown_supplier_is_404(client, create_product):
    product = await create_product(stock=0)
    response = await client.post(f"{API}/purchases/", json={
        "supplier_id": 999, "items": [purchase_item(product, 1, 5)]
    })
    assert response.status_code == 404


async def test_update_purchase_applies_differences(client, create_product, create_supplier, get_settings):
    product = await create_product(stock=0, cost_price=50)
    supplier = await create_supplier()
    invoice = (await client.post(f"{API}/purchases/", json={
        "supplier_id": supplier["id"],
        "items": [purchase_item(product, 10, 50)],
        "amount_paid": 100,
    })).json()

    response = await client.put(f"{API}/purchases/{invoice['id']}", json={
        "items": [purchase_item(product, 6, 50)],
        "amount_paid": 300,
    })
    assert response.status_code == 200, response.text
    updated = response.json()
    assert updated["grand_total"] == pytest.approx(300)
    assert updated["payment_status"] == "paid"
    assert updated["invoice_number"] == "AUTOGEN-1"

    assert (await client.get(f"{API}/products/{product['id']}")).json()["stock"] == 6
    # 欠款 400 -> 0
    assert (await client.get(f"{API}/suppliers/{supplier['id']}")).json()["current_balance"] == pytest.approx(0)
    assert (await get_settings())["current_business_cash"] == pytest.approx(-300)

    response = await client.get(f"{API}/financial/reconcile")
    assert response.json()["is_consistent"] is True


async def test_update_cannot_drive_stock_negative(client, create_product, create_supplier, create_customer):
    product = await create_product(stock=0)
    supplier = await create_supplier()
    customer = await create_customer()
    invoice = (await client.post(f"{API}/purchases/", json={
        "supplier_id": supplier["id"], "items": [purchase_item(product, 5, 60)]
    })).json()
    await client.post(f"{API}/sales/", json={
        "customer_id": customer["id"],
        "items": [{"product_id": product["id"], "product_name": "Widget", "quantity": 4, "price": 100}],
    })

    response = await client.put(f"{API}/purchases/{invoice['id']}", json={
        "items": [purchase_item(product, 2, 60)]
    })
    assert response.status_code == 400
    assert response.json()["detail"] == "Cannot reduce stock of Widget below zero. Available: 1, Change: -3"


async def test_update_respects_supplier_payments(client, create_product, create_supplier):
    product = await create_product(stock=0)
    supplier = await create_supplier()
    other = await create_supplier(name="Other Supplier")
    invoice = (await client.post(f"{API}/purchases/", json={
        "supplier_id": supplier["id"], "items": [purchase_item(product, 2, 50)]
    })).json()
    await client.post(f"{API}/supplier-payments/", json={"supplier_id": supplier["id"], "amount": 30})

    response = await client.put(f"{API}/purchases/{invoice['id']}", json={
        "items": [purchase_item(product, 2, 50)], "amount_paid": 10
    })
    assert response.status_code == 400
    assert "30.00 already applied" in response.json()["detail"]

    response = await client.put(f"{API}/purchases/{invoice['id']}", json={
        "supplier_id": other["id"], "items": [purchase_item(product, 2, 50)], "amount_paid": 30
    })
    assert response.status_code == 400


async def test_move_invoice_to_another_supplier(client, create_product, create_supplier):
    product = await create_product(stock=0)
    first = await create_supplier()
    second = await create_supplier(name="Second")
    invoice = (await client.post(f"{API}/purchases/", json={
        "supplier_id": first["id"], "items": [purchase_item(product, 2, 50)]
    })).json()

    response = await client.put(f"{API}/purchases/{invoice['id']}", json={
        "supplier_id": second["id"], "items": [purchase_item(product, 2, 50)]
    })
    assert response.json()["supplier_name"] == "Second"
    assert (await client.get(f"{API}/suppliers/{first['id']}")).json()["current_balance"] == 0
    assert (await client.get(f"{API}/suppliers/{second['id']}")).json()["current_balance"] == pytest.approx(100)


async def test_list_purchases_by_status(client, create_product, create_supplier):
    product = await create_product(stock=0)
    supplier = await create_supplier()
    await client.post(f"{API}/purchases/", json={
        "supplier_id": supplier["id"], "items": [purchase_item(product, 1, 10)], "amount_paid": 10
    })
    await client.post(f"{API}/purchases/", json={
        "supplier_id": supplier["id"], "items": [purchase_item(product, 1, 10)]
    })

    response = await client.get(f"{API}/purchases/", params={"payment_status": "unpaid"})
    assert response.json()["total"] == 1
    response = await client.get(f"{API}/purchases/", params={"supplier_id": supplier["id"]})
    assert response.json()["total"] == 2

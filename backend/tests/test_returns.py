import pytest

API = "/api/v1"


@pytest.fixture
def make_sale(client, create_product, create_customer):
    async def _make(quantity=4):
        product = await create_product(stock=10, cost_price=60, price=100)
        customer = await create_customer(name="Hina")
        response = await client.post(f"{API}/sales/", json={
            "customer_id": customer["id"],
            "items": [{
                "product_id": product["id"],
                "product_name": product["name"],
                "quantity": quantity,
                "price": 100,
            }],
        })
        assert response.status_code == 200, response.text
        return product, response.json()
    return _make


def return_item(product, quantity, price=100):
    return {
        "product_id": product["id"],
        "product_name": product["name"],
        "quantity_returned": quantity,
        "original_sale_price": price,
    }


async def test_return_restocks_and_refunds(client, make_sale, get_settings, get_activity):
    product, sale = await make_sale()
    cash_before = (await get_settings())["current_business_cash"]

    response = await client.post(f"{API}/returns/", json={
        "original_sale_id": sale["id"],
        "items": [return_item(product, 2)],
        "reason": "Damaged",
        "adjustment_amount": 15,
        "adjustment_type": "deduct",
    })
    assert response.status_code == 200, response.text
    sale_return = response.json()
    assert sale_return["numeric_return_id"] == 1
    assert sale_return["original_numeric_sale_id"] == 1
    assert sale_return["customer_name"] == "Hina"
    assert sale_return["customer_id"] == sale["customer_id"]
    assert sale_return["subtotal_returned_amount"] == pytest.approx(200)
    assert sale_return["net_refund_amount"] == pytest.approx(185)
    assert sale_return["items"][0]["stock_updated"] is True

    assert (await client.get(f"{API}/products/{product['id']}")).json()["stock"] == 8
    settings = await get_settings()
    assert settings["current_business_cash"] == pytest.approx(cash_before - 185)

    response = await client.get(f"{API}/financial/transactions", params={"transaction_type": "sale_return"})
    row = response.json()["data"][0]
    assert row["description"] == "Refund for Sale Return #1 (Inv: 1) to Hina."
    assert row["amount"] == pytest.approx(-185)

    logs = await get_activity("RETURN_PROCESSED")
    assert logs[0]["description"] == "Return #1 processed for Hina. Net refund: PKR 185.00."


async def test_add_adjustment_increases_refund(client, make_sale):
    product, sale = await make_sale()
    response = await client.post(f"{API}/returns/", json={
        "original_sale_id": sale["id"],
        "items": [return_item(product, 1)],
        "reason": "Late delivery",
        "adjustment_amount": 10,
        "adjustment_type": "add",
    })
    assert response.json()["net_refund_amount"] == pytest.approx(110)


async def test_deduction_never_goes_negative(client, make_sale):
    product, sale = await make_sale()
    response = await client.post(f"{API}/returns/", json={
        "original_sale_id": sale["id"],
        "items": [return_item(product, 1)],
        "reason": "Restocking fee",
        "adjustment_amount": 500,
    })
    assert response.json()["net_refund_amount"] == 0


async def test_cannot_return_more_than_sold(client, make_sale, get_settings):
    product, sale = await make_sale(quantity=3)

    response = await client.post(f"{API}/returns/", json={
        "original_sale_id": sale["id"],
        "items": [return_item(product, 4)],
        "reason": "Wrong size",
    })
    assert response.status_code == 400
    assert response.json()["detail"] == "Cannot return more Widget than sold. Sold: 3, Already returned: 0, Requested: 4"

    response = await client.post(f"{API}/returns/", json={
        "original_sale_id": sale["id"],
        "items": [return_item(product, 2)],
        "reason": "Wrong size",
    })
    assert response.status_code == 200

    # 累计超过销售数量
    response = await client.post(f"{API}/returns/", json={
        "original_sale_id": sale["id"],
        "items": [return_item(product, 2)],
        "reason": "Wrong size",
    })
    assert response.status_code == 400
    assert "Already returned: 2" in response.json()["detail"]
    assert (await get_settings())["last_return_numeric_id"] == 1


async def test_product_not_in_sale_rejected(client, make_sale, create_product):
    _, sale = await make_sale()
    other = await create_product(product_code="P002", name="Gadget")
    response = await client.post(f"{API}/returns/", json={
        "original_sale_id": sale["id"],
        "items": [return_item(other, 1)],
        "reason": "Mistake",
    })
    assert response.status_code == 400
    assert response.json()["detail"] == "Gadget was not part of sale #1."


async def test_unknown_sale_is_404(client):
    response = await client.post(f"{API}/returns/", json={
        "original_sale_id": 999,
        "items": [{"product_name": "Thing", "quantity_returned": 1, "original_sale_price": 5}],
        "reason": "Mistake",
    })
    assert response.status_code == 404


async def test_manual_item_and_missing_product(client, create_product, get_activity):
    product = await create_product(stock=0)
    await client.delete(f"{API}/products/{product['id']}")

    response = await client.post(f"{API}/returns/", json={
        "items": [
            {"product_name": "Loose screws", "quantity_returned": 3, "original_sale_price": 2},
            return_item(product, 1, price=50),
        ],
        "reason": "Customer changed mind",
    })
    assert response.status_code == 200, response.text
    sale_return = response.json()
    assert sale_return["customer_name"] == "N/A"
    assert sale_return["items"][0]["stock_updated"] is None
    assert sale_return["items"][1]["stock_updated"] is False
    assert sale_return["net_refund_amount"] == pytest.approx(56)

    logs = await get_activity("RETURN_PROCESSED")
    assert any("no longer exists" in log["description"] for log in logs)
    assert any('Manual item "Loose screws"' in log["description"] for log in logs)


async def test_list_returns_by_sale(client, make_sale):
    product, sale = await make_sale()
    await client.post(f"{API}/returns/", json={
        "original_sale_id": sale["id"],
        "items": [return_item(product, 1)],
        "reason": "Faulty",
    })
    response = await client.get(f"{API}/returns/", params={"original_sale_id": sale["id"]})
    assert response.json()["total"] == 1

    return_id = response.json()["data"][0]["id"]
    assert (await client.get(f"{API}/returns/{return_id}")).status_code == 200
    assert (await client.get(f"{API}/returns/9999")).status_code == 404

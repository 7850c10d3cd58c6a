import pytest

API = "/api/v1"


async def sell(client, customer, product, quantity, price=None):
    response = await client.post(f"{API}/sales/", json={
        "customer_id": customer["id"],
        "items": [{
            "product_id": product["id"],
            "product_name": product["name"],
            "quantity": quantity,
            "price": product["price"] if price is None else price,
        }],
    })
    assert response.status_code == 200, response.text
    return response.json()


async def test_empty_dashboard(client):
    response = await client.get(f"{API}/dashboard/stats")
    stats = response.json()
    assert stats["period"] == "this_month"
    assert stats["period_label"] == "This Month"
    assert stats["sales_count"] == 0
    assert stats["new_customers"] == 0
    assert stats["product_count"] == 0


async def test_dashboard_stats(client, create_product, create_customer, create_supplier):
    widget = await create_product(stock=15, cost_price=0)
    gadget = await create_product(product_code="P002", name="Gadget", price=40, cost_price=0, stock=10)
    await create_product(product_code="P003", name="Gone", cost_price=0, stock=0)
    await create_supplier()
    customer = await create_customer()

    await sell(client, customer, widget, 2)
    await sell(client, customer, gadget, 1)

    response = await client.get(f"{API}/dashboard/stats", params={"period": "all_time"})
    stats = response.json()
    assert stats["period_label"] == "All Time"
    assert stats["total_revenue"] == pytest.approx(240)
    assert stats["sales_count"] == 2
    assert stats["new_customers"] == 1
    assert stats["low_stock_count"] == 2
    assert stats["out_of_stock_count"] == 1
    assert stats["product_count"] == 3
    assert stats["supplier_count"] == 1
    assert stats["current_business_cash"] == pytest.approx(240)


async def test_top_products(client, create_product, create_customer):
    widget = await create_product(stock=50, cost_price=0)
    gadget = await create_product(product_code="P002", name="Gadget", price=40, cost_price=0, stock=50)
    customer = await create_customer()

    await sell(client, customer, widget, 2)
    await sell(client, customer, gadget, 5)
    await sell(client, customer, widget, 1)

    response = await client.get(f"{API}/dashboard/top-products", params={"count": 5})
    data = response.json()["data"]
    assert [row["product_name"] for row in data] == ["Gadget", "Widget"]
    assert data[0]["total_quantity"] == 5
    assert data[1]["total_quantity"] == 3
    assert data[1]["total_revenue"] == pytest.approx(300)

    await client.put(f"{API}/products/{gadget['id']}", json={"name": "Gadget Pro"})
    response = await client.get(f"{API}/dashboard/top-products", params={"count": 1})
    data = response.json()["data"]
    assert len(data) == 1
    assert data[0]["product_name"] == "Gadget Pro"


async def test_top_products_ignores_manual_items(client):
    await client.post(f"{API}/sales/", json={
        "sale_type": "INSTANT",
        "items": [{"product_name": "Loose item", "quantity": 3, "price": 10}],
    })
    response = await client.get(f"{API}/dashboard/top-products")
    assert response.json()["data"] == []

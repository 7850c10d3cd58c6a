API = "/api/v1"


async def test_walk_in_customer_is_seeded(client, walk_in_customer):
    walk_in = await walk_in_customer()
    assert walk_in["name"] == "Walk-in Customer"
    assert walk_in["code"] == "CUST_WALK_IN"


async def test_create_customer_assigns_code(client, create_customer, get_activity):
    first = await create_customer(name="Ali")
    second = await create_customer(name=None, company_name="Khan Traders", phone="042-111")
    assert first["code"] == "CUST001"
    assert second["code"] == "CUST002"
    assert second["name"] == ""
    assert second["company_name"] == "Khan Traders"

    logs = await get_activity("NEW_CUSTOMER")
    assert len(logs) == 2


async def test_customer_validation(client):
    response = await client.post(f"{API}/customers/", json={"name": "No Phone", "phone": "  "})
    assert response.status_code == 422
    assert "Phone Number is required." in response.text

    response = await client.post(f"{API}/customers/", json={"phone": "123"})
    assert response.status_code == 422
    assert "Customer Name or Company Name is required." in response.text


async def test_walk_in_customer_is_protected(client, walk_in_customer):
    walk_in = await walk_in_customer()

    response = await client.put(f"{API}/customers/{walk_in['id']}", json={"name": "Someone"})
    assert response.status_code == 400
    assert response.json()["detail"] == "The default 'Walk-in Customer' cannot be edited."

    response = await client.delete(f"{API}/customers/{walk_in['id']}")
    assert response.status_code == 400
    assert response.json()["detail"] == "The default 'Walk-in Customer' cannot be deleted."


async def test_update_customer(client, create_customer, get_activity):
    customer = await create_customer()
    response = await client.put(f"{API}/customers/{customer['id']}", json={"email": "ali@example.com"})
    assert response.status_code == 200
    assert response.json()["email"] == "ali@example.com"

    response = await client.put(f"{API}/customers/{customer['id']}", json={"phone": ""})
    assert response.status_code == 400
    assert await get_activity("CUSTOMER_UPDATE")


async def test_delete_customer_keeps_sale_history(client, create_customer, create_product, get_activity):
    customer = await create_customer(name="Bilal")
    product = await create_product()
    response = await client.post(f"{API}/sales/", json={
        "customer_id": customer["id"],
        "items": [{"product_id": product["id"], "product_name": "Widget", "quantity": 1, "price": 100}],
    })
    sale = response.json()

    response = await client.delete(f"{API}/customers/{customer['id']}")
    assert response.status_code == 200

    response = await client.get(f"{API}/sales/{sale['id']}")
    assert response.json()["customer_id"] is None
    assert response.json()["customer_name"] == "Bilal"
    assert await get_activity("CUSTOMER_DELETE")


async def test_list_excludes_walk_in_on_request(client, create_customer):
    await create_customer()
    response = await client.get(f"{API}/customers/", params={"include_walk_in": False})
    assert response.json()["total"] == 1

    response = await client.get(f"{API}/customers/", params={"period": "this_month"})
    assert response.json()["total"] == 2

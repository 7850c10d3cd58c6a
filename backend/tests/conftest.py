import os
import tempfile

# 测试数据库放在临时目录，必须在导入 salify 之前设置
TEST_DIR = tempfile.mkdtemp(prefix="salify_test_")
os.environ["SQLITE_DATABASE_URI"] = f"sqlite:///{os.path.join(TEST_DIR, 'salify_test.db')}"
os.environ["AUTO_BACKUP_ENABLED"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["LOG_DIR"] = os.path.join(TEST_DIR, "logs")

import pytest
from httpx import AsyncClient, ASGITransport

from salify.db import session as db_session
from salify.db.base import Base
from salify.db.init_db import seed_base_data
from salify.main import app

API = "/api/v1"


@pytest.fixture
async def reset_database():
    """每个用例使用全新的表 + 基础数据"""
    async with db_session.engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    async with db_session.SessionLocal() as db:
        await seed_base_data(db)
        await db.commit()
    yield
    await db_session.engine.dispose()


@pytest.fixture
async def client(reset_database):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
def create_product(client):
    async def _create(product_code="P001", name="Widget", price=100, cost_price=60, stock=10, **extra):
        payload = {
            "product_code": product_code,
            "name": name,
            "price": price,
            "cost_price": cost_price,
            "stock": stock,
            **extra,
        }
        response = await client.post(f"{API}/products/", json=payload)
        assert response.status_code == 200, response.text
        return response.json()
    return _create


@pytest.fixture
def create_customer(client):
    async def _create(name="Ali Khan", phone="0300-1234567", **extra):
        response = await client.post(f"{API}/customers/", json={"name": name, "phone": phone, **extra})
        assert response.status_code == 200, response.text
        return response.json()
    return _create


@pytest.fixture
def create_supplier(client):
    async def _create(name="Acme Traders", **extra):
        response = await client.post(f"{API}/suppliers/", json={"name": name, **extra})
        assert response.status_code == 200, response.text
        return response.json()
    return _create


@pytest.fixture
def get_settings(client):
    async def _get():
        response = await client.get(f"{API}/settings/")
        assert response.status_code == 200, response.text
        return response.json()
    return _get


@pytest.fixture
def get_activity(client):
    async def _get(activity_type=None):
        params = {"limit": 500}
        if activity_type:
            params["activity_type"] = activity_type
        response = await client.get(f"{API}/activity/", params=params)
        assert response.status_code == 200, response.text
        return response.json()["data"]
    return _get


@pytest.fixture
def walk_in_customer(client):
    async def _get():
        response = await client.get(f"{API}/customers/", params={"limit": 500})
        assert response.status_code == 200, response.text
        return next(c for c in response.json()["data"] if c["is_walk_in"])
    return _get

import inspect
import os
from decimal import Decimal

os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import httpx
import pytest
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from mani_shop.core.security import create_access_token
from mani_shop.db.base import Base
from mani_shop.db.models import Customer, Product
from mani_shop.db.session import get_db
from mani_shop.main import app
from storefront.core.backend_client import BackendClient
from storefront.schemas.auth import AuthState
from storefront.services.cart_store import CartStore


DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def engine():
    engine = create_async_engine(
        DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False}
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def db_session(engine):
    AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with AsyncSessionLocal() as session:
        yield session


@pytest.fixture
async def customer(db_session):
    customer = Customer(email="ravi@example.com", full_name="Ravi Kumar", phone="9876543210")
    db_session.add(customer)
    await db_session.commit()
    await db_session.refresh(customer)
    return customer


@pytest.fixture
async def other_customer(db_session):
    customer = Customer(email="meena@example.com", full_name="Meena Iyer")
    db_session.add(customer)
    await db_session.commit()
    await db_session.refresh(customer)
    return customer


@pytest.fixture
async def products(db_session):
    catalogue = {
        "switch": Product(name="Modular Switch", brand="Anchor", category="switches", price=Decimal("100.00"), stock=10),
        "cable": Product(name="Copper Cable 1.5mm", brand="Havells", category="wires", price=Decimal("50.00"), stock=5, weight=Decimal("1.200")),
        "inverter": Product(name="Home Inverter 900VA", brand="Luminous", category="power", price=Decimal("9800.00"), stock=3),
    }
    db_session.add_all(catalogue.values())
    await db_session.commit()
    return catalogue


@pytest.fixture
def token(customer):
    return create_access_token({"sub": str(customer.id)})


@pytest.fixture
def auth_headers(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def shop_app(db_session):
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
async def api(shop_app):
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=shop_app), base_url="http://testserver") as client:
        yield client


@pytest.fixture
async def shop_client(shop_app):
    """Storefront client wired to the in-process shop API."""
    client = BackendClient(base_url="http://testserver/api", transport=httpx.ASGITransport(app=shop_app))
    yield client
    await client.close()


class FakeShop:
    """Scripted stand-in for the shop API, for storefront unit tests."""

    def __init__(self):
        self.requests = []
        self.routes = {}

    def on(self, method, path, status_code=200, json=None, handler=None):
        self.routes[(method, path)] = handler or (lambda request: httpx.Response(status_code, json=json))

    async def __call__(self, request):
        self.requests.append(request)
        path = request.url.path[len("/api"):]
        route = self.routes.get((request.method, path))
        if route is None:
            return httpx.Response(404, json={"success": False, "message": "Not found"})
        response = route(request)
        if inspect.isawaitable(response):
            response = await response
        return response

    @property
    def calls(self):
        return [f"{r.method} {r.url.path[len('/api'):]}" for r in self.requests]

    def client(self):
        return BackendClient(base_url="http://shop.test/api", transport=httpx.MockTransport(self))

    @staticmethod
    def cart_json(*lines, user=1):
        """``lines`` are (product_id, quantity, price, stock) tuples."""
        items = [
            {
                "product": {
                    "id": product_id,
                    "name": f"Product {product_id}",
                    "brand": "Mani",
                    "image": "",
                    "price": str(price),
                    "stock": stock
                },
                "quantity": quantity,
                "price": str(price)
            }
            for product_id, quantity, price, stock in lines
        ]
        total = sum(Decimal(str(price)) * quantity for _, quantity, price, _ in lines)
        return {"id": 1, "user": user, "items": items, "totalAmount": str(total)}


@pytest.fixture
def fake_shop():
    return FakeShop()


@pytest.fixture
def make_store(fake_shop):
    """Build a logged-in CartStore whose persisted cart holds the given lines."""
    async def factory(*lines):
        fake_shop.on("GET", "/cart", json={"success": True, "cart": FakeShop.cart_json(*lines)})
        store = CartStore(fake_shop.client())
        await store.initialize(AuthState(access_token="token", user_id=1))
        return store

    return factory

"""
Centralized Test Configuration.

Each test gets a fresh SQLite database, a mock Redis and a new
tracking hub on app.state (httpx's ASGITransport does not run the lifespan).
"""

from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession

from backend.app.main import app
from backend.app.db.session import get_db, Base
from backend.app.core.jwt import create_access_token
from backend.app.core.security import get_password_hash
import backend.app.core.redis_client as redis_client_module
from backend.app.models.user import User
from backend.app.models.enums import UserRole
from backend.app.schemas.auth import Principal
from backend.app.schemas.bid import BidCreate
from backend.app.schemas.transport_request import TransportRequestCreate
from backend.app.services.bidding import BiddingService
from backend.app.services.tracking_hub import LocationBroadcastHub
from backend.app.services.transport_requests import TransportRequestService

TEST_DATABASE_URL = "sqlite+aiosqlite:///{path}"

PICKUP = datetime(2030, 1, 10, 9, 0, tzinfo=timezone.utc)


# Mock Redis for reliability in CI/CD
class MockRedis:
    def __init__(self):
        self.store = {}

    async def ping(self):
        return True

    async def get(self, key):
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        self.store[key] = value
        return True

    async def setex(self, key, ttl, value):
        self.store[key] = value
        return True

    async def delete(self, key):
        return 1 if self.store.pop(key, None) is not None else 0

    async def exists(self, key):
        return 1 if key in self.store else 0

    async def flushdb(self):
        self.store = {}

    async def aclose(self):
        self.store = {}


@pytest.fixture
async def engine(tmp_path):
    # File-backed so concurrent sessions get their own connections
    engine = create_async_engine(
        TEST_DATABASE_URL.format(path=tmp_path / "test.db"),
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def set_sqlite_pragma(dbapi_conn, connection_record):
        """Enable foreign key constraints for SQLite."""
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def mock_redis():
    """Swap the module-level Redis client for an in-memory fake."""
    fake = MockRedis()
    original_client = redis_client_module.redis_client
    redis_client_module.redis_client = fake
    yield fake
    redis_client_module.redis_client = original_client


@pytest.fixture
def tracking_hub():
    return LocationBroadcastHub(send_timeout=0.2)


@pytest.fixture(autouse=True)
def apply_overrides(session_factory, mock_redis, tracking_hub):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.state.tracking_hub = tracking_hub
    yield
    app.dependency_overrides = {}


@pytest.fixture
async def client():
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


class Account:
    """A seeded user with a ready-to-use bearer token."""

    def __init__(self, user: User):
        self.id = user.id
        self.email = user.email
        self.role = user.role
        self.token = create_access_token({"sub": user.email, "user_id": user.id, "role": user.role.value})
        self.principal = Principal(id=user.id, role=user.role, email=user.email)

    @property
    def headers(self):
        return {"Authorization": f"Bearer {self.token}"}


@pytest.fixture
def make_user(session_factory):
    """Factory: await make_user(UserRole.DRIVER) -> Account."""
    counter = {"n": 0}

    async def _make(role: UserRole, email: str = None, password: str = "secret123") -> Account:
        counter["n"] += 1
        email = email or f"{role.value}{counter['n']}@example.com"
        async with session_factory() as session:
            user = User(
                email=email,
                hashed_password=get_password_hash(password),
                first_name=role.value.title(),
                last_name=str(counter["n"]),
                role=role
            )
            session.add(user)
            await session.commit()
            await session.refresh(user)
        return Account(user)

    return _make


@pytest.fixture
async def admin(make_user):
    return await make_user(UserRole.ADMIN)


@pytest.fixture
async def client_user(make_user):
    return await make_user(UserRole.CLIENT)


@pytest.fixture
async def driver(make_user):
    return await make_user(UserRole.DRIVER)


@pytest.fixture
async def other_driver(make_user):
    return await make_user(UserRole.DRIVER)


def request_payload(**overrides):
    payload = {
        "pickup_location": "12 Dock Road, Rotterdam",
        "delivery_location": "4 Market Street, Antwerp",
        "pickup_date": PICKUP.isoformat(),
        "delivery_date": (PICKUP + timedelta(days=2)).isoformat(),
        "item_description": "Pallet of ceramic tiles",
        "weight": "10",
        "dimensions": "120x80x60 cm",
        "budget": "500",
    }
    payload.update(overrides)
    return payload


def bid_payload(request_id: int, amount: str = "450", **overrides):
    payload = {
        "request_id": request_id,
        "amount": amount,
        "message": "Can pick up first thing",
        "estimated_delivery": (PICKUP + timedelta(days=1)).isoformat(),
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def new_request(session_factory):
    """Factory: create a PENDING request owned by the given client via the service layer."""

    async def _create(owner: Account, **overrides):
        data = TransportRequestCreate(**request_payload(**overrides))
        async with session_factory() as session:
            return await TransportRequestService.create_request(session, owner.principal, data)

    return _create


@pytest.fixture
def new_bid(session_factory):
    """Factory: place a bid as the given driver via the service layer."""

    async def _bid(bidder: Account, request_id: int, amount: str = "450", **overrides):
        data = BidCreate(**bid_payload(request_id, amount, **overrides))
        async with session_factory() as session:
            return await BiddingService.submit_bid(session, bidder.principal, data)

    return _bid


@pytest.fixture
def assigned_request(new_request, new_bid, session_factory, client_user, driver, admin):
    """Factory: a request already assigned to `driver` through an accepted bid."""

    async def _assigned():
        request = await new_request(client_user)
        await new_bid(driver, request.id)
        async with session_factory() as session:
            return await BiddingService.accept_bid(session, admin.principal, request.id, driver.id)

    return _assigned


@pytest.fixture
def request_body():
    """Factory for POST /transport-requests payloads."""
    return request_payload


@pytest.fixture
def bid_body():
    """Factory for POST /bids payloads."""
    return bid_payload


@pytest.fixture
def pickup():
    """Pickup date used by request_body; bids must deliver after it."""
    return PICKUP

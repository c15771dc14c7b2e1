import pytest
import pytest_asyncio
from datetime import date, timedelta
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from shiprepair_erp.main import app
from shiprepair_erp import models  # noqa: F401
from shiprepair_erp.database import Base, get_db
from shiprepair_erp.api.deps import create_access_token
from shiprepair_erp.models.user import User
from shiprepair_erp.models.work_order import WorkOrder, WorkOrderStatus
from shiprepair_erp.services.blob_storage import LocalBlobStorage, get_blob_storage

# Test database URL (in-memory SQLite shared through a single connection)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

OPS_ID = "00000000-0000-0000-0000-00000000000a"
OTHER_OPS_ID = "00000000-0000-0000-0000-00000000000b"
FINANCE_ID = "00000000-0000-0000-0000-00000000000c"
ADMIN_ID = "00000000-0000-0000-0000-00000000000d"
ENGINEER_ID = "00000000-0000-0000-0000-00000000000e"

USERS = [
    (OPS_ID, "ops@shipyard.test", "Olga Ops", "OPS"),
    (OTHER_OPS_ID, "ops2@shipyard.test", "Oscar Ops", "OPS"),
    (FINANCE_ID, "finance@shipyard.test", "Fiona Finance", "FINANCE"),
    (ADMIN_ID, "admin@shipyard.test", "Adam Admin", "ADMIN"),
    (ENGINEER_ID, "engineer@shipyard.test", "Erik Engineer", "ENGINEER"),
]


def auth_headers(user_id: str, role: str) -> dict:
    """Bearer header for a token in the token service's format."""
    token = create_access_token({"sub": user_id, "role": role})
    return {"Authorization": f"Bearer {token}"}


OPS = auth_headers(OPS_ID, "OPS")
OTHER_OPS = auth_headers(OTHER_OPS_ID, "OPS")
FINANCE = auth_headers(FINANCE_ID, "FINANCE")
ADMIN = auth_headers(ADMIN_ID, "ADMIN")
ENGINEER = auth_headers(ENGINEER_ID, "ENGINEER")


@pytest_asyncio.fixture
async def test_db():
    """Create test database and tables."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with async_session() as session:
        yield session

    await engine.dispose()


@pytest_asyncio.fixture
async def test_users(test_db: AsyncSession):
    """One user per role, plus a second OPS user who owns nothing."""
    users = [User(id=uid, email=email, name=name, role=role) for uid, email, name, role in USERS]
    test_db.add_all(users)
    await test_db.commit()
    return {user.id: user for user in users}


@pytest.fixture
def blob_storage(tmp_path):
    return LocalBlobStorage(tmp_path / "attachments")


@pytest_asyncio.fixture
async def client(test_db: AsyncSession, test_users, blob_storage):
    """Create test client with overridden database and blob store."""

    async def override_get_db():
        yield test_db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_blob_storage] = lambda: blob_storage

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def make_work_order(test_db: AsyncSession):
    """Insert a work order directly, bypassing the API.

    Defaults to a DRAFT owned by the OPS user and scheduled around today.
    """

    async def _make(**overrides) -> WorkOrder:
        today = date.today()
        values = {
            "operating_company": "Wormos",
            "order_type": "REPAIR",
            "payment_terms": "NET30",
            "customer_company": "Blue Anchor Shipping",
            "vessel_name": "MV Northern Star",
            "imo": "9321483",
            "location_type": "PORT",
            "location_name": "Berth 7",
            "city": "Rotterdam",
            "start_date": today - timedelta(days=2),
            "end_date": today + timedelta(days=5),
            "created_by_id": OPS_ID,
            "internal_no": None,
            "status": WorkOrderStatus.DRAFT.value,
        }
        values.update(overrides)
        work_order = WorkOrder(**values)
        test_db.add(work_order)
        await test_db.commit()
        return work_order

    return _make


@pytest_asyncio.fixture
async def work_order(make_work_order) -> WorkOrder:
    return await make_work_order()

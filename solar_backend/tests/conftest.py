"""
Test fixtures - in-memory SQLite database + authenticated HTTP client
"""
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from solar_backend.database import Base, create_tables, get_db
from solar_backend.main import app
from solar_backend.api.auth import get_password_hash, create_access_token
from solar_backend.models.inventory import InventoryItem
from solar_backend.models.site import Site
from solar_backend.models.user import User


@pytest_asyncio.fixture()
async def db_engine():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    await create_tables(engine)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture()
async def db_session(db_engine):
    """Create a fresh in-memory SQLite database for each test"""
    session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)

    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture()
async def seed_data(db_session):
    """Insert baseline test data: user, 2 sites and 3 catalog items"""
    user = User(
        id="USER-TEST",
        name="Test User",
        email="test@ofgen.co.ke",
        role="management",
        status="active",
        hashed_password=get_password_hash("testpass123"),
        is_admin=True,
    )
    engineer = User(
        id="USER-ENG",
        name="Alice Engineer",
        email="alice@ofgen.co.ke",
        role="engineer",
        status="active",
        company="Ofgen",
        hashed_password=get_password_hash("alicepass"),
    )
    nairobi = Site(id="SITE-NBO", name="Nairobi Solar Site 1", county="Nairobi",
                   address="Mombasa Road", capacity=50, is_active=True)
    kisumu = Site(id="SITE-KSM", name="Kisumu Lakeside", county="Kisumu",
                  address="Oginga Odinga St", capacity=20, is_active=False)
    panel = InventoryItem(id="INV-1001", name="Solar Panel 250W", category="Solar Panels",
                          unit_cost=15000, buying_price=12000, quantity=25)
    inverter = InventoryItem(id="INV-1002", name="Inverter 3kW", category="Inverters",
                             unit_cost=45000, buying_price=38000, quantity=12)
    fuse = InventoryItem(id="INV-1009", name="Fuse 15A", category="Accessories",
                         unit_cost=500, buying_price=300, quantity=50)

    db_session.add_all([user, engineer, nairobi, kisumu, panel, inverter, fuse])
    await db_session.commit()

    return {
        "user": user, "engineer": engineer,
        "nairobi": nairobi, "kisumu": kisumu,
        "panel": panel, "inverter": inverter, "fuse": fuse,
    }


@pytest_asyncio.fixture()
async def client(db_session, seed_data):
    """Authenticated httpx AsyncClient bound to the FastAPI app"""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    token = create_access_token(data={"sub": seed_data["user"].email})

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test", follow_redirects=True) as ac:
        ac.headers["Authorization"] = f"Bearer {token}"
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def unauth_client(db_session):
    """Unauthenticated httpx AsyncClient"""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test", follow_redirects=True) as ac:
        yield ac

    app.dependency_overrides.clear()

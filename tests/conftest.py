import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool

from app.main import app
from app.database import Base, get_db
from app.api.deps import get_password_hash, create_access_token
from app.models.user import User
from app.models.service import Service, Workflow

from tests.factories import (
    UserFactory,
    AdminUserFactory,
    EmployeeUserFactory,
    ServiceFactory,
)

# Test database URL (SQLite for testing)
TEST_DATABASE_URL = "sqlite+aiosqlite:///./test.db"

TEST_PASSWORD = "testpassword123"


@pytest_asyncio.fixture
async def test_db():
    """Create test database and tables."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=NullPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )

    async with async_session() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


async def _create_user(db: AsyncSession, data: dict) -> User:
    user = User(**data, hashed_password=get_password_hash(TEST_PASSWORD))
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest_asyncio.fixture
async def admin_user(test_db: AsyncSession):
    """An administrator with a full name."""
    return await _create_user(
        test_db, AdminUserFactory(email="admin@myjantes.fr", first_name="Alice", last_name="Martin")
    )


@pytest_asyncio.fixture
async def client_user(test_db: AsyncSession):
    """A regular client."""
    return await _create_user(test_db, UserFactory(email="client@example.com"))


@pytest_asyncio.fixture
async def employee_user(test_db: AsyncSession):
    """A workshop employee."""
    return await _create_user(test_db, EmployeeUserFactory(email="atelier@myjantes.fr"))


@pytest_asyncio.fixture
async def service(test_db: AsyncSession):
    """A catalogue service with its (empty) workflow."""
    service = Service(**ServiceFactory(name="Rénovation jante"))
    test_db.add(service)
    await test_db.flush()
    test_db.add(Workflow(service_id=service.id, name="Workflow Rénovation jante"))
    await test_db.commit()
    await test_db.refresh(service)
    return service


def auth_headers(user: User) -> dict:
    """Bearer headers for ``user``."""
    token = create_access_token(data={"sub": str(user.id), "email": user.email})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(admin_user: User) -> dict:
    return auth_headers(admin_user)


@pytest.fixture
def client_headers(client_user: User) -> dict:
    return auth_headers(client_user)


@pytest.fixture
def employee_headers(employee_user: User) -> dict:
    return auth_headers(employee_user)


@pytest_asyncio.fixture
async def client(test_db: AsyncSession):
    """Create test client with overridden database."""

    async def override_get_db():
        yield test_db

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def admin_client(client: AsyncClient, admin_headers: dict):
    """Create test client authenticated as an administrator."""
    client.headers.update(admin_headers)
    return client

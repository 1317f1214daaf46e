"""Test fixtures — in-memory SQLite database, temp storage root and FastAPI test client."""

from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from filehub import services
from filehub.config import settings
from filehub.database import get_db
from filehub.main import create_app
from filehub.models.base import Base


def make_token(username: str = "alice", role: str = "user", tenant_id: str | None = "acme", **extra) -> str:
    """Mint a token the way the identity service does."""
    payload = {
        "sub": username,
        "role": role,
        "exp": datetime.now(timezone.utc) + timedelta(hours=1),
        **extra,
    }
    if tenant_id is not None:
        payload["tenant_id"] = tenant_id
    return jwt.encode(payload, settings.secret_key, algorithm=settings.token_algorithm)


def auth_headers(**kwargs) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(**kwargs)}"}


@pytest_asyncio.fixture
async def db_session():
    """Provide an async in-memory SQLite session for tests."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session

    await engine.dispose()


@pytest.fixture
def storage_root(tmp_path):
    return tmp_path / "tenants"


@pytest.fixture
def registry(storage_root):
    """Service singletons wired to a temp storage root, scheduler off."""
    services.init_services(storage_root=str(storage_root), start_scheduler=False)
    return services


@pytest.fixture
def storage(registry):
    return registry.get_storage_service()


@pytest.fixture
def search_service(registry):
    return registry.get_search_service()


@pytest.fixture
def resolver(registry):
    return registry.get_resolver()


@pytest_asyncio.fixture
async def tenants(registry, db_session):
    """Two registered tenants: acme ("Acme Corp") and globex ("Globex")."""
    tenant_service = registry.get_tenant_service()
    await tenant_service.create_tenant(db_session, "acme", "Acme Corp")
    await tenant_service.create_tenant(db_session, "globex", "Globex")
    return {"acme": "Acme Corp", "globex": "Globex"}


@pytest.fixture
def acme_root(resolver, tenants):
    return resolver.tenant_root("acme")


@pytest.fixture
def globex_root(resolver, tenants):
    return resolver.tenant_root("globex")


@pytest_asyncio.fixture
async def app(db_session: AsyncSession, tenants):
    """FastAPI app with the DB dependency bound to the test session."""
    application = create_app()

    async def _override_db():
        yield db_session

    application.dependency_overrides[get_db] = _override_db
    return application


@pytest_asyncio.fixture
async def client(app):
    """Provide an async test client with overridden DB dependency."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

"""Pytest configuration and shared fixtures.

Every test gets its own SQLite database file under tmp_path, so tests are
isolated and can run in parallel.

Password hashing uses a low iteration count here to keep the suite fast.
"""

from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from pydantic import SecretStr

from deliverytrack.api import create_app
from deliverytrack.core.config import (
    AdminSettings,
    CredentialSettings,
    DatabaseSettings,
    FinishPolicy,
    LifecycleSettings,
    Settings,
)
from deliverytrack.db import (
    close_engine,
    create_engine_from_settings,
    create_session_factory,
    init_schema,
)
from deliverytrack.services.credentials import CredentialStore
from deliverytrack.services.lifecycle import DeliveryLifecycleService
from deliverytrack.services.store import DeliveryStore

TEST_HASH_ITERATIONS = 1000
TEST_ADMIN_PASSWORD = "admin-test-password"


# ---------------------------------------------------------------------------
# Configuration fixtures
# ---------------------------------------------------------------------------
@pytest.fixture
def database_url(tmp_path) -> str:
    """Database URL for one test (a fresh SQLite file)."""
    return f"sqlite+aiosqlite:///{tmp_path / 'deliveries.db'}"


@pytest.fixture
def finish_policy() -> FinishPolicy:
    """Finish policy used by the service and app fixtures.

    Override in a test module or class to exercise the strict policy.
    """
    return FinishPolicy.PERMISSIVE


@pytest.fixture
def admin_password() -> str:
    """Password of the administrator seeded by the app fixture."""
    return TEST_ADMIN_PASSWORD


@pytest.fixture
def test_settings(database_url: str, finish_policy: FinishPolicy, admin_password: str) -> Settings:
    """Settings pointing at the per-test database."""
    return Settings(
        database=DatabaseSettings(url=database_url),
        admin=AdminSettings(username="admin", password=SecretStr(admin_password)),
        credentials=CredentialSettings(hash_iterations=TEST_HASH_ITERATIONS),
        lifecycle=LifecycleSettings(finish_policy=finish_policy),
    )


# ---------------------------------------------------------------------------
# Database and service fixtures
# ---------------------------------------------------------------------------
@pytest.fixture
async def engine(test_settings: Settings):
    """Async engine with the schema created."""
    engine = create_engine_from_settings(test_settings.database)
    await init_schema(engine)
    yield engine
    await close_engine(engine)


@pytest.fixture
def session_factory(engine):
    """Session factory bound to the test engine."""
    return create_session_factory(engine)


@pytest.fixture
def store(session_factory) -> DeliveryStore:
    """Delivery store over the test database."""
    return DeliveryStore(session_factory)


@pytest.fixture
def lifecycle(store: DeliveryStore, test_settings: Settings) -> DeliveryLifecycleService:
    """Lifecycle service configured from the test settings."""
    return DeliveryLifecycleService(
        store,
        finish_policy=test_settings.lifecycle.finish_policy,
        default_page_size=test_settings.lifecycle.default_page_size,
        max_page_size=test_settings.lifecycle.max_page_size,
    )


@pytest.fixture
def credentials(session_factory) -> CredentialStore:
    """Credential store with fast hashing."""
    return CredentialStore(session_factory, iterations=TEST_HASH_ITERATIONS)


# ---------------------------------------------------------------------------
# API client fixture (in-process testing via ASGI transport)
# ---------------------------------------------------------------------------
@pytest.fixture
async def test_app(test_settings: Settings):
    """Application with its lifespan running.

    ASGITransport does not send lifespan events, so startup and shutdown
    are driven explicitly here.
    """
    app = create_app(test_settings)
    async with app.router.lifespan_context(app):
        yield app


@pytest.fixture
async def api_client(test_app) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for testing the API.

    Uses httpx with ASGI transport for in-process testing.
    """
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

"""Pytest configuration and fixtures."""

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from api.refresh import (
    get_connection_sync_service,
    get_job_runner,
    get_price_refresh_service,
    get_snapshot_service,
)
from database import Base, get_db
from main import app
from services.connection_sync_service import ConnectionSyncService
from services.market_data_service import MarketDataService
from services.net_worth_snapshot_service import NetWorthSnapshotService
from services.price_refresh_service import PriceRefreshService
# Pytest fixtures - imported to make them available to tests
from tests.fixtures import (  # noqa: F401
    brokerage_account,
    fund_price_snapshot,
    test_account_user,
    user,
)
from tests.fixtures.mocks import MockConnectionClient, MockQuoteProvider


@pytest.fixture(name="db")
def db_fixture():
    """Create an in-memory SQLite database for testing."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(name="session_factory")
def session_factory_fixture(db):
    """A session factory that always hands back the test session.

    ``run_job`` closes each session it opens; closing the shared test
    session only expunges it, so the data stays visible to the test.
    """
    return lambda: db


@pytest.fixture(name="mock_quote_provider")
def mock_quote_provider_fixture():
    """Quote provider with prices for the symbols used in fixtures."""
    return MockQuoteProvider(
        prices={
            "AAPL": Decimal("150.00"),
            "VTI": Decimal("250.00"),
            "MSFT": Decimal("400.00"),
        }
    )


@pytest.fixture(name="mock_connection_client")
def mock_connection_client_fixture():
    return MockConnectionClient()


@pytest.fixture(name="triggered_jobs")
def triggered_jobs_fixture():
    """Collects job ids handed to the background job runner."""
    return []


@pytest.fixture(name="client")
def client_fixture(db, mock_quote_provider, mock_connection_client, triggered_jobs):
    """Create a test client with the test database and mock collaborators."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    def override_get_price_refresh_service():
        return PriceRefreshService(MarketDataService(provider=mock_quote_provider))

    def override_get_connection_sync_service():
        return ConnectionSyncService(client=mock_connection_client)

    def override_get_job_runner():
        return triggered_jobs.append

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_price_refresh_service] = override_get_price_refresh_service
    app.dependency_overrides[get_snapshot_service] = NetWorthSnapshotService
    app.dependency_overrides[get_connection_sync_service] = override_get_connection_sync_service
    app.dependency_overrides[get_job_runner] = override_get_job_runner
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()

"""Shared pytest fixtures for finance-sync tests."""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path

import pytest

from finance_sync.clients import ConnectivityMonitor, MockRemoteService
from finance_sync.config import ApiConfig, Config, SyncConfig, load_config
from finance_sync.db.database import Database
from finance_sync.models import Category, CreditCard, FixedBill, FixedBillCategory, Transaction
from finance_sync.services import EntitySyncer, SyncContext, SyncOrchestrator


class SteppingClock:
    """Deterministic clock advancing one second per call."""

    def __init__(self, start: datetime = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now


@pytest.fixture
def temp_db_path(tmp_path):
    """Create a temporary database path."""
    return tmp_path / "test_finance.db"


@pytest.fixture
def database(temp_db_path):
    """Create a test database instance."""
    db = Database(temp_db_path)
    yield db
    db.close()


@pytest.fixture(scope="session")
def test_config():
    """Load test configuration from tests/test_config.toml."""
    config_path = Path(__file__).parent / "test_config.toml"
    return load_config(config_path)


@pytest.fixture
def sample_config(tmp_path):
    """Create a sample configuration."""
    return Config(
        api=ApiConfig(base_url="https://api.example.test/v1", token="test-token", timeout=5.0),
        sync=SyncConfig(debounce_seconds=0.5, interval_seconds=300.0),
        data_dir=tmp_path,
        user_id="user-123",
    )


@pytest.fixture
def mock_server():
    """In-memory remote with a deterministic clock."""
    return MockRemoteService(clock=SteppingClock())


@pytest.fixture
def remotes(mock_server):
    return mock_server.clients()


@pytest.fixture
def connectivity():
    return ConnectivityMonitor(connected=True)


@pytest.fixture
def syncer(database, remotes):
    return EntitySyncer(database, remotes)


@pytest.fixture
def sync_context(database, remotes, connectivity):
    return SyncContext(db=database, remotes=remotes, connectivity=connectivity)


@pytest.fixture
def orchestrator(sync_context):
    return SyncOrchestrator(sync_context)


@pytest.fixture
def sample_category():
    """Create a sample category."""
    return Category(name="Alimentação", color_hex="#FF6B6B", icon_name="fork.knife")


@pytest.fixture
def sample_card():
    """Create a sample credit card."""
    return CreditCard(
        card_name="Nubank Roxinho",
        holder_name="Ana Souza",
        last_four_digits="4321",
        brand="Mastercard",
        bank="Nubank",
        payment_day=15,
        closing_day=8,
        limit_amount=Decimal("5000.00"),
    )


@pytest.fixture
def sample_bill():
    """Create a sample fixed bill."""
    return FixedBill(
        name="Aluguel",
        amount=Decimal("1800.00"),
        due_day=5,
        category=FixedBillCategory.HOUSING,
    )


@pytest.fixture
def sample_transaction():
    """Create a sample transaction."""
    return Transaction(
        description="Mercado Extra",
        amount=Decimal("152.35"),
        date=date(2025, 2, 14),
        notes="Compras da semana",
    )

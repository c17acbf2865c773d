"""Shared pytest fixtures for tramita tests."""

import os
import tempfile
from datetime import datetime, timedelta, UTC
from decimal import Decimal

import pytest

from tramita.database.factories import create_sqlite_database
from tramita.domain.case import CaseService
from tramita.domain.configuration import ConfigurationService
from tramita.domain.dashboard import DashboardService
from tramita.domain.entities import Actor, CaseDraft, Role
from tramita.domain.history import HistoryService

TENANT = "T-01"
START = datetime(2024, 3, 4, 12, 0, tzinfo=UTC)


class FakeClock:
    """Controllable replacement for ``datetime.now(UTC)``."""

    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    # Create a temporary file for the database
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    # Create database
    db = create_sqlite_database(database_path=db_path)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    # Cleanup
    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def admin():
    return Actor(id="admin", name="Admin", tenant_id=TENANT, role=Role.ADMIN)


@pytest.fixture
def operator():
    return Actor(id="op", name="Operator", tenant_id=TENANT, role=Role.OPERATOR)


@pytest.fixture
def viewer():
    return Actor(id="viewer", name="Viewer", tenant_id=TENANT, role=Role.VIEWER)


@pytest.fixture
def config_service(temp_db, admin, clock):
    """Create a ConfigurationService acting as administrator."""
    return ConfigurationService(temp_db, admin, clock=clock)


@pytest.fixture
def default_workflow(config_service):
    """Load the default units and statuses."""
    config_service.load_defaults()
    return config_service.workflow()


@pytest.fixture
def case_service(temp_db, admin, clock, default_workflow):
    """Create a CaseService acting as administrator on the default workflow."""
    return CaseService(temp_db, admin, clock=clock)


@pytest.fixture
def operator_case_service(temp_db, operator, clock, default_workflow):
    return CaseService(temp_db, operator, clock=clock)


@pytest.fixture
def history_service(temp_db, admin, clock, default_workflow):
    """Create a HistoryService acting as administrator."""
    return HistoryService(temp_db, admin, clock=clock)


@pytest.fixture
def dashboard_service(temp_db, admin, clock, default_workflow):
    return DashboardService(temp_db, admin, clock=clock)


@pytest.fixture
def sample_draft():
    """Registration data for a typical case."""
    return CaseDraft(
        sei_number="5000.0001/2024",
        value=Decimal("150000.00"),
        municipality="Anápolis",
        object="Paving of urban roads",
        author_name="Dep. Silva",
        year=2024,
    )


@pytest.fixture
def sample_case(case_service, sample_draft):
    """Create a sample case without movements."""
    return case_service.create_case(sample_draft)


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()

"""
Pytest fixtures for the budget engine test suite.

Provides:
- Database sessions (fresh tables per test)
- Tenant, actor and catalog factories
- Structured log capture

Environment Variables:
- DATABASE_URL: database connection URL.  Defaults to an in-memory SQLite
  database; set it to a PostgreSQL URL to run the suite against the
  production backend (row locks and READ COMMITTED included).
"""

import json
import logging
import os
from decimal import Decimal
from io import StringIO
from typing import Generator
from uuid import UUID, uuid4

import pytest
from sqlalchemy.orm import Session

from budget_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from budget_kernel.domain.clock import DeterministicClock
from budget_kernel.domain.roles import Actor, Role
from budget_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from budget_kernel.models.company import Company
from budget_kernel.services.auditor_service import AuditorService
from budget_modules.budget_change import BudgetChangeService
from budget_modules.catalog import ProjectCatalogService
from budget_modules.cost_allocation import (
    CostAllocationInput,
    CostAllocationService,
    MaterialAllocationInput,
)

DEFAULT_DATABASE_URL = "sqlite:///:memory:"

# Actor id used to seed tenants
SYSTEM_ACTOR_ID = uuid4()


def get_database_url() -> str:
    """Get database URL from environment, or use in-memory SQLite."""
    return os.environ.get("DATABASE_URL", DEFAULT_DATABASE_URL)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture budget_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, allocations):
            allocations.approve(...)
            logs = captured_logs()
            assert any(r["message"] == "cost_allocation_approved" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("budget_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database
# =============================================================================


@pytest.fixture(scope="session")
def db_engine():
    """Single engine for the entire test session."""
    eng = init_engine_from_url(get_database_url(), echo=False)
    yield eng
    reset_engine()


@pytest.fixture
def session(db_engine) -> Generator[Session, None, None]:
    """A session over freshly created tables.

    Facades commit for real; the tables are dropped at teardown.
    """
    drop_tables()
    create_tables()
    sess = get_session()
    try:
        yield sess
    finally:
        sess.rollback()
        sess.close()
        drop_tables()


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    return DeterministicClock()


@pytest.fixture
def auditor_service(session, deterministic_clock) -> AuditorService:
    return AuditorService(session, deterministic_clock)


# =============================================================================
# Tenants and actors
# =============================================================================


@pytest.fixture
def make_tenant(session):
    """Factory fixture: create a Company row and return its id."""

    def _make(name: str = "Acme Construction") -> UUID:
        company = Company(
            name=name,
            email=f"{name.lower().replace(' ', '.')}@example.com",
            industry="construction",
            status="active",
            created_by_id=SYSTEM_ACTOR_ID,
        )
        session.add(company)
        session.commit()
        return company.id

    return _make


@pytest.fixture
def tenant_id(make_tenant) -> UUID:
    return make_tenant()


@pytest.fixture
def other_tenant_id(make_tenant) -> UUID:
    return make_tenant("Globex Builders")


@pytest.fixture
def make_actor():
    def _make(tenant: UUID, role: Role = Role.ADMIN) -> Actor:
        return Actor(user_id=uuid4(), tenant_id=tenant, role=role)

    return _make


@pytest.fixture
def admin(make_actor, tenant_id) -> Actor:
    return make_actor(tenant_id, Role.ADMIN)


@pytest.fixture
def team_leader(make_actor, tenant_id) -> Actor:
    return make_actor(tenant_id, Role.TEAM_LEADER)


@pytest.fixture
def user(make_actor, tenant_id) -> Actor:
    return make_actor(tenant_id, Role.USER)


@pytest.fixture
def viewer(make_actor, tenant_id) -> Actor:
    return make_actor(tenant_id, Role.VIEWER)


@pytest.fixture
def other_admin(make_actor, other_tenant_id) -> Actor:
    return make_actor(other_tenant_id, Role.ADMIN)


# =============================================================================
# Facades and catalog
# =============================================================================


@pytest.fixture
def catalog(session, deterministic_clock) -> ProjectCatalogService:
    return ProjectCatalogService(session, deterministic_clock)


@pytest.fixture
def allocations(session, deterministic_clock) -> CostAllocationService:
    return CostAllocationService(session, deterministic_clock)


@pytest.fixture
def budget_changes(session, deterministic_clock) -> BudgetChangeService:
    return BudgetChangeService(session, deterministic_clock)


@pytest.fixture
def project(catalog, admin):
    """A project with a budget of 1000."""
    return catalog.create_project(admin, "Riverside Office Block", Decimal("1000"))


@pytest.fixture
def line_item(catalog, admin):
    return catalog.create_line_item(admin, "foundation", "Concrete pour")


@pytest.fixture
def material(catalog, admin):
    """Cement at 10.00 per bag."""
    return catalog.create_material(admin, "Cement", "bag", Decimal("10.00"), supplier="BuildCo")


@pytest.fixture
def make_allocation(allocations, project, line_item):
    """Factory fixture: record a cost allocation and return the create result."""

    def _make(
        actor: Actor,
        labour_cost: Decimal | int | str = Decimal("0"),
        materials: tuple[MaterialAllocationInput, ...] = (),
        project_id: UUID | None = None,
        line_item_id: UUID | None = None,
    ):
        return allocations.create_cost_allocation(
            actor,
            CostAllocationInput(
                project_id=project_id or project.id,
                line_item_id=line_item_id or line_item.id,
                labour_cost=labour_cost,
                material_allocations=materials,
            ),
        )

    return _make


@pytest.fixture
def pending_allocation(allocations, make_allocation, user):
    """Factory fixture: record and submit an allocation; return its id."""

    def _make(labour_cost: Decimal | int | str) -> UUID:
        created = make_allocation(user, labour_cost=labour_cost)
        allocations.submit(user, created.cost_allocation.id)
        return created.cost_allocation.id

    return _make

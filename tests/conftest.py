"""Pytest fixtures for testing"""

import pytest
from datetime import date, timedelta
from decimal import Decimal
from typing import Generator
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker, Session
from budget_tracker.api.dependencies import get_clock
from budget_tracker.api.main import create_app
from budget_tracker.config import Settings
from budget_tracker.infrastructure.database.models import Base
from budget_tracker.infrastructure.database.session import build_engine, get_db
from budget_tracker.services.installments import InstallmentService
from budget_tracker.services.projects import ProjectService
from budget_tracker.services.summaries import SummaryService
from budget_tracker.services.team import TeamService
from budget_tracker.services.transactions import TransactionService


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = build_engine(TEST_DATABASE_URL)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

TODAY = date(2025, 3, 1)
OWNER = "owner-1"
OTHER_OWNER = "owner-2"


def fixed_clock() -> date:
    return TODAY


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def config() -> Settings:
    return Settings(_env_file=None)


@pytest.fixture
def services(db: Session, config: Settings):
    """Build a service of the given class bound to the test session and clock"""

    def build(service_cls, owner_id: str = OWNER, clock=fixed_clock, **overrides):
        service_config = config.model_copy(update=overrides) if overrides else config
        return service_cls(db, owner_id, config=service_config, clock=clock)

    return build


@pytest.fixture
def project_service(services) -> ProjectService:
    return services(ProjectService)


@pytest.fixture
def installment_service(services) -> InstallmentService:
    return services(InstallmentService)


@pytest.fixture
def transaction_service(services) -> TransactionService:
    return services(TransactionService)


@pytest.fixture
def summary_service(services) -> SummaryService:
    return services(SummaryService)


@pytest.fixture
def team_service(services) -> TeamService:
    return services(TeamService)


@pytest.fixture
def installment_project(project_service: ProjectService):
    """2500.00 split into 1500.00 due in 10 days and 1000.00 due in 40 days"""
    return project_service.create_project(
        title="Website redesign",
        total_budget=Decimal("2500.00"),
        payment_type="installment",
        installments=[
            {"amount": Decimal("1500.00"), "due_date": TODAY + timedelta(days=10)},
            {"amount": Decimal("1000.00"), "due_date": TODAY + timedelta(days=40)},
        ],
    )


@pytest.fixture
def client(db: Session) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: fixed_clock
    return TestClient(app, headers={"X-User-ID": OWNER})

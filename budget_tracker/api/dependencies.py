"""Dependency injection for FastAPI endpoints"""

from datetime import date

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from budget_tracker.infrastructure.database.session import get_db
from budget_tracker.services.installments import InstallmentService
from budget_tracker.services.projects import ProjectService
from budget_tracker.services.summaries import SummaryService
from budget_tracker.services.team import TeamService
from budget_tracker.services.transactions import TransactionService
from budget_tracker.utils.date_utils import Clock


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_owner_id(x_user_id: str = Header(..., alias="X-User-ID", min_length=1)) -> str:
    """Caller identity, established by the authenticating proxy in front of the service"""
    return x_user_id


def get_clock() -> Clock:
    return date.today


def get_project_service(
    db: Session = Depends(get_db), owner_id: str = Depends(get_owner_id), clock: Clock = Depends(get_clock)
) -> ProjectService:
    return ProjectService(db, owner_id, clock=clock)


def get_installment_service(
    db: Session = Depends(get_db), owner_id: str = Depends(get_owner_id), clock: Clock = Depends(get_clock)
) -> InstallmentService:
    return InstallmentService(db, owner_id, clock=clock)


def get_transaction_service(
    db: Session = Depends(get_db), owner_id: str = Depends(get_owner_id), clock: Clock = Depends(get_clock)
) -> TransactionService:
    return TransactionService(db, owner_id, clock=clock)


def get_summary_service(
    db: Session = Depends(get_db), owner_id: str = Depends(get_owner_id), clock: Clock = Depends(get_clock)
) -> SummaryService:
    return SummaryService(db, owner_id, clock=clock)


def get_team_service(
    db: Session = Depends(get_db), owner_id: str = Depends(get_owner_id), clock: Clock = Depends(get_clock)
) -> TeamService:
    return TeamService(db, owner_id, clock=clock)

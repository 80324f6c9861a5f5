"""Data access layer for projects, installments, transactions and team members"""

import uuid
from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Query, Session

from budget_tracker.domain.aggregation import LedgerTotals
from budget_tracker.infrastructure.database.models import (
    PaymentInstallment,
    PaymentTransaction,
    Project,
    ProjectTeamMember,
    TeamMember,
)

SORTABLE_PROJECT_COLUMNS = {
    "created_at": Project.created_at,
    "title": Project.title,
    "total_budget": Project.total_budget_cents,
}


@dataclass
class ProjectFilters:
    payment_type: Optional[str] = None
    is_completed: Optional[bool] = None
    min_budget_cents: Optional[int] = None
    max_budget_cents: Optional[int] = None
    search: Optional[str] = None
    sort_by: str = "created_at"
    descending: bool = True


@dataclass
class TransactionFilters:
    project_id: Optional[uuid.UUID] = None
    installment_id: Optional[uuid.UUID] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    min_amount_cents: Optional[int] = None
    max_amount_cents: Optional[int] = None
    search: Optional[str] = None


def _received_cents():
    """Correlated SUM of a project's transactions, for filtering on completion"""
    return (
        select(func.coalesce(func.sum(PaymentTransaction.amount_cents), 0))
        .where(PaymentTransaction.project_id == Project.id)
        .correlate(Project)
        .scalar_subquery()
    )


def _paginate(query: Query, page: int, page_size: int) -> Tuple[list, int]:
    total = query.order_by(None).count()
    rows = query.offset((page - 1) * page_size).limit(page_size).all()
    return rows, total


class ProjectRepository:
    """Repository for projects, scoped to one owner"""

    def __init__(self, db: Session, owner_id: str):
        self.db = db
        self.owner_id = owner_id

    def _owned(self) -> Query:
        return self.db.query(Project).filter(Project.owner_id == self.owner_id)

    def add(self, title: str, total_budget_cents: int, payment_type: str) -> Project:
        project = Project(
            owner_id=self.owner_id,
            title=title,
            total_budget_cents=total_budget_cents,
            payment_type=payment_type,
        )
        self.db.add(project)
        self.db.flush()  # Get ID without committing
        return project

    def get(self, project_id: uuid.UUID) -> Optional[Project]:
        return self._owned().filter(Project.id == project_id).first()

    def exists(self, project_id: uuid.UUID) -> bool:
        return self.db.query(Project.id).filter(Project.id == project_id).first() is not None

    def list(self, filters: ProjectFilters, page: int, page_size: int) -> Tuple[List[Project], int]:
        query = self._owned()
        if filters.payment_type:
            query = query.filter(Project.payment_type == filters.payment_type)
        if filters.min_budget_cents is not None:
            query = query.filter(Project.total_budget_cents >= filters.min_budget_cents)
        if filters.max_budget_cents is not None:
            query = query.filter(Project.total_budget_cents <= filters.max_budget_cents)
        if filters.search:
            query = query.filter(Project.title.icontains(filters.search, autoescape=True))
        if filters.is_completed is not None:
            completed = _received_cents() >= Project.total_budget_cents
            query = query.filter(completed if filters.is_completed else ~completed)

        column = SORTABLE_PROJECT_COLUMNS.get(filters.sort_by, Project.created_at)
        query = query.order_by(column.desc() if filters.descending else column.asc(), Project.id)
        return _paginate(query, page, page_size)

    def budgets(self) -> Dict[uuid.UUID, int]:
        """Budget of every owned project, keyed by id"""
        rows = self.db.query(Project.id, Project.total_budget_cents).filter(Project.owner_id == self.owner_id)
        return {project_id: budget for project_id, budget in rows}

    def delete(self, project: Project) -> None:
        self.db.delete(project)
        self.db.flush()

    def delete_by_id(self, project_id: uuid.UUID) -> None:
        self.db.query(Project).filter(Project.id == project_id).delete(synchronize_session=False)


class InstallmentRepository:
    """Repository for installments; ownership is checked through the parent project"""

    def __init__(self, db: Session, owner_id: str):
        self.db = db
        self.owner_id = owner_id

    def add(self, project_id: uuid.UUID, installment_number: int, amount_cents: int, due_date: date) -> PaymentInstallment:
        installment = PaymentInstallment(
            project_id=project_id,
            installment_number=installment_number,
            amount_cents=amount_cents,
            due_date=due_date,
            is_paid=False,
        )
        self.db.add(installment)
        self.db.flush()
        return installment

    def add_many(self, project_id: uuid.UUID, plan: Sequence[Tuple[int, date]]) -> List[PaymentInstallment]:
        """Insert a whole plan of (amount_cents, due_date), numbered from 1 in plan order"""
        installments = [
            PaymentInstallment(
                project_id=project_id,
                installment_number=number,
                amount_cents=amount_cents,
                due_date=due_date,
                is_paid=False,
            )
            for number, (amount_cents, due_date) in enumerate(plan, start=1)
        ]
        self.db.add_all(installments)
        self.db.flush()
        return installments

    def get(self, installment_id: uuid.UUID) -> Optional[PaymentInstallment]:
        return (
            self.db.query(PaymentInstallment)
            .join(Project, PaymentInstallment.project_id == Project.id)
            .filter(PaymentInstallment.id == installment_id, Project.owner_id == self.owner_id)
            .first()
        )

    def lock(self, installment_id: uuid.UUID) -> Optional[PaymentInstallment]:
        """SELECT ... FOR UPDATE, refreshing any stale copy held by the session"""
        return (
            self.db.query(PaymentInstallment)
            .filter(PaymentInstallment.id == installment_id)
            .with_for_update()
            .populate_existing()
            .one_or_none()
        )

    def list_for_project(self, project_id: uuid.UUID) -> List[PaymentInstallment]:
        return (
            self.db.query(PaymentInstallment)
            .filter(PaymentInstallment.project_id == project_id)
            .order_by(PaymentInstallment.installment_number)
            .all()
        )

    def schedule(self, project_id: uuid.UUID) -> List[Tuple[uuid.UUID, int, date]]:
        """(id, installment_number, due_date) for every installment of a project"""
        rows = (
            self.db.query(PaymentInstallment.id, PaymentInstallment.installment_number, PaymentInstallment.due_date)
            .filter(PaymentInstallment.project_id == project_id)
            .order_by(PaymentInstallment.installment_number)
        )
        return [tuple(row) for row in rows]

    def sum_amounts(self, project_id: uuid.UUID, exclude_id: Optional[uuid.UUID] = None) -> int:
        query = self.db.query(func.coalesce(func.sum(PaymentInstallment.amount_cents), 0)).filter(
            PaymentInstallment.project_id == project_id
        )
        if exclude_id is not None:
            query = query.filter(PaymentInstallment.id != exclude_id)
        return int(query.scalar())

    def count(self, project_id: uuid.UUID) -> int:
        return self.db.query(PaymentInstallment).filter(PaymentInstallment.project_id == project_id).count()

    def has_transactions(self, installment_id: uuid.UUID) -> bool:
        return (
            self.db.query(PaymentTransaction.id)
            .filter(PaymentTransaction.installment_id == installment_id)
            .first()
            is not None
        )

    def due_between(self, earliest: Optional[date], latest: date, strictly_before: bool = False) -> List[Tuple[PaymentInstallment, str]]:
        """Owned installments with their project titles, ordered by due date"""
        query = (
            self.db.query(PaymentInstallment, Project.title)
            .join(Project, PaymentInstallment.project_id == Project.id)
            .filter(Project.owner_id == self.owner_id)
        )
        if earliest is not None:
            query = query.filter(PaymentInstallment.due_date >= earliest)
        if strictly_before:
            query = query.filter(PaymentInstallment.due_date < latest)
        else:
            query = query.filter(PaymentInstallment.due_date <= latest)
        return [
            (installment, title)
            for installment, title in query.order_by(PaymentInstallment.due_date, PaymentInstallment.installment_number)
        ]

    def delete(self, installment: PaymentInstallment) -> None:
        self.db.delete(installment)
        self.db.flush()


class TransactionRepository:
    """Repository for payment transactions; ownership is checked through the parent project"""

    def __init__(self, db: Session, owner_id: str):
        self.db = db
        self.owner_id = owner_id

    def _owned(self) -> Query:
        return (
            self.db.query(PaymentTransaction)
            .join(Project, PaymentTransaction.project_id == Project.id)
            .filter(Project.owner_id == self.owner_id)
        )

    def add(
        self,
        project_id: uuid.UUID,
        amount_cents: int,
        transaction_date: date,
        notes: str,
        installment_id: Optional[uuid.UUID] = None,
    ) -> PaymentTransaction:
        transaction = PaymentTransaction(
            project_id=project_id,
            installment_id=installment_id,
            amount_cents=amount_cents,
            transaction_date=transaction_date,
            notes=notes,
        )
        self.db.add(transaction)
        self.db.flush()
        return transaction

    def get(self, transaction_id: uuid.UUID) -> Optional[PaymentTransaction]:
        return self._owned().filter(PaymentTransaction.id == transaction_id).first()

    def list(self, filters: TransactionFilters, page: int, page_size: int) -> Tuple[List[PaymentTransaction], int]:
        query = self._owned()
        if filters.project_id is not None:
            query = query.filter(PaymentTransaction.project_id == filters.project_id)
        if filters.installment_id is not None:
            query = query.filter(PaymentTransaction.installment_id == filters.installment_id)
        if filters.date_from is not None:
            query = query.filter(PaymentTransaction.transaction_date >= filters.date_from)
        if filters.date_to is not None:
            query = query.filter(PaymentTransaction.transaction_date <= filters.date_to)
        if filters.min_amount_cents is not None:
            query = query.filter(PaymentTransaction.amount_cents >= filters.min_amount_cents)
        if filters.max_amount_cents is not None:
            query = query.filter(PaymentTransaction.amount_cents <= filters.max_amount_cents)
        if filters.search:
            query = query.filter(
                or_(
                    PaymentTransaction.notes.icontains(filters.search, autoescape=True),
                    Project.title.icontains(filters.search, autoescape=True),
                )
            )

        query = query.order_by(PaymentTransaction.transaction_date.desc(), PaymentTransaction.created_at.desc())
        return _paginate(query, page, page_size)

    def chronological(self, project_id: uuid.UUID) -> List[PaymentTransaction]:
        return (
            self.db.query(PaymentTransaction)
            .filter(PaymentTransaction.project_id == project_id)
            .order_by(PaymentTransaction.transaction_date, PaymentTransaction.created_at)
            .all()
        )

    def exist_for_project(self, project_id: uuid.UUID) -> bool:
        return (
            self.db.query(PaymentTransaction.id).filter(PaymentTransaction.project_id == project_id).first()
            is not None
        )

    def reference_installments(self, project_id: uuid.UUID) -> bool:
        return (
            self.db.query(PaymentTransaction.id)
            .filter(PaymentTransaction.project_id == project_id, PaymentTransaction.installment_id.isnot(None))
            .first()
            is not None
        )

    def delete(self, transaction: PaymentTransaction) -> None:
        self.db.delete(transaction)
        self.db.flush()


class LedgerRepository:
    """
    Aggregate queries over the transaction ledger.

    Each query reads payment_transaction alone, filtered by project or
    installment ids. None of them joins installments, so a payment is counted
    exactly once however many installments its project has.
    """

    def __init__(self, db: Session):
        self.db = db

    def project_totals(self, project_id: uuid.UUID) -> LedgerTotals:
        received, count, last_date = (
            self.db.query(
                func.coalesce(func.sum(PaymentTransaction.amount_cents), 0),
                func.count(PaymentTransaction.id),
                func.max(PaymentTransaction.transaction_date),
            )
            .filter(PaymentTransaction.project_id == project_id)
            .one()
        )
        return LedgerTotals(received_cents=int(received), transactions_count=count, last_transaction_date=last_date)

    def paid_by_installment(self, installment_ids: Iterable[uuid.UUID]) -> Dict[uuid.UUID, int]:
        ids = list(installment_ids)
        if not ids:
            return {}
        rows = (
            self.db.query(PaymentTransaction.installment_id, func.sum(PaymentTransaction.amount_cents))
            .filter(PaymentTransaction.installment_id.in_(ids))
            .group_by(PaymentTransaction.installment_id)
        )
        return {installment_id: int(paid) for installment_id, paid in rows}

    def installment_paid_cents(self, installment_id: uuid.UUID) -> int:
        paid = (
            self.db.query(func.coalesce(func.sum(PaymentTransaction.amount_cents), 0))
            .filter(PaymentTransaction.installment_id == installment_id)
            .scalar()
        )
        return int(paid)

    def received_by_project(self, owner_id: str) -> Dict[uuid.UUID, int]:
        owned = select(Project.id).where(Project.owner_id == owner_id)
        rows = (
            self.db.query(PaymentTransaction.project_id, func.sum(PaymentTransaction.amount_cents))
            .filter(PaymentTransaction.project_id.in_(owned))
            .group_by(PaymentTransaction.project_id)
        )
        return {project_id: int(received) for project_id, received in rows}

    def transactions_between(self, owner_id: str, start_date: date, end_date: date) -> list:
        """(transaction_date, amount_cents, payment_type) of owned payments dated within the range"""
        return (
            self.db.query(PaymentTransaction.transaction_date, PaymentTransaction.amount_cents, Project.payment_type)
            .join(Project, PaymentTransaction.project_id == Project.id)
            .filter(
                Project.owner_id == owner_id,
                PaymentTransaction.transaction_date >= start_date,
                PaymentTransaction.transaction_date <= end_date,
            )
            .order_by(PaymentTransaction.transaction_date)
            .all()
        )


class TeamRepository:
    """Repository for team members and their project assignments"""

    def __init__(self, db: Session, owner_id: str):
        self.db = db
        self.owner_id = owner_id

    def add(self, name: str, email: str, role: Optional[str], hourly_rate_cents: Optional[int]) -> TeamMember:
        member = TeamMember(
            owner_id=self.owner_id,
            name=name,
            email=email,
            role=role,
            hourly_rate_cents=hourly_rate_cents,
            is_active=True,
        )
        self.db.add(member)
        self.db.flush()
        return member

    def get(self, member_id: uuid.UUID) -> Optional[TeamMember]:
        return (
            self.db.query(TeamMember)
            .filter(TeamMember.owner_id == self.owner_id, TeamMember.id == member_id)
            .first()
        )

    def email_taken(self, email: str, exclude_id: Optional[uuid.UUID] = None) -> bool:
        query = self.db.query(TeamMember.id).filter(
            TeamMember.owner_id == self.owner_id, func.lower(TeamMember.email) == email.lower()
        )
        if exclude_id is not None:
            query = query.filter(TeamMember.id != exclude_id)
        return query.first() is not None

    def list(self, active_only: bool = True) -> List[TeamMember]:
        query = self.db.query(TeamMember).filter(TeamMember.owner_id == self.owner_id)
        if active_only:
            query = query.filter(TeamMember.is_active.is_(True))
        return query.order_by(TeamMember.name).all()

    def get_many(self, member_ids: Sequence[uuid.UUID]) -> List[TeamMember]:
        if not member_ids:
            return []
        return (
            self.db.query(TeamMember)
            .filter(TeamMember.owner_id == self.owner_id, TeamMember.id.in_(list(member_ids)))
            .all()
        )

    def replace_assignments(
        self, project_id: uuid.UUID, member_ids: Sequence[uuid.UUID], role_in_project: Optional[str]
    ) -> List[ProjectTeamMember]:
        self.db.query(ProjectTeamMember).filter(ProjectTeamMember.project_id == project_id).delete(
            synchronize_session=False
        )
        assignments = [
            ProjectTeamMember(project_id=project_id, team_member_id=member_id, role_in_project=role_in_project)
            for member_id in member_ids
        ]
        self.db.add_all(assignments)
        self.db.flush()
        return assignments

    def members_of(self, project_id: uuid.UUID) -> List[TeamMember]:
        return (
            self.db.query(TeamMember)
            .join(ProjectTeamMember, ProjectTeamMember.team_member_id == TeamMember.id)
            .filter(ProjectTeamMember.project_id == project_id)
            .order_by(TeamMember.name)
            .all()
        )

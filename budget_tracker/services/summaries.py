"""Read side: project and installment summaries, dashboard, payment timeline and range stats"""

import uuid
from datetime import date, timedelta
from typing import List, Optional

from budget_tracker.domain.aggregation import (
    build_timeline,
    dashboard_stats,
    installment_balance,
    summarize_installment,
    summarize_installments,
    summarize_project,
    transaction_stats,
)
from budget_tracker.domain.exceptions import FieldError, NotFoundFailure, ValidationFailure
from budget_tracker.domain.models import (
    DashboardStats,
    InstallmentBalance,
    InstallmentSummary,
    PaymentType,
    ProjectSummary,
    ScheduledInstallment,
    TimelinePoint,
    TransactionStats,
)
from budget_tracker.infrastructure.database.models import Project
from budget_tracker.infrastructure.database.repositories import (
    InstallmentRepository,
    LedgerRepository,
    ProjectRepository,
    TransactionRepository,
)
from budget_tracker.services.base import Service


class SummaryService(Service):
    """
    Derived figures, computed fresh from the ledger on every call.

    Reads never touch the cached installment paid flag; repeated calls
    without intervening writes return identical results.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.projects = ProjectRepository(self.db, self.owner_id)
        self.installments = InstallmentRepository(self.db, self.owner_id)
        self.transactions = TransactionRepository(self.db, self.owner_id)
        self.ledger = LedgerRepository(self.db)

    def _project(self, project_id: uuid.UUID) -> Project:
        project = self.projects.get(project_id)
        if project is None:
            raise NotFoundFailure("Project", project_id)
        return project

    def _installment_summaries(self, project: Project) -> List[InstallmentSummary]:
        rows = self.installments.list_for_project(project.id)
        paid = self.ledger.paid_by_installment(row.id for row in rows)
        return summarize_installments(rows, paid, self.clock())

    def get_project_summary(self, project_id: uuid.UUID) -> ProjectSummary:
        project = self._project(project_id)
        return summarize_project(
            project_id=project.id,
            title=project.title,
            payment_type=PaymentType(project.payment_type),
            budget_cents=project.total_budget_cents,
            totals=self.ledger.project_totals(project.id),
            installments=self._installment_summaries(project),
            tolerance_cents=self.tolerance_cents,
        )

    def get_installment_summary(self, project_id: uuid.UUID) -> List[InstallmentSummary]:
        return self._installment_summaries(self._project(project_id))

    def check_installment_balance(self, project_id: uuid.UUID) -> InstallmentBalance:
        project = self._project(project_id)
        amounts = [row.amount_cents for row in self.installments.list_for_project(project.id)]
        return installment_balance(project.total_budget_cents, amounts, self.tolerance_cents)

    def get_payment_timeline(self, project_id: uuid.UUID) -> List[TimelinePoint]:
        project = self._project(project_id)
        return build_timeline(self.transactions.chronological(project.id))

    def _scheduled(self, rows, only_overdue: bool) -> List[ScheduledInstallment]:
        today = self.clock()
        paid = self.ledger.paid_by_installment(installment.id for installment, _ in rows)
        scheduled = []
        for installment, title in rows:
            summary = summarize_installment(
                installment_id=installment.id,
                installment_number=installment.installment_number,
                amount_cents=installment.amount_cents,
                due_date=installment.due_date,
                paid_cents=paid.get(installment.id, 0),
                today=today,
            )
            if summary.is_fully_paid or (only_overdue and not summary.is_overdue):
                continue
            scheduled.append(
                ScheduledInstallment(project_id=installment.project_id, project_title=title, installment=summary)
            )
        return scheduled

    def upcoming_installments(self, days: Optional[int] = None) -> List[ScheduledInstallment]:
        """Unsettled installments due between today and `days` from now"""
        today = self.clock()
        window = self.config.upcoming_window_days if days is None else days
        rows = self.installments.due_between(today, today + timedelta(days=window))
        return self._scheduled(rows, only_overdue=False)

    def overdue_installments(self) -> List[ScheduledInstallment]:
        rows = self.installments.due_between(None, self.clock(), strictly_before=True)
        return self._scheduled(rows, only_overdue=True)

    def get_dashboard_stats(self) -> DashboardStats:
        return dashboard_stats(
            budgets=self.projects.budgets(),
            received_by_project=self.ledger.received_by_project(self.owner_id),
            overdue_installments_count=len(self.overdue_installments()),
        )

    def get_transaction_stats(self, start_date: date, end_date: date) -> TransactionStats:
        """
        Payments dated within [start_date, end_date], both inclusive.

        Raises:
            ValidationFailure: end_date before start_date
        """
        if end_date < start_date:
            raise ValidationFailure(
                [FieldError("end_date", "invalid_date_range", "End date must not be before the start date")]
            )
        rows = self.ledger.transactions_between(self.owner_id, start_date, end_date)
        return transaction_stats(start_date, end_date, rows)

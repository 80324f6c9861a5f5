"""Project lifecycle: creation with its installment plan, updates and deletion"""

import logging
import uuid
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError

from budget_tracker.domain.exceptions import (
    BusinessRuleFailure,
    DomainException,
    NotFoundFailure,
    RollbackFailure,
    StoreFailure,
)
from budget_tracker.domain.models import Page, PaymentType
from budget_tracker.domain.rules import check_budget_change, check_installment_plan, sums_match
from budget_tracker.domain.validation import ProjectDraft, ProjectUpdateDraft, validate_payload
from budget_tracker.infrastructure.database.models import Project
from budget_tracker.infrastructure.database.repositories import (
    InstallmentRepository,
    ProjectFilters,
    ProjectRepository,
    TransactionRepository,
)
from budget_tracker.infrastructure.observability.logging import (
    log_compensating_rollback,
    log_partial_success,
    log_project_created,
)
from budget_tracker.infrastructure.observability.metrics import record_compensating_rollback, record_project_created
from budget_tracker.services.base import Service
from budget_tracker.services.results import ProjectCreation
from budget_tracker.services.team import TeamService
from budget_tracker.utils.money import from_cents, to_cents

logger = logging.getLogger(__name__)


def _plan(drafts) -> List[tuple]:
    return [(to_cents(draft.amount), draft.due_date) for draft in drafts or []]


class ProjectService(Service):
    """Mutations and lookups for the projects of one owner"""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.projects = ProjectRepository(self.db, self.owner_id)
        self.installments = InstallmentRepository(self.db, self.owner_id)
        self.transactions = TransactionRepository(self.db, self.owner_id)

    def get_project(self, project_id: uuid.UUID) -> Project:
        project = self.projects.get(project_id)
        if project is None:
            raise NotFoundFailure("Project", project_id)
        return project

    def list_projects(
        self, filters: Optional[ProjectFilters] = None, page: int = 1, page_size: Optional[int] = None
    ) -> Page[Project]:
        page, page_size = self.page_bounds(page, page_size)
        rows, total = self.projects.list(filters or ProjectFilters(), page, page_size)
        return Page(items=rows, page=page, page_size=page_size, total_count=total)

    def create_project(
        self,
        title: str,
        total_budget: Decimal,
        payment_type: str,
        installments: Optional[Sequence[Dict[str, Any]]] = None,
        team_member_ids: Optional[Sequence[uuid.UUID]] = None,
    ) -> ProjectCreation:
        """
        Create a project together with its installment plan.

        The project row and its installments commit together. If the
        installments cannot be stored the project is removed again; should
        that removal fail as well, RollbackFailure is raised. Team assignment
        runs afterwards and only ever degrades the result to a warning.

        Raises:
            ValidationFailure: malformed fields
            BusinessRuleFailure: installment plan does not fit the budget or payment type
            StoreFailure: nothing was saved
            RollbackFailure: a half-created project may remain
        """
        with self.unit_of_work("create_project"):
            draft = validate_payload(
                ProjectDraft,
                {
                    "title": title,
                    "total_budget": total_budget,
                    "payment_type": payment_type,
                    "installments": installments,
                },
                self.validation_context(),
            )
            budget_cents = to_cents(draft.total_budget)
            plan = _plan(draft.installments)
            check_installment_plan(draft.payment_type, budget_cents, plan, self.tolerance_cents)

            project = self.projects.add(draft.title, budget_cents, draft.payment_type.value)
            project_id = project.id
            try:
                created = self.installments.add_many(project_id, plan)
            except SQLAlchemyError as exc:
                self._remove_half_created(project_id, exc)
                raise StoreFailure("The project could not be created, nothing was saved") from exc

        record_project_created(draft.payment_type.value)
        log_project_created(self.owner_id, project_id, draft.payment_type.value, len(created))

        warnings = []
        if team_member_ids:
            warnings.extend(self._assign_team(project_id, team_member_ids))
        return ProjectCreation(project=project, installments=created, warnings=warnings)

    def _remove_half_created(self, project_id: uuid.UUID, cause: Exception) -> None:
        log_compensating_rollback(self.owner_id, project_id, str(cause))
        try:
            self.db.rollback()
            if self.projects.exists(project_id):
                self.projects.delete_by_id(project_id)
                self.db.commit()
        except SQLAlchemyError as exc:
            record_compensating_rollback(succeeded=False)
            logger.exception("Compensating rollback failed", extra={"project_id": str(project_id)})
            raise RollbackFailure(
                "The project could not be created and its partial data could not be removed"
            ) from exc
        record_compensating_rollback(succeeded=True)

    def _assign_team(self, project_id: uuid.UUID, team_member_ids: Sequence[uuid.UUID]) -> List[str]:
        team = TeamService(self.db, self.owner_id, config=self.config, clock=self.clock)
        try:
            team.assign_to_project(project_id, team_member_ids)
        except DomainException as exc:
            log_partial_success(self.owner_id, project_id, "team_assignment", exc.message)
            return [f"Project created, but the team could not be assigned: {exc.message}"]
        return []

    def update_project(
        self,
        project_id: uuid.UUID,
        title: Optional[str] = None,
        total_budget: Optional[Decimal] = None,
        payment_type: Optional[str] = None,
        installments: Optional[Sequence[Dict[str, Any]]] = None,
    ) -> Project:
        """
        Update a project; omitted (None) fields are left unchanged.

        A full installment set replaces the current plan, which is how the
        budget of an installment project changes; it is refused once a
        payment references an installment.

        Switching to installment payments requires a full installment set.
        Switching to a single payment drops the installments and is refused
        while any payment references one of them.
        """
        with self.unit_of_work("update_project"):
            project = self.get_project(project_id)
            changes = {
                key: value
                for key, value in {
                    "title": title,
                    "total_budget": total_budget,
                    "payment_type": payment_type,
                    "installments": installments,
                }.items()
                if value is not None
            }
            draft = validate_payload(ProjectUpdateDraft, changes, self.validation_context())

            current_type = PaymentType(project.payment_type)
            new_type = draft.payment_type or current_type
            budget_cents = (
                to_cents(draft.total_budget) if draft.total_budget is not None else project.total_budget_cents
            )
            budget_changed = budget_cents != project.total_budget_cents

            if budget_changed:
                check_budget_change(self.transactions.exist_for_project(project.id))

            if new_type != current_type:
                self._switch_payment_type(project, new_type, budget_cents, _plan(draft.installments))
            elif draft.installments is not None:
                self._replace_installments(project, new_type, budget_cents, _plan(draft.installments))
            elif new_type == PaymentType.INSTALLMENT and budget_changed:
                scheduled = self.installments.sum_amounts(project.id)
                if not sums_match(scheduled, budget_cents, self.tolerance_cents):
                    raise BusinessRuleFailure(
                        "INSTALLMENT_MISMATCH",
                        f"Installments sum to {from_cents(scheduled)} but the budget would be "
                        f"{from_cents(budget_cents)}; send the new installment plan with the budget",
                    )

            if draft.title is not None:
                project.title = draft.title
            project.total_budget_cents = budget_cents
            project.payment_type = new_type.value
            self.db.flush()
        return project

    def _replace_installments(self, project: Project, payment_type: PaymentType, budget_cents: int, plan: list) -> None:
        check_installment_plan(payment_type, budget_cents, plan, self.tolerance_cents)
        if self.transactions.reference_installments(project.id):
            raise BusinessRuleFailure(
                "INSTALLMENT_HAS_TRANSACTIONS", "Installments with recorded payments cannot be replaced"
            )
        project.installments.clear()
        self.db.flush()
        self.installments.add_many(project.id, plan)

    def _switch_payment_type(self, project: Project, new_type: PaymentType, budget_cents: int, plan: list) -> None:
        if new_type == PaymentType.INSTALLMENT:
            check_installment_plan(new_type, budget_cents, plan, self.tolerance_cents)
            self.installments.add_many(project.id, plan)
            return

        if self.transactions.reference_installments(project.id):
            raise BusinessRuleFailure(
                "INVALID_PAYMENT_TYPE",
                "Payments are recorded against installments; the project must stay an installment project",
            )
        check_installment_plan(new_type, budget_cents, plan, self.tolerance_cents)
        project.installments.clear()

    def delete_project(self, project_id: uuid.UUID) -> None:
        """Delete a project with its installments, transactions and team assignments"""
        with self.unit_of_work("delete_project"):
            project = self.get_project(project_id)
            self.projects.delete(project)
        logger.info("Project deleted", extra={"owner_id": self.owner_id, "project_id": str(project_id)})

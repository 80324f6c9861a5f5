"""Adding, editing and removing individual installments of a project"""

import uuid
from datetime import date
from decimal import Decimal
from typing import Optional

from budget_tracker.domain.exceptions import BusinessRuleFailure, NotFoundFailure
from budget_tracker.domain.models import PaymentType
from budget_tracker.domain.rules import (
    check_installment_deletable,
    check_installment_editable,
    check_installment_total,
    check_schedule_order,
    check_unique_number,
)
from budget_tracker.domain.validation import InstallmentCreateDraft, InstallmentUpdateDraft, validate_payload
from budget_tracker.infrastructure.database.models import PaymentInstallment, Project
from budget_tracker.infrastructure.database.repositories import InstallmentRepository, ProjectRepository
from budget_tracker.services.base import Service
from budget_tracker.services.reconciliation import Reconciler
from budget_tracker.utils.money import to_cents


class InstallmentService(Service):
    """
    Single-installment mutations.

    Every change re-checks the plan against the project budget: the sum may
    fall short while the plan is being edited, but never exceed the budget.
    Due dates must keep increasing with the installment number.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.projects = ProjectRepository(self.db, self.owner_id)
        self.installments = InstallmentRepository(self.db, self.owner_id)
        self.reconciler = Reconciler(self.db, self.owner_id)

    def _project(self, project_id: uuid.UUID) -> Project:
        project = self.projects.get(project_id)
        if project is None:
            raise NotFoundFailure("Project", project_id)
        return project

    def get_installment(self, installment_id: uuid.UUID) -> PaymentInstallment:
        installment = self.installments.get(installment_id)
        if installment is None:
            raise NotFoundFailure("Installment", installment_id)
        return installment

    def create_installment(
        self, project_id: uuid.UUID, installment_number: int, amount: Decimal, due_date: date
    ) -> PaymentInstallment:
        with self.unit_of_work("create_installment"):
            project = self._project(project_id)
            draft = validate_payload(
                InstallmentCreateDraft,
                {"installment_number": installment_number, "amount": amount, "due_date": due_date},
                self.validation_context(),
            )
            if project.payment_type != PaymentType.INSTALLMENT.value:
                raise BusinessRuleFailure(
                    "INVALID_PAYMENT_TYPE", "Only installment projects can have installments"
                )

            amount_cents = to_cents(draft.amount)
            schedule = [(number, due) for _, number, due in self.installments.schedule(project.id)]
            check_unique_number((number for number, _ in schedule), draft.installment_number)
            check_installment_total(
                project.total_budget_cents,
                self.installments.sum_amounts(project.id),
                amount_cents,
                self.tolerance_cents,
            )
            check_schedule_order(schedule + [(draft.installment_number, draft.due_date)])

            installment = self.installments.add(project.id, draft.installment_number, amount_cents, draft.due_date)
        return installment

    def update_installment(
        self,
        installment_id: uuid.UUID,
        amount: Optional[Decimal] = None,
        installment_number: Optional[int] = None,
        due_date: Optional[date] = None,
    ) -> PaymentInstallment:
        """
        Edit an installment; omitted (None) fields are left unchanged.

        Amount and number are frozen once a payment references the
        installment. The due date stays editable.
        """
        with self.unit_of_work("update_installment"):
            installment = self.get_installment(installment_id)
            changes = {
                key: value
                for key, value in {
                    "amount": amount,
                    "installment_number": installment_number,
                    "due_date": due_date,
                }.items()
                if value is not None
            }
            draft = validate_payload(InstallmentUpdateDraft, changes, self.validation_context())

            new_amount = to_cents(draft.amount) if draft.amount is not None else installment.amount_cents
            new_number = draft.installment_number or installment.installment_number
            new_due = draft.due_date or installment.due_date
            amount_changed = new_amount != installment.amount_cents
            number_changed = new_number != installment.installment_number

            check_installment_editable(
                self.installments.has_transactions(installment.id), amount_changed or number_changed
            )

            others = [
                (number, due)
                for other_id, number, due in self.installments.schedule(installment.project_id)
                if other_id != installment.id
            ]
            if number_changed:
                check_unique_number((number for number, _ in others), new_number)
            if amount_changed:
                check_installment_total(
                    installment.project.total_budget_cents,
                    self.installments.sum_amounts(installment.project_id, exclude_id=installment.id),
                    new_amount,
                    self.tolerance_cents,
                )
            check_schedule_order(others + [(new_number, new_due)])

            installment.amount_cents = new_amount
            installment.installment_number = new_number
            installment.due_date = new_due
            if amount_changed:
                self.reconciler.reconcile_installment(installment.id)
            else:
                self.db.flush()
        return installment

    def delete_installment(self, installment_id: uuid.UUID) -> None:
        with self.unit_of_work("delete_installment"):
            installment = self.get_installment(installment_id)
            check_installment_deletable(
                self.installments.has_transactions(installment.id),
                self.installments.count(installment.project_id),
                PaymentType(installment.project.payment_type),
            )
            self.installments.delete(installment)

"""Recording, correcting and removing payment transactions"""

import uuid
from datetime import date
from decimal import Decimal
from typing import List, Optional

from budget_tracker.domain.exceptions import BusinessRuleFailure, NotFoundFailure
from budget_tracker.domain.models import OveragePolicy, Page
from budget_tracker.domain.rules import assess_overage, check_installment_belongs
from budget_tracker.domain.validation import TransactionDraft, TransactionUpdateDraft, validate_payload
from budget_tracker.infrastructure.database.models import PaymentInstallment, PaymentTransaction, Project
from budget_tracker.infrastructure.database.repositories import (
    InstallmentRepository,
    LedgerRepository,
    ProjectRepository,
    TransactionFilters,
    TransactionRepository,
)
from budget_tracker.infrastructure.observability.logging import log_transaction_recorded
from budget_tracker.infrastructure.observability.metrics import record_transaction
from budget_tracker.services.base import Service
from budget_tracker.services.reconciliation import Reconciler
from budget_tracker.services.results import TransactionResult
from budget_tracker.utils.money import to_cents

# Distinguishes "leave the installment link alone" from "unlink" (None)
_UNSET = object()


class TransactionService(Service):
    """
    Ledger writes for one owner.

    Every write reconciles the installments it touches inside the same
    database transaction, so the cached paid flag never lags a committed
    payment.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.projects = ProjectRepository(self.db, self.owner_id)
        self.installments = InstallmentRepository(self.db, self.owner_id)
        self.transactions = TransactionRepository(self.db, self.owner_id)
        self.ledger = LedgerRepository(self.db)
        self.reconciler = Reconciler(self.db, self.owner_id)

    def get_transaction(self, transaction_id: uuid.UUID) -> PaymentTransaction:
        transaction = self.transactions.get(transaction_id)
        if transaction is None:
            raise NotFoundFailure("Transaction", transaction_id)
        return transaction

    def list_transactions(
        self, filters: Optional[TransactionFilters] = None, page: int = 1, page_size: Optional[int] = None
    ) -> Page[PaymentTransaction]:
        page, page_size = self.page_bounds(page, page_size)
        rows, total = self.transactions.list(filters or TransactionFilters(), page, page_size)
        return Page(items=rows, page=page, page_size=page_size, total_count=total)

    def _installment_for(self, installment_id: uuid.UUID, project_id: uuid.UUID) -> PaymentInstallment:
        installment = self.installments.get(installment_id)
        if installment is None:
            raise NotFoundFailure("Installment", installment_id)
        check_installment_belongs(installment.project_id, project_id)
        return installment

    def _assess_overage(
        self,
        project: Project,
        installment: Optional[PaymentInstallment],
        amount_cents: int,
        replacing: Optional[PaymentTransaction] = None,
    ) -> List[str]:
        """Warnings for a payment above what is still owed; `replacing` is left out of the balance"""
        received = self.ledger.project_totals(project.id).received_cents
        if replacing is not None:
            received -= replacing.amount_cents

        installment_remaining = None
        if installment is not None:
            paid = self.ledger.installment_paid_cents(installment.id)
            if replacing is not None and replacing.installment_id == installment.id:
                paid -= replacing.amount_cents
            installment_remaining = installment.amount_cents - paid

        try:
            return assess_overage(
                amount_cents,
                project.total_budget_cents - received,
                installment_remaining,
                OveragePolicy(self.config.overage_policy),
            )
        except BusinessRuleFailure:
            record_transaction("rejected")
            raise

    def create_transaction(
        self,
        project_id: uuid.UUID,
        amount: Decimal,
        notes: str,
        transaction_date: Optional[date] = None,
        installment_id: Optional[uuid.UUID] = None,
    ) -> TransactionResult:
        """
        Record a confirmed payment, optionally earmarked to an installment.

        Overpayment is stored with warnings or refused, depending on the
        configured overage policy.
        """
        with self.unit_of_work("create_transaction"):
            draft = validate_payload(
                TransactionDraft,
                {
                    "project_id": project_id,
                    "amount": amount,
                    "notes": notes,
                    "transaction_date": transaction_date,
                    "installment_id": installment_id,
                },
                self.validation_context(),
            )
            project = self.projects.get(draft.project_id)
            if project is None:
                raise NotFoundFailure("Project", draft.project_id)
            installment = None
            if draft.installment_id is not None:
                installment = self._installment_for(draft.installment_id, project.id)

            amount_cents = to_cents(draft.amount)
            warnings = self._assess_overage(project, installment, amount_cents)

            transaction = self.transactions.add(
                project_id=project.id,
                amount_cents=amount_cents,
                transaction_date=draft.transaction_date or self.clock(),
                notes=draft.notes,
                installment_id=installment.id if installment else None,
            )
            if installment is not None:
                self.reconciler.reconcile_installment(installment.id)

        record_transaction("overage" if warnings else "recorded", len(warnings))
        log_transaction_recorded(
            self.owner_id,
            transaction.id,
            transaction.project_id,
            transaction.installment_id,
            amount_cents,
            warnings,
        )
        return TransactionResult(transaction=transaction, warnings=warnings)

    def update_transaction(
        self,
        transaction_id: uuid.UUID,
        amount: Optional[Decimal] = None,
        transaction_date: Optional[date] = None,
        notes: Optional[str] = None,
        installment_id=_UNSET,
    ) -> TransactionResult:
        """
        Correct a transaction; omitted fields are left unchanged.

        Pass installment_id=None to unlink the payment from its installment.
        Both the previous and the new installment are reconciled.
        """
        with self.unit_of_work("update_transaction"):
            transaction = self.get_transaction(transaction_id)
            changes = {
                key: value
                for key, value in {"amount": amount, "transaction_date": transaction_date, "notes": notes}.items()
                if value is not None
            }
            if installment_id is not _UNSET:
                changes["installment_id"] = installment_id
            draft = validate_payload(TransactionUpdateDraft, changes, self.validation_context())

            previous_installment_id = transaction.installment_id
            installment = transaction.installment
            if "installment_id" in draft.model_fields_set:
                installment = (
                    self._installment_for(draft.installment_id, transaction.project_id)
                    if draft.installment_id is not None
                    else None
                )

            amount_cents = to_cents(draft.amount) if draft.amount is not None else transaction.amount_cents
            warnings = self._assess_overage(transaction.project, installment, amount_cents, replacing=transaction)

            transaction.amount_cents = amount_cents
            transaction.installment_id = installment.id if installment else None
            if draft.transaction_date is not None:
                transaction.transaction_date = draft.transaction_date
            if draft.notes is not None:
                transaction.notes = draft.notes
            self.db.flush()

            for affected in {previous_installment_id, transaction.installment_id} - {None}:
                self.reconciler.reconcile_installment(affected)

        record_transaction("overage" if warnings else "recorded", len(warnings))
        return TransactionResult(transaction=transaction, warnings=warnings)

    def delete_transaction(self, transaction_id: uuid.UUID) -> None:
        """Remove a payment; its installment may fall back to unpaid"""
        with self.unit_of_work("delete_transaction"):
            transaction = self.get_transaction(transaction_id)
            installment_id = transaction.installment_id
            self.transactions.delete(transaction)
            if installment_id is not None:
                self.reconciler.reconcile_installment(installment_id)

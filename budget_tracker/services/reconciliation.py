"""Recomputes the cached paid flag of installments from the ledger"""

import uuid

from sqlalchemy.orm import Session

from budget_tracker.domain.exceptions import ConflictFailure
from budget_tracker.domain.reconciliation import is_settled
from budget_tracker.infrastructure.database.repositories import InstallmentRepository, LedgerRepository


class Reconciler:
    """
    Keeps PaymentInstallment.is_paid in step with its transactions.

    Runs inside the caller's database transaction, after the ledger write it
    reacts to. The installment row is locked first so two concurrent payments
    on the same installment recompute one after the other, each from a fresh
    SUM. Ownership is the caller's responsibility.
    """

    def __init__(self, db: Session, owner_id: str):
        self.db = db
        self.installments = InstallmentRepository(db, owner_id)
        self.ledger = LedgerRepository(db)

    def reconcile_installment(self, installment_id: uuid.UUID) -> bool:
        # Pending writes must reach the database before the SUM reads it
        self.db.flush()

        installment = self.installments.lock(installment_id)
        if installment is None:
            raise ConflictFailure(f"Installment {installment_id} no longer exists, refetch and retry")

        paid = self.ledger.installment_paid_cents(installment_id)
        installment.is_paid = is_settled(paid, installment.amount_cents)
        self.db.flush()
        return installment.is_paid

"""Installment payment status, derived from paid vs. owed amounts"""

from budget_tracker.domain.models import InstallmentStatus


def is_settled(paid_cents: int, amount_cents: int) -> bool:
    return paid_cents >= amount_cents


def installment_status(paid_cents: int, amount_cents: int) -> InstallmentStatus:
    """
    Unpaid -> PartiallyPaid -> Paid, recomputed from the ledger on demand.

    Removing a payment moves an installment back down; there is no stored
    transition table. Overdue is a separate, date-based flag.
    """
    if is_settled(paid_cents, amount_cents):
        return InstallmentStatus.PAID
    if paid_cents > 0:
        return InstallmentStatus.PARTIALLY_PAID
    return InstallmentStatus.UNPAID

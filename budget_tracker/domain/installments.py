"""Installment plan suggestion for splitting a project budget"""

from datetime import date, timedelta
from decimal import Decimal
from typing import List, Optional
from budget_tracker.domain.models import Installment
from budget_tracker.utils.money import from_cents, to_cents


def suggest_installment_plan(
    total_budget: Decimal,
    num_installments: int,
    interval_days: int = 30,
    start_date: Optional[date] = None,
    today: Optional[date] = None,
) -> List[Installment]:
    """
    Split a budget into equal installments at a fixed interval.

    Requirements:
    - Amounts sum exactly to the budget
    - Last installment absorbs the rounding remainder (≤ num_installments-1 cents)
    - Due dates strictly ascending

    Args:
        total_budget: Amount to split
        num_installments: Number of payments
        interval_days: Days between due dates (default 30)
        start_date: First due date (default: today + interval_days)
        today: Reference date for the default start (default: date.today())

    Example:
        2500.01 in 2 → [1250.00, 1250.01]
    """
    if total_budget <= 0 or num_installments <= 0:
        return []

    if start_date is None:
        start_date = (today or date.today()) + timedelta(days=interval_days)

    total_cents = to_cents(total_budget)
    base_amount = total_cents // num_installments
    remainder = total_cents % num_installments

    installments = []
    for i in range(num_installments):
        amount = base_amount + (remainder if i == num_installments - 1 else 0)
        installments.append(
            Installment(
                due_date=start_date + timedelta(days=i * interval_days),
                amount=from_cents(amount),
                installment_number=i + 1,
            )
        )

    return installments

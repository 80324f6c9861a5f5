"""
Business rules - cross-field invariants checked after shape validation.

All amounts are integer cents. The load-bearing invariant: an installment
project's installment amounts sum to its total budget within the configured
tolerance, re-checked on every add, edit and removal.
"""

import uuid
from datetime import date
from typing import Iterable, List, Optional, Sequence, Tuple

from budget_tracker.domain.exceptions import BusinessRuleFailure, FieldError
from budget_tracker.domain.models import OveragePolicy, PaymentType
from budget_tracker.utils.money import from_cents

# (installment_number, due_date)
ScheduleEntry = Tuple[int, date]


def sums_match(total_cents: int, budget_cents: int, tolerance_cents: int) -> bool:
    return abs(total_cents - budget_cents) <= tolerance_cents


def check_installment_plan(
    payment_type: PaymentType,
    budget_cents: int,
    plan: Sequence[Tuple[int, date]],
    tolerance_cents: int,
) -> None:
    """
    Validate an installment set submitted together with its project.

    Chronology and the budget total are both checked and every violation is
    reported in one failure; the code names the first rule broken.

    Args:
        plan: (amount_cents, due_date) in installment order
    """
    if payment_type == PaymentType.SINGLE:
        if plan:
            raise BusinessRuleFailure(
                "INSTALLMENTS_NOT_ALLOWED", "Single-payment projects cannot have installments"
            )
        return

    if not plan:
        raise BusinessRuleFailure(
            "INSTALLMENTS_REQUIRED", "Installment projects need at least one installment"
        )

    errors = [
        FieldError(
            field=f"installments.{index}.due_date",
            code="due_date_not_ascending",
            message="Due date must be later than the previous installment's",
        )
        for index in range(1, len(plan))
        if plan[index][1] <= plan[index - 1][1]
    ]
    out_of_order = bool(errors)

    total = sum(amount for amount, _ in plan)
    mismatch = f"Installments sum to {from_cents(total)} but the budget is {from_cents(budget_cents)}"
    if not sums_match(total, budget_cents, tolerance_cents):
        errors.append(FieldError(field="installments", code="installment_mismatch", message=mismatch))

    if not errors:
        return
    if out_of_order:
        raise BusinessRuleFailure("INVALID_DATE_RANGE", "Installment due dates must be in chronological order", errors)
    raise BusinessRuleFailure("INSTALLMENT_MISMATCH", mismatch, errors)


def check_schedule_order(schedule: Iterable[ScheduleEntry]) -> None:
    """Due dates must strictly increase when ordered by installment number"""
    ordered = sorted(schedule)
    for (prev_number, prev_due), (number, due) in zip(ordered, ordered[1:]):
        if due <= prev_due:
            raise BusinessRuleFailure(
                "INVALID_DATE_RANGE",
                f"Installment #{number} must be due after installment #{prev_number}",
                [FieldError("due_date", "due_date_not_ascending", "Due dates must follow installment order")],
            )


def check_unique_number(existing_numbers: Iterable[int], number: int) -> None:
    if number in set(existing_numbers):
        raise BusinessRuleFailure(
            "DUPLICATE_INSTALLMENT",
            f"Installment #{number} already exists for this project",
            [FieldError("installment_number", "duplicate", "Installment number already used")],
        )


def check_installment_total(
    budget_cents: int, other_installments_cents: int, amount_cents: int, tolerance_cents: int
) -> None:
    """Adding or resizing an installment must not push the plan over budget"""
    if other_installments_cents + amount_cents > budget_cents + tolerance_cents:
        raise BusinessRuleFailure(
            "INSTALLMENT_BUDGET_EXCEEDED",
            f"Installments would total {from_cents(other_installments_cents + amount_cents)}, "
            f"above the budget of {from_cents(budget_cents)}",
        )


def check_installment_editable(has_transactions: bool, changes_amount_or_number: bool) -> None:
    if has_transactions and changes_amount_or_number:
        raise BusinessRuleFailure(
            "INSTALLMENT_HAS_TRANSACTIONS",
            "Amount and number of an installment with payments cannot change",
        )


def check_installment_deletable(has_transactions: bool, installments_left: int, payment_type: PaymentType) -> None:
    if has_transactions:
        raise BusinessRuleFailure(
            "INSTALLMENT_HAS_TRANSACTIONS", "An installment with payments cannot be deleted"
        )
    if payment_type == PaymentType.INSTALLMENT and installments_left <= 1:
        raise BusinessRuleFailure(
            "LAST_INSTALLMENT", "An installment project must keep at least one installment"
        )


def check_budget_change(has_transactions: bool) -> None:
    if has_transactions:
        raise BusinessRuleFailure(
            "PROJECT_HAS_TRANSACTIONS", "The budget cannot change once payments are recorded"
        )


def check_installment_belongs(installment_project_id: uuid.UUID, project_id: uuid.UUID) -> None:
    if installment_project_id != project_id:
        raise BusinessRuleFailure(
            "INSTALLMENT_PROJECT_MISMATCH",
            "Installment does not belong to this project",
            [FieldError("installment_id", "installment_project_mismatch", "Installment belongs to another project")],
        )


def assess_overage(
    amount_cents: int,
    project_remaining_cents: int,
    installment_remaining_cents: Optional[int],
    policy: OveragePolicy,
) -> List[str]:
    """
    Compare a payment with what is still owed.

    Returns:
        Warnings for each exceeded remainder (empty when nothing is exceeded)

    Raises:
        BusinessRuleFailure: OVERAGE_NOT_ALLOWED when the policy is "reject"
    """
    warnings = []
    if amount_cents > project_remaining_cents:
        warnings.append(
            f"Payment of {from_cents(amount_cents)} exceeds the project's remaining "
            f"{from_cents(project_remaining_cents)}"
        )
    if installment_remaining_cents is not None and amount_cents > installment_remaining_cents:
        warnings.append(
            f"Payment of {from_cents(amount_cents)} exceeds the installment's remaining "
            f"{from_cents(installment_remaining_cents)}"
        )

    if warnings and policy == OveragePolicy.REJECT:
        raise BusinessRuleFailure("OVERAGE_NOT_ALLOWED", warnings[0])
    return warnings

"""
Aggregation engine - derived payment figures computed from the ledger.

Inputs come from independent queries scoped to one project: project totals
are one SUM/COUNT/MAX over its transactions, installment payments one SUM
grouped by installment id. Summing transactions after joining them to the
installment rows would repeat each payment once per sibling installment
(a two-installment project would report a 1500 payment as 3000), so no
figure here is ever derived from such a join or from subtracting other
installments from the project total.
"""

import uuid
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Optional, Sequence

from budget_tracker.domain.models import (
    DailyTotal,
    DashboardStats,
    InstallmentBalance,
    InstallmentSummary,
    PaymentType,
    ProjectSummary,
    TimelinePoint,
    TransactionStats,
)
from budget_tracker.domain.reconciliation import installment_status, is_settled
from budget_tracker.domain.rules import sums_match
from budget_tracker.utils.date_utils import days_until
from budget_tracker.utils.money import CENT, from_cents, percentage, to_cents


@dataclass(frozen=True)
class LedgerTotals:
    """Project-scoped transaction aggregates"""

    received_cents: int = 0
    transactions_count: int = 0
    last_transaction_date: Optional[date] = None


def summarize_installment(
    installment_id: uuid.UUID,
    installment_number: int,
    amount_cents: int,
    due_date: date,
    paid_cents: int,
    today: date,
) -> InstallmentSummary:
    fully_paid = is_settled(paid_cents, amount_cents)
    return InstallmentSummary(
        id=installment_id,
        installment_number=installment_number,
        amount=from_cents(amount_cents),
        due_date=due_date,
        # Derived at read time; the stored flag is only a cache of this
        is_paid=fully_paid,
        paid_amount=from_cents(paid_cents),
        remaining_amount=from_cents(amount_cents - paid_cents),
        is_fully_paid=fully_paid,
        is_overdue=due_date < today and not fully_paid,
        days_until_due=days_until(due_date, today),
        status=installment_status(paid_cents, amount_cents),
    )


def summarize_installments(
    installments: Iterable, paid_by_installment: Dict[uuid.UUID, int], today: date
) -> List[InstallmentSummary]:
    """Summaries in installment order; rows need id, installment_number, amount_cents, due_date"""
    return [
        summarize_installment(
            installment_id=row.id,
            installment_number=row.installment_number,
            amount_cents=row.amount_cents,
            due_date=row.due_date,
            paid_cents=paid_by_installment.get(row.id, 0),
            today=today,
        )
        for row in sorted(installments, key=lambda row: row.installment_number)
    ]


def summarize_project(
    project_id: uuid.UUID,
    title: str,
    payment_type: PaymentType,
    budget_cents: int,
    totals: LedgerTotals,
    installments: Sequence[InstallmentSummary],
    tolerance_cents: int,
) -> ProjectSummary:
    received = totals.received_cents
    installment_cents = sum(to_cents(inst.amount) for inst in installments)
    balanced = (
        sums_match(installment_cents, budget_cents, tolerance_cents)
        if payment_type == PaymentType.INSTALLMENT
        else not installments
    )

    return ProjectSummary(
        project_id=project_id,
        title=title,
        payment_type=PaymentType(payment_type),
        total_budget=from_cents(budget_cents),
        total_received=from_cents(received),
        remaining_amount=from_cents(budget_cents - received),  # negative on overpayment
        payment_progress=percentage(received, budget_cents),
        is_completed=received >= budget_cents,
        transactions_count=totals.transactions_count,
        last_transaction_date=totals.last_transaction_date,
        total_installments=len(installments),
        paid_installments=sum(1 for inst in installments if inst.is_fully_paid),
        overdue_installments_count=sum(1 for inst in installments if inst.is_overdue),
        installments_balanced=balanced,
    )


def installment_balance(budget_cents: int, installment_amounts: Iterable[int], tolerance_cents: int) -> InstallmentBalance:
    total = sum(installment_amounts)
    return InstallmentBalance(
        is_valid=sums_match(total, budget_cents, tolerance_cents),
        total_installments=from_cents(total),
        project_budget=from_cents(budget_cents),
        difference=from_cents(abs(budget_cents - total)),
    )


def build_timeline(transactions: Iterable) -> List[TimelinePoint]:
    """Running total over transactions ordered by date; rows need transaction_date, amount_cents, notes"""
    timeline = []
    cumulative = 0
    for txn in transactions:
        cumulative += txn.amount_cents
        timeline.append(
            TimelinePoint(
                transaction_date=txn.transaction_date,
                amount=from_cents(txn.amount_cents),
                cumulative_amount=from_cents(cumulative),
                notes=txn.notes,
            )
        )
    return timeline


def dashboard_stats(
    budgets: Dict[uuid.UUID, int],
    received_by_project: Dict[uuid.UUID, int],
    overdue_installments_count: int,
) -> DashboardStats:
    """Owner-wide totals; received amounts are keyed by project, never joined with installments"""
    received = {pid: received_by_project.get(pid, 0) for pid in budgets}
    completed = sum(1 for pid, budget in budgets.items() if received[pid] >= budget)
    total_budget = sum(budgets.values())
    total_received = sum(received.values())

    return DashboardStats(
        total_projects_count=len(budgets),
        active_projects_count=len(budgets) - completed,
        completed_projects_count=completed,
        total_budget_sum=from_cents(total_budget),
        total_received_sum=from_cents(total_received),
        total_remaining_sum=from_cents(total_budget - total_received),
        overdue_installments_count=overdue_installments_count,
    )


def transaction_stats(start_date: date, end_date: date, transactions: Iterable) -> TransactionStats:
    """Range totals; rows need transaction_date, amount_cents, payment_type (of the paying project)"""
    by_type = {PaymentType.SINGLE: 0, PaymentType.INSTALLMENT: 0}
    by_day: Dict[date, List[int]] = {}
    total = count = 0
    for txn in transactions:
        total += txn.amount_cents
        count += 1
        by_type[PaymentType(txn.payment_type)] += txn.amount_cents
        day = by_day.setdefault(txn.transaction_date, [0, 0])
        day[0] += txn.amount_cents
        day[1] += 1

    average = (Decimal(total) / count / 100).quantize(CENT, rounding=ROUND_HALF_UP) if count else from_cents(0)
    return TransactionStats(
        start_date=start_date,
        end_date=end_date,
        total_amount=from_cents(total),
        total_count=count,
        average_amount=average,
        single_payment_amount=from_cents(by_type[PaymentType.SINGLE]),
        installment_amount=from_cents(by_type[PaymentType.INSTALLMENT]),
        daily=[
            DailyTotal(transaction_date=day, amount=from_cents(cents), count=day_count)
            for day, (cents, day_count) in sorted(by_day.items())
        ],
    )

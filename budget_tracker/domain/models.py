"""Domain models - pure Python dataclasses representing business entities"""

import uuid
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Generic, List, Optional, TypeVar

T = TypeVar("T")


class PaymentType(str, Enum):
    SINGLE = "single"
    INSTALLMENT = "installment"


class InstallmentStatus(str, Enum):
    """Derived from paid vs. owed amount, never stored"""

    UNPAID = "unpaid"
    PARTIALLY_PAID = "partially_paid"
    PAID = "paid"


class OveragePolicy(str, Enum):
    WARN = "warn"
    REJECT = "reject"


@dataclass
class Installment:
    """Single scheduled payment in an installment plan"""

    due_date: date
    amount: Decimal
    installment_number: Optional[int] = None


@dataclass
class InstallmentSummary:
    """Installment with figures derived from its own transactions"""

    id: uuid.UUID
    installment_number: int
    amount: Decimal
    due_date: date
    is_paid: bool
    paid_amount: Decimal
    remaining_amount: Decimal
    is_fully_paid: bool
    is_overdue: bool
    days_until_due: int
    status: InstallmentStatus


@dataclass
class ProjectSummary:
    """Project figures derived from the transaction ledger"""

    project_id: uuid.UUID
    title: str
    payment_type: PaymentType
    total_budget: Decimal
    total_received: Decimal
    remaining_amount: Decimal
    payment_progress: Decimal
    is_completed: bool
    transactions_count: int
    last_transaction_date: Optional[date]
    total_installments: int
    paid_installments: int
    overdue_installments_count: int
    installments_balanced: bool


@dataclass
class InstallmentBalance:
    """Installment sum compared with the project budget"""

    is_valid: bool
    total_installments: Decimal
    project_budget: Decimal
    difference: Decimal


@dataclass
class DashboardStats:
    """Owner-wide totals"""

    total_projects_count: int
    active_projects_count: int
    completed_projects_count: int
    total_budget_sum: Decimal
    total_received_sum: Decimal
    total_remaining_sum: Decimal
    overdue_installments_count: int


@dataclass
class TimelinePoint:
    """One payment with the running total up to it"""

    transaction_date: date
    amount: Decimal
    cumulative_amount: Decimal
    notes: str


@dataclass
class DailyTotal:
    transaction_date: date
    amount: Decimal
    count: int


@dataclass
class TransactionStats:
    """Payments received in a date range, split by the paying project's payment type"""

    start_date: date
    end_date: date
    total_amount: Decimal
    total_count: int
    average_amount: Decimal
    single_payment_amount: Decimal
    installment_amount: Decimal
    daily: List[DailyTotal]


@dataclass
class ScheduledInstallment:
    """Installment summary tagged with its project, for dashboard lists"""

    project_id: uuid.UUID
    project_title: str
    installment: InstallmentSummary


@dataclass
class Page(Generic[T]):
    """One page of a listing"""

    items: List[T]
    page: int
    page_size: int
    total_count: int

    @property
    def total_pages(self) -> int:
        return -(-self.total_count // self.page_size) if self.page_size else 0

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.page > 1

"""Pydantic schemas for API request/response validation"""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from budget_tracker.domain.models import InstallmentStatus, PaymentType
from budget_tracker.infrastructure.database.models import (
    PaymentInstallment,
    PaymentTransaction,
    Project,
    TeamMember,
)
from budget_tracker.utils.money import from_cents

# Requests carry raw values; ranges, lengths and dates are checked by the services


class InstallmentInput(BaseModel):
    amount: Decimal
    due_date: date


class ProjectCreateRequest(BaseModel):
    """Request body for POST /v1/projects"""

    title: str
    total_budget: Decimal
    payment_type: str
    installments: Optional[List[InstallmentInput]] = None
    team_member_ids: Optional[List[uuid.UUID]] = None


class ProjectUpdateRequest(BaseModel):
    """Request body for PATCH /v1/projects/{project_id}"""

    title: Optional[str] = None
    total_budget: Optional[Decimal] = None
    payment_type: Optional[str] = None
    installments: Optional[List[InstallmentInput]] = None


class InstallmentCreateRequest(BaseModel):
    installment_number: int
    amount: Decimal
    due_date: date


class InstallmentUpdateRequest(BaseModel):
    installment_number: Optional[int] = None
    amount: Optional[Decimal] = None
    due_date: Optional[date] = None


class PlanSuggestionRequest(BaseModel):
    """Request body for POST /v1/installments/suggest"""

    total_budget: Decimal = Field(..., gt=0)
    num_installments: int = Field(..., gt=0, le=120)
    interval_days: int = Field(30, gt=0)
    start_date: Optional[date] = None


class TransactionCreateRequest(BaseModel):
    """Request body for POST /v1/transactions"""

    project_id: uuid.UUID
    amount: Decimal
    notes: str
    transaction_date: Optional[date] = None
    installment_id: Optional[uuid.UUID] = None


class TransactionUpdateRequest(BaseModel):
    """Request body for PATCH /v1/transactions/{transaction_id}; an explicit null installment_id unlinks"""

    amount: Optional[Decimal] = None
    notes: Optional[str] = None
    transaction_date: Optional[date] = None
    installment_id: Optional[uuid.UUID] = None


class TeamMemberCreateRequest(BaseModel):
    name: str
    email: str
    role: Optional[str] = None
    hourly_rate: Optional[Decimal] = None


class TeamMemberUpdateRequest(BaseModel):
    """Request body for PATCH /v1/team-members/{member_id}"""

    name: Optional[str] = None
    email: Optional[str] = None
    role: Optional[str] = None
    hourly_rate: Optional[Decimal] = None
    is_active: Optional[bool] = None


class TeamAssignmentRequest(BaseModel):
    """Request body for PUT /v1/projects/{project_id}/team"""

    team_member_ids: List[uuid.UUID]
    role_in_project: Optional[str] = None


class InstallmentSchema(BaseModel):
    """Installment as stored"""

    id: uuid.UUID
    installment_number: int
    amount: Decimal
    due_date: date
    is_paid: bool

    @classmethod
    def from_row(cls, row: PaymentInstallment) -> "InstallmentSchema":
        return cls(
            id=row.id,
            installment_number=row.installment_number,
            amount=from_cents(row.amount_cents),
            due_date=row.due_date,
            is_paid=row.is_paid,
        )


class ProjectResponse(BaseModel):
    id: uuid.UUID
    title: str
    total_budget: Decimal
    payment_type: PaymentType
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_row(cls, row: Project) -> "ProjectResponse":
        return cls(
            id=row.id,
            title=row.title,
            total_budget=from_cents(row.total_budget_cents),
            payment_type=PaymentType(row.payment_type),
            created_at=row.created_at,
            updated_at=row.updated_at,
        )


class ProjectDetailResponse(ProjectResponse):
    installments: List[InstallmentSchema]


class ProjectCreatedResponse(BaseModel):
    """Response for POST /v1/projects; warnings mark a partial success"""

    project: ProjectResponse
    installments: List[InstallmentSchema]
    warnings: List[str]


class PageMeta(BaseModel):
    page: int
    page_size: int
    total_count: int
    total_pages: int
    has_next: bool
    has_previous: bool


class ProjectListResponse(PageMeta):
    items: List[ProjectResponse]


class TransactionResponse(BaseModel):
    id: uuid.UUID
    project_id: uuid.UUID
    installment_id: Optional[uuid.UUID]
    amount: Decimal
    transaction_date: date
    notes: str
    created_at: datetime

    @classmethod
    def from_row(cls, row: PaymentTransaction) -> "TransactionResponse":
        return cls(
            id=row.id,
            project_id=row.project_id,
            installment_id=row.installment_id,
            amount=from_cents(row.amount_cents),
            transaction_date=row.transaction_date,
            notes=row.notes,
            created_at=row.created_at,
        )


class TransactionWriteResponse(BaseModel):
    """Response for transaction create/update; warnings report overpayment"""

    transaction: TransactionResponse
    warnings: List[str]


class TransactionListResponse(PageMeta):
    items: List[TransactionResponse]


class ProjectSummaryResponse(BaseModel):
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


class InstallmentSummaryResponse(BaseModel):
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


class InstallmentBalanceResponse(BaseModel):
    is_valid: bool
    total_installments: Decimal
    project_budget: Decimal
    difference: Decimal


class PlannedInstallment(BaseModel):
    installment_number: int
    amount: Decimal
    due_date: date


class TimelinePointResponse(BaseModel):
    transaction_date: date
    amount: Decimal
    cumulative_amount: Decimal
    notes: str


class ScheduledInstallmentResponse(BaseModel):
    project_id: uuid.UUID
    project_title: str
    installment: InstallmentSummaryResponse


class DashboardStatsResponse(BaseModel):
    total_projects_count: int
    active_projects_count: int
    completed_projects_count: int
    total_budget_sum: Decimal
    total_received_sum: Decimal
    total_remaining_sum: Decimal
    overdue_installments_count: int


class DashboardResponse(BaseModel):
    """Response for GET /v1/dashboard"""

    stats: DashboardStatsResponse
    upcoming_installments: List[ScheduledInstallmentResponse]
    overdue_installments: List[ScheduledInstallmentResponse]


class DailyTotalResponse(BaseModel):
    transaction_date: date
    amount: Decimal
    count: int


class TransactionStatsResponse(BaseModel):
    """Response for GET /v1/dashboard/transaction-stats"""

    start_date: date
    end_date: date
    total_amount: Decimal
    total_count: int
    average_amount: Decimal
    single_payment_amount: Decimal
    installment_amount: Decimal
    daily: List[DailyTotalResponse]


class TeamMemberResponse(BaseModel):
    id: uuid.UUID
    name: str
    email: str
    role: Optional[str]
    hourly_rate: Optional[Decimal]
    is_active: bool

    @classmethod
    def from_row(cls, row: TeamMember) -> "TeamMemberResponse":
        return cls(
            id=row.id,
            name=row.name,
            email=row.email,
            role=row.role,
            hourly_rate=from_cents(row.hourly_rate_cents) if row.hourly_rate_cents is not None else None,
            is_active=row.is_active,
        )

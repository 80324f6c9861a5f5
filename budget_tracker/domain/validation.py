"""
Shape validation for incoming payloads.

Checks types, ranges and formats only; cross-field invariants live in
domain.rules. Every violation is collected and reported together so a caller
can highlight all bad fields in one round trip.

Date-relative checks need "today" and the configured limits, which are passed
to pydantic as validation context.
"""

import uuid
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Annotated, Any, List, Mapping, Optional, Type, TypeVar

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, ValidationError, ValidationInfo
from pydantic_core import PydanticCustomError

from budget_tracker.config import Settings
from budget_tracker.domain.exceptions import FieldError, ValidationFailure
from budget_tracker.domain.models import PaymentType
from budget_tracker.utils.date_utils import history_window

DraftT = TypeVar("DraftT", bound=BaseModel)

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


@dataclass(frozen=True)
class ValidationContext:
    today: date
    settings: Settings


def _context(info: ValidationInfo) -> ValidationContext:
    if not isinstance(info.context, ValidationContext):
        raise RuntimeError("drafts must be validated through validate_payload()")
    return info.context


def _not_in_past(value: date, info: ValidationInfo) -> date:
    if value < _context(info).today:
        raise PydanticCustomError("due_date_in_past", "Due date must be today or later")
    return value


def _title_limit(value: str, info: ValidationInfo) -> str:
    limit = _context(info).settings.title_max_length
    if len(value) > limit:
        raise PydanticCustomError("title_too_long", "Title must be at most {limit} characters", {"limit": limit})
    return value


def _budget_ceiling(value: Decimal, info: ValidationInfo) -> Decimal:
    ceiling = _context(info).settings.max_total_budget
    if value > ceiling:
        raise PydanticCustomError("budget_ceiling", "Budget must not exceed {ceiling}", {"ceiling": str(ceiling)})
    return value


def _amount_ceiling(value: Decimal, info: ValidationInfo) -> Decimal:
    ceiling = _context(info).settings.max_amount
    if value > ceiling:
        raise PydanticCustomError("amount_ceiling", "Amount must not exceed {ceiling}", {"ceiling": str(ceiling)})
    return value


def _notes_limit(value: str, info: ValidationInfo) -> str:
    limit = _context(info).settings.notes_max_length
    if len(value) > limit:
        raise PydanticCustomError("notes_too_long", "Notes must be at most {limit} characters", {"limit": limit})
    return value


def _within_history(value: date, info: ValidationInfo) -> date:
    ctx = _context(info)
    earliest, latest = history_window(ctx.today, ctx.settings.transaction_history_days)
    if value > latest:
        raise PydanticCustomError("transaction_date_in_future", "Transaction date cannot be in the future")
    if value < earliest:
        raise PydanticCustomError(
            "transaction_date_too_old",
            "Transaction date cannot be before {earliest}",
            {"earliest": earliest.isoformat()},
        )
    return value


Amount = Annotated[Decimal, Field(gt=0, decimal_places=2), AfterValidator(_amount_ceiling)]
Budget = Annotated[Decimal, Field(gt=0, decimal_places=2), AfterValidator(_budget_ceiling)]
Title = Annotated[str, Field(min_length=3), AfterValidator(_title_limit)]
Notes = Annotated[str, Field(min_length=1), AfterValidator(_notes_limit)]
DueDate = Annotated[date, AfterValidator(_not_in_past)]
TransactionDate = Annotated[date, AfterValidator(_within_history)]


class Draft(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, from_attributes=True, extra="ignore")


class InstallmentDraft(Draft):
    """One installment of a plan submitted with its project"""

    amount: Amount
    due_date: DueDate


class InstallmentCreateDraft(InstallmentDraft):
    installment_number: int = Field(gt=0)


class InstallmentUpdateDraft(Draft):
    amount: Optional[Amount] = None
    installment_number: Optional[int] = Field(default=None, gt=0)
    due_date: Optional[DueDate] = None


class ProjectDraft(Draft):
    title: Title
    total_budget: Budget
    payment_type: PaymentType
    installments: Optional[List[InstallmentDraft]] = None


class ProjectUpdateDraft(Draft):
    title: Optional[Title] = None
    total_budget: Optional[Budget] = None
    payment_type: Optional[PaymentType] = None
    installments: Optional[List[InstallmentDraft]] = None


class TransactionDraft(Draft):
    project_id: uuid.UUID
    amount: Amount
    notes: Notes
    transaction_date: Optional[TransactionDate] = None
    installment_id: Optional[uuid.UUID] = None


class TransactionUpdateDraft(Draft):
    amount: Optional[Amount] = None
    notes: Optional[Notes] = None
    transaction_date: Optional[TransactionDate] = None
    # Explicit None unlinks the transaction from its installment
    installment_id: Optional[uuid.UUID] = None


class TeamMemberDraft(Draft):
    name: str = Field(min_length=2, max_length=255)
    email: str = Field(pattern=EMAIL_PATTERN, max_length=255)
    role: Optional[str] = Field(default=None, max_length=100)
    hourly_rate: Optional[Amount] = None


class TeamMemberUpdateDraft(Draft):
    name: Optional[str] = Field(default=None, min_length=2, max_length=255)
    email: Optional[str] = Field(default=None, pattern=EMAIL_PATTERN, max_length=255)
    role: Optional[str] = Field(default=None, max_length=100)
    hourly_rate: Optional[Amount] = None
    is_active: Optional[bool] = None


def _field_error(error: Mapping[str, Any]) -> FieldError:
    field = ".".join(str(part) for part in error["loc"]) or "__root__"
    return FieldError(field=field, code=error["type"], message=error["msg"])


def validate_payload(model: Type[DraftT], data: Mapping[str, Any], context: ValidationContext) -> DraftT:
    """
    Validate a payload against a draft model.

    Raises:
        ValidationFailure: with one FieldError per violated field
    """
    try:
        return model.model_validate(dict(data), context=context)
    except ValidationError as exc:
        raise ValidationFailure([_field_error(error) for error in exc.errors()]) from exc

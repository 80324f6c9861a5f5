"""Unit tests for payload shape validation"""

import uuid
import pytest
from datetime import date, timedelta
from decimal import Decimal

from budget_tracker.config import Settings
from budget_tracker.domain.exceptions import ValidationFailure
from budget_tracker.domain.models import PaymentType
from budget_tracker.domain.validation import (
    InstallmentUpdateDraft,
    ProjectDraft,
    TeamMemberDraft,
    TransactionDraft,
    ValidationContext,
    validate_payload,
)

TODAY = date(2025, 3, 1)


@pytest.fixture
def context() -> ValidationContext:
    return ValidationContext(today=TODAY, settings=Settings(_env_file=None))


def test_project_draft_valid(context: ValidationContext):
    draft = validate_payload(
        ProjectDraft,
        {
            "title": "  Mobile app  ",
            "total_budget": Decimal("2500.00"),
            "payment_type": "installment",
            "installments": [{"amount": "2500.00", "due_date": TODAY}],
        },
        context,
    )

    assert draft.title == "Mobile app"
    assert draft.payment_type == PaymentType.INSTALLMENT
    assert draft.installments[0].amount == Decimal("2500.00")


def test_project_draft_collects_every_field_error(context: ValidationContext):
    """Test all offending fields are reported at once"""
    with pytest.raises(ValidationFailure) as exc_info:
        validate_payload(
            ProjectDraft,
            {"title": "ab", "total_budget": Decimal("-5"), "payment_type": "monthly"},
            context,
        )

    assert set(exc_info.value.fields) == {"title", "total_budget", "payment_type"}
    assert exc_info.value.first_error is not None


def test_budget_rejects_more_than_two_decimals(context: ValidationContext):
    with pytest.raises(ValidationFailure) as exc_info:
        validate_payload(
            ProjectDraft, {"title": "Logo", "total_budget": Decimal("10.001"), "payment_type": "single"}, context
        )

    assert exc_info.value.fields == ["total_budget"]


def test_budget_ceiling(context: ValidationContext):
    with pytest.raises(ValidationFailure) as exc_info:
        validate_payload(
            ProjectDraft,
            {"title": "Logo", "total_budget": Decimal("1000000000.00"), "payment_type": "single"},
            context,
        )

    assert exc_info.value.errors[0].code == "budget_ceiling"


def test_transaction_amount_ceiling(context: ValidationContext):
    with pytest.raises(ValidationFailure) as exc_info:
        validate_payload(
            TransactionDraft,
            {"project_id": uuid.uuid4(), "amount": Decimal("100000000000000000000.00"), "notes": "Huge"},
            context,
        )

    assert exc_info.value.fields == ["amount"]
    assert exc_info.value.errors[0].code == "amount_ceiling"


def test_installment_amount_ceiling(context: ValidationContext):
    with pytest.raises(ValidationFailure) as exc_info:
        validate_payload(InstallmentUpdateDraft, {"amount": Decimal("1000000000.00")}, context)

    assert exc_info.value.errors[0].code == "amount_ceiling"


def test_amount_at_ceiling_accepted(context: ValidationContext):
    draft = validate_payload(
        TransactionDraft,
        {"project_id": uuid.uuid4(), "amount": Decimal("999999999.99"), "notes": "Largest payment"},
        context,
    )

    assert draft.amount == Decimal("999999999.99")


def test_title_length_limit(context: ValidationContext):
    with pytest.raises(ValidationFailure) as exc_info:
        validate_payload(
            ProjectDraft, {"title": "x" * 256, "total_budget": Decimal("10"), "payment_type": "single"}, context
        )

    assert exc_info.value.errors[0].code == "title_too_long"


def test_installment_due_date_in_past_points_at_nested_field(context: ValidationContext):
    with pytest.raises(ValidationFailure) as exc_info:
        validate_payload(
            ProjectDraft,
            {
                "title": "Shop",
                "total_budget": Decimal("200"),
                "payment_type": "installment",
                "installments": [
                    {"amount": Decimal("100"), "due_date": TODAY},
                    {"amount": Decimal("100"), "due_date": TODAY - timedelta(days=1)},
                ],
            },
            context,
        )

    error = exc_info.value.first_error
    assert error.field == "installments.1.due_date"
    assert error.code == "due_date_in_past"


def test_transaction_date_window(context: ValidationContext):
    base = {"project_id": uuid.uuid4(), "amount": Decimal("10"), "notes": "Wire transfer"}

    with pytest.raises(ValidationFailure) as future:
        validate_payload(TransactionDraft, {**base, "transaction_date": TODAY + timedelta(days=1)}, context)
    assert future.value.errors[0].code == "transaction_date_in_future"

    with pytest.raises(ValidationFailure) as too_old:
        validate_payload(TransactionDraft, {**base, "transaction_date": TODAY - timedelta(days=366)}, context)
    assert too_old.value.errors[0].code == "transaction_date_too_old"

    oldest = validate_payload(TransactionDraft, {**base, "transaction_date": TODAY - timedelta(days=365)}, context)
    assert oldest.transaction_date == TODAY - timedelta(days=365)


def test_transaction_history_window_is_configurable():
    context = ValidationContext(today=TODAY, settings=Settings(_env_file=None, transaction_history_days=30))

    with pytest.raises(ValidationFailure):
        validate_payload(
            TransactionDraft,
            {
                "project_id": uuid.uuid4(),
                "amount": Decimal("10"),
                "notes": "Cheque",
                "transaction_date": TODAY - timedelta(days=31),
            },
            context,
        )


def test_transaction_notes_required(context: ValidationContext):
    with pytest.raises(ValidationFailure) as exc_info:
        validate_payload(
            TransactionDraft, {"project_id": uuid.uuid4(), "amount": Decimal("10"), "notes": "   "}, context
        )

    assert exc_info.value.fields == ["notes"]


def test_transaction_notes_length(context: ValidationContext):
    with pytest.raises(ValidationFailure) as exc_info:
        validate_payload(
            TransactionDraft, {"project_id": uuid.uuid4(), "amount": Decimal("10"), "notes": "n" * 1001}, context
        )

    assert exc_info.value.errors[0].code == "notes_too_long"


def test_partial_update_checks_only_given_fields(context: ValidationContext):
    draft = validate_payload(InstallmentUpdateDraft, {"amount": Decimal("50.00")}, context)

    assert draft.amount == Decimal("50.00")
    assert draft.due_date is None


def test_team_member_email_format(context: ValidationContext):
    with pytest.raises(ValidationFailure) as exc_info:
        validate_payload(TeamMemberDraft, {"name": "Ana", "email": "not-an-email"}, context)

    assert exc_info.value.fields == ["email"]


def test_drafts_require_context():
    with pytest.raises(RuntimeError):
        ProjectDraft.model_validate({"title": "Logo", "total_budget": "10", "payment_type": "single"})

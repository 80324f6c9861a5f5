"""Unit tests for business rules"""

import uuid
import pytest
from datetime import date, timedelta

from budget_tracker.domain.exceptions import BusinessRuleFailure
from budget_tracker.domain.models import OveragePolicy, PaymentType
from budget_tracker.domain.rules import (
    assess_overage,
    check_budget_change,
    check_installment_belongs,
    check_installment_deletable,
    check_installment_editable,
    check_installment_plan,
    check_installment_total,
    check_schedule_order,
    check_unique_number,
    sums_match,
)

DAY = date(2025, 3, 1)


def test_sums_match_within_one_cent():
    assert sums_match(250000, 250000, 1)
    assert sums_match(249999, 250000, 1)
    assert not sums_match(249998, 250000, 1)


def test_plan_must_sum_to_budget():
    plan = [(150000, DAY), (90000, DAY + timedelta(days=30))]

    with pytest.raises(BusinessRuleFailure) as exc_info:
        check_installment_plan(PaymentType.INSTALLMENT, 250000, plan, 1)

    assert exc_info.value.code == "INSTALLMENT_MISMATCH"
    assert [error.field for error in exc_info.value.errors] == ["installments"]


def test_plan_within_tolerance_is_accepted():
    plan = [(150000, DAY), (99999, DAY + timedelta(days=30))]
    check_installment_plan(PaymentType.INSTALLMENT, 250000, plan, 1)


def test_installment_project_needs_installments():
    with pytest.raises(BusinessRuleFailure) as exc_info:
        check_installment_plan(PaymentType.INSTALLMENT, 1000, [], 1)

    assert exc_info.value.code == "INSTALLMENTS_REQUIRED"


def test_single_project_rejects_installments():
    with pytest.raises(BusinessRuleFailure) as exc_info:
        check_installment_plan(PaymentType.SINGLE, 1000, [(1000, DAY)], 1)

    assert exc_info.value.code == "INSTALLMENTS_NOT_ALLOWED"


def test_plan_dates_must_ascend():
    """Test out-of-order due dates are reported with their positions"""
    plan = [(500, DAY + timedelta(days=30)), (500, DAY + timedelta(days=30)), (500, DAY)]

    with pytest.raises(BusinessRuleFailure) as exc_info:
        check_installment_plan(PaymentType.INSTALLMENT, 1500, plan, 1)

    assert exc_info.value.code == "INVALID_DATE_RANGE"
    assert [error.field for error in exc_info.value.errors] == [
        "installments.1.due_date",
        "installments.2.due_date",
    ]


def test_plan_reports_order_and_total_together():
    """Test an out-of-order plan that also misses the budget reports both problems"""
    plan = [(150000, DAY + timedelta(days=40)), (90000, DAY + timedelta(days=10))]

    with pytest.raises(BusinessRuleFailure) as exc_info:
        check_installment_plan(PaymentType.INSTALLMENT, 250000, plan, 1)

    assert exc_info.value.code == "INVALID_DATE_RANGE"
    assert [(error.field, error.code) for error in exc_info.value.errors] == [
        ("installments.1.due_date", "due_date_not_ascending"),
        ("installments", "installment_mismatch"),
    ]


def test_schedule_order_follows_installment_numbers():
    check_schedule_order([(2, DAY + timedelta(days=10)), (1, DAY)])

    with pytest.raises(BusinessRuleFailure) as exc_info:
        check_schedule_order([(1, DAY + timedelta(days=10)), (3, DAY + timedelta(days=40)), (2, DAY + timedelta(days=50))])

    assert exc_info.value.code == "INVALID_DATE_RANGE"


def test_unique_installment_number():
    check_unique_number([1, 2], 3)

    with pytest.raises(BusinessRuleFailure) as exc_info:
        check_unique_number([1, 2], 2)

    assert exc_info.value.code == "DUPLICATE_INSTALLMENT"


def test_installment_total_may_not_exceed_budget():
    check_installment_total(budget_cents=1000, other_installments_cents=600, amount_cents=400, tolerance_cents=1)
    check_installment_total(budget_cents=1000, other_installments_cents=600, amount_cents=401, tolerance_cents=1)

    with pytest.raises(BusinessRuleFailure) as exc_info:
        check_installment_total(budget_cents=1000, other_installments_cents=600, amount_cents=402, tolerance_cents=1)

    assert exc_info.value.code == "INSTALLMENT_BUDGET_EXCEEDED"


def test_referenced_installment_is_frozen():
    check_installment_editable(has_transactions=True, changes_amount_or_number=False)
    check_installment_editable(has_transactions=False, changes_amount_or_number=True)

    with pytest.raises(BusinessRuleFailure) as exc_info:
        check_installment_editable(has_transactions=True, changes_amount_or_number=True)

    assert exc_info.value.code == "INSTALLMENT_HAS_TRANSACTIONS"


def test_installment_deletion_guards():
    check_installment_deletable(False, 2, PaymentType.INSTALLMENT)

    with pytest.raises(BusinessRuleFailure) as referenced:
        check_installment_deletable(True, 2, PaymentType.INSTALLMENT)
    assert referenced.value.code == "INSTALLMENT_HAS_TRANSACTIONS"

    with pytest.raises(BusinessRuleFailure) as last:
        check_installment_deletable(False, 1, PaymentType.INSTALLMENT)
    assert last.value.code == "LAST_INSTALLMENT"


def test_budget_frozen_once_paid():
    check_budget_change(False)

    with pytest.raises(BusinessRuleFailure) as exc_info:
        check_budget_change(True)

    assert exc_info.value.code == "PROJECT_HAS_TRANSACTIONS"


def test_installment_must_belong_to_project():
    project_id = uuid.uuid4()
    check_installment_belongs(project_id, project_id)

    with pytest.raises(BusinessRuleFailure) as exc_info:
        check_installment_belongs(uuid.uuid4(), project_id)

    assert exc_info.value.code == "INSTALLMENT_PROJECT_MISMATCH"
    assert exc_info.value.errors[0].field == "installment_id"


def test_overage_warns_by_default():
    warnings = assess_overage(1200, project_remaining_cents=1000, installment_remaining_cents=500, policy=OveragePolicy.WARN)

    assert len(warnings) == 2
    assert "project" in warnings[0]
    assert "installment" in warnings[1]


def test_no_overage_no_warning():
    assert assess_overage(500, 1000, 500, OveragePolicy.REJECT) == []
    assert assess_overage(500, 1000, None, OveragePolicy.WARN) == []


def test_overage_rejected_by_policy():
    with pytest.raises(BusinessRuleFailure) as exc_info:
        assess_overage(1200, 1000, None, OveragePolicy.REJECT)

    assert exc_info.value.code == "OVERAGE_NOT_ALLOWED"

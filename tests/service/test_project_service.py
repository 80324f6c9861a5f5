"""Service tests for project creation, updates and deletion"""

import uuid
import pytest
from datetime import timedelta
from decimal import Decimal
from sqlalchemy.exc import SQLAlchemyError

from budget_tracker.domain.exceptions import (
    BusinessRuleFailure,
    NotFoundFailure,
    RollbackFailure,
    StoreFailure,
    ValidationFailure,
)
from budget_tracker.infrastructure.database.models import (
    PaymentInstallment,
    PaymentTransaction,
    Project,
    ProjectTeamMember,
)
from budget_tracker.infrastructure.database.repositories import (
    InstallmentRepository,
    ProjectFilters,
    ProjectRepository,
    TransactionFilters,
)
from budget_tracker.services.projects import ProjectService
from conftest import OTHER_OWNER, TODAY


def test_create_single_project(project_service: ProjectService, db):
    result = project_service.create_project(
        title="Logo design", total_budget=Decimal("800.00"), payment_type="single"
    )

    assert result.project.total_budget_cents == 80000
    assert result.project.payment_type == "single"
    assert result.installments == []
    assert result.warnings == []
    assert db.query(Project).count() == 1


def test_create_installment_project(installment_project, db):
    installments = installment_project.installments

    assert [inst.installment_number for inst in installments] == [1, 2]
    assert [inst.amount_cents for inst in installments] == [150000, 100000]
    assert all(inst.is_paid is False for inst in installments)
    assert db.query(PaymentInstallment).count() == 2


def test_create_rejects_mismatched_plan(project_service: ProjectService, db):
    with pytest.raises(BusinessRuleFailure) as exc_info:
        project_service.create_project(
            title="Website",
            total_budget=Decimal("2500.00"),
            payment_type="installment",
            installments=[
                {"amount": Decimal("1500.00"), "due_date": TODAY + timedelta(days=10)},
                {"amount": Decimal("900.00"), "due_date": TODAY + timedelta(days=40)},
            ],
        )

    assert exc_info.value.code == "INSTALLMENT_MISMATCH"
    assert db.query(Project).count() == 0


def test_create_rejects_invalid_fields(project_service: ProjectService, db):
    with pytest.raises(ValidationFailure) as exc_info:
        project_service.create_project(title="  ", total_budget=Decimal("0"), payment_type="single")

    assert set(exc_info.value.fields) == {"title", "total_budget"}
    assert db.query(Project).count() == 0


def test_create_rolls_back_project_when_installments_fail(project_service: ProjectService, db, monkeypatch):
    """Test no project survives an installment insert failure"""

    attempted = []

    def failing_add_many(self, project_id, plan):
        attempted.append(project_id)
        raise SQLAlchemyError("disk full")

    monkeypatch.setattr(InstallmentRepository, "add_many", failing_add_many)

    with pytest.raises(StoreFailure) as exc_info:
        project_service.create_project(
            title="Website",
            total_budget=Decimal("100.00"),
            payment_type="installment",
            installments=[{"amount": Decimal("100.00"), "due_date": TODAY}],
        )

    assert not isinstance(exc_info.value, RollbackFailure)
    with pytest.raises(NotFoundFailure):
        project_service.get_project(attempted[0])
    assert db.query(Project).count() == 0
    assert db.query(PaymentInstallment).count() == 0


def test_compensation_removes_already_committed_project(project_service: ProjectService, db, monkeypatch):
    """Test the project is deleted explicitly when it got committed before the failure"""

    def commit_then_fail(self, project_id, plan):
        self.db.commit()
        raise SQLAlchemyError("connection lost")

    monkeypatch.setattr(InstallmentRepository, "add_many", commit_then_fail)

    with pytest.raises(StoreFailure):
        project_service.create_project(
            title="Website",
            total_budget=Decimal("100.00"),
            payment_type="installment",
            installments=[{"amount": Decimal("100.00"), "due_date": TODAY}],
        )

    assert db.query(Project).count() == 0


def test_failed_compensation_is_fatal(project_service: ProjectService, db, monkeypatch):
    def commit_then_fail(self, project_id, plan):
        self.db.commit()
        raise SQLAlchemyError("connection lost")

    def failing_delete(self, project_id):
        raise SQLAlchemyError("still down")

    monkeypatch.setattr(InstallmentRepository, "add_many", commit_then_fail)
    monkeypatch.setattr(ProjectRepository, "delete_by_id", failing_delete)

    with pytest.raises(RollbackFailure):
        project_service.create_project(
            title="Website",
            total_budget=Decimal("100.00"),
            payment_type="installment",
            installments=[{"amount": Decimal("100.00"), "due_date": TODAY}],
        )


def test_team_assignment_failure_is_partial_success(project_service: ProjectService, db):
    result = project_service.create_project(
        title="Branding",
        total_budget=Decimal("500.00"),
        payment_type="single",
        team_member_ids=[uuid.uuid4()],
    )

    assert len(result.warnings) == 1
    assert "team" in result.warnings[0]
    assert db.query(Project).count() == 1
    assert db.query(ProjectTeamMember).count() == 0


def test_create_with_team(project_service: ProjectService, team_service, db):
    member = team_service.create_team_member(name="Ana Lima", email="ana@example.com")

    result = project_service.create_project(
        title="Branding",
        total_budget=Decimal("500.00"),
        payment_type="single",
        team_member_ids=[member.id],
    )

    assert result.warnings == []
    assert [m.email for m in team_service.project_team(result.project.id)] == ["ana@example.com"]


def test_update_title(installment_project, project_service: ProjectService):
    project = project_service.update_project(installment_project.project.id, title="  Website v2 ")

    assert project.title == "Website v2"


def test_budget_frozen_once_paid(installment_project, project_service: ProjectService, transaction_service):
    project_id = installment_project.project.id
    transaction_service.create_transaction(project_id, Decimal("100.00"), "Deposit")

    with pytest.raises(BusinessRuleFailure) as exc_info:
        project_service.update_project(project_id, total_budget=Decimal("3000.00"))

    assert exc_info.value.code == "PROJECT_HAS_TRANSACTIONS"


def test_budget_change_must_match_installments(installment_project, project_service: ProjectService):
    with pytest.raises(BusinessRuleFailure) as exc_info:
        project_service.update_project(installment_project.project.id, total_budget=Decimal("3000.00"))

    assert exc_info.value.code == "INSTALLMENT_MISMATCH"


def test_single_project_budget_change(project_service: ProjectService):
    created = project_service.create_project(title="Logo", total_budget=Decimal("800.00"), payment_type="single")

    project = project_service.update_project(created.project.id, total_budget=Decimal("950.50"))

    assert project.total_budget_cents == 95050


def test_switch_to_installments_requires_plan(project_service: ProjectService, db):
    created = project_service.create_project(title="Logo", total_budget=Decimal("800.00"), payment_type="single")

    with pytest.raises(BusinessRuleFailure) as exc_info:
        project_service.update_project(created.project.id, payment_type="installment")
    assert exc_info.value.code == "INSTALLMENTS_REQUIRED"

    project = project_service.update_project(
        created.project.id,
        payment_type="installment",
        installments=[
            {"amount": Decimal("400.00"), "due_date": TODAY + timedelta(days=7)},
            {"amount": Decimal("400.00"), "due_date": TODAY + timedelta(days=37)},
        ],
    )

    assert project.payment_type == "installment"
    assert db.query(PaymentInstallment).filter(PaymentInstallment.project_id == project.id).count() == 2


def test_switch_to_single_drops_installments(installment_project, project_service: ProjectService, db):
    project = project_service.update_project(installment_project.project.id, payment_type="single")

    assert project.payment_type == "single"
    assert db.query(PaymentInstallment).count() == 0


def test_switch_to_single_blocked_by_installment_payments(
    installment_project, project_service: ProjectService, transaction_service
):
    project_id = installment_project.project.id
    transaction_service.create_transaction(
        project_id, Decimal("100.00"), "Deposit", installment_id=installment_project.installments[0].id
    )

    with pytest.raises(BusinessRuleFailure) as exc_info:
        project_service.update_project(project_id, payment_type="single")

    assert exc_info.value.code == "INVALID_PAYMENT_TYPE"


def test_raise_budget_with_new_plan(installment_project, project_service: ProjectService, summary_service, db):
    """Test raising an installment project's budget together with a replacement plan"""
    project_id = installment_project.project.id

    project = project_service.update_project(
        project_id,
        total_budget=Decimal("3000.00"),
        installments=[
            {"amount": Decimal("1500.00"), "due_date": TODAY + timedelta(days=10)},
            {"amount": Decimal("1000.00"), "due_date": TODAY + timedelta(days=40)},
            {"amount": Decimal("500.00"), "due_date": TODAY + timedelta(days=70)},
        ],
    )

    assert project.total_budget_cents == 300000
    rows = db.query(PaymentInstallment).filter(PaymentInstallment.project_id == project_id).all()
    assert sorted((row.installment_number, row.amount_cents) for row in rows) == [(1, 150000), (2, 100000), (3, 50000)]
    assert summary_service.check_installment_balance(project_id).is_valid is True


def test_replacement_plan_must_match_budget(installment_project, project_service: ProjectService, db):
    with pytest.raises(BusinessRuleFailure) as exc_info:
        project_service.update_project(
            installment_project.project.id,
            total_budget=Decimal("3000.00"),
            installments=[{"amount": Decimal("2500.00"), "due_date": TODAY + timedelta(days=5)}],
        )

    assert exc_info.value.code == "INSTALLMENT_MISMATCH"
    assert db.query(PaymentInstallment).count() == 2
    assert project_service.get_project(installment_project.project.id).total_budget_cents == 250000


def test_plan_not_replaced_once_installments_are_paid(
    installment_project, project_service: ProjectService, transaction_service
):
    project_id = installment_project.project.id
    transaction_service.create_transaction(
        project_id, Decimal("100.00"), "Deposit", installment_id=installment_project.installments[0].id
    )

    with pytest.raises(BusinessRuleFailure) as exc_info:
        project_service.update_project(
            project_id,
            installments=[
                {"amount": Decimal("1250.00"), "due_date": TODAY + timedelta(days=5)},
                {"amount": Decimal("1250.00"), "due_date": TODAY + timedelta(days=35)},
            ],
        )

    assert exc_info.value.code == "INSTALLMENT_HAS_TRANSACTIONS"


def test_delete_cascades(installment_project, project_service: ProjectService, transaction_service, db):
    project_id = installment_project.project.id
    transaction_service.create_transaction(
        project_id, Decimal("1500.00"), "First", installment_id=installment_project.installments[0].id
    )
    transaction_service.create_transaction(project_id, Decimal("50.00"), "Unassigned tip")

    project_service.delete_project(project_id)

    assert db.query(Project).count() == 0
    assert db.query(PaymentInstallment).count() == 0
    assert db.query(PaymentTransaction).count() == 0


def test_other_owner_cannot_see_project(installment_project, services):
    other = services(ProjectService, owner_id=OTHER_OWNER)

    with pytest.raises(NotFoundFailure):
        other.get_project(installment_project.project.id)
    with pytest.raises(NotFoundFailure):
        other.delete_project(installment_project.project.id)
    assert other.list_projects().total_count == 0


def test_list_projects_filters_and_pages(project_service: ProjectService, transaction_service):
    paid = project_service.create_project(title="Alpha logo", total_budget=Decimal("100.00"), payment_type="single")
    project_service.create_project(title="Beta site", total_budget=Decimal("900.00"), payment_type="single")
    project_service.create_project(title="Gamma app", total_budget=Decimal("5000.00"), payment_type="single")
    transaction_service.create_transaction(paid.project.id, Decimal("100.00"), "Paid in full")

    completed = project_service.list_projects(ProjectFilters(is_completed=True))
    assert [p.title for p in completed.items] == ["Alpha logo"]

    open_projects = project_service.list_projects(ProjectFilters(is_completed=False, sort_by="title", descending=False))
    assert [p.title for p in open_projects.items] == ["Beta site", "Gamma app"]

    by_budget = project_service.list_projects(ProjectFilters(min_budget_cents=50000, max_budget_cents=100000))
    assert [p.title for p in by_budget.items] == ["Beta site"]

    searched = project_service.list_projects(ProjectFilters(search="app"))
    assert [p.title for p in searched.items] == ["Gamma app"]

    page = project_service.list_projects(ProjectFilters(sort_by="title", descending=False), page=2, page_size=2)
    assert [p.title for p in page.items] == ["Gamma app"]
    assert page.total_count == 3
    assert page.total_pages == 2
    assert page.has_previous is True
    assert page.has_next is False


def test_search_treats_wildcards_literally(project_service: ProjectService, transaction_service):
    sale = project_service.create_project(title="50% off campaign", total_budget=Decimal("100.00"), payment_type="single")
    project_service.create_project(title="500 flyers", total_budget=Decimal("100.00"), payment_type="single")
    project_service.create_project(title="Print_run", total_budget=Decimal("100.00"), payment_type="single")
    project_service.create_project(title="Print run", total_budget=Decimal("100.00"), payment_type="single")

    assert [p.title for p in project_service.list_projects(ProjectFilters(search="50%")).items] == ["50% off campaign"]
    assert [p.title for p in project_service.list_projects(ProjectFilters(search="t_r")).items] == ["Print_run"]

    transaction_service.create_transaction(sale.project.id, Decimal("10.00"), "Paid 10% upfront")
    transaction_service.create_transaction(sale.project.id, Decimal("10.00"), "Paid 100 upfront")
    found = transaction_service.list_transactions(TransactionFilters(search="10%"))
    assert [t.notes for t in found.items] == ["Paid 10% upfront"]

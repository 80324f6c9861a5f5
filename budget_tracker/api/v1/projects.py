"""/v1/projects - project lifecycle, summaries and per-project reads"""

import uuid
from dataclasses import asdict
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response

from budget_tracker.api.dependencies import (
    get_installment_service,
    get_project_service,
    get_summary_service,
    get_team_service,
)
from budget_tracker.api.v1.schemas import (
    InstallmentBalanceResponse,
    InstallmentCreateRequest,
    InstallmentSchema,
    InstallmentSummaryResponse,
    ProjectCreatedResponse,
    ProjectCreateRequest,
    ProjectDetailResponse,
    ProjectListResponse,
    ProjectResponse,
    ProjectSummaryResponse,
    ProjectUpdateRequest,
    TeamAssignmentRequest,
    TeamMemberResponse,
    TimelinePointResponse,
)
from budget_tracker.infrastructure.database.repositories import ProjectFilters
from budget_tracker.services.installments import InstallmentService
from budget_tracker.services.projects import ProjectService
from budget_tracker.services.summaries import SummaryService
from budget_tracker.services.team import TeamService
from budget_tracker.utils.money import to_cents

router = APIRouter()


@router.post("/projects", response_model=ProjectCreatedResponse, status_code=201)
def create_project(request_body: ProjectCreateRequest, service: ProjectService = Depends(get_project_service)):
    """
    Create a project, with its installment plan for installment payments.

    Returns:
        The project and its installments; warnings list follow-up steps
        (team assignment) that failed without undoing the project
    """
    installments = (
        [item.model_dump() for item in request_body.installments] if request_body.installments is not None else None
    )
    result = service.create_project(
        title=request_body.title,
        total_budget=request_body.total_budget,
        payment_type=request_body.payment_type,
        installments=installments,
        team_member_ids=request_body.team_member_ids,
    )
    return ProjectCreatedResponse(
        project=ProjectResponse.from_row(result.project),
        installments=[InstallmentSchema.from_row(row) for row in result.installments],
        warnings=result.warnings,
    )


@router.get("/projects", response_model=ProjectListResponse)
def list_projects(
    payment_type: Optional[str] = Query(None, description="single | installment"),
    is_completed: Optional[bool] = Query(None),
    min_budget: Optional[Decimal] = Query(None, ge=0),
    max_budget: Optional[Decimal] = Query(None, ge=0),
    search: Optional[str] = Query(None, description="Title contains"),
    sort_by: str = Query("created_at", pattern="^(created_at|title|total_budget)$"),
    order: str = Query("desc", pattern="^(asc|desc)$"),
    page: int = Query(1, ge=1),
    page_size: Optional[int] = Query(None, ge=1),
    service: ProjectService = Depends(get_project_service),
):
    filters = ProjectFilters(
        payment_type=payment_type,
        is_completed=is_completed,
        min_budget_cents=to_cents(min_budget) if min_budget is not None else None,
        max_budget_cents=to_cents(max_budget) if max_budget is not None else None,
        search=search,
        sort_by=sort_by,
        descending=order == "desc",
    )
    result = service.list_projects(filters, page=page, page_size=page_size)
    return ProjectListResponse(
        items=[ProjectResponse.from_row(row) for row in result.items],
        page=result.page,
        page_size=result.page_size,
        total_count=result.total_count,
        total_pages=result.total_pages,
        has_next=result.has_next,
        has_previous=result.has_previous,
    )


def _detail(project) -> ProjectDetailResponse:
    return ProjectDetailResponse(
        **ProjectResponse.from_row(project).model_dump(),
        installments=[InstallmentSchema.from_row(row) for row in project.installments],
    )


@router.get("/projects/{project_id}", response_model=ProjectDetailResponse)
def get_project(project_id: uuid.UUID, service: ProjectService = Depends(get_project_service)):
    return _detail(service.get_project(project_id))


@router.patch("/projects/{project_id}", response_model=ProjectDetailResponse)
def update_project(
    project_id: uuid.UUID,
    request_body: ProjectUpdateRequest,
    service: ProjectService = Depends(get_project_service),
):
    changes = request_body.model_dump(exclude_unset=True, exclude_none=True)
    return _detail(service.update_project(project_id, **changes))


@router.delete("/projects/{project_id}", status_code=204)
def delete_project(project_id: uuid.UUID, service: ProjectService = Depends(get_project_service)):
    """Delete a project with all its installments and transactions"""
    service.delete_project(project_id)
    return Response(status_code=204)


@router.get("/projects/{project_id}/summary", response_model=ProjectSummaryResponse)
def get_project_summary(project_id: uuid.UUID, service: SummaryService = Depends(get_summary_service)):
    return ProjectSummaryResponse(**asdict(service.get_project_summary(project_id)))


@router.get("/projects/{project_id}/installments", response_model=List[InstallmentSummaryResponse])
def get_installment_summary(project_id: uuid.UUID, service: SummaryService = Depends(get_summary_service)):
    return [InstallmentSummaryResponse(**asdict(item)) for item in service.get_installment_summary(project_id)]


@router.post("/projects/{project_id}/installments", response_model=InstallmentSchema, status_code=201)
def create_installment(
    project_id: uuid.UUID,
    request_body: InstallmentCreateRequest,
    service: InstallmentService = Depends(get_installment_service),
):
    installment = service.create_installment(
        project_id,
        installment_number=request_body.installment_number,
        amount=request_body.amount,
        due_date=request_body.due_date,
    )
    return InstallmentSchema.from_row(installment)


@router.get("/projects/{project_id}/installments/balance", response_model=InstallmentBalanceResponse)
def check_installment_balance(project_id: uuid.UUID, service: SummaryService = Depends(get_summary_service)):
    return InstallmentBalanceResponse(**asdict(service.check_installment_balance(project_id)))


@router.get("/projects/{project_id}/timeline", response_model=List[TimelinePointResponse])
def get_payment_timeline(project_id: uuid.UUID, service: SummaryService = Depends(get_summary_service)):
    return [TimelinePointResponse(**asdict(point)) for point in service.get_payment_timeline(project_id)]


@router.get("/projects/{project_id}/team", response_model=List[TeamMemberResponse])
def get_project_team(project_id: uuid.UUID, service: TeamService = Depends(get_team_service)):
    return [TeamMemberResponse.from_row(member) for member in service.project_team(project_id)]


@router.put("/projects/{project_id}/team", response_model=List[TeamMemberResponse])
def assign_project_team(
    project_id: uuid.UUID,
    request_body: TeamAssignmentRequest,
    service: TeamService = Depends(get_team_service),
):
    """Replace the project's team"""
    service.assign_to_project(project_id, request_body.team_member_ids, request_body.role_in_project)
    return [TeamMemberResponse.from_row(member) for member in service.project_team(project_id)]

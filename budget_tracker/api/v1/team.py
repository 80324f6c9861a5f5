"""/v1/team-members - team directory"""

import uuid
from typing import List

from fastapi import APIRouter, Depends, Query, Response

from budget_tracker.api.dependencies import get_team_service
from budget_tracker.api.v1.schemas import TeamMemberCreateRequest, TeamMemberResponse, TeamMemberUpdateRequest
from budget_tracker.services.team import TeamService

router = APIRouter()


@router.post("/team-members", response_model=TeamMemberResponse, status_code=201)
def create_team_member(request_body: TeamMemberCreateRequest, service: TeamService = Depends(get_team_service)):
    member = service.create_team_member(
        name=request_body.name,
        email=request_body.email,
        role=request_body.role,
        hourly_rate=request_body.hourly_rate,
    )
    return TeamMemberResponse.from_row(member)


@router.get("/team-members", response_model=List[TeamMemberResponse])
def list_team_members(
    include_inactive: bool = Query(False),
    service: TeamService = Depends(get_team_service),
):
    return [TeamMemberResponse.from_row(member) for member in service.list_team_members(not include_inactive)]


@router.patch("/team-members/{member_id}", response_model=TeamMemberResponse)
def update_team_member(
    member_id: uuid.UUID,
    request_body: TeamMemberUpdateRequest,
    service: TeamService = Depends(get_team_service),
):
    changes = request_body.model_dump(exclude_unset=True, exclude_none=True)
    return TeamMemberResponse.from_row(service.update_team_member(member_id, **changes))


@router.delete("/team-members/{member_id}", status_code=204)
def deactivate_team_member(member_id: uuid.UUID, service: TeamService = Depends(get_team_service)):
    """Deactivate a team member; the member stays on the projects it is assigned to"""
    service.deactivate_team_member(member_id)
    return Response(status_code=204)

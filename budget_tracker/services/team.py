"""Team members and their assignment to projects"""

import logging
import uuid
from decimal import Decimal
from typing import List, Optional, Sequence

from sqlalchemy.exc import IntegrityError

from budget_tracker.domain.exceptions import BusinessRuleFailure, DomainException, FieldError, NotFoundFailure
from budget_tracker.domain.validation import TeamMemberDraft, TeamMemberUpdateDraft, validate_payload
from budget_tracker.infrastructure.database.models import ProjectTeamMember, TeamMember
from budget_tracker.infrastructure.database.repositories import ProjectRepository, TeamRepository
from budget_tracker.services.base import Service
from budget_tracker.utils.money import to_cents

logger = logging.getLogger(__name__)


def _duplicate_email() -> BusinessRuleFailure:
    return BusinessRuleFailure(
        "DUPLICATE_ENTRY",
        "A team member with this email already exists",
        [FieldError("email", "duplicate", "Email already registered")],
    )


class TeamService(Service):
    """Team management; no financial figure depends on it"""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.team = TeamRepository(self.db, self.owner_id)
        self.projects = ProjectRepository(self.db, self.owner_id)

    def integrity_failure(self, exc: IntegrityError) -> DomainException:
        return _duplicate_email()

    def create_team_member(
        self, name: str, email: str, role: Optional[str] = None, hourly_rate: Optional[Decimal] = None
    ) -> TeamMember:
        with self.unit_of_work("create_team_member"):
            draft = validate_payload(
                TeamMemberDraft,
                {"name": name, "email": email, "role": role, "hourly_rate": hourly_rate},
                self.validation_context(),
            )
            if self.team.email_taken(draft.email):
                raise _duplicate_email()
            member = self.team.add(
                name=draft.name,
                email=draft.email.lower(),
                role=draft.role or None,
                hourly_rate_cents=to_cents(draft.hourly_rate) if draft.hourly_rate is not None else None,
            )
        return member

    def _member(self, member_id: uuid.UUID) -> TeamMember:
        member = self.team.get(member_id)
        if member is None:
            raise NotFoundFailure("Team member", member_id)
        return member

    def update_team_member(
        self,
        member_id: uuid.UUID,
        name: Optional[str] = None,
        email: Optional[str] = None,
        role: Optional[str] = None,
        hourly_rate: Optional[Decimal] = None,
        is_active: Optional[bool] = None,
    ) -> TeamMember:
        """Update a team member; omitted (None) fields are left unchanged and an empty role clears it"""
        with self.unit_of_work("update_team_member"):
            member = self._member(member_id)
            changes = {
                key: value
                for key, value in {
                    "name": name,
                    "email": email,
                    "role": role,
                    "hourly_rate": hourly_rate,
                    "is_active": is_active,
                }.items()
                if value is not None
            }
            draft = validate_payload(TeamMemberUpdateDraft, changes, self.validation_context())

            if draft.email is not None:
                if self.team.email_taken(draft.email, exclude_id=member.id):
                    raise _duplicate_email()
                member.email = draft.email.lower()
            if draft.name is not None:
                member.name = draft.name
            if draft.role is not None:
                member.role = draft.role or None
            if draft.hourly_rate is not None:
                member.hourly_rate_cents = to_cents(draft.hourly_rate)
            if draft.is_active is not None:
                member.is_active = draft.is_active
            self.db.flush()
        return member

    def deactivate_team_member(self, member_id: uuid.UUID) -> TeamMember:
        """Hide a member from the active directory; existing project assignments are kept"""
        with self.unit_of_work("deactivate_team_member"):
            member = self._member(member_id)
            member.is_active = False
            self.db.flush()
        logger.info("Team member deactivated", extra={"owner_id": self.owner_id, "team_member_id": str(member_id)})
        return member

    def list_team_members(self, active_only: bool = True) -> List[TeamMember]:
        return self.team.list(active_only=active_only)

    def assign_to_project(
        self, project_id: uuid.UUID, team_member_ids: Sequence[uuid.UUID], role_in_project: Optional[str] = None
    ) -> List[ProjectTeamMember]:
        """Replace the project's team with the given members"""
        with self.unit_of_work("assign_team"):
            if self.projects.get(project_id) is None:
                raise NotFoundFailure("Project", project_id)

            wanted = list(dict.fromkeys(team_member_ids))
            found = {member.id for member in self.team.get_many(wanted)}
            for member_id in wanted:
                if member_id not in found:
                    raise NotFoundFailure("Team member", member_id)

            assignments = self.team.replace_assignments(project_id, wanted, role_in_project)
        return assignments

    def project_team(self, project_id: uuid.UUID) -> List[TeamMember]:
        if self.projects.get(project_id) is None:
            raise NotFoundFailure("Project", project_id)
        return self.team.members_of(project_id)

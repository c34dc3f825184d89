"""Read-side use cases for assignments: listings and visibility.

Visibility of a single assignment (detail and submitted-file download):
    - ADMIN: always
    - STUDENT: own assignments only
    - TUTOR: assignments they hold, and Open assignments of their specialty
Everything else is reported as NotFound so ids of foreign records don't leak.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional

from planner.errors import Forbidden, NotFound, ValidationError
from planner.identity_access.domain import AdminPrincipal, Principal, StudentPrincipal, TutorPrincipal

from .domain import Assignment, AssignmentStatus
from .lifecycle import AssignmentRepoProtocol

MAX_PAGE_LIMIT = 100


def can_view(principal: Principal, a: Assignment) -> bool:
    if isinstance(principal, AdminPrincipal):
        return True
    if isinstance(principal, StudentPrincipal):
        return a.student_id == principal.user_id
    if isinstance(principal, TutorPrincipal):
        if a.assigned_tutor_id == principal.user_id:
            return True
        return (
            a.status is AssignmentStatus.OPEN
            and bool(principal.specialty)
            and a.program_specialty == principal.specialty
        )
    return False


def parse_status(value: Optional[str]) -> Optional[AssignmentStatus]:
    if value is None or value == "":
        return None
    try:
        return AssignmentStatus(value)
    except ValueError:
        raise ValidationError("invalid_status")


@dataclass
class AssignmentQueries:
    repo: AssignmentRepoProtocol

    def list_all(
        self,
        principal: Principal,
        *,
        status: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Dict[str, object]:
        """Admin listing with optional status filter. Returns {total, page, limit, assignments}."""
        if not isinstance(principal, AdminPrincipal):
            raise Forbidden("admin_only")
        wanted = parse_status(status)
        if page < 1:
            raise ValidationError("invalid_page")
        if limit < 1 or limit > MAX_PAGE_LIMIT:
            raise ValidationError("invalid_limit")
        items = self.repo.list_assignments(status=wanted, limit=limit, offset=(page - 1) * limit)
        return {
            "total": self.repo.count_assignments(status=wanted),
            "page": page,
            "limit": limit,
            "assignments": items,
        }

    def pending(self, principal: Principal) -> List[Assignment]:
        if not isinstance(principal, AdminPrincipal):
            raise Forbidden("admin_only")
        return self.repo.list_assignments(status=AssignmentStatus.PENDING)

    def tutor_queue(self, principal: Principal) -> List[Assignment]:
        """Open assignments whose specialty equals the tutor's (exact match)."""
        if not isinstance(principal, TutorPrincipal):
            raise Forbidden("tutor_only")
        if not principal.specialty:
            return []
        return self.repo.list_assignments(status=AssignmentStatus.OPEN, specialty=principal.specialty)

    def tutor_assignments(self, principal: Principal) -> List[Assignment]:
        if not isinstance(principal, TutorPrincipal):
            raise Forbidden("tutor_only")
        return self.repo.list_assignments(tutor_id=principal.user_id)

    def student_assignments(self, principal: Principal) -> List[Assignment]:
        if not isinstance(principal, StudentPrincipal):
            raise Forbidden("student_only")
        return self.repo.list_assignments(student_id=principal.user_id)

    def get_visible(self, principal: Principal, assignment_id: str) -> Assignment:
        found = self.repo.get_assignment(assignment_id) if assignment_id else None
        if found is None or not can_view(principal, found):
            raise NotFound("assignment_not_found")
        return found

    def submitted_file_url(self, principal: Principal, assignment_id: str) -> str:
        return self.get_visible(principal, assignment_id).file_url


__all__ = ["AssignmentQueries", "can_view", "parse_status", "MAX_PAGE_LIMIT"]

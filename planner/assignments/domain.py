"""
Assignment domain: statuses, the record type, and the lifecycle invariants.

Status model:
    Pending ──open──▶ Open ──claim──▶ Assigned ──price──▶ In Progress ──complete──▶ Completed
       └──────────assign-to-tutor───────▲   └──reject──▶ Rejected

    `Open` (released to the specialty queue, no tutor) and `Assigned` (a
    specific tutor holds it) are distinct statuses; a nullable tutor id is
    never used to tell them apart.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional


class AssignmentStatus(str, Enum):
    PENDING = "Pending"
    OPEN = "Open"
    ASSIGNED = "Assigned"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    REJECTED = "Rejected"

    @property
    def slug(self) -> str:
        return self.value.lower().replace(" ", "_")


TUTOR_HELD_STATUSES = frozenset(
    {
        AssignmentStatus.ASSIGNED,
        AssignmentStatus.IN_PROGRESS,
        AssignmentStatus.COMPLETED,
        AssignmentStatus.REJECTED,
    }
)
PRICED_STATUSES = frozenset({AssignmentStatus.IN_PROGRESS, AssignmentStatus.COMPLETED})

# Columns a transition may write. Everything else is immutable after submit.
MUTABLE_FIELDS = frozenset(
    {
        "status",
        "assigned_tutor_id",
        "tutor_charge",
        "completed_file_url",
        "completed_at",
        "is_paid",
        "paid_at",
        "payment_reference",
    }
)


@dataclass(frozen=True)
class Assignment:
    id: str
    student_id: str
    title: str
    description: str
    program_specialty: str
    file_url: str
    status: AssignmentStatus
    assigned_tutor_id: Optional[str]
    tutor_charge: Optional[float]
    is_paid: bool
    payment_reference: Optional[str]
    completed_file_url: Optional[str]
    submitted_at: str
    completed_at: Optional[str]
    paid_at: Optional[str]


def invariant_violations(a: Assignment) -> List[str]:
    """Return the names of lifecycle invariants the record breaks (empty when valid)."""
    problems: List[str] = []
    if (a.assigned_tutor_id is not None) != (a.status in TUTOR_HELD_STATUSES):
        problems.append("tutor_iff_held")
    if (a.tutor_charge is not None) != (a.status in PRICED_STATUSES):
        problems.append("charge_iff_priced")
    completed = a.status is AssignmentStatus.COMPLETED
    if (a.completed_file_url is not None) != completed or (a.completed_at is not None) != completed:
        problems.append("completion_iff_completed")
    if a.is_paid and not completed:
        problems.append("paid_only_when_completed")
    if (a.paid_at is not None) and not a.is_paid:
        problems.append("paid_at_requires_paid")
    return problems


__all__ = [
    "AssignmentStatus",
    "TUTOR_HELD_STATUSES",
    "PRICED_STATUSES",
    "MUTABLE_FIELDS",
    "Assignment",
    "invariant_violations",
]

"""
In-memory assignment repository for development and tests.

Concurrency:
    `apply_transition` performs check-and-set under one lock, mirroring the
    conditional `UPDATE … WHERE status = ANY(…)` of the Postgres repo, so two
    racing transitions on the same record cannot both succeed.
"""
from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional
from uuid import uuid4
import threading

from .domain import MUTABLE_FIELDS, Assignment, AssignmentStatus, invariant_violations


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _coerce(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.astimezone(timezone.utc).isoformat()
    return value


class InMemoryAssignmentRepo:
    def __init__(self) -> None:
        self._items: Dict[str, Assignment] = {}
        self._order: List[str] = []
        self._lock = threading.Lock()

    def create_assignment(
        self,
        *,
        student_id: str,
        title: str,
        description: str,
        program_specialty: str,
        file_url: str,
    ) -> Assignment:
        record = Assignment(
            id=str(uuid4()),
            student_id=student_id,
            title=title,
            description=description,
            program_specialty=program_specialty,
            file_url=file_url,
            status=AssignmentStatus.PENDING,
            assigned_tutor_id=None,
            tutor_charge=None,
            is_paid=False,
            payment_reference=None,
            completed_file_url=None,
            submitted_at=_now_iso(),
            completed_at=None,
            paid_at=None,
        )
        with self._lock:
            self._items[record.id] = record
            self._order.append(record.id)
        return record

    def get_assignment(self, assignment_id: str) -> Optional[Assignment]:
        return self._items.get(assignment_id)

    def apply_transition(
        self,
        assignment_id: str,
        *,
        expected: frozenset,
        changes: Mapping[str, Any],
        tutor_id: Optional[str] = None,
        require_unpaid: bool = False,
    ) -> Optional[Assignment]:
        """Apply `changes` only if the record still matches the expected state.

        Returns the updated record, or None when the record is missing or the
        guard no longer holds (another writer won).
        """
        unknown = set(changes) - MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"immutable_fields:{','.join(sorted(unknown))}")
        with self._lock:
            current = self._items.get(assignment_id)
            if current is None or current.status not in expected:
                return None
            if tutor_id is not None and current.assigned_tutor_id != tutor_id:
                return None
            if require_unpaid and current.is_paid:
                return None
            updated = replace(current, **{k: _coerce(v) for k, v in changes.items()})
            broken = invariant_violations(updated)
            if broken:
                raise RuntimeError(f"assignment_invariant_violated:{','.join(broken)}")
            self._items[assignment_id] = updated
            return updated

    def list_assignments(
        self,
        *,
        status: Optional[AssignmentStatus] = None,
        student_id: Optional[str] = None,
        tutor_id: Optional[str] = None,
        specialty: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Assignment]:
        items = [self._items[i] for i in list(self._order)]
        if status is not None:
            items = [a for a in items if a.status is status]
        if student_id is not None:
            items = [a for a in items if a.student_id == student_id]
        if tutor_id is not None:
            items = [a for a in items if a.assigned_tutor_id == tutor_id]
        if specialty is not None:
            items = [a for a in items if a.program_specialty == specialty]
        end = None if limit is None else offset + limit
        return items[offset:end]

    def count_assignments(self, *, status: Optional[AssignmentStatus] = None) -> int:
        if status is None:
            return len(self._items)
        return sum(1 for a in list(self._items.values()) if a.status is status)

    def has_assignments_for_tutor(self, tutor_id: str) -> bool:
        return any(a.assigned_tutor_id == tutor_id for a in list(self._items.values()))

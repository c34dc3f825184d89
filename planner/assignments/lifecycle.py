"""Assignment lifecycle engine (Clean Architecture boundary).

Why:
    Owns every status change of an assignment. Web adapters only translate
    HTTP into calls here; the rules live in one framework-free place so they
    can be unit-tested with fake repositories.

Guard order for every transition:
    role → input → load (NotFound) → ownership (Forbidden)
    → source status (InvalidStateTransition) → conditional write → notify

Concurrency:
    The status precheck only produces friendly errors. The authoritative guard
    is `repo.apply_transition`, a compare-and-swap on the expected statuses.
    When it loses a race the engine re-reads and reports the state it found.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
import logging
import math
import time
from typing import Any, Callable, List, Mapping, Optional, Protocol, Tuple
from urllib.parse import urlparse
from uuid import uuid4

from planner.errors import (
    AlreadyPaid,
    Forbidden,
    InvalidStateTransition,
    NotFound,
    UpstreamFailure,
    ValidationError,
)
from planner.identity_access.domain import (
    AdminPrincipal,
    Principal,
    Role,
    StudentPrincipal,
    TutorPrincipal,
    User,
)
from planner.notifications import messages
from planner.notifications.ports import EmailMessage, NotifierProtocol
from planner.storage.keys import make_submission_key
from planner.storage.ports import MAX_UPLOAD_BYTES, BlobStoreError, BlobStoreProtocol, UploadedFile

from .domain import Assignment, AssignmentStatus

LOG = logging.getLogger(__name__)

# Upper bound keeps the charge exact in minor units (x100) for the gateway.
MAX_PRICE = 1_000_000


class AssignmentRepoProtocol(Protocol):
    def create_assignment(
        self,
        *,
        student_id: str,
        title: str,
        description: str,
        program_specialty: str,
        file_url: str,
    ) -> Assignment:
        ...

    def get_assignment(self, assignment_id: str) -> Optional[Assignment]:
        ...

    def apply_transition(
        self,
        assignment_id: str,
        *,
        expected: frozenset,
        changes: Mapping[str, Any],
        tutor_id: Optional[str] = None,
        require_unpaid: bool = False,
    ) -> Optional[Assignment]:
        ...

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
        ...

    def count_assignments(self, *, status: Optional[AssignmentStatus] = None) -> int:
        ...


class UserLookupProtocol(Protocol):
    def get_user(self, user_id: str) -> Optional[User]:
        ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _required_text(value: object, code: str, *, max_len: int) -> str:
    if not isinstance(value, str):
        raise ValidationError(code)
    trimmed = value.strip()
    if not trimmed or len(trimmed) > max_len:
        raise ValidationError(code)
    return trimmed


def _normalize_price(value: object) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError("invalid_price")
    try:
        price = float(value)
    except OverflowError as exc:
        raise ValidationError("invalid_price") from exc
    if not math.isfinite(price) or price <= 0 or price > MAX_PRICE:
        raise ValidationError("invalid_price")
    return price


def _normalize_file_url(value: object) -> str:
    url = _required_text(value, "invalid_file_url", max_len=2048)
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValidationError("invalid_file_url")
    return url


def _expect_status(a: Assignment, *allowed: AssignmentStatus) -> None:
    if a.status not in allowed:
        raise InvalidStateTransition(f"status_is_{a.status.slug}")


@dataclass
class AssignmentLifecycle:
    """Validate and apply lifecycle transitions for assignments."""

    repo: AssignmentRepoProtocol
    users: UserLookupProtocol
    notifier: NotifierProtocol
    blobs: BlobStoreProtocol
    admin_email: str
    currency: str = "GHS"
    base_url: str = "http://localhost:8000"
    clock: Callable[[], datetime] = field(default=_utcnow)

    # --- Student ------------------------------------------------------------

    def submit(
        self,
        principal: Principal,
        *,
        title: object,
        description: object,
        specialty: object,
        file: Optional[UploadedFile],
    ) -> Assignment:
        """Create a Pending assignment after storing the submitted file."""
        if not isinstance(principal, StudentPrincipal):
            raise Forbidden("student_only")
        clean_title = _required_text(title, "invalid_title", max_len=200)
        clean_description = _required_text(description, "invalid_description", max_len=5000)
        clean_specialty = _required_text(specialty, "invalid_specialty", max_len=200)
        if file is None or file.size == 0:
            raise ValidationError("file_required")
        if file.size > MAX_UPLOAD_BYTES:
            raise ValidationError("file_too_large")
        key = make_submission_key(
            student_id=principal.user_id,
            filename=file.filename,
            epoch_ms=int(time.time() * 1000),
            uuid_hex=uuid4().hex,
        )
        try:
            file_url = self.blobs.upload(
                key=key,
                data=file.data,
                content_type=file.content_type or "application/octet-stream",
            )
        except BlobStoreError as exc:
            LOG.warning("Submission upload failed: %s", exc.__class__.__name__)
            raise UpstreamFailure("file_upload_failed") from exc
        created = self.repo.create_assignment(
            student_id=principal.user_id,
            title=clean_title,
            description=clean_description,
            program_specialty=clean_specialty,
            file_url=file_url,
        )
        LOG.info("Assignment submitted (assignment_id=%s student_id=%s)", created.id, principal.user_id)
        self._notify(
            messages.assignment_submitted(admin_email=self.admin_email, title=created.title, specialty=created.program_specialty)
        )
        return created

    # --- Admin routing ------------------------------------------------------

    def open_for_claim(self, principal: Principal, assignment_id: str) -> Assignment:
        """Release a Pending assignment to the tutors of its specialty."""
        if not isinstance(principal, AdminPrincipal):
            raise Forbidden("admin_only")
        current = self._load(assignment_id)
        _expect_status(current, AssignmentStatus.PENDING)
        updated = self._apply(
            assignment_id,
            expected=frozenset({AssignmentStatus.PENDING}),
            changes={"status": AssignmentStatus.OPEN},
        )
        LOG.info("Assignment opened for claim (assignment_id=%s)", assignment_id)
        self._notify(
            messages.assignment_opened(admin_email=self.admin_email, title=updated.title, specialty=updated.program_specialty)
        )
        return updated

    def assign_to_tutor(self, principal: Principal, assignment_id: str, tutor_id: object) -> Assignment:
        if not isinstance(principal, AdminPrincipal):
            raise Forbidden("admin_only")
        target = _required_text(tutor_id, "invalid_tutor_id", max_len=64)
        current = self._load(assignment_id)
        tutor = self.users.get_user(target)
        if tutor is None or tutor.role is not Role.TUTOR or not tutor.is_approved:
            raise NotFound("tutor_not_found")
        _expect_status(current, AssignmentStatus.PENDING, AssignmentStatus.OPEN)
        updated = self._apply(
            assignment_id,
            expected=frozenset({AssignmentStatus.PENDING, AssignmentStatus.OPEN}),
            changes={"status": AssignmentStatus.ASSIGNED, "assigned_tutor_id": tutor.id},
        )
        LOG.info("Assignment assigned (assignment_id=%s tutor_id=%s)", assignment_id, tutor.id)
        self._notify(
            messages.assignment_assigned_to_tutor(
                tutor_email=tutor.email, tutor_first_name=tutor.first_name, title=updated.title
            )
        )
        self._notify(
            messages.assignment_assigned_admin(
                admin_email=self.admin_email, tutor_name=tutor.full_name, tutor_email=tutor.email, title=updated.title
            )
        )
        return updated

    # --- Tutor --------------------------------------------------------------

    def claim(self, principal: Principal, assignment_id: str) -> Assignment:
        """Take an Open assignment whose specialty equals the tutor's."""
        tutor = self._approved_tutor(principal)
        current = self._load(assignment_id)
        if not tutor.program_specialty or tutor.program_specialty != current.program_specialty:
            raise Forbidden("specialty_mismatch")
        _expect_status(current, AssignmentStatus.OPEN)
        updated = self._apply(
            assignment_id,
            expected=frozenset({AssignmentStatus.OPEN}),
            changes={"status": AssignmentStatus.ASSIGNED, "assigned_tutor_id": tutor.id},
        )
        LOG.info("Assignment claimed (assignment_id=%s tutor_id=%s)", assignment_id, tutor.id)
        self._notify(messages.assignment_claimed(admin_email=self.admin_email, tutor_name=tutor.full_name, title=updated.title))
        return updated

    def review_and_price(self, principal: Principal, assignment_id: str, price: object) -> Assignment:
        tutor_id = self._tutor_id(principal)
        charge = _normalize_price(price)
        current = self._load(assignment_id)
        self._ensure_assigned_tutor(current, tutor_id)
        _expect_status(current, AssignmentStatus.ASSIGNED)
        updated = self._apply(
            assignment_id,
            expected=frozenset({AssignmentStatus.ASSIGNED}),
            changes={"status": AssignmentStatus.IN_PROGRESS, "tutor_charge": charge},
            tutor_id=tutor_id,
        )
        LOG.info("Assignment priced (assignment_id=%s tutor_id=%s)", assignment_id, tutor_id)
        student = self.users.get_user(updated.student_id)
        if student is not None:
            self._notify(
                messages.assignment_priced_student(
                    student_email=student.email,
                    student_first_name=student.first_name,
                    title=updated.title,
                    price=charge,
                    currency=self.currency,
                )
            )
        self._notify(
            messages.assignment_priced_admin(
                admin_email=self.admin_email, title=updated.title, price=charge, currency=self.currency
            )
        )
        return updated

    def reject(self, principal: Principal, assignment_id: str) -> Assignment:
        """Decline an Assigned assignment. Rejected is terminal; nothing is reassigned."""
        tutor_id = self._tutor_id(principal)
        current = self._load(assignment_id)
        self._ensure_assigned_tutor(current, tutor_id)
        _expect_status(current, AssignmentStatus.ASSIGNED)
        updated = self._apply(
            assignment_id,
            expected=frozenset({AssignmentStatus.ASSIGNED}),
            changes={"status": AssignmentStatus.REJECTED},
            tutor_id=tutor_id,
        )
        LOG.info("Assignment rejected (assignment_id=%s tutor_id=%s)", assignment_id, tutor_id)
        tutor = self.users.get_user(tutor_id)
        tutor_name = tutor.full_name if tutor is not None else principal.email
        self._notify(messages.assignment_rejected(admin_email=self.admin_email, title=updated.title, tutor_name=tutor_name))
        return updated

    def complete(self, principal: Principal, assignment_id: str, completed_file_url: object) -> Assignment:
        tutor_id = self._tutor_id(principal)
        url = _normalize_file_url(completed_file_url)
        current = self._load(assignment_id)
        self._ensure_assigned_tutor(current, tutor_id)
        _expect_status(current, AssignmentStatus.IN_PROGRESS)
        updated = self._apply(
            assignment_id,
            expected=frozenset({AssignmentStatus.IN_PROGRESS}),
            changes={
                "status": AssignmentStatus.COMPLETED,
                "completed_file_url": url,
                "completed_at": self.clock(),
            },
            tutor_id=tutor_id,
        )
        LOG.info("Assignment completed (assignment_id=%s tutor_id=%s)", assignment_id, tutor_id)
        student = self.users.get_user(updated.student_id)
        if student is not None:
            self._notify(
                messages.assignment_completed(
                    student_email=student.email,
                    title=updated.title,
                    charge=updated.tutor_charge,
                    currency=self.currency,
                )
            )
        return updated

    # --- Payment ------------------------------------------------------------

    def mark_paid(self, principal: Principal, assignment_id: str) -> Assignment:
        """Flip `is_paid` once. Admin, or the owning student."""
        if not isinstance(principal, (AdminPrincipal, StudentPrincipal)):
            raise Forbidden("admin_or_student_only")
        current = self._load(assignment_id)
        if isinstance(principal, StudentPrincipal) and current.student_id != principal.user_id:
            raise Forbidden("not_assignment_owner")
        _expect_status(current, AssignmentStatus.COMPLETED)
        if current.is_paid:
            raise AlreadyPaid("already_paid")
        updated = self._apply(
            assignment_id,
            expected=frozenset({AssignmentStatus.COMPLETED}),
            changes={"is_paid": True, "paid_at": self.clock()},
            require_unpaid=True,
        )
        LOG.info("Assignment marked paid (assignment_id=%s by=%s)", assignment_id, principal.role.value)
        self._notify_solution_available(updated)
        return updated

    def confirm_payment(self, assignment_id: str, *, reference: str) -> Tuple[Assignment, bool]:
        """Apply a verified gateway payment.

        Returns the assignment and whether this call flipped `is_paid`. An
        assignment that is already paid is returned untouched so repeated
        verifications of one reference write and notify only once.
        """
        current = self._load(assignment_id)
        if current.is_paid:
            return current, False
        _expect_status(current, AssignmentStatus.COMPLETED)
        updated = self.repo.apply_transition(
            assignment_id,
            expected=frozenset({AssignmentStatus.COMPLETED}),
            changes={"is_paid": True, "paid_at": self.clock(), "payment_reference": reference},
            require_unpaid=True,
        )
        if updated is None:
            latest = self._load(assignment_id)
            if latest.is_paid:
                return latest, False
            raise InvalidStateTransition(f"status_is_{latest.status.slug}")
        LOG.info("Assignment payment confirmed (assignment_id=%s)", assignment_id)
        self._notify_solution_available(updated)
        return updated, True

    # --- Helpers ------------------------------------------------------------

    def download_url(self, assignment_id: str) -> str:
        return f"{self.base_url.rstrip('/')}/assignments/download/completed/{assignment_id}"

    def _notify_solution_available(self, a: Assignment) -> None:
        student = self.users.get_user(a.student_id)
        if student is None:
            LOG.warning("Paid assignment without student record (assignment_id=%s)", a.id)
            return
        self._notify(
            messages.solution_available(student_email=student.email, title=a.title, download_url=self.download_url(a.id))
        )

    def _load(self, assignment_id: str) -> Assignment:
        found = self.repo.get_assignment(assignment_id) if assignment_id else None
        if found is None:
            raise NotFound("assignment_not_found")
        return found

    def _apply(
        self,
        assignment_id: str,
        *,
        expected: frozenset,
        changes: Mapping[str, Any],
        tutor_id: Optional[str] = None,
        require_unpaid: bool = False,
    ) -> Assignment:
        updated = self.repo.apply_transition(
            assignment_id,
            expected=expected,
            changes=changes,
            tutor_id=tutor_id,
            require_unpaid=require_unpaid,
        )
        if updated is not None:
            return updated
        # Lost a race: report what the winner left behind.
        latest = self._load(assignment_id)
        if require_unpaid and latest.is_paid:
            raise AlreadyPaid("already_paid")
        if tutor_id is not None and latest.assigned_tutor_id != tutor_id:
            raise Forbidden("not_assigned_tutor")
        raise InvalidStateTransition(f"status_is_{latest.status.slug}")

    def _tutor_id(self, principal: Principal) -> str:
        if not isinstance(principal, TutorPrincipal):
            raise Forbidden("tutor_only")
        return principal.user_id

    def _approved_tutor(self, principal: Principal) -> User:
        tutor_id = self._tutor_id(principal)
        tutor = self.users.get_user(tutor_id)
        if tutor is None or tutor.role is not Role.TUTOR or not tutor.is_approved:
            raise Forbidden("tutor_not_approved")
        return tutor

    @staticmethod
    def _ensure_assigned_tutor(a: Assignment, tutor_id: str) -> None:
        if a.assigned_tutor_id != tutor_id:
            raise Forbidden("not_assigned_tutor")

    def _notify(self, message: EmailMessage) -> None:
        try:
            self.notifier.emit(message)
        except Exception as exc:  # notifications never reverse a persisted transition
            LOG.warning("Notification enqueue failed: %s", exc.__class__.__name__)


__all__ = ["AssignmentRepoProtocol", "UserLookupProtocol", "AssignmentLifecycle"]

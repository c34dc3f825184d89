"""Payment gate: checkout, verification and release of the completed file.

Rules:
    - Only the owning student may start a checkout, and only for a Completed,
      unpaid, priced assignment.
    - Verification trusts the gateway for status and amount, then applies the
      idempotent `confirm_payment` transition of the lifecycle engine.
    - The completed file is released to the owning student once paid. Other
      students get NotFound. The admin is always allowed; the tutor who did
      the work may fetch their own upload.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import re
from typing import Tuple

from planner.assignments.domain import Assignment, AssignmentStatus
from planner.assignments.lifecycle import AssignmentLifecycle, AssignmentRepoProtocol
from planner.errors import (
    AlreadyPaid,
    Forbidden,
    InvalidStateTransition,
    NotFound,
    PaymentRequired,
    ValidationError,
)
from planner.identity_access.domain import AdminPrincipal, Principal, StudentPrincipal, TutorPrincipal

from .gateway import PaymentGatewayProtocol, to_minor_units

LOG = logging.getLogger(__name__)

_REFERENCE_RE = re.compile(r"^[A-Za-z0-9._=-]{1,100}$")


@dataclass
class PaymentGate:
    repo: AssignmentRepoProtocol
    lifecycle: AssignmentLifecycle
    gateway: PaymentGatewayProtocol

    def _load(self, assignment_id: str) -> Assignment:
        found = self.repo.get_assignment(assignment_id) if assignment_id else None
        if found is None:
            raise NotFound("assignment_not_found")
        return found

    def initialize(self, principal: Principal, assignment_id: str) -> str:
        """Start a gateway checkout and return the authorization URL."""
        if not isinstance(principal, StudentPrincipal):
            raise Forbidden("student_only")
        a = self._load(assignment_id)
        if a.student_id != principal.user_id:
            raise NotFound("assignment_not_found")
        if a.status is not AssignmentStatus.COMPLETED:
            raise InvalidStateTransition(f"status_is_{a.status.slug}")
        if a.is_paid:
            raise AlreadyPaid("already_paid")
        if a.tutor_charge is None:
            raise ValidationError("price_not_set")
        url = self.gateway.initialize(
            email=principal.email,
            amount=a.tutor_charge,
            metadata={"assignmentId": a.id},
        )
        LOG.info("Payment initialized (assignment_id=%s)", a.id)
        return url

    def verify(self, principal: Principal, reference: object) -> Tuple[Assignment, bool]:
        """Verify a gateway reference and mark the assignment paid.

        Returns the assignment and whether this call applied the payment.
        """
        if not isinstance(principal, (AdminPrincipal, StudentPrincipal)):
            raise Forbidden("admin_or_student_only")
        if not isinstance(reference, str) or not _REFERENCE_RE.match(reference):
            raise ValidationError("invalid_reference")
        result = self.gateway.verify(reference)
        if result.status != "success":
            LOG.info("Payment not successful (status=%s)", result.status or "unknown")
            raise ValidationError("payment_not_successful")
        assignment_id = result.metadata.get("assignmentId")
        if not isinstance(assignment_id, str) or not assignment_id:
            raise ValidationError("missing_assignment_id")
        a = self._load(assignment_id)
        if isinstance(principal, StudentPrincipal) and a.student_id != principal.user_id:
            raise Forbidden("not_assignment_owner")
        if a.tutor_charge is None or result.amount < to_minor_units(a.tutor_charge):
            LOG.warning("Payment amount mismatch (assignment_id=%s)", a.id)
            raise ValidationError("amount_mismatch")
        return self.lifecycle.confirm_payment(a.id, reference=reference)

    def completed_file_url(self, principal: Principal, assignment_id: str) -> str:
        a = self._load(assignment_id)
        if isinstance(principal, AdminPrincipal):
            if a.completed_file_url is None:
                raise NotFound("solution_not_available")
            return a.completed_file_url
        if isinstance(principal, TutorPrincipal):
            if a.assigned_tutor_id != principal.user_id or a.completed_file_url is None:
                raise NotFound("assignment_not_found")
            return a.completed_file_url
        if a.student_id != principal.user_id:
            raise NotFound("assignment_not_found")
        if not a.is_paid or a.completed_file_url is None:
            raise PaymentRequired("payment_required")
        return a.completed_file_url


__all__ = ["PaymentGate"]

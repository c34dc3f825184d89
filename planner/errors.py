"""
Domain error taxonomy shared by every bounded context.

Why:
    Services raise one of these instead of returning HTTP responses so they
    stay framework-free. The web layer maps them to a single JSON error shape
    via one exception handler (`planner.web.main`).

Shape:
    Each error has a stable `error` key (the category) and a `detail` code
    describing the concrete cause, e.g. `Forbidden("not_assigned_tutor")`.
"""
from __future__ import annotations


class PlannerError(Exception):
    """Base class for terminal, non-retryable domain errors."""

    error = "error"
    status_code = 500

    def __init__(self, detail: str | None = None):
        super().__init__(detail or self.error)
        self.detail = detail or self.error

    def to_payload(self) -> dict:
        return {"error": self.error, "detail": self.detail}


class Unauthenticated(PlannerError):
    error = "unauthenticated"
    status_code = 401


class Forbidden(PlannerError):
    error = "forbidden"
    status_code = 403


class NotFound(PlannerError):
    error = "not_found"
    status_code = 404


class ValidationError(PlannerError):
    error = "bad_request"
    status_code = 400


class InvalidStateTransition(PlannerError):
    """Guard failed, including losing a concurrent compare-and-swap."""

    error = "invalid_state_transition"
    status_code = 400


class AlreadyPaid(PlannerError):
    error = "already_paid"
    status_code = 400


class PaymentRequired(PlannerError):
    error = "payment_required"
    status_code = 402


class UpstreamFailure(PlannerError):
    """Email or payment gateway unreachable or answered garbage."""

    error = "upstream_failure"
    status_code = 502


__all__ = [
    "PlannerError",
    "Unauthenticated",
    "Forbidden",
    "NotFound",
    "ValidationError",
    "InvalidStateTransition",
    "AlreadyPaid",
    "PaymentRequired",
    "UpstreamFailure",
]

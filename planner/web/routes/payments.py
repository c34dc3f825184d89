"""Payment routes: start a gateway checkout and verify its reference."""

from __future__ import annotations

import asyncio

from fastapi import APIRouter, Request

from planner.identity_access.domain import Role
from planner.web.auth_utils import private_json, require_roles
from planner.web.serializers import assignment_to_dict
from planner.web.wiring import get_services

payments_router = APIRouter(tags=["Payments"])


@payments_router.post("/payments/initialize/{assignment_id}")
async def initialize_payment(request: Request, assignment_id: str):
    principal = require_roles(request, Role.STUDENT)
    url = await asyncio.to_thread(get_services().payments.initialize, principal, assignment_id)
    return private_json({"message": "Payment initialized successfully.", "authorizationUrl": url})


@payments_router.get("/payments/verify")
async def verify_payment(request: Request, reference: str | None = None):
    """Verify a gateway reference. Idempotent: a second call does not write or notify again."""
    principal = require_roles(request, Role.ADMIN, Role.STUDENT)
    a, applied = await asyncio.to_thread(get_services().payments.verify, principal, reference)
    message = "Payment verified successfully!" if applied else "Payment already verified."
    return private_json({"message": message, "assignment": assignment_to_dict(a)})

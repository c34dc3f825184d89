"""
Assignment routes: submission, routing, tutor workflow, payment flag and downloads.

Why:
    Thin adapter over `AssignmentLifecycle` (writes) and `AssignmentQueries`
    (reads). The route checks the allowed role set; the engine re-checks role
    and ownership, so a misrouted call still cannot bypass a guard.

Notes:
    - Literal paths (`/assignments/pending`, `/assignments/tutor-pending`, …)
      are registered before `/assignments/{assignment_id}`.
    - Downloads answer 302 to the stored URL; the URL itself is never cached.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import RedirectResponse
from pydantic import BaseModel

from planner.identity_access.domain import Role
from planner.web.auth_utils import private_json, require_roles
from planner.web.forms import form_file, form_text
from planner.web.serializers import assignment_to_dict, assignments_to_list
from planner.web.wiring import get_services

assignments_router = APIRouter(tags=["Assignments"])
logger = logging.getLogger("planner.web.assignments")


class AssignPayload(BaseModel):
    tutorId: str | None = None


class PricePayload(BaseModel):
    # Typed loosely on purpose: booleans and strings must reach the engine's check.
    price: Any = None


class CompletePayload(BaseModel):
    fileUrl: str | None = None


def _redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url=url, status_code=302, headers={"Cache-Control": "private, no-store"})


def _ok(message: str, a):
    return private_json({"message": message, "assignment": assignment_to_dict(a)})


# --- Reads ---------------------------------------------------------------------


@assignments_router.get("/assignments")
async def list_assignments(request: Request, status: str | None = None, page: int = 1, limit: int = 10):
    """Admin listing with optional status filter and pagination."""
    principal = require_roles(request, Role.ADMIN)
    result = await asyncio.to_thread(
        get_services().queries.list_all, principal, status=status, page=page, limit=limit
    )
    result["assignments"] = assignments_to_list(result["assignments"])  # type: ignore[arg-type]
    return private_json(result)


@assignments_router.get("/assignments/pending")
async def pending_assignments(request: Request):
    principal = require_roles(request, Role.ADMIN)
    items = await asyncio.to_thread(get_services().queries.pending, principal)
    return private_json(assignments_to_list(items))


@assignments_router.get("/assignments/tutor-pending")
async def tutor_queue(request: Request):
    """Open assignments in the caller's program specialty (the claim queue)."""
    principal = require_roles(request, Role.TUTOR)
    items = await asyncio.to_thread(get_services().queries.tutor_queue, principal)
    return private_json(assignments_to_list(items))


@assignments_router.get("/assignments/tutor")
async def tutor_assignments(request: Request):
    principal = require_roles(request, Role.TUTOR)
    items = await asyncio.to_thread(get_services().queries.tutor_assignments, principal)
    return private_json(assignments_to_list(items))


@assignments_router.get("/assignments/student")
async def student_assignments(request: Request):
    principal = require_roles(request, Role.STUDENT)
    items = await asyncio.to_thread(get_services().queries.student_assignments, principal)
    return private_json(assignments_to_list(items))


@assignments_router.get("/assignments/download/completed/{assignment_id}")
async def download_completed(request: Request, assignment_id: str):
    """Redirect to the solution file. Students must have paid (402 otherwise)."""
    principal = require_roles(request)
    url = await asyncio.to_thread(get_services().payments.completed_file_url, principal, assignment_id)
    return _redirect(url)


@assignments_router.get("/assignments/download/{assignment_id}")
async def download_submitted(request: Request, assignment_id: str):
    principal = require_roles(request)
    url = await asyncio.to_thread(get_services().queries.submitted_file_url, principal, assignment_id)
    return _redirect(url)


@assignments_router.get("/assignments/{assignment_id}")
async def get_assignment(request: Request, assignment_id: str):
    principal = require_roles(request)
    a = await asyncio.to_thread(get_services().queries.get_visible, principal, assignment_id)
    return private_json(assignment_to_dict(a))


# --- Transitions ---------------------------------------------------------------


@assignments_router.post("/assignments/submit")
async def submit_assignment(request: Request):
    principal = require_roles(request, Role.STUDENT)
    form = await request.form()
    upload = await form_file(form, "file")
    a = await asyncio.to_thread(
        get_services().lifecycle.submit,
        principal,
        title=form_text(form, "title"),
        description=form_text(form, "description"),
        specialty=form_text(form, "specialty"),
        file=upload,
    )
    return private_json({"message": "Assignment submitted successfully", "assignment": assignment_to_dict(a)}, status_code=201)


@assignments_router.put("/assignments/open/{assignment_id}")
async def open_assignment(request: Request, assignment_id: str):
    principal = require_roles(request, Role.ADMIN)
    a = await asyncio.to_thread(get_services().lifecycle.open_for_claim, principal, assignment_id)
    return _ok("Assignment opened for tutors", a)


@assignments_router.put("/assignments/assign/{assignment_id}")
async def assign_assignment(request: Request, assignment_id: str, payload: AssignPayload):
    principal = require_roles(request, Role.ADMIN)
    a = await asyncio.to_thread(get_services().lifecycle.assign_to_tutor, principal, assignment_id, payload.tutorId)
    return _ok("Assignment assigned successfully", a)


@assignments_router.put("/assignments/claim/{assignment_id}")
async def claim_assignment(request: Request, assignment_id: str):
    principal = require_roles(request, Role.TUTOR)
    a = await asyncio.to_thread(get_services().lifecycle.claim, principal, assignment_id)
    return _ok("Assignment claimed successfully", a)


@assignments_router.put("/assignments/review-and-price/{assignment_id}")
async def price_assignment(request: Request, assignment_id: str, payload: PricePayload):
    principal = require_roles(request, Role.TUTOR)
    a = await asyncio.to_thread(get_services().lifecycle.review_and_price, principal, assignment_id, payload.price)
    return _ok("Assignment accepted and priced", a)


@assignments_router.put("/assignments/reject/{assignment_id}")
async def reject_assignment(request: Request, assignment_id: str):
    principal = require_roles(request, Role.TUTOR)
    a = await asyncio.to_thread(get_services().lifecycle.reject, principal, assignment_id)
    return _ok("Assignment rejected", a)


@assignments_router.put("/assignments/complete/{assignment_id}")
async def complete_assignment(request: Request, assignment_id: str, payload: CompletePayload):
    principal = require_roles(request, Role.TUTOR)
    a = await asyncio.to_thread(get_services().lifecycle.complete, principal, assignment_id, payload.fileUrl)
    return _ok("Assignment marked as completed", a)


@assignments_router.put("/assignments/mark-paid/{assignment_id}")
async def mark_paid(request: Request, assignment_id: str):
    principal = require_roles(request, Role.ADMIN, Role.STUDENT)
    a = await asyncio.to_thread(get_services().lifecycle.mark_paid, principal, assignment_id)
    return _ok("Assignment marked as paid", a)

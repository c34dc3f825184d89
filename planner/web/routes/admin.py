"""
Admin routes: admin login, tutor approval lifecycle and the user directory.

Permissions:
    Everything except `/admin/login` requires the ADMIN role. The admin is the
    single identity configured by ADMIN_EMAIL / ADMIN_PASSWORD.
"""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Request
from pydantic import BaseModel

from planner.identity_access.domain import Role
from planner.identity_access.tokens import issue_session_token
from planner.web.auth_utils import private_json, require_roles, set_session_cookie
from planner.web.serializers import user_to_dict, users_to_list
from planner.web.wiring import get_services

admin_router = APIRouter(tags=["Admin"])
logger = logging.getLogger("planner.web.admin")


class AdminLoginPayload(BaseModel):
    email: str | None = None
    password: str | None = None


@admin_router.post("/admin/login")
async def admin_login(payload: AdminLoginPayload):
    svc = get_services()
    principal = svc.accounts.admin_login(email=payload.email, password=payload.password)
    token = issue_session_token(
        principal,
        secret=svc.settings.session_secret,
        ttl_seconds=svc.settings.session_ttl_seconds,
    )
    response = private_json({"message": "Admin login successful", "admin": {"email": principal.email, "role": "ADMIN"}})
    set_session_cookie(
        response,
        token,
        environment=svc.settings.environment,
        max_age=svc.settings.session_ttl_seconds,
    )
    logger.info("Admin login succeeded")
    return response


@admin_router.put("/admin/approve-tutor/{tutor_id}")
async def approve_tutor(request: Request, tutor_id: str):
    principal = require_roles(request, Role.ADMIN)
    tutor = await asyncio.to_thread(get_services().accounts.approve_tutor, principal, tutor_id)
    return private_json({"message": "Tutor approved successfully", "tutor": user_to_dict(tutor)})


@admin_router.delete("/admin/delete-tutor/{tutor_id}")
async def delete_tutor(request: Request, tutor_id: str):
    """Delete an unapproved or idle tutor and notify them. Tutors holding assignments are kept."""
    principal = require_roles(request, Role.ADMIN)
    await asyncio.to_thread(get_services().accounts.delete_tutor, principal, tutor_id)
    return private_json({"message": "Tutor deleted successfully"})


@admin_router.get("/admin/pending-tutors")
async def pending_tutors(request: Request):
    principal = require_roles(request, Role.ADMIN)
    items = await asyncio.to_thread(get_services().accounts.list_pending_tutors, principal)
    return private_json(users_to_list(items))


@admin_router.get("/admin/tutors")
async def list_tutors(request: Request):
    principal = require_roles(request, Role.ADMIN)
    items = await asyncio.to_thread(get_services().accounts.list_tutors, principal)
    return private_json(users_to_list(items))


@admin_router.get("/admin/students")
async def list_students(request: Request):
    principal = require_roles(request, Role.ADMIN)
    items = await asyncio.to_thread(get_services().accounts.list_students, principal)
    return private_json(users_to_list(items))


@admin_router.get("/admin/tutor/{tutor_id}")
async def get_tutor(request: Request, tutor_id: str):
    principal = require_roles(request, Role.ADMIN)
    tutor = await asyncio.to_thread(get_services().accounts.get_tutor, principal, tutor_id)
    return private_json(user_to_dict(tutor))


@admin_router.get("/admin/student/{student_id}")
async def get_student(request: Request, student_id: str):
    principal = require_roles(request, Role.ADMIN)
    student = await asyncio.to_thread(get_services().accounts.get_student, principal, student_id)
    return private_json(user_to_dict(student))

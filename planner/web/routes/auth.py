"""
Authentication routes: registration, login, logout and the current caller.

Notes:
    - Registration and login are public (see `main._is_public_path`);
      `/auth/me` and `/auth/logout` require a session.
    - The session is a signed token in an HTTP-only cookie; nothing about it
      is returned in the JSON body.
"""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Request
from pydantic import BaseModel

from planner.identity_access.tokens import issue_session_token
from planner.web.auth_utils import clear_session_cookie, private_json, require_roles, set_session_cookie
from planner.web.forms import form_file, form_text
from planner.web.serializers import principal_to_dict, user_to_dict
from planner.web.wiring import get_services

auth_router = APIRouter(tags=["Auth"])
logger = logging.getLogger("planner.web.auth")


class StudentRegistration(BaseModel):
    # Accept raw values and let the service answer with precise detail codes.
    firstName: str | None = None
    lastName: str | None = None
    email: str | None = None
    password: str | None = None
    department: str | None = None
    phoneNumber: str | None = None
    momoNumber: str | None = None


class LoginPayload(BaseModel):
    email: str | None = None
    password: str | None = None


@auth_router.post("/auth/register/student")
async def register_student(payload: StudentRegistration):
    svc = get_services()
    user = await asyncio.to_thread(
        svc.accounts.register_student,
        first_name=payload.firstName,
        last_name=payload.lastName,
        email=payload.email,
        password=payload.password,
        department=payload.department,
        phone_number=payload.phoneNumber,
        momo_number=payload.momoNumber,
    )
    return private_json({"message": "Student registered successfully", "user": user_to_dict(user)}, status_code=201)


@auth_router.post("/auth/register/tutor")
async def register_tutor(request: Request):
    """Register a tutor (multipart, with certificate). The account starts unapproved."""
    form = await request.form()
    certificate = await form_file(form, "certificate")
    svc = get_services()
    user = await asyncio.to_thread(
        svc.accounts.register_tutor,
        first_name=form_text(form, "firstName"),
        last_name=form_text(form, "lastName"),
        email=form_text(form, "email"),
        password=form_text(form, "password"),
        program_specialty=form_text(form, "programSpecialty"),
        certificate=certificate,
    )
    return private_json(
        {"message": "Tutor registered successfully. Awaiting admin approval.", "user": user_to_dict(user)},
        status_code=201,
    )


@auth_router.post("/auth/login")
async def login(payload: LoginPayload):
    svc = get_services()
    user, principal = await asyncio.to_thread(svc.accounts.login, email=payload.email, password=payload.password)
    token = issue_session_token(
        principal,
        secret=svc.settings.session_secret,
        ttl_seconds=svc.settings.session_ttl_seconds,
    )
    response = private_json({"message": "Login successful", "user": user_to_dict(user)})
    set_session_cookie(
        response,
        token,
        environment=svc.settings.environment,
        max_age=svc.settings.session_ttl_seconds,
    )
    logger.info("Login succeeded (user_id=%s role=%s)", user.id, user.role.value)
    return response


@auth_router.post("/auth/logout")
async def logout(request: Request):
    require_roles(request)
    response = private_json({"message": "Logged out"})
    clear_session_cookie(response, environment=get_services().settings.environment)
    return response


@auth_router.get("/auth/me")
async def me(request: Request):
    principal = require_roles(request)
    return private_json(principal_to_dict(principal))

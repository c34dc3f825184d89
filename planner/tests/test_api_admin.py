"""
Admin API: configured admin login, tutor approval and the user directory.
"""
from __future__ import annotations

import pytest

from planner.identity_access.domain import AdminPrincipal

from utils.api import client, login_as
from utils.fakes import ADMIN_EMAIL, seed_student, seed_tutor

pytestmark = pytest.mark.anyio("asyncio")

ADMIN = AdminPrincipal(email=ADMIN_EMAIL)


async def test_admin_login_with_configured_credentials(services):
    async with client() as c:
        r = await c.post("/admin/login", json={"email": ADMIN_EMAIL, "password": services.settings.admin_password})
    assert r.status_code == 200
    assert r.json() == {"message": "Admin login successful", "admin": {"email": ADMIN_EMAIL, "role": "ADMIN"}}
    assert "planner_session=" in r.headers["set-cookie"]


async def test_admin_login_wrong_password():
    async with client() as c:
        r = await c.post("/admin/login", json={"email": ADMIN_EMAIL, "password": "guess"})
    assert r.status_code == 400
    assert r.json()["detail"] == "invalid_admin_credentials"


async def test_approve_pending_tutor_flow(services):
    tutor = seed_tutor(services, approved=False)
    async with client() as c:
        login_as(c, services, ADMIN)
        r = await c.get("/admin/pending-tutors")
        assert [t["id"] for t in r.json()] == [tutor.id]

        r = await c.put(f"/admin/approve-tutor/{tutor.id}")
        assert r.status_code == 200
        assert r.json()["message"] == "Tutor approved successfully"
        assert r.json()["tutor"]["isApproved"] is True

        r = await c.put(f"/admin/approve-tutor/{tutor.id}")
        assert r.status_code == 400
        assert r.json()["error"] == "invalid_state_transition"

        r = await c.get("/admin/pending-tutors")
    assert r.json() == []
    assert services.notifier.subjects() == ["Your Tutor Account is Approved!"]


async def test_delete_tutor(services):
    tutor = seed_tutor(services, approved=False)
    async with client() as c:
        login_as(c, services, ADMIN)
        r = await c.delete(f"/admin/delete-tutor/{tutor.id}")
        assert r.status_code == 200
        r = await c.get(f"/admin/tutor/{tutor.id}")
    assert r.status_code == 404
    assert r.json() == {"error": "not_found", "detail": "tutor_not_found"}


async def test_directory_endpoints(services):
    student = seed_student(services)
    tutor = seed_tutor(services)
    async with client() as c:
        login_as(c, services, ADMIN)
        tutors = (await c.get("/admin/tutors")).json()
        students = (await c.get("/admin/students")).json()
        one_student = (await c.get(f"/admin/student/{student.id}")).json()
        wrong_role = await c.get(f"/admin/student/{tutor.id}")
    assert [t["email"] for t in tutors] == [tutor.email]
    assert [s["email"] for s in students] == [student.email]
    assert one_student["firstName"] == "Ama"
    assert wrong_role.status_code == 404


@pytest.mark.parametrize("method, path", [
    ("GET", "/admin/tutors"),
    ("GET", "/admin/pending-tutors"),
    ("PUT", "/admin/approve-tutor/x"),
    ("DELETE", "/admin/delete-tutor/x"),
])
async def test_admin_routes_reject_other_roles(services, method, path):
    student = seed_student(services)
    async with client() as c:
        login_as(c, services, student)
        r = await c.request(method, path)
    assert r.status_code == 403
    assert r.json() == {"error": "forbidden", "detail": "role_not_allowed"}
    assert r.headers["Cache-Control"] == "private, no-store"

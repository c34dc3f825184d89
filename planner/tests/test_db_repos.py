"""
Postgres repositories: contract tests against a migrated database.

Skipped unless a database with migrations/0001_init.sql applied is reachable
(see utils.db.require_db_or_skip).
"""
from __future__ import annotations

from uuid import uuid4

import pytest

from planner.assignments.domain import AssignmentStatus, invariant_violations
from planner.identity_access.domain import Role

from utils.db import require_db_or_skip


@pytest.fixture
def repos():
    dsn = require_db_or_skip()
    from planner.assignments.repo_db import DBAssignmentRepo
    from planner.identity_access.stores_db import DBUserStore

    return DBUserStore(dsn), DBAssignmentRepo(dsn)


def _user(users, role=Role.STUDENT, specialty=None, approved=True):
    return users.create_user(
        first_name="Test",
        last_name="User",
        email=f"{uuid4().hex[:12]}@planner.test",
        password_hash="pbkdf2_sha256$1$AA==$AA==",
        role=role,
        program_specialty=specialty,
        is_approved=approved,
    )


def test_user_roundtrip_and_case_insensitive_uniqueness(repos):
    users, _ = repos
    u = _user(users)
    assert users.get_user(u.id) == u
    assert users.get_user_by_email(u.email) == u
    with pytest.raises(ValueError):
        users.create_user(
            first_name="Dup",
            last_name="User",
            email=u.email.upper(),
            password_hash="x",
            role=Role.STUDENT,
        )


def test_approve_and_delete_tutor(repos):
    users, _ = repos
    tutor = _user(users, role=Role.TUTOR, specialty="Law", approved=False)
    approved = users.approve_tutor(tutor.id)
    assert approved is not None and approved.is_approved
    assert users.approve_tutor(tutor.id) is None
    assert users.delete_tutor(tutor.id) is True
    assert users.get_user(tutor.id) is None


def test_transition_guard_matches_once(repos):
    users, repo = repos
    student = _user(users)
    tutor = _user(users, role=Role.TUTOR, specialty="Law")
    a = repo.create_assignment(
        student_id=student.id, title="t", description="d", program_specialty="Law", file_url="https://f.test/a.pdf"
    )
    assert a.status is AssignmentStatus.PENDING

    changes = {"status": AssignmentStatus.ASSIGNED, "assigned_tutor_id": tutor.id}
    first = repo.apply_transition(a.id, expected=frozenset({AssignmentStatus.PENDING}), changes=changes)
    second = repo.apply_transition(a.id, expected=frozenset({AssignmentStatus.PENDING}), changes=changes)

    assert first is not None and first.assigned_tutor_id == tutor.id
    assert second is None
    assert invariant_violations(first) == []
    assert repo.has_assignments_for_tutor(tutor.id) is True


def test_tutor_guard_on_transition(repos):
    users, repo = repos
    student = _user(users)
    tutor = _user(users, role=Role.TUTOR, specialty="Law")
    a = repo.create_assignment(
        student_id=student.id, title="t", description="d", program_specialty="Law", file_url="https://f.test/a.pdf"
    )
    repo.apply_transition(
        a.id,
        expected=frozenset({AssignmentStatus.PENDING}),
        changes={"status": AssignmentStatus.ASSIGNED, "assigned_tutor_id": tutor.id},
    )
    priced = {"status": AssignmentStatus.IN_PROGRESS, "tutor_charge": 25.0}
    assert repo.apply_transition(a.id, expected=frozenset({AssignmentStatus.ASSIGNED}), changes=priced, tutor_id=str(uuid4())) is None
    done = repo.apply_transition(a.id, expected=frozenset({AssignmentStatus.ASSIGNED}), changes=priced, tutor_id=tutor.id)
    assert done is not None and done.tutor_charge == 25.0


def test_listing_filters_by_student(repos):
    users, repo = repos
    student = _user(users)
    for i in range(3):
        repo.create_assignment(
            student_id=student.id, title=f"A{i}", description="d", program_specialty="Law", file_url="https://f.test/a.pdf"
        )
    mine = repo.list_assignments(student_id=student.id)
    assert [a.title for a in mine] == ["A0", "A1", "A2"]
    assert len(repo.list_assignments(student_id=student.id, limit=1, offset=1)) == 1


def test_immutable_fields_are_refused(repos):
    _, repo = repos
    with pytest.raises(ValueError):
        repo.apply_transition(str(uuid4()), expected=frozenset({AssignmentStatus.PENDING}), changes={"student_id": "x"})

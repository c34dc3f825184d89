"""Session token issuance and validation."""
from __future__ import annotations

import pytest
from jose import jwt

from planner.identity_access.domain import AdminPrincipal, StudentPrincipal, TutorPrincipal
from planner.identity_access.tokens import (
    SessionTokenError,
    issue_session_token,
    verify_session_token,
)

SECRET = "unit-test-secret-0123456789abcdef0123"


@pytest.mark.parametrize(
    "principal",
    [
        AdminPrincipal(email="admin@aplusplanner.com"),
        TutorPrincipal(user_id="t-1", email="kofi@tutors.gh", specialty="Computer Science"),
        TutorPrincipal(user_id="t-2", email="yaa@tutors.gh", specialty=None),
        StudentPrincipal(user_id="s-1", email="ama@ug.edu.gh"),
    ],
)
def test_token_names_the_same_principal(principal):
    token = issue_session_token(principal, secret=SECRET)
    assert verify_session_token(token, secret=SECRET) == principal


def test_expired_token_is_rejected():
    token = issue_session_token(StudentPrincipal(user_id="s", email="s@x.io"), secret=SECRET, ttl_seconds=60, now=1_000)
    with pytest.raises(SessionTokenError) as exc:
        verify_session_token(token, secret=SECRET, now=2_000)
    assert exc.value.code == "token_expired"


def test_small_clock_skew_is_tolerated():
    token = issue_session_token(StudentPrincipal(user_id="s", email="s@x.io"), secret=SECRET, ttl_seconds=60, now=1_000)
    assert verify_session_token(token, secret=SECRET, now=1_063).user_id == "s"


def test_token_from_the_future_is_rejected():
    token = issue_session_token(StudentPrincipal(user_id="s", email="s@x.io"), secret=SECRET, now=5_000)
    with pytest.raises(SessionTokenError):
        verify_session_token(token, secret=SECRET, now=1_000)


def test_wrong_secret_is_rejected():
    token = issue_session_token(StudentPrincipal(user_id="s", email="s@x.io"), secret=SECRET)
    with pytest.raises(SessionTokenError) as exc:
        verify_session_token(token, secret="another-secret-entirely-0123456789")
    assert exc.value.code == "invalid_token"


@pytest.mark.parametrize("token", ["", "not-a-jwt", "a.b.c"])
def test_garbage_is_rejected(token):
    with pytest.raises(SessionTokenError):
        verify_session_token(token, secret=SECRET)


def test_unknown_role_is_rejected():
    token = jwt.encode({"sub": "x", "email": "x@y.io", "role": "ROOT", "exp": 9_999_999_999}, SECRET, algorithm="HS256")
    with pytest.raises(SessionTokenError) as exc:
        verify_session_token(token, secret=SECRET)
    assert exc.value.code == "invalid_role"


def test_missing_expiry_is_rejected():
    token = jwt.encode({"sub": "x", "email": "x@y.io", "role": "STUDENT"}, SECRET, algorithm="HS256")
    with pytest.raises(SessionTokenError):
        verify_session_token(token, secret=SECRET)

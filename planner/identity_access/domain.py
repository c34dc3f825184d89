"""
Identity domain: roles, users and the authenticated principal.

Why:
- Centralize allowed roles to avoid drift between the token layer, the web
  adapters and the lifecycle guards.
- Model the caller as a closed set of principal types instead of a loose
  role string so every guard can match on the concrete type.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union


class Role(str, Enum):
    ADMIN = "ADMIN"
    TUTOR = "TUTOR"
    STUDENT = "STUDENT"


# Roles that exist as stored users. The admin is configured, not registered.
USER_ROLES = frozenset({Role.TUTOR, Role.STUDENT})


@dataclass(frozen=True)
class User:
    id: str
    first_name: str
    last_name: str
    email: str
    password_hash: str
    role: Role
    program_specialty: Optional[str]
    certificate_url: Optional[str]
    department: Optional[str]
    phone_number: Optional[str]
    momo_number: Optional[str]
    university: Optional[str]
    is_verified: bool
    is_approved: bool
    created_at: str

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass(frozen=True)
class AdminPrincipal:
    email: str

    @property
    def role(self) -> Role:
        return Role.ADMIN

    @property
    def user_id(self) -> str:
        return self.email


@dataclass(frozen=True)
class TutorPrincipal:
    user_id: str
    email: str
    specialty: Optional[str]

    @property
    def role(self) -> Role:
        return Role.TUTOR


@dataclass(frozen=True)
class StudentPrincipal:
    user_id: str
    email: str

    @property
    def role(self) -> Role:
        return Role.STUDENT


Principal = Union[AdminPrincipal, TutorPrincipal, StudentPrincipal]


def principal_for_user(user: User) -> Principal:
    """Build the principal for a stored user (tutor or student)."""
    if user.role is Role.TUTOR:
        return TutorPrincipal(user_id=user.id, email=user.email, specialty=user.program_specialty)
    if user.role is Role.STUDENT:
        return StudentPrincipal(user_id=user.id, email=user.email)
    raise ValueError("unsupported_user_role")


__all__ = [
    "Role",
    "USER_ROLES",
    "User",
    "AdminPrincipal",
    "TutorPrincipal",
    "StudentPrincipal",
    "Principal",
    "principal_for_user",
]

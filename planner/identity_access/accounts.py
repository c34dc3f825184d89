"""Account use cases: registration, login and the admin-side tutor lifecycle.

Why:
    Keeps identity rules (email uniqueness, tutor approval gating login,
    role-immutable users, the configured admin identity) out of the FastAPI
    adapters so they can be unit-tested with fake stores.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import re
import secrets
import time
from typing import List, Optional, Protocol
from uuid import uuid4

from planner.errors import Forbidden, InvalidStateTransition, NotFound, UpstreamFailure, ValidationError
from planner.notifications import messages
from planner.notifications.ports import NotifierProtocol
from planner.storage.keys import make_certificate_key
from planner.storage.ports import MAX_UPLOAD_BYTES, BlobStoreError, BlobStoreProtocol, UploadedFile

from .domain import AdminPrincipal, Principal, Role, User, principal_for_user
from .passwords import hash_password, verify_password

LOG = logging.getLogger(__name__)


class UsersRepoProtocol(Protocol):
    def create_user(
        self,
        *,
        first_name: str,
        last_name: str,
        email: str,
        password_hash: str,
        role: Role,
        program_specialty: Optional[str] = None,
        certificate_url: Optional[str] = None,
        department: Optional[str] = None,
        phone_number: Optional[str] = None,
        momo_number: Optional[str] = None,
        university: Optional[str] = "University of Ghana",
        is_approved: bool = False,
    ) -> User:
        ...

    def get_user(self, user_id: str) -> Optional[User]:
        ...

    def get_user_by_email(self, email: str) -> Optional[User]:
        ...

    def list_users(self, *, role: Role, is_approved: Optional[bool] = None) -> List[User]:
        ...

    def approve_tutor(self, user_id: str) -> Optional[User]:
        ...

    def delete_tutor(self, user_id: str) -> bool:
        ...


class TutorWorkloadProtocol(Protocol):
    def has_assignments_for_tutor(self, tutor_id: str) -> bool:
        ...


_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MIN_PASSWORD_LENGTH = 8


def _required(value: object, code: str, *, max_len: int = 200) -> str:
    if not isinstance(value, str):
        raise ValidationError(code)
    trimmed = value.strip()
    if not trimmed or len(trimmed) > max_len:
        raise ValidationError(code)
    return trimmed


def _optional(value: object, code: str, *, max_len: int = 200) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str) or len(value.strip()) > max_len:
        raise ValidationError(code)
    return value.strip() or None


def normalize_email(value: object) -> str:
    email = _required(value, "invalid_email", max_len=254).lower()
    if not _EMAIL_RE.match(email):
        raise ValidationError("invalid_email")
    return email


def _password(value: object) -> str:
    if not isinstance(value, str) or len(value) < MIN_PASSWORD_LENGTH or len(value) > 256:
        raise ValidationError("invalid_password")
    return value


def _require_admin(principal: Principal) -> None:
    if not isinstance(principal, AdminPrincipal):
        raise Forbidden("admin_only")


@dataclass
class AccountsService:
    """Use cases for user accounts (framework-independent)."""

    users: UsersRepoProtocol
    workload: TutorWorkloadProtocol
    blobs: BlobStoreProtocol
    notifier: NotifierProtocol
    admin_email: str
    admin_password: str

    # --- Registration --------------------------------------------------------

    def register_student(
        self,
        *,
        first_name: object,
        last_name: object,
        email: object,
        password: object,
        department: object = None,
        phone_number: object = None,
        momo_number: object = None,
    ) -> User:
        first = _required(first_name, "invalid_first_name")
        last = _required(last_name, "invalid_last_name")
        addr = normalize_email(email)
        pw = _password(password)
        self._ensure_email_free(addr)
        try:
            user = self.users.create_user(
                first_name=first,
                last_name=last,
                email=addr,
                password_hash=hash_password(pw),
                role=Role.STUDENT,
                department=_optional(department, "invalid_department"),
                phone_number=_optional(phone_number, "invalid_phone_number", max_len=32),
                momo_number=_optional(momo_number, "invalid_momo_number", max_len=32),
                is_approved=True,
            )
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        LOG.info("Student registered (user_id=%s)", user.id)
        return user

    def register_tutor(
        self,
        *,
        first_name: object,
        last_name: object,
        email: object,
        password: object,
        program_specialty: object,
        certificate: Optional[UploadedFile],
    ) -> User:
        first = _required(first_name, "invalid_first_name")
        last = _required(last_name, "invalid_last_name")
        addr = normalize_email(email)
        pw = _password(password)
        specialty = _required(program_specialty, "invalid_program_specialty")
        if certificate is None or certificate.size == 0:
            raise ValidationError("certificate_required")
        if certificate.size > MAX_UPLOAD_BYTES:
            raise ValidationError("certificate_too_large")
        self._ensure_email_free(addr)
        key = make_certificate_key(
            filename=certificate.filename,
            epoch_ms=int(time.time() * 1000),
            uuid_hex=uuid4().hex,
        )
        try:
            certificate_url = self.blobs.upload(
                key=key,
                data=certificate.data,
                content_type=certificate.content_type or "application/octet-stream",
            )
        except BlobStoreError as exc:
            raise UpstreamFailure("certificate_upload_failed") from exc
        try:
            user = self.users.create_user(
                first_name=first,
                last_name=last,
                email=addr,
                password_hash=hash_password(pw),
                role=Role.TUTOR,
                program_specialty=specialty,
                certificate_url=certificate_url,
                is_approved=False,
            )
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        LOG.info("Tutor registered, awaiting approval (user_id=%s)", user.id)
        return user

    def _ensure_email_free(self, email: str) -> None:
        if email == self.admin_email or self.users.get_user_by_email(email) is not None:
            raise ValidationError("email_taken")

    # --- Login ---------------------------------------------------------------

    def login(self, *, email: object, password: object) -> tuple[User, Principal]:
        """Authenticate a stored user; unapproved tutors are refused."""
        try:
            addr = normalize_email(email)
        except ValidationError:
            raise ValidationError("invalid_credentials")
        user = self.users.get_user_by_email(addr)
        if user is None or not isinstance(password, str) or not verify_password(password, user.password_hash):
            raise ValidationError("invalid_credentials")
        if user.role is Role.TUTOR and not user.is_approved:
            raise Forbidden("tutor_not_approved")
        return user, principal_for_user(user)

    def admin_login(self, *, email: object, password: object) -> AdminPrincipal:
        addr = email.strip().lower() if isinstance(email, str) else ""
        pw = password if isinstance(password, str) else ""
        email_ok = secrets.compare_digest(addr.encode(), self.admin_email.encode())
        password_ok = secrets.compare_digest(pw.encode(), self.admin_password.encode())
        if not (email_ok and password_ok):
            raise ValidationError("invalid_admin_credentials")
        return AdminPrincipal(email=self.admin_email)

    def resolve_active(self, principal: Principal) -> Principal:
        """Re-check that a token's user still exists and may act.

        Tokens outlive deletions and approvals revoked by deletion; the
        middleware calls this on every request.
        """
        if isinstance(principal, AdminPrincipal):
            if principal.email != self.admin_email:
                raise ValidationError("invalid_token")
            return principal
        user = self.users.get_user(principal.user_id)
        if user is None or user.role is not principal.role:
            raise ValidationError("invalid_token")
        if user.role is Role.TUTOR and not user.is_approved:
            raise Forbidden("tutor_not_approved")
        return principal_for_user(user)

    # --- Admin: tutor lifecycle ----------------------------------------------

    def approve_tutor(self, principal: Principal, tutor_id: str) -> User:
        _require_admin(principal)
        tutor = self._get_role(tutor_id, Role.TUTOR, "tutor_not_found")
        if tutor.is_approved:
            raise InvalidStateTransition("tutor_already_approved")
        updated = self.users.approve_tutor(tutor_id)
        if updated is None:
            raise InvalidStateTransition("tutor_already_approved")
        LOG.info("Tutor approved (user_id=%s)", tutor_id)
        self.notifier.emit(messages.tutor_approved(tutor_email=updated.email))
        return updated

    def delete_tutor(self, principal: Principal, tutor_id: str) -> None:
        _require_admin(principal)
        tutor = self._get_role(tutor_id, Role.TUTOR, "tutor_not_found")
        if self.workload.has_assignments_for_tutor(tutor_id):
            raise InvalidStateTransition("tutor_has_assignments")
        if not self.users.delete_tutor(tutor_id):
            raise NotFound("tutor_not_found")
        LOG.info("Tutor deleted (user_id=%s)", tutor_id)
        self.notifier.emit(messages.tutor_application_rejected(tutor_email=tutor.email))

    # --- Admin: directory ----------------------------------------------------

    def list_pending_tutors(self, principal: Principal) -> List[User]:
        _require_admin(principal)
        return self.users.list_users(role=Role.TUTOR, is_approved=False)

    def list_tutors(self, principal: Principal) -> List[User]:
        _require_admin(principal)
        return self.users.list_users(role=Role.TUTOR)

    def list_students(self, principal: Principal) -> List[User]:
        _require_admin(principal)
        return self.users.list_users(role=Role.STUDENT)

    def get_tutor(self, principal: Principal, tutor_id: str) -> User:
        _require_admin(principal)
        return self._get_role(tutor_id, Role.TUTOR, "tutor_not_found")

    def get_student(self, principal: Principal, student_id: str) -> User:
        _require_admin(principal)
        return self._get_role(student_id, Role.STUDENT, "student_not_found")

    def get_user(self, user_id: str) -> Optional[User]:
        return self.users.get_user(user_id)

    def _get_role(self, user_id: str, role: Role, code: str) -> User:
        user = self.users.get_user(user_id)
        if user is None or user.role is not role:
            raise NotFound(code)
        return user

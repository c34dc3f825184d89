"""
In-memory user store for development and tests.

Why: Lets the web app and the account service run without Postgres. The
production store is `stores_db.DBUserStore`; both satisfy
`accounts.UsersRepoProtocol`.
"""
from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from typing import Dict, List, Optional
from uuid import uuid4
import threading

from .domain import Role, User


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class InMemoryUserStore:
    def __init__(self) -> None:
        self._users: Dict[str, User] = {}
        self._lock = threading.Lock()

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
        with self._lock:
            if any(u.email == email for u in self._users.values()):
                raise ValueError("email_taken")
            user = User(
                id=str(uuid4()),
                first_name=first_name,
                last_name=last_name,
                email=email,
                password_hash=password_hash,
                role=role,
                program_specialty=program_specialty,
                certificate_url=certificate_url,
                department=department,
                phone_number=phone_number,
                momo_number=momo_number,
                university=university,
                is_verified=False,
                is_approved=is_approved,
                created_at=_now_iso(),
            )
            self._users[user.id] = user
            return user

    def get_user(self, user_id: str) -> Optional[User]:
        return self._users.get(user_id)

    def get_user_by_email(self, email: str) -> Optional[User]:
        for user in list(self._users.values()):
            if user.email == email:
                return user
        return None

    def list_users(self, *, role: Role, is_approved: Optional[bool] = None) -> List[User]:
        items = [u for u in self._users.values() if u.role is role]
        if is_approved is not None:
            items = [u for u in items if u.is_approved is is_approved]
        return sorted(items, key=lambda u: u.created_at)

    def approve_tutor(self, user_id: str) -> Optional[User]:
        with self._lock:
            user = self._users.get(user_id)
            if user is None or user.role is not Role.TUTOR or user.is_approved:
                return None
            updated = replace(user, is_approved=True)
            self._users[user_id] = updated
            return updated

    def delete_tutor(self, user_id: str) -> bool:
        with self._lock:
            user = self._users.get(user_id)
            if user is None or user.role is not Role.TUTOR:
                return False
            del self._users[user_id]
            return True

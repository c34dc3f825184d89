"""
Postgres-backed user store.

Design:
- Minimal psycopg3 usage; each call opens a short-lived connection.
- Returns `User` dataclasses so services stay independent of the driver.
- Email uniqueness is enforced by the `users_email_key` unique index; the
  violation is translated to ValueError("email_taken").
"""
from __future__ import annotations

from typing import List, Optional, Tuple

try:
    import psycopg
    HAVE_PSYCOPG = True
except Exception:  # pragma: no cover - optional in some dev envs
    psycopg = None  # type: ignore
    HAVE_PSYCOPG = False

from .domain import Role, User

_USER_COLUMNS_SQL = """
    id::text,
    first_name,
    last_name,
    email,
    password_hash,
    role,
    program_specialty,
    certificate_url,
    department,
    phone_number,
    momo_number,
    university,
    is_verified,
    is_approved,
    to_char(created_at at time zone 'utc', 'YYYY-MM-DD"T"HH24:MI:SS"+00:00"')
"""


def _row_to_user(row: Tuple) -> User:
    return User(
        id=row[0],
        first_name=row[1],
        last_name=row[2],
        email=row[3],
        password_hash=row[4],
        role=Role(row[5]),
        program_specialty=row[6],
        certificate_url=row[7],
        department=row[8],
        phone_number=row[9],
        momo_number=row[10],
        university=row[11],
        is_verified=bool(row[12]),
        is_approved=bool(row[13]),
        created_at=row[14],
    )


class DBUserStore:
    def __init__(self, dsn: str) -> None:
        if not HAVE_PSYCOPG:
            raise RuntimeError("psycopg3 is required for DBUserStore")
        if not dsn:
            raise RuntimeError("Database DSN unavailable for DBUserStore")
        self._dsn = dsn

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
        try:
            with psycopg.connect(self._dsn) as conn:
                with conn.cursor() as cur:
                    cur.execute(
                        f"""
                        insert into public.users (
                          first_name, last_name, email, password_hash, role, program_specialty,
                          certificate_url, department, phone_number, momo_number, university, is_approved
                        )
                        values (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                        returning {_USER_COLUMNS_SQL}
                        """,
                        (
                            first_name,
                            last_name,
                            email,
                            password_hash,
                            role.value,
                            program_specialty,
                            certificate_url,
                            department,
                            phone_number,
                            momo_number,
                            university,
                            is_approved,
                        ),
                    )
                    row = cur.fetchone()
                    conn.commit()
        except psycopg.errors.UniqueViolation as exc:
            raise ValueError("email_taken") from exc
        if not row:
            raise RuntimeError("users insert returned no row")
        return _row_to_user(row)

    def get_user(self, user_id: str) -> Optional[User]:
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"select {_USER_COLUMNS_SQL} from public.users where id::text = %s",
                    (user_id,),
                )
                row = cur.fetchone()
        return _row_to_user(row) if row else None

    def get_user_by_email(self, email: str) -> Optional[User]:
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"select {_USER_COLUMNS_SQL} from public.users where email = %s",
                    (email,),
                )
                row = cur.fetchone()
        return _row_to_user(row) if row else None

    def list_users(self, *, role: Role, is_approved: Optional[bool] = None) -> List[User]:
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                if is_approved is None:
                    cur.execute(
                        f"select {_USER_COLUMNS_SQL} from public.users where role = %s order by created_at, id",
                        (role.value,),
                    )
                else:
                    cur.execute(
                        f"""
                        select {_USER_COLUMNS_SQL}
                        from public.users
                        where role = %s and is_approved = %s
                        order by created_at, id
                        """,
                        (role.value, is_approved),
                    )
                rows = cur.fetchall() or []
        return [_row_to_user(r) for r in rows]

    def approve_tutor(self, user_id: str) -> Optional[User]:
        """Flip is_approved for an unapproved tutor; None when nothing matched."""
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"""
                    update public.users
                    set is_approved = true
                    where id::text = %s
                      and role = 'TUTOR'
                      and is_approved = false
                    returning {_USER_COLUMNS_SQL}
                    """,
                    (user_id,),
                )
                row = cur.fetchone()
                conn.commit()
        return _row_to_user(row) if row else None

    def delete_tutor(self, user_id: str) -> bool:
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "delete from public.users where id::text = %s and role = 'TUTOR'",
                    (user_id,),
                )
                deleted = cur.rowcount == 1
                conn.commit()
        return deleted

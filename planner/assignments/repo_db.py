"""
Postgres-backed repository for assignments.

Design:
- Minimal psycopg3 usage; each call opens a short-lived connection.
- Returns `Assignment` dataclasses so the lifecycle engine stays independent
  of the driver.
- Every transition is a single conditional UPDATE guarded on the expected
  source statuses (and optionally the tutor and the paid flag). Postgres
  row locking makes exactly one of several concurrent writers match; the
  others get no row back and the engine reports a stale state.
"""
from __future__ import annotations

from typing import Any, List, Mapping, Optional, Tuple

try:
    import psycopg
    from psycopg import sql as _sql
    HAVE_PSYCOPG = True
except Exception:  # pragma: no cover - optional in some dev envs
    psycopg = None  # type: ignore
    _sql = None  # type: ignore
    HAVE_PSYCOPG = False

from .domain import MUTABLE_FIELDS, Assignment, AssignmentStatus

_TS = """to_char({col} at time zone 'utc', 'YYYY-MM-DD"T"HH24:MI:SS.US"+00:00"')"""

_ASSIGNMENT_COLUMNS_SQL = f"""
    id::text,
    student_id::text,
    title,
    description,
    program_specialty,
    file_url,
    status,
    assigned_tutor_id::text,
    tutor_charge,
    is_paid,
    payment_reference,
    completed_file_url,
    {_TS.format(col="submitted_at")},
    case when completed_at is null then null else {_TS.format(col="completed_at")} end,
    case when paid_at is null then null else {_TS.format(col="paid_at")} end
"""


def _row_to_assignment(row: Tuple) -> Assignment:
    return Assignment(
        id=row[0],
        student_id=row[1],
        title=row[2],
        description=row[3],
        program_specialty=row[4],
        file_url=row[5],
        status=AssignmentStatus(row[6]),
        assigned_tutor_id=row[7],
        tutor_charge=float(row[8]) if row[8] is not None else None,
        is_paid=bool(row[9]),
        payment_reference=row[10],
        completed_file_url=row[11],
        submitted_at=row[12],
        completed_at=row[13],
        paid_at=row[14],
    )


def _db_value(value: Any) -> Any:
    if isinstance(value, AssignmentStatus):
        return value.value
    return value


class DBAssignmentRepo:
    def __init__(self, dsn: str) -> None:
        if not HAVE_PSYCOPG:
            raise RuntimeError("psycopg3 is required for DBAssignmentRepo")
        if not dsn:
            raise RuntimeError("Database DSN unavailable for DBAssignmentRepo")
        self._dsn = dsn

    def create_assignment(
        self,
        *,
        student_id: str,
        title: str,
        description: str,
        program_specialty: str,
        file_url: str,
    ) -> Assignment:
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"""
                    insert into public.assignments (student_id, title, description, program_specialty, file_url, status)
                    values (%s, %s, %s, %s, %s, %s)
                    returning {_ASSIGNMENT_COLUMNS_SQL}
                    """,
                    (student_id, title, description, program_specialty, file_url, AssignmentStatus.PENDING.value),
                )
                row = cur.fetchone()
                if not row:
                    raise RuntimeError("assignments insert returned no row")
                conn.commit()
        return _row_to_assignment(row)

    def get_assignment(self, assignment_id: str) -> Optional[Assignment]:
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"select {_ASSIGNMENT_COLUMNS_SQL} from public.assignments where id::text = %s",
                    (assignment_id,),
                )
                row = cur.fetchone()
        return _row_to_assignment(row) if row else None

    def apply_transition(
        self,
        assignment_id: str,
        *,
        expected: frozenset,
        changes: Mapping[str, Any],
        tutor_id: Optional[str] = None,
        require_unpaid: bool = False,
    ) -> Optional[Assignment]:
        """Conditionally update one assignment; None when the guard did not match."""
        unknown = set(changes) - MUTABLE_FIELDS
        if unknown or not changes:
            raise ValueError("invalid_transition_changes")
        cols = sorted(changes)
        assignments = [_sql.SQL("{} = %s").format(_sql.Identifier(col)) for col in cols]
        params: List[object] = [_db_value(changes[col]) for col in cols]
        conditions = [_sql.SQL("id::text = %s"), _sql.SQL("status = any(%s)")]
        params.extend([assignment_id, sorted(s.value for s in expected)])
        if tutor_id is not None:
            conditions.append(_sql.SQL("assigned_tutor_id::text = %s"))
            params.append(tutor_id)
        if require_unpaid:
            conditions.append(_sql.SQL("is_paid = false"))
        stmt = _sql.SQL(
            f"""
            update public.assignments
            set {{assign}}
            where {{cond}}
            returning {_ASSIGNMENT_COLUMNS_SQL}
            """
        ).format(
            assign=_sql.SQL(", ").join(assignments),
            cond=_sql.SQL(" and ").join(conditions),
        )
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(stmt, params)
                row = cur.fetchone()
                if not row:
                    conn.rollback()
                    return None
                conn.commit()
        return _row_to_assignment(row)

    def list_assignments(
        self,
        *,
        status: Optional[AssignmentStatus] = None,
        student_id: Optional[str] = None,
        tutor_id: Optional[str] = None,
        specialty: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Assignment]:
        conditions: List[str] = []
        params: List[object] = []
        if status is not None:
            conditions.append("status = %s")
            params.append(status.value)
        if student_id is not None:
            conditions.append("student_id::text = %s")
            params.append(student_id)
        if tutor_id is not None:
            conditions.append("assigned_tutor_id::text = %s")
            params.append(tutor_id)
        if specialty is not None:
            conditions.append("program_specialty = %s")
            params.append(specialty)
        where = f"where {' and '.join(conditions)}" if conditions else ""
        page = ""
        if limit is not None:
            page = "limit %s offset %s"
            params.extend([int(limit), max(0, int(offset))])
        elif offset:
            page = "offset %s"
            params.append(max(0, int(offset)))
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"""
                    select {_ASSIGNMENT_COLUMNS_SQL}
                    from public.assignments
                    {where}
                    order by submitted_at asc, id
                    {page}
                    """,
                    params,
                )
                rows = cur.fetchall() or []
        return [_row_to_assignment(r) for r in rows]

    def count_assignments(self, *, status: Optional[AssignmentStatus] = None) -> int:
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                if status is None:
                    cur.execute("select count(*) from public.assignments")
                else:
                    cur.execute("select count(*) from public.assignments where status = %s", (status.value,))
                row = cur.fetchone()
        return int(row[0]) if row else 0

    def has_assignments_for_tutor(self, tutor_id: str) -> bool:
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "select exists(select 1 from public.assignments where assigned_tutor_id::text = %s)",
                    (tutor_id,),
                )
                row = cur.fetchone()
        return bool(row and row[0])

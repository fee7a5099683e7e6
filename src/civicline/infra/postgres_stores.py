"""PostgreSQL implementations of the engine's stores.

Uses raw SQL with psycopg2 (no ORM). Every operation runs in its own short
transaction via `txn()`. Schema: migrations/sql/001_intake_schema.sql.
"""

from __future__ import annotations

import json
from datetime import datetime, timedelta
from typing import Any

import psycopg2
from psycopg2.extensions import cursor as PgCursor

from civicline.domain.cases import CaseDraft, CaseRecord, CaseType, Department
from civicline.domain.idempotency import DEFAULT_RETENTION
from civicline.domain.ports import PersistenceError
from civicline.domain.sessions import DEFAULT_SESSION_TTL, Flow, Session, fresh_session
from civicline.infra.clock import Clock, utc_now
from civicline.infra.db import fetchall, fetchone, txn

_CASE_COLUMNS = """
    reference, case_type, citizen_name, citizen_phone, status, created_at,
    department_id, category, description, media_ref, purpose,
    appointment_date, appointment_time, language
"""

_DEPARTMENT_COLUMNS = "id, name, description, is_active, contact_phone"


def _case_from_row(row: tuple[Any, ...]) -> CaseRecord:
    return CaseRecord(
        reference=row[0],
        case_type=CaseType(row[1]),
        citizen_name=row[2],
        citizen_phone=row[3],
        status=row[4],
        created_at=row[5],
        department_id=row[6],
        category=row[7],
        description=row[8],
        media_ref=row[9],
        purpose=row[10],
        appointment_date=row[11],
        appointment_time=row[12],
        language=row[13],
    )


def _department_from_row(row: tuple[Any, ...]) -> Department:
    return Department(
        id=row[0],
        name=row[1],
        description=row[2] or "",
        is_active=bool(row[3]),
        contact_phone=row[4],
    )


class PostgresCaseStore:
    def create_case(self, draft: CaseDraft) -> CaseRecord:
        if not draft.reference:
            raise PersistenceError("case draft has no reference")
        try:
            with txn() as cur:
                cur.execute(
                    f"""
                    INSERT INTO cases (
                        reference, case_type, citizen_name, citizen_phone,
                        department_id, category, description, media_ref,
                        purpose, appointment_date, appointment_time, language
                    )
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                    RETURNING {_CASE_COLUMNS}
                    """,
                    (
                        draft.reference,
                        draft.case_type.value,
                        draft.citizen_name,
                        draft.citizen_phone,
                        draft.department_id,
                        draft.category,
                        draft.description,
                        draft.media_ref,
                        draft.purpose,
                        draft.appointment_date,
                        draft.appointment_time,
                        draft.language,
                    ),
                )
                row = cur.fetchone()
        except psycopg2.Error as exc:
            raise PersistenceError(f"case insert failed: {type(exc).__name__}") from exc
        return _case_from_row(row)

    def find_case_by_reference(self, reference: str) -> CaseRecord | None:
        with txn() as cur:
            row = fetchone(
                cur,
                f"SELECT {_CASE_COLUMNS} FROM cases WHERE upper(reference) = upper(%s)",
                (reference.strip(),),
            )
        return _case_from_row(row) if row else None

    def find_case_by_phone(self, phone: str, most_recent: bool = True) -> CaseRecord | None:
        order = "DESC" if most_recent else "ASC"
        with txn() as cur:
            row = fetchone(
                cur,
                f"""
                SELECT {_CASE_COLUMNS} FROM cases
                WHERE citizen_phone = %s
                ORDER BY created_at {order}, reference {order}
                LIMIT 1
                """,
                (phone,),
            )
        return _case_from_row(row) if row else None

    def find_department(self, department_id: str) -> Department | None:
        with txn() as cur:
            row = fetchone(cur, f"SELECT {_DEPARTMENT_COLUMNS} FROM departments WHERE id = %s", (department_id,))
        return _department_from_row(row) if row else None

    def list_departments(self, active_only: bool = True) -> list[Department]:
        where = "WHERE is_active" if active_only else ""
        with txn() as cur:
            rows = fetchall(cur, f"SELECT {_DEPARTMENT_COLUMNS} FROM departments {where} ORDER BY sort_order, name")
        return [_department_from_row(row) for row in rows]


class PostgresReferenceReserver:
    """Reservations in case_references; (prefix, number) is unique."""

    def current_max(self, prefix: str) -> int:
        with txn() as cur:
            row = fetchone(cur, "SELECT COALESCE(MAX(number), 0) FROM case_references WHERE prefix = %s", (prefix,))
        return int(row[0]) if row else 0

    def reserve(self, reference: str) -> bool:
        prefix, number = reference[:3], int(reference[3:])
        with txn() as cur:
            cur.execute(
                """
                INSERT INTO case_references (reference, prefix, number)
                VALUES (%s, %s, %s)
                ON CONFLICT DO NOTHING
                """,
                (reference, prefix, number),
            )
            return cur.rowcount == 1


class PostgresIdempotencyStore:
    """processed_events receipts; rows older than the retention window count as absent."""

    def __init__(self, retention: timedelta = DEFAULT_RETENTION, clock: Clock = utc_now) -> None:
        self._retention = retention
        self._clock = clock

    def exists(self, message_id: str) -> bool:
        cutoff = self._clock() - self._retention
        with txn() as cur:
            row = fetchone(
                cur,
                "SELECT 1 FROM processed_events WHERE message_id = %s AND processed_at > %s",
                (message_id, cutoff),
            )
        return row is not None

    def insert_if_absent(self, message_id: str) -> bool:
        now = self._clock()
        cutoff = now - self._retention
        with txn() as cur:
            # An expired receipt is refreshed and counts as a first delivery
            cur.execute(
                """
                INSERT INTO processed_events (message_id, processed_at)
                VALUES (%s, %s)
                ON CONFLICT (message_id) DO UPDATE
                SET processed_at = EXCLUDED.processed_at
                WHERE processed_events.processed_at <= %s
                """,
                (message_id, now, cutoff),
            )
            return cur.rowcount == 1

    def purge(self) -> int:
        cutoff = self._clock() - self._retention
        with txn() as cur:
            cur.execute("DELETE FROM processed_events WHERE processed_at <= %s", (cutoff,))
            return cur.rowcount


class PostgresSessionStore:
    """chat_sessions rows; expiry is checked lazily on read like the in-memory store."""

    def __init__(self, ttl: timedelta = DEFAULT_SESSION_TTL, clock: Clock = utc_now) -> None:
        self._ttl = ttl
        self._clock = clock

    def get(self, session_key: str) -> Session:
        now = self._clock()
        with txn() as cur:
            row = _select_session(cur, session_key)
            if row is None:
                return fresh_session(session_key, now)
            session = Session(
                session_key=row[0],
                language=row[1],
                flow=Flow(row[2]),
                step=row[3],
                collected=row[4] or {},
                last_activity_at=row[5],
            )
            if session.is_expired(now, self._ttl):
                cur.execute("DELETE FROM chat_sessions WHERE session_key = %s", (session_key,))
                return fresh_session(session_key, now)
        return session

    def put(self, session_key: str, session: Session) -> None:
        if session.session_key != session_key:
            raise ValueError("session belongs to a different key")
        with txn() as cur:
            cur.execute(
                """
                INSERT INTO chat_sessions (session_key, language, flow, step, collected, last_activity_at)
                VALUES (%s, %s, %s, %s, %s::jsonb, %s)
                ON CONFLICT (session_key) DO UPDATE SET
                    language = EXCLUDED.language,
                    flow = EXCLUDED.flow,
                    step = EXCLUDED.step,
                    collected = EXCLUDED.collected,
                    last_activity_at = EXCLUDED.last_activity_at
                """,
                (
                    session_key,
                    session.language,
                    session.flow.value,
                    session.step,
                    json.dumps(dict(session.collected), ensure_ascii=False),
                    session.last_activity_at,
                ),
            )

    def clear(self, session_key: str) -> None:
        with txn() as cur:
            cur.execute("DELETE FROM chat_sessions WHERE session_key = %s", (session_key,))

    def sweep(self) -> int:
        cutoff: datetime = self._clock() - self._ttl
        with txn() as cur:
            cur.execute("DELETE FROM chat_sessions WHERE last_activity_at <= %s", (cutoff,))
            return cur.rowcount


def _select_session(cur: PgCursor, session_key: str) -> tuple[Any, ...] | None:
    return fetchone(
        cur,
        """
        SELECT session_key, language, flow, step, collected, last_activity_at
        FROM chat_sessions WHERE session_key = %s
        """,
        (session_key,),
    )

"""Owner-scoped persistence for every entity kind.

Every statement on a child table carries ``user_id = ?``; a record owned by
someone else is indistinguishable from one that does not exist.
"""
import json
import logging
import sqlite3
from datetime import datetime
from typing import NamedTuple, Optional

from config import SYMPTOM_LOG_LIST_LIMIT, _to_storage, _utcnow
from db import get_db

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Raised when the underlying database call fails."""


class EntitySpec(NamedTuple):
    table: str
    columns: tuple
    order_by: str
    json_columns: tuple = ()
    bool_columns: tuple = ()
    # columns filled with the current time when a create omits them
    now_columns: tuple = ()
    default_limit: Optional[int] = None


ENTITIES = {
    "symptom_logs": EntitySpec(
        table="symptom_logs",
        columns=(
            "date", "pain_level", "fatigue_level", "energy_level", "mood",
            "additional_symptoms", "medications", "notes", "voice_note",
        ),
        order_by="date DESC, id DESC",
        json_columns=("additional_symptoms", "medications"),
        now_columns=("date",),
        default_limit=SYMPTOM_LOG_LIST_LIMIT,
    ),
    "medical_timeline": EntitySpec(
        table="medical_timeline",
        columns=(
            "title", "description", "type", "date", "doctor_name", "location",
            "attachments", "created_at",
        ),
        order_by="date DESC, id DESC",
        json_columns=("attachments",),
        now_columns=("created_at",),
    ),
    "appointments": EntitySpec(
        table="appointments",
        columns=(
            "title", "doctor_name", "date", "location", "prep_notes", "completed",
            "reminder_sent",
        ),
        order_by="date DESC, id DESC",
        bool_columns=("completed", "reminder_sent"),
    ),
    "health_tasks": EntitySpec(
        table="health_tasks",
        columns=(
            "title", "description", "due_date", "completed", "snoozed_until",
            "priority", "category",
        ),
        # undated tasks sort after dated ones
        order_by="due_date IS NULL, due_date ASC, id ASC",
        bool_columns=("completed",),
    ),
    "expenses": EntitySpec(
        table="expenses",
        columns=(
            "description", "amount", "date", "category", "receipt_url", "reimbursed",
            "insurance_claim",
        ),
        order_by="date DESC, id DESC",
        bool_columns=("reimbursed",),
        now_columns=("date",),
    ),
}

_USER_COLUMNS = (
    "first_name", "last_name", "email", "faith_mode_enabled", "anonymous_mode",
)


def _encode(spec: EntitySpec, values: dict) -> dict:
    row = {}
    for col in spec.columns:
        if col not in values:
            continue
        val = values[col]
        if col in spec.json_columns and val is not None:
            val = json.dumps(val)
        elif col in spec.bool_columns:
            val = 1 if val else 0
        elif isinstance(val, datetime):
            val = _to_storage(val)
        row[col] = val
    return row


def _decode(spec: EntitySpec, row: sqlite3.Row) -> dict:
    item = dict(row)
    for col in spec.json_columns:
        if item.get(col) is not None:
            item[col] = json.loads(item[col])
    for col in spec.bool_columns:
        item[col] = bool(item[col])
    return item


def _public_user(row: sqlite3.Row) -> dict:
    user = dict(row)
    user.pop("password_hash", None)
    user["faith_mode_enabled"] = bool(user["faith_mode_enabled"])
    user["anonymous_mode"] = bool(user["anonymous_mode"])
    return user


class EntityStore:
    """Typed CRUD over the health tables, always filtered by owner."""

    def _run(self, fn):
        try:
            with get_db() as conn:
                return fn(conn)
        except sqlite3.Error as exc:
            logger.exception("Database operation failed")
            raise StoreError(str(exc)) from exc

    # -- generic child-entity operations ------------------------------------

    def create(self, kind: str, user_id: int, values: dict) -> dict:
        spec = ENTITIES[kind]
        row = _encode(spec, values)
        now = _to_storage(_utcnow())
        for col in spec.now_columns:
            if row.get(col) is None:
                row[col] = now
        cols = ["user_id"] + list(row)
        placeholders = ", ".join("?" for _ in cols)

        def op(conn):
            cur = conn.execute(
                f"INSERT INTO {spec.table} ({', '.join(cols)}) VALUES ({placeholders})",
                [user_id] + list(row.values()),
            )
            conn.commit()
            return conn.execute(
                f"SELECT * FROM {spec.table} WHERE id = ? AND user_id = ?",
                (cur.lastrowid, user_id),
            ).fetchone()

        return _decode(spec, self._run(op))

    def get(self, kind: str, record_id: int, user_id: int) -> Optional[dict]:
        spec = ENTITIES[kind]
        row = self._run(lambda conn: conn.execute(
            f"SELECT * FROM {spec.table} WHERE id = ? AND user_id = ?",
            (record_id, user_id),
        ).fetchone())
        return _decode(spec, row) if row else None

    def list_records(self, kind: str, user_id: int, limit: Optional[int] = None) -> list:
        spec = ENTITIES[kind]
        limit = limit or spec.default_limit
        sql = f"SELECT * FROM {spec.table} WHERE user_id = ? ORDER BY {spec.order_by}"
        params: list = [user_id]
        if limit:
            sql += " LIMIT ?"
            params.append(limit)
        rows = self._run(lambda conn: conn.execute(sql, params).fetchall())
        return [_decode(spec, r) for r in rows]

    def update(self, kind: str, record_id: int, user_id: int, values: dict) -> Optional[dict]:
        spec = ENTITIES[kind]
        row = _encode(spec, values)
        if not row:
            return self.get(kind, record_id, user_id)
        assignments = ", ".join(f"{col} = ?" for col in row)

        def op(conn):
            cur = conn.execute(
                f"UPDATE {spec.table} SET {assignments} WHERE id = ? AND user_id = ?",
                list(row.values()) + [record_id, user_id],
            )
            conn.commit()
            if cur.rowcount == 0:
                return None
            return conn.execute(
                f"SELECT * FROM {spec.table} WHERE id = ? AND user_id = ?",
                (record_id, user_id),
            ).fetchone()

        updated = self._run(op)
        return _decode(spec, updated) if updated else None

    def delete(self, kind: str, record_id: int, user_id: int) -> bool:
        spec = ENTITIES[kind]

        def op(conn):
            cur = conn.execute(
                f"DELETE FROM {spec.table} WHERE id = ? AND user_id = ?",
                (record_id, user_id),
            )
            conn.commit()
            return cur.rowcount > 0

        return self._run(op)

    # -- entity-specific queries --------------------------------------------

    def symptom_logs_by_date_range(self, user_id: int, start: datetime, end: datetime) -> list:
        spec = ENTITIES["symptom_logs"]
        rows = self._run(lambda conn: conn.execute(
            "SELECT * FROM symptom_logs WHERE user_id = ? AND date >= ? AND date <= ?"
            f" ORDER BY {spec.order_by}",
            (user_id, _to_storage(start), _to_storage(end)),
        ).fetchall())
        return [_decode(spec, r) for r in rows]

    def upcoming_appointments(self, user_id: int, now: Optional[datetime] = None) -> list:
        spec = ENTITIES["appointments"]
        now_s = _to_storage(now or _utcnow())
        rows = self._run(lambda conn: conn.execute(
            "SELECT * FROM appointments WHERE user_id = ? AND date > ? AND completed = 0"
            " ORDER BY date ASC, id ASC",
            (user_id, now_s),
        ).fetchall())
        return [_decode(spec, r) for r in rows]

    # -- users ---------------------------------------------------------------

    def create_user(self, username: str, password_hash: str, profile: dict) -> Optional[dict]:
        """Insert a user; returns None when the username is already taken."""
        cols = ["username", "password_hash", "created_at"]
        params = [username, password_hash, _to_storage(_utcnow())]
        for col in _USER_COLUMNS:
            if col in profile:
                cols.append(col)
                val = profile[col]
                params.append(int(val) if isinstance(val, bool) else val)
        placeholders = ", ".join("?" for _ in cols)

        def op(conn):
            try:
                cur = conn.execute(
                    f"INSERT INTO users ({', '.join(cols)}) VALUES ({placeholders})", params
                )
            except sqlite3.IntegrityError:
                return None
            conn.commit()
            return conn.execute("SELECT * FROM users WHERE id = ?", (cur.lastrowid,)).fetchone()

        row = self._run(op)
        return _public_user(row) if row else None

    def get_user(self, user_id: int) -> Optional[dict]:
        row = self._run(lambda conn: conn.execute(
            "SELECT * FROM users WHERE id = ?", (user_id,)
        ).fetchone())
        return _public_user(row) if row else None

    def get_user_credentials(self, username: str) -> Optional[sqlite3.Row]:
        """Raw row including the password hash, for login checks only."""
        return self._run(lambda conn: conn.execute(
            "SELECT * FROM users WHERE username = ?", (username,)
        ).fetchone())

    def get_user_credentials_by_id(self, user_id: int) -> Optional[sqlite3.Row]:
        """Id, username and password hash, for session checks only."""
        return self._run(lambda conn: conn.execute(
            "SELECT id, username, password_hash FROM users WHERE id = ?", (user_id,)
        ).fetchone())

    def update_user(self, user_id: int, values: dict) -> Optional[dict]:
        updates = {col: values[col] for col in _USER_COLUMNS if col in values}
        if not updates:
            return self.get_user(user_id)
        assignments = ", ".join(f"{col} = ?" for col in updates)
        params = [int(v) if isinstance(v, bool) else v for v in updates.values()]

        def op(conn):
            conn.execute(f"UPDATE users SET {assignments} WHERE id = ?", params + [user_id])
            conn.commit()
            return conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()

        row = self._run(op)
        return _public_user(row) if row else None


def get_store() -> EntityStore:
    return EntityStore()

import os
import secrets
from contextvars import ContextVar
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

DB_PATH = os.environ.get("HEALTHLOG_DB_PATH", "healthlog.db")
SECRET_KEY_PATH = Path(".app_secret_key")
SESSION_TTL_SECONDS = 60 * 60 * 24 * 14
SESSION_COOKIE_NAME = "healthlog_session"
CSRF_COOKIE_NAME = "csrf_token"
MAX_UPLOAD_SIZE = 5 * 1024 * 1024

INSIGHTS_WINDOW_DAYS = 30
SYMPTOM_LOG_LIST_LIMIT = 50

_current_user_id: ContextVar[Optional[int]] = ContextVar("_current_user_id", default=None)

UPLOAD_DIR = Path(os.environ.get("HEALTHLOG_UPLOAD_DIR", "uploads"))
UPLOAD_DIR.mkdir(exist_ok=True)

PUBLIC_PATHS = {"/", "/api/register", "/api/login", "/api/logout"}

STORAGE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None, microsecond=0)


def _to_storage(dt: datetime) -> str:
    """Convert a datetime to the naive-UTC storage format."""
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt.strftime(STORAGE_FORMAT)


def _from_storage(ts: str) -> datetime:
    return datetime.strptime(ts, STORAGE_FORMAT)


def _parse_client_datetime(value: str) -> datetime:
    """Parse an ISO 8601 date or datetime sent by a client.

    Aware values are converted to UTC; naive values are taken as UTC already.
    Raises ValueError for anything unparseable.
    """
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    dt = datetime.fromisoformat(text)
    if dt.tzinfo is not None:
        try:
            dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
        except OverflowError:
            raise ValueError(f"datetime out of range: {value!r}") from None
    return dt.replace(microsecond=0)


def _window_ending_now(days: int, now: Optional[datetime] = None) -> tuple[datetime, datetime]:
    end = now or _utcnow()
    return end - timedelta(days=days), end


def _load_secret_key() -> str:
    env_key = os.environ.get("APP_SECRET_KEY", "").strip()
    if env_key:
        return env_key
    if SECRET_KEY_PATH.exists():
        return SECRET_KEY_PATH.read_text(encoding="utf-8").strip()
    key = secrets.token_hex(32)
    SECRET_KEY_PATH.write_text(key, encoding="utf-8")
    return key


SECRET_KEY = _load_secret_key()

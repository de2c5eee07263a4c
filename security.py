"""Session cookies, CSRF checks, password hashing and login throttling."""
import hashlib
import hmac
import logging
import secrets
import threading
from collections import defaultdict, deque
from time import time
from typing import Optional
from urllib.parse import urlsplit

from fastapi import HTTPException, Request

from config import (
    CSRF_COOKIE_NAME,
    SECRET_KEY,
    SESSION_COOKIE_NAME,
    SESSION_TTL_SECONDS,
    _current_user_id,
)
from store import EntityStore

logger = logging.getLogger(__name__)

_PBKDF2_ROUNDS = 480_000


class SlidingWindowLimiter:
    """Per-key attempt counter over a rolling window. In memory only."""

    def __init__(self, window: int, max_attempts: int):
        self.window = window
        self.max_attempts = max_attempts
        self._hits: dict[str, deque] = defaultdict(deque)
        self._lock = threading.Lock()

    def allow(self, key: str) -> bool:
        now = time()
        with self._lock:
            hits = self._hits[key]
            while hits and now - hits[0] >= self.window:
                hits.popleft()
            if len(hits) >= self.max_attempts:
                return False
            hits.append(now)
            return True

    def reset(self):
        with self._lock:
            self._hits.clear()


# 10 attempts per client address per 5 minutes
login_limiter = SlidingWindowLimiter(window=300, max_attempts=10)


# ---------------------------------------------------------------------------
# Origin / CSRF
# ---------------------------------------------------------------------------

def _request_origin_host(request: Request) -> str:
    header = request.headers.get("origin") or request.headers.get("referer") or ""
    return urlsplit(header).netloc.lower() if "://" in header else ""


def _is_same_origin(request: Request) -> bool:
    origin_host = _request_origin_host(request)
    return bool(origin_host) and origin_host == request.url.netloc.lower()


def _cookie_options(request: Request, httponly: bool) -> dict:
    return {"httponly": httponly, "samesite": "lax", "secure": request.url.scheme == "https"}


def _ensure_csrf_cookie(request: Request, response):
    """Hand out a double-submit token the first time a client shows up without one."""
    if not request.cookies.get(CSRF_COOKIE_NAME):
        response.set_cookie(
            CSRF_COOKIE_NAME, secrets.token_urlsafe(32), **_cookie_options(request, httponly=False)
        )
    return response


def _csrf_header_valid(request: Request) -> bool:
    cookie_token = request.cookies.get(CSRF_COOKIE_NAME, "")
    header_token = request.headers.get("x-csrf-token", "")
    return bool(cookie_token) and hmac.compare_digest(cookie_token, header_token)


# ---------------------------------------------------------------------------
# Passwords
# ---------------------------------------------------------------------------

def _hash_password(plaintext: str) -> str:
    salt = secrets.token_bytes(32)
    dk = hashlib.pbkdf2_hmac("sha256", plaintext.encode(), salt, _PBKDF2_ROUNDS)
    return f"{salt.hex()}:{dk.hex()}"


def _verify_password(plaintext: str, stored: str) -> bool:
    salt_hex, _, dk_hex = (stored or "").partition(":")
    try:
        salt, expected = bytes.fromhex(salt_hex), bytes.fromhex(dk_hex)
    except ValueError:
        return False
    if not salt or not expected:
        return False
    dk = hashlib.pbkdf2_hmac("sha256", plaintext.encode(), salt, _PBKDF2_ROUNDS)
    return hmac.compare_digest(dk, expected)


# ---------------------------------------------------------------------------
# Session tokens: "<user_id>:<expiry>:<nonce>:<signature>"
#
# The signature covers the stored password hash, so changing the password
# invalidates every outstanding session.
# ---------------------------------------------------------------------------

def _sign(payload: str, password_hash: str) -> str:
    return hmac.new(
        SECRET_KEY.encode(), f"{payload}:{password_hash}".encode(), "sha256"
    ).hexdigest()


def _make_session_token(user_id: int, password_hash: str) -> str:
    payload = f"{user_id}:{int(time()) + SESSION_TTL_SECONDS}:{secrets.token_urlsafe(16)}"
    return f"{payload}:{_sign(payload, password_hash)}"


def _parse_session_token(token: str) -> Optional[tuple]:
    """Split a token into (user_id, expiry, payload, signature), or None if malformed."""
    parts = token.split(":")
    if len(parts) != 4:
        return None
    uid_s, exp_s, _, sig = parts
    if not (uid_s.isdigit() and exp_s.isdigit()):
        return None
    return int(uid_s), int(exp_s), token.rsplit(":", 1)[0], sig


def _verify_session_token(token: str, user_id: int, password_hash: str) -> bool:
    parsed = _parse_session_token(token)
    if parsed is None:
        return False
    token_uid, exp, payload, sig = parsed
    if token_uid != user_id or exp < int(time()):
        return False
    return hmac.compare_digest(sig, _sign(payload, password_hash))


def _set_session_cookie(response, request: Request, user_id: int, password_hash: str):
    response.set_cookie(
        SESSION_COOKIE_NAME,
        _make_session_token(user_id, password_hash),
        max_age=SESSION_TTL_SECONDS,
        **_cookie_options(request, httponly=True),
    )
    return response


def _get_authenticated_user(request: Request):
    """Resolve the session cookie to a users row. Returns Row or None.

    Raises StoreError if the lookup itself fails.
    """
    parsed = _parse_session_token(request.cookies.get(SESSION_COOKIE_NAME, ""))
    if parsed is None:
        return None
    row = EntityStore().get_user_credentials_by_id(parsed[0])
    if not row or not row["password_hash"]:
        return None
    if not _verify_session_token(request.cookies[SESSION_COOKIE_NAME], row["id"], row["password_hash"]):
        logger.debug("Rejected session cookie for user %s", row["id"])
        return None
    return row


def require_user_id() -> int:
    """Dependency: the id resolved by the auth middleware, or 401."""
    uid = _current_user_id.get()
    if uid is None:
        raise HTTPException(status_code=401, detail="unauthorized")
    return uid

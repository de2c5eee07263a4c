import logging

from fastapi import APIRouter, Body, Depends, Request
from fastapi.responses import JSONResponse

from config import SESSION_COOKIE_NAME
from security import (
    _hash_password,
    _set_session_cookie,
    _verify_password,
    login_limiter,
    require_user_id,
)
from store import EntityStore, get_store
from validation import validate, validate_registration

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/api/register")
def api_register(
    request: Request,
    payload: dict = Body(...),
    store: EntityStore = Depends(get_store),
):
    result = validate_registration(payload)
    if not result.ok:
        return JSONResponse(
            {"ok": False, "error": "Invalid registration data", "fields": result.errors},
            status_code=400,
        )
    values = dict(result.values)
    username = values.pop("username")
    pw_hash = _hash_password(values.pop("password"))
    user = store.create_user(username, pw_hash, values)
    if user is None:
        return JSONResponse({"ok": False, "error": "Username already taken"}, status_code=400)
    logger.info("Registered user %s", user["id"])
    resp = JSONResponse({"ok": True, "user": user}, status_code=201)
    _set_session_cookie(resp, request, user["id"], pw_hash)
    return resp


@router.post("/api/login")
def api_login(
    request: Request,
    payload: dict = Body(...),
    store: EntityStore = Depends(get_store),
):
    ip = request.client.host if request.client else "unknown"
    if not login_limiter.allow(ip):
        logger.warning("Login rate limit hit for %s", ip)
        return JSONResponse(
            {"ok": False, "error": "Too many attempts. Please wait before trying again."},
            status_code=429,
        )
    username = str(payload.get("username") or "").strip()
    password = str(payload.get("password") or "")
    row = store.get_user_credentials(username) if username else None
    if not row or not _verify_password(password, row["password_hash"]):
        logger.warning("Rejected login for username %r", username)
        return JSONResponse(
            {"ok": False, "error": "Incorrect username or password"}, status_code=401
        )
    resp = JSONResponse({"ok": True, "user": store.get_user(row["id"])})
    _set_session_cookie(resp, request, row["id"], row["password_hash"])
    return resp


@router.post("/api/logout")
def api_logout():
    resp = JSONResponse({"ok": True})
    resp.delete_cookie(SESSION_COOKIE_NAME)
    return resp


@router.get("/api/user")
def api_user(uid: int = Depends(require_user_id), store: EntityStore = Depends(get_store)):
    user = store.get_user(uid)
    if user is None:
        return JSONResponse({"error": "unauthorized"}, status_code=401)
    return JSONResponse(user)


@router.patch("/api/user")
def api_user_update(
    payload: dict = Body(...),
    uid: int = Depends(require_user_id),
    store: EntityStore = Depends(get_store),
):
    """Profile fields and the faith-mode / anonymous-mode settings."""
    result = validate("profile", payload, partial=True)
    if not result.ok:
        return JSONResponse(
            {"ok": False, "error": "Invalid profile data", "fields": result.errors},
            status_code=400,
        )
    return JSONResponse({"ok": True, "user": store.update_user(uid, result.values)})

import logging
import os

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from config import PUBLIC_PATHS, _current_user_id
from db import init_db
from routers import appointments, auth, insights, records, symptom_logs, uploads
from security import (
    _csrf_header_valid,
    _ensure_csrf_cookie,
    _get_authenticated_user,
    _is_same_origin,
)
from store import StoreError

logger = logging.getLogger(__name__)

init_db()

app = FastAPI(title="Health Log API")

_MUTATING = {"POST", "PUT", "PATCH", "DELETE"}


@app.middleware("http")
async def auth_middleware(request: Request, call_next):
    path = request.url.path
    if path in PUBLIC_PATHS:
        if request.method in _MUTATING and not _is_same_origin(request):
            return JSONResponse({"error": "forbidden"}, status_code=403)
        return _ensure_csrf_cookie(request, await call_next(request))

    # Resolve the caller before anything can reach the store
    try:
        user = _get_authenticated_user(request)
    except StoreError:
        # exception handlers do not cover the middleware itself
        return _internal_error(request)
    if not user:
        return JSONResponse({"error": "unauthorized"}, status_code=401)
    if request.method in _MUTATING:
        if not _is_same_origin(request) or not _csrf_header_valid(request):
            return JSONResponse({"error": "forbidden"}, status_code=403)
    _current_user_id.set(user["id"])
    return _ensure_csrf_cookie(request, await call_next(request))


def _internal_error(request: Request) -> JSONResponse:
    # details are already logged by the store; callers get a generic failure
    logger.error("Store failure on %s %s", request.method, request.url.path)
    return JSONResponse({"ok": False, "error": "internal error"}, status_code=500)


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    return _internal_error(request)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    fields = {".".join(str(p) for p in err["loc"]): err["msg"] for err in exc.errors()}
    return JSONResponse(
        {"ok": False, "error": "Invalid request", "fields": fields}, status_code=400
    )


@app.exception_handler(HTTPException)
async def http_error_handler(request: Request, exc: HTTPException):
    if exc.status_code == 401:
        return JSONResponse({"error": "unauthorized"}, status_code=401)
    return JSONResponse({"ok": False, "error": exc.detail}, status_code=exc.status_code)


@app.get("/")
def root():
    return {"app": "Health Log API", "status": "ok"}


app.include_router(auth.router)
app.include_router(symptom_logs.router)
app.include_router(appointments.router)
app.include_router(records.router)
app.include_router(insights.router)
app.include_router(uploads.router)


if __name__ == "__main__":  # pragma: no cover
    import uvicorn

    logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO"))
    uvicorn.run(app, host="0.0.0.0", port=int(os.environ.get("PORT", 8000)))

from fastapi import APIRouter, Body, Depends, Query
from fastapi.responses import JSONResponse

from analysis import compute_insights
from config import INSIGHTS_WINDOW_DAYS, _parse_client_datetime, _window_ending_now
from reports import assemble_report
from security import require_user_id
from store import EntityStore, get_store

router = APIRouter()


@router.get("/api/insights")
def api_insights(
    days: int = Query(INSIGHTS_WINDOW_DAYS, ge=1, le=365),
    uid: int = Depends(require_user_id),
    store: EntityStore = Depends(get_store),
):
    start, end = _window_ending_now(days)
    logs = store.symptom_logs_by_date_range(uid, start, end)
    return JSONResponse(compute_insights(logs, start, end))


@router.post("/api/generate-report")
def api_generate_report(
    payload: dict = Body(...),
    uid: int = Depends(require_user_id),
    store: EntityStore = Depends(get_store),
):
    errors = {}
    bounds = {}
    for key in ("start_date", "end_date"):
        raw = payload.get(key)
        if not isinstance(raw, str) or not raw.strip():
            errors[key] = "is required"
            continue
        try:
            bounds[key] = _parse_client_datetime(raw)
        except ValueError:
            errors[key] = "must be an ISO 8601 date or datetime"
    if not errors and bounds["start_date"] > bounds["end_date"]:
        errors["start_date"] = "must not be after end_date"
    if errors:
        return JSONResponse(
            {"ok": False, "error": "Invalid report period", "fields": errors}, status_code=400
        )
    user = store.get_user(uid)
    if user is None:
        return JSONResponse({"error": "unauthorized"}, status_code=401)
    report = assemble_report(store, user, bounds["start_date"], bounds["end_date"])
    return JSONResponse(report)

from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from config import _parse_client_datetime
from routers.crud import crud_router
from security import require_user_id
from store import EntityStore, get_store

router = APIRouter()


@router.get("/api/symptom-logs")
def api_symptom_logs(
    start_date: str = "",
    end_date: str = "",
    limit: Optional[int] = Query(None, ge=1, le=500),
    uid: int = Depends(require_user_id),
    store: EntityStore = Depends(get_store),
):
    """Newest first; with both dates given, only logs inside the inclusive range."""
    if not (start_date or end_date):
        return JSONResponse({"symptom_logs": store.list_records("symptom_logs", uid, limit=limit)})
    if not (start_date and end_date):
        return JSONResponse(
            {"ok": False, "error": "start_date and end_date must be given together"},
            status_code=400,
        )
    try:
        start = _parse_client_datetime(start_date)
        end = _parse_client_datetime(end_date)
    except ValueError:
        return JSONResponse({"ok": False, "error": "Invalid date format"}, status_code=400)
    if start > end:
        return JSONResponse(
            {"ok": False, "error": "start_date must not be after end_date"}, status_code=400
        )
    logs = store.symptom_logs_by_date_range(uid, start, end)
    if limit:
        logs = logs[:limit]
    return JSONResponse({"symptom_logs": logs})


router.include_router(crud_router(
    "symptom_logs",
    "/api/symptom-logs",
    item_key="symptom_log",
    list_key="symptom_logs",
    label="symptom log",
    with_list=False,
))

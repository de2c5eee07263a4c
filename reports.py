"""Denormalized snapshot handed to the client for report rendering."""
import logging
from datetime import datetime
from typing import Optional

from config import _to_storage, _utcnow
from store import EntityStore

logger = logging.getLogger(__name__)

REPORT_LOG_LIMIT = 10
REPORT_TIMELINE_LIMIT = 5
REPORT_APPOINTMENT_LIMIT = 3


def assemble_report(
    store: EntityStore,
    user: dict,
    start: datetime,
    end: datetime,
    now: Optional[datetime] = None,
) -> dict:
    uid = user["id"]
    now_s = _to_storage(now or _utcnow())
    logs = store.symptom_logs_by_date_range(uid, start, end)
    # the timeline is not windowed: full history, newest first
    timeline = store.list_records("medical_timeline", uid, limit=REPORT_TIMELINE_LIMIT)
    appointments = store.list_records("appointments", uid)
    upcoming = [a for a in appointments if a["date"] > now_s and not a["completed"]]
    logger.info("Assembled report for user %s (%d logs in window)", uid, len(logs))
    return {
        "user": {"id": uid, "name": user.get("first_name") or user["username"]},
        "period": {"start_date": _to_storage(start), "end_date": _to_storage(end)},
        "symptom_logs": logs[:REPORT_LOG_LIMIT],
        "medical_timeline": timeline,
        "upcoming_appointments": upcoming[:REPORT_APPOINTMENT_LIMIT],
    }

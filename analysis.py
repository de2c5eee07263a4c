from collections import Counter
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from config import _to_storage

PAIN_DAY_THRESHOLD = 5
HIGH_FATIGUE_THRESHOLD = 7
TOP_SYMPTOM_COUNT = 3


def _mean_1dp(total: int, n: int) -> float:
    """Mean rounded to one decimal place, halves rounded up."""
    if n == 0:
        return 0.0
    return float((Decimal(total) / Decimal(n)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def _level_mean(logs, field: str) -> float:
    # absent levels count as 0 but stay in the denominator
    return _mean_1dp(sum(log.get(field) or 0 for log in logs), len(logs))


def _top_symptoms(logs, k: int = TOP_SYMPTOM_COUNT) -> list:
    counts: Counter = Counter()
    for log in logs:
        for symptom in log.get("additional_symptoms") or []:
            counts[symptom] += 1
    # sorted() is stable, so equal counts keep first-seen order
    ranked = sorted(counts.items(), key=lambda kv: kv[1], reverse=True)
    return [{"symptom": name, "count": n} for name, n in ranked[:k]]


def compute_insights(logs, start: datetime, end: datetime) -> dict:
    """Reduce a window of symptom logs into summary statistics.

    ``logs`` is the already-fetched window (any iterable of log dicts, in the
    order the store returned them). Pure: no store access, no clock reads.
    """
    logs = list(logs)
    return {
        "period": {"start_date": _to_storage(start), "end_date": _to_storage(end)},
        "total_logs": len(logs),
        "averages": {
            "pain": _level_mean(logs, "pain_level"),
            "fatigue": _level_mean(logs, "fatigue_level"),
            "energy": _level_mean(logs, "energy_level"),
        },
        "pain_days": sum(1 for log in logs if (log.get("pain_level") or 0) > PAIN_DAY_THRESHOLD),
        "high_fatigue_days": sum(
            1 for log in logs if (log.get("fatigue_level") or 0) > HIGH_FATIGUE_THRESHOLD
        ),
        "medication_doses": sum(len(log.get("medications") or []) for log in logs),
        "top_symptoms": _top_symptoms(logs),
    }

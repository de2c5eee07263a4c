"""Insertable shapes for every entity kind.

Payloads are checked once at the request boundary. ``validate`` never raises
for bad input; it returns a ``Validation`` carrying either the cleaned values
or a ``{field: message}`` map. Server-owned keys (ids, owner, creation
timestamps) are not part of any shape, so a client can never set them.
"""
import re
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, NamedTuple

from config import _parse_client_datetime, _to_storage

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

MOODS = ("terrible", "bad", "okay", "good", "great")
TIMELINE_TYPES = ("surgery", "diagnosis", "visit", "scan", "test", "treatment")
TASK_PRIORITIES = ("low", "medium", "high")

_MAX_TEXT = 2000
_MAX_AMOUNT_DIGITS = 10
_CENTS = Decimal("0.01")


class FieldError(ValueError):
    pass


class Validation(NamedTuple):
    values: dict
    errors: dict

    @property
    def ok(self) -> bool:
        return not self.errors


# ---------------------------------------------------------------------------
# Field checkers: each takes the raw value and returns the cleaned one.
# ---------------------------------------------------------------------------

def _text(max_len: int = _MAX_TEXT, required: bool = False) -> Callable[[Any], Any]:
    def check(value):
        if not isinstance(value, str):
            raise FieldError("must be a string")
        value = value.strip()
        if required and not value:
            raise FieldError("is required")
        if len(value) > max_len:
            raise FieldError(f"must be {max_len} characters or fewer")
        return value
    return check


def _int_range(low: int, high: int) -> Callable[[Any], int]:
    def check(value):
        if isinstance(value, bool):
            raise FieldError("must be an integer")
        if isinstance(value, str):
            try:
                value = int(value.strip())
            except ValueError:
                raise FieldError("must be an integer") from None
        elif isinstance(value, float) and value.is_integer():
            value = int(value)
        if not isinstance(value, int):
            raise FieldError("must be an integer")
        if not (low <= value <= high):
            raise FieldError(f"must be between {low} and {high}")
        return value
    return check


def _choice(options: tuple) -> Callable[[Any], str]:
    def check(value):
        if value not in options:
            raise FieldError("must be one of " + ", ".join(options))
        return value
    return check


def _boolean(value):
    if not isinstance(value, bool):
        raise FieldError("must be true or false")
    return value


def _datetime(value):
    if not isinstance(value, str):
        raise FieldError("must be an ISO 8601 date or datetime")
    try:
        return _to_storage(_parse_client_datetime(value))
    except ValueError:
        raise FieldError("must be an ISO 8601 date or datetime") from None


def _string_list(value):
    if not isinstance(value, list):
        raise FieldError("must be a list of strings")
    cleaned = []
    for item in value:
        if not isinstance(item, str):
            raise FieldError("must be a list of strings")
        item = item.strip()
        if item:
            cleaned.append(item)
    return cleaned


def _medication_list(value):
    if not isinstance(value, list):
        raise FieldError("must be a list of {name, dosage, time} records")
    cleaned = []
    for item in value:
        if not isinstance(item, dict):
            raise FieldError("must be a list of {name, dosage, time} records")
        med = {}
        for key in ("name", "dosage", "time"):
            raw = item.get(key, "")
            if raw is None:
                raw = ""
            if not isinstance(raw, str):
                raise FieldError(f"medication {key} must be a string")
            med[key] = raw.strip()
        if not med["name"]:
            raise FieldError("medication name is required")
        cleaned.append(med)
    return cleaned


def _amount(value):
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise FieldError("must be a decimal amount")
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        raise FieldError("must be a decimal amount") from None
    if not amount.is_finite():
        raise FieldError("must be a decimal amount")
    if amount < 0:
        raise FieldError("must not be negative")
    try:
        quantized = amount.quantize(_CENTS)
    except InvalidOperation:
        raise FieldError("is too large") from None
    if amount != quantized:
        raise FieldError("must have at most 2 decimal places")
    amount = quantized
    if len(amount.as_tuple().digits) > _MAX_AMOUNT_DIGITS:
        raise FieldError("is too large")
    return str(amount)


def _email(value):
    value = _text(254)(value).lower()
    if value and not _EMAIL_RE.match(value):
        raise FieldError("is not a valid email address")
    return value


# ---------------------------------------------------------------------------
# Shapes: field -> (checker, nullable, default). A default of _REQUIRED marks
# a field that must be present on create.
# ---------------------------------------------------------------------------

_REQUIRED = object()
_ABSENT = object()


class Field(NamedTuple):
    check: Callable[[Any], Any]
    nullable: bool = True
    default: Any = None


SHAPES = {
    "symptom_logs": {
        "pain_level": Field(_int_range(0, 10), default=0),
        "fatigue_level": Field(_int_range(0, 10), default=0),
        "energy_level": Field(_int_range(1, 5), default=3),
        "mood": Field(_choice(MOODS)),
        "additional_symptoms": Field(_string_list),
        "medications": Field(_medication_list),
        "notes": Field(_text()),
        "voice_note": Field(_text(500)),
    },
    "medical_timeline": {
        "title": Field(_text(200, required=True), nullable=False, default=_REQUIRED),
        "description": Field(_text()),
        "type": Field(_choice(TIMELINE_TYPES), nullable=False, default=_REQUIRED),
        "date": Field(_datetime, nullable=False, default=_REQUIRED),
        "doctor_name": Field(_text(200)),
        "location": Field(_text(200)),
        "attachments": Field(_string_list),
    },
    "appointments": {
        "title": Field(_text(200, required=True), nullable=False, default=_REQUIRED),
        "doctor_name": Field(_text(200)),
        "date": Field(_datetime, nullable=False, default=_REQUIRED),
        "location": Field(_text(200)),
        "prep_notes": Field(_text()),
        "completed": Field(_boolean, nullable=False, default=False),
        "reminder_sent": Field(_boolean, nullable=False, default=False),
    },
    "health_tasks": {
        "title": Field(_text(200, required=True), nullable=False, default=_REQUIRED),
        "description": Field(_text()),
        "due_date": Field(_datetime),
        "completed": Field(_boolean, nullable=False, default=False),
        "snoozed_until": Field(_datetime),
        "priority": Field(_choice(TASK_PRIORITIES), nullable=False, default="medium"),
        "category": Field(_text(100)),
    },
    "expenses": {
        "description": Field(_text(500, required=True), nullable=False, default=_REQUIRED),
        "amount": Field(_amount, nullable=False, default=_REQUIRED),
        "date": Field(_datetime, nullable=False, default=_ABSENT),
        "category": Field(_text(100)),
        "receipt_url": Field(_text(500)),
        "reimbursed": Field(_boolean, nullable=False, default=False),
        "insurance_claim": Field(_text(200)),
    },
    "profile": {
        "first_name": Field(_text(120)),
        "last_name": Field(_text(120)),
        "email": Field(_email),
        "faith_mode_enabled": Field(_boolean, nullable=False, default=False),
        "anonymous_mode": Field(_boolean, nullable=False, default=False),
    },
}


def validate(kind: str, payload: Any, partial: bool = False) -> Validation:
    """Check ``payload`` against the shape for ``kind``.

    With ``partial`` only the supplied fields are checked (used for updates);
    otherwise required fields must be present and defaults are filled in.
    A default of ``_ABSENT`` leaves the field out so the store can fill it.
    """
    if not isinstance(payload, dict):
        return Validation({}, {"body": "must be a JSON object"})
    values: dict = {}
    errors: dict = {}
    for name, field in SHAPES[kind].items():
        if name not in payload:
            if partial or field.default is _ABSENT:
                continue
            if field.default is _REQUIRED:
                errors[name] = "is required"
            else:
                values[name] = field.default
            continue
        raw = payload[name]
        if raw is None:
            if field.nullable:
                values[name] = None
            else:
                errors[name] = "must not be null"
            continue
        try:
            values[name] = field.check(raw)
        except FieldError as exc:
            errors[name] = str(exc)
    if errors:
        return Validation({}, errors)
    return Validation(values, {})


def validate_registration(payload: Any) -> Validation:
    if not isinstance(payload, dict):
        return Validation({}, {"body": "must be a JSON object"})
    errors: dict = {}
    username = payload.get("username")
    password = payload.get("password")
    if not isinstance(username, str) or not username.strip():
        errors["username"] = "is required"
    elif len(username.strip()) > 64:
        errors["username"] = "must be 64 characters or fewer"
    if not isinstance(password, str) or len(password) < 8:
        errors["password"] = "must be at least 8 characters"
    profile = validate("profile", payload)
    errors.update(profile.errors)
    if errors:
        return Validation({}, errors)
    values = dict(profile.values, username=username.strip(), password=password)
    return Validation(values, {})

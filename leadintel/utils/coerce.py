import re
from datetime import date, datetime
from typing import Optional

_STATE_SUFFIX = re.compile(r",\s*([A-Za-z]{2})(?:\s+\d{3,5}(?:-\d{4})?)?\s*$")


def to_int(v) -> Optional[int]:
    try:
        if v is None or v == "" or str(v).lower() == "null":
            return None
        return int(float(v))
    except Exception:
        return None


def to_float(v) -> Optional[float]:
    try:
        if v is None or v == "" or str(v).lower() == "null":
            return None
        return float(v)
    except Exception:
        return None


def to_str(v) -> str:
    return "" if v is None else str(v).strip()


def to_date(v) -> Optional[date]:
    """Parse ISO dates and Postgres timestamps ("2025-12-04 00:00:00+00")."""
    if v is None:
        return None
    if isinstance(v, datetime):
        return v.date()
    if isinstance(v, date):
        return v
    text = str(v).strip()
    if not text or text.upper() in {"N/A", "UNKNOWN", "NULL"}:
        return None
    try:
        return date.fromisoformat(re.split(r"[T ]", text)[0])
    except ValueError:
        return None


def normalize_zip(v) -> str:
    """Zero-pad to the 5-digit form; leading zeros are significant."""
    if v is None:
        return ""
    if isinstance(v, float) and v.is_integer():
        v = int(v)
    text = str(v).strip()
    if not text:
        return ""
    head = text.split("-", 1)[0].strip()
    if head.isdigit():
        return head[:5].zfill(5)
    return text


def normalize_state(state, address: str = "") -> str:
    code = to_str(state).upper()
    if code:
        return code
    match = _STATE_SUFFIX.search(address or "")
    return match.group(1).upper() if match else ""


def phone_digits(v) -> str:
    return re.sub(r"\D", "", to_str(v))[-10:]

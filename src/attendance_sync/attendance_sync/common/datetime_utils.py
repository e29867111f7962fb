from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from ..core.constants import IST_OFFSET_MINUTES

IST = timezone(timedelta(minutes=IST_OFFSET_MINUTES))
_FRACTION_RE = re.compile(r"\.(\d+)")


def now_utc() -> datetime:
    """Current UTC time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now(timezone.utc)


def now_ms() -> int:
    return datetime_to_ticks(now_utc())


def ensure_utc(value: datetime) -> datetime:
    """Naive datetimes are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def datetime_to_ticks(value: datetime) -> int:
    return int(round(ensure_utc(value).timestamp() * 1000))


def ticks_to_datetime(ticks: int) -> datetime:
    return datetime.fromtimestamp(int(ticks) / 1000, tz=timezone.utc)


def parse_iso_datetime(value: str) -> Optional[datetime]:
    text = (value or "").strip()
    if not text:
        return None
    if text.endswith("Z") or text.endswith("z"):
        text = text[:-1] + "+00:00"
    # fromisoformat wants exactly 6 fraction digits before 3.11; servers send up to 7.
    text = _FRACTION_RE.sub(lambda m: "." + (m.group(1) + "000000")[:6], text, count=1)
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def api_timestamp_to_ticks(value: Any) -> Optional[int]:
    """Normalize a server timestamp (ISO string, numeric string or ticks) to UTC millis.

    Returns None when the value is missing or cannot be parsed.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, datetime):
        return datetime_to_ticks(value)
    if isinstance(value, str):
        text = value.strip()
        if text.lstrip("-").isdigit():
            return int(text)
        parsed = parse_iso_datetime(text)
        return datetime_to_ticks(parsed) if parsed else None
    return None


def date_string_from_ticks(ticks: int) -> str:
    """YYYY-MM-DD of the UTC calendar day containing ``ticks``."""
    return ticks_to_datetime(ticks).strftime("%Y-%m-%d")


def utc_hour(ticks: int) -> int:
    return ticks_to_datetime(ticks).hour


def today_strings(now: datetime) -> set[str]:
    """Dates that count as "today": the UTC day and the IST day."""
    now = ensure_utc(now)
    return {
        now.strftime("%Y-%m-%d"),
        now.astimezone(IST).strftime("%Y-%m-%d"),
    }


def ist_minutes_of_day(now: datetime) -> int:
    local = ensure_utc(now).astimezone(IST)
    return local.hour * 60 + local.minute


def parse_hhmm_to_minutes(value: Any) -> Optional[int]:
    """'09:30' or '09:30:00' -> 570. Returns None for anything unparseable."""
    if value is None:
        return None
    parts = str(value).strip().split(":")
    if len(parts) < 2:
        return None
    try:
        hours = int(parts[0])
        minutes = int(parts[1])
    except ValueError:
        return None
    if not (0 <= hours < 24 and 0 <= minutes < 60):
        return None
    return hours * 60 + minutes


def format_minutes_hhmm(total_minutes: int) -> str:
    total_minutes = max(0, int(total_minutes))
    return f"{total_minutes // 60:02d}:{total_minutes % 60:02d}"


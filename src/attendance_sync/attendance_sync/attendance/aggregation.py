"""Turn raw punch records into per-day attendance summaries.

Everything here is pure: no store or network access. ``now`` is injectable
so results are reproducible.
"""

from __future__ import annotations

import calendar
import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional, Sequence

from ..common.datetime_utils import (
    IST,
    date_string_from_ticks,
    datetime_to_ticks,
    ensure_utc,
    format_minutes_hhmm,
    ist_minutes_of_day,
    now_utc,
    parse_hhmm_to_minutes,
    ticks_to_datetime,
    today_strings,
    utc_hour,
)
from ..core.constants import (
    DEFAULT_MINIMUM_WORKING_HOURS,
    MISSED_CHECKOUT_BUFFER_MINUTES,
    OVERNIGHT_CHECKOUT_CUTOFF_HOUR_UTC,
    STALE_CHECKIN_DAYS,
)
from .factory import DayStatusStrategyFactory
from .model import AttendanceDay, AttendanceRecord
from .strategies.base import DayContext

logger = logging.getLogger(__name__)

_MS_PER_MINUTE = 60_000


@dataclass(frozen=True)
class ShiftTimes:
    """Shift start/end as 'HH:MM' strings (IST wall clock)."""

    start_time: Optional[str] = None
    end_time: Optional[str] = None

    @property
    def known(self) -> bool:
        return parse_hhmm_to_minutes(self.start_time) is not None and parse_hhmm_to_minutes(self.end_time) is not None


def group_key(record: AttendanceRecord) -> Optional[str]:
    if record.is_out and record.linked_entry_date:
        return record.linked_entry_date
    if record.date_of_punch:
        return record.date_of_punch
    if record.timestamp:
        return date_string_from_ticks(record.timestamp)
    return None


def group_by_date(records: Iterable[AttendanceRecord]) -> Dict[str, List[AttendanceRecord]]:
    groups: Dict[str, List[AttendanceRecord]] = defaultdict(list)
    for record in records:
        key = group_key(record)
        if key is None:
            logger.warning("Skipping attendance record with no date: %r", record)
            continue
        groups[key].append(record)
    return dict(groups)


def link_overnight_checkouts(
    groups: Dict[str, List[AttendanceRecord]],
    *,
    cutoff_hour_utc: int = OVERNIGHT_CHECKOUT_CUTOFF_HOUR_UTC,
) -> Dict[str, List[AttendanceRecord]]:
    """Move an early-morning OUT back to the previous day when that day has an open check-in.

    Only the earliest qualifying OUT is moved per pair of consecutive dates.
    Days left empty by a move stay in the result.
    """
    linked = {key: list(recs) for key, recs in groups.items()}
    keys = sorted(linked)
    for current, following in zip(keys, keys[1:]):
        day = linked[current]
        ins = sum(1 for r in day if r.is_in)
        outs = sum(1 for r in day if r.is_out)
        if ins <= outs:
            continue
        early_outs = [r for r in linked[following] if r.is_out and utc_hour(r.timestamp) < cutoff_hour_utc]
        if not early_outs:
            continue
        earliest = min(early_outs, key=lambda r: r.timestamp)
        linked[following] = [r for r in linked[following] if r is not earliest]
        day.append(earliest)
        logger.debug("Linked overnight checkout %s from %s to %s", earliest.timestamp, following, current)
    return linked


def _first_in(records: Sequence[AttendanceRecord]) -> Optional[AttendanceRecord]:
    return next((r for r in records if r.is_in), None)


def _last_out(records: Sequence[AttendanceRecord]) -> Optional[AttendanceRecord]:
    return next((r for r in reversed(records) if r.is_out), None)


def total_minutes(records: Sequence[AttendanceRecord]) -> int:
    """Last OUT minus first IN, in whole minutes. Breaks are inside the span."""
    first_in = _first_in(records)
    last_out = _last_out(records)
    if not first_in or not last_out or last_out.timestamp <= first_in.timestamp:
        return 0
    return (last_out.timestamp - first_in.timestamp) // _MS_PER_MINUTE


def break_minutes(records: Sequence[AttendanceRecord]) -> int:
    """Sum of gaps between a break-tagged OUT and the IN immediately after it."""
    total_ms = 0
    for record, following in zip(records, records[1:]):
        if not record.is_break_out or not following.is_in:
            continue
        if following.timestamp > record.timestamp:
            total_ms += following.timestamp - record.timestamp
    return total_ms // _MS_PER_MINUTE


def worked_hours(records: Sequence[AttendanceRecord], *, now: datetime, is_today: bool) -> float:
    first_in = _first_in(records)
    if first_in is None:
        return 0.0
    last_out = _last_out(records)
    if records[-1].is_out and last_out is not None and last_out.timestamp > first_in.timestamp:
        span_ms = last_out.timestamp - first_in.timestamp
    elif is_today:
        span_ms = max(0, datetime_to_ticks(now) - first_in.timestamp)
    elif last_out is not None and last_out.timestamp > first_in.timestamp:
        span_ms = last_out.timestamp - first_in.timestamp
    else:
        span_ms = 0
    return round(span_ms / 3_600_000, 2)


def is_within_shift_window(
    records: Sequence[AttendanceRecord],
    *,
    now: datetime,
    default_shift: Optional[ShiftTimes] = None,
) -> bool:
    first_in = _first_in(records)
    if first_in is not None:
        shift = ShiftTimes(first_in.shift_start_time, first_in.shift_end_time)
        if not shift.known:
            # Checked in today without captured shift times: treat as active.
            return True
    elif default_shift is not None and default_shift.known:
        shift = default_shift
    else:
        return False

    start = parse_hhmm_to_minutes(shift.start_time)
    end = parse_hhmm_to_minutes(shift.end_time)
    current = ist_minutes_of_day(now)
    if end < start:
        return current >= start or current <= end
    return start <= current <= end


def _minimum_minutes(records: Sequence[AttendanceRecord]) -> int:
    first_in = _first_in(records)
    hours = first_in.minimum_hours_required if first_in and first_in.minimum_hours_required else None
    return int(round((hours or DEFAULT_MINIMUM_WORKING_HOURS) * 60))


def build_day(
    date_of_punch: str,
    records: Sequence[AttendanceRecord],
    *,
    now: datetime,
    default_shift: Optional[ShiftTimes] = None,
    strategy_factory: Optional[DayStatusStrategyFactory] = None,
) -> AttendanceDay:
    factory = strategy_factory or DayStatusStrategyFactory()
    ordered = sorted(records, key=lambda r: r.timestamp)
    is_today = date_of_punch in today_strings(now)
    total = total_minutes(ordered)
    ctx = DayContext(
        date_of_punch=date_of_punch,
        records=ordered,
        is_today=is_today,
        within_shift_window=is_today and is_within_shift_window(ordered, now=now, default_shift=default_shift),
        worked_minutes=total,
        minimum_minutes=_minimum_minutes(ordered),
    )
    decision = factory.for_day(ordered).decide(ctx)
    return AttendanceDay(
        date_of_punch=date_of_punch,
        attendance_status=decision.status,
        total_duration=format_minutes_hhmm(total),
        break_duration=format_minutes_hhmm(break_minutes(ordered)),
        worked_hours=worked_hours(ordered, now=now, is_today=is_today),
        requires_approval=any(r.approval_required for r in ordered),
        records=tuple(ordered),
    )


def aggregate(
    records: Iterable[AttendanceRecord],
    *,
    now: Optional[datetime] = None,
    default_shift: Optional[ShiftTimes] = None,
    strategy_factory: Optional[DayStatusStrategyFactory] = None,
) -> List[AttendanceDay]:
    """Group punches into days, link overnight checkouts, derive each day's status.

    Result is ordered most recent date first.
    """
    now = now or now_utc()
    groups = link_overnight_checkouts(group_by_date(records))
    days = [
        build_day(key, recs, now=now, default_shift=default_shift, strategy_factory=strategy_factory)
        for key, recs in groups.items()
    ]
    days.sort(key=lambda d: d.date_of_punch, reverse=True)
    return days


def fill_missing_dates(
    days: Sequence[AttendanceDay],
    *,
    month: Optional[str] = None,
    now: Optional[datetime] = None,
    default_shift: Optional[ShiftTimes] = None,
    strategy_factory: Optional[DayStatusStrategyFactory] = None,
) -> List[AttendanceDay]:
    """Add an empty-day summary for every date of ``month`` (YYYY-MM) up to today."""
    now = ensure_utc(now or now_utc())
    today = now.date()
    if month:
        year, month_no = (int(part) for part in month.split("-")[:2])
    else:
        year, month_no = today.year, today.month

    by_date = {d.date_of_punch: d for d in days}
    last_day = calendar.monthrange(year, month_no)[1]
    for day_no in range(1, last_day + 1):
        key = f"{year:04d}-{month_no:02d}-{day_no:02d}"
        if key > today.isoformat():
            break
        if key not in by_date:
            by_date[key] = build_day(
                key, [], now=now, default_shift=default_shift, strategy_factory=strategy_factory
            )
    return sorted(by_date.values(), key=lambda d: d.date_of_punch, reverse=True)


def is_stale_check_in(record: AttendanceRecord, *, now: Optional[datetime] = None) -> bool:
    """An IN older than a few days that was never closed."""
    now = now or now_utc()
    if not record.is_in:
        return False
    return datetime_to_ticks(now) - record.timestamp > STALE_CHECKIN_DAYS * 24 * 60 * _MS_PER_MINUTE


def is_missed_checkout(record: AttendanceRecord, *, now: Optional[datetime] = None) -> bool:
    """An open IN whose shift ended more than the grace buffer ago."""
    now = ensure_utc(now or now_utc())
    if not record.is_in:
        return False
    start = parse_hhmm_to_minutes(record.shift_start_time)
    end = parse_hhmm_to_minutes(record.shift_end_time)
    if start is None or end is None:
        return False
    check_in_local = ticks_to_datetime(record.timestamp).astimezone(IST)
    shift_end = check_in_local.replace(hour=end // 60, minute=end % 60, second=0, microsecond=0)
    if end < start:
        shift_end += timedelta(days=1)
    deadline = shift_end + timedelta(minutes=MISSED_CHECKOUT_BUFFER_MINUTES)
    return now > deadline


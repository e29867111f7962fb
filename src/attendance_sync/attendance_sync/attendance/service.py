from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, List, Optional, Sequence

from ..common.datetime_utils import date_string_from_ticks, datetime_to_ticks, now_utc
from ..common.validators import require_date_string, require_month_string, require_non_empty
from ..core.enums import PunchDirection, SyncFlag
from ..core.exceptions import ValidationError
from ..database.sqlite_base import safe_float
from ..profile.repository import ProfileRepository
from .aggregation import ShiftTimes, aggregate, fill_missing_dates, is_missed_checkout, is_stale_check_in
from .factory import DayStatusStrategyFactory
from .model import AttendanceDay, AttendanceRecord, OpenCheckIn, PunchRequest
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)


class AttendanceService:
    """Local punch capture and day summaries. Works fully offline."""

    def __init__(
        self,
        attendance: AttendanceRepository,
        profiles: ProfileRepository | None = None,
        *,
        strategy_factory: DayStatusStrategyFactory | None = None,
        clock: Callable[[], datetime] = now_utc,
    ):
        self._attendance = attendance
        self._profiles = profiles
        self._factory = strategy_factory or DayStatusStrategyFactory()
        self._clock = clock

    async def _profile_shift(self, email: Optional[str]) -> tuple[ShiftTimes | None, Optional[float]]:
        if not email or self._profiles is None:
            return None, None
        profile = await self._profiles.get(email)
        if profile is None:
            return None, None
        shift = ShiftTimes(profile.shift_start_time, profile.shift_end_time)
        return (shift if shift.known else None), safe_float(profile.get("minimumWorkingHours"))

    def _build(
        self,
        user_id: str,
        direction: PunchDirection,
        request: PunchRequest,
        now: datetime,
        **extra,
    ) -> AttendanceRecord:
        ticks = datetime_to_ticks(now)
        return AttendanceRecord(
            timestamp=ticks,
            user_id=user_id,
            punch_direction=direction,
            org_id=request.org_id,
            punch_type=request.punch_type,
            lat_lon=request.lat_lon,
            address=request.address,
            created_on=ticks,
            is_synced=SyncFlag.UNSYNCED,
            date_of_punch=date_string_from_ticks(ticks),
            module_id=request.module_id,
            trip_type=request.trip_type,
            passenger_id=request.passenger_id,
            allowance_data=list(request.allowance_data),
            traveler_name=request.traveler_name,
            phone_number=request.phone_number,
            **extra,
        )

    async def punch_in(
        self,
        user_id: str,
        request: PunchRequest | None = None,
        *,
        email: Optional[str] = None,
        now: datetime | None = None,
    ) -> AttendanceRecord:
        user_id = require_non_empty(user_id, "user_id")
        now = now or self._clock()
        latest = await self._attendance.latest_for_user(user_id)
        if latest is not None and latest.is_in and not is_stale_check_in(latest, now=now):
            raise ValidationError("Already checked in; check out first")

        shift, minimum_hours = await self._profile_shift(email)
        record = self._build(
            user_id,
            PunchDirection.IN,
            request or PunchRequest(),
            now,
            shift_start_time=shift.start_time if shift else None,
            shift_end_time=shift.end_time if shift else None,
            minimum_hours_required=minimum_hours,
        )
        stored = await self._attendance.insert(record)
        logger.info("Check-in recorded for %s at %s", user_id, stored.timestamp)
        return stored

    async def punch_out(
        self,
        user_id: str,
        request: PunchRequest | None = None,
        *,
        break_type: Optional[str] = None,
        is_checkout_qr_scan: bool = False,
        now: datetime | None = None,
    ) -> AttendanceRecord:
        """Check out, or step out for a break when ``break_type`` is given."""
        user_id = require_non_empty(user_id, "user_id")
        now = now or self._clock()
        latest = await self._attendance.latest_for_user(user_id)
        if latest is None or not latest.is_in:
            raise ValidationError("No open check-in to check out from")

        checkout_date = date_string_from_ticks(datetime_to_ticks(now))
        check_in_date = latest.date_of_punch or date_string_from_ticks(latest.timestamp)
        record = self._build(
            user_id,
            PunchDirection.OUT,
            request or PunchRequest(),
            now,
            attendance_status=break_type,
            is_checkout_qr_scan=is_checkout_qr_scan,
            linked_entry_date=check_in_date if check_in_date != checkout_date else None,
        )
        stored = await self._attendance.insert(record)
        if stored.linked_entry_date:
            logger.info("Overnight check-out for %s linked to %s", user_id, stored.linked_entry_date)
        return stored

    async def get_records(
        self, user_id: str, *, start_date: Optional[str] = None, end_date: Optional[str] = None
    ) -> Sequence[AttendanceRecord]:
        """Latest first. With a date range, overnight check-outs count toward their check-in day."""
        if start_date is None and end_date is None:
            return await self._attendance.list_for_user(user_id, newest_first=True)
        start = require_date_string(start_date or end_date, "start_date")
        end = require_date_string(end_date or start_date, "end_date")
        records = await self._attendance.list_for_user_between(user_id, start_date=start, end_date=end)
        return list(reversed(records))

    async def get_days(
        self,
        user_id: str,
        *,
        email: Optional[str] = None,
        month: Optional[str] = None,
        fill_missing: bool = False,
        now: datetime | None = None,
    ) -> List[AttendanceDay]:
        if month is not None:
            month = require_month_string(month, "month")
        now = now or self._clock()
        records = await self._attendance.list_for_user(user_id, newest_first=False)
        shift, _ = await self._profile_shift(email)
        days = aggregate(records, now=now, default_shift=shift, strategy_factory=self._factory)
        if fill_missing:
            days = fill_missing_dates(
                days, month=month, now=now, default_shift=shift, strategy_factory=self._factory
            )
        if month:
            days = [d for d in days if d.date_of_punch.startswith(month)]
        return days

    async def open_check_in(self, user_id: str, *, now: datetime | None = None) -> Optional[OpenCheckIn]:
        now = now or self._clock()
        latest = await self._attendance.latest_for_user(user_id)
        if latest is None or not latest.is_in:
            return None
        return OpenCheckIn(
            record=latest,
            is_stale=is_stale_check_in(latest, now=now),
            missed_checkout=is_missed_checkout(latest, now=now),
        )

from __future__ import annotations

from ...core.enums import AttendanceStatus
from .base import DayContext, DayStatusStrategy, StatusDecision


class OpenDayStrategy(DayStatusStrategy):
    """Day has check-ins that are not all closed."""

    def decide(self, ctx: DayContext) -> StatusDecision:
        if ctx.is_today and ctx.within_shift_window:
            return StatusDecision(AttendanceStatus.PRESENT, "Currently checked in")
        return StatusDecision(AttendanceStatus.PARTIAL)

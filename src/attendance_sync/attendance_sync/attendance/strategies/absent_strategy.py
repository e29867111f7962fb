from __future__ import annotations

from ...core.enums import AttendanceStatus
from .base import DayContext, DayStatusStrategy, StatusDecision


class AbsentStrategy(DayStatusStrategy):
    """No check-in on the day. Today inside an active shift is still in progress."""

    def decide(self, ctx: DayContext) -> StatusDecision:
        if ctx.is_today and ctx.within_shift_window:
            return StatusDecision(AttendanceStatus.PARTIAL, "Shift in progress")
        return StatusDecision(AttendanceStatus.ABSENT)

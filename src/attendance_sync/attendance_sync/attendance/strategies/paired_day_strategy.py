from __future__ import annotations

from ...core.enums import AttendanceStatus
from .base import DayContext, DayStatusStrategy, StatusDecision


class PairedDayStrategy(DayStatusStrategy):
    """Every check-in has a check-out and the day ends checked out."""

    def decide(self, ctx: DayContext) -> StatusDecision:
        if ctx.worked_minutes < ctx.minimum_minutes:
            short_by = ctx.minimum_minutes - ctx.worked_minutes
            return StatusDecision(AttendanceStatus.HOURS_DEFICIT, f"Short by {short_by} minutes")
        return StatusDecision(AttendanceStatus.PRESENT)

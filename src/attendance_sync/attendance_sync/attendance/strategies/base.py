from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Sequence

from ...core.enums import AttendanceStatus
from ..model import AttendanceRecord


@dataclass(frozen=True)
class StatusDecision:
    status: AttendanceStatus
    note: Optional[str] = None


@dataclass(frozen=True)
class DayContext:
    """Everything a strategy needs to classify one day."""

    date_of_punch: str
    records: Sequence[AttendanceRecord]
    is_today: bool
    within_shift_window: bool
    worked_minutes: int
    minimum_minutes: int


class DayStatusStrategy(ABC):
    """Strategy Pattern: encapsulate how we decide a day's attendance status."""

    @abstractmethod
    def decide(self, ctx: DayContext) -> StatusDecision:
        raise NotImplementedError

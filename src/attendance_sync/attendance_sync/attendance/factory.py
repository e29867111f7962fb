from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from .model import AttendanceRecord
from .strategies.absent_strategy import AbsentStrategy
from .strategies.base import DayStatusStrategy
from .strategies.open_day_strategy import OpenDayStrategy
from .strategies.paired_day_strategy import PairedDayStrategy


@dataclass
class DayStatusStrategyFactory:
    """Factory Pattern: choose the status strategy from the shape of the day."""

    def for_day(self, records: Sequence[AttendanceRecord]) -> DayStatusStrategy:
        ins = sum(1 for r in records if r.is_in)
        outs = sum(1 for r in records if r.is_out)
        if ins == 0:
            return AbsentStrategy()
        if records[-1].is_out and ins == outs:
            return PairedDayStrategy()
        return OpenDayStrategy()

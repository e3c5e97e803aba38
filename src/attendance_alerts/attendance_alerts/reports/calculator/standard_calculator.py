from __future__ import annotations

from datetime import datetime
from typing import Sequence

from ...attendance.model import BreakPeriod
from .base import WorkHoursCalculator


class StandardWorkHoursCalculator(WorkHoursCalculator):
    """Standard rule: (out - in) - sum(breaks), in hours, not below 0."""

    def work_hours(self, check_in: datetime, check_out: datetime, breaks: Sequence[BreakPeriod] = ()) -> float:
        seconds = (check_out - check_in).total_seconds()
        for b in breaks:
            seconds -= max((b.end - b.start).total_seconds(), 0)
        return max(seconds, 0) / 3600

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Sequence

from ...attendance.model import BreakPeriod


class WorkHoursCalculator(ABC):
    """Calculator interface (Strategy Pattern for worked time)."""

    @abstractmethod
    def work_hours(self, check_in: datetime, check_out: datetime, breaks: Sequence[BreakPeriod] = ()) -> float:
        raise NotImplementedError

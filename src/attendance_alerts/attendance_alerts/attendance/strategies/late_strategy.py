from __future__ import annotations

from datetime import datetime

from ...common.datetime_utils import floor_minutes
from ...core.enums import AttendanceStatus
from .base import AttendanceStrategy, StatusDecision


class LateStrategy(AttendanceStrategy):
    """Late check-in; minutes are counted from the facility opening time."""

    def decide_checkin(self, *, now: datetime, expected: datetime) -> StatusDecision:
        return StatusDecision(status=AttendanceStatus.LATE, flagged=True, minutes=floor_minutes(expected, now))

    def decide_checkout(self, *, now: datetime, expected: datetime, current: AttendanceStatus) -> StatusDecision:
        return StatusDecision(status=current)

from __future__ import annotations

from datetime import datetime

from ...common.datetime_utils import floor_minutes
from ...core.enums import AttendanceStatus
from .base import AttendanceStrategy, StatusDecision


class EarlyDepartureStrategy(AttendanceStrategy):
    """Check-out before the facility closing time."""

    def decide_checkin(self, *, now: datetime, expected: datetime) -> StatusDecision:
        return StatusDecision(status=AttendanceStatus.PRESENT)

    def decide_checkout(self, *, now: datetime, expected: datetime, current: AttendanceStatus) -> StatusDecision:
        return StatusDecision(
            status=AttendanceStatus.EARLY_DEPARTURE,
            flagged=True,
            minutes=floor_minutes(now, expected),
        )

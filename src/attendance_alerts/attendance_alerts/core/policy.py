from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Mapping

from . import constants
from .enums import Severity


@dataclass(frozen=True)
class AttendancePolicy:
    grace_minutes: int = constants.DEFAULT_LATE_GRACE_MINUTES
    geofence_radius_meters: float = constants.GEOFENCE_RADIUS_METERS
    enforce_geofence: bool = False


@dataclass(frozen=True)
class AlertPolicy:
    late_high_minutes: int = constants.LATE_HIGH_SEVERITY_MINUTES
    early_high_minutes: int = constants.EARLY_HIGH_SEVERITY_MINUTES
    absence_threshold: int = constants.ABSENCE_ALERT_THRESHOLD
    absence_critical_count: int = constants.ABSENCE_CRITICAL_COUNT
    max_retries: int = constants.DEFAULT_MAX_RETRIES

    def late_severity(self, late_minutes: int) -> Severity:
        return Severity.HIGH if late_minutes > self.late_high_minutes else Severity.MEDIUM

    def early_severity(self, early_minutes: int) -> Severity:
        return Severity.HIGH if early_minutes > self.early_high_minutes else Severity.MEDIUM

    def absence_severity(self, absent_count: int) -> Severity:
        return Severity.CRITICAL if absent_count >= self.absence_critical_count else Severity.HIGH


def policy_from_mapping(cls, overrides: Mapping[str, Any] | None):
    """Build a policy dataclass, ignoring keys it does not declare."""

    if not overrides:
        return cls()
    known = {f.name for f in fields(cls)}
    return cls(**{k: v for k, v in overrides.items() if k in known})

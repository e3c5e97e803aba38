"""Per-type title/message templates for alerts."""

from __future__ import annotations

from typing import Any, Mapping

from ..core.enums import AlertType

TITLES: Mapping[AlertType, str] = {
    AlertType.LATE_CHECKIN: "Late Check-in Alert",
    AlertType.EARLY_CHECKOUT: "Early Check-out Alert",
    AlertType.ABSENTEEISM: "Staff Absence",
    AlertType.MULTIPLE_ABSENCES: "Multiple Staff Absences",
    AlertType.BIOMETRIC_FAILURE: "Biometric Verification Failed",
    AlertType.LOCATION_MISMATCH: "Location Mismatch",
    AlertType.DEVICE_TAMPER: "Possible Device Tampering",
    AlertType.SYSTEM_ERROR: "System Error",
}

MESSAGES: Mapping[AlertType, str] = {
    AlertType.LATE_CHECKIN: "{name} ({designation}) at {facility} checked in {late_minutes} minutes late at {time}",
    AlertType.EARLY_CHECKOUT: "{name} ({designation}) at {facility} checked out {early_minutes} minutes early at {time}",
    AlertType.ABSENTEEISM: "{name} ({designation}) is absent today at {facility}",
    AlertType.MULTIPLE_ABSENCES: "{absent_count} staff members are absent today at {facility}",
    AlertType.BIOMETRIC_FAILURE: "Biometric verification failed for {name} using {modality} at {facility}",
    AlertType.LOCATION_MISMATCH: "{name} punched {distance_m} m away from {facility} (allowed {radius_m} m)",
    AlertType.DEVICE_TAMPER: "Suspicious punch by {name} at {facility}: {warnings}",
    AlertType.SYSTEM_ERROR: "System error at {facility}: {detail}",
}


class _Defaults(dict):
    def __missing__(self, key: str) -> str:
        return "-"


def render(alert_type: AlertType, context: Mapping[str, Any]) -> tuple[str, str]:
    """Return (title, message); unknown placeholders render as '-'."""

    ctx = _Defaults(context)
    title = TITLES[alert_type]
    message = MESSAGES[alert_type].format_map(ctx)
    return title, message

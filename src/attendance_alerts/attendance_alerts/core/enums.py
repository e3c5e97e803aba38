from __future__ import annotations

from enum import Enum


class StaffRole(str, Enum):
    """Designations of facility staff and escalation contacts."""

    DOCTOR = "DOCTOR"
    NURSE = "NURSE"
    PHARMACIST = "PHARMACIST"
    LAB_TECHNICIAN = "LAB_TECHNICIAN"
    ADMIN_STAFF = "ADMIN_STAFF"
    CENTER_INCHARGE = "CENTER_INCHARGE"
    DDHS = "DDHS"


class StaffStatus(str, Enum):
    ACTIVE = "ACTIVE"
    ON_LEAVE = "ON_LEAVE"
    TRANSFERRED = "TRANSFERRED"
    SUSPENDED = "SUSPENDED"


class FacilityStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    SUSPENDED = "SUSPENDED"


class BiometricModality(str, Enum):
    """Sensing method used to verify identity at a punch."""

    FINGERPRINT = "FINGERPRINT"
    FACIAL = "FACIAL"
    IRIS = "IRIS"
    MANUAL = "MANUAL"


class AttendanceStatus(str, Enum):
    """Normalized attendance status stored with each daily record."""

    PRESENT = "PRESENT"
    ABSENT = "ABSENT"
    HALF_DAY = "HALF_DAY"
    LATE = "LATE"
    EARLY_DEPARTURE = "EARLY_DEPARTURE"
    ON_LEAVE = "ON_LEAVE"


class PunchPhase(str, Enum):
    CHECKIN = "CHECKIN"
    CHECKOUT = "CHECKOUT"


class AlertType(str, Enum):
    LATE_CHECKIN = "LATE_CHECKIN"
    EARLY_CHECKOUT = "EARLY_CHECKOUT"
    ABSENTEEISM = "ABSENTEEISM"
    MULTIPLE_ABSENCES = "MULTIPLE_ABSENCES"
    BIOMETRIC_FAILURE = "BIOMETRIC_FAILURE"
    LOCATION_MISMATCH = "LOCATION_MISMATCH"
    DEVICE_TAMPER = "DEVICE_TAMPER"
    SYSTEM_ERROR = "SYSTEM_ERROR"


class Severity(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class AlertStatus(str, Enum):
    """Alert lifecycle states; see ``alerts.state_machine`` for transitions."""

    PENDING = "PENDING"
    SENT = "SENT"
    DELIVERED = "DELIVERED"
    FAILED = "FAILED"
    ACKNOWLEDGED = "ACKNOWLEDGED"
    RESOLVED = "RESOLVED"


class Channel(str, Enum):
    SMS = "sms"
    EMAIL = "email"
    PUSH = "push"
    DASHBOARD = "dashboard"

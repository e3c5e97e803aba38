from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import AttendanceStatus, BiometricModality, PunchPhase
from ..geo.geofence import GeoPoint


@dataclass(frozen=True)
class Location:
    lat: float
    lng: float
    accuracy: Optional[float] = None

    @property
    def point(self) -> GeoPoint:
        return GeoPoint(lat=self.lat, lng=self.lng)


@dataclass(frozen=True)
class DeviceInfo:
    device_id: Optional[str] = None
    device_type: Optional[str] = None
    app_version: Optional[str] = None


@dataclass(frozen=True)
class Punch:
    """Check-in or check-out sub-record."""

    time: datetime
    modality: BiometricModality
    location: Optional[Location] = None
    device: Optional[DeviceInfo] = None
    verified: bool = False


@dataclass(frozen=True)
class BreakPeriod:
    start: datetime
    end: datetime
    reason: Optional[str] = None


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one record per (staff member, work date). Never deleted."""

    attendance_id: int
    staff_id: str
    facility_id: str
    work_date: date
    check_in: Optional[Punch]
    check_out: Optional[Punch] = None
    breaks: tuple[BreakPeriod, ...] = ()
    total_work_hours: float = 0.0
    status: AttendanceStatus = AttendanceStatus.PRESENT
    is_late: bool = False
    late_minutes: int = 0
    is_early_departure: bool = False
    early_departure_minutes: int = 0
    note: Optional[str] = None


@dataclass(frozen=True)
class AttendanceOutcome:
    """Result of a processed check-in/check-out, returned to the caller."""

    staff_id: str
    facility_id: str
    phase: PunchPhase
    timestamp: datetime
    status: AttendanceStatus
    is_late: bool = False
    late_minutes: int = 0
    is_early_departure: bool = False
    early_departure_minutes: int = 0
    total_work_hours: float = 0.0
    alert_ids: tuple[int, ...] = ()
    warnings: tuple[str, ...] = ()

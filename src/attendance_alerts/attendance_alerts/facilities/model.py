from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Optional

from ..core.enums import FacilityStatus
from ..geo.geofence import GeoPoint


@dataclass(frozen=True)
class OperatingHours:
    start: time
    end: time


@dataclass(frozen=True)
class Facility:
    """Domain entity: a health centre. Its operating hours are the lateness baseline."""

    facility_id: str
    name: str
    location: GeoPoint
    operating_hours: OperatingHours
    status: FacilityStatus = FacilityStatus.ACTIVE
    facility_type: str = "PHC"
    district: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status == FacilityStatus.ACTIVE

    def expected_check_in(self, day: date) -> datetime:
        return datetime.combine(day, self.operating_hours.start)

    def expected_check_out(self, day: date) -> datetime:
        return datetime.combine(day, self.operating_hours.end)

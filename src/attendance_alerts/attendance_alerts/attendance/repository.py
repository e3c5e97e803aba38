from __future__ import annotations

from datetime import date
from typing import Mapping, Optional, Protocol, Sequence

from ..core.enums import AttendanceStatus
from .model import AttendanceRecord, BreakPeriod, Punch


class AttendanceRepository(Protocol):
    """Persistent store for daily attendance records.

    Implementations must enforce uniqueness of (staff_id, work_date) and raise
    ``ConflictError`` when a create would violate it. Conditional updates return
    ``False`` when the guarded field was already set.
    """

    def get_for_staff_and_date(self, staff_id: str, work_date: date) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def list_for_facility_and_date(self, facility_id: str, work_date: date) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def list_for_facility_between(self, facility_id: str, start_date: date, end_date: date) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def list_for_staff(self, staff_id: str, start_date: date, end_date: date) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def create_checkin(
        self,
        *,
        staff_id: str,
        facility_id: str,
        work_date: date,
        check_in: Punch,
        status: AttendanceStatus,
        is_late: bool,
        late_minutes: int,
    ) -> int:
        raise NotImplementedError

    def attach_checkin(
        self,
        *,
        attendance_id: int,
        check_in: Punch,
        status: AttendanceStatus,
        is_late: bool,
        late_minutes: int,
    ) -> bool:
        """Set the check-in of a record that has none yet (e.g. a marked absence)."""

        raise NotImplementedError

    def update_checkout(
        self,
        *,
        attendance_id: int,
        check_out: Punch,
        status: AttendanceStatus,
        is_early_departure: bool,
        early_departure_minutes: int,
        total_work_hours: float,
    ) -> bool:
        raise NotImplementedError

    def create_absence(self, *, staff_id: str, facility_id: str, work_date: date, note: Optional[str] = None) -> int:
        raise NotImplementedError

    def add_break(self, *, attendance_id: int, period: BreakPeriod) -> bool:
        raise NotImplementedError

    def count_by_status(self, *, facility_id: str, start_date: date, end_date: date) -> Mapping[AttendanceStatus, int]:
        raise NotImplementedError

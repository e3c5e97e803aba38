from __future__ import annotations

from collections import defaultdict
from datetime import date
from typing import Any, Dict, Mapping, Optional, Sequence

from ..core.enums import AttendanceStatus, BiometricModality
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, duplicate_key_as_conflict, fetchall, fetchone, placeholders
from .model import AttendanceRecord, BreakPeriod, DeviceInfo, Location, Punch
from .repository import AttendanceRepository

_COLUMNS = """
    attendance_id, staff_id, facility_id, work_date,
    check_in_time, check_in_lat, check_in_lng, check_in_accuracy, check_in_modality,
    check_in_device_id, check_in_device_type, check_in_app_version, check_in_verified,
    check_out_time, check_out_lat, check_out_lng, check_out_accuracy, check_out_modality,
    check_out_device_id, check_out_device_type, check_out_app_version, check_out_verified,
    total_work_hours, status, is_late, late_minutes,
    is_early_departure, early_departure_minutes, note
"""

_DUPLICATE_MESSAGE = "Attendance already recorded for this staff member today"


def _punch_from_row(r: Dict[str, Any], prefix: str) -> Optional[Punch]:
    at = r.get(f"{prefix}_time")
    if at is None:
        return None

    location = None
    if r.get(f"{prefix}_lat") is not None and r.get(f"{prefix}_lng") is not None:
        accuracy = r.get(f"{prefix}_accuracy")
        location = Location(
            lat=float(r[f"{prefix}_lat"]),
            lng=float(r[f"{prefix}_lng"]),
            accuracy=float(accuracy) if accuracy is not None else None,
        )

    device = None
    if any(r.get(f"{prefix}_{k}") for k in ("device_id", "device_type", "app_version")):
        device = DeviceInfo(
            device_id=r.get(f"{prefix}_device_id"),
            device_type=r.get(f"{prefix}_device_type"),
            app_version=r.get(f"{prefix}_app_version"),
        )

    return Punch(
        time=at,
        modality=BiometricModality(r[f"{prefix}_modality"]),
        location=location,
        device=device,
        verified=bool(r.get(f"{prefix}_verified")),
    )


def _punch_params(p: Punch) -> tuple:
    loc = p.location
    dev = p.device
    return (
        p.time,
        loc.lat if loc else None,
        loc.lng if loc else None,
        loc.accuracy if loc else None,
        p.modality.value,
        dev.device_id if dev else None,
        dev.device_type if dev else None,
        dev.app_version if dev else None,
        int(p.verified),
    )


def _to_record(r: Dict[str, Any], breaks: Sequence[BreakPeriod] = ()) -> AttendanceRecord:
    return AttendanceRecord(
        attendance_id=int(r["attendance_id"]),
        staff_id=r["staff_id"],
        facility_id=r["facility_id"],
        work_date=r["work_date"],
        check_in=_punch_from_row(r, "check_in"),
        check_out=_punch_from_row(r, "check_out"),
        breaks=tuple(breaks),
        total_work_hours=float(r.get("total_work_hours") or 0),
        status=AttendanceStatus(r["status"]),
        is_late=bool(r.get("is_late")),
        late_minutes=int(r.get("late_minutes") or 0),
        is_early_departure=bool(r.get("is_early_departure")),
        early_departure_minutes=int(r.get("early_departure_minutes") or 0),
        note=r.get("note"),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _load_breaks(self, cur, attendance_ids: Sequence[int]) -> Dict[int, list[BreakPeriod]]:
        by_id: Dict[int, list[BreakPeriod]] = defaultdict(list)
        if not attendance_ids:
            return by_id
        cur.execute(
            f"""
            SELECT attendance_id, start_time, end_time, reason
            FROM attendance_breaks
            WHERE attendance_id IN ({placeholders(len(attendance_ids))})
            ORDER BY start_time
            """,
            tuple(attendance_ids),
        )
        for b in fetchall(cur):
            by_id[int(b["attendance_id"])].append(
                BreakPeriod(start=b["start_time"], end=b["end_time"], reason=b.get("reason"))
            )
        return by_id

    def _select(self, where: str, params: tuple, order_by: str = "work_date DESC, staff_id ASC") -> list[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM attendance_records WHERE {where} ORDER BY {order_by}", params)
            rows = fetchall(cur)
            breaks = self._load_breaks(cur, [int(r["attendance_id"]) for r in rows])
            return [_to_record(r, breaks.get(int(r["attendance_id"]), ())) for r in rows]

    def get_for_staff_and_date(self, staff_id: str, work_date: date) -> Optional[AttendanceRecord]:
        rows = self._select("staff_id=%s AND work_date=%s", (staff_id, work_date))
        return rows[0] if rows else None

    def list_for_facility_and_date(self, facility_id: str, work_date: date) -> Sequence[AttendanceRecord]:
        return self._select("facility_id=%s AND work_date=%s", (facility_id, work_date))

    def list_for_facility_between(self, facility_id: str, start_date: date, end_date: date) -> Sequence[AttendanceRecord]:
        return self._select("facility_id=%s AND work_date BETWEEN %s AND %s", (facility_id, start_date, end_date))

    def list_for_staff(self, staff_id: str, start_date: date, end_date: date) -> Sequence[AttendanceRecord]:
        return self._select("staff_id=%s AND work_date BETWEEN %s AND %s", (staff_id, start_date, end_date))

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
        with duplicate_key_as_conflict(_DUPLICATE_MESSAGE), db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO attendance_records(
                    staff_id, facility_id, work_date,
                    check_in_time, check_in_lat, check_in_lng, check_in_accuracy, check_in_modality,
                    check_in_device_id, check_in_device_type, check_in_app_version, check_in_verified,
                    status, is_late, late_minutes
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (staff_id, facility_id, work_date, *_punch_params(check_in), status.value, int(is_late), int(late_minutes)),
            )
            return int(cur.lastrowid)

    def attach_checkin(
        self,
        *,
        attendance_id: int,
        check_in: Punch,
        status: AttendanceStatus,
        is_late: bool,
        late_minutes: int,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_records
                SET check_in_time=%s, check_in_lat=%s, check_in_lng=%s, check_in_accuracy=%s,
                    check_in_modality=%s, check_in_device_id=%s, check_in_device_type=%s,
                    check_in_app_version=%s, check_in_verified=%s,
                    status=%s, is_late=%s, late_minutes=%s
                WHERE attendance_id=%s AND check_in_time IS NULL
                """,
                (*_punch_params(check_in), status.value, int(is_late), int(late_minutes), int(attendance_id)),
            )
            return cur.rowcount > 0

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
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_records
                SET check_out_time=%s, check_out_lat=%s, check_out_lng=%s, check_out_accuracy=%s,
                    check_out_modality=%s, check_out_device_id=%s, check_out_device_type=%s,
                    check_out_app_version=%s, check_out_verified=%s,
                    status=%s, is_early_departure=%s, early_departure_minutes=%s, total_work_hours=%s
                WHERE attendance_id=%s AND check_in_time IS NOT NULL AND check_out_time IS NULL
                """,
                (
                    *_punch_params(check_out),
                    status.value,
                    int(is_early_departure),
                    int(early_departure_minutes),
                    round(float(total_work_hours), 4),
                    int(attendance_id),
                ),
            )
            return cur.rowcount > 0

    def create_absence(self, *, staff_id: str, facility_id: str, work_date: date, note: Optional[str] = None) -> int:
        with duplicate_key_as_conflict(_DUPLICATE_MESSAGE), db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO attendance_records(staff_id, facility_id, work_date, status, note)
                VALUES(%s,%s,%s,%s,%s)
                """,
                (staff_id, facility_id, work_date, AttendanceStatus.ABSENT.value, note),
            )
            return int(cur.lastrowid)

    def add_break(self, *, attendance_id: int, period: BreakPeriod) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT attendance_id FROM attendance_records WHERE attendance_id=%s", (int(attendance_id),))
            if not fetchone(cur):
                return False
            cur.execute(
                "INSERT INTO attendance_breaks(attendance_id, start_time, end_time, reason) VALUES(%s,%s,%s,%s)",
                (int(attendance_id), period.start, period.end, period.reason),
            )
            return True

    def count_by_status(self, *, facility_id: str, start_date: date, end_date: date) -> Mapping[AttendanceStatus, int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT status, COUNT(*) AS total
                FROM attendance_records
                WHERE facility_id=%s AND work_date BETWEEN %s AND %s
                GROUP BY status
                """,
                (facility_id, start_date, end_date),
            )
            return {AttendanceStatus(r["status"]): int(r["total"]) for r in fetchall(cur)}

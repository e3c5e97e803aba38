from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Optional

from ..alerts.repository import AlertRepository
from ..attendance.model import AttendanceRecord
from ..attendance.repository import AttendanceRepository
from ..core.enums import AttendanceStatus
from ..core.exceptions import ValidationError
from .calculator.base import WorkHoursCalculator
from .calculator.standard_calculator import StandardWorkHoursCalculator

# statuses that count as "turned up" for the attendance rate
ATTENDED_STATUSES = frozenset(
    {
        AttendanceStatus.PRESENT,
        AttendanceStatus.LATE,
        AttendanceStatus.EARLY_DEPARTURE,
        AttendanceStatus.HALF_DAY,
    }
)


@dataclass(frozen=True)
class AttendanceStats:
    facility_id: str
    start: date
    end: date
    counts: dict[str, int]
    total: int
    attendance_rate: float


@dataclass(frozen=True)
class ReportData:
    rows: list[dict]
    summary: list[dict]


def _check_range(start: date, end: date) -> None:
    if end < start:
        raise ValidationError("End date must not be before start date")


class StatisticsService:
    """Read-side aggregation over attendance records and alerts by facility and date range."""

    def __init__(
        self,
        attendance: AttendanceRepository,
        alerts: AlertRepository,
        *,
        calculator: Optional[WorkHoursCalculator] = None,
    ):
        self._attendance = attendance
        self._alerts = alerts
        self._calculator = calculator or StandardWorkHoursCalculator()

    def attendance_stats(self, facility_id: str, start: date, end: date) -> AttendanceStats:
        _check_range(start, end)
        by_status = self._attendance.count_by_status(facility_id=facility_id, start_date=start, end_date=end)

        counts = {s.value: int(by_status.get(s, 0)) for s in AttendanceStatus}
        total = sum(counts.values())
        attended = sum(int(by_status.get(s, 0)) for s in ATTENDED_STATUSES)
        rate = round(attended * 100.0 / total, 1) if total else 0.0

        return AttendanceStats(
            facility_id=facility_id,
            start=start,
            end=end,
            counts=counts,
            total=total,
            attendance_rate=rate,
        )

    def alert_stats(self, facility_id: str, start: date, end: date) -> dict:
        _check_range(start, end)
        rows = self._alerts.count_by_type_and_severity(
            facility_id=facility_id,
            start=datetime.combine(start, time.min),
            end=datetime.combine(end, time.max),
        )

        by_type: dict[str, int] = {}
        by_severity: dict[str, int] = {}
        breakdown = []
        for alert_type, severity, count in rows:
            breakdown.append({"type": alert_type.value, "severity": severity.value, "count": count})
            by_type[alert_type.value] = by_type.get(alert_type.value, 0) + count
            by_severity[severity.value] = by_severity.get(severity.value, 0) + count

        return {
            "facility_id": facility_id,
            "start": start.isoformat(),
            "end": end.isoformat(),
            "total": sum(by_type.values()),
            "by_type": by_type,
            "by_severity": by_severity,
            "breakdown": breakdown,
        }

    def _worked_minutes(self, r: AttendanceRecord) -> int:
        if not r.check_in or not r.check_out:
            return 0
        hours = self._calculator.work_hours(r.check_in.time, r.check_out.time, r.breaks)
        return int(round(hours * 60))

    def work_hours_summary(self, facility_id: str, start: date, end: date) -> ReportData:
        _check_range(start, end)
        records = self._attendance.list_for_facility_between(facility_id, start, end)

        summary_map: dict[str, dict] = {}
        out_rows: list[dict] = []

        for r in records:
            minutes = self._worked_minutes(r)
            out_rows.append(
                {
                    "staff_id": r.staff_id,
                    "work_date": r.work_date.strftime("%Y-%m-%d"),
                    "check_in": r.check_in.time.strftime("%H:%M") if r.check_in else "-",
                    "check_out": r.check_out.time.strftime("%H:%M") if r.check_out else "-",
                    "worked_hours": f"{minutes // 60:02d}:{minutes % 60:02d}",
                    "status": r.status.value,
                    "note": r.note or "",
                }
            )

            s = summary_map.setdefault(r.staff_id, {"staff_id": r.staff_id, "days": 0, "total_minutes": 0})
            s["days"] += 1
            s["total_minutes"] += minutes

        summary = []
        for s in summary_map.values():
            total_minutes = int(s["total_minutes"])
            summary.append(
                {
                    "staff_id": s["staff_id"],
                    "days": s["days"],
                    "total_minutes": total_minutes,
                    "total_hours": f"{total_minutes // 60:02d}:{total_minutes % 60:02d}",
                }
            )

        summary.sort(key=lambda x: x["total_minutes"], reverse=True)
        return ReportData(rows=out_rows, summary=summary)

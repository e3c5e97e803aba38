"""In-memory adapters shared by the test modules."""

from __future__ import annotations

import itertools
import threading
from dataclasses import replace
from datetime import date, datetime, time

from src.attendance_alerts.attendance_alerts.alerts.model import Alert, DeliveryFlags
from src.attendance_alerts.attendance_alerts.attendance.model import AttendanceRecord
from src.attendance_alerts.attendance_alerts.biometrics.verifier import hash_template
from src.attendance_alerts.attendance_alerts.container import assemble
from src.attendance_alerts.attendance_alerts.core.enums import AlertStatus, AttendanceStatus, StaffRole
from src.attendance_alerts.attendance_alerts.core.exceptions import ConflictError, ExternalServiceError
from src.attendance_alerts.attendance_alerts.directory.repository import StaticEscalationDirectory
from src.attendance_alerts.attendance_alerts.facilities.model import Facility, OperatingHours
from src.attendance_alerts.attendance_alerts.geo.geofence import GeoPoint
from src.attendance_alerts.attendance_alerts.staff.model import BiometricTemplates, StaffMember

# cheap hash so tests stay fast
FAST_HASH = "pbkdf2:sha256:1000"

FINGERPRINT = "fp-template-001"
PIN = "4321"

FACILITY_ID = "PHC001"
FACILITY_POINT = GeoPoint(lat=28.6139, lng=77.2090)


def make_facility(facility_id: str = FACILITY_ID, **overrides) -> Facility:
    values = dict(
        facility_id=facility_id,
        name="PHC Sector 7",
        location=FACILITY_POINT,
        operating_hours=OperatingHours(start=time(9, 0), end=time(17, 0)),
        district="New Delhi",
    )
    values.update(overrides)
    return Facility(**values)


_TEMPLATES = {}


def _templates() -> tuple[BiometricTemplates, str]:
    # hashing once per session keeps fixtures cheap
    if not _TEMPLATES:
        _TEMPLATES["fp"] = BiometricTemplates(fingerprint_hash=hash_template(FINGERPRINT, method=FAST_HASH))
        _TEMPLATES["pin"] = hash_template(PIN, method=FAST_HASH)
    return _TEMPLATES["fp"], _TEMPLATES["pin"]


def make_staff(staff_id: str = "S001", facility_id: str = FACILITY_ID, **overrides) -> StaffMember:
    templates, pin_hash = _templates()
    values = dict(
        staff_id=staff_id,
        name=f"Dr. {staff_id}",
        role=StaffRole.DOCTOR,
        designation="Medical Officer",
        facility_id=facility_id,
        templates=templates,
        manual_pin_hash=pin_hash,
    )
    values.update(overrides)
    return StaffMember(**values)


CONTACTS = {
    FACILITY_ID: [
        {"recipient_id": "R1", "name": "Incharge One", "role": "CENTER_INCHARGE", "email": "r1@phc.test", "phone": "+911"},
        {"recipient_id": "R2", "name": "DDHS Two", "role": "DDHS", "email": "r2@phc.test", "phone": "+912"},
        {"recipient_id": "R3", "name": "Admin Three", "role": "ADMIN_STAFF", "email": "r3@phc.test", "phone": "+913"},
    ]
}


class FakeStaffRepo:
    def __init__(self, members=()):
        self._members = {m.staff_id: m for m in members}

    def get_by_id(self, staff_id):
        return self._members.get(staff_id)


class FakeFacilityRepo:
    def __init__(self, facilities=()):
        self._facilities = {f.facility_id: f for f in facilities}

    def get_by_id(self, facility_id):
        return self._facilities.get(facility_id)


class InMemoryAttendanceRepo:
    """Enforces the (staff, day) unique key under a lock, like the MySQL table."""

    def __init__(self):
        self._lock = threading.Lock()
        self._ids = itertools.count(1)
        self._records: dict[tuple[str, date], AttendanceRecord] = {}

    def _by_id(self, attendance_id):
        for key, r in self._records.items():
            if r.attendance_id == attendance_id:
                return key, r
        return None, None

    def get_for_staff_and_date(self, staff_id, work_date):
        return self._records.get((staff_id, work_date))

    def list_for_facility_and_date(self, facility_id, work_date):
        return [r for r in self._records.values() if r.facility_id == facility_id and r.work_date == work_date]

    def list_for_facility_between(self, facility_id, start_date, end_date):
        return [r for r in self._records.values() if r.facility_id == facility_id and start_date <= r.work_date <= end_date]

    def list_for_staff(self, staff_id, start_date, end_date):
        return [r for r in self._records.values() if r.staff_id == staff_id and start_date <= r.work_date <= end_date]

    def create_checkin(self, *, staff_id, facility_id, work_date, check_in, status, is_late, late_minutes):
        with self._lock:
            if (staff_id, work_date) in self._records:
                raise ConflictError("Attendance already recorded for this staff member today")
            record = AttendanceRecord(
                attendance_id=next(self._ids),
                staff_id=staff_id,
                facility_id=facility_id,
                work_date=work_date,
                check_in=check_in,
                status=status,
                is_late=is_late,
                late_minutes=late_minutes,
            )
            self._records[(staff_id, work_date)] = record
            return record.attendance_id

    def attach_checkin(self, *, attendance_id, check_in, status, is_late, late_minutes):
        with self._lock:
            key, r = self._by_id(attendance_id)
            if not r or r.check_in is not None:
                return False
            self._records[key] = replace(r, check_in=check_in, status=status, is_late=is_late, late_minutes=late_minutes)
            return True

    def update_checkout(self, *, attendance_id, check_out, status, is_early_departure, early_departure_minutes, total_work_hours):
        with self._lock:
            key, r = self._by_id(attendance_id)
            if not r or r.check_in is None or r.check_out is not None:
                return False
            self._records[key] = replace(
                r,
                check_out=check_out,
                status=status,
                is_early_departure=is_early_departure,
                early_departure_minutes=early_departure_minutes,
                total_work_hours=total_work_hours,
            )
            return True

    def create_absence(self, *, staff_id, facility_id, work_date, note=None):
        with self._lock:
            if (staff_id, work_date) in self._records:
                raise ConflictError("Attendance already recorded for this staff member today")
            record = AttendanceRecord(
                attendance_id=next(self._ids),
                staff_id=staff_id,
                facility_id=facility_id,
                work_date=work_date,
                check_in=None,
                status=AttendanceStatus.ABSENT,
                note=note,
            )
            self._records[(staff_id, work_date)] = record
            return record.attendance_id

    def add_break(self, *, attendance_id, period):
        with self._lock:
            key, r = self._by_id(attendance_id)
            if not r:
                return False
            self._records[key] = replace(r, breaks=r.breaks + (period,))
            return True

    def count_by_status(self, *, facility_id, start_date, end_date):
        counts: dict[AttendanceStatus, int] = {}
        for r in self.list_for_facility_between(facility_id, start_date, end_date):
            counts[r.status] = counts.get(r.status, 0) + 1
        return counts


class InMemoryAlertRepo:
    """Compare-and-set transitions and a unique dedupe key, like the MySQL tables."""

    def __init__(self):
        self._lock = threading.Lock()
        self._ids = itertools.count(1)
        self._alerts: dict[int, Alert] = {}

    @property
    def all(self) -> list[Alert]:
        return list(self._alerts.values())

    def create(self, *, alert_type, severity, facility_id, staff_id, title, message, payload, recipients, max_retries, created_at, dedupe_key=None):
        with self._lock:
            if dedupe_key and any(a.dedupe_key == dedupe_key for a in self._alerts.values()):
                raise ConflictError("An open alert already exists for this key")
            alert = Alert(
                alert_id=next(self._ids),
                facility_id=facility_id,
                staff_id=staff_id,
                alert_type=alert_type,
                severity=severity,
                title=title,
                message=message,
                payload=dict(payload),
                recipients=tuple(recipients),
                created_at=created_at,
                max_retries=max_retries,
                dedupe_key=dedupe_key,
            )
            self._alerts[alert.alert_id] = alert
            return alert

    def get_by_id(self, alert_id):
        return self._alerts.get(int(alert_id))

    def find_by_dedupe_key(self, dedupe_key):
        for a in self._alerts.values():
            if a.dedupe_key == dedupe_key:
                return a
        return None

    def list_alerts(self, *, facility_id=None, staff_id=None, alert_type=None, severity=None, status=None, limit=50):
        rows = [
            a
            for a in self._alerts.values()
            if (facility_id is None or a.facility_id == facility_id)
            and (staff_id is None or a.staff_id == staff_id)
            and (alert_type is None or a.alert_type == alert_type)
            and (severity is None or a.severity == severity)
            and (status is None or a.status == status)
        ]
        rows.sort(key=lambda a: (a.created_at, a.alert_id), reverse=True)
        return rows[:limit]

    def update_recipient_delivery(self, *, alert_id, recipient_id, delivered: DeliveryFlags):
        with self._lock:
            a = self._alerts.get(int(alert_id))
            if not a or not a.recipient(recipient_id):
                return False
            recipients = tuple(replace(r, delivered=delivered) if r.recipient_id == recipient_id else r for r in a.recipients)
            self._alerts[a.alert_id] = replace(a, recipients=recipients)
            return True

    def increment_retry(self, *, alert_id):
        with self._lock:
            a = self._alerts.get(int(alert_id))
            if not a or a.retry_count >= a.max_retries:
                return False
            self._alerts[a.alert_id] = replace(a, retry_count=a.retry_count + 1)
            return True

    def transition(self, *, alert_id, from_statuses, to_status, changes=None):
        with self._lock:
            a = self._alerts.get(int(alert_id))
            if not a or a.status not in set(from_statuses):
                return False
            updated = replace(a, status=to_status, **dict(changes or {}))
            if to_status == AlertStatus.RESOLVED:
                updated = replace(updated, dedupe_key=None)
            self._alerts[a.alert_id] = updated
            return True

    def count_by_type_and_severity(self, *, facility_id, start, end):
        counts: dict[tuple, int] = {}
        for a in self._alerts.values():
            if a.facility_id == facility_id and start <= a.created_at <= end:
                counts[(a.alert_type, a.severity)] = counts.get((a.alert_type, a.severity), 0) + 1
        return [(t, s, n) for (t, s), n in sorted(counts.items(), key=lambda kv: (kv[0][0].value, kv[0][1].value))]


class RecordingSms:
    def __init__(self, *, configured=True, fail=False):
        self.configured = configured
        self.fail = fail
        self.sent: list[tuple[str, str]] = []
        self._lock = threading.Lock()

    @property
    def is_configured(self):
        return self.configured

    def send(self, *, to, body):
        if self.fail:
            raise ExternalServiceError("SMS gateway unreachable")
        with self._lock:
            self.sent.append((to, body))


class RecordingEmail:
    def __init__(self, *, configured=True, fail=False):
        self.configured = configured
        self.fail = fail
        self.sent: list[dict] = []
        self._lock = threading.Lock()

    @property
    def is_configured(self):
        return self.configured

    def send(self, *, to, to_name, subject, text, html):
        if self.fail:
            raise ExternalServiceError("Email gateway unreachable")
        with self._lock:
            self.sent.append({"to": to, "to_name": to_name, "subject": subject, "text": text, "html": html})


class RecordingPublisher:
    def __init__(self):
        self.events: list[tuple[str, dict]] = []

    def emit(self, event, payload):
        self.events.append((event, dict(payload)))


class Settings:
    """Attribute bag standing in for a settings module."""

    def __init__(self, **values):
        self.__dict__.update(values)


def build_container(*, staff=(), facilities=None, contacts=None, sms=None, email=None, settings=None):
    facilities = [make_facility()] if facilities is None else facilities
    return assemble(
        staff_repo=FakeStaffRepo(staff),
        facilities_repo=FakeFacilityRepo(facilities),
        attendance_repo=InMemoryAttendanceRepo(),
        alerts_repo=InMemoryAlertRepo(),
        directory=StaticEscalationDirectory(CONTACTS if contacts is None else contacts),
        sms=sms or RecordingSms(),
        email=email or RecordingEmail(),
        events=RecordingPublisher(),
        settings=settings or Settings(CHANNEL_TIMEOUT_SECONDS=2.0, NOTIFY_MAX_WORKERS=4),
    )


def at(hour: int, minute: int = 0, second: int = 0, day: date = date(2025, 3, 10)) -> datetime:
    return datetime.combine(day, time(hour, minute, second))

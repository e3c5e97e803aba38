from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone

import pytest

from fakes import FINGERPRINT, PIN, RecordingSms, Settings, at, build_container, make_facility, make_staff

from src.attendance_alerts.attendance_alerts.attendance.model import DeviceInfo, Location
from src.attendance_alerts.attendance_alerts.core.enums import (
    AlertStatus,
    AlertType,
    AttendanceStatus,
    FacilityStatus,
    Severity,
    StaffStatus,
)
from src.attendance_alerts.attendance_alerts.core.exceptions import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    RateLimitError,
    ValidationError,
)


@pytest.fixture
def container():
    c = build_container(staff=[make_staff("S001"), make_staff("S002")])
    yield c
    c.shutdown()


def _alerts(container, alert_type=None):
    return [a for a in container.alerts_repo.all if alert_type is None or a.alert_type == alert_type]


def test_checkin_45_minutes_late(container):
    outcome = container.attendance_service.check_in(
        "S001", "PHC001", sample=FINGERPRINT, modality="FINGERPRINT", now=at(9, 45)
    )

    assert outcome.status == AttendanceStatus.LATE
    assert outcome.is_late is True
    assert outcome.late_minutes == 45

    record = container.attendance_repo.get_for_staff_and_date("S001", at(9, 45).date())
    assert record.status == AttendanceStatus.LATE
    assert record.check_in.verified is True

    (alert,) = _alerts(container, AlertType.LATE_CHECKIN)
    assert alert.severity == Severity.MEDIUM
    assert alert.payload["late_minutes"] == 45
    assert "checked in 45 minutes late" in alert.message
    assert alert.status == AlertStatus.SENT
    assert outcome.alert_ids == (alert.alert_id,)


def test_on_time_checkin_raises_no_alert(container):
    outcome = container.attendance_service.check_in(
        "S001", "PHC001", sample=FINGERPRINT, modality="fingerprint", now=at(8, 55)
    )

    assert outcome.status == AttendanceStatus.PRESENT
    assert outcome.late_minutes == 0
    assert _alerts(container) == []


@pytest.mark.parametrize(
    "minute, minutes_late, severity",
    [(59, 59, Severity.MEDIUM), (60, 60, Severity.MEDIUM), (61, 61, Severity.HIGH)],
)
def test_late_severity_boundary(container, minute, minutes_late, severity):
    now = at(9, 0).replace(hour=9 + minute // 60, minute=minute % 60)
    container.attendance_service.check_in("S001", "PHC001", sample=FINGERPRINT, modality="FINGERPRINT", now=now)

    (alert,) = _alerts(container, AlertType.LATE_CHECKIN)
    assert alert.payload["late_minutes"] == minutes_late
    assert alert.severity == severity


def test_failed_biometric_raises_one_alert_and_writes_nothing(container):
    with pytest.raises(AuthenticationError):
        container.attendance_service.check_in(
            "S001", "PHC001", sample="someone-else", modality="FINGERPRINT", now=at(9, 0)
        )

    (alert,) = _alerts(container)
    assert alert.alert_type == AlertType.BIOMETRIC_FAILURE
    assert alert.severity == Severity.HIGH
    assert alert.payload["phase"] == "CHECKIN"
    assert container.attendance_repo.get_for_staff_and_date("S001", at(9, 0).date()) is None


def test_manual_pin_checkin(container):
    outcome = container.attendance_service.check_in("S001", "PHC001", sample=PIN, modality="MANUAL", now=at(9, 0))

    assert outcome.status == AttendanceStatus.PRESENT


def test_duplicate_checkin_is_conflict(container):
    svc = container.attendance_service
    svc.check_in("S001", "PHC001", sample=FINGERPRINT, modality="FINGERPRINT", now=at(9, 0))

    with pytest.raises(ConflictError):
        svc.check_in("S001", "PHC001", sample=FINGERPRINT, modality="FINGERPRINT", now=at(9, 5))


def test_rate_limit_rejects_even_correct_sample():
    c = build_container(
        staff=[make_staff("S001")],
        settings=Settings(BIOMETRIC_MAX_ATTEMPTS=2, CHANNEL_TIMEOUT_SECONDS=2.0),
    )
    try:
        svc = c.attendance_service
        for _ in range(2):
            with pytest.raises(AuthenticationError):
                svc.check_in("S001", "PHC001", sample="wrong", modality="FINGERPRINT", now=at(9, 0))

        with pytest.raises(RateLimitError):
            svc.check_in("S001", "PHC001", sample=FINGERPRINT, modality="FINGERPRINT", now=at(9, 1))
        assert len(_alerts(c, AlertType.BIOMETRIC_FAILURE)) == 2
    finally:
        c.shutdown()


def test_unknown_or_inactive_subjects_are_not_found():
    c = build_container(
        staff=[make_staff("S001"), make_staff("S002", status=StaffStatus.SUSPENDED), make_staff("S003", facility_id="PHC002")],
        facilities=[make_facility(), make_facility("PHC002", status=FacilityStatus.INACTIVE)],
    )
    try:
        svc = c.attendance_service
        for staff_id, facility_id in [("NOPE", "PHC001"), ("S002", "PHC001"), ("S001", "PHC002"), ("S003", "PHC002")]:
            with pytest.raises(NotFoundError):
                svc.check_in(staff_id, facility_id, sample=FINGERPRINT, modality="FINGERPRINT", now=at(9, 0))
    finally:
        c.shutdown()


def test_malformed_input_is_validation_error(container):
    svc = container.attendance_service
    with pytest.raises(ValidationError):
        svc.check_in("S001", "PHC001", sample=FINGERPRINT, modality="RETINA", now=at(9, 0))
    with pytest.raises(ValidationError):
        svc.check_in("S001", "PHC001", sample="  ", modality="FINGERPRINT", now=at(9, 0))


def test_checkin_publishes_attendance_event(container):
    container.attendance_service.check_in("S001", "PHC001", sample=FINGERPRINT, modality="FINGERPRINT", now=at(9, 10))

    (event, payload) = container.events.events[-1]
    assert event == "attendance_update"
    assert payload["type"] == "CHECKIN"
    assert payload["staff_id"] == "S001"
    assert payload["status"] == "LATE"


def test_far_away_punch_is_recorded_with_location_alert(container):
    far = Location(lat=28.6239, lng=77.2090, accuracy=10.0)  # ~1.1 km north

    outcome = container.attendance_service.check_in(
        "S001", "PHC001", sample=FINGERPRINT, modality="FINGERPRINT", location=far, now=at(9, 0)
    )

    assert outcome.status == AttendanceStatus.PRESENT
    (alert,) = _alerts(container, AlertType.LOCATION_MISMATCH)
    assert alert.severity == Severity.MEDIUM
    assert alert.payload["distance_m"] > 1000


def test_enforced_geofence_rejects_far_punch():
    c = build_container(staff=[make_staff("S001")], settings=Settings(ENFORCE_GEOFENCE=True))
    try:
        with pytest.raises(ValidationError):
            c.attendance_service.check_in(
                "S001",
                "PHC001",
                sample=FINGERPRINT,
                modality="FINGERPRINT",
                location=Location(lat=28.7, lng=77.2090),
                now=at(9, 0),
            )
        assert c.attendance_repo.get_for_staff_and_date("S001", at(9, 0).date()) is None
    finally:
        c.shutdown()


def test_tamper_heuristics_raise_low_alert(container):
    outcome = container.attendance_service.check_in(
        "S001",
        "PHC001",
        sample=FINGERPRINT,
        modality="FINGERPRINT",
        location=Location(lat=28.6139, lng=77.2090, accuracy=1500.0),
        device=DeviceInfo(device_id="D1", device_type="android"),
        quality_score=0.4,
        now=at(9, 0),
    )

    assert "Low GPS accuracy detected" in outcome.warnings
    assert "Low biometric quality detected" in outcome.warnings
    (alert,) = _alerts(container, AlertType.DEVICE_TAMPER)
    assert alert.severity == Severity.LOW
    assert alert.payload["device_info"]["device_id"] == "D1"


class GatedSms(RecordingSms):
    def __init__(self):
        super().__init__()
        self.release = threading.Event()

    def send(self, *, to, body):
        self.release.wait(5)
        super().send(to=to, body=body)


def test_background_dispatch_does_not_hold_the_checkin():
    sms = GatedSms()
    c = build_container(
        staff=[make_staff("S001")],
        sms=sms,
        settings=Settings(ASYNC_DISPATCH=True, CHANNEL_TIMEOUT_SECONDS=5.0, NOTIFY_MAX_WORKERS=8),
    )
    try:
        outcome = c.attendance_service.check_in("S001", "PHC001", sample=FINGERPRINT, modality="FINGERPRINT", now=at(9, 45))

        (alert_id,) = outcome.alert_ids
        assert c.alerts_repo.get_by_id(alert_id).status == AlertStatus.PENDING
    finally:
        sms.release.set()
        c.shutdown()

    assert c.alerts_repo.get_by_id(alert_id).status == AlertStatus.SENT
    assert len(sms.sent) == 3


def test_offset_timestamp_is_read_as_local_time(container):
    aware = datetime(2025, 3, 10, 9, 45, tzinfo=timezone(timedelta(hours=5, minutes=30)))
    local = aware.astimezone().replace(tzinfo=None)

    container.attendance_service.check_in("S001", "PHC001", sample=FINGERPRINT, modality="FINGERPRINT", now=aware)

    record = container.attendance_repo.get_for_staff_and_date("S001", local.date())
    assert record.check_in.time == local

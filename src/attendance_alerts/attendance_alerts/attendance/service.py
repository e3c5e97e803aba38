from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Optional, Sequence

from ..alerts.model import Alert
from ..alerts.service import AlertService
from ..biometrics.rate_limiter import BiometricRateLimiter
from ..biometrics.tamper import detect_tampering
from ..biometrics.verifier import BiometricVerifier
from ..common.datetime_utils import as_local_naive, now_local
from ..common.validators import require_enum, require_non_empty
from ..core.enums import BiometricModality, PunchPhase
from ..core.exceptions import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    RateLimitError,
    ValidationError,
)
from ..core.policy import AttendancePolicy
from ..facilities.model import Facility
from ..facilities.repository import FacilityRepository
from ..geo.geofence import distance_meters, within_radius
from ..notifications.outbox import EventPublisher
from ..reports.calculator.base import WorkHoursCalculator
from ..reports.calculator.standard_calculator import StandardWorkHoursCalculator
from ..staff.model import StaffMember
from ..staff.repository import StaffRepository
from .factory import AttendanceStrategyFactory
from .model import AttendanceOutcome, AttendanceRecord, BreakPeriod, DeviceInfo, Location, Punch
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)

ATTENDANCE_EVENT = "attendance_update"


class AttendanceService:
    """Processes check-in/check-out punches.

    Primary-path failures (lookup, duplicate, verification, rate limit) raise to
    the caller. Alerts and real-time events are secondary: they are logged on
    failure and never undo a recorded punch.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        staff: StaffRepository,
        facilities: FacilityRepository,
        *,
        verifier: BiometricVerifier,
        rate_limiter: BiometricRateLimiter,
        alerts: AlertService,
        events: EventPublisher,
        policy: AttendancePolicy | None = None,
        strategy_factory: AttendanceStrategyFactory | None = None,
        calculator: WorkHoursCalculator | None = None,
        lifecycle=None,
    ):
        self._attendance = attendance
        self._staff = staff
        self._facilities = facilities
        self._verifier = verifier
        self._rate_limiter = rate_limiter
        self._alerts = alerts
        self._events = events
        self._policy = policy or AttendancePolicy()
        self._factory = strategy_factory or AttendanceStrategyFactory()
        self._calculator = calculator or StandardWorkHoursCalculator()
        self._lifecycle = lifecycle

    # Lookups

    def _get_staff(self, staff_id: str, facility_id: str) -> StaffMember:
        staff = self._staff.get_by_id(staff_id)
        if not staff or not staff.is_active:
            raise NotFoundError(f"Staff member {staff_id} not found or inactive")
        if staff.facility_id != facility_id:
            raise NotFoundError(f"Staff member {staff_id} is not assigned to facility {facility_id}")
        return staff

    def _get_facility(self, facility_id: str) -> Facility:
        facility = self._facilities.get_by_id(facility_id)
        if not facility or not facility.is_active:
            raise NotFoundError(f"Facility {facility_id} not found or inactive")
        return facility

    def _subjects(self, staff_id: str, facility_id: str) -> tuple[StaffMember, Facility]:
        staff_id = require_non_empty(staff_id, "Staff id")
        facility_id = require_non_empty(facility_id, "Facility id")
        staff = self._get_staff(staff_id, facility_id)
        return staff, self._get_facility(facility_id)

    # Verification

    def _verify(
        self,
        staff: StaffMember,
        facility: Facility,
        *,
        modality: BiometricModality,
        sample: str,
        phase: PunchPhase,
        now: datetime,
    ) -> None:
        if not self._rate_limiter.allow(staff.staff_id, now=now):
            logger.warning("Verification attempts exhausted for %s", staff.staff_id)
            raise RateLimitError("Too many verification attempts. Please try again later.")

        if self._verifier.verify(staff.template_for(modality), sample, modality):
            return

        logger.warning("Biometric %s failed for %s (%s)", phase.value, staff.staff_id, modality.value)
        self._alerts.biometric_failure(staff=staff, facility=facility, modality=modality, phase=phase, now=now)
        raise AuthenticationError("Biometric verification failed")

    def _geofence_distance(self, facility: Facility, location: Optional[Location]) -> Optional[float]:
        """Distance from the facility, or ``None`` when no location was reported.

        Raises when enforcement is on and the punch is outside the radius.
        """

        point = location.point if location else None
        distance = distance_meters(facility.location, point) if point else None
        if self._policy.enforce_geofence:
            if not within_radius(facility.location, point, self._policy.geofence_radius_meters):
                raise ValidationError("Location is outside the facility geofence")
        return distance

    # Secondary signals

    def _advisories(
        self,
        staff: StaffMember,
        facility: Facility,
        *,
        phase: PunchPhase,
        now: datetime,
        location: Optional[Location],
        device: Optional[DeviceInfo],
        distance: Optional[float],
        quality_score: Optional[float],
        expected_device_id: Optional[str] = None,
    ) -> tuple[list[Alert], tuple[str, ...]]:
        raised: list[Alert] = []
        radius = self._policy.geofence_radius_meters

        if location and distance is not None and not within_radius(facility.location, location.point, radius):
            alert = self._alerts.location_mismatch(
                staff=staff,
                facility=facility,
                actual={"lat": location.lat, "lng": location.lng},
                distance_m=distance,
                radius_m=radius,
                phase=phase,
                now=now,
            )
            if alert:
                raised.append(alert)

        report = detect_tampering(
            location_accuracy=location.accuracy if location else None,
            quality_score=quality_score,
            device_id=device.device_id if device else None,
            expected_device_id=expected_device_id,
        )
        if report.is_suspicious:
            device_info = {
                "device_id": device.device_id if device else None,
                "device_type": device.device_type if device else None,
                "app_version": device.app_version if device else None,
            }
            alert = self._alerts.device_tamper(
                staff=staff,
                facility=facility,
                warnings=report.warnings,
                device=device_info,
                phase=phase,
                now=now,
            )
            if alert:
                raised.append(alert)
        return raised, report.warnings

    def _publish(self, payload: dict[str, Any]) -> None:
        try:
            self._events.emit(ATTENDANCE_EVENT, payload)
        except Exception:
            logger.exception("Could not queue %s event", ATTENDANCE_EVENT)

    # Punches

    def check_in(
        self,
        staff_id: str,
        facility_id: str,
        *,
        sample: str,
        modality: BiometricModality | str,
        location: Optional[Location] = None,
        device: Optional[DeviceInfo] = None,
        quality_score: Optional[float] = None,
        now: Optional[datetime] = None,
    ) -> AttendanceOutcome:
        now = as_local_naive(now or now_local())
        today = now.date()
        modality = require_enum(BiometricModality, modality, "Modality")
        sample = require_non_empty(sample, "Biometric sample")

        staff, facility = self._subjects(staff_id, facility_id)

        existing = self._attendance.get_for_staff_and_date(staff.staff_id, today)
        if existing and existing.check_in:
            raise ConflictError("Already checked in today")

        distance = self._geofence_distance(facility, location)
        self._verify(staff, facility, modality=modality, sample=sample, phase=PunchPhase.CHECKIN, now=now)

        expected = facility.expected_check_in(today)
        strategy = self._factory.for_checkin(now=now, expected=expected, grace_minutes=self._policy.grace_minutes)
        decision = strategy.decide_checkin(now=now, expected=expected)

        punch = Punch(time=now, modality=modality, location=location, device=device, verified=True)
        if existing:
            # a record without a check-in, e.g. an earlier absence mark
            attached = self._attendance.attach_checkin(
                attendance_id=existing.attendance_id,
                check_in=punch,
                status=decision.status,
                is_late=decision.flagged,
                late_minutes=decision.minutes,
            )
            if not attached:
                raise ConflictError("Already checked in today")
        else:
            self._attendance.create_checkin(
                staff_id=staff.staff_id,
                facility_id=facility.facility_id,
                work_date=today,
                check_in=punch,
                status=decision.status,
                is_late=decision.flagged,
                late_minutes=decision.minutes,
            )
        logger.info("Check-in %s at %s: %s", staff.staff_id, facility.facility_id, decision.status.value)

        raised: list[Alert] = []
        if decision.flagged:
            alert = self._alerts.late_checkin(
                staff=staff,
                facility=facility,
                check_in_time=now,
                expected=expected,
                late_minutes=decision.minutes,
            )
            if alert:
                raised.append(alert)

        advisory, warnings = self._advisories(
            staff,
            facility,
            phase=PunchPhase.CHECKIN,
            now=now,
            location=location,
            device=device,
            distance=distance,
            quality_score=quality_score,
        )
        raised.extend(advisory)

        self._publish(
            {
                "type": PunchPhase.CHECKIN.value,
                "staff_id": staff.staff_id,
                "facility_id": facility.facility_id,
                "timestamp": now.isoformat(),
                "status": decision.status.value,
                "is_late": decision.flagged,
                "late_minutes": decision.minutes,
            }
        )

        return AttendanceOutcome(
            staff_id=staff.staff_id,
            facility_id=facility.facility_id,
            phase=PunchPhase.CHECKIN,
            timestamp=now,
            status=decision.status,
            is_late=decision.flagged,
            late_minutes=decision.minutes,
            alert_ids=tuple(a.alert_id for a in raised),
            warnings=warnings,
        )

    def check_out(
        self,
        staff_id: str,
        facility_id: str,
        *,
        sample: str,
        modality: BiometricModality | str,
        location: Optional[Location] = None,
        device: Optional[DeviceInfo] = None,
        quality_score: Optional[float] = None,
        now: Optional[datetime] = None,
    ) -> AttendanceOutcome:
        now = as_local_naive(now or now_local())
        today = now.date()
        modality = require_enum(BiometricModality, modality, "Modality")
        sample = require_non_empty(sample, "Biometric sample")

        record = self._attendance.get_for_staff_and_date(staff_id, today)
        if not record or not record.check_in:
            raise NotFoundError("No check-in found for today")
        if record.check_out:
            raise ConflictError("Already checked out today")

        staff, facility = self._subjects(staff_id, facility_id)
        distance = self._geofence_distance(facility, location)
        self._verify(staff, facility, modality=modality, sample=sample, phase=PunchPhase.CHECKOUT, now=now)

        expected = facility.expected_check_out(today)
        strategy = self._factory.for_checkout(now=now, expected=expected)
        decision = strategy.decide_checkout(now=now, expected=expected, current=record.status)
        hours = self._calculator.work_hours(record.check_in.time, now, record.breaks)

        updated = self._attendance.update_checkout(
            attendance_id=record.attendance_id,
            check_out=Punch(time=now, modality=modality, location=location, device=device, verified=True),
            status=decision.status,
            is_early_departure=decision.flagged,
            early_departure_minutes=decision.minutes,
            total_work_hours=hours,
        )
        if not updated:
            raise ConflictError("Already checked out today")
        logger.info("Check-out %s at %s: %s (%.2fh)", staff.staff_id, facility.facility_id, decision.status.value, hours)

        raised: list[Alert] = []
        if decision.flagged:
            alert = self._alerts.early_checkout(
                staff=staff,
                facility=facility,
                check_out_time=now,
                expected=expected,
                early_minutes=decision.minutes,
            )
            if alert:
                raised.append(alert)

        checkin_device = record.check_in.device
        advisory, warnings = self._advisories(
            staff,
            facility,
            phase=PunchPhase.CHECKOUT,
            now=now,
            location=location,
            device=device,
            distance=distance,
            quality_score=quality_score,
            expected_device_id=checkin_device.device_id if checkin_device else None,
        )
        raised.extend(advisory)

        self._publish(
            {
                "type": PunchPhase.CHECKOUT.value,
                "staff_id": staff.staff_id,
                "facility_id": facility.facility_id,
                "timestamp": now.isoformat(),
                "status": decision.status.value,
                "total_work_hours": round(hours, 2),
            }
        )

        return AttendanceOutcome(
            staff_id=staff.staff_id,
            facility_id=facility.facility_id,
            phase=PunchPhase.CHECKOUT,
            timestamp=now,
            status=decision.status,
            is_late=record.is_late,
            late_minutes=record.late_minutes,
            is_early_departure=decision.flagged,
            early_departure_minutes=decision.minutes,
            total_work_hours=hours,
            alert_ids=tuple(a.alert_id for a in raised),
            warnings=warnings,
        )

    # Absences and breaks

    def mark_absent(
        self,
        staff_id: str,
        facility_id: str,
        *,
        work_date: date,
        note: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> AttendanceRecord:
        """Record an ABSENT day and re-evaluate the facility's absence count."""

        staff_id = require_non_empty(staff_id, "Staff id")
        facility = self._get_facility(require_non_empty(facility_id, "Facility id"))
        staff = self._staff.get_by_id(staff_id)
        if not staff or staff.facility_id != facility.facility_id:
            raise NotFoundError(f"Staff member {staff_id} is not assigned to facility {facility.facility_id}")

        self._attendance.create_absence(
            staff_id=staff.staff_id,
            facility_id=facility.facility_id,
            work_date=work_date,
            note=note,
        )
        logger.info("Marked %s absent at %s on %s", staff.staff_id, facility.facility_id, work_date)

        if self._lifecycle is not None:
            try:
                self._lifecycle.evaluate_absences(facility.facility_id, work_date, now=now)
            except Exception:
                logger.exception("Absence evaluation failed for %s on %s", facility.facility_id, work_date)

        return self.get_record(staff.staff_id, work_date)

    def record_break(
        self,
        staff_id: str,
        *,
        start: datetime,
        end: datetime,
        reason: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> AttendanceRecord:
        start, end = as_local_naive(start), as_local_naive(end)
        if end <= start:
            raise ValidationError("Break end must be after its start")

        today = as_local_naive(now or now_local()).date()
        record = self._attendance.get_for_staff_and_date(staff_id, today)
        if not record or not record.check_in:
            raise NotFoundError("No check-in found for today")
        if record.check_out:
            raise ConflictError("Breaks cannot be added after check-out")

        if not self._attendance.add_break(attendance_id=record.attendance_id, period=BreakPeriod(start, end, reason)):
            raise NotFoundError("Attendance record not found")
        return self.get_record(staff_id, today)

    # Reads

    def get_record(self, staff_id: str, work_date: date) -> AttendanceRecord:
        record = self._attendance.get_for_staff_and_date(staff_id, work_date)
        if not record:
            raise NotFoundError(f"No attendance for {staff_id} on {work_date.isoformat()}")
        return record

    def list_for_facility(self, facility_id: str, work_date: date) -> Sequence[AttendanceRecord]:
        return self._attendance.list_for_facility_and_date(facility_id, work_date)

    def list_for_staff(self, staff_id: str, start: date, end: date) -> Sequence[AttendanceRecord]:
        if end < start:
            raise ValidationError("End date must not be before start date")
        return self._attendance.list_for_staff(staff_id, start, end)

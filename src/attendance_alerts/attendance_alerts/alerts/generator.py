from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Mapping, Optional, Sequence

from ..common.datetime_utils import now_local
from ..core.enums import AlertType, BiometricModality, PunchPhase, Severity
from ..core.policy import AlertPolicy
from ..directory.repository import EscalationDirectory
from ..facilities.model import Facility
from ..staff.model import StaffMember
from . import templates
from .model import Alert, DeliveryFlags, NotificationRecipient
from .repository import AlertRepository

logger = logging.getLogger(__name__)


def aggregation_key(facility_id: str, work_date: date) -> str:
    return f"{AlertType.MULTIPLE_ABSENCES.value}:{facility_id}:{work_date.isoformat()}"


class AlertGenerator:
    """Builds alerts from classified events and persists them as PENDING."""

    def __init__(
        self,
        alerts: AlertRepository,
        directory: EscalationDirectory,
        *,
        policy: AlertPolicy | None = None,
    ):
        self._alerts = alerts
        self._directory = directory
        self._policy = policy or AlertPolicy()

    @property
    def policy(self) -> AlertPolicy:
        return self._policy

    def _lookup_recipients(self, facility_id: str) -> list[NotificationRecipient]:
        try:
            return list(self._directory.lookup_recipients(facility_id) or [])
        except Exception:
            logger.exception("Escalation directory lookup failed for facility %s", facility_id)
            return []

    def generate(
        self,
        alert_type: AlertType,
        severity: Severity,
        staff: Optional[StaffMember],
        facility: Facility,
        payload: Mapping[str, Any],
        recipients: Optional[Sequence[NotificationRecipient]] = None,
        *,
        context: Optional[Mapping[str, Any]] = None,
        dedupe_key: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Alert:
        if recipients is None:
            recipients = self._lookup_recipients(facility.facility_id)
        if not recipients:
            logger.warning("No escalation contacts for facility %s; %s alert has no recipients", facility.facility_id, alert_type.value)

        ctx: dict[str, Any] = {"facility": facility.name}
        if staff:
            ctx.update(name=staff.name, designation=staff.designation)
        ctx.update(payload)
        ctx.update(context or {})
        title, message = templates.render(alert_type, ctx)

        alert = self._alerts.create(
            alert_type=alert_type,
            severity=severity,
            facility_id=facility.facility_id,
            staff_id=staff.staff_id if staff else None,
            title=title,
            message=message,
            payload=dict(payload),
            recipients=[
                NotificationRecipient(
                    recipient_id=r.recipient_id,
                    name=r.name,
                    role=r.role,
                    email=r.email,
                    phone=r.phone,
                    delivered=DeliveryFlags(),
                )
                for r in recipients
            ],
            max_retries=self._policy.max_retries,
            created_at=now or now_local(),
            dedupe_key=dedupe_key,
        )
        logger.info("Created %s alert %s (%s) for facility %s", alert_type.value, alert.alert_id, severity.value, facility.facility_id)
        return alert

    # Typed builders

    def late_checkin(self, staff: StaffMember, facility: Facility, *, check_in_time: datetime, expected: datetime, late_minutes: int) -> Alert:
        return self.generate(
            AlertType.LATE_CHECKIN,
            self._policy.late_severity(late_minutes),
            staff,
            facility,
            {"expected_time": expected.isoformat(), "actual_time": check_in_time.isoformat(), "late_minutes": late_minutes},
            context={"time": check_in_time.strftime("%H:%M")},
            now=check_in_time,
        )

    def early_checkout(self, staff: StaffMember, facility: Facility, *, check_out_time: datetime, expected: datetime, early_minutes: int) -> Alert:
        return self.generate(
            AlertType.EARLY_CHECKOUT,
            self._policy.early_severity(early_minutes),
            staff,
            facility,
            {"expected_time": expected.isoformat(), "actual_time": check_out_time.isoformat(), "early_minutes": early_minutes},
            context={"time": check_out_time.strftime("%H:%M")},
            now=check_out_time,
        )

    def biometric_failure(self, staff: StaffMember, facility: Facility, *, modality: BiometricModality, phase: PunchPhase, now: datetime) -> Alert:
        return self.generate(
            AlertType.BIOMETRIC_FAILURE,
            Severity.HIGH,
            staff,
            facility,
            {"modality": modality.value, "phase": phase.value, "attempted_at": now.isoformat()},
            now=now,
        )

    def location_mismatch(
        self,
        staff: StaffMember,
        facility: Facility,
        *,
        actual: Mapping[str, float],
        distance_m: float,
        radius_m: float,
        phase: PunchPhase,
        now: datetime,
    ) -> Alert:
        return self.generate(
            AlertType.LOCATION_MISMATCH,
            Severity.MEDIUM,
            staff,
            facility,
            {
                "expected_location": {"lat": facility.location.lat, "lng": facility.location.lng},
                "actual_location": dict(actual),
                "distance_m": round(distance_m),
                "radius_m": round(radius_m),
                "phase": phase.value,
            },
            now=now,
        )

    def device_tamper(self, staff: StaffMember, facility: Facility, *, warnings: Sequence[str], device: Mapping[str, Any], phase: PunchPhase, now: datetime) -> Alert:
        return self.generate(
            AlertType.DEVICE_TAMPER,
            Severity.LOW,
            staff,
            facility,
            {"warnings": list(warnings), "device_info": dict(device), "phase": phase.value},
            context={"warnings": "; ".join(warnings)},
            now=now,
        )

    def multiple_absences(self, facility: Facility, *, work_date: date, absent_staff: Sequence[Mapping[str, Any]], now: datetime) -> Alert:
        count = len(absent_staff)
        return self.generate(
            AlertType.MULTIPLE_ABSENCES,
            self._policy.absence_severity(count),
            None,
            facility,
            {"absent_count": count, "work_date": work_date.isoformat(), "absent_staff": [dict(s) for s in absent_staff]},
            dedupe_key=aggregation_key(facility.facility_id, work_date),
            now=now,
        )

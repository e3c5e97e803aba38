from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Mapping, Optional, Sequence

from ..attendance.repository import AttendanceRepository
from ..common.datetime_utils import now_local
from ..common.locks import KeyedLocks
from ..common.validators import require_non_empty
from ..core.constants import DEFAULT_ALERT_LIST_LIMIT
from ..core.enums import AlertStatus, AlertType, AttendanceStatus, Severity
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from ..facilities.repository import FacilityRepository
from ..staff.repository import StaffRepository
from .generator import aggregation_key
from .model import ActorRef, Alert
from .repository import AlertRepository
from .service import AlertService
from .state_machine import OPEN_STATUSES, can_transition, ensure_transition

logger = logging.getLogger(__name__)


class AlertLifecycleManager:
    """Owns alert status changes after creation and the multiple-absence rule.

    PENDING -> SENT -> {ACKNOWLEDGED, FAILED} -> RESOLVED, with DELIVERED
    reachable from SENT. RESOLVED is terminal; no transition moves backward.
    """

    def __init__(
        self,
        alerts: AlertRepository,
        attendance: AttendanceRepository,
        staff: StaffRepository,
        facilities: FacilityRepository,
        alert_service: AlertService,
    ):
        self._alerts = alerts
        self._attendance = attendance
        self._staff = staff
        self._facilities = facilities
        self._alert_service = alert_service
        self._aggregation_locks = KeyedLocks()

    def get(self, alert_id: int) -> Alert:
        alert = self._alerts.get_by_id(int(alert_id))
        if not alert:
            raise NotFoundError(f"Alert {alert_id} not found")
        return alert

    def list_alerts(
        self,
        *,
        facility_id: Optional[str] = None,
        staff_id: Optional[str] = None,
        alert_type: Optional[AlertType] = None,
        severity: Optional[Severity] = None,
        status: Optional[AlertStatus] = None,
        limit: int = DEFAULT_ALERT_LIST_LIMIT,
    ) -> Sequence[Alert]:
        if int(limit) <= 0:
            raise ValidationError("limit must be positive")
        return self._alerts.list_alerts(
            facility_id=facility_id,
            staff_id=staff_id,
            alert_type=alert_type,
            severity=severity,
            status=status,
            limit=int(limit),
        )

    def create_alert(
        self,
        *,
        alert_type: AlertType,
        severity: Severity,
        facility_id: str,
        staff_id: Optional[str] = None,
        payload: Optional[Mapping[str, Any]] = None,
        now: Optional[datetime] = None,
    ) -> Alert:
        """Manually raise an alert (e.g. ABSENTEEISM or SYSTEM_ERROR) and dispatch it."""

        facility = self._facilities.get_by_id(facility_id)
        if not facility:
            raise NotFoundError(f"Facility {facility_id} not found")
        staff = None
        if staff_id:
            staff = self._staff.get_by_id(staff_id)
            if not staff:
                raise NotFoundError(f"Staff {staff_id} not found")

        alert = self._alert_service.generator.generate(alert_type, severity, staff, facility, dict(payload or {}), now=now)
        self._alert_service.notify(alert)
        return self.get(alert.alert_id)

    def _apply(self, alert: Alert, target: AlertStatus, changes: Mapping[str, Any]) -> Alert:
        ensure_transition(alert.status, target)
        if self._alerts.transition(
            alert_id=alert.alert_id,
            from_statuses={alert.status},
            to_status=target,
            changes=changes,
        ):
            logger.info("Alert %s: %s -> %s", alert.alert_id, alert.status.value, target.value)
            return self.get(alert.alert_id)

        current = self.get(alert.alert_id)
        if current.status == target:
            return current
        ensure_transition(current.status, target)
        raise ConflictError(f"Alert {alert.alert_id} was modified concurrently; retry")

    def acknowledge(self, alert_id: int, actor: ActorRef, *, now: Optional[datetime] = None) -> Alert:
        """Idempotent: acknowledging an acknowledged alert returns it unchanged."""

        require_non_empty(actor.actor_id if actor else None, "Actor")
        alert = self.get(alert_id)
        if alert.status == AlertStatus.ACKNOWLEDGED:
            return alert
        return self._apply(
            alert,
            AlertStatus.ACKNOWLEDGED,
            {"acknowledged_at": now or now_local(), "acknowledged_by": actor},
        )

    def resolve(self, alert_id: int, actor: ActorRef, notes: str, *, now: Optional[datetime] = None) -> Alert:
        require_non_empty(actor.actor_id if actor else None, "Actor")
        notes = require_non_empty(notes, "Resolution notes")
        alert = self.get(alert_id)
        return self._apply(
            alert,
            AlertStatus.RESOLVED,
            {"resolved_at": now or now_local(), "resolved_by": actor, "resolution_notes": notes},
        )

    def confirm_delivery(self, alert_id: int) -> Alert:
        """Record a channel's delivery receipt (SENT -> DELIVERED)."""

        alert = self.get(alert_id)
        if alert.status == AlertStatus.DELIVERED or not can_transition(alert.status, AlertStatus.DELIVERED):
            return alert
        return self._apply(alert, AlertStatus.DELIVERED, {})

    def evaluate_absences(self, facility_id: str, work_date: date, *, now: Optional[datetime] = None) -> Optional[Alert]:
        """Raise one MULTIPLE_ABSENCES alert per facility/day once the threshold is reached.

        Returns the new alert, or ``None`` when below threshold or already open.
        """

        facility = self._facilities.get_by_id(facility_id)
        if not facility:
            raise NotFoundError(f"Facility {facility_id} not found")

        policy = self._alert_service.generator.policy
        key = aggregation_key(facility_id, work_date)

        with self._aggregation_locks.hold(key):
            records = self._attendance.list_for_facility_and_date(facility_id, work_date)
            absent = [r for r in records if r.status == AttendanceStatus.ABSENT]
            if len(absent) < policy.absence_threshold:
                return None

            existing = self._alerts.find_by_dedupe_key(key)
            if existing and existing.status in OPEN_STATUSES:
                logger.debug("Aggregation alert %s already open for %s", existing.alert_id, key)
                return None

            absent_staff = []
            for record in absent:
                member = self._staff.get_by_id(record.staff_id)
                absent_staff.append(
                    {
                        "staff_id": record.staff_id,
                        "name": member.name if member else record.staff_id,
                        "role": member.role.value if member else None,
                        "designation": member.designation if member else None,
                    }
                )

            try:
                alert = self._alert_service.generator.multiple_absences(
                    facility,
                    work_date=work_date,
                    absent_staff=absent_staff,
                    now=now or now_local(),
                )
            except ConflictError:
                # another instance created it between our check and insert
                logger.info("Aggregation alert for %s created elsewhere", key)
                return None

        self._alert_service.notify(alert)
        return alert

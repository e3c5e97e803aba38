from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, Mapping, Optional, Protocol, Sequence

from ..core.enums import AlertStatus, AlertType, Severity
from .model import Alert, DeliveryFlags, NotificationRecipient


class AlertRepository(Protocol):
    """Durable alert storage.

    ``create`` raises ``ConflictError`` when ``dedupe_key`` is already held by
    another alert. ``transition`` is a compare-and-set on the status column.
    """

    def create(
        self,
        *,
        alert_type: AlertType,
        severity: Severity,
        facility_id: str,
        staff_id: Optional[str],
        title: str,
        message: str,
        payload: Mapping[str, Any],
        recipients: Sequence[NotificationRecipient],
        max_retries: int,
        created_at: datetime,
        dedupe_key: Optional[str] = None,
    ) -> Alert:
        raise NotImplementedError

    def get_by_id(self, alert_id: int) -> Optional[Alert]:
        raise NotImplementedError

    def find_by_dedupe_key(self, dedupe_key: str) -> Optional[Alert]:
        raise NotImplementedError

    def list_alerts(
        self,
        *,
        facility_id: Optional[str] = None,
        staff_id: Optional[str] = None,
        alert_type: Optional[AlertType] = None,
        severity: Optional[Severity] = None,
        status: Optional[AlertStatus] = None,
        limit: int = 50,
    ) -> Sequence[Alert]:
        raise NotImplementedError

    def update_recipient_delivery(self, *, alert_id: int, recipient_id: str, delivered: DeliveryFlags) -> bool:
        raise NotImplementedError

    def increment_retry(self, *, alert_id: int) -> bool:
        """Atomically bump ``retry_count`` if it is below ``max_retries``."""

        raise NotImplementedError

    def transition(
        self,
        *,
        alert_id: int,
        from_statuses: Iterable[AlertStatus],
        to_status: AlertStatus,
        changes: Optional[Mapping[str, Any]] = None,
    ) -> bool:
        """Set ``to_status`` (plus ``changes``) only if the current status is in ``from_statuses``.

        Moving to RESOLVED also releases the alert's ``dedupe_key``.
        """

        raise NotImplementedError

    def count_by_type_and_severity(
        self, *, facility_id: str, start: datetime, end: datetime
    ) -> Sequence[tuple[AlertType, Severity, int]]:
        raise NotImplementedError

from __future__ import annotations

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..alerts.model import Alert, DeliveryFlags, NotificationRecipient
from ..alerts.repository import AlertRepository
from ..alerts.state_machine import sources_for
from ..common.datetime_utils import now_local
from ..core.constants import CHANNEL_TIMEOUT_SECONDS, DISPATCH_MAX_WORKERS
from ..core.enums import AlertStatus, Channel
from . import email_templates
from .gateways import EmailGateway, SmsGateway
from .realtime import RealtimeChannel

logger = logging.getLogger(__name__)

PUSH_EVENT = "new_alert"
DASHBOARD_EVENT = "alert_notification"


@dataclass(frozen=True)
class ChannelResult:
    recipient_id: str
    channel: Channel
    delivered: bool
    skipped: bool = False
    error: Optional[str] = None


@dataclass(frozen=True)
class DispatchReport:
    """Outcome of one dispatch pass over every recipient and channel."""

    alert_id: int
    attempt: int
    results: Tuple[ChannelResult, ...]
    dashboard_broadcast: bool
    status: AlertStatus

    @property
    def delivered_count(self) -> int:
        return sum(1 for r in self.results if r.delivered)

    @property
    def has_deliveries(self) -> bool:
        return self.delivered_count > 0

    def for_recipient(self, recipient_id: str) -> Tuple[ChannelResult, ...]:
        return tuple(r for r in self.results if r.recipient_id == recipient_id)


def _push_payload(alert: Alert) -> Dict[str, Any]:
    return {
        "id": alert.alert_id,
        "type": alert.alert_type.value,
        "severity": alert.severity.value,
        "title": alert.title,
        "message": alert.message,
        "timestamp": alert.created_at.isoformat(),
    }


def _dashboard_payload(alert: Alert) -> Dict[str, Any]:
    payload = _push_payload(alert)
    payload.update(facility_id=alert.facility_id, staff_id=alert.staff_id)
    return payload


class NotificationDispatcher:
    """Fans an alert out to every recipient over SMS, email and push, then
    announces it on the dashboard.

    Channel attempts run on a bounded thread pool and are isolated from each
    other: a failure, a timeout or an unconfigured gateway only leaves that
    recipient's flag false. Queued attempts past the deadline are cancelled;
    ones already running are left to finish.
    """

    def __init__(
        self,
        alerts: AlertRepository,
        *,
        sms: SmsGateway,
        email: EmailGateway,
        realtime: RealtimeChannel,
        max_workers: int = DISPATCH_MAX_WORKERS,
        channel_timeout: float = CHANNEL_TIMEOUT_SECONDS,
        retry_delay_seconds: float = 0.0,
        clock: Callable[[], Any] = now_local,
    ):
        self._alerts = alerts
        self._sms = sms
        self._email = email
        self._realtime = realtime
        self._channel_timeout = float(channel_timeout)
        self._retry_delay = float(retry_delay_seconds)
        self._clock = clock
        self._executor = ThreadPoolExecutor(max_workers=max(1, int(max_workers)), thread_name_prefix="alert-dispatch")

    def close(self) -> None:
        self._executor.shutdown(wait=True)

    # Channel senders (run on the pool)

    def _send_sms(self, alert: Alert, recipient: NotificationRecipient) -> None:
        self._sms.send(to=recipient.phone, body=email_templates.build_sms_body(alert))

    def _send_email(self, alert: Alert, recipient: NotificationRecipient) -> None:
        self._email.send(
            to=recipient.email,
            to_name=recipient.name,
            subject=email_templates.build_subject(alert),
            text=email_templates.build_text(alert, recipient.name),
            html=email_templates.build_html(alert, recipient.name),
        )

    def _send_push(self, alert: Alert, recipient: NotificationRecipient) -> None:
        self._realtime.publish_to(recipient.recipient_id, PUSH_EVENT, _push_payload(alert))

    def _has_subscription(self, recipient_id: str) -> bool:
        try:
            return self._realtime.has_subscriber(recipient_id)
        except Exception:
            logger.exception("Realtime subscription lookup failed for %s", recipient_id)
            return False

    def _submit(self, alert: Alert, recipient: NotificationRecipient) -> List[Tuple[Channel, Optional[Future], Optional[str]]]:
        """Start every applicable channel; returns (channel, future, skip reason)."""

        jobs: List[Tuple[Channel, Optional[Future], Optional[str]]] = []
        if recipient.phone:
            if self._sms.is_configured:
                jobs.append((Channel.SMS, self._executor.submit(self._send_sms, alert, recipient), None))
            else:
                jobs.append((Channel.SMS, None, "SMS gateway not configured"))
        if recipient.email:
            if self._email.is_configured:
                jobs.append((Channel.EMAIL, self._executor.submit(self._send_email, alert, recipient), None))
            else:
                jobs.append((Channel.EMAIL, None, "Email gateway not configured"))
        if self._has_subscription(recipient.recipient_id):
            jobs.append((Channel.PUSH, self._executor.submit(self._send_push, alert, recipient), None))
        return jobs

    def _collect(
        self,
        alert: Alert,
        recipient_id: str,
        channel: Channel,
        future: Optional[Future],
        skip: Optional[str],
        deadline: float,
    ) -> ChannelResult:
        if future is None:
            logger.info("%s skipped for %s on alert %s: %s", channel.value, recipient_id, alert.alert_id, skip)
            return ChannelResult(recipient_id, channel, delivered=False, skipped=True, error=skip)
        try:
            future.result(timeout=max(0.0, deadline - time.monotonic()))
        except FutureTimeout:
            future.cancel()
            logger.warning("%s to %s timed out after %.1fs (alert %s)", channel.value, recipient_id, self._channel_timeout, alert.alert_id)
            return ChannelResult(recipient_id, channel, delivered=False, error="timeout")
        except Exception as exc:
            logger.error("%s to %s failed for alert %s: %s", channel.value, recipient_id, alert.alert_id, exc)
            return ChannelResult(recipient_id, channel, delivered=False, error=str(exc))
        return ChannelResult(recipient_id, channel, delivered=True)

    def _persist_flags(self, alert_id: int, recipient_id: str, flags: DeliveryFlags) -> None:
        try:
            self._alerts.update_recipient_delivery(alert_id=alert_id, recipient_id=recipient_id, delivered=flags)
        except Exception:
            logger.exception("Could not record delivery flags for %s on alert %s", recipient_id, alert_id)

    def _broadcast(self, alert: Alert) -> bool:
        future = self._executor.submit(self._realtime.broadcast, DASHBOARD_EVENT, _dashboard_payload(alert))
        try:
            future.result(timeout=self._channel_timeout)
            return True
        except FutureTimeout:
            logger.warning("Dashboard broadcast timed out for alert %s", alert.alert_id)
        except Exception:
            logger.exception("Dashboard broadcast failed for alert %s", alert.alert_id)
        return False

    def _mark_sent(self, alert: Alert) -> AlertStatus:
        if alert.status != AlertStatus.PENDING:
            return alert.status
        try:
            if self._alerts.transition(
                alert_id=alert.alert_id,
                from_statuses={AlertStatus.PENDING},
                to_status=AlertStatus.SENT,
                changes={"sent_at": self._clock()},
            ):
                return AlertStatus.SENT
        except Exception:
            logger.exception("Could not mark alert %s as sent", alert.alert_id)
        current = self._alerts.get_by_id(alert.alert_id)
        return current.status if current else alert.status

    def dispatch(self, alert: Alert) -> DispatchReport:
        """Run one dispatch pass. Never raises for channel failures."""

        pending = [(r, self._submit(alert, r)) for r in alert.recipients]
        # every channel in a pass shares one deadline, counted from submission
        deadline = time.monotonic() + self._channel_timeout

        results: List[ChannelResult] = []
        flags_by_recipient: Dict[str, DeliveryFlags] = {}
        for recipient, jobs in pending:
            flags = recipient.delivered
            for channel, future, skip in jobs:
                result = self._collect(alert, recipient.recipient_id, channel, future, skip, deadline)
                results.append(result)
                if result.delivered:
                    flags = flags.with_channel(channel)
            flags_by_recipient[recipient.recipient_id] = flags
            self._persist_flags(alert.alert_id, recipient.recipient_id, flags)

        dashboard_ok = self._broadcast(alert)
        if dashboard_ok:
            for recipient_id, flags in flags_by_recipient.items():
                self._persist_flags(alert.alert_id, recipient_id, flags.with_channel(Channel.DASHBOARD))

        status = self._mark_sent(alert)
        report = DispatchReport(
            alert_id=alert.alert_id,
            attempt=alert.retry_count + 1,
            results=tuple(results),
            dashboard_broadcast=dashboard_ok,
            status=status,
        )
        logger.info(
            "Dispatched alert %s (attempt %s): %s/%s channel deliveries",
            alert.alert_id,
            report.attempt,
            report.delivered_count,
            len(results),
        )
        return report

    def dispatch_with_retries(self, alert: Alert) -> DispatchReport:
        """Dispatch, repeating whole passes while nothing reached any recipient.

        Retries are bounded by the alert's ``max_retries``; when exhausted the
        alert is moved to FAILED.
        """

        report = self.dispatch(alert)
        while alert.recipients and not report.has_deliveries:
            if not self._alerts.increment_retry(alert_id=alert.alert_id):
                report = replace(report, status=self._mark_failed(alert))
                break
            logger.warning("Alert %s reached no recipient; retrying dispatch", alert.alert_id)
            if self._retry_delay > 0:
                time.sleep(self._retry_delay)
            alert = self._alerts.get_by_id(alert.alert_id) or alert
            report = self.dispatch(alert)
        return report

    def _mark_failed(self, alert: Alert) -> AlertStatus:
        logger.error("Alert %s exhausted %s retries without any delivery", alert.alert_id, alert.max_retries)
        if self._alerts.transition(
            alert_id=alert.alert_id,
            from_statuses=sources_for(AlertStatus.FAILED),
            to_status=AlertStatus.FAILED,
        ):
            return AlertStatus.FAILED
        current = self._alerts.get_by_id(alert.alert_id)
        return current.status if current else alert.status

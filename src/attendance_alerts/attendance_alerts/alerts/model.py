from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Optional

from ..core.constants import DEFAULT_MAX_RETRIES
from ..core.enums import AlertStatus, AlertType, Channel, Severity


@dataclass(frozen=True)
class DeliveryFlags:
    """Per-channel delivered flags; each is set only after that channel succeeded."""

    sms: bool = False
    email: bool = False
    push: bool = False
    dashboard: bool = False

    def with_channel(self, channel: Channel, delivered: bool = True) -> "DeliveryFlags":
        return replace(self, **{channel.value: delivered})

    @property
    def any_direct(self) -> bool:
        return self.sms or self.email or self.push


@dataclass(frozen=True)
class NotificationRecipient:
    recipient_id: str
    name: str
    role: str
    email: Optional[str] = None
    phone: Optional[str] = None
    delivered: DeliveryFlags = field(default_factory=DeliveryFlags)


@dataclass(frozen=True)
class ActorRef:
    """Who acknowledged or resolved an alert."""

    actor_id: str
    name: str
    role: str


@dataclass(frozen=True)
class Alert:
    alert_id: int
    facility_id: str
    alert_type: AlertType
    severity: Severity
    title: str
    message: str
    created_at: datetime
    staff_id: Optional[str] = None
    payload: dict[str, Any] = field(default_factory=dict)
    recipients: tuple[NotificationRecipient, ...] = ()
    status: AlertStatus = AlertStatus.PENDING
    sent_at: Optional[datetime] = None
    acknowledged_at: Optional[datetime] = None
    acknowledged_by: Optional[ActorRef] = None
    resolved_at: Optional[datetime] = None
    resolved_by: Optional[ActorRef] = None
    resolution_notes: Optional[str] = None
    retry_count: int = 0
    max_retries: int = DEFAULT_MAX_RETRIES
    dedupe_key: Optional[str] = None

    def recipient(self, recipient_id: str) -> Optional[NotificationRecipient]:
        for r in self.recipients:
            if r.recipient_id == recipient_id:
                return r
        return None

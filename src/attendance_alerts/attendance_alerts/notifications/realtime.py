from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol

from ..core.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)

Listener = Callable[[str, Mapping[str, Any]], None]


class RealtimeChannel(Protocol):
    """Publish/subscribe transport for push notifications and dashboard updates."""

    def has_subscriber(self, recipient_id: str) -> bool:
        raise NotImplementedError

    def publish_to(self, recipient_id: str, event: str, payload: Mapping[str, Any]) -> None:
        raise NotImplementedError

    def broadcast(self, event: str, payload: Mapping[str, Any]) -> None:
        raise NotImplementedError


@dataclass
class Subscription:
    recipient_id: Optional[str]
    listener: Listener
    _hub: "LocalPubSub" = field(repr=False)

    def close(self) -> None:
        self._hub.unsubscribe(self)


class LocalPubSub(RealtimeChannel):
    """Thread-safe in-process hub.

    Listeners registered with a ``recipient_id`` receive targeted messages and
    broadcasts; listeners registered without one receive broadcasts only.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._targeted: Dict[str, List[Subscription]] = {}
        self._global: List[Subscription] = []

    def subscribe(self, listener: Listener, *, recipient_id: Optional[str] = None) -> Subscription:
        sub = Subscription(recipient_id=recipient_id, listener=listener, _hub=self)
        with self._lock:
            if recipient_id:
                self._targeted.setdefault(recipient_id, []).append(sub)
            else:
                self._global.append(sub)
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        with self._lock:
            if sub.recipient_id:
                subs = self._targeted.get(sub.recipient_id, [])
                if sub in subs:
                    subs.remove(sub)
                if not subs:
                    self._targeted.pop(sub.recipient_id, None)
            elif sub in self._global:
                self._global.remove(sub)

    def has_subscriber(self, recipient_id: str) -> bool:
        with self._lock:
            return bool(self._targeted.get(recipient_id))

    def _deliver(self, subs: List[Subscription], event: str, payload: Mapping[str, Any]) -> int:
        delivered = 0
        for sub in subs:
            try:
                sub.listener(event, payload)
                delivered += 1
            except Exception:
                logger.exception("Realtime listener failed for event %s", event)
        return delivered

    def publish_to(self, recipient_id: str, event: str, payload: Mapping[str, Any]) -> None:
        with self._lock:
            subs = list(self._targeted.get(recipient_id, ()))
        if not subs:
            raise ExternalServiceError(f"No active subscription for {recipient_id}")
        if not self._deliver(subs, event, payload):
            raise ExternalServiceError(f"Push to {recipient_id} failed on every subscription")

    def broadcast(self, event: str, payload: Mapping[str, Any]) -> None:
        with self._lock:
            subs = list(self._global)
            for targeted in self._targeted.values():
                subs.extend(targeted)
        self._deliver(subs, event, payload)

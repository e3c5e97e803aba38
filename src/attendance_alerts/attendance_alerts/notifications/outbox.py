from __future__ import annotations

import logging
import queue
import threading
from typing import Any, Mapping, Optional, Protocol

from ..core.constants import EVENT_QUEUE_SIZE
from .realtime import RealtimeChannel

logger = logging.getLogger(__name__)

_STOP = object()


class EventPublisher(Protocol):
    def emit(self, event: str, payload: Mapping[str, Any]) -> None:
        """Queue an event for broadcast. Never raises, never blocks."""

        raise NotImplementedError


class EventOutbox(EventPublisher):
    """Delivers broadcast events from a background worker.

    Emitting only enqueues, so attendance and alert writes never wait on the
    real-time channel; a full queue drops the event with a warning.
    """

    def __init__(self, channel: RealtimeChannel, *, maxsize: int = EVENT_QUEUE_SIZE):
        self._channel = channel
        self._queue: "queue.Queue[Any]" = queue.Queue(maxsize=maxsize)
        self._worker: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    def start(self) -> "EventOutbox":
        with self._lock:
            if self._worker is None or not self._worker.is_alive():
                self._worker = threading.Thread(target=self._run, name="event-outbox", daemon=True)
                self._worker.start()
        return self

    def emit(self, event: str, payload: Mapping[str, Any]) -> None:
        try:
            self._queue.put_nowait((event, dict(payload)))
        except queue.Full:
            logger.warning("Event outbox full; dropping %s event", event)

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                event, payload = item
                self._channel.broadcast(event, payload)
            except Exception:
                logger.exception("Failed to publish realtime event")
            finally:
                self._queue.task_done()

    def close(self, timeout: float = 5.0) -> None:
        """Deliver what is queued, then stop the worker."""

        worker = self._worker
        if worker is None:
            return
        self._queue.put(_STOP, timeout=timeout)
        worker.join(timeout)
        self._worker = None

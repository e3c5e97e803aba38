from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Optional

from ..core.constants import NOTIFY_BACKGROUND_WORKERS
from ..notifications.dispatcher import DispatchReport, NotificationDispatcher
from .generator import AlertGenerator
from .model import Alert

logger = logging.getLogger(__name__)


class AlertService:
    """Generates an alert and dispatches it, keeping both off the caller's failure path.

    Used by the attendance path, where an alert problem must never turn a
    recorded check-in into an error. With ``background=True`` the retrying
    dispatch runs on a small worker pool and the caller only waits for the
    alert row to be written.
    """

    def __init__(
        self,
        generator: AlertGenerator,
        dispatcher: NotificationDispatcher,
        *,
        background: bool = False,
        max_workers: int = NOTIFY_BACKGROUND_WORKERS,
    ):
        self._generator = generator
        self._dispatcher = dispatcher
        self._executor: Optional[ThreadPoolExecutor] = None
        if background:
            self._executor = ThreadPoolExecutor(max_workers=max(1, int(max_workers)), thread_name_prefix="alert-notify")

    @property
    def generator(self) -> AlertGenerator:
        return self._generator

    def close(self) -> None:
        """Wait for background dispatches to finish."""

        if self._executor is not None:
            self._executor.shutdown(wait=True)

    def _dispatch(self, alert: Alert) -> Optional[DispatchReport]:
        try:
            return self._dispatcher.dispatch_with_retries(alert)
        except Exception:
            logger.exception("Dispatch of alert %s failed", alert.alert_id)
            return None

    def notify(self, alert: Alert) -> Optional[DispatchReport]:
        """Dispatch ``alert``; returns the report, or ``None`` when queued or failed."""

        if self._executor is None:
            return self._dispatch(alert)
        try:
            self._executor.submit(self._dispatch, alert)
        except RuntimeError:
            logger.warning("Alert %s not dispatched; notifier is shut down", alert.alert_id)
        return None

    def _emit(self, builder: str, **kwargs: Any) -> Optional[Alert]:
        try:
            alert = getattr(self._generator, builder)(**kwargs)
        except Exception:
            logger.exception("Could not create %s alert", builder)
            return None
        self.notify(alert)
        return alert

    def late_checkin(self, **kwargs: Any) -> Optional[Alert]:
        return self._emit("late_checkin", **kwargs)

    def early_checkout(self, **kwargs: Any) -> Optional[Alert]:
        return self._emit("early_checkout", **kwargs)

    def biometric_failure(self, **kwargs: Any) -> Optional[Alert]:
        return self._emit("biometric_failure", **kwargs)

    def location_mismatch(self, **kwargs: Any) -> Optional[Alert]:
        return self._emit("location_mismatch", **kwargs)

    def device_tamper(self, **kwargs: Any) -> Optional[Alert]:
        return self._emit("device_tamper", **kwargs)

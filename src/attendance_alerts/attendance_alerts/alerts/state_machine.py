from __future__ import annotations

from typing import FrozenSet, Mapping

from ..core.enums import AlertStatus
from ..core.exceptions import InvalidTransitionError

ALLOWED_TRANSITIONS: Mapping[AlertStatus, FrozenSet[AlertStatus]] = {
    AlertStatus.PENDING: frozenset({AlertStatus.SENT, AlertStatus.FAILED}),
    AlertStatus.SENT: frozenset(
        {AlertStatus.DELIVERED, AlertStatus.ACKNOWLEDGED, AlertStatus.RESOLVED, AlertStatus.FAILED}
    ),
    AlertStatus.DELIVERED: frozenset({AlertStatus.ACKNOWLEDGED, AlertStatus.RESOLVED, AlertStatus.FAILED}),
    AlertStatus.ACKNOWLEDGED: frozenset({AlertStatus.RESOLVED}),
    AlertStatus.FAILED: frozenset({AlertStatus.RESOLVED}),
    AlertStatus.RESOLVED: frozenset(),
}

OPEN_STATUSES = frozenset(s for s in AlertStatus if s != AlertStatus.RESOLVED)


def can_transition(current: AlertStatus, target: AlertStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def sources_for(target: AlertStatus) -> FrozenSet[AlertStatus]:
    """All states from which ``target`` may be entered."""

    return frozenset(s for s, targets in ALLOWED_TRANSITIONS.items() if target in targets)


def ensure_transition(current: AlertStatus, target: AlertStatus) -> None:
    if not can_transition(current, target):
        raise InvalidTransitionError(f"Alert cannot move from {current.value} to {target.value}")

import pytest

from src.attendance_alerts.attendance_alerts.alerts.state_machine import (
    OPEN_STATUSES,
    can_transition,
    ensure_transition,
    sources_for,
)
from src.attendance_alerts.attendance_alerts.core.enums import AlertStatus
from src.attendance_alerts.attendance_alerts.core.exceptions import ConflictError, InvalidTransitionError


@pytest.mark.parametrize(
    "current, target",
    [
        (AlertStatus.PENDING, AlertStatus.SENT),
        (AlertStatus.SENT, AlertStatus.ACKNOWLEDGED),
        (AlertStatus.SENT, AlertStatus.DELIVERED),
        (AlertStatus.DELIVERED, AlertStatus.ACKNOWLEDGED),
        (AlertStatus.ACKNOWLEDGED, AlertStatus.RESOLVED),
        (AlertStatus.FAILED, AlertStatus.RESOLVED),
    ],
)
def test_forward_transitions_allowed(current, target):
    assert can_transition(current, target)


@pytest.mark.parametrize(
    "current, target",
    [
        (AlertStatus.RESOLVED, AlertStatus.ACKNOWLEDGED),
        (AlertStatus.RESOLVED, AlertStatus.RESOLVED),
        (AlertStatus.ACKNOWLEDGED, AlertStatus.SENT),
        (AlertStatus.PENDING, AlertStatus.ACKNOWLEDGED),
        (AlertStatus.FAILED, AlertStatus.ACKNOWLEDGED),
    ],
)
def test_backward_or_skipping_transitions_rejected(current, target):
    assert not can_transition(current, target)
    with pytest.raises(InvalidTransitionError):
        ensure_transition(current, target)


def test_invalid_transition_is_a_conflict():
    assert issubclass(InvalidTransitionError, ConflictError)


def test_sources_for_failed():
    assert sources_for(AlertStatus.FAILED) == {AlertStatus.PENDING, AlertStatus.SENT, AlertStatus.DELIVERED}


def test_resolved_is_the_only_closed_status():
    assert AlertStatus.RESOLVED not in OPEN_STATUSES
    assert len(OPEN_STATUSES) == len(AlertStatus) - 1

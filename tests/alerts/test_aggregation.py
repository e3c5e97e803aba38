from __future__ import annotations

import threading
from datetime import date

import pytest

from fakes import at, build_container, make_staff

from src.attendance_alerts.attendance_alerts.alerts.lifecycle import AlertLifecycleManager
from src.attendance_alerts.attendance_alerts.alerts.model import ActorRef
from src.attendance_alerts.attendance_alerts.core.enums import AlertType, Severity

DAY = date(2025, 3, 10)
STAFF = [make_staff(f"S{i:03d}") for i in range(1, 7)]


@pytest.fixture
def container():
    c = build_container(staff=STAFF)
    yield c
    c.shutdown()


def _aggregates(container):
    return [a for a in container.alerts_repo.all if a.alert_type == AlertType.MULTIPLE_ABSENCES]


def _absent(container, *staff_ids):
    for staff_id in staff_ids:
        container.attendance_repo.create_absence(staff_id=staff_id, facility_id="PHC001", work_date=DAY)


def test_third_absence_raises_one_high_alert(container):
    svc = container.attendance_service
    for staff_id in ("S001", "S002"):
        svc.mark_absent(staff_id, "PHC001", work_date=DAY, now=at(11))
    assert _aggregates(container) == []

    svc.mark_absent("S003", "PHC001", work_date=DAY, now=at(11))

    (alert,) = _aggregates(container)
    assert alert.severity == Severity.HIGH
    assert alert.staff_id is None
    assert alert.payload["absent_count"] == 3
    assert {s["staff_id"] for s in alert.payload["absent_staff"]} == {"S001", "S002", "S003"}
    assert "3 staff members are absent" in alert.message


def test_further_absences_do_not_duplicate(container):
    svc = container.attendance_service
    for staff_id in ("S001", "S002", "S003", "S004"):
        svc.mark_absent(staff_id, "PHC001", work_date=DAY, now=at(11))

    assert len(_aggregates(container)) == 1
    assert container.alert_lifecycle.evaluate_absences("PHC001", DAY, now=at(12)) is None


def test_five_absences_are_critical(container):
    _absent(container, "S001", "S002", "S003", "S004", "S005")

    alert = container.alert_lifecycle.evaluate_absences("PHC001", DAY, now=at(11))

    assert alert.severity == Severity.CRITICAL
    assert alert.payload["absent_count"] == 5


def test_concurrent_evaluations_create_one_alert(container):
    _absent(container, "S001", "S002", "S003")
    # a second manager has its own locks, like another worker process
    other = AlertLifecycleManager(
        container.alerts_repo,
        container.attendance_repo,
        container.staff_repo,
        container.facilities_repo,
        container.alert_service,
    )
    managers = [container.alert_lifecycle, other] * 4
    barrier = threading.Barrier(len(managers))
    created = []

    def evaluate(manager):
        barrier.wait()
        alert = manager.evaluate_absences("PHC001", DAY, now=at(11))
        if alert is not None:
            created.append(alert)

    threads = [threading.Thread(target=evaluate, args=(m,)) for m in managers]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(created) == 1
    assert len(_aggregates(container)) == 1


def test_resolved_aggregate_allows_a_new_one(container):
    _absent(container, "S001", "S002", "S003")
    first = container.alert_lifecycle.evaluate_absences("PHC001", DAY, now=at(11))
    container.alert_lifecycle.resolve(first.alert_id, ActorRef("R1", "Incharge One", "CENTER_INCHARGE"), "Locums arranged")

    _absent(container, "S004")
    second = container.alert_lifecycle.evaluate_absences("PHC001", DAY, now=at(14))

    assert second is not None
    assert second.alert_id != first.alert_id
    assert second.payload["absent_count"] == 4
    assert len(_aggregates(container)) == 2


def test_other_days_are_counted_separately(container):
    _absent(container, "S001", "S002", "S003")

    assert container.alert_lifecycle.evaluate_absences("PHC001", date(2025, 3, 11), now=at(11)) is None

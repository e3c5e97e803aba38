from __future__ import annotations

import pytest

from src.attendance_alerts.attendance_alerts.core.exceptions import ExternalServiceError
from src.attendance_alerts.attendance_alerts.notifications.outbox import EventOutbox
from src.attendance_alerts.attendance_alerts.notifications.realtime import LocalPubSub


def test_outbox_delivers_queued_events_before_close():
    hub = LocalPubSub()
    seen = []
    hub.subscribe(lambda e, p: seen.append((e, p["staff_id"])))
    outbox = EventOutbox(hub).start()

    for staff_id in ("S001", "S002", "S003"):
        outbox.emit("attendance_update", {"staff_id": staff_id})
    outbox.close()

    assert seen == [("attendance_update", "S001"), ("attendance_update", "S002"), ("attendance_update", "S003")]


def test_full_outbox_drops_instead_of_blocking():
    hub = LocalPubSub()
    seen = []
    hub.subscribe(lambda e, p: seen.append(p["n"]))
    outbox = EventOutbox(hub, maxsize=1)

    outbox.emit("attendance_update", {"n": 1})
    outbox.emit("attendance_update", {"n": 2})
    outbox.start()
    outbox.close()

    assert seen == [1]


def test_failing_listener_does_not_stop_the_worker():
    hub = LocalPubSub()
    seen = []

    def broken(event, payload):
        raise RuntimeError("socket closed")

    hub.subscribe(broken)
    hub.subscribe(lambda e, p: seen.append(p["n"]))
    outbox = EventOutbox(hub).start()

    outbox.emit("attendance_update", {"n": 1})
    outbox.emit("attendance_update", {"n": 2})
    outbox.close()

    assert seen == [1, 2]


def test_targeted_publish_needs_a_subscription():
    hub = LocalPubSub()
    got = []
    sub = hub.subscribe(lambda e, p: got.append(e), recipient_id="R1")

    hub.publish_to("R1", "new_alert", {})
    assert got == ["new_alert"]
    assert hub.has_subscriber("R1")

    sub.close()
    assert not hub.has_subscriber("R1")
    with pytest.raises(ExternalServiceError):
        hub.publish_to("R1", "new_alert", {})

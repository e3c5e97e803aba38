from __future__ import annotations

import threading

from fakes import FINGERPRINT, Settings, at, build_container, make_staff

from src.attendance_alerts.attendance_alerts.core.exceptions import ConflictError


def test_concurrent_duplicate_checkins_have_one_winner():
    attempts = 8
    c = build_container(
        staff=[make_staff("S001")],
        settings=Settings(BIOMETRIC_MAX_ATTEMPTS=100, CHANNEL_TIMEOUT_SECONDS=2.0),
    )
    barrier = threading.Barrier(attempts)
    outcomes = []
    lock = threading.Lock()

    def attempt():
        barrier.wait()
        try:
            c.attendance_service.check_in("S001", "PHC001", sample=FINGERPRINT, modality="FINGERPRINT", now=at(9, 0))
            result = "ok"
        except ConflictError:
            result = "conflict"
        with lock:
            outcomes.append(result)

    threads = [threading.Thread(target=attempt) for _ in range(attempts)]
    try:
        for t in threads:
            t.start()
        for t in threads:
            t.join()
    finally:
        c.shutdown()

    assert outcomes.count("ok") == 1
    assert outcomes.count("conflict") == attempts - 1
    assert len(c.attendance_repo.list_for_staff("S001", at(9).date(), at(9).date())) == 1


def test_different_staff_check_in_in_parallel():
    staff = [make_staff(f"S{i:03d}") for i in range(6)]
    c = build_container(staff=staff)
    errors = []

    def attempt(staff_id):
        try:
            c.attendance_service.check_in(staff_id, "PHC001", sample=FINGERPRINT, modality="FINGERPRINT", now=at(9, 0))
        except Exception as exc:  # collected for the assertion below
            errors.append(exc)

    threads = [threading.Thread(target=attempt, args=(m.staff_id,)) for m in staff]
    try:
        for t in threads:
            t.start()
        for t in threads:
            t.join()
    finally:
        c.shutdown()

    assert errors == []
    assert len(c.attendance_repo.list_for_facility_and_date("PHC001", at(9).date())) == 6

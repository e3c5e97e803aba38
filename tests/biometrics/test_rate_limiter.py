import threading
from datetime import datetime, timedelta

from src.attendance_alerts.attendance_alerts.biometrics.rate_limiter import BiometricRateLimiter


T0 = datetime(2025, 3, 10, 9, 0, 0)


def test_sixth_attempt_within_window_is_rejected():
    limiter = BiometricRateLimiter()

    results = [limiter.allow("S001", now=T0 + timedelta(seconds=i)) for i in range(6)]

    assert results == [True] * 5 + [False]


def test_attempts_allowed_again_after_window():
    limiter = BiometricRateLimiter(max_attempts=5, window_seconds=300)
    for i in range(5):
        assert limiter.allow("S001", now=T0 + timedelta(seconds=i))

    assert limiter.allow("S001", now=T0 + timedelta(seconds=200)) is False
    assert limiter.allow("S001", now=T0 + timedelta(seconds=301)) is True


def test_keys_are_independent_and_reset_clears():
    limiter = BiometricRateLimiter(max_attempts=1)

    assert limiter.allow("S001", now=T0)
    assert limiter.allow("S002", now=T0)
    assert not limiter.allow("S001", now=T0)

    limiter.reset("S001")
    assert limiter.allow("S001", now=T0)


def test_concurrent_attempts_never_exceed_limit():
    limiter = BiometricRateLimiter(max_attempts=5)
    barrier = threading.Barrier(20)
    allowed = []
    lock = threading.Lock()

    def attempt():
        barrier.wait()
        ok = limiter.allow("S001", now=T0)
        with lock:
            allowed.append(ok)

    threads = [threading.Thread(target=attempt) for _ in range(20)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert allowed.count(True) == 5

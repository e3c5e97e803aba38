from datetime import datetime

from src.attendance_alerts.attendance_alerts.attendance.factory import AttendanceStrategyFactory
from src.attendance_alerts.attendance_alerts.attendance.strategies.early_strategy import EarlyDepartureStrategy
from src.attendance_alerts.attendance_alerts.attendance.strategies.late_strategy import LateStrategy
from src.attendance_alerts.attendance_alerts.attendance.strategies.normal_strategy import NormalStrategy
from src.attendance_alerts.attendance_alerts.core.enums import AttendanceStatus

EXPECTED_IN = datetime(2025, 1, 1, 9, 0)
EXPECTED_OUT = datetime(2025, 1, 1, 17, 0)


def test_factory_checkin_on_time():
    strategy = AttendanceStrategyFactory().for_checkin(now=datetime(2025, 1, 1, 9, 0), expected=EXPECTED_IN)

    assert isinstance(strategy, NormalStrategy)


def test_factory_checkin_late_without_grace():
    now = datetime(2025, 1, 1, 9, 0, 1)
    strategy = AttendanceStrategyFactory().for_checkin(now=now, expected=EXPECTED_IN)

    assert isinstance(strategy, LateStrategy)
    decision = strategy.decide_checkin(now=now, expected=EXPECTED_IN)
    assert decision.status == AttendanceStatus.LATE
    assert decision.minutes == 0


def test_factory_checkin_on_time_within_grace():
    now = datetime(2025, 1, 1, 9, 4, 59)
    strategy = AttendanceStrategyFactory().for_checkin(now=now, expected=EXPECTED_IN, grace_minutes=5)

    assert isinstance(strategy, NormalStrategy)


def test_late_minutes_count_from_expected_not_grace():
    now = datetime(2025, 1, 1, 9, 6, 30)
    strategy = AttendanceStrategyFactory().for_checkin(now=now, expected=EXPECTED_IN, grace_minutes=5)

    assert strategy.decide_checkin(now=now, expected=EXPECTED_IN).minutes == 6


def test_factory_checkout_early_and_normal():
    factory = AttendanceStrategyFactory()
    early_now = datetime(2025, 1, 1, 16, 0)

    early = factory.for_checkout(now=early_now, expected=EXPECTED_OUT)
    assert isinstance(early, EarlyDepartureStrategy)
    decision = early.decide_checkout(now=early_now, expected=EXPECTED_OUT, current=AttendanceStatus.LATE)
    assert decision.status == AttendanceStatus.EARLY_DEPARTURE
    assert decision.minutes == 60

    normal = factory.for_checkout(now=datetime(2025, 1, 1, 17, 30), expected=EXPECTED_OUT)
    assert isinstance(normal, NormalStrategy)
    kept = normal.decide_checkout(now=datetime(2025, 1, 1, 17, 30), expected=EXPECTED_OUT, current=AttendanceStatus.LATE)
    assert kept.status == AttendanceStatus.LATE

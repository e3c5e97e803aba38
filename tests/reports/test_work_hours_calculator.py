from datetime import datetime

from src.attendance_alerts.attendance_alerts.attendance.model import BreakPeriod
from src.attendance_alerts.attendance_alerts.reports.calculator.standard_calculator import StandardWorkHoursCalculator


def test_standard_calculator_subtracts_break():
    calc = StandardWorkHoursCalculator()

    hours = calc.work_hours(
        datetime(2025, 1, 1, 8, 0),
        datetime(2025, 1, 1, 17, 0),
        [BreakPeriod(datetime(2025, 1, 1, 12, 0), datetime(2025, 1, 1, 13, 0), "lunch")],
    )

    assert hours == 8.0


def test_multiple_breaks_are_summed():
    calc = StandardWorkHoursCalculator()

    hours = calc.work_hours(
        datetime(2025, 1, 1, 8, 0),
        datetime(2025, 1, 1, 16, 0),
        [
            BreakPeriod(datetime(2025, 1, 1, 10, 0), datetime(2025, 1, 1, 10, 15)),
            BreakPeriod(datetime(2025, 1, 1, 12, 0), datetime(2025, 1, 1, 12, 15)),
        ],
    )

    assert hours == 7.5


def test_never_negative():
    calc = StandardWorkHoursCalculator()

    hours = calc.work_hours(
        datetime(2025, 1, 1, 9, 0),
        datetime(2025, 1, 1, 9, 30),
        [BreakPeriod(datetime(2025, 1, 1, 9, 0), datetime(2025, 1, 1, 10, 0))],
    )

    assert hours == 0.0

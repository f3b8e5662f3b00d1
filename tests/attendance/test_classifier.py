from datetime import date

import pytest

from fakes import DHAKA, at
from hrms.attendance.classifier import TimingClassifier, TimingRules
from hrms.attendance.factory import TimingStrategyFactory
from hrms.attendance.model import Punch
from hrms.attendance.strategies.early_strategy import EarlyStrategy
from hrms.attendance.strategies.half_day_strategy import HalfDayStrategy
from hrms.attendance.strategies.late_strategy import LateStrategy
from hrms.attendance.strategies.off_day_strategy import OffDayStrategy
from hrms.attendance.strategies.on_time_strategy import OnTimeStrategy
from hrms.core.enums import AttendanceStatus, PunchDirection, TimingVerdict
from hrms.core.exceptions import InvalidTimeFormat

DAY = date(2024, 1, 1)


@pytest.fixture
def classifier():
    return TimingClassifier(TimingRules(grace_period_minutes=30, half_day_boundary="12:00", tz=DHAKA))


def _classify(classifier, *items, is_off_day=False):
    punches = [Punch(timestamp=at(DAY, hhmm), direction=d) for hhmm, d in items]
    return classifier.classify(punches, work_date=DAY, shift_start="09:00", shift_end="18:00", is_off_day=is_off_day)


@pytest.mark.parametrize(
    "hhmm, strategy",
    [
        ("08:59", EarlyStrategy),
        ("09:00", OnTimeStrategy),
        ("09:30", OnTimeStrategy),
        ("09:31", LateStrategy),
        ("11:59", LateStrategy),
        ("12:00", HalfDayStrategy),
    ],
)
def test_factory_picks_strategy_by_first_in(classifier, hhmm, strategy):
    window = classifier.window_for(DAY, shift_start="09:00", shift_end="18:00")
    chosen = TimingStrategyFactory().for_first_in(first_in=at(DAY, hhmm), window=window, is_off_day=False)

    assert isinstance(chosen, strategy)


def test_factory_off_day_wins(classifier):
    window = classifier.window_for(DAY, shift_start="09:00", shift_end="18:00")
    chosen = TimingStrategyFactory().for_first_in(first_in=at(DAY, "12:30"), window=window, is_off_day=True)

    assert isinstance(chosen, OffDayStrategy)


@pytest.mark.parametrize(
    "hhmm, verdict, late, grace",
    [
        ("09:00", TimingVerdict.ON_TIME, 0, False),
        ("09:01", TimingVerdict.ON_TIME_GRACE, 1, True),
        ("09:30", TimingVerdict.ON_TIME_GRACE, 30, True),
        ("09:31", TimingVerdict.LATE, 31, False),
        ("11:59", TimingVerdict.LATE, 179, False),
        ("12:00", TimingVerdict.HALF_DAY, 180, False),
    ],
)
def test_first_in_boundaries(classifier, hhmm, verdict, late, grace):
    result = _classify(classifier, (hhmm, PunchDirection.IN))

    assert result.status == AttendanceStatus.PRESENT
    assert result.timing_verdict == verdict
    assert result.late_minutes == late
    assert result.used_grace_period is grace
    assert result.is_half_day is (verdict == TimingVerdict.HALF_DAY)


def test_early_arrival(classifier):
    result = _classify(classifier, ("08:45", PunchDirection.IN))

    assert result.timing_verdict == TimingVerdict.EARLY
    assert result.is_early is True
    assert result.early_minutes == 15
    assert result.late_minutes == 0


def test_overtime_and_early_leave(classifier):
    overtime = _classify(classifier, ("09:00", PunchDirection.IN), ("19:15", PunchDirection.OUT))
    early = _classify(classifier, ("09:00", PunchDirection.IN), ("17:20", PunchDirection.OUT))

    assert overtime.has_overtime is True
    assert overtime.overtime_minutes == 75
    assert early.early_leave is True
    assert early.early_leave_minutes == 40
    assert early.overtime_minutes == 0


def test_off_day_work_is_all_overtime(classifier):
    result = _classify(classifier, ("10:00", PunchDirection.IN), ("14:00", PunchDirection.OUT), is_off_day=True)

    assert result.timing_verdict == TimingVerdict.OFF_DAY_OVERTIME
    assert result.is_off_day_work is True
    assert result.overtime_minutes == 240
    assert result.late_minutes == 0
    assert result.early_leave is False


def test_no_punch_keeps_idle_status(classifier):
    result = classifier.classify(
        [],
        work_date=DAY,
        shift_start="09:00",
        shift_end="18:00",
        is_off_day=False,
        idle_status=AttendanceStatus.LEAVE,
    )

    assert result.status == AttendanceStatus.LEAVE
    assert result.timing_verdict is None


def test_classification_is_deterministic(classifier):
    items = (("09:12", PunchDirection.IN), ("13:00", PunchDirection.OUT), ("13:40", PunchDirection.IN), ("18:05", PunchDirection.OUT))

    assert _classify(classifier, *items) == _classify(classifier, *items)


def test_bad_shift_boundary_is_rejected(classifier):
    with pytest.raises(InvalidTimeFormat):
        classifier.window_for(DAY, shift_start="9am", shift_end="18:00")
    with pytest.raises(InvalidTimeFormat):
        TimingRules(half_day_boundary="noon")

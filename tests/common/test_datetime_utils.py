from datetime import date, datetime, time, timezone

import pytest

from fakes import DHAKA
from hrms.common.datetime_utils import (
    local_calendar_day,
    minutes_between,
    month_bounds,
    parse_hhmm,
    parse_instant,
    parse_month,
    shift_instant,
    to_local,
)
from hrms.core.exceptions import InvalidTimeFormat, ValidationError


def test_parse_hhmm_accepts_wall_clock():
    assert parse_hhmm("09:00") == time(9, 0)
    assert parse_hhmm("23:59") == time(23, 59)


@pytest.mark.parametrize("value", ["24:00", "09:60", "0900", "ab:cd", "09:00:00", "", None])
def test_parse_hhmm_rejects_malformed(value):
    with pytest.raises(InvalidTimeFormat):
        parse_hhmm(value)


def test_shift_instant_is_org_local():
    assert shift_instant("09:00", date(2024, 1, 1), DHAKA) == datetime(2024, 1, 1, 9, 0, tzinfo=DHAKA)


def test_minutes_between_floors_and_can_be_negative():
    nine = datetime(2024, 1, 1, 9, 0, tzinfo=DHAKA)
    assert minutes_between(datetime(2024, 1, 1, 9, 1, 59, tzinfo=DHAKA), nine) == 1
    assert minutes_between(nine, datetime(2024, 1, 1, 9, 1, 30, tzinfo=DHAKA)) == -2


def test_local_calendar_day_near_midnight():
    # 19:30 UTC is 01:30 next day in Dhaka
    assert local_calendar_day(datetime(2024, 1, 1, 19, 30, tzinfo=timezone.utc), DHAKA) == date(2024, 1, 2)
    assert local_calendar_day(datetime(2024, 1, 1, 17, 59, tzinfo=timezone.utc), DHAKA) == date(2024, 1, 1)


def test_naive_instants_are_taken_as_local():
    local = to_local(datetime(2024, 1, 1, 9, 0), DHAKA)
    assert local == datetime(2024, 1, 1, 9, 0, tzinfo=DHAKA)
    assert parse_instant("2024-01-01T09:00:00", DHAKA) == local


def test_month_helpers():
    assert month_bounds(2024, 2) == (date(2024, 2, 1), date(2024, 2, 29))
    assert parse_month("2024-03") == (2024, 3)
    with pytest.raises(ValidationError):
        month_bounds(2024, 13)
    with pytest.raises(ValidationError):
        parse_month("2024-13")

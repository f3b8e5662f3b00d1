from datetime import date, timedelta

from fakes import at
from hrms.attendance.ledger import add_punch, infer_direction, working_time
from hrms.attendance.model import AttendanceRecord, Punch
from hrms.core.enums import PunchDirection

DAY = date(2024, 1, 1)
IN = PunchDirection.IN
OUT = PunchDirection.OUT


def _punches(*items):
    return [Punch(timestamp=at(DAY, hhmm), direction=d) for hhmm, d in items]


def test_add_punch_skips_duplicates_inside_window():
    record = AttendanceRecord(employee_id=1, work_date=DAY)
    first = Punch(timestamp=at(DAY, "09:00"), direction=IN)

    assert add_punch(record, first) is True
    assert add_punch(record, Punch(timestamp=first.timestamp + timedelta(seconds=30), direction=IN)) is False
    assert add_punch(record, Punch(timestamp=first.timestamp + timedelta(seconds=59), direction=OUT)) is False
    assert len(record.punches) == 1


def test_punch_exactly_one_window_apart_is_kept():
    record = AttendanceRecord(employee_id=1, work_date=DAY)
    add_punch(record, Punch(timestamp=at(DAY, "09:00"), direction=IN))

    assert add_punch(record, Punch(timestamp=at(DAY, "09:01"), direction=OUT)) is True
    assert record.first_in == at(DAY, "09:00")
    assert record.last_out == at(DAY, "09:01")


def test_out_of_order_punches_are_kept_sorted():
    record = AttendanceRecord(employee_id=1, work_date=DAY)
    add_punch(record, Punch(timestamp=at(DAY, "18:00"), direction=OUT))
    add_punch(record, Punch(timestamp=at(DAY, "09:00"), direction=IN))

    assert [p.timestamp for p in record.punches] == [at(DAY, "09:00"), at(DAY, "18:00")]
    assert record.first_in == at(DAY, "09:00")
    assert record.last_out == at(DAY, "18:00")


def test_working_time_with_lunch_break():
    worked = working_time(_punches(("09:00", IN), ("13:00", OUT), ("14:00", IN), ("18:00", OUT)))

    assert worked.total_break_minutes == 60
    assert worked.net_working_minutes == 480
    assert worked.total_break_minutes + worked.net_working_minutes == 540


def test_working_time_ignores_punches_outside_first_in_last_out():
    worked = working_time(_punches(("08:00", OUT), ("09:00", IN), ("17:00", OUT), ("17:30", IN)))

    assert worked.total_break_minutes == 0
    assert worked.net_working_minutes == 480


def test_in_progress_day_has_no_working_time():
    worked = working_time(_punches(("09:00", IN)))

    assert worked.total_break_minutes == 0
    assert worked.net_working_minutes == 0


def test_infer_direction_alternates_from_earlier_punches():
    punches = _punches(("09:00", IN), ("13:00", OUT))

    assert infer_direction([], at(DAY, "09:00")) == IN
    assert infer_direction(punches, at(DAY, "10:00")) == OUT
    assert infer_direction(punches, at(DAY, "14:00")) == IN
    # A late-arriving earlier log does not follow the newest punch.
    assert infer_direction(punches, at(DAY, "08:00")) == IN

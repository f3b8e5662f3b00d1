from datetime import date
from decimal import Decimal

import pytest

from fakes import at
from hrms.core.enums import DeductionPreference, LateStatus, LeaveBucket, LeaveStatus
from hrms.core.exceptions import NotFound, ValidationError
from hrms.leaves.model import LeaveApplication

TUESDAY = date(2024, 1, 2)
WEDNESDAY = date(2024, 1, 3)


def _arrive(container, code, day, hhmm):
    container.attendance_service.record_punch(code, at(day, hhmm))


def test_apply_late_files_pending_event(container):
    _arrive(container, "E001", TUESDAY, "09:45")

    event = container.late_service.apply_late(employee_id=1, work_date=TUESDAY, reason="Traffic on the bridge")

    assert event.status == LateStatus.PENDING
    assert event.late_minutes == 45
    assert event.monthly_late_count == 1
    assert event.is_deducted is False


def test_apply_late_rules(container):
    service = container.late_service
    _arrive(container, "E001", TUESDAY, "09:45")
    _arrive(container, "E001", WEDNESDAY, "09:00")

    service.apply_late(employee_id=1, work_date=TUESDAY, reason="Traffic")
    with pytest.raises(ValidationError):
        service.apply_late(employee_id=1, work_date=TUESDAY, reason="Again")
    with pytest.raises(ValidationError):
        service.apply_late(employee_id=1, work_date=WEDNESDAY, reason="Not late at all")
    with pytest.raises(NotFound):
        service.apply_late(employee_id=1, work_date=date(2024, 1, 4), reason="No record")
    with pytest.raises(ValidationError):
        service.apply_late(employee_id=1, work_date=TUESDAY, reason="")


def test_short_lateness_is_auto_approved(container):
    container.late_service.update_policy(auto_approve_under=60)
    _arrive(container, "E001", TUESDAY, "09:45")

    event = container.late_service.apply_late(employee_id=1, work_date=TUESDAY, reason="Traffic")

    assert event.status == LateStatus.APPROVED


def test_monthly_count_increments(container):
    _arrive(container, "E001", TUESDAY, "09:45")
    _arrive(container, "E001", WEDNESDAY, "10:15")
    service = container.late_service

    service.apply_late(employee_id=1, work_date=TUESDAY, reason="Traffic")
    second = service.apply_late(employee_id=1, work_date=WEDNESDAY, reason="Doctor")

    assert second.monthly_late_count == 2


def test_decide_only_moves_pending(container):
    _arrive(container, "E001", TUESDAY, "09:45")
    service = container.late_service
    event = service.apply_late(employee_id=1, work_date=TUESDAY, reason="Traffic")

    with pytest.raises(ValidationError):
        service.decide(event.late_id, status=LateStatus.REJECTED, decided_by=9)

    approved = service.decide(event.late_id, status=LateStatus.APPROVED, decided_by=9)
    assert approved.status == LateStatus.APPROVED
    assert approved.decided_by == 9

    with pytest.raises(ValidationError):
        service.decide(event.late_id, status=LateStatus.REJECTED, decided_by=9, rejection_reason="No proof")
    with pytest.raises(NotFound):
        service.decide(999, status=LateStatus.APPROVED, decided_by=9)


def test_delete_pending(container, repos):
    _arrive(container, "E001", TUESDAY, "09:45")
    service = container.late_service
    event = service.apply_late(employee_id=1, work_date=TUESDAY, reason="Traffic")

    service.delete_pending(event.late_id)

    assert repos.lates.get_by_id(event.late_id) is None


def test_policy_defaults_and_validation(container):
    service = container.late_service
    policy = service.get_policy()
    assert policy.deduction_preference == DeductionPreference.LEAVE
    assert policy.grace_days_per_month == 2
    assert policy.leave_bucket == LeaveBucket.ANNUAL

    updated = service.update_policy(deduction_preference="Salary", grace_days_per_month=3)
    assert updated.deduction_preference == DeductionPreference.SALARY
    assert service.get_policy().grace_days_per_month == 3

    for bad in ({"half_days_to_full_day": 0}, {"grace_days_per_month": -1}, {"leave_bucket": "earned"}, {"colour": "red"}):
        with pytest.raises(ValidationError):
            service.update_policy(**bad)


def test_calculate_deductions_has_no_side_effects(container, repos):
    service = container.late_service
    service.update_policy(grace_days_per_month=0)
    _arrive(container, "E001", TUESDAY, "09:45")
    event = service.apply_late(employee_id=1, work_date=TUESDAY, reason="Traffic")

    resolution = service.calculate_deductions(1, 2024, 1)

    assert resolution.total_leave_units == Decimal("1")
    assert repos.lates.get_by_id(event.late_id).is_deducted is False
    assert repos.employees.get_by_id(1).leave_balance.annual == Decimal("10")


def test_half_day_leave_counts_as_half_day(container, repos):
    repos.leaves.items.append(
        LeaveApplication(
            leave_id=1,
            employee_id=1,
            bucket=LeaveBucket.CASUAL,
            start_date=TUESDAY,
            end_date=TUESDAY,
            status=LeaveStatus.APPROVED,
            is_half_day=True,
        )
    )
    _arrive(container, "E001", WEDNESDAY, "12:30")

    inputs = container.late_service.month_inputs(repos.employees.get_by_id(1), 2024, 1)

    assert inputs.half_day_dates == (TUESDAY, WEDNESDAY)


def test_deduction_report_sorted_by_impact(container):
    service = container.late_service
    service.update_policy(grace_days_per_month=0)
    _arrive(container, "E001", TUESDAY, "09:45")
    _arrive(container, "E002", TUESDAY, "09:50")
    _arrive(container, "E002", WEDNESDAY, "09:50")
    service.apply_late(employee_id=1, work_date=TUESDAY, reason="Traffic")
    service.apply_late(employee_id=2, work_date=TUESDAY, reason="Traffic")
    service.apply_late(employee_id=2, work_date=WEDNESDAY, reason="Traffic")

    rows = service.deduction_report(2024, 1)

    assert [r.employee_code for r in rows] == ["E002", "E001"]
    assert rows[0].impact == Decimal("2000.00")
    assert rows[1].impact == Decimal("1000.00")

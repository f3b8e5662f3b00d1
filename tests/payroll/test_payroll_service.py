import threading
import time
from dataclasses import replace
from datetime import date
from decimal import Decimal

import pytest

from fakes import at, make_employee
from hrms.core.enums import DeductionType, LateStatus, PayrollStatus
from hrms.core.exceptions import AlreadyResolved, InvalidAdjustment, NotFound, PayrollLocked

TUESDAY = date(2024, 1, 2)
WEDNESDAY = date(2024, 1, 3)
THURSDAY = date(2024, 1, 4)


@pytest.fixture
def month_with_one_absence(container, employees):
    employees.add(make_employee(1, allowances={"housing": Decimal("5000")}))
    service = container.attendance_service
    service.record_punch("E001", at(TUESDAY, "09:00"))
    service.record_punch("E001", at(TUESDAY, "18:00"))
    service.close_day(WEDNESDAY)
    return container


def test_generate_assembles_snapshot(month_with_one_absence):
    result = month_with_one_absence.payroll_service.generate(1, 2024, 1)

    s = result.snapshot
    assert result.action == "created"
    assert s.gross_salary == Decimal("35000.00")
    assert s.deductions.absent == Decimal("1000.00")
    assert s.total_deductions == Decimal("1000.00")
    assert s.net_salary == Decimal("34000.00")
    assert s.summary.present_days == 1
    assert s.summary.absent_days == 1
    assert s.version == 1
    assert s.status == PayrollStatus.PENDING


def test_existing_snapshot_is_skipped(month_with_one_absence):
    service = month_with_one_absence.payroll_service
    first = service.generate(1, 2024, 1)

    again = service.generate(1, 2024, 1)

    assert again.action == "skipped"
    assert again.snapshot.snapshot_id == first.snapshot.snapshot_id


def test_regeneration_records_history(month_with_one_absence):
    container = month_with_one_absence
    service = container.payroll_service
    first = service.generate(1, 2024, 1).snapshot
    service.add_adjustment(first.snapshot_id, 250, "Team lunch refund", author=5)
    container.attendance_service.close_day(THURSDAY)

    result = service.generate(1, 2024, 1, regenerate=True, author=5, reason="Late absence upload")

    s = result.snapshot
    assert result.action == "regenerated"
    assert s.snapshot_id == first.snapshot_id
    assert s.version == 2
    assert s.is_regenerated is True
    assert len(s.regeneration_history) == 1
    entry = s.regeneration_history[0]
    assert entry.previous_net_salary == Decimal("34250.00")
    assert entry.previous_version == 1
    assert entry.reason == "Late absence upload"
    assert entry.changes["absent_deduction"] == {"old": Decimal("1000.00"), "new": Decimal("2000.00")}
    assert len(s.adjustments) == 1
    assert s.net_salary == Decimal("33250.00")


def test_generation_debits_leave_and_marks_events(container, repos):
    container.late_service.update_policy(grace_days_per_month=0)
    event = repos.lates.add(employee_id=1, late_date=TUESDAY, status=LateStatus.PENDING)

    s = container.payroll_service.generate(1, 2024, 1).snapshot

    assert s.leave_deducted.units == Decimal("1")
    assert repos.employees.get_by_id(1).leave_balance.annual == Decimal("9")
    marked = repos.lates.get_by_id(event.late_id)
    assert marked.is_deducted is True
    assert marked.deduction_type == DeductionType.LEAVE


def test_regeneration_restores_previous_leave_debit(container, repos):
    container.late_service.update_policy(grace_days_per_month=0)
    repos.lates.add(employee_id=1, late_date=TUESDAY, status=LateStatus.PENDING)
    service = container.payroll_service
    service.generate(1, 2024, 1)

    s = service.generate(1, 2024, 1, regenerate=True).snapshot

    assert s.leave_deducted.units == Decimal("1")
    assert repos.employees.get_by_id(1).leave_balance.annual == Decimal("9")


def test_first_generation_with_deducted_events_is_refused(container, repos):
    repos.lates.add(
        employee_id=1,
        late_date=TUESDAY,
        status=LateStatus.PENDING,
        is_deducted=True,
        deduction_type=DeductionType.SALARY,
        deduction_amount=Decimal("1000"),
    )

    with pytest.raises(AlreadyResolved):
        container.payroll_service.generate(1, 2024, 1)


def test_adjustments_change_net(container, employees):
    employees.add(make_employee(1, basic_salary=Decimal("40000")))
    service = container.payroll_service
    snapshot_id = service.generate(1, 2024, 1).snapshot.snapshot_id

    service.add_adjustment(snapshot_id, Decimal("-500"), "Damaged laptop charger")
    s = service.add_adjustment(snapshot_id, Decimal("200"), "Travel reimbursement")

    assert s.net_salary == Decimal("39700.00")
    assert s.total_adjustments == Decimal("-300.00")

    s = service.remove_adjustment(snapshot_id, s.adjustments[0].adjustment_id)
    assert s.net_salary == Decimal("40200.00")
    assert service.get(snapshot_id).net_salary == Decimal("40200.00")


@pytest.mark.parametrize("amount, description", [(0, "Valid description"), (100, "abc"), ("x", "Valid description")])
def test_invalid_adjustments(container, amount, description):
    snapshot_id = container.payroll_service.generate(1, 2024, 1).snapshot.snapshot_id

    with pytest.raises(InvalidAdjustment):
        container.payroll_service.add_adjustment(snapshot_id, amount, description)


def test_unknown_snapshot_or_adjustment(container):
    service = container.payroll_service
    with pytest.raises(NotFound):
        service.add_adjustment(999, 100, "Valid description")

    snapshot_id = service.generate(1, 2024, 1).snapshot.snapshot_id
    with pytest.raises(NotFound):
        service.remove_adjustment(snapshot_id, "missing")


def test_paid_snapshot_is_locked(month_with_one_absence, repos):
    service = month_with_one_absence.payroll_service
    snapshot_id = service.generate(1, 2024, 1).snapshot.snapshot_id

    paid = service.set_status(snapshot_id, PayrollStatus.PAID)

    assert paid.paid_at is not None
    assert repos.attendance.load_day(1, TUESDAY).is_locked is True
    assert repos.attendance.load_day(2, WEDNESDAY).is_locked is False
    with pytest.raises(PayrollLocked):
        service.add_adjustment(snapshot_id, 100, "Late bonus")
    with pytest.raises(PayrollLocked):
        service.generate(1, 2024, 1, regenerate=True)


def test_overtime_is_reported_but_not_paid(container):
    container.attendance_service.record_punch("E001", at(TUESDAY, "09:00"))
    container.attendance_service.record_punch("E001", at(TUESDAY, "20:00"))

    s = container.payroll_service.generate(1, 2024, 1).snapshot

    assert s.summary.overtime_minutes == 120
    assert s.overtime.amount == Decimal("250.00")
    assert s.net_salary == Decimal("30000.00")


def test_batch_collects_errors_and_continues(container, employees):
    employees.add(replace(employees.get_by_id(2), basic_salary=Decimal("45000")))

    batch = container.payroll_service.generate_batch(2024, 1, employee_ids=[1, 99, 2])

    assert batch.created == [1, 2]
    assert 99 in batch.errors
    assert len(container.payroll_service.list_for_month(2024, 1)) == 2

    again = container.payroll_service.generate_batch(2024, 1)
    assert again.skipped == [1, 2]


def test_leave_debits_of_parallel_months_are_both_kept(container, repos, employees, monkeypatch):
    container.late_service.update_policy(grace_days_per_month=0)
    repos.lates.add(employee_id=1, late_date=TUESDAY, status=LateStatus.PENDING)
    repos.lates.add(employee_id=1, late_date=date(2024, 2, 6), status=LateStatus.PENDING)
    read = employees.get_by_id

    def slow_read(employee_id):
        employee = read(employee_id)
        time.sleep(0.05)
        return employee

    monkeypatch.setattr(employees, "get_by_id", slow_read)
    service = container.payroll_service
    threads = [threading.Thread(target=service.generate, args=(1, 2024, month)) for month in (1, 2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=5)

    for month in (1, 2):
        (snapshot,) = service.list_for_month(2024, month)
        assert snapshot.leave_deducted.units == Decimal("1")
    assert read(1).leave_balance.annual == Decimal("8")


def _paused_regeneration(service, policies, monkeypatch):
    """Start a regeneration that stops inside the policy read until released."""
    entered, release = threading.Event(), threading.Event()
    read_policy = policies.get_policy

    def paused():
        entered.set()
        release.wait(timeout=5)
        return read_policy()

    monkeypatch.setattr(policies, "get_policy", paused)
    thread = threading.Thread(target=service.generate, args=(1, 2024, 1), kwargs={"regenerate": True})
    thread.start()
    assert entered.wait(timeout=5)
    return thread, release


def test_adjustment_waits_for_running_regeneration(container, repos, monkeypatch):
    service = container.payroll_service
    snapshot_id = service.generate(1, 2024, 1).snapshot.snapshot_id
    regeneration, release = _paused_regeneration(service, repos.policies, monkeypatch)

    adjusting = threading.Thread(target=service.add_adjustment, args=(snapshot_id, 500, "Bonus for overtime"))
    adjusting.start()
    adjusting.join(timeout=0.1)
    assert adjusting.is_alive()

    release.set()
    regeneration.join(timeout=5)
    adjusting.join(timeout=5)

    s = service.get(snapshot_id)
    assert s.version == 2
    assert len(s.adjustments) == 1
    assert s.net_salary == Decimal("30500.00")


def test_paid_status_set_during_regeneration_sticks(container, repos, monkeypatch):
    service = container.payroll_service
    snapshot_id = service.generate(1, 2024, 1).snapshot.snapshot_id
    regeneration, release = _paused_regeneration(service, repos.policies, monkeypatch)

    paying = threading.Thread(target=service.set_status, args=(snapshot_id, PayrollStatus.PAID))
    paying.start()
    paying.join(timeout=0.1)
    assert paying.is_alive()

    release.set()
    regeneration.join(timeout=5)
    paying.join(timeout=5)

    s = service.get(snapshot_id)
    assert s.version == 2
    assert s.status == PayrollStatus.PAID
    assert s.paid_at is not None


def test_writes_from_a_stale_snapshot_are_refused(container, repos):
    service = container.payroll_service
    stale = service.generate(1, 2024, 1).snapshot
    service.add_adjustment(stale.snapshot_id, 100, "Meal allowance")

    with pytest.raises(PayrollLocked):
        repos.payroll.save_generation(stale.with_changes(version=2), previous=stale, leave_change={}, late_events=())
    assert repos.payroll.save(stale.with_changes(status=PayrollStatus.PAID), previous=stale) is False

    current = service.get(stale.snapshot_id)
    assert current.version == 1
    assert current.status == PayrollStatus.PENDING
    assert len(current.adjustments) == 1

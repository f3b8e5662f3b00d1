from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal
from typing import Iterable, Sequence

from ..common.money import money, to_decimal
from ..core.constants import PAYROLL_DAYS_PER_MONTH
from ..core.enums import DeductionPreference, DeductionType, LateStatus
from ..core.exceptions import InsufficientLeaveBalance
from .model import DeductionLine, DeductionResolution, LateEvent, LatePolicy

_ZERO = Decimal("0")
_ONE = Decimal("1")


@dataclass(frozen=True)
class _Charge:
    deduction_type: DeductionType
    deduction_amount: Decimal
    leave_units: Decimal
    salary_amount: Decimal


class LateDeductionResolver:
    """Decide which late events and half-days are forgiven, charged to leave, or to salary.

    Pure: the outcome depends only on the arguments, so resolving twice with
    the same balance snapshot gives the same per-event assignment.

    Rules:
      - Rejected events are ignored; Approved events are always forgiven and
        never take a grace slot.
      - The first ``grace_days_per_month`` Pending events (by date) are free.
      - Each remaining Pending event costs one day: salary (basic / 30), or one
        leave unit while the running balance lasts, then salary.
      - Every ``half_days_to_full_day`` half-days cost one day the same way;
        leftovers are free this month.
    """

    def resolve(
        self,
        late_events: Iterable[LateEvent],
        half_day_dates: Iterable[date],
        policy: LatePolicy,
        *,
        basic_salary: Decimal,
        leave_balance: Decimal,
        allow_salary_fallback: bool = True,
    ) -> DeductionResolution:
        per_day = money(to_decimal(basic_salary, "basic_salary") / PAYROLL_DAYS_PER_MONTH)
        opening = max(to_decimal(leave_balance, "leave_balance"), _ZERO)
        remaining = opening

        events = sorted(
            (e for e in late_events if e.status != LateStatus.REJECTED),
            key=lambda e: (e.late_date, e.late_id),
        )

        lines: list[DeductionLine] = []
        approved = pending = grace_used = 0

        for event in events:
            if event.status == LateStatus.APPROVED:
                approved += 1
                lines.append(self._forgiven(event, "approved"))
                continue

            pending += 1
            if not policy.is_enabled:
                lines.append(self._forgiven(event, "policy disabled", sequence=pending))
                continue
            if pending <= policy.grace_days_per_month:
                grace_used += 1
                lines.append(self._forgiven(event, "grace", sequence=pending))
                continue

            charge, remaining = self._charge(policy, per_day, remaining, allow_salary_fallback)
            lines.append(
                DeductionLine(
                    kind="late",
                    occurred_on=event.late_date,
                    late_id=event.late_id,
                    late_minutes=event.late_minutes,
                    sequence=pending,
                    deduction_type=charge.deduction_type,
                    deduction_amount=charge.deduction_amount,
                    leave_units=charge.leave_units,
                    salary_amount=charge.salary_amount,
                )
            )

        half_days = sorted(half_day_dates)
        group_size = max(int(policy.half_days_to_full_day), 1)
        if policy.is_enabled:
            for number, end in enumerate(range(group_size, len(half_days) + 1, group_size), start=1):
                charge, remaining = self._charge(policy, per_day, remaining, allow_salary_fallback)
                lines.append(
                    DeductionLine(
                        kind="half_day",
                        occurred_on=half_days[end - 1],
                        sequence=number,
                        deduction_type=charge.deduction_type,
                        deduction_amount=charge.deduction_amount,
                        leave_units=charge.leave_units,
                        salary_amount=charge.salary_amount,
                    )
                )

        return DeductionResolution(
            per_day_salary=per_day,
            leave_bucket=policy.leave_bucket,
            opening_leave_balance=opening,
            closing_leave_balance=remaining,
            lines=tuple(lines),
            total_lates=len(events),
            approved_lates=approved,
            pending_lates=pending,
            grace_used=grace_used,
            half_day_occurrences=len(half_days),
        )

    @staticmethod
    def _forgiven(event: LateEvent, reason: str, *, sequence: int = 0) -> DeductionLine:
        return DeductionLine(
            kind="late",
            occurred_on=event.late_date,
            late_id=event.late_id,
            late_minutes=event.late_minutes,
            sequence=sequence,
            deduction_type=DeductionType.NONE,
            deduction_amount=_ZERO,
            forgiven_reason=reason,
        )

    @staticmethod
    def _charge(
        policy: LatePolicy,
        per_day: Decimal,
        remaining: Decimal,
        allow_salary_fallback: bool,
    ) -> tuple[_Charge, Decimal]:
        if policy.deduction_preference == DeductionPreference.SALARY:
            return _Charge(DeductionType.SALARY, per_day, _ZERO, per_day), remaining

        if remaining >= _ONE:
            return _Charge(DeductionType.LEAVE, _ONE, _ONE, _ZERO), remaining - _ONE

        if not allow_salary_fallback:
            raise InsufficientLeaveBalance(
                f"Not enough {policy.leave_bucket.value} leave: {remaining} available, 1 required"
            )

        if remaining > _ZERO:
            # Partial unit: cap at the balance, the rest goes to salary.
            salary = money(per_day * (_ONE - remaining))
            return _Charge(DeductionType.LEAVE, remaining, remaining, salary), _ZERO

        return _Charge(DeductionType.SALARY, per_day, _ZERO, per_day), remaining


def apply_resolution(events: Sequence[LateEvent], resolution: DeductionResolution) -> list[LateEvent]:
    """Late events carrying their resolved deduction fields."""
    out = []
    for event in events:
        line = resolution.line_for(event.late_id)
        if line is None:
            continue
        out.append(
            replace(
                event,
                is_deducted=line.is_deducted,
                deduction_type=line.deduction_type,
                deduction_amount=line.deduction_amount,
                salary_amount=line.salary_amount,
                monthly_late_count=line.sequence,
            )
        )
    return out

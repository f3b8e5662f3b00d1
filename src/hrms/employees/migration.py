"""Leave balance vocabulary migration.

Older records carry ``earned`` instead of ``annual``; the engine only knows
the canonical buckets in :class:`~hrms.core.enums.LeaveBucket`.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Mapping

from ..common.money import to_decimal
from ..core.constants import DEFAULT_LEAVE_BALANCE
from .model import LeaveBalance

LEGACY_ALIASES = {"earned": "annual"}


def migrate_leave_balance(raw: Mapping[str, Any] | None) -> tuple[LeaveBalance, bool]:
    """Return the canonical balance and whether anything had to change."""
    raw = dict(raw or {})
    changed = False

    for legacy, canonical in LEGACY_ALIASES.items():
        if legacy in raw:
            if raw.get(canonical) is None:
                raw[canonical] = raw[legacy]
            del raw[legacy]
            changed = True

    data: dict[str, Decimal] = {}
    for bucket, default in DEFAULT_LEAVE_BALANCE.items():
        value = raw.get(bucket)
        if value is None:
            data[bucket] = default
            changed = True
        else:
            data[bucket] = to_decimal(value, bucket)

    unknown = set(raw) - set(DEFAULT_LEAVE_BALANCE)
    if unknown:
        changed = True

    return LeaveBalance(**data), changed

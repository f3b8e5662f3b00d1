"""JSON helpers shared by the Flask controllers."""

from __future__ import annotations

import logging
from dataclasses import fields, is_dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping

from flask import jsonify, request

from ..core.exceptions import (
    AlreadyResolved,
    AttendanceLocked,
    DomainError,
    NotFound,
    PayrollLocked,
)

logger = logging.getLogger(__name__)

_CONFLICTS = (PayrollLocked, AttendanceLocked, AlreadyResolved)

# Computed properties that are part of the public shape.
_COMPUTED = (
    "total",
    "total_allowances",
    "total_deductions",
    "total_adjustments",
    "deductible_lates",
    "late_salary_deduction",
    "half_day_salary_deduction",
    "total_salary_deduction",
    "total_leave_units",
    "error_count",
    "impact",
)


def to_json(value: Any) -> Any:
    """Plain JSON-ready structure: dataclasses to dicts, Decimal to str, enums to values."""
    if is_dataclass(value) and not isinstance(value, type):
        out = {f.name: to_json(getattr(value, f.name)) for f in fields(value)}
        for name in _COMPUTED:
            if hasattr(type(value), name) and isinstance(getattr(type(value), name), property):
                out[name] = to_json(getattr(value, name))
        return out
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Mapping):
        return {str(k): to_json(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [to_json(v) for v in value]
    return value


def json_body() -> dict:
    return request.get_json(silent=True) or {}


def ok(data: Any = None, status: int = 200):
    return jsonify({"success": True, "data": to_json(data)}), status


def error_response(error: DomainError):
    if isinstance(error, NotFound):
        status = 404
    elif isinstance(error, _CONFLICTS):
        status = 409
    else:
        status = 400
    logger.info("%s %s -> %d: %s", request.method, request.path, status, error)
    return jsonify({"success": False, "error": type(error).__name__, "message": str(error)}), status


def register_error_handlers(app) -> None:
    app.register_error_handler(DomainError, error_response)

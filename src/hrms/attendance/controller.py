from __future__ import annotations

from flask import Flask

from ..common.datetime_utils import now_local, parse_instant
from ..common.http import json_body, ok
from ..core.enums import AttendanceStatus, PunchDirection
from ..core.exceptions import ValidationError
from ..container import Container
from .sync import DeviceLog


def _direction(value):
    if value in (None, ""):
        return None
    try:
        return PunchDirection(str(value).upper())
    except ValueError:
        raise ValidationError(f"Unknown punch direction {value!r}")


def register(app: Flask, container: Container) -> None:
    service = container.attendance_service
    tz = service.tz

    @app.route("/api/attendance/punch", methods=["POST"], endpoint="api_attendance_punch")
    def api_attendance_punch():
        data = json_body()
        code = str(data.get("employee_code") or "").strip()
        if not code:
            raise ValidationError("employee_code is required")

        outcome = service.record_punch(
            code,
            parse_instant(data.get("timestamp"), tz) or now_local(tz),
            _direction(data.get("direction")),
            source=str(data.get("source") or "api"),
            location=data.get("location"),
        )
        return ok(
            {
                "accepted": outcome.accepted,
                "direction": outcome.punch.direction,
                "record": outcome.record,
            },
            201 if outcome.accepted else 200,
        )

    @app.route("/api/attendance/<int:attendance_id>/edit", methods=["POST"], endpoint="api_attendance_edit")
    def api_attendance_edit(attendance_id: int):
        data = json_body()

        punches = None
        if data.get("punches") is not None:
            punches = []
            for item in data["punches"]:
                timestamp = parse_instant(item.get("timestamp"), tz)
                if timestamp is None:
                    raise ValidationError("Every punch needs a timestamp")
                punches.append((timestamp, _direction(item.get("direction")) or PunchDirection.IN))

        status = None
        if data.get("status"):
            try:
                status = AttendanceStatus(data["status"])
            except ValueError:
                raise ValidationError(f"Unknown attendance status {data['status']!r}")

        record = service.manual_edit(
            attendance_id,
            modified_by=data.get("modified_by"),
            reason=str(data.get("reason") or ""),
            punches=punches,
            status=status,
        )
        return ok(record)

    @app.route("/api/attendance/sync", methods=["POST"], endpoint="api_attendance_sync")
    def api_attendance_sync():
        data = json_body()
        if "logs" not in data:
            return ok(container.sync_devices())

        logs = []
        for item in data.get("logs") or []:
            timestamp = parse_instant(item.get("timestamp"), tz)
            if timestamp is None:
                raise ValidationError("Every log needs a timestamp")
            logs.append(
                DeviceLog(
                    device_user_id=str(item.get("device_user_id") or ""),
                    timestamp=timestamp,
                    direction_hint=_direction(item.get("direction")),
                )
            )
        result = container.device_sync_service.process_logs(logs, device_name=str(data.get("device") or "api"))
        return ok(result)

from __future__ import annotations

from flask import Flask

from ..common.datetime_utils import parse_iso_date, parse_month
from ..common.http import json_body, ok
from ..core.enums import LateStatus
from ..core.exceptions import ValidationError
from ..container import Container


def register(app: Flask, container: Container) -> None:
    service = container.late_service

    @app.route("/api/lates", methods=["POST"], endpoint="api_lates_apply")
    def api_lates_apply():
        data = json_body()
        try:
            work_date = parse_iso_date(str(data.get("date") or ""))
            employee_id = int(data["employee_id"])
        except (KeyError, TypeError, ValueError):
            raise ValidationError("employee_id and date (YYYY-MM-DD) are required")

        event = service.apply_late(employee_id=employee_id, work_date=work_date, reason=str(data.get("reason") or ""))
        return ok(event, 201)

    @app.route("/api/lates/<int:late_id>", methods=["PUT"], endpoint="api_lates_decide")
    def api_lates_decide(late_id: int):
        data = json_body()
        try:
            status = LateStatus(data.get("status"))
        except ValueError:
            raise ValidationError("status must be Approved or Rejected")

        event = service.decide(
            late_id,
            status=status,
            decided_by=data.get("decided_by"),
            rejection_reason=data.get("rejection_reason"),
        )
        return ok(event)

    @app.route("/api/lates/<int:late_id>", methods=["DELETE"], endpoint="api_lates_delete")
    def api_lates_delete(late_id: int):
        service.delete_pending(late_id)
        return ok({"deleted": late_id})

    @app.route("/api/lates/settings", methods=["GET"], endpoint="api_lates_settings")
    def api_lates_settings():
        return ok(service.get_policy())

    @app.route("/api/lates/settings", methods=["PUT"], endpoint="api_lates_settings_update")
    def api_lates_settings_update():
        return ok(service.update_policy(**json_body()))

    @app.route(
        "/api/lates/deductions/<int:employee_id>/<month>",
        methods=["GET"],
        endpoint="api_lates_deductions",
    )
    def api_lates_deductions(employee_id: int, month: str):
        year, mon = parse_month(month)
        return ok(service.calculate_deductions(employee_id, year, mon))

    @app.route("/api/lates/report/<month>", methods=["GET"], endpoint="api_lates_report")
    def api_lates_report(month: str):
        year, mon = parse_month(month)
        return ok(service.deduction_report(year, mon))

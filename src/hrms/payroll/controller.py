from __future__ import annotations

from flask import Flask, request

from ..common.datetime_utils import parse_month
from ..common.http import json_body, ok
from ..core.exceptions import ValidationError
from ..container import Container


def register(app: Flask, container: Container) -> None:
    service = container.payroll_service

    @app.route("/api/payroll/generate", methods=["POST"], endpoint="api_payroll_generate")
    def api_payroll_generate():
        data = json_body()
        year, month = parse_month(str(data.get("month") or ""))
        regenerate = bool(data.get("regenerate", False))
        author = data.get("author")
        reason = data.get("reason")

        if data.get("employee_id") is not None:
            result = service.generate(
                int(data["employee_id"]), year, month, regenerate=regenerate, author=author, reason=reason
            )
            return ok(result, 201 if result.action == "created" else 200)

        employee_ids = data.get("employee_ids")
        batch = service.generate_batch(
            year,
            month,
            employee_ids=[int(i) for i in employee_ids] if employee_ids is not None else None,
            regenerate=regenerate,
            author=author,
            reason=reason,
        )
        return ok(batch)

    @app.route("/api/payroll/<int:snapshot_id>/adjustments", methods=["POST"], endpoint="api_payroll_add_adjustment")
    def api_payroll_add_adjustment(snapshot_id: int):
        data = json_body()
        snapshot = service.add_adjustment(
            snapshot_id,
            data.get("amount"),
            str(data.get("description") or ""),
            author=data.get("author"),
        )
        return ok(snapshot, 201)

    @app.route(
        "/api/payroll/<int:snapshot_id>/adjustments/<adjustment_id>",
        methods=["DELETE"],
        endpoint="api_payroll_remove_adjustment",
    )
    def api_payroll_remove_adjustment(snapshot_id: int, adjustment_id: str):
        return ok(service.remove_adjustment(snapshot_id, adjustment_id))

    @app.route("/api/payroll/<int:snapshot_id>/status", methods=["PUT"], endpoint="api_payroll_status")
    def api_payroll_status(snapshot_id: int):
        status = json_body().get("status")
        if not status:
            raise ValidationError("status is required")
        return ok(service.set_status(snapshot_id, status))

    @app.route("/api/payroll/<int:snapshot_id>", methods=["GET"], endpoint="api_payroll_get")
    def api_payroll_get(snapshot_id: int):
        return ok(service.get(snapshot_id))

    @app.route("/api/payroll", methods=["GET"], endpoint="api_payroll_list")
    def api_payroll_list():
        year, month = parse_month(request.args.get("month", ""))
        return ok(service.list_for_month(year, month))

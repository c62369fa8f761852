from __future__ import annotations

from flask import Flask, request

from ..common.csv_export import UTF8_BOM
from ..common.datetime_utils import parse_iso_date
from ..common.time_slots import to_local_iso
from ..common.web import current_role, json_body, ok, role_required
from ..container import Container
from ..core.exceptions import ValidationError
from .model import ActivityLogEntry


def register(app: Flask, container: Container) -> None:
    offset = container.offset_minutes
    activity = container.activity_service

    def _entry_json(e: ActivityLogEntry) -> dict:
        return {
            "id": e.entry_id,
            "guestId": e.guest_id,
            "categories": [c.value for c in e.categories],
            "description": e.description,
            "mentorNote": e.mentor_note,
            "timeslotStart": to_local_iso(e.bucket_start, offset),
        }

    def _categories_arg(raw):
        if raw is None:
            return None
        if isinstance(raw, str):
            return [c for c in raw.split(",") if c.strip()]
        if isinstance(raw, list):
            return raw
        raise ValidationError("categories must be a list", field="categories")

    @app.route("/api/admin/activity-logs", methods=["GET"], endpoint="api_activity_logs_for_date")
    @role_required
    def api_activity_logs_for_date():
        day = request.args.get("date")
        if not day:
            raise ValidationError("date query parameter is required", field="date")
        return ok([_entry_json(e) for e in activity.get_logs_for_date(day)])

    @app.route("/api/admin/activity-logs", methods=["POST"], endpoint="api_activity_log_upsert")
    @role_required
    def api_activity_log_upsert():
        body = json_body()
        entry = activity.upsert_log(
            guest_id=str(body.get("guestId", "")),
            categories=_categories_arg(body.get("categories", body.get("category"))),
            description=body.get("description"),
            mentor_note=body.get("mentorNote"),
            timestamp=body.get("timestamp"),
        )
        return ok(_entry_json(entry))

    @app.route("/api/admin/activity-logs/<log_id>", methods=["DELETE"], endpoint="api_activity_log_delete")
    @role_required
    def api_activity_log_delete(log_id: str):
        activity.delete_log(log_id, current_role())
        return ok({"id": log_id})

    @app.route("/api/admin/export/activity-logs", methods=["POST"], endpoint="api_activity_export")
    @role_required
    def api_activity_export():
        body = json_body()
        data = activity.export_logs(
            start_date=body.get("startDate") or "",
            end_date=body.get("endDate") or "",
            categories=_categories_arg(body.get("categories")),
        )
        return ok({"headers": list(data.headers), "rows": [r.to_dict() for r in data.rows]})

    @app.route("/api/admin/export/activity-logs.csv", methods=["GET"], endpoint="api_activity_export_csv")
    @role_required
    def api_activity_export_csv():
        start = parse_iso_date(request.args.get("startDate") or "", field="start_date")
        end = parse_iso_date(request.args.get("endDate") or "", field="end_date")
        text = activity.export_csv(
            start_date=start,
            end_date=end,
            categories=_categories_arg(request.args.get("categories")),
        )
        filename = f"activity-logs_{start.isoformat()}_{end.isoformat()}.csv"
        return app.response_class(
            (UTF8_BOM + text).encode("utf-8"),
            mimetype="text/csv",
            headers={"Content-Disposition": f"attachment; filename={filename}"},
        )

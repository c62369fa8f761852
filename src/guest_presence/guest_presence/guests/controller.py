from __future__ import annotations

from flask import Flask, request

from ..common.csv_export import UTF8_BOM
from ..common.pagination import coerce_limit, coerce_page
from ..common.time_slots import to_local_iso
from ..common.web import json_body, ok, role_required
from ..container import Container
from .model import Guest, GuestListItem

_EDITABLE = ("name", "contact", "grade")


def register(app: Flask, container: Container) -> None:
    offset = container.offset_minutes
    guests = container.guest_service

    def _iso(value):
        return to_local_iso(value, offset) if value else None

    def _guest_json(g: Guest) -> dict:
        return {
            "id": g.guest_id,
            "displayId": g.display_id,
            "name": g.name,
            "contact": g.contact,
            "grade": g.grade.value if g.grade else None,
            "createdAt": _iso(g.created_at),
        }

    def _list_item_json(item: GuestListItem) -> dict:
        data = _guest_json(item.guest)
        data.update(
            isCurrentlyCheckedIn=item.state.value == "PRESENT",
            totalVisits=item.total_visits,
            lastVisitAt=_iso(item.last_visit_at),
        )
        return data

    @app.route("/api/guests", methods=["POST"], endpoint="api_guest_register")
    def api_guest_register():
        body = json_body()
        guest = guests.register_guest(
            name=body.get("name", ""),
            contact=body.get("contact"),
            grade=body.get("grade"),
        )
        return ok(_guest_json(guest), 201, "Guest registered")

    @app.route("/api/guests/search", methods=["GET"], endpoint="api_guest_public_search")
    def api_guest_public_search():
        found = guests.search_guests_public(request.args.get("q"))
        return ok([_list_item_json(item) for item in found])

    @app.route("/api/guests/<guest_id>", methods=["GET"], endpoint="api_guest_detail")
    def api_guest_detail(guest_id: str):
        detail = guests.get_guest(guest_id)
        data = _guest_json(detail.guest)
        data.update(
            isCurrentlyCheckedIn=detail.active_session is not None,
            currentCheckinId=detail.active_session.session_id if detail.active_session else None,
            lastCheckinAt=_iso(detail.active_session.check_in_at) if detail.active_session else None,
        )
        return ok(data)

    @app.route("/api/admin/guests", methods=["GET"], endpoint="api_admin_guests")
    @role_required
    def api_admin_guests():
        result = guests.search_guests(
            search=request.args.get("search"),
            page=coerce_page(request.args.get("page")),
            limit=coerce_limit(request.args.get("limit")),
        )
        return ok(
            {
                "guests": [_list_item_json(g) for g in result.guests],
                "pagination": result.pagination.to_dict(),
            }
        )

    @app.route("/api/admin/guests/<guest_id>", methods=["PUT"], endpoint="api_admin_guest_update")
    @role_required
    def api_admin_guest_update(guest_id: str):
        body = json_body()
        changes = {k: body[k] for k in _EDITABLE if k in body}
        return ok(_guest_json(guests.update_guest(guest_id, **changes)))

    @app.route("/api/admin/guests/<guest_id>", methods=["DELETE"], endpoint="api_admin_guest_delete")
    @role_required
    def api_admin_guest_delete(guest_id: str):
        container.presence_service.delete_guest(guest_id)
        return ok({"id": guest_id}, 200, "Guest deleted")

    def _export_kwargs(source, *, split_lists: bool) -> dict:
        grades = source.get("grades")
        if split_lists and isinstance(grades, str):
            grades = [g for g in grades.split(",") if g.strip()]
        include = source.get("includeVisitStats", False)
        if isinstance(include, str):
            include = include.strip().lower() in {"1", "true", "yes"}
        return {
            "keyword": source.get("keyword"),
            "grades": grades,
            "status": source.get("status"),
            "registered_start": source.get("registeredStart") or None,
            "registered_end": source.get("registeredEnd") or None,
            "min_total_visits": source.get("minTotalVisits"),
            "include_visit_stats": bool(include),
        }

    @app.route("/api/admin/export/guests", methods=["POST"], endpoint="api_guest_export")
    @role_required
    def api_guest_export():
        data = guests.export_guests(**_export_kwargs(json_body(), split_lists=False))
        return ok(
            {
                "headers": list(data.headers),
                "rows": [r.to_dict(data.include_visit_stats) for r in data.rows],
            }
        )

    @app.route("/api/admin/export/guests.csv", methods=["GET"], endpoint="api_guest_export_csv")
    @role_required
    def api_guest_export_csv():
        text = guests.export_guests_csv(**_export_kwargs(request.args, split_lists=True))
        return app.response_class(
            (UTF8_BOM + text).encode("utf-8"),
            mimetype="text/csv",
            headers={"Content-Disposition": "attachment; filename=guests.csv"},
        )

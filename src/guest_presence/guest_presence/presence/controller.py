from __future__ import annotations

from flask import Flask, request

from ..common.datetime_utils import now_utc
from ..common.pagination import coerce_limit, coerce_page
from ..common.time_slots import to_local_iso
from ..common.web import ok, role_required
from ..container import Container
from ..core.exceptions import ValidationError
from .model import DayGuest, PresenceSession, SessionWithGuest


def register(app: Flask, container: Container) -> None:
    offset = container.offset_minutes
    presence = container.presence_service

    def _iso(value):
        return to_local_iso(value, offset) if value else None

    def _session_json(s: PresenceSession) -> dict:
        return {
            "id": s.session_id,
            "guestId": s.guest_id,
            "checkinAt": _iso(s.check_in_at),
            "checkoutAt": _iso(s.check_out_at),
            "isActive": s.is_active,
        }

    def _row_json(row: SessionWithGuest, *, ongoing_duration: bool) -> dict:
        s = row.session
        data = _session_json(s)
        data.update(guestDisplayId=row.guest.display_id, guestName=row.guest.name)
        if s.is_active and not ongoing_duration:
            data["duration"] = None
        else:
            data["duration"] = s.stay_minutes(now_utc())
        return data

    def _optional_at() -> dict:
        body = request.get_json(silent=True)
        if isinstance(body, dict) and body.get("at"):
            return {"at": body["at"]}
        return {}

    @app.route("/api/guests/<guest_id>/checkin", methods=["POST"], endpoint="api_guest_checkin")
    def api_guest_checkin(guest_id: str):
        session = presence.check_in(guest_id, **_optional_at())
        return ok(_session_json(session), 201, "Checked in")

    @app.route("/api/guests/<guest_id>/checkout", methods=["POST"], endpoint="api_guest_checkout")
    def api_guest_checkout(guest_id: str):
        session = presence.check_out(guest_id, **_optional_at())
        return ok(_session_json(session), 200, "Checked out")

    @app.route("/api/checkins/current", methods=["GET"], endpoint="api_checkins_current")
    def api_checkins_current():
        rows = presence.list_currently_present()
        return ok([_row_json(r, ongoing_duration=True) for r in rows])

    @app.route("/api/admin/dashboard/today-stats", methods=["GET"], endpoint="api_today_stats")
    @role_required
    def api_today_stats():
        return ok(presence.compute_today_stats().to_dict())

    @app.route("/api/admin/checkin-records", methods=["GET"], endpoint="api_checkin_records")
    @role_required
    def api_checkin_records():
        args = request.args
        result = presence.search_history(
            page=coerce_page(args.get("page")),
            limit=coerce_limit(args.get("limit")),
            start_date=args.get("startDate") or None,
            end_date=args.get("endDate") or None,
            guest_name=args.get("guestName"),
        )
        return ok(
            {
                "records": [_row_json(r, ongoing_duration=False) for r in result.records],
                "pagination": result.pagination.to_dict(),
            }
        )

    def _day_guest_json(row: DayGuest) -> dict:
        s = row.latest_session
        return {
            "guestId": row.guest.guest_id,
            "displayId": row.guest.display_id,
            "name": row.guest.name,
            "grade": row.guest.grade.value if row.guest.grade else None,
            "firstCheckinAt": _iso(row.first_check_in_at),
            "checkinAt": _iso(s.check_in_at),
            "checkoutAt": _iso(s.check_out_at),
            "isActive": s.is_active,
            "visits": row.visits,
        }

    @app.route("/api/checkins/today", methods=["GET"], endpoint="api_checkins_today")
    @role_required
    def api_checkins_today():
        return ok([_day_guest_json(r) for r in presence.guests_for_today()])

    @app.route("/api/checkins/by-date", methods=["GET"], endpoint="api_checkins_by_date")
    @role_required
    def api_checkins_by_date():
        day = request.args.get("date")
        if not day:
            raise ValidationError("date query parameter is required", field="date")
        return ok([_day_guest_json(r) for r in presence.guests_for_date(day)])

from __future__ import annotations

from datetime import timedelta
from typing import Any, Optional

from flask import Flask, jsonify, request

from ..common.datetime_utils import now_local, parse_iso_date, parse_iso_datetime
from ..common.serializers import to_jsonable
from ..common.validators import optional_float, require_coordinate
from ..core.constants import DEFAULT_HISTORY_LIMIT
from ..core.exceptions import ValidationError
from .model import DeviceInfo, Location


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def _location(data: dict) -> Optional[Location]:
    loc = data.get("location")
    if not loc:
        return None
    if not isinstance(loc, dict):
        raise ValidationError("Location must be an object")
    lat, lng = require_coordinate(loc.get("lat"), loc.get("lng"))
    return Location(lat=lat, lng=lng, accuracy=optional_float(loc.get("accuracy"), "Location accuracy"))


def _device(data: dict) -> Optional[DeviceInfo]:
    dev = data.get("device_info")
    if not dev:
        return None
    return DeviceInfo(
        device_id=dev.get("device_id"),
        device_type=dev.get("device_type"),
        app_version=dev.get("app_version"),
    )


def _punch_kwargs(data: dict) -> dict[str, Any]:
    return {
        "sample": data.get("biometric_data"),
        "modality": data.get("modality"),
        "location": _location(data),
        "device": _device(data),
        "quality_score": optional_float(data.get("quality_score"), "Quality score"),
        "now": parse_iso_datetime(data["timestamp"]) if data.get("timestamp") else None,
    }


def register(app: Flask, container) -> None:
    @app.route("/api/attendance/checkin", methods=["POST"], endpoint="api_checkin")
    def api_checkin():
        data = _json_body()
        outcome = container.attendance_service.check_in(
            data.get("staff_id"),
            data.get("facility_id"),
            **_punch_kwargs(data),
        )
        return jsonify({"success": True, "message": "Check-in recorded", "data": to_jsonable(outcome)}), 201

    @app.route("/api/attendance/checkout", methods=["POST"], endpoint="api_checkout")
    def api_checkout():
        data = _json_body()
        outcome = container.attendance_service.check_out(
            data.get("staff_id"),
            data.get("facility_id"),
            **_punch_kwargs(data),
        )
        return jsonify({"success": True, "message": "Check-out recorded", "data": to_jsonable(outcome)}), 200

    @app.route("/api/attendance/absence", methods=["POST"], endpoint="api_absence")
    def api_absence():
        data = _json_body()
        work_date = parse_iso_date(data["date"]) if data.get("date") else now_local().date()
        record = container.attendance_service.mark_absent(
            data.get("staff_id"),
            data.get("facility_id"),
            work_date=work_date,
            note=data.get("note"),
        )
        return jsonify({"success": True, "data": to_jsonable(record)}), 201

    @app.route("/api/attendance/break", methods=["POST"], endpoint="api_break")
    def api_break():
        data = _json_body()
        if not data.get("start") or not data.get("end"):
            raise ValidationError("start and end are required")
        start = parse_iso_datetime(data["start"])
        record = container.attendance_service.record_break(
            data.get("staff_id"),
            start=start,
            end=parse_iso_datetime(data["end"]),
            reason=data.get("reason"),
            now=start,
        )
        return jsonify({"success": True, "data": to_jsonable(record)}), 201

    @app.route("/api/attendance/<facility_id>/<day>", methods=["GET"], endpoint="api_facility_attendance")
    def api_facility_attendance(facility_id: str, day: str):
        records = container.attendance_service.list_for_facility(facility_id, parse_iso_date(day))
        return jsonify({"success": True, "data": to_jsonable(records)})

    @app.route("/api/attendance/staff/<staff_id>", methods=["GET"], endpoint="api_staff_attendance")
    def api_staff_attendance(staff_id: str):
        today = now_local().date()
        end = parse_iso_date(request.args["end"]) if request.args.get("end") else today
        start = (
            parse_iso_date(request.args["start"])
            if request.args.get("start")
            else end - timedelta(days=DEFAULT_HISTORY_LIMIT - 1)
        )
        records = container.attendance_service.list_for_staff(staff_id, start, end)
        return jsonify({"success": True, "data": to_jsonable(records)})

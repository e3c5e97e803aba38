from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.datetime_utils import now_local, parse_iso_date
from ..common.serializers import to_jsonable
from ..common.validators import require_enum
from ..core.constants import DEFAULT_ALERT_LIST_LIMIT
from ..core.enums import AlertStatus, AlertType, Severity
from ..core.exceptions import ValidationError
from .model import ActorRef


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def _actor(data: dict) -> ActorRef:
    actor = data.get("actor") or {}
    if not actor.get("id"):
        raise ValidationError("actor.id is required")
    return ActorRef(actor_id=str(actor["id"]), name=str(actor.get("name", "")), role=str(actor.get("role", "")))


def _optional_enum(enum_cls, value, field_name):
    return require_enum(enum_cls, value, field_name) if value else None


def register(app: Flask, container) -> None:
    @app.route("/api/alerts", methods=["GET"], endpoint="api_alerts_list")
    def api_alerts_list():
        args = request.args
        try:
            limit = int(args.get("limit", DEFAULT_ALERT_LIST_LIMIT))
        except ValueError:
            raise ValidationError("limit must be an integer")
        alerts = container.alert_lifecycle.list_alerts(
            facility_id=args.get("facility_id") or None,
            staff_id=args.get("staff_id") or None,
            alert_type=_optional_enum(AlertType, args.get("type"), "type"),
            severity=_optional_enum(Severity, args.get("severity"), "severity"),
            status=_optional_enum(AlertStatus, args.get("status"), "status"),
            limit=limit,
        )
        return jsonify({"success": True, "data": to_jsonable(alerts)})

    @app.route("/api/alerts/<int:alert_id>", methods=["GET"], endpoint="api_alerts_get")
    def api_alerts_get(alert_id: int):
        return jsonify({"success": True, "data": to_jsonable(container.alert_lifecycle.get(alert_id))})

    @app.route("/api/alerts", methods=["POST"], endpoint="api_alerts_create")
    def api_alerts_create():
        data = _json_body()
        payload = data.get("payload") or {}
        if not isinstance(payload, dict):
            raise ValidationError("payload must be an object")
        alert = container.alert_lifecycle.create_alert(
            alert_type=require_enum(AlertType, data.get("type"), "type"),
            severity=require_enum(Severity, data.get("severity"), "severity"),
            facility_id=data.get("facility_id"),
            staff_id=data.get("staff_id") or None,
            payload=payload,
        )
        return jsonify({"success": True, "data": to_jsonable(alert)}), 201

    @app.route("/api/alerts/<int:alert_id>/acknowledge", methods=["PUT"], endpoint="api_alerts_acknowledge")
    def api_alerts_acknowledge(alert_id: int):
        alert = container.alert_lifecycle.acknowledge(alert_id, _actor(_json_body()))
        return jsonify({"success": True, "data": to_jsonable(alert)})

    @app.route("/api/alerts/<int:alert_id>/resolve", methods=["PUT"], endpoint="api_alerts_resolve")
    def api_alerts_resolve(alert_id: int):
        data = _json_body()
        alert = container.alert_lifecycle.resolve(alert_id, _actor(data), data.get("resolution_notes"))
        return jsonify({"success": True, "data": to_jsonable(alert)})

    @app.route("/api/alerts/<int:alert_id>/delivered", methods=["PUT"], endpoint="api_alerts_delivered")
    def api_alerts_delivered(alert_id: int):
        alert = container.alert_lifecycle.confirm_delivery(alert_id)
        return jsonify({"success": True, "data": to_jsonable(alert)})

    @app.route("/api/alerts/absences/evaluate", methods=["POST"], endpoint="api_alerts_evaluate_absences")
    def api_alerts_evaluate_absences():
        data = _json_body()
        work_date = parse_iso_date(data["date"]) if data.get("date") else now_local().date()
        alert = container.alert_lifecycle.evaluate_absences(data.get("facility_id"), work_date)
        return jsonify({"success": True, "created": alert is not None, "data": to_jsonable(alert)})

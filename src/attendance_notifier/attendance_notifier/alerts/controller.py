from __future__ import annotations

from dataclasses import asdict
from typing import Optional

from flask import Flask, jsonify, request

from ..attendance.model import AttendanceWindow
from ..common.serialization import to_public
from ..common.web import (
    admin_required,
    arg_bool,
    arg_int,
    current_role,
    current_user_id,
    json_body,
    login_required,
    parse_date_field,
)
from ..core.enums import AlertSeverity, AlertType
from ..core.exceptions import ValidationError
from .model import AlertFilter, AlertView

# Request JSON (camelCase) -> AlertConfig field.
_CONFIG_FIELDS = {
    "consecutiveAbsenceThreshold": "consecutive_absence_threshold",
    "lowAttendanceThreshold": "low_attendance_threshold",
    "minRecordsForRate": "min_records_for_rate",
    "enableConsecutiveAlerts": "enable_consecutive_alerts",
    "enableLowAttendanceAlerts": "enable_low_attendance_alerts",
    "emailRecipients": "email_recipients",
    "escalateCriticalToStaff": "escalate_critical_to_staff",
}


def _enum_arg(enum_cls, name: str):
    raw = request.args.get(name)
    if not raw:
        return None
    try:
        return enum_cls(raw)
    except ValueError:
        raise ValidationError(f"Unknown {name}: {raw!r}")


def _view_json(view: AlertView) -> dict:
    out = to_public(view.alert)
    out.update(
        studentName=view.student_name,
        studentNumber=view.student_number,
        subjectName=view.subject_name,
        acknowledgedByName=view.acknowledged_by_name,
    )
    return out


def register(app: Flask, container) -> None:
    service = container.alert_service

    @app.route("/api/alerts", methods=["GET"], endpoint="list_alerts")
    @login_required
    def list_alerts():
        filters = AlertFilter(
            type=_enum_arg(AlertType, "type"),
            severity=_enum_arg(AlertSeverity, "severity"),
            acknowledged=arg_bool("acknowledged"),
            student_id=arg_int("studentId"),
            subject_id=arg_int("subjectId"),
        )
        page = arg_int("page", 1)
        limit = arg_int("limit", 20)
        views, total = service.list_alerts(filters, page=page, limit=limit, populate=True)
        return jsonify({"items": [_view_json(v) for v in views], "total": total, "page": page, "limit": limit})

    @app.route("/api/alerts/summary", methods=["GET"], endpoint="alert_summary")
    @login_required
    def alert_summary():
        return jsonify(to_public(service.summary()))

    @app.route("/api/alerts/<int:alert_id>/acknowledge", methods=["POST"], endpoint="acknowledge_alert")
    @login_required
    def acknowledge_alert(alert_id: int):
        alert = service.acknowledge(alert_id, user_id=current_user_id())
        return jsonify(to_public(alert))

    @app.route("/api/alerts/acknowledge", methods=["POST"], endpoint="acknowledge_alerts")
    @login_required
    def acknowledge_alerts():
        ids = json_body().get("alertIds")
        if not isinstance(ids, list):
            raise ValidationError("alertIds must be a list")
        count = service.acknowledge_many(ids, user_id=current_user_id())
        return jsonify({"acknowledged": count})

    @app.route("/api/alerts/scan", methods=["POST"], endpoint="scan_alerts")
    @admin_required
    def scan_alerts():
        data = json_body()
        start = parse_date_field(data, "startDate")
        end = parse_date_field(data, "endDate")
        window: Optional[AttendanceWindow] = None
        if start and end:
            window = AttendanceWindow(start=start, end=end)
        elif start or end:
            raise ValidationError("startDate and endDate must be given together")
        report = service.scan(window)
        return jsonify(asdict(report))

    @app.route("/api/alerts/config", methods=["GET"], endpoint="get_alert_config")
    @login_required
    def get_alert_config():
        return jsonify(to_public(service.get_config()))

    @app.route("/api/alerts/config", methods=["PUT"], endpoint="update_alert_config")
    @admin_required
    def update_alert_config():
        data = json_body()
        unknown = set(data) - set(_CONFIG_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown config field(s): {', '.join(sorted(unknown))}")
        changes = {_CONFIG_FIELDS[k]: v for k, v in data.items()}
        config = service.update_config(current_role=current_role(), user_id=current_user_id(), changes=changes)
        return jsonify(to_public(config))

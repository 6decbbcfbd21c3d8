from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.serialization import to_public
from ..common.web import admin_required, arg_int
from ..core.enums import EmailStatus
from ..core.exceptions import ValidationError


def register(app: Flask, container) -> None:
    service = container.email_queue_service

    @app.route("/api/emails/scheduled", methods=["GET"], endpoint="list_scheduled_emails")
    @admin_required
    def list_scheduled_emails():
        raw_status = request.args.get("status")
        try:
            status = EmailStatus(raw_status) if raw_status else None
        except ValueError:
            raise ValidationError(f"Unknown status: {raw_status!r}")
        emails = service.list_emails(status, page=arg_int("page", 1), limit=arg_int("limit", 20))
        return jsonify({"items": [to_public(e) for e in emails]})

    @app.route("/api/emails/scheduled/<int:email_id>/cancel", methods=["POST"], endpoint="cancel_scheduled_email")
    @admin_required
    def cancel_scheduled_email(email_id: int):
        result = service.cancel(email_id)
        body = {"ok": result.ok, "reason": result.reason}
        if result.email is not None:
            body["email"] = to_public(result.email)
        return jsonify(body), (200 if result.ok else 409)

from __future__ import annotations

from flask import Flask, jsonify

from ..common.validators import normalize_email
from ..common.web import json_body


def register(app: Flask, container) -> None:
    registry = container.unsubscribe_registry

    # Public endpoints: the token is the only credential a recipient has.
    @app.route("/api/unsubscribes", methods=["POST"], endpoint="unsubscribe")
    def unsubscribe():
        data = json_body()
        email = normalize_email(data.get("email") or "")
        token = registry.unsubscribe(email, data.get("reason"))
        return jsonify({"email": email, "token": token}), 201

    @app.route("/api/unsubscribes/resubscribe", methods=["POST"], endpoint="resubscribe")
    def resubscribe():
        status = registry.resubscribe(json_body().get("token") or "")
        return jsonify({"status": status.value})

    @app.route("/api/unsubscribes/check/<email>", methods=["GET"], endpoint="check_unsubscribe")
    def check_unsubscribe(email: str):
        email = normalize_email(email)
        return jsonify({"email": email, "unsubscribed": registry.is_unsubscribed(email)})

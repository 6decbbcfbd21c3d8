from __future__ import annotations

from flask import Flask, jsonify

from ..common.serialization import to_public
from ..common.web import admin_required


def register(app: Flask, container) -> None:
    registry = container.bounce_registry

    @app.route("/api/bounces/check/<email>", methods=["GET"], endpoint="check_bounce")
    @admin_required
    def check_bounce(email: str):
        bounce = registry.check(email)
        return jsonify(
            {
                "email": email.strip().lower(),
                "bounced": bounce is not None,
                "hardBounced": registry.is_hard_bounced(email),
                "bounce": to_public(bounce) if bounce else None,
            }
        )

    @app.route("/api/bounces/<email>", methods=["DELETE"], endpoint="remove_bounce")
    @admin_required
    def remove_bounce(email: str):
        registry.remove(email)
        return "", 204

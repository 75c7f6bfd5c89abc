"""Liveness and readiness endpoints."""
from flask import Blueprint, current_app

bp = Blueprint("health", __name__)


@bp.route("/health")
def health_check():
    return ("ok", 200, {"Content-Type": "text/plain"})


@bp.route("/ready")
def readiness_check():
    """Ready once a permission grant resource is wired into the app.

    No Graph call is made; token problems surface on the first grant request.
    """
    if current_app.extensions.get("permission_grants") is None:
        return ("grant resource not configured", 503, {"Content-Type": "text/plain"})
    return ("ready", 200, {"Content-Type": "text/plain"})

"""Health check endpoints."""
from flask import Blueprint, current_app, jsonify

bp = Blueprint("health", __name__)


@bp.route("/health")
def health_check():
    """Liveness: the process is serving requests."""
    return ("ok", 200, {"Content-Type": "text/plain"})


@bp.route("/ready")
def readiness_check():
    """Readiness: the privileged client is configured. Never echoes the key."""
    if current_app.extensions.get("supabase_admin") is None:
        return jsonify({"status": "not ready"}), 503
    return jsonify({"status": "ready"}), 200

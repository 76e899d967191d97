"""Account provisioning endpoint.

Server-side counterpart of the admin UI's "create user" action. The body is
``{email, password, role?, metadata?}``; responses are ``200 {user}``,
``400 {error}`` or ``500 {error}``.
"""
from __future__ import annotations
import logging

from flask import Blueprint, current_app, jsonify, request

from school_admin.api.decorators import get_caller_id, require_admin_token
from school_admin.core import provisioning_service

bp = Blueprint("provisioning", __name__)

logger = logging.getLogger(__name__)

ADMIN_CLIENT_EXTENSION = "supabase_admin"


@bp.route("/functions/v1/create-user", methods=["POST"])
@bp.route("/create-user", methods=["POST"])
@require_admin_token
def create_user():
    """Create an auth account with the privileged client."""
    cfg = current_app.config["APP_CONFIG"]
    admin_client = current_app.extensions[ADMIN_CLIENT_EXTENSION]

    # force: browsers calling the function do not always set Content-Type
    body = request.get_json(force=True, silent=True)

    result = provisioning_service.create_account(
        body,
        admin_client,
        password_min_length=cfg.password_min_length,
        operator=get_caller_id() or "unknown",
        correlation_id=request.headers.get("X-Correlation-Id"),
    )
    payload, status = provisioning_service.result_to_response(result)
    return jsonify(payload), status

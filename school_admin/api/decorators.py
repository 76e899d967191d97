"""
Flask decorators for caller authentication.

The provisioning endpoint only serves administrators signed in through the
Supabase auth service. Their access token (HS256, signed with the project
JWT secret) is verified here; the caller's ``app_metadata.role`` must be one
of ``PROVISIONING_ADMIN_ROLES``.
"""

import logging
from functools import wraps
from typing import Any, Dict, List, Optional

import jwt
from jwt.exceptions import (
    DecodeError,
    ExpiredSignatureError,
    InvalidAudienceError,
    InvalidSignatureError,
    InvalidTokenError,
)
from flask import current_app, g, jsonify, request

logger = logging.getLogger(__name__)


class TokenValidationError(Exception):
    """Exception raised when access token validation fails."""
    pass


def validate_access_token(token: str) -> Dict[str, Any]:
    """
    Validate a Supabase access token.

    Validations performed:
    1. Signature (HS256 with the project JWT secret)
    2. Expiration (exp claim, required)
    3. Audience (aud claim, "authenticated" by default)

    Args:
        token: JWT string (without "Bearer " prefix)

    Returns:
        dict: Validated token claims

    Raises:
        TokenValidationError: If any validation fails
    """
    cfg = current_app.config["APP_CONFIG"]

    try:
        return jwt.decode(
            token,
            cfg.supabase_jwt_secret,
            algorithms=["HS256"],
            audience=cfg.jwt_audience,
            options={"require": ["exp", "sub"]},
            leeway=5,
        )
    except ExpiredSignatureError:
        raise TokenValidationError("Token expired")
    except InvalidAudienceError:
        raise TokenValidationError("Invalid token audience")
    except InvalidSignatureError:
        raise TokenValidationError("Invalid token signature")
    except DecodeError:
        raise TokenValidationError("Malformed token")
    except InvalidTokenError as e:
        raise TokenValidationError(f"Token validation failed: {e}")


def caller_roles(claims: Dict[str, Any]) -> List[str]:
    """Application roles carried by the token.

    Only ``app_metadata`` is read: it is writable with the service-role key
    alone. ``user_metadata`` is editable by the signed-in user through
    ``auth.updateUser`` and never grants a role.
    """
    section = claims.get("app_metadata")
    if not isinstance(section, dict):
        return []
    role = section.get("role")
    if isinstance(role, str) and role.strip():
        return [role.strip().lower()]
    return []


def _error(status: int, message: str):
    return jsonify({"error": message}), status


def require_admin_token(fn):
    """
    Decorator requiring a valid administrator access token.

    Returns:
        401 {"error": ...} for a missing, malformed or invalid token
        403 {"error": ...} when the caller's role is not allowed to provision

    Example:
        @bp.route("/functions/v1/create-user", methods=["POST"])
        @require_admin_token
        def create_user():
            ...
    """

    @wraps(fn)
    def wrapper(*args, **kwargs):
        auth_header = request.headers.get("Authorization", "")

        if not auth_header:
            logger.warning("Provisioning request missing Authorization header")
            return _error(401, "Authorization header required")

        if not auth_header.startswith("Bearer "):
            logger.warning("Provisioning request with non-Bearer Authorization header")
            return _error(401, "Invalid Authorization header format. Expected 'Bearer <token>'")

        token = auth_header[7:].strip()
        if not token:
            return _error(401, "Bearer token is empty")

        try:
            claims = validate_access_token(token)
        except TokenValidationError as e:
            logger.warning("Provisioning token rejected: %s", e)
            return _error(401, str(e))

        cfg = current_app.config["APP_CONFIG"]
        roles = caller_roles(claims)
        if not any(role in cfg.provisioning_admin_roles for role in roles):
            logger.warning("Caller %s lacks provisioning role (has: %s)", claims.get("sub"), roles)
            return _error(403, "Insufficient permissions")

        g.caller_id = claims.get("sub")
        g.caller_claims = claims
        return fn(*args, **kwargs)

    return wrapper


def get_caller_id() -> Optional[str]:
    """Subject of the validated token. Must be called after @require_admin_token."""
    return getattr(g, "caller_id", None)

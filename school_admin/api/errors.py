"""Error handlers for the application.

Every error leaves as ``{"error": <message>}``. Unexpected failures get a
generic message; details go to the application log only.
"""
from flask import jsonify
from werkzeug.exceptions import HTTPException

INTERNAL_ERROR_MESSAGE = "An unexpected error occurred"


def register_error_handlers(app):
    """Register error handlers with the Flask app."""

    @app.errorhandler(400)
    def bad_request(error):
        return jsonify({"error": _description(error, "Bad Request")}), 400

    @app.errorhandler(401)
    def unauthorized(error):
        return jsonify({"error": "Authentication required"}), 401

    @app.errorhandler(403)
    def forbidden(error):
        return jsonify({"error": "Insufficient permissions"}), 403

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({"error": "Resource not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({"error": "Method not allowed"}), 405

    @app.errorhandler(413)
    def request_too_large(error):
        limit = app.config.get("MAX_CONTENT_LENGTH") or 0
        return jsonify({"error": f"Request payload exceeds maximum allowed size ({limit // 1024} KB)"}), 413

    @app.errorhandler(500)
    def internal_error(error):
        app.logger.error("Internal error: %s", error, exc_info=True)
        return jsonify({"error": INTERNAL_ERROR_MESSAGE}), 500

    @app.errorhandler(Exception)
    def handle_exception(error):
        """Handle uncaught exceptions."""
        if isinstance(error, HTTPException):
            return error

        app.logger.error("Unhandled exception: %s", error, exc_info=True)
        return jsonify({"error": INTERNAL_ERROR_MESSAGE}), 500


def _description(error, default: str) -> str:
    description = getattr(error, "description", None)
    if isinstance(description, str) and description:
        return description
    return default

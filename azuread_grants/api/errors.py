"""JSON error handlers for the application."""
from flask import jsonify
from werkzeug.exceptions import HTTPException

from azuread_grants.core.errors import (
    ConfigValidationError,
    RemoteOperationError,
    RemoteUpdateError,
)


def register_error_handlers(app):
    """Register error handlers with the Flask app."""

    @app.errorhandler(ConfigValidationError)
    def validation_failed(error: ConfigValidationError):
        """Configuration rejected before any remote call."""
        return jsonify({
            "error": "Bad Request",
            "message": "Invalid permission grant configuration",
            "details": error.errors,
        }), 400

    @app.errorhandler(RemoteOperationError)
    def remote_failed(error: RemoteOperationError):
        """Graph API call failed; the caller decides whether to retry."""
        app.logger.error(f"Remote {error.operation} failed for {error.object_id}: {error}")
        payload = {
            "error": "Bad Gateway",
            "message": str(error),
            "operation": error.operation,
            "object_id": error.object_id,
        }
        if error.status_code is not None:
            payload["remote_status"] = error.status_code
        if isinstance(error, RemoteUpdateError):
            payload["phase"] = error.phase
            payload["drift"] = error.drift
        return jsonify(payload), 502

    @app.errorhandler(400)
    def bad_request(error):
        return jsonify({"error": "Bad Request", "message": _description(error, "Malformed request")}), 400

    @app.errorhandler(401)
    def unauthorized(error):
        return jsonify({"error": "Unauthorized", "message": "Authentication required"}), 401

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({"error": "Not Found", "message": _description(error, "Resource not found")}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({"error": "Method Not Allowed", "message": "Method not allowed for this endpoint"}), 405

    @app.errorhandler(413)
    def request_too_large(error):
        return jsonify({"error": "Payload Too Large", "message": "Request payload exceeds maximum allowed size (64 KB)"}), 413

    @app.errorhandler(503)
    def unavailable(error):
        return jsonify({"error": "Service Unavailable", "message": _description(error, "Service unavailable")}), 503

    @app.errorhandler(500)
    def internal_error(error):
        app.logger.error(f"Internal error: {error}", exc_info=True)
        return jsonify({"error": "Internal Server Error", "message": "An unexpected error occurred"}), 500

    @app.errorhandler(Exception)
    def handle_exception(error):
        """Handle uncaught exceptions."""
        if isinstance(error, HTTPException):
            return error

        app.logger.error(f"Unhandled exception: {error}", exc_info=True)
        return jsonify({"error": "Internal Server Error", "message": "An unexpected error occurred"}), 500


def _description(error, default: str) -> str:
    """Use the abort() description unless it is werkzeug's stock text."""
    description = getattr(error, "description", None)
    if not description or description == type(error).description:
        return default
    return str(description)

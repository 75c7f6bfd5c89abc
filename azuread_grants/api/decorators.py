"""
Flask decorators for API authentication.

Grant endpoints are protected by a static Bearer token (RFC 6750 header
format) compared in constant time against the configured API token.
"""

import hashlib
import hmac
import logging
from functools import wraps

from flask import current_app, g, jsonify, request

logger = logging.getLogger(__name__)


def _unauthorized(message: str):
    return jsonify({"error": "Unauthorized", "message": message}), 401


def _log_auth_attempt(token: str, success: bool) -> None:
    """Log authentication attempt without leaking the token (SHA256, truncated)."""
    token_hash = hashlib.sha256(token.encode()).hexdigest()[:12]
    correlation_id = request.headers.get("X-Correlation-Id", "none")
    status = "SUCCESS" if success else "FAILED"
    logger.info(
        f"{status} API auth | token_hash={token_hash} | path={request.path} | "
        f"correlation_id={correlation_id} | client_ip={request.remote_addr}"
    )


def require_api_token(fn):
    """Require 'Authorization: Bearer <API_STATIC_TOKEN>' on the wrapped view.

    Returns 401 when the header is missing or malformed, the token is
    empty, no API token is configured, or the token does not match.

    Example:
        @bp.route("/grants", methods=["POST"])
        @require_api_token
        def create_grant():
            ...
    """
    @wraps(fn)
    def wrapper(*args, **kwargs):
        auth_header = request.headers.get("Authorization", "")
        if not auth_header:
            logger.warning("API request missing Authorization header")
            return _unauthorized("Authorization header required. Use 'Authorization: Bearer <token>'")

        if not auth_header.startswith("Bearer "):
            logger.warning(f"API request with invalid Authorization format: {auth_header[:20]}")
            return _unauthorized("Invalid Authorization header format. Expected 'Bearer <token>'")

        token = auth_header[7:].strip()
        if not token:
            return _unauthorized("Bearer token is empty")

        cfg = current_app.config.get("APP_CONFIG")
        expected = getattr(cfg, "api_token", "") if cfg else ""
        if not expected:
            logger.error("API token not configured; rejecting request")
            return _unauthorized("API authentication is not configured")

        if not hmac.compare_digest(token.encode(), expected.encode()):
            _log_auth_attempt(token, success=False)
            return _unauthorized("Invalid bearer token")

        _log_auth_attempt(token, success=True)
        g.auth_method = "static"
        return fn(*args, **kwargs)

    return wrapper

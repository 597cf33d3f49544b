"""
Flask decorators for bearer token authentication.

Implements RFC 6750 (Bearer Token Usage) on top of the service's JwtDecoder.
Any request without a verifiable token is rejected with 401 before the route
handler runs; on success the verified Jwt is placed on flask.g.
"""

import logging
from functools import wraps
from typing import Any, Dict, Optional

from flask import current_app, g, jsonify, request

from cloakworks.core.token_trust import Jwt, JwtDecoder, TokenValidationError

logger = logging.getLogger(__name__)

USERNAME_CLAIM = "preferred_username"


def get_decoder() -> JwtDecoder:
    """JwtDecoder built by the application factory."""
    return current_app.extensions["jwt_decoder"]


def _unauthorized(message: str, error_code: str = "invalid_token"):
    """401 response with an RFC 6750 challenge."""
    response = jsonify({"error": "Unauthorized", "message": message})
    response.status_code = 401
    description = message.replace('"', "'")
    if error_code:
        response.headers["WWW-Authenticate"] = f'Bearer error="{error_code}", error_description="{description}"'
    else:
        response.headers["WWW-Authenticate"] = "Bearer"
    return response


def extract_bearer_token() -> Optional[str]:
    """Bearer token from the Authorization header, or None when absent or not Bearer."""
    auth_header = request.headers.get("Authorization", "")
    scheme, _, token = auth_header.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip()


def require_bearer_token(fn):
    """
    Decorator requiring a valid bearer JWT.

    Returns:
        Decorated view; 401 on missing, malformed, or unverifiable token

    Example:
        @bp.route("/products")
        @require_bearer_token
        def list_products():
            ...
    """

    @wraps(fn)
    def wrapper(*args, **kwargs):
        auth_header = request.headers.get("Authorization", "")
        if not auth_header:
            logger.warning(f"Request to {request.path} missing Authorization header")
            return _unauthorized("Authorization header required. Use 'Authorization: Bearer <token>'", error_code="")

        token = extract_bearer_token()
        if token is None:
            logger.warning(f"Request to {request.path} with non-Bearer Authorization scheme")
            return _unauthorized("Invalid Authorization header format. Expected 'Bearer <token>'", "invalid_request")

        if not token:
            logger.warning(f"Request to {request.path} with empty Bearer token")
            return _unauthorized("Bearer token is empty", "invalid_request")

        try:
            verified = get_decoder().decode(token)
        except TokenValidationError as e:
            logger.warning(f"JWT validation failed for {request.path}: {e}")
            return _unauthorized(str(e))

        g.jwt = verified
        return fn(*args, **kwargs)

    return wrapper


def current_jwt() -> Optional[Jwt]:
    """Verified token of the current request. Must be called after @require_bearer_token."""
    return getattr(g, "jwt", None)


def current_claims() -> Optional[Dict[str, Any]]:
    token = current_jwt()
    return token.claims if token is not None else None


def current_username() -> Optional[str]:
    token = current_jwt()
    return token.get_claim_as_string(USERNAME_CLAIM) if token is not None else None

"""Error handlers for the services (JSON only)."""
import logging

from flask import jsonify
from werkzeug.exceptions import HTTPException

logger = logging.getLogger(__name__)


class GatewayError(Exception):
    """Downstream service unreachable or timed out."""

    def __init__(self, service: str, detail: str):
        self.service = service
        self.detail = detail
        super().__init__(f"{service}: {detail}")


def register_error_handlers(app):
    """Register error handlers with the Flask app."""

    @app.errorhandler(400)
    def bad_request(error):
        description = getattr(error, "description", None) or "Malformed request"
        return jsonify({"error": "Bad Request", "message": str(description)}), 400

    @app.errorhandler(401)
    def unauthorized(error):
        response = jsonify({"error": "Unauthorized", "message": "Authentication required"})
        response.headers["WWW-Authenticate"] = "Bearer"
        return response, 401

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({"error": "Not Found", "message": "Resource not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({"error": "Method Not Allowed", "message": str(error.description)}), 405

    @app.errorhandler(GatewayError)
    def bad_gateway(error):
        logger.error(f"Downstream failure: {error}")
        return jsonify({
            "error": "Bad Gateway",
            "message": f"Upstream service '{error.service}' is unavailable",
        }), 502

    @app.errorhandler(500)
    def internal_error(error):
        logger.error(f"Internal error: {error}", exc_info=True)
        return jsonify({"error": "Internal Server Error", "message": "An unexpected error occurred"}), 500

    @app.errorhandler(Exception)
    def handle_exception(error):
        """Handle uncaught exceptions."""
        # Pass through HTTP errors
        if isinstance(error, HTTPException):
            return error

        logger.error(f"Unhandled exception: {error}", exc_info=True)
        return jsonify({"error": "Internal Server Error", "message": "An unexpected error occurred"}), 500

"""Liveness and readiness probes (unauthenticated)."""
import logging

from flask import Blueprint, current_app
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

bp = Blueprint("health", __name__)

logger = logging.getLogger(__name__)


@bp.route("/health")
def health_check():
    """Process is up."""
    return ("ok", 200, {"Content-Type": "text/plain"})


@bp.route("/ready")
def readiness_check():
    """Ready when the database (resource services only) answers a trivial query."""
    if "sqlalchemy" in current_app.extensions:
        from cloakworks.core.models import db

        try:
            db.session.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            logger.warning(f"Readiness probe failed: {e}")
            return ("database unavailable", 503, {"Content-Type": "text/plain"})
    return ("ready", 200, {"Content-Type": "text/plain"})

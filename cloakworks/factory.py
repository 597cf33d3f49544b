"""Flask application factory shared by the gateway and resource services.

Each service module (gateway_app, product_app, user_app) calls
create_service_app() with its own blueprints.
"""
from __future__ import annotations
import logging
from typing import Iterable, Mapping, Optional

from flask import Blueprint, Flask
from werkzeug.middleware.proxy_fix import ProxyFix

from cloakworks.api import errors, health
from cloakworks.config import load_settings
from cloakworks.core.token_trust import JwtDecoder

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def _configure_logging(level: str) -> None:
    """Root logger to stdout at the configured level (gunicorn captures it)."""
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger().setLevel(level)


def create_service_app(
    service_name: str,
    blueprints: Iterable[Blueprint],
    use_database: bool = False,
    environ: Optional[Mapping[str, str]] = None,
    decoder: Optional[JwtDecoder] = None,
) -> Flask:
    """Create and configure one service.

    Args:
        service_name: Name used for logs and the default SQLite file
        blueprints: Service routes (all bearer-protected)
        use_database: Bind Flask-SQLAlchemy and create tables
        environ: Environment mapping (defaults to os.environ)
        decoder: Pre-built JwtDecoder (defaults to one built from settings)
    """
    cfg = load_settings(service_name, environ)
    _configure_logging(cfg.log_level)

    app = Flask(__name__)
    app.config["APP_CONFIG"] = cfg

    # Trust X-Forwarded-* from the gateway / ingress
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1)  # type: ignore

    # One decoder per process; the key set is fetched lazily unless prefetch is on
    if decoder is None:
        decoder = JwtDecoder.from_config(cfg)
    app.extensions["jwt_decoder"] = decoder
    if cfg.jwks_prefetch:
        decoder.fetch_jwk_set()

    if use_database:
        from cloakworks.core.models import db

        app.config["SQLALCHEMY_DATABASE_URI"] = cfg.database_url
        db.init_app(app)
        with app.app_context():
            db.create_all()

    app.register_blueprint(health.bp)
    for blueprint in blueprints:
        app.register_blueprint(blueprint)

    errors.register_error_handlers(app)

    mode_label = "DEMO" if cfg.demo_mode else "PRODUCTION"
    logger.info(f"[{service_name}] Mode={mode_label}; trusting keys from {cfg.jwk_set_uri}")
    if not cfg.jwks_verify_tls:
        logger.warning(f"[{service_name}] WARNING: JWKS certificate verification disabled - development only")

    return app

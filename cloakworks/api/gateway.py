"""
Gateway relay: verifies the bearer token, then forwards the request to the
owning resource service.

Routing:
    /products, /products/*  -> PRODUCT_SERVICE_URL
    /users, /users/*        -> USER_SERVICE_URL

The Authorization header is relayed unchanged so the resource service
verifies the same token again. Connection failures and timeouts become 502;
there are no retries.
"""

from __future__ import annotations
import logging

import requests
from flask import Blueprint, Response, current_app, request

from cloakworks.api.decorators import current_username, require_bearer_token
from cloakworks.api.errors import GatewayError

bp = Blueprint("gateway", __name__)

logger = logging.getLogger(__name__)

RELAY_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]

# RFC 7230 section 6.1, plus headers requests recomputes itself
HOP_BY_HOP_HEADERS = {
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailer",
    "trailers",
    "transfer-encoding",
    "upgrade",
    "host",
    "content-length",
}


def get_session() -> requests.Session:
    return current_app.extensions["gateway_session"]


def _upstream_url(base_url: str, prefix: str, path: str) -> str:
    url = f"{base_url}{prefix}"
    if path:
        url = f"{url}/{path}"
    query = request.query_string.decode("latin-1")
    if query:
        url = f"{url}?{query}"
    return url


def _relay(service: str, base_url: str, prefix: str, path: str) -> Response:
    cfg = current_app.config["APP_CONFIG"]
    url = _upstream_url(base_url, prefix, path)

    headers = {
        name: value
        for name, value in request.headers.items()
        if name.lower() not in HOP_BY_HOP_HEADERS
    }
    forwarded_for = request.headers.get("X-Forwarded-For")
    client_ip = request.remote_addr or ""
    headers["X-Forwarded-For"] = f"{forwarded_for}, {client_ip}" if forwarded_for else client_ip

    logger.info(f"Relaying {request.method} {request.path} for {current_username()} to {service}")

    try:
        upstream = get_session().request(
            request.method,
            url,
            headers=headers,
            data=request.get_data(),
            timeout=cfg.gateway_timeout,
            allow_redirects=False,
        )
    except requests.RequestException as e:
        raise GatewayError(service, str(e))

    # requests has already decoded the body, so content-encoding no longer applies
    response_headers = [
        (name, value)
        for name, value in upstream.headers.items()
        if name.lower() not in HOP_BY_HOP_HEADERS and name.lower() != "content-encoding"
    ]
    return Response(upstream.content, status=upstream.status_code, headers=response_headers)


@bp.route("/products", defaults={"path": ""}, methods=RELAY_METHODS)
@bp.route("/products/<path:path>", methods=RELAY_METHODS)
@require_bearer_token
def relay_products(path: str):
    cfg = current_app.config["APP_CONFIG"]
    return _relay("product-service", cfg.product_service_url, "/products", path)


@bp.route("/users", defaults={"path": ""}, methods=RELAY_METHODS)
@bp.route("/users/<path:path>", methods=RELAY_METHODS)
@require_bearer_token
def relay_users(path: str):
    cfg = current_app.config["APP_CONFIG"]
    return _relay("user-service", cfg.user_service_url, "/users", path)

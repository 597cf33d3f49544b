"""API gateway entry point.

Gunicorn: gunicorn -c gunicorn.conf.py "cloakworks.gateway_app:create_app()"
"""
from __future__ import annotations
from typing import Mapping, Optional

import requests
from flask import Flask

from cloakworks.core.token_trust import JwtDecoder
from cloakworks.factory import create_service_app


def create_app(
    environ: Optional[Mapping[str, str]] = None,
    decoder: Optional[JwtDecoder] = None,
    session: Optional[requests.Session] = None,
) -> Flask:
    from cloakworks.api import gateway

    app = create_service_app("gateway", [gateway.bp], environ=environ, decoder=decoder)
    # Pooled connections to the resource services
    app.extensions["gateway_session"] = session or requests.Session()
    return app


if __name__ == "__main__":
    create_app().run(host="0.0.0.0", port=8080)

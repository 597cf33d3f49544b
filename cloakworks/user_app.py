"""User service entry point.

Gunicorn: gunicorn -c gunicorn.conf.py "cloakworks.user_app:create_app()"
"""
from __future__ import annotations
from typing import Mapping, Optional

from flask import Flask

from cloakworks.core.token_trust import JwtDecoder
from cloakworks.factory import create_service_app


def create_app(environ: Optional[Mapping[str, str]] = None, decoder: Optional[JwtDecoder] = None) -> Flask:
    from cloakworks.api import users

    return create_service_app(
        "user-service",
        [users.bp],
        use_database=True,
        environ=environ,
        decoder=decoder,
    )


if __name__ == "__main__":
    create_app().run(host="0.0.0.0", port=8080)

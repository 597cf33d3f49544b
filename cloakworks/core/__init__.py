"""Core layer: token trust, models and data access.

This package has no Flask routing; the api package builds on it.
"""
from .token_trust import (
    DEFAULT_ISSUER_URI,
    Jwt,
    JwtDecoder,
    TokenValidationError,
    build_jwk_set_uri,
    resolve_issuer_uri,
)

__all__ = [
    "DEFAULT_ISSUER_URI",
    "Jwt",
    "JwtDecoder",
    "TokenValidationError",
    "build_jwk_set_uri",
    "resolve_issuer_uri",
]

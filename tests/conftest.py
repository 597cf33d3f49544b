"""Pytest shared fixtures: RSA keys, a stubbed JWKS endpoint, token minting, service clients."""
import base64
import io
import json
import pathlib
import ssl
import sys
import time
import urllib.request
from typing import Optional

# Add project root to Python path
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest
import requests
from authlib.jose import JsonWebKey, jwt as authlib_jwt
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from cloakworks.gateway_app import create_app as create_gateway_app
from cloakworks.product_app import create_app as create_product_app
from cloakworks.user_app import create_app as create_user_app

ISSUER = "https://auth.example.com/realms/demo"
JWKS_URL = f"{ISSUER}/protocol/openid-connect/certs"
DEFAULT_KID = "default-key-id"


# ─────────────────────────────────────────────────────────────────────────────
# Network Guard Rails
# ─────────────────────────────────────────────────────────────────────────────
def key_set_response(body) -> io.BytesIO:
    """What urlopen() yields for a JWKS request: a readable, closable body."""
    if not isinstance(body, bytes):
        body = json.dumps(body).encode("utf-8")
    return io.BytesIO(body)


@pytest.fixture(autouse=True)
def _block_network(monkeypatch):
    """No test may reach a real host; fixtures below patch what they serve."""

    def _refuse(self, method, url, *args, **kwargs):
        raise RuntimeError(f"Unexpected network access in tests: {method} {url}")

    def _refuse_urlopen(request, *args, **kwargs):
        raise RuntimeError(f"Unexpected network access in tests: {getattr(request, 'full_url', request)}")

    monkeypatch.setattr(requests.Session, "request", _refuse)
    monkeypatch.setattr(urllib.request, "urlopen", _refuse_urlopen)


# ─────────────────────────────────────────────────────────────────────────────
# RSA Key Pairs and JWKS
# ─────────────────────────────────────────────────────────────────────────────
def _generate_key_pair() -> dict:
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    public_pem = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return {"private_key": private_key, "private_pem": private_pem, "public_pem": public_pem}


@pytest.fixture(scope="session")
def rsa_key_pair():
    """Key pair whose public half is published by the stub JWKS endpoint."""
    return _generate_key_pair()


@pytest.fixture(scope="session")
def untrusted_key_pair():
    """Key pair never published anywhere."""
    return _generate_key_pair()


def jwk_from_key_pair(key_pair: dict, kid: str = DEFAULT_KID) -> dict:
    jwk = JsonWebKey.import_key(key_pair["public_pem"], {"kty": "RSA"}).as_dict()
    jwk["kid"] = kid
    jwk["use"] = "sig"
    jwk["alg"] = "RS256"
    return jwk


@pytest.fixture()
def jwks_endpoint(monkeypatch, rsa_key_pair):
    """Serve a JWKS at any URL ending in /protocol/openid-connect/certs."""

    class JWKSEndpoint:
        def __init__(self):
            self.keys = [jwk_from_key_pair(rsa_key_pair)]
            self.requested_urls = []
            self.verify_flags = []

        @property
        def fetch_count(self) -> int:
            return len(self.requested_urls)

        def set_keys(self, keys: list[dict]):
            self.keys = keys

    endpoint = JWKSEndpoint()

    def _stub_urlopen(request, timeout=None, context=None):
        url = request.full_url
        if url.endswith("/protocol/openid-connect/certs"):
            endpoint.requested_urls.append(url)
            endpoint.verify_flags.append(context is None or context.verify_mode != ssl.CERT_NONE)
            return key_set_response({"keys": list(endpoint.keys)})
        raise RuntimeError(f"Unexpected HTTP GET in test: {url}")

    monkeypatch.setattr(urllib.request, "urlopen", _stub_urlopen)
    return endpoint


# ─────────────────────────────────────────────────────────────────────────────
# JWT Token Helpers
# ─────────────────────────────────────────────────────────────────────────────
def create_valid_jwt(
    key_pair: dict,
    issuer: str = ISSUER,
    sub: str = "user-123",
    username: str = "alice",
    exp_offset: int = 3600,
    nbf_offset: int = 0,
    kid: Optional[str] = DEFAULT_KID,
    extra_claims: Optional[dict] = None,
) -> str:
    """Create an RS256-signed JWT shaped like a Keycloak access token."""
    now = int(time.time())
    header = {"alg": "RS256", "typ": "JWT"}
    if kid is not None:
        header["kid"] = kid
    payload = {
        "iss": issuer,
        "sub": sub,
        "exp": now + exp_offset,
        "nbf": now + nbf_offset,
        "iat": now,
        "azp": "frontend",
        "preferred_username": username,
        "realm_access": {"roles": ["user"]},
    }
    if extra_claims:
        payload.update(extra_claims)
    token = authlib_jwt.encode(header, payload, key_pair["private_pem"])
    return token.decode("utf-8") if isinstance(token, bytes) else token


def with_header(token: str, header: dict) -> str:
    """Swap a token's JOSE header, leaving payload and signature untouched."""
    _, payload, signature = token.split(".")
    segment = base64.urlsafe_b64encode(json.dumps(header).encode("utf-8")).decode("ascii").rstrip("=")
    return f"{segment}.{payload}.{signature}"


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


# ─────────────────────────────────────────────────────────────────────────────
# Service Apps and Clients
# ─────────────────────────────────────────────────────────────────────────────
def service_environ(**overrides) -> dict:
    environ = {
        "KEYCLOAK_ISSUER_URI": ISSUER,
        "DATABASE_URL": "sqlite://",
        "LOG_LEVEL": "INFO",
    }
    environ.update(overrides)
    return environ


@pytest.fixture()
def product_app(jwks_endpoint):
    app = create_product_app(environ=service_environ())
    app.config.update(TESTING=True)
    return app


@pytest.fixture()
def product_client(product_app):
    with product_app.test_client() as client:
        yield client


@pytest.fixture()
def user_app(jwks_endpoint):
    app = create_user_app(environ=service_environ())
    app.config.update(TESTING=True)
    return app


@pytest.fixture()
def user_client(user_app):
    with user_app.test_client() as client:
        yield client


@pytest.fixture()
def gateway_app(jwks_endpoint):
    app = create_gateway_app(
        environ=service_environ(
            PRODUCT_SERVICE_URL="http://products.internal:8080",
            USER_SERVICE_URL="http://users.internal:8080/",
        )
    )
    app.config.update(TESTING=True)
    return app


@pytest.fixture()
def gateway_client(gateway_app):
    with gateway_app.test_client() as client:
        yield client


@pytest.fixture()
def valid_token(rsa_key_pair):
    return create_valid_jwt(rsa_key_pair)


# ─────────────────────────────────────────────────────────────────────────────
# Pytest Configuration
# ─────────────────────────────────────────────────────────────────────────────
def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "critical: marks tests as critical security tests (P0 priority)"
    )

"""
Keycloak token trust: JWK set retrieval and bearer JWT verification.

Every service builds one JwtDecoder at startup from KEYCLOAK_ISSUER_URI.
The decoder fetches the realm's public keys from
``{issuer}/protocol/openid-connect/certs`` and verifies incoming tokens:

- RSA signature verification against the key named by the JWT ``kid`` (RFC 7517)
- Expiration / not-before validation with a small leeway (RFC 7519)
- Issuer validation only when an expected issuer is configured

Key retrieval and caching are PyJWKClient's: the key set is cached for
``lifespan`` seconds, resolved keys are kept in a bounded LRU cache, and an
unknown ``kid`` forces one refetch (key rotation).
"""

import logging
import os
import ssl
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

import jwt
from jwt import PyJWK, PyJWKClient, PyJWKSet
from jwt.exceptions import (
    DecodeError,
    ExpiredSignatureError,
    ImmatureSignatureError,
    InvalidIssuerError,
    InvalidSignatureError,
    InvalidTokenError,
    MissingRequiredClaimError,
    PyJWKClientConnectionError,
    PyJWKClientError,
    PyJWKError,
    PyJWKSetError,
)

logger = logging.getLogger(__name__)

DEFAULT_ISSUER_URI = "http://keycloak.keycloak.svc.cluster.local:8080/realms/microservices"
JWK_SET_PATH = "/protocol/openid-connect/certs"
DEFAULT_ALGORITHMS = ["RS256"]
MAX_CACHED_KEYS = 16


class TokenValidationError(Exception):
    """Raised when a bearer token cannot be verified."""
    pass


def resolve_issuer_uri(environ: Optional[Mapping[str, str]] = None) -> str:
    """Read KEYCLOAK_ISSUER_URI, falling back to the in-cluster default when absent or empty."""
    if environ is None:
        environ = os.environ
    issuer_uri = environ.get("KEYCLOAK_ISSUER_URI")
    if not issuer_uri:
        issuer_uri = DEFAULT_ISSUER_URI
    return issuer_uri


def build_jwk_set_uri(issuer_uri: str) -> str:
    """Key-set URL for an issuer (plain suffix concatenation)."""
    return issuer_uri + JWK_SET_PATH


def insecure_ssl_context() -> ssl.SSLContext:
    """TLS context that accepts any certificate and any hostname (development only)."""
    context = ssl.create_default_context()
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE
    return context


@dataclass(frozen=True)
class Jwt:
    """A verified token: raw value, JOSE header, and claim set."""
    token_value: str
    headers: Dict[str, Any] = field(default_factory=dict)
    claims: Dict[str, Any] = field(default_factory=dict)

    def get_claim(self, name: str, default: Any = None) -> Any:
        return self.claims.get(name, default)

    def get_claim_as_string(self, name: str) -> Optional[str]:
        value = self.claims.get(name)
        if value is None:
            return None
        return str(value)

    @property
    def subject(self) -> Optional[str]:
        return self.get_claim_as_string("sub")


class JwtDecoder:
    """Verifies bearer JWTs against a remote JWK set.

    Usage:
        decoder = JwtDecoder("https://auth.example.com/realms/demo/protocol/openid-connect/certs")
        token = decoder.decode("eyJhbGc...")
        token.get_claim_as_string("preferred_username")
    """

    def __init__(
        self,
        jwk_set_uri: str,
        verify_tls: bool = True,
        timeout: float = 5.0,
        lifespan: float = 300.0,
        leeway: int = 5,
        algorithms: Optional[List[str]] = None,
        expected_issuer: Optional[str] = None,
    ):
        self.jwk_set_uri = jwk_set_uri
        self.verify_tls = verify_tls
        self.leeway = leeway
        self.algorithms = list(algorithms or DEFAULT_ALGORITHMS)
        self.expected_issuer = expected_issuer or None

        ssl_context = None
        if not verify_tls:
            ssl_context = insecure_ssl_context()
            logger.warning(
                f"⚠️ TLS verification DISABLED for JWK set retrieval from {jwk_set_uri} (development only)"
            )

        try:
            self.jwks_client = PyJWKClient(
                jwk_set_uri,
                cache_keys=True,                 # Resolved keys kept per kid
                max_cached_keys=MAX_CACHED_KEYS,
                lifespan=lifespan,               # Key set refetched after this many seconds
                headers={"Accept": "application/json", "User-Agent": "Cloakworks/1.0"},
                timeout=timeout,
                ssl_context=ssl_context,
            )
        except PyJWKClientError as e:
            raise RuntimeError(f"Invalid JWKS client settings: {e}") from e

    @classmethod
    def from_config(cls, cfg) -> "JwtDecoder":
        """Build a decoder from a ServiceConfig."""
        return cls(
            cfg.jwk_set_uri,
            verify_tls=cfg.jwks_verify_tls,
            timeout=cfg.jwks_timeout,
            lifespan=cfg.jwks_cache_lifespan,
            leeway=cfg.jwt_leeway,
            expected_issuer=cfg.keycloak_expected_issuer or None,
        )

    def fetch_jwk_set(self) -> PyJWKSet:
        """Fetch the JWK set now, replacing the cached copy.

        Raises:
            TokenValidationError: Key set unreachable, unparsable, or without usable keys
        """
        try:
            jwk_set = self.jwks_client.get_jwk_set(refresh=True)
        except (PyJWKClientError, PyJWKSetError, PyJWKError, ValueError) as e:
            raise self._key_set_error(e)

        kids = [key.key_id for key in jwk_set.keys]
        logger.info(f"Loaded {len(kids)} signing key(s) from {self.jwk_set_uri}: {kids}")
        return jwk_set

    def _key_set_error(self, error: Exception) -> TokenValidationError:
        if isinstance(error, PyJWKClientConnectionError):
            logger.error(f"❌ JWK set retrieval failed for {self.jwk_set_uri}: {error}")
            return TokenValidationError(f"Unable to retrieve JWK set: {error}")
        if isinstance(error, ValueError):
            return TokenValidationError(f"JWK set response is not valid JSON: {error}")
        if isinstance(error, (PyJWKSetError, PyJWKError)):
            return TokenValidationError(f"JWK set contains no usable keys: {error}")
        return TokenValidationError(f"No usable signing key: {error}")

    def get_signing_key(self, token: str) -> PyJWK:
        """Select the verification key named by the token's kid.

        Raises:
            TokenValidationError: Malformed header, unknown kid, or key set failure
        """
        try:
            # Rejects non-string kid values before they reach the key cache
            jwt.get_unverified_header(token)
            return self.jwks_client.get_signing_key_from_jwt(token)
        except InvalidTokenError as e:
            raise TokenValidationError(f"Token decode error (malformed JWT): {e}")
        except (PyJWKClientError, PyJWKSetError, PyJWKError, ValueError) as e:
            raise self._key_set_error(e)

    def decode(self, token: str) -> Jwt:
        """Verify a bearer token and return its claims.

        Raises:
            TokenValidationError: Signature mismatch, expired, malformed,
                unknown key, or key set unreachable
        """
        if not token:
            raise TokenValidationError("Bearer token is empty")

        signing_key = self.get_signing_key(token)

        try:
            headers = jwt.get_unverified_header(token)
            claims = jwt.decode(
                token,
                signing_key.key,
                algorithms=self.algorithms,
                issuer=self.expected_issuer,
                options={
                    "verify_signature": True,
                    "verify_exp": True,
                    "verify_nbf": True,
                    "verify_iss": self.expected_issuer is not None,
                    "verify_aud": False,
                    "require": ["exp"],
                },
                leeway=self.leeway,
            )
        except ExpiredSignatureError:
            raise TokenValidationError("Token expired (exp claim)")
        except ImmatureSignatureError:
            raise TokenValidationError("Token not yet valid (nbf claim)")
        except InvalidIssuerError as e:
            raise TokenValidationError(f"Invalid issuer: {e}")
        except MissingRequiredClaimError as e:
            raise TokenValidationError(f"Missing required claim: {e}")
        except InvalidSignatureError:
            raise TokenValidationError("Invalid signature (token tampered or signed by an untrusted key)")
        except DecodeError as e:
            raise TokenValidationError(f"Token decode error (malformed JWT): {e}")
        except InvalidTokenError as e:
            raise TokenValidationError(f"Token validation failed: {e}")

        logger.debug(f"JWT validated for subject {claims.get('sub')!r}")
        return Jwt(token_value=token, headers=headers, claims=claims)

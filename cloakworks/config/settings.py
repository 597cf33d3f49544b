"""Settings loader for the gateway and resource services (environment driven)."""
from __future__ import annotations
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from cloakworks.core.token_trust import DEFAULT_ISSUER_URI, build_jwk_set_uri, resolve_issuer_uri


def _env_flag(environ: Mapping[str, str], name: str, default: str = "false") -> bool:
    return environ.get(name, default).strip().lower() == "true"


def _env_number(environ: Mapping[str, str], name: str, default: float, cast=float):
    """Parse a numeric environment variable, failing loudly on garbage."""
    raw = environ.get(name, "").strip()
    if not raw:
        return cast(default)
    try:
        value = cast(raw)
    except ValueError:
        raise RuntimeError(f"Environment variable {name} must be a number, got {raw!r}")
    if value < 0:
        raise RuntimeError(f"Environment variable {name} must not be negative, got {raw!r}")
    return value


@dataclass
class ServiceConfig:
    """Configuration container shared by the gateway and resource services."""
    service_name: str
    demo_mode: bool = False

    # Keycloak / JWKS
    keycloak_issuer_uri: str = DEFAULT_ISSUER_URI
    keycloak_expected_issuer: str = ""
    jwks_verify_tls: bool = True
    jwks_timeout: float = 5.0
    jwks_cache_lifespan: float = 300.0
    jwks_prefetch: bool = False
    jwt_leeway: int = 5

    # Persistence (resource services)
    database_url: str = ""

    # Gateway routing
    product_service_url: str = "http://product-service:8080"
    user_service_url: str = "http://user-service:8080"
    gateway_timeout: float = 30.0

    log_level: str = "INFO"

    @property
    def jwk_set_uri(self) -> str:
        """Key-set URL derived from the issuer."""
        return build_jwk_set_uri(self.keycloak_issuer_uri)


def load_settings(service_name: str, environ: Optional[Mapping[str, str]] = None) -> ServiceConfig:
    """Load service settings from the environment.

    Args:
        service_name: "gateway", "product-service" or "user-service"
        environ: Mapping to read from (defaults to os.environ)

    Returns:
        ServiceConfig

    Raises:
        RuntimeError: On invalid values, or when certificate verification is
            switched off outside DEMO_MODE.
    """
    if environ is None:
        environ = os.environ

    demo_mode = _env_flag(environ, "DEMO_MODE")

    # Skipping TLS verification on the JWKS fetch is a development-only bypass.
    skip_tls_verify = _env_flag(environ, "KEYCLOAK_INSECURE_SKIP_TLS_VERIFY")
    if skip_tls_verify and not demo_mode:
        raise RuntimeError(
            "KEYCLOAK_INSECURE_SKIP_TLS_VERIFY=true is only allowed with DEMO_MODE=true. "
            "Use a CA-signed certificate for Keycloak in any other environment."
        )

    default_db = f"sqlite:///{service_name.replace('-', '_')}.db"

    cfg = ServiceConfig(
        service_name=service_name,
        demo_mode=demo_mode,
        keycloak_issuer_uri=resolve_issuer_uri(environ),
        keycloak_expected_issuer=environ.get("KEYCLOAK_EXPECTED_ISSUER", "").strip(),
        jwks_verify_tls=not skip_tls_verify,
        jwks_timeout=_env_number(environ, "JWKS_TIMEOUT", 5.0),
        jwks_cache_lifespan=_env_number(environ, "JWKS_CACHE_LIFESPAN", 300.0),
        jwks_prefetch=_env_flag(environ, "JWKS_PREFETCH"),
        jwt_leeway=_env_number(environ, "JWT_LEEWAY", 5, cast=int),
        database_url=environ.get("DATABASE_URL", "").strip() or default_db,
        product_service_url=(environ.get("PRODUCT_SERVICE_URL", "").strip()
                             or "http://product-service:8080").rstrip("/"),
        user_service_url=(environ.get("USER_SERVICE_URL", "").strip()
                          or "http://user-service:8080").rstrip("/"),
        gateway_timeout=_env_number(environ, "GATEWAY_TIMEOUT", 30.0),
        log_level=environ.get("LOG_LEVEL", "INFO").strip().upper() or "INFO",
    )

    mode_label = "DEMO" if demo_mode else "PRODUCTION"
    print(f"[settings] Service={service_name}; Mode={mode_label}; jwks={cfg.jwk_set_uri}")

    if not cfg.jwks_verify_tls:
        print("[settings] WARNING: TLS certificate verification DISABLED for JWKS retrieval "
              "(development only, never deploy with KEYCLOAK_INSECURE_SKIP_TLS_VERIFY=true)")

    return cfg

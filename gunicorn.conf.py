"""Gunicorn configuration shared by the three services.

Pick the application on the command line, e.g.:

    gunicorn -c gunicorn.conf.py "cloakworks.gateway_app:create_app()"
    gunicorn -c gunicorn.conf.py "cloakworks.product_app:create_app()"
    gunicorn -c gunicorn.conf.py "cloakworks.user_app:create_app()"

Settings come from the environment (GUNICORN_BIND, GUNICORN_WORKERS,
GUNICORN_THREADS, GUNICORN_TIMEOUT, LOG_LEVEL).
"""
import os

bind = os.environ.get("GUNICORN_BIND", "0.0.0.0:8080")
workers = int(os.environ.get("GUNICORN_WORKERS", "2"))
threads = int(os.environ.get("GUNICORN_THREADS", "4"))
timeout = int(os.environ.get("GUNICORN_TIMEOUT", "60"))

accesslog = "-"
errorlog = "-"
loglevel = os.environ.get("LOG_LEVEL", "info").lower()


def post_fork(server, worker):
    """
    Called just after a worker has been forked.

    Each worker builds its own JwtDecoder (and JWK set cache) when the
    application factory runs; this hook only reports the trust settings.
    """
    issuer = os.environ.get("KEYCLOAK_ISSUER_URI") or "(in-cluster default)"
    worker.log.info(f"Worker {worker.pid} trusting tokens from issuer {issuer}")

    insecure = os.environ.get("KEYCLOAK_INSECURE_SKIP_TLS_VERIFY", "false").strip().lower() == "true"
    demo_mode = os.environ.get("DEMO_MODE", "false").strip().lower() == "true"
    if insecure and demo_mode:
        worker.log.warning(
            "KEYCLOAK_INSECURE_SKIP_TLS_VERIFY=true: JWKS certificates are NOT verified (development only)"
        )

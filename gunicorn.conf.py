"""Gunicorn configuration for the provisioning service.

Start with:
    gunicorn -c gunicorn.conf.py "school_admin.flask_app:create_app()"

Secret loading priority (checked in on_starting, resolved again by create_app):
1. /run/secrets/supabase_service_role_key (Docker secrets)
2. SUPABASE_SERVICE_ROLE_KEY environment variable

The arbiter refuses to start when neither is present, so no worker ever runs
without the privileged credential or with a public key in its place.
"""
import os
from pathlib import Path

bind = os.environ.get("GUNICORN_BIND", "0.0.0.0:8000")
workers = int(os.environ.get("GUNICORN_WORKERS", "2"))
worker_class = "sync"

# Outbound auth calls are bounded by SUPABASE_REQUEST_TIMEOUT (default 5s);
# keep the worker timeout well above it so a slow call surfaces as a 500
# envelope rather than a killed worker.
timeout = int(os.environ.get("GUNICORN_TIMEOUT", "30"))

accesslog = "-"
errorlog = "-"
loglevel = os.environ.get("GUNICORN_LOG_LEVEL", "info")

SECRET_NAMES = ("supabase_service_role_key", "supabase-service-role-key")


def on_starting(server):
    """Refuse to start when the service-role key is not available."""
    secrets_dir = Path("/run/secrets")
    for name in SECRET_NAMES:
        secret_file = secrets_dir / name
        if secret_file.exists() and secret_file.is_file() and secret_file.read_text().strip():
            server.log.info(f"Found {name} in /run/secrets")
            return

    if os.environ.get("SUPABASE_SERVICE_ROLE_KEY", "").strip():
        server.log.info("Using SUPABASE_SERVICE_ROLE_KEY from environment")
        return

    server.log.error("SUPABASE_SERVICE_ROLE_KEY not found in /run/secrets or environment")
    raise RuntimeError("Refusing to start without the service-role key")


def post_fork(server, worker):
    """Log worker boot; the app factory builds its own privileged client."""
    worker.log.info(f"Worker {worker.pid} booted (privileged client: ***)")

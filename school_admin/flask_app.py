"""Flask application factory for the provisioning service.

This is a trusted server entry point: ``create_app()`` resolves the
service-role key and refuses to build the app when it is missing, so a
misconfigured worker fails at boot rather than serving degraded requests.

Run with gunicorn:
    gunicorn -c gunicorn.conf.py "school_admin.flask_app:create_app()"
"""
from __future__ import annotations
import ipaddress
from typing import Optional

from flask import Flask, abort, request
from werkzeug.middleware.proxy_fix import ProxyFix

from school_admin.config import AppConfig, load_settings
from school_admin.core.supabase.admin import build_privileged_client, load_privileged_credential
from school_admin.core.supabase.client import SupabaseClient


# ─────────────────────────────────────────────────────────────────────────────
# Application Factory
# ─────────────────────────────────────────────────────────────────────────────
def create_app(cfg: Optional[AppConfig] = None, admin_client: Optional[SupabaseClient] = None) -> Flask:
    """Create and configure Flask application.

    Args:
        cfg: Preloaded configuration (defaults to load_settings())
        admin_client: Prebuilt privileged client (defaults to one built from
            the process environment)

    Raises:
        MissingPrivilegedCredentialError: If the service-role key is absent
        CredentialMismatchError: If the configured key is not a service-role key
    """
    cfg = cfg or load_settings()

    if admin_client is None:
        admin_client = build_privileged_client(
            cfg.supabase_url,
            load_privileged_credential(),
            timeout=cfg.request_timeout,
        )

    app = Flask(__name__)
    app.config["APP_CONFIG"] = cfg
    app.config["MAX_CONTENT_LENGTH"] = cfg.max_content_length
    app.extensions["supabase_admin"] = admin_client

    # Trust X-Forwarded-* headers from proxy (nginx / API gateway)
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1)  # type: ignore

    trusted_proxy_networks = []
    for entry in cfg.trusted_proxy_ips.split(","):
        entry = entry.strip()
        if not entry:
            continue
        try:
            trusted_proxy_networks.append(ipaddress.ip_network(entry, strict=False))
        except ValueError:
            continue
    app.config["TRUSTED_PROXY_NETWORKS"] = trusted_proxy_networks

    from school_admin.api import errors, health, provisioning

    app.register_blueprint(health.bp)
    app.register_blueprint(provisioning.bp)

    errors.register_error_handlers(app)
    _register_middleware(app, trusted_proxy_networks)

    mode_label = "DEMO" if cfg.demo_mode else "PRODUCTION"
    print(f"[flask_app] Mode={mode_label}")
    print("[flask_app] Provisioning endpoint registered at /functions/v1/create-user (privileged client: ***)")

    if cfg.demo_mode:
        print("[flask_app] WARNING: Demo mode active - local Supabase defaults in use")

    return app


def _register_middleware(app: Flask, trusted_proxy_networks: list):
    """Register before_request middleware."""

    @app.before_request
    def enforce_proxy_headers() -> None:
        """Validate proxy headers from trusted sources only."""
        forwarded_for = request.headers.get("X-Forwarded-For")
        original = request.environ.get("werkzeug.proxy_fix.orig") or {}
        original_remote = original.get("REMOTE_ADDR")
        if forwarded_for and original_remote:
            try:
                address = ipaddress.ip_address(original_remote)
                if not any(address in network for network in trusted_proxy_networks):
                    abort(400, description="Untrusted proxy")
            except ValueError:
                abort(400, description="Invalid proxy address")

        if forwarded_for and "," in forwarded_for:
            abort(400, description="Multiple forwarded clients not permitted")


if __name__ == "__main__":
    create_app().run(host="0.0.0.0", port=5000, debug=False)

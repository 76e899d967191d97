"""Settings loader with environment variable and Docker secrets integration.

Only public / non-privileged configuration lives in ``AppConfig``. The
service-role key is resolved separately by
``school_admin.core.supabase.admin.load_privileged_credential`` so that a
config object can be handed to any component without carrying it.
"""
from __future__ import annotations
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

# Supabase CLI local stack defaults (supabase start)
LOCAL_SUPABASE_URL = "http://127.0.0.1:54321"
LOCAL_JWT_SECRET = "super-secret-jwt-token-with-at-least-32-characters-long"

PASSWORD_MIN_LENGTH_FLOOR = 6


def _load_secret_from_file(secret_name: str, env_var: str | None = None) -> str | None:
    """
    Load secret from /run/secrets (Docker secrets pattern).

    Priority:
    1. /run/secrets/{secret_name} (Docker secrets mount)
    2. Environment variable (fallback)

    Args:
        secret_name: Name of the secret file in /run/secrets
        env_var: Optional environment variable name to check as fallback

    Returns:
        Secret value or None if not found
    """
    secret_file = Path("/run/secrets") / secret_name

    if secret_file.exists() and secret_file.is_file():
        try:
            secret_value = secret_file.read_text().strip()
            if secret_value:
                print(f"[settings] ✓ Loaded {secret_name} from /run/secrets")
                return secret_value
        except OSError as e:
            print(f"[settings] ✗ Failed to read /run/secrets/{secret_name}: {e}")

    if env_var:
        secret_value = os.getenv(env_var)
        if secret_value:
            print(f"[settings] ✓ Loaded {env_var} from environment (fallback)")
            return secret_value

    return None


@dataclass
class AppConfig:
    """Application configuration container."""
    # Mode
    demo_mode: bool

    # Supabase project
    supabase_url: str
    supabase_anon_key: str = ""

    # Caller token verification
    supabase_jwt_secret: str = ""
    jwt_audience: str = "authenticated"
    provisioning_admin_roles: list[str] = field(default_factory=lambda: ["super_admin"])

    # Outbound calls
    request_timeout: float = 5.0

    # Provisioning policy
    password_min_length: int = 8

    # HTTP
    trusted_proxy_ips: str = "127.0.0.1/32,::1/128"
    max_content_length: int = 65536


def _get_or_generate(var_name: str, demo_default: Optional[str] = None, required: bool = True, demo_mode: bool = False) -> str:
    """Get environment variable or use demo default."""
    value = os.environ.get(var_name)
    if value:
        return value

    if demo_mode and demo_default is not None:
        print(f"[demo-mode] Using default for {var_name}")
        os.environ[var_name] = demo_default
        return demo_default

    if not required:
        return ""

    raise RuntimeError(f"Environment variable {var_name} is required in production mode.")


def _positive_float(var_name: str, default: float) -> float:
    raw = os.environ.get(var_name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        raise RuntimeError(f"{var_name} must be a number, got '{raw}'")
    if value <= 0:
        raise RuntimeError(f"{var_name} must be greater than zero")
    return value


def load_settings() -> AppConfig:
    """Load application settings from environment and /run/secrets."""
    demo_mode = os.environ.get("DEMO_MODE", "false").lower() == "true"

    supabase_url = _get_or_generate(
        "SUPABASE_URL",
        demo_default=LOCAL_SUPABASE_URL,
        demo_mode=demo_mode,
    ).rstrip("/")

    # Public key: only needed by restricted entry points, so optional here
    supabase_anon_key = os.environ.get("SUPABASE_ANON_KEY", "").strip()

    # JWT secret verifies caller access tokens; never a response field
    supabase_jwt_secret = _load_secret_from_file("supabase_jwt_secret", "SUPABASE_JWT_SECRET")
    if not supabase_jwt_secret:
        if demo_mode:
            supabase_jwt_secret = LOCAL_JWT_SECRET
            print("[demo-mode] Using local Supabase JWT secret")
        else:
            raise RuntimeError("SUPABASE_JWT_SECRET not found in /run/secrets or environment")

    jwt_audience = os.environ.get("SUPABASE_JWT_AUDIENCE", "authenticated").strip() or "authenticated"

    provisioning_admin_roles = [
        role.strip().lower()
        for role in os.environ.get("PROVISIONING_ADMIN_ROLES", "super_admin").split(",")
        if role.strip()
    ]
    if not provisioning_admin_roles:
        provisioning_admin_roles = ["super_admin"]

    request_timeout = _positive_float("SUPABASE_REQUEST_TIMEOUT", 5.0)

    password_min_length = int(_positive_float("PASSWORD_MIN_LENGTH", 8))
    if password_min_length < PASSWORD_MIN_LENGTH_FLOOR:
        print(f"[settings] PASSWORD_MIN_LENGTH below {PASSWORD_MIN_LENGTH_FLOOR}; using {PASSWORD_MIN_LENGTH_FLOOR}")
        password_min_length = PASSWORD_MIN_LENGTH_FLOOR

    trusted_proxy_ips = os.environ.get("TRUSTED_PROXY_IPS")
    if not trusted_proxy_ips:
        is_testing = os.environ.get("PYTEST_CURRENT_TEST") is not None
        if demo_mode or is_testing:
            trusted_proxy_ips = "127.0.0.1/32,::1/128"
            if demo_mode:
                print("[demo-mode] Defaulted TRUSTED_PROXY_IPS to localhost ranges")
        else:
            raise RuntimeError("TRUSTED_PROXY_IPS is required when DEMO_MODE is false.")

    mode_label = "DEMO" if demo_mode else "PRODUCTION"
    print(f"[settings] Mode={mode_label}; supabase_url={supabase_url}; admin_roles={','.join(provisioning_admin_roles)}")

    if demo_mode:
        print("[settings] WARNING: Local Supabase defaults in use. Do not deploy with these defaults.")

    return AppConfig(
        demo_mode=demo_mode,
        supabase_url=supabase_url,
        supabase_anon_key=supabase_anon_key,
        supabase_jwt_secret=supabase_jwt_secret,
        jwt_audience=jwt_audience,
        provisioning_admin_roles=provisioning_admin_roles,
        request_timeout=request_timeout,
        password_min_length=password_min_length,
        trusted_proxy_ips=trusted_proxy_ips,
    )

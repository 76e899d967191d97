"""Privileged (service-role key) client construction and auth admin calls.

Only trusted server entry points import this module: the Flask provisioning
app (``school_admin.flask_app``) and ``scripts/provision.py``. The key is
read from the process environment or Docker secrets, never from a request.
"""
from __future__ import annotations
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from .client import REQUEST_TIMEOUT, SupabaseClient
from .credentials import PRIVILEGED_ROLE, PrivilegedCredential, key_role
from .exceptions import CredentialMismatchError, MalformedResponseError, MissingPrivilegedCredentialError

logger = logging.getLogger(__name__)

SERVICE_ROLE_ENV_VAR = "SUPABASE_SERVICE_ROLE_KEY"
SERVICE_ROLE_SECRET_NAMES = ("supabase_service_role_key", "supabase-service-role-key")


def load_privileged_credential(secrets_dir: Optional[Path] = None) -> str:
    """Resolve the service-role key from the trusted process environment.

    Priority:
    1. /run/secrets/supabase_service_role_key (Docker secrets, both naming conventions)
    2. SUPABASE_SERVICE_ROLE_KEY environment variable

    Raises:
        MissingPrivilegedCredentialError: If the key is not configured
    """
    base = secrets_dir if secrets_dir is not None else Path("/run/secrets")
    for secret_name in SERVICE_ROLE_SECRET_NAMES:
        secret_path = base / secret_name
        if secret_path.exists() and secret_path.is_file():
            secret = secret_path.read_text().strip()
            if secret:
                logger.info("Loaded %s from %s", secret_name, base)
                return secret

    secret = os.environ.get(SERVICE_ROLE_ENV_VAR, "").strip()
    if secret:
        logger.info("Loaded %s from environment", SERVICE_ROLE_ENV_VAR)
        return secret

    raise MissingPrivilegedCredentialError(
        f"{SERVICE_ROLE_ENV_VAR} not found. Provide it via Docker secrets or the "
        "environment of the trusted server process."
    )


def build_privileged_client(public_endpoint: str, secret_key: Optional[str], timeout: float = REQUEST_TIMEOUT) -> SupabaseClient:
    """Build a client authorized with the service-role key.

    Never degrades to a restricted configuration: a missing key or a key
    that identifies itself as public is a hard failure.

    Raises:
        ValueError: If the endpoint is empty
        MissingPrivilegedCredentialError: If the key is absent or empty
        CredentialMismatchError: If the key is an anon/publishable key
    """
    if not public_endpoint or not public_endpoint.strip():
        raise ValueError("Supabase endpoint is required")
    if not secret_key or not secret_key.strip():
        raise MissingPrivilegedCredentialError("Service-role key is required to build the privileged client")

    secret_key = secret_key.strip()
    role = key_role(secret_key)
    if role is not None and role != PRIVILEGED_ROLE:
        raise CredentialMismatchError(
            f"Key with role '{role}' cannot be used for the privileged client; "
            "a service-role key is required"
        )
    return SupabaseClient(public_endpoint.strip(), PrivilegedCredential(secret_key), timeout=timeout)


class AuthAdminService:
    """Administrative operations of the Supabase auth (GoTrue) API."""

    def __init__(self, client: SupabaseClient):
        """Initialize the auth admin service.

        Args:
            client: Client built by build_privileged_client
        """
        if not client.privileged:
            raise CredentialMismatchError("Auth admin operations require the privileged client")
        self.client = client

    def create_user(
        self,
        email: str,
        password: str,
        *,
        email_confirm: bool = True,
        user_metadata: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Create an auth user and return the collaborator's user object.

        Raises:
            SupabaseAPIError: When the auth service rejects the request
            MalformedResponseError: When the response is not a user object
            requests.RequestException: On network failure or timeout
        """
        payload = {
            "email": email,
            "password": password,
            "email_confirm": email_confirm,
            "user_metadata": user_metadata or {},
        }
        resp = self.client.post("/auth/v1/admin/users", json=payload)
        try:
            body = resp.json()
        except ValueError as exc:
            raise MalformedResponseError(f"Auth service returned non-JSON body (HTTP {resp.status_code})") from exc

        # Older GoTrue releases wrap the user as {"user": {...}}
        if isinstance(body, dict) and isinstance(body.get("user"), dict):
            body = body["user"]
        if not isinstance(body, dict):
            raise MalformedResponseError("Auth service response is not a user object")
        return body

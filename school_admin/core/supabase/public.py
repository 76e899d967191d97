"""Restricted (anon key) client construction.

Safe to use from any execution context. This module must not import
``admin``: the restricted entry points (diagnostic scripts, browser-facing
config) stay unable to reach the privileged construction path.
"""
from __future__ import annotations

from .client import REQUEST_TIMEOUT, SupabaseClient
from .credentials import PRIVILEGED_ROLE, RestrictedCredential, key_role
from .exceptions import CredentialMismatchError


def build_restricted_client(public_endpoint: str, public_key: str, timeout: float = REQUEST_TIMEOUT) -> SupabaseClient:
    """Build a client authorized with the public anon / publishable key.

    Args:
        public_endpoint: Project URL (e.g. https://xyz.supabase.co)
        public_key: Anon or publishable key

    Raises:
        ValueError: If endpoint or key is empty
        CredentialMismatchError: If the key is a service-role / secret key
    """
    if not public_endpoint or not public_endpoint.strip():
        raise ValueError("Supabase endpoint is required")
    if not public_key or not public_key.strip():
        raise ValueError("Supabase public key is required")
    if key_role(public_key.strip()) == PRIVILEGED_ROLE:
        raise CredentialMismatchError(
            "A service-role key was supplied to the restricted client; "
            "use the anon/publishable key here"
        )
    return SupabaseClient(public_endpoint.strip(), RestrictedCredential(public_key.strip()), timeout=timeout)

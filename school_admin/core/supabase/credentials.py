"""Credential value types for the two Supabase API keys.

A restricted (anon / publishable) key is safe to embed in any client. A
privileged (service-role / secret) key bypasses row-level security and the
email-verification flow, so its value is kept out of ``repr()``, ``str()``
and anything serialized back to a caller.
"""
from __future__ import annotations
from typing import Optional

import jwt

SECRET_KEY_PREFIX = "sb_secret_"
PUBLISHABLE_KEY_PREFIX = "sb_publishable_"

PRIVILEGED_ROLE = "service_role"
RESTRICTED_ROLE = "anon"


def key_role(key: str) -> Optional[str]:
    """Return the role a Supabase API key claims for itself.

    Handles both the prefixed key format (``sb_secret_...`` /
    ``sb_publishable_...``) and legacy JWT keys, whose ``role`` claim is read
    without verifying the signature. Returns None when the key carries no
    recognisable role.
    """
    if key.startswith(SECRET_KEY_PREFIX):
        return PRIVILEGED_ROLE
    if key.startswith(PUBLISHABLE_KEY_PREFIX):
        return RESTRICTED_ROLE
    try:
        claims = jwt.decode(key, options={"verify_signature": False})
    except jwt.PyJWTError:
        return None
    role = claims.get("role")
    return role if isinstance(role, str) else None


def mask(value: Optional[str]) -> str:
    """Masked preview of a public value for startup diagnostics."""
    if not value:
        return "<missing>"
    if len(value) <= 12:
        return "***"
    return f"{value[:6]}...{value[-4:]}"


class RestrictedCredential:
    """Public API key, authorized for anonymous-level operations only."""

    __slots__ = ("_key",)

    def __init__(self, key: str):
        self._key = key

    @property
    def value(self) -> str:
        return self._key

    def __repr__(self) -> str:
        return f"RestrictedCredential({mask(self._key)})"


class PrivilegedCredential:
    """Service-role key. Only ever lives in the trusted server process."""

    __slots__ = ("_key",)

    def __init__(self, key: str):
        self._key = key

    def reveal(self) -> str:
        """Return the raw key for building request headers."""
        return self._key

    def __repr__(self) -> str:
        return "PrivilegedCredential(***)"

    __str__ = __repr__

    def __reduce__(self):
        raise TypeError("PrivilegedCredential cannot be serialized")

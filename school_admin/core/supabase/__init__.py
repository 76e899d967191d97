"""Supabase API client library.

Architecture:
- client.py: HTTP client with API-key headers, timeouts and error mapping
- credentials.py: Restricted / privileged key value types
- public.py: Restricted (anon key) client construction
- rest.py: Read-only PostgREST queries for diagnostics (restricted path)
- admin.py: Privileged (service-role key) client construction + auth admin API
- exceptions.py: Typed exceptions for error handling

Only the shared building blocks are re-exported here. Each construction path
is imported explicitly, so loading one never loads the other:

    from school_admin.core.supabase.public import build_restricted_client
    from school_admin.core.supabase.admin import build_privileged_client
"""
from .client import (
    SupabaseClient,
    REQUEST_TIMEOUT,
    error_message,
)
from .credentials import (
    RestrictedCredential,
    PrivilegedCredential,
    key_role,
    mask,
)
from .exceptions import (
    SupabaseError,
    SupabaseAPIError,
    MalformedResponseError,
    MissingPrivilegedCredentialError,
    CredentialMismatchError,
)

__all__ = [
    # Client
    "SupabaseClient",
    "REQUEST_TIMEOUT",
    "error_message",

    # Credentials
    "RestrictedCredential",
    "PrivilegedCredential",
    "key_role",
    "mask",

    # Exceptions
    "SupabaseError",
    "SupabaseAPIError",
    "MalformedResponseError",
    "MissingPrivilegedCredentialError",
    "CredentialMismatchError",
]

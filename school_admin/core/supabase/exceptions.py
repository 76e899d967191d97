"""Supabase-specific exceptions for error handling."""


class SupabaseError(Exception):
    """Base exception for all Supabase operations."""
    pass


class SupabaseAPIError(SupabaseError):
    """HTTP error from a Supabase service (GoTrue auth or PostgREST).

    Attributes:
        status_code: HTTP status code
        message: Error message extracted from the response
        endpoint: API endpoint that failed
    """

    def __init__(self, status_code: int, message: str, endpoint: str):
        self.status_code = status_code
        self.message = message
        self.endpoint = endpoint
        super().__init__(f"[{status_code}] {endpoint}: {message}")


class MalformedResponseError(SupabaseError):
    """Response body could not be parsed into the expected shape."""
    pass


class MissingPrivilegedCredentialError(SupabaseError):
    """Service-role key is absent from the trusted process environment."""
    pass


class CredentialMismatchError(SupabaseError):
    """A key was handed to the wrong construction path (public vs privileged)."""
    pass

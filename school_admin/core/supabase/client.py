"""Low-level HTTP client for the Supabase REST and auth APIs.

Handles API-key headers, request timeouts and HTTP error mapping. Clients are
only built through ``public.build_restricted_client`` and
``admin.build_privileged_client``.
"""
from __future__ import annotations
from typing import Any, Dict, Optional, Union

import requests

from .credentials import PrivilegedCredential, RestrictedCredential
from .exceptions import SupabaseAPIError

# Passed to requests as-is: bounds the connect and each wait between received
# bytes, not the total response time.
REQUEST_TIMEOUT = 5

Credential = Union[RestrictedCredential, PrivilegedCredential]


class SupabaseClient:
    """HTTP client bound to one project endpoint and one API key.

    Usage:
        client = build_restricted_client("https://xyz.supabase.co", anon_key)
        resp = client.get("/rest/v1/students", params={"limit": 5})
    """

    def __init__(self, base_url: str, credential: Credential, timeout: float = REQUEST_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self._credential = credential
        self.timeout = timeout

    @property
    def privileged(self) -> bool:
        return isinstance(self._credential, PrivilegedCredential)

    def __repr__(self) -> str:
        return f"SupabaseClient({self.base_url!r}, privileged={self.privileged})"

    def _headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        if isinstance(self._credential, PrivilegedCredential):
            key = self._credential.reveal()
        else:
            key = self._credential.value
        headers = {"apikey": key, "Authorization": f"Bearer {key}"}
        if extra:
            headers.update(extra)
        return headers

    def get(self, path: str, params: Optional[Dict[str, Any]] = None, **kwargs) -> requests.Response:
        """Execute GET request.

        Raises:
            SupabaseAPIError: On HTTP error
            requests.RequestException: On network failure or timeout
        """
        url = f"{self.base_url}{path}"
        headers = self._headers(kwargs.pop("headers", None))
        resp = requests.get(url, params=params, headers=headers, timeout=self.timeout, **kwargs)
        self._handle_error(resp, path)
        return resp

    def post(self, path: str, json: Optional[Dict[str, Any]] = None, **kwargs) -> requests.Response:
        """Execute POST request.

        Raises:
            SupabaseAPIError: On HTTP error
            requests.RequestException: On network failure or timeout
        """
        url = f"{self.base_url}{path}"
        headers = self._headers(kwargs.pop("headers", None))
        resp = requests.post(url, json=json, headers=headers, timeout=self.timeout, **kwargs)
        self._handle_error(resp, path)
        return resp

    def _handle_error(self, resp: requests.Response, path: str) -> None:
        """Raise SupabaseAPIError when the response status indicates an error.

        The endpoint is reported as the request path, never the full URL with
        query parameters.
        """
        if resp.status_code >= 400:
            raise SupabaseAPIError(resp.status_code, error_message(resp), path)


def error_message(resp: requests.Response) -> str:
    """Extract the human-readable message from a Supabase error response.

    GoTrue reports ``msg`` (or ``error_description``), PostgREST reports
    ``message``; older deployments use ``error``.
    """
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for field in ("msg", "message", "error_description", "error"):
            value = body.get(field)
            if isinstance(value, str) and value:
                return value
    text = (getattr(resp, "text", "") or "").strip()
    return text or f"HTTP {resp.status_code}"

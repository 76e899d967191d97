"""Read-only table queries through the restricted client.

Supports the filter-by-column, limit-N query shape used by the diagnostic
scripts. Writes are not exposed here.
"""
from __future__ import annotations
from typing import Any, Dict, List, Optional

from .client import SupabaseClient
from .exceptions import CredentialMismatchError, MalformedResponseError

READABLE_TABLES = frozenset({"students", "teachers", "schools", "classes", "profiles", "timetables"})
DEFAULT_LIMIT = 10
MAX_LIMIT = 1000


def _filter_value(value: Any) -> str:
    if value is None:
        return "is.null"
    if isinstance(value, bool):
        return f"eq.{str(value).lower()}"
    return f"eq.{value}"


def select_rows(
    client: SupabaseClient,
    table: str,
    columns: str = "*",
    filters: Optional[Dict[str, Any]] = None,
    limit: int = DEFAULT_LIMIT,
) -> List[Dict[str, Any]]:
    """Select rows from a table with equality filters.

    Args:
        client: Restricted client
        table: One of READABLE_TABLES
        columns: PostgREST select list (e.g. "id, first_name, class_id")
        filters: Column -> value equality filters (None means IS NULL)
        limit: Maximum rows to return (1..MAX_LIMIT)

    Returns:
        List of row dicts

    Raises:
        ValueError: On unknown table or out-of-range limit
        CredentialMismatchError: If called with the privileged client
        SupabaseAPIError: When PostgREST rejects the query
    """
    if client.privileged:
        raise CredentialMismatchError("Diagnostic queries must use the restricted client")
    if table not in READABLE_TABLES:
        raise ValueError(f"Unknown table '{table}'. Expected one of: {', '.join(sorted(READABLE_TABLES))}")
    if not 1 <= limit <= MAX_LIMIT:
        raise ValueError(f"limit must be between 1 and {MAX_LIMIT}")

    params: Dict[str, Any] = {"select": columns.replace(" ", ""), "limit": limit}
    for column, value in (filters or {}).items():
        params[column] = _filter_value(value)

    resp = client.get(f"/rest/v1/{table}", params=params)
    try:
        rows = resp.json()
    except ValueError as exc:
        raise MalformedResponseError(f"Non-JSON response for table '{table}'") from exc
    if not isinstance(rows, list):
        raise MalformedResponseError(f"Expected a list of rows for table '{table}'")
    return rows

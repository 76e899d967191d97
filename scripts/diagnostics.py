"""Read-only diagnostic queries against the school tables.

Restricted entry point: builds the anon-key client only and never imports
the privileged construction path.

Examples:
    python scripts/diagnostics.py rows --table students --filter school_id=school_1 --limit 5
    python scripts/diagnostics.py user teacher@example.com
    python scripts/diagnostics.py unassigned-students --school school_1
    python scripts/diagnostics.py logins
    python scripts/diagnostics.py timetable --limit 3
"""
from __future__ import annotations
import argparse
import json
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

SCRIPT_DIR = Path(__file__).parent
PROJECT_ROOT = SCRIPT_DIR.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import requests

from school_admin.core.supabase import SupabaseClient, SupabaseError
from school_admin.core.supabase.public import build_restricted_client
from school_admin.core.supabase.rest import DEFAULT_LIMIT, select_rows

ROW_SCAN_LIMIT = 1000
TIMETABLE_COLUMNS = "*, classes:class_id(name), subjects:subject_id(name)"


def find_user(client: SupabaseClient, email: str) -> Dict[str, Optional[dict]]:
    """Look the email up in the profiles and teachers tables."""
    found: Dict[str, Optional[dict]] = {}
    for table in ("profiles", "teachers"):
        rows = select_rows(client, table, filters={"email": email}, limit=1)
        found[table] = rows[0] if rows else None
    return found


def unassigned_students(client: SupabaseClient, school_id: str) -> List[dict]:
    """Students of a school whose class_id is null or empty."""
    rows = select_rows(
        client,
        "students",
        columns="id, first_name, class_id, status",
        filters={"school_id": school_id},
        limit=ROW_SCAN_LIMIT,
    )
    return [row for row in rows if not row.get("class_id")]


def sample_logins(client: SupabaseClient, limit: int = 5) -> List[dict]:
    """Students that have an enrolment number (their login)."""
    rows = select_rows(client, "students", columns="first_name, surname, enrolment_number", limit=limit)
    return [row for row in rows if row.get("enrolment_number")]


def timetable_entries(client: SupabaseClient, limit: int = DEFAULT_LIMIT) -> List[dict]:
    """Timetable rows with their class and subject names resolved."""
    return select_rows(client, "timetables", columns=TIMETABLE_COLUMNS, limit=limit)


def _parse_filters(pairs: List[str]) -> Dict[str, Any]:
    filters: Dict[str, Any] = {}
    for pair in pairs:
        column, sep, value = pair.partition("=")
        if not sep or not column:
            raise ValueError(f"Filter must be column=value, got '{pair}'")
        filters[column] = None if value == "null" else value
    return filters


def _client_from_env() -> SupabaseClient:
    url = os.environ.get("SUPABASE_URL", "")
    key = os.environ.get("SUPABASE_ANON_KEY", "")
    if not url or not key:
        raise ValueError("SUPABASE_URL and SUPABASE_ANON_KEY must be set")
    return build_restricted_client(url, key)


def _emit(payload: Any, output: Optional[str]) -> None:
    text = json.dumps(payload, indent=2, ensure_ascii=False)
    if output:
        Path(output).write_text(text + "\n", encoding="utf-8")
        print(f"[diagnostics] Wrote {output}", file=sys.stderr)
    else:
        print(text)


def main(argv: Optional[List[str]] = None) -> int:
    """Command-line entry point."""
    parser = argparse.ArgumentParser(description="Read-only school data diagnostics")
    parser.add_argument("--output", help="Write JSON result to this file instead of stdout")
    sub = parser.add_subparsers(dest="cmd", required=True)

    rows = sub.add_parser("rows")
    rows.add_argument("--table", required=True)
    rows.add_argument("--columns", default="*")
    rows.add_argument("--filter", action="append", default=[], metavar="COLUMN=VALUE")
    rows.add_argument("--limit", type=int, default=10)

    user = sub.add_parser("user")
    user.add_argument("email")

    unassigned = sub.add_parser("unassigned-students")
    unassigned.add_argument("--school", required=True)

    logins = sub.add_parser("logins")
    logins.add_argument("--limit", type=int, default=5)

    timetable = sub.add_parser("timetable")
    timetable.add_argument("--limit", type=int, default=DEFAULT_LIMIT)

    args = parser.parse_args(argv)

    try:
        client = _client_from_env()
        if args.cmd == "rows":
            result: Any = select_rows(
                client,
                args.table,
                columns=args.columns,
                filters=_parse_filters(args.filter),
                limit=args.limit,
            )
        elif args.cmd == "user":
            result = find_user(client, args.email)
        elif args.cmd == "unassigned-students":
            result = unassigned_students(client, args.school)
        elif args.cmd == "timetable":
            result = timetable_entries(client, args.limit)
        else:
            result = sample_logins(client, args.limit)
    except (ValueError, SupabaseError, requests.RequestException) as exc:
        print(f"[diagnostics] Error: {exc}", file=sys.stderr)
        return 1

    _emit(result, args.output)
    return 0


if __name__ == "__main__":
    sys.exit(main())

"""Create auth accounts from a trusted shell.

Trusted entry point: loads the service-role key from the environment or
/run/secrets and calls the same provisioning service as the HTTP endpoint.

Examples:
    python scripts/provision.py create --email demo@example.com --role teacher --meta school_id=school_1
    python scripts/provision.py verify-audit
"""
from __future__ import annotations
import argparse
import getpass
import json
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

SCRIPT_DIR = Path(__file__).parent
PROJECT_ROOT = SCRIPT_DIR.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from school_admin.core import audit
from school_admin.core.provisioning_service import (
    ErrorKind,
    Success,
    create_account,
    result_to_response,
)
from school_admin.core.supabase.admin import build_privileged_client, load_privileged_credential
from school_admin.core.supabase.exceptions import SupabaseError
from school_admin.core.validators import PASSWORD_MIN_LENGTH


def _parse_value(raw: str) -> Any:
    """Decode JSON scalars (numbers, booleans, null); anything else stays a string."""
    try:
        value = json.loads(raw)
    except ValueError:
        return raw
    if isinstance(value, (dict, list)):
        return raw
    return value


def _parse_metadata(pairs: List[str]) -> Dict[str, Any]:
    metadata: Dict[str, Any] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise ValueError(f"Metadata must be key=value, got '{pair}'")
        metadata[key] = _parse_value(value)
    return metadata


def cmd_create(args: argparse.Namespace) -> int:
    password = args.password or os.environ.get("PROVISION_PASSWORD") or getpass.getpass("Password: ")
    try:
        metadata = _parse_metadata(args.meta)
    except ValueError as exc:
        print(f"[provision] Error: {exc}", file=sys.stderr)
        return 2

    url = args.supabase_url or os.environ.get("SUPABASE_URL", "")
    try:
        client = build_privileged_client(url, load_privileged_credential())
    except (ValueError, SupabaseError) as exc:
        print(f"[provision] Error: {exc}", file=sys.stderr)
        return 2

    body: Dict[str, Any] = {"email": args.email, "password": password, "metadata": metadata}
    if args.role:
        body["role"] = args.role

    result = create_account(
        body,
        client,
        password_min_length=args.min_length,
        operator=args.operator,
    )
    payload, status = result_to_response(result)
    if isinstance(result, Success):
        print(json.dumps(payload, indent=2))
        return 0

    if result.kind is ErrorKind.TRANSPORT:
        # Trusted shell: the operator sees the detail the HTTP caller never does
        print(f"[provision] {payload['error']}: {result.message}", file=sys.stderr)
    else:
        print(f"[provision] {status} {payload['error']}", file=sys.stderr)
    return 1


def cmd_verify_audit(args: argparse.Namespace) -> int:
    total, valid = audit.verify_audit_log()
    print(f"Audit log: {valid}/{total} events with valid signatures")
    return 0 if total == valid else 1


def main(argv: Optional[List[str]] = None) -> int:
    """Command-line entry point."""
    parser = argparse.ArgumentParser(description="Account provisioning helper")
    parser.add_argument("--supabase-url", default=None)
    parser.add_argument("--operator", default="cli",
                        help="Operator identifier for audit logs (default: cli)")

    sub = parser.add_subparsers(dest="cmd", required=True)

    create = sub.add_parser("create")
    create.add_argument("--email", required=True)
    create.add_argument("--password", default=None,
                        help="Defaults to PROVISION_PASSWORD or an interactive prompt")
    create.add_argument("--role", default=None)
    create.add_argument("--meta", action="append", default=[], metavar="KEY=VALUE")
    create.add_argument("--min-length", type=int, default=PASSWORD_MIN_LENGTH)
    create.set_defaults(func=cmd_create)

    verify = sub.add_parser("verify-audit")
    verify.set_defaults(func=cmd_verify_audit)

    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())

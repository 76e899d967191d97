"""Audit logging for privileged account operations."""

from __future__ import annotations
import datetime
import hashlib
import hmac
import json
import logging
import os
from pathlib import Path
from typing import Any, Literal

logger = logging.getLogger(__name__)

AUDIT_LOG_FILENAME = "provisioning-events.jsonl"

EventType = Literal["provision_account"]

# Keys whose values must never reach the audit trail
_REDACTED_FIELDS = frozenset({"password", "apikey", "authorization", "service_role_key"})


def _audit_log_dir() -> Path:
    return Path(os.environ.get("AUDIT_LOG_DIR", ".runtime/audit"))


def audit_log_file() -> Path:
    return _audit_log_dir() / AUDIT_LOG_FILENAME


def _get_signing_key() -> bytes:
    """Get the audit signing key (env var, then key file)."""
    key = os.environ.get("AUDIT_LOG_SIGNING_KEY", "").strip()
    if key:
        return key.encode("utf-8")
    key_file = os.environ.get("AUDIT_LOG_SIGNING_KEY_FILE")
    if key_file:
        path = Path(key_file)
        if path.exists():
            try:
                return path.read_text(encoding="utf-8").strip().encode("utf-8")
            except OSError:
                pass
    return b""


def _ensure_audit_dir() -> None:
    """Create audit directory with restricted permissions."""
    audit_dir = _audit_log_dir()
    audit_dir.mkdir(parents=True, exist_ok=True)
    audit_dir.chmod(0o700)


def _sign_event(event: dict[str, Any]) -> str:
    """Generate HMAC-SHA256 signature for audit event."""
    signing_key = _get_signing_key()
    if not signing_key:
        return ""
    canonical = json.dumps(event, sort_keys=True, separators=(",", ":"))
    return hmac.new(signing_key, canonical.encode("utf-8"), hashlib.sha256).hexdigest()


def _scrub(details: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in details.items() if key.lower() not in _REDACTED_FIELDS}


def log_event(
    event_type: EventType,
    subject: str,
    *,
    operator: str = "system",
    details: dict[str, Any] | None = None,
    success: bool = True,
) -> None:
    """Append an event to the audit trail with timestamp and signature.

    Args:
        event_type: Type of operation
        subject: Account the operation targeted (email)
        operator: Who performed the operation (caller id, "cli", ...)
        details: Additional context; secret-bearing keys are dropped
        success: Whether the operation succeeded
    """
    _ensure_audit_dir()

    event = {
        "timestamp": datetime.datetime.now(datetime.timezone.utc).isoformat(),
        "event_type": event_type,
        "subject": subject,
        "operator": operator,
        "success": success,
        "details": _scrub(details or {}),
    }

    signature = _sign_event(event)
    if signature:
        event["signature"] = signature

    log_file = audit_log_file()
    with log_file.open("a", encoding="utf-8") as f:
        f.write(json.dumps(event, ensure_ascii=False) + "\n")

    log_file.chmod(0o600)


def safe_log_event(
    event_type: EventType,
    subject: str,
    *,
    operator: str = "system",
    details: dict[str, Any] | None = None,
    success: bool = True,
) -> bool:
    """Log an audit event without ever raising.

    Audit failures must not turn a committed account creation into an error
    response, so they are reported to the application log instead.

    Returns:
        True if event was logged successfully, False if logging failed
    """
    try:
        log_event(event_type, subject, operator=operator, details=details, success=success)
        return True
    except (OSError, TypeError, ValueError) as e:
        logger.warning("Failed to log %s audit event for %s: %s", event_type, subject, e)
        return False


def verify_audit_log() -> tuple[int, int]:
    """Verify all signatures in the audit log.

    Returns:
        Tuple of (total_events, valid_signatures)
    """
    log_file = audit_log_file()
    if not log_file.exists():
        return 0, 0

    total = 0
    valid = 0

    with log_file.open("r", encoding="utf-8") as f:
        for line in f:
            if not line.strip():
                continue
            total += 1
            try:
                event = json.loads(line)
                stored_sig = event.pop("signature", "")
                if not stored_sig:
                    continue
                computed_sig = _sign_event(event)
                if hmac.compare_digest(stored_sig, computed_sig):
                    valid += 1
            except (json.JSONDecodeError, KeyError):
                continue

    return total, valid

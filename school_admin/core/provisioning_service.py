"""
Account Provisioning Service

Creates auth accounts on behalf of an administrator through the Supabase
auth admin API, using the privileged (service-role) client.

Architecture:
    POST /functions/v1/create-user ──┐
                                     ├──> provisioning_service.py ──> supabase.admin ──> GoTrue
    scripts/provision.py ────────────┘

Every call is single-shot and stateless: validate, call the auth service
once, map the outcome to a ProvisioningResult. Nothing is retried; account
creation is not idempotent on the auth side and the caller owns retry policy.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

import requests

from school_admin.core import audit
from school_admin.core.supabase.admin import AuthAdminService
from school_admin.core.supabase.client import SupabaseClient
from school_admin.core.supabase.exceptions import (
    CredentialMismatchError,
    MalformedResponseError,
    SupabaseAPIError,
)
from school_admin.core.validators import (
    PASSWORD_MIN_LENGTH,
    ProvisioningRequest,
    ValidationError,
    validate_provisioning_request,
)

logger = logging.getLogger(__name__)

GENERIC_FAILURE_MESSAGE = "Account provisioning failed"

# Statuses that mean our own credential or the service is broken, not the request
_TRANSPORT_STATUSES = (401, 403)


# ─────────────────────────────────────────────────────────────────────────────
# Result types
# ─────────────────────────────────────────────────────────────────────────────

class ErrorKind(str, Enum):
    VALIDATION = "ValidationError"
    EXTERNAL_REJECTION = "ExternalRejection"
    TRANSPORT = "TransportError"


@dataclass(frozen=True)
class ProvisionedAccount:
    """Read-only projection of the auth service's user object."""
    id: str
    email: str
    role: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "role": self.role,
            "metadata": dict(self.metadata),
        }


@dataclass(frozen=True)
class Success:
    account: ProvisionedAccount


@dataclass(frozen=True)
class Failure:
    kind: ErrorKind
    message: str
    code: Optional[str] = None


ProvisioningResult = Union[Success, Failure]


# ─────────────────────────────────────────────────────────────────────────────
# Projection
# ─────────────────────────────────────────────────────────────────────────────

def project_account(user: Any, fallback_email: str = "") -> ProvisionedAccount:
    """Project the auth service's user object into ProvisionedAccount.

    Only ``id``, ``email`` and ``user_metadata`` are read; everything else in
    the collaborator's schema is ignored.

    Raises:
        MalformedResponseError: If the object has no usable id
    """
    if not isinstance(user, dict):
        raise MalformedResponseError("User object is not a mapping")

    user_id = user.get("id")
    if not isinstance(user_id, str) or not user_id:
        raise MalformedResponseError("User object has no id")

    email = user.get("email")
    if not isinstance(email, str) or not email:
        email = fallback_email

    metadata = user.get("user_metadata")
    if not isinstance(metadata, dict):
        metadata = {}

    role = metadata.get("role")
    return ProvisionedAccount(
        id=user_id,
        email=email,
        role=role if isinstance(role, str) else None,
        metadata=dict(metadata),
    )


# ─────────────────────────────────────────────────────────────────────────────
# Core Service Functions
# ─────────────────────────────────────────────────────────────────────────────

def _transport_failure(request: ProvisioningRequest, detail: str, operator: str, correlation_id: Optional[str]) -> Failure:
    logger.error("Provisioning transport failure for %s: %s", request.email, detail)
    audit.safe_log_event(
        "provision_account",
        request.email,
        operator=operator,
        details={"error_kind": ErrorKind.TRANSPORT.value, "correlation_id": correlation_id},
        success=False,
    )
    return Failure(ErrorKind.TRANSPORT, detail)


def provision(
    request: ProvisioningRequest,
    privileged: SupabaseClient,
    *,
    operator: str = "system",
    correlation_id: Optional[str] = None,
) -> ProvisioningResult:
    """Create an auth account for a validated request.

    Args:
        request: Output of validate_provisioning_request
        privileged: Client built by build_privileged_client
        operator: Identity of the administrative caller (audit only)
        correlation_id: Optional correlation ID for tracing

    Returns:
        Success with the projected account, or Failure with
        EXTERNAL_REJECTION (collaborator message verbatim) or TRANSPORT
        (detail for server logs only).
    """
    try:
        service = AuthAdminService(privileged)
    except CredentialMismatchError as exc:
        return _transport_failure(request, str(exc), operator, correlation_id)

    try:
        user = service.create_user(
            request.email,
            request.password,
            email_confirm=True,
            user_metadata=request.user_metadata,
        )
        account = project_account(user, fallback_email=request.email)
    except SupabaseAPIError as exc:
        if exc.status_code in _TRANSPORT_STATUSES or exc.status_code >= 500:
            return _transport_failure(
                request,
                f"Auth service returned HTTP {exc.status_code}: {exc.message}",
                operator,
                correlation_id,
            )
        logger.warning("Auth service rejected account for %s: [%s] %s", request.email, exc.status_code, exc.message)
        audit.safe_log_event(
            "provision_account",
            request.email,
            operator=operator,
            details={
                "error_kind": ErrorKind.EXTERNAL_REJECTION.value,
                "status_code": exc.status_code,
                "reason": exc.message,
                "correlation_id": correlation_id,
            },
            success=False,
        )
        return Failure(ErrorKind.EXTERNAL_REJECTION, exc.message)
    except requests.Timeout:
        return _transport_failure(
            request,
            f"Auth service did not respond within {privileged.timeout}s",
            operator,
            correlation_id,
        )
    except requests.RequestException as exc:
        return _transport_failure(
            request,
            f"Auth service request failed: {exc.__class__.__name__}: {exc}",
            operator,
            correlation_id,
        )
    except MalformedResponseError as exc:
        return _transport_failure(request, f"Malformed auth service response: {exc}", operator, correlation_id)

    logger.info("Provisioned account %s (id=%s, role=%s)", account.email, account.id, account.role)
    audit.safe_log_event(
        "provision_account",
        account.email,
        operator=operator,
        details={"user_id": account.id, "role": account.role, "correlation_id": correlation_id},
        success=True,
    )
    return Success(account)


def create_account(
    raw: Any,
    privileged: SupabaseClient,
    *,
    password_min_length: int = PASSWORD_MIN_LENGTH,
    operator: str = "system",
    correlation_id: Optional[str] = None,
) -> ProvisioningResult:
    """Validate a raw request body, then provision it.

    Validation failures return before the privileged client is touched.
    """
    validated = validate_provisioning_request(raw, password_min_length=password_min_length)
    if isinstance(validated, ValidationError):
        logger.info("Rejected provisioning request: %s (%s)", validated.code, validated.message)
        return Failure(ErrorKind.VALIDATION, validated.message, code=validated.code)
    return provision(validated, privileged, operator=operator, correlation_id=correlation_id)


def result_to_response(result: ProvisioningResult) -> Tuple[Dict[str, Any], int]:
    """Map a result onto the HTTP envelope (body, status).

    Transport failures get a generic message; their detail stays in the
    server log.
    """
    if isinstance(result, Success):
        return {"user": result.account.to_dict()}, 200
    if result.kind is ErrorKind.TRANSPORT:
        return {"error": GENERIC_FAILURE_MESSAGE}, 500
    return {"error": result.message}, 400

"""Input validation for account provisioning requests.

``validate_provisioning_request`` returns either a ``ProvisioningRequest`` or
a ``ValidationError``; it never raises for bad input and performs no I/O.
Call sites must check which one they got:

    result = validate_provisioning_request(body)
    if isinstance(result, ValidationError):
        ...
"""
from __future__ import annotations
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Union

EMAIL_MAX_LENGTH = 254
PASSWORD_MIN_LENGTH = 8
# bcrypt truncates beyond 72 bytes; the auth service rejects longer passwords
PASSWORD_MAX_LENGTH = 72

MISSING_FIELD = "MissingField"
MALFORMED_EMAIL = "MalformedEmail"
WEAK_PASSWORD = "WeakPassword"
INVALID_FIELD = "InvalidField"

Scalar = Union[str, int, float, bool, None]


@dataclass(frozen=True)
class ValidationError:
    """Client mistake detected before any privileged call."""
    code: str
    message: str


@dataclass(frozen=True)
class ProvisioningRequest:
    """Validated account-creation request."""
    email: str
    password: str = field(repr=False)
    role: Optional[str] = None
    metadata: Dict[str, Scalar] = field(default_factory=dict)

    @property
    def user_metadata(self) -> Dict[str, Scalar]:
        """Single attribute bag sent to the auth service, role included."""
        merged: Dict[str, Scalar] = {}
        if self.role is not None:
            merged["role"] = self.role
        merged.update(self.metadata)
        return merged


ValidationResult = Union[ProvisioningRequest, ValidationError]


def validate_email(email: str) -> str:
    """Validate email address shape.

    Args:
        email: Email address to validate

    Returns:
        Trimmed email address

    Raises:
        ValueError: If email is malformed
    """
    email = email.strip()
    if "@" not in email:
        raise ValueError("Invalid email format")

    local, domain = email.rsplit("@", 1)
    if not local or not domain:
        raise ValueError("Invalid email format")
    if any(char.isspace() for char in email):
        raise ValueError("Invalid email format")
    if len(email) > EMAIL_MAX_LENGTH:
        raise ValueError("Email exceeds maximum length")

    return email


def validate_password(password: str, min_length: int = PASSWORD_MIN_LENGTH) -> str:
    """Apply the minimum password policy.

    Policy: at least ``min_length`` characters, at most 72, containing at
    least one letter and one digit. The auth service may apply a stricter
    policy of its own; its rejection is passed through unchanged.

    Raises:
        ValueError: If the password does not meet the policy
    """
    if len(password) < min_length:
        raise ValueError(f"Password must be at least {min_length} characters")
    if len(password.encode("utf-8")) > PASSWORD_MAX_LENGTH:
        raise ValueError(f"Password must not exceed {PASSWORD_MAX_LENGTH} bytes")
    if not any(char.isalpha() for char in password) or not any(char.isdigit() for char in password):
        raise ValueError("Password must contain at least one letter and one digit")
    return password


def _is_scalar(value: Any) -> bool:
    if isinstance(value, float):
        # NaN and Infinity parse from request bodies but are not valid JSON
        return math.isfinite(value)
    return value is None or isinstance(value, (str, int, bool))


def validate_provisioning_request(raw: Any, password_min_length: int = PASSWORD_MIN_LENGTH) -> ValidationResult:
    """Parse and validate an inbound account-creation body.

    Args:
        raw: Decoded JSON body
        password_min_length: Minimum password length from configuration

    Returns:
        ProvisioningRequest on success, ValidationError otherwise
    """
    if not isinstance(raw, Mapping):
        return ValidationError(INVALID_FIELD, "Request body must be a JSON object")

    email = raw.get("email")
    password = raw.get("password")

    for name, value in (("email", email), ("password", password)):
        if value is not None and not isinstance(value, str):
            return ValidationError(INVALID_FIELD, f"{name} must be a string")

    if not email or not email.strip() or not password:
        return ValidationError(MISSING_FIELD, "Missing email or password")

    try:
        email = validate_email(email)
    except ValueError as exc:
        return ValidationError(MALFORMED_EMAIL, str(exc))

    try:
        validate_password(password, password_min_length)
    except ValueError as exc:
        return ValidationError(WEAK_PASSWORD, str(exc))

    role = raw.get("role")
    if role is not None and not isinstance(role, str):
        return ValidationError(INVALID_FIELD, "role must be a string")
    role = role.strip() if role else None
    role = role or None

    metadata = raw.get("metadata")
    if metadata is None:
        metadata = {}
    if not isinstance(metadata, Mapping):
        return ValidationError(INVALID_FIELD, "metadata must be an object")
    for key, value in metadata.items():
        if not isinstance(key, str):
            return ValidationError(INVALID_FIELD, "metadata keys must be strings")
        if not _is_scalar(value):
            return ValidationError(INVALID_FIELD, f"metadata.{key} must be a string, finite number, boolean or null")

    return ProvisioningRequest(email=email, password=password, role=role, metadata=dict(metadata))

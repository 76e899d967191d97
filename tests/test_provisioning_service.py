"""
Unit tests for school_admin/core/provisioning_service.py

The auth admin API is replaced by the ``auth_service`` stub (requests.post).
"""
import json

import pytest
import requests

from school_admin.core import provisioning_service
from school_admin.core.provisioning_service import (
    ErrorKind,
    Failure,
    ProvisionedAccount,
    Success,
    create_account,
    project_account,
    provision,
    result_to_response,
)
from school_admin.core.supabase.exceptions import MalformedResponseError
from school_admin.core.supabase.public import build_restricted_client
from school_admin.core.validators import validate_provisioning_request

DUPLICATE_MESSAGE = "A user with this email address has already been registered"


@pytest.fixture
def teacher_request():
    return validate_provisioning_request(
        {
            "email": "demo@example.com",
            "password": "Passw0rd!",
            "role": "teacher",
            "metadata": {"school_id": "school_1"},
        }
    )


@pytest.fixture
def created_user():
    return {
        "id": "5f1c-uuid",
        "aud": "authenticated",
        "email": "demo@example.com",
        "email_confirmed_at": "2026-10-19T10:00:00Z",
        "app_metadata": {"provider": "email"},
        "user_metadata": {"role": "teacher", "school_id": "school_1"},
        "identities": [],
    }


# ============================================================================
# Outbound call
# ============================================================================

def test_create_user_payload(auth_service, admin_client, teacher_request, created_user, service_role_key):
    auth_service.respond(200, created_user)

    provision(teacher_request, admin_client)

    call = auth_service.last_call
    assert call["url"] == "https://project-ref.supabase.co/auth/v1/admin/users"
    assert call["json"] == {
        "email": "demo@example.com",
        "password": "Passw0rd!",
        "email_confirm": True,
        "user_metadata": {"role": "teacher", "school_id": "school_1"},
    }
    assert call["headers"]["apikey"] == service_role_key
    assert call["headers"]["Authorization"] == f"Bearer {service_role_key}"
    assert call["timeout"] == 2.0


def test_single_attempt_on_failure(auth_service, admin_client, teacher_request):
    auth_service.fail_with(requests.ConnectionError("connection refused"))

    provision(teacher_request, admin_client)

    assert len(auth_service.calls) == 1


# ============================================================================
# Outcomes
# ============================================================================

def test_success_projects_account(auth_service, admin_client, teacher_request, created_user):
    auth_service.respond(200, created_user)

    result = provision(teacher_request, admin_client)

    assert isinstance(result, Success)
    assert result.account == ProvisionedAccount(
        id="5f1c-uuid",
        email="demo@example.com",
        role="teacher",
        metadata={"role": "teacher", "school_id": "school_1"},
    )


def test_success_accepts_wrapped_user(auth_service, admin_client, teacher_request, created_user):
    auth_service.respond(200, {"user": created_user})

    result = provision(teacher_request, admin_client)

    assert isinstance(result, Success)
    assert result.account.id == "5f1c-uuid"


def test_duplicate_email_is_external_rejection(auth_service, admin_client, teacher_request):
    auth_service.respond(422, {"code": 422, "error_code": "email_exists", "msg": DUPLICATE_MESSAGE})

    result = provision(teacher_request, admin_client)

    assert result == Failure(ErrorKind.EXTERNAL_REJECTION, DUPLICATE_MESSAGE)
    body, status = result_to_response(result)
    assert status == 400
    assert body == {"error": DUPLICATE_MESSAGE}


@pytest.mark.parametrize(
    "payload, expected",
    [
        ({"message": "Password should be at least 10 characters"}, "Password should be at least 10 characters"),
        ({"error": "invalid_request", "error_description": "Unable to validate email"}, "Unable to validate email"),
        ({"error": "rate limited"}, "rate limited"),
    ],
)
def test_rejection_message_passed_through(auth_service, admin_client, teacher_request, payload, expected):
    auth_service.respond(400, payload)

    result = provision(teacher_request, admin_client)

    assert result.kind is ErrorKind.EXTERNAL_REJECTION
    assert result.message == expected


def test_timeout_is_transport_error(auth_service, admin_client, teacher_request, service_role_key):
    auth_service.fail_with(requests.Timeout("read timed out"))

    result = provision(teacher_request, admin_client)

    assert isinstance(result, Failure)
    assert result.kind is ErrorKind.TRANSPORT
    assert "did not respond within 2.0s" in result.message
    body, status = result_to_response(result)
    assert status == 500
    assert body == {"error": "Account provisioning failed"}
    assert service_role_key not in json.dumps(body)


def test_connection_error_is_transport_error(auth_service, admin_client, teacher_request):
    auth_service.fail_with(requests.ConnectionError("connection refused"))

    result = provision(teacher_request, admin_client)

    assert result.kind is ErrorKind.TRANSPORT
    assert "ConnectionError" in result.message


@pytest.mark.parametrize("status", [401, 403, 500, 502, 503])
def test_credential_and_server_errors_are_transport(auth_service, admin_client, teacher_request, status):
    auth_service.respond(status, {"message": "Invalid API key"})

    result = provision(teacher_request, admin_client)

    assert result.kind is ErrorKind.TRANSPORT
    assert result_to_response(result) == ({"error": "Account provisioning failed"}, 500)


@pytest.mark.parametrize(
    "status, payload, text",
    [
        (200, None, "<html>gateway</html>"),
        (200, ["not", "a", "user"], None),
        (200, {"email": "demo@example.com"}, None),
    ],
)
def test_malformed_response_is_transport(auth_service, admin_client, teacher_request, status, payload, text):
    auth_service.respond(status, payload, text)

    result = provision(teacher_request, admin_client)

    assert result.kind is ErrorKind.TRANSPORT


def test_restricted_client_is_refused(auth_service, teacher_request, anon_key):
    restricted = build_restricted_client("https://project-ref.supabase.co", anon_key)

    result = provision(teacher_request, restricted)

    assert result.kind is ErrorKind.TRANSPORT
    assert auth_service.calls == []


# ============================================================================
# create_account (validate + provision)
# ============================================================================

@pytest.mark.parametrize(
    "body",
    [
        {"password": "Passw0rd!"},
        {"email": "demo@example.com"},
        {"email": "", "password": ""},
    ],
)
def test_missing_fields_never_reach_auth_service(auth_service, admin_client, body):
    result = create_account(body, admin_client)

    assert result.kind is ErrorKind.VALIDATION
    assert result.code == "MissingField"
    assert auth_service.calls == []
    assert result_to_response(result) == ({"error": "Missing email or password"}, 400)


def test_malformed_email_never_reaches_auth_service(auth_service, admin_client):
    result = create_account({"email": "demo.example.com", "password": "Passw0rd!"}, admin_client)

    assert result.kind is ErrorKind.VALIDATION
    assert result.code == "MalformedEmail"
    assert auth_service.calls == []


def test_create_account_end_to_end(auth_service, admin_client):
    auth_service.respond(
        200,
        {"id": "8d2e-uuid", "email": "demo@example.com", "user_metadata": {"role": "teacher"}},
    )

    result = create_account(
        {"email": "demo@example.com", "password": "Passw0rd!", "role": "teacher"},
        admin_client,
    )

    body, status = result_to_response(result)
    assert status == 200
    assert body == {
        "user": {
            "id": "8d2e-uuid",
            "email": "demo@example.com",
            "role": "teacher",
            "metadata": {"role": "teacher"},
        }
    }
    assert auth_service.last_call["json"]["user_metadata"] == {"role": "teacher"}


# ============================================================================
# Audit trail
# ============================================================================

def test_success_is_audited_without_password(auth_service, admin_client, teacher_request, created_user, monkeypatch):
    events = []
    monkeypatch.setattr(
        provisioning_service.audit,
        "safe_log_event",
        lambda *args, **kwargs: events.append((args, kwargs)),
    )
    auth_service.respond(200, created_user)

    provision(teacher_request, admin_client, operator="admin-uid-1", correlation_id="corr-1")

    assert len(events) == 1
    args, kwargs = events[0]
    assert args == ("provision_account", "demo@example.com")
    assert kwargs["operator"] == "admin-uid-1"
    assert kwargs["success"] is True
    assert kwargs["details"]["user_id"] == "5f1c-uuid"
    assert kwargs["details"]["correlation_id"] == "corr-1"
    assert "Passw0rd!" not in json.dumps(events)


def test_rejection_is_audited_as_failure(auth_service, admin_client, teacher_request, monkeypatch):
    events = []
    monkeypatch.setattr(
        provisioning_service.audit,
        "safe_log_event",
        lambda *args, **kwargs: events.append(kwargs),
    )
    auth_service.respond(422, {"msg": DUPLICATE_MESSAGE})

    provision(teacher_request, admin_client)

    assert events[0]["success"] is False
    assert events[0]["details"]["error_kind"] == "ExternalRejection"


# ============================================================================
# Projection
# ============================================================================

class TestProjectAccount:
    def test_ignores_unknown_fields(self):
        account = project_account(
            {"id": "u1", "email": "a@b.c", "phone": "+260", "user_metadata": {"grade": 8}}
        )
        assert account == ProvisionedAccount(id="u1", email="a@b.c", role=None, metadata={"grade": 8})

    def test_falls_back_to_request_email(self):
        account = project_account({"id": "u1"}, fallback_email="a@b.c")
        assert account.email == "a@b.c"
        assert account.metadata == {}

    @pytest.mark.parametrize("user", [None, [], {"id": ""}, {"id": 12}])
    def test_rejects_objects_without_id(self, user):
        with pytest.raises(MalformedResponseError):
            project_account(user)

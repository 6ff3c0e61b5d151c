"""
Tests for the fault taxonomy: declared HTTP failures and registry errors.
"""

import pytest

from heron.faults import (
    Fault,
    FaultDomain,
    Severity,
    HttpFault,
    BadRequestError,
    UnauthorizedError,
    NotFoundError,
    MethodNotAllowedError,
    InternalServerError,
    RegistrationError,
    DuplicateRegistrationError,
    UnknownOwnerError,
    InvalidRoutePathError,
    InvalidRouteError,
    RegistryFrozenError,
    ChannelNotFoundError,
)


# ============================================================================
# HttpFault
# ============================================================================


class TestHttpFault:

    def test_defaults_per_subclass(self):
        assert BadRequestError().status_code == 400
        assert BadRequestError().message == "Bad Request"
        assert UnauthorizedError().status_code == 401
        assert NotFoundError().message == "Not Found"
        assert MethodNotAllowedError().status_code == 405
        assert InternalServerError().status_code == 500

    def test_envelope(self):
        fault = NotFoundError("User not found", {"id": "7"})
        assert fault.to_envelope() == {
            "success": False,
            "error": "User not found",
            "details": {"id": "7"},
        }

    def test_envelope_without_details(self):
        assert UnauthorizedError("nope").to_envelope()["details"] is None

    def test_custom_status(self):
        fault = HttpFault("Teapot", status_code=418, code="TEAPOT")
        assert fault.status_code == 418
        assert fault.code == "TEAPOT"
        # Class default untouched
        assert HttpFault().status_code == 500

    def test_is_public_fault(self):
        fault = BadRequestError("bad")
        assert isinstance(fault, Fault)
        assert fault.public is True
        assert fault.domain == FaultDomain.VALIDATION
        assert fault.severity == Severity.WARN

    def test_str(self):
        assert str(BadRequestError("bad input")) == "[BAD_REQUEST] bad input"

    def test_to_dict_carries_status_and_details(self):
        data = BadRequestError("bad", [{"path": ["name"]}]).to_dict()
        assert data["status_code"] == 400
        assert data["details"] == [{"path": ["name"]}]
        assert data["domain"] == "validation"


# ============================================================================
# Registration faults
# ============================================================================


class TestRegistrationFaults:

    @pytest.mark.parametrize("fault, code", [
        (DuplicateRegistrationError("Users"), "DUPLICATE_OWNER"),
        (UnknownOwnerError("Users"), "UNKNOWN_OWNER"),
        (InvalidRoutePathError("/a/:", "malformed"), "INVALID_ROUTE_PATH"),
        (InvalidRouteError("Users", "bad verb"), "INVALID_ROUTE"),
        (RegistryFrozenError("declare_route"), "REGISTRY_FROZEN"),
    ])
    def test_codes(self, fault, code):
        assert isinstance(fault, RegistrationError)
        assert fault.code == code
        assert fault.domain == FaultDomain.REGISTRY
        assert fault.public is False

    def test_messages_name_the_subject(self):
        assert "Users" in DuplicateRegistrationError("Users").message
        assert "/a/:" in InvalidRoutePathError("/a/:", "malformed").message
        assert "declare_route" in RegistryFrozenError("declare_route").message

    def test_metadata(self):
        fault = InvalidRoutePathError("/x/:id/:id", "duplicate placeholder 'id'")
        assert fault.metadata["path"] == "/x/:id/:id"
        assert fault.metadata["reason"] == "duplicate placeholder 'id'"

    def test_not_an_http_fault(self):
        assert not isinstance(DuplicateRegistrationError("X"), HttpFault)


# ============================================================================
# Channel faults
# ============================================================================


class TestChannelFaults:

    def test_channel_not_found(self):
        fault = ChannelNotFoundError("/chat")
        assert isinstance(fault, NotFoundError)
        assert fault.status_code == 404
        assert fault.code == "CHANNEL_NOT_FOUND"
        assert fault.message == "No channel handler found"
        assert fault.details == {"path": "/chat"}
        assert fault.path == "/chat"

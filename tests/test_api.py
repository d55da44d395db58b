"""Tests for the shared API plumbing."""

import httpx
import pytest

from thermobridge import api
from thermobridge.api import (
    ApiError,
    AuthenticatedClient,
    AuthError,
    DeviceError,
    ErrorKind,
    SessionExpiredError,
    ThermobridgeError,
    TransportError,
    ValidationError,
)
from thermobridge.awair import AwairClient
from thermobridge.skyport import SkyportClient


class TestErrorHierarchy:
    """Tests for the exception taxonomy."""

    @pytest.mark.parametrize(
        "error_class",
        [
            AuthError,
            SessionExpiredError,
            DeviceError,
            ValidationError,
            TransportError,
            ApiError,
        ],
    )
    def test_errors_share_base_class(self, error_class: type[Exception]) -> None:
        """Test that every error derives from ThermobridgeError."""
        error = error_class("boom")
        assert isinstance(error, ThermobridgeError)
        assert isinstance(error, Exception)

    def test_session_expired_is_not_auth_error(self) -> None:
        """Test that the refreshable signal is distinct from the fatal error."""
        assert not issubclass(SessionExpiredError, AuthError)


class TestIsHttpError:
    """Tests for is_http_error function."""

    def test_is_http_error_returns_false_for_success_codes(self) -> None:
        """Test that is_http_error returns False for success status codes."""
        assert api.is_http_error(200) is False
        assert api.is_http_error(204) is False
        assert api.is_http_error(399) is False

    def test_is_http_error_returns_true_for_error_codes(self) -> None:
        """Test that is_http_error returns True for error status codes."""
        assert api.is_http_error(400) is True
        assert api.is_http_error(401) is True
        assert api.is_http_error(503) is True


class TestIsAuthError:
    """Tests for is_auth_error function."""

    def test_is_auth_error_returns_true_for_401(self) -> None:
        """Test that is_auth_error returns True for 401 status code."""
        assert api.is_auth_error(401) is True

    def test_is_auth_error_returns_false_for_other_codes(self) -> None:
        """Test that is_auth_error returns False for other status codes."""
        assert api.is_auth_error(400) is False
        assert api.is_auth_error(403) is False
        assert api.is_auth_error(500) is False


class TestClassifyStatus:
    """Tests for classify_status function."""

    def test_classify_status_returns_none_for_success(self) -> None:
        """Test that successful statuses are not classified."""
        assert api.classify_status(200) is None

    def test_classify_status_auth_expired(self) -> None:
        """Test that 401 is classified as auth-expired."""
        assert api.classify_status(401) is ErrorKind.AUTH_EXPIRED

    @pytest.mark.parametrize("status", [429, 500, 502, 503, 504])
    def test_classify_status_transient(self, status: int) -> None:
        """Test that throttling and server errors are transient."""
        assert api.classify_status(status) is ErrorKind.TRANSIENT

    @pytest.mark.parametrize("status", [400, 403, 404, 409, 422])
    def test_classify_status_permanent(self, status: int) -> None:
        """Test that other client errors are permanent."""
        assert api.classify_status(status) is ErrorKind.PERMANENT


class TestClassifyException:
    """Tests for classify_exception function."""

    def test_timeouts_and_network_errors_are_transient(self) -> None:
        """Test that timeouts and connection failures are transient."""
        assert api.classify_exception(httpx.ReadTimeout("slow")) is ErrorKind.TRANSIENT
        assert api.classify_exception(httpx.ConnectError("reset")) is ErrorKind.TRANSIENT
        assert (
            api.classify_exception(httpx.RemoteProtocolError("eof"))
            is ErrorKind.TRANSIENT
        )

    def test_session_expired_is_auth_expired(self) -> None:
        """Test that an expired session is classified as auth-expired."""
        assert (
            api.classify_exception(SessionExpiredError("401"))
            is ErrorKind.AUTH_EXPIRED
        )

    def test_other_errors_are_permanent(self) -> None:
        """Test that unknown failures are permanent."""
        assert api.classify_exception(httpx.UnsupportedProtocol("ftp")) is (
            ErrorKind.PERMANENT
        )
        assert api.classify_exception(ValueError("bad")) is ErrorKind.PERMANENT


class TestValidateResponse:
    """Tests for validate_response function."""

    def test_validate_response_returns_data_for_valid_response(self) -> None:
        """Test that validate_response returns data for valid response."""
        response = httpx.Response(200, json={"hspHome": 21.0})
        assert api.validate_response(response) == {"hspHome": 21.0}

    def test_validate_response_returns_none_for_empty_body(self) -> None:
        """Test that an empty body decodes to None."""
        assert api.validate_response(httpx.Response(200)) is None

    def test_validate_response_raises_api_error_for_invalid_json(self) -> None:
        """Test that a non-JSON body raises ApiError."""
        with pytest.raises(ApiError, match="Invalid JSON"):
            api.validate_response(httpx.Response(200, text="<html>"))

    def test_validate_response_raises_session_expired_on_401(self) -> None:
        """Test that validate_response signals an expired session on HTTP 401."""
        response = httpx.Response(401, json={"message": "Token expired"})
        with pytest.raises(SessionExpiredError, match="Token expired"):
            api.validate_response(response)

    def test_validate_response_raises_auth_error_on_403(self) -> None:
        """Test that validate_response raises AuthError on HTTP 403."""
        with pytest.raises(AuthError, match="403"):
            api.validate_response(httpx.Response(403, text="Forbidden"))

    def test_validate_response_raises_device_error_on_404(self) -> None:
        """Test that validate_response raises DeviceError on HTTP 404."""
        response = httpx.Response(404, json={"message": "Device not found"})
        with pytest.raises(DeviceError, match="Device not found"):
            api.validate_response(response)

    @pytest.mark.parametrize("status", [400, 409, 422])
    def test_validate_response_raises_validation_error(self, status: int) -> None:
        """Test that rejected payloads raise ValidationError."""
        response = httpx.Response(status, json={"message": "Out of range"})
        with pytest.raises(ValidationError, match="Out of range"):
            api.validate_response(response)

    def test_validate_response_raises_transport_error_on_server_error(self) -> None:
        """Test that a server error left after retries raises TransportError."""
        with pytest.raises(TransportError, match="Request failed: 503"):
            api.validate_response(httpx.Response(503))

    def test_validate_response_raises_api_error_for_other_client_errors(self) -> None:
        """Test that unmapped client errors raise ApiError."""
        with pytest.raises(ApiError, match="Request failed: 405"):
            api.validate_response(httpx.Response(405))


class TestAuthenticatedClient:
    """Tests for the AuthenticatedClient capability."""

    @pytest.mark.asyncio
    async def test_vendor_clients_implement_capability(self) -> None:
        """Test that both vendor clients satisfy AuthenticatedClient."""
        async with httpx.AsyncClient() as session:
            thermostat = SkyportClient(session, "daikin@example.com", "secret")
            sensor = AwairClient(session, "awair-token", "1234")
            assert isinstance(thermostat, AuthenticatedClient)
            assert isinstance(sensor, AuthenticatedClient)
            assert {thermostat.name, sensor.name} == {"thermostat", "sensor"}

    def test_plain_object_is_not_a_client(self) -> None:
        """Test that objects without the capability are rejected."""
        assert not isinstance(object(), AuthenticatedClient)

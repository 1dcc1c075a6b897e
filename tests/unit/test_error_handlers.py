"""
Unit tests for error codes, exceptions and handlers.

Tests the error response model and exception handlers to ensure
they produce correctly structured responses.
"""

import json

import pytest
from unittest.mock import MagicMock
from fastapi import Request
from fastapi.responses import JSONResponse

from errors.codes import ERROR_CODE_STATUS_MAP, ErrorCode, get_default_status_code
from errors.exceptions import AppException, session_store_unavailable, validation_error
from errors.handlers import (
    ErrorResponse,
    get_request_id,
    handle_app_exception,
    handle_unexpected_exception,
    register_exception_handlers,
)


def make_request(request_id="test-request-id", path="/", method="POST"):
    request = MagicMock(spec=Request)
    request.state.request_id = request_id
    request.url.path = path
    request.method = method
    return request


def body(response: JSONResponse) -> dict:
    return json.loads(response.body.decode("utf-8"))


class TestErrorCodes:

    def test_every_code_has_a_status(self):
        assert set(ERROR_CODE_STATUS_MAP) == set(ErrorCode)

    @pytest.mark.parametrize("code,status", [
        (ErrorCode.VALIDATION_ERROR, 422),
        (ErrorCode.SESSION_STORE_UNAVAILABLE, 503),
        (ErrorCode.INTERNAL_ERROR, 500),
    ])
    def test_default_status_codes(self, code, status):
        assert get_default_status_code(code) == status


class TestAppException:

    def test_validation_error_factory(self):
        exc = validation_error("Name is too long", details={"field": "name"})

        assert exc.error_code == ErrorCode.VALIDATION_ERROR
        assert exc.status_code == 422
        assert exc.to_dict() == {
            "error_code": "VALIDATION_ERROR",
            "message": "Name is too long",
            "details": {"field": "name"},
        }

    def test_session_store_unavailable_factory(self):
        exc = session_store_unavailable()

        assert exc.status_code == 503
        assert exc.message == "Session store unavailable"
        assert "details" not in exc.to_dict()

    def test_explicit_status_code_overrides_default(self):
        exc = AppException(ErrorCode.VALIDATION_ERROR, "bad", status_code=400)
        assert exc.status_code == 400

    def test_repr(self):
        exc = validation_error("bad")
        assert repr(exc) == (
            "AppException(error_code='VALIDATION_ERROR', message='bad', "
            "status_code=422, details=None)"
        )


class TestErrorResponse:

    def test_model_dump_excludes_none(self):
        response = ErrorResponse(
            error_code="INTERNAL_ERROR",
            message="An error occurred",
            request_id="req-789",
        )

        dumped = response.model_dump(exclude_none=True)
        assert dumped == {
            "error_code": "INTERNAL_ERROR",
            "message": "An error occurred",
            "request_id": "req-789",
        }


class TestGetRequestId:

    def test_get_request_id_from_state(self):
        assert get_request_id(make_request("existing-request-id")) == "existing-request-id"

    def test_get_request_id_generates_uuid_when_not_set(self):
        request = MagicMock(spec=Request)
        del request.state.request_id

        result = get_request_id(request)

        assert len(result) == 36
        assert result.count("-") == 4


class TestHandleAppException:

    @pytest.mark.asyncio
    async def test_validation_error_response(self):
        exc = validation_error(
            "Name must be at most 100 characters",
            details={"field": "name", "max_length": 100},
        )

        response = await handle_app_exception(make_request(), exc)

        assert isinstance(response, JSONResponse)
        assert response.status_code == 422
        assert body(response) == {
            "error_code": "VALIDATION_ERROR",
            "message": "Name must be at most 100 characters",
            "details": {"field": "name", "max_length": 100},
            "request_id": "test-request-id",
        }

    @pytest.mark.asyncio
    async def test_session_store_unavailable_response(self):
        response = await handle_app_exception(
            make_request(path="/api/session", method="GET"),
            session_store_unavailable(details={"cache_name": "php-sessions"}),
        )

        assert response.status_code == 503
        assert body(response)["error_code"] == "SESSION_STORE_UNAVAILABLE"


class TestHandleUnexpectedException:

    @pytest.mark.asyncio
    async def test_hides_internal_details(self):
        exc = RuntimeError("MOMENTO_AUTH_TOKEN=eyJ-secret rejected")

        response = await handle_unexpected_exception(make_request("unique-request-123"), exc)
        data = body(response)

        assert response.status_code == 500
        assert data["error_code"] == "INTERNAL_ERROR"
        assert "eyJ-secret" not in data["message"]
        assert "unexpected error" in data["message"].lower()
        assert data["request_id"] == "unique-request-123"
        assert "details" not in data

    @pytest.mark.asyncio
    async def test_logs_with_traceback(self, caplog):
        try:
            raise ValueError("boom")
        except ValueError as e:
            exc = e

        with caplog.at_level("ERROR", logger="errors.handlers"):
            await handle_unexpected_exception(make_request(), exc)

        record = caplog.records[-1]
        assert record.exc_info is not None
        assert record.extra_data["exception_type"] == "ValueError"


class TestRegisterExceptionHandlers:

    def test_register_exception_handlers_adds_handlers(self):
        mock_app = MagicMock()

        register_exception_handlers(mock_app)

        exception_types = [call[0][0] for call in mock_app.add_exception_handler.call_args_list]
        assert exception_types == [AppException, Exception]

"""
Unit tests for shared error types.
"""

from shared.errors import (
    AuthenticationError,
    ConfigurationError,
    ExternalServiceError,
    NotFoundError,
    StorefrontException,
    UpstreamStatusError,
    UpstreamUnavailableError,
    ValidationError,
)
from shared.logging import clear_context, set_request_id


def test_status_codes():
    assert ValidationError().status_code == 400
    assert AuthenticationError().status_code == 401
    assert NotFoundError().status_code == 404
    assert ConfigurationError().status_code == 500
    assert ExternalServiceError("catalog").status_code == 502
    assert UpstreamStatusError("catalog", 400, "bad").status_code == 502
    assert UpstreamUnavailableError("catalog").status_code == 503


def test_upstream_status_error_carries_body():
    error = UpstreamStatusError("catalog", 409, '{"errors": []}')

    assert error.code == "UPSTREAM_STATUS_ERROR"
    assert error.status == 409
    assert error.details == {"status_code": 409, "body": '{"errors": []}'}
    assert error.message.startswith("catalog:")


def test_error_response_includes_request_id():
    set_request_id("req-42")
    try:
        response = NotFoundError("Book not found", details={"bookId": "B1"}).to_response()
    finally:
        clear_context()

    assert response.model_dump() == {
        "request_id": "req-42",
        "code": "NOT_FOUND",
        "message": "Book not found",
        "details": {"bookId": "B1"},
    }


def test_explicit_status_code_override():
    error = StorefrontException("TEAPOT", "short and stout", status_code=418)
    assert error.status_code == 418
    assert StorefrontException.status_code == 400

"""
Tests for the error taxonomy.
"""

import pytest

from blockops.errors import (
    AlreadyInProgressError,
    BadRequestError,
    BlockOpsError,
    ErrorCode,
    ErrorKind,
    InternalError,
    NotFoundError,
    ServiceUnavailableError,
    UnauthorizedError,
)


class TestBlockOpsError:
    """Test the base error."""

    def test_defaults(self):
        error = BlockOpsError("boom")

        assert error.message == "boom"
        assert error.code is ErrorCode.INTERNAL_ERROR
        assert error.http_status == 500
        assert str(error) == "[ERR_9000] boom"

    def test_code_override_and_cause(self):
        cause = ValueError("inner")
        error = UnauthorizedError("bad token", code=ErrorCode.INVALID_TOKEN, cause=cause)

        assert error.code is ErrorCode.INVALID_TOKEN
        assert error.kind is ErrorKind.UNAUTHORIZED
        assert error.cause is cause

    def test_to_dict_merges_details(self):
        error = NotFoundError("Unknown operation: nope", details={"identifier": "nope"})

        assert error.to_dict() == {
            "error": "Unknown operation: nope",
            "code": "ERR_1004",
            "kind": "not_found",
            "identifier": "nope",
        }


@pytest.mark.parametrize(
    "cls,status,kind",
    [
        (UnauthorizedError, 401, ErrorKind.UNAUTHORIZED),
        (BadRequestError, 400, ErrorKind.BAD_REQUEST),
        (NotFoundError, 404, ErrorKind.NOT_FOUND),
        (AlreadyInProgressError, 409, ErrorKind.ALREADY_IN_PROGRESS),
        (ServiceUnavailableError, 503, ErrorKind.SERVICE_UNAVAILABLE),
        (InternalError, 500, ErrorKind.INTERNAL),
    ],
)
def test_status_and_kind(cls, status, kind) -> None:
    error = cls("x")
    assert isinstance(error, BlockOpsError)
    assert error.http_status == status
    assert error.kind is kind


def test_bad_request_carries_field_errors() -> None:
    errors = [{"code": "MissingRequired", "field": "email", "message": "Missing required property: email"}]
    error = BadRequestError("Validation failed", code=ErrorCode.VALIDATION_FAILED, errors=errors)

    assert error.errors == errors
    assert error.to_dict()["errors"] == errors
    assert error.to_dict()["code"] == "ERR_1001"


def test_service_unavailable_lists_missing() -> None:
    error = ServiceUnavailableError("unavailable", missing=["stream-store"])

    assert error.missing == ["stream-store"]
    assert error.to_dict()["missing"] == ["stream-store"]

import pytest

from gemini_grounded_search import (
    APIError, ContentBlockedError, InvalidModelNameError, InvalidParameterError, MissingAPIKeyError,
    is_api_error, is_authentication_error, is_content_blocked_error, is_invalid_request_error,
    is_quota_error, is_server_error,
)
from gemini_grounded_search.errors import get_api_error


@pytest.mark.parametrize("err, check", [
    (APIError(401, "bad key"), is_authentication_error),
    (APIError(0, "denied", status="PERMISSION_DENIED"), is_authentication_error),
    (MissingAPIKeyError(), is_authentication_error),
    (APIError(429, "slow down"), is_quota_error),
    (APIError(0, "quota", status="RESOURCE_EXHAUSTED"), is_quota_error),
    (APIError(400, "bad request", status="INVALID_ARGUMENT"), is_invalid_request_error),
    (InvalidParameterError("x"), is_invalid_request_error),
    (InvalidModelNameError(), is_invalid_request_error),
    (APIError(503, "down", status="UNAVAILABLE"), is_server_error),
    (APIError(0, "?", status="UNKNOWN"), is_server_error),
    (ContentBlockedError(), is_content_blocked_error),
    (APIError(400, "blocked", reason=ContentBlockedError()), is_content_blocked_error),
])
def test_classification(err, check):
    assert check(err)


def test_classification_is_specific():
    err = APIError(429, "slow down", status="RESOURCE_EXHAUSTED")
    assert not is_authentication_error(err)
    assert not is_server_error(err)
    assert not is_invalid_request_error(err)
    assert not is_content_blocked_error(err)
    assert not is_quota_error(ValueError("nope"))


def test_api_error_found_through_cause_chain():
    api_err = APIError(500, "boom", status="INTERNAL")
    try:
        try:
            raise api_err
        except APIError as e:
            raise RuntimeError("wrapped") from e
    except RuntimeError as outer:
        assert get_api_error(outer) is api_err
        assert is_api_error(outer)
        assert is_server_error(outer)


def test_api_error_message():
    err = APIError(400, "bad prompt", status="INVALID_ARGUMENT", reason=ContentBlockedError())
    assert str(err) == "API error (status: INVALID_ARGUMENT): bad prompt - content generation was blocked"
    assert str(APIError(500, "boom")) == "API error (status: 500): boom"

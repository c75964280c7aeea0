import pytest

from walletwatch.errors import (
    ApiError, AuthenticationFailed, CapacityExceeded, HttpError, NetworkError,
    first_message, map_error_response,
)


def payload(code, message="msg"):
    return {"response": {}, "messages": [{"code": code, "message": message}]}


@pytest.mark.parametrize("status,body,expected", [
    (500, payload("812"), CapacityExceeded),
    (500, payload("401"), AuthenticationFailed),
    (401, payload("952"), AuthenticationFailed),
    (500, payload("101"), ApiError),
    (401, None, AuthenticationFailed),
    (502, None, HttpError),
    (500, {"messages": []}, HttpError),
])
def test_map_error_response(status, body, expected):
    assert isinstance(map_error_response(status, body), expected)


def test_api_error_carries_code_and_message():
    err = map_error_response(500, payload("101", "Record is missing"))
    assert (err.code, err.message) == ("101", "Record is missing")
    assert str(err) == "FileMaker Error [101]: Record is missing"


def test_code_zero_reads_as_success_message():
    assert ApiError("0", "OK").user_message == "Account successfully created"


def test_user_messages():
    assert "try again in a moment" in CapacityExceeded().user_message
    assert str(HttpError(503)) == "Server error (Code: 503)"
    assert str(NetworkError("timed out", 110)) == "Network error: timed out (Code: 110)"


def test_first_message_handles_junk():
    assert first_message(None) is None
    assert first_message({"messages": ["x"]}) is None
    assert first_message(payload(812)) == ("812", "msg")

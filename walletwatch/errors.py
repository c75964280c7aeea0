# walletwatch/errors.py
"""Error kinds raised by the FileMaker client.

Every exception carries a ``user_message`` suitable for showing to a person;
``str(error)`` returns the same text.
"""
import logging

logger = logging.getLogger("walletwatch.errors")

CODE_OK = "0"
CODE_NO_RECORDS = "401"
CODE_CAPACITY = "812"


class FileMakerError(Exception):
    user_message = "Something went wrong talking to the server"

    def __init__(self, message=None):
        if message is not None:
            self.user_message = message
        super().__init__(self.user_message)


class InvalidURL(FileMakerError):
    user_message = "Invalid server URL"


class InvalidResponse(FileMakerError):
    user_message = "Invalid response from server"


class AuthenticationFailed(FileMakerError):
    user_message = "Failed to authenticate with server"


class InvalidCredentials(FileMakerError):
    user_message = "Invalid email or password"


class UserNotFound(FileMakerError):
    user_message = "User does not exist. Please check your email address and try again."


class EmailAlreadyExists(FileMakerError):
    user_message = ("This email is already registered. "
                    "Please use a different email or try signing in.")


class NetworkError(FileMakerError):
    def __init__(self, detail, code=None):
        self.detail = detail
        self.code = code
        text = f"Network error: {detail}"
        if code is not None:
            text += f" (Code: {code})"
        super().__init__(text)


class HttpError(FileMakerError):
    def __init__(self, status_code):
        self.status_code = status_code
        super().__init__(f"Server error (Code: {status_code})")


class ApiError(FileMakerError):
    def __init__(self, code, message):
        self.code = str(code)
        self.message = message
        if self.code == CODE_OK:
            text = "Account successfully created"
        else:
            text = f"FileMaker Error [{self.code}]: {message}"
        super().__init__(text)


class EncodingError(FileMakerError):
    user_message = "Failed to encode request data"


class ConfigurationError(FileMakerError):
    def __init__(self, detail):
        self.detail = detail
        super().__init__(detail)


class CapacityExceeded(FileMakerError):
    user_message = "Server is at maximum capacity. Please try again in a moment."


def first_message(payload):
    """Return (code, message) of the first entry in ``messages`` or None"""
    if not isinstance(payload, dict):
        return None
    messages = payload.get("messages") or []
    if not messages or not isinstance(messages[0], dict):
        return None
    first = messages[0]
    return str(first.get("code", "")), str(first.get("message", ""))


def map_error_response(status_code, payload):
    """Translate a failed Data API response into the matching error.

    Returns the exception instead of raising it so callers can decide
    whether a code (e.g. "401" on a find) means something else to them.
    """
    msg = first_message(payload)
    if msg is not None:
        code, text = msg
        logger.error(f"FileMaker error [{code}] {text} (HTTP {status_code})")
        if code == CODE_CAPACITY:
            return CapacityExceeded()
        if code == CODE_NO_RECORDS or status_code == 401:
            return AuthenticationFailed()
        return ApiError(code, text)
    logger.error(f"Request failed with status {status_code}")
    if status_code == 401:
        return AuthenticationFailed()
    return HttpError(status_code)

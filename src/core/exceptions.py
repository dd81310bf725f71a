"""Custom exception hierarchy for the oeee.cafe data-access layer."""

from enum import Enum
from typing import Optional


class OeeeCafeError(Exception):
    """Base exception for all client errors."""

    def __init__(self, message: str = "An error occurred in the oeee.cafe client"):
        self.message = message
        super().__init__(self.message)


class ErrorKind(Enum):
    """Closed taxonomy of API failures, in order of precedence."""

    INVALID_REQUEST = "invalid_request"
    TRANSPORT_FAILURE = "transport_failure"
    MALFORMED_RESPONSE = "malformed_response"
    SERVER_ERROR = "server_error"
    DECODE_FAILURE = "decode_failure"
    ENCODE_FAILURE = "encode_failure"


class APIError(OeeeCafeError):
    """Base exception for every classified API failure."""

    kind: ErrorKind

    def __init__(self, message: str = "An API error occurred"):
        super().__init__(message)


class InvalidRequestError(APIError):
    """The path or query could not form a valid request."""

    kind = ErrorKind.INVALID_REQUEST

    def __init__(self, message: str = "Invalid URL"):
        super().__init__(message)


class TransportFailureError(APIError):
    """The underlying connection failed (DNS, TLS, timeout, reset)."""

    kind = ErrorKind.TRANSPORT_FAILURE

    def __init__(self, message: str = "Network error", cause: Optional[BaseException] = None):
        self.cause = cause
        super().__init__(message)


class MalformedResponseError(APIError):
    """A response arrived but had no usable status or structure."""

    kind = ErrorKind.MALFORMED_RESPONSE

    def __init__(self, message: str = "Invalid response from server",
                 status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class ServerError(APIError):
    """The server returned a structured error envelope."""

    kind = ErrorKind.SERVER_ERROR

    def __init__(self, code: str, message: str, status_code: Optional[int] = None):
        self.code = code
        self.server_message = message
        self.status_code = status_code
        super().__init__(message or code or "Server error")

    def localized_message(self, i18n=None) -> str:
        """Message for display: localized by code, else the server text.

        Looks up ``error.<code lowercased>`` in the active locale. Never
        returns an empty string.
        """
        if i18n is not None and self.code:
            key = f"error.{self.code.lower()}"
            if i18n.has(key):
                return i18n.get(key)
        if self.server_message:
            return self.server_message
        if self.code:
            return self.code
        return "Server error"


class DecodeFailureError(APIError):
    """The body did not match the expected typed shape."""

    kind = ErrorKind.DECODE_FAILURE

    def __init__(self, message: str = "Failed to decode response", decode_error=None):
        self.decode_error = decode_error
        super().__init__(message)

    @property
    def path(self) -> str:
        return getattr(self.decode_error, "path", "")


class EncodeFailureError(APIError):
    """The outgoing request body could not be serialized."""

    kind = ErrorKind.ENCODE_FAILURE

    def __init__(self, message: str = "Failed to encode request",
                 cause: Optional[BaseException] = None):
        self.cause = cause
        super().__init__(message)


class AuthenticationError(OeeeCafeError):
    """Login or signup was rejected."""

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message)


class DataError(OeeeCafeError):
    """Base exception for local data errors."""

    def __init__(self, message: str = "A data error occurred"):
        super().__init__(message)


class DecodeError(DataError):
    """Wire payload does not match the expected type.

    ``path`` locates the offending value (e.g. ``comments[2].created_at``),
    ``expected`` and ``actual`` describe the mismatch.
    """

    def __init__(self, message: str = "Failed to decode payload", path: str = "",
                 expected: str = "", actual: str = ""):
        self.path = path
        self.expected = expected
        self.actual = actual
        super().__init__(message)


class EncodeError(DataError):
    """Value cannot be represented on the wire."""

    def __init__(self, message: str = "Failed to encode payload", path: str = ""):
        self.path = path
        super().__init__(message)


class SessionStoreError(DataError):
    """Session storage operation failed."""

    def __init__(self, message: str = "Session storage operation failed"):
        super().__init__(message)


class ConfigError(DataError):
    """Configuration is invalid or missing."""

    def __init__(self, message: str = "Configuration error"):
        super().__init__(message)


class InvalidBaseURLError(ConfigError):
    """Base URL is not an http(s) URL with a host."""

    def __init__(self, message: str = (
        "Invalid URL format. Please enter a valid URL starting with http:// or https://"
    )):
        super().__init__(message)

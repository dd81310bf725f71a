"""Maps transport, decode and server failures onto the closed APIError taxonomy."""

import json
import logging
from typing import Optional

import requests

from src.core.exceptions import (
    APIError,
    DecodeError,
    DecodeFailureError,
    EncodeError,
    EncodeFailureError,
    InvalidRequestError,
    MalformedResponseError,
    ServerError,
    TransportFailureError,
)
from src.core.types import ErrorEnvelope

logger = logging.getLogger("oeeecafe")

# Raised by requests while preparing a request, before any network activity.
_INVALID_REQUEST_ERRORS = (
    requests.exceptions.MissingSchema,
    requests.exceptions.InvalidSchema,
    requests.exceptions.InvalidURL,
    requests.exceptions.InvalidHeader,
    requests.exceptions.URLRequired,
)


def is_success(status_code: int) -> bool:
    return 200 <= status_code <= 299


class ErrorClassifier:
    """Picks the single most specific APIError for a failed call.

    Precedence (highest first): InvalidRequest, TransportFailure,
    MalformedResponse, ServerError, DecodeFailure, EncodeFailure. A parseable
    error envelope always wins over MalformedResponse, whatever the status.
    """

    def from_exception(self, exc: BaseException) -> APIError:
        """Classify an exception raised while building or sending a request.

        Anything outside requests/OSError/codec errors is a programming error
        and is re-raised unchanged.
        """
        if isinstance(exc, APIError):
            return exc
        if isinstance(exc, _INVALID_REQUEST_ERRORS):
            return InvalidRequestError(f"Invalid URL: {exc}")
        if isinstance(exc, requests.Timeout):
            return TransportFailureError(f"Network error: request timed out ({exc})", cause=exc)
        if isinstance(exc, requests.exceptions.SSLError):
            return TransportFailureError(f"Network error: TLS failure ({exc})", cause=exc)
        if isinstance(exc, requests.ConnectionError):
            return TransportFailureError(f"Network error: connection failed ({exc})", cause=exc)
        if isinstance(exc, requests.RequestException):
            return TransportFailureError(f"Network error: {exc}", cause=exc)
        if isinstance(exc, EncodeError):
            return self.from_encode_error(exc)
        if isinstance(exc, DecodeError):
            return self.from_decode_error(exc)
        if isinstance(exc, OSError):
            return TransportFailureError(f"Network error: {exc}", cause=exc)
        raise exc

    def parse_envelope(self, body: bytes) -> Optional[ErrorEnvelope]:
        """Extract {"error": {"code", "message"}} from a body, if present."""
        if not body:
            return None
        try:
            payload = json.loads(body)
        except (ValueError, UnicodeDecodeError):
            return None
        if not isinstance(payload, dict):
            return None
        error = payload.get("error")
        if not isinstance(error, dict):
            return None
        code = error.get("code")
        message = error.get("message")
        if not isinstance(code, str) or not isinstance(message, str):
            return None
        return ErrorEnvelope(code=code, message=message)

    def from_status(self, status_code: int, body: bytes) -> APIError:
        """Classify a failing response: ServerError if enveloped, else malformed."""
        envelope = self.parse_envelope(body)
        if envelope is not None:
            return ServerError(envelope.code, envelope.message, status_code=status_code)
        return MalformedResponseError(
            f"Invalid response from server (HTTP {status_code})", status_code=status_code
        )

    def from_decode_error(self, error: DecodeError) -> DecodeFailureError:
        return DecodeFailureError(f"Failed to decode response: {error.message}", decode_error=error)

    def from_encode_error(self, error: EncodeError) -> EncodeFailureError:
        return EncodeFailureError(f"Failed to encode request: {error.message}", cause=error)

    @staticmethod
    def describe_decode_error(error: DecodeError) -> str:
        """One-line structural context for logs."""
        if error.actual == "missing":
            return f"Missing key: {error.path} (expected {error.expected})"
        if error.expected and error.actual:
            return f"Type mismatch at {error.path or '<root>'}: expected {error.expected}, got {error.actual}"
        return f"Data corrupted: {error.message}"

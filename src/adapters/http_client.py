"""Typed HTTP client: the one request/response contract every service goes through."""

import logging
import time
from http.cookiejar import DefaultCookiePolicy
from typing import Any, Mapping, Optional
from urllib.parse import urlsplit

import requests
from requests.cookies import RequestsCookieJar

from src.core.codec import WireCodec
from src.core.error_classifier import ErrorClassifier, is_success
from src.core.exceptions import (
    DecodeError,
    EncodeError,
    InvalidRequestError,
    MalformedResponseError,
    TransportFailureError,
)
from src.core.session_store import SessionStore

logger = logging.getLogger("oeeecafe")

# App version for User-Agent
_APP_VERSION = "1.0.0"
_CHUNK_SIZE = 64 * 1024
_LOGGED_BODY_CHARS = 2000


class TypedHTTPClient:
    """Issues GET/POST/PUT/DELETE against the configured API and decodes typed results.

    Request cookies come from a per-host snapshot of the SessionStore and
    response cookies go back into it. The underlying requests.Session never
    keeps cookies of its own.

    Failures always surface as exactly one APIError subclass:
      - GET: a non-2xx status is classified straight away.
      - POST/PUT/DELETE: the body is decoded first; only if that fails is
        the status consulted.
    ``response_type=None`` means the caller only cares that the call
    succeeded.
    """

    def __init__(self, api_config, session_store: SessionStore,
                 codec: Optional[WireCodec] = None,
                 classifier: Optional[ErrorClassifier] = None,
                 request_timeout: float = 30.0,
                 resource_timeout: float = 60.0,
                 session: Optional[requests.Session] = None):
        self._api_config = api_config
        self._store = session_store
        self._codec = codec or WireCodec()
        self._classifier = classifier or ErrorClassifier()
        self._request_timeout = float(request_timeout)
        self._resource_timeout = max(float(resource_timeout), self._request_timeout)

        self._session = session or requests.Session()
        # Cookies live in the SessionStore only.
        self._session.cookies.set_policy(DefaultCookiePolicy(allowed_domains=[]))
        self._session.headers.update({
            "User-Agent": f"oeeecafe-client/{_APP_VERSION}",
            "Accept": "application/json",
        })

    def get(self, path: str, response_type: Any = None,
            params: Optional[Mapping[str, Any]] = None) -> Any:
        return self._request("GET", path, response_type, params=params)

    def post(self, path: str, response_type: Any = None, body: Any = None) -> Any:
        return self._request("POST", path, response_type, body=body)

    def put(self, path: str, response_type: Any = None, body: Any = None) -> Any:
        return self._request("PUT", path, response_type, body=body)

    def delete(self, path: str, response_type: Any = None, body: Any = None) -> Any:
        return self._request("DELETE", path, response_type, body=body)

    def close(self) -> None:
        self._session.close()

    # --- Internals ---

    def _request(self, method: str, path: str, response_type: Any,
                 body: Any = None, params: Optional[Mapping[str, Any]] = None) -> Any:
        url = self._build_url(path)
        query = self._normalize_params(params)

        data = None
        if body is not None:
            try:
                data = self._codec.encode(body)
            except EncodeError as e:
                logger.error(f"{method} {path}: Encoding failed - {e.message}")
                raise self._classifier.from_encode_error(e)

        snapshot = self._store.snapshot(urlsplit(url).hostname or "")
        logger.debug(f"{method} {path}: Using {len(snapshot.jar)} cookies")

        headers = {"Content-Type": "application/json"} if data is not None else {}
        try:
            prepared = self._session.prepare_request(requests.Request(
                method, url, params=query, data=data, headers=headers, cookies=snapshot.jar,
            ))
        except requests.RequestException as e:
            raise self._classifier.from_exception(e)

        status, payload, response_cookies = self._send(method, path, prepared)
        self._store.store_response_cookies(response_cookies, snapshot.epoch)

        if method == "GET":
            return self._finish_read(method, path, status, payload, response_type)
        return self._finish_write(method, path, status, payload, response_type)

    def _build_url(self, path: str) -> str:
        if not isinstance(path, str) or not path.startswith("/") or any(c.isspace() for c in path):
            raise InvalidRequestError(f"Invalid URL: path {path!r}")
        base = self._api_config.base_url.rstrip("/")
        parts = urlsplit(base)
        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise InvalidRequestError(f"Invalid URL: base {base!r}")
        return f"{base}{self._api_config.api_prefix}{path}"

    @staticmethod
    def _normalize_params(params: Optional[Mapping[str, Any]]) -> Optional[dict]:
        if not params:
            return None
        query = {}
        for key, value in params.items():
            if value is None:
                continue
            if isinstance(value, bool):
                query[key] = "true" if value else "false"
            elif isinstance(value, (str, int, float)):
                query[key] = str(value)
            else:
                raise InvalidRequestError(f"Invalid URL: unsupported query value for '{key}'")
        return query

    def _send(self, method: str, path: str, prepared: requests.PreparedRequest):
        """Send and read the whole body within the resource timeout.

        Returns (status, body bytes, response cookie jar).
        """
        started = time.monotonic()
        settings = self._session.merge_environment_settings(prepared.url, {}, True, None, None)
        try:
            response = self._session.send(
                prepared,
                timeout=(self._request_timeout, self._request_timeout),
                allow_redirects=True,
                **settings,
            )
        except requests.RequestException as e:
            error = self._classifier.from_exception(e)
            logger.warning(f"{method} {path}: {error.message}")
            raise error

        try:
            chunks = []
            for chunk in response.iter_content(chunk_size=_CHUNK_SIZE):
                chunks.append(chunk)
                if time.monotonic() - started > self._resource_timeout:
                    raise TransportFailureError(
                        f"Network error: resource timed out after {self._resource_timeout:g}s"
                    )
            payload = b"".join(chunks)
        except requests.RequestException as e:
            error = self._classifier.from_exception(e)
            logger.warning(f"{method} {path}: {error.message}")
            raise error
        except TransportFailureError as e:
            logger.warning(f"{method} {path}: {e.message}")
            raise
        finally:
            response.close()

        status = response.status_code
        if not isinstance(status, int):
            logger.error(f"{method} {path}: Response has no usable status")
            raise MalformedResponseError("Invalid response from server")

        logger.debug(f"{method} {path}: Status {status}, {len(payload)} bytes")
        return status, payload, self._collect_cookies(response)

    @staticmethod
    def _collect_cookies(response: requests.Response) -> RequestsCookieJar:
        """Cookies set anywhere along the redirect chain, later hops winning."""
        jar = RequestsCookieJar()
        for hop in [*response.history, response]:
            for cookie in hop.cookies:
                jar.set_cookie(cookie)
        return jar

    def _finish_read(self, method: str, path: str, status: int, payload: bytes,
                     response_type: Any) -> Any:
        if not is_success(status):
            logger.warning(f"{method} {path}: Status {status}")
            raise self._classifier.from_status(status, payload)
        if response_type is None:
            return None
        try:
            return self._codec.decode(payload, response_type)
        except DecodeError as e:
            raise self._decode_failure(method, path, e, payload, status)

    def _finish_write(self, method: str, path: str, status: int, payload: bytes,
                      response_type: Any) -> Any:
        if response_type is None:
            if is_success(status):
                return None
            logger.warning(f"{method} {path}: Status {status}")
            raise self._classifier.from_status(status, payload)

        try:
            return self._codec.decode(payload, response_type)
        except DecodeError as e:
            if not is_success(status):
                logger.warning(f"{method} {path}: Status {status}")
                raise self._classifier.from_status(status, payload)
            raise self._decode_failure(method, path, e, payload, status)

    def _decode_failure(self, method: str, path: str, error: DecodeError,
                        payload: bytes, status: int):
        """Classify a decode failure on a 2xx body; an error envelope still wins."""
        envelope = self._classifier.parse_envelope(payload)
        if envelope is not None:
            logger.warning(f"{method} {path}: Server error {envelope.code}")
            return self._classifier.from_status(status, payload)

        logger.error(f"{method} {path}: Decoding failed")
        logger.debug(ErrorClassifier.describe_decode_error(error))
        logger.debug(f"Response body: {payload[:_LOGGED_BODY_CHARS].decode('utf-8', errors='replace')}")
        return self._classifier.from_decode_error(error)

"""
Exception handling for the core module.

This module contains the exception classes raised by the core and the classifier
turning a failed API response into an `APIError`.
"""

import json
import logging
from contextlib import contextmanager
from enum import Enum

import sentry_sdk

logger = logging.getLogger(__name__)


class VergeError(Exception):
    """Base error for the API client core"""


class ConfigError(VergeError):
    """No usable connection: raised before any HTTP call is attempted"""


class APIErrorKind(str, Enum):
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    BAD_REQUEST = "bad_request"
    SERVER_FAULT = "server_fault"
    UNKNOWN = "unknown"


class APIError(VergeError):
    """A request went through the network and failed (non-2xx status or transport error)"""

    def __init__(self, status_code: int, message: str, kind: APIErrorKind, detail=None) -> None:
        self._status_code = status_code
        self._message = f"API Error [{status_code}]: {message}"
        self._kind = kind
        self._detail = detail
        super().__init__(self._message)

    @property
    def status_code(self) -> int:
        return self._status_code

    @property
    def message(self) -> str:
        return self._message

    @property
    def kind(self) -> APIErrorKind:
        return self._kind

    @property
    def detail(self):
        """The raw error body as sent by the API"""
        return self._detail

    def __repr__(self) -> str:
        return (
            f"APIError(status_code={self.status_code}, kind={self.kind.name}, "
            f"message={self.message!r})"
        )


class NotFoundError(VergeError):
    """Reference resolution found no matching record"""

    def __init__(self, family: str, value) -> None:
        self.family = family
        self.value = value
        super().__init__(f"No resource named '{value}' found in '{family}'")


def extract_message(raw_body: str | bytes | None) -> str:
    """
    Extract a human readable message from an error body.

    The API is not consistent in how it reports errors, the known shapes are tried in order:
    `err` string, `error` string, `message` string, `err: true` alongside a `message`.
    The raw body is returned when none of them applies or when it is not JSON.

    Args:
        raw_body: The undecoded response body

    Returns:
        The message to show to the user
    """
    if raw_body is None:
        return ""
    if isinstance(raw_body, bytes):
        raw_body = raw_body.decode("utf-8", errors="replace")
    try:
        body = json.loads(raw_body)
    except ValueError:
        return raw_body
    if not isinstance(body, dict):
        return raw_body
    if isinstance(body.get("err"), str):
        return body["err"]
    if isinstance(body.get("error"), str):
        return body["error"]
    if isinstance(body.get("message"), str):
        return body["message"]
    if body.get("err") is True and "message" in body:
        return str(body["message"])
    return raw_body


def kind_for_status(status: int) -> APIErrorKind:
    if status in (401, 403):
        return APIErrorKind.UNAUTHORIZED
    if status == 404:
        return APIErrorKind.NOT_FOUND
    return APIErrorKind.SERVER_FAULT


def classify(status: int, raw_body: str | bytes | None = None) -> APIError:
    return APIError(status, extract_message(raw_body), kind_for_status(status), detail=raw_body)


def handle_exception(status: int, raw_body: str | bytes | None, endpoint: str | None = None):
    """Classify a failed response and raise it, with Sentry integration."""
    error = classify(status, raw_body)
    if sentry_sdk.get_client().is_active():
        with sentry_sdk.new_scope() as scope:
            sentry_tags: dict = {
                "status": status,
                "kind": error.kind.value,
            }
            if endpoint:
                sentry_tags["endpoint"] = endpoint
            scope.set_tags(sentry_tags)
            sentry_sdk.capture_exception(error)
    raise error


def is_not_found(error: Exception) -> bool:
    if isinstance(error, NotFoundError):
        return True
    return isinstance(error, APIError) and error.kind == APIErrorKind.NOT_FOUND


@contextmanager
def tolerate_not_found(warning: str):
    """
    Downgrade a not found error into a warning.

    Used by mutate-then-refetch flows where the refetch may legitimately find nothing,
    ie an action removing the very record being read again. Any other error propagates.
    """
    try:
        yield
    except (APIError, NotFoundError) as e:
        if not is_not_found(e):
            raise
        logger.warning(f"{warning}: {e}")

"""Error taxonomy and classification of provider failures."""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Optional

import requests


class ResolutionErrorKind(Enum):
    MALFORMED = "malformed"     # bad JSON, wrong shape, missing required field
    NO_MATCH = "no_match"       # no client entry for the application id


class InitErrorKind(Enum):
    INVALID_CREDENTIALS = "invalid_credentials"       # rejected key or app id
    TRANSPORT_UNAVAILABLE = "transport_unavailable"   # provider unreachable
    UNKNOWN = "unknown"                               # Catch-all


class FetchErrorKind(Enum):
    TRANSIENT = "transient"                   # timeouts, connection drops, 429, 5xx
    NON_TRANSIENT = "non_transient"           # unregistered app, bad sender id, ...
    RETRIES_EXHAUSTED = "retries_exhausted"   # transient failures outlived the retry policy


class PermissionErrorKind(Enum):
    CORRELATION_MISMATCH = "correlation_mismatch"
    NO_PENDING_REQUEST = "no_pending_request"
    REQUEST_FAILED = "request_failed"


class GatewayError(Exception):
    """Base class for failures reported by a gateway stage."""

    stage = "gateway"

    def __init__(self, kind: Enum, cause: str):
        super().__init__(cause)
        self.kind = kind
        self.cause = cause

    def describe(self) -> str:
        """Human-readable ``"<stage>: <cause>"`` string handed to the host."""
        return f"{self.stage}: {self.cause}"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.kind.value!r}, {self.cause!r})"


class ResolutionError(GatewayError):
    stage = "config"


class InitError(GatewayError):
    stage = "init"


class FetchError(GatewayError):
    stage = "token"


class PermissionCorrelationError(GatewayError):
    """Raised internally for callbacks that do not belong to the pending request. Logged only."""

    stage = "permission"


class InvalidTransition(RuntimeError):
    """A state machine was asked to move along an edge it does not have."""


_NETWORK_ERRORS = (
    requests.exceptions.ConnectionError,
    requests.exceptions.Timeout,
    ConnectionError,
    TimeoutError,
    asyncio.TimeoutError,
)


def _http_status(error: Exception) -> Optional[int]:
    if isinstance(error, requests.exceptions.HTTPError) and error.response is not None:
        return error.response.status_code
    return None


def describe_exception(error: BaseException) -> str:
    """Short cause string for an arbitrary exception."""
    if isinstance(error, GatewayError):
        return error.cause
    message = str(error).strip()
    if not message:
        return error.__class__.__name__
    return message


def classify_init_error(error: Exception) -> InitErrorKind:
    """Classify a client construction failure into an InitErrorKind"""
    if isinstance(error, InitError):
        return error.kind
    status_code = _http_status(error)
    if status_code is not None:
        if status_code in [400, 401, 403]:
            return InitErrorKind.INVALID_CREDENTIALS
        elif status_code >= 500:
            return InitErrorKind.TRANSPORT_UNAVAILABLE
        return InitErrorKind.UNKNOWN
    if isinstance(error, _NETWORK_ERRORS):
        return InitErrorKind.TRANSPORT_UNAVAILABLE
    if isinstance(error, ValueError):
        return InitErrorKind.INVALID_CREDENTIALS
    return InitErrorKind.UNKNOWN


def classify_fetch_error(error: Exception) -> FetchErrorKind:
    """Classify a token fetch failure into a FetchErrorKind"""
    if isinstance(error, FetchError):
        return error.kind
    status_code = _http_status(error)
    if status_code is not None:
        if status_code == 429 or status_code in [500, 502, 503, 504]:
            return FetchErrorKind.TRANSIENT
        return FetchErrorKind.NON_TRANSIENT
    if isinstance(error, _NETWORK_ERRORS):
        return FetchErrorKind.TRANSIENT
    return FetchErrorKind.NON_TRANSIENT


def should_retry_fetch(kind: FetchErrorKind) -> bool:
    """Only transient failures are worth another attempt"""
    return kind == FetchErrorKind.TRANSIENT

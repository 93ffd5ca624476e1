"""Pure failure classification for the retry core.

An exception is first reduced to a FailureInfo (HTTP status, headers,
kind tag) and then classified as Retryable(reason) or Terminal. Keeping
the two steps apart lets the retry loop, the rate limiter, and the tests
share one definition of "transient" without touching the SDK.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum

from botocore.exceptions import ClientError, HTTPClientError
from botocore.exceptions import ConnectionError as BotocoreConnectionError

# HTTP status codes considered transient (rate-limit, server errors)
RETRYABLE_STATUS_CODES: frozenset[int] = frozenset({429, 500, 502, 503, 504})

# AWS error codes / exception names that signal throttling
THROTTLING_ERROR_CODES: frozenset[str] = frozenset(
    {"ThrottlingException", "TooManyRequestsException", "Throttling"}
)

# Error codes / names that mark transport-level failures
NETWORK_ERROR_CODES: frozenset[str] = frozenset({"NetworkError", "NetworkingError"})

# Exception types considered transient (network-level issues)
NETWORK_EXCEPTIONS: tuple[type[BaseException], ...] = (
    TimeoutError,
    ConnectionError,
    BotocoreConnectionError,
    HTTPClientError,
)

RETRY_AFTER_HEADER = "retry-after"
AWS_RATE_LIMIT_HEADERS: tuple[str, ...] = (
    "x-amzn-ratelimit-retry-after",
    "x-amzn-ratelimit-retryafter",
    RETRY_AFTER_HEADER,
)


class FailureKind(str, Enum):
    """Discriminator for what kind of failure an exception represents."""

    throttling = "throttling"
    network = "network"
    application = "application"


class RetryReason(str, Enum):
    """Why a failure was judged worth retrying."""

    rate_limited = "rate_limited"
    server_error = "server_error"
    network = "network"
    throttling = "throttling"


@dataclass(frozen=True)
class FailureInfo:
    """Transport-neutral view of a failed call.

    Header names are stored lower-cased so lookups are case-insensitive.
    """

    status_code: int | None = None
    headers: Mapping[str, str] = field(default_factory=dict)
    kind: FailureKind = FailureKind.application
    code: str | None = None

    def header(self, name: str) -> str | None:
        return self.headers.get(name.lower())


@dataclass(frozen=True)
class Retryable:
    reason: RetryReason


@dataclass(frozen=True)
class Terminal:
    pass


Classification = Retryable | Terminal


def _normalize_headers(raw: object) -> dict[str, str]:
    if not isinstance(raw, Mapping):
        return {}
    return {str(k).lower(): str(v) for k, v in raw.items() if v is not None}


def _coerce_status(value: object) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    return None


def failure_info_from_exception(exc: BaseException) -> FailureInfo:
    """Reduce an exception to a FailureInfo.

    Understands botocore ClientError responses, botocore/builtin network
    errors, and any exception carrying ``status_code``/``status`` and
    ``headers`` attributes (the shape most HTTP SDKs use).
    """
    if isinstance(exc, ClientError):
        response = exc.response or {}
        metadata = response.get("ResponseMetadata", {}) or {}
        code = (response.get("Error", {}) or {}).get("Code")
        if code in THROTTLING_ERROR_CODES:
            kind = FailureKind.throttling
        elif code in NETWORK_ERROR_CODES:
            kind = FailureKind.network
        else:
            kind = FailureKind.application
        return FailureInfo(
            status_code=_coerce_status(metadata.get("HTTPStatusCode")),
            headers=_normalize_headers(metadata.get("HTTPHeaders")),
            kind=kind,
            code=code,
        )

    name = type(exc).__name__
    code = getattr(exc, "code", None)
    code = code if isinstance(code, str) else None

    if isinstance(exc, NETWORK_EXCEPTIONS) or name in NETWORK_ERROR_CODES or code in NETWORK_ERROR_CODES:
        kind = FailureKind.network
    elif name in THROTTLING_ERROR_CODES or code in THROTTLING_ERROR_CODES:
        kind = FailureKind.throttling
    else:
        kind = FailureKind.application

    status = _coerce_status(getattr(exc, "status_code", None))
    if status is None:
        status = _coerce_status(getattr(exc, "status", None))

    return FailureInfo(
        status_code=status,
        headers=_normalize_headers(getattr(exc, "headers", None)),
        kind=kind,
        code=code or name,
    )


def classify_failure(info: FailureInfo) -> Classification:
    """Classify a failure as Retryable(reason) or Terminal."""
    if info.status_code == 429:
        return Retryable(RetryReason.rate_limited)
    if info.status_code in RETRYABLE_STATUS_CODES:
        return Retryable(RetryReason.server_error)
    if info.kind is FailureKind.network:
        return Retryable(RetryReason.network)
    if info.kind is FailureKind.throttling:
        return Retryable(RetryReason.throttling)
    return Terminal()


def is_retryable(exc: BaseException) -> bool:
    """Return True when retrying ``exc`` could plausibly succeed.

    Cancellation is never retried.
    """
    if isinstance(exc, asyncio.CancelledError):
        return False
    return isinstance(classify_failure(failure_info_from_exception(exc)), Retryable)


def _parse_positive_seconds(value: str | None) -> int | None:
    if value is None:
        return None
    value = value.strip()
    # Plain ASCII digits only; int() would also take "+5" and "1_0".
    if not (value.isascii() and value.isdigit()):
        return None
    seconds = int(value)
    return seconds if seconds > 0 else None


def retry_after_seconds(
    info: FailureInfo,
    header_names: Iterable[str] = (RETRY_AFTER_HEADER,),
) -> int | None:
    """Return the server-suggested wait in whole seconds for a 429, if any.

    Header names are tried in order; the first parseable positive integer
    wins. Non-429 failures never carry an authoritative hint.
    """
    if info.status_code != 429:
        return None
    for name in header_names:
        seconds = _parse_positive_seconds(info.header(name))
        if seconds is not None:
            return seconds
    return None


def extract_retry_after_ms(
    info: FailureInfo,
    header_names: Iterable[str] = (RETRY_AFTER_HEADER,),
) -> float | None:
    """Retry-After hint converted to milliseconds (see retry_after_seconds)."""
    seconds = retry_after_seconds(info, header_names)
    if seconds is None:
        return None
    return float(seconds * 1000)

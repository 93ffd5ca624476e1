"""Tests for api_spawner.execution.failures - failure classification."""

from __future__ import annotations

import asyncio

from botocore.exceptions import ClientError, EndpointConnectionError

from api_spawner.execution.failures import (
    AWS_RATE_LIMIT_HEADERS,
    FailureInfo,
    FailureKind,
    Retryable,
    RetryReason,
    Terminal,
    classify_failure,
    extract_retry_after_ms,
    failure_info_from_exception,
    is_retryable,
    retry_after_seconds,
)


def client_error(status: int, code: str, headers: dict | None = None) -> ClientError:
    return ClientError(
        {
            "Error": {"Code": code, "Message": "failed"},
            "ResponseMetadata": {"HTTPStatusCode": status, "HTTPHeaders": headers or {}},
        },
        "DeleteRestApi",
    )


class TestFailureInfoFromException:
    """Test reduction of exceptions to FailureInfo."""

    def test_client_error_status_and_headers(self):
        info = failure_info_from_exception(
            client_error(429, "TooManyRequestsException", {"Retry-After": "5"}),
        )
        assert info.status_code == 429
        assert info.header("retry-after") == "5"
        assert info.header("RETRY-AFTER") == "5"
        assert info.kind is FailureKind.throttling
        assert info.code == "TooManyRequestsException"

    def test_client_error_application_kind(self):
        info = failure_info_from_exception(client_error(404, "NotFoundException"))
        assert info.status_code == 404
        assert info.kind is FailureKind.application

    def test_builtin_network_errors(self):
        assert failure_info_from_exception(TimeoutError()).kind is FailureKind.network
        assert failure_info_from_exception(ConnectionResetError()).kind is FailureKind.network

    def test_botocore_connection_error(self):
        exc = EndpointConnectionError(endpoint_url="https://apigateway.us-east-1.amazonaws.com")
        assert failure_info_from_exception(exc).kind is FailureKind.network

    def test_exception_named_network_error(self):
        class NetworkError(Exception):
            pass

        assert failure_info_from_exception(NetworkError()).kind is FailureKind.network

    def test_status_attribute_fallback(self):
        exc = Exception("bad gateway")
        exc.status = 502  # type: ignore[attr-defined]
        assert failure_info_from_exception(exc).status_code == 502

    def test_plain_exception(self):
        info = failure_info_from_exception(ValueError("nope"))
        assert info.status_code is None
        assert info.kind is FailureKind.application
        assert info.code == "ValueError"


class TestClassifyFailure:
    """Test Retryable / Terminal classification."""

    def test_429_is_rate_limited(self):
        assert classify_failure(FailureInfo(status_code=429)) == Retryable(RetryReason.rate_limited)

    def test_server_errors_retryable(self):
        for status in (500, 502, 503, 504):
            assert classify_failure(FailureInfo(status_code=status)) == Retryable(RetryReason.server_error)

    def test_501_terminal(self):
        assert classify_failure(FailureInfo(status_code=501)) == Terminal()

    def test_client_errors_terminal(self):
        for status in (400, 401, 403, 404, 409):
            assert isinstance(classify_failure(FailureInfo(status_code=status)), Terminal)

    def test_network_kind_retryable(self):
        assert classify_failure(FailureInfo(kind=FailureKind.network)) == Retryable(RetryReason.network)

    def test_throttling_kind_retryable_without_status(self):
        info = FailureInfo(kind=FailureKind.throttling)
        assert classify_failure(info) == Retryable(RetryReason.throttling)

    def test_unknown_terminal(self):
        assert isinstance(classify_failure(FailureInfo()), Terminal)


class TestIsRetryable:
    """Test the is_retryable convenience predicate."""

    def test_throttling_exception_code(self):
        assert is_retryable(client_error(400, "ThrottlingException")) is True

    def test_bad_request(self):
        assert is_retryable(client_error(400, "BadRequestException")) is False

    def test_cancelled_never_retryable(self):
        assert is_retryable(asyncio.CancelledError()) is False


class TestRetryAfter:
    """Test Retry-After extraction."""

    def test_only_for_429(self):
        info = FailureInfo(status_code=503, headers={"retry-after": "5"})
        assert extract_retry_after_ms(info) is None

    def test_seconds_to_ms(self):
        info = FailureInfo(status_code=429, headers={"retry-after": "5"})
        assert extract_retry_after_ms(info) == 5000

    def test_rejects_non_positive_and_non_numeric(self):
        for value in ("0", "-3", "abc", "1.5", ""):
            info = FailureInfo(status_code=429, headers={"retry-after": value})
            assert extract_retry_after_ms(info) is None

    def test_rejects_signed_and_underscored_digits(self):
        for value in ("+5", "1_0", " +1 ", "\u0665"):
            info = FailureInfo(status_code=429, headers={"retry-after": value})
            assert extract_retry_after_ms(info) is None

    def test_surrounding_whitespace_allowed(self):
        info = FailureInfo(status_code=429, headers={"retry-after": " 3 "})
        assert extract_retry_after_ms(info) == 3000

    def test_aws_header_order(self):
        info = FailureInfo(
            status_code=429,
            headers={"x-amzn-ratelimit-retryafter": "7", "retry-after": "2"},
        )
        assert retry_after_seconds(info, AWS_RATE_LIMIT_HEADERS) == 7

    def test_missing_header(self):
        assert retry_after_seconds(FailureInfo(status_code=429)) is None

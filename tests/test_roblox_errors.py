"""Tests for Roblox error classification."""

import asyncio

import aiohttp
import pytest

from src.services.roblox.errors import (
    AuthExpiredError,
    NotFoundError,
    RateLimitError,
    RobloxAPIError,
    RobloxErrorKind,
    RobloxTimeoutError,
    RobloxUnavailableError,
    classify_exception,
    error_for_status,
)


@pytest.mark.parametrize("status,csrf,expected", [
    (401, False, AuthExpiredError),
    (403, True, AuthExpiredError),
    (404, False, NotFoundError),
    (429, False, RateLimitError),
    (500, False, RobloxUnavailableError),
    (503, False, RobloxUnavailableError),
])
def test_status_mapping(status, csrf, expected):
    error = error_for_status(status, "failed", csrf_rejected=csrf)
    assert type(error) is expected
    assert error.status == status


def test_plain_403_is_not_auth_expiry():
    error = error_for_status(403, "forbidden")
    assert type(error) is RobloxAPIError
    assert error.kind == RobloxErrorKind.UNKNOWN


def test_rate_limit_keeps_retry_after_hint():
    assert error_for_status(429, "slow down", retry_after="7").retry_after == 7.0
    assert error_for_status(429, "slow down", retry_after="soon").retry_after == 0.0


def test_timeout_classified():
    error = classify_exception(asyncio.TimeoutError())
    assert isinstance(error, RobloxTimeoutError)
    assert error.kind == RobloxErrorKind.TIMEOUT


def test_connection_error_is_unavailable():
    error = classify_exception(aiohttp.ClientConnectionError("reset"))
    assert error.kind == RobloxErrorKind.UNAVAILABLE


def test_typed_errors_pass_through():
    original = NotFoundError("no such user", 404)
    assert classify_exception(original) is original


def test_unknown_exception_wrapped():
    error = classify_exception(KeyError("data"))
    assert type(error) is RobloxAPIError

"""
Unit tests for the shared utilities.
"""

import asyncio

import pytest
from unittest.mock import AsyncMock, patch

from service_tokens.app.service import TokenValidationService
from shared.circuit_breaker import CircuitBreaker, CircuitBreakerOpenException, CircuitBreakerState
from shared.config import TokenCacheConfig
from shared.errors import StoreWriteError, TokenCacheException
from shared.logging import (
    add_correlation_context,
    add_service_context,
    clear_context,
    set_request_id,
    token_fingerprint,
)
from shared.tracing import trace_operation


class TestLogging:
    """Test cases for logging processors and helpers."""

    def test_token_fingerprint_is_stable_and_hides_token(self):
        fingerprint = token_fingerprint("super-secret-token")

        assert fingerprint == token_fingerprint("super-secret-token")
        assert fingerprint != token_fingerprint("other-token")
        assert len(fingerprint) == 12
        assert "secret" not in fingerprint

    def test_service_context_from_logger_name(self):
        event = add_service_context(None, "info", {"logger": "tokens.cache", "event": "x"})

        assert event["service"] == "tokens"

    def test_correlation_context(self):
        request_id = set_request_id()
        try:
            event = add_correlation_context(None, "info", {"event": "x"})
            assert event["request_id"] == request_id
        finally:
            clear_context()

        assert "request_id" not in add_correlation_context(None, "info", {"event": "x"})


class TestErrors:
    """Test cases for the error taxonomy."""

    def test_to_response(self):
        error = StoreWriteError("disk full", details={"identity": "1"})

        response = error.to_response()

        assert isinstance(error, TokenCacheException)
        assert response.code == "STORE_WRITE_ERROR"
        assert response.message == "disk full"
        assert response.details == {"identity": "1"}
        assert response.trace_id is None


class TestCircuitBreaker:
    """Test cases for CircuitBreaker."""

    @pytest.mark.asyncio
    async def test_opens_at_threshold_and_blocks(self):
        breaker = CircuitBreaker(failure_threshold=2, recovery_timeout=60.0, name="test")
        failing = AsyncMock(side_effect=RuntimeError("boom"))

        for _ in range(2):
            with pytest.raises(RuntimeError):
                await breaker.call(failing)

        assert breaker.state == CircuitBreakerState.OPEN
        with pytest.raises(CircuitBreakerOpenException):
            await breaker.call(failing)
        assert failing.await_count == 2

    @pytest.mark.asyncio
    async def test_success_resets_failure_count(self):
        breaker = CircuitBreaker(failure_threshold=2, name="test")

        with pytest.raises(RuntimeError):
            await breaker.call(AsyncMock(side_effect=RuntimeError("boom")))
        assert await breaker.call(AsyncMock(return_value=True)) is True

        assert breaker.get_state()["failure_count"] == 0
        assert breaker.state == CircuitBreakerState.CLOSED

    @pytest.mark.asyncio
    async def test_half_open_failure_reopens(self):
        breaker = CircuitBreaker(failure_threshold=3, recovery_timeout=0.001, name="test")
        breaker._state = CircuitBreakerState.OPEN
        breaker._last_failure_time -= 1.0

        with pytest.raises(RuntimeError):
            await breaker.call(AsyncMock(side_effect=RuntimeError("boom")))

        assert breaker.is_open()

    @pytest.mark.asyncio
    async def test_cancelled_half_open_call_returns_to_open(self):
        breaker = CircuitBreaker(failure_threshold=3, recovery_timeout=60.0, name="test")
        breaker._state = CircuitBreakerState.OPEN
        breaker._last_failure_time -= 120.0
        cancelled = AsyncMock(side_effect=asyncio.CancelledError())

        with pytest.raises(asyncio.CancelledError):
            await breaker.call(cancelled)

        assert breaker.is_open()
        with pytest.raises(CircuitBreakerOpenException):
            await breaker.call(AsyncMock(return_value=True))
        assert breaker.get_state()["failure_count"] == 0


class TestTracing:
    """Test cases for tracing helpers."""

    def test_trace_operation_reraises(self):
        with pytest.raises(ValueError):
            with trace_operation("test.op", key="value"):
                raise ValueError("bad")

    def test_service_configures_tracing_when_enabled(self):
        config = TokenCacheConfig(enable_tracing=True, otel_exporter="http://collector:4317")

        with patch("service_tokens.app.service.configure_tracing") as configure_tracing:
            TokenValidationService(config, store=AsyncMock(), oracle=AsyncMock())

        configure_tracing.assert_called_once_with("tokens", "http://collector:4317")

    def test_service_skips_tracing_by_default(self):
        with patch("service_tokens.app.service.configure_tracing") as configure_tracing:
            TokenValidationService(TokenCacheConfig(), store=AsyncMock(), oracle=AsyncMock())

        configure_tracing.assert_not_called()

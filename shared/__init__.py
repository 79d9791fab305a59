"""
Shared utilities for the token validation cache.

This package aggregates the building blocks used by service_tokens:

- config: Settings via pydantic-settings
- logging: Structured logging with trace correlation
- metrics: Prometheus counters for cache and oracle activity
- tracing: OpenTelemetry tracing config
- errors: Canonical error types and responses
- circuit_breaker: Protection for calls to the remote oracle

Do not import from service_tokens into shared/.
"""

"""
Prometheus metrics for the token validation cache.
"""

import time
from contextlib import contextmanager
from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Histogram


class ValidationMetrics:
    """Counters and timings for cache lookups and oracle calls.

    Each instance registers into its own ``CollectorRegistry`` unless one is
    passed, so several caches (or tests) can coexist in one process.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry if registry is not None else CollectorRegistry()

        self.lookups_total = Counter(
            "token_cache_lookups_total",
            "Record store lookups by result",
            ["result"],
            registry=self.registry
        )
        self.oracle_calls_total = Counter(
            "token_oracle_calls_total",
            "Validation oracle calls by outcome",
            ["outcome"],
            registry=self.registry
        )
        self.errors_total = Counter(
            "token_cache_errors_total",
            "Failed validations by stage",
            ["stage"],
            registry=self.registry
        )
        self.validation_duration_seconds = Histogram(
            "token_validation_duration_seconds",
            "Time spent in validate_user_token",
            registry=self.registry
        )

    def record_lookup(self, result: str):
        """result is one of hit, miss, negative."""
        self.lookups_total.labels(result=result).inc()

    def record_oracle_call(self, outcome: str):
        """outcome is one of valid, invalid, error."""
        self.oracle_calls_total.labels(outcome=outcome).inc()

    def record_error(self, stage: str):
        self.errors_total.labels(stage=stage).inc()

    @contextmanager
    def time_validation(self):
        start_time = time.perf_counter()
        try:
            yield
        finally:
            self.validation_duration_seconds.observe(time.perf_counter() - start_time)

    def sample(self, name: str, **labels) -> float:
        """Current value of a sample, 0.0 when it was never recorded."""
        value = self.registry.get_sample_value(name, labels or None)
        return value or 0.0

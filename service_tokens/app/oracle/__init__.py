"""
Validation oracle adapters.

HttpValidationOracle wraps the remote authority behind a circuit breaker and
maps transport, status and payload problems to OracleError.
"""

from .client import HttpValidationOracle

__all__ = ["HttpValidationOracle"]

"""
Token validation cache.

Decides whether an (identity, token) pair is valid, consulting a durable
record store before falling back to a remote validation oracle:

- app.cache: ValidationCache, the read-through / write-through algorithm.
- app.persistence: Record stores (PostgreSQL via asyncpg, in-memory).
- app.oracle: HTTP client for the validation oracle.
- app.service: Wires config, logging, tracing and collaborators together.

Package import must not perform IO; pools and HTTP clients are created in
explicit start hooks or on first use.
"""

from .cache.validation_cache import ValidationCache
from .models import Identity, LookupResult, ValidationRecord

__all__ = [
    "Identity",
    "LookupResult",
    "ValidationCache",
    "ValidationRecord",
]

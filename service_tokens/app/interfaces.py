"""
Capability interfaces for the validation cache collaborators.
"""

from typing import Protocol

from .models import Identity, LookupResult


class RecordStore(Protocol):
    """Durable store of validation outcomes keyed by (identity, token).

    ``lookup`` raises StoreLookupError on failure and returns
    ``LookupResult.missing()`` when there is no record. ``upsert`` raises
    StoreWriteError on failure and overwrites any record for the same key.
    """

    async def lookup(self, identity: Identity, token: str) -> LookupResult: ...

    async def upsert(self, identity: Identity, token: str, validated: bool) -> None: ...


class ManagedRecordStore(RecordStore, Protocol):
    """Record store with an explicit lifecycle."""

    async def start(self) -> None: ...

    async def stop(self) -> None: ...

    async def health_check(self) -> bool: ...


class ValidationOracle(Protocol):
    """External authority for token validity.

    Only the token is sent; identity never leaves the cache. Raises
    OracleError when unreachable, rejecting, or malformed.
    """

    async def validate_token(self, token: str) -> bool: ...

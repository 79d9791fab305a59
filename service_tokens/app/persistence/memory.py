"""
In-memory record store, for tests and local runs without PostgreSQL.
"""

from typing import Dict, List, Tuple

from ..models import Identity, LookupResult, ValidationRecord


class InMemoryRecordStore:
    """Dict-backed record store with the same keyed-overwrite semantics."""

    def __init__(self):
        self._records: Dict[Tuple[Identity, str], bool] = {}

    async def start(self):
        pass

    async def stop(self):
        pass

    async def health_check(self) -> bool:
        return True

    async def lookup(self, identity: Identity, token: str) -> LookupResult:
        validated = self._records.get((identity, token))
        if validated is None:
            return LookupResult.missing()
        return LookupResult(found=True, validated=validated)

    async def upsert(self, identity: Identity, token: str, validated: bool) -> None:
        self._records[(identity, token)] = validated

    def seed(self, identity: Identity, token: str, validated: bool):
        """Write a record directly, bypassing the cache."""
        self._records[(identity, token)] = validated

    def records(self) -> List[ValidationRecord]:
        return [
            ValidationRecord(identity=identity, token=token, validated=validated)
            for (identity, token), validated in self._records.items()
        ]

    def __len__(self) -> int:
        return len(self._records)

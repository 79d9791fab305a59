"""
Persistence package for validation outcomes.

- PostgresRecordStore: asyncpg pool over a ``tokens`` table with primary key
  (user_id, token).
- InMemoryRecordStore: dict-backed equivalent for tests.
"""

from .memory import InMemoryRecordStore
from .postgres import PostgresRecordStore

__all__ = ["InMemoryRecordStore", "PostgresRecordStore"]

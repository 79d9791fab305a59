"""
PostgreSQL record store for token validation outcomes.
"""

import re
from typing import Optional

import asyncpg

from shared.config import TokenCacheConfig, is_valid_identifier
from shared.errors import ConfigurationError, StoreError, StoreLookupError, StoreWriteError
from shared.logging import get_logger, token_fingerprint
from ..models import Identity, LookupResult

_INTEGER_RE = re.compile(r"^[+-]?\d+$")

_IDENTITY_COLUMN_TYPES = {
    "int": "BIGINT",
    "text": "VARCHAR(255)",
}


class PostgresRecordStore:
    """asyncpg-backed store of validation outcomes.

    Rows live in a single table keyed by ``(user_id, token)``. Writes are a
    single ``INSERT ... ON CONFLICT DO UPDATE`` statement, so a cancelled or
    failed call never leaves a partial row behind.
    """

    def __init__(self,
                 dsn: str,
                 table: str = "tokens",
                 identity_type: str = "int",
                 min_size: int = 2,
                 max_size: int = 10,
                 command_timeout: float = 30.0,
                 create_schema: bool = True,
                 pool: Optional[asyncpg.Pool] = None):
        if not is_valid_identifier(table):
            raise ConfigurationError(
                f"Invalid table name: {table!r}",
                details={"table": table}
            )
        if identity_type not in _IDENTITY_COLUMN_TYPES:
            raise ConfigurationError(
                f"Unsupported identity type: {identity_type!r}",
                details={"identity_type": identity_type}
            )

        self.dsn = dsn
        self.table = table
        self.identity_type = identity_type
        self.min_size = min_size
        self.max_size = max_size
        self.command_timeout = command_timeout
        self.create_schema = create_schema
        self.logger = get_logger("tokens.persistence.postgres")

        self.pool: Optional[asyncpg.Pool] = pool
        self._owns_pool = pool is None

        self._select_sql = f"SELECT validated FROM {table} WHERE user_id = $1 AND token = $2"
        self._upsert_sql = (
            f"INSERT INTO {table} (user_id, token, validated) VALUES ($1, $2, $3) "
            f"ON CONFLICT (user_id, token) DO UPDATE SET validated = EXCLUDED.validated"
        )

    @classmethod
    def from_config(cls, config: TokenCacheConfig) -> "PostgresRecordStore":
        return cls(
            config.postgres_dsn,
            table=config.tokens_table,
            identity_type=config.identity_type,
            min_size=config.postgres_min_pool_size,
            max_size=config.postgres_max_pool_size,
            command_timeout=config.postgres_command_timeout,
            create_schema=config.create_schema
        )

    async def start(self):
        """Open the connection pool and bootstrap the table if configured."""
        try:
            if self.pool is None:
                self.pool = await asyncpg.create_pool(
                    self.dsn,
                    min_size=self.min_size,
                    max_size=self.max_size,
                    command_timeout=self.command_timeout
                )

            if self.create_schema:
                await self.ensure_schema()

            self.logger.info("PostgreSQL record store started", table=self.table)

        except Exception as e:
            self.logger.error("Failed to start PostgreSQL record store", error=str(e))
            await self.stop()
            raise StoreError(
                "Failed to start PostgreSQL record store",
                details={"error": str(e)}
            ) from e

    async def stop(self):
        """Close the pool if this store created it."""
        if self.pool is not None and self._owns_pool:
            await self.pool.close()
            self.pool = None
            self.logger.info("PostgreSQL record store stopped")

    async def __aenter__(self) -> "PostgresRecordStore":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.stop()

    def _require_pool(self) -> asyncpg.Pool:
        if self.pool is None:
            raise StoreError("PostgreSQL record store is not started")
        return self.pool

    async def ensure_schema(self):
        """Create the tokens table if it does not exist."""
        pool = self._require_pool()
        async with pool.acquire() as conn:
            await conn.execute(f"""
                CREATE TABLE IF NOT EXISTS {self.table} (
                    user_id {_IDENTITY_COLUMN_TYPES[self.identity_type]} NOT NULL,
                    token VARCHAR(255) NOT NULL,
                    validated BOOLEAN NOT NULL,
                    PRIMARY KEY (user_id, token)
                );
            """)

    def _bind_identity(self, identity: Identity) -> Identity:
        """Convert ``identity`` to the Python type asyncpg expects for user_id."""
        if self.identity_type == "text":
            return str(identity)

        if isinstance(identity, int) and not isinstance(identity, bool):
            return identity
        if isinstance(identity, str) and _INTEGER_RE.match(identity.strip()):
            return int(identity.strip())
        raise ConfigurationError(
            f"Identity {identity!r} cannot be stored in a BIGINT user_id column; "
            f"configure identity_type='text' for non-numeric identities",
            details={"identity": str(identity), "identity_type": self.identity_type}
        )

    async def lookup(self, identity: Identity, token: str) -> LookupResult:
        """Fetch the stored outcome for (identity, token)."""
        bound_identity = self._bind_identity(identity)
        try:
            pool = self._require_pool()
            async with pool.acquire() as conn:
                row = await conn.fetchrow(self._select_sql, bound_identity, token)
        except Exception as e:
            self.logger.error(
                "Error looking up token record",
                identity=identity,
                token=token_fingerprint(token),
                error=str(e)
            )
            raise StoreLookupError(
                "Token record lookup failed",
                details={"identity": str(identity), "error": str(e)}
            ) from e

        if row is None:
            return LookupResult.missing()
        return LookupResult(found=True, validated=row["validated"])

    async def upsert(self, identity: Identity, token: str, validated: bool) -> None:
        """Insert or overwrite the outcome for (identity, token)."""
        bound_identity = self._bind_identity(identity)
        try:
            pool = self._require_pool()
            async with pool.acquire() as conn:
                await conn.execute(self._upsert_sql, bound_identity, token, validated)
        except Exception as e:
            self.logger.error(
                "Error saving token record",
                identity=identity,
                token=token_fingerprint(token),
                error=str(e)
            )
            raise StoreWriteError(
                "Token record write failed",
                details={"identity": str(identity), "error": str(e)}
            ) from e

        self.logger.debug(
            "Token record saved",
            identity=identity,
            token=token_fingerprint(token),
            validated=validated
        )

    async def health_check(self) -> bool:
        """Check database health."""
        if self.pool is None:
            return False
        try:
            async with self.pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
                return True
        except Exception as e:
            self.logger.warning("PostgreSQL health check failed", error=str(e))
            return False

"""
Unit tests for PostgresRecordStore against a mocked asyncpg pool.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from service_tokens.app.models import LookupResult
from service_tokens.app.persistence.postgres import PostgresRecordStore
from shared.config import TokenCacheConfig
from shared.errors import ConfigurationError, StoreError, StoreLookupError, StoreWriteError


@pytest.fixture
def conn():
    """Mocked asyncpg connection."""
    connection = MagicMock()
    connection.fetchrow = AsyncMock(return_value=None)
    connection.execute = AsyncMock(return_value="INSERT 0 1")
    connection.fetchval = AsyncMock(return_value=1)
    return connection


@pytest.fixture
def pool(conn):
    """Mocked asyncpg pool whose acquire() yields ``conn``."""
    mock_pool = MagicMock()
    mock_pool.acquire.return_value.__aenter__.return_value = conn
    mock_pool.close = AsyncMock()
    return mock_pool


@pytest.fixture
def store(pool):
    return PostgresRecordStore("postgresql://test/tokens", pool=pool, create_schema=False)


class TestPostgresRecordStore:
    """Test cases for PostgresRecordStore."""

    def test_rejects_unsafe_table_name(self):
        with pytest.raises(ConfigurationError):
            PostgresRecordStore("postgresql://test/tokens", table="tokens; DROP TABLE users")

    def test_rejects_unknown_identity_type(self):
        with pytest.raises(ConfigurationError):
            PostgresRecordStore("postgresql://test/tokens", identity_type="uuid")

    def test_from_config(self):
        config = TokenCacheConfig(
            postgres_dsn="postgresql://db:5432/cache",
            tokens_table="token_checks",
            identity_type="text",
            postgres_max_pool_size=4
        )

        store = PostgresRecordStore.from_config(config)

        assert store.dsn == "postgresql://db:5432/cache"
        assert store.table == "token_checks"
        assert store.identity_type == "text"
        assert store.max_size == 4

    @pytest.mark.asyncio
    async def test_lookup_missing_record(self, store, conn):
        result = await store.lookup(1, "fresh")

        assert result == LookupResult(found=False, validated=False)
        conn.fetchrow.assert_awaited_once_with(
            "SELECT validated FROM tokens WHERE user_id = $1 AND token = $2", 1, "fresh"
        )

    @pytest.mark.asyncio
    async def test_lookup_existing_record(self, store, conn):
        conn.fetchrow.return_value = {"validated": True}

        assert await store.lookup(1, "seeded") == LookupResult(found=True, validated=True)

    @pytest.mark.asyncio
    async def test_lookup_negative_record(self, store, conn):
        conn.fetchrow.return_value = {"validated": False}

        assert await store.lookup(1, "bad") == LookupResult(found=True, validated=False)

    @pytest.mark.asyncio
    async def test_lookup_failure_raises_lookup_error(self, store, conn):
        conn.fetchrow.side_effect = OSError("connection refused")

        with pytest.raises(StoreLookupError) as exc_info:
            await store.lookup(1, "fresh")

        assert "connection refused" in exc_info.value.details["error"]

    @pytest.mark.asyncio
    async def test_lookup_before_start_raises_lookup_error(self):
        store = PostgresRecordStore("postgresql://test/tokens")

        with pytest.raises(StoreLookupError) as exc_info:
            await store.lookup(1, "fresh")

        assert isinstance(exc_info.value.__cause__, StoreError)

    @pytest.mark.asyncio
    async def test_upsert_uses_on_conflict_update(self, store, conn):
        await store.upsert(1, "fresh", True)

        sql, *params = conn.execute.await_args.args
        assert sql.startswith("INSERT INTO tokens (user_id, token, validated)")
        assert "ON CONFLICT (user_id, token) DO UPDATE SET validated = EXCLUDED.validated" in sql
        assert params == [1, "fresh", True]

    @pytest.mark.asyncio
    async def test_upsert_failure_raises_write_error(self, store, conn):
        conn.execute.side_effect = OSError("connection reset")

        with pytest.raises(StoreWriteError):
            await store.upsert(1, "fresh", True)

    @pytest.mark.asyncio
    async def test_int_column_binds_numeric_string_as_int(self, store, conn):
        await store.lookup("42", "fresh")
        await store.upsert("42", "fresh", True)

        assert conn.fetchrow.await_args.args[1] == 42
        assert isinstance(conn.fetchrow.await_args.args[1], int)
        assert conn.execute.await_args.args[1:] == (42, "fresh", True)

    @pytest.mark.asyncio
    async def test_int_column_rejects_non_numeric_identity(self, store, conn):
        with pytest.raises(ConfigurationError) as exc_info:
            await store.lookup("user-abc", "fresh")
        assert "identity_type='text'" in exc_info.value.message

        with pytest.raises(ConfigurationError):
            await store.upsert("user-abc", "fresh", True)

        with pytest.raises(ConfigurationError):
            await store.lookup(True, "fresh")

        conn.fetchrow.assert_not_called()
        conn.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_text_column_binds_identity_as_str(self, pool, conn):
        store = PostgresRecordStore("postgresql://test/tokens", identity_type="text", pool=pool)

        await store.lookup(1, "fresh")
        await store.upsert(1, "fresh", False)

        assert conn.fetchrow.await_args.args[1:] == ("1", "fresh")
        assert conn.execute.await_args.args[1:] == ("1", "fresh", False)

    @pytest.mark.asyncio
    async def test_custom_table_name_is_used(self, pool, conn):
        store = PostgresRecordStore("postgresql://test/tokens", table="token_checks", pool=pool)

        await store.lookup(1, "fresh")

        assert "FROM token_checks WHERE" in conn.fetchrow.await_args.args[0]

    @pytest.mark.asyncio
    async def test_ensure_schema_creates_keyed_table(self, store, conn):
        await store.ensure_schema()

        ddl = conn.execute.await_args.args[0]
        assert "CREATE TABLE IF NOT EXISTS tokens" in ddl
        assert "user_id BIGINT NOT NULL" in ddl
        assert "PRIMARY KEY (user_id, token)" in ddl

    @pytest.mark.asyncio
    async def test_ensure_schema_text_identities(self, pool, conn):
        store = PostgresRecordStore("postgresql://test/tokens", identity_type="text", pool=pool)

        await store.ensure_schema()

        assert "user_id VARCHAR(255) NOT NULL" in conn.execute.await_args.args[0]

    @pytest.mark.asyncio
    async def test_start_creates_pool_and_schema(self, pool, conn):
        with patch(
            "service_tokens.app.persistence.postgres.asyncpg.create_pool",
            new=AsyncMock(return_value=pool)
        ) as create_pool:
            store = PostgresRecordStore("postgresql://test/tokens", min_size=1, max_size=3, command_timeout=5.0)
            await store.start()

        create_pool.assert_awaited_once_with(
            "postgresql://test/tokens", min_size=1, max_size=3, command_timeout=5.0
        )
        assert "CREATE TABLE IF NOT EXISTS tokens" in conn.execute.await_args.args[0]

        await store.stop()
        pool.close.assert_awaited_once()
        assert store.pool is None

    @pytest.mark.asyncio
    async def test_start_failure_raises_store_error(self):
        with patch(
            "service_tokens.app.persistence.postgres.asyncpg.create_pool",
            new=AsyncMock(side_effect=OSError("no route to host"))
        ):
            store = PostgresRecordStore("postgresql://test/tokens")

            with pytest.raises(StoreError):
                await store.start()

        assert store.pool is None

    @pytest.mark.asyncio
    async def test_stop_leaves_injected_pool_open(self, store, pool):
        await store.stop()

        pool.close.assert_not_called()

    @pytest.mark.asyncio
    async def test_health_check(self, store, conn):
        assert await store.health_check() is True

        conn.fetchval.side_effect = OSError("gone")
        assert await store.health_check() is False

    @pytest.mark.asyncio
    async def test_health_check_without_pool(self):
        store = PostgresRecordStore("postgresql://test/tokens")

        assert await store.health_check() is False

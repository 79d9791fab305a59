"""
Token validation service wiring.
"""

from typing import Any, Dict, Optional

from shared.config import TokenCacheConfig, get_config
from shared.logging import configure_logging, get_logger
from shared.metrics import ValidationMetrics
from shared.tracing import configure_tracing
from .cache.validation_cache import ValidationCache
from .interfaces import ManagedRecordStore, ValidationOracle
from .models import Identity
from .oracle.client import HttpValidationOracle
from .persistence.postgres import PostgresRecordStore


class TokenValidationService:
    """Owns the record store, the oracle client and the cache built on them.

    Collaborators default to the PostgreSQL store and HTTP oracle described
    by the config; tests pass their own.
    """

    def __init__(self,
                 config: Optional[TokenCacheConfig] = None,
                 store: Optional[ManagedRecordStore] = None,
                 oracle: Optional[ValidationOracle] = None,
                 metrics: Optional[ValidationMetrics] = None):
        self.config = config if config is not None else get_config()
        self.logger = get_logger("tokens.service")

        configure_logging("tokens", self.config.log_level)
        if self.config.enable_tracing:
            configure_tracing("tokens", self.config.otel_exporter)

        self.store = store if store is not None else PostgresRecordStore.from_config(self.config)
        self.oracle = oracle if oracle is not None else HttpValidationOracle.from_config(self.config)
        self.metrics = metrics if metrics is not None else ValidationMetrics()
        self.cache = ValidationCache(self.store, self.oracle, self.metrics)

    async def start(self):
        await self.store.start()
        self.logger.info("Token validation service started", env=self.config.env)

    async def stop(self):
        await self.store.stop()
        if isinstance(self.oracle, HttpValidationOracle):
            await self.oracle.aclose()
        self.logger.info("Token validation service stopped")

    async def __aenter__(self) -> "TokenValidationService":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.stop()

    async def validate_user_token(self, identity: Identity, token: str) -> bool:
        return await self.cache.validate_user_token(identity, token)

    async def health_check(self) -> Dict[str, Any]:
        store_ok = await self.store.health_check()
        health: Dict[str, Any] = {
            "status": "ok" if store_ok else "degraded",
            "store": store_ok,
        }
        if isinstance(self.oracle, HttpValidationOracle):
            health["oracle_circuit"] = self.oracle.circuit_breaker.get_state()["state"]
        return health

"""
Read-through / write-through cache of token validation outcomes.
"""

from typing import Any, Awaitable, Callable, Optional, Type

from shared.errors import OracleError, StoreLookupError, StoreWriteError, TokenCacheException
from shared.logging import get_logger, token_fingerprint
from shared.metrics import ValidationMetrics
from shared.tracing import trace_operation
from ..interfaces import RecordStore, ValidationOracle
from ..models import Identity, LookupResult


class ValidationCache:
    """Validate tokens, preferring a stored positive outcome over the oracle.

    Only positive records short-circuit. A stored ``validated=False`` is
    treated like a miss and the oracle is asked again. Every oracle answer is
    upserted before it is returned; a failed upsert fails the call and the
    answer is discarded.

    There is no locking or coalescing: concurrent cold calls for one key may
    each reach the oracle, and the store's keyed upsert keeps a single row.
    """

    def __init__(self,
                 store: RecordStore,
                 oracle: ValidationOracle,
                 metrics: Optional[ValidationMetrics] = None):
        self.store = store
        self.oracle = oracle
        self.metrics = metrics if metrics is not None else ValidationMetrics()
        self.logger = get_logger("tokens.cache")

    async def validate_user_token(self, identity: Identity, token: str) -> bool:
        """Return whether ``token`` is valid for ``identity``.

        Raises StoreLookupError, OracleError or StoreWriteError; no step is
        retried and nothing after a failed step runs.
        """
        fingerprint = token_fingerprint(token)

        with self.metrics.time_validation(), trace_operation(
            "token_cache.validate",
            identity=str(identity),
            token_fingerprint=fingerprint
        ) as span:
            cached: LookupResult = await self._guard(
                "lookup", StoreLookupError, "Token record lookup failed",
                self.store.lookup, identity, token,
                identity=identity, token=fingerprint
            )

            if cached.found and cached.validated:
                self.metrics.record_lookup("hit")
                span.set_attribute("cache.hit", True)
                self.logger.debug("Token cache hit", identity=identity, token=fingerprint)
                return True

            self.metrics.record_lookup("negative" if cached.found else "miss")
            span.set_attribute("cache.hit", False)

            validated: bool = await self._guard(
                "oracle", OracleError, "Validation oracle call failed",
                self.oracle.validate_token, token,
                identity=identity, token=fingerprint
            )
            self.metrics.record_oracle_call("valid" if validated else "invalid")

            await self._guard(
                "write", StoreWriteError, "Token record write failed",
                self.store.upsert, identity, token, validated,
                identity=identity, token=fingerprint
            )

            self.logger.info(
                "Token validated by oracle",
                identity=identity,
                token=fingerprint,
                validated=validated,
                previous_record=cached.found
            )
            return validated

    async def _guard(self,
                     stage: str,
                     error_cls: Type[TokenCacheException],
                     message: str,
                     func: Callable[..., Awaitable[Any]],
                     *args,
                     **log_fields) -> Any:
        """Run one collaborator call, mapping any failure onto ``error_cls``."""
        try:
            return await func(*args)
        except Exception as e:
            self.metrics.record_error(stage)
            if stage == "oracle":
                self.metrics.record_oracle_call("error")
            self.logger.error(message, stage=stage, error=str(e), **log_fields)

            if isinstance(e, error_cls):
                raise
            raise error_cls(
                f"{message}: {e}",
                details={"stage": stage, "error": str(e), "error_type": type(e).__name__}
            ) from e

"""
Shared configuration management for the token validation cache.
"""

import re
from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]{0,62}$")


class TokenCacheConfig(BaseSettings):
    """Settings for the validation cache and its collaborators.

    Every field can be overridden with a ``TOKENS_``-prefixed environment
    variable (``TOKENS_POSTGRES_DSN``, ``TOKENS_ORACLE_URL``...) or a ``.env``
    file.
    """

    model_config = SettingsConfigDict(
        env_prefix="TOKENS_",
        env_file=".env",
        case_sensitive=False,
        extra="allow"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Record store
    postgres_dsn: str = Field(default="postgresql://localhost:5432/tokens")
    postgres_min_pool_size: int = Field(default=2, ge=1)
    postgres_max_pool_size: int = Field(default=10, ge=1)
    postgres_command_timeout: float = Field(default=30.0, gt=0)
    tokens_table: str = Field(default="tokens")
    identity_type: Literal["int", "text"] = Field(default="int")
    create_schema: bool = Field(default=True)

    # Validation oracle
    oracle_url: str = Field(default="http://localhost:8090")
    oracle_validate_path: str = Field(default="/tokens/validate")
    oracle_timeout: float = Field(default=10.0, gt=0)
    oracle_failure_threshold: int = Field(default=5, ge=1)
    oracle_recovery_timeout: float = Field(default=30.0, gt=0)

    # Observability
    enable_tracing: bool = Field(default=False)
    otel_exporter: str = Field(default="http://localhost:4317")

    @field_validator("tokens_table")
    @classmethod
    def _check_table_name(cls, value: str) -> str:
        # Interpolated into SQL, so only plain identifiers are accepted
        if not _IDENTIFIER_RE.match(value):
            raise ValueError(f"tokens_table must be a plain SQL identifier, got {value!r}")
        return value


def is_valid_identifier(name: str) -> bool:
    """Return True when ``name`` can be safely used as an unquoted table name."""
    return bool(_IDENTIFIER_RE.match(name))


@lru_cache(maxsize=1)
def get_config() -> TokenCacheConfig:
    """Get the process-wide configuration."""
    return TokenCacheConfig()

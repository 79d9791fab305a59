"""
HTTP client for the remote validation oracle.
"""

from typing import Optional

import httpx

from shared.circuit_breaker import CircuitBreaker, CircuitBreakerOpenException
from shared.config import TokenCacheConfig
from shared.errors import OracleError
from shared.logging import get_logger, token_fingerprint


class HttpValidationOracle:
    """Ask the oracle whether a token is valid.

    Wire format: ``POST {base_url}{validate_path}`` with ``{"token": ...}``;
    a 200 response must carry ``{"valid": true|false}``. Anything else is an
    OracleError. Calls are not retried.
    """

    def __init__(self,
                 base_url: str,
                 validate_path: str = "/tokens/validate",
                 timeout: float = 10.0,
                 failure_threshold: int = 5,
                 recovery_timeout: float = 30.0,
                 client: Optional[httpx.AsyncClient] = None):
        self.validate_url = f"{base_url.rstrip('/')}/{validate_path.lstrip('/')}"
        self.timeout = timeout
        self.logger = get_logger("tokens.oracle")
        self.circuit_breaker = CircuitBreaker(
            failure_threshold=failure_threshold,
            recovery_timeout=recovery_timeout,
            name="validation_oracle"
        )

        self._client = client
        self._owns_client = client is None

    @classmethod
    def from_config(cls, config: TokenCacheConfig) -> "HttpValidationOracle":
        return cls(
            config.oracle_url,
            validate_path=config.oracle_validate_path,
            timeout=config.oracle_timeout,
            failure_threshold=config.oracle_failure_threshold,
            recovery_timeout=config.oracle_recovery_timeout
        )

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def aclose(self):
        """Close the HTTP client if this oracle created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def validate_token(self, token: str) -> bool:
        """Return the oracle's verdict for ``token``."""
        async def _validate() -> bool:
            response = await self._get_client().post(
                self.validate_url,
                json={"token": token}
            )
            return self._parse_response(response)

        try:
            return await self.circuit_breaker.call(_validate)

        except CircuitBreakerOpenException as e:
            self.logger.warning("Validation oracle circuit open", token=token_fingerprint(token))
            raise OracleError(
                "Validation oracle unavailable (circuit open)",
                details=self.circuit_breaker.get_state()
            ) from e
        except httpx.HTTPError as e:
            self.logger.error(
                "Validation oracle HTTP error",
                token=token_fingerprint(token),
                error=str(e)
            )
            raise OracleError(
                "Validation oracle unavailable",
                details={"http_error": str(e), "error_type": type(e).__name__}
            ) from e

    def _parse_response(self, response: httpx.Response) -> bool:
        if response.status_code != 200:
            raise OracleError(
                f"Validation oracle error: {response.status_code}",
                details={"status_code": response.status_code}
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise OracleError(
                "Validation oracle returned a non-JSON body",
                details={"status_code": response.status_code}
            ) from e

        valid = payload.get("valid") if isinstance(payload, dict) else None
        if not isinstance(valid, bool):
            raise OracleError(
                "Validation oracle response has no boolean 'valid' field",
                details={"body": payload}
            )
        return valid

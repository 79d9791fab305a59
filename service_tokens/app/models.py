"""
Data models for cached token validation outcomes.
"""

from typing import Tuple, Union

from pydantic import BaseModel, ConfigDict

Identity = Union[int, str]


class ValidationRecord(BaseModel):
    """Last known validation outcome for one (identity, token) pair."""

    model_config = ConfigDict(frozen=True)

    identity: Identity
    token: str
    validated: bool

    @property
    def key(self) -> Tuple[Identity, str]:
        return (self.identity, self.token)


class LookupResult(BaseModel):
    """Result of a record store lookup.

    ``found`` is False when no record exists for the key; that is a normal
    outcome, not an error.
    """

    model_config = ConfigDict(frozen=True)

    found: bool
    validated: bool = False

    @classmethod
    def missing(cls) -> "LookupResult":
        return cls(found=False, validated=False)

"""
Cache package for token validation.

Holds the ValidationCache that sits in front of the record store and the
validation oracle.
"""

from .validation_cache import ValidationCache

__all__ = ["ValidationCache"]

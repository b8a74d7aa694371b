"""Shared utilities."""

from .hashing import get_string_hash, create_rng

__all__ = [
    "get_string_hash",
    "create_rng",
]

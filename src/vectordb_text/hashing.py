"""Token hashing into the fixed 32-bit term-id space.

Term ids are never stored as a vocabulary table. Every token is hashed with a
named algorithm, and the name travels with persisted statistics so an encoder
can tell which function produced the ids it is reading.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol

import mmh3

from vectordb_text.errors import ConfigurationError


MMH3_HASH_NAME = "mmh3_hash"
DEFAULT_HASH_NAME = MMH3_HASH_NAME


class Hasher(Protocol):
    """Protocol implemented by token hashers."""

    name: str

    def hash(self, token: str) -> int:  # pragma: no cover - interface definition
        ...


class Mmh3Hasher:
    """MurmurHash3 x86 32-bit, seed 0, returned as an unsigned integer."""

    name = MMH3_HASH_NAME

    def hash(self, token: str) -> int:
        return mmh3.hash(token, 0, signed=False)

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


_HASHER_FACTORIES: dict[str, Callable[[], Hasher]] = {
    MMH3_HASH_NAME: Mmh3Hasher,
}


def register_hasher(name: str, factory: Callable[[], Hasher]) -> None:
    """Make an alternate hash function available by name."""

    if not name:
        raise ConfigurationError("hash function name must be a non-empty string")
    _HASHER_FACTORIES[name] = factory


def available_hashers() -> list[str]:
    return sorted(_HASHER_FACTORIES)


def get_hasher(name: str | None = None) -> Hasher:
    """Return hasher by name, defaulting to MurmurHash3."""

    if not name:
        name = DEFAULT_HASH_NAME
    factory = _HASHER_FACTORIES.get(name)
    if factory is None:
        msg = f"Unsupported hash function '{name}'. Available: {available_hashers()}"
        raise ConfigurationError(msg)
    return factory()

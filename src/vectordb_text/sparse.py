"""Sparse vector model and the encoder protocol."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass
import os
from typing import TYPE_CHECKING, Protocol

import numpy as np


if TYPE_CHECKING:
    from vectordb_text.tokenizer import Tokenizer


@dataclass(frozen=True)
class SparseVector:
    """Ordered ``(term_id, weight)`` pairs with unique term ids.

    Weights are float32 values widened to Python floats, matching what the
    remote service stores.
    """

    indices: tuple[int, ...] = ()
    values: tuple[float, ...] = ()

    def __post_init__(self) -> None:
        if len(self.indices) != len(self.values):
            msg = f"indices and values differ in length ({len(self.indices)} != {len(self.values)})"
            raise ValueError(msg)

    @classmethod
    def from_weights(cls, term_ids: Sequence[int], weights: Iterable[float] | np.ndarray) -> SparseVector:
        values = np.asarray(weights, dtype=np.float32).tolist()
        return cls(indices=tuple(int(term_id) for term_id in term_ids), values=tuple(values))

    def __len__(self) -> int:
        return len(self.indices)

    def __iter__(self) -> Iterator[tuple[int, float]]:
        return iter(zip(self.indices, self.values, strict=True))

    def is_empty(self) -> bool:
        return not self.indices

    def to_pairs(self) -> list[list[int | float]]:
        """Return ``[[term_id, weight], ...]`` as attached to document and query payloads."""

        return [[term_id, weight] for term_id, weight in self]

    def as_dict(self) -> dict[int, float]:
        return dict(self)


class SparseEncoder(Protocol):
    """Protocol implemented by sparse text encoders."""

    def encode_text(self, text: str) -> SparseVector:  # pragma: no cover - interface definition
        ...

    def encode_texts(self, texts: Iterable[str]) -> list[SparseVector]:  # pragma: no cover - interface definition
        ...

    def encode_query(self, text: str) -> SparseVector:  # pragma: no cover - interface definition
        ...

    def encode_queries(self, texts: Iterable[str]) -> list[SparseVector]:  # pragma: no cover - interface definition
        ...

    def fit_corpus(self, corpus: Iterable[str]) -> None:  # pragma: no cover - interface definition
        ...

    def download_params(self, path: str | os.PathLike[str]) -> None:  # pragma: no cover - interface definition
        ...

    def set_params(self, path: str | os.PathLike[str]) -> None:  # pragma: no cover - interface definition
        ...

    def set_default_params(self, language: str) -> None:  # pragma: no cover - interface definition
        ...

    def set_dict(self, dict_file: str | os.PathLike[str]) -> None:  # pragma: no cover - interface definition
        ...

    def get_tokenizer(self) -> Tokenizer:  # pragma: no cover - interface definition
        ...

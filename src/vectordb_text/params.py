"""Corpus statistics and the persisted BM25 parameter file.

A parameter file is one JSON object carrying the BM25 constants, the full
tokenizer configuration and the learned corpus statistics::

    {"b": 0.75, "k1": 1.2, "hash_function": "mmh3_hash", "stop_words": true,
     "dict_file": "", "cut_all": false, "for_search": false, "HMM": true,
     "token_freq": {"613153351": 3.0}, "doc_count": 10, "average_doc_length": 12.5}

Term ids are keyed by their decimal string. Tokenizer fields that are absent
leave the receiving tokenizer unchanged.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
import logging
import os
from pathlib import Path
from types import MappingProxyType
from typing import Any

import orjson
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from vectordb_text.errors import PersistenceError
from vectordb_text.tokenizer import StopWords, TokenizerParams


logger = logging.getLogger(__name__)

MAX_TERM_ID = 2**32 - 1


@dataclass(frozen=True)
class CorpusStatistics:
    """Document-frequency table plus document count and average length.

    ``doc_count`` and ``average_doc_length`` are always fit together: both
    are zero for an empty instance and both positive after a fit.
    """

    token_freq: Mapping[int, float] = field(default_factory=lambda: MappingProxyType({}))
    doc_count: int = 0
    average_doc_length: float = 0.0

    @property
    def is_fit(self) -> bool:
        return self.doc_count > 0 and self.average_doc_length > 0 and bool(self.token_freq)

    def document_frequency(self, term_id: int) -> float:
        return self.token_freq.get(term_id, 0.0)

    def with_fit(self, doc_freq: Mapping[int, int], doc_count: int, total_length: int) -> CorpusStatistics:
        """Return statistics combining this instance with a newly fit batch."""

        if doc_count <= 0:
            return self
        combined_count = self.doc_count + doc_count
        average = (self.average_doc_length * self.doc_count + total_length) / combined_count
        merged = dict(self.token_freq)
        for term_id, count in doc_freq.items():
            merged[term_id] = merged.get(term_id, 0.0) + float(count)
        return CorpusStatistics(
            token_freq=MappingProxyType(merged),
            doc_count=combined_count,
            average_doc_length=average,
        )


class BM25Params(BaseModel):
    """Validated contents of a parameter file."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    b: float = Field(ge=0.0, le=1.0)
    k1: float = Field(gt=0.0)

    hash_function: str | None = None
    stop_words: bool | str | None = None
    dict_file: str | None = None
    cut_all: bool | None = None
    for_search: bool | None = None
    hmm: bool | None = Field(default=None, alias="HMM")
    lower_case: bool | None = None

    token_freq: dict[str, float] = Field(default_factory=dict)
    doc_count: int = Field(default=0, ge=0)
    average_doc_length: float = Field(default=0.0, ge=0.0)

    @field_validator("token_freq")
    @classmethod
    def _check_token_freq(cls, value: dict[str, float]) -> dict[str, float]:
        for key, count in value.items():
            if not (key.isascii() and key.isdigit()) or int(key) > MAX_TERM_ID:
                raise ValueError(f"token_freq key {key!r} is not a 32-bit term id")
            if count < 0:
                raise ValueError(f"token_freq[{key}] must be >= 0")
        return value

    @model_validator(mode="after")
    def _check_fit_consistency(self) -> BM25Params:
        if (self.doc_count == 0) != (self.average_doc_length == 0):
            raise ValueError("doc_count and average_doc_length must be both zero or both positive")
        if self.token_freq and max(self.token_freq.values()) > self.doc_count:
            raise ValueError("token_freq values cannot exceed doc_count")
        return self

    @classmethod
    def from_state(
        cls,
        *,
        b: float,
        k1: float,
        tokenizer_params: TokenizerParams,
        statistics: CorpusStatistics,
    ) -> BM25Params:
        stop_words = tokenizer_params.stop_words
        return cls(
            b=b,
            k1=k1,
            hash_function=tokenizer_params.hash_function,
            stop_words=StopWords.coerce(stop_words).to_json() if stop_words is not None else None,
            dict_file=tokenizer_params.dict_file,
            cut_all=tokenizer_params.cut_all,
            for_search=tokenizer_params.for_search,
            hmm=tokenizer_params.hmm,
            lower_case=tokenizer_params.lower_case,
            token_freq={str(term_id): count for term_id, count in statistics.token_freq.items()},
            doc_count=statistics.doc_count,
            average_doc_length=statistics.average_doc_length,
        )

    def tokenizer_params(self) -> TokenizerParams:
        return TokenizerParams(
            hash_function=self.hash_function,
            stop_words=self.stop_words,
            dict_file=self.dict_file,
            cut_all=self.cut_all,
            for_search=self.for_search,
            hmm=self.hmm,
            lower_case=self.lower_case,
        )

    def segmentation_params(self) -> TokenizerParams:
        """Tokenizer fields that shape tokens, without stop words or dictionary."""

        return TokenizerParams(
            hash_function=self.hash_function,
            cut_all=self.cut_all,
            for_search=self.for_search,
            hmm=self.hmm,
            lower_case=self.lower_case,
        )

    def statistics(self) -> CorpusStatistics:
        return CorpusStatistics(
            token_freq=MappingProxyType({int(key): float(count) for key, count in self.token_freq.items()}),
            doc_count=self.doc_count,
            average_doc_length=self.average_doc_length,
        )

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


def load_params(path: str | os.PathLike[str]) -> BM25Params:
    """Read and validate a parameter file."""

    file_path = Path(path)
    if not file_path.is_file():
        raise PersistenceError("parameter file doesn't exist", path=file_path)
    try:
        with file_path.open("rb") as handle:
            data = handle.read()
    except OSError as exc:
        raise PersistenceError("cannot read parameter file", path=file_path) from exc

    try:
        payload = orjson.loads(data)
    except orjson.JSONDecodeError as exc:
        raise PersistenceError("cannot parse parameter file as JSON", path=file_path) from exc

    try:
        params = BM25Params.model_validate(payload)
    except ValidationError as exc:
        raise PersistenceError(f"invalid parameter file ({exc.error_count()} errors)", path=file_path) from exc

    logger.debug("Loaded BM25 parameters from %s (doc_count=%d)", file_path, params.doc_count)
    return params


def save_params(params: BM25Params, path: str | os.PathLike[str]) -> None:
    """Write ``params`` as indented JSON."""

    file_path = Path(path)
    payload = orjson.dumps(params.to_json_dict(), option=orjson.OPT_INDENT_2 | orjson.OPT_APPEND_NEWLINE)
    try:
        with file_path.open("wb") as handle:
            handle.write(payload)
    except OSError as exc:
        raise PersistenceError("cannot write parameter file", path=file_path) from exc
    logger.debug("Saved BM25 parameters to %s", file_path)

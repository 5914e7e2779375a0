"""Jieba-backed tokenizer producing hashed term ids.

Segmentation runs through jieba in one of three modes (precise, search, full),
optionally lowercases the input, and filters blank tokens and stop words.
Every reconfiguration builds a fresh immutable ``_TokenizerState`` and swaps
it in with a single assignment, so readers always see one consistent set of
segmenter, stop words and hash function.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, replace
from enum import Enum
from functools import lru_cache
from importlib import resources
import logging
import os
from pathlib import Path
import threading
from typing import Protocol

import jieba

from vectordb_text.errors import ConfigurationError
from vectordb_text.hashing import DEFAULT_HASH_NAME, Hasher, get_hasher


logger = logging.getLogger(__name__)

DEFAULT_STOPWORDS_RESOURCE = "stopwords.txt"


class StopWordsMode(str, Enum):
    DISABLED = "disabled"
    DEFAULT = "default"
    FILE = "file"


@dataclass(frozen=True)
class StopWords:
    """Stop-word policy: disabled, the bundled default list, or a user file.

    Persisted parameter files encode the policy as ``bool | str``; use
    :meth:`coerce` to resolve that form once and :meth:`to_json` to write it
    back.
    """

    mode: StopWordsMode
    path: Path | None = None

    @classmethod
    def disabled(cls) -> StopWords:
        return cls(StopWordsMode.DISABLED)

    @classmethod
    def default(cls) -> StopWords:
        return cls(StopWordsMode.DEFAULT)

    @classmethod
    def from_file(cls, path: str | os.PathLike[str]) -> StopWords:
        return cls(StopWordsMode.FILE, Path(path))

    @classmethod
    def coerce(cls, value: StopWords | bool | str | os.PathLike[str]) -> StopWords:
        if isinstance(value, StopWords):
            return value
        if isinstance(value, bool):
            return cls.default() if value else cls.disabled()
        if isinstance(value, (str, os.PathLike)):
            raw = os.fspath(value)
            return cls.from_file(raw) if raw else cls.default()
        msg = f"stop_words must be a bool or a file path, got {type(value).__name__}"
        raise ConfigurationError(msg)

    @property
    def enabled(self) -> bool:
        return self.mode is not StopWordsMode.DISABLED

    def to_json(self) -> bool | str:
        if self.mode is StopWordsMode.FILE:
            return str(self.path)
        return self.enabled

    def load(self) -> frozenset[str]:
        """Read the stop-word set this policy points at."""

        if self.mode is StopWordsMode.DISABLED:
            return frozenset()
        if self.mode is StopWordsMode.DEFAULT:
            resource = resources.files("vectordb_text") / "data" / DEFAULT_STOPWORDS_RESOURCE
            return _parse_stopwords(resource.read_text(encoding="utf-8").splitlines())

        path = self.path
        if path is None or not path.is_file():
            msg = f"the stop words file {path} doesn't exist"
            raise ConfigurationError(msg)
        try:
            with path.open(encoding="utf-8") as handle:
                return _parse_stopwords(handle)
        except (OSError, UnicodeDecodeError) as exc:
            msg = f"cannot read stop words file {path}: {exc}"
            raise ConfigurationError(msg) from exc


def _parse_stopwords(lines: Iterable[str]) -> frozenset[str]:
    words = (line.rstrip(" \t\r\n") for line in lines)
    return frozenset(word for word in words if word)


class SegmentationMode(str, Enum):
    """Jieba cut mode. Exactly one is active per configuration."""

    DEFAULT = "default"
    SEARCH = "search"
    CUT_ALL = "cut_all"

    @classmethod
    def from_flags(cls, *, for_search: bool, cut_all: bool) -> SegmentationMode:
        """Resolve jieba's two mode flags; ``for_search`` wins when both are set."""

        if for_search:
            return cls.SEARCH
        if cut_all:
            return cls.CUT_ALL
        return cls.DEFAULT


@dataclass(frozen=True)
class TokenizerParams:
    """Tokenizer configuration.

    As an update delta every ``None`` field leaves the current value alone.
    ``JiebaTokenizer.get_parameters`` always returns a fully populated
    instance.
    """

    hash_function: str | None = None
    stop_words: StopWords | bool | str | None = None
    dict_file: str | None = None
    cut_all: bool | None = None
    for_search: bool | None = None
    hmm: bool | None = None
    lower_case: bool | None = None


DEFAULT_TOKENIZER_PARAMS = TokenizerParams(
    hash_function=DEFAULT_HASH_NAME,
    stop_words=StopWords.default(),
    dict_file="",
    cut_all=False,
    for_search=False,
    hmm=True,
    lower_case=False,
)


class Tokenizer(Protocol):
    """Protocol implemented by tokenizers consumed by sparse encoders."""

    def tokenize(self, text: str) -> list[str]:  # pragma: no cover - interface definition
        ...

    def encode(self, text: str) -> list[int]:  # pragma: no cover - interface definition
        ...

    def is_stop_word(self, word: str) -> bool:  # pragma: no cover - interface definition
        ...

    def update_parameters(self, params: TokenizerParams) -> None:  # pragma: no cover - interface definition
        ...

    def get_parameters(self) -> TokenizerParams:  # pragma: no cover - interface definition
        ...

    def set_dict(self, dict_file: str | os.PathLike[str]) -> None:  # pragma: no cover - interface definition
        ...


@lru_cache(maxsize=1)
def _shared_segmenter() -> jieba.Tokenizer:
    # Never mutated; user dictionaries get their own instance.
    return jieba.Tokenizer()


def _require_dict_file(dict_file: Path) -> None:
    if not dict_file.is_file():
        msg = f"the user dictionary file {dict_file} doesn't exist"
        raise ConfigurationError(msg)


def _build_segmenter(dict_file: Path | None) -> jieba.Tokenizer:
    if dict_file is None:
        return _shared_segmenter()
    _require_dict_file(dict_file)

    segmenter = jieba.Tokenizer()
    try:
        with dict_file.open("rb") as handle:
            segmenter.load_userdict(handle)
    except (OSError, ValueError) as exc:
        msg = f"cannot load user dictionary {dict_file}: {exc}"
        raise ConfigurationError(msg) from exc
    logger.info("Loaded user dictionary %s", dict_file)
    return segmenter


@dataclass(frozen=True)
class _TokenizerState:
    mode: SegmentationMode
    hmm: bool
    lower_case: bool
    stop_words: StopWords
    stopword_set: frozenset[str]
    dict_file: Path | None
    segmenter: jieba.Tokenizer
    hasher: Hasher

    def segment(self, text: str) -> Iterator[str]:
        if self.mode is SegmentationMode.SEARCH:
            return self.segmenter.cut_for_search(text, HMM=self.hmm)
        if self.mode is SegmentationMode.CUT_ALL:
            return self.segmenter.cut(text, cut_all=True, HMM=self.hmm)
        return self.segmenter.cut(text, HMM=self.hmm)

    def tokenize(self, text: str) -> list[str]:
        if not text:
            return []
        if self.lower_case:
            text = text.lower()
        return [word for word in self.segment(text) if word.strip() and word not in self.stopword_set]

    def snapshot(self) -> TokenizerParams:
        return TokenizerParams(
            hash_function=self.hasher.name,
            stop_words=self.stop_words,
            dict_file=str(self.dict_file) if self.dict_file is not None else "",
            cut_all=self.mode is SegmentationMode.CUT_ALL,
            for_search=self.mode is SegmentationMode.SEARCH,
            hmm=self.hmm,
            lower_case=self.lower_case,
        )


def _pick(value: bool | None, fallback: bool | None) -> bool:
    return bool(fallback) if value is None else value


def _next_mode(previous: TokenizerParams, delta: TokenizerParams) -> SegmentationMode:
    for_search = _pick(delta.for_search, previous.for_search)
    cut_all = _pick(delta.cut_all, previous.cut_all)
    # A flag the delta switches on clears the one it left unset.
    if delta.cut_all and delta.for_search is None:
        for_search = False
    if delta.for_search and delta.cut_all is None:
        cut_all = False
    return SegmentationMode.from_flags(for_search=for_search, cut_all=cut_all)


def _next_state(current: _TokenizerState | None, delta: TokenizerParams) -> _TokenizerState:
    """Return the state produced by applying ``delta``. Raises before building anything partial."""

    previous = current.snapshot() if current is not None else DEFAULT_TOKENIZER_PARAMS

    hasher = get_hasher(delta.hash_function or previous.hash_function)
    mode = _next_mode(previous, delta)

    if current is None or delta.stop_words is not None:
        requested = delta.stop_words if delta.stop_words is not None else previous.stop_words
        stop_words = StopWords.coerce(requested)
        stopword_set = stop_words.load()
    else:
        stop_words, stopword_set = current.stop_words, current.stopword_set

    dict_file = current.dict_file if current is not None else None
    segmenter = current.segmenter if current is not None else None
    if delta.dict_file:
        requested_dict = Path(delta.dict_file)
        if requested_dict != dict_file:
            segmenter = _build_segmenter(requested_dict)
            dict_file = requested_dict
        else:
            _require_dict_file(requested_dict)
    if segmenter is None:
        segmenter = _build_segmenter(None)

    return _TokenizerState(
        mode=mode,
        hmm=_pick(delta.hmm, previous.hmm),
        lower_case=_pick(delta.lower_case, previous.lower_case),
        stop_words=stop_words,
        stopword_set=stopword_set,
        dict_file=dict_file,
        segmenter=segmenter,
        hasher=hasher,
    )


class JiebaTokenizer:
    """Tokenizer segmenting Chinese and mixed text with jieba.

    Defaults: precise mode with HMM, no lowercasing, bundled stop words,
    no user dictionary, MurmurHash3 term ids.
    """

    def __init__(self, params: TokenizerParams | None = None) -> None:
        self._lock = threading.Lock()
        self._state = _next_state(None, params or TokenizerParams())

    def tokenize(self, text: str) -> list[str]:
        return self._state.tokenize(text)

    def encode(self, text: str) -> list[int]:
        """Tokenize ``text`` and hash every token, keeping order and duplicates."""

        state = self._state
        return [state.hasher.hash(token) for token in state.tokenize(text)]

    def is_stop_word(self, word: str) -> bool:
        return word in self._state.stopword_set

    def update_parameters(self, params: TokenizerParams) -> None:
        """Apply a partial configuration change; the old state survives any error."""

        with self._lock:
            self._state = _next_state(self._state, params)
        logger.debug("Tokenizer parameters updated: %s", self._state.snapshot())

    def get_parameters(self) -> TokenizerParams:
        return self._state.snapshot()

    def set_dict(self, dict_file: str | os.PathLike[str]) -> None:
        """Load a user dictionary on top of jieba's base dictionary."""

        path = Path(dict_file)
        with self._lock:
            segmenter = _build_segmenter(path)
            self._state = replace(self._state, dict_file=path, segmenter=segmenter)

    @property
    def hasher(self) -> Hasher:
        return self._state.hasher

"""BM25 sparse encoder over hashed jieba tokens.

Documents and queries are weighted asymmetrically. A document vector holds
only the saturated term frequency::

    w(t, d) = tf / (k1 * (1 - b + b * |d| / avgdl) + tf)

and a query vector holds inverse document frequency normalized to sum to 1::

    idf(t) = ln((N + 1) / (df(t) + 0.5))

so the inner product of a query and a document vector is a BM25 score.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace
from importlib import resources
import logging
import os
from pathlib import Path
import threading

import numpy as np

from vectordb_text.config import DEFAULT_BM25_B, DEFAULT_BM25_K1, EncoderSettings
from vectordb_text.errors import ConfigurationError, InputValidationError, NotFittedError, PersistenceError
from vectordb_text.observability.metrics import (
    ENCODE_LATENCY,
    ENCODE_REQUESTS,
    FIT_DOCUMENTS,
    PARAMS_OPERATIONS,
    track_latency,
)
from vectordb_text.observability.tracing import create_span
from vectordb_text.params import BM25Params, CorpusStatistics, load_params, save_params
from vectordb_text.sparse import SparseVector
from vectordb_text.tokenizer import JiebaTokenizer, StopWords, Tokenizer, TokenizerParams


logger = logging.getLogger(__name__)

PRESET_LANGUAGES = ("zh", "en")


def _check_constants(b: float, k1: float) -> None:
    if not 0.0 <= b <= 1.0:
        msg = f"b must lie in [0, 1], got {b}"
        raise ConfigurationError(msg)
    if not k1 > 0.0:
        msg = f"k1 must be positive, got {k1}"
        raise ConfigurationError(msg)


@dataclass(frozen=True)
class _BM25Model:
    b: float
    k1: float
    statistics: CorpusStatistics

    def document_weights(self, counts: Counter[int]) -> np.ndarray:
        tf = np.fromiter(counts.values(), dtype=np.float64, count=len(counts))
        doc_length = tf.sum()
        norm = self.k1 * (1.0 - self.b + self.b * doc_length / self.statistics.average_doc_length)
        return tf / (norm + tf)

    def query_weights(self, term_ids: Sequence[int]) -> np.ndarray:
        stats = self.statistics
        df = np.fromiter((stats.document_frequency(term_id) for term_id in term_ids), dtype=np.float64)
        idf = np.log((stats.doc_count + 1) / (df + 0.5))
        return idf / idf.sum()


class BM25Encoder:
    """Encode documents and queries as BM25 sparse vectors.

    The encoder must be fit, either from a corpus with :meth:`fit_corpus` or
    from persisted statistics with :meth:`set_params` or
    :meth:`set_default_params`, before anything can be encoded.

    Args:
        b: Length normalization strength in ``[0, 1]``
        k1: Term frequency saturation, strictly positive
        tokenizer: Tokenizer producing term ids; a default ``JiebaTokenizer`` when omitted
        language: Load the bundled ``"zh"`` or ``"en"`` preset during construction
        presets_dir: Directory searched for ``bm25_<lang>_default.json`` instead of the bundled data
    """

    def __init__(
        self,
        b: float = DEFAULT_BM25_B,
        k1: float = DEFAULT_BM25_K1,
        *,
        tokenizer: Tokenizer | None = None,
        language: str | None = None,
        presets_dir: str | os.PathLike[str] | None = None,
    ) -> None:
        _check_constants(b, k1)
        self._lock = threading.RLock()
        self._tokenizer: Tokenizer = tokenizer if tokenizer is not None else JiebaTokenizer()
        self._model = _BM25Model(b=b, k1=k1, statistics=CorpusStatistics())
        self._presets_dir = Path(presets_dir) if presets_dir is not None else None
        if language is not None:
            self.set_default_params(language)

    @classmethod
    def from_settings(cls, settings: EncoderSettings | None = None) -> BM25Encoder:
        """Build an encoder from ``VECTORDB_TEXT_*`` settings.

        When a preset language is configured its statistics are loaded first,
        then the tokenizer settings are applied on top of the preset's.
        """
        settings = settings or EncoderSettings()
        tokenizer_params = settings.tokenizer_params()
        encoder = cls(
            settings.bm25_b,
            settings.bm25_k1,
            tokenizer=JiebaTokenizer(tokenizer_params),
            language=settings.language,
            presets_dir=settings.presets_dir,
        )
        if settings.language is not None:
            encoder.get_tokenizer().update_parameters(tokenizer_params)
        return encoder

    @classmethod
    def from_files(
        cls,
        words_freq_file: str | os.PathLike[str] | None = None,
        stop_words_file: str | os.PathLike[str] | None = None,
        user_dict_file: str | os.PathLike[str] | None = None,
    ) -> BM25Encoder:
        """Build an encoder from a statistics file, a stop-word file and a user dictionary.

        Stop words are disabled unless ``stop_words_file`` is given. Only the
        hash function and segmentation flags of ``words_freq_file`` reach the
        tokenizer; its stop-word and dictionary entries are ignored.
        """
        stop_words = StopWords.from_file(stop_words_file) if stop_words_file else StopWords.disabled()
        tokenizer = JiebaTokenizer(
            TokenizerParams(
                stop_words=stop_words,
                dict_file=os.fspath(user_dict_file) if user_dict_file else None,
            )
        )
        if words_freq_file is None:
            return cls(tokenizer=tokenizer)

        params = _load_params_tracked(words_freq_file)
        encoder = cls(params.b, params.k1, tokenizer=tokenizer)
        encoder._apply(params, params.segmentation_params())
        return encoder

    @property
    def b(self) -> float:
        return self._model.b

    @property
    def k1(self) -> float:
        return self._model.k1

    @property
    def statistics(self) -> CorpusStatistics:
        return self._model.statistics

    @property
    def is_fit(self) -> bool:
        return self._model.statistics.is_fit

    def get_tokenizer(self) -> Tokenizer:
        return self._tokenizer

    def fit_corpus(self, corpus: Iterable[str]) -> None:
        """Accumulate document frequencies and lengths from ``corpus``.

        Repeated calls merge into the existing statistics, so fitting two
        batches gives the same result as fitting their concatenation.
        Documents without any token are skipped.
        """
        documents = list(corpus)
        if not documents:
            raise InputValidationError("cannot fit BM25 on an empty corpus")

        with create_span("bm25.fit_corpus", attributes={"bm25.documents": len(documents)}):
            with self._lock:
                doc_freq: Counter[int] = Counter()
                total_length = 0
                fitted = 0
                for document in documents:
                    term_ids = self._tokenizer.encode(document)
                    if not term_ids:
                        continue
                    fitted += 1
                    total_length += len(term_ids)
                    doc_freq.update(set(term_ids))

                if fitted == 0:
                    raise InputValidationError("cannot fit BM25 on a corpus without any token")

                model = self._model
                statistics = model.statistics.with_fit(doc_freq, fitted, total_length)
                self._model = replace(model, statistics=statistics)

            skipped = len(documents) - fitted
            FIT_DOCUMENTS.labels(outcome="fitted").inc(fitted)
            if skipped:
                FIT_DOCUMENTS.labels(outcome="skipped").inc(skipped)
            logger.info(
                "Fit BM25 on %d documents (%d skipped): doc_count=%d avgdl=%.3f terms=%d",
                fitted,
                skipped,
                statistics.doc_count,
                statistics.average_doc_length,
                len(statistics.token_freq),
            )

    def encode_text(self, text: str) -> SparseVector:
        """Encode one document."""
        return self._encode_document(self._fitted_model(), text)

    def encode_texts(self, texts: Iterable[str]) -> list[SparseVector]:
        model = self._fitted_model()
        return [self._encode_document(model, text) for text in texts]

    def encode_query(self, text: str) -> SparseVector:
        """Encode one query; weights sum to 1 unless the query has no token."""
        return self._encode_query(self._fitted_model(), text)

    def encode_queries(self, texts: Iterable[str]) -> list[SparseVector]:
        model = self._fitted_model()
        return [self._encode_query(model, text) for text in texts]

    def download_params(self, path: str | os.PathLike[str]) -> None:
        """Write b, k1, tokenizer configuration and corpus statistics to ``path``."""
        with self._lock:
            model = self._model
            tokenizer_params = self._tokenizer.get_parameters()
        params = BM25Params.from_state(
            b=model.b,
            k1=model.k1,
            tokenizer_params=tokenizer_params,
            statistics=model.statistics,
        )
        with create_span("bm25.download_params", attributes={"bm25.path": os.fspath(path)}):
            try:
                save_params(params, path)
            except PersistenceError:
                PARAMS_OPERATIONS.labels(operation="save", status="error").inc()
                raise
            PARAMS_OPERATIONS.labels(operation="save", status="success").inc()
            logger.info("Saved BM25 parameters to %s", path)

    def set_params(self, path: str | os.PathLike[str]) -> None:
        """Replace b, k1, statistics and tokenizer configuration from a parameter file.

        Nothing changes when the file is missing, malformed or names a
        tokenizer setting that cannot be applied.
        """
        with create_span("bm25.set_params", attributes={"bm25.path": os.fspath(path)}):
            params = _load_params_tracked(path)
            self._apply(params, params.tokenizer_params())
            logger.info("Loaded BM25 parameters from %s (doc_count=%d)", path, params.doc_count)

    def set_default_params(self, language: str) -> None:
        """Load the pre-fit preset for ``"zh"`` or ``"en"``."""
        if language not in PRESET_LANGUAGES:
            raise ConfigurationError("language must be 'zh' or 'en'")

        file_name = f"bm25_{language}_default.json"
        if self._presets_dir is not None:
            self.set_params(self._presets_dir / file_name)
            return
        resource = resources.files("vectordb_text") / "data" / file_name
        with resources.as_file(resource) as preset_path:
            self.set_params(preset_path)

    def set_dict(self, dict_file: str | os.PathLike[str]) -> None:
        with self._lock:
            self._tokenizer.set_dict(dict_file)

    def _apply(self, params: BM25Params, tokenizer_params: TokenizerParams) -> None:
        statistics = params.statistics()
        with self._lock:
            self._tokenizer.update_parameters(tokenizer_params)
            self._model = _BM25Model(b=params.b, k1=params.k1, statistics=statistics)

    def _fitted_model(self) -> _BM25Model:
        model = self._model
        if not model.statistics.is_fit:
            raise NotFittedError
        return model

    def _encode_document(self, model: _BM25Model, text: str) -> SparseVector:
        with track_latency(ENCODE_LATENCY, side="document"):
            counts = Counter(self._tokenizer.encode(text))
            vector = SparseVector()
            if counts:
                vector = SparseVector.from_weights(list(counts), model.document_weights(counts))
        ENCODE_REQUESTS.labels(side="document").inc()
        return vector

    def _encode_query(self, model: _BM25Model, text: str) -> SparseVector:
        with track_latency(ENCODE_LATENCY, side="query"):
            term_ids = list(dict.fromkeys(self._tokenizer.encode(text)))
            vector = SparseVector()
            if term_ids:
                vector = SparseVector.from_weights(term_ids, model.query_weights(term_ids))
        ENCODE_REQUESTS.labels(side="query").inc()
        return vector


def _load_params_tracked(path: str | os.PathLike[str]) -> BM25Params:
    try:
        params = load_params(path)
    except PersistenceError:
        PARAMS_OPERATIONS.labels(operation="load", status="error").inc()
        raise
    PARAMS_OPERATIONS.labels(operation="load", status="success").inc()
    return params

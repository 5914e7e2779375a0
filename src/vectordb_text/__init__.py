"""BM25 sparse vectors for Chinese and English text, tokenized with jieba."""

from vectordb_text.bm25 import BM25Encoder
from vectordb_text.config import EncoderSettings
from vectordb_text.errors import (
    ConfigurationError,
    InputValidationError,
    NotFittedError,
    PersistenceError,
    VectorDBTextError,
)
from vectordb_text.hashing import Hasher, Mmh3Hasher, get_hasher, register_hasher
from vectordb_text.params import BM25Params, CorpusStatistics
from vectordb_text.sparse import SparseEncoder, SparseVector
from vectordb_text.tokenizer import JiebaTokenizer, StopWords, Tokenizer, TokenizerParams


__version__ = "0.1.0"

__all__ = [
    "BM25Encoder",
    "BM25Params",
    "ConfigurationError",
    "CorpusStatistics",
    "EncoderSettings",
    "Hasher",
    "InputValidationError",
    "JiebaTokenizer",
    "Mmh3Hasher",
    "NotFittedError",
    "PersistenceError",
    "SparseEncoder",
    "SparseVector",
    "StopWords",
    "Tokenizer",
    "TokenizerParams",
    "VectorDBTextError",
    "get_hasher",
    "register_hasher",
]

"""Environment-driven settings for vectordb-text using Pydantic Settings."""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from vectordb_text.hashing import DEFAULT_HASH_NAME
from vectordb_text.tokenizer import TokenizerParams


DEFAULT_BM25_B = 0.75
DEFAULT_BM25_K1 = 1.2


class EncoderSettings(BaseSettings):
    """Strictly typed encoder configuration loaded from ``VECTORDB_TEXT_*`` variables."""

    model_config = SettingsConfigDict(
        env_prefix="VECTORDB_TEXT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_default=True,
        extra="ignore",
    )

    # BM25
    bm25_b: float = Field(default=DEFAULT_BM25_B, ge=0.0, le=1.0, description="Length normalization strength")
    bm25_k1: float = Field(default=DEFAULT_BM25_K1, gt=0.0, description="Term frequency saturation")
    language: Literal["zh", "en"] | None = Field(
        default=None, description="Bundled preset loaded when building an encoder from settings"
    )
    presets_dir: Path | None = Field(
        default=None, description="Directory holding bm25_<lang>_default.json, overriding the bundled presets"
    )

    # Tokenizer
    hash_function: str = Field(default=DEFAULT_HASH_NAME, description="Hash function producing term ids")
    user_dict_file: Path | None = Field(default=None, description="Optional jieba user dictionary")
    stop_words_file: Path | None = Field(default=None, description="Optional stop-word file replacing the default list")
    stop_words_enabled: bool = Field(default=True, description="Filter stop words at all")
    lower_case: bool | None = Field(
        default=None, description="Lowercase text before segmentation; unset keeps the current choice"
    )

    # Logging
    log_level: str = Field(default="info", description="Logging level")
    log_json: bool = Field(default=False, description="Emit structured JSON logs")

    def tokenizer_params(self) -> TokenizerParams:
        """Tokenizer configuration implied by these settings."""
        stop_words: bool | str = self.stop_words_enabled
        if self.stop_words_enabled and self.stop_words_file is not None:
            stop_words = str(self.stop_words_file)
        return TokenizerParams(
            hash_function=self.hash_function,
            stop_words=stop_words,
            dict_file=str(self.user_dict_file) if self.user_dict_file else None,
            lower_case=self.lower_case,
        )

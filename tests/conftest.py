"""Shared test fixtures and configuration."""

from pathlib import Path

import pytest

from vectordb_text.tokenizer import StopWords, TokenizerParams


FIXTURES_DIR = Path(__file__).resolve().parent / "fixtures"

# Every VECTORDB_TEXT_* setting, cleared so a developer's shell or .env never leaks into tests
SETTINGS_ENV = (
    "VECTORDB_TEXT_BM25_B",
    "VECTORDB_TEXT_BM25_K1",
    "VECTORDB_TEXT_LANGUAGE",
    "VECTORDB_TEXT_PRESETS_DIR",
    "VECTORDB_TEXT_HASH_FUNCTION",
    "VECTORDB_TEXT_USER_DICT_FILE",
    "VECTORDB_TEXT_STOP_WORDS_FILE",
    "VECTORDB_TEXT_STOP_WORDS_ENABLED",
    "VECTORDB_TEXT_LOWER_CASE",
    "VECTORDB_TEXT_LOG_LEVEL",
    "VECTORDB_TEXT_LOG_JSON",
)

CHINESE_CORPUS = [
    "腾讯云向量数据库（Tencent Cloud VectorDB）是一款全托管的自研企业级分布式数据库服务，专用于存储、索引、检索、管理由深度神经网络或其他机器学习模型生成的大量多维嵌入向量。",
    "作为专门为处理输入向量查询而设计的数据库，它支持多种索引类型和相似度计算方法，单索引支持10亿级向量规模，高达百万级 QPS 及毫秒级查询延迟。",
    "不仅能为大模型提供外部知识库，提高大模型回答的准确性，还可广泛应用于推荐系统、NLP 服务、计算机视觉、智能客服等 AI 领域。",
    "腾讯云向量数据库（Tencent Cloud VectorDB）作为一种专门存储和检索向量数据的服务提供给用户， 在高性能、高可用、大规模、低成本、简单易用、稳定可靠等方面体现出显著优势。 ",
    "腾讯云向量数据库可以和大语言模型 LLM 配合使用。企业的私域数据在经过文本分割、向量化后，可以存储在腾讯云向量数据库中，构建起企业专属的外部知识库，从而在后续的检索任务中，为大模型提供提示信息，辅助大模型生成更加准确的答案。",
]


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch, tmp_path):
    """Isolate every test from ambient settings and any .env in the working directory."""
    for key in SETTINGS_ENV:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def chinese_corpus() -> list[str]:
    return list(CHINESE_CORPUS)


@pytest.fixture
def plain_params() -> TokenizerParams:
    """Tokenizer configuration without stop words, for exact token assertions."""
    return TokenizerParams(stop_words=StopWords.disabled())


@pytest.fixture
def user_dict_file() -> Path:
    return FIXTURES_DIR / "userdict_example.txt"


@pytest.fixture
def user_stopwords_file() -> Path:
    return FIXTURES_DIR / "user_define_stopwords.txt"

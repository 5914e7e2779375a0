"""Tests for token hashing."""

import pytest

from vectordb_text.errors import ConfigurationError
from vectordb_text.hashing import (
    DEFAULT_HASH_NAME,
    MMH3_HASH_NAME,
    Mmh3Hasher,
    _HASHER_FACTORIES,
    available_hashers,
    get_hasher,
    register_hasher,
)


@pytest.mark.unit
class TestMmh3Hasher:
    """MurmurHash3 x86 32-bit term ids."""

    def test_known_values(self):
        hasher = Mmh3Hasher()
        assert hasher.hash("hello") == 613153351
        assert hasher.hash("foo") == 4138058784

    def test_ids_are_unsigned_32_bit(self):
        hasher = Mmh3Hasher()
        for token in ["腾讯云", "向量", "数据库", "a", "BM25", "foo"]:
            term_id = hasher.hash(token)
            assert 0 <= term_id < 2**32

    def test_deterministic_across_instances(self):
        assert Mmh3Hasher().hash("向量数据库") == Mmh3Hasher().hash("向量数据库")

    def test_name(self):
        assert Mmh3Hasher().name == MMH3_HASH_NAME == "mmh3_hash"


@pytest.mark.unit
class TestHasherRegistry:
    """Lookup of hash functions by name."""

    @pytest.mark.parametrize("name", [None, ""])
    def test_empty_name_yields_default(self, name):
        assert get_hasher(name).name == DEFAULT_HASH_NAME

    def test_lookup_by_name(self):
        assert isinstance(get_hasher("mmh3_hash"), Mmh3Hasher)

    def test_unknown_name_lists_supported(self):
        with pytest.raises(ConfigurationError, match="Unsupported hash function 'sha1'") as exc_info:
            get_hasher("sha1")
        assert "mmh3_hash" in str(exc_info.value)

    def test_register_alternate_hasher(self, monkeypatch):
        monkeypatch.setattr("vectordb_text.hashing._HASHER_FACTORIES", dict(_HASHER_FACTORIES))

        class LengthHasher:
            name = "length"

            def hash(self, token: str) -> int:
                return len(token)

        register_hasher("length", LengthHasher)

        assert "length" in available_hashers()
        assert get_hasher("length").hash("abc") == 3

    def test_register_rejects_empty_name(self):
        with pytest.raises(ConfigurationError):
            register_hasher("", Mmh3Hasher)

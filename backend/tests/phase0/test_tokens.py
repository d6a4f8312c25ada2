"""Tests for token counters."""

import pytest

from ctxprobe.probing import tokens
from ctxprobe.probing.tokens import (
    ApproximateTokenCounter,
    TiktokenCounter,
    get_token_counter,
)


class TestApproximateTokenCounter:
    def test_empty_text_is_zero(self):
        assert ApproximateTokenCounter().count("") == 0

    def test_uses_ratio_for_encoding(self):
        counter = ApproximateTokenCounter()
        assert counter.count("a" * 35, "cl100k_base") == 10
        assert counter.count("a" * 40, "p50k_base") == 10

    def test_rounds_up(self):
        assert ApproximateTokenCounter().count("abc") == 1

    def test_unknown_encoding_uses_default_ratio(self):
        counter = ApproximateTokenCounter()
        assert counter.count("a" * 70, "mystery") == counter.count("a" * 70, "cl100k_base")

    def test_deterministic(self):
        counter = ApproximateTokenCounter()
        text = "The same text twice. " * 50
        assert counter.count(text) == counter.count(text)


class _FakeEncoding:
    def encode(self, text, disallowed_special=()):
        return text.split()


class TestTiktokenCounter:
    @pytest.fixture(autouse=True)
    def _fake_tiktoken(self, monkeypatch):
        requested = []

        def get_encoding(name):
            requested.append(name)
            if name not in ("cl100k_base", "o200k_base"):
                raise ValueError(f"Unknown encoding {name}")
            return _FakeEncoding()

        tokens._get_encoding.cache_clear()
        monkeypatch.setattr(tokens.tiktoken, "get_encoding", get_encoding)
        yield requested
        tokens._get_encoding.cache_clear()

    def test_counts_encoded_tokens(self):
        assert TiktokenCounter().count("one two three") == 3

    def test_empty_text_is_zero(self):
        assert TiktokenCounter().count("") == 0

    def test_unknown_encoding_falls_back_to_cl100k(self, _fake_tiktoken):
        assert TiktokenCounter().count("a b", "claude") == 2
        assert _fake_tiktoken == ["claude", "cl100k_base"]

    def test_encoding_is_cached(self, _fake_tiktoken):
        counter = TiktokenCounter()
        counter.count("a", "o200k_base")
        counter.count("b", "o200k_base")
        assert _fake_tiktoken == ["o200k_base"]


class TestGetTokenCounter:
    def test_known_kinds(self):
        assert isinstance(get_token_counter("approximate"), ApproximateTokenCounter)
        assert isinstance(get_token_counter("tiktoken"), TiktokenCounter)

    def test_unknown_kind_raises(self):
        with pytest.raises(ValueError, match="Unknown token counter"):
            get_token_counter("sentencepiece")

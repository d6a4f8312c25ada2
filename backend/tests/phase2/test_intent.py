"""Tests for free-text probe request parsing."""

import pytest

from ctxprobe.catalog import ModelCatalog
from ctxprobe.probes.intent import DEFAULT_MODEL, parse_probe_request
from ctxprobe.probing.service import ConfigurationError


@pytest.fixture
def catalog():
    return ModelCatalog()


class TestModelMatching:
    def test_default_model(self, catalog):
        assert parse_probe_request("probe the context window", catalog).model == DEFAULT_MODEL

    def test_longest_id_wins(self, catalog):
        assert parse_probe_request("probe gpt-4o-mini please", catalog).model == "gpt-4o-mini"

    def test_prefix_is_not_a_match(self, catalog):
        assert parse_probe_request("test gpt-4-turbo", catalog).model == "gpt-4-turbo"
        assert parse_probe_request("test gpt-4 now", catalog).model == "gpt-4"

    def test_case_insensitive(self, catalog):
        config = parse_probe_request("Probe Claude-3-Haiku-20240307", catalog)
        assert config.model == "claude-3-haiku-20240307"


class TestOptions:
    def test_strategy_keyword(self, catalog):
        assert parse_probe_request("adaptive probe", catalog).strategy == "adaptive"
        assert parse_probe_request("linear scan", catalog).strategy == "linear"
        assert parse_probe_request("bisect it", catalog).strategy == "binary"

    def test_numbers_with_k_suffix(self, catalog):
        config = parse_probe_request(
            "probe gpt-4o min 10k max 50k precision 200 step 2.5k", catalog
        )
        assert config.min_tokens == 10_000
        assert config.max_tokens == 50_000
        assert config.precision == 200
        assert config.step_size == 2_500

    def test_separators_and_colons(self, catalog):
        config = parse_probe_request("max: 128,000 attempts=12 timeout 7.5", catalog)
        assert config.max_tokens == 128_000
        assert config.max_attempts == 12
        assert config.timeout_seconds == 7.5

    def test_preset_with_overrides(self, catalog):
        config = parse_probe_request("probe gpt-4o adaptive quick max 50k precision 200", catalog)
        assert config.model == "gpt-4o"
        assert config.strategy == "adaptive"
        assert config.max_tokens == 50_000  # explicit number beats the preset
        assert config.step_size == 20_000
        assert config.timeout_seconds == 15.0
        assert config.retry_count == 2
        assert config.precision == 200

    def test_plain_request_keeps_defaults(self, catalog):
        config = parse_probe_request("probe gpt-4o", catalog)
        assert config.strategy == "binary"
        assert config.max_tokens == 200_000

    def test_words_containing_keywords_are_ignored(self, catalog):
        config = parse_probe_request("maximum effort, minimal fuss", catalog)
        assert config.max_tokens == 200_000
        assert config.min_tokens == 1_000


class TestValidation:
    def test_inverted_range_is_rejected(self, catalog):
        with pytest.raises(ConfigurationError, match="must not exceed"):
            parse_probe_request("probe gpt-4o min 50k max 10k", catalog)

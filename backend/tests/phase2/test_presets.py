"""Tests for named probe presets."""

import pytest

from ctxprobe.probing.presets import configuration_for_preset, list_presets
from ctxprobe.probing.service import ConfigurationError, validate_configuration


class TestPresets:
    def test_available(self):
        assert list_presets() == ["quick", "standard", "deep"]

    @pytest.mark.parametrize(
        "preset, max_tokens, step, timeout, retries",
        [
            ("quick", 100_000, 20_000, 15.0, 2),
            ("standard", 200_000, 10_000, 30.0, 3),
            ("deep", 300_000, 5_000, 60.0, 5),
        ],
    )
    def test_values(self, preset, max_tokens, step, timeout, retries):
        config = configuration_for_preset("gpt-4o", preset)
        assert config.model == "gpt-4o"
        assert config.max_tokens == max_tokens
        assert config.step_size == step
        assert config.timeout_seconds == timeout
        assert config.retry_count == retries
        assert validate_configuration(config) == []

    def test_overrides_win(self):
        config = configuration_for_preset("gpt-4o", "deep", max_tokens=1_000_000, strategy="linear")
        assert config.max_tokens == 1_000_000
        assert config.strategy == "linear"

    def test_none_overrides_are_ignored(self):
        assert configuration_for_preset("gpt-4o", "quick", max_tokens=None).max_tokens == 100_000

    def test_unknown_preset(self):
        with pytest.raises(ConfigurationError, match="Unknown preset 'exhaustive'"):
            configuration_for_preset("gpt-4o", "exhaustive")

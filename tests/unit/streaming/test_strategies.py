"""Unit tests for accumulation strategies and streaming config."""

import pytest

from matilda_digest.core.config import ConfigLoader
from matilda_digest.core.exceptions import ConfigurationError
from matilda_digest.transcription.streaming.config import StreamingConfig
from matilda_digest.transcription.streaming.strategies import (
    AccumulationStrategy,
    ConcatenateStrategy,
    ReplaceStrategy,
    get_accumulation_strategy,
    get_available_strategies,
)


class TestStrategies:
    def test_concatenate_appends_deltas(self):
        strategy = ConcatenateStrategy()
        assert strategy.fold(strategy.fold("", "Hel"), "lo") == "Hello"

    def test_replace_keeps_latest(self):
        strategy = ReplaceStrategy()
        assert strategy.fold("the cat", "the cat sat") == "the cat sat"

    def test_lookup_is_case_insensitive(self):
        assert isinstance(get_accumulation_strategy("Replace"), ReplaceStrategy)

    def test_protocol_conformance(self):
        for name in get_available_strategies():
            assert isinstance(get_accumulation_strategy(name), AccumulationStrategy)

    def test_unknown_strategy(self):
        with pytest.raises(ConfigurationError, match="Available: concatenate, replace"):
            get_accumulation_strategy("merge")


class TestStreamingConfig:
    """Test StreamingConfig defaults and loading."""

    def test_defaults(self):
        config = StreamingConfig()
        assert config.sample_rate == 16000
        assert config.chunk_size == 4096
        assert config.send_interval_seconds == pytest.approx(0.2)
        assert config.session_close_delay_seconds == pytest.approx(5.0)

    def test_from_config(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text(
            "[digest.audio]\n"
            "target_sample_rate = 24000\n"
            "[digest.streaming]\n"
            "send_interval_ms = 50\n"
            'accumulation = "replace"\n'
            "[digest.gemini]\n"
            'live_model = "custom-live"\n'
        )
        config = StreamingConfig.from_config(ConfigLoader(path))

        assert config.sample_rate == 24000
        assert config.send_interval_ms == 50
        assert config.session_close_delay_ms == 5000
        assert config.accumulation == "replace"
        assert config.model == "custom-live"

"""Unit tests for configuration loading."""

import pytest

from matilda_digest.core.config import ConfigLoader, get_config, reset_config


class TestConfigLoader:
    """Test defaults, TOML merging and environment credentials."""

    def test_defaults_without_file(self, tmp_path):
        config = ConfigLoader(tmp_path / "missing.toml")

        assert config.transcription_backend == "gemini_live"
        assert config.target_sample_rate == 16000
        assert config.get("streaming.chunk_size") == 4096
        assert config.get("streaming.send_interval_ms") == 200
        assert config.get("streaming.session_close_delay_ms") == 5000
        assert config.get("openai.whisper_model") == "whisper-1"
        assert config.gemini_api_key == ""
        assert config.summarization_enabled is True

    def test_toml_digest_section_is_merged(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text(
            "[ears]\n"
            'unrelated = "ignored"\n'
            "[digest.transcription]\n"
            'backend = "openai_whisper"\n'
            "[digest.streaming]\n"
            "chunk_size = 2048\n"
        )
        config = ConfigLoader(path)

        assert config.transcription_backend == "openai_whisper"
        assert config.get("streaming.chunk_size") == 2048
        assert config.get("streaming.send_interval_ms") == 200
        assert config.get("unrelated") is None

    def test_credentials_from_environment(self, tmp_path, monkeypatch):
        monkeypatch.setenv("API_KEY", "fallback-key")
        monkeypatch.setenv("OPENAI_API_KEY", "openai-env")
        config = ConfigLoader(tmp_path / "missing.toml")

        assert config.gemini_api_key == "fallback-key"
        assert config.openai_api_key == "openai-env"

    def test_gemini_key_preferred_over_generic(self, tmp_path, monkeypatch):
        monkeypatch.setenv("API_KEY", "fallback-key")
        monkeypatch.setenv("GEMINI_API_KEY", "gemini-env")
        assert ConfigLoader(tmp_path / "missing.toml").gemini_api_key == "gemini-env"

    def test_overrides_win(self, tmp_path, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "gemini-env")
        config = ConfigLoader(tmp_path / "missing.toml", overrides={"gemini": {"api_key": "explicit"}})
        assert config.gemini_api_key == "explicit"

    def test_defaults_are_not_shared(self, tmp_path):
        first = ConfigLoader(tmp_path / "missing.toml")
        first.set("streaming.chunk_size", 1)

        assert ConfigLoader(tmp_path / "missing.toml").get("streaming.chunk_size") == 4096

    def test_set_creates_sections(self, tmp_path):
        config = ConfigLoader(tmp_path / "missing.toml")
        config.set("extra.nested.value", 3)
        assert config.get("extra.nested.value") == 3

    def test_config_path_from_environment(self, tmp_path, monkeypatch):
        path = tmp_path / "env.toml"
        path.write_text("[digest.audio]\ntarget_sample_rate = 24000\n")
        monkeypatch.setenv("MATILDA_DIGEST_CONFIG", str(path))

        assert ConfigLoader().target_sample_rate == 24000


class TestGlobalConfig:
    def test_cached_and_resettable(self, tmp_path):
        assert get_config() is get_config()

        loader = ConfigLoader(tmp_path / "missing.toml")
        reset_config(loader)
        assert get_config() is loader

    def test_invalid_toml(self, tmp_path):
        import tomllib

        path = tmp_path / "broken.toml"
        path.write_text("[digest\n")
        with pytest.raises(tomllib.TOMLDecodeError):
            ConfigLoader(path)

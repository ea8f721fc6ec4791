#!/usr/bin/env python3
"""Configuration loader that reads from config files."""
import copy
import os
from pathlib import Path
from typing import Any

import tomllib

DEFAULT_CONFIG: dict[str, Any] = {
    "transcription": {"backend": "gemini_live"},
    "audio": {
        "target_sample_rate": 16000,
        "ffmpeg_binary": "ffmpeg",
        "ffprobe_binary": "ffprobe",
        "decode_timeout_s": 600.0,
    },
    "streaming": {
        "chunk_size": 4096,
        "send_interval_ms": 200,
        "session_close_delay_ms": 5000,
        "connect_timeout_s": 30.0,
        "accumulation": "concatenate",
    },
    "gemini": {
        "api_key": "",
        "live_model": "gemini-2.5-flash-native-audio-preview-09-2025",
        "live_endpoint": (
            "wss://generativelanguage.googleapis.com/ws/"
            "google.ai.generativelanguage.v1beta.GenerativeService.BidiGenerateContent"
        ),
        "voice_name": "Zephyr",
        "summarizer_model": "gemini-2.5-flash",
        "rest_endpoint": "https://generativelanguage.googleapis.com/v1beta",
    },
    "openai": {
        "api_key": "",
        "whisper_model": "whisper-1",
        "transcription_endpoint": "https://api.openai.com/v1/audio/transcriptions",
        "request_timeout_s": 300.0,
    },
    "summarization": {
        "enabled": True,
        "temperature": 0.7,
        "top_p": 0.95,
        "top_k": 64,
        "max_output_tokens": 500,
        "request_timeout_s": 120.0,
    },
}

# Environment variables that override credentials at load time
_CREDENTIAL_ENV = {
    "gemini.api_key": ("GEMINI_API_KEY", "API_KEY"),
    "openai.api_key": ("OPENAI_API_KEY",),
}


class ConfigLoader:
    """Load configuration from config files."""

    def __init__(self, config_path: str | Path | None = None, overrides: dict[str, Any] | None = None) -> None:
        if config_path is None:
            config_path = self._default_config_path()

        self.config_file = str(config_path)
        config_path = Path(config_path)
        if config_path.exists():
            with open(config_path, "rb") as f:
                full_config = tomllib.load(f)
            digest_config = full_config.get("digest", {})
        else:
            digest_config = {}

        self._config = self._merge_dicts(DEFAULT_CONFIG, digest_config)
        self._apply_credential_env()
        if overrides:
            self._config = self._merge_dicts(self._config, overrides)

    def _default_config_path(self) -> Path:
        env_path = os.environ.get("MATILDA_DIGEST_CONFIG")
        if env_path:
            return Path(env_path)
        return Path.home() / ".matilda" / "config.toml"

    def _apply_credential_env(self) -> None:
        for key_path, env_names in _CREDENTIAL_ENV.items():
            for env_name in env_names:
                value = os.environ.get(env_name)
                if value:
                    self.set(key_path, value)
                    break

    def _merge_dicts(self, base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        merged = copy.deepcopy(base)
        for key, value in override.items():
            if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
                merged[key] = self._merge_dicts(merged[key], value)
            else:
                merged[key] = value
        return merged

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get a value using dot notation (e.g., 'streaming.chunk_size')"""
        keys = key_path.split(".")
        value = self._config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

    def set(self, key_path: str, value: Any) -> None:
        """Set a value using dot notation, creating sections as needed."""
        keys = key_path.split(".")
        section = self._config
        for key in keys[:-1]:
            section = section.setdefault(key, {})
        section[keys[-1]] = value

    @property
    def transcription_backend(self) -> str:
        """Get the transcription backend to use.

        Prioritizes the 'DIGEST_BACKEND' environment variable if set.
        """
        env_backend = os.environ.get("DIGEST_BACKEND")
        if env_backend:
            return env_backend
        return str(self.get("transcription.backend", "gemini_live"))

    @property
    def target_sample_rate(self) -> int:
        return int(self.get("audio.target_sample_rate", 16000))

    @property
    def ffmpeg_binary(self) -> str:
        return str(self.get("audio.ffmpeg_binary", "ffmpeg"))

    @property
    def ffprobe_binary(self) -> str:
        return str(self.get("audio.ffprobe_binary", "ffprobe"))

    @property
    def decode_timeout_s(self) -> float:
        return float(self.get("audio.decode_timeout_s", 600.0))

    @property
    def gemini_api_key(self) -> str:
        return str(self.get("gemini.api_key", ""))

    @property
    def openai_api_key(self) -> str:
        return str(self.get("openai.api_key", ""))

    @property
    def summarization_enabled(self) -> bool:
        return bool(self.get("summarization.enabled", True))


_config_loader: ConfigLoader | None = None


def get_config() -> ConfigLoader:
    """Get the global config loader instance"""
    global _config_loader
    if _config_loader is None:
        _config_loader = ConfigLoader()
    return _config_loader


def reset_config(loader: ConfigLoader | None = None) -> None:
    """Replace (or drop) the cached global config loader."""
    global _config_loader
    _config_loader = loader


# Re-export logging functions
from .logging import setup_logging  # noqa: E402, F401

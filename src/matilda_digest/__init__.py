"""Matilda Digest - transcribe and summarize the audio track of media files."""

from importlib import import_module, metadata
from pathlib import Path
import tomllib
from typing import TYPE_CHECKING


def _get_version() -> str:
    try:
        return metadata.version("goobits-matilda-digest")
    except metadata.PackageNotFoundError:
        pass

    try:
        pyproject_path = Path(__file__).resolve().parents[2] / "pyproject.toml"
        with open(pyproject_path, "rb") as f:
            data = tomllib.load(f)
        return str(data["project"]["version"])
    except (OSError, KeyError, tomllib.TOMLDecodeError):
        return "unknown"


__version__ = _get_version()

if TYPE_CHECKING:
    from .audio import AudioBuffer, extract_audio
    from .core.config import ConfigLoader, get_config
    from .pipeline import DigestPipeline, DigestResult, PipelineStage
    from .summarization import GeminiSummarizer
    from .transcription import TranscriptionResult, TranscriptionUpdate, create_transcriber
    from .transcription.streaming import LiveTranscriptionSession

_LAZY_EXPORTS = {
    "AudioBuffer": (".audio", "AudioBuffer"),
    "extract_audio": (".audio", "extract_audio"),
    "ConfigLoader": (".core.config", "ConfigLoader"),
    "get_config": (".core.config", "get_config"),
    "DigestPipeline": (".pipeline", "DigestPipeline"),
    "DigestResult": (".pipeline", "DigestResult"),
    "PipelineStage": (".pipeline", "PipelineStage"),
    "GeminiSummarizer": (".summarization", "GeminiSummarizer"),
    "TranscriptionResult": (".transcription", "TranscriptionResult"),
    "TranscriptionUpdate": (".transcription", "TranscriptionUpdate"),
    "create_transcriber": (".transcription", "create_transcriber"),
    "LiveTranscriptionSession": (".transcription.streaming", "LiveTranscriptionSession"),
}


def __getattr__(name):
    if name in {"audio", "core", "transcription"}:
        module = import_module(f".{name}", __name__)
        globals()[name] = module
        return module

    if name not in _LAZY_EXPORTS:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

    module_name, attr_name = _LAZY_EXPORTS[name]
    module = import_module(module_name, __name__)
    value = getattr(module, attr_name)
    globals()[name] = value
    return value


__all__ = [
    "AudioBuffer",
    "extract_audio",
    "ConfigLoader",
    "get_config",
    "DigestPipeline",
    "DigestResult",
    "PipelineStage",
    "GeminiSummarizer",
    "TranscriptionResult",
    "TranscriptionUpdate",
    "create_transcriber",
    "LiveTranscriptionSession",
]

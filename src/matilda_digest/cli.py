#!/usr/bin/env python3
"""Command line entry point: ``matilda-digest FILE``."""

import rich_click as click

# Configure rich-click to enable markup - MUST be first!
click.rich_click.USE_RICH_MARKUP = True

click.rich_click.STYLE_OPTION = "#ff79c6"
click.rich_click.STYLE_ARGUMENT = "#8be9fd"
click.rich_click.STYLE_USAGE = "#bd93f9"
click.rich_click.STYLE_HELPTEXT = "#b3b8c0"

import asyncio
import json
import os
import sys
import time
from pathlib import Path
from typing import Any

from rich.console import Console

from . import __version__


class DigestReporter:
    """Emit pipeline events as plain text or as JSON lines."""

    def __init__(self, json_output: bool = False, console: Console | None = None):
        self.json_output = json_output
        self.console = console or Console(stderr=True)
        self._last_progress = -1

    def _emit(self, event_type: str, **fields: Any) -> None:
        print(json.dumps({"type": event_type, **fields, "timestamp": time.time()}), flush=True)

    def status(self, status: str, message: str) -> None:
        if self.json_output:
            self._emit("status", status=status, message=message)
        else:
            self.console.print(f"[cyan]{message}[/cyan]")

    def stage(self, stage) -> None:
        self.status(stage.value, f"{stage.value.capitalize()}...")

    def duration(self, seconds: float) -> None:
        if self.json_output:
            self._emit("duration", duration_seconds=seconds)
        else:
            self.console.print(f"[dim]Audio duration: {seconds:.1f}s[/dim]")

    def progress(self, value: float) -> None:
        # Text mode only shows whole-percent steps of ten
        if self.json_output:
            self._emit("progress", progress=round(value, 2))
            return
        step = int(value) // 10 * 10
        if step != self._last_progress:
            self._last_progress = step
            self.console.print(f"[dim]Progress: {step}%[/dim]")

    def transcription(self, update) -> None:
        if self.json_output:
            self._emit("transcription", text=update.text, is_final=update.is_final)

    def result(self, result) -> None:
        if self.json_output:
            self._emit("result", **result.to_dict())
            return
        print(result.transcription, flush=True)
        if result.summary:
            print("", flush=True)
            print("Summary:", flush=True)
            print(result.summary, flush=True)

    def error(self, message: str) -> None:
        if self.json_output:
            self._emit("error", error=message)
        else:
            self.console.print(f"[red]Error: {message}[/red]")


async def run_digest(
    file_path: Path,
    backend: str | None,
    config_path: str | None,
    no_summary: bool,
    reporter: DigestReporter,
) -> int:
    """Run one digest and report it. Returns the process exit code."""
    from .core.config import ConfigLoader, reset_config
    from .core.exceptions import DigestError
    from .pipeline import DigestPipeline
    from .summarization import GeminiSummarizer
    from .transcription.factory import create_transcriber

    try:
        data = file_path.read_bytes()
    except OSError as e:
        reporter.error(f"Cannot read {file_path}: {e.strerror or e}")
        return 1

    try:
        config = ConfigLoader(config_path)
        reset_config(config)
        transcriber = create_transcriber(config, backend)
    except (DigestError, OSError, ValueError) as e:
        reporter.error(str(e))
        return 1

    summarizer = None if no_summary else GeminiSummarizer.from_config(config)
    pipeline = DigestPipeline(
        transcriber,
        summarizer,
        config,
        on_progress_update=reporter.progress,
        on_transcription_update=reporter.transcription,
        on_stage_change=reporter.stage,
        on_duration=reporter.duration,
    )

    reporter.status("started", f"Processing {file_path.name} with {transcriber.name}")
    try:
        result = await pipeline.run(data, filename=file_path.name)
    except DigestError as e:
        reporter.error(str(e))
        return 1

    reporter.result(result)
    return 0


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__, prog_name="matilda-digest")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--backend", help="Transcription backend (gemini_live, openai_whisper)")
@click.option("--config", "config_path", help="Configuration file path")
@click.option("--json", "json_output", is_flag=True, help="Output JSON lines (default: plain text)")
@click.option("--debug", is_flag=True, help="Enable detailed debug logging on stderr")
@click.option("--no-summary", is_flag=True, help="Skip the summarization stage")
def main(file, backend, config_path, json_output, debug, no_summary):
    """[bold cyan]Matilda Digest[/bold cyan] - transcribe and summarize the audio track of a media file

    \b
    [bold yellow]Examples:[/bold yellow]
      [green]matilda-digest talk.mp4[/green]
      [green]matilda-digest --backend openai_whisper --json interview.wav[/green]
    """
    if debug:
        os.environ["MATILDA_DIGEST_LOG_LEVEL"] = "DEBUG"
        os.environ["MATILDA_DIGEST_CONSOLE_LOGS"] = "1"

    reporter = DigestReporter(json_output=json_output)
    try:
        exit_code = asyncio.run(run_digest(file, backend, config_path, no_summary, reporter))
    except KeyboardInterrupt:
        reporter.console.print("\n[yellow]Interrupted by user[/yellow]")
        exit_code = 130
    sys.exit(exit_code)


if __name__ == "__main__":
    main()

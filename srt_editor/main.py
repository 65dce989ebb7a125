"""Typer CLI entrypoint for srt-editor."""

import asyncio
import json
import logging
from pathlib import Path

import typer

from srt_editor.config import Config, ConfigError, load_config
from srt_editor.errors import SrtEditorError, TranscriptionCancelledError
from srt_editor.models import MODEL_CATALOG, ModelManager
from srt_editor.orchestrator import TranscriptionOrchestrator
from srt_editor.progress import LoggingProgressSink
from srt_editor.waveform import WaveformGenerator

app = typer.Typer(help="Waveform and subtitle generation for the SRT editor")

logger = logging.getLogger(__name__)

EXIT_CANCELLED = 130


def _setup_logging(verbose: bool = False) -> None:
    """Setup logging configuration."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def _load(config: Path | None, verbose: bool) -> Config:
    cfg = load_config(config)
    _setup_logging(verbose or cfg.general.verbose)
    cfg.validate()
    logger.debug("Config: %s", cfg)
    return cfg


def _model_manager(cfg: Config) -> ModelManager:
    return ModelManager(
        model_dir=cfg.model.directory,
        base_url=cfg.model.base_url,
        timeout=cfg.model.download_timeout,
    )


@app.command()
def waveform(
    audio: Path = typer.Argument(..., help="Audio file to analyse"),
    samples: int | None = typer.Option(
        None, "--samples", "-n", help="Number of peak buckets"
    ),
    config: Path | None = typer.Option(
        None, "--config", help="Path to configuration file"
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable verbose logging"
    ),
    json_output: bool = typer.Option(
        False, "--json", help="Output as JSON instead of text"
    ),
) -> None:
    """Generate a peak waveform for an audio file."""
    try:
        cfg = _load(config, verbose)
        target = samples if samples is not None else cfg.waveform.target_samples
        generator = WaveformGenerator(block_size=cfg.audio.block_size)
        peaks = generator.generate(
            audio, target, sink=LoggingProgressSink(level=logging.DEBUG)
        )
    except (ConfigError, SrtEditorError, ValueError) as e:
        logger.error("Waveform generation failed: %s", e)
        raise typer.Exit(1)

    values = [round(float(v), 6) for v in peaks]
    if json_output:
        typer.echo(json.dumps(values))
    else:
        typer.echo(f"{len(values)} peaks (max {max(values, default=0.0):.4f})")
        typer.echo(" ".join(f"{v:.4f}" for v in values))


@app.command()
def transcribe(
    audio: Path = typer.Argument(..., help="Audio file to transcribe"),
    model: str | None = typer.Option(
        None, "--model", "-m", help=f"Model ({', '.join(MODEL_CATALOG)})"
    ),
    language: str | None = typer.Option(
        None, "--language", "-l", help="Language code or 'auto'"
    ),
    config: Path | None = typer.Option(
        None, "--config", help="Path to configuration file"
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable verbose logging"
    ),
    json_output: bool = typer.Option(
        False, "--json", help="Output as JSON instead of text"
    ),
) -> None:
    """Transcribe an audio file into subtitle entries."""
    try:
        cfg = _load(config, verbose)
        if model is not None:
            cfg.model.name = model
            cfg.validate()
        orchestrator = TranscriptionOrchestrator(_model_manager(cfg), config=cfg)
    except (ConfigError, SrtEditorError) as e:
        logger.error("Configuration error: %s", e)
        raise typer.Exit(1)

    async def _run():
        try:
            return await orchestrator.transcribe(
                audio, language=language, sink=LoggingProgressSink()
            )
        finally:
            await orchestrator.shutdown()

    try:
        entries = asyncio.run(_run())
    except (KeyboardInterrupt, TranscriptionCancelledError):
        logger.info("Transcription cancelled")
        raise typer.Exit(EXIT_CANCELLED)
    except SrtEditorError as e:
        logger.error("Transcription failed: %s", e)
        raise typer.Exit(1)

    if json_output:
        typer.echo(json.dumps([entry.to_dict() for entry in entries], ensure_ascii=False, indent=2))
    else:
        for entry in entries:
            typer.echo(f"[{entry.id}] {entry.start_time} --> {entry.end_time}  {entry.text}")


@app.command()
def models(
    config: Path | None = typer.Option(
        None, "--config", help="Path to configuration file"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
    json_output: bool = typer.Option(
        False, "--json", help="Output as JSON instead of table"
    ),
) -> None:
    """List available Whisper models."""
    try:
        cfg = _load(config, verbose)
        infos = _model_manager(cfg).list_models()
    except (ConfigError, SrtEditorError) as e:
        logger.error("Error listing models: %s", e)
        raise typer.Exit(1)

    if json_output:
        typer.echo(json.dumps([info.__dict__ for info in infos], indent=2))
        return

    typer.echo("Available models:")
    for info in infos:
        status = "downloaded" if info.downloaded else "not downloaded"
        typer.echo(f"  {info.name:<7} {info.size:>7}  {status}")
        if info.path:
            typer.echo(f"    Path: {info.path}")


@app.command()
def download(
    name: str = typer.Argument(..., help="Model to download"),
    config: Path | None = typer.Option(
        None, "--config", help="Path to configuration file"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Download a Whisper model."""
    try:
        cfg = _load(config, verbose)
        path = asyncio.run(_model_manager(cfg).download(name, sink=LoggingProgressSink()))
    except (ConfigError, SrtEditorError) as e:
        logger.error("Download failed: %s", e)
        raise typer.Exit(1)
    typer.echo(f"Model {name} available at {path}")


@app.command()
def delete(
    name: str = typer.Argument(..., help="Model to delete"),
    config: Path | None = typer.Option(
        None, "--config", help="Path to configuration file"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Delete a downloaded Whisper model."""
    try:
        cfg = _load(config, verbose)
        _model_manager(cfg).delete(name)
    except (ConfigError, SrtEditorError) as e:
        logger.error("Delete failed: %s", e)
        raise typer.Exit(1)
    typer.echo(f"Successfully deleted {name} model")


if __name__ == "__main__":
    app()

"""Async state machine coordinating decode, model loading and inference."""

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable

import numpy as np

from srt_editor._types import (
    InferenceSegment,
    ProgressEvent,
    ProgressStatus,
    SubtitleEntry,
    TimeStamp,
)
from srt_editor.cancellation import CancellationToken
from srt_editor.config import Config
from srt_editor.decoder import decode_mono
from srt_editor.engine import ENGINE_SAMPLE_RATE, FasterWhisperEngine, InferenceEngine
from srt_editor.errors import (
    AudioIOError,
    InferenceError,
    ModelNotDownloadedError,
    SrtEditorError,
    TranscriptionCancelledError,
)
from srt_editor.models import ModelManager
from srt_editor.progress import NullProgressSink, ProgressSink
from srt_editor.resampler import resample

logger = logging.getLogger(__name__)


class State(Enum):
    """Orchestrator state."""

    IDLE = "idle"
    LOADING = "loading"
    LOADING_MODEL = "loading_model"
    TRANSCRIBING = "transcribing"
    CONVERTING = "converting"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


def segments_to_entries(
    segments: Iterable[InferenceSegment],
    should_stop: Callable[[], bool] | None = None,
) -> list[SubtitleEntry]:
    """Convert engine segments into numbered subtitle entries.

    Args:
        segments: Segments timed in centiseconds
        should_stop: Polled before each segment

    Returns:
        Entries numbered from 1 in segment order

    Raises:
        TranscriptionCancelledError: If should_stop() became true
    """
    entries = []
    for index, segment in enumerate(segments):
        if should_stop is not None and should_stop():
            raise TranscriptionCancelledError("converting")

        start_ms = max(segment.start_cs, 0) * 10
        end_ms = max(segment.end_cs * 10, start_ms)
        entries.append(
            SubtitleEntry(
                id=index + 1,
                start_time=TimeStamp.from_milliseconds(start_ms),
                end_time=TimeStamp.from_milliseconds(end_ms),
                text=segment.text.strip(),
            )
        )
    return entries


class TranscriptionOrchestrator:
    """Coordinates model checks, audio loading, inference and conversion.

    Blocking stages run on a single-worker thread pool so the event loop stays
    responsive. Runs are serialized; each owns a CancellationToken observed at
    fixed checkpoints. Inference itself is never interrupted: a cancel arriving
    mid-inference discards the result once the call returns.
    """

    def __init__(
        self,
        models: ModelManager,
        engine: InferenceEngine | None = None,
        config: Config | None = None,
        executor: ThreadPoolExecutor | None = None,
    ):
        """Initialize orchestrator with components.

        Args:
            models: ModelManager resolving model presence and paths
            engine: Inference engine (defaults to FasterWhisperEngine from config)
            config: Application configuration
            executor: Optional ThreadPoolExecutor for blocking stages
        """
        self.config = config or Config()
        self.models = models
        self.engine = engine or FasterWhisperEngine(
            device=self.config.model.device,
            compute_type=self.config.model.compute_type,
        )
        self.executor = executor or ThreadPoolExecutor(max_workers=1)
        self._executor_owned = executor is None
        self._run_lock = asyncio.Lock()

        self.state = State.IDLE
        self.current_token: CancellationToken | None = None

        logger.info("Orchestrator initialized in IDLE state")

    def cancel(self) -> None:
        """Request cancellation of the run currently in flight, if any."""
        if self.current_token is None:
            logger.debug("Cancel requested with no run in flight")
            return
        logger.info("Cancelling transcription run (state=%s)", self.state.value)
        self.current_token.cancel()

    async def transcribe(
        self,
        audio_path: Path | str,
        model: str | None = None,
        language: str | None = None,
        *,
        sink: ProgressSink | None = None,
        token: CancellationToken | None = None,
    ) -> list[SubtitleEntry]:
        """Transcribe an audio file into subtitle entries.

        Args:
            audio_path: Audio file path
            model: Catalog model name (defaults to config)
            language: Language code or "auto" (defaults to config)
            sink: Progress sink receiving percentages in [0, 100]
            token: Cancellation token held by the caller; a fresh one is
                created when omitted

        Returns:
            Subtitle entries in time order

        Raises:
            ModelNotDownloadedError: If the model is not on disk
            TranscriptionCancelledError: If the run was cancelled
            SrtEditorError: On any other failure
        """
        model = model or self.config.model.name
        language = language or self.config.transcription.language
        sink = sink or NullProgressSink()

        async with self._run_lock:
            token = token or CancellationToken()
            self.current_token = token
            try:
                return await self._run(Path(audio_path), model, language, sink, token)
            except TranscriptionCancelledError:
                logger.info("State transition: %s -> CANCELLED", self.state.name)
                self.state = State.CANCELLED
                raise
            except asyncio.CancelledError:
                # Stop the worker at its next checkpoint; the task is going away.
                token.cancel()
                self.state = State.CANCELLED
                raise
            except SrtEditorError as e:
                logger.error("Transcription failed in %s: %s", self.state.name, e)
                self.state = State.FAILED
                raise
            except Exception as e:
                logger.error("Transcription failed in %s: %s", self.state.name, e, exc_info=True)
                self.state = State.FAILED
                raise InferenceError(f"Transcription failed: {e}") from e
            finally:
                self.current_token = None

    async def _run(
        self,
        audio_path: Path,
        model: str,
        language: str,
        sink: ProgressSink,
        token: CancellationToken,
    ) -> list[SubtitleEntry]:
        self._transition(State.LOADING)
        sink.emit(ProgressEvent(0.0, "Loading audio file...", ProgressStatus.LOADING))

        if not self.models.is_downloaded(model):
            raise ModelNotDownloadedError(
                f"Model {model} is not downloaded. Please download it first."
            )
        model_path = self.models.model_path(model)

        token.raise_if_cancelled("before loading audio")
        samples = await self._run_blocking(self._load_audio, audio_path, token)
        token.raise_if_cancelled("after loading audio")

        self._transition(State.LOADING_MODEL)
        sink.emit(ProgressEvent(10.0, "Loading Whisper model...", ProgressStatus.LOADING))
        await self._run_blocking(self.engine.load, model_path, self.config.model.threads)
        token.raise_if_cancelled("after loading model")

        self._transition(State.TRANSCRIBING)
        sink.emit(ProgressEvent(20.0, "Transcribing audio...", ProgressStatus.TRANSCRIBING))
        segments = await self._run_blocking(self.engine.transcribe, samples, language)
        token.raise_if_cancelled("after inference")

        self._transition(State.CONVERTING)
        sink.emit(ProgressEvent(80.0, "Converting to subtitles...", ProgressStatus.CONVERTING))
        entries = segments_to_entries(segments, should_stop=token.is_cancelled)
        token.raise_if_cancelled("after conversion")

        self._transition(State.COMPLETED)
        sink.emit(
            ProgressEvent(
                100.0,
                f"Transcription completed! Generated {len(entries)} subtitles",
                ProgressStatus.COMPLETED,
            )
        )
        return entries

    def _transition(self, state: State) -> None:
        logger.info("State transition: %s -> %s", self.state.name, state.name)
        self.state = state

    async def _run_blocking(self, func, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self.executor, func, *args)

    def _load_audio(self, audio_path: Path, token: CancellationToken) -> np.ndarray:
        """Decode, downmix and resample audio to the engine's rate (runs in thread pool).

        Raises:
            AudioIOError, ProbeError, NoAudioTrackError: On fatal decode failures
            TranscriptionCancelledError: If cancelled between packets
        """
        samples, sample_rate = decode_mono(
            audio_path,
            block_size=self.config.audio.block_size,
            should_stop=token.is_cancelled,
        )
        if len(samples) == 0:
            raise AudioIOError(f"No audio samples extracted from {audio_path}")

        samples = resample(
            samples,
            sample_rate,
            ENGINE_SAMPLE_RATE,
            method=self.config.audio.resample_method,
        )
        logger.debug(
            "Audio ready for inference: %d samples (%.2f s)",
            len(samples),
            len(samples) / ENGINE_SAMPLE_RATE,
        )
        return samples

    async def shutdown(self) -> None:
        """Release the engine and stop the thread pool if owned by this instance."""
        logger.info("Orchestrator shutting down")
        if self.current_token is not None:
            self.current_token.cancel()
        unload = getattr(self.engine, "unload", None)
        if unload is not None:
            unload()
        if self._executor_owned and self.executor:
            self.executor.shutdown(wait=True)
            logger.debug("Executor shut down")
        self.state = State.IDLE

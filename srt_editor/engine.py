"""Speech recognition engine adapter over Faster Whisper."""

import logging
import time
from pathlib import Path
from typing import Protocol

import numpy as np

from srt_editor._types import InferenceSegment
from srt_editor.errors import InferenceError

logger = logging.getLogger(__name__)

ENGINE_SAMPLE_RATE = 16000


class InferenceEngine(Protocol):
    """Opaque inference engine consuming 16 kHz mono float samples."""

    def load(self, model_path: Path, threads: int) -> None: ...

    def transcribe(self, samples: np.ndarray, language: str) -> list[InferenceSegment]: ...


def seconds_to_centiseconds(seconds: float) -> int:
    return max(int(round(seconds * 100)), 0)


class FasterWhisperEngine:
    """Encapsulates a Faster Whisper model loaded from a local directory.

    Both calls block; the orchestrator runs them on its worker thread.
    """

    def __init__(self, device: str = "cpu", compute_type: str = "int8"):
        """Initialize engine.

        Args:
            device: Device to run on (cpu, cuda, auto)
            compute_type: Compute precision (int8, float16, float32, default)
        """
        self.device = device
        self.compute_type = compute_type
        self._model = None
        self._model_path: Path | None = None
        self._threads: int | None = None

    def load(self, model_path: Path, threads: int = 4) -> None:
        """Load the model into an inference context.

        Args:
            model_path: Model directory on disk
            threads: CPU worker threads used by inference

        Raises:
            InferenceError: If the model fails to load
        """
        model_path = Path(model_path)
        if (
            self._model is not None
            and self._model_path == model_path
            and self._threads == threads
        ):
            return

        logger.info(
            "Loading Faster Whisper model from %s (device=%s, compute_type=%s, threads=%d)",
            model_path,
            self.device,
            self.compute_type,
            threads,
        )
        try:
            from faster_whisper import WhisperModel

            start_time = time.perf_counter()
            self._model = WhisperModel(
                str(model_path),
                device=self.device,
                compute_type=self.compute_type,
                cpu_threads=threads,
                local_files_only=True,
            )
            self._model_path = model_path
            self._threads = threads
            logger.info(
                "Model loaded successfully in %.2f seconds",
                time.perf_counter() - start_time,
            )
        except Exception as e:
            self._model = None
            self._model_path = None
            self._threads = None
            logger.error("Failed to load model %s: %s", model_path, e)
            raise InferenceError(
                f"Failed to load Whisper model '{model_path}' on device "
                f"'{self.device}' with compute_type '{self.compute_type}': {e}"
            ) from e

    def transcribe(self, samples: np.ndarray, language: str) -> list[InferenceSegment]:
        """Run greedy, multi-segment inference over the whole stream.

        Args:
            samples: 16 kHz mono float32 samples
            language: Language code, or "auto" for detection

        Returns:
            Every recognized segment, timed in centiseconds

        Raises:
            InferenceError: If no model is loaded or inference fails
        """
        if self._model is None:
            raise InferenceError("Model not loaded")

        try:
            segments, info = self._model.transcribe(
                np.asarray(samples, dtype=np.float32),
                language=None if language == "auto" else language,
                task="transcribe",
                beam_size=1,
                best_of=1,
                temperature=0.0,
                without_timestamps=False,
                vad_filter=False,
            )
            # The segment generator does the actual decoding.
            result = [
                InferenceSegment(
                    start_cs=seconds_to_centiseconds(seg.start),
                    end_cs=seconds_to_centiseconds(seg.end),
                    text=seg.text,
                )
                for seg in segments
            ]
        except Exception as e:
            logger.error("Inference failed: %s", e, exc_info=True)
            raise InferenceError(f"Transcription failed: {e}") from e

        logger.debug(
            "Inference produced %d segments (language=%s)",
            len(result),
            getattr(info, "language", language),
        )
        return result

    def unload(self) -> None:
        """Release the model reference."""
        self._model = None
        self._model_path = None
        self._threads = None

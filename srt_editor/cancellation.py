"""Per-run cancellation tokens."""

import logging
import threading

from srt_editor.errors import TranscriptionCancelledError

logger = logging.getLogger(__name__)


class CancellationToken:
    """Token for cooperatively aborting one transcription run.

    Thread-safe: ``cancel()`` may be called from any thread while the pipeline
    polls ``is_cancelled()`` at its checkpoints. Each run owns its own token, so
    starting a new run never clears a cancel request aimed at another one.
    """

    def __init__(self):
        """Initialize token in non-cancelled state."""
        self._event = threading.Event()

    def cancel(self) -> None:
        """Mark token as cancelled."""
        if not self._event.is_set():
            logger.debug("Cancellation requested")
        self._event.set()

    def is_cancelled(self) -> bool:
        """Check if token is cancelled.

        Returns:
            True if cancelled, False otherwise
        """
        return self._event.is_set()

    def raise_if_cancelled(self, stage: str = "") -> None:
        """Raise at a checkpoint if cancellation was requested.

        Args:
            stage: Checkpoint name included in the error

        Raises:
            TranscriptionCancelledError: If the token is cancelled
        """
        if self._event.is_set():
            logger.info("Cancellation observed at checkpoint: %s", stage or "unknown")
            raise TranscriptionCancelledError(stage)

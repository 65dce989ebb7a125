"""Progress sinks the pipelines write to."""

import logging
from typing import Callable, Protocol

from srt_editor._types import ProgressEvent

logger = logging.getLogger(__name__)


class ProgressSink(Protocol):
    """Receiver of progress events.

    Called synchronously on the pipeline's own thread; implementations must
    return quickly and must not raise into the pipeline.
    """

    def emit(self, event: ProgressEvent) -> None: ...


class NullProgressSink:
    """Discards every event."""

    def emit(self, event: ProgressEvent) -> None:
        pass


class CallbackProgressSink:
    """Adapts a plain callable to the sink interface.

    Delivery failures are logged and swallowed here, on the caller side of the
    boundary, so a broken UI bridge never aborts decoding or inference.
    """

    def __init__(self, callback: Callable[[ProgressEvent], None]):
        self.callback = callback

    def emit(self, event: ProgressEvent) -> None:
        try:
            self.callback(event)
        except Exception as e:
            logger.warning("Progress callback failed: %s", e)


class LoggingProgressSink:
    """Writes events to a logger; used by the CLI."""

    def __init__(self, log: logging.Logger | None = None, level: int = logging.INFO):
        self.log = log or logger
        self.level = level

    def emit(self, event: ProgressEvent) -> None:
        self.log.log(
            self.level,
            "[%s] %.1f %s",
            event.status.value,
            event.progress,
            event.message,
        )

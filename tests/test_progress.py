"""Tests for progress sinks."""

import logging
from unittest.mock import MagicMock

from srt_editor._types import ProgressEvent, ProgressStatus
from srt_editor.progress import (
    CallbackProgressSink,
    LoggingProgressSink,
    NullProgressSink,
)


def _event(progress: float = 42.0) -> ProgressEvent:
    return ProgressEvent(progress, "Transcribing audio...", ProgressStatus.TRANSCRIBING)


class TestCallbackProgressSink:
    """Tests for the callable adapter."""

    def test_forwards_events(self):
        """Test events are passed to the callback unchanged."""
        callback = MagicMock()
        event = _event()

        CallbackProgressSink(callback).emit(event)

        callback.assert_called_once_with(event)

    def test_swallows_callback_errors(self, caplog):
        """Test a failing callback is logged instead of raised."""
        callback = MagicMock(side_effect=RuntimeError("bridge gone"))

        with caplog.at_level(logging.WARNING):
            CallbackProgressSink(callback).emit(_event())

        assert "Progress callback failed" in caplog.text
        assert "bridge gone" in caplog.text


class TestLoggingProgressSink:
    """Tests for the logging sink."""

    def test_logs_status_and_progress(self, caplog):
        """Test the status tag and value appear in the log line."""
        with caplog.at_level(logging.INFO, logger="srt_editor.progress"):
            LoggingProgressSink().emit(_event(20.0))

        assert "[transcribing] 20.0 Transcribing audio..." in caplog.text

    def test_custom_level(self, caplog):
        """Test events below the logger level are not written."""
        log = logging.getLogger("srt_editor.tests.progress")
        with caplog.at_level(logging.INFO, logger="srt_editor.tests.progress"):
            LoggingProgressSink(log, level=logging.DEBUG).emit(_event())

        assert caplog.text == ""


def test_null_sink_accepts_events():
    """Test the null sink ignores events."""
    NullProgressSink().emit(_event())

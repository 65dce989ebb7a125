"""Shared types and dataclasses for cross-module use."""

import re
from dataclasses import dataclass
from enum import Enum

import numpy as np

SUPPORTED_SAMPLE_FORMATS = ("float32", "int16", "int32", "uint8")

_TIMESTAMP_RE = re.compile(r"^(\d{2,}):(\d{2}):(\d{2})[,.](\d{3})$")


@dataclass(frozen=True)
class AudioTrack:
    """One demultiplexed stream within a container."""

    track_id: int
    sample_rate: int
    channels: int
    codec: str


@dataclass
class DecodedBuffer:
    """One packet worth of interleaved samples in the codec-native format.

    ``samples`` is shaped ``(frames, channels)``.
    """

    samples: np.ndarray
    sample_format: str

    @property
    def frames(self) -> int:
        return int(self.samples.shape[0]) if self.samples.ndim else 0

    @property
    def channels(self) -> int:
        if self.samples.ndim < 2:
            return 1
        return int(self.samples.shape[1])


@dataclass(frozen=True)
class TimeStamp:
    """Subtitle time position split into h/m/s/ms fields."""

    hours: int = 0
    minutes: int = 0
    seconds: int = 0
    milliseconds: int = 0

    def __post_init__(self) -> None:
        if self.hours < 0:
            raise ValueError(f"hours must be non-negative, got {self.hours}")
        if not 0 <= self.minutes <= 59:
            raise ValueError(f"minutes must be in [0, 59], got {self.minutes}")
        if not 0 <= self.seconds <= 59:
            raise ValueError(f"seconds must be in [0, 59], got {self.seconds}")
        if not 0 <= self.milliseconds <= 999:
            raise ValueError(
                f"milliseconds must be in [0, 999], got {self.milliseconds}"
            )

    @classmethod
    def from_milliseconds(cls, ms: int | float) -> "TimeStamp":
        """Decompose a millisecond offset into timestamp fields.

        Args:
            ms: Offset in milliseconds; fractional values are rounded

        Returns:
            TimeStamp for the offset

        Raises:
            ValueError: If the offset is negative
        """
        total = int(round(ms))
        if total < 0:
            raise ValueError(f"Timestamp offset must be non-negative, got {ms}")
        return cls(
            hours=total // 3_600_000,
            minutes=(total % 3_600_000) // 60_000,
            seconds=(total % 60_000) // 1000,
            milliseconds=total % 1000,
        )

    @classmethod
    def parse(cls, text: str) -> "TimeStamp":
        """Parse an SRT timestamp (``HH:MM:SS,mmm``).

        Raises:
            ValueError: If the text is not a valid timestamp
        """
        match = _TIMESTAMP_RE.match(text.strip())
        if match is None:
            raise ValueError(f"Invalid timestamp format: {text!r}")
        hours, minutes, seconds, millis = (int(part) for part in match.groups())
        return cls(hours, minutes, seconds, millis)

    def total_milliseconds(self) -> int:
        return (
            self.hours * 3_600_000
            + self.minutes * 60_000
            + self.seconds * 1000
            + self.milliseconds
        )

    def to_frame(self, fps: float) -> int:
        """Frame index of this timestamp at the given frame rate."""
        if fps <= 0:
            raise ValueError(f"fps must be positive, got {fps}")
        return int(self.total_milliseconds() * fps // 1000)

    def to_dict(self) -> dict:
        return {
            "hours": self.hours,
            "minutes": self.minutes,
            "seconds": self.seconds,
            "milliseconds": self.milliseconds,
        }

    def __str__(self) -> str:
        return (
            f"{self.hours:02d}:{self.minutes:02d}:{self.seconds:02d},"
            f"{self.milliseconds:03d}"
        )


@dataclass
class SubtitleEntry:
    """A numbered, time-aligned subtitle line."""

    id: int
    start_time: TimeStamp
    end_time: TimeStamp
    text: str

    def __post_init__(self) -> None:
        if self.end_time.total_milliseconds() < self.start_time.total_milliseconds():
            raise ValueError(
                f"Subtitle {self.id} ends ({self.end_time}) before it starts "
                f"({self.start_time})"
            )

    def to_dict(self) -> dict:
        """Serialize using the field names the editor front end expects."""
        return {
            "id": self.id,
            "startTime": self.start_time.to_dict(),
            "endTime": self.end_time.to_dict(),
            "text": self.text,
        }


@dataclass
class ModelInfo:
    """Catalog entry annotated with on-disk state."""

    name: str
    size: str
    downloaded: bool
    path: str | None = None


class ProgressStatus(Enum):
    """Coarse status tag carried by progress events."""

    LOADING = "loading"
    DOWNLOADING = "downloading"
    TRANSCRIBING = "transcribing"
    CONVERTING = "converting"
    COMPLETED = "completed"
    WAVEFORM = "waveform"


@dataclass(frozen=True)
class ProgressEvent:
    """Progress notification.

    ``progress`` is a fraction in [0, 1] for waveform generation and a
    percentage in [0, 100] for downloads and transcription.
    """

    progress: float
    message: str
    status: ProgressStatus


@dataclass(frozen=True)
class InferenceSegment:
    """A segment returned by the inference engine, timed in centiseconds."""

    start_cs: int
    end_cs: int
    text: str

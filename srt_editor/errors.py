"""Error taxonomy for the decode, waveform and transcription pipelines."""

__all__ = [
    "SrtEditorError",
    "AudioIOError",
    "ProbeError",
    "NoAudioTrackError",
    "UnsupportedSampleFormatError",
    "PacketDecodeError",
    "ModelNotDownloadedError",
    "ModelNotFoundError",
    "UnknownModelError",
    "DownloadError",
    "InferenceError",
    "TranscriptionCancelledError",
]


class SrtEditorError(RuntimeError):
    """Base class for all pipeline errors."""


class AudioIOError(SrtEditorError):
    """Audio file could not be opened or read."""


class ProbeError(SrtEditorError):
    """No supported container format matched the file."""


class NoAudioTrackError(SrtEditorError):
    """The container holds no track carrying audio."""


class UnsupportedSampleFormatError(SrtEditorError):
    """The decoded sample representation cannot be normalized.

    Logged by the normalizer, which drops the buffer instead of raising.
    """


class PacketDecodeError(SrtEditorError):
    """A single packet failed to decode.

    Recovered locally by the decoder: the packet is logged and skipped.
    """


class ModelNotDownloadedError(SrtEditorError):
    """The requested model is not present on disk."""


class ModelNotFoundError(SrtEditorError):
    """A model was asked to be deleted but is not present."""


class UnknownModelError(SrtEditorError):
    """The model name is not part of the catalog."""


class DownloadError(SrtEditorError):
    """Model download failed (network or HTTP status)."""


class InferenceError(SrtEditorError):
    """Model loading or inference failed."""


class TranscriptionCancelledError(SrtEditorError):
    """The run was cancelled by the caller. Not a failure."""

    def __init__(self, stage: str = ""):
        self.stage = stage
        message = "Transcription cancelled"
        if stage:
            message = f"{message} ({stage})"
        super().__init__(message)

"""Configuration loader and validation."""

import logging
import sys
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from srt_editor.models import DEFAULT_BASE_URL, MODEL_CATALOG
from srt_editor.resampler import RESAMPLE_METHODS

logger = logging.getLogger(__name__)

__all__ = [
    "AudioConfig",
    "WaveformConfig",
    "ModelConfig",
    "TranscriptionConfig",
    "GeneralConfig",
    "Config",
    "ConfigError",
    "load_config",
]

SECTIONS = ("audio", "waveform", "model", "transcription", "general")


class ConfigError(Exception):
    """Configuration loading or validation error."""

    pass


@dataclass
class AudioConfig:
    """Decoding and resampling configuration."""

    block_size: int = 4096
    resample_method: str = "hold"


@dataclass
class WaveformConfig:
    """Waveform generation settings."""

    target_samples: int = 2000


@dataclass
class ModelConfig:
    """Whisper model storage and runtime configuration."""

    name: str = "base"
    directory: str | None = None
    device: str = "cpu"
    compute_type: str = "int8"
    threads: int = 4
    base_url: str = DEFAULT_BASE_URL
    download_timeout: float = 60.0


@dataclass
class TranscriptionConfig:
    """Transcription settings."""

    language: str = "en"


@dataclass
class GeneralConfig:
    """General application settings."""

    verbose: bool = False


@dataclass
class Config:
    """Main configuration container."""

    audio: AudioConfig = field(default_factory=AudioConfig)
    waveform: WaveformConfig = field(default_factory=WaveformConfig)
    model: ModelConfig = field(default_factory=ModelConfig)
    transcription: TranscriptionConfig = field(default_factory=TranscriptionConfig)
    general: GeneralConfig = field(default_factory=GeneralConfig)

    @classmethod
    def from_toml(
        cls,
        path: Path | None = None,
        *,
        env: Mapping[str, str] | None = None,
    ) -> "Config":
        """Load configuration from TOML file with environment overrides.

        Args:
            path: Explicit config file path. If None, searches in order:
                  1. SRT_EDITOR_CONFIG env var
                  2. ./srt-editor.toml
                  3. ~/.config/srt-editor/config.toml
                  Built-in defaults are used when none exists.
            env: Environment variables for overrides (defaults to os.environ)

        Returns:
            Loaded Config instance

        Raises:
            ConfigError: If an explicit file is missing or values are invalid
        """
        if env is None:
            import os

            env = os.environ

        resolved_path = _resolve_config_path(path, env)
        raw_data = _load_toml_file(resolved_path) if resolved_path else {}

        try:
            coerced = _coerce_config_values(raw_data, env)
            return cls(
                audio=AudioConfig(**coerced["audio"]),
                waveform=WaveformConfig(**coerced["waveform"]),
                model=ModelConfig(**coerced["model"]),
                transcription=TranscriptionConfig(**coerced["transcription"]),
                general=GeneralConfig(**coerced["general"]),
            )
        except TypeError as e:
            raise ConfigError(f"Invalid configuration values: {e}") from e

    def validate(self) -> None:
        """Validate configuration values.

        Raises:
            ConfigError: If any value is out of range
        """
        validate_audio_config(self.audio)
        validate_waveform_config(self.waveform)
        validate_model_config(self.model)


def _resolve_config_path(
    cli_path: Path | None,
    env: Mapping[str, str],
) -> Path | None:
    """Resolve configuration file path following search order.

    Search order:
    1. CLI-provided path
    2. SRT_EDITOR_CONFIG environment variable
    3. ./srt-editor.toml (current directory)
    4. ~/.config/srt-editor/config.toml (user config directory)

    Returns:
        Path of the first existing candidate, or None to use defaults

    Raises:
        ConfigError: If an explicitly requested file does not exist
    """
    if cli_path:
        cli_path = Path(cli_path)
        if cli_path.exists():
            logger.info("Using config file: %s", cli_path.resolve())
            return cli_path.resolve()
        raise ConfigError(f"Config file not found: {cli_path}")

    if env_path := env.get("SRT_EDITOR_CONFIG"):
        env_candidate = Path(env_path)
        if not env_candidate.exists():
            raise ConfigError(f"Config file from SRT_EDITOR_CONFIG not found: {env_path}")
        logger.info("Using config file: %s", env_candidate.resolve())
        return env_candidate.resolve()

    for candidate in (
        Path("srt-editor.toml"),
        Path.home() / ".config" / "srt-editor" / "config.toml",
    ):
        if candidate.exists():
            logger.info("Using config file: %s", candidate.resolve())
            return candidate.resolve()

    logger.debug("No config file found, using defaults")
    return None


def _load_toml_file(path: Path) -> dict:
    """Load and parse TOML configuration file.

    Raises:
        ConfigError: If file cannot be read or parsed
    """
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"Config file not found: {path}") from e
    except Exception as e:
        raise ConfigError(f"Failed to parse config file {path}: {e}") from e


def _coerce_config_values(raw_data: dict, env: Mapping[str, str]) -> dict:
    """Normalize raw TOML data for dataclass instantiation.

    Args:
        raw_data: Raw parsed TOML dictionary
        env: Environment variables for overrides

    Returns:
        Coerced dictionary ready for dataclass instantiation
    """
    coerced = {}

    for section in SECTIONS:
        value = raw_data.get(section, {})
        if not isinstance(value, dict):
            raise ConfigError(f"Section [{section}] must be a table")
        coerced[section] = dict(value)

    unknown = set(raw_data) - set(SECTIONS)
    if unknown:
        logger.warning("Ignoring unknown config sections: %s", ", ".join(sorted(unknown)))

    if model_dir := env.get("SRT_EDITOR_MODEL_DIR"):
        coerced["model"]["directory"] = model_dir

    return coerced


def validate_audio_config(audio_cfg: AudioConfig) -> None:
    """Validate decoding configuration.

    Raises:
        ConfigError: If audio configuration is invalid
    """
    if audio_cfg.block_size <= 0:
        raise ConfigError(f"block_size must be positive, got {audio_cfg.block_size}")

    if audio_cfg.resample_method not in RESAMPLE_METHODS:
        raise ConfigError(
            f"Invalid resample_method '{audio_cfg.resample_method}'. "
            f"Must be one of: {', '.join(RESAMPLE_METHODS)}"
        )


def validate_waveform_config(waveform_cfg: WaveformConfig) -> None:
    if waveform_cfg.target_samples <= 0:
        raise ConfigError(
            f"target_samples must be positive, got {waveform_cfg.target_samples}"
        )


def validate_model_config(model_cfg: ModelConfig) -> None:
    """Validate model configuration.

    Args:
        model_cfg: ModelConfig instance

    Raises:
        ConfigError: If model configuration is invalid
    """
    if model_cfg.name not in MODEL_CATALOG:
        raise ConfigError(
            f"Invalid model '{model_cfg.name}'. "
            f"Must be one of: {', '.join(MODEL_CATALOG)}"
        )

    valid_compute_types = ("int8", "float16", "float32", "default")
    if model_cfg.compute_type not in valid_compute_types:
        raise ConfigError(
            f"Invalid compute_type '{model_cfg.compute_type}'. "
            f"Must be one of: {', '.join(valid_compute_types)}"
        )

    valid_devices = ("cpu", "cuda", "auto")
    if model_cfg.device not in valid_devices:
        raise ConfigError(
            f"Invalid device '{model_cfg.device}'. "
            f"Must be one of: {', '.join(valid_devices)}"
        )

    if model_cfg.threads <= 0:
        raise ConfigError(f"threads must be positive, got {model_cfg.threads}")

    if model_cfg.download_timeout <= 0:
        raise ConfigError(
            f"download_timeout must be positive, got {model_cfg.download_timeout}"
        )


def load_config(
    path: Path | None = None,
    *,
    env: Mapping[str, str] | None = None,
) -> Config:
    """Load configuration from TOML file.

    Convenience wrapper around Config.from_toml().

    Args:
        path: Explicit config file path (optional)
        env: Environment variables (defaults to os.environ)

    Returns:
        Loaded Config instance

    Raises:
        ConfigError: If config cannot be loaded
    """
    return Config.from_toml(path, env=env)

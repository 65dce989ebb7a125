"""Whisper model catalog, download and deletion."""

import logging
import os
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

import httpx

from srt_editor._types import ModelInfo, ProgressEvent, ProgressStatus
from srt_editor.errors import DownloadError, ModelNotFoundError, UnknownModelError
from srt_editor.progress import NullProgressSink, ProgressSink

logger = logging.getLogger(__name__)

DEFAULT_MODEL_DIR = Path.home() / ".config" / "srt-editor" / "models"
DEFAULT_BASE_URL = "https://huggingface.co"
WEIGHTS_FILE = "model.bin"

_STANDARD_FILES = ("config.json", "tokenizer.json", "vocabulary.txt", WEIGHTS_FILE)
_LARGE_V3_FILES = (
    "config.json",
    "preprocessor_config.json",
    "tokenizer.json",
    "vocabulary.json",
    WEIGHTS_FILE,
)


@dataclass(frozen=True)
class ModelSpec:
    """Static description of a downloadable model."""

    name: str
    size: str
    repo: str
    files: tuple[str, ...] = _STANDARD_FILES


MODEL_CATALOG: dict[str, ModelSpec] = {
    spec.name: spec
    for spec in (
        ModelSpec("tiny", "75 MB", "Systran/faster-whisper-tiny"),
        ModelSpec("base", "142 MB", "Systran/faster-whisper-base"),
        ModelSpec("small", "466 MB", "Systran/faster-whisper-small"),
        ModelSpec("medium", "1.5 GB", "Systran/faster-whisper-medium"),
        ModelSpec("large", "2.9 GB", "Systran/faster-whisper-large-v3", _LARGE_V3_FILES),
        ModelSpec(
            "turbo",
            "1.5 GB",
            "mobiuslabsgmbh/faster-whisper-large-v3-turbo",
            _LARGE_V3_FILES,
        ),
    )
}


class ModelManager:
    """Tracks which models are on disk, downloads and deletes them.

    Each model lives in its own directory named after the model. Downloads are
    staged in a hidden sibling directory and renamed into place only once every
    file arrived, so a presence check never sees a partial model.
    """

    def __init__(
        self,
        model_dir: Path | str | None = None,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 60.0,
        client_factory: Callable[[], httpx.AsyncClient] | None = None,
    ):
        """Initialize model manager.

        Args:
            model_dir: Directory holding model folders (default ~/.config/srt-editor/models)
            base_url: Remote host serving model repositories
            timeout: HTTP timeout in seconds
            client_factory: Builds the httpx.AsyncClient used for downloads
        """
        self.model_dir = Path(model_dir) if model_dir else DEFAULT_MODEL_DIR
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client_factory = client_factory or self._default_client

    def _default_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, follow_redirects=True)

    @staticmethod
    def spec(name: str) -> ModelSpec:
        """Look up a catalog entry.

        Raises:
            UnknownModelError: If the name is not in the catalog
        """
        try:
            return MODEL_CATALOG[name]
        except KeyError:
            raise UnknownModelError(
                f"Unknown model '{name}'. Must be one of: {', '.join(MODEL_CATALOG)}"
            ) from None

    def model_path(self, name: str) -> Path:
        """Deterministic on-disk location of a model."""
        self.spec(name)
        return self.model_dir / f"faster-whisper-{name}"

    def is_downloaded(self, name: str) -> bool:
        return (self.model_path(name) / WEIGHTS_FILE).is_file()

    def file_url(self, spec: ModelSpec, filename: str) -> str:
        return f"{self.base_url}/{spec.repo}/resolve/main/{filename}"

    def list_models(self) -> list[ModelInfo]:
        """Return the catalog annotated with on-disk presence."""
        models = []
        for name, spec in MODEL_CATALOG.items():
            downloaded = self.is_downloaded(name)
            models.append(
                ModelInfo(
                    name=name,
                    size=spec.size,
                    downloaded=downloaded,
                    path=str(self.model_path(name)) if downloaded else None,
                )
            )
        return models

    async def download(self, name: str, sink: ProgressSink | None = None) -> Path:
        """Download a model unless it is already present.

        Emits ``downloading`` percentages proportional to the weight file's
        declared Content-Length (none when the length is unknown), then a final
        ``completed`` event.

        Args:
            name: Catalog model name
            sink: Progress sink

        Returns:
            Path of the model directory

        Raises:
            UnknownModelError: If the name is not in the catalog
            DownloadError: On network failure or non-success HTTP status
        """
        spec = self.spec(name)
        target = self.model_path(name)
        sink = sink or NullProgressSink()

        if self.is_downloaded(name):
            logger.info("Model %s already downloaded at %s", name, target)
            return target

        sink.emit(
            ProgressEvent(0.0, f"Downloading {name} model...", ProgressStatus.DOWNLOADING)
        )

        staging: Path | None = None
        try:
            self.model_dir.mkdir(parents=True, exist_ok=True)
            # One staging directory per call; concurrent downloads never share one.
            staging = Path(
                tempfile.mkdtemp(
                    dir=self.model_dir, prefix=f".{target.name}.", suffix=".partial"
                )
            )

            async with self._client_factory() as client:
                for filename in spec.files:
                    await self._fetch_file(
                        client,
                        self.file_url(spec, filename),
                        staging / filename,
                        name,
                        sink if filename == WEIGHTS_FILE else None,
                    )

            if self.is_downloaded(name):
                logger.info("Model %s was installed by another download, keeping it", name)
                self._discard(staging)
            else:
                if target.exists():
                    shutil.rmtree(target)
                os.replace(staging, target)
        except DownloadError:
            self._discard(staging)
            raise
        except httpx.HTTPError as e:
            self._discard(staging)
            logger.error("Failed to download model %s: %s", name, e)
            raise DownloadError(f"Failed to download model {name}: {e}") from e
        except OSError as e:
            self._discard(staging)
            logger.error("Failed to write model %s: %s", name, e)
            raise DownloadError(f"Failed to write model file for {name}: {e}") from e

        sink.emit(
            ProgressEvent(
                100.0,
                f"Model {name} downloaded successfully",
                ProgressStatus.COMPLETED,
            )
        )
        logger.info("Model %s downloaded to %s", name, target)
        return target

    async def _fetch_file(
        self,
        client: httpx.AsyncClient,
        url: str,
        destination: Path,
        name: str,
        sink: ProgressSink | None,
    ) -> None:
        logger.debug("Fetching %s", url)
        async with client.stream("GET", url) as response:
            if not response.is_success:
                raise DownloadError(
                    f"Failed to download model {name}: HTTP {response.status_code} ({url})"
                )

            total = int(response.headers.get("Content-Length") or 0)
            received = 0
            last_tenth = -1
            with open(destination, "wb") as f:
                async for chunk in response.aiter_bytes():
                    f.write(chunk)
                    received += len(chunk)
                    if sink is None or total <= 0:
                        continue
                    percent = min(received / total * 100.0, 100.0)
                    tenth = int(percent * 10)
                    if tenth != last_tenth:
                        last_tenth = tenth
                        sink.emit(
                            ProgressEvent(
                                percent,
                                f"Downloading {name} model... {percent:.1f}%",
                                ProgressStatus.DOWNLOADING,
                            )
                        )

        logger.debug("Fetched %s (%d bytes)", destination.name, received)

    @staticmethod
    def _discard(staging: Path | None) -> None:
        if staging is not None and staging.exists():
            shutil.rmtree(staging, ignore_errors=True)

    def delete(self, name: str) -> None:
        """Remove a downloaded model.

        Raises:
            UnknownModelError: If the name is not in the catalog
            ModelNotFoundError: If the model is not on disk
        """
        target = self.model_path(name)
        if not self.is_downloaded(name):
            raise ModelNotFoundError(f"Model {name} is not downloaded")

        shutil.rmtree(target)
        logger.info("Deleted model %s from %s", name, target)

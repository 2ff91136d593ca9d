import logging
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%dT%H-%M-%S"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class FileArtifactStore:
    def __init__(
        self,
        output_dir: str | Path = ".",
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._output_dir = Path(output_dir)
        self._clock = clock

    @property
    def output_dir(self) -> Path:
        return self._output_dir

    def _artifact_path(self, prefix: str, suffix: str) -> Path:
        self._output_dir.mkdir(parents=True, exist_ok=True)
        timestamp = self._clock().strftime(TIMESTAMP_FORMAT)
        return self._output_dir / f"{prefix}_{timestamp}{suffix}"

    def save_notes(self, notes: str) -> Path:
        path = self._artifact_path("notes", ".md")
        path.write_text(notes, encoding="utf-8")
        return path

    def save_audio(self, wav_data: bytes) -> Path:
        path = self._artifact_path("recorded_audio", ".wav")
        path.write_bytes(wav_data)
        return path

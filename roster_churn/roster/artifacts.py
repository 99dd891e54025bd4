"""File-backed sink for diagnostic snapshots and result records."""
from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Dict, Iterable, Optional, Protocol


LOGGER = logging.getLogger(__name__)

_EXTENSIONS = {
    "image/png": ".png",
    "text/html": ".html",
    "application/json": ".json",
}


class ArtifactSink(Protocol):
    def save_snapshot(self, name: str, data: bytes, content_type: str = "image/png") -> Optional[Path]: ...

    def save_value(self, name: str, value: object) -> Optional[Path]: ...

    def push_records(self, records: Iterable[Dict[str, object]]) -> int: ...


def _safe_name(name: str) -> str:
    return re.sub(r"[^A-Za-z0-9_-]+", "-", name).strip("-") or "artifact"


class FileArtifactSink:
    """Writes snapshots and values under ``root``; failures are logged, never raised."""

    def __init__(self, root: Path) -> None:
        self._root = Path(root)
        self._snapshot_dir = self._root / "snapshots"
        self._dataset_path = self._root / "dataset.jsonl"

    @property
    def root(self) -> Path:
        return self._root

    def save_snapshot(self, name: str, data: bytes, content_type: str = "image/png") -> Optional[Path]:
        filename = self._snapshot_dir / f"{_safe_name(name)}{_EXTENSIONS.get(content_type, '.bin')}"
        try:
            self._snapshot_dir.mkdir(parents=True, exist_ok=True)
            filename.write_bytes(data)
        except OSError as exc:
            LOGGER.error("Failed to save snapshot %s: %s", name, exc)
            return None
        LOGGER.debug("Saved snapshot to %s", filename)
        return filename

    def save_value(self, name: str, value: object) -> Optional[Path]:
        filename = self._root / f"{_safe_name(name)}.json"
        try:
            self._root.mkdir(parents=True, exist_ok=True)
            filename.write_text(json.dumps(value, indent=2, default=str))
        except (OSError, TypeError, ValueError) as exc:
            LOGGER.error("Failed to save value %s: %s", name, exc)
            return None
        LOGGER.debug("Saved value to %s", filename)
        return filename

    def push_records(self, records: Iterable[Dict[str, object]]) -> int:
        written = 0
        try:
            self._root.mkdir(parents=True, exist_ok=True)
            with self._dataset_path.open("a", encoding="utf-8") as fh:
                for record in records:
                    fh.write(json.dumps(record, default=str) + "\n")
                    written += 1
        except (OSError, TypeError, ValueError) as exc:
            LOGGER.error("Failed to append records to %s: %s", self._dataset_path, exc)
        return written

"""Whole-file JSON snapshots of the memory collection."""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError

from .errors import SnapshotError
from .models import Memory, utc_now

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1


class Persistence(Protocol):
    """Loads and saves the complete collection in one go."""

    def load_all(self) -> list[Memory]: ...

    def save_all(self, memories: list[Memory]) -> None: ...


class JsonFileSnapshot:
    """Single-file JSON persistence.

    Design decisions:
    - Every save rewrites the whole file; there is no journal
    - Writes go to a temp file in the same directory, then replace the
      target, so a crash never leaves a half-written snapshot
    - Records keep creation order in the file
    """

    def __init__(self, path):
        self.path = Path(path)

    def load_all(self) -> list[Memory]:
        """Read every memory from the snapshot.

        Returns:
            Memories in stored order, empty if the file does not exist

        Raises:
            SnapshotError: If the file is unreadable or has an unknown version
        """
        if not self.path.exists():
            return []

        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise SnapshotError(f"Cannot read snapshot {self.path}: {e}") from e

        version = data.get("version") if isinstance(data, dict) else None
        if version != SNAPSHOT_VERSION:
            raise SnapshotError(
                f"Unsupported snapshot version in {self.path}: {version!r}"
            )

        try:
            memories = [Memory.model_validate(item) for item in data.get("memories", [])]
        except ValidationError as e:
            raise SnapshotError(f"Malformed memory in {self.path}: {e}") from e

        logger.info("Loaded %d memories from %s", len(memories), self.path)
        return memories

    def save_all(self, memories: list[Memory]) -> None:
        """Replace the snapshot with the given collection."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "version": SNAPSHOT_VERSION,
            "saved_at": utc_now().isoformat(),
            "memories": [memory.model_dump(mode="json") for memory in memories],
        }

        fd, tmp_name = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f)
            os.replace(tmp_name, self.path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

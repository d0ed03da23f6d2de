"""Periodic snapshot backups with rotation."""

import json
import logging
import shutil
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional, Protocol

from pydantic import BaseModel

logger = logging.getLogger(__name__)

BACKUP_PREFIX = "memory_backup_"


class BackupPolicy(Protocol):
    """What the store notifies after each save."""

    def should_backup(self, memory_count: int) -> bool: ...

    def create_backup(self, memories: list[dict]) -> "BackupResult": ...


class BackupResult(BaseModel):
    backup_path: str
    memories_backed_up: int
    timestamp: datetime


class BackupManager:
    """Copies the snapshot file into timestamped folders and keeps the newest few.

    A backup is due on the first save of the process, whenever the count
    reaches a multiple of ``backup_every``, or once ``backup_interval`` has
    passed since the last one.
    """

    def __init__(
        self,
        store_path,
        backup_dir=None,
        max_backups: int = 10,
        backup_interval: timedelta = timedelta(hours=24),
        backup_every: int = 100,
    ):
        self.store_path = Path(store_path)
        self.backup_dir = Path(backup_dir) if backup_dir else self.store_path.parent / "backups"
        self.max_backups = max_backups
        self.backup_interval = backup_interval
        self.backup_every = backup_every
        self.last_backup_time: Optional[datetime] = None

    def seconds_since_last_backup(self) -> Optional[float]:
        if self.last_backup_time is None:
            return None
        return (datetime.now(timezone.utc) - self.last_backup_time).total_seconds()

    def should_backup(self, memory_count: int) -> bool:
        if memory_count > 0 and self.backup_every > 0 and memory_count % self.backup_every == 0:
            return True

        elapsed = self.seconds_since_last_backup()
        if elapsed is None:
            return True
        return elapsed >= self.backup_interval.total_seconds()

    def create_backup(self, memories: list[dict]) -> BackupResult:
        """Write a backup folder with the snapshot file and a JSON export.

        Args:
            memories: Exported memories (``Memory.dict_for_export``)

        Returns:
            Where the backup went and how many memories it holds
        """
        timestamp = datetime.now(timezone.utc)
        backup_path = self.backup_dir / f"{BACKUP_PREFIX}{timestamp.strftime('%Y%m%d_%H%M%S')}"
        # Two backups within one second share a folder; the later one wins
        backup_path.mkdir(parents=True, exist_ok=True)

        if self.store_path.exists():
            shutil.copy2(self.store_path, backup_path / self.store_path.name)

        export_data = {
            "export_timestamp": timestamp.isoformat(),
            "total_memories": len(memories),
            "memories": memories,
        }
        with open(backup_path / "memories_export.json", "w", encoding="utf-8") as f:
            json.dump(export_data, f, indent=2)

        self.last_backup_time = timestamp
        self.prune_backups()

        logger.info("Backed up %d memories to %s", len(memories), backup_path)
        return BackupResult(
            backup_path=str(backup_path),
            memories_backed_up=len(memories),
            timestamp=timestamp,
        )

    def prune_backups(self) -> None:
        """Delete all but the newest ``max_backups`` backup folders."""
        if not self.backup_dir.exists():
            return

        # Folder names sort chronologically
        folders = sorted(
            (p for p in self.backup_dir.iterdir() if p.is_dir() and p.name.startswith(BACKUP_PREFIX)),
            key=lambda p: p.name,
            reverse=True,
        )
        for old in folders[self.max_backups:]:
            shutil.rmtree(old, ignore_errors=True)
            logger.debug("Pruned old backup %s", old)

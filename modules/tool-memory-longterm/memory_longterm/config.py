"""Configuration for the long-term memory store."""

import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator

DEFAULT_STORE_DIR = "~/.longterm-memory"


def _default_store_path() -> Path:
    return Path(os.getenv("MEMORY_DB_PATH") or f"{DEFAULT_STORE_DIR}/memories.json").expanduser()


class StorageConfig(BaseModel):
    """Settings for MemoryStorage.

    Config keys:
        - store_path: Snapshot file (default: $MEMORY_DB_PATH or
          ~/.longterm-memory/memories.json)
        - embedding_model: OpenAI model (default: text-embedding-3-small)
        - backup_enabled: Notify the backup manager after saves (default: True)
        - backup_dir: Backup folder (default: <store dir>/backups)
        - max_backups: Backups kept after pruning (default: 10)
        - backup_interval_hours: Time-based backup trigger (default: 24)
        - backup_every: Count-based backup trigger (default: 100)
        - search_limit / search_threshold: Search defaults (5 / 0.3)
    """

    store_path: Path = Field(default_factory=_default_store_path)
    embedding_model: str = "text-embedding-3-small"
    backup_enabled: bool = True
    backup_dir: Optional[Path] = None
    max_backups: int = Field(default=10, ge=1)
    backup_interval_hours: float = Field(default=24, gt=0)
    backup_every: int = Field(default=100, ge=0)
    search_limit: int = Field(default=5, ge=1)
    search_threshold: float = Field(default=0.3, ge=-1, le=1)

    @field_validator("store_path", "backup_dir")
    @classmethod
    def _expand_user(cls, path: Optional[Path]) -> Optional[Path]:
        return path.expanduser() if path is not None else None

    @property
    def resolved_backup_dir(self) -> Path:
        return self.backup_dir or self.store_path.parent / "backups"

    @classmethod
    def from_dict(cls, config: Optional[dict] = None) -> "StorageConfig":
        """Build from a plain config dict, ignoring keys this module does not use."""
        config = config or {}
        known = {k: v for k, v in config.items() if k in cls.model_fields}
        return cls(**known)

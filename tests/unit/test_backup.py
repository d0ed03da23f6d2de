"""Unit tests for backup snapshots and rotation."""

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from memory_longterm.backup import BACKUP_PREFIX, BackupManager


@pytest.fixture
def db_file(tmp_path):
    path = tmp_path / "memories.json"
    path.write_text('{"version": 1, "memories": []}')
    return path


@pytest.fixture
def manager(db_file, tmp_path):
    return BackupManager(db_file, backup_dir=tmp_path / "backups")


class TestCreateBackup:
    def test_creates_backup_directory(self, manager):
        result = manager.create_backup([])

        assert manager.backup_dir.exists()
        assert result.backup_path.startswith(str(manager.backup_dir))

    def test_copies_store_file(self, manager, db_file):
        result = manager.create_backup([])

        copied = Path(result.backup_path) / db_file.name
        assert copied.read_text() == db_file.read_text()

    def test_exports_memories_as_json(self, manager):
        memories = [{"id": "1", "content": "a"}, {"id": "2", "content": "b"}]

        result = manager.create_backup(memories)

        with open(f"{result.backup_path}/memories_export.json") as f:
            data = json.load(f)
        assert data["total_memories"] == 2
        assert data["memories"] == memories
        assert "export_timestamp" in data

    def test_returns_metadata(self, manager):
        result = manager.create_backup([{"id": "1"}])

        assert result.memories_backed_up == 1
        assert result.timestamp.tzinfo is not None

    def test_default_backup_dir_next_to_store(self, db_file):
        assert BackupManager(db_file).backup_dir == db_file.parent / "backups"


class TestPruneBackups:
    def test_keeps_newest_ten(self, manager):
        manager.backup_dir.mkdir(parents=True)
        for day in range(1, 16):
            (manager.backup_dir / f"{BACKUP_PREFIX}202501{day:02d}_120000").mkdir()

        manager.prune_backups()

        remaining = sorted(p.name for p in manager.backup_dir.iterdir())
        assert len(remaining) == 10
        assert remaining[0] == f"{BACKUP_PREFIX}20250106_120000"
        assert remaining[-1] == f"{BACKUP_PREFIX}20250115_120000"

    def test_ignores_unrelated_folders(self, manager):
        manager.backup_dir.mkdir(parents=True)
        (manager.backup_dir / "keep-me").mkdir()
        manager.max_backups = 0

        manager.prune_backups()

        assert (manager.backup_dir / "keep-me").exists()

    def test_missing_dir_is_fine(self, manager):
        manager.prune_backups()


class TestShouldBackup:
    def test_true_before_first_backup(self, manager):
        assert manager.should_backup(1) is True
        assert manager.seconds_since_last_backup() is None

    def test_false_right_after_backup(self, manager):
        manager.create_backup([])

        assert manager.should_backup(1) is False
        assert manager.seconds_since_last_backup() >= 0

    def test_true_on_multiple_of_hundred(self, manager):
        manager.create_backup([])

        assert manager.should_backup(100) is True
        assert manager.should_backup(200) is True
        assert manager.should_backup(150) is False

    def test_true_after_interval(self, manager):
        manager.last_backup_time = datetime.now(timezone.utc) - timedelta(hours=25)

        assert manager.should_backup(1) is True

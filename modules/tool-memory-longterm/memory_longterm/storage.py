"""In-process memory store with lazy decay and exact vector search."""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Iterable, Optional

from .backup import BackupManager, BackupPolicy
from .config import StorageConfig
from .decay import DecayEngine
from .embeddings import Embedder, EmbeddingGenerator
from .errors import DuplicateContentError, SnapshotError
from .models import (
    Memory,
    MemoryCategory,
    MemoryUpdate,
    SearchResult,
    compute_content_hash,
    utc_now,
)
from .persistence import JsonFileSnapshot, Persistence
from .similarity import cosine_similarity

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400


class MemoryStorage:
    """Long-term memory storage with deduplication and lazy importance upkeep.

    Design decisions:
    - All memories live in memory, keyed by id; every mutation rewrites
      the snapshot file through the persistence adapter
    - Content is unique store-wide (SHA-256 of the text)
    - Search is an exact full scan with cosine similarity
    - get() and search() are writes too: each returned memory is decayed,
      reinforced and touched before it leaves the store
    - get_all() and the find_by_* filters are plain reads
    - Single writer: save/update hold one asyncio.Lock across the embedder
      call; the sync methods never yield, so they run atomically
    """

    def __init__(
        self,
        config=None,
        embedder: Optional[Embedder] = None,
        persistence: Optional[Persistence] = None,
        backup: Optional[BackupPolicy] = None,
        decay: Optional[DecayEngine] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize storage and load the existing snapshot.

        Args:
            config: StorageConfig or plain dict (see StorageConfig for keys)
            embedder: Text-to-vector backend (default: EmbeddingGenerator)
            persistence: Snapshot adapter (default: JsonFileSnapshot at store_path)
            backup: Backup policy notified after saves (default: BackupManager
                when backup_enabled)
            decay: Decay/reinforcement policy (default: DecayEngine())
            clock: Returns the current UTC time (default: datetime.now(timezone.utc))

        Raises:
            SnapshotError: If the snapshot cannot be loaded
        """
        if isinstance(config, StorageConfig):
            self.config = config
        else:
            self.config = StorageConfig.from_dict(config)

        self.embeddings = embedder or EmbeddingGenerator(model=self.config.embedding_model)
        self.persistence = persistence or JsonFileSnapshot(self.config.store_path)
        if backup is None and self.config.backup_enabled:
            backup = BackupManager(
                self.config.store_path,
                backup_dir=self.config.resolved_backup_dir,
                max_backups=self.config.max_backups,
                backup_interval=timedelta(hours=self.config.backup_interval_hours),
                backup_every=self.config.backup_every,
            )
        self.backup = backup
        self.decay = decay or DecayEngine()
        self._clock = clock or utc_now
        self._lock = asyncio.Lock()

        self._memories: dict[str, Memory] = {}
        self._by_hash: dict[str, str] = {}
        for memory in self.persistence.load_all():
            if memory.content_hash in self._by_hash:
                raise SnapshotError(
                    f"Snapshot holds duplicate content: {self._by_hash[memory.content_hash]} "
                    f"and {memory.id}"
                )
            self._memories[memory.id] = memory
            self._by_hash[memory.content_hash] = memory.id

    # ─── Writes ─────────────────────────────────────────────────────────────

    async def save(
        self,
        content: str,
        metadata: Optional[dict[str, Any]] = None,
        tags: Optional[list[str]] = None,
        importance: float = 5.0,
        category=MemoryCategory.GENERAL,
    ) -> Memory:
        """Store a new memory with its embedding.

        Args:
            content: Memory text
            metadata: Free-form key/value data
            tags: Optional labels; "core", "identity" and "pinned" disable decay
            importance: 1-10, clamped
            category: MemoryCategory or its string value

        Returns:
            The stored memory

        Raises:
            DuplicateContentError: If identical content is already stored;
                the embedder is not called in that case
            Exception: Whatever the embedder raises; nothing is stored
        """
        category = MemoryCategory(category)
        importance = self.decay.clamp_importance(importance)
        content_hash = compute_content_hash(content)

        async with self._lock:
            existing_id = self._by_hash.get(content_hash)
            if existing_id is not None:
                raise DuplicateContentError(existing_id)

            embedding = await self.embeddings.generate(content)

            now = self._now()
            memory = Memory(
                content=content,
                content_hash=content_hash,
                metadata=dict(metadata or {}),
                embedding=list(embedding),
                tags=list(tags or []),
                importance=importance,
                category=category,
                created_at=now,
                updated_at=now,
                last_accessed_at=now,
            )

            self._memories[memory.id] = memory
            self._by_hash[content_hash] = memory.id
            try:
                self._persist()
            except BaseException:
                del self._memories[memory.id]
                del self._by_hash[content_hash]
                raise

            logger.info("Saved memory %s (%s, importance %.1f)", memory.id, category.value, importance)
            self._notify_backup()
            return memory.model_copy(deep=True)

    async def update(
        self,
        memory_id: str,
        changes: Optional[MemoryUpdate] = None,
        **fields: Any,
    ) -> Optional[Memory]:
        """Apply a partial update.

        Pass either a MemoryUpdate or the fields as keywords
        (content, metadata, tags, importance, category). Fields not given
        keep their values. Updating counts as an access.

        Returns:
            The updated memory, or None if memory_id does not exist

        Raises:
            DuplicateContentError: If new content matches another memory
        """
        if changes is None:
            changes = MemoryUpdate(**fields)
        elif fields:
            raise TypeError("Pass either a MemoryUpdate or keyword fields, not both")

        async with self._lock:
            current = self._memories.get(memory_id)
            if current is None:
                return None

            new_hash = None
            embedding = None
            if changes.is_set("content") and changes.content != current.content:
                new_hash = compute_content_hash(changes.content)
                owner = self._by_hash.get(new_hash)
                if owner is not None and owner != memory_id:
                    raise DuplicateContentError(owner)

                embedding = await self.embeddings.generate(changes.content)

                # A sync delete may have run while the embedder was busy
                current = self._memories.get(memory_id)
                if current is None:
                    return None

            updated = current.model_copy(deep=True)
            if new_hash is not None:
                updated.content = changes.content
                updated.content_hash = new_hash
                updated.embedding = list(embedding)
            if changes.is_set("metadata"):
                updated.metadata = dict(changes.metadata)
            if changes.is_set("tags"):
                updated.tags = list(changes.tags)
            if changes.is_set("importance"):
                updated.importance = self.decay.clamp_importance(changes.importance)
            if changes.is_set("category"):
                updated.category = changes.category

            now = self._now()
            updated.updated_at = max(now, updated.created_at)
            updated.last_accessed_at = max(now, updated.created_at)

            self._commit(current, updated)
            logger.info("Updated memory %s (%s)", memory_id, ", ".join(sorted(changes.model_fields_set)))
            return updated.model_copy(deep=True)

    def delete(self, memory_id: str) -> bool:
        """Delete a memory. Returns False if it did not exist."""
        if memory_id not in self._memories:
            return False

        previous = (dict(self._memories), dict(self._by_hash))
        memory = self._memories.pop(memory_id)
        self._by_hash.pop(memory.content_hash, None)
        self._persist_or_restore(*previous)
        logger.info("Deleted memory %s", memory_id)
        return True

    def delete_all(self) -> int:
        """Delete every memory. Returns how many there were."""
        count = len(self._memories)
        previous = (dict(self._memories), dict(self._by_hash))
        self._memories.clear()
        self._by_hash.clear()
        self._persist_or_restore(*previous)
        logger.info("Deleted all %d memories", count)
        return count

    # ─── Reads that count as access ─────────────────────────────────────────

    async def get(self, memory_id: str) -> Optional[Memory]:
        """Get memory by ID, applying decay and reinforcement.

        Args:
            memory_id: Memory identifier

        Returns:
            Memory if found, None otherwise (a miss changes nothing)
        """
        memory = self._memories.get(memory_id)
        if memory is None:
            return None

        previous = dict(self._memories)
        previous[memory_id] = memory.model_copy(deep=True)
        self._maintain(memory, self._now())
        self._persist_or_restore(previous, self._by_hash)
        return memory.model_copy(deep=True)

    async def search(
        self,
        query: str,
        limit: Optional[int] = None,
        threshold: Optional[float] = None,
    ) -> list[SearchResult]:
        """Rank memories by cosine similarity to the query.

        Every memory scoring at or above the threshold counts as accessed
        and gets the same upkeep as get().

        Args:
            query: Natural language query
            limit: Max results (default: config search_limit)
            threshold: Minimum similarity (default: config search_threshold)

        Returns:
            Results by descending score; equal scores keep insertion order

        Raises:
            DimensionMismatchError: If the query vector and any stored
                vector differ in length; nothing is touched in that case
        """
        limit = self.config.search_limit if limit is None else limit
        threshold = self.config.search_threshold if threshold is None else threshold

        query_embedding = await self.embeddings.generate(query)

        scored = []
        for memory in self._memories.values():
            score = cosine_similarity(query_embedding, memory.embedding)
            if score >= threshold:
                scored.append((memory, score))

        if not scored:
            return []

        previous = dict(self._memories)
        for memory, _ in scored:
            previous[memory.id] = memory.model_copy(deep=True)

        now = self._now()
        for memory, _ in scored:
            self._maintain(memory, now)
        self._persist_or_restore(previous, self._by_hash)

        scored.sort(key=lambda item: item[1], reverse=True)
        return [
            SearchResult(memory=memory.model_copy(deep=True), score=score)
            for memory, score in scored[:limit]
        ]

    # ─── Plain reads ────────────────────────────────────────────────────────

    def get_all(self, limit: int = 100, offset: int = 0) -> list[Memory]:
        """Memories newest first. Not an access: no decay, no touch."""
        ordered = self._newest_first(self._memories.values(), key=lambda m: m.created_at)
        return [m.model_copy(deep=True) for m in ordered[offset:offset + limit]]

    def find_by_category(self, category, limit: Optional[int] = None) -> list[Memory]:
        """Memories of one category, most important first, then newest."""
        category = MemoryCategory(category)
        matches = [m for m in self._memories.values() if m.category == category]
        return self._by_importance(matches, limit)

    def find_by_any_tag(self, tags: Iterable[str], limit: Optional[int] = None) -> list[Memory]:
        """Memories carrying at least one of the tags, most important first."""
        wanted = set(tags)
        matches = [m for m in self._memories.values() if wanted.intersection(m.tags)]
        return self._by_importance(matches, limit)

    def find_by_created_between(
        self, start: datetime, end: datetime, limit: Optional[int] = None
    ) -> list[Memory]:
        """Memories created within [start, end] (timezone-aware), newest first."""
        matches = [m for m in self._memories.values() if start <= m.created_at <= end]
        ordered = self._newest_first(matches, key=lambda m: m.created_at)
        return [m.model_copy(deep=True) for m in ordered[:limit]]

    def count(self) -> int:
        return len(self._memories)

    def export(self, include_embedding: bool = True) -> list[dict]:
        """All memories as export dicts, in creation order."""
        return [m.dict_for_export(include_embedding) for m in self._memories.values()]

    def close(self) -> None:
        """Flush the snapshot one last time."""
        self._persist()

    # ─── Internals ──────────────────────────────────────────────────────────

    def _now(self) -> datetime:
        return self._clock()

    def _persist(self) -> None:
        self.persistence.save_all(list(self._memories.values()))

    def _persist_or_restore(self, memories: dict, by_hash: dict) -> None:
        """Persist, or put the given indexes back if the write fails."""
        try:
            self._persist()
        except BaseException:
            self._memories = memories
            self._by_hash = by_hash
            raise

    def _commit(self, old: Memory, new: Memory) -> None:
        self._memories[new.id] = new
        if old.content_hash != new.content_hash:
            del self._by_hash[old.content_hash]
            self._by_hash[new.content_hash] = new.id
        try:
            self._persist()
        except BaseException:
            self._memories[old.id] = old
            if old.content_hash != new.content_hash:
                del self._by_hash[new.content_hash]
                self._by_hash[old.content_hash] = old.id
            raise

    def _maintain(self, memory: Memory, now: datetime) -> None:
        """Decay, then reinforce, then touch one memory in place."""
        if not self.decay.should_protect(memory.tags):
            days_idle = (now - memory.last_accessed_at).total_seconds() / SECONDS_PER_DAY
            decayed = self.decay.compute_decay(memory.importance, days_idle, memory.category)
            if self.decay.should_write_decay(memory.importance, decayed):
                logger.debug(
                    "Decayed memory %s from %.1f to %.1f after %.1f idle days",
                    memory.id, memory.importance, decayed, days_idle,
                )
                memory.importance = decayed
                memory.updated_at = now

            result = self.decay.compute_reinforcement(memory.importance, memory.reinforcement_accum)
            memory.reinforcement_accum = result.new_accum
            if result.should_write and result.new_importance != memory.importance:
                logger.debug(
                    "Reinforced memory %s from %.1f to %.1f",
                    memory.id, memory.importance, result.new_importance,
                )
                memory.importance = result.new_importance
                memory.updated_at = now

        memory.last_accessed_at = max(now, memory.last_accessed_at)

    def _notify_backup(self) -> None:
        if self.backup is None:
            return
        count = len(self._memories)
        if not self.backup.should_backup(count):
            return
        try:
            self.backup.create_backup(self.export())
        except Exception as e:
            logger.warning("Backup failed, continuing without it: %s", e)

    @staticmethod
    def _newest_first(memories: Iterable[Memory], key) -> list[Memory]:
        # reverse=True keeps input order for ties, so feed newest inserts first
        return sorted(reversed(list(memories)), key=key, reverse=True)

    def _by_importance(self, memories: list[Memory], limit: Optional[int]) -> list[Memory]:
        ordered = self._newest_first(memories, key=lambda m: (m.importance, m.created_at))
        return [m.model_copy(deep=True) for m in ordered[:limit]]

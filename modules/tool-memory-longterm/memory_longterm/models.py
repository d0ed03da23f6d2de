"""Data models for long-term memory."""

import hashlib
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def compute_content_hash(content: str) -> str:
    """SHA-256 hex digest of content, used as the deduplication key."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def _dedupe_tags(tags: list[str]) -> list[str]:
    seen = set()
    result = []
    for tag in tags:
        if tag not in seen:
            seen.add(tag)
            result.append(tag)
    return result


class MemoryCategory(str, Enum):
    """Category of a memory; governs its decay rate and floor."""

    GENERAL = "general"
    FACT = "fact"
    PREFERENCE = "preference"
    CONVERSATION = "conversation"
    TASK = "task"
    EPHEMERAL = "ephemeral"


class Memory(BaseModel):
    """A stored memory record.

    Design decisions:
    - id: Auto-generated UUID4, never reused
    - content_hash: SHA-256 of content, unique across the store
    - importance: 1-10, lowered by decay and raised by reinforcement
    - reinforcement_accum: Pending reinforcement not yet committed to
      importance; persisted but never exported
    - last_accessed_at: Moves on every get/search hit
    """

    id: str = Field(default_factory=lambda: str(uuid4()))
    content: str
    content_hash: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)
    embedding: list[float]
    tags: list[str] = Field(default_factory=list)
    importance: float = 5.0
    category: MemoryCategory = MemoryCategory.GENERAL
    reinforcement_accum: float = 0.0
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    last_accessed_at: datetime = Field(default_factory=utc_now)

    @field_validator("tags")
    @classmethod
    def _unique_tags(cls, tags: list[str]) -> list[str]:
        return _dedupe_tags(tags)

    def model_post_init(self, __context: Any) -> None:
        if not self.content_hash:
            self.content_hash = compute_content_hash(self.content)

    def dict_for_export(self, include_embedding: bool = True) -> dict:
        """Return the JSON view shared with callers and backups.

        The reinforcement accumulator is internal bookkeeping and is
        left out. Values are JSON-ready and share no containers with
        the memory.
        """
        exclude = {"reinforcement_accum"}
        if not include_embedding:
            exclude.add("embedding")
        return self.model_dump(mode="json", exclude=exclude)


class SearchResult(BaseModel):
    """A memory matched by search, with its cosine similarity."""

    memory: Memory
    score: float


class MemoryUpdate(BaseModel):
    """Partial update of a memory.

    Only fields passed explicitly are applied; everything else keeps its
    stored value. Presence is tracked through ``model_fields_set``, so
    there is no ``None``-means-unchanged convention.
    """

    content: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None
    tags: Optional[list[str]] = None
    importance: Optional[float] = None
    category: Optional[MemoryCategory] = None

    @field_validator("content", "metadata", "tags", "importance", "category")
    @classmethod
    def _not_null(cls, value):
        if value is None:
            raise ValueError("field may be omitted but not set to null")
        return value

    @field_validator("tags")
    @classmethod
    def _unique_tags(cls, tags: list[str]) -> list[str]:
        return _dedupe_tags(tags)

    def is_set(self, name: str) -> bool:
        return name in self.model_fields_set

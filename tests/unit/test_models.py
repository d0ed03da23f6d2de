"""Unit tests for Memory data models."""

from datetime import datetime

import pytest
from pydantic import ValidationError

from memory_longterm.models import (
    Memory,
    MemoryCategory,
    MemoryUpdate,
    compute_content_hash,
)


class TestMemoryModel:
    """Unit tests for Memory data model."""

    def test_memory_creation_with_defaults(self):
        """Memory can be created with minimal fields."""
        import uuid

        memory = Memory(content="Test memory content", embedding=[0.1, 0.2, 0.3])

        assert memory.content == "Test memory content"
        assert memory.embedding == [0.1, 0.2, 0.3]
        uuid.UUID(memory.id)  # Raises ValueError if invalid
        assert isinstance(memory.created_at, datetime)
        assert memory.created_at.tzinfo is not None
        assert memory.tags == []
        assert memory.importance == 5.0
        assert memory.category == MemoryCategory.GENERAL
        assert memory.reinforcement_accum == 0.0

    def test_content_hash_filled_from_content(self):
        """content_hash is derived when not given."""
        memory = Memory(content="hello", embedding=[0.1])

        assert memory.content_hash == compute_content_hash("hello")
        assert len(memory.content_hash) == 64

    def test_content_hash_is_deterministic(self):
        assert compute_content_hash("same text") == compute_content_hash("same text")
        assert compute_content_hash("same text") != compute_content_hash("same text.")

    def test_memory_with_tags(self):
        """Memory keeps tag order and drops repeats."""
        memory = Memory(
            content="PostgreSQL decision",
            embedding=[0.1],
            tags=["database", "decisions", "database"],
        )

        assert memory.tags == ["database", "decisions"]

    def test_category_accepts_string(self):
        memory = Memory(content="x", embedding=[0.1], category="fact")
        assert memory.category is MemoryCategory.FACT

    def test_unknown_category_rejected(self):
        with pytest.raises(ValidationError):
            Memory(content="x", embedding=[0.1], category="gossip")

    def test_memory_id_uniqueness(self):
        """Each memory gets unique ID."""
        m1 = Memory(content="A", embedding=[0.1])
        m2 = Memory(content="B", embedding=[0.2])

        assert m1.id != m2.id

    def test_dict_for_export(self):
        """dict_for_export uses the shared field names and hides the accumulator."""
        memory = Memory(
            content="Test",
            embedding=[0.1, 0.2],
            tags=["tag1"],
            metadata={"topic": "auth"},
            reinforcement_accum=0.3,
        )

        data = memory.dict_for_export()

        assert set(data) == {
            "id",
            "content",
            "content_hash",
            "metadata",
            "embedding",
            "tags",
            "importance",
            "category",
            "created_at",
            "updated_at",
            "last_accessed_at",
        }
        assert data["category"] == "general"
        assert isinstance(data["created_at"], str)  # ISO format
        assert "reinforcement_accum" not in data

    def test_dict_for_export_without_embedding(self):
        memory = Memory(content="Test", embedding=[0.1, 0.2])
        assert "embedding" not in memory.dict_for_export(include_embedding=False)

    def test_memory_serialization(self):
        """Memory can serialize to/from JSON-ready dict."""
        original = Memory(
            content="Test content",
            embedding=[0.1, 0.2],
            tags=["tag1"],
            importance=7.5,
            category=MemoryCategory.TASK,
            reinforcement_accum=0.2,
        )

        data = original.model_dump(mode="json")
        restored = Memory.model_validate(data)

        assert restored.model_dump() == original.model_dump()


class TestMemoryUpdate:
    """Partial updates track which fields were given."""

    def test_empty_update_sets_nothing(self):
        update = MemoryUpdate()

        assert update.model_fields_set == set()
        assert not update.is_set("content")

    def test_only_given_fields_are_set(self):
        update = MemoryUpdate(tags=["a"], importance=3)

        assert update.is_set("tags")
        assert update.is_set("importance")
        assert not update.is_set("metadata")
        assert not update.is_set("category")

    def test_explicit_null_rejected(self):
        """Omitting a field keeps it; null is not a way to say 'keep'."""
        with pytest.raises(ValidationError):
            MemoryUpdate(content=None)

    def test_empty_values_are_real_values(self):
        """An empty tag list clears tags rather than meaning 'unchanged'."""
        update = MemoryUpdate(tags=[], metadata={})

        assert update.is_set("tags")
        assert update.tags == []
        assert update.is_set("metadata")

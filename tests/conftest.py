"""Shared fixtures: deterministic embedder and a controllable clock."""

import asyncio
import hashlib
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

DIMENSIONS = 8

# Hand-placed vectors so search tests can reason about scores
KNOWN_VECTORS = {
    "apples": [1.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0],
    "red apples": [0.9, 0.1, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0],
    "fruit salad": [0.6, 0.8, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0],
    "car engines": [0.0, 0.0, 1.0, 0.0, 0.0, 0.0, 0.0, 0.0],
}


def fake_embedding(text: str) -> list[float]:
    """Same text, same vector; different text, (almost surely) different vector."""
    if text in KNOWN_VECTORS:
        return list(KNOWN_VECTORS[text])
    digest = hashlib.sha256(text.encode("utf-8")).digest()
    return [b / 255.0 - 0.5 for b in digest[:DIMENSIONS]]


class FakeClock:
    def __init__(self, start=None):
        self.now = start or datetime(2025, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, days: float = 0, **kwargs) -> None:
        self.now += timedelta(days=days, **kwargs)


@pytest.fixture
def mock_embedder():
    """Mock embedder that returns deterministic embeddings."""
    embedder = AsyncMock()
    embedder.generate.side_effect = fake_embedding
    embedder.dimensions = DIMENSIONS
    return embedder


class SlowEmbedder:
    """Yields to the event loop while embedding, like a network call."""

    def __init__(self):
        self.calls = []

    async def generate(self, content: str) -> list[float]:
        self.calls.append(content)
        await asyncio.sleep(0.01)
        return fake_embedding(content)


@pytest.fixture
def slow_embedder():
    return SlowEmbedder()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store_path(tmp_path):
    return tmp_path / "memories.json"

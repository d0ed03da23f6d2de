"""Amplifier long-term memory with lazy decay and reinforcement."""

__version__ = "1.0.0"

from .backup import BackupManager, BackupResult
from .config import StorageConfig
from .decay import DecayConfig, DecayEngine, ReinforcementResult
from .embeddings import Embedder, EmbeddingGenerator
from .errors import (
    DimensionMismatchError,
    DuplicateContentError,
    MemoryStoreError,
    SnapshotError,
)
from .models import Memory, MemoryCategory, MemoryUpdate, SearchResult, compute_content_hash
from .persistence import JsonFileSnapshot
from .similarity import cosine_similarity
from .storage import MemoryStorage

__all__ = [
    "BackupManager",
    "BackupResult",
    "DecayConfig",
    "DecayEngine",
    "DimensionMismatchError",
    "DuplicateContentError",
    "Embedder",
    "EmbeddingGenerator",
    "JsonFileSnapshot",
    "Memory",
    "MemoryCategory",
    "MemoryStorage",
    "MemoryStoreError",
    "MemoryUpdate",
    "ReinforcementResult",
    "SearchResult",
    "SnapshotError",
    "StorageConfig",
    "compute_content_hash",
    "cosine_similarity",
]

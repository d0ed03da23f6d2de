"""Exceptions raised by the long-term memory store."""


class MemoryStoreError(Exception):
    """Base class for long-term memory errors."""


class DuplicateContentError(MemoryStoreError):
    """Content already stored under another memory.

    Callers can redirect to an update of ``existing_id`` instead.
    """

    def __init__(self, existing_id: str):
        self.existing_id = existing_id
        super().__init__(f"Duplicate content: already stored as memory {existing_id}")


class DimensionMismatchError(MemoryStoreError):
    """Two vectors of different length were compared."""

    def __init__(self, left: int, right: int):
        self.left = left
        self.right = right
        super().__init__(f"Vector dimension mismatch: {left} vs {right}")


class SnapshotError(MemoryStoreError):
    """The snapshot file could not be read back."""

"""Vector similarity for ranking memories."""

import math
from typing import Sequence

from .errors import DimensionMismatchError


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Compute cosine similarity between two vectors.

    Returns a value between -1 and 1, where 1 means identical direction.
    A zero vector has no direction, so its similarity to anything is 0.

    Raises:
        DimensionMismatchError: If the vectors differ in length
    """
    if len(a) != len(b):
        raise DimensionMismatchError(len(a), len(b))

    dot = 0.0
    norm_a = 0.0
    norm_b = 0.0
    for x, y in zip(a, b):
        dot += x * y
        norm_a += x * x
        norm_b += y * y

    denominator = math.sqrt(norm_a) * math.sqrt(norm_b)
    if denominator == 0:
        return 0.0

    # Clamp float noise so identical vectors never report 1.0000000000000002
    return max(-1.0, min(1.0, dot / denominator))

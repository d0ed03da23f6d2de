"""Lazy importance decay and access reinforcement.

Nothing here runs in the background. The store calls into the engine
whenever a memory is read, and the engine decides how far its importance
has drifted since the previous read.
"""

import math
from typing import Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field

from .models import MemoryCategory


class DecayConfig(BaseModel):
    """Static decay policy.

    Half-lives are in days. Floors bound how low decay may push a
    category; they do not apply to explicit writes.
    """

    model_config = ConfigDict(frozen=True)

    half_life_days: dict[MemoryCategory, float] = Field(
        default_factory=lambda: {
            MemoryCategory.GENERAL: 60,
            MemoryCategory.CONVERSATION: 45,
            MemoryCategory.FACT: 120,
            MemoryCategory.PREFERENCE: 90,
            MemoryCategory.TASK: 30,
            MemoryCategory.EPHEMERAL: 10,
        }
    )
    floors: dict[MemoryCategory, float] = Field(
        default_factory=lambda: {
            MemoryCategory.GENERAL: 1,
            MemoryCategory.CONVERSATION: 2,
            MemoryCategory.FACT: 3,
            MemoryCategory.PREFERENCE: 2,
            MemoryCategory.TASK: 1,
            MemoryCategory.EPHEMERAL: 1,
        }
    )
    protected_tags: frozenset[str] = frozenset({"core", "identity", "pinned"})
    writeback_step: float = 0.5
    reinforcement_step: float = 0.1
    reinforcement_writeback_step: float = 0.5
    min_importance: float = 1.0
    max_importance: float = 10.0
    default_category: MemoryCategory = MemoryCategory.GENERAL


class ReinforcementResult(BaseModel):
    """Outcome of one access: the new accumulator and, maybe, a new importance."""

    new_accum: float
    should_write: bool
    new_importance: Optional[float] = None


def round_to_half(value: float) -> float:
    """Round to the nearest 0.5, halves going up."""
    return math.floor(value * 2 + 0.5) / 2


class DecayEngine:
    """Pure decay/reinforcement policy over a DecayConfig."""

    def __init__(self, config: Optional[DecayConfig] = None):
        self.config = config or DecayConfig()

    def half_life(self, category) -> float:
        halves = self.config.half_life_days
        return halves.get(category, halves[self.config.default_category])

    def floor(self, category) -> float:
        floors = self.config.floors
        return floors.get(category, floors[self.config.default_category])

    def clamp_importance(self, importance: float) -> float:
        return max(self.config.min_importance, min(self.config.max_importance, importance))

    def compute_decay(self, importance: float, days_idle: float, category) -> float:
        """Importance after ``days_idle`` days without access.

        Never amplifies: zero or negative idle time returns the input.
        """
        half_life = self.half_life(category)
        if days_idle <= 0 or half_life <= 0:
            return importance

        factor = math.pow(0.5, days_idle / half_life)
        decayed = round_to_half(importance * factor)
        return max(self.floor(category), decayed)

    def should_protect(self, tags: Iterable[str]) -> bool:
        return any(tag in self.config.protected_tags for tag in tags)

    def should_write_decay(self, old_importance: float, new_importance: float) -> bool:
        return old_importance - new_importance >= self.config.writeback_step

    def compute_reinforcement(self, importance: float, current_accum: float) -> ReinforcementResult:
        """Credit one access.

        Steps accumulate until they reach the write-back threshold, then
        the whole accumulated amount is committed at once.
        """
        accum = current_accum + self.config.reinforcement_step

        # Tolerate float drift: five 0.1 steps must reach a 0.5 threshold
        if accum >= self.config.reinforcement_writeback_step - 1e-9:
            new_importance = min(
                self.config.max_importance,
                round_to_half(importance + accum),
            )
            return ReinforcementResult(new_accum=0.0, should_write=True, new_importance=new_importance)

        return ReinforcementResult(new_accum=accum, should_write=False)

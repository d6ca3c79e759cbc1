from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from .models import Models
from .schemas import ContextMessage, StoryPart


class RolloverPolicy(Protocol):
    def should_rollover(self, part: StoryPart, model: Models) -> bool:
        ...


class Summarizer(Protocol):
    """Condenses a full story part into the opening message of the next one."""

    async def summarize(self, part: StoryPart) -> ContextMessage:
        ...


class NeverRollover:
    def should_rollover(self, part: StoryPart, model: Models) -> bool:
        return False


@dataclass(frozen=True)
class TokenThresholdRollover:
    """Roll over once a part holds ``ratio`` of the model's context window."""

    ratio: float = 0.8

    def __post_init__(self) -> None:
        if not 0 < self.ratio <= 1:
            raise ValueError(f"ratio must be in (0, 1], got {self.ratio}")

    def threshold(self, model: Models) -> int:
        return int(model.max_context_tokens() * self.ratio)

    def should_rollover(self, part: StoryPart, model: Models) -> bool:
        return part.context_tokens >= self.threshold(model)


__all__ = ["RolloverPolicy", "Summarizer", "NeverRollover", "TokenThresholdRollover"]

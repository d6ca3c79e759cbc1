from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Callable, List, Optional

from pydantic import BaseModel, Field

from .tokens import count_tokens


AccountId = int


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class ContextMessage(BaseModel):
    """One turn of a story part.

    ``role`` stays a plain string: stored parts may carry values that are only
    rejected when rendered for the model.
    """

    model_config = {"frozen": True}

    role: str
    account_id: Optional[str] = None
    username: Optional[str] = None
    content: str
    timestamp: str = Field(default_factory=now_iso)


class StoryPart(BaseModel):
    """
    A single contiguous segment of a story.

    ``players`` is copied into the next part when a story rolls over so that
    membership stays consistent across parts. ``context_tokens`` is the total
    number of tokens across ``context_messages``.
    """

    players: List[AccountId] = Field(default_factory=list)
    context_tokens: int = 0
    context_messages: List[ContextMessage] = Field(default_factory=list)

    # -------------------------
    # Messages
    # -------------------------

    def append(
        self,
        message: ContextMessage,
        counter: Callable[[str], int] = count_tokens,
    ) -> None:
        """Append ``message`` and recompute ``context_tokens`` from every message."""
        self.context_messages.append(message)
        self.recount(counter)

    def recount(self, counter: Callable[[str], int] = count_tokens) -> int:
        self.context_tokens = sum(counter(m.content) for m in self.context_messages)
        return self.context_tokens

    # -------------------------
    # Roster
    # -------------------------

    def add_player(self, account_id: AccountId) -> bool:
        if account_id in self.players:
            return False
        self.players.append(account_id)
        return True

    def remove_player(self, account_id: AccountId) -> bool:
        if account_id not in self.players:
            return False
        self.players.remove(account_id)
        return True

    def successor(self, opening: ContextMessage, counter: Callable[[str], int] = count_tokens) -> "StoryPart":
        """Start the next part of the story: same roster, ``opening`` as its only message."""
        part = StoryPart(players=list(self.players))
        part.append(opening, counter)
        return part


__all__ = ["AccountId", "Role", "ContextMessage", "StoryPart", "now_iso"]

from __future__ import annotations

import logging
from typing import Callable

from .errors import StorageFailure
from .schemas import ContextMessage, StoryPart
from .storage import StorageHandler
from .tokens import count_tokens
from .weaving import WeavingLike


logger = logging.getLogger(__name__)


class StoryState:
    """Reads and writes the current story part of a weaving through a storage handler."""

    def __init__(self, storage: StorageHandler, *, counter: Callable[[str], int] = count_tokens) -> None:
        self.storage = storage
        self.counter = counter

    async def current(self, weaving_id: WeavingLike) -> StoryPart:
        """Latest story part, or an empty one for a weaving that has none yet."""
        try:
            part = await self.storage.get_last_story_part(weaving_id)
        except Exception as exc:
            logger.error("Failed to get last story part for %s: %s", weaving_id, exc)
            raise StorageFailure("load", exc) from exc
        if part is None:
            return StoryPart()
        # Callers mutate the result; never hand back the handler's own object.
        return part.model_copy(deep=True)

    async def persist(self, weaving_id: WeavingLike, part: StoryPart, *, increment: bool = False) -> None:
        logger.debug("Saving story part for %s: %s", weaving_id, part.context_messages)
        try:
            await self.storage.save_story_part(weaving_id, part, increment)
        except Exception as exc:
            logger.error("Failed to save story part for %s: %s", weaving_id, exc)
            raise StorageFailure("save", exc) from exc

    async def append_and_persist(
        self,
        weaving_id: WeavingLike,
        part: StoryPart,
        message: ContextMessage,
        *,
        increment: bool = False,
    ) -> StoryPart:
        part.append(message, self.counter)
        await self.persist(weaving_id, part, increment=increment)
        return part


__all__ = ["StoryState"]

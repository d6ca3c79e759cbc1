from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Dict, Optional, Tuple, Union

from .adapter import ChatClient, ChatCompletion, ChatRequest
from .context import build_request_messages, compose_username, word_limit_instruction
from .errors import ContextOverflowError, FailedPromptError, MissingContentError, WeaveError
from .models import Models, max_words
from .rollover import NeverRollover, RolloverPolicy, Summarizer
from .schemas import AccountId, ContextMessage, Role, StoryPart, now_iso
from .storage import StorageHandler
from .story import StoryState
from .tokens import count_tokens
from .weaving import WeavingLike, base_key


logger = logging.getLogger(__name__)


ModelSource = Union[Models, Callable[[], Models]]


class _LockEntry:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = asyncio.Lock()
        self.users = 0


class Loreweaver:
    """
    Prompts a chat model with the running story of a weaving and records the reply.

    One lock per weaving key serializes load -> mutate -> persist, so concurrent
    prompts for the same story never overwrite each other's turns. Different
    weavings run fully concurrently.
    """

    def __init__(
        self,
        *,
        client: ChatClient,
        storage: StorageHandler,
        model: ModelSource = Models.GPT3,
        counter: Callable[[str], int] = count_tokens,
        rollover: Optional[RolloverPolicy] = None,
        summarizer: Optional[Summarizer] = None,
        custom_max_words: Optional[int] = None,
        strict_budget: bool = False,
        clock: Callable[[], str] = now_iso,
    ) -> None:
        self.client = client
        self.story = StoryState(storage, counter=counter)
        self.model_source = model
        self.counter = counter
        self.rollover = rollover or NeverRollover()
        self.summarizer = summarizer
        self.custom_max_words = custom_max_words
        self.strict_budget = strict_budget
        self.clock = clock
        self._locks: Dict[Tuple[int, str], _LockEntry] = {}

    # -----------------------

    def model(self) -> Models:
        source = self.model_source
        return source if isinstance(source, Models) else source()

    @asynccontextmanager
    async def serialized(self, weaving_id: WeavingLike) -> AsyncIterator[None]:
        """
        Hold the lock of ``weaving_id`` on the running event loop.

        Entries are keyed per loop, since an ``asyncio.Lock`` belongs to one loop,
        and are dropped once nobody holds or waits on them.
        """
        slot = (id(asyncio.get_running_loop()), base_key(weaving_id))
        entry = self._locks.get(slot)
        if entry is None:
            entry = self._locks[slot] = _LockEntry()
        entry.users += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.users -= 1
            if entry.users == 0:
                del self._locks[slot]

    # -----------------------

    async def prompt(
        self,
        system: str,
        weaving_id: WeavingLike,
        msg: str,
        account_id: AccountId,
        username: str,
        pseudo_username: Optional[str] = None,
    ) -> str:
        """
        Prompt the model with the current story part plus ``msg`` and return its reply.

        The user turn and the reply are persisted together, only after the reply
        arrives. Any failure leaves the stored story untouched.
        """
        async with self.serialized(weaving_id):
            return await self._prompt(system, weaving_id, msg, account_id, username, pseudo_username)

    async def _prompt(
        self,
        system: str,
        weaving_id: WeavingLike,
        msg: str,
        account_id: AccountId,
        username: str,
        pseudo_username: Optional[str],
    ) -> str:
        model = self.model()

        story_part = await self.story.current(weaving_id)
        story_part, increment = await self._maybe_rollover(weaving_id, story_part, model)

        context_tokens = story_part.context_tokens
        if self.strict_budget and context_tokens > model.max_context_tokens():
            logger.error(
                "Story part for %s holds %s tokens, over the %s limit of %s",
                weaving_id, context_tokens, model.model_name, model.max_context_tokens(),
            )
            raise ContextOverflowError(
                f"{context_tokens} context tokens exceed {model.model_name}'s {model.max_context_tokens()}"
            )

        username_with_nick = compose_username(username, pseudo_username)

        story_part.append(
            ContextMessage(
                role=Role.USER.value,
                account_id=str(account_id),
                username=username_with_nick,
                content=msg,
                timestamp=self.clock(),
            ),
            self.counter,
        )

        try:
            request_messages = build_request_messages(system, story_part.context_messages, username_with_nick)
        except WeaveError as exc:
            logger.error("Failed to render story part for %s: %s", weaving_id, exc)
            raise

        max_response_words = max_words(model, context_tokens, self.custom_max_words)
        logger.info(
            "Prompting %s for %s (%s messages, %s words max)",
            model.model_name, weaving_id, len(request_messages), max_response_words,
        )

        completion = await self._do_prompt(model, request_messages, max_response_words)
        response_content = self._first_content(completion)

        await self.story.append_and_persist(
            weaving_id,
            story_part,
            ContextMessage(
                role=Role.ASSISTANT.value,
                content=response_content,
                timestamp=self.clock(),
            ),
            increment=increment,
        )
        return response_content

    async def _maybe_rollover(
        self,
        weaving_id: WeavingLike,
        story_part: StoryPart,
        model: Models,
    ) -> tuple[StoryPart, bool]:
        if self.summarizer is None or not self.rollover.should_rollover(story_part, model):
            return story_part, False

        logger.info("Rolling over story part for %s at %s tokens", weaving_id, story_part.context_tokens)
        try:
            summary = await self.summarizer.summarize(story_part)
        except WeaveError:
            raise
        except Exception as exc:
            logger.error("Failed to summarize story part for %s: %s", weaving_id, exc)
            raise WeaveError(f"Failed to summarize story part: {exc}") from exc
        return story_part.successor(summary, self.counter), True

    async def _do_prompt(self, model: Models, msgs, word_budget: int) -> ChatCompletion:
        # The word limit is request-only; it never lands in the story part.
        request = ChatRequest(
            model=model.model_name,
            messages=[*msgs, word_limit_instruction(word_budget)],
        )
        try:
            return await self.client.complete(request)
        except Exception as exc:
            logger.error("Failed to prompt %s: %s", model.model_name, exc)
            raise FailedPromptError(f"Failed to prompt {model.model_name}: {exc}") from exc

    @staticmethod
    def _first_content(completion: ChatCompletion) -> str:
        choices = list(completion.choices or [])
        content = choices[0].content if choices else None
        if not content:
            logger.error("Chat response carried no content")
            raise MissingContentError("Failed to get content from chat response")
        return content

    # -----------------------
    # Roster
    # -----------------------

    async def join(self, weaving_id: WeavingLike, account_id: AccountId) -> bool:
        """Add a player to the story; returns False if they were already in it."""
        async with self.serialized(weaving_id):
            part = await self.story.current(weaving_id)
            if not part.add_player(account_id):
                return False
            await self.story.persist(weaving_id, part)
            return True

    async def leave(self, weaving_id: WeavingLike, account_id: AccountId) -> bool:
        """Remove a player from the story; returns False if they were not in it."""
        async with self.serialized(weaving_id):
            part = await self.story.current(weaving_id)
            if not part.remove_player(account_id):
                return False
            await self.story.persist(weaving_id, part)
            return True


__all__ = ["Loreweaver", "ModelSource"]

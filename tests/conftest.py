# tests/conftest.py
# Shared fixtures: a scripted chat client, in-memory storage and a
# whitespace token counter so no test touches the network or tiktoken.

from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import Callable, List, Optional

import pytest


# ---------- Ensure project root is importable ----------
ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from loreweaver.adapter import ChatCompletion, ChatRequest, Choice  # noqa: E402
from loreweaver.loom import Loreweaver  # noqa: E402
from loreweaver.models import Models  # noqa: E402
from loreweaver.storage import MemoryStorage  # noqa: E402


def word_count(text: str) -> int:
    return len(text.split())


class FakeChatClient:
    """Replies from a script and records every request it receives."""

    def __init__(self, replies: Optional[List[object]] = None, *, yield_first: bool = False) -> None:
        self.replies = list(replies or [])
        self.requests: List[ChatRequest] = []
        self.yield_first = yield_first

    async def complete(self, request: ChatRequest) -> ChatCompletion:
        self.requests.append(request)
        if self.yield_first:
            await asyncio.sleep(0)
        reply = self.replies.pop(0) if self.replies else "The story continues."
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, ChatCompletion):
            return reply
        return ChatCompletion(choices=[Choice(content=reply)])


@pytest.fixture
def counter() -> Callable[[str], int]:
    return word_count


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def chat() -> FakeChatClient:
    return FakeChatClient()


@pytest.fixture
def make_loom(storage: MemoryStorage, counter):
    """Build a Loreweaver wired to the in-memory storage and word counter."""

    def _make(client: FakeChatClient, **kwargs) -> Loreweaver:
        kwargs.setdefault("model", Models.GPT3)
        kwargs.setdefault("clock", lambda: "2024-01-01T00:00:00+00:00")
        return Loreweaver(client=client, storage=storage, counter=counter, **kwargs)

    return _make

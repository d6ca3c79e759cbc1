from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Union, runtime_checkable


@runtime_checkable
class WeavingID(Protocol):
    """Identifies one story lineage; ``base_key`` addresses it in storage."""

    def base_key(self) -> str:
        ...


@dataclass(frozen=True)
class StoryKey:
    """A story within a server (guild, workspace, ...)."""

    server_id: str
    story_id: str

    def base_key(self) -> str:
        return f"{self.server_id}/{self.story_id}"

    def __str__(self) -> str:
        return self.base_key()


WeavingLike = Union[WeavingID, str]


def base_key(weaving_id: WeavingLike) -> str:
    if isinstance(weaving_id, str):
        return weaving_id
    return weaving_id.base_key()


__all__ = ["WeavingID", "WeavingLike", "StoryKey", "base_key"]

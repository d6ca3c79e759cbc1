from __future__ import annotations

import pytest
from pydantic import ValidationError

from loreweaver.schemas import ContextMessage, StoryPart


def _msg(role: str, content: str) -> ContextMessage:
    return ContextMessage(role=role, content=content)


def test_append_recounts_tokens(counter):
    part = StoryPart()
    part.append(_msg("user", "one two three"), counter)
    part.append(_msg("assistant", "four five"), counter)
    assert part.context_tokens == 5


def test_append_corrects_stale_count(counter):
    part = StoryPart(context_tokens=999)
    part.append(_msg("user", "just three words"), counter)
    assert part.context_tokens == 3


def test_pairs_keep_order_and_roster(counter):
    part = StoryPart(players=[7, 8])
    for i in range(5):
        part.append(_msg("user", f"question {i}"), counter)
        part.append(_msg("assistant", f"answer {i}"), counter)

    assert len(part.context_messages) == 10
    assert [m.content for m in part.context_messages[:4]] == ["question 0", "answer 0", "question 1", "answer 1"]
    assert part.players == [7, 8]


def test_roster_is_idempotent():
    part = StoryPart()
    assert part.add_player(1) is True
    assert part.add_player(1) is False
    assert part.players == [1]
    assert part.remove_player(2) is False
    assert part.remove_player(1) is True
    assert part.players == []


def test_successor_copies_roster_only(counter):
    part = StoryPart(players=[3, 4])
    part.append(_msg("user", "long story"), counter)

    nxt = part.successor(_msg("system", "summary of the story"), counter)

    assert nxt.players == [3, 4]
    assert nxt.players is not part.players
    assert [m.content for m in nxt.context_messages] == ["summary of the story"]
    assert nxt.context_tokens == 4


def test_message_is_immutable_and_timestamped():
    message = _msg("user", "hello")
    assert "T" in message.timestamp
    with pytest.raises(ValidationError):
        message.content = "changed"  # type: ignore[misc]


def test_story_part_json_round_trip():
    part = StoryPart(players=[1], context_tokens=2, context_messages=[_msg("user", "hi there")])
    assert StoryPart.model_validate_json(part.model_dump_json()) == part

from __future__ import annotations

import pytest

from loreweaver.context import (
    SYSTEM_NAME,
    build_request_messages,
    compose_username,
    map_role,
    word_limit_instruction,
)
from loreweaver.errors import BadRoleError, WeaveError
from loreweaver.schemas import ContextMessage, Role


def _msg(role: str, content: str = "hi") -> ContextMessage:
    return ContextMessage(role=role, content=content, timestamp="2024-01-01T00:00:00+00:00")


@pytest.mark.parametrize("role", ["system", "user", "assistant"])
def test_map_role_is_one_to_one(role: str):
    assert map_role(role) is Role(role)
    assert map_role(role) is map_role(role)


@pytest.mark.parametrize("role", ["tool", "User", "", "narrator"])
def test_map_role_rejects_unknown(role: str):
    with pytest.raises(BadRoleError) as info:
        map_role(role)
    assert info.value.role == role
    assert isinstance(info.value, WeaveError)


def test_compose_username():
    assert compose_username("Bob", "-the-bard") == "Bob-the-bard"
    assert compose_username("Bob", None) == "Bob"
    assert compose_username("Bob", "") == "Bob"


def test_request_starts_with_system_directive():
    request = build_request_messages("You are a narrator.", [], "Bob")
    assert request == [{"role": "system", "content": "You are a narrator."}]


def test_request_names_each_message():
    messages = [_msg("system", "recap"), _msg("user", "I open the door"), _msg("assistant", "It creaks.")]

    request = build_request_messages("directive", messages, "Bob-the-bard")

    assert [m["role"] for m in request] == ["system", "system", "user", "assistant"]
    assert [m["content"] for m in request] == ["directive", "recap", "I open the door", "It creaks."]
    assert request[1]["name"] == SYSTEM_NAME
    assert request[2]["name"] == "Bob-the-bard"
    assert request[3]["name"] == "Bob-the-bard"


def test_request_rejects_bad_stored_role():
    with pytest.raises(BadRoleError):
        build_request_messages("directive", [_msg("user"), _msg("wizard")], "Bob")


def test_word_limit_instruction():
    assert word_limit_instruction(774) == {"role": "system", "content": "Respond with 774 words or less"}

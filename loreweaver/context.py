from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from .errors import BadRoleError
from .schemas import ContextMessage, Role


SYSTEM_NAME = "Loreweaver"

ChatMessage = Dict[str, str]


# -------------------------
# Helpers
# -------------------------

def map_role(role: str) -> Role:
    """Map a stored role string onto the chat role enumeration; anything else is rejected."""
    try:
        return Role(role)
    except ValueError:
        raise BadRoleError(role) from None


def compose_username(username: str, pseudo_username: Optional[str] = None) -> str:
    """Username and nickname joined as-is: ``"Bob" + "-the-bard"`` -> ``"Bob-the-bard"``."""
    if pseudo_username is None:
        return username
    return f"{username}{pseudo_username}"


def display_name(role: Role, username: str) -> str:
    if role is Role.SYSTEM:
        return SYSTEM_NAME
    return username


# -------------------------
# Request rendering
# -------------------------

def render_message(message: ContextMessage, username: str) -> ChatMessage:
    role = map_role(message.role)
    return {
        "role": role.value,
        "content": message.content,
        "name": display_name(role, username),
    }


def build_request_messages(
    system: str,
    messages: Iterable[ContextMessage],
    username: str,
) -> List[ChatMessage]:
    """
    Ordered chat payload for one prompt: the system directive first, then every
    message of the story part in order, each named after ``username`` (or the
    Loreweaver label for system entries).
    """
    request: List[ChatMessage] = [{"role": Role.SYSTEM.value, "content": system}]
    request.extend(render_message(message, username) for message in messages)
    return request


def word_limit_instruction(max_words: int) -> ChatMessage:
    return {"role": Role.SYSTEM.value, "content": f"Respond with {max_words} words or less"}


__all__ = [
    "SYSTEM_NAME",
    "ChatMessage",
    "map_role",
    "compose_username",
    "display_name",
    "render_message",
    "build_request_messages",
    "word_limit_instruction",
]

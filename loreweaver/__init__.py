"""Story-context and token-budget engine for prompting chat models."""

from .adapter import ChatClient, ChatCompletion, ChatRequest, Choice, LLMError, OllamaChatAdapter
from .config import LoomSettings
from .errors import (
    BadRoleError,
    ContextOverflowError,
    FailedPromptError,
    MissingContentError,
    StorageFailure,
    WeaveError,
)
from .loom import Loreweaver
from .models import Models, max_words
from .rollover import NeverRollover, TokenThresholdRollover
from .schemas import ContextMessage, Role, StoryPart
from .storage import JsonFileStorage, MemoryStorage, StorageError
from .story import StoryState
from .tokens import count_tokens
from .weaving import StoryKey

__all__ = [
    "Loreweaver",
    "LoomSettings",
    "Models",
    "max_words",
    "count_tokens",
    "ContextMessage",
    "Role",
    "StoryPart",
    "StoryState",
    "StoryKey",
    "MemoryStorage",
    "JsonFileStorage",
    "StorageError",
    "ChatClient",
    "ChatRequest",
    "ChatCompletion",
    "Choice",
    "LLMError",
    "OllamaChatAdapter",
    "NeverRollover",
    "TokenThresholdRollover",
    "WeaveError",
    "FailedPromptError",
    "MissingContentError",
    "BadRoleError",
    "StorageFailure",
    "ContextOverflowError",
]

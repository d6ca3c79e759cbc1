from __future__ import annotations


class WeaveError(RuntimeError):
    """Base class for every error surfaced by :class:`loreweaver.loom.Loreweaver`."""


class FailedPromptError(WeaveError):
    """The LLM collaborator failed to produce a response."""


class MissingContentError(WeaveError):
    """The LLM responded without any usable text."""


class BadRoleError(WeaveError):
    """A context message carries a role outside system/user/assistant."""

    def __init__(self, role: str) -> None:
        super().__init__(f"Bad chat role: {role!r}")
        self.role = role


class StorageFailure(WeaveError):
    """The storage handler failed while loading or saving a story part."""

    def __init__(self, operation: str, cause: Exception) -> None:
        super().__init__(f"Failed to {operation} story part: {cause}")
        self.operation = operation
        self.cause = cause


class ContextOverflowError(WeaveError):
    """The story part already holds more tokens than the model can take."""


__all__ = [
    "WeaveError",
    "FailedPromptError",
    "MissingContentError",
    "BadRoleError",
    "StorageFailure",
    "ContextOverflowError",
]

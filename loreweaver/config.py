from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Callable, Optional

from .adapter import OllamaChatAdapter
from .models import Models
from .rollover import TokenThresholdRollover
from .storage import JsonFileStorage


def _bool(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "y", "on"}


@dataclass
class LoomSettings:
    """Deployment settings for a Loreweaver process."""

    model: Models = Models.GPT3
    ollama_host: Optional[str] = None
    state_root: str = "state"
    rollover_ratio: float = 0.8
    verbose: bool = False

    @classmethod
    def from_env(cls) -> "LoomSettings":
        """
        LOREWEAVER_MODEL          gpt3 | gpt4 | gpt-3.5-turbo | gpt-4
        OLLAMA_HOST               chat endpoint host (library default when unset)
        LOREWEAVER_STATE_ROOT     directory for JSON story parts
        LOREWEAVER_ROLLOVER_RATIO fraction of the context window that triggers rollover
        LOREWEAVER_VERBOSE        log every chat request and reply size
        """
        ratio_raw = os.getenv("LOREWEAVER_ROLLOVER_RATIO", "0.8")
        try:
            ratio = float(ratio_raw)
        except ValueError:
            raise ValueError(f"LOREWEAVER_ROLLOVER_RATIO must be a number, got {ratio_raw!r}") from None

        return cls(
            model=Models.from_name(os.getenv("LOREWEAVER_MODEL", "gpt3")),
            ollama_host=os.getenv("OLLAMA_HOST") or None,
            state_root=os.getenv("LOREWEAVER_STATE_ROOT", "state"),
            rollover_ratio=ratio,
            verbose=_bool(os.getenv("LOREWEAVER_VERBOSE"), False),
        )

    def model_source(self) -> Callable[[], Models]:
        return lambda: self.model

    def rollover_policy(self) -> TokenThresholdRollover:
        return TokenThresholdRollover(ratio=self.rollover_ratio)

    def chat_adapter(self) -> OllamaChatAdapter:
        """The process-wide chat client; build once at startup and inject it."""
        return OllamaChatAdapter(host=self.ollama_host, verbose=self.verbose)

    def storage(self) -> JsonFileStorage:
        return JsonFileStorage(self.state_root)


__all__ = ["LoomSettings"]

from __future__ import annotations

from enum import Enum
from typing import Optional


WORDS_PER_TOKEN = 0.75


class Models(Enum):
    """Chat models Loreweaver can prompt, with their context window sizes."""

    GPT3 = "gpt-3.5-turbo"
    GPT4 = "gpt-4"

    @property
    def model_name(self) -> str:
        return self.value

    def max_context_tokens(self) -> int:
        """Maximum number of tokens the model can process at once."""
        return _MAX_CONTEXT_TOKENS[self]

    def default_max_response_tokens(self, tokens_in_context: int) -> int:
        """
        Default maximum tokens to respond with.

        A third of whatever is left of the context window; the remainder is
        headroom for the system directive, the echoed history and tokenizer drift.
        An overfull context yields 0.
        """
        remaining = max(0, self.max_context_tokens() - max(0, tokens_in_context))
        return remaining // 3

    @classmethod
    def from_name(cls, name: str) -> "Models":
        """Resolve ``gpt3``/``gpt4`` style aliases or canonical model names."""
        key = (name or "").strip().lower()
        for model in cls:
            if key in {model.name.lower(), model.value}:
                return model
        raise ValueError(f"Unknown model '{name}'. Expected one of: {', '.join(m.value for m in cls)}")


_MAX_CONTEXT_TOKENS = {
    Models.GPT3: 4_096,
    Models.GPT4: 8_192,
}


def max_words(model: Models, context_tokens: int, custom_max_words: Optional[int] = None) -> int:
    """
    Maximum number of words to respond with.

    ``custom_max_words`` wins when given; otherwise the model's default token
    budget is converted at 0.75 words per token.
    """
    if custom_max_words is not None:
        return custom_max_words
    return int(model.default_max_response_tokens(context_tokens) * WORDS_PER_TOKEN)


__all__ = ["Models", "WORDS_PER_TOKEN", "max_words"]

from __future__ import annotations

from functools import lru_cache

import tiktoken


ENCODING_NAME = "p50k_base"


@lru_cache(maxsize=1)
def _encoder() -> tiktoken.Encoding:
    # Loaded once per process; a failure here is a startup problem, not a per-call one.
    return tiktoken.get_encoding(ENCODING_NAME)


def count_tokens(text: str) -> int:
    """Return the number of tokens in ``text`` (special tokens included)."""
    if not text:
        return 0
    return len(_encoder().encode(text, allowed_special="all"))


__all__ = ["ENCODING_NAME", "count_tokens"]

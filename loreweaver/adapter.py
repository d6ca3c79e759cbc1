from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Sequence

from ollama import AsyncClient, ResponseError

from .context import ChatMessage


logger = logging.getLogger(__name__)


class LLMError(RuntimeError):
    """Raised when the chat transport fails."""


@dataclass
class ChatRequest:
    model: str
    messages: List[ChatMessage]
    max_tokens: int = 300
    temperature: float = 0.9
    presence_penalty: float = 0.6
    frequency_penalty: float = 0.6


@dataclass
class Choice:
    content: Optional[str] = None


@dataclass
class ChatCompletion:
    choices: Sequence[Choice] = field(default_factory=list)


class ChatClient(Protocol):
    """Anything that can turn a :class:`ChatRequest` into candidate completions."""

    async def complete(self, request: ChatRequest) -> ChatCompletion:
        ...


class OllamaChatAdapter:
    """
    Thin gateway around an Ollama chat endpoint.
    Normalizes the response into a single-choice :class:`ChatCompletion`.
    Retries are left to the caller.
    """

    def __init__(
        self,
        *,
        host: Optional[str] = None,
        client: Optional[AsyncClient] = None,
        verbose: bool = False,
    ) -> None:
        self.client = client or AsyncClient(host=host)
        self.verbose = verbose

    async def complete(self, request: ChatRequest) -> ChatCompletion:
        options = self._options(request)

        if self.verbose:
            logger.info("[%s] chat request (%s messages)", request.model, len(request.messages))

        try:
            response = await self.client.chat(
                model=request.model,
                messages=self._messages(request),
                options=options,
            )
        except (ResponseError, ConnectionError) as exc:
            raise LLMError(f"Chat request to '{request.model}' failed: {exc}") from exc

        content = self._extract_content(response)

        if self.verbose:
            logger.info("[%s] success (%s chars)", request.model, len(content or ""))

        return ChatCompletion(choices=[Choice(content=content)])

    # -------------------------------------------------

    @staticmethod
    def _messages(request: ChatRequest) -> List[Dict[str, str]]:
        # Ollama messages carry no author name.
        return [{"role": m["role"], "content": m["content"]} for m in request.messages]

    @staticmethod
    def _options(request: ChatRequest) -> Dict[str, Any]:
        return {
            "temperature": request.temperature,
            "presence_penalty": request.presence_penalty,
            "frequency_penalty": request.frequency_penalty,
            "num_predict": request.max_tokens,
        }

    @staticmethod
    def _extract_content(response: Any) -> Optional[str]:
        message = getattr(response, "message", None)

        if message is None and isinstance(response, dict):
            message = response.get("message")

        if not message:
            return None

        if hasattr(message, "model_dump"):
            payload = message.model_dump(exclude_none=True)
        elif isinstance(message, dict):
            payload = message
        else:
            return None

        content = payload.get("content")

        if isinstance(content, list):
            content = "".join(map(str, content))

        return None if content is None else str(content)


__all__ = [
    "LLMError",
    "ChatRequest",
    "Choice",
    "ChatCompletion",
    "ChatClient",
    "OllamaChatAdapter",
]

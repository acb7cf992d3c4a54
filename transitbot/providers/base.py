"""Completion provider contract used by the agent loop."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


class CompletionError(Exception):
    """A completion request failed (network, timeout, non-2xx, empty reply)."""


@dataclass
class LLMResponse:
    """Text of one completion plus the provider's bookkeeping."""

    content: str
    finish_reason: str = "stop"
    usage: dict[str, int] = field(default_factory=dict)


class LLMProvider(ABC):
    """
    Submits role-tagged messages and returns a single text completion.

    No streaming and no native function calling: tool requests travel as
    JSON inside ``content``. Implementations raise ``CompletionError`` for
    every failure.
    """

    def __init__(self, api_key: str | None = None, api_base: str | None = None):
        self.api_key = api_key
        self.api_base = api_base

    @abstractmethod
    async def chat(
        self,
        messages: list[dict[str, Any]],
        model: str | None = None,
        max_tokens: int = 1024,
        temperature: float = 0.7,
        timeout: float | None = None,
    ) -> LLMResponse:
        """
        Request one completion.

        Args:
            messages: ``role``/``content`` dicts; assistant and tool entries
                may also carry ``tool_calls``, ``tool_call_id`` and ``name``.
            model: Provider model id; the provider default when None.
            max_tokens: Completion length cap.
            temperature: Sampling temperature.
            timeout: Seconds before the request is abandoned.

        Raises:
            CompletionError: The request failed or produced no text.
        """

    @abstractmethod
    def get_default_model(self) -> str:
        """Model used when ``chat`` is called without one."""

"""LiteLLM-backed completion provider (Perplexity, OpenRouter, OpenAI, Anthropic)."""

import os
from typing import Any

import litellm
from litellm import acompletion

from transitbot.providers.base import CompletionError, LLMProvider, LLMResponse

# Model-name hint -> environment variable LiteLLM reads the key from
_KEY_ENV_BY_HINT: tuple[tuple[tuple[str, ...], str], ...] = (
    (("perplexity", "sonar"), "PERPLEXITYAI_API_KEY"),
    (("anthropic", "claude"), "ANTHROPIC_API_KEY"),
    (("openai", "gpt"), "OPENAI_API_KEY"),
)

_USAGE_FIELDS = ("prompt_tokens", "completion_tokens", "total_tokens")


def _is_openrouter(api_key: str | None, api_base: str | None) -> bool:
    return bool(
        (api_key and api_key.startswith("sk-or-")) or (api_base and "openrouter" in api_base)
    )


class LiteLLMProvider(LLMProvider):
    """
    Completion provider routed through LiteLLM.

    The default model is Perplexity ``sonar``. An ``sk-or-`` key or an
    OpenRouter base URL routes every model through OpenRouter instead.
    """

    def __init__(
        self,
        api_key: str | None = None,
        api_base: str | None = None,
        default_model: str = "perplexity/sonar",
    ):
        super().__init__(api_key, api_base)
        self.default_model = default_model
        self.is_openrouter = _is_openrouter(api_key, api_base)

        if api_key:
            self._export_key(api_key)

        # Disable LiteLLM logging noise
        litellm.suppress_debug_info = True

    def _export_key(self, api_key: str) -> None:
        if self.is_openrouter:
            os.environ["OPENROUTER_API_KEY"] = api_key
            return
        model_lower = self.default_model.lower()
        for hints, env_var in _KEY_ENV_BY_HINT:
            if any(hint in model_lower for hint in hints):
                os.environ.setdefault(env_var, api_key)
                return

    def _apply_model_prefix(self, model: str) -> str:
        """Qualify a model name with the LiteLLM route it needs."""
        if self.is_openrouter:
            return model if model.startswith("openrouter/") else f"openrouter/{model}"
        if "/" not in model and model.startswith("sonar"):
            return f"perplexity/{model}"
        return model

    async def chat(
        self,
        messages: list[dict[str, Any]],
        model: str | None = None,
        max_tokens: int = 1024,
        temperature: float = 0.7,
        timeout: float | None = None,
    ) -> LLMResponse:
        request: dict[str, Any] = {
            "model": self._apply_model_prefix(model or self.default_model),
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        optional = {"timeout": timeout, "api_key": self.api_key, "api_base": self.api_base}
        request.update({k: v for k, v in optional.items() if v})

        try:
            raw = await acompletion(**request)
        except Exception as e:
            raise CompletionError(f"Error calling LLM: {e}") from e

        return self._to_response(raw)

    def _to_response(self, raw: Any) -> LLMResponse:
        """Extract the first choice's text; an empty completion is an error."""
        choices = getattr(raw, "choices", None)
        if not choices:
            raise CompletionError("LLM returned no choices")

        first = choices[0]
        text = first.message.content
        if text is None:
            raise CompletionError("LLM returned an empty message")

        raw_usage = getattr(raw, "usage", None)
        usage = (
            {name: getattr(raw_usage, name, 0) or 0 for name in _USAGE_FIELDS} if raw_usage else {}
        )
        return LLMResponse(content=text, finish_reason=first.finish_reason or "stop", usage=usage)

    def get_default_model(self) -> str:
        return self.default_model

"""Detect tool invocations in model output."""

import json
from dataclasses import dataclass, field
from typing import Any

from loguru import logger


@dataclass(frozen=True)
class PlainText:
    """Model output to be shown to the user as-is."""

    text: str


@dataclass(frozen=True)
class ToolInvocation:
    """Model output requesting a local tool."""

    name: str
    arguments: dict[str, Any] = field(default_factory=dict)


ModelOutput = PlainText | ToolInvocation


def _strip_code_fence(text: str) -> str:
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = cleaned.split("\n", 1)[-1]
        cleaned = cleaned.rsplit("```", 1)[0]
        cleaned = cleaned.strip()
    return cleaned


def parse_model_output(text: str | None) -> ModelOutput:
    """
    Classify a completion as a tool invocation or plain text.

    A tool invocation is a JSON object (optionally fenced as markdown code)
    with a non-empty string ``tool_name`` and an object ``arguments``.
    Anything else, including malformed JSON, is plain text.
    """
    if not text:
        return PlainText(text or "")

    try:
        data = json.loads(_strip_code_fence(text))
    except json.JSONDecodeError:
        return PlainText(text)

    if not isinstance(data, dict):
        return PlainText(text)

    name = data.get("tool_name")
    arguments = data.get("arguments")
    if not isinstance(name, str) or not name or not isinstance(arguments, dict):
        logger.debug("Completion is JSON but not a well-formed tool call; treating as text")
        return PlainText(text)

    return ToolInvocation(name=name, arguments=arguments)

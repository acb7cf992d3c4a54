"""Context builder for assembling agent prompts."""

import json
import time
from collections.abc import Callable
from typing import Any
from zoneinfo import ZoneInfo

from loguru import logger

from transitbot.session.store import format_local_time
from transitbot.transit.snapshot import LiveSnapshot
from transitbot.utils.tokens import TokenEstimator, estimate_tokens, trim_to_budget

# Shape the model must answer with when it wants a tool
TOOL_CALL_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "tool_name": {
            "type": "string",
            "description": "The name of the tool to be called.",
        },
        "arguments": {
            "type": "object",
            "description": "An object containing the arguments for the tool.",
        },
    },
    "required": ["tool_name", "arguments"],
}


class ContextBuilder:
    """
    Builds the message list for one agent turn.

    The system preamble explains the JSON tool-call protocol, lists the
    available tools, and injects the live context (time, user location,
    active buses, known routes). The composed prompt is held to
    ``max_prompt_tokens``: the oldest history goes first, the preamble and
    the newest turn are never dropped.
    """

    def __init__(
        self,
        tool_definitions: list[dict[str, Any]],
        timezone: str = "Asia/Kolkata",
        clock: Callable[[], float] = time.time,
        max_prompt_tokens: int = 8000,
        estimator: TokenEstimator = estimate_tokens,
    ):
        self.tool_definitions = tool_definitions
        self._tz = ZoneInfo(timezone)
        self._clock = clock
        self.max_prompt_tokens = max_prompt_tokens
        self._estimator = estimator

    def build_system_prompt(self, snapshot: LiveSnapshot) -> str:
        if snapshot.user_location:
            location = (
                f"Available ({snapshot.user_location.lat}, {snapshot.user_location.lng})"
            )
        else:
            location = "Not available"

        return f"""You are an autonomous, intelligent transportation assistant for a real-time bus tracking system.

### TOOL USAGE PROTOCOL ###
When you need to use a tool to answer the user's request, you MUST respond ONLY with a JSON object:
{json.dumps(TOOL_CALL_SCHEMA, indent=2)}

Available tools: {json.dumps(self.tool_definitions, indent=2)}

### CURRENT CONTEXT ###
- Current Time: {format_local_time(self._clock(), self._tz)}
- User Location: {location}
- Active Buses: {len(snapshot.active_buses)} buses currently tracked
- Available Routes: {len(snapshot.bus_routes)} routes in system

Be conversational, helpful, and provide specific transportation advice!"""

    def build_messages(
        self,
        history: list[dict[str, Any]],
        current_message: str,
        snapshot: LiveSnapshot,
    ) -> list[dict[str, Any]]:
        """
        Build the complete message list for an LLM call.

        Args:
            history: Previous conversation messages (no system message).
            current_message: The new user message.
            snapshot: Live state used for the context section.

        Returns:
            ``[system preamble] + history + [user message]``.
        """
        messages: list[dict[str, Any]] = [
            {"role": "system", "content": self.build_system_prompt(snapshot)}
        ]
        messages.extend(m for m in history if m.get("role") != "system")
        messages.append({"role": "user", "content": current_message})
        return self.fit_to_budget(messages, protected_tail=1)

    def fit_to_budget(
        self, messages: list[dict[str, Any]], protected_tail: int = 0
    ) -> list[dict[str, Any]]:
        """Trim the oldest history so the prompt fits ``max_prompt_tokens``."""
        kept = trim_to_budget(
            messages, self.max_prompt_tokens, self._estimator, protected_tail=protected_tail
        )
        if len(kept) < len(messages):
            logger.info(f"Trimmed prompt to token budget, kept {len(kept)}/{len(messages)} messages")
        return kept

    def add_assistant_message(
        self,
        messages: list[dict[str, Any]],
        content: str | None,
        tool_calls: list[dict[str, Any]] | None = None,
    ) -> list[dict[str, Any]]:
        """Add an assistant message, optionally recording tool calls."""
        msg: dict[str, Any] = {"role": "assistant", "content": content}
        if tool_calls:
            msg["tool_calls"] = tool_calls
        messages.append(msg)
        return messages

    def add_tool_result(
        self,
        messages: list[dict[str, Any]],
        tool_call_id: str,
        tool_name: str,
        result: dict[str, Any],
    ) -> list[dict[str, Any]]:
        """Add a tool result, serialized as JSON, linked to its invocation."""
        messages.append(
            {
                "role": "tool",
                "tool_call_id": tool_call_id,
                "name": tool_name,
                "content": json.dumps(result),
            }
        )
        return messages

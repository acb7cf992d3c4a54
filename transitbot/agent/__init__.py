"""Agent core module."""

from transitbot.agent.context import ContextBuilder
from transitbot.agent.guardrails import QueryGuardrail
from transitbot.agent.loop import AgentLoop, TurnOutcome
from transitbot.agent.parsing import PlainText, ToolInvocation, parse_model_output
from transitbot.agent.service import TransitAssistant, TurnReply

__all__ = [
    "AgentLoop",
    "ContextBuilder",
    "PlainText",
    "QueryGuardrail",
    "ToolInvocation",
    "TransitAssistant",
    "TurnOutcome",
    "TurnReply",
    "parse_model_output",
]

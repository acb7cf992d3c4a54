"""Agent loop: one user utterance in, one reply out."""

import asyncio
import json
import uuid
from dataclasses import dataclass
from typing import Any

from loguru import logger

from transitbot.agent.context import ContextBuilder
from transitbot.agent.errors import ErrorCategory, ErrorLogger
from transitbot.agent.guardrails import QueryGuardrail
from transitbot.agent.parsing import PlainText, ToolInvocation, parse_model_output
from transitbot.agent.tools.registry import ToolRegistry
from transitbot.config.schema import AgentConfig
from transitbot.providers.base import LLMProvider
from transitbot.providers.retry import is_retryable, with_retry
from transitbot.transit.snapshot import LiveSnapshot

APOLOGY_MESSAGE = "I apologize, but I encountered a technical issue. Please try again."
TOOL_FALLBACK_MESSAGE = (
    "I retrieved the information but encountered an issue formatting the response."
)


@dataclass
class TurnOutcome:
    """Result of one agent turn. ``reply`` is always presentable to the user."""

    reply: str
    tool_invocation: ToolInvocation | None = None
    tool_result: dict[str, Any] | None = None
    rejected: bool = False
    degraded: bool = False
    retryable: bool = False


def _error_category(error: BaseException) -> ErrorCategory:
    if isinstance(error, (asyncio.TimeoutError, TimeoutError)):
        return ErrorCategory.LLM_TIMEOUT
    return ErrorCategory.LLM_API_ERROR


class AgentLoop:
    """
    Turns one user utterance plus live context into one reply.

    Per turn:
    1. Guardrail check (denylisted terms short-circuit with a refusal)
    2. Compose system preamble + history + user message within the token budget
    3. First completion, retried with linear backoff
    4. Parse the completion as a tool invocation or plain text
    5. Execute at most one tool against the snapshot
    6. Second completion with the tool result (no retry)

    No failure escapes ``process_query``; every path resolves to a reply.
    """

    def __init__(
        self,
        provider: LLMProvider,
        tools: ToolRegistry,
        guardrail: QueryGuardrail | None = None,
        context: ContextBuilder | None = None,
        config: AgentConfig | None = None,
        error_logger: ErrorLogger | None = None,
    ):
        self.provider = provider
        self.tools = tools
        self.config = config or AgentConfig()
        self.guardrail = guardrail or QueryGuardrail()
        self.context = context or ContextBuilder(
            tools.get_definitions(), timezone=self.config.timezone
        )
        self.errors = error_logger or ErrorLogger()
        self.model = self.config.model or provider.get_default_model()

    async def _complete(self, messages: list[dict[str, Any]]) -> str:
        response = await self.provider.chat(
            messages=messages,
            model=self.model,
            max_tokens=self.config.max_tokens,
            temperature=self.config.temperature,
            timeout=self.config.request_timeout_s,
        )
        return response.content

    async def process_query(
        self,
        query: str,
        snapshot: LiveSnapshot,
        history: list[dict[str, Any]] | None = None,
    ) -> TurnOutcome:
        """
        Process one user query.

        Args:
            query: The user's text.
            snapshot: Read-only live state for tools and the context section.
            history: Prior conversation messages to include, oldest first.

        Returns:
            TurnOutcome with the final reply and what happened on the way.
        """
        rule = self.guardrail.check(query)
        if rule is not None:
            self.errors.log(
                ErrorCategory.INPUT_REJECTED,
                f"Query rejected by guardrail term '{rule.term}'",
                severity="info",
            )
            return TurnOutcome(reply=self.guardrail.refusal, rejected=True)

        messages = self.context.build_messages(history or [], query, snapshot)

        try:
            text = await with_retry(
                lambda: self._complete(messages),
                max_attempts=self.config.max_attempts,
                base_delay=self.config.retry_base_delay_s,
                timeout=self.config.request_timeout_s,
            )
        except Exception as e:
            self.errors.log_exception(
                _error_category(e), e, context={"stage": "first_completion"}
            )
            return TurnOutcome(reply=APOLOGY_MESSAGE, degraded=True, retryable=is_retryable(e))

        parsed = parse_model_output(text)
        if isinstance(parsed, PlainText):
            return TurnOutcome(reply=parsed.text)

        return await self._run_tool(parsed, snapshot, messages)

    async def _run_tool(
        self,
        invocation: ToolInvocation,
        snapshot: LiveSnapshot,
        messages: list[dict[str, Any]],
    ) -> TurnOutcome:
        """Execute one tool and ask the model to phrase its result."""
        args_str = json.dumps(invocation.arguments)
        logger.info(f"Executing tool: {invocation.name} with arguments: {args_str}")

        call_id = f"tool_{uuid.uuid4().hex[:12]}"
        self.context.add_assistant_message(
            messages,
            None,
            [
                {
                    "id": call_id,
                    "type": "function",
                    "function": {"name": invocation.name, "arguments": args_str},
                }
            ],
        )

        result = self.tools.execute(invocation.name, invocation.arguments, snapshot)
        if "error" in result:
            self.errors.log(
                ErrorCategory.TOOL_FAULT,
                str(result["error"]),
                tool_name=invocation.name,
                context={"arguments": invocation.arguments},
                severity="warning",
            )

        self.context.add_tool_result(messages, call_id, invocation.name, result)
        # Keep the question, the call and its result when trimming
        messages = self.context.fit_to_budget(messages, protected_tail=3)

        try:
            text = await asyncio.wait_for(
                self._complete(messages), timeout=self.config.request_timeout_s
            )
        except Exception as e:
            self.errors.log_exception(
                ErrorCategory.LLM_FOLLOWUP_ERROR, e, context={"tool_name": invocation.name}
            )
            return TurnOutcome(
                reply=TOOL_FALLBACK_MESSAGE,
                tool_invocation=invocation,
                tool_result=result,
                degraded=True,
                retryable=is_retryable(e),
            )

        return TurnOutcome(reply=text, tool_invocation=invocation, tool_result=result)

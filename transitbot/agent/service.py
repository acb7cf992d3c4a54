"""Caller-visible entry points: handle a turn, reset a session, sweep."""

import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from loguru import logger

from transitbot.agent.context import ContextBuilder
from transitbot.agent.errors import ErrorLogger
from transitbot.agent.guardrails import QueryGuardrail
from transitbot.agent.loop import AgentLoop
from transitbot.agent.tools import build_default_registry
from transitbot.config.schema import Config
from transitbot.providers.base import LLMProvider
from transitbot.session.store import SessionStore
from transitbot.transit.provider import (
    JsonFileSnapshotProvider,
    SnapshotProvider,
    StaticSnapshotProvider,
)
from transitbot.transit.snapshot import LiveSnapshot, UserLocation
from transitbot.utils.tokens import get_estimator

# Tool calls worth remembering as the rider's recent searches
_SEARCH_TOOLS = frozenset({"find_routes", "get_arrival_time"})


def _parse_location(data: Any, source: str) -> UserLocation | None:
    """A location that does not parse is treated as absent."""
    try:
        return UserLocation.from_dict(data)
    except (TypeError, ValueError, AttributeError) as e:
        logger.warning(f"Ignoring malformed {source} location {data!r}: {e}")
        return None


@dataclass
class TurnReply:
    """What the transport layer sends back for one user message."""

    user_id: str
    reply: str
    session_summary: dict[str, Any] = field(default_factory=dict)
    rejected: bool = False
    degraded: bool = False
    retryable: bool = False


class TransitAssistant:
    """
    Ties the session store, the agent loop and the snapshot provider together.

    Turns for the same user are serialized with a per-user lock so their
    history appends never interleave; different users proceed concurrently.
    """

    def __init__(
        self,
        agent: AgentLoop,
        store: SessionStore,
        snapshots: SnapshotProvider,
        include_history: bool = True,
    ):
        self.agent = agent
        self.store = store
        self.snapshots = snapshots
        self.include_history = include_history
        self._locks: dict[str, asyncio.Lock] = {}

    @classmethod
    def from_config(
        cls,
        config: Config,
        provider: LLMProvider | None = None,
        snapshots: SnapshotProvider | None = None,
    ) -> "TransitAssistant":
        """Wire up every collaborator from configuration."""
        if provider is None:
            from transitbot.providers.litellm_provider import LiteLLMProvider

            provider = LiteLLMProvider(
                api_key=config.get_api_key(),
                api_base=config.get_api_base(),
                default_model=config.agent.model,
            )

        if snapshots is None:
            snapshot_file = config.snapshot_file
            snapshots = (
                JsonFileSnapshotProvider(snapshot_file) if snapshot_file else StaticSnapshotProvider()
            )

        error_log = Path(config.error_log_path).expanduser() if config.error_log_path else None
        tools = build_default_registry(timezone=config.agent.timezone)
        context = ContextBuilder(
            tools.get_definitions(),
            timezone=config.agent.timezone,
            max_prompt_tokens=config.session.max_prompt_tokens,
            estimator=get_estimator(config.session.token_estimator),
        )
        agent = AgentLoop(
            provider=provider,
            tools=tools,
            guardrail=QueryGuardrail.from_terms(config.guardrails.restricted_terms),
            context=context,
            config=config.agent,
            error_logger=ErrorLogger(error_log),
        )
        store = SessionStore(config.session, timezone=config.agent.timezone)
        return cls(agent, store, snapshots, include_history=config.agent.include_history)

    def _lock_for(self, user_id: str) -> asyncio.Lock:
        return self._locks.setdefault(user_id, asyncio.Lock())

    def _prune_locks(self) -> None:
        for user_id in list(self._locks):
            if user_id not in self.store and not self._locks[user_id].locked():
                del self._locks[user_id]

    def _snapshot_for(self, location: UserLocation | None) -> LiveSnapshot:
        try:
            return self.snapshots.get_snapshot(location)
        except Exception as e:
            logger.warning(f"Snapshot provider failed: {e}, answering without live state")
            return LiveSnapshot(user_location=location)

    async def handle_turn(
        self,
        user_id: str,
        text: str,
        location: dict[str, float] | None = None,
    ) -> TurnReply:
        """Process one user message. Never raises for model or tool failures."""
        async with self._lock_for(user_id):
            return await self._handle_turn_unlocked(user_id, text, location)

    async def _handle_turn_unlocked(
        self, user_id: str, text: str, location: dict[str, float] | None
    ) -> TurnReply:
        logger.info(f"Processing message from user: {user_id}")

        session = self.store.get_or_create(user_id)
        user_location = _parse_location(location, "request") or _parse_location(
            session.location, "stored"
        )
        snapshot = self._snapshot_for(user_location)

        self.store.apply_patch(
            user_id,
            {
                "location": user_location.to_dict() if user_location else None,
                "active_bus_count": len(snapshot.active_buses),
                "route_count": len(snapshot.bus_routes),
            },
        )

        history = (
            self.store.build_prompt_messages(user_id, include_system=False)
            if self.include_history
            else []
        )
        outcome = await self.agent.process_query(text, snapshot, history)

        self.store.append_message(user_id, "user", text)
        self.store.append_message(user_id, "assistant", outcome.reply)
        self.store.record_exchange(user_id, text, outcome.reply)

        invocation = outcome.tool_invocation
        if invocation is not None and invocation.name in _SEARCH_TOOLS:
            self.store.record_search(user_id, {"tool": invocation.name, **invocation.arguments})

        return TurnReply(
            user_id=user_id,
            reply=outcome.reply,
            session_summary=self.store.summarize(user_id),
            rejected=outcome.rejected,
            degraded=outcome.degraded,
            retryable=outcome.retryable,
        )

    def reset_session(self, user_id: str) -> None:
        """Replace the user's session with a fresh one."""
        self.store.reset(user_id)
        logger.info(f"Reset session for user: {user_id}")

    def sweep_expired(self) -> int:
        """Evict expired sessions; meant to be scheduled by the host."""
        removed = self.store.sweep_expired()
        self._prune_locks()
        return removed

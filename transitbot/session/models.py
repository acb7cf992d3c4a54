"""Session data types."""

import time
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from typing import Any

ROLES = ("user", "assistant", "system", "tool")


@dataclass
class Message:
    """A single role-tagged message in a session's history."""

    role: str
    content: str | None
    tool_calls: list[dict[str, Any]] | None = None
    tool_call_id: str | None = None
    name: str | None = None
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_llm_dict(self) -> dict[str, Any]:
        """Render in chat-completion format (no timestamp)."""
        msg: dict[str, Any] = {"role": self.role, "content": self.content}
        if self.tool_calls:
            msg["tool_calls"] = self.tool_calls
        if self.tool_call_id:
            msg["tool_call_id"] = self.tool_call_id
        if self.name:
            msg["name"] = self.name
        return msg

    def to_dict(self) -> dict[str, Any]:
        msg = self.to_llm_dict()
        msg["timestamp"] = self.timestamp
        return msg


@dataclass
class Exchange:
    """A (user text, agent text) pair kept for backward-compatible summaries."""

    user_text: str
    agent_text: str
    timestamp: float = field(default_factory=time.time)


@dataclass
class Preferences:
    """Rider tunables. Defaults apply when unset."""

    preferred_units: str = "metric"
    max_nearby_stops: int = 5
    notification_radius: int = 500  # metres


@dataclass
class Session:
    """Per-user conversational state."""

    user_id: str
    created_at: float
    last_updated: float
    location: dict[str, float] | None = None
    message_history: list[Message] = field(default_factory=list)
    legacy_exchanges: list[Exchange] = field(default_factory=list)
    recent_searches: list[dict[str, Any]] = field(default_factory=list)
    active_bus_count: int = 0
    route_count: int = 0
    preferences: Preferences = field(default_factory=Preferences)

    @classmethod
    def field_names(cls) -> frozenset[str]:
        return frozenset(f.name for f in fields(cls))

    @property
    def has_location(self) -> bool:
        return bool(self.location)

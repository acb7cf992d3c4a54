"""In-memory per-user session store with expiry and prompt budgeting."""

import math
import time
from collections.abc import Callable
from dataclasses import fields, replace
from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

from loguru import logger

from transitbot.config.schema import SessionConfig
from transitbot.session.models import ROLES, Exchange, Message, Preferences, Session
from transitbot.utils.tokens import (
    TokenEstimator,
    estimate_messages_tokens,
    get_estimator,
    trim_to_budget,
)

# Fields a patch may never overwrite
_PROTECTED_FIELDS = frozenset({"user_id", "created_at", "last_updated"})


def format_local_time(ts: float, tz: ZoneInfo) -> str:
    """Render an epoch timestamp the way riders read it: 19/10/2026, 3:45:12 PM."""
    dt = datetime.fromtimestamp(ts, tz)
    return f"{dt:%d/%m/%Y}, {dt.hour % 12 or 12}:{dt:%M:%S %p}"


class SessionStore:
    """
    Maps user ids to sessions.

    Absence and expiry are normalized into creation: no operation raises for
    an unknown or stale user. A session older than ``max_age_s`` since its last
    update is discarded on the next access and replaced with a fresh one.
    """

    def __init__(
        self,
        config: SessionConfig | None = None,
        estimator: TokenEstimator | None = None,
        clock: Callable[[], float] = time.time,
        timezone: str = "Asia/Kolkata",
    ):
        self.config = config or SessionConfig()
        self._estimator = estimator or get_estimator(self.config.token_estimator)
        self._clock = clock
        self._tz = ZoneInfo(timezone)
        self._sessions: dict[str, Session] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._sessions

    def _create(self, user_id: str) -> Session:
        now = self._clock()
        session = Session(user_id=user_id, created_at=now, last_updated=now)
        self._sessions[user_id] = session
        logger.info(f"Created new session for user: {user_id}")
        return session

    def _is_expired(self, session: Session, now: float) -> bool:
        return now - session.last_updated > self.config.max_age_s

    def get_or_create(self, user_id: str) -> Session:
        """Return the user's live session, allocating a fresh one if absent or expired."""
        session = self._sessions.get(user_id)
        if session is None:
            return self._create(user_id)

        if self._is_expired(session, self._clock()):
            logger.info(f"Session expired for user: {user_id}, creating new one")
            return self._create(user_id)

        return session

    def reset(self, user_id: str) -> Session:
        """Replace the user's session outright."""
        return self._create(user_id)

    def apply_patch(self, user_id: str, patch: dict[str, Any]) -> Session:
        """
        Merge a partial update into the session.

        Keys whose value is None are no-ops, as are unknown keys. Values are
        not type-checked. ``last_updated`` is always refreshed.
        """
        session = self.get_or_create(user_id)
        known = Session.field_names() - _PROTECTED_FIELDS
        applied = []

        for key, value in patch.items():
            if value is None:
                continue
            if key not in known:
                logger.debug(f"Ignoring unknown session patch key '{key}' for user: {user_id}")
                continue
            if key == "preferences" and isinstance(value, dict):
                value = self._merge_preferences(session.preferences, value)
            setattr(session, key, value)
            applied.append(key)

        session.last_updated = self._clock()
        logger.debug(f"Updated session for user: {user_id} {applied}")
        return session

    @staticmethod
    def _merge_preferences(current: Preferences, patch: dict[str, Any]) -> Preferences:
        names = {f.name for f in fields(Preferences)}
        updates = {k: v for k, v in patch.items() if k in names and v is not None}
        return replace(current, **updates)

    def append_message(
        self,
        user_id: str,
        role: str,
        content: str | None,
        tool_calls: list[dict[str, Any]] | None = None,
        tool_call_id: str | None = None,
        name: str | None = None,
    ) -> Message:
        """Append a timestamped message and truncate history to the cap."""
        if role not in ROLES:
            raise ValueError(f"Unknown message role '{role}'")
        session = self.get_or_create(user_id)
        message = Message(
            role=role,
            content=content,
            tool_calls=tool_calls,
            tool_call_id=tool_call_id,
            name=name,
        )
        session.message_history.append(message)
        self._truncate_history(session)
        session.last_updated = self._clock()
        return message

    def _truncate_history(self, session: Session) -> None:
        """Drop the oldest non-system messages until the cap holds."""
        history = session.message_history
        excess = sum(1 for m in history if m.role != "system") - self.config.max_history
        if excess <= 0:
            return

        kept: list[Message] = []
        for message in history:
            if excess > 0 and message.role != "system":
                excess -= 1
                continue
            kept.append(message)
        session.message_history = kept
        logger.debug(f"Truncated message history for user: {session.user_id}")

    def record_exchange(self, user_id: str, user_text: str, agent_text: str) -> None:
        """Keep a (user, agent) pair in the legacy exchange list."""
        session = self.get_or_create(user_id)
        session.legacy_exchanges.append(
            Exchange(user_text=user_text, agent_text=agent_text, timestamp=self._clock())
        )
        del session.legacy_exchanges[: -self.config.max_exchanges]
        session.last_updated = self._clock()

    def record_search(self, user_id: str, search: dict[str, Any]) -> None:
        """Remember a route or arrival lookup in the user's recent activity."""
        session = self.get_or_create(user_id)
        session.recent_searches.append({**search, "timestamp": self._clock()})
        del session.recent_searches[: -self.config.max_searches]
        session.last_updated = self._clock()

    def build_system_prompt(self, session: Session) -> str:
        """Synthesize the context message for a session (never stored)."""
        now = self._clock()
        if session.location:
            location_info = f"Available at {session.location.get('lat')}, {session.location.get('lng')}"
        else:
            location_info = "Not provided"
        duration = math.floor((now - session.created_at) / 60)

        return (
            "Transportation Assistant Context:\n"
            f"- Current Time: {format_local_time(now, self._tz)}\n"
            f"- User Location: {location_info}\n"
            f"- Active Buses: {session.active_bus_count}\n"
            f"- Available Routes: {session.route_count}\n"
            f"- Session Duration: {duration} minutes"
        )

    def build_prompt_messages(
        self, user_id: str, include_system: bool = True
    ) -> list[dict[str, Any]]:
        """
        Return the message sequence to send to the model.

        Args:
            user_id: Session key.
            include_system: Prepend a synthesized context message.

        Returns:
            ``[system?] + history`` trimmed to the token budget. The system
            message is exempt from trimming and always stays first.
        """
        session = self.get_or_create(user_id)
        messages = [m.to_llm_dict() for m in session.message_history]
        if include_system:
            messages.insert(0, {"role": "system", "content": self.build_system_prompt(session)})

        return self._enforce_token_budget(messages, user_id)

    def _enforce_token_budget(
        self, messages: list[dict[str, Any]], user_id: str
    ) -> list[dict[str, Any]]:
        budget = self.config.max_prompt_tokens
        total = estimate_messages_tokens(messages, self._estimator)
        if total <= budget:
            return messages

        kept = trim_to_budget(messages, budget, self._estimator)
        logger.info(
            f"Enforced token limits for user: {user_id}, kept {len(kept)}/{len(messages)} messages"
        )
        return kept

    def summarize(self, user_id: str) -> dict[str, Any]:
        """Client-facing status of a session; not used as model input."""
        session = self.get_or_create(user_id)
        duration = self._clock() - session.created_at
        return {
            "userId": session.user_id,
            "sessionDurationMinutes": math.floor(duration / 60),
            "messageCount": len(session.message_history),
            "lastActivity": session.last_updated,
            "hasLocation": session.has_location,
            "recentSearchCount": len(session.recent_searches),
        }

    def recent_history(self, user_id: str, limit: int = 10) -> list[dict[str, Any]]:
        """Last ``limit`` stored messages, timestamps included."""
        session = self.get_or_create(user_id)
        return [m.to_dict() for m in session.message_history[-limit:]]

    def is_active(self, user_id: str, within_s: float = 5 * 60) -> bool:
        """Whether the user's session was updated within ``within_s`` seconds."""
        session = self._sessions.get(user_id)
        return session is not None and self._clock() - session.last_updated < within_s

    def sweep_expired(self, now: float | None = None) -> int:
        """Delete every session past the age threshold. Returns the count removed."""
        now = self._clock() if now is None else now
        expired = [uid for uid, s in self._sessions.items() if self._is_expired(s, now)]
        for user_id in expired:
            del self._sessions[user_id]

        if expired:
            logger.info(f"Cleaned up {len(expired)} expired sessions")
        return len(expired)

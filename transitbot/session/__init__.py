"""Per-user session state."""

from transitbot.session.models import Exchange, Message, Preferences, Session
from transitbot.session.store import SessionStore
from transitbot.session.sweeper import SessionSweeper

__all__ = ["Exchange", "Message", "Preferences", "Session", "SessionStore", "SessionSweeper"]

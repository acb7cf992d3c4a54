"""transitbot - conversational assistant for live bus tracking."""

__version__ = "0.1.0"
__logo__ = "🚌"

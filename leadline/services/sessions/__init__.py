"""Channel sessions."""

from leadline.services.sessions.store import ChannelSessionStore

__all__ = ["ChannelSessionStore"]

"""Live delivery of game events over WebSockets."""

from .connection import ConnectionState, LiveConnection
from .notifier import NotificationDispatcher
from .registry import SessionRegistry

__all__ = ["ConnectionState", "LiveConnection", "NotificationDispatcher", "SessionRegistry"]

"""Event handlers subscribed to the event publisher."""

from .logging_handler import LoggingEventHandler
from .websocket_handler import WebSocketEventHandler

__all__ = ["LoggingEventHandler", "WebSocketEventHandler"]

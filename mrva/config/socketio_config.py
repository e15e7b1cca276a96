"""
SocketIO Configuration

Flask-SocketIO setup for pushing variant analysis updates to browsers.
A Redis message queue lets Celery monitor workers emit to connected clients.
"""

import logging
import os
from typing import Optional

from flask_socketio import SocketIO

logger = logging.getLogger(__name__)

# Process-wide SocketIO instance, set by init_socketio
socketio: Optional[SocketIO] = None


def init_socketio(app) -> SocketIO:
    """
    Initialize Flask-SocketIO for the application.

    Environment:
        SOCKETIO_MESSAGE_QUEUE: message queue URL, defaults to REDIS_URL; empty disables it
        SOCKETIO_ASYNC_MODE: Flask-SocketIO async mode (default "threading")
        SOCKETIO_CORS_ORIGINS: comma separated allowed origins (default "*")

    Args:
        app: Flask application instance

    Returns:
        SocketIO instance
    """
    global socketio

    message_queue = os.getenv(
        "SOCKETIO_MESSAGE_QUEUE", os.getenv("REDIS_URL", "redis://localhost:6379/0")
    ) or None
    origins = os.getenv("SOCKETIO_CORS_ORIGINS", "*")

    try:
        socketio = SocketIO(
            app,
            cors_allowed_origins="*" if origins == "*" else origins.split(","),
            message_queue=message_queue,
            async_mode=os.getenv("SOCKETIO_ASYNC_MODE", "threading"),
            logger=False,
            engineio_logger=False,
        )
    except Exception as e:
        logger.error(f"Failed to initialize SocketIO: {e}")
        raise

    logger.info(f"SocketIO initialized (message queue: {message_queue or 'none'})")
    return socketio


def get_socketio() -> Optional[SocketIO]:
    """Return the SocketIO instance, or None if not initialized."""
    return socketio


def is_socketio_enabled() -> bool:
    """
    Check if SocketIO is enabled and initialized.

    Returns:
        True if events should be emitted
    """
    socketio_enabled = os.getenv("SOCKETIO_ENABLED", "true").lower() == "true"
    return socketio_enabled and socketio is not None

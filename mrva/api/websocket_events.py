"""
WebSocket Events

Client subscriptions and server pushes for variant analysis updates.
Clients join one room per variant analysis they watch.
"""

import logging

from flask import request
from flask_socketio import emit, join_room, leave_room

from mrva.config.socketio_config import get_socketio

logger = logging.getLogger(__name__)


def _room(variant_analysis_id) -> str:
    return f"variant_analysis:{variant_analysis_id}"


def register_socketio_events(app):
    """
    Register WebSocket event handlers with the Flask-SocketIO instance.

    Args:
        app: Flask application instance
    """
    socketio = get_socketio()

    if socketio is None:
        logger.warning("SocketIO not initialized, skipping event registration")
        return

    @socketio.on("connect")
    def handle_connect():
        logger.info(f"Client connected: {request.sid}")
        emit("connected", {"message": "Connected to server", "client_id": request.sid})

    @socketio.on("disconnect")
    def handle_disconnect():
        logger.info(f"Client disconnected: {request.sid}")

    @socketio.on("subscribe_variant_analysis")
    def handle_subscribe(data):
        """
        Subscribe to updates of one variant analysis.

        Args:
            data: dict with 'variant_analysis_id' field
        """
        variant_analysis_id = (data or {}).get("variant_analysis_id")
        if variant_analysis_id is None:
            emit("error", {"message": "Missing variant_analysis_id"})
            return

        join_room(_room(variant_analysis_id))
        logger.info(f"Client {request.sid} subscribed to variant analysis {variant_analysis_id}")
        emit("subscribed", {"variant_analysis_id": variant_analysis_id})

    @socketio.on("unsubscribe_variant_analysis")
    def handle_unsubscribe(data):
        """
        Unsubscribe from updates of one variant analysis.

        Args:
            data: dict with 'variant_analysis_id' field
        """
        variant_analysis_id = (data or {}).get("variant_analysis_id")
        if variant_analysis_id is None:
            emit("error", {"message": "Missing variant_analysis_id"})
            return

        leave_room(_room(variant_analysis_id))
        logger.info(f"Client {request.sid} unsubscribed from variant analysis {variant_analysis_id}")
        emit("unsubscribed", {"variant_analysis_id": variant_analysis_id})

    logger.info("SocketIO event handlers registered")


def emit_variant_analysis_updated(variant_analysis_id: int, variant_analysis_data: dict):
    """
    Push a variant analysis update to its subscribers.

    Args:
        variant_analysis_id: Variant analysis identifier
        variant_analysis_data: Serialized variant analysis
    """
    socketio = get_socketio()
    if socketio is None:
        return
    socketio.emit(
        "variant_analysis_updated",
        {"variant_analysis_id": variant_analysis_id, "variant_analysis": variant_analysis_data},
        room=_room(variant_analysis_id),
    )


def emit_variant_analysis_removed(variant_analysis_id: int):
    """Tell subscribers a variant analysis was removed."""
    socketio = get_socketio()
    if socketio is None:
        return
    socketio.emit(
        "variant_analysis_removed",
        {"variant_analysis_id": variant_analysis_id},
        room=_room(variant_analysis_id),
    )


def emit_repo_download_status(variant_analysis_id: int, repository_id: int, download_status: str):
    """Push a repository download status change to subscribers."""
    socketio = get_socketio()
    if socketio is None:
        return
    socketio.emit(
        "repo_download_status",
        {
            "variant_analysis_id": variant_analysis_id,
            "repository_id": repository_id,
            "download_status": download_status,
        },
        room=_room(variant_analysis_id),
    )

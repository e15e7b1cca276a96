"""
WebSocket Event Handler

Translates domain events into WebSocket messages for real-time client notifications.
"""

import logging

from mrva.api.websocket_events import (
    emit_repo_download_status,
    emit_variant_analysis_removed,
    emit_variant_analysis_updated,
)
from mrva.config.socketio_config import is_socketio_enabled
from mrva.domain.events import (
    RepoDownloadStatusChangedEvent,
    VariantAnalysisRemovedEvent,
    VariantAnalysisUpdatedEvent,
)

logger = logging.getLogger(__name__)


class WebSocketEventHandler:
    """
    Event handler that emits WebSocket messages for domain events.

    Checks if SocketIO is enabled before attempting to emit messages.
    """

    def handle_variant_analysis_updated(self, event: VariantAnalysisUpdatedEvent) -> None:
        if not is_socketio_enabled():
            logger.debug("SocketIO disabled, skipping variant_analysis_updated emission")
            return

        try:
            emit_variant_analysis_updated(event.aggregate_id, event.variant_analysis.to_dict())
        except Exception as e:
            logger.error(
                f"Error emitting update for variant analysis {event.aggregate_id}: {e}",
                exc_info=True,
            )

    def handle_variant_analysis_removed(self, event: VariantAnalysisRemovedEvent) -> None:
        if not is_socketio_enabled():
            logger.debug("SocketIO disabled, skipping variant_analysis_removed emission")
            return

        try:
            emit_variant_analysis_removed(event.aggregate_id)
        except Exception as e:
            logger.error(
                f"Error emitting removal of variant analysis {event.aggregate_id}: {e}",
                exc_info=True,
            )

    def handle_repo_download_status(self, event: RepoDownloadStatusChangedEvent) -> None:
        if not is_socketio_enabled():
            logger.debug("SocketIO disabled, skipping repo_download_status emission")
            return

        try:
            emit_repo_download_status(
                event.aggregate_id, event.repository_id, event.download_status.value
            )
        except Exception as e:
            logger.error(
                f"Error emitting repo download status for variant analysis "
                f"{event.aggregate_id}: {e}",
                exc_info=True,
            )

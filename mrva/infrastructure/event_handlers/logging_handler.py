"""
Logging Event Handler

Infrastructure event handler for logging domain events.
Domain layer remains unaware of logging infrastructure.
"""

import logging

from mrva.domain.events import (
    DomainEvent,
    RepoDownloadStatusChangedEvent,
    VariantAnalysisRemovedEvent,
    VariantAnalysisUpdatedEvent,
)
from mrva.domain.variant_analysis.value_objects import RepoDownloadStatus


class LoggingEventHandler:
    """Infrastructure event handler that logs domain events."""

    def __init__(self, logger: logging.Logger):
        """
        Initialize with logger instance.

        Args:
            logger: Python logging.Logger instance
        """
        self.logger = logger

    def handle(self, event: DomainEvent) -> None:
        """
        Handle domain event by logging it.

        Args:
            event: Domain event to log
        """
        try:
            if isinstance(event, VariantAnalysisUpdatedEvent):
                self._handle_updated(event)
            elif isinstance(event, VariantAnalysisRemovedEvent):
                self._handle_removed(event)
            elif isinstance(event, RepoDownloadStatusChangedEvent):
                self._handle_repo_download_status(event)
            else:
                self.logger.debug(
                    f"Unhandled event: {event.__class__.__name__} "
                    f"(aggregate_id={event.aggregate_id})"
                )
        except Exception as e:
            self.logger.error(
                f"Error in logging event handler for {event.__class__.__name__}: {e}",
                exc_info=True,
            )

    def _handle_updated(self, event: VariantAnalysisUpdatedEvent) -> None:
        variant_analysis = event.variant_analysis
        self.logger.info(
            f"Variant analysis updated: id={event.aggregate_id}, "
            f"status={variant_analysis.status.value}, "
            f"scanned_repos={len(variant_analysis.scanned_repos)}"
        )

    def _handle_removed(self, event: VariantAnalysisRemovedEvent) -> None:
        self.logger.info(f"Variant analysis removed: id={event.aggregate_id}")

    def _handle_repo_download_status(self, event: RepoDownloadStatusChangedEvent) -> None:
        message = (
            f"Repo download {event.download_status.value}: "
            f"variant_analysis_id={event.aggregate_id}, repository_id={event.repository_id}"
        )
        if event.download_status == RepoDownloadStatus.FAILED:
            self.logger.warning(message)
        elif event.download_status == RepoDownloadStatus.IN_PROGRESS:
            self.logger.debug(message)
        else:
            self.logger.info(message)

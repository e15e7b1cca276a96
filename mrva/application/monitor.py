"""
Variant Analysis Monitor

Polls the remote control plane for a running variant analysis, records every
new summary and queues downloads as repositories finish.
"""

import logging
import threading
from typing import Optional, Set

from mrva.domain.errors import RemoteApiError
from mrva.domain.variant_analysis.entities import VariantAnalysis
from mrva.domain.variant_analysis.value_objects import (
    RepoAnalysisStatus,
    RepoDownloadStatus,
)

from .cancellation import CancellationToken
from .variant_analysis_manager import VariantAnalysisManager

logger = logging.getLogger(__name__)

DEFAULT_SLEEP_SECONDS = 5.0
# 24 hours at the default sleep
DEFAULT_MAX_ATTEMPTS = 17280


class VariantAnalysisMonitor:
    """
    Polling loop for one variant analysis at a time.

    Each attempt waits sleep_seconds (waking early on cancellation), fetches
    the summary, hands it to the manager and enqueues downloads for
    repositories whose analysis succeeded since the last attempt. Stops on a
    final status, a failure reason, cancellation, removal or after
    max_attempts attempts.
    """

    def __init__(
        self,
        manager: VariantAnalysisManager,
        sleep_seconds: float = DEFAULT_SLEEP_SECONDS,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ):
        """
        Initialize monitor.

        Args:
            manager: Orchestrator receiving updates and downloads
            sleep_seconds: Delay before each poll
            max_attempts: Maximum number of polls
        """
        self.manager = manager
        self.sleep_seconds = sleep_seconds
        self.max_attempts = max_attempts

    def monitor_variant_analysis(
        self,
        variant_analysis: VariantAnalysis,
        token: Optional[CancellationToken] = None,
    ) -> VariantAnalysis:
        """
        Poll a variant analysis until there is nothing left to wait for.

        Failed polls are logged and count as an attempt.

        Args:
            variant_analysis: Variant analysis to monitor
            token: Cancellation token, the variant analysis' token when None

        Returns:
            The last known version of the variant analysis

        Raises:
            AuthenticationFailedError: If credentials cannot be acquired
        """
        token = token or self.manager.cancellation_token(variant_analysis.id)
        queued = self._already_downloaded(variant_analysis)
        current = variant_analysis

        for attempt in range(1, self.max_attempts + 1):
            if token.wait(self.sleep_seconds):
                logger.info(f"Monitoring of variant analysis {current.id} cancelled")
                return current

            credentials = self.manager.get_credentials()
            try:
                summary = self.manager.api_client.get_variant_analysis(credentials, current)
            except RemoteApiError as e:
                logger.warning(
                    f"Poll {attempt} of variant analysis {current.id} failed: {e}"
                )
                continue

            if current.id not in self.manager.registry:
                logger.info(f"Variant analysis {current.id} was removed, stop monitoring")
                return current

            current = self.manager.on_variant_analysis_updated(summary)
            self._enqueue_finished_repos(summary, queued, token)

            if summary.is_final() or summary.failure_reason is not None:
                logger.info(
                    f"Variant analysis {current.id} finished with status {summary.status.value}"
                )
                return current

        logger.warning(
            f"Stopped monitoring variant analysis {current.id} after {self.max_attempts} attempts"
        )
        return current

    def _already_downloaded(self, variant_analysis: VariantAnalysis) -> Set[int]:
        return {
            state.repository_id
            for state in self.manager.get_repo_states(variant_analysis.id)
            if state.download_status == RepoDownloadStatus.SUCCEEDED
        }

    def _enqueue_finished_repos(
        self,
        summary: VariantAnalysis,
        queued: Set[int],
        token: CancellationToken,
    ) -> None:
        for scanned_repo in summary.scanned_repos:
            repository_id = scanned_repo.repository.id
            if scanned_repo.analysis_status != RepoAnalysisStatus.SUCCEEDED:
                continue
            if repository_id in queued:
                continue
            queued.add(repository_id)
            self.manager.enqueue_download(scanned_repo, summary, token)


class ThreadMonitoringCommand:
    """
    Monitoring command that polls on a daemon thread per variant analysis.

    Used when no Celery worker runs next to the web process.
    """

    def __init__(self, monitor: VariantAnalysisMonitor):
        self.monitor = monitor
        self._threads = {}
        self._lock = threading.Lock()

    def __call__(self, variant_analysis: VariantAnalysis) -> None:
        with self._lock:
            running = self._threads.get(variant_analysis.id)
            if running is not None and running.is_alive():
                logger.debug(f"Variant analysis {variant_analysis.id} is already monitored")
                return

            thread = threading.Thread(
                target=self._run,
                args=(variant_analysis,),
                name=f"mrva-monitor-{variant_analysis.id}",
                daemon=True,
            )
            self._threads[variant_analysis.id] = thread
        thread.start()

    def _run(self, variant_analysis: VariantAnalysis) -> None:
        try:
            self.monitor.monitor_variant_analysis(variant_analysis)
        except Exception as e:
            logger.error(
                f"Monitoring of variant analysis {variant_analysis.id} failed: {e}",
                exc_info=True,
            )
        finally:
            with self._lock:
                if self._threads.get(variant_analysis.id) is threading.current_thread():
                    del self._threads[variant_analysis.id]

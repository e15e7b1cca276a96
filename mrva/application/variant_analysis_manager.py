"""
Variant Analysis Manager

Application service orchestrating variant analyses: rehydration after a
restart, automatic result downloads, cancellation, removal and repo list export.
"""

import dataclasses
import json
import logging
from concurrent.futures import Future
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock, RLock
from typing import Callable, Dict, List, Optional

from mrva.domain.errors import (
    AuthenticationFailedError,
    MissingWorkflowRunError,
    ResultStorageError,
    UserCancellationError,
    VariantAnalysisNotFoundError,
    VariantAnalysisStateError,
)
from mrva.domain.events import (
    RepoDownloadStatusChangedEvent,
    VariantAnalysisRemovedEvent,
    VariantAnalysisUpdatedEvent,
)
from mrva.domain.variant_analysis.entities import (
    RepoDownloadState,
    Repository,
    ScannedRepository,
    VariantAnalysis,
    VariantAnalysisSubmission,
)
from mrva.domain.variant_analysis.filter_sort import filter_and_sort_repositories
from mrva.domain.variant_analysis.repositories import (
    Credentials,
    CredentialsProvider,
    RepoStatesRepository,
    VariantAnalysisApiClient,
    VariantAnalysisRepository,
)
from mrva.domain.variant_analysis.services import VariantAnalysisRegistry
from mrva.domain.variant_analysis.value_objects import (
    FilterSortState,
    RepoAnalysisStatus,
    RepoDownloadStatus,
)
from mrva.infrastructure.local_storage import LocalVariantAnalysisStorage

from .cancellation import CancellationToken
from .download_queue import DownloadQueue, DownloadTask
from .event_publisher import EventPublisher
from .results_manager import VariantAnalysisResultsManager

logger = logging.getLogger(__name__)

MonitoringCommand = Callable[[VariantAnalysis], None]


class VariantAnalysisManager:
    """
    Application service for variant analysis orchestration.

    Owns the registry, the download queue and the repo states of every
    variant analysis. Other components read state through its accessors,
    never from disk. Polling the remote control plane is delegated to the
    monitoring command.
    """

    def __init__(
        self,
        api_client: VariantAnalysisApiClient,
        credentials_provider: CredentialsProvider,
        storage: LocalVariantAnalysisStorage,
        repo_states_store: RepoStatesRepository,
        results_manager: VariantAnalysisResultsManager,
        event_publisher: EventPublisher,
        history_repository: Optional[VariantAnalysisRepository] = None,
        monitoring_command: Optional[MonitoringCommand] = None,
        max_concurrent_downloads: int = 1,
        reload_on_read: bool = False,
    ):
        """
        Initialize VariantAnalysisManager.

        Args:
            api_client: Remote control plane client
            credentials_provider: Source of GitHub credentials
            storage: Per-variant-analysis storage directories
            repo_states_store: Per-repository download state store
            results_manager: Materializes downloaded results
            event_publisher: Publisher for domain events
            history_repository: Optional job history, rehydrated on startup
            monitoring_command: Called with a variant analysis that needs polling
            max_concurrent_downloads: Download queue workers
            reload_on_read: Re-read history and repo states on every read, for
                processes that share storage with a separate monitoring worker
        """
        self.api_client = api_client
        self.credentials_provider = credentials_provider
        self.storage = storage
        self.repo_states_store = repo_states_store
        self.results_manager = results_manager
        self.event_publisher = event_publisher
        self.history_repository = history_repository
        self.monitoring_command = monitoring_command
        self.reload_on_read = reload_on_read

        self.registry = VariantAnalysisRegistry()
        self.download_queue = DownloadQueue(
            self._run_download_task, max_workers=max_concurrent_downloads
        )
        self._tokens: Dict[int, CancellationToken] = {}
        self._tokens_lock = Lock()
        # Held while a job directory is deleted or a finished download is written to it
        self._storage_lock = RLock()

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe_updated(self, handler: Callable[[VariantAnalysisUpdatedEvent], None]):
        """Observe additions and updates. Returns an unsubscribe callable."""
        return self.event_publisher.subscribe(VariantAnalysisUpdatedEvent, handler)

    def subscribe_removed(self, handler: Callable[[VariantAnalysisRemovedEvent], None]):
        """Observe removals. Returns an unsubscribe callable."""
        return self.event_publisher.subscribe(VariantAnalysisRemovedEvent, handler)

    def subscribe_repo_states_updated(
        self, handler: Callable[[RepoDownloadStatusChangedEvent], None]
    ):
        """Observe repository download status changes. Returns an unsubscribe callable."""
        return self.event_publisher.subscribe(RepoDownloadStatusChangedEvent, handler)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def rehydrate_variant_analysis(self, variant_analysis: VariantAnalysis) -> None:
        """
        Restore a variant analysis known from a previous run.

        Without a storage directory the variant analysis is forgotten and a
        removal event is published. Otherwise its repo states are loaded, it
        is registered, and monitoring resumes unless it is complete.

        Args:
            variant_analysis: Variant analysis from job history
        """
        if not self.storage.exists(variant_analysis.id):
            logger.info(
                f"No storage for variant analysis {variant_analysis.id}, removing it"
            )
            self.registry.remove(variant_analysis.id)
            self.event_publisher.publish(
                VariantAnalysisRemovedEvent.for_variant_analysis(variant_analysis)
            )
            self._delete_history(variant_analysis.id)
            return

        repo_states = self.repo_states_store.load(variant_analysis.id)
        self.registry.register(variant_analysis)
        self.cancellation_token(variant_analysis.id)

        if variant_analysis.is_complete(repo_states):
            logger.debug(f"Variant analysis {variant_analysis.id} is complete")
            return

        logger.info(f"Resuming monitoring of variant analysis {variant_analysis.id}")
        self._start_monitoring(variant_analysis)

    def rehydrate_all(self) -> int:
        """
        Rehydrate every variant analysis in the job history.

        A variant analysis that fails to rehydrate is logged and skipped.

        Returns:
            Number of variant analyses registered afterwards
        """
        if self.history_repository is None:
            return len(self.registry)

        for variant_analysis in self.history_repository.list_all():
            try:
                self.rehydrate_variant_analysis(variant_analysis)
            except Exception as e:
                logger.error(
                    f"Failed to rehydrate variant analysis {variant_analysis.id}: {e}",
                    exc_info=True,
                )

        logger.info(f"Rehydrated {len(self.registry)} variant analyses")
        return len(self.registry)

    def submit_variant_analysis(
        self,
        submission: VariantAnalysisSubmission,
        token: Optional[CancellationToken] = None,
    ) -> VariantAnalysis:
        """
        Start a variant analysis and begin monitoring it.

        Args:
            submission: What to run and where
            token: Cancellation token checked before contacting the controller

        Returns:
            The registered variant analysis

        Raises:
            UserCancellationError: If cancelled before submission
            AuthenticationFailedError: If credentials cannot be acquired
            RemoteApiError: If the controller rejects the submission
        """
        token = token or CancellationToken()
        token.raise_if_cancelled("Variant analysis submission cancelled")

        credentials = self.get_credentials()
        variant_analysis = self.api_client.submit_variant_analysis(credentials, submission)
        logger.info(
            f"Submitted variant analysis {variant_analysis.id} "
            f"({submission.query.name}, {submission.query.language})"
        )

        self.storage.create(variant_analysis.id)
        self.repo_states_store.load(variant_analysis.id)
        with self._tokens_lock:
            self._tokens[variant_analysis.id] = token

        self.on_variant_analysis_updated(variant_analysis)
        self._start_monitoring(variant_analysis)
        return variant_analysis

    def on_variant_analysis_updated(self, variant_analysis: VariantAnalysis) -> VariantAnalysis:
        """
        Record a new version of a variant analysis.

        Args:
            variant_analysis: Latest known version

        Returns:
            The version now registered (the previous one when the update was ignored)
        """
        event = self.registry.add_or_update(variant_analysis)
        if event is None:
            return self.registry.get(variant_analysis.id) or variant_analysis

        self._save_history(event.variant_analysis)
        self.event_publisher.publish(event)
        return event.variant_analysis

    def cancel_variant_analysis(self, variant_analysis_id: int) -> VariantAnalysis:
        """
        Ask the controller to cancel a running variant analysis.

        Local downloads of repositories that already finished continue.

        Args:
            variant_analysis_id: Variant analysis identifier

        Returns:
            The variant analysis, now cancelling

        Raises:
            VariantAnalysisNotFoundError: If no such variant analysis is registered
            MissingWorkflowRunError: If it has no workflow run to cancel
            VariantAnalysisStateError: If it already reached a final status
            AuthenticationFailedError: If credentials cannot be acquired
            RemoteApiError: If the cancel request fails
        """
        variant_analysis = self.registry.get(variant_analysis_id)
        if variant_analysis is None:
            raise VariantAnalysisNotFoundError(variant_analysis_id)

        if not variant_analysis.has_workflow_run():
            raise MissingWorkflowRunError(variant_analysis_id)

        if variant_analysis.is_final():
            raise VariantAnalysisStateError(
                f"Variant analysis {variant_analysis_id} is already "
                f"{variant_analysis.status.value}"
            )

        credentials = self.get_credentials()
        self.api_client.cancel_variant_analysis(credentials, variant_analysis)

        cancelling = dataclasses.replace(variant_analysis)
        try:
            cancelling.mark_cancelling()
        except ValueError as e:
            raise VariantAnalysisStateError(str(e))

        logger.info(f"Cancelling variant analysis {variant_analysis_id}")
        return self.on_variant_analysis_updated(cancelling)

    def remove_variant_analysis(self, variant_analysis: VariantAnalysis) -> None:
        """
        Delete a variant analysis with its results and storage.

        Stops monitoring and pending downloads of the variant analysis. Safe
        to call when some results were never downloaded.

        Args:
            variant_analysis: Variant analysis to remove
        """
        with self._tokens_lock:
            token = self._tokens.pop(variant_analysis.id, None)
        if token is not None:
            token.cancel()

        # An in-flight download finishes writing before the directory goes
        with self._storage_lock:
            self.results_manager.remove_analysis_results(variant_analysis)
            self.storage.remove(variant_analysis.id)
            self.repo_states_store.forget(variant_analysis.id)

        event = self.registry.remove(variant_analysis.id)
        self.event_publisher.publish(
            event or VariantAnalysisRemovedEvent.for_variant_analysis(variant_analysis)
        )
        self._delete_history(variant_analysis.id)
        logger.info(f"Removed variant analysis {variant_analysis.id}")

    # ------------------------------------------------------------------
    # Downloads
    # ------------------------------------------------------------------

    def enqueue_download(
        self,
        scanned_repo: ScannedRepository,
        variant_analysis: VariantAnalysis,
        token: Optional[CancellationToken] = None,
    ) -> Future:
        """
        Queue the automatic download of one repository's results.

        Args:
            scanned_repo: Repository to download
            variant_analysis: Owning variant analysis
            token: Cancellation token, the variant analysis' token when None

        Returns:
            Future resolved once the download was attempted
        """
        token = token or self.cancellation_token(variant_analysis.id)
        return self.download_queue.enqueue(
            DownloadTask(scanned_repo=scanned_repo, variant_analysis=variant_analysis, token=token)
        )

    def downloads_queue_size(self) -> int:
        return self.download_queue.size()

    def wait_for_downloads(self, timeout: Optional[float] = None) -> bool:
        """Block until the download queue is empty; False on timeout."""
        return self.download_queue.wait_idle(timeout)

    def _run_download_task(self, task: DownloadTask) -> None:
        self.auto_download_variant_analysis_result(
            task.scanned_repo, task.variant_analysis, task.token
        )

    def auto_download_variant_analysis_result(
        self,
        scanned_repo: ScannedRepository,
        variant_analysis: VariantAnalysis,
        token: CancellationToken,
    ) -> None:
        """
        Download and store one repository's results unless already done.

        Nothing happens when the token is already cancelled or the repository
        was downloaded before. A repository without an artifact is left
        without a state. A failed fetch is recorded as failed and re-raised.

        Args:
            scanned_repo: Repository to download
            variant_analysis: Owning variant analysis
            token: Cancellation token checked before each remote fetch

        Raises:
            UserCancellationError: If cancelled between the two fetches
            AuthenticationFailedError: If credentials cannot be acquired
            Exception: Whatever the failing fetch or unpack raised
        """
        repository = scanned_repo.repository
        if token.is_cancellation_requested:
            logger.debug(f"Skipping download of {repository.full_name}: cancelled")
            return

        state = self._get_repo_states(variant_analysis.id).get(repository.id)
        if state is not None and state.download_status == RepoDownloadStatus.SUCCEEDED:
            logger.debug(f"Skipping download of {repository.full_name}: already downloaded")
            return

        credentials = self.get_credentials()

        try:
            repo_task = self.api_client.get_variant_analysis_repo(
                credentials, variant_analysis, scanned_repo
            )
        except Exception:
            self._record_download_failure(variant_analysis.id, repository.id, token)
            raise

        if not repo_task.has_artifact():
            logger.info(f"No results artifact for {repository.full_name}")
            return

        token.raise_if_cancelled(f"Download of {repository.full_name} cancelled")
        self._publish_repo_status(variant_analysis.id, repository.id, RepoDownloadStatus.IN_PROGRESS)

        try:
            payload = self.api_client.get_variant_analysis_repo_result(
                credentials, repo_task.artifact_url
            )
        except Exception:
            self._record_download_failure(variant_analysis.id, repository.id, token)
            raise

        with self._storage_lock:
            self._raise_if_discarded(variant_analysis.id, repository, token)
            try:
                self.results_manager.store_result(variant_analysis.id, repo_task, payload)
            except Exception:
                self._record_download_failure(variant_analysis.id, repository.id, token)
                raise
            self._set_repo_status(variant_analysis.id, repository.id, RepoDownloadStatus.SUCCEEDED)

        logger.info(f"Downloaded results of {repository.full_name}")

    def _raise_if_discarded(
        self, variant_analysis_id: int, repository: Repository, token: CancellationToken
    ) -> None:
        """
        Raises:
            UserCancellationError: If the download was cancelled or the job's
                storage removed while the payload was fetched
        """
        token.raise_if_cancelled(f"Download of {repository.full_name} cancelled")
        if not self.storage.exists(variant_analysis_id):
            raise UserCancellationError(
                f"Storage of variant analysis {variant_analysis_id} was removed; "
                f"discarding results of {repository.full_name}"
            )

    def retry_repo_download(
        self,
        variant_analysis_id: int,
        repository_id: int,
        token: Optional[CancellationToken] = None,
    ) -> Future:
        """
        Manually queue another download of a repository.

        Args:
            variant_analysis_id: Variant analysis identifier
            repository_id: Repository identifier

        Returns:
            Future resolved once the download was attempted

        Raises:
            VariantAnalysisNotFoundError: If no such variant analysis is registered
            VariantAnalysisStateError: If the repository has nothing to (re)download
        """
        variant_analysis = self.registry.require(variant_analysis_id)
        scanned_repo = variant_analysis.find_scanned_repo(repository_id)
        if scanned_repo is None:
            raise VariantAnalysisStateError(
                f"Repository {repository_id} is not part of variant analysis {variant_analysis_id}"
            )
        if scanned_repo.analysis_status != RepoAnalysisStatus.SUCCEEDED:
            raise VariantAnalysisStateError(
                f"Repository {repository_id} has no results to download "
                f"(analysis {scanned_repo.analysis_status.value})"
            )

        state = self._get_repo_states(variant_analysis_id).get(repository_id)
        if state is not None and not state.download_status.can_retry():
            raise VariantAnalysisStateError(
                f"Repository {repository_id} download is {state.download_status.value}"
            )

        logger.info(f"Retrying download of {scanned_repo.repository.full_name}")
        return self.enqueue_download(scanned_repo, variant_analysis, token)

    def _set_repo_status(self, variant_analysis_id: int, repository_id: int, status: RepoDownloadStatus) -> None:
        self.repo_states_store.set_status(variant_analysis_id, repository_id, status)
        self._publish_repo_status(variant_analysis_id, repository_id, status)

    def _record_download_failure(
        self, variant_analysis_id: int, repository_id: int, token: CancellationToken
    ) -> None:
        # The caller re-raises the download error; a storage error here must not replace it
        try:
            with self._storage_lock:
                if token.is_cancellation_requested or not self.storage.exists(variant_analysis_id):
                    logger.debug(
                        f"Not recording failed download of repository {repository_id}: "
                        f"variant analysis {variant_analysis_id} cancelled or removed"
                    )
                    return
                self._set_repo_status(variant_analysis_id, repository_id, RepoDownloadStatus.FAILED)
        except ResultStorageError as e:
            logger.error(
                f"Could not record failed download of repository {repository_id}: {e}",
                exc_info=True,
            )

    def _publish_repo_status(self, variant_analysis_id: int, repository_id: int, status: RepoDownloadStatus) -> None:
        self.event_publisher.publish(RepoDownloadStatusChangedEvent(
            aggregate_id=variant_analysis_id,
            occurred_at=datetime.now(timezone.utc),
            repository_id=repository_id,
            download_status=status,
        ))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_variant_analysis(self, variant_analysis_id: int) -> Optional[VariantAnalysis]:
        self._reload(variant_analysis_id)
        return self.registry.get(variant_analysis_id)

    def require_variant_analysis(self, variant_analysis_id: int) -> VariantAnalysis:
        """
        Raises:
            VariantAnalysisNotFoundError: If no such variant analysis is registered
        """
        self._reload(variant_analysis_id)
        return self.registry.require(variant_analysis_id)

    def list_variant_analyses(self) -> List[VariantAnalysis]:
        return self.registry.list()

    @property
    def variant_analyses_size(self) -> int:
        return len(self.registry)

    def get_variant_analysis_storage_location(self, variant_analysis_id: int) -> Path:
        return self.storage.storage_location(variant_analysis_id)

    def get_repo_states(self, variant_analysis_id: int) -> List[RepoDownloadState]:
        """Download states of a variant analysis' repositories, ordered by repository id."""
        self._reload(variant_analysis_id)
        repo_states = self._get_repo_states(variant_analysis_id)
        return [repo_states[key] for key in sorted(repo_states)]

    def is_complete(self, variant_analysis: VariantAnalysis) -> bool:
        return variant_analysis.is_complete(self._get_repo_states(variant_analysis.id))

    def export_repo_list(
        self,
        variant_analysis_id: int,
        filter_sort_state: Optional[FilterSortState] = None,
    ) -> Optional[str]:
        """
        Build a "new-repo-list" JSON fragment of repositories with results.

        The fragment has no enclosing braces so it can be pasted into a
        databases configuration document.

        Args:
            variant_analysis_id: Variant analysis identifier
            filter_sort_state: Filter/sort options, name order when None

        Returns:
            The fragment, or None when no repository has results

        Raises:
            VariantAnalysisNotFoundError: If no such variant analysis is registered
        """
        variant_analysis = self.require_variant_analysis(variant_analysis_id)
        repositories = [
            scanned_repo
            for scanned_repo in filter_and_sort_repositories(
                variant_analysis.scanned_repos, filter_sort_state
            )
            if scanned_repo.has_results()
        ]

        if not repositories:
            logger.info(f"No repositories with results to export for variant analysis {variant_analysis_id}")
            return None

        lines = ['"new-repo-list": [']
        for index, scanned_repo in enumerate(repositories):
            separator = "," if index < len(repositories) - 1 else ""
            lines.append(f"    {json.dumps(scanned_repo.repository.full_name)}{separator}")
        lines.append("]")
        return "\n".join(lines)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def get_credentials(self) -> Credentials:
        """
        Acquire validated credentials.

        Raises:
            AuthenticationFailedError: If the provider fails or has no credentials
        """
        try:
            credentials = self.credentials_provider.get_credentials()
        except Exception as e:
            raise AuthenticationFailedError(e) from e

        if credentials is None:
            raise AuthenticationFailedError()
        return credentials

    def cancellation_token(self, variant_analysis_id: int) -> CancellationToken:
        """The cancellation token shared by all work on a variant analysis."""
        with self._tokens_lock:
            return self._tokens.setdefault(variant_analysis_id, CancellationToken())

    def adopt_variant_analysis(self, variant_analysis: VariantAnalysis) -> None:
        """
        Register a variant analysis handed over by another process.

        Loads its repo states without starting monitoring; used by monitoring
        workers that run outside the web process.
        """
        if not self.storage.exists(variant_analysis.id):
            self.storage.create(variant_analysis.id)
        self.repo_states_store.load(variant_analysis.id)
        self.registry.register(variant_analysis)
        self.cancellation_token(variant_analysis.id)

    def shutdown(self, wait: bool = False) -> None:
        """Cancel all work and stop the download queue."""
        with self._tokens_lock:
            tokens = list(self._tokens.values())
        for token in tokens:
            token.cancel()
        self.download_queue.shutdown(wait=wait)

    def _get_repo_states(self, variant_analysis_id: int) -> Dict[int, RepoDownloadState]:
        repo_states = self.repo_states_store.get(variant_analysis_id)
        if not repo_states and self.storage.exists(variant_analysis_id):
            repo_states = self.repo_states_store.load(variant_analysis_id)
        return repo_states

    def _start_monitoring(self, variant_analysis: VariantAnalysis) -> None:
        if self.monitoring_command is None:
            logger.warning(
                f"No monitoring command configured, variant analysis {variant_analysis.id} "
                f"will not be polled"
            )
            return
        self.monitoring_command(variant_analysis)

    def _reload(self, variant_analysis_id: int) -> None:
        if not self.reload_on_read or self.history_repository is None:
            return
        stored = self.history_repository.get(variant_analysis_id)
        if stored is None:
            return
        self.registry.add_or_update(stored)
        if self.storage.exists(variant_analysis_id):
            self.repo_states_store.load(variant_analysis_id)

    def _save_history(self, variant_analysis: VariantAnalysis) -> None:
        if self.history_repository is None:
            return
        if not self.history_repository.save(variant_analysis):
            logger.warning(f"Failed to save variant analysis {variant_analysis.id} to history")

    def _delete_history(self, variant_analysis_id: int) -> None:
        if self.history_repository is not None:
            self.history_repository.delete(variant_analysis_id)

"""
Unit tests for VariantAnalysisManager

Tests the orchestration behavior end to end against temporary storage and
in-memory collaborators: automatic downloads, the download queue, rehydration,
cancellation, removal and repo list export.
"""

import json

import pytest

from mrva.application.cancellation import CancellationToken
from mrva.domain.errors import (
    AuthenticationFailedError,
    MissingWorkflowRunError,
    RemoteApiError,
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
from mrva.domain.variant_analysis.entities import RepoDownloadState
from mrva.domain.variant_analysis.value_objects import (
    FilterKey,
    FilterSortState,
    RepoAnalysisStatus,
    RepoDownloadStatus,
    SortKey,
    VariantAnalysisStatus,
)
from mrva.infrastructure.repo_states_store import REPO_STATES_FILE_NAME

from tests.fixtures.domain_fixtures import (
    create_scanned_repository,
    create_submission,
    create_variant_analysis,
)

QUEUE_TIMEOUT = 10


def _document(storage, variant_analysis_id):
    path = storage.storage_location(variant_analysis_id) / REPO_STATES_FILE_NAME
    if not path.exists():
        return None
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def _statuses(storage, variant_analysis_id):
    document = _document(storage, variant_analysis_id) or {}
    return {int(key): value["downloadStatus"] for key, value in document.items()}


@pytest.fixture
def repo_a():
    return create_scanned_repository(1, "octo-org/repo-a")


@pytest.fixture
def repo_b():
    return create_scanned_repository(2, "octo-org/repo-b")


@pytest.fixture
def variant_analysis(storage, repo_a, repo_b):
    """An in progress variant analysis with local storage and two finished repositories."""
    storage.create(123)
    return create_variant_analysis(scanned_repos=[repo_a, repo_b])


class TestAutoDownload:
    """Test the per-repository automatic download decision."""

    def test_downloads_and_persists_success(
        self, manager, api_client, storage, results_manager, variant_analysis, repo_a, recorded_events
    ):
        # Arrange
        api_client.add_repo(repo_a)

        # Act
        manager.auto_download_variant_analysis_result(repo_a, variant_analysis, CancellationToken())

        # Assert
        assert _statuses(storage, 123) == {1: "succeeded"}
        assert results_manager.is_downloaded(123, "octo-org/repo-a")
        published = [event.download_status for event in recorded_events[RepoDownloadStatusChangedEvent]]
        assert published == [RepoDownloadStatus.IN_PROGRESS, RepoDownloadStatus.SUCCEEDED]

    def test_already_succeeded_repo_issues_no_remote_calls(
        self, manager, api_client, variant_analysis, repo_a
    ):
        # Arrange
        api_client.add_repo(repo_a)
        manager.auto_download_variant_analysis_result(repo_a, variant_analysis, CancellationToken())
        api_client.clear_history()

        # Act
        manager.auto_download_variant_analysis_result(repo_a, variant_analysis, CancellationToken())

        # Assert
        assert api_client.get_call_history() == []

    def test_success_recorded_by_earlier_process_is_skipped(
        self, manager, api_client, storage, repo_states_store, variant_analysis, repo_a
    ):
        """The skip decision reads the document when nothing is cached yet."""
        repo_states_store.save(123, {1: RepoDownloadState(1, RepoDownloadStatus.SUCCEEDED)})
        repo_states_store.forget(123)

        manager.auto_download_variant_analysis_result(repo_a, variant_analysis, CancellationToken())

        assert api_client.get_call_history() == []

    def test_cancelled_token_makes_no_calls_and_writes_nothing(
        self, manager, api_client, storage, credentials_provider, variant_analysis, repo_a
    ):
        api_client.add_repo(repo_a)

        manager.auto_download_variant_analysis_result(repo_a, variant_analysis, CancellationToken.cancelled())

        assert api_client.get_call_history() == []
        assert credentials_provider.call_count == 0
        assert _document(storage, 123) is None

    def test_missing_artifact_is_nothing_to_do(
        self, manager, api_client, storage, variant_analysis, repo_a, recorded_events
    ):
        # Arrange
        api_client.add_repo(repo_a, artifact_url=None)

        # Act
        manager.auto_download_variant_analysis_result(repo_a, variant_analysis, CancellationToken())

        # Assert
        assert len(api_client.get_calls_for_method("get_variant_analysis_repo")) == 1
        assert api_client.get_calls_for_method("get_variant_analysis_repo_result") == []
        assert _document(storage, 123) is None
        assert recorded_events[RepoDownloadStatusChangedEvent] == []

    def test_metadata_failure_is_persisted_and_raised(
        self, manager, api_client, storage, variant_analysis, repo_a
    ):
        api_client.failing_repo_tasks[1] = RemoteApiError("metadata unavailable", status_code=500)

        with pytest.raises(RemoteApiError, match="metadata unavailable"):
            manager.auto_download_variant_analysis_result(repo_a, variant_analysis, CancellationToken())

        assert _statuses(storage, 123) == {1: "failed"}

    def test_payload_failure_is_persisted_and_raised(
        self, manager, api_client, storage, variant_analysis, repo_a
    ):
        repo_task = api_client.add_repo(repo_a)
        api_client.failing_artifacts[repo_task.artifact_url] = RemoteApiError("artifact expired", status_code=410)

        with pytest.raises(RemoteApiError, match="artifact expired"):
            manager.auto_download_variant_analysis_result(repo_a, variant_analysis, CancellationToken())

        assert _statuses(storage, 123) == {1: "failed"}

    def test_invalid_archive_is_persisted_as_failed(
        self, manager, api_client, storage, variant_analysis, repo_a
    ):
        api_client.add_repo(repo_a, payload=b"not a zip archive")

        with pytest.raises(ResultStorageError):
            manager.auto_download_variant_analysis_result(repo_a, variant_analysis, CancellationToken())

        assert _statuses(storage, 123) == {1: "failed"}

    def test_cancellation_between_fetches_writes_nothing(
        self, manager, api_client, storage, variant_analysis, repo_a
    ):
        # Arrange
        api_client.add_repo(repo_a)
        token = CancellationToken()
        api_client.on_repo_task_fetched = lambda repo_task: token.cancel()

        # Act
        with pytest.raises(UserCancellationError):
            manager.auto_download_variant_analysis_result(repo_a, variant_analysis, token)

        # Assert
        assert api_client.get_calls_for_method("get_variant_analysis_repo_result") == []
        assert _document(storage, 123) is None

    def test_credentials_failure_makes_no_remote_calls(
        self, manager, api_client, credentials_provider, storage, variant_analysis, repo_a
    ):
        api_client.add_repo(repo_a)
        credentials_provider.error = RuntimeError("keychain locked")

        with pytest.raises(AuthenticationFailedError):
            manager.auto_download_variant_analysis_result(repo_a, variant_analysis, CancellationToken())

        assert api_client.get_call_history() == []
        assert _document(storage, 123) is None

    def test_downloads_accumulate_in_one_document(
        self, manager, api_client, storage, variant_analysis, repo_a, repo_b
    ):
        api_client.add_repo(repo_a)
        api_client.add_repo(repo_b)

        manager.auto_download_variant_analysis_result(repo_a, variant_analysis, CancellationToken())
        manager.auto_download_variant_analysis_result(repo_b, variant_analysis, CancellationToken())

        assert _statuses(storage, 123) == {1: "succeeded", 2: "succeeded"}


class TestDownloadQueue:
    """Test downloads going through the shared queue."""

    def test_failure_does_not_block_later_downloads(
        self, manager, api_client, storage, variant_analysis, repo_a, repo_b
    ):
        # Arrange
        api_client.failing_repo_tasks[1] = RemoteApiError("boom")
        api_client.add_repo(repo_b)

        # Act
        future_a = manager.enqueue_download(repo_a, variant_analysis)
        future_b = manager.enqueue_download(repo_b, variant_analysis)

        # Assert
        assert isinstance(future_a.exception(timeout=QUEUE_TIMEOUT), RemoteApiError)
        assert future_b.result(timeout=QUEUE_TIMEOUT) is None
        assert manager.wait_for_downloads(timeout=QUEUE_TIMEOUT)
        assert manager.downloads_queue_size() == 0
        assert _statuses(storage, 123) == {1: "failed", 2: "succeeded"}

    def test_downloads_run_in_enqueue_order(
        self, manager, api_client, variant_analysis
    ):
        repos = [create_scanned_repository(index, f"octo-org/repo-{index}") for index in range(1, 6)]
        for repo in repos:
            api_client.add_repo(repo)

        futures = [manager.enqueue_download(repo, variant_analysis) for repo in repos]
        for future in futures:
            future.result(timeout=QUEUE_TIMEOUT)

        fetched = [
            call["args"]["repository_id"]
            for call in api_client.get_calls_for_method("get_variant_analysis_repo")
        ]
        assert fetched == [1, 2, 3, 4, 5]

    def test_enqueue_uses_variant_analysis_token(
        self, manager, api_client, storage, variant_analysis, repo_a
    ):
        api_client.add_repo(repo_a)
        manager.cancellation_token(123).cancel()

        manager.enqueue_download(repo_a, variant_analysis).result(timeout=QUEUE_TIMEOUT)

        assert api_client.get_call_history() == []


class TestRehydration:
    """Test restoring variant analyses after a restart."""

    def test_without_storage_emits_one_removal_and_no_monitoring(
        self, manager, monitoring_command, history_repository, recorded_events
    ):
        # Arrange
        va = create_variant_analysis(variant_analysis_id=77)
        history_repository.save(va)

        # Act
        manager.rehydrate_variant_analysis(va)

        # Assert
        removed = recorded_events[VariantAnalysisRemovedEvent]
        assert [event.aggregate_id for event in removed] == [77]
        monitoring_command.assert_not_called()
        assert manager.get_variant_analysis(77) is None
        assert history_repository.get(77) is None

    def test_incomplete_variant_analysis_resumes_monitoring(
        self, manager, storage, repo_states_store, monitoring_command, recorded_events, repo_a, repo_b
    ):
        # Arrange
        storage.create(123)
        repo_states_store.save(123, {1: RepoDownloadState(1, RepoDownloadStatus.SUCCEEDED)})
        repo_states_store.forget(123)
        va = create_variant_analysis(status=VariantAnalysisStatus.IN_PROGRESS, scanned_repos=[repo_a, repo_b])

        # Act
        manager.rehydrate_variant_analysis(va)

        # Assert
        monitoring_command.assert_called_once_with(va)
        assert recorded_events[VariantAnalysisRemovedEvent] == []
        assert manager.get_variant_analysis(123) is va
        assert [state.repository_id for state in manager.get_repo_states(123)] == [1]

    def test_final_variant_analysis_with_pending_download_resumes_monitoring(
        self, manager, storage, monitoring_command, repo_a
    ):
        storage.create(123)
        va = create_variant_analysis(status=VariantAnalysisStatus.SUCCEEDED, scanned_repos=[repo_a])

        manager.rehydrate_variant_analysis(va)

        monitoring_command.assert_called_once_with(va)

    def test_complete_variant_analysis_is_left_alone(
        self, manager, storage, repo_states_store, monitoring_command, recorded_events, repo_a, repo_b
    ):
        # Arrange
        storage.create(123)
        repo_states_store.save(123, {
            1: RepoDownloadState(1, RepoDownloadStatus.SUCCEEDED),
            2: RepoDownloadState(2, RepoDownloadStatus.SUCCEEDED),
        })
        va = create_variant_analysis(status=VariantAnalysisStatus.SUCCEEDED, scanned_repos=[repo_a, repo_b])

        # Act
        manager.rehydrate_variant_analysis(va)

        # Assert
        monitoring_command.assert_not_called()
        assert recorded_events[VariantAnalysisRemovedEvent] == []
        assert manager.is_complete(va)

    def test_rehydrate_all_skips_failures(
        self, manager, storage, history_repository, monitoring_command
    ):
        # Arrange
        for variant_analysis_id in (1, 2, 3):
            history_repository.save(create_variant_analysis(variant_analysis_id=variant_analysis_id))
            storage.create(variant_analysis_id)
        (storage.storage_location(2) / REPO_STATES_FILE_NAME).write_text("{corrupt")

        # Act
        registered = manager.rehydrate_all()

        # Assert
        assert registered == 2
        assert [va.id for va in manager.list_variant_analyses()] == [1, 3]
        assert monitoring_command.call_count == 2

    def test_rehydration_publishes_no_update_events(
        self, manager, storage, recorded_events
    ):
        storage.create(123)

        manager.rehydrate_variant_analysis(create_variant_analysis())

        assert recorded_events[VariantAnalysisUpdatedEvent] == []


class TestCancellation:
    """Test cancelling the remote run."""

    def test_unknown_variant_analysis_raises_not_found(self, manager, api_client):
        with pytest.raises(VariantAnalysisNotFoundError, match="No variant analysis with id: 404"):
            manager.cancel_variant_analysis(404)

        assert api_client.get_call_history() == []

    def test_without_workflow_run_raises_missing_workflow_run(self, manager, api_client):
        manager.on_variant_analysis_updated(create_variant_analysis(actions_workflow_run_id=None))

        with pytest.raises(MissingWorkflowRunError) as exc_info:
            manager.cancel_variant_analysis(123)

        assert str(exc_info.value) == "No workflow run id for variant analysis with id: 123"
        assert api_client.get_call_history() == []

    def test_credentials_failure_does_not_contact_remote(
        self, manager, api_client, credentials_provider
    ):
        manager.on_variant_analysis_updated(create_variant_analysis())
        credentials_provider.token = None

        with pytest.raises(AuthenticationFailedError, match="Error authenticating with GitHub"):
            manager.cancel_variant_analysis(123)

        assert api_client.get_call_history() == []

    def test_final_variant_analysis_cannot_be_cancelled(self, manager, api_client):
        manager.on_variant_analysis_updated(create_variant_analysis(status=VariantAnalysisStatus.SUCCEEDED))

        with pytest.raises(VariantAnalysisStateError):
            manager.cancel_variant_analysis(123)

        assert api_client.get_call_history() == []

    def test_cancel_marks_cancelling_after_remote_accepts(
        self, manager, api_client, history_repository, recorded_events
    ):
        # Arrange
        original = create_variant_analysis()
        manager.on_variant_analysis_updated(original)

        # Act
        result = manager.cancel_variant_analysis(123)

        # Assert
        assert api_client.get_calls_for_method("cancel_variant_analysis") == [
            {"method": "cancel_variant_analysis", "args": {"id": 123}}
        ]
        assert result.status == VariantAnalysisStatus.CANCELLING
        assert original.status == VariantAnalysisStatus.IN_PROGRESS
        assert manager.get_variant_analysis(123).status == VariantAnalysisStatus.CANCELLING
        assert history_repository.get(123).status == VariantAnalysisStatus.CANCELLING
        assert recorded_events[VariantAnalysisUpdatedEvent][-1].variant_analysis.status == (
            VariantAnalysisStatus.CANCELLING
        )

    def test_cancel_keeps_local_downloads_running(self, manager):
        manager.on_variant_analysis_updated(create_variant_analysis())

        manager.cancel_variant_analysis(123)

        assert not manager.cancellation_token(123).is_cancellation_requested

    def test_remote_failure_leaves_status_unchanged(self, manager, api_client):
        manager.on_variant_analysis_updated(create_variant_analysis())
        api_client.cancel_error = RemoteApiError("run already finished", status_code=409)

        with pytest.raises(RemoteApiError):
            manager.cancel_variant_analysis(123)

        assert manager.get_variant_analysis(123).status == VariantAnalysisStatus.IN_PROGRESS


class TestRemoval:
    """Test removing a variant analysis."""

    def test_remove_deletes_storage_results_and_registration(
        self, manager, api_client, storage, history_repository, recorded_events, variant_analysis, repo_a
    ):
        # Arrange
        api_client.add_repo(repo_a)
        manager.on_variant_analysis_updated(variant_analysis)
        manager.auto_download_variant_analysis_result(repo_a, variant_analysis, CancellationToken())
        token = manager.cancellation_token(123)

        # Act
        manager.remove_variant_analysis(variant_analysis)

        # Assert
        assert not storage.exists(123)
        assert manager.get_variant_analysis(123) is None
        assert history_repository.get(123) is None
        assert token.is_cancellation_requested
        assert [event.aggregate_id for event in recorded_events[VariantAnalysisRemovedEvent]] == [123]
        assert manager.get_repo_states(123) == []

    def test_remove_during_payload_fetch_discards_the_download(
        self, manager, api_client, storage, variant_analysis, repo_a
    ):
        # Arrange
        api_client.add_repo(repo_a)
        manager.on_variant_analysis_updated(variant_analysis)
        api_client.on_artifact_fetched = lambda artifact_url: manager.remove_variant_analysis(variant_analysis)

        # Act
        future = manager.enqueue_download(repo_a, variant_analysis)

        # Assert
        assert isinstance(future.exception(timeout=QUEUE_TIMEOUT), UserCancellationError)
        assert not storage.storage_location(123).exists()
        assert manager.get_repo_states(123) == []

    def test_download_finishing_after_storage_removal_writes_nothing(
        self, manager, api_client, storage, variant_analysis, repo_a
    ):
        # Arrange
        api_client.add_repo(repo_a)
        api_client.on_artifact_fetched = lambda artifact_url: storage.remove(123)

        # Act
        with pytest.raises(UserCancellationError, match="was removed"):
            manager.auto_download_variant_analysis_result(repo_a, variant_analysis, CancellationToken())

        # Assert
        assert not storage.storage_location(123).exists()

    def test_failed_fetch_after_removal_records_nothing(
        self, manager, api_client, storage, variant_analysis, repo_a
    ):
        api_client.add_repo(repo_a)
        api_client.failing_artifacts[api_client.repo_tasks[1].artifact_url] = RemoteApiError("timeout")
        api_client.on_repo_task_fetched = lambda repo_task: storage.remove(123)

        with pytest.raises(RemoteApiError):
            manager.auto_download_variant_analysis_result(repo_a, variant_analysis, CancellationToken())

        assert not storage.storage_location(123).exists()

    def test_remove_without_materialized_results(self, manager, storage, variant_analysis):
        manager.on_variant_analysis_updated(variant_analysis)

        manager.remove_variant_analysis(variant_analysis)

        assert not storage.exists(123)

    def test_remove_without_storage(self, manager, recorded_events):
        va = create_variant_analysis(variant_analysis_id=5)

        manager.remove_variant_analysis(va)

        assert len(recorded_events[VariantAnalysisRemovedEvent]) == 1


class TestRepoListExport:
    """Test the repo list fragment."""

    @pytest.fixture
    def fruit_analysis(self, manager):
        va = create_variant_analysis(scanned_repos=[
            create_scanned_repository(1, "octo/pear", result_count=100),
            create_scanned_repository(2, "octo/apple", result_count=0),
            create_scanned_repository(3, "octo/citrus", result_count=200),
            create_scanned_repository(4, "octo/sky", result_count=None),
            create_scanned_repository(5, "octo/banana", result_count=5),
        ])
        manager.on_variant_analysis_updated(va)
        return va

    def test_default_export_lists_repos_with_results_by_name(self, manager, fruit_analysis):
        fragment = manager.export_repo_list(123)

        assert fragment == (
            '"new-repo-list": [\n'
            '    "octo/banana",\n'
            '    "octo/citrus",\n'
            '    "octo/pear"\n'
            ']'
        )
        assert json.loads("{" + fragment + "}") == {
            "new-repo-list": ["octo/banana", "octo/citrus", "octo/pear"]
        }

    def test_export_sorted_by_results_count(self, manager, fruit_analysis):
        fragment = manager.export_repo_list(123, FilterSortState(sort_key=SortKey.RESULTS_COUNT))

        assert json.loads("{" + fragment + "}")["new-repo-list"] == [
            "octo/citrus", "octo/pear", "octo/banana"
        ]

    def test_export_with_search(self, manager, fruit_analysis):
        fragment = manager.export_repo_list(
            123, FilterSortState(search_value="AR", filter_key=FilterKey.WITH_RESULTS)
        )

        assert json.loads("{" + fragment + "}")["new-repo-list"] == ["octo/pear"]

    def test_export_without_results_returns_none(self, manager):
        manager.on_variant_analysis_updated(create_variant_analysis(scanned_repos=[
            create_scanned_repository(1, result_count=0),
        ]))

        assert manager.export_repo_list(123) is None

    def test_export_unknown_variant_analysis(self, manager):
        with pytest.raises(VariantAnalysisNotFoundError):
            manager.export_repo_list(404)


class TestSubmission:
    """Test starting a variant analysis."""

    def test_submit_registers_and_starts_monitoring(
        self, manager, api_client, storage, history_repository, monitoring_command, recorded_events
    ):
        # Arrange
        api_client.submitted = create_variant_analysis(variant_analysis_id=321)

        # Act
        va = manager.submit_variant_analysis(create_submission())

        # Assert
        assert va.id == 321
        assert storage.exists(321)
        assert manager.get_variant_analysis(321) is va
        assert history_repository.get(321) is va
        monitoring_command.assert_called_once_with(va)
        assert [event.aggregate_id for event in recorded_events[VariantAnalysisUpdatedEvent]] == [321]

    def test_cancelled_submission_never_reaches_remote(self, manager, api_client):
        with pytest.raises(UserCancellationError):
            manager.submit_variant_analysis(create_submission(), CancellationToken.cancelled())

        assert api_client.get_call_history() == []

    def test_submit_uses_given_token_for_the_variant_analysis(self, manager, api_client):
        api_client.submitted = create_variant_analysis(variant_analysis_id=321)
        token = CancellationToken()

        manager.submit_variant_analysis(create_submission(), token)

        assert manager.cancellation_token(321) is token


class TestRetry:
    """Test manual download retries."""

    def test_retry_failed_download(
        self, manager, api_client, storage, variant_analysis, repo_a
    ):
        # Arrange
        manager.on_variant_analysis_updated(variant_analysis)
        api_client.failing_repo_tasks[1] = RemoteApiError("flaky")
        with pytest.raises(RemoteApiError):
            manager.auto_download_variant_analysis_result(repo_a, variant_analysis, CancellationToken())
        del api_client.failing_repo_tasks[1]
        api_client.add_repo(repo_a)

        # Act
        manager.retry_repo_download(123, 1).result(timeout=QUEUE_TIMEOUT)

        # Assert
        assert _statuses(storage, 123) == {1: "succeeded"}

    def test_retry_of_succeeded_download_is_refused(
        self, manager, api_client, variant_analysis, repo_a
    ):
        manager.on_variant_analysis_updated(variant_analysis)
        api_client.add_repo(repo_a)
        manager.auto_download_variant_analysis_result(repo_a, variant_analysis, CancellationToken())

        with pytest.raises(VariantAnalysisStateError, match="succeeded"):
            manager.retry_repo_download(123, 1)

    def test_retry_of_unknown_repository_is_refused(self, manager, variant_analysis):
        manager.on_variant_analysis_updated(variant_analysis)

        with pytest.raises(VariantAnalysisStateError, match="not part of"):
            manager.retry_repo_download(123, 99)

    def test_retry_of_repository_without_results_is_refused(self, manager, storage):
        storage.create(123)
        manager.on_variant_analysis_updated(create_variant_analysis(scanned_repos=[
            create_scanned_repository(1, analysis_status=RepoAnalysisStatus.FAILED),
        ]))

        with pytest.raises(VariantAnalysisStateError, match="no results"):
            manager.retry_repo_download(123, 1)


class TestQueriesAndSubscriptions:
    """Test read accessors and subscription helpers."""

    def test_repo_states_are_ordered_by_repository_id(
        self, manager, repo_states_store, variant_analysis
    ):
        repo_states_store.set_status(123, 20, RepoDownloadStatus.FAILED)
        repo_states_store.set_status(123, 3, RepoDownloadStatus.SUCCEEDED)

        assert [state.repository_id for state in manager.get_repo_states(123)] == [3, 20]

    def test_unsubscribe_stops_notifications(self, manager):
        received = []
        unsubscribe = manager.subscribe_updated(received.append)

        manager.on_variant_analysis_updated(create_variant_analysis(variant_analysis_id=1))
        unsubscribe()
        manager.on_variant_analysis_updated(create_variant_analysis(variant_analysis_id=2))

        assert [event.aggregate_id for event in received] == [1]

    def test_subscribe_removed_and_repo_states(self, manager, api_client, variant_analysis, repo_a):
        removed, repo_states = [], []
        manager.subscribe_removed(removed.append)
        manager.subscribe_repo_states_updated(repo_states.append)
        api_client.add_repo(repo_a)

        manager.auto_download_variant_analysis_result(repo_a, variant_analysis, CancellationToken())
        manager.remove_variant_analysis(variant_analysis)

        assert [event.download_status for event in repo_states][-1] == RepoDownloadStatus.SUCCEEDED
        assert len(removed) == 1

    def test_ignored_update_returns_registered_version(self, manager):
        succeeded = create_variant_analysis(status=VariantAnalysisStatus.SUCCEEDED)
        manager.on_variant_analysis_updated(succeeded)

        result = manager.on_variant_analysis_updated(create_variant_analysis())

        assert result is succeeded

    def test_storage_location(self, manager, storage):
        assert manager.get_variant_analysis_storage_location(123) == storage.storage_dir / "123"

"""
Unit tests for DownloadQueue

Tests FIFO execution, failure isolation and the pending-task count.
"""

import threading

import pytest

from mrva.application.cancellation import CancellationToken
from mrva.application.download_queue import DownloadQueue, DownloadTask

from tests.fixtures.domain_fixtures import create_scanned_repository, create_variant_analysis

TIMEOUT = 10


def _task(repository_id):
    return DownloadTask(
        scanned_repo=create_scanned_repository(repository_id),
        variant_analysis=create_variant_analysis(),
        token=CancellationToken(),
    )


@pytest.fixture
def processed():
    return []


@pytest.fixture
def queue(processed):
    queue = DownloadQueue(lambda task: processed.append(task.scanned_repo.repository.id))
    yield queue
    queue.shutdown(wait=True)


class TestDownloadQueue:
    """Test queue behavior."""

    def test_tasks_run_in_enqueue_order(self, queue, processed):
        futures = [queue.enqueue(_task(repository_id)) for repository_id in range(1, 11)]

        for future in futures:
            future.result(timeout=TIMEOUT)

        assert processed == list(range(1, 11))

    def test_failure_is_isolated_and_propagated(self):
        # Arrange
        processed = []

        def handler(task):
            if task.scanned_repo.repository.id == 1:
                raise RuntimeError("download failed")
            processed.append(task.scanned_repo.repository.id)

        queue = DownloadQueue(handler)

        # Act
        failing = queue.enqueue(_task(1))
        succeeding = queue.enqueue(_task(2))

        # Assert
        with pytest.raises(RuntimeError, match="download failed"):
            failing.result(timeout=TIMEOUT)
        assert succeeding.result(timeout=TIMEOUT) is None
        assert processed == [2]
        assert queue.wait_idle(timeout=TIMEOUT)
        assert queue.size() == 0
        queue.shutdown()

    def test_size_counts_running_and_waiting_tasks(self):
        # Arrange
        release = threading.Event()
        started = threading.Event()

        def handler(task):
            started.set()
            release.wait(TIMEOUT)

        queue = DownloadQueue(handler)

        # Act
        first = queue.enqueue(_task(1))
        queue.enqueue(_task(2))
        started.wait(TIMEOUT)

        # Assert
        assert queue.size() == 2
        release.set()
        first.result(timeout=TIMEOUT)
        assert queue.wait_idle(timeout=TIMEOUT)
        assert queue.size() == 0
        queue.shutdown()

    def test_only_one_task_runs_at_a_time(self):
        lock = threading.Lock()
        active = []
        overlaps = []

        def handler(task):
            with lock:
                active.append(task)
                if len(active) > 1:
                    overlaps.append(task)
            with lock:
                active.remove(task)

        queue = DownloadQueue(handler)
        futures = [queue.enqueue(_task(repository_id)) for repository_id in range(20)]
        for future in futures:
            future.result(timeout=TIMEOUT)
        queue.shutdown()

        assert overlaps == []

    def test_enqueue_after_shutdown_raises(self, queue):
        queue.shutdown()

        with pytest.raises(RuntimeError):
            queue.enqueue(_task(1))

        assert queue.size() == 0

    def test_invalid_worker_count(self):
        with pytest.raises(ValueError):
            DownloadQueue(lambda task: None, max_workers=0)

    def test_describe(self):
        assert _task(1).describe() == "octo-org/repo-1 (variant analysis 123)"

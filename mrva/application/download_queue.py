"""
Download Queue

Process-wide queue that downloads repository results one at a time, in the
order they were enqueued. A failing download never blocks the ones after it.
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from threading import Condition
from typing import Callable, Optional

from mrva.domain.variant_analysis.entities import ScannedRepository, VariantAnalysis

from .cancellation import CancellationToken

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DownloadTask:
    """
    One repository download waiting in the queue.

    Attributes:
        scanned_repo: Repository whose results to download
        variant_analysis: Owning variant analysis
        token: Cancellation token of the variant analysis
    """
    scanned_repo: ScannedRepository
    variant_analysis: VariantAnalysis
    token: CancellationToken

    def describe(self) -> str:
        return (
            f"{self.scanned_repo.repository.full_name} "
            f"(variant analysis {self.variant_analysis.id})"
        )


class DownloadQueue:
    """
    Bounded-concurrency FIFO worker for DownloadTasks.

    Tasks run on a ThreadPoolExecutor with max_workers workers (one by
    default, so downloads are strictly sequential). Each enqueue returns a
    Future that resolves once that task was attempted and carries its
    exception if it failed.
    """

    def __init__(self, handler: Callable[[DownloadTask], None], max_workers: int = 1):
        """
        Initialize the queue.

        Args:
            handler: Called with each task on a worker thread
            max_workers: Number of tasks allowed to run at the same time
        """
        if max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {max_workers}")

        self._handler = handler
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="mrva-download"
        )
        self._pending = 0
        self._idle = Condition()

    def enqueue(self, task: DownloadTask) -> Future:
        """
        Append a task to the queue.

        Safe to call from any thread.

        Args:
            task: Task to run

        Returns:
            Future resolved when the task finished, with the task's exception on failure

        Raises:
            RuntimeError: If the queue was shut down
        """
        with self._idle:
            self._pending += 1
        try:
            future = self._executor.submit(self._run, task)
        except RuntimeError:
            with self._idle:
                self._pending -= 1
                self._idle.notify_all()
            raise

        logger.debug(f"Enqueued download of {task.describe()}")
        return future

    def _run(self, task: DownloadTask) -> None:
        try:
            self._handler(task)
        except Exception as e:
            logger.error(f"Download of {task.describe()} failed: {e}")
            raise
        finally:
            # Decremented before the future resolves, so waiters see the new size
            with self._idle:
                self._pending -= 1
                self._idle.notify_all()

    def size(self) -> int:
        """Number of tasks not completed yet, including running ones."""
        with self._idle:
            return self._pending

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """
        Block until every enqueued task completed.

        Returns:
            True if the queue is empty, False if the timeout elapsed first
        """
        with self._idle:
            return self._idle.wait_for(lambda: self._pending == 0, timeout)

    def shutdown(self, wait: bool = True) -> None:
        """
        Stop accepting tasks.

        Args:
            wait: Block until queued tasks finished
        """
        self._executor.shutdown(wait=wait)

"""
Repo Download State Store

Persists the download state of every repository of a variant analysis as a
single JSON document, <storage>/<id>/repo_states.json, keyed by repository id.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from threading import RLock
from typing import Dict

from mrva.domain.errors import ResultStorageError
from mrva.domain.variant_analysis.entities import RepoDownloadState
from mrva.domain.variant_analysis.repositories import RepoStatesRepository
from mrva.domain.variant_analysis.value_objects import RepoDownloadStatus

from .local_storage import LocalVariantAnalysisStorage

logger = logging.getLogger(__name__)

REPO_STATES_FILE_NAME = "repo_states.json"


class RepoDownloadStateStore(RepoStatesRepository):
    """
    File-backed repo state store with an in-memory cache per variant analysis.

    The document is always written whole: to a temporary file in the same
    directory, then renamed over the previous document, so a crash mid-save
    leaves either the old or the new document. Writes are synchronous, so a
    returned save means the state is on disk.
    """

    def __init__(self, storage: LocalVariantAnalysisStorage):
        """
        Initialize the store.

        Args:
            storage: Storage that owns the per-variant-analysis directories
        """
        self.storage = storage
        self._cache: Dict[int, Dict[int, RepoDownloadState]] = {}
        self._lock = RLock()

    def _file_path(self, variant_analysis_id: int) -> Path:
        return self.storage.storage_location(variant_analysis_id) / REPO_STATES_FILE_NAME

    def load(self, variant_analysis_id: int) -> Dict[int, RepoDownloadState]:
        """
        Load the document from disk into the cache.

        A missing document means no download has been recorded yet.

        Raises:
            ResultStorageError: If the document exists but cannot be read or parsed
        """
        path = self._file_path(variant_analysis_id)

        with self._lock:
            if not path.exists():
                logger.debug(f"No repo states stored for variant analysis {variant_analysis_id}")
                repo_states: Dict[int, RepoDownloadState] = {}
            else:
                try:
                    with open(path, "r", encoding="utf-8") as f:
                        document = json.load(f)
                    repo_states = {
                        int(key): RepoDownloadState.from_dict(value)
                        for key, value in document.items()
                    }
                except (OSError, ValueError, KeyError, TypeError) as e:
                    raise ResultStorageError(
                        f"Failed to read repo states for variant analysis {variant_analysis_id}: {e}",
                        e,
                    )

            self._cache[variant_analysis_id] = repo_states
            return dict(repo_states)

    def save(self, variant_analysis_id: int, repo_states: Dict[int, RepoDownloadState]) -> None:
        """
        Atomically replace the document with the given complete mapping.

        Raises:
            ResultStorageError: If the document cannot be written
        """
        path = self._file_path(variant_analysis_id)
        document = {
            str(repository_id): state.to_dict()
            for repository_id, state in sorted(repo_states.items())
        }

        with self._lock:
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                fd, tmp_path = tempfile.mkstemp(
                    prefix=f".{REPO_STATES_FILE_NAME}.", dir=str(path.parent)
                )
                try:
                    with os.fdopen(fd, "w", encoding="utf-8") as f:
                        json.dump(document, f)
                        f.flush()
                        os.fsync(f.fileno())
                    os.replace(tmp_path, path)
                except BaseException:
                    if os.path.exists(tmp_path):
                        os.unlink(tmp_path)
                    raise
            except OSError as e:
                raise ResultStorageError(
                    f"Failed to write repo states for variant analysis {variant_analysis_id}: {e}",
                    e,
                )

            self._cache[variant_analysis_id] = dict(repo_states)

        logger.debug(
            f"Saved {len(document)} repo state(s) for variant analysis {variant_analysis_id}"
        )

    def get(self, variant_analysis_id: int) -> Dict[int, RepoDownloadState]:
        """Return a copy of the cached mapping, empty if never loaded."""
        with self._lock:
            return dict(self._cache.get(variant_analysis_id, {}))

    def set_status(
        self, variant_analysis_id: int, repository_id: int, status: RepoDownloadStatus
    ) -> Dict[int, RepoDownloadState]:
        """
        Set one repository's status and persist the full mapping.

        The mapping is derived from the cache, loading it from disk first when
        this variant analysis has not been loaded yet, so earlier repositories
        are never dropped from the document.
        """
        with self._lock:
            if variant_analysis_id not in self._cache:
                self.load(variant_analysis_id)

            repo_states = dict(self._cache[variant_analysis_id])
            repo_states[repository_id] = RepoDownloadState(
                repository_id=repository_id, download_status=status
            )
            self.save(variant_analysis_id, repo_states)
            return dict(repo_states)

    def forget(self, variant_analysis_id: int) -> None:
        with self._lock:
            self._cache.pop(variant_analysis_id, None)

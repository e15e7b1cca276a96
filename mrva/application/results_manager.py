"""
Variant Analysis Results Manager

Materializes downloaded result artifacts under the storage directory of their
variant analysis: <storage>/<id>/<owner>/<name>/{results.zip, results/, repo_task.json}.
"""

import io
import json
import logging
import shutil
import zipfile
from pathlib import Path
from typing import Optional

from mrva.domain.errors import ResultStorageError
from mrva.domain.variant_analysis.entities import RepoTask, VariantAnalysis
from mrva.infrastructure.local_storage import LocalVariantAnalysisStorage

logger = logging.getLogger(__name__)

ARTIFACT_FILE_NAME = "results.zip"
RESULTS_DIR_NAME = "results"
REPO_TASK_FILE_NAME = "repo_task.json"


class VariantAnalysisResultsManager:
    """Stores, looks up and deletes per-repository results on disk."""

    def __init__(self, storage: LocalVariantAnalysisStorage):
        """
        Initialize results manager.

        Args:
            storage: Storage that owns the per-variant-analysis directories
        """
        self.storage = storage

    def repo_storage_dir(self, variant_analysis_id: int, repository_full_name: str) -> Path:
        """Directory holding one repository's results."""
        owner, _, name = repository_full_name.partition("/")
        return self.storage.storage_location(variant_analysis_id) / owner / name

    def store_result(self, variant_analysis_id: int, repo_task: RepoTask, payload: bytes) -> Path:
        """
        Write and unpack a downloaded artifact.

        repo_task.json is written last; its presence marks a complete download.

        Args:
            variant_analysis_id: Owning variant analysis
            repo_task: Metadata of the repository's analysis
            payload: Zip archive bytes

        Returns:
            Directory the results were unpacked into

        Raises:
            ResultStorageError: If the archive is invalid or cannot be written
        """
        repo_dir = self.repo_storage_dir(variant_analysis_id, repo_task.repository.full_name)
        results_dir = repo_dir / RESULTS_DIR_NAME

        try:
            repo_dir.mkdir(parents=True, exist_ok=True)
            (repo_dir / ARTIFACT_FILE_NAME).write_bytes(payload)

            if results_dir.exists():
                shutil.rmtree(results_dir)
            results_dir.mkdir()

            with zipfile.ZipFile(io.BytesIO(payload)) as archive:
                root = results_dir.resolve()
                for member in archive.namelist():
                    target = (results_dir / member).resolve()
                    if root != target and root not in target.parents:
                        raise ResultStorageError(f"Archive entry escapes results directory: {member}")
                archive.extractall(results_dir)

            with open(repo_dir / REPO_TASK_FILE_NAME, "w", encoding="utf-8") as f:
                json.dump(repo_task.to_dict(), f)
        except (OSError, zipfile.BadZipFile) as e:
            raise ResultStorageError(
                f"Failed to store results of {repo_task.repository.full_name}: {e}", e
            )

        logger.debug(f"Stored results of {repo_task.repository.full_name} in {results_dir}")
        return results_dir

    def is_downloaded(self, variant_analysis_id: int, repository_full_name: str) -> bool:
        """Check if a repository's results were completely stored."""
        return (
            self.repo_storage_dir(variant_analysis_id, repository_full_name) / REPO_TASK_FILE_NAME
        ).exists()

    def load_repo_task(self, variant_analysis_id: int, repository_full_name: str) -> Optional[RepoTask]:
        """
        Read the stored metadata of a downloaded repository.

        Returns:
            RepoTask if the repository was downloaded, None otherwise
        """
        path = self.repo_storage_dir(variant_analysis_id, repository_full_name) / REPO_TASK_FILE_NAME
        if not path.exists():
            return None
        with open(path, "r", encoding="utf-8") as f:
            return RepoTask.from_dict(json.load(f))

    def remove_analysis_results(self, variant_analysis: VariantAnalysis) -> int:
        """
        Delete every materialized repository result of a variant analysis.

        Repositories that were never downloaded are skipped.

        Returns:
            Number of repository directories deleted
        """
        removed = 0
        for scanned_repo in variant_analysis.scanned_repos:
            repo_dir = self.repo_storage_dir(variant_analysis.id, scanned_repo.repository.full_name)
            if not repo_dir.exists():
                continue

            shutil.rmtree(repo_dir)
            removed += 1

            owner_dir = repo_dir.parent
            if owner_dir.exists() and not any(owner_dir.iterdir()):
                owner_dir.rmdir()

        logger.info(f"Removed results of {removed} repositories for variant analysis {variant_analysis.id}")
        return removed

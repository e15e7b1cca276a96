"""
Local Variant Analysis Storage

Infrastructure layer for the per-variant-analysis storage directories.
Every variant analysis owns <storage_dir>/<id>/, which holds the repo states
document and the downloaded results.
"""

import logging
import shutil
import time
from pathlib import Path
from typing import List

from mrva.domain.errors import ResultStorageError

logger = logging.getLogger(__name__)

TIMESTAMP_FILE_NAME = "timestamp"


class LocalVariantAnalysisStorage:
    """
    Repository for variant analysis storage directories on the local filesystem.

    The existence of a variant analysis' directory is what rehydration treats
    as "this variant analysis still has local state".
    """

    def __init__(self, storage_dir: str = "/tmp/mrva"):
        """
        Initialize local storage.

        Args:
            storage_dir: Base directory holding one directory per variant analysis
        """
        self.storage_dir = Path(storage_dir)
        self._ensure_storage_dir()

    def _ensure_storage_dir(self):
        try:
            self.storage_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ResultStorageError(f"Failed to create storage directory: {e}", e)

    def is_available(self) -> bool:
        """Check if the base directory exists."""
        return self.storage_dir.is_dir()

    def storage_location(self, variant_analysis_id: int) -> Path:
        """
        Directory owned by a variant analysis.

        Args:
            variant_analysis_id: Variant analysis identifier

        Returns:
            Path of the directory, whether or not it exists
        """
        return self.storage_dir / str(variant_analysis_id)

    def exists(self, variant_analysis_id: int) -> bool:
        return self.storage_location(variant_analysis_id).is_dir()

    def create(self, variant_analysis_id: int) -> Path:
        """
        Create the directory of a variant analysis with a timestamp file.

        Args:
            variant_analysis_id: Variant analysis identifier

        Returns:
            Path of the created directory

        Raises:
            ResultStorageError: If the directory cannot be created
        """
        location = self.storage_location(variant_analysis_id)
        try:
            location.mkdir(parents=True, exist_ok=True)
            (location / TIMESTAMP_FILE_NAME).write_text(str(int(time.time() * 1000)))
        except OSError as e:
            raise ResultStorageError(
                f"Failed to create storage for variant analysis {variant_analysis_id}: {e}", e
            )

        logger.debug(f"Created storage for variant analysis {variant_analysis_id} at {location}")
        return location

    def remove(self, variant_analysis_id: int) -> bool:
        """
        Delete the directory of a variant analysis and everything in it.

        Args:
            variant_analysis_id: Variant analysis identifier

        Returns:
            True if a directory was deleted, False if there was none
        """
        location = self.storage_location(variant_analysis_id)
        if not location.exists():
            logger.debug(f"No storage to remove for variant analysis {variant_analysis_id}")
            return False

        shutil.rmtree(location)
        logger.info(f"Removed storage for variant analysis {variant_analysis_id}")
        return True

    def list_variant_analysis_ids(self) -> List[int]:
        """Ids of all variant analyses that have a storage directory."""
        if not self.storage_dir.is_dir():
            return []
        return sorted(
            int(entry.name)
            for entry in self.storage_dir.iterdir()
            if entry.is_dir() and entry.name.isdigit()
        )

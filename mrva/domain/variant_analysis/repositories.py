"""
Variant Analysis Repositories

Interfaces for persistence and for the collaborators the orchestrator talks to.
Concrete implementations are in the infrastructure layer.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Optional

from .entities import (
    RepoDownloadState,
    RepoTask,
    ScannedRepository,
    VariantAnalysis,
    VariantAnalysisSubmission,
)
from .value_objects import RepoDownloadStatus


@dataclass(frozen=True)
class Credentials:
    """Validated credentials for the remote control plane."""

    token: str

    def __repr__(self) -> str:
        return "Credentials(token=***)"


class CredentialsProvider(ABC):
    """Source of credentials for the remote control plane."""

    @abstractmethod
    def get_credentials(self) -> Optional[Credentials]:
        """
        Acquire credentials.

        Returns:
            Credentials if available, None otherwise

        Raises:
            Exception: Implementations may raise when acquisition fails
        """
        pass


class VariantAnalysisRepository(ABC):
    """Abstract repository interface for variant analysis history."""

    @abstractmethod
    def save(self, variant_analysis: VariantAnalysis) -> bool:
        """
        Save or update a variant analysis.

        Args:
            variant_analysis: VariantAnalysis to save

        Returns:
            True if successful, False otherwise
        """
        pass

    @abstractmethod
    def get(self, variant_analysis_id: int) -> Optional[VariantAnalysis]:
        """
        Retrieve a variant analysis by ID.

        Args:
            variant_analysis_id: Variant analysis identifier

        Returns:
            VariantAnalysis if found, None otherwise
        """
        pass

    @abstractmethod
    def delete(self, variant_analysis_id: int) -> bool:
        """
        Delete a variant analysis.

        Args:
            variant_analysis_id: Variant analysis identifier

        Returns:
            True if deleted, False otherwise
        """
        pass

    @abstractmethod
    def list_all(self) -> List[VariantAnalysis]:
        """
        Retrieve every stored variant analysis.

        Returns:
            List of variant analyses, possibly empty
        """
        pass


class RepoStatesRepository(ABC):
    """
    Abstract repository for per-repository download states of a variant analysis.

    One document per variant analysis, always written as a whole.
    """

    @abstractmethod
    def load(self, variant_analysis_id: int) -> Dict[int, RepoDownloadState]:
        """
        Load the document from storage into the cache.

        Args:
            variant_analysis_id: Variant analysis identifier

        Returns:
            Mapping of repository id to download state, empty if nothing was stored
        """
        pass

    @abstractmethod
    def save(self, variant_analysis_id: int, repo_states: Dict[int, RepoDownloadState]) -> None:
        """
        Replace the stored document with the given complete mapping.

        Args:
            variant_analysis_id: Variant analysis identifier
            repo_states: Complete mapping of repository id to download state
        """
        pass

    @abstractmethod
    def get(self, variant_analysis_id: int) -> Dict[int, RepoDownloadState]:
        """
        Return the cached mapping without touching storage.

        Args:
            variant_analysis_id: Variant analysis identifier

        Returns:
            Mapping of repository id to download state, empty if never loaded
        """
        pass

    @abstractmethod
    def set_status(
        self, variant_analysis_id: int, repository_id: int, status: RepoDownloadStatus
    ) -> Dict[int, RepoDownloadState]:
        """
        Set one repository's status and persist the full updated mapping.

        Args:
            variant_analysis_id: Variant analysis identifier
            repository_id: Repository identifier
            status: New download status

        Returns:
            The mapping that was persisted
        """
        pass

    @abstractmethod
    def forget(self, variant_analysis_id: int) -> None:
        """
        Drop the cached mapping for a variant analysis.

        Args:
            variant_analysis_id: Variant analysis identifier
        """
        pass


class VariantAnalysisApiClient(ABC):
    """Interface to the remote control plane that runs variant analyses."""

    @abstractmethod
    def submit_variant_analysis(
        self, credentials: Credentials, submission: VariantAnalysisSubmission
    ) -> VariantAnalysis:
        """
        Start a variant analysis.

        Args:
            credentials: Validated credentials
            submission: What to run and where

        Returns:
            The variant analysis created by the controller
        """
        pass

    @abstractmethod
    def get_variant_analysis(
        self, credentials: Credentials, variant_analysis: VariantAnalysis
    ) -> VariantAnalysis:
        """
        Fetch the current summary of a variant analysis.

        Args:
            credentials: Validated credentials
            variant_analysis: Variant analysis to refresh

        Returns:
            Refreshed variant analysis
        """
        pass

    @abstractmethod
    def get_variant_analysis_repo(
        self,
        credentials: Credentials,
        variant_analysis: VariantAnalysis,
        scanned_repo: ScannedRepository,
    ) -> RepoTask:
        """
        Fetch metadata for one repository's analysis.

        Args:
            credentials: Validated credentials
            variant_analysis: Owning variant analysis
            scanned_repo: Repository to look up

        Returns:
            RepoTask; artifact_url is None when no results can be downloaded
        """
        pass

    @abstractmethod
    def get_variant_analysis_repo_result(
        self, credentials: Credentials, artifact_url: str
    ) -> bytes:
        """
        Download a results artifact.

        Args:
            credentials: Validated credentials
            artifact_url: URL taken from a RepoTask

        Returns:
            Raw zip archive bytes
        """
        pass

    @abstractmethod
    def cancel_variant_analysis(
        self, credentials: Credentials, variant_analysis: VariantAnalysis
    ) -> None:
        """
        Ask the controller to cancel the workflow run of a variant analysis.

        Args:
            credentials: Validated credentials
            variant_analysis: Variant analysis with a workflow run id
        """
        pass

"""
Variant Analysis Value Objects

Immutable value objects for variant analysis status, per-repository
download status and repository filter/sort options.
"""

from dataclasses import dataclass
from enum import Enum


class VariantAnalysisStatus(Enum):
    """Overall status of a variant analysis."""
    IN_PROGRESS = "in_progress"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLING = "cancelling"
    CANCELLED = "cancelled"

    def is_final(self) -> bool:
        """Check if status is final (succeeded, failed or cancelled)."""
        return self in (
            VariantAnalysisStatus.SUCCEEDED,
            VariantAnalysisStatus.FAILED,
            VariantAnalysisStatus.CANCELLED,
        )


class VariantAnalysisFailureReason(Enum):
    """Why the controller refused or aborted a variant analysis."""
    NO_REPOS_QUERIED = "no_repos_queried"
    ACTIONS_WORKFLOW_RUN_FAILED = "actions_workflow_run_failed"
    INTERNAL_ERROR = "internal_error"


class RepoAnalysisStatus(Enum):
    """Status of the analysis of one repository on the remote side."""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"
    TIMED_OUT = "timed_out"

    def is_completed(self) -> bool:
        """Check if the remote analysis of the repository has finished."""
        return self in (
            RepoAnalysisStatus.SUCCEEDED,
            RepoAnalysisStatus.FAILED,
            RepoAnalysisStatus.CANCELED,
            RepoAnalysisStatus.TIMED_OUT,
        )


class RepoDownloadStatus(Enum):
    """
    Local download status of one repository's results.

    Values are the strings written to the repo states document.
    """
    PENDING = "pending"
    IN_PROGRESS = "inProgress"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    def can_retry(self) -> bool:
        """Check if a manual retry may move this status back to in progress."""
        return self in (RepoDownloadStatus.PENDING, RepoDownloadStatus.FAILED)


class FilterKey(Enum):
    """Which repositories to include in a listing."""
    ALL = "all"
    WITH_RESULTS = "withResults"


class SortKey(Enum):
    """How repositories in a listing are ordered."""
    NAME = "name"
    STARS = "stars"
    LAST_UPDATED = "lastUpdated"
    RESULTS_COUNT = "resultsCount"


@dataclass(frozen=True)
class FilterSortState:
    """
    Value object describing how a repository listing is filtered and sorted.

    Immutable so the same options can be shared between requests.
    """
    search_value: str = ""
    filter_key: FilterKey = FilterKey.ALL
    sort_key: SortKey = SortKey.NAME

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "search_value": self.search_value,
            "filter_key": self.filter_key.value,
            "sort_key": self.sort_key.value,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'FilterSortState':
        """
        Create FilterSortState from dictionary.

        Raises:
            ValueError: If filter_key or sort_key is not a known value
        """
        return cls(
            search_value=data.get("search_value") or "",
            filter_key=FilterKey(data.get("filter_key", FilterKey.ALL.value)),
            sort_key=SortKey(data.get("sort_key", SortKey.NAME.value)),
        )

    @classmethod
    def default(cls) -> 'FilterSortState':
        """Options used when the caller supplies none: everything, sorted by name."""
        return cls()

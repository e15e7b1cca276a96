"""
Variant Analysis Domain

Variant analyses, their scanned repositories and per-repository download state.
"""

from .entities import (
    ControllerRepository,
    RepoDownloadState,
    RepoTask,
    Repository,
    ScannedRepository,
    SkippedRepositories,
    SkippedRepositoryGroup,
    VariantAnalysis,
    VariantAnalysisQuery,
    VariantAnalysisSubmission,
)
from .value_objects import (
    FilterKey,
    FilterSortState,
    RepoAnalysisStatus,
    RepoDownloadStatus,
    SortKey,
    VariantAnalysisFailureReason,
    VariantAnalysisStatus,
)

__all__ = [
    'ControllerRepository',
    'RepoDownloadState',
    'RepoTask',
    'Repository',
    'ScannedRepository',
    'SkippedRepositories',
    'SkippedRepositoryGroup',
    'VariantAnalysis',
    'VariantAnalysisQuery',
    'VariantAnalysisSubmission',
    'FilterKey',
    'FilterSortState',
    'RepoAnalysisStatus',
    'RepoDownloadStatus',
    'SortKey',
    'VariantAnalysisFailureReason',
    'VariantAnalysisStatus',
]

"""
Variant Analysis Entities

Domain entities for variant analyses, their scanned repositories and the
per-repository download state.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from .value_objects import (
    RepoAnalysisStatus,
    RepoDownloadStatus,
    VariantAnalysisFailureReason,
    VariantAnalysisStatus,
)


def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _format_datetime(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass(frozen=True)
class Repository:
    """A GitHub repository targeted by a variant analysis."""

    id: int
    full_name: str
    private: bool = False
    stargazers_count: Optional[int] = None
    updated_at: Optional[datetime] = None

    @property
    def owner(self) -> str:
        return self.full_name.split("/", 1)[0]

    @property
    def name(self) -> str:
        return self.full_name.split("/", 1)[-1]

    def to_dict(self) -> Dict[str, Any]:
        """Convert repository to dictionary for serialization."""
        return {
            "id": self.id,
            "full_name": self.full_name,
            "private": self.private,
            "stargazers_count": self.stargazers_count,
            "updated_at": _format_datetime(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Repository":
        """Create Repository from dictionary."""
        return cls(
            id=int(data["id"]),
            full_name=data["full_name"],
            private=bool(data.get("private", False)),
            stargazers_count=data.get("stargazers_count"),
            updated_at=_parse_datetime(data.get("updated_at")),
        )


@dataclass(frozen=True)
class ScannedRepository:
    """
    Summary of one repository's remote analysis within a variant analysis.

    Attributes:
        repository: Repository identity
        analysis_status: Remote analysis status
        result_count: Number of results, None while unknown
        artifact_size_in_bytes: Size of the results artifact, None while unknown
        failure_message: Reason the remote analysis failed, if it did
    """

    repository: Repository
    analysis_status: RepoAnalysisStatus
    result_count: Optional[int] = None
    artifact_size_in_bytes: Optional[int] = None
    failure_message: Optional[str] = None

    def has_results(self) -> bool:
        """Check if the repository produced at least one result."""
        return bool(self.result_count)

    def to_dict(self) -> Dict[str, Any]:
        """Convert scanned repository to dictionary for serialization."""
        return {
            "repository": self.repository.to_dict(),
            "analysis_status": self.analysis_status.value,
            "result_count": self.result_count,
            "artifact_size_in_bytes": self.artifact_size_in_bytes,
            "failure_message": self.failure_message,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ScannedRepository":
        """Create ScannedRepository from dictionary."""
        return cls(
            repository=Repository.from_dict(data["repository"]),
            analysis_status=RepoAnalysisStatus(data["analysis_status"]),
            result_count=data.get("result_count"),
            artifact_size_in_bytes=data.get("artifact_size_in_bytes"),
            failure_message=data.get("failure_message"),
        )


@dataclass(frozen=True)
class SkippedRepositoryGroup:
    """Repositories the controller refused to analyse for a single reason."""

    repository_count: int
    repositories: List[Repository] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "repository_count": self.repository_count,
            "repositories": [repo.to_dict() for repo in self.repositories],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SkippedRepositoryGroup":
        return cls(
            repository_count=int(data.get("repository_count", 0)),
            repositories=[
                Repository.from_dict(repo) for repo in data.get("repositories", [])
            ],
        )


@dataclass(frozen=True)
class SkippedRepositories:
    """Skipped repositories grouped by reason."""

    access_mismatch_repos: Optional[SkippedRepositoryGroup] = None
    not_found_repos: Optional[SkippedRepositoryGroup] = None
    no_codeql_db_repos: Optional[SkippedRepositoryGroup] = None
    over_limit_repos: Optional[SkippedRepositoryGroup] = None

    _GROUPS = (
        "access_mismatch_repos",
        "not_found_repos",
        "no_codeql_db_repos",
        "over_limit_repos",
    )

    def total_count(self) -> int:
        """Total number of skipped repositories across all groups."""
        return sum(
            group.repository_count
            for group in (getattr(self, name) for name in self._GROUPS)
            if group is not None
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            name: getattr(self, name).to_dict() if getattr(self, name) else None
            for name in self._GROUPS
        }

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "SkippedRepositories":
        data = data or {}
        return cls(**{
            name: SkippedRepositoryGroup.from_dict(data[name]) if data.get(name) else None
            for name in cls._GROUPS
        })


@dataclass(frozen=True)
class ControllerRepository:
    """Repository whose Actions workflows run the variant analysis."""

    id: int
    full_name: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "full_name": self.full_name}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ControllerRepository":
        return cls(id=int(data["id"]), full_name=data["full_name"])


@dataclass(frozen=True)
class VariantAnalysisQuery:
    """The query that is run against every repository."""

    name: str
    file_path: str
    language: str
    text: str = ""
    kind: str = "problem"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "file_path": self.file_path,
            "language": self.language,
            "text": self.text,
            "kind": self.kind,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "VariantAnalysisQuery":
        return cls(
            name=data["name"],
            file_path=data.get("file_path", ""),
            language=data["language"],
            text=data.get("text", ""),
            kind=data.get("kind", "problem"),
        )


@dataclass
class RepoDownloadState:
    """
    Entity tracking the local download of one repository's results.

    Serialized with the camelCase keys of the repo states document.
    """

    repository_id: int
    download_status: RepoDownloadStatus

    def to_dict(self) -> Dict[str, Any]:
        return {
            "repositoryId": self.repository_id,
            "downloadStatus": self.download_status.value,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RepoDownloadState":
        return cls(
            repository_id=int(data["repositoryId"]),
            download_status=RepoDownloadStatus(data["downloadStatus"]),
        )


@dataclass
class VariantAnalysis:
    """
    Entity representing one variant analysis run.

    The id is assigned by the controller and never changes. Status moves
    from in progress to a final status; a final status is never left.
    """

    id: int
    controller_repo: ControllerRepository
    query: VariantAnalysisQuery
    status: VariantAnalysisStatus
    created_at: datetime
    updated_at: datetime
    execution_start_time: Optional[datetime] = None
    database_selection: Dict[str, Any] = field(default_factory=dict)
    completed_at: Optional[datetime] = None
    actions_workflow_run_id: Optional[int] = None
    failure_reason: Optional[VariantAnalysisFailureReason] = None
    scanned_repos: List[ScannedRepository] = field(default_factory=list)
    skipped_repos: SkippedRepositories = field(default_factory=SkippedRepositories)

    def is_final(self) -> bool:
        """Check if the variant analysis reached a final status."""
        return self.status.is_final()

    def has_workflow_run(self) -> bool:
        return self.actions_workflow_run_id is not None

    def find_scanned_repo(self, repository_id: int) -> Optional[ScannedRepository]:
        """
        Look up a scanned repository by repository id.

        Args:
            repository_id: Numeric repository id

        Returns:
            ScannedRepository if the repository is part of this analysis, None otherwise
        """
        for scanned_repo in self.scanned_repos:
            if scanned_repo.repository.id == repository_id:
                return scanned_repo
        return None

    def is_complete(self, repo_states: Mapping[int, RepoDownloadState]) -> bool:
        """
        Check if nothing is left to do for this variant analysis.

        Complete means the status is final and every repository whose remote
        analysis succeeded has had its results downloaded.

        Args:
            repo_states: Download state per repository id

        Returns:
            True if complete, False otherwise
        """
        if not self.is_final():
            return False

        for scanned_repo in self.scanned_repos:
            if scanned_repo.analysis_status != RepoAnalysisStatus.SUCCEEDED:
                continue
            state = repo_states.get(scanned_repo.repository.id)
            if state is None or state.download_status != RepoDownloadStatus.SUCCEEDED:
                return False
        return True

    def mark_cancelling(self) -> None:
        """
        Transition to the cancelling status.

        Raises:
            ValueError: If the variant analysis is already final
        """
        if self.is_final():
            raise ValueError(f"Cannot cancel variant analysis in {self.status.value} state")

        self.status = VariantAnalysisStatus.CANCELLING
        self.updated_at = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """Convert variant analysis to dictionary for serialization."""
        return {
            "id": self.id,
            "controller_repo": self.controller_repo.to_dict(),
            "query": self.query.to_dict(),
            "status": self.status.value,
            "created_at": _format_datetime(self.created_at),
            "updated_at": _format_datetime(self.updated_at),
            "execution_start_time": _format_datetime(self.execution_start_time),
            "database_selection": dict(self.database_selection),
            "completed_at": _format_datetime(self.completed_at),
            "actions_workflow_run_id": self.actions_workflow_run_id,
            "failure_reason": self.failure_reason.value if self.failure_reason else None,
            "scanned_repos": [repo.to_dict() for repo in self.scanned_repos],
            "skipped_repos": self.skipped_repos.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "VariantAnalysis":
        """Create VariantAnalysis from dictionary."""
        failure_reason = data.get("failure_reason")
        return cls(
            id=int(data["id"]),
            controller_repo=ControllerRepository.from_dict(data["controller_repo"]),
            query=VariantAnalysisQuery.from_dict(data["query"]),
            status=VariantAnalysisStatus(data["status"]),
            created_at=datetime.fromisoformat(data["created_at"]),
            updated_at=datetime.fromisoformat(data["updated_at"]),
            execution_start_time=_parse_datetime(data.get("execution_start_time")),
            database_selection=dict(data.get("database_selection") or {}),
            completed_at=_parse_datetime(data.get("completed_at")),
            actions_workflow_run_id=data.get("actions_workflow_run_id"),
            failure_reason=(
                VariantAnalysisFailureReason(failure_reason) if failure_reason else None
            ),
            scanned_repos=[
                ScannedRepository.from_dict(repo) for repo in data.get("scanned_repos", [])
            ],
            skipped_repos=SkippedRepositories.from_dict(data.get("skipped_repos")),
        )


@dataclass(frozen=True)
class RepoTask:
    """
    Remote metadata about one repository's analysis.

    A missing artifact_url means no results can be downloaded.
    """

    repository: Repository
    analysis_status: RepoAnalysisStatus
    artifact_url: Optional[str] = None
    artifact_size_in_bytes: Optional[int] = None
    result_count: Optional[int] = None
    failure_message: Optional[str] = None
    database_commit_sha: Optional[str] = None
    source_location_prefix: Optional[str] = None

    def has_artifact(self) -> bool:
        return bool(self.artifact_url)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "repository": self.repository.to_dict(),
            "analysis_status": self.analysis_status.value,
            "artifact_url": self.artifact_url,
            "artifact_size_in_bytes": self.artifact_size_in_bytes,
            "result_count": self.result_count,
            "failure_message": self.failure_message,
            "database_commit_sha": self.database_commit_sha,
            "source_location_prefix": self.source_location_prefix,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RepoTask":
        return cls(
            repository=Repository.from_dict(data["repository"]),
            analysis_status=RepoAnalysisStatus(data["analysis_status"]),
            artifact_url=data.get("artifact_url"),
            artifact_size_in_bytes=data.get("artifact_size_in_bytes"),
            result_count=data.get("result_count"),
            failure_message=data.get("failure_message"),
            database_commit_sha=data.get("database_commit_sha"),
            source_location_prefix=data.get("source_location_prefix"),
        )


@dataclass(frozen=True)
class VariantAnalysisSubmission:
    """
    Everything needed to start a variant analysis on the controller.

    Attributes:
        controller_repo_id: Id of the controller repository
        action_repo_ref: Git ref of the Actions workflow to run
        query: Query metadata
        query_pack: Base64 encoded, gzipped query pack
        repositories: Full names of individual target repositories
        repository_lists: Names of configured repository lists
        repository_owners: Owners whose repositories are all targeted
    """

    controller_repo_id: int
    action_repo_ref: str
    query: VariantAnalysisQuery
    query_pack: str
    repositories: List[str] = field(default_factory=list)
    repository_lists: List[str] = field(default_factory=list)
    repository_owners: List[str] = field(default_factory=list)

    def database_selection(self) -> Dict[str, Any]:
        return {
            "repositories": list(self.repositories),
            "repository_lists": list(self.repository_lists),
            "repository_owners": list(self.repository_owners),
        }

    def has_targets(self) -> bool:
        return bool(self.repositories or self.repository_lists or self.repository_owners)

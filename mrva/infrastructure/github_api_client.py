"""
GitHub Variant Analysis API Client

Infrastructure implementation of the remote control plane using the GitHub
REST API for CodeQL variant analyses.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

import requests
from requests.exceptions import RequestException

from mrva.domain.errors import RemoteApiError
from mrva.domain.variant_analysis.entities import (
    ControllerRepository,
    RepoTask,
    Repository,
    ScannedRepository,
    SkippedRepositories,
    SkippedRepositoryGroup,
    VariantAnalysis,
    VariantAnalysisQuery,
    VariantAnalysisSubmission,
)
from mrva.domain.variant_analysis.repositories import Credentials, VariantAnalysisApiClient
from mrva.domain.variant_analysis.value_objects import (
    RepoAnalysisStatus,
    VariantAnalysisFailureReason,
    VariantAnalysisStatus,
)

logger = logging.getLogger(__name__)

GITHUB_API_VERSION = "2022-11-28"

_VARIANT_ANALYSIS_STATUSES = {
    "in_progress": VariantAnalysisStatus.IN_PROGRESS,
    "succeeded": VariantAnalysisStatus.SUCCEEDED,
    "failed": VariantAnalysisStatus.FAILED,
    "cancelled": VariantAnalysisStatus.CANCELLED,
}


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    # GitHub uses a trailing Z, which fromisoformat only accepts from 3.11
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def map_repository(data: Mapping[str, Any]) -> Repository:
    """Map an API repository object to a Repository."""
    return Repository(
        id=int(data["id"]),
        full_name=data["full_name"],
        private=bool(data.get("private", False)),
        stargazers_count=data.get("stargazers_count"),
        updated_at=_parse_timestamp(data.get("updated_at")),
    )


def map_scanned_repository(data: Mapping[str, Any]) -> ScannedRepository:
    """Map an API scanned repository object to a ScannedRepository."""
    return ScannedRepository(
        repository=map_repository(data["repository"]),
        analysis_status=RepoAnalysisStatus(data["analysis_status"]),
        result_count=data.get("result_count"),
        artifact_size_in_bytes=data.get("artifact_size_in_bytes"),
        failure_message=data.get("failure_message"),
    )


def _map_skipped_group(data: Optional[Mapping[str, Any]]) -> Optional[SkippedRepositoryGroup]:
    if not data:
        return None

    if "repositories" in data:
        repositories = [map_repository(repo) for repo in data["repositories"]]
    else:
        # not_found_repos only carries names; those repositories have no id
        repositories = [
            Repository(id=0, full_name=full_name)
            for full_name in data.get("repository_full_names", [])
        ]
    return SkippedRepositoryGroup(
        repository_count=int(data.get("repository_count", len(repositories))),
        repositories=repositories,
    )


def map_skipped_repositories(data: Optional[Mapping[str, Any]]) -> SkippedRepositories:
    """Map the API skipped_repositories object to SkippedRepositories."""
    data = data or {}
    return SkippedRepositories(
        access_mismatch_repos=_map_skipped_group(data.get("access_mismatch_repos")),
        not_found_repos=_map_skipped_group(data.get("not_found_repos")),
        no_codeql_db_repos=_map_skipped_group(data.get("no_codeql_db_repos")),
        over_limit_repos=_map_skipped_group(data.get("over_limit_repos")),
    )


def map_variant_analysis(
    data: Mapping[str, Any],
    query: VariantAnalysisQuery,
    database_selection: Optional[Dict[str, Any]] = None,
    execution_start_time: Optional[datetime] = None,
) -> VariantAnalysis:
    """
    Map an API variant analysis to a VariantAnalysis.

    The API does not echo the query or the database selection, so they come
    from the submission or from the locally known variant analysis.
    """
    now = datetime.now(timezone.utc)
    failure_reason = data.get("failure_reason")
    controller = data["controller_repo"]

    return VariantAnalysis(
        id=int(data["id"]),
        controller_repo=ControllerRepository(id=int(controller["id"]), full_name=controller["full_name"]),
        query=query,
        status=_VARIANT_ANALYSIS_STATUSES[data["status"]],
        created_at=_parse_timestamp(data.get("created_at")) or now,
        updated_at=_parse_timestamp(data.get("updated_at")) or now,
        execution_start_time=execution_start_time,
        database_selection=dict(database_selection or {}),
        completed_at=_parse_timestamp(data.get("completed_at")),
        actions_workflow_run_id=data.get("actions_workflow_run_id"),
        failure_reason=VariantAnalysisFailureReason(failure_reason) if failure_reason else None,
        scanned_repos=[map_scanned_repository(repo) for repo in data.get("scanned_repositories", [])],
        skipped_repos=map_skipped_repositories(data.get("skipped_repositories")),
    )


def map_repo_task(data: Mapping[str, Any]) -> RepoTask:
    """Map an API repository task to a RepoTask."""
    return RepoTask(
        repository=map_repository(data["repository"]),
        analysis_status=RepoAnalysisStatus(data["analysis_status"]),
        artifact_url=data.get("artifact_url"),
        artifact_size_in_bytes=data.get("artifact_size_in_bytes"),
        result_count=data.get("result_count"),
        failure_message=data.get("failure_message"),
        database_commit_sha=data.get("database_commit_sha"),
        source_location_prefix=data.get("source_location_prefix"),
    )


class GitHubApiClient(VariantAnalysisApiClient):
    """
    GitHub REST API client for variant analyses.

    Uses a requests session; every failed call is wrapped in RemoteApiError.
    """

    def __init__(
        self,
        api_base: str = "https://api.github.com",
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize GitHub API client.

        Args:
            api_base: API base URL
            timeout: Request timeout in seconds
            session: Optional pre-configured session
        """
        self.api_base = api_base
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
        })

    def _request(
        self,
        method: str,
        endpoint: str,
        credentials: Credentials,
        **kwargs
    ) -> requests.Response:
        """
        Make an authenticated API request.

        Args:
            method: HTTP method
            endpoint: API endpoint relative to the base URL
            credentials: Credentials used for the Authorization header
            **kwargs: Additional request arguments

        Returns:
            Successful response

        Raises:
            RemoteApiError: On connection errors or non-2xx responses
        """
        url = f"{self.api_base.rstrip('/')}/{endpoint.lstrip('/')}"
        headers = kwargs.pop("headers", {})
        headers["Authorization"] = f"Bearer {credentials.token}"

        try:
            response = self.session.request(
                method, url, headers=headers, timeout=self.timeout, **kwargs
            )
            response.raise_for_status()
            return response
        except RequestException as e:
            status_code = e.response.status_code if e.response is not None else None
            error_msg = f"GitHub API request {method} {endpoint} failed: {e}"
            logger.error(error_msg)
            raise RemoteApiError(error_msg, status_code=status_code, original_error=e) from e

    @staticmethod
    def _variant_analyses_endpoint(controller_repo_id: int) -> str:
        return f"repositories/{controller_repo_id}/code-scanning/codeql/variant-analyses"

    def submit_variant_analysis(
        self, credentials: Credentials, submission: VariantAnalysisSubmission
    ) -> VariantAnalysis:
        """Start a variant analysis on the controller repository."""
        logger.info(
            f"Submitting variant analysis of {submission.query.name} "
            f"to controller repository {submission.controller_repo_id}"
        )
        payload = {
            "action_repo_ref": submission.action_repo_ref,
            "language": submission.query.language,
            "query_pack": submission.query_pack,
        }
        if submission.repositories:
            payload["repositories"] = submission.repositories
        if submission.repository_lists:
            payload["repository_lists"] = submission.repository_lists
        if submission.repository_owners:
            payload["repository_owners"] = submission.repository_owners

        response = self._request(
            "POST",
            self._variant_analyses_endpoint(submission.controller_repo_id),
            credentials,
            json=payload,
        )
        return map_variant_analysis(
            response.json(),
            query=submission.query,
            database_selection=submission.database_selection(),
            execution_start_time=datetime.now(timezone.utc),
        )

    def get_variant_analysis(
        self, credentials: Credentials, variant_analysis: VariantAnalysis
    ) -> VariantAnalysis:
        """Fetch the current summary of a variant analysis."""
        endpoint = (
            f"{self._variant_analyses_endpoint(variant_analysis.controller_repo.id)}"
            f"/{variant_analysis.id}"
        )
        response = self._request("GET", endpoint, credentials)
        return map_variant_analysis(
            response.json(),
            query=variant_analysis.query,
            database_selection=variant_analysis.database_selection,
            execution_start_time=variant_analysis.execution_start_time,
        )

    def get_variant_analysis_repo(
        self,
        credentials: Credentials,
        variant_analysis: VariantAnalysis,
        scanned_repo: ScannedRepository,
    ) -> RepoTask:
        """Fetch metadata for one repository's analysis."""
        endpoint = (
            f"{self._variant_analyses_endpoint(variant_analysis.controller_repo.id)}"
            f"/{variant_analysis.id}/repositories/{scanned_repo.repository.id}"
        )
        response = self._request("GET", endpoint, credentials)
        return map_repo_task(response.json())

    def get_variant_analysis_repo_result(
        self, credentials: Credentials, artifact_url: str
    ) -> bytes:
        """
        Download a results artifact.

        Artifact URLs are pre-signed, so no Authorization header is sent.
        """
        try:
            response = self.session.get(
                artifact_url, headers={"Authorization": None}, timeout=self.timeout
            )
            response.raise_for_status()
            return response.content
        except RequestException as e:
            status_code = e.response.status_code if e.response is not None else None
            error_msg = f"Artifact download failed: {e}"
            logger.error(error_msg)
            raise RemoteApiError(error_msg, status_code=status_code, original_error=e) from e

    def cancel_variant_analysis(
        self, credentials: Credentials, variant_analysis: VariantAnalysis
    ) -> None:
        """Cancel the Actions workflow run of a variant analysis."""
        endpoint = (
            f"repositories/{variant_analysis.controller_repo.id}"
            f"/actions/runs/{variant_analysis.actions_workflow_run_id}/cancel"
        )
        self._request("POST", endpoint, credentials)
        logger.info(
            f"Requested cancellation of workflow run {variant_analysis.actions_workflow_run_id} "
            f"for variant analysis {variant_analysis.id}"
        )

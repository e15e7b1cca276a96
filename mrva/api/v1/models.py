"""
API Models for request/response validation and Swagger documentation
"""

from flask_restx import fields

from mrva.api.v1 import api

# =============================================================================
# Request Models
# =============================================================================

query_request = api.model(
    "QueryRequest",
    {
        "name": fields.String(required=True, description="Query name", example="Unsafe eval"),
        "file_path": fields.String(description="Path of the query file", example="queries/eval.ql"),
        "language": fields.String(required=True, description="Query language", example="javascript"),
        "text": fields.String(description="Query source text"),
        "kind": fields.String(description="Query kind", example="problem"),
    },
)

submit_request = api.model(
    "SubmitVariantAnalysisRequest",
    {
        "controller_repo_id": fields.Integer(
            required=True, description="Id of the controller repository", example=123456
        ),
        "action_repo_ref": fields.String(description="Git ref of the workflow to run", example="main"),
        "query": fields.Nested(query_request, required=True),
        "query_pack": fields.String(required=True, description="Base64 encoded, gzipped query pack"),
        "repositories": fields.List(fields.String, description="Target repositories (owner/name)"),
        "repository_lists": fields.List(fields.String, description="Target repository lists"),
        "repository_owners": fields.List(fields.String, description="Target repository owners"),
    },
)

# =============================================================================
# Response Models
# =============================================================================

repository_model = api.model(
    "Repository",
    {
        "id": fields.Integer(description="Repository id"),
        "full_name": fields.String(description="owner/name"),
        "private": fields.Boolean(),
        "stargazers_count": fields.Integer(allow_null=True),
        "updated_at": fields.String(allow_null=True),
    },
)

scanned_repository_model = api.model(
    "ScannedRepository",
    {
        "repository": fields.Nested(repository_model),
        "analysis_status": fields.String(
            enum=["pending", "in_progress", "succeeded", "failed", "canceled", "timed_out"]
        ),
        "result_count": fields.Integer(allow_null=True),
        "artifact_size_in_bytes": fields.Integer(allow_null=True),
        "failure_message": fields.String(allow_null=True),
    },
)

variant_analysis_response = api.model(
    "VariantAnalysis",
    {
        "id": fields.Integer(description="Variant analysis id"),
        "status": fields.String(
            enum=["in_progress", "succeeded", "failed", "cancelling", "cancelled"]
        ),
        "actions_workflow_run_id": fields.Integer(allow_null=True),
        "failure_reason": fields.String(allow_null=True),
        "created_at": fields.String(),
        "updated_at": fields.String(),
        "completed_at": fields.String(allow_null=True),
        "scanned_repos": fields.List(fields.Nested(scanned_repository_model)),
    },
)

repo_state_response = api.model(
    "RepoDownloadState",
    {
        "repositoryId": fields.Integer(description="Repository id"),
        "downloadStatus": fields.String(enum=["pending", "inProgress", "succeeded", "failed"]),
    },
)

repo_list_response = api.model(
    "RepoListExport",
    {
        "repo_list": fields.String(description='"new-repo-list" JSON fragment without braces'),
    },
)

queued_response = api.model(
    "Queued",
    {
        "message": fields.String(),
        "queue_size": fields.Integer(description="Downloads not completed yet"),
    },
)

error_response = api.model(
    "ErrorResponse",
    {
        "error": fields.String(description="Error category"),
        "title": fields.String(description="Short title"),
        "message": fields.String(description="User-friendly message"),
        "action": fields.String(description="What to do next"),
        "detail": fields.String(description="Technical detail"),
    },
)

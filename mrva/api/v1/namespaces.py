"""
API Namespaces - Variant analysis endpoints
"""

from flask import current_app, request
from flask_restx import Namespace, Resource

from mrva.api.v1.models import (
    error_response,
    queued_response,
    repo_list_response,
    repo_state_response,
    submit_request,
    variant_analysis_response,
)
from mrva.domain.errors import (
    DomainError,
    ErrorCategory,
    categorize_domain_error,
    create_error_response,
)
from mrva.domain.variant_analysis.entities import (
    VariantAnalysisQuery,
    VariantAnalysisSubmission,
)
from mrva.domain.variant_analysis.value_objects import FilterSortState

variant_analysis_ns = Namespace(
    "variant-analyses", description="Variant analysis orchestration"
)


def _get_manager():
    """Return the manager, or an error response tuple when it is unavailable."""
    manager = getattr(current_app, "variant_analysis_manager", None)
    if manager is None:
        return None, create_error_response(
            ErrorCategory.SYSTEM_ERROR,
            "Variant analysis manager not initialized",
            status_code=503,
        )
    return manager, None


def _domain_error_response(error: DomainError):
    category, status_code = categorize_domain_error(error)
    if status_code >= 500:
        current_app.logger.error(f"{error.__class__.__name__}: {error}")
    return create_error_response(category, str(error), status_code=status_code)


def _unexpected_error_response(action: str, error: Exception):
    current_app.logger.exception(f"Unexpected error while {action}: {error}")
    return create_error_response(
        ErrorCategory.SYSTEM_ERROR, f"Internal server error: {error}", status_code=500
    )


@variant_analysis_ns.route("")
class VariantAnalysisList(Resource):
    """Registered variant analyses"""

    @variant_analysis_ns.doc("list_variant_analyses")
    @variant_analysis_ns.response(200, "Success", [variant_analysis_response])
    def get(self):
        """List every registered variant analysis"""
        manager, error = _get_manager()
        if error:
            return error
        return [va.to_dict() for va in manager.list_variant_analyses()], 200

    @variant_analysis_ns.doc("submit_variant_analysis")
    @variant_analysis_ns.expect(submit_request, validate=True)
    @variant_analysis_ns.response(201, "Submitted", variant_analysis_response)
    @variant_analysis_ns.response(400, "Bad Request", error_response)
    @variant_analysis_ns.response(401, "Authentication Failed", error_response)
    @variant_analysis_ns.response(502, "GitHub API Error", error_response)
    def post(self):
        """
        Submit a variant analysis

        Starts the analysis on the controller repository and monitors it;
        results are downloaded as repositories finish.
        """
        manager, error = _get_manager()
        if error:
            return error

        data = request.get_json() or {}
        try:
            submission = VariantAnalysisSubmission(
                controller_repo_id=int(data["controller_repo_id"]),
                action_repo_ref=data.get("action_repo_ref")
                or current_app.config.get("MRVA_ACTION_REPO_REF", "main"),
                query=VariantAnalysisQuery.from_dict(data["query"]),
                query_pack=data["query_pack"],
                repositories=data.get("repositories") or [],
                repository_lists=data.get("repository_lists") or [],
                repository_owners=data.get("repository_owners") or [],
            )
        except (KeyError, TypeError, ValueError) as e:
            return create_error_response(
                ErrorCategory.INVALID_REQUEST, f"Invalid submission: {e}", status_code=400
            )

        if not submission.has_targets():
            return create_error_response(
                ErrorCategory.INVALID_REQUEST,
                "No repositories, repository lists or owners selected",
                status_code=400,
            )

        try:
            variant_analysis = manager.submit_variant_analysis(submission)
            return variant_analysis.to_dict(), 201
        except DomainError as e:
            return _domain_error_response(e)
        except Exception as e:
            return _unexpected_error_response("submitting a variant analysis", e)


@variant_analysis_ns.route("/<int:variant_analysis_id>")
@variant_analysis_ns.param("variant_analysis_id", "The variant analysis identifier")
class VariantAnalysisResource(Resource):
    """One variant analysis"""

    @variant_analysis_ns.doc("get_variant_analysis")
    @variant_analysis_ns.response(200, "Success", variant_analysis_response)
    @variant_analysis_ns.response(404, "Not Found", error_response)
    def get(self, variant_analysis_id):
        """Get a variant analysis with its scanned repositories"""
        manager, error = _get_manager()
        if error:
            return error

        try:
            return manager.require_variant_analysis(variant_analysis_id).to_dict(), 200
        except DomainError as e:
            return _domain_error_response(e)

    @variant_analysis_ns.doc("remove_variant_analysis")
    @variant_analysis_ns.response(204, "Removed")
    @variant_analysis_ns.response(404, "Not Found", error_response)
    def delete(self, variant_analysis_id):
        """
        Remove a variant analysis

        Deletes downloaded results and local state. The remote run is not
        cancelled; use the cancel endpoint for that.
        """
        manager, error = _get_manager()
        if error:
            return error

        try:
            variant_analysis = manager.require_variant_analysis(variant_analysis_id)
            manager.remove_variant_analysis(variant_analysis)
            return "", 204
        except DomainError as e:
            return _domain_error_response(e)
        except Exception as e:
            return _unexpected_error_response(f"removing variant analysis {variant_analysis_id}", e)


@variant_analysis_ns.route("/<int:variant_analysis_id>/cancel")
@variant_analysis_ns.param("variant_analysis_id", "The variant analysis identifier")
class VariantAnalysisCancel(Resource):
    """Cancellation of the remote run"""

    @variant_analysis_ns.doc("cancel_variant_analysis")
    @variant_analysis_ns.response(202, "Cancellation requested", variant_analysis_response)
    @variant_analysis_ns.response(401, "Authentication Failed", error_response)
    @variant_analysis_ns.response(404, "Not Found", error_response)
    @variant_analysis_ns.response(409, "No workflow run or already finished", error_response)
    @variant_analysis_ns.response(502, "GitHub API Error", error_response)
    def post(self, variant_analysis_id):
        """Ask GitHub to cancel the workflow run of a variant analysis"""
        manager, error = _get_manager()
        if error:
            return error

        try:
            variant_analysis = manager.cancel_variant_analysis(variant_analysis_id)
            return variant_analysis.to_dict(), 202
        except DomainError as e:
            return _domain_error_response(e)
        except Exception as e:
            return _unexpected_error_response(f"cancelling variant analysis {variant_analysis_id}", e)


@variant_analysis_ns.route("/<int:variant_analysis_id>/repo-states")
@variant_analysis_ns.param("variant_analysis_id", "The variant analysis identifier")
class RepoStates(Resource):
    """Per-repository download states"""

    @variant_analysis_ns.doc("get_repo_states")
    @variant_analysis_ns.response(200, "Success", [repo_state_response])
    @variant_analysis_ns.response(404, "Not Found", error_response)
    def get(self, variant_analysis_id):
        """List the download state of every repository that was attempted"""
        manager, error = _get_manager()
        if error:
            return error

        try:
            manager.require_variant_analysis(variant_analysis_id)
            return [state.to_dict() for state in manager.get_repo_states(variant_analysis_id)], 200
        except DomainError as e:
            return _domain_error_response(e)


@variant_analysis_ns.route("/<int:variant_analysis_id>/repositories/<int:repository_id>/download")
@variant_analysis_ns.param("variant_analysis_id", "The variant analysis identifier")
@variant_analysis_ns.param("repository_id", "The repository identifier")
class RepoDownloadRetry(Resource):
    """Manual download of one repository"""

    @variant_analysis_ns.doc("retry_repo_download")
    @variant_analysis_ns.response(202, "Queued", queued_response)
    @variant_analysis_ns.response(404, "Not Found", error_response)
    @variant_analysis_ns.response(409, "Nothing to download", error_response)
    def post(self, variant_analysis_id, repository_id):
        """Queue another download of a repository whose download failed"""
        manager, error = _get_manager()
        if error:
            return error

        try:
            manager.retry_repo_download(variant_analysis_id, repository_id)
            return {
                "message": f"Download of repository {repository_id} queued",
                "queue_size": manager.downloads_queue_size(),
            }, 202
        except DomainError as e:
            return _domain_error_response(e)


@variant_analysis_ns.route("/<int:variant_analysis_id>/repo-list")
@variant_analysis_ns.param("variant_analysis_id", "The variant analysis identifier")
class RepoListExport(Resource):
    """Export of repositories with results"""

    @variant_analysis_ns.doc(
        "export_repo_list",
        params={
            "search_value": "Case-insensitive substring of owner/name",
            "filter_key": "all | withResults",
            "sort_key": "name | stars | lastUpdated | resultsCount",
        },
    )
    @variant_analysis_ns.response(200, "Success", repo_list_response)
    @variant_analysis_ns.response(204, "No repositories with results")
    @variant_analysis_ns.response(400, "Bad Request", error_response)
    @variant_analysis_ns.response(404, "Not Found", error_response)
    def get(self, variant_analysis_id):
        """
        Export repositories with results as a repository list

        The fragment can be pasted into a databases configuration file.
        """
        manager, error = _get_manager()
        if error:
            return error

        try:
            filter_sort_state = FilterSortState.from_dict(request.args)
        except ValueError as e:
            return create_error_response(
                ErrorCategory.INVALID_REQUEST, str(e), status_code=400
            )

        try:
            repo_list = manager.export_repo_list(variant_analysis_id, filter_sort_state)
        except DomainError as e:
            return _domain_error_response(e)

        if repo_list is None:
            return "", 204
        return {"repo_list": repo_list}, 200

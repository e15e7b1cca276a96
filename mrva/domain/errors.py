"""
Error Handling Module

Defines domain exceptions and error categories for the orchestration engine.
Domain exceptions are pure and have no external dependencies.
Application exceptions carry user-facing messaging for the API layer.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCategory(Enum):
    """Error category enumeration for structured error handling."""

    VARIANT_ANALYSIS_NOT_FOUND = "variant_analysis_not_found"
    MISSING_WORKFLOW_RUN = "missing_workflow_run"
    AUTHENTICATION_FAILED = "authentication_failed"
    DOWNLOAD_FAILED = "download_failed"
    CANCELLED = "cancelled"
    INVALID_STATE = "invalid_state"
    INVALID_REQUEST = "invalid_request"
    REMOTE_API_ERROR = "remote_api_error"
    SYSTEM_ERROR = "system_error"


# User-facing error messages with actionable guidance
ERROR_MESSAGES: Dict[ErrorCategory, Dict[str, str]] = {
    ErrorCategory.VARIANT_ANALYSIS_NOT_FOUND: {
        "title": "Variant Analysis Not Found",
        "message": "The requested variant analysis is not known to this server.",
        "action": "Check the variant analysis id or submit a new analysis.",
    },
    ErrorCategory.MISSING_WORKFLOW_RUN: {
        "title": "No Workflow Run",
        "message": "The variant analysis has no workflow run on the controller repository yet.",
        "action": "Wait for the run to start before cancelling it.",
    },
    ErrorCategory.AUTHENTICATION_FAILED: {
        "title": "Authentication Failed",
        "message": "Could not authenticate with GitHub.",
        "action": "Check that a valid GitHub token is configured.",
    },
    ErrorCategory.DOWNLOAD_FAILED: {
        "title": "Download Failed",
        "message": "The repository results could not be downloaded.",
        "action": "Retry the download for this repository.",
    },
    ErrorCategory.CANCELLED: {
        "title": "Cancelled",
        "message": "The operation was cancelled before it completed.",
        "action": "Start the operation again if this was unintended.",
    },
    ErrorCategory.INVALID_STATE: {
        "title": "Invalid State",
        "message": "The variant analysis is not in a state that allows this operation.",
        "action": "Refresh the variant analysis and try again.",
    },
    ErrorCategory.INVALID_REQUEST: {
        "title": "Invalid Request",
        "message": "The request is missing required information or contains invalid data.",
        "action": "Please check your input and try again.",
    },
    ErrorCategory.REMOTE_API_ERROR: {
        "title": "GitHub API Error",
        "message": "The GitHub API returned an error.",
        "action": "Try again later. If the problem persists, check the GitHub status page.",
    },
    ErrorCategory.SYSTEM_ERROR: {
        "title": "System Error",
        "message": "An unexpected error occurred while processing your request.",
        "action": "Please try again later. If the problem persists, contact support.",
    },
}


# ============================================================================
# Domain Exceptions (Pure - No External Dependencies)
# ============================================================================

class DomainError(Exception):
    """
    Base exception for all domain errors.

    Domain exceptions are pure and have no external dependencies.
    They can optionally wrap original errors for context.
    """

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        """
        Initialize domain error.

        Args:
            message: Error message
            original_error: Optional original exception that caused this error
        """
        super().__init__(message)
        self.original_error = original_error


class VariantAnalysisNotFoundError(DomainError):
    """Raised when no variant analysis is registered under the given id."""

    def __init__(self, variant_analysis_id: int):
        super().__init__(f"No variant analysis with id: {variant_analysis_id}")
        self.variant_analysis_id = variant_analysis_id


class MissingWorkflowRunError(DomainError):
    """
    Raised when a variant analysis has no remote workflow run.

    Cancellation is addressed to the workflow run, so without one there is
    nothing to cancel.
    """

    def __init__(self, variant_analysis_id: int):
        super().__init__(
            f"No workflow run id for variant analysis with id: {variant_analysis_id}"
        )
        self.variant_analysis_id = variant_analysis_id


class AuthenticationFailedError(DomainError):
    """Raised when GitHub credentials could not be acquired."""

    def __init__(self, original_error: Optional[Exception] = None):
        super().__init__("Error authenticating with GitHub", original_error)


class UserCancellationError(DomainError):
    """
    Raised when a user cancelled an operation before it reached the remote API.

    Distinguishable from network failures so callers can stay silent.
    """
    pass


class RemoteApiError(DomainError):
    """
    Raised when a call to the remote control plane fails.

    Attributes:
        status_code: HTTP status code when the server answered, None otherwise
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(message, original_error)
        self.status_code = status_code


class ResultStorageError(DomainError):
    """Raised when a downloaded artifact cannot be unpacked into job storage."""
    pass


class VariantAnalysisStateError(DomainError):
    """Raised when an operation is not allowed in the variant analysis' status."""
    pass


# ============================================================================
# Application Layer Exceptions
# ============================================================================

class ApplicationError(Exception):
    """
    Base application error with category and user-friendly messaging.

    Bridges domain errors with user-facing error messages and HTTP responses.
    """

    def __init__(
        self,
        category: ErrorCategory,
        technical_message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize application error.

        Args:
            category: Error category
            technical_message: Technical error details for logging
            context: Additional context information
        """
        self.category = category
        self.technical_message = technical_message or ""
        self.context = context or {}

        error_info = ERROR_MESSAGES.get(
            category, ERROR_MESSAGES[ErrorCategory.SYSTEM_ERROR]
        )
        self.title = error_info["title"]
        self.message = error_info["message"]
        self.action = error_info["action"]

        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert error to dictionary for API response.

        Returns:
            Dictionary with error information
        """
        result = {
            "error": self.category.value,
            "title": self.title,
            "message": self.message,
            "action": self.action,
        }
        if self.technical_message:
            result["detail"] = self.technical_message
        return result


def create_error_response(
    category: ErrorCategory,
    technical_message: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None,
    status_code: int = 400,
) -> tuple[Dict[str, Any], int]:
    """
    Create a structured error response for API endpoints.

    Args:
        category: Error category
        technical_message: Technical error details
        context: Additional context information
        status_code: HTTP status code

    Returns:
        Tuple of (error_dict, status_code)
    """
    error = ApplicationError(category, technical_message, context)
    return error.to_dict(), status_code


# Domain exception -> (category, HTTP status) used by the API layer
DOMAIN_ERROR_CATEGORIES: Dict[type, tuple[ErrorCategory, int]] = {
    VariantAnalysisNotFoundError: (ErrorCategory.VARIANT_ANALYSIS_NOT_FOUND, 404),
    MissingWorkflowRunError: (ErrorCategory.MISSING_WORKFLOW_RUN, 409),
    AuthenticationFailedError: (ErrorCategory.AUTHENTICATION_FAILED, 401),
    UserCancellationError: (ErrorCategory.CANCELLED, 409),
    VariantAnalysisStateError: (ErrorCategory.INVALID_STATE, 409),
    RemoteApiError: (ErrorCategory.REMOTE_API_ERROR, 502),
    ResultStorageError: (ErrorCategory.DOWNLOAD_FAILED, 500),
}


def categorize_domain_error(error: Exception) -> tuple[ErrorCategory, int]:
    """
    Map a domain exception to an error category and HTTP status code.

    Args:
        error: Exception raised by a service

    Returns:
        Tuple of (ErrorCategory, status_code); unknown errors map to SYSTEM_ERROR/500
    """
    for error_type, mapping in DOMAIN_ERROR_CATEGORIES.items():
        if isinstance(error, error_type):
            return mapping
    return ErrorCategory.SYSTEM_ERROR, 500

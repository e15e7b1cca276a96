"""
Test fixtures package.

Provides factory functions and in-memory implementations of the collaborator
interfaces for testing.
"""

from .domain_fixtures import (
    create_controller_repo,
    create_query,
    create_repo_task,
    create_repository,
    create_results_zip,
    create_scanned_repository,
    create_submission,
    create_variant_analysis,
)
from .mock_repositories import (
    MockCredentialsProvider,
    MockVariantAnalysisApiClient,
    MockVariantAnalysisRepository,
)

__all__ = [
    # Domain fixtures
    'create_controller_repo',
    'create_query',
    'create_repo_task',
    'create_repository',
    'create_results_zip',
    'create_scanned_repository',
    'create_submission',
    'create_variant_analysis',
    # Mock repositories
    'MockCredentialsProvider',
    'MockVariantAnalysisApiClient',
    'MockVariantAnalysisRepository',
]

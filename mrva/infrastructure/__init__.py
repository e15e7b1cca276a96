"""Infrastructure layer for local storage, Redis and the GitHub API."""

from .credentials import EnvironmentCredentialsProvider, StaticCredentialsProvider
from .github_api_client import GitHubApiClient
from .local_storage import LocalVariantAnalysisStorage
from .redis_repository import RedisConnectionManager, RedisRepository
from .redis_variant_analysis_repository import RedisVariantAnalysisRepository
from .repo_states_store import RepoDownloadStateStore

__all__ = [
    'EnvironmentCredentialsProvider',
    'StaticCredentialsProvider',
    'GitHubApiClient',
    'LocalVariantAnalysisStorage',
    'RedisConnectionManager',
    'RedisRepository',
    'RedisVariantAnalysisRepository',
    'RepoDownloadStateStore',
]

"""
Shared pytest fixtures and configuration for the variant analysis test suite.

This module provides:
- Hypothesis configuration for property-based testing
- Storage, store and manager fixtures backed by a temporary directory
- In-memory collaborator implementations
"""

from typing import Dict, List
from unittest.mock import Mock

import pytest
from hypothesis import HealthCheck, Phase, settings

from mrva.application.event_publisher import EventPublisher
from mrva.application.results_manager import VariantAnalysisResultsManager
from mrva.application.variant_analysis_manager import VariantAnalysisManager
from mrva.domain.events import (
    DomainEvent,
    RepoDownloadStatusChangedEvent,
    VariantAnalysisRemovedEvent,
    VariantAnalysisUpdatedEvent,
)
from mrva.infrastructure.local_storage import LocalVariantAnalysisStorage
from mrva.infrastructure.repo_states_store import RepoDownloadStateStore

from tests.fixtures.mock_repositories import (
    MockCredentialsProvider,
    MockVariantAnalysisApiClient,
    MockVariantAnalysisRepository,
)

# Register Hypothesis profiles
settings.register_profile(
    "default",
    max_examples=100,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow, HealthCheck.function_scoped_fixture],
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.target, Phase.shrink],
)
settings.register_profile(
    "ci",
    max_examples=200,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow, HealthCheck.function_scoped_fixture],
)
settings.register_profile(
    "dev",
    max_examples=10,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow, HealthCheck.function_scoped_fixture],
)
settings.load_profile("default")


# =============================================================================
# Storage Fixtures
# =============================================================================

@pytest.fixture
def storage(tmp_path) -> LocalVariantAnalysisStorage:
    """Variant analysis storage rooted in a temporary directory."""
    return LocalVariantAnalysisStorage(str(tmp_path / "storage"))


@pytest.fixture
def repo_states_store(storage) -> RepoDownloadStateStore:
    return RepoDownloadStateStore(storage)


@pytest.fixture
def results_manager(storage) -> VariantAnalysisResultsManager:
    return VariantAnalysisResultsManager(storage)


# =============================================================================
# Collaborator Fixtures
# =============================================================================

@pytest.fixture
def api_client() -> MockVariantAnalysisApiClient:
    return MockVariantAnalysisApiClient()


@pytest.fixture
def credentials_provider() -> MockCredentialsProvider:
    return MockCredentialsProvider()


@pytest.fixture
def history_repository() -> MockVariantAnalysisRepository:
    return MockVariantAnalysisRepository()


@pytest.fixture
def event_publisher() -> EventPublisher:
    return EventPublisher()


@pytest.fixture
def recorded_events(event_publisher) -> Dict[type, List[DomainEvent]]:
    """
    Every event published on event_publisher, grouped by event type.

    Subscribed before the manager is built, so nothing is missed.
    """
    events: Dict[type, List[DomainEvent]] = {
        VariantAnalysisUpdatedEvent: [],
        VariantAnalysisRemovedEvent: [],
        RepoDownloadStatusChangedEvent: [],
    }
    for event_type, received in events.items():
        event_publisher.subscribe(event_type, received.append)
    return events


@pytest.fixture
def monitoring_command() -> Mock:
    """Stands in for the external monitoring command."""
    return Mock()


@pytest.fixture
def manager(
    api_client,
    credentials_provider,
    storage,
    repo_states_store,
    results_manager,
    event_publisher,
    history_repository,
    monitoring_command,
    recorded_events,
):
    """VariantAnalysisManager wired to in-memory collaborators and temporary storage."""
    manager = VariantAnalysisManager(
        api_client=api_client,
        credentials_provider=credentials_provider,
        storage=storage,
        repo_states_store=repo_states_store,
        results_manager=results_manager,
        event_publisher=event_publisher,
        history_repository=history_repository,
        monitoring_command=monitoring_command,
    )
    yield manager
    manager.shutdown(wait=True)


# =============================================================================
# Pytest Configuration Hooks
# =============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests (fast, no external dependencies)"
    )
    config.addinivalue_line(
        "markers", "property: Property-based tests using Hypothesis"
    )


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests under tests/unit as unit tests."""
    for item in items:
        if "/unit/" in str(item.fspath).replace("\\", "/"):
            item.add_marker(pytest.mark.unit)

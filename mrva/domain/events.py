"""
Domain Events

Immutable records of significant state changes in the domain.
Events decouple side effects (WebSocket notifications, logging, job history)
from the orchestration logic.
"""

from abc import ABC
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict

from .variant_analysis.entities import VariantAnalysis
from .variant_analysis.value_objects import RepoDownloadStatus


@dataclass(frozen=True)
class DomainEvent(ABC):
    """
    Base class for all domain events.

    Attributes:
        aggregate_id: ID of the aggregate that generated the event (the variant analysis id)
        occurred_at: Timestamp when the event occurred
    """
    aggregate_id: int
    occurred_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert event to dictionary for serialization.

        Returns:
            Dictionary representation of the event
        """
        return {
            "event_type": self.__class__.__name__,
            "aggregate_id": self.aggregate_id,
            "occurred_at": self.occurred_at.isoformat(),
        }


@dataclass(frozen=True)
class VariantAnalysisUpdatedEvent(DomainEvent):
    """
    Event emitted when a variant analysis is added to or updated in the registry.

    Attributes:
        variant_analysis: The variant analysis as registered after the update
    """
    variant_analysis: VariantAnalysis

    @classmethod
    def for_variant_analysis(cls, variant_analysis: VariantAnalysis) -> "VariantAnalysisUpdatedEvent":
        return cls(
            aggregate_id=variant_analysis.id,
            occurred_at=datetime.now(timezone.utc),
            variant_analysis=variant_analysis,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary for serialization."""
        base_dict = super().to_dict()
        base_dict["variant_analysis"] = self.variant_analysis.to_dict()
        return base_dict


@dataclass(frozen=True)
class VariantAnalysisRemovedEvent(DomainEvent):
    """
    Event emitted when a variant analysis leaves the registry.

    Attributes:
        variant_analysis: The removed variant analysis
    """
    variant_analysis: VariantAnalysis

    @classmethod
    def for_variant_analysis(cls, variant_analysis: VariantAnalysis) -> "VariantAnalysisRemovedEvent":
        return cls(
            aggregate_id=variant_analysis.id,
            occurred_at=datetime.now(timezone.utc),
            variant_analysis=variant_analysis,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary for serialization."""
        base_dict = super().to_dict()
        base_dict["variant_analysis"] = self.variant_analysis.to_dict()
        return base_dict


@dataclass(frozen=True)
class RepoDownloadStatusChangedEvent(DomainEvent):
    """
    Event emitted when a repository's download status changes.

    Attributes:
        repository_id: Repository whose results are downloading
        download_status: New download status
    """
    repository_id: int
    download_status: RepoDownloadStatus

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary for serialization."""
        base_dict = super().to_dict()
        base_dict.update({
            "repository_id": self.repository_id,
            "download_status": self.download_status.value,
        })
        return base_dict

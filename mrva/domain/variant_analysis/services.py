"""
Variant Analysis Services

Domain services for the in-memory registry of variant analyses.
"""

import logging
from dataclasses import replace
from threading import RLock
from typing import Dict, List, Optional

from .entities import VariantAnalysis
from .value_objects import VariantAnalysisStatus
from ..errors import VariantAnalysisNotFoundError
from ..events import VariantAnalysisRemovedEvent, VariantAnalysisUpdatedEvent

logger = logging.getLogger(__name__)


class VariantAnalysisRegistry:
    """
    In-memory table of variant analysis id -> variant analysis.

    Lifecycle operations return the domain event describing the change and
    leave publishing to the caller, the same way entity transitions do.
    Thread-safe: downloads, monitoring and API requests touch it concurrently.
    """

    def __init__(self):
        """Initialize an empty registry."""
        self._variant_analyses: Dict[int, VariantAnalysis] = {}
        self._lock = RLock()

    def register(self, variant_analysis: VariantAnalysis) -> None:
        """
        Put a variant analysis in the registry without emitting an event.

        Used when state is restored from storage and nothing actually changed.

        Args:
            variant_analysis: Variant analysis to register
        """
        with self._lock:
            self._variant_analyses[variant_analysis.id] = variant_analysis

    def add_or_update(
        self, variant_analysis: VariantAnalysis
    ) -> Optional[VariantAnalysisUpdatedEvent]:
        """
        Add a variant analysis or replace the registered version.

        A registered variant analysis in a final status is never replaced by
        a non-final one; such stale updates are ignored.

        Args:
            variant_analysis: New version of the variant analysis

        Returns:
            VariantAnalysisUpdatedEvent if the registry changed, None if the update was ignored
        """
        with self._lock:
            current = self._variant_analyses.get(variant_analysis.id)
            if current is not None and current.is_final() and not variant_analysis.is_final():
                logger.warning(
                    f"Ignoring update of variant analysis {variant_analysis.id}: "
                    f"{current.status.value} -> {variant_analysis.status.value}"
                )
                return None
            if (
                current is not None
                and current.status == VariantAnalysisStatus.CANCELLING
                and variant_analysis.status == VariantAnalysisStatus.IN_PROGRESS
            ):
                # The controller reports in progress until the run is actually cancelled
                variant_analysis = replace(variant_analysis, status=VariantAnalysisStatus.CANCELLING)
            self._variant_analyses[variant_analysis.id] = variant_analysis

        return VariantAnalysisUpdatedEvent.for_variant_analysis(variant_analysis)

    def remove(self, variant_analysis_id: int) -> Optional[VariantAnalysisRemovedEvent]:
        """
        Remove a variant analysis.

        Args:
            variant_analysis_id: Variant analysis identifier

        Returns:
            VariantAnalysisRemovedEvent if something was removed, None otherwise
        """
        with self._lock:
            removed = self._variant_analyses.pop(variant_analysis_id, None)

        if removed is None:
            return None
        return VariantAnalysisRemovedEvent.for_variant_analysis(removed)

    def get(self, variant_analysis_id: int) -> Optional[VariantAnalysis]:
        """Return the registered variant analysis, or None."""
        with self._lock:
            return self._variant_analyses.get(variant_analysis_id)

    def require(self, variant_analysis_id: int) -> VariantAnalysis:
        """
        Return the registered variant analysis.

        Raises:
            VariantAnalysisNotFoundError: If no variant analysis has that id
        """
        variant_analysis = self.get(variant_analysis_id)
        if variant_analysis is None:
            raise VariantAnalysisNotFoundError(variant_analysis_id)
        return variant_analysis

    def list(self) -> List[VariantAnalysis]:
        """All registered variant analyses, ordered by id."""
        with self._lock:
            return [self._variant_analyses[key] for key in sorted(self._variant_analyses)]

    def __contains__(self, variant_analysis_id: int) -> bool:
        with self._lock:
            return variant_analysis_id in self._variant_analyses

    def __len__(self) -> int:
        with self._lock:
            return len(self._variant_analyses)

"""
Redis Variant Analysis Repository

Redis-based job history: the variant analyses that are rehydrated when the
server starts. Entries never expire; they are deleted on removal.
"""

import logging
from typing import Any, Dict, List, Optional

from mrva.domain.variant_analysis.entities import VariantAnalysis
from mrva.domain.variant_analysis.repositories import VariantAnalysisRepository

from .redis_repository import RedisRepository

logger = logging.getLogger(__name__)


class RedisVariantAnalysisRepository(VariantAnalysisRepository):
    """Redis-based implementation of VariantAnalysisRepository."""

    def __init__(self, redis_repository: RedisRepository):
        """
        Initialize with Redis repository.

        Args:
            redis_repository: RedisRepository instance from infrastructure layer
        """
        self.redis_repo = redis_repository
        self.key_prefix = "variant_analysis"

    def _key(self, variant_analysis_id: int) -> str:
        return f"{self.key_prefix}:{variant_analysis_id}"

    @staticmethod
    def _deserialize(key: str, data: Dict[str, Any]) -> Optional[VariantAnalysis]:
        try:
            return VariantAnalysis.from_dict(data)
        except (KeyError, ValueError, TypeError) as e:
            logger.error(f"Error deserializing variant analysis {key}: {e}")
            return None

    def save(self, variant_analysis: VariantAnalysis) -> bool:
        """Save or update a variant analysis in Redis."""
        return self.redis_repo.set_json(self._key(variant_analysis.id), variant_analysis.to_dict())

    def get(self, variant_analysis_id: int) -> Optional[VariantAnalysis]:
        """Retrieve a variant analysis from Redis."""
        key = self._key(variant_analysis_id)
        data = self.redis_repo.get_json(key)
        if data is None:
            return None
        return self._deserialize(key, data)

    def delete(self, variant_analysis_id: int) -> bool:
        """Delete a variant analysis from Redis."""
        return self.redis_repo.delete(self._key(variant_analysis_id))

    def list_all(self) -> List[VariantAnalysis]:
        """Retrieve every stored variant analysis, ordered by id."""
        documents = self.redis_repo.get_json_by_pattern(f"{self.key_prefix}:*")
        variant_analyses = [
            variant_analysis
            for variant_analysis in (self._deserialize(key, data) for key, data in documents.items())
            if variant_analysis is not None
        ]
        return sorted(variant_analyses, key=lambda va: va.id)

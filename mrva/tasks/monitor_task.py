"""
Monitor Task

Celery task that monitors a variant analysis inside a worker process.
Thin wrapper that delegates to VariantAnalysisMonitor.
"""

import logging
import time
from typing import Any, Dict

from mrva.celery_app import celery_app
from mrva.config.celery_config import MONITOR_TASK_NAME

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, name=MONITOR_TASK_NAME)
def monitor_variant_analysis(self, variant_analysis_data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Monitor a variant analysis and download its results.

    The worker adopts the variant analysis into its own manager, polls until
    it finishes, then waits for the queued downloads.

    Args:
        variant_analysis_data: Serialized VariantAnalysis

    Returns:
        dict: Final status and repo download states
    """
    from mrva.celery_app import flask_app
    from mrva.domain.variant_analysis.entities import VariantAnalysis

    start_time = time.time()
    variant_analysis = VariantAnalysis.from_dict(variant_analysis_data)
    logger.info(f"Task started for variant analysis {variant_analysis.id}")

    manager = flask_app.variant_analysis_manager
    monitor = flask_app.variant_analysis_monitor

    try:
        manager.adopt_variant_analysis(variant_analysis)
        latest = monitor.monitor_variant_analysis(variant_analysis)
        manager.wait_for_downloads()
    except Exception as e:
        duration_ms = (time.time() - start_time) * 1000
        logger.error(
            f"Task failed for variant analysis {variant_analysis.id} "
            f"after {duration_ms:.2f}ms: {e}"
        )
        raise

    duration_ms = (time.time() - start_time) * 1000
    logger.info(f"Task completed for variant analysis {variant_analysis.id} in {duration_ms:.2f}ms")

    return {
        "variant_analysis_id": latest.id,
        "status": latest.status.value,
        "repo_states": [state.to_dict() for state in manager.get_repo_states(latest.id)],
    }

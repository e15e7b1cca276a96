"""
Application Services Layer

Orchestrates domain services and coordinates use cases.
"""

from .cancellation import CancellationToken
from .download_queue import DownloadQueue, DownloadTask
from .event_publisher import EventPublisher
from .monitor import ThreadMonitoringCommand, VariantAnalysisMonitor
from .results_manager import VariantAnalysisResultsManager
from .variant_analysis_manager import VariantAnalysisManager

__all__ = [
    'CancellationToken',
    'DownloadQueue',
    'DownloadTask',
    'EventPublisher',
    'ThreadMonitoringCommand',
    'VariantAnalysisMonitor',
    'VariantAnalysisResultsManager',
    'VariantAnalysisManager',
]

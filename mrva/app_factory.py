"""
Application Factory

Creates and configures the Flask application with all dependencies.
Optional infrastructure (Redis, Celery, SocketIO) degrades the app instead
of preventing it from starting.
"""

import logging
import os
from typing import Optional

from flask import Flask, jsonify
from flask_cors import CORS

from mrva.api.websocket_events import register_socketio_events
from mrva.application.event_publisher import EventPublisher
from mrva.application.monitor import ThreadMonitoringCommand, VariantAnalysisMonitor
from mrva.application.results_manager import VariantAnalysisResultsManager
from mrva.application.variant_analysis_manager import VariantAnalysisManager
from mrva.config.app_config import GitHubConfig, MonitorConfig, StorageConfig
from mrva.config.celery_config import MONITOR_TASK_NAME, make_celery
from mrva.config.redis_config import get_variant_analysis_history, init_redis, redis_health_check
from mrva.config.socketio_config import init_socketio, is_socketio_enabled
from mrva.domain.events import (
    RepoDownloadStatusChangedEvent,
    VariantAnalysisRemovedEvent,
    VariantAnalysisUpdatedEvent,
)
from mrva.infrastructure.credentials import (
    EnvironmentCredentialsProvider,
    StaticCredentialsProvider,
)
from mrva.infrastructure.event_handlers import LoggingEventHandler, WebSocketEventHandler
from mrva.infrastructure.github_api_client import GitHubApiClient
from mrva.infrastructure.local_storage import LocalVariantAnalysisStorage
from mrva.infrastructure.repo_states_store import RepoDownloadStateStore

logger = logging.getLogger(__name__)


class AppConfig:
    """Application configuration."""

    def __init__(self):
        self.api_version = os.getenv("API_VERSION", "v1")
        self.socketio_enabled = os.getenv("SOCKETIO_ENABLED", "true").lower() == "true"
        # "thread" polls inside the web process, "celery" hands polling to workers
        self.monitor_backend = os.getenv("MRVA_MONITOR_BACKEND", "thread").lower()
        self.rehydrate_on_startup = (
            os.getenv("MRVA_REHYDRATE_ON_STARTUP", "true").lower() == "true"
        )
        self.max_concurrent_downloads = int(os.getenv("MRVA_MAX_CONCURRENT_DOWNLOADS", 1))

        self.storage = StorageConfig()
        self.github = GitHubConfig()
        self.monitor = MonitorConfig()


def create_app(config: Optional[AppConfig] = None) -> Flask:
    """
    Create and configure Flask application.

    Args:
        config: Application configuration, uses default if None

    Returns:
        Configured Flask application
    """
    if config is None:
        config = AppConfig()

    app = Flask(__name__)
    app.config["MRVA_ACTION_REPO_REF"] = config.github.action_repo_ref

    CORS(
        app,
        resources={
            r"/*": {
                "origins": "*",
                "methods": ["GET", "POST", "DELETE", "OPTIONS"],
                "allow_headers": ["Content-Type", "Authorization"],
                "max_age": 3600,
            }
        },
    )

    _initialize_infrastructure(app, config)
    _initialize_services(app, config)
    _register_blueprints(app, config)
    _register_health_endpoint(app)

    if config.rehydrate_on_startup and app.variant_analysis_manager is not None:
        app.variant_analysis_manager.rehydrate_all()

    return app


def _initialize_infrastructure(app: Flask, config: AppConfig) -> None:
    """
    Initialize infrastructure components (Redis, Celery, SocketIO).

    Args:
        app: Flask application
        config: Application configuration
    """
    init_redis()
    app.redis_available = redis_health_check()
    if app.redis_available:
        logger.info("Redis initialized successfully")
    else:
        logger.warning("Redis unavailable - variant analysis history will not be persisted")

    try:
        app.celery = make_celery(app)
        logger.info("Celery initialized successfully")
    except Exception as e:
        logger.warning(f"Could not initialize Celery: {e}")
        app.celery = None

    app.socketio = None
    if config.socketio_enabled:
        try:
            app.socketio = init_socketio(app)
            register_socketio_events(app)
        except Exception as e:
            logger.warning(f"Could not initialize SocketIO: {e} - WebSocket push disabled")
    else:
        logger.info("SocketIO disabled - clients must poll")


def _register_event_handlers(event_publisher: EventPublisher) -> None:
    logging_handler = LoggingEventHandler(logging.getLogger("mrva.events"))
    for event_type in (
        VariantAnalysisUpdatedEvent,
        VariantAnalysisRemovedEvent,
        RepoDownloadStatusChangedEvent,
    ):
        event_publisher.subscribe(event_type, logging_handler.handle)

    websocket_handler = WebSocketEventHandler()
    event_publisher.subscribe(
        VariantAnalysisUpdatedEvent, websocket_handler.handle_variant_analysis_updated
    )
    event_publisher.subscribe(
        VariantAnalysisRemovedEvent, websocket_handler.handle_variant_analysis_removed
    )
    event_publisher.subscribe(
        RepoDownloadStatusChangedEvent, websocket_handler.handle_repo_download_status
    )


def _celery_monitoring_command(celery):
    def start_monitoring(variant_analysis):
        celery.send_task(MONITOR_TASK_NAME, args=[variant_analysis.to_dict()])
        logger.info(f"Dispatched monitoring of variant analysis {variant_analysis.id} to Celery")

    return start_monitoring


def _initialize_services(app: Flask, config: AppConfig) -> None:
    """
    Wire application services and attach them to the app.

    API routes and tasks reach them through current_app / flask_app.

    Args:
        app: Flask application
        config: Application configuration
    """
    app.event_publisher = None
    app.variant_analysis_manager = None
    app.variant_analysis_monitor = None

    try:
        storage = LocalVariantAnalysisStorage(config.storage.storage_path)
        repo_states_store = RepoDownloadStateStore(storage)
        results_manager = VariantAnalysisResultsManager(storage)
        api_client = GitHubApiClient(config.github.api_url, config.github.request_timeout)

        if config.github.token:
            credentials_provider = StaticCredentialsProvider(config.github.token)
        else:
            credentials_provider = EnvironmentCredentialsProvider()

        history_repository = None
        if app.redis_available:
            history_repository = get_variant_analysis_history()

        event_publisher = EventPublisher()
        _register_event_handlers(event_publisher)

        use_celery = config.monitor_backend == "celery" and app.celery is not None
        manager = VariantAnalysisManager(
            api_client=api_client,
            credentials_provider=credentials_provider,
            storage=storage,
            repo_states_store=repo_states_store,
            results_manager=results_manager,
            event_publisher=event_publisher,
            history_repository=history_repository,
            max_concurrent_downloads=config.max_concurrent_downloads,
            reload_on_read=use_celery,
        )
        monitor = VariantAnalysisMonitor(
            manager,
            sleep_seconds=config.monitor.sleep_seconds,
            max_attempts=config.monitor.max_attempts,
        )

        if use_celery:
            manager.monitoring_command = _celery_monitoring_command(app.celery)
        else:
            manager.monitoring_command = ThreadMonitoringCommand(monitor)

        app.event_publisher = event_publisher
        app.variant_analysis_manager = manager
        app.variant_analysis_monitor = monitor

        logger.info(
            f"Application services initialized (storage: {storage.storage_dir}, "
            f"monitoring: {'celery' if use_celery else 'thread'})"
        )
    except Exception as e:
        logger.error(f"Could not initialize services: {e}", exc_info=True)


def _register_blueprints(app: Flask, config: AppConfig) -> None:
    """
    Register API blueprints.

    Args:
        app: Flask application
        config: Application configuration
    """
    from mrva.api.v1 import api_v1_bp

    app.register_blueprint(api_v1_bp)
    logger.info(
        f"API {config.api_version} registered at /api/{config.api_version} "
        f"with Swagger UI at /api/{config.api_version}/docs"
    )


def _get_health_status(app: Flask) -> tuple[dict, int]:
    """
    Get health status of all system components.

    Args:
        app: Flask application instance

    Returns:
        Tuple of (health_status_dict, http_status_code)
    """
    health_status = {
        "status": "ok",
        "message": "backend ready",
        "redis": "unknown",
        "celery": "unknown",
        "socketio": "unknown",
        "storage": "unknown",
    }

    try:
        if redis_health_check():
            health_status["redis"] = "connected"
        else:
            health_status["redis"] = "disconnected"
            health_status["status"] = "degraded"
    except Exception as e:
        health_status["redis"] = f"error: {str(e)}"
        health_status["status"] = "degraded"

    if getattr(app, "celery", None) is not None:
        health_status["celery"] = "available"
    else:
        health_status["celery"] = "unavailable"
        health_status["status"] = "degraded"

    health_status["socketio"] = "available" if is_socketio_enabled() else "not_configured"

    manager = getattr(app, "variant_analysis_manager", None)
    if manager is not None and manager.storage.is_available():
        health_status["storage"] = "available"
        health_status["variant_analyses"] = manager.variant_analyses_size
        health_status["downloads_queued"] = manager.downloads_queue_size()
    else:
        health_status["storage"] = "unavailable"
        health_status["status"] = "degraded"

    status_code = 200 if health_status["status"] == "ok" else 503
    return health_status, status_code


def _register_health_endpoint(app: Flask) -> None:
    """
    Register health check endpoint.

    Args:
        app: Flask application
    """

    @app.route("/health", methods=["GET"])
    def health():
        """Overall health of the application and its dependencies."""
        health_status, status_code = _get_health_status(app)
        return jsonify(health_status), status_code

"""
Celery Configuration

Celery with Flask integration and a Redis broker. Monitoring a variant
analysis blocks a worker for as long as the remote run lasts, so monitor
tasks are routed to a queue of their own.
"""

import os

from celery import Celery
from kombu import Queue

MONITOR_TASK_NAME = "tasks.monitor_variant_analysis"


class CeleryConfig:
    """Celery configuration settings."""

    broker_url = os.getenv("CELERY_BROKER_URL", "redis://localhost:6379/0")
    result_backend = os.getenv("CELERY_RESULT_BACKEND", "redis://localhost:6379/0")
    monitor_queue = os.getenv("MRVA_MONITOR_QUEUE", "monitor_queue")

    task_serializer = "json"
    accept_content = ["json"]
    result_serializer = "json"
    timezone = "UTC"
    enable_utc = True

    # One monitor per worker slot; a redelivered monitor resumes from repo states
    worker_prefetch_multiplier = 1
    task_acks_late = True
    worker_concurrency = int(os.getenv("CELERY_WORKER_CONCURRENCY", 4))

    task_routes = {MONITOR_TASK_NAME: {"queue": monitor_queue}}

    task_default_queue = "default"
    task_queues = (
        Queue("default", routing_key="default"),
        Queue(monitor_queue, routing_key="monitor"),
    )

    # 17280 polls at 5s is a day; leave room for the final downloads
    task_soft_time_limit = int(os.getenv("CELERY_TASK_SOFT_TIME_LIMIT", 90000))
    task_time_limit = int(os.getenv("CELERY_TASK_TIME_LIMIT", 90600))

    # Callers read the outcome from repo states, not from the result backend
    result_expires = int(os.getenv("CELERY_RESULT_EXPIRES", 3600))


def make_celery(app):
    """
    Create a Celery instance whose tasks run inside the Flask app context.

    Args:
        app: Flask application instance

    Returns:
        Configured Celery instance
    """
    celery = Celery(
        app.import_name,
        backend=CeleryConfig.result_backend,
        broker=CeleryConfig.broker_url,
    )
    celery.config_from_object(CeleryConfig)

    class AppContextTask(celery.Task):
        """Task base that pushes the app context the manager lives on."""

        def __call__(self, *args, **kwargs):
            with app.app_context():
                return self.run(*args, **kwargs)

    celery.Task = AppContextTask
    return celery

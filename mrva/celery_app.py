"""
Celery Application Instance

Creates the Celery app instance for use by workers.
Uses the app factory so the worker owns a fully wired manager.
"""

from mrva.app_factory import AppConfig, create_app

# Workers only run the monitoring they are given; the web process rehydrates
_worker_config = AppConfig()
_worker_config.rehydrate_on_startup = False

flask_app = create_app(_worker_config)

celery_app = flask_app.celery

# Imported by name when the worker starts, so task modules can import celery_app
celery_app.conf.imports = ("mrva.tasks.monitor_task",)

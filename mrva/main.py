"""
main.py

Flask backend orchestrating multi-repository variant analyses.

Dependencies:
  - Python packages: Flask, Flask-RESTX, flask-cors, Flask-SocketIO, redis, celery, requests
  - Infrastructure: Redis server (job history, Celery broker, SocketIO queue)

Notes:
  - API v1 endpoints available at /api/v1/ with Swagger docs at /api/v1/docs
  - Monitoring runs on in-process threads unless MRVA_MONITOR_BACKEND=celery
"""

import logging
import os

from mrva.app_factory import create_app
from mrva.config.socketio_config import get_socketio, is_socketio_enabled

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

app = create_app()


def main():
    host = os.getenv("FLASK_HOST", "0.0.0.0")
    port = int(os.getenv("FLASK_PORT", 8000))
    debug = os.getenv("FLASK_DEBUG", "false").lower() == "true"

    if is_socketio_enabled():
        get_socketio().run(app, host=host, port=port, debug=debug, allow_unsafe_werkzeug=True)
    else:
        app.run(host=host, port=port, debug=debug)


if __name__ == "__main__":
    main()

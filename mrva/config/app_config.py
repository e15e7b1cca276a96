"""
Application Configuration

Settings for storage, GitHub access and monitoring, read from the environment.
"""

import os
from typing import Optional


class StorageConfig:
    """Where variant analysis state and results live on disk."""

    def __init__(self):
        self.storage_path = os.getenv("MRVA_STORAGE_PATH", "/tmp/mrva")


class GitHubConfig:
    """GitHub API settings."""

    def __init__(self):
        self.api_url = os.getenv("GITHUB_API_URL", "https://api.github.com")
        self.token: Optional[str] = os.getenv("GITHUB_TOKEN")
        self.request_timeout = float(os.getenv("GITHUB_REQUEST_TIMEOUT", 30))
        self.controller_repo: Optional[str] = os.getenv("MRVA_CONTROLLER_REPO")
        self.action_repo_ref = os.getenv("MRVA_ACTION_REPO_REF", "main")


class MonitorConfig:
    """Polling of running variant analyses."""

    def __init__(self):
        self.sleep_seconds = float(os.getenv("MRVA_MONITOR_SLEEP_SECONDS", 5))
        # 17280 * 5s = 24 hours
        self.max_attempts = int(os.getenv("MRVA_MONITOR_MAX_ATTEMPTS", 17280))

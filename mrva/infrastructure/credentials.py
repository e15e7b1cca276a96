"""
Credentials Providers

Infrastructure sources of GitHub credentials.
"""

import os
from typing import Optional

from mrva.domain.variant_analysis.repositories import Credentials, CredentialsProvider


class EnvironmentCredentialsProvider(CredentialsProvider):
    """Reads a GitHub token from the environment on every request."""

    def __init__(self, env_var: str = "GITHUB_TOKEN"):
        self.env_var = env_var

    def get_credentials(self) -> Optional[Credentials]:
        token = os.getenv(self.env_var)
        if not token:
            return None
        return Credentials(token=token)


class StaticCredentialsProvider(CredentialsProvider):
    """Always returns the token it was created with."""

    def __init__(self, token: Optional[str]):
        self.token = token

    def get_credentials(self) -> Optional[Credentials]:
        return Credentials(token=self.token) if self.token else None

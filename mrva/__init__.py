"""Multi-repository variant analysis result orchestration."""

__version__ = "0.1.0"

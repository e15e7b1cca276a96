"""Environment driven configuration."""

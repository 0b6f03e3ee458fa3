"""
Base configuration sections shared by every entry point.
"""

from dataclasses import dataclass


@dataclass
class LoggingConfig:
    """Logging configuration section."""

    level: str = "INFO"
    file: str = ""  # empty -> console only

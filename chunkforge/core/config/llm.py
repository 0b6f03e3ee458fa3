"""
Completion service configuration.

The completion service is optional: with provider "none" the Auto selector
ranks strategies with rules only.
"""

from dataclasses import dataclass


@dataclass
class CompletionConfig:
    """Completion service configuration."""

    provider: str = "none"  # none, ollama
    url: str = "http://localhost:11434"
    model: str = "qwen2.5:14b"
    temperature: float = 0.1  # low for stable JSON answers
    timeout_seconds: float = 30.0
    max_retries: int = 2


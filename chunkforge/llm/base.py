"""
Completion Service Interface.

The Auto strategy selector is the only consumer of a completion service.
It needs a single narrow operation, ``complete(prompt, options) -> str``,
and must keep working when no service is configured or the service fails.

Architecture Context
--------------------
    ┌──────────────────────┐
    │  StrategySelector    │
    └──────────┬───────────┘
               │ complete(prompt, options)
    ┌──────────┴───────────┐
    │  CompletionService   │  (abstract base)
    └──────────┬───────────┘
               │
    ┌──────────┴───────────┐
    │ OllamaCompletion     │  (local Ollama server over HTTP)
    │ Service              │
    └──────────────────────┘

Custom services subclass CompletionService and are injected into
``Chunker(completion_service=...)``.
"""

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass
class CompletionOptions:
    """
    Options for a single completion call.

    Attributes:
        max_tokens: Maximum response length
        temperature: 0 = deterministic; low values keep JSON answers stable
        timeout_seconds: Per-request timeout
        json_mode: Ask the service to answer with a JSON object
        stop_sequences: Strings that stop generation
    """

    max_tokens: int = 512
    temperature: float = 0.1
    timeout_seconds: float = 30.0
    json_mode: bool = False
    stop_sequences: List[str] = field(default_factory=list)


class CompletionService(ABC):
    """
    Abstract base class for completion services.

    Usage counters are guarded by a lock because selections for different
    documents may run on the shared selector executor concurrently.
    """

    def _usage_state(self) -> Dict[str, int]:
        if not hasattr(self, "_usage"):
            self._usage_lock = threading.Lock()
            self._usage = {
                "prompt_tokens": 0,
                "completion_tokens": 0,
                "total_tokens": 0,
                "requests": 0,
            }
        return self._usage

    def _record_usage(self, prompt_tokens: int = 0, completion_tokens: int = 0) -> None:
        """Record token usage from a completion call."""
        usage = self._usage_state()
        with self._usage_lock:
            usage["prompt_tokens"] += prompt_tokens
            usage["completion_tokens"] += completion_tokens
            usage["total_tokens"] += prompt_tokens + completion_tokens
            usage["requests"] += 1

    def get_usage(self) -> Dict[str, int]:
        """Cumulative usage: prompt/completion/total tokens and request count."""
        usage = self._usage_state()
        with self._usage_lock:
            return dict(usage)

    def reset_usage(self) -> None:
        usage = self._usage_state()
        with self._usage_lock:
            for key in usage:
                usage[key] = 0

    @abstractmethod
    def complete(self, prompt: str, options: Optional[CompletionOptions] = None) -> str:
        """
        Complete a prompt.

        Args:
            prompt: Input prompt
            options: Completion options

        Returns:
            Completion text

        Raises:
            CompletionError: If the service answered with an error
            CompletionUnavailableError: If the service cannot be reached
        """

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the service is reachable and configured."""

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Model used for completions."""

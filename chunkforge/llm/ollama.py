"""
Ollama completion service.

Talks to a local Ollama server through its ``/api/generate`` endpoint.
Timeouts are retried with a short backoff; connection failures are not,
since a server that is down will not come back within the analysis budget.
"""

from typing import Any, Dict, Optional

import requests

from chunkforge.core.exceptions import (
    CompletionError,
    CompletionUnavailableError,
    RetryError,
)
from chunkforge.core.logging import get_logger
from chunkforge.core.retry import completion_retry
from chunkforge.llm.base import CompletionOptions, CompletionService

logger = get_logger(__name__)

DEFAULT_URL = "http://localhost:11434"
DEFAULT_MODEL = "qwen2.5:14b"
AVAILABILITY_TIMEOUT = 2  # seconds


class OllamaCompletionService(CompletionService):
    """
    Ollama local inference client.

    Requires an Ollama server running locally or at the given URL.
    """

    def __init__(
        self,
        url: str = DEFAULT_URL,
        model: str = DEFAULT_MODEL,
        max_retries: int = 2,
        timeout: float = 30.0,
    ):
        """
        Initialize the Ollama service.

        Args:
            url: Ollama server URL
            model: Model name
            max_retries: Attempts per completion (timeouts only)
            timeout: Default request timeout in seconds
        """
        assert max_retries >= 1, "max_retries must be at least 1"
        self.url = (url or DEFAULT_URL).rstrip("/")
        self._model_name = model
        self.timeout = timeout
        self._post_with_retry = completion_retry(
            max_attempts=max_retries,
            retryable_exceptions=(requests.Timeout,),
        )(self._post)

    @property
    def model_name(self) -> str:
        return self._model_name

    def is_available(self) -> bool:
        """Check if the Ollama server answers."""
        try:
            response = requests.get(f"{self.url}/api/tags", timeout=AVAILABILITY_TIMEOUT)
            return response.status_code == 200
        except requests.RequestException:
            return False

    def _build_payload(self, prompt: str, options: CompletionOptions) -> Dict[str, Any]:
        generation: Dict[str, Any] = {
            "temperature": options.temperature,
            "num_predict": options.max_tokens,
        }
        if options.stop_sequences:
            generation["stop"] = list(options.stop_sequences)

        payload: Dict[str, Any] = {
            "model": self._model_name,
            "prompt": prompt,
            "stream": False,
            "options": generation,
        }
        if options.json_mode:
            payload["format"] = "json"
        return payload

    def _post(self, payload: Dict[str, Any], timeout: float) -> requests.Response:
        return requests.post(f"{self.url}/api/generate", json=payload, timeout=timeout)

    def complete(self, prompt: str, options: Optional[CompletionOptions] = None) -> str:
        """Complete a prompt with the configured model."""
        options = options or CompletionOptions(timeout_seconds=self.timeout)
        payload = self._build_payload(prompt, options)

        try:
            response = self._post_with_retry(payload, options.timeout_seconds)
        except requests.ConnectionError as e:
            raise CompletionUnavailableError(
                f"Cannot connect to Ollama at {self.url}. Make sure Ollama is running."
            ) from e
        except RetryError as e:
            raise CompletionError(
                f"Ollama timed out after {e.attempts} attempts"
            ) from e
        except requests.RequestException as e:
            raise CompletionError(f"Ollama request failed: {e}") from e

        if response.status_code != 200:
            raise CompletionError(f"Ollama returned status {response.status_code}")

        data = response.json()
        text = (data.get("response") or "").strip()
        if not text:
            raise CompletionError("Empty response from Ollama")

        self._record_usage(
            prompt_tokens=data.get("prompt_eval_count", 0) or 0,
            completion_tokens=data.get("eval_count", 0) or 0,
        )
        logger.debug("Ollama completion finished", model=self._model_name, chars=len(text))
        return text

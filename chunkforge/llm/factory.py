"""
Completion service factory.

Create the configured completion service, or None when selection should
stay rule based.
"""

from typing import Optional

from chunkforge.core.config import Config
from chunkforge.core.logging import get_logger
from chunkforge.llm.base import CompletionService

logger = get_logger(__name__)


def _create_ollama_service(config: Config) -> CompletionService:
    from chunkforge.llm.ollama import OllamaCompletionService

    return OllamaCompletionService(
        url=config.llm.url,
        model=config.llm.model,
        max_retries=config.llm.max_retries,
        timeout=config.llm.timeout_seconds,
    )


_PROVIDERS = {
    "ollama": _create_ollama_service,
}


def create_completion_service(config: Config) -> Optional[CompletionService]:
    """
    Build the completion service named by ``config.llm.provider``.

    Args:
        config: ChunkForge configuration

    Returns:
        The service, or None for provider "none"
    """
    provider = config.llm.provider.lower()
    if provider == "none":
        return None

    factory = _PROVIDERS.get(provider)
    if factory is None:
        logger.warning("Unknown completion provider, selection stays rule based", provider=provider)
        return None

    service = factory(config)
    logger.debug("Created completion service", provider=provider, model=service.model_name)
    return service

"""
Completion service adapters.

The Auto strategy selector can ask an external completion service for a
final strategy pick. The service is optional: without one, selection is
purely rule based.

    from chunkforge.llm import create_completion_service

    service = create_completion_service(config)  # None when provider is "none"
"""

from chunkforge.llm.base import CompletionOptions, CompletionService
from chunkforge.llm.factory import create_completion_service

__all__ = [
    "CompletionOptions",
    "CompletionService",
    "create_completion_service",
]

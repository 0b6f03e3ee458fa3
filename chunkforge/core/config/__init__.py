"""
Configuration Management for ChunkForge.

Configuration is a tree of dataclasses that maps onto chunkforge.yaml.
Environment variables can be referenced as ${VAR} or ${VAR:default}, and
CHUNKFORGE_* variables override individual settings.

    config/
    ├── base.py          # LoggingConfig
    ├── chunking.py      # ChunkingConfig, SelectionConfig
    ├── llm.py           # CompletionConfig
    └── config.py        # Main Config class

Usage Example
-------------
    config = load_config()
    options = config.chunking.to_options(config.selection)
"""

from chunkforge.core.config.base import LoggingConfig
from chunkforge.core.config.chunking import ChunkingConfig, SelectionConfig
from chunkforge.core.config.config import Config
from chunkforge.core.config.llm import CompletionConfig
from chunkforge.core.config_loaders import (
    expand_env_vars,
    load_config,
    save_config,
)

__all__ = [
    "Config",
    "ChunkingConfig",
    "SelectionConfig",
    "CompletionConfig",
    "LoggingConfig",
    "expand_env_vars",
    "load_config",
    "save_config",
]

"""
Configuration Loading and Management Functions.

Handles loading, saving, and applying environment overrides to the
ChunkForge configuration.

Configuration precedence: 1. CHUNKFORGE_* env vars, 2. YAML file, 3. Defaults

Environment Overrides
---------------------
    CHUNKFORGE_STRATEGY             chunking.strategy
    CHUNKFORGE_MAX_CHUNK_SIZE       chunking.max_chunk_size (16-65536)
    CHUNKFORGE_OVERLAP_SIZE         chunking.overlap_size (0-65535)
    CHUNKFORGE_LANGUAGE             chunking.language
    CHUNKFORGE_LLM_PROVIDER         llm.provider (none, ollama)
    CHUNKFORGE_LLM_MODEL            llm.model
    CHUNKFORGE_LLM_URL / OLLAMA_HOST  llm.url
    CHUNKFORGE_MAX_ANALYSIS_TIME    selection.max_analysis_time_seconds
    CHUNKFORGE_LOG_LEVEL            logging.level
"""

import os
import re
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional, Sequence

import yaml

if TYPE_CHECKING:
    from chunkforge.core.config import Config

CONFIG_FILENAMES = ("chunkforge.yaml", "config.yaml")
STRATEGY_NAMES = ("FixedSize", "Paragraph", "Semantic", "Smart", "Intelligent", "Auto")
LLM_PROVIDERS = ("none", "ollama")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

_MODEL_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9._:\-/]+$")
_URL_PATTERN = re.compile(r"^https?://[a-zA-Z0-9.\-:]+/?$")
_LANGUAGE_PATTERN = re.compile(r"^(auto|[a-zA-Z]{2,3}(-[a-zA-Z0-9]{2,8})?)$")


class _Logger:
    """Lazy logger holder.

    Keeps rich out of the import path until something is logged.
    """

    _instance = None

    @classmethod
    def get(cls) -> Any:
        """Get logger (lazy-loaded)."""
        if cls._instance is None:
            from chunkforge.core.logging import get_logger

            cls._instance = get_logger(__name__)
        return cls._instance


def expand_env_vars(value: Any) -> Any:
    """Recursively expand environment variables in config values.

    Strings may use ${VAR_NAME} or ${VAR_NAME:default}; dicts and lists are
    walked recursively and other values returned unchanged.

    Args:
        value: Configuration value (string, dict, list, or primitive)

    Returns:
        Value with all environment variables expanded
    """
    if isinstance(value, str):
        pattern = r"\$\{([^}:]+)(?::([^}]*))?\}"

        def replace_env_var(match: re.Match) -> str:
            var_name = match.group(1)
            default_value = match.group(2) if match.group(2) is not None else ""
            return os.environ.get(var_name, default_value)

        return re.sub(pattern, replace_env_var, value)
    elif isinstance(value, dict):
        return {k: expand_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [expand_env_vars(item) for item in value]
    return value


# ============================================================================
# Validated environment readers
# ============================================================================


def get_env_int(
    name: str,
    min_value: Optional[int] = None,
    max_value: Optional[int] = None,
) -> Optional[int]:
    """Read an integer env var, clamped to bounds; None if unset or invalid."""
    value = os.environ.get(name)
    if value is None:
        return None

    try:
        int_value = int(value)
    except ValueError:
        _Logger.get().warning(f"Invalid integer value for {name}={value}, ignoring")
        return None

    if min_value is not None and int_value < min_value:
        return min_value
    if max_value is not None and int_value > max_value:
        return max_value
    return int_value


def get_env_float(
    name: str,
    min_value: Optional[float] = None,
    max_value: Optional[float] = None,
) -> Optional[float]:
    """Read a float env var, clamped to bounds; None if unset or invalid."""
    value = os.environ.get(name)
    if value is None:
        return None

    try:
        float_value = float(value)
    except ValueError:
        _Logger.get().warning(f"Invalid float value for {name}={value}, ignoring")
        return None

    if min_value is not None and float_value < min_value:
        return min_value
    if max_value is not None and float_value > max_value:
        return max_value
    return float_value


def get_env_whitelist(
    name: str, allowed: Sequence[str], case_sensitive: bool = False
) -> Optional[str]:
    """Read an env var that must be one of ``allowed``.

    Returns the canonical spelling from ``allowed`` so "smart" maps to "Smart".
    """
    value = os.environ.get(name)
    if not value:
        return None

    for candidate in allowed:
        if value == candidate or (
            not case_sensitive and value.lower() == candidate.lower()
        ):
            return candidate

    _Logger.get().warning(
        f"Ignoring {name}={value}: expected one of {', '.join(allowed)}"
    )
    return None


def get_env_pattern(name: str, pattern: "re.Pattern[str]") -> Optional[str]:
    """Read an env var that must match ``pattern``."""
    value = os.environ.get(name)
    if value and pattern.match(value):
        return value
    if value:
        _Logger.get().warning(f"Ignoring {name}: value has an invalid format")
    return None


# ============================================================================
# Overrides
# ============================================================================


def _apply_env_overrides(config: "Config") -> "Config":
    """
    Apply environment variable overrides to configuration.

    Environment variables take precedence over config file values.
    """
    _apply_chunking_overrides(config)
    _apply_llm_overrides(config)
    _apply_selection_overrides(config)
    return config


def _apply_chunking_overrides(config: "Config") -> None:
    strategy = get_env_whitelist("CHUNKFORGE_STRATEGY", STRATEGY_NAMES)
    if strategy:
        config.chunking.strategy = strategy

    max_size = get_env_int("CHUNKFORGE_MAX_CHUNK_SIZE", min_value=16, max_value=65536)
    if max_size is not None:
        config.chunking.max_chunk_size = max_size

    overlap = get_env_int("CHUNKFORGE_OVERLAP_SIZE", min_value=0, max_value=65535)
    if overlap is not None:
        # Keep the overlap below the ceiling even if the variables disagree
        config.chunking.overlap_size = min(overlap, config.chunking.max_chunk_size - 1)

    language = get_env_pattern("CHUNKFORGE_LANGUAGE", _LANGUAGE_PATTERN)
    if language:
        config.chunking.language = language


def _apply_llm_overrides(config: "Config") -> None:
    provider = get_env_whitelist("CHUNKFORGE_LLM_PROVIDER", LLM_PROVIDERS)
    if provider:
        config.llm.provider = provider

    model = get_env_pattern("CHUNKFORGE_LLM_MODEL", _MODEL_NAME_PATTERN)
    if model:
        config.llm.model = model

    url = get_env_pattern("CHUNKFORGE_LLM_URL", _URL_PATTERN) or get_env_pattern(
        "OLLAMA_HOST", _URL_PATTERN
    )
    if url:
        config.llm.url = url.rstrip("/")


def _apply_selection_overrides(config: "Config") -> None:
    analysis_time = get_env_float(
        "CHUNKFORGE_MAX_ANALYSIS_TIME", min_value=0.0, max_value=300.0
    )
    if analysis_time is not None:
        config.selection.max_analysis_time_seconds = analysis_time

    log_level = get_env_whitelist("CHUNKFORGE_LOG_LEVEL", LOG_LEVELS)
    if log_level:
        config.logging.level = log_level


# ============================================================================
# Load / save
# ============================================================================


def find_config_file(base_path: Path) -> Optional[Path]:
    """Return the first known config file in ``base_path``, if any."""
    for filename in CONFIG_FILENAMES:
        candidate = base_path / filename
        if candidate.exists():
            return candidate
    return None


def load_config(
    config_path: Optional[Path] = None, base_path: Optional[Path] = None
) -> "Config":
    """
    Load configuration from YAML file with environment variable overrides.

    Args:
        config_path: Path to config file. Defaults to chunkforge.yaml or
            config.yaml in base_path.
        base_path: Base path for the project. Defaults to current directory.

    Returns:
        Config object with all settings.

    Raises:
        ConfigValidationError: If the file contains invalid values.
    """
    from chunkforge.core.config import Config

    base_path = base_path or Path.cwd()

    if config_path is None:
        config_path = find_config_file(base_path)
    if config_path is None or not config_path.exists():
        return _create_default_config(base_path)

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        _Logger.get().warning(
            "Could not read config, using defaults",
            path=str(config_path),
            error=str(e),
        )
        return _create_default_config(base_path)

    if not isinstance(data, dict):
        _Logger.get().warning(
            "Config file is not a mapping, using defaults", path=str(config_path)
        )
        return _create_default_config(base_path)

    config = Config.from_dict(data, base_path)
    return _apply_env_overrides(config)


def _create_default_config(base_path: Path) -> "Config":
    """Create default configuration with environment overrides."""
    from chunkforge.core.config import Config

    config = Config()
    config._base_path = base_path
    return _apply_env_overrides(config)


def save_config(config: "Config", config_path: Optional[Path] = None) -> Path:
    """Save configuration to YAML file and return the path written."""
    if config_path is None:
        config_path = config._base_path / CONFIG_FILENAMES[0]

    with open(config_path, "w", encoding="utf-8") as f:
        yaml.dump(config.to_dict(), f, default_flow_style=False, sort_keys=False)
    return config_path

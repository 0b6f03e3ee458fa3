"""
Exception Hierarchy for ChunkForge.

Every error raised by ChunkForge inherits from ChunkForgeError, so callers can
catch the whole family with one clause while still handling specific cases.

Helpful Error Messages
----------------------
Each exception carries:
- error_code: Stable identifier for documentation lookup (e.g., "CF-CHUNK-001")
- why_it_happened: Explanation of the root cause
- how_to_fix: Actionable steps to resolve the issue

Exception Hierarchy
-------------------
    ChunkForgeError (base)
    ├── ChunkingError
    │   ├── InvalidOptionsError        fatal, raised before processing
    │   ├── StrategyFailureError       recovered per span with FixedSize
    │   ├── SelectionFailureError      recovered with the Smart strategy
    │   └── ChunkingCancelledError     propagated, partial output discarded
    ├── CompletionError
    │   └── CompletionUnavailableError
    ├── RetryError
    └── ValidationError
        └── ConfigValidationError

Only InvalidOptionsError and ChunkingCancelledError ever escape a chunking
call. The other chunking errors are raised internally and converted into
warning annotations on the affected chunks.

Usage
-----
    from chunkforge.core.exceptions import ChunkForgeError, InvalidOptionsError

    try:
        chunks = chunk(content, options)
    except InvalidOptionsError as e:
        print(e.how_to_fix)
"""

from typing import Any, List, Optional
import builtins
import re


def sanitize_path(path: str) -> str:
    """Replace user home directories in a path with a placeholder.

    Args:
        path: Original file path

    Returns:
        Path with sensitive components replaced
    """
    if not path:
        return path

    patterns = [
        (r"[A-Za-z]:\\Users\\[^\\]+", r"<user-home>"),
        (r"/(?:home|Users)/[^/]+", r"<user-home>"),
    ]

    result = path
    for pattern, replacement in patterns:
        result = re.sub(pattern, replacement, result)
    return result


def sanitize_message(message: str) -> str:
    """Mask API keys, tokens and home directories in an error message.

    Args:
        message: Original error message

    Returns:
        Sanitized message
    """
    if not message:
        return message

    result = message
    patterns = [
        (r"(api_key[=:][\s]*)[a-zA-Z0-9_-]{20,}", r"\1<api-key>"),
        (r"Bearer\s+[a-zA-Z0-9_.-]+", r"Bearer <token>"),
        (r"://[^:/\s]+:[^@/\s]+@", r"://<user>:<pass>@"),
        (r"/(?:home|Users)/[^\s\"']+", lambda m: sanitize_path(m.group(0))),
    ]

    for pattern, replacement in patterns:
        result = re.sub(pattern, replacement, result)
    return result


def get_root_cause(exc: BaseException) -> BaseException:
    """Follow __cause__ / __context__ links to the original error.

    Args:
        exc: Exception to analyze

    Returns:
        Root cause exception (may be the same as input)
    """
    seen = set()
    current = exc

    while current is not None:
        if id(current) in seen:
            break
        seen.add(id(current))

        if current.__cause__ is not None:
            current = current.__cause__
        elif current.__context__ is not None:
            current = current.__context__
        else:
            break

    return current


class ChunkForgeError(Exception):
    """
    Base exception for all ChunkForge errors.

    Example
    -------
        try:
            chunker.chunk(content, options)
        except ChunkForgeError as e:
            logger.error("Chunking failed", code=e.error_code)
    """

    error_code: str = "CF-ERR-000"
    why_it_happened: str = "An unexpected error occurred"
    how_to_fix: List[str] = ["Check the error message for details"]

    def __init__(
        self,
        message: str,
        *,
        error_code: Optional[str] = None,
        why_it_happened: Optional[str] = None,
        how_to_fix: Optional[List[str]] = None,
    ) -> None:
        super().__init__(sanitize_message(message))

        if error_code is not None:
            self.error_code = error_code
        if why_it_happened is not None:
            self.why_it_happened = why_it_happened
        if how_to_fix is not None:
            self.how_to_fix = how_to_fix

    @property
    def user_message(self) -> str:
        """Get the user-friendly error message."""
        return str(self)

    def get_root_cause(self) -> BaseException:
        """Get the root cause of this exception chain."""
        return get_root_cause(self)


# ============================================================================
# Chunking Exceptions
# ============================================================================


class ChunkingError(ChunkForgeError):
    """Base exception for errors raised by the chunking core."""

    error_code = "CF-CHUNK-000"
    why_it_happened = "The document could not be split into chunks"
    how_to_fix = [
        "Check the chunking options",
        "Try a different strategy with --strategy",
    ]


class InvalidOptionsError(ChunkingError):
    """
    Raised when ChunkingOptions are rejected before processing starts.

    Attributes
    ----------
    field : str
        The option that failed validation
    value : any
        The rejected value
    """

    error_code = "CF-CHUNK-001"
    why_it_happened = (
        "The chunking options are inconsistent, for example a minimum size "
        "above the maximum or an overlap as large as the chunk itself"
    )
    how_to_fix = [
        "Keep min_chunk_size <= max_chunk_size",
        "Keep overlap_size below max_chunk_size",
        "Use one of: FixedSize, Paragraph, Semantic, Smart, Intelligent, Auto",
    ]

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Any = None,
        *,
        error_code: Optional[str] = None,
        why_it_happened: Optional[str] = None,
        how_to_fix: Optional[List[str]] = None,
    ) -> None:
        super().__init__(
            message,
            error_code=error_code,
            why_it_happened=why_it_happened,
            how_to_fix=how_to_fix,
        )
        self.field = field
        self.value = value


class StrategyFailureError(ChunkingError):
    """
    Raised when a strategy cannot produce output for one span.

    The base strategy catches it and re-chunks that span with fixed-size
    windows, attaching a warning to the resulting chunks.
    """

    error_code = "CF-CHUNK-002"
    why_it_happened = "A strategy could not find usable boundaries in a span"
    how_to_fix = ["The span was re-chunked with fixed-size windows"]

    def __init__(
        self,
        message: str,
        start_char: int = 0,
        end_char: int = 0,
        *,
        error_code: Optional[str] = None,
        why_it_happened: Optional[str] = None,
        how_to_fix: Optional[List[str]] = None,
    ) -> None:
        super().__init__(
            message,
            error_code=error_code,
            why_it_happened=why_it_happened,
            how_to_fix=how_to_fix,
        )
        self.start_char = start_char
        self.end_char = end_char


class SelectionFailureError(ChunkingError):
    """Raised when automatic strategy selection cannot reach a decision."""

    error_code = "CF-CHUNK-003"
    why_it_happened = (
        "Automatic strategy selection failed or the completion service "
        "did not answer within the analysis budget"
    )
    how_to_fix = [
        "The Smart strategy was used instead",
        "Raise max_analysis_time_seconds or choose a strategy explicitly",
    ]


class ChunkingCancelledError(ChunkingError):
    """Raised when a caller cancels a chunking run."""

    error_code = "CF-CHUNK-004"
    why_it_happened = "The chunking run was cancelled before it completed"
    how_to_fix = ["Run the command again without cancelling it"]


# ============================================================================
# Completion Service Exceptions
# ============================================================================


class CompletionError(ChunkForgeError):
    """Base exception for completion service failures."""

    error_code = "CF-LLM-000"
    why_it_happened = "The completion service returned an error"
    how_to_fix = [
        "Check that the completion service is running",
        "Verify the model name in the configuration",
    ]


class CompletionUnavailableError(CompletionError):
    """Raised when the completion service cannot be reached."""

    error_code = "CF-LLM-001"
    why_it_happened = "The completion service is not reachable"
    how_to_fix = [
        "Start the service (for Ollama: 'ollama serve')",
        "Check llm.url in chunkforge.yaml",
        "Set llm.provider to 'none' to use rule-based selection only",
    ]


# ============================================================================
# Infrastructure Exceptions
# ============================================================================


class RetryError(ChunkForgeError):
    """
    Raised when all retry attempts are exhausted.

    Attributes
    ----------
    attempts : int
        Number of attempts made
    last_exception : Exception
        The exception from the final attempt
    """

    error_code = "CF-INFRA-001"
    why_it_happened = (
        "The operation failed repeatedly and all retry attempts were exhausted"
    )
    how_to_fix = [
        "Check your network connection",
        "Verify the external service is available",
    ]

    def __init__(
        self,
        message: str,
        attempts: Optional[int] = None,
        last_exception: Optional[BaseException] = None,
        *,
        error_code: Optional[str] = None,
        why_it_happened: Optional[str] = None,
        how_to_fix: Optional[List[str]] = None,
    ) -> None:
        super().__init__(
            message,
            error_code=error_code,
            why_it_happened=why_it_happened,
            how_to_fix=how_to_fix,
        )
        self.attempts = attempts
        self.last_exception = last_exception


class ValidationError(ChunkForgeError):
    """Raised when input data or configuration fails validation."""

    error_code = "CF-VAL-000"
    why_it_happened = "Validation failed for input data or configuration"
    how_to_fix = [
        "Check the error message for specific validation failures",
        "Review the expected format or value constraints",
    ]


class ConfigValidationError(ValidationError):
    """
    Raised when configuration validation fails.

    Attributes
    ----------
    field : str
        The configuration field that failed validation
    value : any
        The invalid value
    """

    error_code = "CF-VAL-001"
    why_it_happened = (
        "A configuration value is invalid. "
        "The chunkforge.yaml file may have incorrect settings"
    )
    how_to_fix = [
        "Check chunkforge.yaml for syntax errors",
        "Verify the value type matches what's expected",
        "Delete chunkforge.yaml to fall back to defaults",
    ]

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Any = None,
        *,
        error_code: Optional[str] = None,
        why_it_happened: Optional[str] = None,
        how_to_fix: Optional[List[str]] = None,
    ) -> None:
        super().__init__(
            message,
            error_code=error_code,
            why_it_happened=why_it_happened,
            how_to_fix=how_to_fix,
        )
        self.field = field
        self.value = value


# ============================================================================
# Error Info Lookup
# ============================================================================


# Used by ErrorRenderer for exceptions that are not ChunkForgeError
STANDARD_ERROR_INFO: dict[type, dict[str, Any]] = {
    builtins.FileNotFoundError: {
        "error_code": "CF-FILE-001",
        "why_it_happened": "The specified file could not be found",
        "how_to_fix": [
            "Check that the file path is correct",
            "Ensure you have read permissions for the file",
        ],
    },
    UnicodeDecodeError: {
        "error_code": "CF-FILE-002",
        "why_it_happened": "The file is not valid UTF-8 text",
        "how_to_fix": [
            "Convert the document to plain text or markdown first",
            "Re-save the file with UTF-8 encoding",
        ],
    },
    builtins.TimeoutError: {
        "error_code": "CF-INFRA-002",
        "why_it_happened": "The operation took too long and was terminated",
        "how_to_fix": ["Try again in a few minutes"],
    },
    ValueError: {
        "error_code": "CF-VAL-002",
        "why_it_happened": "An invalid value was provided",
        "how_to_fix": ["Check the error message for the expected value format"],
    },
    OSError: {
        "error_code": "CF-SYS-001",
        "why_it_happened": "A system-level error occurred",
        "how_to_fix": ["Check disk space and permissions"],
    },
}


def get_error_info(exc: BaseException) -> dict[str, Any]:
    """Get helpful error information for any exception.

    Args:
        exc: Exception to get info for

    Returns:
        Dict with error_code, why_it_happened, how_to_fix
    """
    if isinstance(exc, ChunkForgeError):
        return {
            "error_code": exc.error_code,
            "why_it_happened": exc.why_it_happened,
            "how_to_fix": exc.how_to_fix,
        }

    exc_type = type(exc)
    if exc_type in STANDARD_ERROR_INFO:
        return STANDARD_ERROR_INFO[exc_type]

    for parent_type, info in STANDARD_ERROR_INFO.items():
        if isinstance(exc, parent_type):
            return info

    return {
        "error_code": "CF-ERR-999",
        "why_it_happened": "An unexpected error occurred",
        "how_to_fix": [
            "Check the error message for details",
            "Re-run with --verbose for a full traceback",
        ],
    }

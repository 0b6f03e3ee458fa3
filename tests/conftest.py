"""
Shared pytest fixtures and configuration for ChunkForge tests.

This file is automatically discovered by pytest and provides fixtures
that can be used across all test files.

Fixture Organization
--------------------
- **temp_dir**: Temporary directory for file operations
- **sample texts**: English narrative, technical markdown, Korean, Chinese
- **completion stubs**: Canned, slow and failing CompletionService doubles
- **registry**: Fresh StrategyRegistry with the built-in strategies
"""

import tempfile
import threading
from pathlib import Path
from typing import Generator, List, Optional

import pytest

from chunkforge.chunking.registry import StrategyRegistry
from chunkforge.cli.console import set_verbose_mode
from chunkforge.core.exceptions import CompletionError
from chunkforge.llm.base import CompletionOptions, CompletionService


# ============================================================================
# Path and Directory Fixtures
# ============================================================================


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to temporary directory (cleaned up after test)
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture(autouse=True)
def reset_verbose_mode() -> Generator[None, None, None]:
    """CLI --verbose flips a module flag; keep it from leaking between tests."""
    yield
    set_verbose_mode(False)


# ============================================================================
# Sample Documents
# ============================================================================


NARRATIVE_PARAGRAPHS = [
    "The river had been rising for three days before anyone in the village "
    "took it seriously. Old Maren watched it from her porch each morning. "
    "She said nothing, but she moved her chickens to the barn loft.",
    "On the fourth day the water reached the bottom step of the chapel. "
    "The priest rang the bell twice and then stopped, unsure of the signal. "
    "People gathered anyway, carrying bread and blankets.",
    "By evening the lower road was gone. Children were sent up the hill with "
    "the goats. The men stacked sandbags until their hands bled.",
    "Nobody slept that night. At dawn the rain finally stopped, and the river "
    "began, slowly, to fall back into its bed.",
]


@pytest.fixture
def narrative_text() -> str:
    """Four paragraphs of plain English prose."""
    return "\n\n".join(NARRATIVE_PARAGRAPHS)


@pytest.fixture
def markdown_text() -> str:
    """Technical markdown with headings, a list, a table and a code block."""
    return (
        "# Deployment Guide\n\n"
        "This guide explains how to deploy the API server with Docker.\n\n"
        "## Requirements\n\n"
        "- Docker 24 or newer\n"
        "- A PostgreSQL database\n"
        "- Two gigabytes of memory\n\n"
        "## Configuration\n\n"
        "| Variable | Default | Purpose |\n"
        "| --- | --- | --- |\n"
        "| PORT | 8080 | HTTP port |\n"
        "| DB_URL | none | Database connection |\n\n"
        "## Running\n\n"
        "Start the container with the command below.\n\n"
        "```bash\n"
        "docker run -p 8080:8080 -e DB_URL=postgres://db/app example/api\n"
        "```\n\n"
        "The server answers on the /health endpoint once it is ready.\n"
    )


@pytest.fixture
def korean_text() -> str:
    return (
        "오늘은 날씨가 정말 좋습니다. 우리는 공원에 가서 산책을 했습니다. "
        "점심으로 김밥을 먹었습니다. 저녁에는 친구를 만날 예정입니다."
    )


@pytest.fixture
def chinese_text() -> str:
    return "今天天气很好。我们去公园散步了。晚上我们一起吃饭。"


def numbered_words(count: int) -> str:
    """``w0 w1 ... w{count-1}``: exactly ``count`` tokens, no sentence ends."""
    return " ".join(f"w{i}" for i in range(count))


# ============================================================================
# Completion Service Doubles
# ============================================================================


class StaticCompletionService(CompletionService):
    """Answers every prompt with a fixed reply and records the prompts."""

    def __init__(self, reply: str) -> None:
        self.reply = reply
        self.prompts: List[str] = []

    @property
    def model_name(self) -> str:
        return "static"

    def is_available(self) -> bool:
        return True

    def complete(self, prompt: str, options: Optional[CompletionOptions] = None) -> str:
        self.prompts.append(prompt)
        self._record_usage(prompt_tokens=10, completion_tokens=5)
        return self.reply


class SlowCompletionService(CompletionService):
    """Blocks until released (or for ``delay`` seconds) before answering."""

    def __init__(self, delay: float = 5.0, reply: str = "{}") -> None:
        self.delay = delay
        self.reply = reply
        self.release = threading.Event()

    @property
    def model_name(self) -> str:
        return "slow"

    def is_available(self) -> bool:
        return True

    def complete(self, prompt: str, options: Optional[CompletionOptions] = None) -> str:
        self.release.wait(self.delay)
        return self.reply


class FailingCompletionService(CompletionService):
    """Raises CompletionError on every call."""

    @property
    def model_name(self) -> str:
        return "failing"

    def is_available(self) -> bool:
        return False

    def complete(self, prompt: str, options: Optional[CompletionOptions] = None) -> str:
        raise CompletionError("service exploded")


@pytest.fixture
def registry() -> StrategyRegistry:
    """Fresh registry so tests can register strategies without side effects."""
    return StrategyRegistry.with_builtins()

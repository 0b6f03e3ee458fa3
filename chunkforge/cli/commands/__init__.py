"""CLI commands.

Each module defines a ChunkForgeCommand subclass and a typer wrapper
named ``command``; main.py registers the wrappers.
"""

from chunkforge.cli.commands.analyze import command as analyze_command
from chunkforge.cli.commands.base import ChunkForgeCommand
from chunkforge.cli.commands.chunk import command as chunk_command
from chunkforge.cli.commands.languages import command as languages_command
from chunkforge.cli.commands.strategies import command as strategies_command

__all__ = [
    "ChunkForgeCommand",
    "analyze_command",
    "chunk_command",
    "languages_command",
    "strategies_command",
]

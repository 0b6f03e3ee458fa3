"""Strategies command - List registered chunking strategies."""

from __future__ import annotations

import json
from typing import Optional

import typer
from rich.table import Table

from chunkforge.chunking.registry import StrategyRegistry, default_registry
from chunkforge.cli.commands.base import ChunkForgeCommand
from chunkforge.cli.console import tip


class StrategiesCommand(ChunkForgeCommand):
    """List strategies with their ranking metadata, best first."""

    def execute(
        self, output_json: bool = False, registry: Optional[StrategyRegistry] = None
    ) -> int:
        try:
            if registry is None:
                registry = default_registry()
            entries = registry.snapshot()

            if output_json:
                output = [
                    {
                        "name": m.name,
                        "description": m.description,
                        "priority": m.priority_score,
                        "speed": m.speed_rating,
                        "quality": m.quality_rating,
                        "optimal_for": list(m.optimal_for_document_types),
                        "strengths": list(m.strengths),
                    }
                    for m in entries
                ]
                self.console.print(json.dumps(output, indent=2), soft_wrap=True)
                return 0

            table = Table(title="Chunking Strategies")
            table.add_column("Name", style="cyan")
            table.add_column("Priority", justify="right")
            table.add_column("Speed", justify="right")
            table.add_column("Quality", justify="right")
            table.add_column("Best for")
            table.add_column("Description", style="dim")
            for m in entries:
                table.add_row(
                    m.name,
                    str(m.priority_score),
                    str(m.speed_rating),
                    str(m.quality_rating),
                    ", ".join(m.optimal_for_document_types),
                    m.description,
                )
            self.console.print(table)
            self.console.print(f"\n[dim]Total: {len(entries)} strategies (plus Auto)[/dim]")
            tip("Use 'chunkforge analyze FILE' to see how Auto ranks them", self.console)
            return 0

        except Exception as e:
            return self.handle_error(e, context="While listing strategies")


# Typer command wrapper
def command(
    output_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """List the registered chunking strategies.

    Examples:
        chunkforge strategies
        chunkforge strategies --json
    """
    cmd = StrategiesCommand()
    exit_code = cmd.execute(output_json)
    if exit_code != 0:
        raise typer.Exit(code=exit_code)

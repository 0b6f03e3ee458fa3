"""Analyze command - Show what Auto sees in a document.

Prints the extracted document features, the strategy ranking and the
rule-based pick. The completion service is never called, so the command
is fast and works offline.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
from rich.table import Table

from chunkforge.chunking.budget import sample_text
from chunkforge.chunking.models import RefinedContent
from chunkforge.chunking.registry import default_registry
from chunkforge.chunking.selector import (
    DEFAULT_SAMPLE_TOKENS,
    DocumentFeatures,
    RankedStrategy,
    StrategySelection,
    StrategySelector,
    analyze_features,
    rank_strategies,
)
from chunkforge.cli.commands.base import ChunkForgeCommand
from chunkforge.cli.console import tip


class AnalyzeCommand(ChunkForgeCommand):
    """Report document features and the rule-based strategy ranking."""

    def execute(
        self,
        file_path: Path,
        output_json: bool = False,
        config_path: Optional[Path] = None,
    ) -> int:
        try:
            config = self.load_config(config_path)
            options = config.chunking.to_options(config.selection)
            text = self.read_document(file_path)
            content = RefinedContent(text=text, hints={"file_name": file_path.name})

            registry = default_registry()
            sample_tokens = int(options.option("sample_tokens", DEFAULT_SAMPLE_TOKENS))
            features = analyze_features(
                sample_text(text, sample_tokens),
                file_name=file_path.name,
                language=options.language,
            )
            ranking = rank_strategies(
                features,
                registry.snapshot(),
                prefer_speed=bool(options.option("prefer_speed", False)),
                prefer_quality=bool(options.option("prefer_quality", False)),
            )
            selection = StrategySelector(registry).select(content, options)

            if output_json:
                report = build_report(file_path.name, features, ranking, selection)
                self.console.print(json.dumps(report, indent=2), soft_wrap=True)
                return 0

            self._display_features(features)
            self._display_ranking(ranking)
            self.console.print(
                f"\n[bold]Selected:[/bold] [cyan]{selection.strategy}[/cyan] "
                f"(confidence {selection.confidence:.2f}, {selection.source})"
            )
            self.console.print(f"[dim]{selection.reasoning}[/dim]", highlight=False)
            tip(f"chunkforge chunk {file_path.name} -s {selection.strategy}", self.console)
            return 0

        except Exception as e:
            return self.handle_error(e, context=f"While analyzing {file_path}")

    def _display_features(self, features: DocumentFeatures) -> None:
        table = Table(title="Document Features", show_header=False)
        table.add_column("Feature", style="cyan")
        table.add_column("Value")
        for key, value in features.to_dict().items():
            table.add_row(key, str(value))
        self.console.print(table)

    def _display_ranking(self, ranking: List[RankedStrategy]) -> None:
        table = Table(title="Strategy Ranking")
        table.add_column("Strategy", style="cyan")
        table.add_column("Score", justify="right")
        table.add_column("Matched types")
        table.add_column("Matched strengths")
        for entry in ranking:
            table.add_row(
                entry.metadata.name,
                f"{entry.score:.0f}",
                ", ".join(entry.matched_types) or "-",
                ", ".join(entry.matched_strengths) or "-",
            )
        self.console.print(table)


def build_report(
    document: str,
    features: DocumentFeatures,
    ranking: List[RankedStrategy],
    selection: StrategySelection,
) -> Dict[str, Any]:
    return {
        "document": document,
        "features": features.to_dict(),
        "ranking": [
            {
                "strategy": entry.metadata.name,
                "score": entry.score,
                "matched_types": list(entry.matched_types),
                "matched_strengths": list(entry.matched_strengths),
            }
            for entry in ranking
        ],
        "selection": {
            "strategy": selection.strategy,
            "confidence": round(selection.confidence, 3),
            "reasoning": selection.reasoning,
            "source": selection.source,
            "alternatives": list(selection.alternatives),
        },
    }


# Typer command wrapper
def command(
    file_path: Path = typer.Argument(..., help="Document to analyze"),
    output_json: bool = typer.Option(False, "--json", help="Output as JSON"),
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Config file (default: ./chunkforge.yaml)"
    ),
) -> None:
    """Show document features and how Auto would rank the strategies.

    Examples:
        chunkforge analyze notes.md
        chunkforge analyze spec.txt --json
    """
    cmd = AnalyzeCommand()
    exit_code = cmd.execute(file_path, output_json, config_path)
    if exit_code != 0:
        raise typer.Exit(code=exit_code)

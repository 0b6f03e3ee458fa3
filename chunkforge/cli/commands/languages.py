"""Languages command - List language profiles or detect a document's language."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer
from rich.table import Table

from chunkforge.chunking.language_profiles import (
    detect_language,
    get_profile,
    list_profiles,
    script_ratios,
)
from chunkforge.cli.commands.base import ChunkForgeCommand


class LanguagesCommand(ChunkForgeCommand):
    """List profiles, or report the detected language of a file."""

    def execute(
        self,
        detect: Optional[Path] = None,
        output_json: bool = False,
    ) -> int:
        try:
            if detect is not None:
                return self._detect(detect, output_json)
            return self._list(output_json)
        except Exception as e:
            return self.handle_error(e, context="While listing languages")

    def _list(self, output_json: bool) -> int:
        profiles = list_profiles()
        if output_json:
            output = [
                {
                    "code": profile.language_code,
                    "name": profile.name,
                    "script": profile.script_code,
                    "direction": profile.writing_direction.value,
                    "abbreviations": len(profile.abbreviations),
                }
                for profile in profiles
            ]
            self.console.print(json.dumps(output, indent=2), soft_wrap=True)
            return 0

        table = Table(title="Language Profiles")
        table.add_column("Code", style="cyan")
        table.add_column("Name")
        table.add_column("Script")
        table.add_column("Direction")
        table.add_column("Abbreviations", justify="right")
        for profile in profiles:
            table.add_row(
                profile.language_code,
                profile.name,
                profile.script_code,
                profile.writing_direction.value,
                str(len(profile.abbreviations)),
            )
        self.console.print(table)
        self.console.print(f"\n[dim]Total: {len(profiles)} languages[/dim]")
        return 0

    def _detect(self, file_path: Path, output_json: bool) -> int:
        text = self.read_document(file_path)
        code = detect_language(text)
        profile = get_profile(code)
        ratios = script_ratios(text)

        if output_json:
            output = {
                "document": file_path.name,
                "language": profile.language_code,
                "name": profile.name,
                "script_ratios": {k: round(v, 3) for k, v in ratios.items()},
            }
            self.console.print(json.dumps(output, indent=2), soft_wrap=True)
            return 0

        self.console.print(
            f"[bold]{file_path.name}[/bold]: [cyan]{profile.language_code}[/cyan] "
            f"({profile.name})"
        )
        for script, ratio in sorted(ratios.items()):
            self.console.print(f"  [dim]{script}: {ratio:.0%}[/dim]")
        return 0


# Typer command wrapper
def command(
    detect: Optional[Path] = typer.Option(
        None, "--detect", "-d", help="Detect the language of this file"
    ),
    output_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """List supported languages, or detect a document's language.

    Examples:
        chunkforge languages
        chunkforge languages --detect bericht.txt
    """
    cmd = LanguagesCommand()
    exit_code = cmd.execute(detect, output_json)
    if exit_code != 0:
        raise typer.Exit(code=exit_code)

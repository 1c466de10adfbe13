"""Sniff command implementation."""

from pathlib import Path

from rich.console import Console
from rich.table import Table

from epub_pack.core.errors import FatalError
from epub_pack.core.reporter import Reporter, Severity
from epub_pack.core.sniffer import classify


def execute_sniff(
    files: list[Path],
    declared_type: str | None,
    console: Console,
) -> bool:
    """Classify each file and print a table. Returns False if any file failed."""
    table = Table(title="Media Types", show_header=True, header_style="bold cyan")
    table.add_column("File", style="white")
    table.add_column("Type", style="green")
    table.add_column("Notes", style="yellow")

    ok = True
    for path in files:
        reporter = Reporter()
        try:
            classification = classify(path.read_bytes(), path.name, declared_type, reporter)
        except FatalError as e:
            table.add_row(str(path), "[red]-[/]", f"[red]{e.message}[/]")
            ok = False
            continue

        notes = reporter.messages(Severity.ERR)
        if classification.converted:
            notes.append("HTML recovered as XHTML")
        table.add_row(
            str(path),
            classification.media_type or "[dim]unknown[/]",
            "; ".join(notes),
        )

    console.print(table)
    return ok

"""Build command implementation."""

from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from epub_pack.core.assembler import PackageAssembler
from epub_pack.core.reporter import Reporter, Severity
from epub_pack.models.package import BuildOptions, BuildResult


def display_spine(result: BuildResult, console: Console) -> None:
    """Display the reading order."""
    table = Table(title="Reading Order", show_header=True, header_style="bold cyan")
    table.add_column("#", style="dim", width=4)
    table.add_column("Document", style="white")
    table.add_column("Note", style="yellow")

    unplaced = set(result.unplaced)
    for i, path in enumerate(result.spine):
        table.add_row(str(i + 1), path, "unplaced" if path in unplaced else "")

    console.print(table)


def display_summary(result: BuildResult, reporter: Reporter, console: Console) -> None:
    info_lines = [
        f"[bold]{result.output}[/]",
        f"[dim]Package document:[/] {result.opf_path}",
        f"[dim]Manifest items:[/] {len(result.manifest)}",
        f"[dim]Spine documents:[/] {len(result.spine)}",
    ]
    if result.converted:
        info_lines.append(f"[dim]Converted to XHTML:[/] {', '.join(result.converted)}")

    problems = reporter.messages(Severity.WARN) + reporter.messages(Severity.ERR)
    if problems:
        info_lines.append("")
        for message in reporter.messages(Severity.ERR):
            info_lines.append(f"[red]✗ {message}[/]")
        for message in reporter.messages(Severity.WARN):
            info_lines.append(f"[yellow]⚠ {message}[/]")

    console.print(
        Panel(
            "\n".join(info_lines),
            title="EPUB Built",
            border_style="green" if not result.error_count else "yellow",
        )
    )


def execute_build(
    directory: Path,
    options: BuildOptions,
    quiet: bool,
    console: Console,
) -> BuildResult:
    """Execute the build command."""
    reporter = Reporter()
    assembler = PackageAssembler(directory, options, reporter)

    if not quiet:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            progress.add_task(f"Packaging {directory.name}...", total=None)
            result = assembler.build()
    else:
        result = assembler.build()

    if not quiet:
        console.print()
        display_summary(result, reporter, console)
        console.print()
        display_spine(result, console)

    return result

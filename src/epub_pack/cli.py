"""Main CLI application."""

import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from epub_pack.commands.build import execute_build
from epub_pack.commands.sniff import execute_sniff
from epub_pack.core.errors import FatalError
from epub_pack.models.package import BuildOptions

app = typer.Typer(
    name="epub-pack",
    help="Package a directory of publication files into an EPUB.",
    add_completion=False,
)

console = Console()


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


@app.callback()
def main() -> None:
    """Package a directory of publication files into an EPUB."""


@app.command()
def build(
    directory: Annotated[
        Path,
        typer.Argument(
            help="Directory holding the publication files",
            exists=True,
            file_okay=False,
            dir_okay=True,
            resolve_path=True,
        ),
    ],
    output: Annotated[
        Optional[Path],
        typer.Option(
            "--output",
            "-o",
            help="Output file (default: {directory}.epub beside the directory)",
        ),
    ] = None,
    force: Annotated[
        bool,
        typer.Option(
            "--force",
            "-f",
            help="Replace an existing output file",
        ),
    ] = False,
    refresh_manifest: Annotated[
        bool,
        typer.Option(
            "--refresh-manifest",
            help="Add undeclared files to an existing manifest and drop missing ones",
        ),
    ] = False,
    remove_scripting: Annotated[
        bool,
        typer.Option(
            "--remove-scripting",
            help="Strip scripts, forms and event handlers instead of flagging them",
        ),
    ] = False,
    language: Annotated[
        str,
        typer.Option(
            "--language",
            help="Language tag used when the package declares none",
        ),
    ] = "en",
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Suppress progress output",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Log every repair and conversion",
        ),
    ] = False,
) -> None:
    """Build an EPUB from a directory."""
    configure_logging(verbose)
    options = BuildOptions(
        output=output.resolve() if output else None,
        force=force,
        refresh_manifest=refresh_manifest,
        remove_scripting=remove_scripting,
        language=language,
    )
    try:
        execute_build(
            directory=directory,
            options=options,
            quiet=quiet,
            console=console,
        )
    except FatalError as e:
        console.print(f"[red]Error: {e.message}[/]")
        raise typer.Exit(1)


@app.command()
def sniff(
    files: Annotated[
        list[Path],
        typer.Argument(
            help="Files to classify",
            exists=True,
            file_okay=True,
            dir_okay=False,
        ),
    ],
    declared_type: Annotated[
        Optional[str],
        typer.Option(
            "--type",
            "-t",
            help="Media type the files are declared to have",
        ),
    ] = None,
) -> None:
    """Detect the media type of files from their content."""
    configure_logging(False)
    if not execute_sniff(files, declared_type, console):
        raise typer.Exit(1)


if __name__ == "__main__":
    app()

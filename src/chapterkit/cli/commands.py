"""CLI commands for chapterkit.

Commands:
- chapters: Discover and list the chapters of an EPUB or PDF
- extract: Write (or print) the plain text of one chapter
- info: Show document metadata
"""

import json
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from chapterkit.config.app_config import load_config
from chapterkit.core.book_reader import (
    describe_document,
    discover,
    extract_text,
)
from chapterkit.core.errors import ChapterkitError
from chapterkit.logging_setup import configure_logging
from chapterkit.utils.text_utils import chapter_filename

app = typer.Typer(
    name="chapterkit",
    help="Chapter discovery and plain-text extraction for EPUB and PDF books.",
    no_args_is_help=True,
)

console = Console()


def _resolve_file_or_exit(file: str) -> Path:
    """Resolve a user path, or exit with a helpful error."""
    file_path = Path(file).expanduser().resolve()
    if not file_path.is_file():
        console.print(f"[red]✗ Archivo no encontrado: {file_path}[/red]")
        raise typer.Exit(code=1)
    return file_path


def _load_config_or_exit(config_file: str | None):
    try:
        return load_config(Path(config_file) if config_file else None)
    except ChapterkitError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(code=1)


@app.command()
def chapters(
    file: str = typer.Argument(..., help="Path to PDF or EPUB file"),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON"),
    config_file: str | None = typer.Option(None, "--config", "-c", help="YAML config file"),
    timeout: float | None = typer.Option(
        None, "--stage-timeout", help="Time limit per PDF stage, in seconds"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logs"),
) -> None:
    """Discover the chapters of a book.

    PDF: outline -> table of contents -> heading patterns -> full document.
    EPUB: spine reading order.
    """
    configure_logging(verbose)
    file_path = _resolve_file_or_exit(file)
    config = _load_config_or_exit(config_file)

    try:
        result = discover(file_path, config=config, stage_timeout=timeout)
    except ChapterkitError as e:
        console.print(f"[red]✗ Error de extracción: {e}[/red]")
        raise typer.Exit(code=1)

    if as_json:
        typer.echo(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
        return

    table = Table(title=file_path.name)
    table.add_column("#", justify="right")
    table.add_column("Título")
    table.add_column("Contenido", style="dim")
    for chapter in result.chapters:
        table.add_row(str(chapter.order), chapter.title, chapter.content_ref.describe())
    console.print(table)

    console.print(f"  [dim]method:[/dim]     {result.method_used}")
    console.print(f"  [dim]confidence:[/dim] {result.confidence:.0%}")
    console.print(f"  [dim]chapters:[/dim]   {len(result.chapters)}")
    for warning in result.warnings:
        console.print(f"  [yellow]⚠ {warning}[/yellow]")
    if verbose:
        for stage, reason in result.stage_errors.items():
            console.print(f"  [dim]{stage}:[/dim] {reason}")


@app.command()
def extract(
    file: str = typer.Argument(..., help="Path to PDF or EPUB file"),
    chapter: int = typer.Option(..., "--chapter", "-n", help="Chapter number (1-based)"),
    output: str | None = typer.Option(
        None, "--output", "-o", help="Output directory (defaults to current directory)"
    ),
    stdout: bool = typer.Option(False, "--stdout", help="Print the text instead of writing a file"),
    config_file: str | None = typer.Option(None, "--config", "-c", help="YAML config file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logs"),
) -> None:
    """Extract the plain text of one chapter.

    Writes <chapter title>.txt (non-alphanumerics replaced by "_").
    """
    configure_logging(verbose)
    file_path = _resolve_file_or_exit(file)
    config = _load_config_or_exit(config_file)

    try:
        found = discover(file_path, config=config).chapters
        if not 1 <= chapter <= len(found):
            console.print(f"[red]✗ Capítulo fuera de rango: {chapter} (1-{len(found)})[/red]")
            raise typer.Exit(code=1)
        selected = found[chapter - 1]
        text = extract_text(file_path, selected)
    except ChapterkitError as e:
        console.print(f"[red]✗ Error de extracción: {e}[/red]")
        raise typer.Exit(code=1)

    if stdout:
        typer.echo(text)
        return

    out_dir = Path(output).expanduser() if output else Path.cwd()
    out_dir.mkdir(parents=True, exist_ok=True)
    out_file = out_dir / chapter_filename(selected.title)
    out_file.write_text(text, encoding="utf-8")

    console.print(f"[green]✓ Capítulo {selected.order}: {selected.title}[/green]")
    console.print(f"  [dim]output:[/dim] {out_file}")
    console.print(f"  [dim]chars:[/dim]  {len(text):,}")


@app.command()
def info(
    file: str = typer.Argument(..., help="Path to PDF or EPUB file"),
    config_file: str | None = typer.Option(None, "--config", "-c", help="YAML config file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logs"),
) -> None:
    """Show title, format, size and language of a book."""
    configure_logging(verbose)
    file_path = _resolve_file_or_exit(file)
    config = _load_config_or_exit(config_file)

    try:
        document = describe_document(file_path, config=config)
    except ChapterkitError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(code=1)

    console.print(f"[bold]{document.title}[/bold]")
    console.print(f"  [dim]format:[/dim]   {document.format}")
    if document.author:
        console.print(f"  [dim]author:[/dim]   {document.author}")
    if document.page_count is not None:
        console.print(f"  [dim]pages:[/dim]    {document.page_count}")
    console.print(f"  [dim]chapters:[/dim] {document.chapter_count}")
    console.print(f"  [dim]language:[/dim] {document.language or 'desconocido'}")


if __name__ == "__main__":
    app()

"""Barcode Sorter CLI."""

import signal
import threading
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from barsort.config import CollisionPolicy, Settings, load_settings
from barsort.exceptions import ScanError
from barsort.logging import configure_logging
from barsort.models import BatchSummary, DocumentResult, OutcomeStatus
from barsort.pipeline import (
    BarcodeDecoder,
    DirectoryScanner,
    DocumentDisposer,
    DocumentPipeline,
    PDFRenderer,
)

app = typer.Typer(
    name="barsort",
    help="File scanned PDFs into folders named after their first-page barcode",
    add_completion=False,
)
console = Console()

STATUS_STYLES = {
    OutcomeStatus.RELOCATED: "green",
    OutcomeStatus.LEFT_IN_PLACE: "yellow",
    OutcomeStatus.FAILED: "red",
    OutcomeStatus.CANCELLED: "dim",
}


def build_pipeline(config: Settings) -> DocumentPipeline:
    """Create the per-document pipeline from settings."""
    return DocumentPipeline(
        renderer=PDFRenderer(dpi=config.render_dpi),
        disposer=DocumentDisposer(collision_policy=config.collision_policy),
    )


def print_result(result: DocumentResult) -> None:
    style = STATUS_STYLES[result.status]
    console.print(
        f"[{style}]{result.status.value:>13}[/{style}] {escape(result.describe())}",
        soft_wrap=True,
    )


def print_summary(summary: BatchSummary) -> None:
    table = Table(title="Scan summary")
    table.add_column("Outcome")
    table.add_column("Documents", justify="right")
    for outcome, count in summary.counts().items():
        table.add_row(outcome.replace("_", " "), str(count))
    console.print(table)


@app.command()
def scan(
    input_folder: Optional[Path] = typer.Argument(None, help="Folder with scanned PDFs"),
    output_folder: Optional[Path] = typer.Argument(None, help="Folder for sorted PDFs"),
    workers: Optional[int] = typer.Option(None, help="Number of parallel workers"),
    timeout: Optional[float] = typer.Option(None, help="Per-document timeout in seconds"),
    on_collision: Optional[CollisionPolicy] = typer.Option(
        None, help="What to do when the destination file already exists"
    ),
    settings_file: Optional[Path] = typer.Option(
        None, "--settings", help="JSON settings file (default ./settings.json)"
    ),
) -> None:
    """Sort every PDF in the input folder by its barcode."""
    config = load_settings(
        settings_file,
        input_folder=str(input_folder) if input_folder else None,
        output_folder=str(output_folder) if output_folder else None,
        max_workers=workers,
        document_timeout=timeout,
        collision_policy=on_collision,
    )
    configure_logging(config.log_level, console=console)

    if config.input_path is None or config.output_path is None:
        console.print("[red]Input and output folders must be given or set in settings[/red]")
        raise typer.Exit(code=2)

    console.print(f"[bold blue]Scanning:[/bold blue] {config.input_path}")
    console.print(f"[dim]Output directory: {config.output_path}[/dim]")

    scanner = DirectoryScanner(
        pipeline=build_pipeline(config),
        max_workers=config.max_workers,
        document_timeout=config.document_timeout,
    )

    cancel_event = threading.Event()
    previous_handler = signal.signal(signal.SIGINT, lambda signum, frame: cancel_event.set())
    try:
        summary = scanner.scan(
            config.input_path,
            config.output_path,
            cancel_event=cancel_event,
            on_result=print_result,
        )
    except ScanError as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(code=2)
    finally:
        signal.signal(signal.SIGINT, previous_handler)

    print_summary(summary)

    if summary.failed:
        raise typer.Exit(code=1)


@app.command()
def process(
    pdf_path: Path = typer.Argument(..., help="Path to PDF file to process"),
    output_folder: Path = typer.Argument(..., help="Folder for the sorted PDF"),
    on_collision: Optional[CollisionPolicy] = typer.Option(
        None, help="What to do when the destination file already exists"
    ),
) -> None:
    """Process a single PDF document."""
    config = load_settings(collision_policy=on_collision)
    configure_logging(config.log_level, console=console)

    result = build_pipeline(config).run(pdf_path, output_folder)
    print_result(result)

    if result.is_failed:
        raise typer.Exit(code=1)


@app.command()
def decode(
    image_path: Path = typer.Argument(..., help="Image file to decode"),
) -> None:
    """Decode the barcode in an image file without moving anything."""
    configure_logging(load_settings().log_level, console=console)

    result = BarcodeDecoder().decode_file(image_path)
    if not result.found:
        console.print(f"[yellow]No barcode:[/yellow] {escape(result.reason)}")
        raise typer.Exit(code=1)
    console.print(f"[green]{result.symbology}[/green] {escape(result.text)}")


if __name__ == "__main__":
    app()

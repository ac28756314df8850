"""
Rich progress displays for CLI operations.

All output goes to stderr to preserve stdout for machine-readable output
(the saved file path).
"""

from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

# Console for stderr output (preserves stdout for machine output)
console = Console(stderr=True)


@contextmanager
def generation_progress(
    model: str | None = None,
    reference_count: int = 0,
    aspect_ratio: str | None = None,
) -> Iterator[None]:
    """
    Display a spinner while the blend request is in flight.

    Args:
        model: The image generation model being used
        reference_count: Number of reference images sent
        aspect_ratio: Ratio token, e.g. '16:9'

    Yields:
        None while generation is in progress
    """
    progress = Progress(
        SpinnerColumn(spinner_name="dots"),
        TextColumn("[green]{task.description}"),
        TimeElapsedColumn(),
        console=console,
        transient=True,  # Disappears when done
    )

    desc_parts = [f"Blending {reference_count} images" if reference_count else "Blending images"]
    if model:
        model_display = model if len(model) <= 40 else f"{model[:37]}..."
        desc_parts.append(f"[dim]({model_display})[/dim]")
    if aspect_ratio:
        desc_parts.append(f"• [dim cyan]{aspect_ratio}[/dim cyan]")

    with progress:
        task = progress.add_task(" ".join(desc_parts), total=None)
        yield
        progress.update(task, completed=True)


def print_success_result(
    output_path: Path,
    generation_time: float,
    model_used: str,
    aspect_ratio: str,
    references: Sequence[str],
) -> None:
    """
    Print a summary panel after a successful blend.

    Args:
        output_path: Where the image was saved
        generation_time: Time taken to generate (seconds)
        model_used: The model that generated the image
        aspect_ratio: Ratio token requested
        references: Filenames of the reference images, in request order
    """
    table = Table.grid(padding=(0, 2))
    table.add_column(style="cyan", justify="right", vertical="top")
    table.add_column(style="white")

    table.add_row("Saved to", f"[bold green]{output_path}[/bold green]")
    table.add_row("Model", model_used)
    table.add_row("Aspect ratio", aspect_ratio)
    table.add_row("Time", f"{generation_time:.1f}s")
    table.add_row("References", "\n".join(references))

    panel = Panel(
        table,
        title="[bold green]✓ Image Blended[/bold green]",
        border_style="green",
        padding=(1, 2),
    )

    console.print()
    console.print(panel)


def print_info(message: str) -> None:
    """Print an info message in cyan."""
    console.print(f"[cyan]ℹ[/cyan] {message}")


def print_warning(message: str) -> None:
    """Print a warning message in yellow."""
    console.print(f"[yellow]⚠[/yellow] {message}")


def print_error(message: str) -> None:
    """Print an error message in red."""
    console.print(f"[red]✗[/red] {message}")

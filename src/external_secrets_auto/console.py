"""Rich console utilities for styled terminal output.

All user-facing output of external-secrets-auto goes through this module so
that messages share one theme and can be silenced or captured in tests.
"""

from collections.abc import Generator, Iterable
from contextlib import contextmanager

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.theme import Theme

from external_secrets_auto.models import ValidationResult, ValidationStatus

_THEME = Theme(
    {
        "info": "cyan",
        "success": "green",
        "warning": "yellow",
        "error": "red bold",
        "highlight": "cyan bold",
        "muted": "dim",
    }
)

_STATUS_STYLES = {
    ValidationStatus.SUCCESS: "[success]✓ success[/success]",
    ValidationStatus.ERROR: "[error]✗ error[/error]",
    ValidationStatus.WARNING: "[warning]⚠ warning[/warning]",
}

# Shared console instance
console = Console(theme=_THEME)


def info(message: str) -> None:
    """Print an informational message."""
    console.print(f"[info]ℹ[/info] {message}")


def success(message: str) -> None:
    """Print a success message."""
    console.print(f"[success]✓[/success] {message}")


def warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[warning]⚠[/warning] {message}")


def error(message: str) -> None:
    """Print an error message."""
    console.print(f"[error]✗[/error] {message}")


def action(message: str) -> None:
    """Print an action/progress message."""
    console.print(f"[info]→[/info] {message}")


def step(message: str) -> None:
    """Print a sub-step message."""
    console.print(f"[muted]•[/muted] {message}")


def highlight(text: str) -> str:
    """Return text wrapped in highlight markup.

    Args:
        text: The text to highlight.

    Returns:
        Text wrapped in Rich markup for highlighting.

    """
    return f"[highlight]{text}[/highlight]"


@contextmanager
def spinner(message: str) -> Generator[None, None, None]:
    """Display a spinner while a backend or cluster call is in flight.

    Args:
        message: The status message to display.

    Yields:
        None

    """
    with console.status(f"[info]{message}[/info]", spinner="dots"):
        yield


def summary_panel(title: str, items: dict[str, str]) -> None:
    """Print a summary panel with key-value pairs.

    Args:
        title: Title for the panel.
        items: Dictionary of label -> value pairs to display.

    """
    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold")
    table.add_column(style="cyan")

    for label, value in items.items():
        table.add_row(f"{label}:", value)

    console.print(Panel(table, title=f"[bold]{title}[/bold]", border_style="green"))


def validation_table(results: Iterable[ValidationResult], *, passed: bool) -> None:
    """Print validation results as a table with the overall verdict.

    Args:
        results: Results in the order they were produced.
        passed: The aggregate outcome of the run.

    """
    table = Table(title="Cluster validation", header_style="bold")
    table.add_column("Namespace", style="cyan")
    table.add_column("Name")
    table.add_column("Resource", style="muted")
    table.add_column("Status")
    table.add_column("Message")

    for result in results:
        table.add_row(
            result.namespace,
            result.name,
            result.resource.value,
            _STATUS_STYLES[result.status],
            result.message,
        )

    console.print(table)
    if passed:
        success("All checked resources are synced")
    else:
        error("Cluster state does not match the declared secrets")


def newline() -> None:
    """Print an empty line."""
    console.print()

"""Rich console output utilities."""

from rich.console import Console


console = Console()

_verbose = False


def set_verbose(enabled: bool) -> None:
    """Enable or disable verbose output."""
    global _verbose
    _verbose = enabled


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]✓[/green] {message}")


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[red]✗[/red] {message}", style="red")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow]⚠[/yellow] {message}", style="yellow")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[blue]ℹ[/blue] {message}")


def print_verbose(message: str) -> None:
    """Print a dimmed message when verbose output is enabled."""
    if _verbose:
        console.print(f"  {message}", style="dim")

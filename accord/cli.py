"""
Accord CLI - Declarative OS account convergence.
"""

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from .core import AccordCore
from .errors import AccordError
from .formatters import PlanFormatter
from .keys import parse_ssh_key
from .settings import get_settings

# Setup
app = typer.Typer(
    name="accord",
    help="Declarative OS account convergence",
    add_completion=False,
)
console = Console()

DEFAULT_DEFINITIONS = "accounts.py"


def configure_logging():
    """Configure logging based on settings."""
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@app.callback()
def main():
    """Configure logging before any command runs."""
    configure_logging()


def _get_definitions_file(definitions: Optional[Path]) -> Path:
    """Resolve the definitions file, defaulting to accounts.py in the current directory.

    Raises:
        SystemExit: If the file is not found
    """
    definitions_file = definitions or Path.cwd() / DEFAULT_DEFINITIONS
    if not definitions_file.exists():
        console.print(
            f"[bold red]✗ Error:[/bold red] {definitions_file} not found"
        )
        console.print(
            f"[dim]Hint: pass a definitions file or cd into a directory with {DEFAULT_DEFINITIONS}[/dim]"
        )
        raise typer.Exit(code=1)
    return definitions_file


def _create_command_panel(title: str, color: str, definitions_file: Path) -> Panel:
    return Panel.fit(
        f"[bold {color}]{title}[/bold {color}]\n"
        f"Definitions: {definitions_file}",
        border_style=color,
    )


def _handle_command_error(e: Exception, command_type: str) -> None:
    """Print a command error and exit with code 1.

    Raises:
        SystemExit: Always exits with code 1
    """
    console.print(
        f"\n[bold red]✗ {command_type.capitalize()} failed:[/bold red] {escape(str(e))}"
    )
    raise typer.Exit(code=1)


@app.command()
def plan(
    definitions: Optional[Path] = typer.Argument(
        None, help=f"Account definitions file (default: ./{DEFAULT_DEFINITIONS})"
    ),
):
    """Show the resources each account converges to, without changing anything."""
    definitions_file = _get_definitions_file(definitions)
    console.print(_create_command_panel("Accord Plan", "cyan", definitions_file))

    try:
        plans = AccordCore().plan(definitions_file)
    except (AccordError, FileNotFoundError) as e:
        _handle_command_error(e, "plan")

    formatter = PlanFormatter(console)
    for resource_plan in plans:
        formatter.print_plan(resource_plan)

    console.print(
        "\n[dim]Run 'accord apply' to converge these resources.[/dim]"
    )


@app.command()
def apply(
    definitions: Optional[Path] = typer.Argument(
        None, help=f"Account definitions file (default: ./{DEFAULT_DEFINITIONS})"
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Let pyinfra report changes without making them"
    ),
):
    """Converge every defined account with pyinfra."""
    definitions_file = _get_definitions_file(definitions)
    console.print(_create_command_panel("Accord Apply", "blue", definitions_file))

    try:
        reports = AccordCore().apply(definitions_file, dry_run=dry_run)
    except (AccordError, FileNotFoundError) as e:
        _handle_command_error(e, "apply")

    formatter = PlanFormatter(console)
    for report in reports.values():
        formatter.print_report(report)

    if all(report.success for report in reports.values()):
        console.print("\n[bold green]✓ All accounts converged![/bold green]")
    else:
        console.print("\n[bold red]✗ Some resources failed to converge[/bold red]")
        raise typer.Exit(code=1)


@app.command(name="check-key")
def check_key(
    line: str = typer.Argument(..., help="Public key line: 'type material comment'"),
):
    """Validate one SSH public key line."""
    try:
        entry = parse_ssh_key(line)
    except AccordError as e:
        _handle_command_error(e, "key check")

    console.print(f"[bold green]✓[/bold green] {entry.type} key [bold]{escape(entry.name)}[/bold]")


@app.command()
def version():
    """Show Accord version."""
    from . import __version__

    console.print(f"Accord version: [bold]{__version__}[/bold]")


if __name__ == "__main__":
    app()

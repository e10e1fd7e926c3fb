from __future__ import annotations

import platform
import sys

import typer
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from panmix import __version__
from panmix.commands import binomix, histogram

console = Console()
SUBCOMMANDS = ["binomix", "histogram"]

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
    help=(
        "PanMix command-line toolkit for estimating pan-genome and core-genome size "
        "from gene cluster presence across genomes."
    ),
)

app.add_typer(binomix.app, name="binomix", help="Fit binomial mixture models to a pan-matrix.")
app.add_typer(histogram.app, name="histogram", help="Summarise a pan-matrix as a presence histogram.")


def _print_startup_intro(command_name: str) -> None:
    banner = Panel(
        f"[bold cyan]PanMix {__version__}[/bold cyan]\n"
        "[white]Binomial mixture pan-genome estimates[/white]",
        title="[bold]CLI Start[/bold]",
        border_style="cyan",
        expand=False,
    )
    console.print(banner)

    stats = Table(
        title="[bold]Session Summary[/bold]",
        box=box.SIMPLE_HEAVY,
        show_header=False,
        expand=False,
    )
    stats.add_column("Key", style="bold cyan")
    stats.add_column("Value", style="white")
    stats.add_row("Command", command_name)
    stats.add_row("Subcommands", str(len(SUBCOMMANDS)))
    stats.add_row("Python", sys.version.split()[0])
    stats.add_row("Platform", f"{platform.system()} {platform.release()}")
    console.print(stats)


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"PanMix {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show PanMix version and exit.",
    ),
) -> None:
    if ctx.invoked_subcommand:
        _print_startup_intro(ctx.invoked_subcommand)

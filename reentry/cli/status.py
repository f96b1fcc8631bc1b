"""Status command — what is on disk in the data directory."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from reentry.config import StoreConfig
from reentry.storage.json_file import JsonFilePersistence

console = Console()


@click.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show the data file and its backups, and whether each one is readable."""
    config: StoreConfig = ctx.obj or StoreConfig()
    persistence = JsonFilePersistence(config.data_dir, backup_count=config.backup_count)

    table = Table(show_header=True, header_style="bold", box=None, padding=(0, 1))
    table.add_column("File", min_width=18)
    table.add_column("Size", width=7, justify="right")
    table.add_column("Modified", style="dim", width=16)
    table.add_column("State", width=8)
    table.add_column("Sessions", width=8, justify="right")
    table.add_column("Captures", width=8, justify="right")

    for info in persistence.describe():
        if not info.exists:
            table.add_row(info.path.name, "—", "—", "[dim]missing[/dim]", "—", "—")
            continue
        state = "[green]ok[/green]" if info.valid else "[bold red]CORRUPT[/bold red]"
        table.add_row(
            info.path.name,
            str(info.size),
            info.modified.strftime("%Y-%m-%d %H:%M") if info.modified else "?",
            state,
            str(info.sessions) if info.valid else "—",
            str(info.captures) if info.valid else "—",
        )

    console.print(f"[bold]Data directory[/bold] {persistence.directory}")
    console.print(table)
    if persistence.temp_path.exists():
        console.print(
            f"[yellow]Staging file {persistence.temp_path.name} is present — "
            f"the last save did not finish.[/yellow]"
        )

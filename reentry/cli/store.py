"""Shared store plumbing for CLI commands."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

import click
from rich.console import Console

from reentry.config import StoreConfig
from reentry.domain.models import Session
from reentry.storage.data_store import DataStore
from reentry.storage.errors import PersistenceError

console = Console()


@contextmanager
def open_store(ctx: click.Context) -> Iterator[DataStore]:
    """Load the store for the group's config and save on the way out.

    A failed save is reported and turns into exit status 1.
    """
    config: StoreConfig = ctx.obj or StoreConfig()
    store = DataStore(config)
    store.on_failure(_report_failure)
    store.load()
    try:
        yield store
        if store.is_dirty:
            store.save()
    except PersistenceError:
        ctx.exit(1)


def _report_failure(error: Exception) -> None:
    console.print(f"[red]Could not save data:[/red] {error}")
    console.print("[dim]Your changes are still in memory for this command only.[/dim]")


def find_session(store: DataStore, prefix: str) -> Session | None:
    """Resolve a full session ID or a unique-enough prefix of one."""
    session = store.get_session(prefix)
    if session is not None:
        return session
    matches = [
        s
        for project_id in store.list_projects()
        for s in store.get_sessions_by_project(project_id)
        if s.id.startswith(prefix)
    ]
    if not matches:
        return None
    if len(matches) > 1:
        console.print(
            f"[yellow]Multiple sessions match prefix '{prefix}'. Using most recent.[/yellow]"
        )
    return max(matches, key=lambda s: s.entry_time)

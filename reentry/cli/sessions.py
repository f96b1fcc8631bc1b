"""Read commands — session history per project and a single session's restart note."""

from __future__ import annotations

from datetime import UTC, datetime

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from reentry.cli.store import find_session, open_store
from reentry.domain.models import Capture, ContextElements, Session
from reentry.engine.sessions import SessionManager, TimeAway

console = Console()

_CONTEXT_LABELS = (
    ("intent", "Intent"),
    ("last_action", "Last action"),
    ("open_loops", "Open loops"),
    ("next_action", "Next action"),
)


@click.command()
@click.argument("project_id", required=False, default=None)
@click.option(
    "--limit",
    type=int,
    default=None,
    help="Maximum number of sessions to show per project.",
)
@click.pass_context
def sessions(ctx: click.Context, project_id: str | None, limit: int | None) -> None:
    """Show session history for PROJECT_ID, or for every project."""
    with open_store(ctx) as store:
        manager = SessionManager(store)
        project_ids = [project_id] if project_id else store.list_projects()
        histories = {pid: manager.get_session_history(pid) for pid in project_ids}

    if not any(histories.values()):
        console.print("[yellow]No sessions found.[/yellow]")
        return

    for pid, history in histories.items():
        if not history:
            continue
        if limit is not None:
            history = history[:limit]
        console.print(_session_table(pid, history))
        console.print()


@click.command()
@click.argument("session_id")
@click.pass_context
def show(ctx: click.Context, session_id: str) -> None:
    """Show a session and the context captured when it ended."""
    with open_store(ctx) as store:
        session = find_session(store, session_id)
        capture = store.get_capture(session.capture_id) if session and session.capture_id else None
        away = SessionManager(store).calculate_time_away(session.id) if session else None

    if session is None:
        console.print(f"[red]No session found with ID prefix '{session_id}'[/red]")
        return

    _render_session_detail(session, capture, away)


def _session_table(project_id: str, history: list[Session]) -> Table:
    table = Table(
        title=f"[bold]{project_id}[/bold]  [dim]{len(history)} session(s)[/dim]",
        show_header=True,
        header_style="bold",
        box=None,
        padding=(0, 1),
    )
    table.add_column("Session", width=10)
    table.add_column("Started", style="dim", width=16)
    table.add_column("Duration", width=10)
    table.add_column("Left", width=10)
    table.add_column("Note", width=5, justify="center")
    table.add_column("Rating", width=6, justify="right")

    for session in history:
        table.add_row(
            session.id[:8],
            session.entry_time.strftime("%Y-%m-%d %H:%M"),
            _format_duration(session.entry_time, session.exit_time),
            "[green]open[/green]" if session.is_open else _relative_time(session.exit_time),
            "✓" if session.capture_id else "",
            str(session.feedback_rating) if session.feedback_rating else "—",
        )
    return table


def _render_session_detail(
    session: Session, capture: Capture | None, away: TimeAway | None
) -> None:
    ended_str = (
        session.exit_time.strftime("%Y-%m-%d %H:%M:%S") if session.exit_time else "ongoing"
    )
    meta_lines = [
        f"[bold]Session[/bold]  {session.id}",
        f"[dim]Project:[/dim]  {session.project_id}",
        f"[dim]Start:[/dim]    {session.entry_time.strftime('%Y-%m-%d %H:%M:%S')}",
        f"[dim]End:[/dim]      {ended_str}",
        f"[dim]Duration:[/dim] {_format_duration(session.entry_time, session.exit_time)}",
    ]
    if away is not None and away.unit != "unknown":
        meta_lines.append(f"[dim]Away:[/dim]     {away.formatted}")
    if session.feedback_rating is not None:
        meta_lines.append(f"[dim]Rating:[/dim]   {session.feedback_rating}/5")
    console.print(Panel("\n".join(meta_lines), title="[bold]Session Detail[/bold]", expand=False))
    console.print()

    if capture is None:
        console.print("[dim]No capture recorded for this session.[/dim]")
        return

    console.print(
        Panel(
            capture.original_input,
            title=f"[bold]You wrote[/bold] [dim]({capture.type.value})[/dim]",
            expand=False,
        )
    )
    if not capture.context_elements.is_empty:
        console.print("\n".join(_context_lines(capture.context_elements)))


def _context_lines(ctx: ContextElements) -> list[str]:
    lines: list[str] = []
    for attr, label in _CONTEXT_LABELS:
        values = getattr(ctx, attr)
        if not values:
            continue
        lines.append(f"[bold]{label}[/bold]")
        lines.extend(f"  • {v}" for v in values)
    return lines


def _relative_time(dt: datetime) -> str:
    now = datetime.now(tz=UTC)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    seconds = int((now - dt).total_seconds())
    if seconds < 60:
        return f"{seconds}s ago"
    if seconds < 3600:
        return f"{seconds // 60}m ago"
    if seconds < 86400:
        return f"{seconds // 3600}h ago"
    return f"{seconds // 86400}d ago"


def _format_duration(start: datetime, end: datetime | None) -> str:
    finish = end or datetime.now(tz=UTC)
    if start.tzinfo is None:
        start = start.replace(tzinfo=UTC)
    if finish.tzinfo is None:
        finish = finish.replace(tzinfo=UTC)
    seconds = int((finish - start).total_seconds())
    if seconds < 60:
        return f"{seconds}s"
    minutes, secs = divmod(seconds, 60)
    if minutes < 60:
        return f"{minutes}m {secs}s"
    hours, mins = divmod(minutes, 60)
    return f"{hours}h {mins}m"

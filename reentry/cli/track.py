"""Write commands — start a session, capture context on the way out, rate a briefing."""

from __future__ import annotations

import click
from rich.console import Console
from rich.panel import Panel

from reentry.cli.store import find_session, open_store
from reentry.domain.models import MAX_FEEDBACK_RATING, MIN_FEEDBACK_RATING
from reentry.engine.capture import CaptureRecorder
from reentry.engine.sessions import SessionManager

console = Console()


@click.command()
@click.argument("project_id")
@click.pass_context
def start(ctx: click.Context, project_id: str) -> None:
    """Start a new work session on PROJECT_ID."""
    with open_store(ctx) as store:
        manager = SessionManager(store)
        previous = manager.get_most_recent_session(project_id)
        session = manager.create_session(project_id)
        store.immediate_save()

    console.print(f"[green]Started session[/green] {session.id} [dim]({project_id})[/dim]")
    if previous is not None and previous.capture_id:
        console.print(
            f"[dim]Last time you left a note — run[/dim] reentry show {previous.id[:8]}"
        )


@click.command()
@click.argument("session_id")
@click.argument("text")
@click.option(
    "--interrupt",
    is_flag=True,
    default=False,
    help="Record as an interrupt capture instead of a quick capture.",
)
@click.pass_context
def capture(ctx: click.Context, session_id: str, text: str, interrupt: bool) -> None:
    """Record what you were doing in SESSION_ID before leaving it."""
    with open_store(ctx) as store:
        session = find_session(store, session_id)
        if session is None:
            console.print(f"[red]No session found with ID prefix '{session_id}'[/red]")
            return

        recorder = CaptureRecorder(store)
        window = (
            recorder.start_interrupt_capture(session.id)
            if interrupt
            else recorder.start_quick_capture(session.id)
        )
        result = recorder.submit_text(window, text)
        if not result.success:
            console.print(f"[red]Capture failed:[/red] {result.error}")
            ctx.exit(1)

    console.print(f"[green]Saved {window.type.value} capture[/green] {result.capture_id}")
    console.print(Panel(result.original_input, expand=False))


@click.command()
@click.argument("session_id")
@click.argument(
    "rating",
    type=click.IntRange(MIN_FEEDBACK_RATING, MAX_FEEDBACK_RATING),
)
@click.pass_context
def feedback(ctx: click.Context, session_id: str, rating: int) -> None:
    """Rate (1-5) how useful the restart note for SESSION_ID was."""
    with open_store(ctx) as store:
        session = find_session(store, session_id)
        if session is None:
            console.print(f"[red]No session found with ID prefix '{session_id}'[/red]")
            return
        SessionManager(store).record_feedback(session.id, rating)

    console.print(f"[green]Recorded rating {rating}[/green] for session {session.id}")


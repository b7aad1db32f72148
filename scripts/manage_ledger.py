#!/usr/bin/env python3
"""
Command-line interface for managing session usage ledgers.

The ledger database (LEDGER_DB_PATH, default outs/sessions/ledger.db) records,
per session, which content base ids were used or blocked. This script provides
commands for creating sessions, committing approved content, and inspecting state.

Commands:
    create  - Create a session ledger (interactive or batch)
    commit  - Commit approved content ids to an interactive session
    status  - Show a session's used/blocked ids (or list all sessions)
    check   - Check whether content ids are still available in a session
    history - Show recent pipeline events for a session
"""

from pathlib import Path
from typing import List, Optional

import typer
from dotenv import load_dotenv
from typing_extensions import Annotated

from curator.contexts.allocation import ConflictRegistry
from curator.contexts.allocation.exceptions import (
    AllocationModeError,
    SessionNotFoundError,
    StaleLedgerWriteError,
)
from curator.contexts.sessions import INTERACTIVE, SESSION_MODES, SessionLedgerStore
from curator.contexts.sessions.logger import setup_sessions_logger
from curator.utils.event_logging import LOGS_PATH, get_recent_events
from curator.utils.timestamp import format_timestamp, now

load_dotenv()

app = typer.Typer(
    add_completion=False,
    help="Manage session usage ledgers",
    invoke_without_command=True,
)

ConflictsOption = Annotated[
    Optional[Path], typer.Option("--conflicts", "-c", help="Conflict table YAML")
]
DbOption = Annotated[Optional[Path], typer.Option("--db", help="Ledger database path")]


@app.callback()
def main(ctx: typer.Context):
    """Show help by default when no command is provided."""
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


def _store(db: Optional[Path], conflicts: Optional[Path]) -> SessionLedgerStore:
    return SessionLedgerStore(db_path=db, registry=ConflictRegistry.from_yaml(conflicts))


def _fail(message: str, code: int = 1):
    typer.secho(f"ERROR: {message}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=code)


@app.command("create")
def create_command(
    session_id: Annotated[str, typer.Argument(help="Session identifier")],
    mode: Annotated[
        str, typer.Option("--mode", "-m", help=f"Allocation mode: {' | '.join(SESSION_MODES)}")
    ] = INTERACTIVE,
    db: DbOption = None,
    conflicts: ConflictsOption = None,
):
    """Create an empty session ledger."""
    try:
        record = _store(db, conflicts).create_session(session_id, mode=mode)
    except ValueError as e:
        _fail(str(e))

    typer.secho(f"✓ Created {record.mode} session {record.session_id}", fg=typer.colors.GREEN)


@app.command("commit")
def commit_command(
    session_id: Annotated[str, typer.Argument(help="Session identifier")],
    content_ids: Annotated[List[str], typer.Argument(help="Approved content ids")],
    db: DbOption = None,
    conflicts: ConflictsOption = None,
    log_dir: Annotated[
        Optional[Path], typer.Option("--log-dir", help="Directory for the detailed log")
    ] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Echo debug log lines")] = False,
):
    """
    Commit approved content ids (one approved section) to an interactive session.

    Examples:\n

        $ manage_ledger.py commit sess-42 CH-01 CH-05-V2 CH-07
    """
    store = _store(db, conflicts)
    setup_sessions_logger(
        log_dir or LOGS_PATH / f"ledger_{now()}", db_path=store.db_path, verbose=verbose
    )

    already_blocked = []
    try:
        ledger = store.load_ledger(session_id)
        already_blocked = [cid for cid in content_ids if not ledger.is_available(cid)]
        blocked = store.commit(session_id, content_ids)
    except SessionNotFoundError as e:
        _fail(str(e))
    except (AllocationModeError, StaleLedgerWriteError) as e:
        _fail(str(e), code=2)

    if already_blocked:
        typer.secho(
            f"Warning: committed ids that were already unavailable: {', '.join(already_blocked)}",
            fg=typer.colors.YELLOW,
        )
    typer.secho(
        f"✓ Committed {len(content_ids)} id(s); {len(blocked)} base id(s) now blocked",
        fg=typer.colors.GREEN,
    )


@app.command("status")
def status_command(
    session_id: Annotated[
        Optional[str], typer.Argument(help="Session identifier (omit to list all)")
    ] = None,
    db: DbOption = None,
    conflicts: ConflictsOption = None,
):
    """Show a session's ledger, or list all sessions."""
    store = _store(db, conflicts)

    if session_id is None:
        sessions = store.list_sessions()
        if not sessions:
            typer.echo("No sessions recorded")
            return
        typer.secho(f"\n{len(sessions)} session(s)", fg=typer.colors.BLUE, bold=True)
        for record in sessions:
            updated = format_timestamp(record.updated_at, relative=True)
            typer.echo(
                f"  {record.session_id:<24} {record.mode:<12} v{record.version:<4} "
                f"{len(record.used_content_ids):>3} used   updated {updated}"
            )
        return

    try:
        record = store.get_session(session_id)
    except SessionNotFoundError as e:
        _fail(str(e))

    typer.secho(f"\nSession {record.session_id}", fg=typer.colors.BLUE, bold=True)
    typer.echo(f"  mode:     {record.mode}")
    typer.echo(f"  version:  {record.version}")
    typer.echo(f"  created:  {format_timestamp(record.created_at)}")
    typer.echo(f"  updated:  {format_timestamp(record.updated_at)}")
    typer.echo(f"  used content ids ({len(record.used_content_ids)}):")
    typer.echo(f"    {', '.join(record.used_content_ids) or '(none)'}")
    typer.echo(f"  used base ids ({len(record.used_base_ids)}):")
    typer.echo(f"    {', '.join(record.used_base_ids) or '(none)'}")
    typer.echo(f"  blocked base ids ({len(record.blocked_base_ids)}):")
    typer.echo(f"    {', '.join(record.blocked_base_ids) or '(none)'}")


@app.command("check")
def check_command(
    session_id: Annotated[str, typer.Argument(help="Session identifier")],
    content_ids: Annotated[List[str], typer.Argument(help="Content ids to check")],
    db: DbOption = None,
    conflicts: ConflictsOption = None,
):
    """Check whether content ids can still be used in a session."""
    try:
        ledger = _store(db, conflicts).load_ledger(session_id)
    except SessionNotFoundError as e:
        _fail(str(e))

    for content_id in content_ids:
        if ledger.is_available(content_id):
            typer.secho(f"  ✓ {content_id} available", fg=typer.colors.GREEN)
        else:
            typer.secho(f"  ✗ {content_id} blocked", fg=typer.colors.RED)


@app.command("history")
def history_command(
    session_id: Annotated[str, typer.Argument(help="Session identifier")],
    n: Annotated[int, typer.Option("--n", "-n", help="Number of events")] = 10,
):
    """Show recent pipeline events for a session."""
    events = get_recent_events(n, session_id=session_id)
    if not events:
        typer.echo(f"No events for {session_id}")
        return

    for event in events:
        when = format_timestamp(event["timestamp"])
        ids = ", ".join(event.get("content_ids", []))
        typer.echo(f"  {when}  {event['event_type']:<20} {ids}")


if __name__ == "__main__":
    app()

#!/usr/bin/env python3
"""
Allocate ranked content to resume slots, or verify an assembled resume.

Commands:
    run    - Allocate a ranked selection (YAML) and print the decision report
    check  - Verify a slot -> content id mapping produced outside the allocator

Usage:
    python scripts/allocate.py run data/selections/acme_pmm.yaml
    python scripts/allocate.py run selection.yaml -o outs/allocations/acme.yaml -s sess-42
    python scripts/allocate.py check outs/assembled/acme.yaml
"""

import time
from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv
from omegaconf import OmegaConf
from typing_extensions import Annotated

from curator.contexts.allocation import (
    ConflictRegistry,
    allocate,
    build_slots,
    load_slot_plan_config,
    verify_allocation,
)
from curator.contexts.allocation.exceptions import AllocationModeError, ConflictTableError
from curator.contexts.allocation.logger import setup_allocation_logger
from curator.contexts.allocation.report import format_allocation_report
from curator.contexts.sessions import BATCH, SessionLedgerStore
from curator.utils.event_logging import LOGS_PATH
from curator.utils.timestamp import now

load_dotenv()

app = typer.Typer(
    add_completion=False,
    help="Allocate ranked resume content to slots and verify exclusivity.",
    invoke_without_command=True,
)


@app.callback()
def main(ctx: typer.Context):
    """Show help by default when no command is provided."""
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


def _load_registry(conflicts: Optional[Path]) -> ConflictRegistry:
    try:
        return ConflictRegistry.from_yaml(conflicts)
    except (FileNotFoundError, ConflictTableError) as e:
        typer.secho(f"ERROR: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)


@app.command("run")
def run_command(
    selection_file: Annotated[Path, typer.Argument(help="Ranked selection YAML")],
    conflicts: Annotated[
        Optional[Path], typer.Option("--conflicts", "-c", help="Conflict table YAML")
    ] = None,
    plan: Annotated[
        Optional[Path], typer.Option("--plan", "-p", help="Slot plan YAML (slot counts)")
    ] = None,
    output: Annotated[
        Optional[Path], typer.Option("--output", "-o", help="Write the allocation as YAML")
    ] = None,
    session: Annotated[
        Optional[str],
        typer.Option("--session", "-s", help="Record the result in this batch session"),
    ] = None,
    log_dir: Annotated[
        Optional[Path], typer.Option("--log-dir", help="Directory for the detailed log")
    ] = None,
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Echo every slot decision to the console")
    ] = False,
):
    """
    Allocate a ranked selection and print the decision report.

    Exits with code 2 if verification finds a duplicate or conflict.

    Examples:\n

        $ allocate.py run selection.yaml

        $ allocate.py run selection.yaml -o outs/allocations/acme.yaml -s sess-42
    """
    if not selection_file.exists():
        typer.secho(f"ERROR: Selection not found: {selection_file}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    registry = _load_registry(conflicts)
    setup_allocation_logger(
        log_dir or LOGS_PATH / f"allocate_{now()}",
        conflict_table=conflicts,
        verbose=verbose,
    )

    selection = OmegaConf.to_container(OmegaConf.load(selection_file), resolve=True) or {}
    try:
        slots = build_slots(selection, load_slot_plan_config(plan))
    except (ValueError, FileNotFoundError) as e:
        typer.secho(f"ERROR: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    start = time.perf_counter()
    allocation = allocate(slots, registry)
    report = verify_allocation(allocation, registry)
    elapsed = time.perf_counter() - start

    typer.echo(format_allocation_report(allocation, report))
    typer.echo(f"\nCompleted in {elapsed * 1000:.1f}ms")

    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        OmegaConf.save(OmegaConf.create(allocation.to_dict()), output)
        typer.echo(f"Allocation written to {output}")

    if session:
        store = SessionLedgerStore(registry=registry)
        try:
            if not store.session_exists(session):
                store.create_session(session, mode=BATCH)
            store.record_allocation(session, allocation)
        except (AllocationModeError, ValueError) as e:
            typer.secho(f"ERROR: {e}", fg=typer.colors.RED, err=True)
            raise typer.Exit(code=1)
        typer.echo(f"Recorded {len(allocation.used_content_ids())} item(s) for session {session}")

    if not report.valid:
        raise typer.Exit(code=2)


@app.command("check")
def check_command(
    assembled_file: Annotated[
        Path, typer.Argument(help="YAML mapping of slot key -> content id")
    ],
    conflicts: Annotated[
        Optional[Path], typer.Option("--conflicts", "-c", help="Conflict table YAML")
    ] = None,
):
    """
    Verify content assembled outside the allocator (e.g., free-form generation).

    Accepts either a plain slot -> content id mapping or an allocation written by
    `run --output`. Exits with code 2 on any duplicate or conflict.
    """
    if not assembled_file.exists():
        typer.secho(f"ERROR: File not found: {assembled_file}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    registry = _load_registry(conflicts)
    data = OmegaConf.to_container(OmegaConf.load(assembled_file), resolve=True) or {}

    if "assignments" in data:
        mapping = {
            key: (value or {}).get("content_id") for key, value in data["assignments"].items()
        }
    else:
        mapping = dict(data)

    report = verify_allocation(mapping, registry)

    if report.valid:
        typer.secho(
            f"✓ {len(mapping)} slot(s) verified, no duplicates or conflicts",
            fg=typer.colors.GREEN,
        )
        return

    typer.secho("✗ Verification failed", fg=typer.colors.RED, bold=True)
    for duplicate in report.duplicates:
        typer.echo(f"  duplicate {duplicate.base_id}: {', '.join(duplicate.slots)}")
    for violation in report.conflicts:
        reason = f" ({violation.reason})" if violation.reason else ""
        slots = ", ".join(violation.slots)
        typer.echo(f"  conflict {violation.id_a} <-> {violation.id_b}: {slots}{reason}")
    raise typer.Exit(code=2)


if __name__ == "__main__":
    app()

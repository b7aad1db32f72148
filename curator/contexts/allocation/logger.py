"""
Allocation context logger.

Provides logging interface for allocation context with automatic [allocate] prefix.
All allocation modules should import from this module, not from utils.logger directly.
"""

from pathlib import Path

from loguru import logger

from curator.utils.logger import setup_logger as _setup_logger

CONTEXT_PREFIX = "[allocate]"


def setup_allocation_logger(
    log_dir: Path, conflict_table: Path = None, verbose: bool = False
) -> Path:
    """
    Setup logger for allocation context.

    Args:
        log_dir: Directory for this allocation run
        conflict_table: Conflict table in use, recorded in the provenance header
        verbose: Echo DEBUG lines (every slot decision) to the console

    Returns:
        Path to log file
    """
    return _setup_logger(
        context_name="allocate",
        log_dir=log_dir,
        extra_provenance={"Conflict table": conflict_table} if conflict_table else None,
        console_level="DEBUG" if verbose else "INFO",
    )


# Wrapper functions with automatic [allocate] prefix


def _log_info(message: str) -> None:
    """Log info message with [allocate] prefix."""
    logger.info(f"{CONTEXT_PREFIX} {message}")


def _log_success(message: str) -> None:
    """Log success message with [allocate] prefix."""
    logger.success(f"{CONTEXT_PREFIX} {message}")


def _log_warning(message: str) -> None:
    """Log warning message with [allocate] prefix."""
    logger.warning(f"{CONTEXT_PREFIX} {message}")


def _log_debug(message: str) -> None:
    """Log debug message with [allocate] prefix."""
    logger.debug(f"{CONTEXT_PREFIX} {message}")


# High-level allocation-specific logging helpers


def log_slot_decision(entry) -> None:
    """Log one allocation log entry at DEBUG level."""
    if entry.content_id is None:
        _log_debug(f"{entry.slot_key}: skipped ({entry.reason})")
    else:
        _log_debug(f"{entry.slot_key}: {entry.content_id} (score: {entry.score})")

    for content_id, why in entry.rejected.items():
        _log_debug(f"  rejected {content_id}: {why}")


def log_allocation_result(allocation, elapsed_time: float) -> None:
    """
    Log allocation summary.

    Args:
        allocation: Allocation returned by allocate()
        elapsed_time: Time taken in seconds
    """
    assigned = len(allocation.assigned_slots())
    skipped = allocation.unassigned_slot_keys()

    _log_info(
        f"Allocated {assigned}/{len(allocation.assignments)} slots ({elapsed_time * 1000:.1f}ms)"
    )
    if skipped:
        _log_warning(f"  Unfilled slots: {', '.join(skipped)}")


def log_verification_result(report) -> None:
    """Log verifier findings: one warning per duplicate or conflict violation."""
    if report.valid:
        _log_success("Verification passed (no duplicate base ids, no conflict pairs)")
        return

    for duplicate in report.duplicates:
        _log_warning(f"Duplicate base id {duplicate.base_id} in slots {', '.join(duplicate.slots)}")
    for violation in report.conflicts:
        _log_warning(
            f"Conflict {violation.id_a} <-> {violation.id_b} in slots "
            f"{', '.join(violation.slots)} ({violation.reason or 'no reason recorded'})"
        )

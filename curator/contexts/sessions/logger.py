"""
Sessions context logger.

Provides logging interface for sessions context with automatic [session] prefix.
All sessions modules should import from this module, not from utils.logger directly.
"""

from pathlib import Path

from loguru import logger

from curator.utils.logger import setup_logger as _setup_logger

CONTEXT_PREFIX = "[session]"


def setup_sessions_logger(log_dir: Path, db_path: Path = None, verbose: bool = False) -> Path:
    """
    Setup logger for sessions context.

    Args:
        log_dir: Directory for this logging session
        db_path: Ledger database in use, recorded in the provenance header
        verbose: Echo DEBUG lines (retries, recorded allocations) to the console

    Returns:
        Path to log file
    """
    return _setup_logger(
        context_name="session",
        log_dir=log_dir,
        extra_provenance={"Ledger database": db_path} if db_path else None,
        console_level="DEBUG" if verbose else "INFO",
    )


def _log_info(message: str) -> None:
    """Log info message with [session] prefix."""
    logger.info(f"{CONTEXT_PREFIX} {message}")


def _log_warning(message: str) -> None:
    """Log warning message with [session] prefix."""
    logger.warning(f"{CONTEXT_PREFIX} {message}")


def _log_error(message: str) -> None:
    """Log error message with [session] prefix."""
    logger.error(f"{CONTEXT_PREFIX} {message}")


def _log_debug(message: str) -> None:
    """Log debug message with [session] prefix."""
    logger.debug(f"{CONTEXT_PREFIX} {message}")


def log_commit(session_id: str, content_ids, blocked_count: int, version: int) -> None:
    """Log a successful ledger commit."""
    _log_info(
        f"{session_id}: committed {', '.join(content_ids)} "
        f"(version {version}, {blocked_count} base id(s) blocked)"
    )


def log_stale_write(session_id: str, expected_version: int, attempt: int, max_retries: int) -> None:
    """Log an optimistic-lock miss that will be retried."""
    _log_warning(
        f"{session_id}: ledger changed since version {expected_version}, "
        f"retrying ({attempt}/{max_retries})"
    )

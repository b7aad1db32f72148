"""
Allocation diagnostics report.

Renders the allocation log as a fixed-width text table for operators.
"""

from typing import Optional

from curator.contexts.allocation.content_data_structures import Allocation
from curator.contexts.allocation.verifier import VerificationReport, get_allocation_summary
from curator.utils.report_formatter import Column, TableFormatter, format_percentage

REPORT_COLUMNS = [
    Column("Slot", 16),
    Column("Action", 9),
    Column("Content ID", 14),
    Column("Score", 7, align=">"),
    Column("Reason", 50),
]


def format_allocation_report(
    allocation: Allocation, verification: Optional[VerificationReport] = None
) -> str:
    """
    Format allocation log, summary and (optionally) verifier findings.

    Args:
        allocation: Allocation to report on
        verification: Verifier report to append

    Returns:
        Multi-line report string
    """
    table = TableFormatter(REPORT_COLUMNS, total_width=100)
    table.add_section_header("CONTENT ALLOCATION")
    table.add_table_header()

    for entry in allocation.allocation_log:
        score = f"{entry.score:g}" if entry.score is not None else None
        table.add_row([entry.slot_key, entry.action.value, entry.content_id, score, entry.reason])
        for content_id, why in entry.rejected.items():
            table.add_text(f"    x {content_id}: {why}")

    summary = get_allocation_summary(allocation)
    filled = format_percentage(summary["assigned_slots"], summary["total_slots"])
    table.add_summary(
        f"Assigned {summary['assigned_slots']}/{summary['total_slots']} slots ({filled}), "
        f"{summary['skipped_slots']} skipped, {summary['unique_base_ids']} unique base ids"
    )

    if verification is not None:
        if verification.valid:
            table.add_text("Verification: PASSED")
        else:
            table.add_text("Verification: FAILED")
            for duplicate in verification.duplicates:
                table.add_text(f"  duplicate {duplicate.base_id}: {', '.join(duplicate.slots)}")
            for violation in verification.conflicts:
                slots = ", ".join(violation.slots)
                table.add_text(f"  conflict {violation.id_a} <-> {violation.id_b}: {slots}")

    return table.render()

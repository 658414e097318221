"""CLI output formatters.

Keeps display logic out of main.py.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

import click

from ..models import CreditCard, EntityKind, FixedBill, SyncStatus, Transaction
from ..services.sync import RunOutcome

if TYPE_CHECKING:
    from datetime import datetime

    from ..models import Record
    from ..services.entity_sync import SyncSummary
    from ..services.sync import SyncRunResult

KIND_TITLES = {
    EntityKind.CATEGORY: "Categories",
    EntityKind.CREDIT_CARD: "Credit cards",
    EntityKind.FIXED_BILL: "Fixed bills",
    EntityKind.TRANSACTION: "Transactions",
}

_STATUS_TAGS = {
    SyncStatus.SYNCED: "",
    SyncStatus.PENDING: "  [PENDING]",
    SyncStatus.PENDING_DELETE: "  [DELETING]",
}


def format_sync_time(last_sync_at: Optional[datetime]) -> str:
    """Format sync time for display."""
    if last_sync_at:
        return last_sync_at.astimezone().strftime("%Y-%m-%d %H:%M")
    return "Never"


def format_record_row(record: Record, show_status: bool = True) -> str:
    """Format one record as a single CLI line.

    Args:
        record: Any entity record.
        show_status: Whether to append the sync status tag.

    Returns:
        Formatted string for display.
    """
    name = record.display_name[:28].ljust(28)
    if isinstance(record, Transaction):
        amount = f"{record.signed_amount:,.2f}"
        row = f"{record.date.isoformat()}  {amount:>12}  {name}"
    elif isinstance(record, FixedBill):
        row = f"day {record.due_day:>2}  {record.amount:>12,.2f}  {name}  {record.category.value}"
    elif isinstance(record, CreditCard):
        row = f"{name}  {record.bank:<12}  {record.masked_number}"
    else:
        row = f"{name}  {record.color_hex}"

    row = f"{record.local_id[:8]}  {row}"
    if show_status:
        row += _STATUS_TAGS[record.sync_status]
        if record.sync_error:
            row += f"  ({record.sync_error})"
    return row


def echo_success(message: str) -> None:
    """Echo a success message in green."""
    click.echo(click.style(f"✓ {message}", fg="green"))


def echo_error(message: str) -> None:
    """Echo an error message in red."""
    click.echo(click.style(f"✗ {message}", fg="red"))


def echo_warning(message: str) -> None:
    """Echo a warning message in yellow."""
    click.echo(click.style(f"⚠ {message}", fg="yellow"))


def echo_header(message: str) -> None:
    """Echo a header with underline."""
    click.echo(f"\n{message}")
    click.echo("=" * len(message))


def format_sync_summary(summary: SyncSummary) -> None:
    """Display one entity pass result."""
    title = KIND_TITLES[summary.kind]
    if summary.aborted:
        echo_error(f"{title}: pass aborted")
    elif summary.success:
        echo_success(f"{title}: fetched {summary.fetched}")
    else:
        echo_warning(f"{title}: fetched {summary.fetched}, {summary.failed} failed")
    if not summary.aborted:
        click.echo(
            f"    Pulled: {summary.inserted} new, {summary.overwritten} updated, "
            f"{summary.merged} merged, {summary.removed} removed"
        )
        click.echo(
            f"    Pushed: {summary.created} created, {summary.updated} updated, "
            f"{summary.deleted} deleted"
        )
    for error in summary.errors:
        click.echo(f"    {error}")


def format_run_result(result: SyncRunResult) -> None:
    """Display an orchestrator run result."""
    if result.outcome == RunOutcome.SKIPPED_OFFLINE:
        echo_warning("Offline: sync skipped")
        return
    if result.outcome == RunOutcome.SKIPPED_BUSY:
        echo_warning("Another sync is already running")
        return

    for summary in result.summaries:
        format_sync_summary(summary)

    if result.outcome == RunOutcome.UNAUTHORIZED:
        echo_error("Unauthorized: check your API token")
    elif result.outcome == RunOutcome.DEGRADED:
        echo_warning(f"Some items didn't sync ({result.pending_count} pending)")
    else:
        echo_success("Sync complete")

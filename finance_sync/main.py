"""Command-line entry point for finance-sync."""

from __future__ import annotations

import logging
import sys
import time
from pathlib import Path
from typing import Optional

import click
from tqdm import tqdm

from . import __version__
from .cli.formatters import (
    KIND_TITLES,
    echo_error,
    echo_header,
    echo_success,
    echo_warning,
    format_record_row,
    format_run_result,
    format_sync_time,
)
from .cli.helpers import (
    KIND_CHOICES,
    get_db,
    get_orchestrator,
    parse_amount,
    parse_date,
    parse_kind,
    resolve_reference,
)
from .config import Config, load_config
from .models import (
    Category,
    CreditCard,
    EntityKind,
    FixedBill,
    FixedBillCategory,
    SyncStatus,
    Transaction,
    TransactionType,
)
from .services.repository import CategoryRepository, LocalRepository, TransactionRepository
from .services.scheduler import Scheduler
from .services.sync import LAST_SYNC_KEY, SYNC_ORDER, RunOutcome

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(config: Config, verbose: bool = False) -> None:
    """Log to a file in the data directory; --verbose also logs to stderr."""
    package_logger = logging.getLogger("finance_sync")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()

    config.data_dir.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(config.log_path, encoding="utf-8")
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    package_logger.addHandler(file_handler)

    if verbose:
        stream_handler = logging.StreamHandler(sys.stderr)
        stream_handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
        package_logger.addHandler(stream_handler)

    package_logger.setLevel(logging.DEBUG if verbose else config.log_level)
    package_logger.propagate = False


@click.group()
@click.option("--mock", is_flag=True, help="Use a local mock server and a separate database.")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to config.toml.",
)
@click.option("-v", "--verbose", is_flag=True, help="Log debug output to stderr.")
@click.version_option(__version__, prog_name="finance-sync")
@click.pass_context
def main(ctx: click.Context, mock: bool, config_path: Optional[Path], verbose: bool) -> None:
    """Finance Sync - local-first personal finance store.

    Records are written locally first and reconciled with the remote API by
    'sync'.
    """
    ctx.ensure_object(dict)
    config = load_config(config_path)
    ctx.obj["config"] = config
    ctx.obj["mock"] = mock
    setup_logging(config, verbose)


# =============================================================================
# Sync
# =============================================================================


@main.command()
@click.pass_context
def sync(ctx: click.Context) -> None:
    """Pull remote changes and push local ones for every entity kind."""
    orchestrator = get_orchestrator(ctx)
    if ctx.obj.get("mock"):
        click.echo(click.style("[MOCK] ", fg="cyan") + "Using mock server")

    with tqdm(total=len(SYNC_ORDER), desc="Syncing", unit="pass") as pbar:

        def on_pass(kind: EntityKind) -> None:
            pbar.n = SYNC_ORDER.index(kind)
            pbar.set_description(f"Syncing {KIND_TITLES[kind].lower()}")
            pbar.refresh()

        result = orchestrator.run_all(pass_callback=on_pass)
        pbar.n = len(result.summaries)
        pbar.refresh()

    format_run_result(result)
    if result.outcome == RunOutcome.UNAUTHORIZED:
        ctx.exit(1)


@main.command()
@click.option("-i", "--interval", type=float, default=None, help="Seconds between periodic syncs.")
@click.option(
    "--duration",
    type=float,
    default=0,
    help="Stop after this many seconds (0 runs until interrupted).",
)
@click.pass_context
def watch(ctx: click.Context, interval: Optional[float], duration: float) -> None:
    """Keep syncing in the background until interrupted."""
    config = ctx.obj["config"]
    if interval is not None:
        config.sync.interval_seconds = interval
    orchestrator = get_orchestrator(ctx)
    scheduler = Scheduler(orchestrator, config.sync)

    def report(result) -> None:
        stamp = format_sync_time(result.finished_at)
        click.echo(f"[{stamp}] sync {result.outcome.value}, {result.pending_count} pending")

    remove_listener = orchestrator.add_listener(report)
    click.echo(f"Watching (every {config.sync.interval_seconds:g}s). Press Ctrl-C to stop.")
    scheduler.start()
    started = time.monotonic()
    try:
        while not duration or time.monotonic() - started < duration:
            time.sleep(0.1)
    except KeyboardInterrupt:
        click.echo("\nStopping...")
    finally:
        scheduler.stop()
        remove_listener()
        # Let an in-flight run finish before the database closes
        while orchestrator.is_running:
            time.sleep(0.05)


# =============================================================================
# Database inspection
# =============================================================================


@main.command("db-status")
@click.pass_context
def db_status(ctx: click.Context) -> None:
    """Show record counts, pending changes and last sync time."""
    db = get_db(ctx)
    mock_prefix = "[MOCK] " if ctx.obj.get("mock") else ""
    echo_header(f"{mock_prefix}Database Status")

    counts = db.get_counts()
    for kind in SYNC_ORDER:
        total = counts[kind]["total"]
        pending = counts[kind]["pending"]
        line = f"  {KIND_TITLES[kind] + ':':<15} {total:>5}"
        if pending:
            line += click.style(f"  ({pending} pending)", fg="yellow")
        click.echo(line)

    state = db.get_sync_state(LAST_SYNC_KEY)
    click.echo(f"\n  Last sync: {format_sync_time(state['last_sync_at'] if state else None)}")


@main.command("db-pending")
@click.pass_context
def db_pending(ctx: click.Context) -> None:
    """List records waiting to be pushed."""
    db = get_db(ctx)
    found = 0
    for kind in SYNC_ORDER:
        records = db.get_unsynced_records(kind)
        if not records:
            continue
        echo_header(f"{KIND_TITLES[kind]} ({len(records)})")
        for record in records:
            click.echo(format_record_row(record))
        found += len(records)

    if not found:
        echo_success("No pending changes")
    else:
        click.echo(f"\n{found} pending change(s). Run 'sync' to push them.")


@main.command("db-list")
@click.argument("kind", type=click.Choice(KIND_CHOICES))
@click.option("--month", default=None, help="Transactions only: YYYY-MM.")
@click.pass_context
def db_list(ctx: click.Context, kind: str, month: Optional[str]) -> None:
    """List local records of one KIND."""
    db = get_db(ctx)
    entity_kind = parse_kind(kind)
    if month:
        if entity_kind != EntityKind.TRANSACTION:
            raise click.BadParameter("--month only applies to transactions")
        try:
            year, month_num = (int(part) for part in month.split("-"))
        except ValueError:
            raise click.BadParameter(f"'{month}' is not YYYY-MM") from None
        records = TransactionRepository(db).list_for_month(year, month_num)
    else:
        records = LocalRepository(db, entity_kind).list()

    if not records:
        click.echo(f"No {KIND_TITLES[entity_kind].lower()} found.")
        return
    click.echo(f"Found {len(records)} {KIND_TITLES[entity_kind].lower()}:\n")
    for record in records:
        click.echo(format_record_row(record))


@main.command("db-clear")
@click.confirmation_option(prompt="Delete all local data?")
@click.pass_context
def db_clear(ctx: click.Context) -> None:
    """Delete every local record and sync state."""
    counts = get_db(ctx).clear_all()
    mock_prefix = "[MOCK] " if ctx.obj.get("mock") else ""
    echo_success(f"{mock_prefix}Cleared {sum(counts.values())} rows")


# =============================================================================
# Local writes
# =============================================================================


@main.command("seed-defaults")
@click.pass_context
def seed_defaults(ctx: click.Context) -> None:
    """Insert the default categories into an empty store."""
    inserted = CategoryRepository(get_db(ctx)).seed_defaults(ctx.obj["config"].user_id)
    if inserted:
        echo_success(f"Added {inserted} default categories")
    else:
        echo_warning("Categories already exist; nothing seeded")


@main.command("add-category")
@click.argument("name")
@click.option("--color", "color_hex", default="#95A5A6", show_default=True)
@click.option("--icon", "icon_name", default="tag", show_default=True)
@click.pass_context
def add_category(ctx: click.Context, name: str, color_hex: str, icon_name: str) -> None:
    """Create a category locally."""
    repo = CategoryRepository(get_db(ctx))
    if repo.find_by_name(name):
        echo_error(f"Category '{name}' already exists")
        ctx.exit(1)
    category = repo.create(
        Category(
            name=name.strip(),
            color_hex=color_hex,
            icon_name=icon_name,
            display_order=len(repo.list()),
            user_id=ctx.obj["config"].user_id,
        )
    )
    echo_success(f"Added category '{category.name}' ({category.local_id[:8]})")


@main.command("add-card")
@click.argument("name")
@click.option("--bank", default="Outro", show_default=True)
@click.option("--brand", default="Visa", show_default=True)
@click.option("--holder", default="")
@click.option("--last4", "last_four_digits", default="")
@click.option("--limit", "limit_amount", default="0")
@click.option("--payment-day", type=click.IntRange(1, 31), default=10, show_default=True)
@click.option("--closing-day", type=click.IntRange(1, 31), default=3, show_default=True)
@click.pass_context
def add_card(
    ctx: click.Context,
    name: str,
    bank: str,
    brand: str,
    holder: str,
    last_four_digits: str,
    limit_amount: str,
    payment_day: int,
    closing_day: int,
) -> None:
    """Create a credit card locally."""
    if last_four_digits and (len(last_four_digits) != 4 or not last_four_digits.isdigit()):
        raise click.BadParameter("--last4 must be four digits")
    repo = LocalRepository(get_db(ctx), EntityKind.CREDIT_CARD)
    card = repo.create(
        CreditCard(
            card_name=name,
            holder_name=holder,
            last_four_digits=last_four_digits,
            brand=brand,
            bank=bank,
            payment_day=payment_day,
            closing_day=closing_day,
            limit_amount=parse_amount(limit_amount, allow_zero=True),
            user_id=ctx.obj["config"].user_id,
        )
    )
    echo_success(f"Added card '{card.card_name}' ({card.local_id[:8]})")


@main.command("add-bill")
@click.argument("name")
@click.argument("amount")
@click.option("--due-day", type=click.IntRange(1, 31), default=1, show_default=True)
@click.option(
    "--category",
    type=click.Choice([c.value for c in FixedBillCategory]),
    default=FixedBillCategory.OTHER.value,
    show_default=True,
)
@click.option("--installments", type=click.IntRange(1), default=None)
@click.option("--notes", default=None)
@click.pass_context
def add_bill(
    ctx: click.Context,
    name: str,
    amount: str,
    due_day: int,
    category: str,
    installments: Optional[int],
    notes: Optional[str],
) -> None:
    """Create a fixed monthly bill locally."""
    repo = LocalRepository(get_db(ctx), EntityKind.FIXED_BILL)
    bill = repo.create(
        FixedBill(
            name=name,
            amount=parse_amount(amount),
            due_day=due_day,
            category=FixedBillCategory.parse(category),
            notes=notes,
            total_installments=installments,
            paid_installments=0 if installments else None,
            user_id=ctx.obj["config"].user_id,
        )
    )
    echo_success(f"Added bill '{bill.name}' due on day {bill.due_day} ({bill.local_id[:8]})")


@main.command("add-transaction")
@click.argument("description")
@click.argument("amount")
@click.option("--date", "date_str", default=None, help="YYYY-MM-DD (default today).")
@click.option("--income", is_flag=True, help="Record as income instead of expense.")
@click.option("--category", default=None, help="Category name or id.")
@click.option("--card", default=None, help="Credit card name or id.")
@click.option("--notes", default=None)
@click.pass_context
def add_transaction(
    ctx: click.Context,
    description: str,
    amount: str,
    date_str: Optional[str],
    income: bool,
    category: Optional[str],
    card: Optional[str],
    notes: Optional[str],
) -> None:
    """Create a transaction locally."""
    db = get_db(ctx)
    transaction = TransactionRepository(db).create(
        Transaction(
            description=description,
            amount=parse_amount(amount),
            date=parse_date(date_str),
            type=TransactionType.INCOME if income else TransactionType.EXPENSE,
            category_id=resolve_reference(db, EntityKind.CATEGORY, category),
            credit_card_id=resolve_reference(db, EntityKind.CREDIT_CARD, card),
            notes=notes,
            user_id=ctx.obj["config"].user_id,
        )
    )
    echo_success(
        f"Added {transaction.type.value} '{transaction.description}' "
        f"{transaction.amount:,.2f} ({transaction.local_id[:8]})"
    )


@main.command()
@click.argument("kind", type=click.Choice(KIND_CHOICES))
@click.argument("record_id")
@click.pass_context
def delete(ctx: click.Context, kind: str, record_id: str) -> None:
    """Delete a record by local id (or a unique id prefix)."""
    db = get_db(ctx)
    entity_kind = parse_kind(kind)
    matches = [
        r for r in db.get_visible_records(entity_kind) if r.local_id.startswith(record_id)
    ]
    if len(matches) != 1:
        echo_error(
            f"No {entity_kind.label} matches '{record_id}'"
            if not matches
            else f"'{record_id}' matches {len(matches)} records; use a longer id"
        )
        ctx.exit(1)

    record = matches[0]
    LocalRepository(db, entity_kind).delete(record)
    if record.sync_status == SyncStatus.PENDING_DELETE:
        echo_success(f"Marked '{record.display_name}' for deletion; run 'sync' to confirm")
    else:
        echo_success(f"Deleted '{record.display_name}'")


if __name__ == "__main__":
    main()

"""Shared CLI helpers for context management and service creation."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Optional

import click

from ..models import EntityKind, normalize_name

if TYPE_CHECKING:
    from click import Context

    from ..clients import RemoteClients
    from ..db.database import Database
    from ..services.sync import SyncOrchestrator

KIND_CHOICES = [kind.value for kind in EntityKind]


def parse_kind(value: str) -> EntityKind:
    return EntityKind(value)


def parse_amount(value: str, allow_zero: bool = False) -> Decimal:
    """Parse a money amount, accepting a decimal comma.

    Raises:
        click.BadParameter: If the value is not a positive number.
    """
    try:
        amount = Decimal(value.replace(",", "."))
    except InvalidOperation:
        raise click.BadParameter(f"'{value}' is not a valid amount") from None
    if not amount.is_finite() or amount < 0 or (amount == 0 and not allow_zero):
        raise click.BadParameter("amount must be positive")
    return amount


def parse_date(value: Optional[str]) -> date:
    """Parse YYYY-MM-DD, defaulting to today."""
    if not value:
        return date.today()
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise click.BadParameter(f"'{value}' is not a YYYY-MM-DD date") from None


def get_db(ctx: Context) -> Database:
    """Lazily open the local database.

    Args:
        ctx: Click context with config and mock flags.

    Returns:
        Database instance.
    """
    from ..db.database import Database

    if "db" not in ctx.obj:
        cfg = ctx.obj["config"]
        cfg.data_dir.mkdir(parents=True, exist_ok=True)
        # Use separate database for mock mode
        db_path = cfg.mock_db_path if ctx.obj.get("mock") else cfg.db_path
        db = Database(db_path)
        ctx.obj["db"] = db
        ctx.call_on_close(db.close)
    return ctx.obj["db"]


def get_remotes(ctx: Context) -> RemoteClients:
    """Lazily create the remote clients (mock server in --mock mode)."""
    from ..clients import ApiClient, MockRemoteService, build_remote_clients

    if "remotes" not in ctx.obj:
        cfg = ctx.obj["config"]
        if ctx.obj.get("mock"):
            service = MockRemoteService(state_path=cfg.mock_server_path)
            ctx.obj["mock_service"] = service
            ctx.obj["remotes"] = service.clients()
        else:
            ctx.obj["remotes"] = build_remote_clients(ApiClient(cfg.api))
    return ctx.obj["remotes"]


def get_orchestrator(ctx: Context) -> SyncOrchestrator:
    """Lazily create the sync orchestrator.

    In normal mode connectivity is probed against the API base URL; the mock
    server is always reachable.
    """
    from ..clients import ConnectivityMonitor
    from ..services.sync import SyncContext, SyncOrchestrator

    if "orchestrator" not in ctx.obj:
        cfg = ctx.obj["config"]
        if ctx.obj.get("mock"):
            connectivity = ConnectivityMonitor(connected=True)
        else:
            connectivity = ConnectivityMonitor(
                connected=False, probe_url=cfg.api.base_url, timeout=cfg.api.timeout
            )
            connectivity.refresh()
        context = SyncContext(
            db=get_db(ctx),
            remotes=get_remotes(ctx),
            connectivity=connectivity,
            config=cfg.sync,
        )
        ctx.obj["orchestrator"] = SyncOrchestrator(context)
    return ctx.obj["orchestrator"]


def resolve_reference(db: Database, kind: EntityKind, value: Optional[str]) -> Optional[str]:
    """Resolve a --category/--card option given as local id or name.

    Raises:
        click.BadParameter: If nothing matches.
    """
    if not value:
        return None
    if db.get_record(kind, value) is not None:
        return value
    wanted = normalize_name(value)
    for record in db.get_visible_records(kind):
        if normalize_name(record.display_name) == wanted:
            return record.local_id
    raise click.BadParameter(f"No {kind.label} named '{value}'")

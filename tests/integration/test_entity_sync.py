"""Integration tests for EntitySyncer.

Tests the pull-then-push engine against the in-memory mock server.
"""

import dataclasses
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from finance_sync.clients import (
    ApiError,
    RemoteRecord,
    TransportError,
    UnauthorizedError,
    ValidationError,
)
from finance_sync.models import (
    Category,
    CreditCard,
    EntityKind,
    FixedBill,
    SyncStatus,
    Transaction,
)
from finance_sync.services import CategoryRepository, EntitySyncer, LocalRepository

PAST = datetime(2020, 1, 1, tzinfo=timezone.utc)
FUTURE = datetime(2030, 1, 1, tzinfo=timezone.utc)

CATEGORY_VALUES = {
    "name": "Saúde",
    "color_hex": "#96CEB4",
    "icon_name": "heart.fill",
    "is_active": True,
}


class DelegatingClient:
    """Wraps a mock resource client so individual calls can misbehave."""

    def __init__(self, inner):
        self._inner = inner
        self.kind = inner.kind

    def list(self, params=None) -> list[RemoteRecord]:
        return self._inner.list(params)

    def get(self, server_id: str) -> RemoteRecord:
        return self._inner.get(server_id)

    def create(self, values: dict) -> RemoteRecord:
        return self._inner.create(values)

    def update(self, server_id: str, values: dict) -> RemoteRecord:
        return self._inner.update(server_id, values)

    def delete(self, server_id: str) -> None:
        self._inner.delete(server_id)


class FailingCreateClient(DelegatingClient):
    """Rejects the Nth create call with a validation error."""

    def __init__(self, inner, fail_on: int):
        super().__init__(inner)
        self.fail_on = fail_on
        self.create_calls = 0

    def create(self, values: dict) -> RemoteRecord:
        self.create_calls += 1
        if self.create_calls == self.fail_on:
            raise ValidationError("colorHex is invalid", 422)
        return super().create(values)


class LostResponseClient(DelegatingClient):
    """Server stores the record but the response never arrives."""

    def __init__(self, inner, lose: int = 1):
        super().__init__(inner)
        self.lose = lose

    def create(self, values: dict) -> RemoteRecord:
        created = super().create(values)
        if self.lose:
            self.lose -= 1
            raise TransportError("connection reset by peer")
        return created


class RacingClient(DelegatingClient):
    """Another device creates the same category just before our create."""

    def __init__(self, inner, service):
        super().__init__(inner)
        self.service = service
        self.raced: list[RemoteRecord] = []

    def create(self, values: dict) -> RemoteRecord:
        if not self.raced:
            self.raced.append(self.service.seed(self.kind, values))
        return super().create(values)


class AiCategorizingClient(DelegatingClient):
    """Server assigns a category and confidence to new transactions."""

    def __init__(self, inner, category_server_id: str):
        super().__init__(inner)
        self.category_server_id = category_server_id

    def create(self, values: dict) -> RemoteRecord:
        values = {
            **values,
            "category_id": values.get("category_id") or self.category_server_id,
            "ai_confidence": 0.92,
            "ai_justification": "Supermarket purchase",
            "needs_user_review": True,
        }
        return super().create(values)


class NullEchoClient(DelegatingClient):
    """Server that returns unset references as explicit nulls."""

    REFERENCES = ("category_id", "credit_card_id")

    def _with_nulls(self, record: RemoteRecord) -> RemoteRecord:
        for attr in self.REFERENCES:
            record.fields.setdefault(attr, None)
        return record

    def list(self, params=None) -> list[RemoteRecord]:
        listing = super().list(params)
        for record in listing:
            self._with_nulls(record)
        return listing

    def create(self, values: dict) -> RemoteRecord:
        return self._with_nulls(super().create(values))


def synced_category(name: str = "Moradia", server_id: str = "cat-x", **kwargs) -> Category:
    return Category(
        name=name,
        server_id=server_id,
        sync_status=SyncStatus.SYNCED,
        updated_at=PAST,
        **kwargs,
    )


class TestPull:
    """Tests for the pull phase."""

    def test_inserts_new_remote_records(self, syncer, database, mock_server):
        remote = mock_server.seed(EntityKind.CATEGORY, CATEGORY_VALUES)

        summary = syncer.sync(EntityKind.CATEGORY)

        assert summary.success
        assert summary.fetched == 1
        assert summary.inserted == 1
        local = database.get_record_by_server_id(EntityKind.CATEGORY, remote.server_id)
        assert local.name == "Saúde"
        assert local.sync_status == SyncStatus.SYNCED
        assert local.updated_at == remote.updated_at

    def test_overwrites_synced_local(self, syncer, database, mock_server):
        database.insert_record(synced_category(name="Old name"))
        mock_server.seed(EntityKind.CATEGORY, {**CATEGORY_VALUES, "name": "New"}, "cat-x")

        summary = syncer.sync(EntityKind.CATEGORY)

        assert summary.overwritten == 1
        local = database.get_record_by_server_id(EntityKind.CATEGORY, "cat-x")
        assert local.name == "New"
        assert local.sync_status == SyncStatus.SYNCED

    def test_pull_keeps_local_only_fields(self, syncer, database, mock_server):
        database.insert_record(synced_category(display_order=4))
        mock_server.seed(EntityKind.CATEGORY, {**CATEGORY_VALUES, "name": "Casa"}, "cat-x")

        syncer.sync(EntityKind.CATEGORY)

        local = database.get_record_by_server_id(EntityKind.CATEGORY, "cat-x")
        assert local.name == "Casa"
        assert local.display_order == 4

    def test_newer_pending_edit_survives_and_is_pushed(self, syncer, database, mock_server):
        local = synced_category(name="Local edit")
        local.sync_status = SyncStatus.PENDING
        local.updated_at = FUTURE
        database.insert_record(local)
        mock_server.seed(EntityKind.CATEGORY, {**CATEGORY_VALUES, "name": "Remote"}, "cat-x")

        summary = syncer.sync(EntityKind.CATEGORY)

        assert summary.kept_local == 1
        assert summary.updated == 1
        assert mock_server.payload(EntityKind.CATEGORY, "cat-x")["name"] == "Local edit"
        stored = database.get_record(EntityKind.CATEGORY, local.local_id)
        assert stored.sync_status == SyncStatus.SYNCED

    def test_newer_remote_discards_pending_edit(self, syncer, database, mock_server):
        local = synced_category(name="Stale edit")
        local.sync_status = SyncStatus.PENDING
        database.insert_record(local)
        mock_server.seed(
            EntityKind.CATEGORY,
            {**CATEGORY_VALUES, "name": "Remote wins"},
            "cat-x",
            updated_at=datetime(2025, 6, 1, tzinfo=timezone.utc),
        )

        summary = syncer.sync(EntityKind.CATEGORY)

        assert summary.overwritten == 1
        assert summary.updated == 0
        stored = database.get_record(EntityKind.CATEGORY, local.local_id)
        assert stored.name == "Remote wins"
        assert stored.sync_status == SyncStatus.SYNCED
        assert mock_server.write_calls == []

    def test_dedup_on_first_sync(self, syncer, database, mock_server):
        """A local default and a case/whitespace variant on the server merge."""
        local = Category(name="Alimentação", color_hex="#FF6B6B", icon_name="fork.knife")
        database.insert_record(local)
        remote = mock_server.seed(
            EntityKind.CATEGORY,
            {"name": "alimentação ", "color_hex": "#FF0000", "icon_name": "fork.knife"},
        )

        summary = syncer.sync(EntityKind.CATEGORY)

        assert summary.merged == 1
        assert summary.created == 0
        records = database.get_records(EntityKind.CATEGORY)
        assert len(records) == 1
        assert records[0].local_id == local.local_id
        assert records[0].server_id == remote.server_id
        assert records[0].sync_status == SyncStatus.SYNCED
        assert mock_server.count(EntityKind.CATEGORY) == 1

    def test_each_local_duplicate_is_adopted_once(self, syncer, database, mock_server):
        database.insert_record(Category(name="Lazer"))
        mock_server.seed(EntityKind.CATEGORY, {**CATEGORY_VALUES, "name": "Lazer"}, "cat-a")
        mock_server.seed(EntityKind.CATEGORY, {**CATEGORY_VALUES, "name": "LAZER"}, "cat-b")

        summary = syncer.sync(EntityKind.CATEGORY)

        assert summary.merged == 1
        assert summary.inserted == 1
        assert database.count_records(EntityKind.CATEGORY) == 2

    def test_remote_deletion_propagates(self, syncer, database, mock_server):
        """A synced record whose id vanished remotely is removed locally."""
        local = synced_category(server_id="X")
        database.insert_record(local)

        summary = syncer.sync(EntityKind.CATEGORY)

        assert summary.removed == 1
        assert database.get_record(EntityKind.CATEGORY, local.local_id) is None

    def test_pending_record_is_not_removed_by_remote_deletion(
        self, syncer, database, mock_server
    ):
        local = synced_category(server_id="gone")
        local.sync_status = SyncStatus.PENDING
        database.insert_record(local)

        summary = syncer.sync(EntityKind.CATEGORY)

        assert summary.removed == 0
        assert summary.created == 1
        stored = database.get_record(EntityKind.CATEGORY, local.local_id)
        assert stored.server_id != "gone"
        assert stored.sync_status == SyncStatus.SYNCED

    def test_synced_without_server_id_is_demoted_and_pushed(self, syncer, database, mock_server):
        broken = Category(name="Compras", sync_status=SyncStatus.SYNCED)
        database.insert_record(broken)

        summary = syncer.sync(EntityKind.CATEGORY)

        assert summary.demoted == 1
        assert summary.created == 1
        assert database.get_record(EntityKind.CATEGORY, broken.local_id).server_id is not None

    def test_fetch_failure_aborts_only_this_pass(self, syncer, database, mock_server):
        database.insert_record(Category(name="Lazer"))
        mock_server.fail_next(EntityKind.CATEGORY, "list")

        summary = syncer.sync(EntityKind.CATEGORY)

        assert summary.aborted
        assert not summary.success
        assert mock_server.write_calls == []

    def test_undecodable_remote_record_is_skipped(self, syncer, database, mock_server):
        """A broken remote record neither aborts the pass nor deletes its local twin."""
        mock_server.seed(EntityKind.CATEGORY, CATEGORY_VALUES)
        mock_server.seed_raw(
            EntityKind.CATEGORY,
            {"id": "cat-bad", "name": None, "updatedAt": "2025-02-01T10:00:00Z"},
        )
        twin = synced_category(name="Antiga", server_id="cat-bad")
        database.insert_record(twin)
        pending = Category(name="Lazer")
        database.insert_record(pending)

        summary = syncer.sync(EntityKind.CATEGORY)

        assert not summary.aborted
        assert not summary.success
        assert summary.errors == [
            "Skipped remote category cat-bad: category cat-bad missing name"
        ]
        assert summary.fetched == 1
        assert summary.inserted == 1
        assert summary.removed == 0
        assert summary.created == 1
        assert database.get_record(EntityKind.CATEGORY, twin.local_id).name == "Antiga"
        stored = database.get_record(EntityKind.CATEGORY, pending.local_id)
        assert stored.sync_status == SyncStatus.SYNCED

    def test_unauthorized_fetch_raises(self, syncer, mock_server):
        mock_server.fail_next(EntityKind.CATEGORY, "list", UnauthorizedError("expired", 401))

        with pytest.raises(UnauthorizedError):
            syncer.sync(EntityKind.CATEGORY)

    def test_pulled_references_become_local_ids(self, syncer, database, mock_server):
        category = mock_server.seed(EntityKind.CATEGORY, CATEGORY_VALUES)
        mock_server.seed(
            EntityKind.TRANSACTION,
            {
                "description": "Consulta",
                "amount": Decimal("250"),
                "date": date(2025, 2, 3),
                "category_id": category.server_id,
            },
        )

        syncer.sync(EntityKind.CATEGORY)
        syncer.sync(EntityKind.TRANSACTION)

        local_category = database.get_record_by_server_id(EntityKind.CATEGORY, category.server_id)
        (txn,) = database.get_records(EntityKind.TRANSACTION)
        assert txn.category_id == local_category.local_id
        assert txn.amount == Decimal("250")

    def test_unresolved_reference_keeps_raw_server_id(self, syncer, database, mock_server):
        mock_server.seed(
            EntityKind.TRANSACTION,
            {"description": "Táxi", "amount": Decimal("30"), "category_id": "cat-999"},
        )

        syncer.sync(EntityKind.TRANSACTION)

        (txn,) = database.get_records(EntityKind.TRANSACTION)
        assert txn.category_id == "cat-999"


class TestPush:
    """Tests for the push phase."""

    def test_creates_pending_records(self, syncer, database, mock_server, sample_category):
        database.insert_record(sample_category)

        summary = syncer.sync(EntityKind.CATEGORY)

        assert summary.created == 1
        stored = database.get_record(EntityKind.CATEGORY, sample_category.local_id)
        assert stored.sync_status == SyncStatus.SYNCED
        assert stored.server_id is not None
        assert stored.sync_error is None
        payload = mock_server.payload(EntityKind.CATEGORY, stored.server_id)
        assert payload["name"] == "Alimentação"
        assert payload["colorHex"] == "#FF6B6B"
        assert stored.updated_at.isoformat() == payload["updatedAt"]

    def test_update_sends_full_field_set(self, syncer, database, mock_server):
        remote = mock_server.seed(EntityKind.CATEGORY, CATEGORY_VALUES)
        syncer.sync(EntityKind.CATEGORY)
        local = database.get_record_by_server_id(EntityKind.CATEGORY, remote.server_id)

        local.color_hex = "#000000"
        local.mark_modified()
        database.save_record(local)
        summary = syncer.sync(EntityKind.CATEGORY)

        assert summary.updated == 1
        payload = mock_server.payload(EntityKind.CATEGORY, remote.server_id)
        assert payload["colorHex"] == "#000000"
        assert payload["name"] == "Saúde"
        assert payload["iconName"] == "heart.fill"

    def test_money_and_dates_on_the_wire(self, syncer, database, mock_server):
        database.insert_record(
            FixedBill(name="Internet", amount=Decimal("99.90"), due_day=12)
        )
        database.insert_record(
            Transaction(description="Cinema", amount=Decimal("42.50"), date=date(2025, 2, 7))
        )

        syncer.sync(EntityKind.FIXED_BILL)
        syncer.sync(EntityKind.TRANSACTION)

        (bill,) = mock_server.records(EntityKind.FIXED_BILL)
        assert mock_server.payload(EntityKind.FIXED_BILL, bill.server_id)["amount"] == 99.9
        (txn,) = mock_server.records(EntityKind.TRANSACTION)
        payload = mock_server.payload(EntityKind.TRANSACTION, txn.server_id)
        assert payload["date"] == "2025-02-07"
        assert payload["amount"] == 42.5
        assert payload["type"] == "expense"

    def test_delete_before_sync_makes_no_network_calls(self, database, mock_server):
        repo = CategoryRepository(database)
        category = repo.create(Category(name="Temporária"))

        assert repo.delete(category) is True

        assert database.get_record(EntityKind.CATEGORY, category.local_id) is None
        assert mock_server.calls == []

    def test_synced_delete_waits_for_remote_confirmation(self, syncer, database, mock_server):
        remote = mock_server.seed(EntityKind.CATEGORY, CATEGORY_VALUES)
        syncer.sync(EntityKind.CATEGORY)
        repo = CategoryRepository(database)
        local = repo.get_by_server_id(remote.server_id)

        repo.delete(local)

        tombstone = database.get_record(EntityKind.CATEGORY, local.local_id)
        assert tombstone.sync_status == SyncStatus.PENDING_DELETE
        assert repo.get(local.local_id) is None
        assert mock_server.count(EntityKind.CATEGORY) == 1

        summary = syncer.sync(EntityKind.CATEGORY)

        assert summary.deleted == 1
        assert database.get_record(EntityKind.CATEGORY, local.local_id) is None
        assert mock_server.count(EntityKind.CATEGORY) == 0

    def test_failed_remote_delete_keeps_tombstone(self, syncer, database, mock_server):
        remote = mock_server.seed(EntityKind.CATEGORY, CATEGORY_VALUES)
        syncer.sync(EntityKind.CATEGORY)
        local = database.get_record_by_server_id(EntityKind.CATEGORY, remote.server_id)
        CategoryRepository(database).delete(local)
        mock_server.fail_next(EntityKind.CATEGORY, "delete", ApiError("Service unavailable", 503))

        summary = syncer.sync(EntityKind.CATEGORY)

        assert summary.failed == 1
        stored = database.get_record(EntityKind.CATEGORY, local.local_id)
        assert stored.sync_status == SyncStatus.PENDING_DELETE
        assert "503" in stored.sync_error

    def test_delete_of_missing_remote_counts_as_success(self, syncer, database, mock_server):
        tombstone = synced_category(server_id="cat-gone")
        tombstone.sync_status = SyncStatus.PENDING_DELETE
        database.insert_record(tombstone)

        summary = syncer.sync(EntityKind.CATEGORY)

        assert summary.deleted == 1
        assert summary.failed == 0
        assert database.get_record(EntityKind.CATEGORY, tombstone.local_id) is None

    def test_partial_failure_isolation(self, database, remotes):
        """The second of three pushes fails; the first and third still sync."""
        flaky = FailingCreateClient(remotes.categories, fail_on=2)
        syncer = EntitySyncer(database, dataclasses.replace(remotes, categories=flaky))
        first, second, third = Category(name="A"), Category(name="B"), Category(name="C")
        for category in (first, second, third):
            database.insert_record(category)

        summary = syncer.sync(EntityKind.CATEGORY)

        assert summary.created == 2
        assert summary.failed == 1
        assert not summary.success
        statuses = {
            c.name: database.get_record(EntityKind.CATEGORY, c.local_id)
            for c in (first, second, third)
        }
        assert statuses["A"].sync_status == SyncStatus.SYNCED
        assert statuses["C"].sync_status == SyncStatus.SYNCED
        assert statuses["B"].sync_status == SyncStatus.PENDING
        assert statuses["B"].server_id is None
        assert "colorHex is invalid" in statuses["B"].sync_error
        assert statuses["B"].last_sync_attempt is not None

    def test_convergence_under_flaky_creates(self, database, mock_server, remotes):
        """Intermittent failures and a lost response still end with one remote record."""
        lossy = LostResponseClient(remotes.categories, lose=1)
        syncer = EntitySyncer(database, dataclasses.replace(remotes, categories=lossy))
        category = Category(name="Educação")
        database.insert_record(category)
        mock_server.fail_next(EntityKind.CATEGORY, "create", times=2)

        for _ in range(5):
            syncer.sync(EntityKind.CATEGORY)
            stored = database.get_record(EntityKind.CATEGORY, category.local_id)
            if stored.sync_status == SyncStatus.SYNCED:
                break

        assert stored.sync_status == SyncStatus.SYNCED
        assert stored.server_id is not None
        assert mock_server.count(EntityKind.CATEGORY) == 1
        assert database.count_records(EntityKind.CATEGORY) == 1

    def test_conflict_on_create_adopts_existing_remote(self, database, mock_server, remotes):
        racing = RacingClient(remotes.categories, mock_server)
        syncer = EntitySyncer(database, dataclasses.replace(remotes, categories=racing))
        category = Category(name="Viagens")
        database.insert_record(category)

        summary = syncer.sync(EntityKind.CATEGORY)

        assert summary.adopted == 1
        assert summary.failed == 0
        stored = database.get_record(EntityKind.CATEGORY, category.local_id)
        assert stored.server_id == racing.raced[0].server_id
        assert stored.sync_status == SyncStatus.SYNCED
        assert mock_server.count(EntityKind.CATEGORY) == 1

    def test_conflict_with_other_local_record_is_an_error(self, database, mock_server, remotes):
        racing = RacingClient(remotes.categories, mock_server)
        syncer = EntitySyncer(database, dataclasses.replace(remotes, categories=racing))
        category = Category(name="Viagens")
        database.insert_record(category)
        syncer.sync(EntityKind.CATEGORY)
        twin = Category(name="viagens")
        database.insert_record(twin)

        summary = syncer.sync(EntityKind.CATEGORY)

        assert summary.failed == 1
        stored = database.get_record(EntityKind.CATEGORY, twin.local_id)
        assert stored.sync_status == SyncStatus.PENDING
        assert "duplicates local record" in stored.sync_error

    def test_validation_error_is_stored_on_record(self, syncer, database, mock_server):
        card = CreditCard(card_name="Inter")
        database.insert_record(card)
        mock_server.fail_next(
            EntityKind.CREDIT_CARD, "create", ValidationError("lastFourDigits required", 422)
        )

        summary = syncer.sync(EntityKind.CREDIT_CARD)

        assert summary.failed == 1
        stored = database.get_record(EntityKind.CREDIT_CARD, card.local_id)
        assert stored.sync_error == "HTTP 422: lastFourDigits required"
        assert stored.sync_status == SyncStatus.PENDING

    def test_unauthorized_push_raises(self, syncer, database, mock_server):
        database.insert_record(Category(name="Lazer"))
        mock_server.fail_next(EntityKind.CATEGORY, "create", UnauthorizedError("expired", 401))

        with pytest.raises(UnauthorizedError):
            syncer.sync(EntityKind.CATEGORY)


class TestTransactionReferences:
    """Tests for foreign keys on pushed transactions."""

    def test_unsynced_reference_is_sent_empty(self, syncer, database, mock_server):
        category = Category(name="Pets")
        database.insert_record(category)
        txn = Transaction(
            description="Ração", amount=Decimal("89.90"), category_id=category.local_id
        )
        database.insert_record(txn)

        summary = syncer.sync(EntityKind.TRANSACTION)

        assert summary.created == 1
        stored = database.get_record(EntityKind.TRANSACTION, txn.local_id)
        assert "categoryId" not in mock_server.payload(EntityKind.TRANSACTION, stored.server_id)
        assert stored.category_id == category.local_id

    def test_pending_reference_survives_update_pushed_empty(self, syncer, database, mock_server):
        txn = Transaction(description="Veterinário", amount=Decimal("180"), date=date(2025, 2, 4))
        database.insert_record(txn)
        syncer.sync(EntityKind.TRANSACTION)
        category = LocalRepository(database, EntityKind.CATEGORY).create(Category(name="Pets"))
        transactions = LocalRepository(database, EntityKind.TRANSACTION)
        edited = transactions.get(txn.local_id)
        edited.category_id = category.local_id
        transactions.update(edited)
        mock_server.fail_next(
            EntityKind.CATEGORY, "create", ValidationError("name is invalid", 422), times=2
        )

        for _ in range(2):
            syncer.sync(EntityKind.CATEGORY)
            syncer.sync(EntityKind.TRANSACTION)

        stored = database.get_record(EntityKind.TRANSACTION, txn.local_id)
        assert mock_server.payload(EntityKind.TRANSACTION, stored.server_id)["categoryId"] is None
        assert stored.category_id == category.local_id
        assert stored.sync_status == SyncStatus.SYNCED

    def test_pending_reference_survives_server_null(self, database, remotes):
        echoing = NullEchoClient(remotes.transactions)
        syncer = EntitySyncer(database, dataclasses.replace(remotes, transactions=echoing))
        category = Category(name="Pets")
        database.insert_record(category)
        txn = Transaction(
            description="Ração", amount=Decimal("89.90"), category_id=category.local_id
        )
        database.insert_record(txn)

        syncer.sync(EntityKind.TRANSACTION)
        summary = syncer.sync(EntityKind.TRANSACTION)

        assert summary.success
        stored = database.get_record(EntityKind.TRANSACTION, txn.local_id)
        assert stored.category_id == category.local_id
        assert stored.sync_status == SyncStatus.SYNCED

    def test_server_null_clears_synced_reference(self, syncer, database, mock_server):
        remote_category = mock_server.seed(EntityKind.CATEGORY, CATEGORY_VALUES)
        syncer.sync(EntityKind.CATEGORY)
        local_category = database.get_record_by_server_id(
            EntityKind.CATEGORY, remote_category.server_id
        )
        txn = Transaction(
            description="Farmácia", amount=Decimal("42"), category_id=local_category.local_id
        )
        database.insert_record(txn)
        syncer.sync(EntityKind.TRANSACTION)
        server_id = database.get_record(EntityKind.TRANSACTION, txn.local_id).server_id
        mock_server.edit(EntityKind.TRANSACTION, server_id, {"category_id": None})

        syncer.sync(EntityKind.TRANSACTION)

        assert database.get_record(EntityKind.TRANSACTION, txn.local_id).category_id is None

    def test_card_reference_is_translated(self, syncer, database, mock_server, sample_card):
        database.insert_record(sample_card)
        syncer.sync(EntityKind.CREDIT_CARD)
        card = database.get_record(EntityKind.CREDIT_CARD, sample_card.local_id)
        txn = Transaction(
            description="Posto Shell", amount=Decimal("200"), credit_card_id=card.local_id
        )
        database.insert_record(txn)

        syncer.sync(EntityKind.TRANSACTION)

        stored = database.get_record(EntityKind.TRANSACTION, txn.local_id)
        payload = mock_server.payload(EntityKind.TRANSACTION, stored.server_id)
        assert payload["creditCardId"] == card.server_id
        assert stored.credit_card_id == card.local_id

    def test_server_assigned_category_is_absorbed(self, database, mock_server, remotes):
        remote_category = mock_server.seed(EntityKind.CATEGORY, CATEGORY_VALUES)
        categorizing = AiCategorizingClient(remotes.transactions, remote_category.server_id)
        syncer = EntitySyncer(database, dataclasses.replace(remotes, transactions=categorizing))
        syncer.sync(EntityKind.CATEGORY)
        txn = Transaction(description="Drogaria", amount=Decimal("35"))
        database.insert_record(txn)

        syncer.sync(EntityKind.TRANSACTION)

        stored = database.get_record(EntityKind.TRANSACTION, txn.local_id)
        local_category = database.get_record_by_server_id(
            EntityKind.CATEGORY, remote_category.server_id
        )
        assert stored.category_id == local_category.local_id
        assert stored.ai_confidence == pytest.approx(0.92)
        assert stored.ai_justification == "Supermarket purchase"
        assert stored.needs_user_review is True

    def test_transactions_dedup_on_description_amount_and_date(
        self, syncer, database, mock_server
    ):
        """Dedup requires the same date as well as description and amount.

        Matching on description and amount alone would merge a recurring
        charge made on another day into this one.
        """
        database.insert_record(
            Transaction(description="Uber", amount=Decimal("18.40"), date=date(2025, 2, 2))
        )
        mock_server.seed(
            EntityKind.TRANSACTION,
            {"description": "uber", "amount": Decimal("18.4"), "date": date(2025, 2, 2)},
        )
        mock_server.seed(
            EntityKind.TRANSACTION,
            {"description": "Uber", "amount": Decimal("18.40"), "date": date(2025, 2, 9)},
        )

        summary = syncer.sync(EntityKind.TRANSACTION)

        assert summary.merged == 1
        assert summary.inserted == 1
        assert summary.created == 0
        assert database.count_records(EntityKind.TRANSACTION) == 2


class TestRepositoryIntegration:
    """Local-first writes followed by a sync."""

    def test_update_after_sync_is_pushed(self, syncer, database, mock_server):
        repo = LocalRepository(database, EntityKind.FIXED_BILL)
        bill = repo.create(FixedBill(name="Academia", amount=Decimal("120"), due_day=10))
        syncer.sync(EntityKind.FIXED_BILL)

        bill = repo.get(bill.local_id)
        bill.amount = Decimal("135")
        repo.update(bill)
        summary = syncer.sync(EntityKind.FIXED_BILL)

        assert summary.updated == 1
        assert mock_server.payload(EntityKind.FIXED_BILL, bill.server_id)["amount"] == 135.0

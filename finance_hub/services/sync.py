"""Sync reconciler - local-first writes and reconciliation with the remote backend"""

import asyncio
import logging
import time
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Awaitable, Callable, List, Optional, Set, Tuple, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from finance_hub.config import settings
from finance_hub.domain.exceptions import (
    InvalidRecordError,
    MissingRemoteIdError,
    RecordNotFoundError,
    RemoteSyncError,
    SyncInProgressError,
)
from finance_hub.domain.models import (
    Budget,
    Record,
    RecordKind,
    Result,
    SyncReport,
    SyncState,
    SyncStatus,
    Transaction,
)
from finance_hub.infrastructure.clients.remote import RemoteClient, kind_of, parse_record, to_payload
from finance_hub.infrastructure.database.repositories import BudgetRepository, TransactionRepository
from finance_hub.infrastructure.observability.logging import log_sync_outcome
from finance_hub.infrastructure.observability.metrics import (
    record_sync_run,
    records_reconciled_counter,
    sync_run_counter,
)
from finance_hub.services.budgets import BudgetEngine

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], Session]
Listener = Callable[[SyncState], None]
Repository = Union[TransactionRepository, BudgetRepository]

NOUNS = {RecordKind.TRANSACTION: "transaction", RecordKind.BUDGET: "budget"}


@dataclass
class _Page:
    records: List[Record]
    size: int  # raw rows returned, valid or not
    remote_ids: Set[str]
    rejected: int


@dataclass
class _Listing:
    records: List[Record] = field(default_factory=list)
    remote_ids: Set[str] = field(default_factory=set)
    rejected: int = 0


class SyncReconciler:
    """
    Single writer between the local store and the remote backend.

    Every remote primitive returns a Result instead of raising. Composite
    strategies are serialized by a guard; a second request while one is
    running is rejected with SyncInProgressError. Local-first writes and
    composite strategies also share a writer lock, so a write waits for a
    running sync (and a sync for an in-flight push) instead of interleaving
    with it. State changes are published as SyncState snapshots to
    subscribed listeners.
    """

    def __init__(
        self,
        session_factory: SessionFactory,
        remote: RemoteClient,
        page_size: Optional[int] = None,
        enabled: Optional[bool] = None,
        now: Callable[[], datetime] = datetime.now,
    ):
        self.session_factory = session_factory
        self.remote = remote
        self.page_size = page_size or settings.sync_page_size
        self.now = now
        self._state = SyncState(enabled=settings.sync_enabled if enabled is None else enabled)
        self._state = replace(self._state, status="Sync enabled" if self._state.enabled else "Sync disabled")
        self._listeners: List[Listener] = []
        self._guard = asyncio.Lock()
        # Held for a whole write (local change plus push) or a whole composite sync
        self._writer = asyncio.Lock()

    # State channel

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def is_enabled(self) -> bool:
        return self._state.enabled

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register for state snapshots; returns an unsubscribe callable"""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def clear_errors(self) -> None:
        self._publish(last_error=None, connection_error=None)

    def enable_sync(self) -> None:
        self._publish(enabled=True, status="Sync enabled")

    def disable_sync(self) -> None:
        self._publish(enabled=False, status="Sync disabled")

    def _publish(self, **changes) -> None:
        self._state = replace(self._state, **changes)
        for listener in list(self._listeners):
            try:
                listener(self._state)
            except Exception:
                logger.exception("Sync state listener failed")

    # Remote primitives: one remote call each, never raise

    async def create_remote(self, record: Record) -> Result[Record]:
        """Create remotely; on success the returned copy carries remote id, SYNCED and timestamp"""
        kind = kind_of(record)
        try:
            remote_id = await self.remote.create(kind, to_payload(record))
        except RemoteSyncError as e:
            logger.warning(f"Failed to create {NOUNS[kind]} remotely: {e}", extra={"local_id": record.id})
            return Result.fail(e)
        return Result.ok(
            replace(record, remote_id=remote_id, sync_status=SyncStatus.SYNCED, last_synced_at=self.now())
        )

    async def update_remote(self, record: Record) -> Result[Record]:
        kind = kind_of(record)
        if not record.remote_id:
            return Result.fail(MissingRemoteIdError(f"{NOUNS[kind].capitalize()} {record.id} has no remote id"))
        try:
            await self.remote.update(kind, record.remote_id, to_payload(record))
        except RemoteSyncError as e:
            logger.warning(f"Failed to update {NOUNS[kind]} remotely: {e}", extra={"remote_id": record.remote_id})
            return Result.fail(e)
        return Result.ok(replace(record, sync_status=SyncStatus.SYNCED, last_synced_at=self.now()))

    async def delete_remote(self, record: Record) -> Result[bool]:
        kind = kind_of(record)
        if not record.remote_id:
            return Result.fail(MissingRemoteIdError(f"{NOUNS[kind].capitalize()} {record.id} has no remote id"))
        try:
            await self.remote.delete(kind, record.remote_id)
        except RemoteSyncError as e:
            logger.warning(f"Failed to delete {NOUNS[kind]} remotely: {e}", extra={"remote_id": record.remote_id})
            return Result.fail(e)
        return Result.ok(True)

    async def fetch_page(self, kind: RecordKind, offset: int = 0, limit: Optional[int] = None) -> Result[List[Record]]:
        """One page of remote records; malformed rows are skipped"""
        try:
            page = await self._fetch_page(kind, offset, limit or self.page_size)
        except RemoteSyncError as e:
            return Result.fail(e)
        return Result.ok(page.records)

    async def fetch_all_incrementally(self, kind: RecordKind) -> Result[List[Record]]:
        """Every remote record of a kind; any page failure discards the whole fetch"""
        try:
            listing = await self._fetch_all(kind)
        except RemoteSyncError as e:
            return Result.fail(e)
        return Result.ok(listing.records)

    async def _fetch_page(self, kind: RecordKind, offset: int, limit: int) -> _Page:
        rows = await self.remote.list_page(kind, offset, limit)
        records, remote_ids, rejected = [], set(), 0
        for row in rows:
            if row.get("id") not in (None, ""):
                remote_ids.add(str(row["id"]))
            try:
                records.append(parse_record(kind, row))
            except InvalidRecordError as e:
                rejected += 1
                logger.warning(f"Skipping malformed remote {NOUNS[kind]}: {e}")
        return _Page(records=records, size=len(rows), remote_ids=remote_ids, rejected=rejected)

    async def _fetch_all(self, kind: RecordKind) -> _Listing:
        # Pages are fetched strictly in sequence: a short page ends the listing
        listing = _Listing()
        offset = 0
        while True:
            batch = offset // self.page_size + 1
            self._publish(status=f"Fetching {kind.value} batch {batch}...")
            page = await self._fetch_page(kind, offset, self.page_size)
            listing.records.extend(page.records)
            listing.remote_ids |= page.remote_ids
            listing.rejected += page.rejected
            logger.debug(f"Fetched {page.size} {kind.value} in batch {batch}")
            if page.size < self.page_size:
                return listing
            offset += self.page_size

    # Local-first writes

    async def add_transaction(self, transaction: Transaction) -> Transaction:
        async with self._writer:
            return await self._add(transaction)

    async def edit_transaction(self, transaction: Transaction) -> Transaction:
        async with self._writer:
            return await self._edit(transaction)

    async def remove_transaction(self, transaction_id: int) -> Result[bool]:
        async with self._writer:
            return await self._remove(RecordKind.TRANSACTION, transaction_id)

    async def add_budget(self, budget: Budget) -> Budget:
        async with self._writer:
            return await self._add(budget)

    async def edit_budget(self, budget: Budget) -> Budget:
        async with self._writer:
            return await self._edit(budget)

    async def remove_budget(self, budget_id: int) -> Result[bool]:
        async with self._writer:
            return await self._remove(RecordKind.BUDGET, budget_id)

    async def _add(self, record: Record) -> Record:
        """Persist locally, then push when sync is enabled"""
        enabled = self.is_enabled
        record = replace(
            record,
            id=None,
            remote_id=None,
            sync_status=SyncStatus.SYNC_PENDING if enabled else SyncStatus.LOCAL,
            last_synced_at=None,
        )
        with self.session_factory() as session:
            record = replace(record, id=_repository(session, kind_of(record)).insert(record))
        if not enabled:
            return record
        return await self._push(record)

    async def _edit(self, record: Record) -> Record:
        enabled = self.is_enabled
        kind = kind_of(record)
        with self.session_factory() as session:
            repo = _repository(session, kind)
            current = repo.get_by_id(record.id) if record.id is not None else None
            if current is None:
                raise RecordNotFoundError(f"{NOUNS[kind].capitalize()} {record.id} not found")
            # Sync bookkeeping stays owned by the reconciler
            dirty = SyncStatus.SYNC_PENDING if (enabled or current.remote_id) else SyncStatus.LOCAL
            record = replace(
                record, remote_id=current.remote_id, sync_status=dirty, last_synced_at=current.last_synced_at
            )
            repo.update(record)
        if not enabled:
            return record
        return await self._push(record)

    async def _remove(self, kind: RecordKind, local_id: int) -> Result[bool]:
        """
        Delete locally, then remotely when the record was synced.

        Returns:
            ok(True) when deleted remotely too, ok(False) when only local,
            failure when the remote delete failed (local delete still stands)
        """
        noun = NOUNS[kind]
        with self.session_factory() as session:
            repo = _repository(session, kind)
            record = repo.get_by_id(local_id)
            if record is None:
                raise RecordNotFoundError(f"{noun.capitalize()} {local_id} not found")
            repo.delete(local_id)

        if not (self.is_enabled and record.remote_id):
            return Result.ok(False)

        self._publish(status=f"Deleting {noun}...")
        result = await self.delete_remote(record)
        if result.success:
            self._publish(status=f"{noun.capitalize()} deleted successfully", last_sync_at=self.now())
        else:
            self._publish(status=f"Failed to delete {noun}", last_error=result.message)
        return result

    async def _push(self, record: Record) -> Record:
        """Create or update remotely and persist the resulting sync state"""
        noun = NOUNS[kind_of(record)]
        creating = record.remote_id is None
        self._publish(status=f"{'Creating' if creating else 'Updating'} {noun}...")

        result = await (self.create_remote(record) if creating else self.update_remote(record))
        if result.success:
            pushed = result.value
            self._publish(
                status=f"{noun.capitalize()} {'created' if creating else 'updated'} successfully",
                last_sync_at=self.now(),
            )
        else:
            pushed = replace(record, sync_status=SyncStatus.SYNC_FAILED)
            self._publish(status=f"Failed to {'create' if creating else 'update'} {noun}", last_error=result.message)

        with self.session_factory() as session:
            _repository(session, kind_of(record)).update(pushed)
        return pushed

    async def check_connection(self) -> Result[str]:
        self._publish(status="Testing connection...", connection_error=None)
        try:
            await self.remote.health()
        except RemoteSyncError as e:
            self._publish(status="Connection failed", is_connected=False, connection_error=str(e))
            return Result.fail(e)
        self._publish(status="Connection successful", is_connected=True, connection_error=None)
        return Result.ok("Connection successful")

    # Composite strategies

    async def full_sync(self) -> Result[SyncReport]:
        return await self._guarded("full", self._full_sync)

    async def incremental_sync(self) -> Result[SyncReport]:
        return await self._guarded("incremental", self._incremental_sync)

    async def clean_sync(self) -> Result[SyncReport]:
        return await self._guarded("clean", self._clean_sync)

    async def retry_failed_sync(self) -> Result[SyncReport]:
        return await self._guarded("retry", self._retry_failed_sync)

    async def smart_sync(self) -> Result[SyncReport]:
        return await self._guarded("smart", self._smart_sync)

    async def _guarded(self, strategy: str, run: Callable[[], Awaitable[Result[SyncReport]]]) -> Result[SyncReport]:
        if self._guard.locked():
            sync_run_counter.labels(strategy=strategy, outcome="rejected").inc()
            return Result.fail(SyncInProgressError("A sync is already in progress"))

        async with self._guard, self._writer:
            start_time = time.time()
            self._publish(is_loading=True, last_error=None)
            try:
                result = await run()
            except Exception as e:
                logger.exception(f"{strategy.capitalize()} sync failed")
                self._publish(status=f"{strategy.capitalize()} sync failed: {e}")
                result = Result.fail(e)

            if result.success:
                self._publish(is_loading=False, last_sync_at=self.now())
            else:
                self._publish(is_loading=False, last_error=result.message)

            duration_ms = (time.time() - start_time) * 1000
            record_sync_run(strategy, result.success)
            message = result.value.message if result.success else result.message
            log_sync_outcome(strategy, result.success, message, duration_ms)
            return result

    async def _full_sync(self) -> Result[SyncReport]:
        """Fetch and upsert every remote transaction and budget; deletes nothing"""
        report = SyncReport(strategy="full")
        self._publish(status="Starting full sync...")

        self._publish(status="Syncing transactions incrementally...")
        try:
            transactions = await self._fetch_all(RecordKind.TRANSACTION)
        except RemoteSyncError as e:
            self._publish(status="Full sync failed: Error fetching transactions")
            return Result.fail(e)

        self._publish(status="Syncing budgets incrementally...")
        try:
            budgets = await self._fetch_all(RecordKind.BUDGET)
        except RemoteSyncError as e:
            self._publish(status="Full sync failed: Error fetching budgets")
            return Result.fail(e)

        self._publish(status="Finalizing sync...")
        self._ingest(RecordKind.TRANSACTION, transactions, report)
        self._ingest(RecordKind.BUDGET, budgets, report)

        report.transactions_fetched = len(transactions.records)
        report.budgets_fetched = len(budgets.records)
        report.message = (
            f"Full sync completed: {report.transactions_fetched} transactions, {report.budgets_fetched} budgets"
        )
        self._publish(
            status=(
                f"Full sync completed successfully "
                f"({report.transactions_fetched} transactions, {report.budgets_fetched} budgets)"
            )
        )
        return Result.ok(report)

    async def _incremental_sync(self) -> Result[SyncReport]:
        """Upsert only the newest page of each kind"""
        report = SyncReport(strategy="incremental")
        errors: List[Tuple[RecordKind, Exception]] = []
        self._publish(status="Starting incremental sync...")

        for kind in (RecordKind.TRANSACTION, RecordKind.BUDGET):
            self._publish(status=f"Fetching recent {kind.value}...")
            try:
                page = await self._fetch_page(kind, 0, self.page_size)
            except RemoteSyncError as e:
                logger.warning(f"Incremental sync could not fetch {kind.value}: {e}")
                errors.append((kind, e))
                continue
            listing = _Listing(records=page.records, remote_ids=page.remote_ids, rejected=page.rejected)
            self._ingest(kind, listing, report)
            if kind == RecordKind.TRANSACTION:
                report.transactions_fetched = len(page.records)
            else:
                report.budgets_fetched = len(page.records)

        if errors:
            failed_kinds = ", ".join(kind.value for kind, _ in errors)
            self._publish(status=f"Incremental sync failed: Error fetching {failed_kinds}")
            return Result.fail(errors[0][1])

        report.message = (
            f"Incremental sync completed: {report.transactions_fetched} transactions, "
            f"{report.budgets_fetched} budgets"
        )
        self._publish(
            status=(
                f"Incremental sync completed "
                f"({report.transactions_fetched} transactions, {report.budgets_fetched} budgets)"
            )
        )
        return Result.ok(report)

    async def _clean_sync(self) -> Result[SyncReport]:
        """Delete local SYNCED records whose remote id is no longer listed remotely"""
        report = SyncReport(strategy="clean")
        self._publish(status="Starting clean sync...")

        self._publish(status="Fetching all remote data...")
        try:
            remote_transactions = await self._fetch_all(RecordKind.TRANSACTION)
            remote_budgets = await self._fetch_all(RecordKind.BUDGET)
        except RemoteSyncError as e:
            self._publish(status="Clean sync failed: Error fetching remote data")
            return Result.fail(e)

        self._publish(status="Identifying deleted records...")
        with self.session_factory() as session:
            stale: List[Tuple[RecordKind, Record]] = []
            for kind, listing in (
                (RecordKind.TRANSACTION, remote_transactions),
                (RecordKind.BUDGET, remote_budgets),
            ):
                # Only SYNCED records carry a confirmed remote id; LOCAL/pending/failed are exempt
                for record in _repository(session, kind).list_by_sync_status(SyncStatus.SYNCED):
                    if record.remote_id and record.remote_id not in listing.remote_ids:
                        stale.append((kind, record))

            self._publish(status="Removing deleted records...")
            for kind, record in stale:
                try:
                    _repository(session, kind).delete(record.id)
                except SQLAlchemyError as e:
                    report.failed += 1
                    logger.error(f"Failed to remove deleted {NOUNS[kind]} {record.id}: {e}")
                    continue
                report.deleted += 1
                records_reconciled_counter.labels(kind=kind.value, action="deleted").inc()
                logger.info(
                    f"Removed {NOUNS[kind]} deleted remotely",
                    extra={"local_id": record.id, "remote_id": record.remote_id},
                )

        report.transactions_fetched = len(remote_transactions.records)
        report.budgets_fetched = len(remote_budgets.records)
        report.message = (
            f"Clean sync completed: {report.transactions_fetched} transactions, "
            f"{report.budgets_fetched} budgets synced, {report.deleted} records deleted"
        )
        self._publish(
            status=(
                f"Clean sync completed ({report.transactions_fetched} transactions, "
                f"{report.budgets_fetched} budgets, {report.deleted} deleted)"
            )
        )
        return Result.ok(report)

    async def _retry_failed_sync(self) -> Result[SyncReport]:
        """Push every SYNC_FAILED / SYNC_PENDING record; one failure never stops the batch"""
        report = SyncReport(strategy="retry")
        self._publish(status="Retrying failed sync records...")

        with self.session_factory() as session:
            batches = []
            for kind in (RecordKind.TRANSACTION, RecordKind.BUDGET):
                repo = _repository(session, kind)
                batches.append(
                    (
                        kind,
                        repo.list_by_sync_status(SyncStatus.SYNC_FAILED)
                        + repo.list_by_sync_status(SyncStatus.SYNC_PENDING),
                    )
                )

            if not any(records for _, records in batches):
                report.message = "No failed sync records found"
                self._publish(status="No failed records to retry")
                return Result.ok(report)

            for kind, records in batches:
                self._publish(status=f"Retrying {kind.value}...")
                repo = _repository(session, kind)
                for record in records:
                    result = await (self.create_remote(record) if record.remote_id is None else self.update_remote(record))
                    try:
                        if result.success:
                            repo.update(result.value)
                            report.succeeded += 1
                        else:
                            repo.update(replace(record, sync_status=SyncStatus.SYNC_FAILED))
                            report.failed += 1
                    except SQLAlchemyError as e:
                        report.failed += 1
                        logger.error(f"Error recording retry outcome for {NOUNS[kind]} {record.id}: {e}")

        report.message = (
            f"Retry sync completed: {report.succeeded} records synced successfully, {report.failed} failed"
        )
        self._publish(status=f"Retry completed: {report.succeeded} successful, {report.failed} failed")
        return Result.ok(report)

    async def _smart_sync(self) -> Result[SyncReport]:
        """Incremental sync followed by retry, the retry runs even if the first step failed"""
        self._publish(status="Starting smart sync...")
        incremental = await self._incremental_sync()

        self._publish(status="Retrying failed records...")
        retry = await self._retry_failed_sync()
        if not retry.success:
            return retry

        first = incremental.value.message if incremental.success else f"Incremental sync failed: {incremental.message}"
        report = retry.value
        report.strategy = "smart"
        if incremental.success:
            report.transactions_fetched = incremental.value.transactions_fetched
            report.budgets_fetched = incremental.value.budgets_fetched
            report.inserted = incremental.value.inserted
            report.updated = incremental.value.updated
            report.failed += incremental.value.failed
        report.message = f"Smart sync completed - {first} | {retry.value.message}"

        if incremental.success:
            self._publish(status="Smart sync completed")
        else:
            self._publish(status="Smart sync completed with errors", last_error=incremental.message)
        return Result.ok(report)

    # Ingestion

    def _ingest(self, kind: RecordKind, listing: _Listing, report: SyncReport) -> None:
        """Upsert fetched records one by one; a failing record is logged and skipped"""
        report.failed += listing.rejected
        with self.session_factory() as session:
            repo = _repository(session, kind)
            for incoming in listing.records:
                try:
                    action = self._upsert(repo, incoming)
                except SQLAlchemyError as e:
                    session.rollback()
                    report.failed += 1
                    records_reconciled_counter.labels(kind=kind.value, action="failed").inc()
                    logger.error(f"Error saving remote {NOUNS[kind]} {incoming.remote_id}: {e}")
                    continue
                records_reconciled_counter.labels(kind=kind.value, action=action).inc()
                if action == "inserted":
                    report.inserted += 1
                else:
                    report.updated += 1

            if kind == RecordKind.BUDGET:
                BudgetEngine(BudgetRepository(session), TransactionRepository(session)).cleanup_duplicate_budgets()

    def _upsert(self, repo: Repository, incoming: Record) -> str:
        """Match by remote id (budgets fall back to category/month/year) and mark SYNCED"""
        existing = repo.get_by_remote_id(incoming.remote_id)
        if existing is None and isinstance(incoming, Budget):
            existing = repo.get_for_category_and_month(incoming.category, incoming.month, incoming.year)

        if existing is None:
            repo.insert(replace(incoming, id=None, sync_status=SyncStatus.SYNCED, last_synced_at=self.now()))
            return "inserted"

        merged = replace(
            incoming,
            id=existing.id,
            sync_status=SyncStatus.SYNCED,
            last_synced_at=self.now(),
        )
        if isinstance(existing, Budget):
            merged = replace(merged, created_at=existing.created_at)
        repo.update(merged)
        return "updated"


def _repository(session: Session, kind: RecordKind) -> Repository:
    if kind == RecordKind.TRANSACTION:
        return TransactionRepository(session)
    return BudgetRepository(session)

"""
Contact reconciler for directory sources.

Mirrors the full entry snapshot of a directory source into the local
contact store. Each source runs through the phases

    FETCHING -> RESOLVING -> DIFFING -> APPLYING -> COMPLETED

or ends in FAILED. Resolution, diffing and applying share one database
transaction, so a failed source keeps its previous contacts and its
previous last-sync time.
"""

import logging
import os
import socket
import sqlite3
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from phonedir.directory.entry import RawEntry
from phonedir.directory.fetcher import DEFAULT_FETCH_TIMEOUT, DirectoryFetcher, FetchError
from phonedir.storage.db import CONTACT_VALUE_COLUMNS, DirectoryDatabase, utcnow
from phonedir.sync.contact import DimensionKind, DirectorySource
from phonedir.sync.dimensions import DimensionResolver
from phonedir.utils.logging import get_sync_audit_logger

# Seconds a sync lease stays valid before another holder may take it over
DEFAULT_LEASE_TIMEOUT = 900

logger = logging.getLogger(__name__)


class SyncPhase(str, Enum):
    """Phases of a single source reconciliation."""

    FETCHING = "fetching"
    RESOLVING = "resolving"
    DIFFING = "diffing"
    APPLYING = "applying"
    COMPLETED = "completed"
    FAILED = "failed"


class SyncError(Exception):
    """Raised when reconciling a source fails."""

    def __init__(
        self,
        message: str,
        source_id: Optional[int] = None,
        phase: Optional[SyncPhase] = None,
    ):
        super().__init__(message)
        self.source_id = source_id
        self.phase = phase


class PersistenceError(SyncError):
    """Raised when the database fails while resolving or applying."""

    pass


class SyncInProgressError(SyncError):
    """Raised when another reconciliation of the same source holds the lease."""

    pass


class SourceSyncError(SyncError):
    """Raised when the directory of a source cannot be fetched."""

    pass


@dataclass
class SyncStats:
    """
    Statistics from reconciling one source.

    Tracks counts of every decision taken during the sync.
    """

    fetched: int = 0
    malformed_entries: int = 0
    duplicate_entries: int = 0
    created: int = 0
    updated: int = 0
    unchanged: int = 0
    deleted: int = 0
    dimensions_created: int = 0
    dimensions_collected: int = 0

    @property
    def has_changes(self) -> bool:
        return bool(self.created or self.updated or self.deleted)


@dataclass
class SyncPlan:
    """
    Changes needed to bring a source's contacts in line with a snapshot.

    Contains lists of contacts to create, update and delete, keyed by
    distinguished name.
    """

    # (distinguished_name, values)
    to_create: list[tuple[str, dict[str, Any]]] = field(default_factory=list)

    # (stored row, new values)
    to_update: list[tuple[dict[str, Any], dict[str, Any]]] = field(default_factory=list)

    # Stored rows whose DN is no longer in the snapshot
    to_delete: list[dict[str, Any]] = field(default_factory=list)

    unchanged: int = 0

    def orphan_candidates(self) -> dict[DimensionKind, set[int]]:
        """Lookup ids that may lose their last reference once applied."""
        candidates: dict[DimensionKind, set[int]] = {kind: set() for kind in DimensionKind}
        for row in self.to_delete:
            for kind in DimensionKind:
                if row[kind.column] is not None:
                    candidates[kind].add(row[kind.column])
        for row, values in self.to_update:
            for kind in DimensionKind:
                old = row[kind.column]
                if old is not None and old != values[kind.column]:
                    candidates[kind].add(old)
        return candidates


@dataclass
class SourceSyncResult:
    """Outcome of reconciling one source."""

    source_id: int
    source_name: str
    phase: SyncPhase = SyncPhase.FETCHING
    stats: SyncStats = field(default_factory=SyncStats)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    error: Optional[str] = None
    failed_phase: Optional[SyncPhase] = None

    @property
    def success(self) -> bool:
        return self.phase is SyncPhase.COMPLETED

    def summary(self) -> str:
        """Generate a one-line human-readable summary."""
        if not self.success:
            where = f" during {self.failed_phase.value}" if self.failed_phase else ""
            return f"{self.source_name}: FAILED{where}: {self.error}"
        s = self.stats
        line = (
            f"{self.source_name}: {s.fetched} fetched, {s.created} created, "
            f"{s.updated} updated, {s.deleted} deleted, {s.unchanged} unchanged"
        )
        if s.malformed_entries or s.duplicate_entries:
            line += (
                f" ({s.malformed_entries} malformed, "
                f"{s.duplicate_entries} duplicate entries skipped)"
            )
        return line


@dataclass
class BatchSyncResult:
    """Outcome of reconciling every active source."""

    results: list[SourceSyncResult] = field(default_factory=list)

    @property
    def succeeded(self) -> list[SourceSyncResult]:
        return [r for r in self.results if r.success]

    @property
    def failed(self) -> list[SourceSyncResult]:
        return [r for r in self.results if not r.success]

    @property
    def success(self) -> bool:
        return not self.failed

    def summary(self) -> str:
        """
        Generate a human-readable summary of the batch.

        Returns:
            One header line followed by one line per source
        """
        lines = [
            f"Sync Summary: {len(self.succeeded)} succeeded, "
            f"{len(self.failed)} failed"
        ]
        lines.extend(f"  {r.summary()}" for r in self.results)
        return "\n".join(lines)


def _default_holder() -> str:
    return f"{socket.gethostname()}:{os.getpid()}:{uuid.uuid4().hex[:8]}"


class ContactReconciler:
    """
    Reconciles directory sources against the local contact store.

    Manual contacts are never read or written here: every query and write
    is scoped to the directory contacts of the source being synced.

    Usage:
        reconciler = ContactReconciler(db, LdapFetcher())
        result = reconciler.sync_source(source_id)
        batch = reconciler.sync_all()
    """

    def __init__(
        self,
        database: DirectoryDatabase,
        fetcher: DirectoryFetcher,
        fetch_timeout: float = DEFAULT_FETCH_TIMEOUT,
        lease_timeout: float = DEFAULT_LEASE_TIMEOUT,
        collect_orphan_dimensions: bool = True,
        clock: Callable[[], datetime] = utcnow,
        holder: Optional[str] = None,
    ):
        """
        Initialize the reconciler.

        Args:
            database: Contact store
            fetcher: Source of directory snapshots
            fetch_timeout: Seconds allowed for one fetch
            lease_timeout: Seconds after which a stale sync lease is taken over
            collect_orphan_dimensions: Delete lookup rows left unreferenced
                by sync deletions and updates
            clock: Returns the current time (UTC)
            holder: Lease holder identity (defaults to host:pid:random)
        """
        self.database = database
        self.fetcher = fetcher
        self.fetch_timeout = fetch_timeout
        self.lease_timeout = lease_timeout
        self.collect_orphan_dimensions = collect_orphan_dimensions
        self.clock = clock
        self.holder = holder or _default_holder()

    # =========================================================================
    # Entry Points
    # =========================================================================

    def sync_source(self, source_id: int) -> SourceSyncResult:
        """
        Reconcile one source, active or not.

        Args:
            source_id: Id of the source to sync

        Returns:
            Result with phase COMPLETED and the sync statistics

        Raises:
            SourceNotFoundError: If the source does not exist
            SyncError: If the sync failed; nothing was changed
        """
        source = self.database.get_source(source_id)
        return self._sync(source)

    def sync_all(self) -> BatchSyncResult:
        """
        Reconcile every active source independently.

        A failing source is recorded in the batch result and the remaining
        sources are still synced.

        Returns:
            BatchSyncResult with one entry per active source
        """
        batch = BatchSyncResult()
        sources = self.database.list_sources(active_only=True)
        logger.info(f"Syncing {len(sources)} active source(s)")

        for source in sources:
            try:
                batch.results.append(self._sync(source))
            except Exception as e:
                batch.results.append(
                    SourceSyncResult(
                        source_id=source.id,  # type: ignore[arg-type]
                        source_name=source.name,
                        phase=SyncPhase.FAILED,
                        finished_at=self.clock(),
                        error=str(e),
                        failed_phase=getattr(e, "phase", None),
                    )
                )

        logger.info(
            f"Sync of all sources finished: {len(batch.succeeded)} succeeded, "
            f"{len(batch.failed)} failed"
        )
        return batch

    # =========================================================================
    # Phases
    # =========================================================================

    def _sync(self, source: DirectorySource) -> SourceSyncResult:
        source_id: int = source.id  # type: ignore[assignment]
        result = SourceSyncResult(
            source_id=source_id, source_name=source.name, started_at=self.clock()
        )

        try:
            acquired = self.database.acquire_sync_lease(
                source_id, self.holder, self.clock(), self.lease_timeout
            )
        except sqlite3.Error as e:
            raise PersistenceError(
                f"Could not acquire sync lease for {source.name}: {e}",
                source_id,
                SyncPhase.FETCHING,
            ) from e
        if not acquired:
            error = SyncInProgressError(
                f"Source {source.name} is already being synced",
                source_id,
                SyncPhase.FETCHING,
            )
            self._fail(result, error)
            raise error

        try:
            self._reconcile(source, result)
        except SyncError as e:
            self._fail(result, e)
            raise
        finally:
            try:
                self.database.release_sync_lease(source_id, self.holder)
            except sqlite3.Error as e:
                logger.warning(f"Could not release sync lease for {source.name}: {e}")

        return result

    def _fail(self, result: SourceSyncResult, error: SyncError) -> None:
        result.failed_phase = error.phase
        result.phase = SyncPhase.FAILED
        result.error = str(error)
        result.finished_at = self.clock()
        logger.error(f"Sync of {result.source_name} failed: {error}", exc_info=error)

    def _reconcile(self, source: DirectorySource, result: SourceSyncResult) -> None:
        source_id: int = source.id  # type: ignore[assignment]
        stats = result.stats

        result.phase = SyncPhase.FETCHING
        logger.info(f"Fetching entries for source {source.name} (id={source_id})")
        try:
            entries = self.fetcher.fetch(source, self.fetch_timeout)
        except FetchError as e:
            raise SourceSyncError(
                f"Fetching {source.name} failed: {e}", source_id, SyncPhase.FETCHING
            ) from e

        snapshot = self.select_entries(entries, stats, source.name)
        if entries and not snapshot:
            raise SyncError(
                f"All {len(entries)} entries from {source.name} lack a "
                "distinguished name; refusing to treat the source as empty",
                source_id,
                SyncPhase.FETCHING,
            )

        try:
            with self.database.transaction():
                result.phase = SyncPhase.RESOLVING
                resolver = DimensionResolver(self.database)
                for kind in DimensionKind:
                    resolver.resolve(
                        kind, (entry.dimension_name(kind) for entry in snapshot.values())
                    )
                stats.dimensions_created = resolver.created
                logger.info(
                    f"Resolved dimensions for {source.name}: "
                    f"{resolver.created} new lookup value(s)"
                )

                result.phase = SyncPhase.DIFFING
                stored = self.database.get_directory_contacts(source_id)
                plan = self.diff(snapshot, stored, resolver)
                logger.info(
                    f"Diff for {source.name}: {len(plan.to_create)} to create, "
                    f"{len(plan.to_update)} to update, {len(plan.to_delete)} to delete, "
                    f"{plan.unchanged} unchanged"
                )

                result.phase = SyncPhase.APPLYING
                now = self.clock()
                self._apply(source, plan, stats, now)
                self.database.set_last_sync(source_id, now)
        except sqlite3.Error as e:
            raise PersistenceError(
                f"Database error while {result.phase.value} {source.name}: {e}",
                source_id,
                result.phase,
            ) from e

        result.phase = SyncPhase.COMPLETED
        result.finished_at = self.clock()
        logger.info(result.summary())

    def select_entries(
        self,
        entries: list[RawEntry],
        stats: SyncStats,
        source_name: str = "",
    ) -> dict[str, RawEntry]:
        """
        Index fetched entries by distinguished name.

        Entries without a DN are dropped. When a DN appears more than once
        the last occurrence wins.

        Args:
            entries: Fetched entries in directory order
            stats: Statistics to update
            source_name: Used in log messages

        Returns:
            Entries keyed by trimmed DN, in first-seen order
        """
        stats.fetched = len(entries)
        snapshot: dict[str, RawEntry] = {}
        for position, entry in enumerate(entries):
            if not entry.is_valid():
                stats.malformed_entries += 1
                logger.warning(
                    f"Skipping entry #{position} from {source_name} "
                    f"('{entry.display_name}'): missing distinguished name"
                )
                continue
            if entry.key in snapshot:
                stats.duplicate_entries += 1
                logger.warning(
                    f"Duplicate distinguished name from {source_name}: {entry.key}"
                )
            snapshot[entry.key] = entry
        return snapshot

    def diff(
        self,
        snapshot: dict[str, RawEntry],
        stored: list[dict[str, Any]],
        resolver: DimensionResolver,
    ) -> SyncPlan:
        """
        Compare a snapshot with the stored contacts of the same source.

        Matching is by distinguished name only.

        Args:
            snapshot: Fetched entries keyed by DN
            stored: Stored rows as returned by get_directory_contacts
            resolver: Resolver that already resolved every snapshot name

        Returns:
            SyncPlan describing the creates, updates and deletes
        """
        plan = SyncPlan()
        by_dn = {row["distinguished_name"]: row for row in stored}

        for dn, entry in snapshot.items():
            values = self._entry_values(entry, resolver)
            row = by_dn.get(dn)
            if row is None:
                plan.to_create.append((dn, values))
            elif all(row[column] == values[column] for column in CONTACT_VALUE_COLUMNS):
                plan.unchanged += 1
            else:
                plan.to_update.append((row, values))

        plan.to_delete = [row for dn, row in by_dn.items() if dn not in snapshot]
        return plan

    @staticmethod
    def _entry_values(entry: RawEntry, resolver: DimensionResolver) -> dict[str, Any]:
        values: dict[str, Any] = {
            "display_name": entry.display_name or "",
            "email": entry.email or "",
            "phone": entry.phone or "",
        }
        for kind in DimensionKind:
            values[kind.column] = resolver.lookup(kind, entry.dimension_name(kind))
        return values

    def _apply(
        self,
        source: DirectorySource,
        plan: SyncPlan,
        stats: SyncStats,
        now: datetime,
    ) -> None:
        source_id: int = source.id  # type: ignore[assignment]
        audit = get_sync_audit_logger()

        stats.deleted = self.database.delete_contacts(row["id"] for row in plan.to_delete)
        for row in plan.to_delete:
            audit.info(f"[{source.name}] DELETE {row['distinguished_name']}")

        for row, values in plan.to_update:
            self.database.update_contact_values(row["id"], values, now)
            audit.info(f"[{source.name}] UPDATE {row['distinguished_name']}")
        stats.updated = len(plan.to_update)

        for dn, values in plan.to_create:
            self.database.insert_directory_contact(source_id, dn, values, now)
            audit.info(f"[{source.name}] INSERT {dn}")
        stats.created = len(plan.to_create)
        stats.unchanged = plan.unchanged

        if self.collect_orphan_dimensions:
            stats.dimensions_collected = self.database.collect_orphan_dimensions(
                plan.orphan_candidates()
            )
            if stats.dimensions_collected:
                logger.info(
                    f"Removed {stats.dimensions_collected} unreferenced lookup value(s)"
                )

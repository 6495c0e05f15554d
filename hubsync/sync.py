#!/usr/bin/env python3
"""
sync.py

Two-way sync engine between Notion source databases and the hub database.

One pass runs two phases in a fixed order:

1. REVERSE (hub → sources): tombstones and hub edits flow back to the source
   page named in each hub page's ``Source`` field.
2. FORWARD (sources → hub): every live source page is created in, or pushed
   to, its hub page.

There is no sync cursor or journal. Every pass rescans both sides and decides
from last-edited timestamps alone, so a crashed or partially failed pass is
repaired by simply running the next one. Writes that would not change any
value are skipped, which keeps a second pass over unchanged data write-free.

Deletes only travel hub → source. A source page ticked "Deleted" by hand is
skipped by forward sync but its hub page stays live. Forward sync never
writes "Deleted", so a hub tombstone whose reverse write failed survives
until a later pass delivers it.

Two passes must not run at the same time: the forward lookup-then-create is
not atomic and overlapping runs can create duplicate hub pages.
"""

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from tqdm import tqdm

from .config import SyncConfig
from .correlation import find_hub_record
from .errors import RecordNotFound, StoreUnavailable, SyncError, WriteFailed
from .fetcher import fetch_all
from .notifications import notify_error, notify_warning, reset_session
from .projector import project, projection_differs
from .records import CheckboxValue, PropertyValue, Record, TextValue
from .resolver import Winner, resolve
from .store import NotionStore, RecordStore

logger = logging.getLogger(__name__)

BAR_FORMAT = '{desc}: {percentage:3.0f}%|{bar}| {n_fmt}/{total_fmt} [{elapsed}<{remaining}, {rate_fmt}]'

RECORD_ERRORS = (RecordNotFound, StoreUnavailable, WriteFailed)


class SyncState(Enum):
    IDLE = "idle"
    REVERSE_SYNC = "reverse_sync"
    FORWARD_SYNC = "forward_sync"


class HubSync:
    """Runs reverse-then-forward sync passes for one hub and its sources"""

    def __init__(self, config: SyncConfig, store: Optional[RecordStore] = None):
        self.config = config
        self.store = store or NotionStore(config)
        self.fields = config.fields
        self.dry_run = config.dry_run
        self.state = SyncState.IDLE
        self.stats = self._new_stats()

    def _new_stats(self) -> Dict[str, Any]:
        return {
            'hub_records': 0,
            'source_records': 0,
            'created': 0,
            'updated_hub': 0,
            'updated_source': 0,
            'tombstoned': 0,
            'unchanged': 0,
            'skipped': 0,
            'errors': 0,
            'collections_failed': 0,
            'dry_run': self.dry_run,
            'start_time': datetime.now(timezone.utc),
            'end_time': None
        }

    @property
    def had_errors(self) -> bool:
        """True when a whole database could not be read during the last pass."""
        return self.stats['collections_failed'] > 0

    # =========================================================================
    # 🔁 PASS
    # =========================================================================

    def run(self) -> Dict[str, Any]:
        """Run one full pass: reverse sync, then forward sync. Returns the pass stats."""
        self.stats = self._new_stats()
        reset_session()
        logger.info("🔁 Sync pass started%s", " (DRY RUN - no writes)" if self.dry_run else "")

        try:
            self.state = SyncState.REVERSE_SYNC
            logger.info("🔃 Running reverse sync first to apply Hub changes to Sources")
            self.reverse_sync()

            self.state = SyncState.FORWARD_SYNC
            logger.info("➡️ Running forward sync to apply Source changes to Hub")
            self.forward_sync()
        finally:
            self.state = SyncState.IDLE
            self.stats['end_time'] = datetime.now(timezone.utc)

        self._log_summary()
        return self.stats

    def _log_summary(self):
        elapsed = (self.stats['end_time'] - self.stats['start_time']).total_seconds()
        logger.info(f"Summary for pass ({elapsed:.1f}s):")
        logger.info(f"  • {self.stats['hub_records']} hub pages, {self.stats['source_records']} source pages scanned")
        logger.info(f"  • {self.stats['created']} hub pages created, {self.stats['updated_hub']} updated")
        logger.info(f"  • {self.stats['updated_source']} source pages updated, {self.stats['tombstoned']} tombstoned")
        logger.info(f"  • {self.stats['unchanged']} already in sync, {self.stats['skipped']} skipped")
        if self.stats['errors']:
            logger.warning(f"  • {self.stats['errors']} record errors (retried on next pass)")
        if self.stats['collections_failed']:
            logger.warning(f"  • {self.stats['collections_failed']} databases could not be read")

    # =========================================================================
    # 🧰 HELPERS
    # =========================================================================

    def _progress(self, records: List[Record], desc: str) -> Iterable[Record]:
        return tqdm(records,
                    desc=desc,
                    unit="page",
                    ncols=80,
                    leave=True,
                    mininterval=2.0,
                    bar_format=BAR_FORMAT,
                    disable=not self.config.show_progress)

    def _count(self, outcome: str) -> str:
        self.stats[outcome] += 1
        return outcome

    def _enumerate(self, collection_id: str, label: str) -> Optional[List[Record]]:
        """Fetch a whole database; None (and a failed-collection mark) if it cannot be read."""
        try:
            return fetch_all(self.store, collection_id)
        except StoreUnavailable as e:
            self.stats['collections_failed'] += 1
            notify_error(f"Could not read {label} database {collection_id} - skipped for this pass",
                         dict(e.details, error=e.message))
            return None

    def _record_error(self, message: str, error: SyncError):
        self.stats['errors'] += 1
        details = dict(error.details, error=error.message, error_type=type(error).__name__)
        if isinstance(error, RecordNotFound):
            notify_warning(message, details)
        else:
            notify_error(message, details)

    def _write_update(self, record_id: str, props: Dict[str, PropertyValue]):
        if self.dry_run:
            logger.info(f"🧪 DRY RUN: would update page {record_id} ({', '.join(sorted(props))})")
            return
        self.store.update_record(record_id, props)

    def _write_create(self, props: Dict[str, PropertyValue]):
        if self.dry_run:
            logger.info(f"🧪 DRY RUN: would create hub page ({', '.join(sorted(props))})")
            return
        self.store.create_record(self.config.hub_id, props)

    # =========================================================================
    # 🔃 PHASE 1: HUB → SOURCES
    # =========================================================================

    def reverse_sync(self):
        hub_records = self._enumerate(self.config.hub_id, "hub")
        if hub_records is None:
            return
        self.stats['hub_records'] = len(hub_records)
        logger.info(f"Found {len(hub_records)} pages in Hub for reverse sync")

        for hub in self._progress(hub_records, "Reverse sync"):
            try:
                self.reverse_sync_record(hub)
            except RECORD_ERRORS as e:
                self._record_error(f"Reverse sync failed for hub page {hub.id} (source {hub.source_ref})", e)

    def reverse_sync_record(self, hub: Record) -> str:
        """
        Push one hub page back to its source page.

        Returns the outcome: "skipped", "tombstoned", "updated_source" or "unchanged".
        Raises RecordNotFound, StoreUnavailable or WriteFailed; the caller contains them.
        """
        source_id = hub.source_ref
        if not source_id:
            logger.debug(f"Hub page {hub.id} has no {self.fields.source} - not correlated, skipping")
            return self._count('skipped')

        if hub.deleted:
            # Tombstones carry no other property
            try:
                source = self.store.get_record(source_id)
            except RecordNotFound:
                logger.debug(f"Source page {source_id} of tombstoned Hub page {hub.id} is gone or trashed")
                return self._count('unchanged')
            if source.deleted:
                return self._count('unchanged')
            self._write_update(source_id, {self.fields.deleted: CheckboxValue(True)})
            logger.info(f"→ Marked source page {source_id} as Deleted because Hub page {hub.id} has Deleted flag")
            return self._count('tombstoned')

        source = self.store.get_record(source_id)
        if resolve(hub.last_modified, source.last_modified) is not Winner.HUB:
            return self._count('unchanged')

        props = project(hub.properties,
                        schema_hint=source.schema(),
                        exclude=(self.fields.source, self.fields.deleted))
        if not props or not projection_differs(props, source.properties):
            return self._count('unchanged')

        self._write_update(source_id, props)
        logger.info(f"→ Reverse synced Hub {hub.id} to Source {source_id}")
        return self._count('updated_source')

    # =========================================================================
    # ➡️ PHASE 2: SOURCES → HUB
    # =========================================================================

    def forward_sync(self):
        for source_db in self.config.source_ids:
            records = self._enumerate(source_db, "source")
            if records is None:
                continue
            self.stats['source_records'] += len(records)

            for page in self._progress(records, f"Forward sync {source_db[:8]}"):
                try:
                    self.forward_sync_record(page)
                except RECORD_ERRORS as e:
                    self._record_error(f"Forward sync failed for source page {page.id}", e)

    def forward_sync_record(self, page: Record) -> str:
        """
        Push one source page into the hub.

        Returns the outcome: "skipped", "created", "updated_hub" or "unchanged".
        Raises RecordNotFound, StoreUnavailable or WriteFailed; the caller contains them.
        """
        if page.deleted:
            logger.info(f"→ Skipping source page {page.id} because Deleted flag is true")
            return self._count('skipped')

        stamp = TextValue.of(page.id)
        hub_page_id = find_hub_record(self.store, self.config.hub_id, page.id, self.fields.source)

        if hub_page_id is None:
            props = project(page.properties, exclude=(self.fields.source, self.fields.deleted))
            props[self.fields.source] = stamp
            self._write_create(props)
            logger.info(f"→ Synced {page.id}")
            return self._count('created')

        hub = self.store.get_record(hub_page_id)
        if resolve(hub.last_modified, page.last_modified) is not Winner.SOURCE:
            return self._count('unchanged')

        props = project(page.properties,
                        schema_hint=hub.schema(),
                        exclude=(self.fields.source, self.fields.deleted))
        if hub.source_ref == page.id and not projection_differs(props, hub.properties):
            return self._count('unchanged')

        props[self.fields.source] = stamp
        self._write_update(hub_page_id, props)
        logger.info(f"→ Updated Hub page {hub_page_id} for source {page.id}")
        return self._count('updated_hub')

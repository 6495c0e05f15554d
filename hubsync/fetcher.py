#!/usr/bin/env python3
"""
fetcher.py

Cursor-based retrieval of every record in a collection.
"""

import logging
from typing import List, Optional

from .records import Record
from .store import RecordStore

logger = logging.getLogger(__name__)


def fetch_all(store: RecordStore, collection_id: str) -> List[Record]:
    """
    Fetch all records of a collection, following the store's cursor until it
    reports no more pages.

    StoreUnavailable from any page propagates: a half-read collection is never
    returned. The result carries no ordering guarantee.
    """
    records: List[Record] = []
    cursor: Optional[str] = None
    page = 1

    while True:
        logger.debug(f"Fetching page {page} of database {collection_id}")
        result = store.query_page(collection_id, cursor)
        records.extend(result.records)
        logger.debug(f"Retrieved {len(result.records)} records from page {page}")

        if not (result.has_more and result.next_cursor):
            break
        cursor = result.next_cursor
        page += 1

    logger.info(f"Found {len(records)} pages in {collection_id}")
    return records

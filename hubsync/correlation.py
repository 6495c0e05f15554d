#!/usr/bin/env python3
"""
correlation.py

Correlation index: finds the hub page that mirrors a given source page.

The only join key is the hub's ``Source`` text property, holding the source
page id. There is no cache; each lookup is a fresh filtered query so that
writes made earlier in the same pass are always visible.

Uniqueness is not enforced by Notion. If several hub pages carry the same
source id (e.g. two overlapping runs both created one) the first result
returned by the query is used and a warning is logged.
"""

import logging
from typing import Optional

from .store import RecordStore

logger = logging.getLogger(__name__)


def find_hub_record(store: RecordStore, hub_id: str, source_id: str,
                    source_field: str = "Source") -> Optional[str]:
    """Return the id of the hub page correlated to ``source_id``, or None."""
    if not source_id:
        return None

    matches = store.query_filtered(hub_id, source_field, source_id)
    if not matches:
        return None

    if len(matches) > 1:
        logger.warning(
            f"⚠️ {len(matches)} hub pages reference source {source_id}: "
            f"{[m.id for m in matches]} - using {matches[0].id}"
        )
    return matches[0].id

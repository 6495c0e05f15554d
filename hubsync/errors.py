#!/usr/bin/env python3
"""
errors.py

Error taxonomy for the Notion hub sync. Every error carries a human message
and a details dict that is forwarded as-is to the Teams notifier.
"""

from typing import Any, Dict, Optional


class SyncError(Exception):
    """Base class for all sync errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class StoreUnavailable(SyncError):
    """Transport or authentication failure talking to the record store."""


class RecordNotFound(SyncError):
    """A correlated record is missing upstream (deleted, trashed or never existed)."""


class WriteFailed(SyncError):
    """A create or update call was rejected or could not be delivered."""


class SchemaMismatch(SyncError):
    """A property kind the engine cannot write was asked to serialise itself."""

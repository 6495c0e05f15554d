#!/usr/bin/env python3
"""
🎯 NOTION SOURCES ↔ HUB TWO-WAY SYNC - CONFIGURATION
=====================================================

Everything the sync needs to know comes from the environment (or a local
.env file). Nothing here talks to Notion.

🚀 FLOW:
========

PHASE 1: Hub → Sources (REVERSE SYNC)
   🗑️ Hub pages ticked "Deleted" tombstone their source page
   ✏️ Hub pages edited more recently than their source overwrite it

PHASE 2: Sources → Hub (FORWARD SYNC)
   ➕ Source pages with no hub page get one, stamped with "Source" = page id
   ✏️ Source pages edited more recently than their hub page overwrite it

⚙️ REQUIRED SETTINGS:
=====================
   NOTION_TOKEN=secret_xxx
   DATABASES_SRC=["<source db id>", "<source db id>"]
   DATABASE_HUB=<hub db id>

🎮 EXECUTION COMMANDS:
=====================
   python -m hubsync.main              # Run one full pass
   python -m hubsync.main --dry-run    # Log decisions, write nothing
   python -m hubsync.main --validate   # Check configuration only
"""

import json
import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

from .records import FieldNames

load_dotenv(override=True)

# =============================================================================
# 🔐 API CREDENTIALS
# =============================================================================

# Notion integration token (keep secret)
NOTION_TOKEN = os.getenv("NOTION_TOKEN", "").strip()

# Notion API version header
NOTION_VERSION = os.getenv("NOTION_VERSION", "2022-06-28")

# =============================================================================
# 📋 DATABASES
# =============================================================================

# Source databases mirrored into the hub: JSON list, or comma separated ids
DATABASES_SRC = os.getenv("DATABASES_SRC", "")

# The consolidated hub database
DATABASE_HUB = os.getenv("DATABASE_HUB", "").strip()

# =============================================================================
# 🏷️ SYNC FIELDS
# =============================================================================

# Hub text property holding the originating source page id
SOURCE_PROPERTY = os.getenv("SOURCE_PROPERTY", "Source")

# Checkbox tombstone, present on hub and sources
DELETED_PROPERTY = os.getenv("DELETED_PROPERTY", "Deleted")

# last_edited_time property used for conflict resolution (falls back to the page's own)
MODIFIED_PROPERTY = os.getenv("MODIFIED_PROPERTY", "Modificato")

# =============================================================================
# ⚙️ SYNC PARAMETERS
# =============================================================================

PAGE_SIZE = int(os.getenv("PAGE_SIZE", 100))               # records per Notion query page (max 100)
MAX_RETRIES = int(os.getenv("MAX_RETRIES", 3))             # attempts on HTTP 429
RETRY_DELAY = float(os.getenv("RETRY_DELAY", 2))           # seconds between attempts without Retry-After
REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", 30))  # seconds per HTTP call

ENABLE_DRY_RUN = os.getenv("ENABLE_DRY_RUN", "false").lower() == "true"   # log decisions, write nothing
SHOW_PROGRESS = os.getenv("SHOW_PROGRESS", "true").lower() == "true"      # tqdm bars per collection

# =============================================================================
# 📨 NOTIFICATIONS & LOGGING
# =============================================================================

TEAMS_WEBHOOK_URL = os.getenv("TEAMS_WEBHOOK_URL", "")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_DIR = os.getenv("LOG_DIR", "logs")


def parse_database_ids(raw: Optional[str]) -> List[str]:
    """
    Parse the DATABASES_SRC value.

    Accepts a JSON list or a plain comma separated list.
    Raises ValueError on malformed JSON or a JSON value that is not a list.
    """
    raw = (raw or "").strip()
    if not raw:
        return []
    if raw[0] in '[{"':
        try:
            ids = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ValueError(f"DATABASES_SRC is not valid JSON: {e}") from e
        if not isinstance(ids, list):
            raise ValueError("DATABASES_SRC must be a JSON list of database ids")
    else:
        ids = raw.split(",")
    return [str(i).strip() for i in ids if str(i).strip()]


@dataclass
class SyncConfig:
    """Everything one pass needs, passed explicitly to the orchestrator."""

    token: str = ""
    source_ids: List[str] = field(default_factory=list)
    hub_id: str = ""
    fields: FieldNames = field(default_factory=FieldNames)
    notion_version: str = "2022-06-28"
    page_size: int = 100
    max_retries: int = 3
    retry_delay: float = 2.0
    request_timeout: float = 30.0
    dry_run: bool = False
    show_progress: bool = True
    teams_webhook_url: str = ""

    @classmethod
    def from_env(cls) -> "SyncConfig":
        """Build the configuration from the module-level settings above."""
        return cls(
            token=NOTION_TOKEN,
            source_ids=parse_database_ids(DATABASES_SRC),
            hub_id=DATABASE_HUB,
            fields=FieldNames(
                source=SOURCE_PROPERTY,
                deleted=DELETED_PROPERTY,
                modified=MODIFIED_PROPERTY,
            ),
            notion_version=NOTION_VERSION,
            page_size=PAGE_SIZE,
            max_retries=MAX_RETRIES,
            retry_delay=RETRY_DELAY,
            request_timeout=REQUEST_TIMEOUT,
            dry_run=ENABLE_DRY_RUN,
            show_progress=SHOW_PROGRESS,
            teams_webhook_url=TEAMS_WEBHOOK_URL,
        )

    def validate(self) -> List[str]:
        """Return a list of configuration problems (empty when usable)."""
        errors = []
        if not self.token:
            errors.append("NOTION_TOKEN not configured")
        if not self.hub_id:
            errors.append("DATABASE_HUB not configured")
        if not self.source_ids:
            errors.append("DATABASES_SRC not configured")
        if self.hub_id and self.hub_id in self.source_ids:
            errors.append(f"Hub database {self.hub_id} is also listed as a source")
        if len(set(self.source_ids)) != len(self.source_ids):
            errors.append("DATABASES_SRC lists the same database more than once")
        if not 1 <= self.page_size <= 100:
            errors.append(f"PAGE_SIZE must be between 1 and 100, got {self.page_size}")
        names = [self.fields.source, self.fields.deleted, self.fields.modified]
        if len(set(names)) != len(names):
            errors.append(f"SOURCE/DELETED/MODIFIED properties must differ: {names}")
        return errors

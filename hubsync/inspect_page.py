#!/usr/bin/env python3
"""
inspect_page.py

Diagnostic dump of a single Notion page: property keys and kinds, title,
archived flag, and the fields the sync cares about. Handy for checking why a
page is skipped or never correlates.
"""

from typing import Any, Dict

from .records import Record
from .store import NotionStore


def describe_page(store: NotionStore, page_id: str) -> Dict[str, Any]:
    """Read a page (archived ones included) and summarise it."""
    record = Record.from_page(store.fetch_page(page_id), store.fields)
    return {
        "id": record.id,
        "parent_database": record.parent_id,
        "title": record.title(),
        "archived": record.archived,
        "property_kinds": record.schema(),
        "last_modified": record.last_modified.isoformat() if record.last_modified else None,
        "deleted": record.deleted,
        "source_ref": record.source_ref,
    }


def print_page_report(report: Dict[str, Any]):
    print("="*60)
    print(f"🔍 PAGE {report['id']}")
    print("="*60)
    print(f"Database:      {report['parent_database'] or 'n/a'}")
    print(f"Title:         {report['title'] or '(untitled)'}")
    print(f"Archived flag: {report['archived']}")
    print(f"Last modified: {report['last_modified'] or 'unknown'}")
    print(f"Deleted:       {report['deleted']}")
    print(f"Source:        {report['source_ref'] or '(none)'}")
    print("-"*60)
    print("All property keys:")
    for name, kind in sorted(report['property_kinds'].items()):
        print(f"   • {name} ({kind})")

"""
Notion Sources ↔ Hub Two-Way Sync - Core Package

Keeps several Notion databases ("sources") mirrored into one consolidated
database ("hub") in both directions, using only the pages' last-edited
timestamps and a "Source" back-reference on each hub page as state.

Core modules:
- main: Control center, logging wiring and CLI
- config: Environment configuration and SyncConfig
- sync: Pass orchestration (reverse hub → sources, then forward sources → hub)
- records: Typed property values and the Record model
- projector: Property projection between database schemas
- correlation: Source page → hub page lookup
- resolver: Timestamp-wins conflict resolution
- fetcher: Paginated database reads
- store: Notion REST record store
- notifications: Teams notifications for pass results
- inspect_page: Single page diagnostics
"""

__version__ = "1.0.0"

__all__ = [
    'main',
    'config',
    'sync',
    'records',
    'projector',
    'correlation',
    'resolver',
    'fetcher',
    'store',
    'notifications',
    'inspect_page'
]

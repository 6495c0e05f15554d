#!/usr/bin/env python3
"""
projector.py

Property projection between differently-shaped Notion databases.

Field names are never renamed: a value lands under the same name it was read
from. Empty values are dropped rather than written as empty, and kinds the
engine does not understand (formula, rollup, timestamps, ...) are never
copied.
"""

import logging
from typing import Dict, Iterable, Optional

from .records import PropertyValue, UnsupportedValue

logger = logging.getLogger(__name__)


def project(props: Dict[str, PropertyValue],
            schema_hint: Optional[Dict[str, str]] = None,
            exclude: Iterable[str] = ()) -> Dict[str, PropertyValue]:
    """
    Project a record's properties onto a destination schema.

    Args:
        props: Source property mapping (field name → typed value)
        schema_hint: Destination field name → kind. When given, fields the
            destination lacks, or holds with a different kind, are dropped.
            None means "emit every supported field".
        exclude: Field names that never propagate as ordinary fields

    Returns:
        Destination property mapping, containing only non-empty supported values
    """
    excluded = set(exclude)
    projected: Dict[str, PropertyValue] = {}

    for name, value in props.items():
        if name in excluded:
            continue
        if isinstance(value, UnsupportedValue):
            logger.debug(f"Skipping '{name}': unsupported kind '{value.kind}'")
            continue
        if value.is_empty():
            continue
        if schema_hint is not None:
            destination_kind = schema_hint.get(name)
            if destination_kind is None:
                logger.debug(f"Skipping '{name}': not present on destination")
                continue
            if destination_kind != value.kind:
                logger.debug(f"Skipping '{name}': kind {value.kind} vs destination {destination_kind}")
                continue
        projected[name] = value

    return projected


def projection_differs(projected: Dict[str, PropertyValue],
                       current: Dict[str, PropertyValue]) -> bool:
    """True when writing ``projected`` would change at least one value in ``current``."""
    for name, value in projected.items():
        existing = current.get(name)
        if existing is None or existing.kind != value.kind:
            return True
        if existing.comparable() != value.comparable():
            return True
    return False

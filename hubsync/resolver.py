#!/usr/bin/env python3
"""
resolver.py

Whole-record conflict resolution: the strictly newer side wins, ties and
unknown timestamps leave both sides alone.
"""

from datetime import datetime
from enum import Enum
from typing import Optional


class Winner(Enum):
    HUB = "hub"
    SOURCE = "source"
    NEITHER = "neither"


def resolve(hub_modified: Optional[datetime], source_modified: Optional[datetime]) -> Winner:
    if hub_modified is None or source_modified is None:
        return Winner.NEITHER
    if hub_modified > source_modified:
        return Winner.HUB
    if source_modified > hub_modified:
        return Winner.SOURCE
    return Winner.NEITHER

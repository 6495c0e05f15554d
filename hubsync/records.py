#!/usr/bin/env python3
"""
records.py

Record model for the Notion hub sync.

A Notion page is parsed once into a ``Record`` whose ``properties`` map field
names to one of a closed set of typed values (one dataclass per supported
Notion property kind). Kinds the engine must never write (formula, rollup,
relation, created/last-edited metadata, ...) become ``UnsupportedValue``.

Each value knows three things:
- ``is_empty()``: whether projection should drop it
- ``to_notion()``: the property payload for a create/update call
- ``comparable()``: a normalised form used to spot writes that change nothing
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, ClassVar, Dict, Optional, Tuple

from .errors import SchemaMismatch

logger = logging.getLogger(__name__)

# Notion fills these in on read; a span written without annotations reads back with them
DEFAULT_ANNOTATIONS = {
    "bold": False,
    "italic": False,
    "strikethrough": False,
    "underline": False,
    "code": False,
    "color": "default",
}


# =============================================================================
# 🕒 TIMESTAMPS
# =============================================================================

def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse a Notion ISO-8601 timestamp into an aware datetime (None if absent or garbled)."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.warning(f"⚠️ Could not parse timestamp {value!r} - treating as unknown")
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


# =============================================================================
# ✏️ RICH TEXT HELPERS
# =============================================================================

def span_text(span: Dict[str, Any]) -> str:
    if span.get("plain_text") is not None:
        return span["plain_text"]
    return (span.get("text") or {}).get("content", "")


def spans_text(spans) -> str:
    """Concatenate the plain text of a rich-text span sequence."""
    return "".join(span_text(s) for s in spans)


def _span_key(span: Dict[str, Any]) -> Tuple:
    href = span.get("href")
    if href is None:
        href = ((span.get("text") or {}).get("link") or {}).get("url")
    annotations = dict(DEFAULT_ANNOTATIONS)
    annotations.update(span.get("annotations") or {})
    return (span_text(span), href, tuple(sorted(annotations.items())))


def text_spans(content: str) -> Tuple[Dict[str, Any], ...]:
    """Build a single plain text span, the shape Notion expects on write."""
    return ({"type": "text", "text": {"content": content}},)


# =============================================================================
# 🏷️ TYPED PROPERTY VALUES
# =============================================================================

class PropertyValue:
    """Base of the closed set of property kinds."""

    kind: ClassVar[str] = ""

    def is_empty(self) -> bool:
        raise NotImplementedError

    def to_notion(self) -> Dict[str, Any]:
        raise NotImplementedError

    def comparable(self) -> Any:
        raise NotImplementedError


@dataclass(frozen=True)
class TitleValue(PropertyValue):
    kind: ClassVar[str] = "title"
    spans: Tuple[Dict[str, Any], ...] = ()

    @classmethod
    def from_notion(cls, raw: Dict[str, Any]) -> "TitleValue":
        return cls(tuple(raw.get("title") or ()))

    def is_empty(self) -> bool:
        return len(self.spans) == 0

    def to_notion(self) -> Dict[str, Any]:
        return {"title": list(self.spans)}

    def comparable(self) -> Any:
        return tuple(_span_key(s) for s in self.spans)

    @property
    def plain_text(self) -> str:
        return spans_text(self.spans)


@dataclass(frozen=True)
class TextValue(PropertyValue):
    kind: ClassVar[str] = "rich_text"
    spans: Tuple[Dict[str, Any], ...] = ()

    @classmethod
    def from_notion(cls, raw: Dict[str, Any]) -> "TextValue":
        return cls(tuple(raw.get("rich_text") or ()))

    @classmethod
    def of(cls, content: str) -> "TextValue":
        return cls(text_spans(content))

    def is_empty(self) -> bool:
        return len(self.spans) == 0

    def to_notion(self) -> Dict[str, Any]:
        return {"rich_text": list(self.spans)}

    def comparable(self) -> Any:
        return tuple(_span_key(s) for s in self.spans)

    @property
    def plain_text(self) -> str:
        return spans_text(self.spans)


@dataclass(frozen=True)
class SelectValue(PropertyValue):
    kind: ClassVar[str] = "select"
    name: Optional[str] = None

    @classmethod
    def from_notion(cls, raw: Dict[str, Any]) -> "SelectValue":
        option = raw.get("select")
        return cls(option.get("name") if option else None)

    def is_empty(self) -> bool:
        return not self.name

    def to_notion(self) -> Dict[str, Any]:
        # Re-wrapped by name: option ids and colours differ between databases
        return {"select": {"name": self.name}}

    def comparable(self) -> Any:
        return self.name


@dataclass(frozen=True)
class MultiSelectValue(PropertyValue):
    kind: ClassVar[str] = "multi_select"
    options: Tuple[Dict[str, Any], ...] = ()

    @classmethod
    def from_notion(cls, raw: Dict[str, Any]) -> "MultiSelectValue":
        return cls(tuple(raw.get("multi_select") or ()))

    def is_empty(self) -> bool:
        return len(self.options) == 0

    def to_notion(self) -> Dict[str, Any]:
        return {"multi_select": list(self.options)}

    def comparable(self) -> Any:
        return frozenset(o.get("name") for o in self.options)


@dataclass(frozen=True)
class DateValue(PropertyValue):
    kind: ClassVar[str] = "date"
    start: Optional[str] = None
    end: Optional[str] = None

    @classmethod
    def from_notion(cls, raw: Dict[str, Any]) -> "DateValue":
        date = raw.get("date")
        if not date:
            return cls()
        return cls(date.get("start"), date.get("end"))

    def is_empty(self) -> bool:
        return not self.start

    def to_notion(self) -> Dict[str, Any]:
        return {"date": {"start": self.start}}

    def comparable(self) -> Any:
        return self.start


@dataclass(frozen=True)
class PeopleValue(PropertyValue):
    kind: ClassVar[str] = "people"
    people: Tuple[Dict[str, Any], ...] = ()

    @classmethod
    def from_notion(cls, raw: Dict[str, Any]) -> "PeopleValue":
        return cls(tuple(raw.get("people") or ()))

    def is_empty(self) -> bool:
        return len(self.people) == 0

    def to_notion(self) -> Dict[str, Any]:
        return {"people": list(self.people)}

    def comparable(self) -> Any:
        return frozenset(p.get("id") for p in self.people)


@dataclass(frozen=True)
class CheckboxValue(PropertyValue):
    kind: ClassVar[str] = "checkbox"
    checked: bool = False

    @classmethod
    def from_notion(cls, raw: Dict[str, Any]) -> "CheckboxValue":
        return cls(bool(raw.get("checkbox")))

    def is_empty(self) -> bool:
        return False

    def to_notion(self) -> Dict[str, Any]:
        return {"checkbox": self.checked}

    def comparable(self) -> Any:
        return self.checked


@dataclass(frozen=True)
class NumberValue(PropertyValue):
    kind: ClassVar[str] = "number"
    number: Optional[float] = None

    @classmethod
    def from_notion(cls, raw: Dict[str, Any]) -> "NumberValue":
        return cls(raw.get("number"))

    def is_empty(self) -> bool:
        return self.number is None

    def to_notion(self) -> Dict[str, Any]:
        return {"number": self.number}

    def comparable(self) -> Any:
        return self.number


@dataclass(frozen=True)
class _ScalarStringValue(PropertyValue):
    value: Optional[str] = None

    @classmethod
    def from_notion(cls, raw: Dict[str, Any]):
        return cls(raw.get(cls.kind))

    def is_empty(self) -> bool:
        return not self.value

    def to_notion(self) -> Dict[str, Any]:
        return {self.kind: self.value}

    def comparable(self) -> Any:
        return self.value


@dataclass(frozen=True)
class UrlValue(_ScalarStringValue):
    kind: ClassVar[str] = "url"


@dataclass(frozen=True)
class EmailValue(_ScalarStringValue):
    kind: ClassVar[str] = "email"


@dataclass(frozen=True)
class PhoneValue(_ScalarStringValue):
    kind: ClassVar[str] = "phone_number"


@dataclass(frozen=True)
class FilesValue(PropertyValue):
    kind: ClassVar[str] = "files"
    files: Tuple[Dict[str, Any], ...] = ()

    @classmethod
    def from_notion(cls, raw: Dict[str, Any]) -> "FilesValue":
        return cls(tuple(raw.get("files") or ()))

    def is_empty(self) -> bool:
        return len(self.files) == 0

    def to_notion(self) -> Dict[str, Any]:
        return {"files": list(self.files)}

    def comparable(self) -> Any:
        # Hosted file URLs are re-signed on every read, so compare by name
        return tuple(f.get("name") for f in self.files)


@dataclass(frozen=True)
class UnsupportedValue(PropertyValue):
    """Formula, rollup, relation, store timestamps and any kind not listed above."""

    kind_name: str = "unknown"
    raw: Dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def kind(self) -> str:  # type: ignore[override]
        return self.kind_name

    def is_empty(self) -> bool:
        return True

    def to_notion(self) -> Dict[str, Any]:
        raise SchemaMismatch(f"Property kind '{self.kind_name}' cannot be written",
                             {"kind": self.kind_name})

    def comparable(self) -> Any:
        return None

    def timestamp(self) -> Optional[datetime]:
        """Value of a created_time / last_edited_time property, if that is what this is."""
        if self.kind_name in ("created_time", "last_edited_time"):
            return parse_timestamp(self.raw.get(self.kind_name))
        return None


SUPPORTED_KINDS = {
    cls.kind: cls
    for cls in (TitleValue, TextValue, SelectValue, MultiSelectValue, DateValue,
                PeopleValue, CheckboxValue, NumberValue, UrlValue, EmailValue,
                PhoneValue, FilesValue)
}


def parse_property(raw: Dict[str, Any]) -> PropertyValue:
    """Turn one Notion property object into its typed value."""
    kind = raw.get("type") or "unknown"
    value_cls = SUPPORTED_KINDS.get(kind)
    if value_cls is None:
        return UnsupportedValue(kind, raw)
    return value_cls.from_notion(raw)


def to_notion_properties(props: Dict[str, PropertyValue]) -> Dict[str, Dict[str, Any]]:
    """Serialise a projected property mapping into a Notion ``properties`` payload."""
    return {name: value.to_notion() for name, value in props.items()}


# =============================================================================
# 📄 RECORD
# =============================================================================

@dataclass(frozen=True)
class FieldNames:
    """Names of the properties that carry sync meaning."""

    source: str = "Source"
    deleted: str = "Deleted"
    modified: str = "Modificato"


@dataclass
class Record:
    id: str
    properties: Dict[str, PropertyValue] = field(default_factory=dict)
    last_modified: Optional[datetime] = None
    deleted: bool = False
    archived: bool = False
    source_ref: Optional[str] = None
    parent_id: Optional[str] = None

    @classmethod
    def from_page(cls, page: Dict[str, Any], fields: FieldNames = FieldNames()) -> "Record":
        """
        Build a Record from a Notion page object.

        ``last_modified`` comes from the ``fields.modified`` property when the
        database has one, otherwise from the page-level ``last_edited_time``.
        """
        properties = {
            name: parse_property(raw)
            for name, raw in (page.get("properties") or {}).items()
        }

        last_modified = None
        modified = properties.get(fields.modified)
        if isinstance(modified, UnsupportedValue):
            last_modified = modified.timestamp()
        if last_modified is None:
            last_modified = parse_timestamp(page.get("last_edited_time"))

        deleted_value = properties.get(fields.deleted)
        deleted = isinstance(deleted_value, CheckboxValue) and deleted_value.checked

        source_ref = None
        source_value = properties.get(fields.source)
        if isinstance(source_value, (TextValue, TitleValue)):
            source_ref = source_value.plain_text.strip() or None

        parent = page.get("parent") or {}
        return cls(
            id=page["id"],
            properties=properties,
            last_modified=last_modified,
            deleted=deleted,
            archived=bool(page.get("archived") or page.get("in_trash")),
            source_ref=source_ref,
            parent_id=parent.get("database_id"),
        )

    def schema(self) -> Dict[str, str]:
        """Field name → kind, used as the destination hint for projection."""
        return {name: value.kind for name, value in self.properties.items()}

    def title(self) -> str:
        for value in self.properties.values():
            if isinstance(value, TitleValue):
                return value.plain_text
        return ""

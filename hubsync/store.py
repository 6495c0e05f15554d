#!/usr/bin/env python3
"""
store.py

Record store boundary for the sync engine.

``RecordStore`` is the capability set the engine relies on (paginated query,
filtered query, read, create, update). ``NotionStore`` implements it against
the Notion REST API on a ``requests.Session``. Every transport failure is
translated into the sync error taxonomy here, so the engine never sees a
``requests`` exception.
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests

from .config import SyncConfig
from .errors import RecordNotFound, StoreUnavailable, WriteFailed
from .records import FieldNames, PropertyValue, Record, to_notion_properties

logger = logging.getLogger(__name__)

NOTION_API_URL = "https://api.notion.com/v1"


@dataclass
class QueryPage:
    """One page of a database query."""

    records: List[Record] = field(default_factory=list)
    next_cursor: Optional[str] = None
    has_more: bool = False


class RecordStore(ABC):
    """Abstract record store used by the fetcher, correlation index and orchestrator."""

    @abstractmethod
    def query_page(self, collection_id: str, cursor: Optional[str] = None) -> QueryPage:
        """Fetch one page of a collection. Raises StoreUnavailable."""

    @abstractmethod
    def query_filtered(self, collection_id: str, field_name: str, text_contains: str) -> List[Record]:
        """Records whose text property ``field_name`` contains ``text_contains``. Raises StoreUnavailable."""

    @abstractmethod
    def get_record(self, record_id: str) -> Record:
        """Read one record. Raises RecordNotFound or StoreUnavailable."""

    @abstractmethod
    def create_record(self, collection_id: str, properties: Dict[str, PropertyValue]) -> Record:
        """Create a record in a collection. Raises WriteFailed."""

    @abstractmethod
    def update_record(self, record_id: str, properties: Dict[str, PropertyValue]) -> Record:
        """Overwrite the given properties of a record. Raises WriteFailed."""


def _error_message(response: Optional[requests.Response]) -> str:
    """Best-effort extraction of Notion's error message from a failed response."""
    if response is None:
        return ""
    try:
        return response.json().get("message", "")
    except ValueError:
        return response.text[:200]


class NotionStore(RecordStore):
    """Notion REST implementation of the record store"""

    def __init__(self, config: SyncConfig):
        self.session = requests.Session()
        self.session.headers.update({
            'Authorization': f'Bearer {config.token}',
            'Notion-Version': config.notion_version,
            'Content-Type': 'application/json',
            'User-Agent': 'Notion-Hub-Sync/1.0'
        })

        self.base_url = NOTION_API_URL
        self.fields: FieldNames = config.fields
        self.page_size = config.page_size
        self.timeout = config.request_timeout

        # API rate limiting
        self.max_retries = max(1, config.max_retries)
        self.retry_delay = config.retry_delay

    # ─── Transport ────────────────────────────────────────────────────────────

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        """Send a request, waiting out HTTP 429 rate limiting up to ``max_retries`` times."""
        url = f"{self.base_url}{path}"
        for attempt in range(self.max_retries):
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
            if response.status_code != 429 or attempt == self.max_retries - 1:
                return response
            try:
                delay = float(response.headers.get("Retry-After", self.retry_delay))
            except ValueError:
                delay = self.retry_delay
            logger.warning(
                f"Notion rate limit hit on {method} {path}. "
                f"Retrying in {delay}s (attempt {attempt + 1}/{self.max_retries})"
            )
            time.sleep(delay)
        return response

    # ─── Reads ────────────────────────────────────────────────────────────────

    def query_page(self, collection_id: str, cursor: Optional[str] = None) -> QueryPage:
        body: Dict[str, Any] = {"page_size": self.page_size}
        if cursor:
            body["start_cursor"] = cursor

        data = self._query(collection_id, body)
        records = [Record.from_page(page, self.fields) for page in data.get("results", [])]
        return QueryPage(
            records=records,
            next_cursor=data.get("next_cursor"),
            has_more=bool(data.get("has_more")),
        )

    def query_filtered(self, collection_id: str, field_name: str, text_contains: str) -> List[Record]:
        body = {
            "filter": {
                "property": field_name,
                "rich_text": {"contains": text_contains},
            },
        }
        data = self._query(collection_id, body)
        return [Record.from_page(page, self.fields) for page in data.get("results", [])]

    def _query(self, collection_id: str, body: Dict[str, Any]) -> Dict[str, Any]:
        path = f"/databases/{collection_id}/query"
        try:
            response = self._request("POST", path, json=body)
            response.raise_for_status()
            return response.json()
        except requests.exceptions.RequestException as e:
            response = getattr(e, "response", None)
            raise StoreUnavailable(
                f"Query of database {collection_id} failed: {e}",
                {"database_id": collection_id,
                 "status_code": getattr(response, "status_code", None),
                 "notion_message": _error_message(response)},
            ) from e

    def fetch_page(self, page_id: str) -> Dict[str, Any]:
        """Raw page object, archived or not. Raises RecordNotFound or StoreUnavailable."""
        try:
            response = self._request("GET", f"/pages/{page_id}")
        except requests.exceptions.RequestException as e:
            raise StoreUnavailable(f"Retrieving page {page_id} failed: {e}",
                                   {"page_id": page_id}) from e

        if response.status_code == 404:
            raise RecordNotFound(f"Page {page_id} not found",
                                 {"page_id": page_id, "notion_message": _error_message(response)})
        try:
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            raise StoreUnavailable(
                f"Retrieving page {page_id} failed: {e}",
                {"page_id": page_id, "status_code": response.status_code,
                 "notion_message": _error_message(response)},
            ) from e
        return response.json()

    def get_record(self, record_id: str) -> Record:
        page = self.fetch_page(record_id)
        record = Record.from_page(page, self.fields)
        if record.archived:
            raise RecordNotFound(f"Page {record_id} is archived", {"page_id": record_id})
        return record

    # ─── Writes ───────────────────────────────────────────────────────────────

    def create_record(self, collection_id: str, properties: Dict[str, PropertyValue]) -> Record:
        payload = {
            "parent": {"database_id": collection_id},
            "properties": to_notion_properties(properties),
        }
        data = self._write("POST", "/pages", payload, {"database_id": collection_id})
        return Record.from_page(data, self.fields)

    def update_record(self, record_id: str, properties: Dict[str, PropertyValue]) -> Record:
        payload = {"properties": to_notion_properties(properties)}
        data = self._write("PATCH", f"/pages/{record_id}", payload, {"page_id": record_id})
        return Record.from_page(data, self.fields)

    def _write(self, method: str, path: str, payload: Dict[str, Any], context: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = self._request(method, path, json=payload)
            response.raise_for_status()
            return response.json()
        except requests.exceptions.RequestException as e:
            response = getattr(e, "response", None)
            raise WriteFailed(
                f"{method} {path} failed: {e}",
                dict(context,
                     status_code=getattr(response, "status_code", None),
                     notion_message=_error_message(response)),
            ) from e

from unittest.mock import MagicMock

import pytest

from hubsync.errors import StoreUnavailable
from hubsync.fetcher import fetch_all
from hubsync.records import Record
from hubsync.store import QueryPage

from fakes import SRC_A, title


def test_follows_cursor_until_exhausted(store):
    ids = [store.add_page(SRC_A, {"Name": title(f"Task {i}")}) for i in range(5)]

    records = fetch_all(store, SRC_A)

    assert sorted(r.id for r in records) == sorted(ids)
    assert store.query_calls == 3


def test_empty_collection(store):
    assert fetch_all(store, "empty-db") == []
    assert store.query_calls == 1


def test_stops_without_cursor_even_if_has_more():
    store = MagicMock()
    store.query_page.return_value = QueryPage([Record("r1")], next_cursor=None, has_more=True)

    assert [r.id for r in fetch_all(store, "db")] == ["r1"]
    store.query_page.assert_called_once_with("db", None)


def test_failure_on_later_page_propagates():
    store = MagicMock()
    store.query_page.side_effect = [
        QueryPage([Record("r1")], next_cursor="c2", has_more=True),
        StoreUnavailable("boom"),
    ]

    with pytest.raises(StoreUnavailable):
        fetch_all(store, "db")
    assert store.query_page.call_args_list[1].args == ("db", "c2")

from unittest.mock import MagicMock, patch

import pytest
import requests

from hubsync.config import SyncConfig
from hubsync.errors import RecordNotFound, StoreUnavailable, WriteFailed
from hubsync.records import CheckboxValue, NumberValue, TextValue
from hubsync.store import NotionStore

from fakes import number, rich, title


def response(status=200, body=None, headers=None):
    resp = MagicMock()
    resp.status_code = status
    resp.headers = headers or {}
    resp.json.return_value = body if body is not None else {}
    resp.text = str(body)
    if status >= 400:
        resp.raise_for_status.side_effect = requests.exceptions.HTTPError(f"{status} Error", response=resp)
    return resp


def page(page_id, properties, archived=False):
    return {
        "object": "page",
        "id": page_id,
        "parent": {"type": "database_id", "database_id": "db-1"},
        "archived": archived,
        "last_edited_time": "2024-03-01T10:00:00.000Z",
        "properties": properties,
    }


@pytest.fixture
def notion():
    config = SyncConfig(token="secret_test", hub_id="hub", source_ids=["src"],
                        page_size=50, max_retries=3, retry_delay=0.5)
    store = NotionStore(config)
    store.session = MagicMock()
    return store


def test_session_headers():
    store = NotionStore(SyncConfig(token="secret_abc", notion_version="2022-06-28"))
    assert store.session.headers["Authorization"] == "Bearer secret_abc"
    assert store.session.headers["Notion-Version"] == "2022-06-28"


def test_query_page_sends_cursor_and_parses_records(notion):
    notion.session.request.return_value = response(body={
        "results": [page("p1", {"Name": title("Task 1"), "Points": number(5)})],
        "next_cursor": "cur-2",
        "has_more": True,
    })

    result = notion.query_page("db-1", cursor="cur-1")

    method, url = notion.session.request.call_args.args
    assert (method, url) == ("POST", "https://api.notion.com/v1/databases/db-1/query")
    assert notion.session.request.call_args.kwargs["json"] == {"page_size": 50, "start_cursor": "cur-1"}
    assert [r.id for r in result.records] == ["p1"]
    assert result.records[0].properties["Points"] == NumberValue(5)
    assert (result.next_cursor, result.has_more) == ("cur-2", True)


def test_query_filtered_body(notion):
    notion.session.request.return_value = response(body={"results": [page("h1", {"Source": rich("p1")})]})

    records = notion.query_filtered("hub", "Source", "p1")

    assert notion.session.request.call_args.kwargs["json"] == {
        "filter": {"property": "Source", "rich_text": {"contains": "p1"}}
    }
    assert records[0].source_ref == "p1"


def test_query_failure_is_store_unavailable(notion):
    notion.session.request.return_value = response(401, {"message": "API token is invalid."})

    with pytest.raises(StoreUnavailable) as exc:
        notion.query_page("db-1")
    assert exc.value.details["status_code"] == 401
    assert exc.value.details["notion_message"] == "API token is invalid."


def test_network_error_is_store_unavailable(notion):
    notion.session.request.side_effect = requests.exceptions.ConnectionError("down")
    with pytest.raises(StoreUnavailable):
        notion.query_filtered("hub", "Source", "p1")


@patch("hubsync.store.time.sleep")
def test_rate_limit_is_retried(mock_sleep, notion):
    notion.session.request.side_effect = [
        response(429, {"message": "slow down"}, headers={"Retry-After": "3"}),
        response(body={"results": [], "has_more": False}),
    ]

    result = notion.query_page("db-1")

    assert result.records == []
    mock_sleep.assert_called_once_with(3.0)


@patch("hubsync.store.time.sleep")
def test_rate_limit_gives_up_after_max_retries(mock_sleep, notion):
    notion.session.request.return_value = response(429, {"message": "slow down"})

    with pytest.raises(StoreUnavailable):
        notion.query_page("db-1")
    assert notion.session.request.call_count == 3
    assert mock_sleep.call_count == 2
    mock_sleep.assert_called_with(0.5)


def test_get_record(notion):
    notion.session.request.return_value = response(body=page("p1", {"Name": title("Task 1")}))

    record = notion.get_record("p1")

    assert notion.session.request.call_args.args == ("GET", "https://api.notion.com/v1/pages/p1")
    assert record.title() == "Task 1"


def test_get_record_missing(notion):
    notion.session.request.return_value = response(404, {"message": "Could not find page"})
    with pytest.raises(RecordNotFound):
        notion.get_record("p1")


def test_get_record_archived(notion):
    notion.session.request.return_value = response(body=page("p1", {}, archived=True))
    with pytest.raises(RecordNotFound):
        notion.get_record("p1")


def test_fetch_page_returns_archived_pages(notion):
    notion.session.request.return_value = response(body=page("p1", {}, archived=True))
    assert notion.fetch_page("p1")["archived"] is True


def test_get_record_server_error(notion):
    notion.session.request.return_value = response(502, {"message": "bad gateway"})
    with pytest.raises(StoreUnavailable):
        notion.get_record("p1")


def test_create_record_payload(notion):
    notion.session.request.return_value = response(body=page("h1", {"Source": rich("p1")}))

    record = notion.create_record("hub", {"Source": TextValue.of("p1"), "Done": CheckboxValue(True)})

    method, url = notion.session.request.call_args.args
    assert (method, url) == ("POST", "https://api.notion.com/v1/pages")
    assert notion.session.request.call_args.kwargs["json"] == {
        "parent": {"database_id": "hub"},
        "properties": {
            "Source": {"rich_text": [{"type": "text", "text": {"content": "p1"}}]},
            "Done": {"checkbox": True},
        },
    }
    assert record.id == "h1"


def test_update_record_payload(notion):
    notion.session.request.return_value = response(body=page("p1", {"Points": number(7)}))

    notion.update_record("p1", {"Points": NumberValue(7)})

    assert notion.session.request.call_args.args == ("PATCH", "https://api.notion.com/v1/pages/p1")
    assert notion.session.request.call_args.kwargs["json"] == {"properties": {"Points": {"number": 7}}}


def test_rejected_write_is_write_failed(notion):
    notion.session.request.return_value = response(400, {"message": "Points is not a property that exists."})

    with pytest.raises(WriteFailed) as exc:
        notion.update_record("p1", {"Points": NumberValue(7)})
    assert exc.value.details["page_id"] == "p1"
    assert exc.value.details["status_code"] == 400
    assert "not a property" in exc.value.details["notion_message"]


def test_write_timeout_is_write_failed(notion):
    notion.session.request.side_effect = requests.exceptions.Timeout("slow")
    with pytest.raises(WriteFailed):
        notion.create_record("hub", {"Points": NumberValue(1)})

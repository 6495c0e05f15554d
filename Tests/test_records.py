from datetime import datetime, timezone

import pytest

from hubsync.errors import SchemaMismatch
from hubsync.records import (CheckboxValue, DateValue, FieldNames, FilesValue, MultiSelectValue,
                             NumberValue, PeopleValue, Record, SelectValue, TextValue, TitleValue,
                             UnsupportedValue, UrlValue, parse_property, parse_timestamp,
                             to_notion_properties)

from fakes import checkbox, date, formula, last_edited, multi, number, rich, select, title, url


def make_page(properties, last_edited_time="2024-03-01T10:00:00.000Z", **extra):
    page = {
        "object": "page",
        "id": "page-1",
        "parent": {"type": "database_id", "database_id": "db-1"},
        "archived": False,
        "last_edited_time": last_edited_time,
        "properties": properties,
    }
    page.update(extra)
    return page


class TestParseTimestamp:
    def test_zulu_suffix(self):
        assert parse_timestamp("2024-03-01T10:00:00.000Z") == datetime(2024, 3, 1, 10, tzinfo=timezone.utc)

    def test_naive_is_utc(self):
        assert parse_timestamp("2024-03-01T10:00:00").tzinfo == timezone.utc

    @pytest.mark.parametrize("value", [None, "", "yesterday"])
    def test_unknown(self, value):
        assert parse_timestamp(value) is None


class TestParseProperty:
    def test_supported_kinds(self):
        assert isinstance(parse_property(title("Task 1")), TitleValue)
        assert isinstance(parse_property(rich("notes")), TextValue)
        assert parse_property(number(5)) == NumberValue(5)
        assert parse_property(checkbox(True)) == CheckboxValue(True)
        assert parse_property(select("Open")) == SelectValue("Open")
        assert parse_property(date("2024-05-01", "2024-05-03")) == DateValue("2024-05-01", "2024-05-03")
        assert parse_property(url("https://example.com")) == UrlValue("https://example.com")

    def test_unsupported_kinds(self):
        value = parse_property(formula(3))
        assert isinstance(value, UnsupportedValue)
        assert value.kind == "formula"
        assert value.is_empty()

    def test_unsupported_value_refuses_to_serialise(self):
        with pytest.raises(SchemaMismatch) as exc:
            parse_property({"type": "rollup", "rollup": {}}).to_notion()
        assert exc.value.details == {"kind": "rollup"}

    def test_missing_type(self):
        assert parse_property({}).kind == "unknown"


class TestEmptiness:
    @pytest.mark.parametrize("value", [
        TitleValue(), TextValue(), SelectValue(), MultiSelectValue(), DateValue(),
        PeopleValue(), NumberValue(), UrlValue(), UrlValue(""), FilesValue(),
    ])
    def test_empty(self, value):
        assert value.is_empty()

    def test_zero_and_unchecked_are_values(self):
        assert not NumberValue(0).is_empty()
        assert not CheckboxValue(False).is_empty()


class TestSerialisation:
    def test_select_rewrapped_by_name(self):
        assert parse_property(select("Open")).to_notion() == {"select": {"name": "Open"}}

    def test_date_writes_start_only(self):
        assert DateValue("2024-05-01", "2024-05-03").to_notion() == {"date": {"start": "2024-05-01"}}

    def test_payload(self):
        payload = to_notion_properties({"Done": CheckboxValue(True), "Source": TextValue.of("abc")})
        assert payload == {
            "Done": {"checkbox": True},
            "Source": {"rich_text": [{"type": "text", "text": {"content": "abc"}}]},
        }

    def test_written_span_compares_equal_to_read_span(self):
        # Notion adds annotations and plain_text on read
        assert TextValue.of("abc").comparable() == parse_property(rich("abc")).comparable()

    def test_multi_select_order_ignored(self):
        assert parse_property(multi("a", "b")).comparable() == parse_property(multi("b", "a")).comparable()


class TestRecordFromPage:
    def test_basic_fields(self):
        record = Record.from_page(make_page({
            "Name": title("Task 1"),
            "Source": rich(" page-9 "),
            "Deleted": checkbox(False),
        }))
        assert record.id == "page-1"
        assert record.parent_id == "db-1"
        assert record.title() == "Task 1"
        assert record.source_ref == "page-9"
        assert record.deleted is False
        assert record.archived is False
        assert record.last_modified == datetime(2024, 3, 1, 10, tzinfo=timezone.utc)
        assert record.schema() == {"Name": "title", "Source": "rich_text", "Deleted": "checkbox"}

    def test_modified_property_wins_over_page_timestamp(self):
        record = Record.from_page(make_page({"Modificato": last_edited("2024-04-02T08:30:00.000Z")}))
        assert record.last_modified == datetime(2024, 4, 2, 8, 30, tzinfo=timezone.utc)

    def test_custom_field_names(self):
        fields = FieldNames(source="Origin", deleted="Gone", modified="Touched")
        record = Record.from_page(make_page({
            "Origin": rich("page-9"),
            "Gone": checkbox(True),
            "Touched": last_edited("2024-04-02T08:30:00.000Z"),
        }), fields)
        assert record.source_ref == "page-9"
        assert record.deleted is True
        assert record.last_modified.month == 4

    def test_empty_source_is_uncorrelated(self):
        assert Record.from_page(make_page({"Source": rich("")})).source_ref is None

    def test_deleted_must_be_a_checkbox(self):
        assert Record.from_page(make_page({"Deleted": rich("yes")})).deleted is False

    def test_trashed_page_is_archived(self):
        assert Record.from_page(make_page({}, in_trash=True)).archived is True

    def test_unparseable_timestamp_is_unknown(self):
        assert Record.from_page(make_page({}, last_edited_time="soon")).last_modified is None

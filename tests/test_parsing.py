"""Tests for the payload parsers (responses, last state, log entries)."""

import json

import pytest

from testresults.issues import Severity
from testresults.models import LastStateEntry, Subform
from testresults.parsing import (
    extract_subforms,
    extract_variables_from_subforms,
    parse_last_state,
    parse_load_complete_log,
    parse_responses,
    split_booklet_log_entry,
    split_unit_log_entry,
    to_number,
    to_text,
)


class TestValueHelpers:
    @pytest.mark.parametrize(
        "value,expected",
        [("128", 128), (" 1.5 ", 1.5), ("", 0), ("1e3", 1000), (7, 7), ("abc", None), (None, None)],
    )
    def test_to_number(self, value, expected):
        assert to_number(value) == expected

    def test_to_number_returns_int_for_integral_text(self):
        assert isinstance(to_number("1920"), int)

    @pytest.mark.parametrize(
        "value,expected",
        [(None, "null"), (True, "true"), (False, "false"), (123, "123"), (2.0, "2"), (2.5, "2.5"), ("x", "x")],
    )
    def test_to_text(self, value, expected):
        assert to_text(value) == expected

    def test_to_text_renders_nested_values_as_json(self):
        assert to_text({"a": [1, 2]}) == '{"a":[1,2]}'


class TestParseResponses:
    def test_list_is_returned_as_is(self):
        chunks = [{"id": "c1"}]
        assert parse_responses(chunks) is chunks

    def test_json_string_is_parsed(self):
        assert parse_responses('[{"id": "c1"}]') == [{"id": "c1"}]

    @pytest.mark.parametrize("value", ["", "not json", "{broken"])
    def test_invalid_json_yields_empty_list(self, value):
        issues = []
        assert parse_responses(value, issues) == []
        assert [i.code for i in issues] == ["TR201"]

    def test_non_array_document_yields_empty_list(self):
        issues = []
        assert parse_responses('{"id": "c1"}', issues) == []
        assert issues[0].code == "TR201"

    def test_unsupported_type_yields_empty_list(self):
        assert parse_responses(None) == []
        assert parse_responses(42) == []

    @pytest.mark.parametrize("value", [[{"id": "c1"}], '[{"id": "c1"}]', "[]", "oops"])
    def test_parsing_twice_changes_nothing(self, value):
        once = parse_responses(value)
        assert parse_responses(once) == once


class TestSubforms:
    def test_one_subform_per_chunk(self):
        chunks = [
            {"id": "c1", "subForm": "sf1", "content": json.dumps([{"id": "v1", "status": "VALUE_CHANGED"}])},
            {"id": "c2", "content": "[]"},
        ]
        subforms = extract_subforms(chunks)
        assert subforms == [
            Subform(id="sf1", responses=[{"id": "v1", "status": "VALUE_CHANGED"}]),
            Subform(id=None, responses=[]),
        ]

    def test_content_already_decoded(self):
        subforms = extract_subforms([{"id": "c1", "content": [{"id": "v1"}]}])
        assert subforms[0].responses == [{"id": "v1"}]

    def test_malformed_content_becomes_empty(self):
        issues = []
        subforms = extract_subforms([{"id": "c1", "subForm": "sf", "content": "{bad"}], issues)
        assert subforms == [Subform(id="sf", responses=[])]
        assert issues[0].code == "TR202"
        assert issues[0].details == {"chunk_id": "c1"}

    def test_non_object_chunk(self):
        issues = []
        assert extract_subforms(["text"], issues) == [Subform(id=None, responses=[])]
        assert issues[0].severity == Severity.WARNING

    def test_variables_are_distinct_in_first_seen_order(self):
        subforms = [
            Subform(id="a", responses=[{"id": "v2"}, {"id": "v1"}]),
            Subform(id="b", responses=[{"id": "v1"}, {"value": "no id"}, {"id": "v3"}]),
        ]
        assert extract_variables_from_subforms(subforms) == ["v2", "v1", "v3"]


class TestParseLastState:
    def test_flat_object(self):
        assert parse_last_state('{"key1":"value1","key2":123}') == [
            LastStateEntry(key="key1", value="value1"),
            LastStateEntry(key="key2", value="123"),
        ]

    def test_scalar_values_are_rendered_as_text(self):
        entries = parse_last_state('{"done": true, "missing": null, "ratio": 0.5}')
        assert [e.value for e in entries] == ["true", "null", "0.5"]

    @pytest.mark.parametrize("value", ["", "   ", None, 5, "[1, 2]", '"text"', "{bad json"])
    def test_anything_else_yields_empty_list(self, value):
        assert parse_last_state(value) == []

    def test_invalid_json_is_reported(self):
        issues = []
        parse_last_state("{bad json", issues)
        assert [i.code for i in issues] == ["TR203"]


class TestLogEntrySplitting:
    def test_booklet_entry(self):
        assert split_booklet_log_entry('CONTROLLER : "RUNNING"') == ("CONTROLLER", "RUNNING")

    def test_booklet_entry_without_value(self):
        assert split_booklet_log_entry("FOCUS") == ("FOCUS", "")

    def test_booklet_entry_uses_first_two_parts(self):
        assert split_booklet_log_entry("A : b : c") == ("A", "b")

    def test_unit_entry(self):
        assert split_unit_log_entry('PLAYER = "RUNNING"') == ("PLAYER", "RUNNING")

    def test_unit_entry_with_empty_key(self):
        assert split_unit_log_entry(" = x") == ("UNKNOWN", "x")

    @pytest.mark.parametrize("value", ["no separator", None, 3])
    def test_invalid_unit_entries(self, value):
        assert split_unit_log_entry(value) is None


class TestLoadComplete:
    def test_full_entry(self):
        parsed = parse_load_complete_log(
            "{browserVersion:128,browserName:Firefox,osName:Linux,device:desktop,"
            "screenSizeWidth:1920,screenSizeHeight:1080,loadTime:500}"
        )
        assert parsed == {
            "browserVersion": "128",
            "browserName": "Firefox",
            "osName": "Linux",
            "device": "desktop",
            "screenSizeWidth": 1920,
            "screenSizeHeight": 1080,
            "loadTime": 500,
        }

    def test_missing_fields_get_defaults(self):
        parsed = parse_load_complete_log("{browserName:Chrome}")
        assert parsed["browserName"] == "Chrome"
        assert parsed["osName"] == "Unknown"
        assert parsed["screenSizeWidth"] == 0
        assert parsed["loadTime"] == 0

    def test_malformed_string_returns_defaults(self):
        parsed = parse_load_complete_log("garbage")
        assert parsed["browserName"] == "Unknown"
        assert parsed["loadTime"] == 0

    def test_non_string_returns_none(self):
        assert parse_load_complete_log(None) is None
        assert parse_load_complete_log({"browserName": "Firefox"}) is None

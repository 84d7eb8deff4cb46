"""Tests for the import pipeline: hierarchy building, upload stats and scoping."""

import copy
import json

import pytest

from testresults.config import ImportConfig
from testresults.models import Booklet, Person, Subform, Unit
from testresults.pipeline import (
    build_persons_from_logs,
    build_persons_from_responses,
    collect_upload_stats,
    filter_imported_persons,
    import_results,
    person_stats_key,
    split_log_rows,
)
from testresults.validation import StructuralValidationError


def _responses(*entries, subform=None):
    chunk = {"id": "c1", "responseType": "IQB-Standard", "ts": 1, "content": json.dumps(list(entries))}
    if subform is not None:
        chunk["subForm"] = subform
    return json.dumps([chunk])


def _response_row(group, login, booklet, unit, responses="[]"):
    return {
        "groupname": group,
        "loginname": login,
        "code": "c",
        "bookletname": booklet,
        "unitname": unit,
        "responses": responses,
        "laststate": "{}",
    }


def _log_row(login, booklet, unit, logentry, timestamp="100"):
    return {
        "groupname": "G",
        "loginname": login,
        "code": "c",
        "bookletname": booklet,
        "unitname": unit,
        "logentry": logentry,
        "timestamp": timestamp,
    }


@pytest.fixture
def response_rows():
    return [
        _response_row("G1", "u1", "B1", "U1", _responses({"id": "v1", "status": "VALUE_CHANGED"})),
        _response_row("G1", "u1", "B1", "U2", _responses({"id": "v2", "status": "DISPLAYED"})),
        _response_row("G2", "u2", "B2", "U1", _responses({"id": "v1", "status": "NOT_REACHED"}, subform="sf")),
    ]


@pytest.fixture
def log_rows():
    return [
        _log_row("u1", "B1", "", "LOADCOMPLETE : {browserName:Firefox,browserVersion:128,osName:Linux}"),
        _log_row("u1", "B1", "", "CONTROLLER : RUNNING"),
        _log_row("u1", "B1", "U1", "PLAYER = RUNNING", timestamp="101"),
        _log_row("u1", "B2", "U5", "PLAYER = PAUSED", timestamp="102"),
        _log_row("u2", "B1", "U1", "PLAYER = RUNNING", timestamp="103"),
    ]


class TestSplitLogRows:
    def test_empty_unit_name_marks_booklet_log(self, log_rows):
        booklet_rows, unit_rows = split_log_rows(log_rows)
        assert len(booklet_rows) == 2
        assert len(unit_rows) == 3
        assert all(row["unitname"] == "" for row in booklet_rows)


class TestBuildPersons:
    def test_responses_hierarchy(self, response_rows):
        persons = build_persons_from_responses(response_rows, 1)

        assert [p.login for p in persons] == ["u1", "u2"]
        assert [b.id for b in persons[0].booklets] == ["B1"]
        assert [u.id for u in persons[0].booklets[0].units] == ["U1", "U2"]
        assert [b.id for b in persons[1].booklets] == ["B2"]
        assert persons[1].booklets[0].units[0].subforms[0].id == "sf"

    def test_logs_hierarchy(self, log_rows):
        persons = build_persons_from_logs(log_rows, 1)
        first, second = persons

        b1 = first.get_booklet("B1")
        assert [log.key for log in b1.logs] == ["CONTROLLER"]
        assert b1.sessions[0].browser == "Firefox 128"
        assert [(u.id, [log.key for log in u.logs]) for u in b1.units] == [("U1", ["PLAYER"])]

        b2 = first.get_booklet("B2")
        assert b2.logs == []
        assert [u.id for u in b2.units] == ["U5"]

        assert [b.id for b in second.booklets] == ["B1"]
        assert second.get_booklet("B1").logs == []
        assert [log.ts for log in second.get_booklet("B1").units[0].logs] == ["103"]

    def test_unit_logs_do_not_leak_between_persons(self, log_rows):
        first = build_persons_from_logs(log_rows, 1)[0]
        logs = [log.ts for unit in first.get_booklet("B1").units for log in unit.logs]
        assert logs == ["101"]

    def test_input_rows_are_not_modified(self, response_rows, log_rows):
        before = copy.deepcopy((response_rows, log_rows))
        build_persons_from_responses(response_rows, 1)
        build_persons_from_logs(log_rows, 1)
        assert (response_rows, log_rows) == before


class TestUploadStats:
    def test_response_aggregates(self, response_rows):
        stats, status_counts, log_metrics = collect_upload_stats(response_rows, "responses")

        assert stats.to_dict() == {
            "testPersons": 2,
            "testGroups": 2,
            "uniqueBooklets": 2,
            "uniqueUnits": 2,
            "uniqueResponses": 3,
        }
        assert status_counts == {"VALUE_CHANGED": 1, "DISPLAYED": 1, "NOT_REACHED": 1}
        assert log_metrics is None

    def test_loose_mode_ignores_group(self):
        rows = [_response_row("G1", "u1", "B1", "U1"), _response_row("G2", "u1", "B1", "U1")]
        strict, _, _ = collect_upload_stats(rows, "responses", "strict")
        loose, _, _ = collect_upload_stats(rows, "responses", "loose")
        assert len(strict.persons) == 2
        assert len(loose.persons) == 1

    def test_person_stats_key(self):
        row = {"groupname": "G", "loginname": "u", "code": "c"}
        assert person_stats_key(row) == "G@@u@@c"
        assert person_stats_key(row, "loose") == "u@@c"

    def test_missing_and_unknown_statuses_count_as_invalid(self):
        issues = []
        rows = [_response_row("G", "u", "B", "U", _responses({"id": "v1"}, {"id": "v2", "status": "BOGUS"}))]
        _, status_counts, _ = collect_upload_stats(rows, "responses", issues=issues)
        assert status_counts == {"INVALID": 2}
        assert [i.code for i in issues] == ["TR302", "TR303"]

    def test_missing_identity_is_reported(self):
        issues = []
        rows = [{"loginname": "u", "bookletname": "B", "unitname": "U", "responses": "[]"}]
        stats, _, _ = collect_upload_stats(rows, "responses", issues=issues)
        assert stats.persons == {"@@u@@"}
        assert issues[0].code == "TR301"

    def test_log_metrics(self, log_rows):
        _, status_counts, log_metrics = collect_upload_stats(log_rows, "logs")
        assert status_counts == {}
        assert log_metrics.to_dict() == {
            "bookletsTotal": 2,
            "bookletsWithLogs": 1,
            "unitsTotal": 2,
            "unitsWithLogs": 2,
        }


@pytest.fixture
def persons():
    unit_a = Unit(id="U1", alias="ALIAS1", subforms=[
        Subform(id="", responses=[{"id": "v1"}, {"id": "v2"}]),
        Subform(id="sf", responses=[{"id": "v1"}]),
    ])
    unit_b = Unit(id="U2", subforms=[Subform(id="", responses=[{"id": "v3"}])])
    return [
        Person(workspace_id=1, group="G1", login="u1", code="c",
               booklets=[Booklet(id="B1", units=[unit_a, unit_b]), Booklet(id="B2", units=[unit_b])]),
        Person(workspace_id=1, group="G2", login="u2", code="c",
               booklets=[Booklet(id="B2", units=[unit_b])]),
    ]


class TestFilterImportedPersons:
    @pytest.mark.parametrize("scope", ["person", "workspace"])
    def test_broad_scopes_keep_everything(self, persons, scope):
        assert filter_imported_persons(persons, scope) == persons

    def test_group_scope(self, persons):
        result = filter_imported_persons(persons, "group", {"groupName": "G2"})
        assert [p.login for p in result] == ["u2"]

    def test_booklet_scope(self, persons):
        result = filter_imported_persons(persons, "booklet", {"bookletName": "B1"})
        assert [p.login for p in result] == ["u1"]
        assert [b.id for b in result[0].booklets] == ["B1"]

    def test_unit_scope_matches_alias(self, persons):
        result = filter_imported_persons(persons, "unit", {"unitNameOrAlias": "ALIAS1"})
        assert len(result) == 1
        assert [u.id for u in result[0].booklets[0].units] == ["U1"]

    def test_response_scope(self, persons):
        result = filter_imported_persons(persons, "response", {"variableId": "v1", "subform": ""})
        unit = result[0].booklets[0].units[0]
        assert unit.subforms[0].responses == [{"id": "v1"}]
        assert unit.subforms[1].responses == []

    @pytest.mark.parametrize(
        "scope,filters",
        [("group", {}), ("booklet", {"bookletName": " "}), ("unit", {}), ("response", {"variableId": "v1"})],
    )
    def test_blank_filter_yields_nothing(self, persons, scope, filters):
        assert filter_imported_persons(persons, scope, filters) == []

    def test_input_is_not_modified(self, persons):
        snapshot = copy.deepcopy(persons)
        filter_imported_persons(persons, "response", {"variableId": "v1", "subform": "sf"})
        assert persons == snapshot


class TestImportResults:
    def test_responses_import(self, response_rows):
        result = import_results(response_rows, "responses", 5, file_name="responses.csv")
        assert [p.workspace_id for p in result.persons] == [5, 5]
        assert result.stats.to_dict()["uniqueResponses"] == 3
        assert result.issues == []
        assert result.to_dict()["logMetrics"] is None

    def test_scope_from_config(self, response_rows):
        config = ImportConfig(scope="group", scope_filters={"groupName": "G1"})
        result = import_results(response_rows, "responses", 1, config=config)
        assert [p.group for p in result.persons] == ["G1"]
        assert result.stats.to_dict()["testPersons"] == 2

    def test_issues_carry_file_name(self):
        rows = [_response_row("G", "u", "B", "U", _responses({"id": "v1"}))]
        result = import_results(rows, "responses", 1, file_name="upload.csv")
        assert result.issues
        assert all(issue.file_name == "upload.csv" for issue in result.issues)

    def test_logs_import(self, log_rows):
        result = import_results(log_rows, "logs", 1)
        assert len(result.persons) == 2
        assert result.log_metrics is not None

    @pytest.mark.parametrize(
        "rows,result_type,workspace_id,field",
        [
            ([], "responses", 0, "workspace_id"),
            ("rows", "responses", 1, "rows"),
            ([], "booklets", 1, "result_type"),
        ],
    )
    def test_invalid_arguments(self, rows, result_type, workspace_id, field):
        with pytest.raises(StructuralValidationError) as exc_info:
            import_results(rows, result_type, workspace_id)
        assert exc_info.value.field == field

"""
Import pipeline: from decoded export rows to the rebuilt person hierarchy.

Chains the assemblers in the order the hierarchy needs them:

- responses: person list -> booklets -> units
- logs: person list -> booklet logs and sessions -> unit logs per booklet

and computes the expected aggregates (persons, groups, booklets, units,
responses, response status counts) used to check an upload against what was
actually stored. No file or database access happens here.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any, Optional, Sequence

from .assemblers import (
    assign_booklet_logs_to_person,
    assign_booklets_to_person,
    assign_unit_logs_to_booklet,
    assign_units_to_booklet_and_person,
    create_person_list,
)
from .assemblers.matching import row_person_key
from .config import ImportConfig
from .issues import Issue, report, warning
from .models import Person
from .validation import StructuralValidationError, validate_array, validate_workspace_id

logger = logging.getLogger(__name__)

RESULT_TYPES = ("responses", "logs")

RESPONSE_STATUSES = (
    "UNSET",
    "NOT_REACHED",
    "DISPLAYED",
    "VALUE_CHANGED",
    "PARTLY_DISPLAYED",
)
INVALID_STATUS = "INVALID"


@dataclass
class UploadStats:
    """Distinct entities seen in the uploaded rows."""

    persons: set[str] = field(default_factory=set)
    groups: set[str] = field(default_factory=set)
    booklets: set[str] = field(default_factory=set)
    units: set[str] = field(default_factory=set)
    responses: set[str] = field(default_factory=set)

    def to_dict(self) -> dict[str, int]:
        return {
            "testPersons": len(self.persons),
            "testGroups": len(self.groups),
            "uniqueBooklets": len(self.booklets),
            "uniqueUnits": len(self.units),
            "uniqueResponses": len(self.responses),
        }


@dataclass
class LogMetrics:
    """Coverage of booklets and units by log rows."""

    all_booklets: set[str] = field(default_factory=set)
    booklets_with_logs: set[str] = field(default_factory=set)
    all_units: set[str] = field(default_factory=set)
    units_with_logs: set[str] = field(default_factory=set)

    def to_dict(self) -> dict[str, int]:
        return {
            "bookletsTotal": len(self.all_booklets),
            "bookletsWithLogs": len(self.booklets_with_logs),
            "unitsTotal": len(self.all_units),
            "unitsWithLogs": len(self.units_with_logs),
        }


@dataclass
class ImportResult:
    persons: list[Person]
    stats: UploadStats
    status_counts: dict[str, int] = field(default_factory=dict)
    log_metrics: Optional[LogMetrics] = None
    issues: list[Issue] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "persons": [person.to_dict() for person in self.persons],
            "stats": self.stats.to_dict(),
            "statusCounts": dict(self.status_counts),
            "logMetrics": self.log_metrics.to_dict() if self.log_metrics else None,
            "issues": [issue.to_dict() for issue in self.issues],
        }


# =============================================================================
# ROW GROUPING
# =============================================================================


def split_log_rows(rows: Sequence[Mapping[str, Any]]) -> tuple[list, list]:
    """Split log rows into booklet logs (empty unit name) and unit logs."""
    booklet_rows: list = []
    unit_rows: list = []
    for row in rows:
        if isinstance(row, Mapping) and row.get("unitname") == "":
            booklet_rows.append(row)
        else:
            unit_rows.append(row)
    return booklet_rows, unit_rows


def _group_rows_by_person(rows: Sequence[Any]) -> dict[tuple, list]:
    """Group rows by their exact (groupname, loginname, code) values."""
    grouped: dict[tuple, list] = {}
    for row in rows:
        if not isinstance(row, Mapping):
            continue
        key = (row.get("groupname"), row.get("loginname"), row.get("code"))
        try:
            grouped.setdefault(key, []).append(row)
        except TypeError:
            logger.warning(f"Skipping row with unhashable identity fields: {key!r}")
    return grouped


def _rows_for(person: Person, grouped: dict[tuple, list]) -> list:
    return grouped.get(person.key, [])


# =============================================================================
# HIERARCHY BUILDING
# =============================================================================


def build_persons_from_responses(
    rows: Sequence[Mapping[str, Any]],
    workspace_id: int,
    issues: Optional[list[Issue]] = None,
) -> list[Person]:
    """Rebuild persons with booklets and units from response rows."""
    grouped = _group_rows_by_person(rows)
    persons = []
    for person in create_person_list(rows, workspace_id, issues):
        person_rows = _rows_for(person, grouped)
        person = assign_booklets_to_person(person, person_rows, issues)
        person = assign_units_to_booklet_and_person(person, person_rows, issues)
        persons.append(person)
    return persons


def build_persons_from_logs(
    rows: Sequence[Mapping[str, Any]],
    workspace_id: int,
    issues: Optional[list[Issue]] = None,
) -> list[Person]:
    """
    Rebuild persons with booklet logs, sessions and unit logs from log rows.

    Booklet rows (empty unit name) feed the booklet logs; booklets that only
    appear in unit rows are added afterwards so their unit logs have a home.
    """
    booklet_rows, unit_rows = split_log_rows(rows)
    grouped_booklet_rows = _group_rows_by_person(booklet_rows)
    grouped_unit_rows = _group_rows_by_person(unit_rows)

    persons = []
    for person in create_person_list(rows, workspace_id, issues):
        person_unit_rows = _rows_for(person, grouped_unit_rows)
        person = assign_booklet_logs_to_person(
            person, _rows_for(person, grouped_booklet_rows), issues
        )
        person = assign_booklets_to_person(person, person_unit_rows, issues)
        booklets = [
            assign_unit_logs_to_booklet(booklet, person_unit_rows, issues)
            for booklet in person.booklets
        ]
        persons.append(replace(person, booklets=booklets))
    return persons


# =============================================================================
# UPLOAD STATISTICS
# =============================================================================


def person_stats_key(row: Mapping[str, Any], person_match_mode: str = "strict") -> str:
    group, login, code = row_person_key(row)
    if person_match_mode == "loose":
        return f"{login}@@{code}"
    return f"{group}@@{login}@@{code}"


def _count_response_statuses(
    row: Mapping[str, Any],
    row_index: int,
    person_key: str,
    stats: UploadStats,
    status_counts: dict[str, int],
    issues: Optional[list[Issue]],
) -> None:
    booklet_name = row.get("bookletname") or ""
    unit_name = row.get("unitname") or ""

    raw = row.get("responses")
    try:
        chunks = json.loads(raw) if isinstance(raw, str) else raw
    except ValueError:
        return
    if not isinstance(chunks, list):
        return

    for chunk in chunks:
        if not isinstance(chunk, Mapping):
            continue
        subform = chunk.get("subForm") or ""
        content = chunk.get("content")
        if not isinstance(content, str) or not content:
            continue
        try:
            entries = json.loads(content)
        except ValueError:
            continue
        if not isinstance(entries, list):
            continue

        for entry in entries:
            response_id = entry.get("id") if isinstance(entry, Mapping) else None
            if not response_id:
                continue
            unique_key = f"{person_key}@@{booklet_name}@@{unit_name}@@{subform}@@{response_id}"
            stats.responses.add(unique_key)

            status = entry.get("status")
            if not status:
                report(
                    issues,
                    warning(
                        "TR302",
                        f"Missing status (defaulting to {INVALID_STATUS}) in response for {unique_key}",
                        row_index=row_index,
                        category="missing_status",
                    ),
                )
                status = INVALID_STATUS
            elif status not in RESPONSE_STATUSES:
                report(
                    issues,
                    warning(
                        "TR303",
                        f"Invalid status '{status}' (defaulting to {INVALID_STATUS}) in response for {unique_key}",
                        row_index=row_index,
                        category="invalid_status",
                    ),
                )
                status = INVALID_STATUS

            status_counts[status] = status_counts.get(status, 0) + 1


def collect_upload_stats(
    rows: Sequence[Mapping[str, Any]],
    result_type: str,
    person_match_mode: str = "strict",
    issues: Optional[list[Issue]] = None,
) -> tuple[UploadStats, dict[str, int], Optional[LogMetrics]]:
    """
    Compute the expected aggregates of an upload.

    Returns:
        (stats, status_counts, log_metrics); status_counts is only filled for
        response rows, log_metrics only for log rows
    """
    stats = UploadStats()
    status_counts: dict[str, int] = {}
    log_metrics = LogMetrics() if result_type == "logs" else None

    for index, row in enumerate(rows):
        if not isinstance(row, Mapping):
            continue

        group, login, code = row_person_key(row)
        person_key = person_stats_key(row, person_match_mode)
        booklet_name = row.get("bookletname") or ""
        unit_name = row.get("unitname") or ""

        stats.persons.add(person_key)
        stats.groups.add(group)
        if booklet_name:
            stats.booklets.add(booklet_name)
        if unit_name:
            stats.units.add(unit_name)

        if not group or not login or not code:
            report(issues, warning("TR301", row_index=index))

        if log_metrics is not None:
            if booklet_name:
                log_metrics.all_booklets.add(booklet_name)
                if row.get("unitname") == "":
                    log_metrics.booklets_with_logs.add(booklet_name)
                elif unit_name:
                    unit_key = f"{booklet_name}@@@{unit_name}"
                    log_metrics.all_units.add(unit_key)
                    log_metrics.units_with_logs.add(unit_key)
        else:
            _count_response_statuses(row, index, person_key, stats, status_counts, issues)

    return stats, status_counts, log_metrics


# =============================================================================
# SCOPE FILTERING
# =============================================================================


def _filter_units(units: list, scope: str, unit_name: str, variable_id: str, subform: Optional[str]) -> list:
    kept = []
    for unit in units:
        if scope == "unit" and (unit.id or "") != unit_name and (unit.alias or "") != unit_name:
            continue
        if scope == "response":
            subforms = [
                replace(
                    sf,
                    responses=[
                        r for r in sf.responses
                        if isinstance(r, Mapping) and (r.get("id") or "") == variable_id
                    ]
                    if (sf.id or "") == subform
                    else [],
                )
                for sf in unit.subforms
            ]
            if not any(sf.responses for sf in subforms):
                continue
            unit = replace(unit, subforms=subforms)
        kept.append(unit)
    return kept


def filter_imported_persons(
    persons: list[Person],
    scope: str = "person",
    filters: Optional[Mapping[str, Any]] = None,
) -> list[Person]:
    """
    Restrict rebuilt persons to one import scope.

    Scopes "person" and "workspace" keep everything. "group" keeps persons of
    one group; "booklet", "unit" and "response" narrow the hierarchy and drop
    booklets and persons left empty. A scope whose filter value is blank
    yields [].
    """
    if not persons:
        return []

    filters = filters or {}
    group_name = str(filters.get("groupName") or "").strip()
    booklet_name = str(filters.get("bookletName") or "").strip()
    unit_name = str(filters.get("unitNameOrAlias") or "").strip()
    variable_id = str(filters.get("variableId") or "").strip()
    subform = filters.get("subform")
    if subform is not None:
        subform = str(subform).strip()

    filtered = list(persons)

    if scope == "group":
        if not group_name:
            return []
        filtered = [p for p in filtered if (p.group or "") == group_name]

    if scope in ("booklet", "unit", "response"):
        if scope == "booklet" and not booklet_name:
            return []
        if scope == "unit" and not unit_name:
            return []
        if scope == "response" and (not variable_id or subform is None):
            return []

        narrowed = []
        for person in filtered:
            booklets = []
            for booklet in person.booklets:
                if scope == "booklet" and (booklet.id or "") != booklet_name:
                    continue
                units = _filter_units(booklet.units, scope, unit_name, variable_id, subform)
                if units:
                    booklets.append(replace(booklet, units=units))
            if booklets:
                narrowed.append(replace(person, booklets=booklets))
        filtered = narrowed

    return filtered


# =============================================================================
# ENTRY POINT
# =============================================================================


def import_results(
    rows: Sequence[Mapping[str, Any]],
    result_type: str,
    workspace_id: int,
    config: Optional[ImportConfig] = None,
    file_name: Optional[str] = None,
) -> ImportResult:
    """
    Rebuild and scope the persons contained in one upload.

    Args:
        rows: Decoded rows of a responses or logs export
        result_type: "responses" or "logs"
        workspace_id: Positive workspace identifier
        config: Import configuration (defaults if omitted)
        file_name: Name of the uploaded file, attached to every issue

    Raises:
        StructuralValidationError: if workspace_id, rows or result_type is invalid
    """
    validate_workspace_id(workspace_id)
    validate_array(rows, "rows")
    if result_type not in RESULT_TYPES:
        raise StructuralValidationError(
            f"Invalid result type: {result_type}. Expected one of: {', '.join(RESULT_TYPES)}.",
            field="result_type",
            value=result_type,
        )

    config = config or ImportConfig()
    issues: list[Issue] = []

    stats, status_counts, log_metrics = collect_upload_stats(
        rows, result_type, config.person_match_mode, issues
    )

    if result_type == "responses":
        persons = build_persons_from_responses(rows, workspace_id, issues)
    else:
        persons = build_persons_from_logs(rows, workspace_id, issues)

    persons = filter_imported_persons(persons, config.scope, config.scope_filters)

    if file_name:
        for issue in issues:
            if issue.file_name is None:
                issue.file_name = file_name

    logger.info(
        f"Imported {len(persons)} persons from {len(rows)} {result_type} rows "
        f"({len(issues)} issues)"
    )
    return ImportResult(
        persons=persons,
        stats=stats,
        status_counts=status_counts,
        log_metrics=log_metrics,
        issues=issues,
    )

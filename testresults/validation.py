"""
Structural validation for import inputs.

Every ``validate_*`` function either returns normally or raises
StructuralValidationError with a message naming the offending field or value.
``validate_load_complete_log`` is the only non-raising check.

Inputs may be plain mappings (decoded rows, JSON documents) or the dataclasses
from ``testresults.models``.
"""

from __future__ import annotations

import dataclasses
import math
from collections.abc import Mapping
from typing import Any

from jsonschema import Draft7Validator


ROW_FIELDS = ("bookletname", "unitname")

ROW_SCHEMA = {
    "type": "object",
    "properties": {
        "bookletname": {"type": "string"},
        "unitname": {"type": "string"},
    },
    "required": list(ROW_FIELDS),
}

_ROW_VALIDATOR = Draft7Validator(ROW_SCHEMA)


class StructuralValidationError(ValueError):
    """Raised when an input violates the structural contract of an operation."""

    def __init__(self, message: str, field: str | None = None, value: Any = None):
        super().__init__(message)
        self.field = field
        self.value = value


def _is_object(value: Any) -> bool:
    if isinstance(value, Mapping):
        return True
    return dataclasses.is_dataclass(value) and not isinstance(value, type)


def _is_array(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def _get(obj: Any, name: str) -> Any:
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name, None)


def validate_workspace_id(workspace_id: Any) -> None:
    """Validate that a workspace ID is a positive number."""
    if (
        isinstance(workspace_id, bool)
        or not isinstance(workspace_id, (int, float))
        or math.isnan(workspace_id)
        or workspace_id <= 0
    ):
        raise StructuralValidationError(
            f"Invalid workspace ID: {workspace_id}. Workspace ID must be a positive number.",
            field="workspace_id",
            value=workspace_id,
        )


def validate_person_list(person_list: Any) -> None:
    """Validate that a person list is a non-empty array."""
    if not _is_array(person_list):
        raise StructuralValidationError(
            "Invalid person list: must be an array.", field="person_list"
        )
    if len(person_list) == 0:
        raise StructuralValidationError(
            "Invalid person list: cannot be empty.", field="person_list"
        )


def validate_person_data(person: Any) -> None:
    """Validate the structure of a person and its workspace ID."""
    if person is None or not _is_object(person):
        raise StructuralValidationError(
            "Invalid person data: person must be an object.", field="person"
        )

    workspace_id = _get(person, "workspace_id")
    if workspace_id is None:
        raise StructuralValidationError(
            "Invalid person data: workspace_id is required.", field="workspace_id"
        )

    validate_workspace_id(workspace_id)


def validate_booklet(booklet: Any) -> None:
    """Validate that a booklet has an id and a units array."""
    if booklet is None or not _is_object(booklet):
        raise StructuralValidationError(
            "Invalid booklet: booklet must be an object.", field="booklet"
        )

    booklet_id = _get(booklet, "id")
    if not booklet_id:
        raise StructuralValidationError(
            "Invalid booklet: booklet ID is required.", field="id"
        )

    if not _is_array(_get(booklet, "units")):
        raise StructuralValidationError(
            f"Invalid booklet structure: units must be an array for booklet {booklet_id}.",
            field="units",
            value=booklet_id,
        )


def validate_booklet_name(booklet_name: Any) -> None:
    validate_non_empty_string(booklet_name, "booklet name")


def validate_unit(unit: Any) -> None:
    """Validate that a unit is an object with an id."""
    if unit is None or not _is_object(unit):
        raise StructuralValidationError(
            "Invalid unit: unit must be an object.", field="unit"
        )

    if not _get(unit, "id"):
        raise StructuralValidationError(
            "Invalid unit: unit ID is required.", field="id"
        )


def validate_unit_name(unit_name: Any) -> None:
    validate_non_empty_string(unit_name, "unit name")


def validate_log_entry(log_entry: Any) -> None:
    """Validate a booklet log entry of the form ``KEY : VALUE``."""
    if not isinstance(log_entry, str) or log_entry.strip() == "":
        raise StructuralValidationError(
            "Invalid log entry: log entry must be a non-empty string.",
            field="logentry",
            value=log_entry,
        )

    if " : " not in log_entry:
        raise StructuralValidationError(
            f'Invalid log entry format: expected "KEY : VALUE" format, got "{log_entry}".',
            field="logentry",
            value=log_entry,
        )


def validate_load_complete_log(log_entry: Any) -> bool:
    """
    Check whether a LOADCOMPLETE value looks like ``{key:value,key:value}``.

    Returns:
        True if the entry is brace-delimited and contains at least one ':'
    """
    if not log_entry or not isinstance(log_entry, str):
        return False

    trimmed = log_entry.strip()
    if not trimmed.startswith("{") or not trimmed.endswith("}"):
        return False

    return ":" in trimmed[1:-1]


def validate_array(array: Any, field_name: str) -> None:
    if not _is_array(array):
        raise StructuralValidationError(
            f"Invalid {field_name}: must be an array.", field=field_name
        )


def validate_non_empty_string(value: Any, field_name: str) -> None:
    if not isinstance(value, str) or value.strip() == "":
        raise StructuralValidationError(
            f"Invalid {field_name}: must be a non-empty string.",
            field=field_name,
            value=value,
        )


def validate_logins(logins: Any) -> None:
    """Validate that logins is a non-empty array."""
    validate_array(logins, "logins")

    if len(logins) == 0:
        raise StructuralValidationError(
            "Invalid logins: array cannot be empty.", field="logins"
        )


def _row_error_fields(row: dict[str, Any]) -> list[str]:
    """Return the row fields that fail ROW_SCHEMA, in ROW_FIELDS order."""
    failing: set[str] = set()
    for err in _ROW_VALIDATOR.iter_errors(row):
        if err.validator == "required":
            failing.update(f for f in err.validator_value if f not in err.instance)
        elif err.path:
            failing.add(str(err.path[0]))
    return [f for f in ROW_FIELDS if f in failing]


def validate_row_structure(row: Any) -> None:
    """Validate that a row carries string ``bookletname`` and ``unitname``."""
    if not isinstance(row, Mapping):
        raise StructuralValidationError(
            "Invalid row: row must be an object.", field="row"
        )

    failing = _row_error_fields(dict(row))
    if failing:
        field_name = failing[0]
        raise StructuralValidationError(
            f"Invalid row: {field_name} must be a string.",
            field=field_name,
            value=row.get(field_name),
        )

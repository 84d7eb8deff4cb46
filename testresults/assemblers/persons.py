"""Build the deduplicated person list from raw export rows."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Optional, Sequence

from ..issues import Issue, error, report
from ..models import Person
from .matching import row_person_key

logger = logging.getLogger(__name__)


def _is_positive_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return value > 0


def create_person_list(
    rows: Sequence[Mapping[str, Any]],
    workspace_id: int,
    issues: Optional[list[Issue]] = None,
) -> list[Person]:
    """
    Build one Person per unique (groupname, loginname, code) combination.

    Missing identity fields are treated as empty strings, so rows lacking
    them still produce a person. Persons are returned in first-seen order.

    Args:
        rows: Response or log rows
        workspace_id: Positive workspace identifier stamped on every person
        issues: Optional sink for row-level issues

    Returns:
        List of persons, or [] if rows is not a list or workspace_id is invalid
    """
    if not isinstance(rows, (list, tuple)):
        logger.error("Invalid input: rows must be an array")
        return []

    if not _is_positive_number(workspace_id):
        logger.error("Invalid input: workspace_id must be a positive number")
        return []

    persons: dict[tuple[str, str, str], Person] = {}

    for index, row in enumerate(rows):
        if not isinstance(row, Mapping):
            logger.error(f"Error processing row at index {index}: row is not an object")
            report(issues, error("TR101", row_index=index))
            continue

        key = row_person_key(row)
        if key not in persons:
            group, login, code = key
            persons[key] = Person(
                workspace_id=workspace_id, group=group, login=login, code=code
            )

    if not persons:
        logger.warning("No valid persons were created from the input rows")

    return list(persons.values())

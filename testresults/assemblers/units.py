"""Attach units with parsed responses and last state to a person's booklets."""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Mapping
from typing import Any, Optional, Sequence

from ..issues import Issue, error, report
from ..models import Chunk, LastStateEntry, Person, Subform, Unit
from ..parsing import (
    extract_subforms,
    extract_variables_from_subforms,
    parse_last_state,
    parse_responses,
)
from .matching import does_row_match_person

logger = logging.getLogger(__name__)


def summarize_chunks(chunks: list, variables: list[str]) -> Chunk:
    """Summarize a response payload using its first chunk and all variable ids."""
    first = chunks[0] if chunks and isinstance(chunks[0], Mapping) else {}
    return Chunk(
        id=first.get("id") or "",
        type=first.get("responseType") or "",
        ts=first.get("ts") or 0,
        variables=list(variables),
    )


def create_unit(
    row: Mapping[str, Any],
    laststate: list[LastStateEntry],
    subforms: list[Subform],
    variables: list[str],
    chunks: list,
) -> Unit:
    unit_name = row.get("unitname")
    return Unit(
        id=unit_name,
        alias=unit_name,
        laststate=laststate,
        subforms=subforms,
        chunks=[summarize_chunks(chunks, variables)],
        logs=[],
    )


def assign_units_to_booklet_and_person(
    person: Person,
    rows: Sequence[Mapping[str, Any]],
    issues: Optional[list[Issue]] = None,
) -> Person:
    """
    Return a copy of ``person`` with one Unit per matching response row.

    Rows whose booklet is not among the person's booklets are skipped; call
    assign_booklets_to_person first.
    """
    booklets = list(person.booklets)
    positions = {booklet.id: i for i, booklet in reversed(list(enumerate(booklets)))}

    for index, row in enumerate(rows):
        try:
            if not does_row_match_person(row, person):
                continue

            position = positions.get(row.get("bookletname"))
            if position is None:
                continue

            row_issues: list[Issue] = []
            chunks = parse_responses(row.get("responses"), row_issues)
            subforms = extract_subforms(chunks, row_issues)
            variables = extract_variables_from_subforms(subforms)
            laststate = parse_last_state(row.get("laststate"), row_issues)
            for issue in row_issues:
                issue.row_index = index
                report(issues, issue)

            unit = create_unit(row, laststate, subforms, variables, chunks)
            booklet = booklets[position]
            booklets[position] = dataclasses.replace(booklet, units=[*booklet.units, unit])
        except Exception as e:
            logger.error(f"Error processing row for person {person.login}: {e}", exc_info=True)
            report(issues, error("TR901", f"Error processing response row: {e}", row_index=index))

    return dataclasses.replace(person, booklets=booklets)

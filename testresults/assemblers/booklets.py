"""Attach booklets referenced by response rows to a person."""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Mapping
from typing import Any, Optional, Sequence

from ..issues import Issue, error, report, warning
from ..models import Booklet, Person
from .matching import describe_row, does_row_match_person

logger = logging.getLogger(__name__)


def assign_booklets_to_person(
    person: Person,
    rows: Sequence[Mapping[str, Any]],
    issues: Optional[list[Issue]] = None,
) -> Person:
    """
    Return a copy of ``person`` with one empty Booklet per new booklet name.

    Booklets the person already has are kept; booklet names first seen in
    the matching rows are appended in row order. Rows without a booklet name
    are skipped with a warning.
    """
    booklets = list(person.booklets)
    seen = {booklet.id for booklet in booklets}
    added = 0

    for index, row in enumerate(rows):
        try:
            if not does_row_match_person(row, person):
                continue

            booklet_name = row.get("bookletname")
            if not booklet_name:
                logger.warning(f"Missing booklet name in row {index}: {describe_row(row)}")
                report(issues, warning("TR102", row_index=index))
                continue

            if booklet_name not in seen:
                seen.add(booklet_name)
                booklets.append(Booklet(id=booklet_name))
                added += 1
        except Exception as e:
            logger.error(f"Error processing a row {describe_row(row)}: {e}")
            report(issues, error("TR901", f"Error processing row: {e}", row_index=index))

    logger.info(f"Assigned {added} booklets to person {person.login}.")
    return dataclasses.replace(person, booklets=booklets)

"""Attach booklet-level logs and LOADCOMPLETE sessions to a person."""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Mapping
from typing import Any, Optional, Sequence

from ..issues import Issue, error, report, warning
from ..models import Booklet, Log, Person, Session
from ..parsing import (
    LOAD_COMPLETE_KEY,
    parse_load_complete_log,
    split_booklet_log_entry,
    to_number,
)
from ..validation import validate_load_complete_log
from .matching import does_row_match_person

logger = logging.getLogger(__name__)


def session_from_load_complete(parsed: dict[str, Any], timestamp: Any) -> Session:
    """Build a Session from a parsed LOADCOMPLETE value."""
    ts = to_number(timestamp)
    return Session(
        browser=f"{parsed['browserName']} {parsed['browserVersion']}".strip(),
        os=parsed["osName"],
        screen=f"{parsed['screenSizeWidth']} x {parsed['screenSizeHeight']}",
        ts=ts if ts is not None else timestamp,
        load_complete_ms=parsed["loadTime"],
    )


def _copy_booklet(booklet: Booklet) -> Booklet:
    return dataclasses.replace(
        booklet,
        logs=list(booklet.logs),
        units=list(booklet.units),
        sessions=list(booklet.sessions),
    )


def assign_booklet_logs_to_person(
    person: Person,
    rows: Sequence[Mapping[str, Any]],
    issues: Optional[list[Issue]] = None,
) -> Person:
    """
    Return a copy of ``person`` whose booklets carry the logs of matching rows.

    Entries are split on " : ". LOADCOMPLETE entries become sessions, every
    other key becomes a log. The returned person holds exactly the booklets
    referenced by the matching rows, in first-seen order; a booklet the
    person already had keeps its existing content.
    """
    touched: dict[str, Booklet] = {}

    for index, row in enumerate(rows):
        try:
            if not does_row_match_person(row, person):
                continue

            booklet_name = row.get("bookletname")
            log_entry = row.get("logentry")
            timestamp = row.get("timestamp")

            if not booklet_name or not log_entry:
                logger.warning(
                    f"Skipping incomplete log entry at index {index} for person: {person.login}"
                )
                report(issues, warning("TR103", row_index=index))
                continue

            key, value = split_booklet_log_entry(str(log_entry))
            if not key:
                logger.warning(
                    f"Invalid log key detected at index {index} for person: {person.login}"
                )
                report(issues, warning("TR104", row_index=index))
                continue

            booklet = touched.get(booklet_name)
            if booklet is None:
                existing = person.get_booklet(booklet_name)
                booklet = _copy_booklet(existing) if existing else Booklet(id=booklet_name)
                touched[booklet_name] = booklet

            if key != LOAD_COMPLETE_KEY:
                booklet.logs.append(Log(ts=timestamp, key=key, parameter=value or ""))
                continue

            parsed = parse_load_complete_log(value) if value else None
            if parsed is None:
                logger.warning(
                    f"Failed to parse LOADCOMPLETE entry at index {index} for person: {person.login}"
                )
                report(issues, warning("TR105", row_index=index, details={"value": value}))
                continue

            if not validate_load_complete_log(value):
                logger.warning(
                    f"Malformed LOADCOMPLETE entry at index {index} for person: {person.login}: {value}"
                )
                report(issues, warning("TR106", row_index=index, details={"value": value}))

            booklet.sessions.append(session_from_load_complete(parsed, timestamp))
        except Exception as e:
            logger.error(
                f"Error processing log row at index {index} for person: {person.login}. "
                f"Data: {row!r}. Error: {e}"
            )
            report(issues, error("TR901", f"Error processing log row: {e}", row_index=index))

    return dataclasses.replace(person, booklets=list(touched.values()))

"""Attach unit-level logs (``KEY = VALUE`` entries) to the units of a booklet."""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Mapping
from typing import Any, Optional, Sequence

from ..issues import Issue, error, report, warning
from ..models import Booklet, Log, Unit
from ..parsing import split_unit_log_entry, to_text

logger = logging.getLogger(__name__)


def assign_unit_logs_to_booklet(
    booklet: Booklet,
    rows: Sequence[Mapping[str, Any]],
    issues: Optional[list[Issue]] = None,
) -> Booklet:
    """
    Return a copy of ``booklet`` with unit logs from the rows of that booklet.

    Logs for unit names the booklet does not know yet create a new, otherwise
    empty Unit. Existing units come first, new units follow in row order.
    The booklet is returned unchanged if it has no units list or rows is not
    a list.
    """
    if not isinstance(booklet, Booklet) or not isinstance(booklet.units, list):
        logger.error("Invalid booklet provided. Booklet must contain a valid 'units' array.")
        return booklet

    if not isinstance(rows, (list, tuple)):
        logger.error("Invalid rows provided. Expecting an array of log rows.")
        return booklet

    units: dict[str, Unit] = {}
    for unit in booklet.units:
        if isinstance(unit, Unit) and unit.id:
            units[unit.id] = dataclasses.replace(unit, logs=list(unit.logs or []))
        else:
            logger.warning("Skipping invalid unit without 'id' in booklet units.")
            report(issues, warning("TR109", details={"booklet": booklet.id}))

    for index, row in enumerate(rows):
        try:
            if (
                not isinstance(row, Mapping)
                or not isinstance(row.get("bookletname"), str)
                or not isinstance(row.get("unitname"), str)
            ):
                logger.warning(
                    f"Skipping invalid row at index {index}. Row must contain 'bookletname' and 'unitname'."
                )
                report(issues, warning("TR108", row_index=index))
                continue

            if booklet.id != row["bookletname"]:
                logger.debug(f"Row {index} belongs to booklet {row['bookletname']}, not {booklet.id}")
                continue

            parts = split_unit_log_entry(row.get("logentry"))
            if parts is None:
                logger.warning(
                    f"Skipping invalid log entry in row at index {index}: {row.get('logentry')}"
                )
                report(issues, warning("TR107", row_index=index, details={"logentry": row.get("logentry")}))
                continue

            if row.get("timestamp") is None:
                logger.warning(f"Skipping log row at index {index} without timestamp")
                report(issues, warning("TR110", row_index=index))
                continue

            key, parameter = parts
            log = Log(ts=to_text(row["timestamp"]), key=key, parameter=parameter or "")

            unit_name = row["unitname"]
            existing = units.get(unit_name)
            if existing is not None:
                existing.logs.append(log)
            else:
                units[unit_name] = Unit(id=unit_name, alias="", logs=[log])
        except Exception as e:
            logger.error(f"Error processing row at index {index}: {e}")
            report(issues, error("TR901", f"Error processing unit log row: {e}", row_index=index))

    return dataclasses.replace(booklet, units=list(units.values()))

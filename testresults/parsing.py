"""
Parsers for the free-text and JSON payloads found in export rows.

- Response payloads: ``responses`` column -> chunks -> subforms -> variable ids
- Last state: flat JSON object -> key/value entries
- Booklet log entries: ``KEY : VALUE``
- Unit log entries: ``KEY = VALUE``
- LOADCOMPLETE values: ``{browserName:Firefox,browserVersion:128,...}``

The parsers never raise on bad payloads. They log, report an Issue when a
sink is supplied, and return the documented default.
"""

from __future__ import annotations

import json
import logging
import math
import re
from typing import Any, Optional

from .issues import Issue, report, warning
from .models import LastStateEntry, Subform

logger = logging.getLogger(__name__)

LOAD_COMPLETE_KEY = "LOADCOMPLETE"
BOOKLET_LOG_SEPARATOR = " : "
UNIT_LOG_SEPARATOR = "="

LOAD_COMPLETE_TEXT_FIELDS = ("browserVersion", "browserName", "osName", "device")
LOAD_COMPLETE_NUMERIC_FIELDS = ("screenSizeWidth", "screenSizeHeight", "loadTime")

_NUMBER_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")

_MISSING = object()


# =============================================================================
# VALUE HELPERS
# =============================================================================


def to_number(value: Any) -> Optional[int | float]:
    """
    Convert a numeric-looking value to a number.

    Integral results are returned as int. Blank strings count as 0; anything
    that is not a plain decimal literal returns None.
    """
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return None if isinstance(value, float) and math.isnan(value) else value
    if not isinstance(value, str):
        return None
    text = value.strip()
    if text == "":
        return 0
    if not _NUMBER_RE.match(text):
        return None
    number = float(text)
    if math.isinf(number):
        return None
    return int(number) if number.is_integer() else number


def to_text(value: Any) -> str:
    """Render a JSON value as text (``true``, ``null``, ``3`` rather than ``3.0``)."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    return str(value)


def _loads_json(text: str) -> tuple[Any, Optional[str]]:
    """Parse JSON text, returning ``(value, None)`` or ``(_MISSING, error)``."""
    try:
        return json.loads(text), None
    except (TypeError, ValueError) as e:
        return _MISSING, str(e)


# =============================================================================
# RESPONSE PAYLOADS
# =============================================================================


def parse_responses(responses: Any, issues: Optional[list[Issue]] = None) -> list:
    """
    Parse the ``responses`` column into a list of chunks.

    A list (or tuple) is returned unchanged. Strings are parsed as JSON;
    invalid JSON, an empty string or a non-array document yield [].
    """
    if isinstance(responses, (list, tuple)):
        return responses

    if not isinstance(responses, str):
        logger.error(f"Error parsing responses: unsupported type {type(responses).__name__}")
        report(issues, warning("TR201", f"Responses must be a JSON string or array, got {type(responses).__name__}"))
        return []

    parsed, err = _loads_json(responses)
    if parsed is _MISSING:
        logger.error(f"Error parsing responses: {err}")
        report(issues, warning("TR201", f"Malformed responses JSON: {err}"))
        return []

    if not isinstance(parsed, list):
        logger.error("Error parsing responses: JSON document is not an array")
        report(issues, warning("TR201", "Responses JSON is not an array"))
        return []

    return parsed


def extract_subforms(chunks: list, issues: Optional[list[Issue]] = None) -> list[Subform]:
    """Build one Subform per chunk from the chunk's JSON ``content``."""
    subforms: list[Subform] = []
    for chunk in chunks:
        if not isinstance(chunk, dict):
            logger.error(f"Error parsing chunk: expected an object, got {type(chunk).__name__}")
            report(issues, warning("TR202", "Chunk is not an object"))
            subforms.append(Subform(id=None, responses=[]))
            continue

        raw_content = chunk.get("content")
        if isinstance(raw_content, list):
            content, err = raw_content, None
        else:
            content, err = _loads_json(raw_content)
        if content is _MISSING or not isinstance(content, list):
            reason = err or "content is not an array"
            logger.error(f"Error parsing chunk content for chunk ID {chunk.get('id')}: {reason}")
            report(
                issues,
                warning(
                    "TR202",
                    f"Malformed content in chunk {chunk.get('id')}: {reason}",
                    details={"chunk_id": chunk.get("id")},
                ),
            )
            content = []

        subforms.append(Subform(id=chunk.get("subForm"), responses=content))
    return subforms


def extract_variables_from_subforms(subforms: list[Subform]) -> list[str]:
    """Return the distinct response ids across all subforms, in first-seen order."""
    variables: dict[str, None] = {}
    for subform in subforms:
        for response in subform.responses:
            if isinstance(response, dict) and response.get("id") is not None:
                variables.setdefault(response["id"], None)
    return list(variables)


def parse_last_state(laststate: Any, issues: Optional[list[Issue]] = None) -> list[LastStateEntry]:
    """
    Flatten a last-state JSON object into key/value entries.

    Returns [] for empty, non-string or invalid input and for JSON that is
    not an object.
    """
    if not laststate or not isinstance(laststate, str) or laststate.strip() == "":
        logger.warning("Last state is empty or invalid.")
        return []

    parsed, err = _loads_json(laststate)
    if parsed is _MISSING:
        logger.error(f"Error parsing last state: {err}")
        report(issues, warning("TR203", f"Malformed last state: {err}"))
        return []

    if not isinstance(parsed, dict):
        logger.error("Parsed last state is not a valid object.")
        report(issues, warning("TR203", "Last state JSON is not an object"))
        return []

    return [LastStateEntry(key=key, value=to_text(value)) for key, value in parsed.items()]


# =============================================================================
# LOG ENTRIES
# =============================================================================


def split_booklet_log_entry(log_entry: str) -> tuple[str, str]:
    """
    Split a ``KEY : VALUE`` booklet log entry.

    The key is trimmed; the value is trimmed and stripped of double quotes.
    Only the first two ``" : "`` separated parts are used.
    """
    parts = log_entry.split(BOOKLET_LOG_SEPARATOR)
    key = parts[0].strip()
    value = parts[1].strip().replace('"', "") if len(parts) > 1 else ""
    return key, value


def split_unit_log_entry(log_entry: Any) -> Optional[tuple[str, str]]:
    """
    Split a ``KEY = VALUE`` unit log entry.

    Returns None when the entry is not a string or has no ``=``. Empty keys
    become ``UNKNOWN``.
    """
    if not isinstance(log_entry, str):
        return None
    parts = log_entry.split(UNIT_LOG_SEPARATOR)
    if len(parts) < 2:
        return None
    key = parts[0].strip() or "UNKNOWN"
    parameter = parts[1].strip().replace('"', "")
    return key, parameter


def parse_load_complete_log(log_entry: Any) -> Optional[dict[str, Any]]:
    """
    Parse session information from a LOADCOMPLETE value.

    The outer braces are dropped, the remainder split on ',' and each pair on
    the first ':'. Unknown text fields default to "Unknown", numeric fields
    to 0.

    Returns:
        Dict with browserVersion, browserName, osName, device,
        screenSizeWidth, screenSizeHeight and loadTime, or None if the entry
        is not a string
    """
    if not isinstance(log_entry, str):
        logger.error(f"Failed to parse LOADCOMPLETE log entry: {log_entry!r} is not a string")
        return None

    values: dict[str, Any] = {}
    for pair in log_entry[1:-1].split(","):
        pieces = [piece.strip().replace("\\", "") for piece in pair.split(":")[:2]]
        key = pieces[0]
        raw = pieces[1] if len(pieces) > 1 else None
        number = to_number(raw) if raw is not None else None
        values[key] = number if number is not None else (raw or None)

    parsed: dict[str, Any] = {}
    for name in LOAD_COMPLETE_TEXT_FIELDS:
        value = values.get(name)
        parsed[name] = to_text(value) if value is not None else "Unknown"
    for name in LOAD_COMPLETE_NUMERIC_FIELDS:
        parsed[name] = to_number(values.get(name)) or 0
    return parsed

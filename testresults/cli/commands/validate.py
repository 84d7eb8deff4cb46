"""Validate command handler for the testresults CLI."""

from __future__ import annotations

from pathlib import Path

from testresults.issues import Issue, error
from testresults.reporting import format_issues
from testresults.utils.io import read_export_csv
from testresults.validation import (
    StructuralValidationError,
    validate_log_entry,
    validate_row_structure,
)


def validate_rows(rows, result_type: str, file_name: str | None = None) -> list[Issue]:
    """Run the structural checks over every row and collect the failures.

    All rows need string booklet and unit names; booklet log rows (empty
    unit name) additionally need a ``KEY : VALUE`` log entry.
    """
    issues: list[Issue] = []
    for index, row in enumerate(rows):
        try:
            validate_row_structure(row)
            if result_type == "logs" and row.get("unitname") == "":
                validate_log_entry(row.get("logentry"))
        except StructuralValidationError as exc:
            code = "TR104" if exc.field == "logentry" else "TR108"
            issues.append(error(code, str(exc), file_name=file_name, row_index=index))
    return issues


def cmd_validate(args) -> int:
    """Check the rows of an export file and print the failures."""
    if getattr(args, "responses", None):
        source, result_type = Path(args.responses), "responses"
    else:
        source, result_type = Path(args.logs), "logs"

    try:
        rows = read_export_csv(source, result_type, delimiter=args.delimiter or ";")
    except (OSError, ValueError) as exc:
        print(f"Error reading {source}: {exc}")
        return 1

    issues = validate_rows(rows, result_type, file_name=source.name)
    print(f"Checked {len(rows)} {result_type} rows in {source.name}")
    for line in format_issues(issues):
        print(line)
    return 1 if issues else 0

"""Import command handler for the testresults CLI."""

from __future__ import annotations

from pathlib import Path

from testresults.config import load_config, merge_cli_args
from testresults.issues import Severity
from testresults.models import persons_to_dicts
from testresults.pipeline import import_results
from testresults.reporting import print_import_summary
from testresults.utils.io import read_export_csv, write_json
from testresults.validation import StructuralValidationError


def _input_source(args) -> tuple[Path, str]:
    if getattr(args, "responses", None):
        return Path(args.responses), "responses"
    return Path(args.logs), "logs"


def cmd_import(args) -> int:
    """Rebuild persons from one export file, write them and print a summary."""
    config = merge_cli_args(load_config(args.config_dir), args)
    source, result_type = _input_source(args)

    try:
        rows = read_export_csv(source, result_type, delimiter=config.csv_delimiter)
    except (OSError, ValueError) as error:
        print(f"Error reading {source}: {error}")
        return 1

    try:
        result = import_results(
            rows,
            result_type,
            args.workspace_id,
            config=config,
            file_name=source.name,
        )
    except StructuralValidationError as error:
        print(f"Error: {error}")
        return 1

    if args.output:
        write_json(Path(args.output), persons_to_dicts(result.persons))
        print(f"Wrote {len(result.persons)} persons to {args.output}")

    print_import_summary(result, config.default_output_format)

    if any(issue.severity == Severity.ERROR for issue in result.issues):
        return 1
    if config.strict_mode and result.issues:
        return 1
    return 0

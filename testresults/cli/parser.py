"""Parser construction helpers for the testresults CLI."""

from __future__ import annotations

import argparse

from testresults.config import IMPORT_SCOPES, PERSON_MATCH_MODES


def build_parser() -> argparse.ArgumentParser:
    """Create the base parser."""
    parser = argparse.ArgumentParser(
        description="testresults: rebuild test-taking sessions from export files"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Show debug log output"
    )
    return parser


def _add_input_arguments(parser: argparse.ArgumentParser) -> None:
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--responses", help="Path to a responses export (CSV)")
    source.add_argument("--logs", help="Path to a logs export (CSV)")
    parser.add_argument(
        "--delimiter", help="Column delimiter of the export (default: ';')"
    )


def build_testresults_parsers() -> tuple[argparse.ArgumentParser, dict[str, argparse.ArgumentParser]]:
    """Build the full parser tree and return key parser handles for dispatch."""
    parser = build_parser()
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    parser_import = subparsers.add_parser(
        "import", help="Rebuild persons from an export file and write them as JSON"
    )
    _add_input_arguments(parser_import)
    parser_import.add_argument(
        "--workspace-id",
        dest="workspace_id",
        type=int,
        required=True,
        help="Workspace the persons belong to (positive integer)",
    )
    parser_import.add_argument(
        "--output", help="Write rebuilt persons to this JSON file"
    )
    parser_import.add_argument(
        "--config-dir",
        dest="config_dir",
        default=".",
        help="Directory containing .testresultsrc.json (default: current directory)",
    )
    parser_import.add_argument(
        "--match-mode",
        dest="match_mode",
        choices=list(PERSON_MATCH_MODES),
        help="How persons are counted in the upload statistics",
    )
    parser_import.add_argument(
        "--scope", choices=list(IMPORT_SCOPES), help="Restrict the import to one scope"
    )
    parser_import.add_argument("--group", help="Group name for --scope group")
    parser_import.add_argument("--booklet", help="Booklet id for --scope booklet")
    parser_import.add_argument("--unit", help="Unit id or alias for --scope unit")
    parser_import.add_argument("--variable", help="Variable id for --scope response")
    parser_import.add_argument("--subform", help="Subform id for --scope response")
    parser_import.add_argument(
        "--format", choices=["text", "json"], help="Summary output format"
    )
    parser_import.add_argument(
        "--strict", action="store_true", help="Exit with 1 when warnings occurred"
    )

    parser_validate = subparsers.add_parser(
        "validate", help="Check the rows of an export file without importing them"
    )
    _add_input_arguments(parser_validate)

    return parser, {"root": parser, "import": parser_import, "validate": parser_validate}

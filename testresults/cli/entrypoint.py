"""Runtime entrypoint for the testresults CLI."""

from __future__ import annotations

import logging
import sys

from testresults.cli.commands.import_results import cmd_import
from testresults.cli.commands.validate import cmd_validate
from testresults.cli.dispatch import dispatch_command
from testresults.cli.parser import build_testresults_parsers


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )


def main(argv=None) -> int:
    parser, parsers = build_testresults_parsers()
    args = parser.parse_args(argv)
    configure_logging(getattr(args, "verbose", False))
    return dispatch_command(
        args,
        handlers={
            "import": cmd_import,
            "validate": cmd_validate,
        },
        parsers=parsers,
    )


if __name__ == "__main__":
    sys.exit(main())

"""CLI package for testresults.

Parser wiring, dispatch and command handlers live in separate modules so the
handlers can be tested without going through argparse.
"""

from testresults.cli.dispatch import dispatch_command
from testresults.cli.parser import build_parser

__all__ = ["build_parser", "dispatch_command"]

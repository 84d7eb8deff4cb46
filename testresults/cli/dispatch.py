"""Command dispatch utilities for the testresults CLI."""

from __future__ import annotations

from argparse import ArgumentParser, Namespace
from typing import Callable, Mapping


CommandHandler = Callable[[Namespace], int]


def dispatch_command(
    args: Namespace,
    handlers: Mapping[str, CommandHandler],
    parsers: Mapping[str, ArgumentParser],
) -> int:
    """Dispatch to the handler of ``args.command`` and return its exit code.

    Prints the root help and returns 1 when no command was given.
    """
    command = getattr(args, "command", None)
    handler = handlers.get(command) if command else None
    if handler is None:
        parsers["root"].print_help()
        return 1
    return handler(args)

"""Small demonstration command for the argument parser.

It accepts a fixed set of example options and prints one line for every
parsed option and non-option argument.
"""

from __future__ import annotations

import sys
from collections.abc import Iterable, Sequence
from pathlib import Path

from tbsim.argparser import (
    ArgumentError,
    HasArg,
    Option,
    ParsedArgument,
    option_name,
    parse_arguments,
)

__all__ = [
    "DISPLAY_NAME",
    "PROGRAM_NAME",
    "PROGRAM_VERSION",
    "DEMO_OPTIONS",
    "help_text",
    "version_text",
    "describe",
    "main",
]

DISPLAY_NAME = "Arg_parser"
PROGRAM_NAME = "arg_parser"
PROGRAM_VERSION = "0.1"

DEMO_OPTIONS: tuple[Option, ...] = (
    Option("a", "append", HasArg.NO),
    Option("b", "block", HasArg.YES),
    Option("c", "casual", HasArg.MAYBE),
    Option("h", "help", HasArg.NO),
    Option("H", "hidden", HasArg.NO),
    Option("o", None, HasArg.YES),
    Option("q", "quiet", HasArg.NO),
    Option("u", "uncaught", HasArg.NO),
    Option("v", "verbose", HasArg.NO),
    Option("V", "version", HasArg.NO),
    Option(256, "orphan", HasArg.NO),
)

_OPTION_LINES = (
    "  -h, --help                   display this help and exit",
    "  -V, --version                output version information and exit",
    "  -a, --append                 example of option with no argument",
    "  -b, --block=<arg>            example of option with required argument",
    "  -c, --casual[=<arg>]         example of option with optional argument",
    "  -o <arg>                     example of short only option",
    "      --orphan                 example of long only option",
    "  -q, --quiet                  quiet operation",
    "  -u, --uncaught               example of intentional bug",
    "  -v, --verbose                verbose operation",
)

_HIDDEN_LINE = (
    "  -H, --hidden                 example of hidden option (shown with -v -h)"
)

# Option codes the demo handles; 'u' is deliberately left out.
_HANDLED = frozenset(map(ord, "abchHoqvV")) | {256}


def help_text(verbose: bool = False, invocation_name: str = PROGRAM_NAME) -> str:
    """Return the usage text; the hidden option is listed only when verbose."""
    lines = [
        f"{DISPLAY_NAME} - POSIX/GNU command line argument parser.",
        "",
        f"Usage: {invocation_name} [options]",
        "",
        "Options:",
        *_OPTION_LINES,
    ]
    if verbose:
        lines.append(_HIDDEN_LINE)
    return "\n".join(lines)


def version_text() -> str:
    """Return the program name and version."""
    return f"{PROGRAM_NAME} {PROGRAM_VERSION}"


def describe(
    records: Iterable[ParsedArgument], options: Iterable[Option] = DEMO_OPTIONS
) -> list[str]:
    """Return one descriptive line for each parsed record."""
    options = list(options)
    lines: list[str] = []
    for record in records:
        if record.is_option:
            name = option_name(record.code, options)
            line = f"option '-{name}'" if len(name) == 1 else f"option '--{name}'"
            if record.argument:
                line += f" with argument '{record.argument}'"
        else:
            line = f"non-option argument '{record.argument}'"
        lines.append(line)
    return lines


def main(argv: Sequence[str] | None = None) -> int:
    """Run the demonstration; ``argv`` excludes the program name."""
    if argv is None:
        invocation_name = Path(sys.argv[0]).name if sys.argv and sys.argv[0] else PROGRAM_NAME
        argv = sys.argv[1:]
    else:
        invocation_name = PROGRAM_NAME

    try:
        records = parse_arguments([invocation_name, *argv], DEMO_OPTIONS)
    except ArgumentError as exc:
        print(f"{PROGRAM_NAME}: {exc}", file=sys.stderr)
        print(f"Try '{invocation_name} --help' for more information.", file=sys.stderr)
        return 1

    verbose = False
    for record in records:
        if not record.is_option:
            break
        code = record.code
        if code not in _HANDLED:
            print(f"{PROGRAM_NAME}: internal error: uncaught option.", file=sys.stderr)
            return 3
        if code == ord("h"):
            print(help_text(verbose, invocation_name))
            return 0
        if code == ord("V"):
            print(version_text())
            return 0
        if code == ord("q"):
            verbose = False
        elif code == ord("v"):
            verbose = True

    lines = describe(records, DEMO_OPTIONS)
    for line in lines:
        print(line)
    if not lines:
        print("Hello, world!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
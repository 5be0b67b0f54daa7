"""POSIX/GNU style command-line argument parsing.

The parser turns an argument vector into a flat list of records.  Each
record holds an option code and its argument, or code 0 and the text of a
non-option argument.

By default all option records come first and the non-option arguments
follow them, even when the user mixed the two.  With ``in_order=True`` the
records keep the order in which they were typed.  The argument ``--`` ends
option processing; everything after it is a non-option argument.

Optional arguments are written ``-<short_option><argument>`` (without a
space) or ``--<long_option>=<argument>``.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum

__all__ = [
    "HasArg",
    "Option",
    "ParsedArgument",
    "ArgumentError",
    "parse_arguments",
    "parse_single",
    "option_name",
]

_SHORT_CODE_LIMIT = 256


class HasArg(Enum):
    """Whether an option takes an argument."""

    NO = "no"
    YES = "yes"
    MAYBE = "maybe"


@dataclass(frozen=True)
class Option:
    """One accepted option.

    ``code`` is the short option letter (a one-character string or its code
    point) or any other non-zero integer.  Codes of 256 and above mark
    long-only options.  A ``name`` of ``None`` marks a short-only option.
    """

    code: int | str
    name: str | None = None
    has_arg: HasArg = HasArg.NO

    def __post_init__(self) -> None:
        code = self.code
        if isinstance(code, str):
            if len(code) != 1:
                raise ValueError(f"short option code must be one character: {code!r}")
            code = ord(code)
            object.__setattr__(self, "code", code)
        if code == 0:
            raise ValueError("option code must be non-zero")

    @property
    def is_short(self) -> bool:
        """True if the option can be given as a single letter."""
        return 0 < self.code < _SHORT_CODE_LIMIT


@dataclass(frozen=True)
class ParsedArgument:
    """A parsed option (code != 0) or non-option argument (code == 0)."""

    code: int
    argument: str = ""

    @property
    def is_option(self) -> bool:
        return self.code != 0


class ArgumentError(ValueError):
    """Raised when the command line holds an invalid or malformed option."""


def _parse_long(
    opt: str, arg: str | None, options: Sequence[Option]
) -> tuple[ParsedArgument, int]:
    key, equals, value = opt[2:].partition("=")

    found: Option | None = None
    exact = False
    ambiguous = False
    for option in options:
        if option.name is None or not option.name.startswith(key):
            continue
        if len(option.name) == len(key):
            found, exact = option, True
            break
        if found is None:
            found = option
        elif found.code != option.code or found.has_arg != option.has_arg:
            ambiguous = True

    if ambiguous and not exact:
        raise ArgumentError(f"option '{opt}' is ambiguous")
    if found is None:
        raise ArgumentError(f"unrecognized option '{opt}'")

    if equals:
        if found.has_arg is HasArg.NO:
            raise ArgumentError(f"option '--{found.name}' doesn't allow an argument")
        if found.has_arg is HasArg.YES and not value:
            raise ArgumentError(f"option '--{found.name}' requires an argument")
        return ParsedArgument(found.code, value), 1

    if found.has_arg is HasArg.YES:
        if not arg:
            raise ArgumentError(f"option '--{found.name}' requires an argument")
        return ParsedArgument(found.code, arg), 2

    return ParsedArgument(found.code, ""), 1


def _parse_short(
    opt: str, arg: str | None, options: Sequence[Option]
) -> tuple[list[ParsedArgument], int]:
    records: list[ParsedArgument] = []
    for pos, letter in enumerate(opt[1:], start=1):
        code = ord(letter)
        option = next(
            (o for o in options if o.is_short and o.code == code), None
        )
        if option is None:
            raise ArgumentError(f"invalid option -- '{letter}'")

        rest = opt[pos + 1:]
        if option.has_arg is not HasArg.NO and rest:
            records.append(ParsedArgument(code, rest))
            return records, 1
        if option.has_arg is HasArg.YES:
            if not arg:
                raise ArgumentError(f"option requires an argument -- '{letter}'")
            records.append(ParsedArgument(code, arg))
            return records, 2
        records.append(ParsedArgument(code, ""))
    return records, 1


def parse_arguments(
    argv: Sequence[str] | None,
    options: Iterable[Option] | None,
    in_order: bool = False,
) -> list[ParsedArgument]:
    """Parse ``argv`` (program name first) against ``options``.

    Returns the parsed records; raises :class:`ArgumentError` on a bad option.
    """
    if not argv or len(argv) < 2 or options is None:
        return []
    options = list(options)

    records: list[ParsedArgument] = []
    skipped: list[str] = []
    index = 1
    while index < len(argv):
        token = argv[index]
        if len(token) > 1 and token[0] == "-":
            following = argv[index + 1] if index + 1 < len(argv) else None
            if token[1] == "-":
                if len(token) == 2:
                    index += 1
                    break
                record, consumed = _parse_long(token, following, options)
                records.append(record)
            else:
                parsed, consumed = _parse_short(token, following, options)
                records.extend(parsed)
            index += consumed
        else:
            if in_order:
                records.append(ParsedArgument(0, token))
            else:
                skipped.append(token)
            index += 1

    records.extend(ParsedArgument(0, text) for text in skipped)
    records.extend(ParsedArgument(0, text) for text in argv[index:])
    return records


def parse_single(
    opt: str | None, arg: str | None, options: Iterable[Option] | None
) -> list[ParsedArgument]:
    """Parse one token, with ``arg`` as its possible argument."""
    if not opt or options is None:
        return []
    options = list(options)
    if len(opt) > 1 and opt[0] == "-":
        if opt[1] == "-":
            if len(opt) == 2:
                return []
            record, _ = _parse_long(opt, arg, options)
            return [record]
        records, _ = _parse_short(opt, arg, options)
        return records
    return [ParsedArgument(0, opt)]


def option_name(code: int, options: Iterable[Option]) -> str:
    """Return the long name of option ``code``, else its letter, else '?'."""
    if code != 0:
        for option in options:
            if option.code == code:
                if option.name:
                    return option.name
                break
    if 0 < code < _SHORT_CODE_LIMIT:
        return chr(code)
    return "?"
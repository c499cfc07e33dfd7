"""Command argument parsing."""

from __future__ import annotations

from enum import Enum, auto
from typing import Literal

from parley.errors import InvalidConfigurationError

ArgsType = Literal["single", "multiple"]

DOUBLE_QUOTE = '"'
SINGLE_QUOTE = "'"


class _Scan(Enum):
    SKIP_WHITESPACE = auto()
    IN_QUOTE = auto()
    IN_BARE_TOKEN = auto()


def _quote_chars(allow_single_quote: bool) -> str:
    return DOUBLE_QUOTE + SINGLE_QUOTE if allow_single_quote else DOUBLE_QUOTE


def _skip_whitespace(text: str, pos: int) -> int:
    while pos < len(text) and text[pos].isspace():
        pos += 1
    return pos


def _strip_wrapping_quotes(text: str, quotes: str) -> str:
    if len(text) >= 2 and text[0] in quotes and text[-1] == text[0]:
        return text[1:-1]
    return text


def _scan_token(text: str, pos: int, quotes: str) -> tuple[str | None, int]:
    """Scan one token starting at ``pos``.

    Returns the token and the index right after it, or ``None`` when only
    whitespace is left.
    """
    state = _Scan.SKIP_WHITESPACE
    quote = ""
    start = pos
    index = pos
    while index < len(text):
        char = text[index]
        if state is _Scan.SKIP_WHITESPACE:
            if char.isspace():
                index += 1
                continue
            # A quote only opens a span when it is closed somewhere later.
            if char in quotes and text.find(char, index + 1) != -1:
                state = _Scan.IN_QUOTE
                quote = char
                start = index + 1
            else:
                state = _Scan.IN_BARE_TOKEN
                start = index
        elif state is _Scan.IN_QUOTE:
            if char == quote:
                return text[start:index], index + 1
        elif char.isspace():
            return text[start:index], index
        index += 1

    if state is _Scan.IN_BARE_TOKEN:
        return text[start:], len(text)
    return None, len(text)


def parse_args(arg_string: str, arg_count: int | None = None, allow_single_quote: bool = True) -> list[str]:
    """Parse an argument string into a list of arguments.

    Arguments are separated by whitespace. Double quotes (and single quotes when
    ``allow_single_quote`` is set) group text containing whitespace into one
    argument.

    Args:
        arg_string: The raw argument string.
        arg_count: Number of arguments to extract. Once ``arg_count - 1`` arguments
            have been read, the rest of the string becomes the last argument as is,
            minus one pair of quotes wrapping all of it. ``None`` or ``0`` reads
            every argument.
        allow_single_quote: Whether single quotes may wrap arguments too.

    Returns:
        The list of arguments.
    """
    quotes = _quote_chars(allow_single_quote)
    limit = arg_count - 1 if arg_count else None
    result: list[str] = []
    pos = 0
    capped = False
    while True:
        if limit is not None and len(result) >= limit:
            capped = True
            break
        token, end = _scan_token(arg_string, pos, quotes)
        if token is None:
            break
        result.append(token)
        pos = _skip_whitespace(arg_string, end)

    if capped and pos < len(arg_string):
        result.append(_strip_wrapping_quotes(arg_string[pos:], quotes))
    return result


def parse_single(arg_string: str | None, allow_single_quote: bool = False) -> str:
    """Treat the whole argument string as one argument."""
    if arg_string is None:
        return ""
    return _strip_wrapping_quotes(arg_string.strip(), _quote_chars(allow_single_quote))


def parse_command_args(
    arg_string: str | None,
    args_type: str,
    *,
    arg_count: int | None = None,
    allow_single_quote: bool = True,
) -> str | list[str]:
    match args_type:
        case "single":
            return parse_single(arg_string, allow_single_quote)
        case "multiple":
            return parse_args(arg_string or "", arg_count, allow_single_quote)
        case _:
            raise InvalidConfigurationError(f"unknown args type {args_type!r}")

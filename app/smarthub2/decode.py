"""
Decoding for the individual `value` attributes of the hub's status page.

Most values are URL-encoded. The interesting ones are also a JS-ish array literal of single-quoted rows,
each row being `;`-separated integers. Here's what `status_rate` looks like once unescaped:

    [['0;0;0;0'], ['18567000;65059000;0;0'], ['0;0;0;0'], null]

The hub has one row per WAN interface and only the active interface has non-zero values.
All-zero rows are just noise and can be skipped. If we ever see two live rows, we don't know which one
to believe so we bail rather than guess.
"""

from urllib.parse import unquote_to_bytes

import structlog
from err.exceptions import FieldDecodeError
from util.const import ErrorKind

log = structlog.get_logger(__name__)

# up, down, and two columns that have only ever been 0
STATUS_RATE_ARITY = 4
# total, down, up
VOLUME_LIST_ARITY = 3

_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")
_BRACKETS = frozenset("[]")


def unescape_value(raw: str) -> str:
    """URL-unescape a value the same way a query string is unescaped.

    Unlike urllib's unquote(), a stray `%` or bytes that aren't UTF-8 are an error rather than
    something to silently pass through.
    """
    for idx, char in enumerate(raw):
        if char != "%":
            continue
        escape = raw[idx + 1 : idx + 3]
        if len(escape) != 2 or not set(escape) <= _HEX_DIGITS:
            raise FieldDecodeError(
                ErrorKind.ENCODING, f"invalid escape {raw[idx:idx + 3]!r} at offset {idx}"
            )
    try:
        return unquote_to_bytes(raw.replace("+", " ")).decode("utf-8")
    except UnicodeDecodeError as e:
        raise FieldDecodeError(ErrorKind.ENCODING, f"not valid UTF-8: {e}") from e


def strip_newlines(value: str) -> str:
    """The hub wraps long values; the line breaks mean nothing"""
    return value.replace("\r", "").replace("\n", "")


def split_bracketed_rows(text: str) -> list[str]:
    """Return every maximal run of characters that are not `[` or `]`, in order.

    The nesting of the brackets carries no information so this flattens it:

        "[['1;2'], ['3;4'], null]" -> ["'1;2'", ", ", "'3;4'", ", null"]
    """
    runs = []
    start = None
    for idx, char in enumerate(text):
        if char in _BRACKETS:
            if start is not None:
                runs.append(text[start:idx])
                start = None
        elif start is None:
            start = idx
    if start is not None:
        runs.append(text[start:])
    return runs


def zero_row(arity: int) -> str:
    """The quoted all-zero row for a field, e.g. `'0;0;0'` for arity 3"""
    return "'" + ";".join(["0"] * arity) + "'"


def _is_skippable(candidate: str, arity: int) -> bool:
    core = candidate.strip().strip(",").strip()
    return core in ("", "null") or core == zero_row(arity)


def _parse_int(part: str) -> int:
    digits = part[1:] if part[:1] in ("+", "-") else part
    # isdigit() alone would let through things like superscripts
    if not digits or not digits.isascii() or not digits.isdigit():
        raise ValueError(part)
    return int(part)


def parse_row(candidate: str, arity: int) -> tuple[int, ...]:
    """Parse a single quoted row like `'18567000;65059000;0;0'` into exactly `arity` integers."""
    row = candidate.strip().strip(",").strip()
    if len(row) < 2 or row[0] != "'" or row[-1] != "'":
        raise FieldDecodeError(ErrorKind.FORMAT, f"row is not a quoted string: {row!r}")

    parts = row[1:-1].split(";")
    if len(parts) != arity:
        raise FieldDecodeError(
            ErrorKind.ARITY, f"expected {arity} values, got {len(parts)}: {row!r}"
        )
    try:
        return tuple(_parse_int(p) for p in parts)
    except ValueError as e:
        raise FieldDecodeError(ErrorKind.FORMAT, f"non-integer value {e} in {row!r}") from e


def decode_bracketed_field(raw: str, arity: int) -> tuple[int, ...]:
    """Decode a raw (still URL-encoded) array value into its single live row.

    Returns all zeros when every row is zero; raises FieldDecodeError for anything malformed
    or when more than one row is live.
    """
    text = strip_newlines(unescape_value(raw))

    found = None
    for candidate in split_bracketed_rows(text):
        if _is_skippable(candidate, arity):
            continue
        row = parse_row(candidate, arity)
        if found is not None:
            raise FieldDecodeError(
                ErrorKind.AMBIGUOUS, f"more than one live row: {found} and {row}"
            )
        found = row

    if found is None:
        log.debug("No live row, treating as all zero", arity=arity)
        return (0,) * arity
    return found

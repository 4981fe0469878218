"""Decode PostgreSQL integer range and multirange literals.

Ranges become inclusive Python ``range`` objects, so ``"[1,5]"`` and
``"[1,6)"`` both decode to ``range(1, 6)``. An unbounded side maps to the
minimum or maximum of the range's element type.
"""

from typing import Optional

from .exceptions import RangeParseError

INT4_MIN = -(2**31)
INT4_MAX = 2**31 - 1
INT8_MIN = -(2**63)
INT8_MAX = 2**63 - 1

EMPTY_RANGE = range(0)
EMPTY_LITERALS = ("()", "empty")


def _parse_start(raw: str) -> Optional[int]:
    """Inclusive start of a range border, None when unbounded."""
    raw = raw.strip()
    if not raw or raw[0] not in "[(":
        raise RangeParseError(f"invalid range start '{raw}'")
    value = raw[1:].strip()
    if not value:
        return None
    try:
        number = int(value)
    except ValueError as e:
        raise RangeParseError(f"invalid range start '{raw}'") from e
    return number if raw[0] == "[" else number + 1


def _parse_end(raw: str) -> Optional[int]:
    """Inclusive end of a range border, None when unbounded."""
    raw = raw.strip()
    if not raw or raw[-1] not in "])":
        raise RangeParseError(f"invalid range end '{raw}'")
    value = raw[:-1].strip()
    if not value:
        return None
    try:
        number = int(value)
    except ValueError as e:
        raise RangeParseError(f"invalid range end '{raw}'") from e
    return number if raw[-1] == "]" else number - 1


def parse_range(value: str, min_value: int = INT8_MIN, max_value: int = INT8_MAX) -> range:
    """Parse a range literal into an inclusive ``range``.

    Both ``"()"`` and PostgreSQL's ``"empty"`` decode to the empty range.
    """
    value = value.strip()
    if value.lower() in EMPTY_LITERALS:
        return EMPTY_RANGE
    parts = value.split(",")
    if len(parts) != 2:
        raise RangeParseError(f"invalid range string '{value}'")
    start = _parse_start(parts[0])
    end = _parse_end(parts[1])
    start = min_value if start is None else start
    end = max_value if end is None else end
    if start > end:
        return EMPTY_RANGE
    return range(start, end + 1)


def parse_int4_range(value: str) -> range:
    return parse_range(value, INT4_MIN, INT4_MAX)


def parse_int8_range(value: str) -> range:
    return parse_range(value, INT8_MIN, INT8_MAX)


def parse_multirange(value: str, min_value: int = INT8_MIN, max_value: int = INT8_MAX) -> tuple[range, ...]:
    """Parse ``{[1,3),[5,7)}`` into ranges, in literal order."""
    value = value.strip()
    if not (value.startswith("{") and value.endswith("}")):
        raise RangeParseError(f"invalid multirange string '{value}'")
    body = value[1:-1].strip()
    if not body:
        return ()
    borders = body.split(",")
    if len(borders) % 2:
        raise RangeParseError(f"invalid multirange string '{value}'")
    return tuple(
        parse_range(f"{borders[i]},{borders[i + 1]}", min_value, max_value)
        for i in range(0, len(borders), 2)
    )


def parse_int4_multirange(value: str) -> tuple[range, ...]:
    return parse_multirange(value, INT4_MIN, INT4_MAX)


def parse_int8_multirange(value: str) -> tuple[range, ...]:
    return parse_multirange(value, INT8_MIN, INT8_MAX)


def to_pg_range_string(value: range) -> str:
    """Canonical inclusive literal, ``"empty"`` for an empty range."""
    if not value:
        return "empty"
    return f"[{value[0]},{value[-1]}]"


def to_pg_multirange_string(value: tuple[range, ...]) -> str:
    return "{" + ",".join(to_pg_range_string(r) for r in value if r) + "}"

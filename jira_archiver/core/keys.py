"""Issue key parsing and range expansion."""

from __future__ import annotations

from .errors import ValidationError


def split_key(key: str) -> tuple[str, int]:
    """Split ``PREFIX-NUMBER`` on the first separator."""
    prefix, sep, number = key.strip().partition("-")
    if not sep or not prefix or not number.isdigit():
        raise ValidationError(f"Malformed issue key: {key!r} (expected PREFIX-NUMBER)")
    return prefix, int(number)


def expand_range(start: str, end: str) -> list[str]:
    """Return every key from ``start`` to ``end`` inclusive, ascending.

    Endpoints may be given in either order but must share a prefix.
    """
    start_prefix, start_num = split_key(start)
    end_prefix, end_num = split_key(end)
    if start_prefix != end_prefix:
        raise ValidationError(f"Range endpoints must share a project prefix: {start!r} vs {end!r}")
    if end_num < start_num:
        start_num, end_num = end_num, start_num
    return [f"{start_prefix}-{n}" for n in range(start_num, end_num + 1)]

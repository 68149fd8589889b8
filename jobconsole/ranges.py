"""
Job identifier range expansion.

Range expressions are comma-separated tokens, each either a single
non-negative integer or an inclusive span written ``A-B`` or ``A..B``:

    expand_range("1,3-5,7")  ->  [1, 3, 4, 5, 7]
"""

import re

from jobconsole.errors import MalformedRangeError


_SINGLE = re.compile(r"[0-9]+")
_SPAN = re.compile(r"([0-9]+)(?:-|\.\.)([0-9]+)")


def expand_range(expression: str | None) -> list[int]:
    """
    Expand a range expression into sorted, unique job identifiers.

    Args:
        expression: Range expression such as "1,3-5,7". None or blank
            input yields an empty list.

    Returns:
        Ascending list of identifiers

    Raises:
        MalformedRangeError: If any token is not an integer or a span with
            start <= end. Nothing is returned for a partially valid input.
    """
    if expression is None or not expression.strip():
        return []

    ids: set[int] = set()
    for raw in expression.split(","):
        token = raw.strip()
        if _SINGLE.fullmatch(token):
            ids.add(int(token))
            continue

        span = _SPAN.fullmatch(token)
        if span is None:
            raise MalformedRangeError(expression, token)

        start, end = int(span.group(1)), int(span.group(2))
        if start > end:
            raise MalformedRangeError(expression, token)
        ids.update(range(start, end + 1))

    return sorted(ids)


def is_single_identifier(value: str) -> bool:
    """Check whether value is exactly one non-negative integer."""
    return bool(_SINGLE.fullmatch(value))

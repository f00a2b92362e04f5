"""
Client-side sorting of preview rows

Cells arrive as formatted strings, so the comparator decides per pair
whether to compare them as numbers, timestamps or natural text. Empty
cells always sink to the bottom, whichever way the column is sorted.
"""

import functools
import re
import unicodedata
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from filequery.core.errors import ValidationError
from filequery.core.types import has_date_hint, parse_decimal, parse_timestamp

_DIGIT_RUN = re.compile(r"(\d+)")


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class SortState:
    """Active sort: one column and a direction"""

    column_index: int
    direction: SortDirection


def _sign(value) -> int:
    return (value > 0) - (value < 0)


def _natural_key(value: str) -> Tuple[Tuple[int, int, str], ...]:
    """Case-insensitive key where digit runs compare numerically"""
    normalized = unicodedata.normalize("NFKD", value).casefold()
    key = []
    for part in _DIGIT_RUN.split(normalized):
        if not part:
            continue
        if _DIGIT_RUN.fullmatch(part):
            key.append((0, int(part), ""))
        else:
            # Drop combining marks so accents do not outrank letters
            base = "".join(ch for ch in part if not unicodedata.combining(ch))
            key.append((1, 0, base))
    return tuple(key)


def _compare_present(a: str, b: str) -> int:
    """Compare two non-empty, trimmed cells"""
    num_a = parse_decimal(a)
    num_b = parse_decimal(b)
    if num_a is not None and num_b is not None:
        return _sign(num_a - num_b)

    if has_date_hint(a) and has_date_hint(b):
        ts_a = parse_timestamp(a)
        ts_b = parse_timestamp(b)
        if ts_a is not None and ts_b is not None:
            return _sign((ts_a - ts_b).total_seconds())

    key_a = _natural_key(a)
    key_b = _natural_key(b)
    if key_a < key_b:
        return -1
    if key_a > key_b:
        return 1
    return 0


def compare_cells(a: Optional[str], b: Optional[str]) -> int:
    """
    Total order over two formatted cells

    Args:
        a: First cell text
        b: Second cell text

    Returns:
        -1, 0 or 1. An empty cell always compares greater than a non-empty
        one, so in ascending order empties come last.

    Examples:
        >>> compare_cells("10", "2")
        1
        >>> compare_cells("file2", "file10")
        -1
    """
    a = (a or "").strip()
    b = (b or "").strip()
    if not a and not b:
        return 0
    if not a:
        return 1
    if not b:
        return -1
    return _compare_present(a, b)


def sort_rows(
    rows: Sequence[Sequence[str]],
    column_index: int,
    direction: SortDirection | str = SortDirection.ASC,
) -> List[Sequence[str]]:
    """
    Stable sort of already-fetched rows by one column

    Empty cells stay last in both directions; ties keep their original order.

    Args:
        rows: Preview rows of formatted cells
        column_index: Column to sort by
        direction: "asc" or "desc"

    Returns:
        New list of the same row objects in sorted order
    """
    direction = SortDirection(direction)
    if rows and not 0 <= column_index < len(rows[0]):
        raise ValidationError(f"Invalid sort column: {column_index}")

    descending = direction is SortDirection.DESC

    def cmp(left: Sequence[str], right: Sequence[str]) -> int:
        a = (left[column_index] or "").strip()
        b = (right[column_index] or "").strip()
        if not a or not b:
            return compare_cells(a, b)
        result = _compare_present(a, b)
        return -result if descending else result

    return sorted(rows, key=functools.cmp_to_key(cmp))


def next_sort_state(current: Optional[SortState], column_index: int) -> Optional[SortState]:
    """Advance the sort cycle on a header click: asc, desc, then unsorted"""
    if current is None or current.column_index != column_index:
        return SortState(column_index, SortDirection.ASC)
    if current.direction is SortDirection.ASC:
        return SortState(column_index, SortDirection.DESC)
    return None


def apply_sort_state(rows: Sequence[Sequence[str]], state: Optional[SortState]) -> List[Sequence[str]]:
    """Rows in display order for a sort state (original order when unsorted)"""
    if state is None:
        return list(rows)
    return sort_rows(rows, state.column_index, state.direction)

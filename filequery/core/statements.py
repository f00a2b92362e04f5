"""
Statement location for multi-statement SQL scripts

Finds the statement the user means to run from the editor buffer and the
cursor position. The scanner understands string literals, quoted
identifiers and both comment styles, so a semicolon inside any of them
never splits a statement.

Example:
    >>> locate_statement("SELECT 1; SELECT 2;", 12)
    'SELECT 2'
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple

from filequery.core.errors import ValidationError

# Scanner modes
_NORMAL = 0
_SINGLE_QUOTE = 1
_DOUBLE_QUOTE = 2
_LINE_COMMENT = 3
_BLOCK_COMMENT = 4


@dataclass(frozen=True)
class Segment:
    """Half-open span [start, end) of a script between top-level semicolons"""

    start: int
    end: int
    text: str

    @property
    def statement(self) -> str:
        return self.text.strip()

    def contains(self, offset: int) -> bool:
        """Inclusive on both ends so a cursor resting just before ';' still matches"""
        return self.start <= offset <= self.end


def split_segments(text: str) -> List[Segment]:
    """
    Split a script into segments on top-level semicolons

    The trailing segment after the last semicolon is always recorded, even
    when empty, so an empty buffer yields exactly one empty segment.

    Args:
        text: Full script text

    Returns:
        Segments in buffer order
    """
    segments: List[Segment] = []
    mode = _NORMAL
    start = 0
    i = 0
    length = len(text)

    while i < length:
        char = text[i]
        nxt = text[i + 1] if i + 1 < length else ""

        if mode == _SINGLE_QUOTE:
            if char == "'":
                if nxt == "'":
                    # Doubled quote is an escaped quote
                    i += 2
                    continue
                mode = _NORMAL
        elif mode == _DOUBLE_QUOTE:
            if char == '"':
                if nxt == '"':
                    i += 2
                    continue
                mode = _NORMAL
        elif mode == _LINE_COMMENT:
            if char == "\n":
                mode = _NORMAL
        elif mode == _BLOCK_COMMENT:
            if char == "*" and nxt == "/":
                mode = _NORMAL
                i += 2
                continue
        else:
            if char == "'":
                mode = _SINGLE_QUOTE
            elif char == '"':
                mode = _DOUBLE_QUOTE
            elif char == "-" and nxt == "-":
                mode = _LINE_COMMENT
                i += 2
                continue
            elif char == "/" and nxt == "*":
                mode = _BLOCK_COMMENT
                i += 2
                continue
            elif char == ";":
                segments.append(Segment(start, i, text[start:i]))
                start = i + 1

        i += 1

    segments.append(Segment(start, length, text[start:length]))
    return segments


def locate_statement(text: str, cursor_offset: int, selection: Optional[str] = None) -> str:
    """
    Return the statement the user intends to execute

    Args:
        text: Full editor buffer
        cursor_offset: Character offset of the cursor (clamped to the buffer)
        selection: Explicit selection; when non-empty it wins over the scan

    Returns:
        Trimmed statement text, or "" when the buffer holds no statement

    Raises:
        ValidationError: If the selection contains only whitespace
    """
    if selection:
        statement = selection.strip()
        if not statement:
            raise ValidationError("Selection is empty")
        return statement

    segments = split_segments(text)
    offset = min(max(cursor_offset, 0), len(text))

    index = 0
    for idx, segment in enumerate(segments):
        if segment.contains(offset):
            index = idx
            break

    if segments[index].statement:
        return segments[index].statement

    # Cursor sits on an empty segment: prefer the nearest statement above it
    for segment in reversed(segments[:index]):
        if segment.statement:
            return segment.statement
    for segment in segments[index + 1:]:
        if segment.statement:
            return segment.statement
    return ""


def cursor_to_offset(text: str, row: int, column: int) -> int:
    """Convert a (row, column) editor location into a character offset"""
    lines = text.split("\n")
    if not lines or row < 0:
        return 0
    if row >= len(lines):
        return len(text)
    offset = sum(len(line) + 1 for line in lines[:row])
    return offset + min(max(column, 0), len(lines[row]))


# Keywords after which a quoted literal names a table
_TABLE_KEYWORDS = {"from", "join"}
# Keywords that end a FROM list
_CLAUSE_KEYWORDS = {
    "select", "where", "group", "order", "having", "limit", "offset", "on", "using",
    "union", "except", "intersect", "qualify", "window", "values", "set", "returning",
}


def _skip_quoted(text: str, i: int, quote: str) -> int:
    """Index just past the quoted run opening at i (doubled quotes escape)"""
    length = len(text)
    j = i + 1
    while j < length:
        if text[j] == quote:
            if j + 1 < length and text[j + 1] == quote:
                j += 2
                continue
            return j + 1
        j += 1
    return length


def table_literals(text: str) -> List[Tuple[int, int, str]]:
    """
    Find single-quoted literals used as table references

    A literal counts when it directly follows FROM or JOIN, or follows a
    comma while inside a FROM list. Literals in comments, in quoted
    identifiers or anywhere else are ignored.

    Returns:
        (start, end, value) per literal; [start, end) spans the quotes and
        value has doubled quotes unescaped

    Examples:
        >>> table_literals("SELECT 'x' FROM 'a.csv'")
        [(16, 23, 'a.csv')]
    """
    found: List[Tuple[int, int, str]] = []
    previous = ""
    in_from = False
    i = 0
    length = len(text)

    while i < length:
        char = text[i]
        nxt = text[i + 1] if i + 1 < length else ""

        if char == "-" and nxt == "-":
            newline = text.find("\n", i)
            i = length if newline < 0 else newline + 1
            continue
        if char == "/" and nxt == "*":
            close = text.find("*/", i + 2)
            i = length if close < 0 else close + 2
            continue
        if char == '"':
            i = _skip_quoted(text, i, '"')
            previous = "identifier"
            continue
        if char == "'":
            end = _skip_quoted(text, i, "'")
            if previous in _TABLE_KEYWORDS or (previous == "," and in_from):
                value = text[i + 1:end - 1] if end - i >= 2 and text[end - 1] == "'" else text[i + 1:end]
                found.append((i, end, value.replace("''", "'")))
            previous = "literal"
            i = end
            continue
        if char.isalpha() or char == "_":
            j = i
            while j < length and (text[j].isalnum() or text[j] == "_"):
                j += 1
            word = text[i:j].lower()
            if word in _TABLE_KEYWORDS:
                in_from = True
            elif word in _CLAUSE_KEYWORDS:
                in_from = False
            previous = word
            i = j
            continue
        if not char.isspace():
            if char == ";":
                in_from = False
            previous = char
        i += 1

    return found

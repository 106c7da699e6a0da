"""
INSERT Tokenizer - splits SQL scripts into INSERT statements and value rows.

Value lists in seed scripts routinely contain sub-selects, JSON documents
and free text, so a regex that matches ``\\([^)]*\\)`` breaks on the first
parenthesis inside a value. Groups and values are therefore found with an
explicit scanner that tracks quote state and parenthesis depth:

    NORMAL --'--> IN_SINGLE_QUOTE --'--> NORMAL   ('' and \\' stay inside)
    NORMAL --"--> IN_DOUBLE_QUOTE --"--> NORMAL   ("" and \\" stay inside)

Parentheses and commas only count as structure in NORMAL state.

Malformed input never raises: a statement whose VALUES list stops
balancing keeps the groups that closed, and the rest is dropped.
"""

from __future__ import annotations

import bisect
import logging
import re
from enum import Enum, auto
from typing import Iterator, List, Optional, Tuple, Union

from ..models.records import InsertStatement
from ..utils.constants import UUID_PATTERN
from .sql_normalizer import NormalizedSource, normalize_value

logger = logging.getLogger(__name__)

_INSERT_HEAD_RE = re.compile(r"\bINSERT\s+INTO\s+([^\s(]+)\s*\(", re.IGNORECASE)
_VALUES_RE = re.compile(r"\s*VALUES\s*", re.IGNORECASE)
_QUOTED_UUID_RE = re.compile(f"'{UUID_PATTERN}'")
_IDENTIFIER_QUOTES = "\"'`[]"
_TABLE_QUOTES_RE = re.compile(r"[\"`\[\]]")


class ScanState(Enum):
    NORMAL = auto()
    IN_SINGLE_QUOTE = auto()
    IN_DOUBLE_QUOTE = auto()


def _structural_chars(
    text: str, start: int = 0, end: Optional[int] = None
) -> Iterator[Tuple[int, str]]:
    """Yield ``(index, char)`` for every character outside quoted literals."""
    end = len(text) if end is None else end
    state = ScanState.NORMAL
    i = start

    while i < end:
        ch = text[i]
        if state is ScanState.NORMAL:
            if ch == "'":
                state = ScanState.IN_SINGLE_QUOTE
            elif ch == '"':
                state = ScanState.IN_DOUBLE_QUOTE
            else:
                yield i, ch
        else:
            closing = "'" if state is ScanState.IN_SINGLE_QUOTE else '"'
            if ch == "\\":
                i += 1  # escaped character, whatever it is
            elif ch == closing:
                if i + 1 < end and text[i + 1] == closing:
                    i += 1  # doubled quote
                else:
                    state = ScanState.NORMAL
        i += 1


def find_group_end(text: str, start: int) -> Optional[int]:
    """
    Find the parenthesis closing the group opened at ``text[start]``.

    Args:
        text: Source text
        start: Index of an opening parenthesis

    Returns:
        Index of the matching ``)``, or None if the group never closes
    """
    depth = 0
    for i, ch in _structural_chars(text, start):
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                return i
    return None


def split_top_level(text: str) -> List[str]:
    """Split on commas that are outside quotes and nested parentheses."""
    parts: List[str] = []
    depth = 0
    last = 0

    for i, ch in _structural_chars(text):
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth = max(depth - 1, 0)
        elif ch == "," and depth == 0:
            parts.append(text[last:i])
            last = i + 1

    parts.append(text[last:])
    return [p.strip() for p in parts]


def extract_value_groups(text: str) -> List[str]:
    """Return every balanced top-level ``( ... )`` group in ``text``."""
    groups: List[str] = []
    depth = 0
    start = -1

    for i, ch in _structural_chars(text):
        if ch == "(":
            if depth == 0:
                start = i
            depth += 1
        elif ch == ")" and depth > 0:
            depth -= 1
            if depth == 0:
                groups.append(text[start : i + 1])

    return groups


def _clean_identifier(name: str) -> str:
    return name.strip().strip(_IDENTIFIER_QUOTES).strip()


def _clean_table_name(name: str) -> str:
    return _TABLE_QUOTES_RE.sub("", name).strip()


def _skip_whitespace(text: str, pos: int) -> int:
    while pos < len(text) and text[pos].isspace():
        pos += 1
    return pos


def _scan_value_groups(text: str, pos: int) -> List[Tuple[int, int]]:
    """Collect ``(open, close)`` spans of comma-separated groups starting at ``pos``."""
    spans: List[Tuple[int, int]] = []

    while pos < len(text) and text[pos] == "(":
        close = find_group_end(text, pos)
        if close is None:
            break
        spans.append((pos, close))

        nxt = _skip_whitespace(text, close + 1)
        if nxt < len(text) and text[nxt] == ",":
            pos = _skip_whitespace(text, nxt + 1)
        else:
            break

    return spans


def _find_insert_head(text: str, pos: int) -> Optional[re.Match]:
    """
    Next ``INSERT INTO t (`` at or after ``pos`` that is not inside a literal.

    ``pos`` must be outside quotes.
    """
    structural = _structural_chars(text, pos)
    current = -1
    head = _INSERT_HEAD_RE.search(text, pos)

    while head is not None:
        while current < head.start():
            nxt = next(structural, None)
            if nxt is None:
                return None
            current = nxt[0]
        if current == head.start():
            return head
        head = _INSERT_HEAD_RE.search(text, head.start() + 1)

    return None


def extract_inserts(source: Union[str, NormalizedSource]) -> List[InsertStatement]:
    """
    Find every ``INSERT INTO t (cols) VALUES (...), ...`` statement.

    Args:
        source: Normalized SQL text, or a NormalizedSource whose offset map
            is used to report positions in the original file

    Returns:
        One InsertStatement per statement, in source order
    """
    if isinstance(source, str):
        source = NormalizedSource.identity(source)
    text = source.text

    statements: List[InsertStatement] = []
    pos = 0

    while True:
        head = _find_insert_head(text, pos)
        if head is None:
            break
        pos = head.end()

        columns_open = head.end() - 1
        columns_close = find_group_end(text, columns_open)
        if columns_close is None:
            continue

        values_kw = _VALUES_RE.match(text, columns_close + 1)
        if values_kw is None:
            continue  # INSERT ... SELECT, DEFAULT VALUES, etc.

        spans = _scan_value_groups(text, values_kw.end())
        if not spans:
            continue
        pos = spans[-1][1] + 1

        columns = [
            _clean_identifier(c).lower()
            for c in split_top_level(text[columns_open + 1 : columns_close])
        ]

        value_rows: List[List[str]] = []
        row_offsets: List[int] = []
        for open_idx, close_idx in spans:
            raw_values = split_top_level(text[open_idx + 1 : close_idx])
            value_rows.append([normalize_value(v) for v in raw_values])

            first_uuid = _QUOTED_UUID_RE.search(text, open_idx, close_idx)
            anchor = first_uuid.start() if first_uuid else open_idx
            row_offsets.append(source.to_original(anchor))

        uuid_positions = [
            source.to_original(m.start())
            for m in _QUOTED_UUID_RE.finditer(text, spans[0][0], spans[-1][1] + 1)
        ]

        statements.append(
            InsertStatement(
                table_name=_clean_table_name(head.group(1)),
                columns=columns,
                value_rows=value_rows,
                uuid_positions=uuid_positions,
                row_offsets=row_offsets,
            )
        )

    logger.debug(f"Extracted {len(statements)} INSERT statements")
    return statements


class LineIndex:
    """Maps character offsets to 1-based line numbers."""

    def __init__(self, text: str):
        self._newlines = [i for i, ch in enumerate(text) if ch == "\n"]

    def line_number(self, offset: int) -> int:
        return bisect.bisect_left(self._newlines, offset) + 1

"""
SQL Normalizer - comment stripping and placeholder rewriting for INSERT scripts.

Seed scripts are written against a migration runner that binds a few
well-known parameters. Before the tokenizer sees a file, this module:
- removes ``-- line`` and ``/* block */`` comments
- rewrites ``:my_utc_now`` to ``NULL::timestamp``
- rewrites ``:my_admin_id`` and ``gen_random_uuid()`` to ``NULL::uuid``
- rewrites any other ``:name`` bind variable to ``NULL``

All rewrites happen in a single left-to-right pass, so the specific
placeholders win over the generic bind pattern and an emitted
``NULL::uuid`` is never rewritten again. Quoted literals and ``::type``
casts are copied through untouched.

Because rewriting shifts text, ``normalize_source_mapped`` also returns an
offset map that translates positions in the normalized text back to the
original file, which is what line numbers are computed from.
"""

from __future__ import annotations

import bisect
import re
from dataclasses import dataclass, field
from typing import List

_SOURCE_TOKEN_RE = re.compile(
    r"""
    (?P<single>'(?:[^'\\]|\\.|'')*')
    | (?P<double>"(?:[^"\\]|\\.|"")*")
    | (?P<line_comment>--[^\n]*)
    | (?P<block_comment>/\*.*?\*/)
    | (?P<cast>::[A-Za-z_]\w*)
    | (?P<utc_now>:my_utc_now\b)
    | (?P<admin_id>:my_admin_id\b)
    | (?P<uuid_call>\b(?i:gen_random_uuid)\(\s*\))
    | (?P<bind>:[A-Za-z_]\w*)
    """,
    re.DOTALL | re.VERBOSE,
)

_REPLACEMENTS = {
    "line_comment": "",
    "block_comment": "",
    "utc_now": "NULL::timestamp",
    "admin_id": "NULL::uuid",
    "uuid_call": "NULL::uuid",
    "bind": "NULL",
}

_TRAILING_CAST_RE = re.compile(r"(?:\s*::\s*[A-Za-z_]\w*(?:\[\])?)+$")
_NULL_TOKEN_RE = re.compile(r"null(?:\s*::\s*[A-Za-z_]\w*)*", re.IGNORECASE)


@dataclass
class NormalizedSource:
    """
    Normalized SQL text plus the map back to the original text.

    The map is a list of anchors ``(normalized_pos, original_pos)`` taken
    right after every rewrite; between two anchors the texts are identical.
    """

    text: str
    original: str
    _normalized_anchors: List[int] = field(default_factory=lambda: [0])
    _original_anchors: List[int] = field(default_factory=lambda: [0])

    @classmethod
    def identity(cls, text: str) -> "NormalizedSource":
        return cls(text=text, original=text)

    def to_original(self, position: int) -> int:
        """Translate an offset in ``text`` to the matching offset in ``original``."""
        idx = bisect.bisect_right(self._normalized_anchors, position) - 1
        return self._original_anchors[idx] + (position - self._normalized_anchors[idx])


def normalize_source_mapped(content: str) -> NormalizedSource:
    """Strip comments and rewrite placeholders, keeping an offset map."""
    parts: List[str] = []
    normalized_anchors = [0]
    original_anchors = [0]
    out_len = 0
    last = 0

    for match in _SOURCE_TOKEN_RE.finditer(content):
        replacement = _REPLACEMENTS.get(match.lastgroup)
        if replacement is None:
            continue  # literal or cast, copied as-is

        start, end = match.span()
        parts.append(content[last:start])
        out_len += start - last
        parts.append(replacement)
        out_len += len(replacement)
        last = end

        normalized_anchors.append(out_len)
        original_anchors.append(end)

    parts.append(content[last:])

    return NormalizedSource(
        text="".join(parts),
        original=content,
        _normalized_anchors=normalized_anchors,
        _original_anchors=original_anchors,
    )


def normalize_source(content: str) -> str:
    """
    Normalize a whole SQL script before statement discovery.

    Args:
        content: Raw file text

    Returns:
        Text with comments removed and placeholders replaced by NULL forms
    """
    return normalize_source_mapped(content).text


def unescape_quoted(body: str, quote: str) -> str:
    """Undo ``\\'`` and doubled-quote escaping inside a literal's body."""

    def _replace(match: re.Match) -> str:
        escaped = match.group(1)
        if escaped is None:
            return quote
        if escaped == quote:
            return quote
        return match.group(0)

    pattern = r"\\(.)|" + re.escape(quote * 2)
    return re.sub(pattern, _replace, body, flags=re.DOTALL)


def _outer_quote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[0]
    return ""


def normalize_value(raw: str) -> str:
    """
    Normalize one scalar token from a VALUES row.

    Quoted literals lose one layer of matching quotes (and a trailing
    ``::type`` cast) and have their escapes undone. Bare tokens such as
    numbers, NULL or sub-selects are trimmed and placeholder-rewritten but
    otherwise left alone.

    Example:
        >>> normalize_value("  'O''Brien'  ")
        "O'Brien"
        >>> normalize_value("'{}'::jsonb")
        '{}'
    """
    value = raw.strip()

    quote = _outer_quote(value)
    if quote:
        return unescape_quoted(value[1:-1], quote)

    uncast = _TRAILING_CAST_RE.sub("", value)
    quote = _outer_quote(uncast)
    if quote and uncast != value:
        return unescape_quoted(uncast[1:-1], quote)

    return normalize_source(value).strip()


def is_null_token(value: str) -> bool:
    """True for ``null`` in any case, optionally followed by casts (``NULL::uuid``)."""
    return bool(_NULL_TOKEN_RE.fullmatch(value.strip()))

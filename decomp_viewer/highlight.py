"""Lightweight lexical classification of decompiled Java source.

The highlighter does not parse the language. It makes a single pass over the
text to find string literals and comments, then marks keywords that sit in
the remaining plain text. Spans always cover the full input without gaps.
"""

from __future__ import annotations

import bisect
import re
from dataclasses import dataclass
from typing import AbstractSet, List

DEFAULT = "default"
STRING = "string"
LINE_COMMENT = "line-comment"
BLOCK_COMMENT = "block-comment"
KEYWORD = "keyword"

JAVA_KEYWORDS = frozenset(
    {
        "abstract", "assert", "boolean", "break", "byte", "case", "catch",
        "char", "class", "const", "continue", "default", "do", "double",
        "else", "enum", "extends", "final", "finally", "float", "for", "goto",
        "if", "implements", "import", "instanceof", "int", "interface", "long",
        "native", "new", "package", "private", "protected", "public", "return",
        "short", "static", "strictfp", "super", "switch", "synchronized",
        "this", "throw", "throws", "transient", "try", "void", "volatile",
        "while", "true", "false", "null", "var",
    }
)

_WORD_RUN = re.compile(r"\w+")

_NORMAL = DEFAULT
_STRING_QUOTES = ("\"", "'")


@dataclass(frozen=True)
class Span:
    kind: str
    start: int
    end: int
    text: str

    def __len__(self) -> int:
        return self.end - self.start


def split_lexical_regions(text: str) -> List[Span]:
    """Partition ``text`` into default, string and comment spans."""

    spans: List[Span] = []
    state = _NORMAL
    delimiter = ""
    start = 0
    index = 0
    length = len(text)

    def flush(kind: str, end: int) -> None:
        if end > start:
            spans.append(Span(kind, start, end, text[start:end]))

    while index < length:
        char = text[index]
        following = text[index + 1] if index + 1 < length else ""

        if state == _NORMAL:
            if char == "/" and following == "/":
                flush(DEFAULT, index)
                start = index
                state = LINE_COMMENT
                index += 2
                continue
            if char == "/" and following == "*":
                flush(DEFAULT, index)
                start = index
                state = BLOCK_COMMENT
                index += 2
                continue
            if char in _STRING_QUOTES:
                flush(DEFAULT, index)
                start = index
                state = STRING
                delimiter = char
        elif state == STRING:
            # Escapes are not honoured; the same quote always terminates.
            if char == delimiter:
                flush(STRING, index + 1)
                start = index + 1
                state = _NORMAL
        elif state == LINE_COMMENT:
            if char == "\n":
                flush(LINE_COMMENT, index + 1)
                start = index + 1
                state = _NORMAL
        elif state == BLOCK_COMMENT:
            if char == "*" and following == "/":
                flush(BLOCK_COMMENT, index + 2)
                start = index + 2
                state = _NORMAL
                index += 2
                continue
        index += 1

    flush(state, length)
    return spans


def find_keyword_ranges(
    text: str, spans: List[Span], keywords: AbstractSet[str] = JAVA_KEYWORDS
) -> List[tuple[int, int]]:
    """Locate keyword runs in ``text`` that fall entirely inside default spans."""

    default_spans = [span for span in spans if span.kind == DEFAULT]
    starts = [span.start for span in default_spans]
    ranges: List[tuple[int, int]] = []
    for match in _WORD_RUN.finditer(text):
        if match.group() not in keywords:
            continue
        position = bisect.bisect_right(starts, match.start()) - 1
        if position < 0:
            continue
        container = default_spans[position]
        if match.start() >= container.start and match.end() <= container.end:
            ranges.append((match.start(), match.end()))
    return ranges


def highlight(text: str, *, keywords: AbstractSet[str] = JAVA_KEYWORDS) -> List[Span]:
    """Classify ``text`` into an ordered list of non-overlapping spans."""

    regions = split_lexical_regions(text)
    keyword_ranges = find_keyword_ranges(text, regions, keywords)
    if not keyword_ranges:
        return regions

    result: List[Span] = []
    pending = iter(keyword_ranges)
    current = next(pending, None)
    for span in regions:
        if span.kind != DEFAULT:
            result.append(span)
            continue
        cursor = span.start
        while current is not None and current[1] <= span.end:
            kw_start, kw_end = current
            if kw_start > cursor:
                result.append(Span(DEFAULT, cursor, kw_start, text[cursor:kw_start]))
            result.append(Span(KEYWORD, kw_start, kw_end, text[kw_start:kw_end]))
            cursor = kw_end
            current = next(pending, None)
        if cursor < span.end:
            result.append(Span(DEFAULT, cursor, span.end, text[cursor:span.end]))
    return result


__all__ = [
    "BLOCK_COMMENT",
    "DEFAULT",
    "JAVA_KEYWORDS",
    "KEYWORD",
    "LINE_COMMENT",
    "STRING",
    "Span",
    "find_keyword_ranges",
    "highlight",
    "split_lexical_regions",
]

"""
LZM Chart Compiler - Lexer / Line Classifier

Splits chart source text into classified lines.  Classification is purely
syntactic; whether a ``[name]`` sub-heading or a ``key=value`` line is
meaningful where it appears is decided by the section state machine.

Line shapes::

    // comment              (also inline, from ``//`` to end of line)
    <chart_body>            section heading
    [basic_1]               sub-heading
    tempo=140               key/value
    --                      bar separator
    [B1] (2) |1,0,2|        body line, ``{options}`` optional
"""

from __future__ import annotations

import re
from dataclasses import dataclass

# Regex patterns for classifying chart lines
_RE_SECTION_HEADING = re.compile(r"^<\s*([A-Za-z_][\w]*)\s*>$")
_RE_SUB_HEADING = re.compile(r"^\[\s*([^\]\s]+)\s*\]$")
_RE_KEY_VALUE = re.compile(r"^([A-Za-z_]\w*)\s*=\s*(.*?)$")
_RE_BODY_LINE = re.compile(
    r"^\[\s*(?P<tag>[^\]\s]+)\s*\]\s*"
    r"\((?P<beat>[^)]*)\)\s*"
    r"\|(?P<position>[^|]*)\|"
    r"(?:\s*\{(?P<options>[^}]*)\})?\s*$"
)

COMMENT_MARKER = "//"
BAR_SEPARATOR = "--"


@dataclass(frozen=True)
class ClassifiedLine:
    line_no: int
    raw: str


@dataclass(frozen=True)
class SectionHeading(ClassifiedLine):
    name: str


@dataclass(frozen=True)
class SubHeading(ClassifiedLine):
    name: str


@dataclass(frozen=True)
class KeyValue(ClassifiedLine):
    key: str
    value: str


@dataclass(frozen=True)
class BarSeparator(ClassifiedLine):
    pass


@dataclass(frozen=True)
class BodyLine(ClassifiedLine):
    tag: str
    raw_beat: str
    raw_position: str
    raw_options: str = ""


@dataclass(frozen=True)
class Malformed(ClassifiedLine):
    pass


def strip_comment(raw: str) -> str:
    """Drop everything from ``//`` onward and surrounding whitespace."""
    idx = raw.find(COMMENT_MARKER)
    if idx >= 0:
        raw = raw[:idx]
    return raw.strip()


def classify_line(raw: str, line_no: int) -> ClassifiedLine | None:
    """
    Classify one source line.

    Returns ``None`` for blank and comment-only lines and a
    :class:`Malformed` instance for lines matching no known shape.
    """
    line = strip_comment(raw)
    if not line:
        return None

    if line == BAR_SEPARATOR:
        return BarSeparator(line_no, line)

    m = _RE_SECTION_HEADING.match(line)
    if m:
        return SectionHeading(line_no, line, m.group(1).lower())

    m = _RE_BODY_LINE.match(line)
    if m:
        return BodyLine(
            line_no,
            line,
            tag=m.group("tag"),
            raw_beat=m.group("beat").strip(),
            raw_position=m.group("position").strip(),
            raw_options=(m.group("options") or "").strip(),
        )

    m = _RE_SUB_HEADING.match(line)
    if m:
        return SubHeading(line_no, line, m.group(1))

    m = _RE_KEY_VALUE.match(line)
    if m:
        return KeyValue(line_no, line, m.group(1), m.group(2).strip())

    return Malformed(line_no, line)


def tokenize(text: str) -> list[ClassifiedLine]:
    """Classify every non-blank line of *text* (line numbers are 1-based)."""
    text = (text or "").lstrip("\ufeff")
    lines: list[ClassifiedLine] = []
    for i, raw in enumerate(text.splitlines(), start=1):
        classified = classify_line(raw, i)
        if classified is not None:
            lines.append(classified)
    return lines

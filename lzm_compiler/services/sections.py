"""
LZM Chart Compiler - Section State Machine

Walks the classified lines once and attaches an immutable
:class:`LineContext` (active section + active sub-heading) to every line
that belongs to a section.  The result is partitioned per section so the
table builders can work on disjoint line ranges independently.

Sections are re-entrant: ``<header>`` may appear again after
``<chart_body>`` and so on.  Lines that make no sense where they appear
are reported as recoverable syntax diagnostics and dropped.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field

from lzm_compiler.models import NoteTypeKey
from lzm_compiler.services.diagnostics import Diagnostics
from lzm_compiler.services.lexer import (
    BarSeparator,
    BodyLine,
    ClassifiedLine,
    KeyValue,
    Malformed,
    SectionHeading,
    SubHeading,
)


class Section(enum.Enum):
    NONE = "none"
    HEADER = "header"
    NOTES = "notes"
    ANIMATIONS = "animations"
    CHART_BODY = "chart_body"

    @classmethod
    def from_name(cls, name: str) -> Section | None:
        for member in cls:
            if member is not cls.NONE and member.value == name:
                return member
        return None


@dataclass(frozen=True)
class LineContext:
    section: Section
    # NoteTypeKey inside <notes>, animation name inside <animations>
    sub_key: NoteTypeKey | str | None = None


@dataclass(frozen=True)
class ContextLine:
    line: ClassifiedLine
    context: LineContext

    @property
    def line_no(self) -> int:
        return self.line.line_no


@dataclass
class RoutedSource:
    """Lines grouped by the section they were routed to, in source order."""

    header: list[ContextLine] = field(default_factory=list)
    notes: list[ContextLine] = field(default_factory=list)
    animations: list[ContextLine] = field(default_factory=list)
    chart_body: list[ContextLine] = field(default_factory=list)
    first_header_line: int | None = None
    has_chart_body: bool = False

    @property
    def first_body_line(self) -> int | None:
        for cl in self.chart_body:
            if isinstance(cl.line, BodyLine):
                return cl.line_no
        return None


class SectionStateMachine:
    """Routes classified lines to sections, threading context explicitly."""

    def __init__(self, diagnostics: Diagnostics):
        self.diagnostics = diagnostics

    def route(self, lines: list[ClassifiedLine]) -> RoutedSource:
        routed = RoutedSource()
        context = LineContext(Section.NONE)

        for line in lines:
            if isinstance(line, SectionHeading):
                context = self._enter_section(line, routed)
                continue

            if isinstance(line, Malformed):
                self.diagnostics.syntax(
                    "MALFORMED_LINE",
                    f"Unrecognized line skipped: {line.raw!r}",
                    line.line_no,
                    context.section.value,
                )
                continue

            if isinstance(line, SubHeading):
                context = self._enter_sub_heading(line, context, routed)
                continue

            if isinstance(line, KeyValue):
                self._route_key_value(line, context, routed)
                continue

            if isinstance(line, (BodyLine, BarSeparator)):
                if context.section is Section.CHART_BODY:
                    routed.chart_body.append(ContextLine(line, context))
                else:
                    self.diagnostics.syntax(
                        "BODY_OUTSIDE_CHART_BODY",
                        f"Chart body line outside <chart_body> ignored: {line.raw!r}",
                        line.line_no,
                        context.section.value,
                    )

        return routed

    # ------------------------------------------------------------------

    def _enter_section(self, line: SectionHeading, routed: RoutedSource) -> LineContext:
        section = Section.from_name(line.name)
        if section is None:
            self.diagnostics.syntax(
                "UNKNOWN_SECTION",
                f"Unknown section <{line.name}>; its lines are ignored",
                line.line_no,
            )
            return LineContext(Section.NONE)
        if section is Section.HEADER and routed.first_header_line is None:
            routed.first_header_line = line.line_no
        if section is Section.CHART_BODY:
            routed.has_chart_body = True
        return LineContext(section)

    def _enter_sub_heading(
        self, line: SubHeading, context: LineContext, routed: RoutedSource
    ) -> LineContext:
        section = context.section
        if section is Section.NOTES:
            try:
                key = NoteTypeKey.parse(line.name)
            except ValueError as exc:
                self.diagnostics.syntax("UNKNOWN_NOTE_TYPE", str(exc), line.line_no, section.value)
                return LineContext(section)
            new_context = LineContext(section, key)
            routed.notes.append(ContextLine(line, new_context))
            return new_context

        if section is Section.ANIMATIONS:
            new_context = LineContext(section, line.name)
            routed.animations.append(ContextLine(line, new_context))
            return new_context

        self.diagnostics.syntax(
            "UNEXPECTED_SUB_HEADING",
            f"Sub-heading [{line.name}] is only valid inside <notes> or <animations>",
            line.line_no,
            section.value,
        )
        return context

    def _route_key_value(self, line: KeyValue, context: LineContext, routed: RoutedSource) -> None:
        section = context.section
        if section is Section.NONE:
            self.diagnostics.syntax(
                "KEY_OUTSIDE_SECTION",
                f"Key '{line.key}' appears before any section; ignored",
                line.line_no,
            )
            return
        if section in (Section.NOTES, Section.ANIMATIONS) and context.sub_key is None:
            self.diagnostics.syntax(
                "KEY_WITHOUT_SUB_HEADING",
                f"Key '{line.key}' in <{section.value}> needs a [name] heading first; ignored",
                line.line_no,
                section.value,
            )
            return

        target = {
            Section.HEADER: routed.header,
            Section.NOTES: routed.notes,
            Section.ANIMATIONS: routed.animations,
            Section.CHART_BODY: routed.chart_body,
        }[section]
        target.append(ContextLine(line, context))

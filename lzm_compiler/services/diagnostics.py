"""
LZM Chart Compiler - Diagnostics Collector

Every stage of the compiler reports problems here instead of raising past
the compiler boundary.  The collector is shared by the table builders that
run concurrently, so ``add()`` is guarded by a lock; ordering between
sections is not guaranteed until :meth:`Diagnostics.sorted` is called.
"""

from __future__ import annotations

import enum
import threading
from dataclasses import dataclass
from typing import Any

from loguru import logger


class ChartCompileError(Exception):
    """Base for errors raised inside the compiler; never escapes compile_chart()."""


class DiagnosticKind(enum.Enum):
    RECOVERABLE_SYNTAX = "recoverable_syntax"
    RECOVERABLE_REFERENCE = "recoverable_reference"
    FATAL_RESOLUTION = "fatal_resolution"
    FATAL_STRUCTURAL = "fatal_structural"

    @property
    def is_fatal(self) -> bool:
        return self in (DiagnosticKind.FATAL_RESOLUTION, DiagnosticKind.FATAL_STRUCTURAL)


_KIND_ICONS = {
    DiagnosticKind.RECOVERABLE_SYNTAX: "⚠️",
    DiagnosticKind.RECOVERABLE_REFERENCE: "🔗",
    DiagnosticKind.FATAL_RESOLUTION: "❌",
    DiagnosticKind.FATAL_STRUCTURAL: "🛑",
}


@dataclass(frozen=True)
class Diagnostic:
    """A single compiler finding with its source location."""

    kind: DiagnosticKind
    code: str
    message: str
    line: int | None = None
    section: str | None = None

    @property
    def is_fatal(self) -> bool:
        return self.kind.is_fatal

    def __str__(self) -> str:
        icon = _KIND_ICONS.get(self.kind, "?")
        loc = f" (line {self.line})" if self.line else ""
        sec = f" <{self.section}>" if self.section else ""
        return f"{icon} [{self.code}]{sec}{loc} {self.message}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "code": self.code,
            "message": self.message,
            "line": self.line,
            "section": self.section,
        }


class Diagnostics:
    """Thread-safe accumulator of :class:`Diagnostic` values."""

    def __init__(self, source_name: str = "<in-memory>"):
        self.source_name = source_name
        self._items: list[tuple[int, Diagnostic]] = []
        self._lock = threading.Lock()
        self._counter = 0

    def add(
        self,
        kind: DiagnosticKind,
        code: str,
        message: str,
        line: int | None = None,
        section: str | None = None,
    ) -> Diagnostic:
        diagnostic = Diagnostic(kind, code, message, line, section)
        with self._lock:
            self._items.append((self._counter, diagnostic))
            self._counter += 1

        if kind.is_fatal:
            logger.error("{} {}", self.source_name, diagnostic)
        else:
            logger.warning("{} {}", self.source_name, diagnostic)
        return diagnostic

    def syntax(self, code: str, message: str, line: int | None = None, section: str | None = None) -> Diagnostic:
        return self.add(DiagnosticKind.RECOVERABLE_SYNTAX, code, message, line, section)

    def reference(self, code: str, message: str, line: int | None = None, section: str | None = None) -> Diagnostic:
        return self.add(DiagnosticKind.RECOVERABLE_REFERENCE, code, message, line, section)

    def resolution(self, code: str, message: str, line: int | None = None, section: str | None = None) -> Diagnostic:
        return self.add(DiagnosticKind.FATAL_RESOLUTION, code, message, line, section)

    def structural(self, code: str, message: str, line: int | None = None, section: str | None = None) -> Diagnostic:
        return self.add(DiagnosticKind.FATAL_STRUCTURAL, code, message, line, section)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def sorted(self) -> tuple[Diagnostic, ...]:
        """
        Deterministic ordering: by source line (file-level findings without
        a line go last), then by section name, then by message.  Entries
        from different threads are therefore ordered identically run to run.
        """
        with self._lock:
            items = list(self._items)

        def key(item: tuple[int, Diagnostic]):
            _, d = item
            return (
                d.line is None,
                d.line or 0,
                d.section or "",
                d.code,
                d.message,
            )

        return tuple(d for _, d in sorted(items, key=key))

    def by_kind(self, kind: DiagnosticKind) -> list[Diagnostic]:
        return [d for d in self.sorted() if d.kind == kind]

    @property
    def has_fatal(self) -> bool:
        return any(d.is_fatal for d in self.sorted())

    @property
    def aborted(self) -> bool:
        return any(d.kind == DiagnosticKind.FATAL_STRUCTURAL for d in self.sorted())

    def count(self, kind: DiagnosticKind) -> int:
        return sum(1 for d in self.sorted() if d.kind == kind)

    def summary(self) -> str:
        status = "✅ COMPILED" if not self.has_fatal else "❌ FAILED"
        parts = [f"{status}: {self.source_name}"]
        for kind in DiagnosticKind:
            n = self.count(kind)
            if n:
                parts.append(f"  {n} {kind.value.replace('_', ' ')}")
        return "\n".join(parts)

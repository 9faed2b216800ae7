"""
LZM Chart Compiler - Measure Timeline Builder & Beat Resolver

``<chart_body>`` is a sequence of groups separated by ``--``.  Each group
may set ``time_signature``, ``tempo`` and ``subdivision`` for its measure;
anything not set is inherited from the previous measure (or from the
header defaults for measure 0).

    measure duration (ms) = numerator * (60000 / tempo) * (4 / denominator)

Tempo changes inside a measure are not modelled: the last ``tempo=`` of a
group applies to the whole measure.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from loguru import logger

from lzm_compiler.models import BeatPosition, Header, Measure
from lzm_compiler.services.diagnostics import ChartCompileError, Diagnostics
from lzm_compiler.services.lexer import BarSeparator, KeyValue
from lzm_compiler.services.primitives import (
    PrimitiveParseError,
    parse_positive_int,
    parse_time_signature,
)
from lzm_compiler.services.sections import ContextLine

CHART_BODY_SECTION = "chart_body"

MEASURE_KEYS = ("time_signature", "tempo", "subdivision")


class BeatResolutionError(ChartCompileError):
    """Raised when a beat points at a measure the timeline does not have."""


@dataclass(frozen=True)
class Timeline:
    measures: tuple[Measure, ...]

    def __len__(self) -> int:
        return len(self.measures)

    def __getitem__(self, index: int) -> Measure:
        return self.measures[index]

    def target_measure(self, beat: BeatPosition, measure_index: int) -> Measure:
        target = measure_index + beat.bars_ahead
        if target < 0 or target >= len(self.measures):
            raise BeatResolutionError(
                f"Beat {beat.value:g} (+{beat.bars_ahead} bars from measure {measure_index}) "
                f"targets measure {target}, but the timeline has {len(self.measures)} measure(s)"
            )
        return self.measures[target]

    def resolve(self, beat: BeatPosition, measure_index: int) -> float:
        """
        Absolute time in milliseconds of *beat*, relative to measure
        *measure_index*.  The beat value is not checked against the measure
        length: values past the bar simply land outside it.
        """
        m = self.target_measure(beat, measure_index)
        return m.start_time_ms + (beat.value / m.subdivision) * m.duration_ms

    def resolve_global_beat(self, beat: BeatPosition, measure_index: int) -> float:
        """Quarter-note beats elapsed since the start of the chart."""
        m = self.target_measure(beat, measure_index)
        elapsed = sum(_quarter_beats(prev) for prev in self.measures[: m.index])
        return elapsed + (beat.value / m.subdivision) * _quarter_beats(m)

    @property
    def total_duration_ms(self) -> float:
        if not self.measures:
            return 0.0
        return self.measures[-1].end_time_ms


def _quarter_beats(m: Measure) -> float:
    return m.time_signature.numerator * 4.0 / m.time_signature.denominator


def _close_measure(
    index: int,
    overrides: dict[str, Any],
    previous: Measure | None,
    header: Header,
) -> Measure:
    if previous is None:
        time_signature = header.default_time_signature
        tempo = header.default_tempo
        subdivision = header.default_time_signature.denominator
        start_time_ms = 0.0
    else:
        time_signature = previous.time_signature
        tempo = previous.tempo
        subdivision = previous.subdivision
        start_time_ms = previous.end_time_ms

    return Measure(
        index=index,
        time_signature=overrides.get("time_signature", time_signature),
        tempo=overrides.get("tempo", tempo),
        subdivision=overrides.get("subdivision", subdivision),
        start_time_ms=start_time_ms,
    )


def build_timeline(
    body_lines: list[ContextLine],
    header: Header,
    diagnostics: Diagnostics,
    has_chart_body: bool = True,
) -> Timeline:
    """
    Fold the ``<chart_body>`` stream into resolved measures.

    The final group needs no trailing ``--``; it only yields a measure when
    it contains at least one line.  A present chart body always yields at
    least one measure.
    """
    measures: list[Measure] = []
    overrides: dict[str, Any] = {}
    group_has_lines = False

    def close() -> None:
        previous = measures[-1] if measures else None
        measure = _close_measure(len(measures), overrides, previous, header)
        logger.debug(
            "📏 Measure {} | {} @ {} BPM | subdivision={} | start={:.1f}ms",
            measure.index,
            measure.time_signature,
            measure.tempo,
            measure.subdivision,
            measure.start_time_ms,
        )
        measures.append(measure)

    for cl in body_lines:
        line = cl.line
        if isinstance(line, BarSeparator):
            close()
            overrides = {}
            group_has_lines = False
            continue

        group_has_lines = True
        if not isinstance(line, KeyValue):
            continue

        try:
            if line.key == "time_signature":
                value: Any = parse_time_signature(line.value)
            elif line.key in ("tempo", "subdivision"):
                value = parse_positive_int(line.value, line.key)
            else:
                diagnostics.syntax(
                    "UNKNOWN_MEASURE_KEY",
                    f"Unrecognized chart body option '{line.key}' ignored",
                    line.line_no,
                    CHART_BODY_SECTION,
                )
                continue
        except PrimitiveParseError as exc:
            diagnostics.syntax(
                "MALFORMED_MEASURE_VALUE",
                f"{exc}; measure {len(measures)} inherits the previous value",
                line.line_no,
                CHART_BODY_SECTION,
            )
            continue

        if line.key == "tempo" and "tempo" in overrides:
            logger.warning(
                "⚠️ Intra-measure tempo change at line {} is not supported; "
                "measure {} uses {} BPM throughout",
                line.line_no,
                len(measures),
                value,
            )
        overrides[line.key] = value

    if group_has_lines or (has_chart_body and not measures):
        close()

    return Timeline(tuple(measures))

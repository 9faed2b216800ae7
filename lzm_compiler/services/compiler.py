"""
LZM Chart Compiler - Compiler Service

Turns ``.lzm`` chart source text into a resolved :class:`Chart`.

Pipeline:
    1. lexer           : classify every line
    2. section machine : attach section / sub-heading context, partition
    3. table builders  : header, note styles, animations (concurrently)
    4. timeline        : fold ``<chart_body>`` groups into measures
    5. body objects    : build platforms / notes against the timeline

Key entry points:
- ``compile_chart()``      : compile from raw text (never raises on bad charts)
- ``compile_chart_file()`` : read a chart file from local disk and compile it
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from loguru import logger

from lzm_compiler import config
from lzm_compiler.models import AnimationDef, Chart, Header, NoteStyle, NoteTypeKey, TimeSignature
from lzm_compiler.services.body_builder import BodyObjectBuilder
from lzm_compiler.services.diagnostics import Diagnostics
from lzm_compiler.services.lexer import BarSeparator, BodyLine, tokenize
from lzm_compiler.services.sections import RoutedSource, SectionStateMachine
from lzm_compiler.services.tables import build_animations, build_header, build_note_styles
from lzm_compiler.services.timeline import build_timeline


def _build_tables(
    routed: RoutedSource,
    diagnostics: Diagnostics,
    parallel: bool,
) -> tuple[Header, dict[NoteTypeKey, NoteStyle], dict[str, AnimationDef]]:
    """Run the three independent table builders; returns once all are done."""
    header_present = routed.first_header_line is not None

    if not parallel:
        return (
            build_header(routed.header, diagnostics, header_present),
            build_note_styles(routed.notes, diagnostics),
            build_animations(routed.animations, diagnostics),
        )

    with ThreadPoolExecutor(
        max_workers=max(1, config.TABLE_WORKERS), thread_name_prefix="lzm-tables"
    ) as pool:
        header_future = pool.submit(build_header, routed.header, diagnostics, header_present)
        styles_future = pool.submit(build_note_styles, routed.notes, diagnostics)
        animations_future = pool.submit(build_animations, routed.animations, diagnostics)
    # Leaving the executor context waits for all three builders.
    return header_future.result(), styles_future.result(), animations_future.result()


def _fallback_header() -> Header:
    return Header("", config.DEFAULT_TEMPO, TimeSignature(4, 4))


def compile_chart(
    text: str,
    source_name: str = "<in-memory>",
    parallel: bool | None = None,
) -> Chart:
    """
    Compile chart source *text* into a :class:`Chart`.

    Problems never raise: they are collected as diagnostics on the returned
    chart, and the caller decides (e.g. via ``chart.ok``) whether to use it.
    A chart body without a preceding ``<header>`` aborts compilation; the
    returned chart then has an empty timeline and no objects. Any unexpected
    error is logged and reported the same way as ``INTERNAL_ERROR``.
    """
    diagnostics = Diagnostics(source_name)
    use_parallel = config.PARALLEL_TABLES if parallel is None else parallel

    header: Header = _fallback_header()
    styles: dict[NoteTypeKey, NoteStyle] = {}
    animations: dict[str, AnimationDef] = {}

    try:
        lines = tokenize(text)
        routed = SectionStateMachine(diagnostics).route(lines)
        header, styles, animations = _build_tables(routed, diagnostics, use_parallel)

        first_body = routed.first_body_line
        first_header = routed.first_header_line
        if first_body is not None and (first_header is None or first_header > first_body):
            diagnostics.structural(
                "MISSING_HEADER",
                "Chart body objects appear before any <header> section; compilation aborted",
                first_body,
                "chart_body",
            )
            return Chart(header, styles, animations, (), (), diagnostics.sorted())

        timeline = build_timeline(routed.chart_body, header, diagnostics, routed.has_chart_body)

        builder = BodyObjectBuilder(timeline, styles, animations, diagnostics)
        measure_index = 0
        for cl in routed.chart_body:
            if isinstance(cl.line, BarSeparator):
                measure_index += 1
            elif isinstance(cl.line, BodyLine):
                builder.build(cl.line, measure_index)
        objects = builder.finish()
    except Exception as exc:
        logger.exception("❌ Compilation of {} aborted: {}", source_name, exc)
        diagnostics.structural("INTERNAL_ERROR", f"Compilation aborted: {exc}")
        return Chart(header, styles, animations, (), (), diagnostics.sorted())

    chart = Chart(
        header=header,
        note_customization=styles,
        animations=animations,
        timeline=timeline.measures,
        objects=objects,
        diagnostics=diagnostics.sorted(),
    )

    logger.info(
        "📊 Compiled chart: {} | {} measures | {} platforms | {} notes | "
        "{} animations | {} diagnostics | ~{:.1f}s",
        source_name,
        len(chart.timeline),
        len(chart.platforms),
        len(chart.notes),
        len(chart.animations),
        len(chart.diagnostics),
        timeline.total_duration_ms / 1000.0,
    )
    return chart


def compile_chart_file(path: str | Path, parallel: bool | None = None) -> Chart:
    """
    Read a chart file (UTF-8, BOM tolerated) and compile it.

    Raises
    ------
    FileNotFoundError
        If the chart file does not exist.
    """
    chart_path = Path(path)
    if not chart_path.exists():
        raise FileNotFoundError(f"Chart file not found: {path}")

    if chart_path.suffix.lower() not in config.CHART_EXTENSIONS:
        logger.warning("⚠️ Unexpected chart extension {!r} for {}", chart_path.suffix, chart_path.name)

    text = chart_path.read_text(encoding="utf-8-sig", errors="replace")
    return compile_chart(text, source_name=chart_path.name, parallel=parallel)

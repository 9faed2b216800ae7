"""
LZM Chart Compiler - Header / Notes / Animation Table Builders

Three independent builders, one per declarative section.  They read only
their own routed lines and write only to the shared (thread-safe)
diagnostics collector, so the compiler runs them concurrently.

Conflict policy is last-writer-wins everywhere.  Redefining a note style
or an animation is reported as a recoverable diagnostic; repeating a
header key is not (header keys are routinely overridden by later
``<header>`` blocks).
"""

from __future__ import annotations

from typing import Any

from loguru import logger

from lzm_compiler import config
from lzm_compiler.models import (
    AnimationDef,
    AnimationType,
    Header,
    NoteStyle,
    NoteTypeKey,
)
from lzm_compiler.services.diagnostics import Diagnostics
from lzm_compiler.services.lexer import KeyValue, SubHeading
from lzm_compiler.services.primitives import (
    PrimitiveParseError,
    parse_animation_values,
    parse_color,
    parse_float,
    parse_int,
    parse_positive_int,
    parse_time_signature,
)
from lzm_compiler.services.sections import ContextLine

HEADER_SECTION = "header"
NOTES_SECTION = "notes"
ANIMATIONS_SECTION = "animations"

HEADER_OFFSET_KEYS = ("audio_offset", "offset_ms")


# ---------------------------------------------------------------------------
# <header>
# ---------------------------------------------------------------------------


def build_header(
    lines: list[ContextLine], diagnostics: Diagnostics, section_present: bool = True
) -> Header:
    """Fold ``<header>`` key/values into a :class:`Header`."""
    values: dict[str, Any] = {
        "audio_filename": "",
        "default_tempo": config.DEFAULT_TEMPO,
        "default_time_signature": parse_time_signature(config.DEFAULT_TIME_SIGNATURE),
        "offset_ms": 0,
    }
    seen: set[str] = set()

    for cl in lines:
        kv = cl.line
        if not isinstance(kv, KeyValue):
            continue
        key = kv.key
        if key in HEADER_OFFSET_KEYS:
            key = "offset_ms"
        try:
            if key == "audio_filename":
                value: Any = kv.value.strip().strip('"')
            elif key == "default_tempo":
                value = parse_positive_int(kv.value, "default_tempo")
            elif key == "default_time_signature":
                value = parse_time_signature(kv.value)
            elif key == "offset_ms":
                value = parse_int(kv.value, kv.key)
            else:
                diagnostics.syntax(
                    "UNKNOWN_HEADER_KEY",
                    f"Unrecognized header key '{kv.key}' ignored",
                    kv.line_no,
                    HEADER_SECTION,
                )
                continue
        except PrimitiveParseError as exc:
            diagnostics.syntax("MALFORMED_HEADER_VALUE", str(exc), kv.line_no, HEADER_SECTION)
            continue

        if key in seen:
            logger.debug("🔁 Header key {} overridden at line {}", key, kv.line_no)
        seen.add(key)
        values[key] = value

    if section_present:
        for key in ("default_tempo", "default_time_signature"):
            if key not in seen:
                diagnostics.syntax(
                    "MISSING_HEADER_KEY",
                    f"Header has no '{key}'; using {values[key]}",
                    None,
                    HEADER_SECTION,
                )
        if "audio_filename" not in seen:
            diagnostics.syntax(
                "MISSING_HEADER_KEY", "Header has no 'audio_filename'", None, HEADER_SECTION
            )

    return Header(**values)


# ---------------------------------------------------------------------------
# <notes>
# ---------------------------------------------------------------------------


def build_note_styles(
    lines: list[ContextLine], diagnostics: Diagnostics
) -> dict[NoteTypeKey, NoteStyle]:
    """Collect per-note-type customisation (currently ``color=RRGGBB``)."""
    styles: dict[NoteTypeKey, NoteStyle] = {}
    defined_at: dict[NoteTypeKey, int] = {}

    for cl in lines:
        kv = cl.line
        if not isinstance(kv, KeyValue):
            continue
        note_key = cl.context.sub_key
        if not isinstance(note_key, NoteTypeKey):
            continue
        if kv.key != "color":
            diagnostics.syntax(
                "UNKNOWN_NOTE_KEY",
                f"Unrecognized key '{kv.key}' for [{note_key}] ignored",
                kv.line_no,
                NOTES_SECTION,
            )
            continue
        try:
            color = parse_color(kv.value)
        except PrimitiveParseError as exc:
            diagnostics.syntax("MALFORMED_COLOR", str(exc), kv.line_no, NOTES_SECTION)
            continue

        if note_key in defined_at:
            diagnostics.syntax(
                "REDEFINITION",
                f"Style for [{note_key}] redefined (first defined on line {defined_at[note_key]})",
                kv.line_no,
                NOTES_SECTION,
            )
        defined_at[note_key] = kv.line_no
        styles[note_key] = NoteStyle(color)

    return styles


def note_color(styles: dict[NoteTypeKey, NoteStyle], key: NoteTypeKey) -> tuple[int, int, int, int]:
    """Configured color for *key*, else the built-in default."""
    style = styles.get(key)
    if style is not None:
        return style.color
    return config.DEFAULT_NOTE_COLORS.get(str(key), config.FALLBACK_NOTE_COLOR)


# ---------------------------------------------------------------------------
# <animations>
# ---------------------------------------------------------------------------

ANIMATION_KEYS = ("animation_type", "duration", "values")


def _finish_animation(
    block: dict[str, Any], table: dict[str, AnimationDef], diagnostics: Diagnostics
) -> None:
    name: str = block["name"]
    line_no: int = block["line"]
    fields: dict[str, tuple[str, int]] = block["fields"]

    missing = [k for k in ANIMATION_KEYS if k not in fields]
    if missing:
        diagnostics.syntax(
            "INCOMPLETE_ANIMATION",
            f"Animation [{name}] is missing {', '.join(missing)}; dropped",
            line_no,
            ANIMATIONS_SECTION,
        )
        return

    type_text, type_line = fields["animation_type"]
    try:
        anim_type = AnimationType.from_code(type_text)
    except ValueError as exc:
        diagnostics.syntax(
            "UNKNOWN_ANIMATION_TYPE", f"{exc}; animation [{name}] dropped", type_line, ANIMATIONS_SECTION
        )
        return

    try:
        duration_text = fields["duration"][0]
        duration_ms = parse_float(duration_text, "animation duration")
        if duration_ms <= 0:
            raise PrimitiveParseError(f"Animation duration must be positive, got {duration_ms}")
        values_text = fields["values"][0]
        values = parse_animation_values(values_text)
    except PrimitiveParseError as exc:
        diagnostics.syntax(
            "MALFORMED_ANIMATION", f"{exc}; animation [{name}] dropped", line_no, ANIMATIONS_SECTION
        )
        return

    if name in table:
        diagnostics.syntax(
            "REDEFINITION",
            f"Animation [{name}] redefined; the later definition wins",
            line_no,
            ANIMATIONS_SECTION,
        )
    table[name] = AnimationDef(name, anim_type, duration_ms, values)


def build_animations(
    lines: list[ContextLine], diagnostics: Diagnostics
) -> dict[str, AnimationDef]:
    """
    Build the named-animation table.

    Each ``[name]`` block takes ``animation_type`` (``t``/``r``/``s``),
    ``duration`` in milliseconds and ``values={v0;v1}``.  Incomplete or
    unrecognized blocks are dropped so references to them fail later, at
    body-object resolution.
    """
    table: dict[str, AnimationDef] = {}
    block: dict[str, Any] | None = None

    for cl in lines:
        line = cl.line
        if isinstance(line, SubHeading):
            if block is not None:
                _finish_animation(block, table, diagnostics)
            block = {"name": cl.context.sub_key, "line": line.line_no, "fields": {}}
            continue
        if not isinstance(line, KeyValue) or block is None:
            continue
        if line.key not in ANIMATION_KEYS:
            diagnostics.syntax(
                "UNKNOWN_ANIMATION_KEY",
                f"Unrecognized key '{line.key}' in animation [{block['name']}] ignored",
                line.line_no,
                ANIMATIONS_SECTION,
            )
            continue
        block["fields"][line.key] = (line.value, line.line_no)

    if block is not None:
        _finish_animation(block, table, diagnostics)

    logger.debug("🎞️ Built {} animation(s)", len(table))
    return table

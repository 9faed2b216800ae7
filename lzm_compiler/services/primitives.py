"""
LZM Chart Compiler - Primitive Value Parsers

Parsers for the small sub-grammars embedded in chart lines:

    beat expression     ``2``  ``2;3.5``  ``2;3.5,8``
    position vectors    ``x``  ``x,z``  ``x,y,z``  joined by ``;``
    edge block          ``left;right`` with each side empty, ``m`` or
                        ``x0,b0 : x1,b1``
    color               ``RRGGBB`` (``#`` prefix tolerated)
    time signature      ``7/8``
    animation values    ``{v0;v1}``

Every parser raises :class:`PrimitiveParseError` on bad input; callers turn
that into a diagnostic for the line being compiled.
"""

from __future__ import annotations

import math
import re

from lzm_compiler.models import (
    EDGE_EXPLICIT,
    EDGE_MIRROR,
    EDGE_STRAIGHT,
    RGBA8,
    BeatPosition,
    ControlPointSpec,
    EdgeSpec,
    TimeSignature,
    Vector3,
)
from lzm_compiler.services.diagnostics import ChartCompileError

_RE_INT = re.compile(r"^[+-]?[0-9]+$")
_RE_HEX_COLOR = re.compile(r"^[0-9A-Fa-f]{6}$")
_RE_NAME_SPLIT = re.compile(r"[,;]")

MIRROR_MARKER = "m"


class PrimitiveParseError(ChartCompileError, ValueError):
    """Raised when an embedded value cannot be parsed."""


# ---------------------------------------------------------------------------
# Numbers
# ---------------------------------------------------------------------------


def parse_float(text: str, what: str = "value") -> float:
    raw = (text or "").strip()
    try:
        value = float(raw)
    except ValueError:
        raise PrimitiveParseError(f"Malformed {what}: {raw!r} is not a number") from None
    if not math.isfinite(value):
        raise PrimitiveParseError(f"Malformed {what}: {raw!r} is not finite")
    return value


def parse_int(text: str, what: str = "value") -> int:
    raw = (text or "").strip()
    if not _RE_INT.match(raw):
        raise PrimitiveParseError(f"Malformed {what}: {raw!r} is not an integer")
    try:
        value = int(raw)
        # Timing math runs in floats; anything past float range would overflow there
        float(value)
    except (ValueError, OverflowError):
        raise PrimitiveParseError(f"Malformed {what}: {raw!r} is out of range") from None
    return value


def parse_positive_int(text: str, what: str = "value") -> int:
    value = parse_int(text, what)
    if value <= 0:
        raise PrimitiveParseError(f"{what} must be positive, got {value}")
    return value


# ---------------------------------------------------------------------------
# Beats
# ---------------------------------------------------------------------------


def parse_beat_position(text: str) -> BeatPosition:
    """Parse ``b`` or ``b,k`` (``k`` = bars ahead, non-negative integer)."""
    value_text, sep, bars_text = (text or "").partition(",")
    value = parse_float(value_text, "beat")
    bars_ahead = 0
    if sep:
        bars_ahead = parse_int(bars_text, "bar-skip")
        if bars_ahead < 0:
            raise PrimitiveParseError(f"Bar-skip must not be negative, got {bars_ahead}")
    return BeatPosition(value, bars_ahead)


def parse_beat_expression(text: str) -> tuple[BeatPosition, ...]:
    """
    Parse the contents of ``( ... )`` on a body line.

    One or two beats separated by ``;``.  The ``,k`` bar-skip suffix may
    only be attached to the last beat.
    """
    raw = (text or "").strip()
    if not raw:
        raise PrimitiveParseError("Empty beat expression")
    parts = [p.strip() for p in raw.split(";")]
    if len(parts) > 2:
        raise PrimitiveParseError(f"Beat expression takes at most two beats: {raw!r}")
    for part in parts[:-1]:
        if "," in part:
            raise PrimitiveParseError(
                f"Bar-skip suffix is only allowed on the last beat: {raw!r}"
            )
    return tuple(parse_beat_position(p) for p in parts)


# ---------------------------------------------------------------------------
# Positions
# ---------------------------------------------------------------------------


def parse_vector(text: str) -> Vector3:
    """``x`` → (x, 0, 0); ``x,z`` → (x, 0, z); ``x,y,z`` → (x, y, z)."""
    raw = (text or "").strip().strip("{}").strip()
    if not raw:
        raise PrimitiveParseError("Empty position vector")
    comps = [parse_float(c, "position component") for c in raw.split(",")]
    if len(comps) == 1:
        return Vector3(comps[0], 0.0, 0.0)
    if len(comps) == 2:
        return Vector3(comps[0], 0.0, comps[1])
    if len(comps) == 3:
        return Vector3(comps[0], comps[1], comps[2])
    raise PrimitiveParseError(f"Position vector has {len(comps)} components: {raw!r}")


def parse_positions(text: str) -> tuple[Vector3, ...]:
    raw = (text or "").strip()
    if not raw:
        raise PrimitiveParseError("Empty position expression")
    return tuple(parse_vector(v) for v in raw.split(";"))


# ---------------------------------------------------------------------------
# Bezier edges
# ---------------------------------------------------------------------------


def _parse_control_point(text: str) -> ControlPointSpec:
    x_text, sep, beat_text = text.strip().partition(",")
    if not sep:
        raise PrimitiveParseError(f"Control point needs 'x,beat': {text.strip()!r}")
    return ControlPointSpec(parse_float(x_text, "control point x"), parse_beat_position(beat_text))


def parse_edge(text: str) -> EdgeSpec:
    """One side of an edge block: empty, ``m`` or ``x0,b0 : x1,b1``."""
    raw = (text or "").strip()
    if not raw:
        return EdgeSpec(EDGE_STRAIGHT)
    if raw.lower() == MIRROR_MARKER:
        return EdgeSpec(EDGE_MIRROR)
    points = raw.split(":")
    if len(points) != 2:
        raise PrimitiveParseError(f"Edge needs exactly two control points: {raw!r}")
    return EdgeSpec(EDGE_EXPLICIT, tuple(_parse_control_point(p) for p in points))


def parse_edge_block(text: str) -> tuple[EdgeSpec, EdgeSpec]:
    """
    Parse ``left;right``.  Without ``;`` the text describes the left edge
    and the right edge is straight.  Mutual mirroring is rejected.
    """
    raw = (text or "").strip()
    left_text, sep, right_text = raw.partition(";")
    if sep and ";" in right_text:
        raise PrimitiveParseError(f"Edge block takes at most two edges: {raw!r}")
    left = parse_edge(left_text)
    right = parse_edge(right_text) if sep else EdgeSpec(EDGE_STRAIGHT)
    if left.kind == EDGE_MIRROR and right.kind == EDGE_MIRROR:
        raise PrimitiveParseError("Both edges cannot mirror each other")
    return left, right


# ---------------------------------------------------------------------------
# Misc values
# ---------------------------------------------------------------------------


def parse_color(text: str) -> RGBA8:
    raw = (text or "").strip().lstrip("#")
    if not _RE_HEX_COLOR.match(raw):
        raise PrimitiveParseError(f"Color must be RRGGBB hex, got {text!r}")
    return (int(raw[0:2], 16), int(raw[2:4], 16), int(raw[4:6], 16), 255)


def parse_time_signature(text: str) -> TimeSignature:
    parts = (text or "").strip().split("/")
    if len(parts) != 2:
        raise PrimitiveParseError(
            f"Invalid time signature {text!r}: expected 'numerator/denominator'"
        )
    return TimeSignature(
        parse_positive_int(parts[0], "time signature numerator"),
        parse_positive_int(parts[1], "time signature denominator"),
    )


def parse_animation_values(text: str) -> tuple[Vector3, Vector3]:
    raw = (text or "").strip()
    if raw.startswith("{") and raw.endswith("}"):
        raw = raw[1:-1]
    parts = raw.split(";")
    if len(parts) != 2:
        raise PrimitiveParseError(f"Animation values need two vectors '{{v0;v1}}': {text!r}")
    return parse_vector(parts[0]), parse_vector(parts[1])


def parse_animation_refs(text: str) -> tuple[str, ...]:
    return tuple(name.strip() for name in _RE_NAME_SPLIT.split(text or "") if name.strip())

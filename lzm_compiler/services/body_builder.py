"""
LZM Chart Compiler - Body Object Builder

Turns ``<chart_body>`` body lines into typed platform / note objects:

    [TAG] (beats) |positions| {options}

Dispatch is a single table keyed by tag.  Each object is built in
isolation: a failure drops that object only and is recorded as a
diagnostic, compilation carries on with the next line.

Static rect platforms (``PRS``) end where the next platform starts.  They
are stored as :class:`PendingStatic` placeholders and re-derived into a
final :class:`PlatformRect` once the successor platform is known (or at
:meth:`BodyObjectBuilder.finish` with zero length if none follows).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from loguru import logger

from lzm_compiler.models import (
    EDGE_EXPLICIT,
    EDGE_MIRROR,
    EDGE_STRAIGHT,
    AnimationDef,
    BeatPosition,
    BodyObject,
    EdgeSpec,
    FlickDirection,
    HoldBasic,
    HoldFloor,
    HoldTarget,
    NoteBasic,
    NoteContact,
    NoteEvade,
    NoteFlick,
    NoteFloor,
    NoteStyle,
    NoteTarget,
    NoteTypeKey,
    PlatformCurved,
    PlatformQuad,
    PlatformRect,
    Vector3,
)
from lzm_compiler.services.animation import derive_spawn_state
from lzm_compiler.services.bezier import EdgeResolutionError, resolve_edges
from lzm_compiler.services.diagnostics import ChartCompileError, Diagnostics
from lzm_compiler.services.lexer import BodyLine
from lzm_compiler.services.primitives import (
    PrimitiveParseError,
    parse_animation_refs,
    parse_beat_expression,
    parse_edge_block,
    parse_float,
    parse_positions,
)
from lzm_compiler.services.tables import note_color
from lzm_compiler.services.timeline import BeatResolutionError, Timeline

CHART_BODY_SECTION = "chart_body"


class UnresolvedAnimationError(ChartCompileError):
    """Raised when an evade note references an animation that is not defined."""


@dataclass(frozen=True)
class ParsedLine:
    """Primitive values of one body line, beats already resolved."""

    line: BodyLine
    measure_index: int
    beats: tuple[BeatPosition, ...]
    times_ms: tuple[float, ...]
    positions: tuple[Vector3, ...]

    def common(self) -> dict:
        return {
            "tag": self.line.tag,
            "line": self.line.line_no,
            "measure_index": self.measure_index,
            "beats": self.beats,
            "times_ms": self.times_ms,
            "positions": self.positions,
        }


@dataclass(frozen=True)
class PendingStatic:
    """A ``PRS`` whose end beat and end positions are not known yet."""

    parsed: ParsedLine


@dataclass(frozen=True)
class TagSpec:
    factory: Callable[[BodyObjectBuilder, ParsedLine], BodyObject | PendingStatic]
    beat_count: int
    position_counts: tuple[int, ...]
    note_key: NoteTypeKey | None = None


class BodyObjectBuilder:
    def __init__(
        self,
        timeline: Timeline,
        note_styles: dict[NoteTypeKey, NoteStyle],
        animations: dict[str, AnimationDef],
        diagnostics: Diagnostics,
    ):
        self.timeline = timeline
        self.note_styles = note_styles
        self.animations = animations
        self.diagnostics = diagnostics
        self._slots: list[BodyObject | PendingStatic] = []
        self._pending_index: int | None = None

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def build(self, line: BodyLine, measure_index: int) -> BodyObject | PendingStatic | None:
        """Build one object; returns ``None`` when the line is dropped."""
        spec = TAG_SPECS.get(line.tag)
        if spec is None:
            self.diagnostics.syntax(
                "UNKNOWN_BODY_TAG",
                f"Unknown chart body type [{line.tag}]; line skipped",
                line.line_no,
                CHART_BODY_SECTION,
            )
            return None

        try:
            beats = parse_beat_expression(line.raw_beat)
            positions = parse_positions(line.raw_position)
        except PrimitiveParseError as exc:
            self._fatal(line, "MALFORMED_VALUE", str(exc))
            return None

        if len(beats) != spec.beat_count:
            self.diagnostics.syntax(
                "BEAT_ARITY",
                f"[{line.tag}] takes {spec.beat_count} beat(s), got {len(beats)}; dropped",
                line.line_no,
                CHART_BODY_SECTION,
            )
            return None
        if len(positions) not in spec.position_counts:
            expected = " or ".join(str(n) for n in spec.position_counts)
            self.diagnostics.syntax(
                "POSITION_ARITY",
                f"[{line.tag}] takes {expected} position vector(s), got {len(positions)}; dropped",
                line.line_no,
                CHART_BODY_SECTION,
            )
            return None

        try:
            times = tuple(self.timeline.resolve(b, measure_index) for b in beats)
            parsed = ParsedLine(line, measure_index, beats, times, positions)
            result = spec.factory(self, parsed)
        except BeatResolutionError as exc:
            self._fatal(line, "BEAT_OUT_OF_RANGE", str(exc))
            return None
        except (PrimitiveParseError, EdgeResolutionError) as exc:
            self._fatal(line, "MALFORMED_VALUE", str(exc))
            return None
        except UnresolvedAnimationError as exc:
            self.diagnostics.reference(
                "UNRESOLVED_ANIMATION", f"{exc}; object dropped", line.line_no, CHART_BODY_SECTION
            )
            return None

        if isinstance(result, PendingStatic) or result.is_platform:
            self._link_pending(result)
        if isinstance(result, PendingStatic):
            self._pending_index = len(self._slots)
        self._slots.append(result)
        return result

    def finish(self) -> tuple[BodyObject, ...]:
        """Close any trailing ``PRS`` and return objects in source order."""
        if self._pending_index is not None:
            pending = self._slots[self._pending_index]
            assert isinstance(pending, PendingStatic)
            parsed = pending.parsed
            self.diagnostics.reference(
                "UNRESOLVED_STATIC_PLATFORM",
                f"[{parsed.line.tag}] has no following platform; rendered with zero length",
                parsed.line.line_no,
                CHART_BODY_SECTION,
            )
            self._slots[self._pending_index] = self._static_rect(
                parsed, parsed.beats[0], parsed.times_ms[0], parsed.positions
            )
            self._pending_index = None

        objects = tuple(s for s in self._slots if not isinstance(s, PendingStatic))
        logger.debug("🧱 Built {} chart body object(s)", len(objects))
        return objects

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _fatal(self, line: BodyLine, code: str, message: str) -> None:
        self.diagnostics.resolution(
            code, f"[{line.tag}] {message}; object dropped", line.line_no, CHART_BODY_SECTION
        )

    def _link_pending(self, successor: BodyObject | PendingStatic) -> None:
        if self._pending_index is None:
            return
        pending = self._slots[self._pending_index]
        assert isinstance(pending, PendingStatic)
        succ = successor.parsed if isinstance(successor, PendingStatic) else successor
        parsed = pending.parsed

        # Successor's start beat, re-expressed relative to the PRS's measure
        succ_beat = succ.beats[0]
        end_beat = BeatPosition(
            succ_beat.value,
            succ.measure_index - parsed.measure_index + succ_beat.bars_ahead,
        )
        self._slots[self._pending_index] = self._static_rect(
            parsed, end_beat, succ.times_ms[0], succ.positions[:2]
        )
        self._pending_index = None

    @staticmethod
    def _static_rect(
        parsed: ParsedLine,
        end_beat: BeatPosition,
        end_time_ms: float,
        end_positions: tuple[Vector3, ...],
    ) -> PlatformRect:
        fields = parsed.common()
        fields["beats"] = (parsed.beats[0], end_beat)
        fields["times_ms"] = (parsed.times_ms[0], end_time_ms)
        return PlatformRect(**fields, static=True, end_positions=tuple(end_positions))

    def _color(self, parsed: ParsedLine) -> tuple[int, int, int, int]:
        key = TAG_SPECS[parsed.line.tag].note_key
        assert key is not None
        return note_color(self.note_styles, key)

    def _edges(self, parsed: ParsedLine, force_parallel: bool = False):
        options = parsed.line.raw_options
        left, right = parse_edge_block(options)
        if force_parallel:
            if ";" not in options and left.kind == EDGE_EXPLICIT:
                right = EdgeSpec(EDGE_MIRROR)
            parallel = EDGE_MIRROR in (left.kind, right.kind) or (
                left.kind == EDGE_STRAIGHT and right.kind == EDGE_STRAIGHT
            )
            if not parallel:
                self.diagnostics.syntax(
                    "HOLD_EDGES_NOT_PARALLEL",
                    f"[{parsed.line.tag}] hold edges must be parallel; right edge now mirrors the left",
                    parsed.line.line_no,
                    CHART_BODY_SECTION,
                )
                right = EdgeSpec(EDGE_MIRROR)
        return resolve_edges(left, right, parsed.measure_index, self.timeline)

    @staticmethod
    def _hold_positions(parsed: ParsedLine) -> tuple[Vector3, ...]:
        if len(parsed.positions) == 1:
            return (parsed.positions[0], parsed.positions[0])
        return parsed.positions

    # ------------------------------------------------------------------
    # Factories (one per body kind)
    # ------------------------------------------------------------------

    def platform_rect(self, parsed: ParsedLine) -> BodyObject:
        return PlatformRect(**parsed.common(), static=False, end_positions=parsed.positions)

    def platform_rect_static(self, parsed: ParsedLine) -> PendingStatic:
        return PendingStatic(parsed)

    def platform_quad(self, parsed: ParsedLine) -> BodyObject:
        return PlatformQuad(**parsed.common())

    def platform_curved(self, parsed: ParsedLine) -> BodyObject:
        left, right = self._edges(parsed)
        return PlatformCurved(**parsed.common(), left_edge=left, right_edge=right)

    def note_basic(self, parsed: ParsedLine) -> BodyObject:
        key = TAG_SPECS[parsed.line.tag].note_key
        return NoteBasic(**parsed.common(), color_index=key.index, color=self._color(parsed))

    def note_target(self, parsed: ParsedLine) -> BodyObject:
        return NoteTarget(**parsed.common(), color=self._color(parsed))

    def note_floor(self, parsed: ParsedLine) -> BodyObject:
        return NoteFloor(**parsed.common(), color=self._color(parsed))

    def note_flick(self, parsed: ParsedLine) -> BodyObject:
        direction = FlickDirection.LEFT if parsed.line.tag == "FL" else FlickDirection.RIGHT
        options = parsed.line.raw_options
        end_x = parse_float(options, "flick end x") if options else None
        return NoteFlick(**parsed.common(), direction=direction, color=self._color(parsed), end_x=end_x)

    def note_evade(self, parsed: ParsedLine) -> BodyObject:
        key = TAG_SPECS[parsed.line.tag].note_key
        refs = parse_animation_refs(parsed.line.raw_options)
        missing = [name for name in refs if name not in self.animations]
        if missing:
            raise UnresolvedAnimationError(
                f"[{parsed.line.tag}] references undefined animation(s): {', '.join(missing)}"
            )
        state = None
        if refs:
            state = derive_spawn_state(
                parsed.positions[0],
                parsed.times_ms[0],
                [self.animations[name] for name in refs],
            )
        return NoteEvade(
            **parsed.common(),
            color_index=key.index,
            color=self._color(parsed),
            animation_refs=refs,
            animation=state,
        )

    def note_contact(self, parsed: ParsedLine) -> BodyObject:
        key = TAG_SPECS[parsed.line.tag].note_key
        return NoteContact(**parsed.common(), color_index=key.index, color=self._color(parsed))

    def hold_basic(self, parsed: ParsedLine) -> BodyObject:
        key = TAG_SPECS[parsed.line.tag].note_key
        left, right = self._edges(parsed, force_parallel=True)
        fields = parsed.common()
        fields["positions"] = self._hold_positions(parsed)
        return HoldBasic(
            **fields, color_index=key.index, color=self._color(parsed), left_edge=left, right_edge=right
        )

    def hold_target(self, parsed: ParsedLine) -> BodyObject:
        left, right = self._edges(parsed)
        fields = parsed.common()
        fields["positions"] = self._hold_positions(parsed)
        return HoldTarget(**fields, color=self._color(parsed), left_edge=left, right_edge=right)

    def hold_floor(self, parsed: ParsedLine) -> BodyObject:
        left, right = self._edges(parsed)
        fields = parsed.common()
        fields["positions"] = self._hold_positions(parsed)
        return HoldFloor(**fields, color=self._color(parsed), left_edge=left, right_edge=right)


# ---------------------------------------------------------------------------
# Tag dispatch table
# ---------------------------------------------------------------------------

_B = BodyObjectBuilder

TAG_SPECS: dict[str, TagSpec] = {
    "PR": TagSpec(_B.platform_rect, 2, (2,)),
    "PRS": TagSpec(_B.platform_rect_static, 1, (2,)),
    "PQ": TagSpec(_B.platform_quad, 2, (4,)),
    "PC": TagSpec(_B.platform_curved, 2, (4,)),
    "T": TagSpec(_B.note_target, 1, (1,), NoteTypeKey("target")),
    "FL": TagSpec(_B.note_flick, 1, (1,), NoteTypeKey("flick")),
    "FR": TagSpec(_B.note_flick, 1, (1,), NoteTypeKey("flick")),
    "FO": TagSpec(_B.note_floor, 1, (1,), NoteTypeKey("floor")),
    "HT": TagSpec(_B.hold_target, 2, (1, 2), NoteTypeKey("target")),
    "HF": TagSpec(_B.hold_floor, 2, (1, 2), NoteTypeKey("floor")),
}
for _n in range(1, 5):
    TAG_SPECS[f"B{_n}"] = TagSpec(_B.note_basic, 1, (1,), NoteTypeKey("basic", _n))
    TAG_SPECS[f"HB{_n}"] = TagSpec(_B.hold_basic, 2, (1, 2), NoteTypeKey("basic", _n))
    TAG_SPECS[f"E{_n}"] = TagSpec(_B.note_evade, 1, (1,), NoteTypeKey("evade", _n))
for _n in range(1, 3):
    TAG_SPECS[f"C{_n}"] = TagSpec(_B.note_contact, 1, (1,), NoteTypeKey("contact", _n))

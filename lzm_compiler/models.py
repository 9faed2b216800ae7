"""
LZM Chart Compiler - Data Model

Immutable value types produced by the compiler and consumed read-only by
the renderer and the gameplay/audio collaborators.

Everything here is a frozen dataclass holding tuples (never lists), so two
compilations of the same source compare equal with ``==``.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, ClassVar

from lzm_compiler.services.diagnostics import Diagnostic, DiagnosticKind

RGBA8 = tuple[int, int, int, int]


# ---------------------------------------------------------------------------
# Header / timing
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TimeSignature:
    numerator: int
    denominator: int

    def __str__(self) -> str:
        return f"{self.numerator}/{self.denominator}"


@dataclass(frozen=True)
class Header:
    audio_filename: str
    default_tempo: int
    default_time_signature: TimeSignature
    offset_ms: int = 0


@dataclass(frozen=True)
class Measure:
    """One bar of the chart timeline, fully resolved."""

    index: int
    time_signature: TimeSignature
    tempo: int
    subdivision: int
    start_time_ms: float

    @property
    def duration_ms(self) -> float:
        ts = self.time_signature
        return ts.numerator * (60000.0 / self.tempo) * (4.0 / ts.denominator)

    @property
    def end_time_ms(self) -> float:
        return self.start_time_ms + self.duration_ms


@dataclass(frozen=True)
class BeatPosition:
    """A beat in subdivision units, optionally ``bars_ahead`` measures later."""

    value: float
    bars_ahead: int = 0


@dataclass(frozen=True)
class Vector3:
    x: float
    y: float = 0.0
    z: float = 0.0

    def as_tuple(self) -> tuple[float, float, float]:
        return (self.x, self.y, self.z)


# ---------------------------------------------------------------------------
# Note customisation
# ---------------------------------------------------------------------------

NOTE_KINDS_WITH_INDEX: dict[str, int] = {
    "basic": 4,
    "evade": 4,
    "contact": 2,
}
NOTE_KINDS_PLAIN = ("target", "flick", "floor")


@dataclass(frozen=True)
class NoteTypeKey:
    """Tagged variant: ``basic(n)``, ``target``, ``flick``, ``evade(n)``,
    ``contact(n)`` or ``floor``."""

    kind: str
    index: int | None = None

    @classmethod
    def parse(cls, name: str) -> NoteTypeKey:
        """Parse ``basic_1`` / ``target`` style names; raises ValueError."""
        text = name.strip().lower()
        if text in NOTE_KINDS_PLAIN:
            return cls(text)
        kind, sep, index_text = text.rpartition("_")
        if not sep or kind not in NOTE_KINDS_WITH_INDEX or not index_text.isdigit():
            raise ValueError(f"Unknown note type: {name!r}")
        index = int(index_text)
        if not 1 <= index <= NOTE_KINDS_WITH_INDEX[kind]:
            raise ValueError(
                f"Note type {kind!r} index must be 1..{NOTE_KINDS_WITH_INDEX[kind]}, got {index}"
            )
        return cls(kind, index)

    def __str__(self) -> str:
        return self.kind if self.index is None else f"{self.kind}_{self.index}"


@dataclass(frozen=True)
class NoteStyle:
    color: RGBA8


# ---------------------------------------------------------------------------
# Animations
# ---------------------------------------------------------------------------


class AnimationType(enum.Enum):
    TRANSLATE = "translate"
    ROTATE = "rotate"
    SCALE = "scale"

    @classmethod
    def from_code(cls, code: str) -> AnimationType:
        text = code.strip().lower()
        for member in cls:
            if text == member.value or text == member.value[0]:
                return member
        raise ValueError(f"Unrecognized animation type: {code!r}")


@dataclass(frozen=True)
class AnimationDef:
    """
    A named animation.

    ``values`` holds ``(start, end)`` for translate/scale and
    ``(rotation, center)`` for rotate.  Rotation is Euler degrees.
    """

    name: str
    type: AnimationType
    duration_ms: float
    values: tuple[Vector3, Vector3]

    @property
    def start(self) -> Vector3:
        return self.values[0]

    @property
    def end(self) -> Vector3:
        return self.values[1]

    @property
    def rotation(self) -> Vector3:
        return self.values[0]

    @property
    def center(self) -> Vector3:
        return self.values[1]


@dataclass(frozen=True)
class AnimationTrack:
    name: str
    start_time_ms: float
    end_time_ms: float


@dataclass(frozen=True)
class AnimatedState:
    """Spawn state of an animated object, derived from its hit position."""

    base_position: Vector3
    spawn_position: Vector3
    spawn_scale: Vector3
    spawn_time_ms: float
    hit_time_ms: float
    tracks: tuple[AnimationTrack, ...]


# ---------------------------------------------------------------------------
# Bezier edges
# ---------------------------------------------------------------------------

EDGE_STRAIGHT = "straight"
EDGE_EXPLICIT = "explicit"
EDGE_MIRROR = "mirror"


@dataclass(frozen=True)
class ControlPointSpec:
    x: float
    beat: BeatPosition


@dataclass(frozen=True)
class EdgeSpec:
    kind: str = EDGE_STRAIGHT
    points: tuple[ControlPointSpec, ...] = ()


@dataclass(frozen=True)
class ControlPoint:
    x: float
    time_ms: float


@dataclass(frozen=True)
class Edge:
    kind: str = EDGE_STRAIGHT
    control_points: tuple[ControlPoint, ...] = ()


STRAIGHT_EDGE = Edge()


# ---------------------------------------------------------------------------
# Body objects
# ---------------------------------------------------------------------------


class FlickDirection(enum.Enum):
    LEFT = "left"
    RIGHT = "right"


@dataclass(frozen=True)
class BodyObject:
    tag: str
    line: int
    measure_index: int
    beats: tuple[BeatPosition, ...]
    times_ms: tuple[float, ...]
    positions: tuple[Vector3, ...]

    family: ClassVar[str] = "object"

    @property
    def start_time_ms(self) -> float:
        return self.times_ms[0]

    @property
    def end_time_ms(self) -> float:
        return self.times_ms[-1]

    @property
    def is_platform(self) -> bool:
        return self.family == "platform"


@dataclass(frozen=True)
class PlatformRect(BodyObject):
    static: bool = False
    end_positions: tuple[Vector3, ...] = ()

    family: ClassVar[str] = "platform"


@dataclass(frozen=True)
class PlatformQuad(BodyObject):
    family: ClassVar[str] = "platform"


@dataclass(frozen=True)
class PlatformCurved(BodyObject):
    left_edge: Edge = STRAIGHT_EDGE
    right_edge: Edge = STRAIGHT_EDGE

    family: ClassVar[str] = "platform"


@dataclass(frozen=True)
class NoteBasic(BodyObject):
    color_index: int = 1
    color: RGBA8 = (255, 255, 255, 255)

    family: ClassVar[str] = "note"


@dataclass(frozen=True)
class NoteTarget(BodyObject):
    color: RGBA8 = (255, 255, 255, 255)

    family: ClassVar[str] = "note"


@dataclass(frozen=True)
class NoteFlick(BodyObject):
    direction: FlickDirection = FlickDirection.LEFT
    color: RGBA8 = (255, 255, 255, 255)
    end_x: float | None = None

    family: ClassVar[str] = "note"


@dataclass(frozen=True)
class NoteEvade(BodyObject):
    color_index: int = 1
    color: RGBA8 = (255, 255, 255, 255)
    animation_refs: tuple[str, ...] = ()
    animation: AnimatedState | None = None

    family: ClassVar[str] = "note"


@dataclass(frozen=True)
class NoteContact(BodyObject):
    color_index: int = 1
    color: RGBA8 = (255, 255, 255, 255)

    family: ClassVar[str] = "note"


@dataclass(frozen=True)
class NoteFloor(BodyObject):
    color: RGBA8 = (255, 255, 255, 255)

    family: ClassVar[str] = "note"


@dataclass(frozen=True)
class HoldBasic(BodyObject):
    color_index: int = 1
    color: RGBA8 = (255, 255, 255, 255)
    left_edge: Edge = STRAIGHT_EDGE
    right_edge: Edge = STRAIGHT_EDGE

    family: ClassVar[str] = "note"


@dataclass(frozen=True)
class HoldTarget(BodyObject):
    color: RGBA8 = (255, 255, 255, 255)
    left_edge: Edge = STRAIGHT_EDGE
    right_edge: Edge = STRAIGHT_EDGE

    family: ClassVar[str] = "note"


@dataclass(frozen=True)
class HoldFloor(BodyObject):
    color: RGBA8 = (255, 255, 255, 255)
    left_edge: Edge = STRAIGHT_EDGE
    right_edge: Edge = STRAIGHT_EDGE

    family: ClassVar[str] = "note"


# ---------------------------------------------------------------------------
# Chart (root value)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Chart:
    header: Header
    note_customization: dict[NoteTypeKey, NoteStyle] = field(default_factory=dict)
    animations: dict[str, AnimationDef] = field(default_factory=dict)
    timeline: tuple[Measure, ...] = ()
    objects: tuple[BodyObject, ...] = ()
    diagnostics: tuple[Diagnostic, ...] = ()

    @property
    def ok(self) -> bool:
        """True when no fatal diagnostic was recorded."""
        return not any(d.is_fatal for d in self.diagnostics)

    @property
    def aborted(self) -> bool:
        return any(d.kind == DiagnosticKind.FATAL_STRUCTURAL for d in self.diagnostics)

    @property
    def platforms(self) -> tuple[BodyObject, ...]:
        return tuple(o for o in self.objects if o.family == "platform")

    @property
    def notes(self) -> tuple[BodyObject, ...]:
        return tuple(o for o in self.objects if o.family == "note")

    def summary(self) -> dict[str, Any]:
        return {
            "audio_filename": self.header.audio_filename,
            "measures": len(self.timeline),
            "platforms": len(self.platforms),
            "notes": len(self.notes),
            "animations": len(self.animations),
            "diagnostics": len(self.diagnostics),
            "ok": self.ok,
        }

"""
LZM Chart Compiler - Bezier Edge Resolver

Turns parsed edge descriptors into concrete curves.  An explicit edge
carries two control points ``(x, beat)``; each beat is resolved against the
owning object's measure (honouring its own bar-skip), giving ``(x, ms)``
pairs.  Together with the object's start and end anchors they define a
cubic Bezier in the (x, time) plane.

A mirror edge copies its sibling's resolved control points verbatim, so
both edges of the object are parallel by construction.
"""

from __future__ import annotations

import numpy as np

from lzm_compiler.models import (
    EDGE_EXPLICIT,
    EDGE_MIRROR,
    ControlPoint,
    Edge,
    EdgeSpec,
    STRAIGHT_EDGE,
)
from lzm_compiler.services.diagnostics import ChartCompileError
from lzm_compiler.services.timeline import Timeline


class EdgeResolutionError(ChartCompileError):
    """Raised for edge pairs that cannot be resolved (mutual mirroring)."""


def _resolve_explicit(spec: EdgeSpec, measure_index: int, timeline: Timeline) -> Edge:
    points = tuple(
        ControlPoint(p.x, timeline.resolve(p.beat, measure_index)) for p in spec.points
    )
    return Edge(EDGE_EXPLICIT, points)


def resolve_edges(
    left: EdgeSpec,
    right: EdgeSpec,
    measure_index: int,
    timeline: Timeline,
) -> tuple[Edge, Edge]:
    """
    Resolve a left/right edge pair.

    Raises :class:`EdgeResolutionError` if both sides mirror and lets
    :class:`~lzm_compiler.services.timeline.BeatResolutionError` propagate
    for control points past the end of the timeline.
    """
    if left.kind == EDGE_MIRROR and right.kind == EDGE_MIRROR:
        raise EdgeResolutionError("Both edges cannot mirror each other")

    resolved: dict[str, Edge] = {}
    for side, spec in (("left", left), ("right", right)):
        if spec.kind == EDGE_EXPLICIT:
            resolved[side] = _resolve_explicit(spec, measure_index, timeline)
        elif spec.kind != EDGE_MIRROR:
            resolved[side] = STRAIGHT_EDGE

    if left.kind == EDGE_MIRROR:
        resolved["left"] = Edge(EDGE_MIRROR, resolved["right"].control_points)
    if right.kind == EDGE_MIRROR:
        resolved["right"] = Edge(EDGE_MIRROR, resolved["left"].control_points)

    return resolved["left"], resolved["right"]


def evaluate(
    edge: Edge,
    start: tuple[float, float],
    end: tuple[float, float],
    t: float | np.ndarray,
) -> np.ndarray:
    """
    Point(s) on *edge* between anchors *start* and *end* (``(x, ms)``) at
    parameter ``t`` in ``[0, 1]``.

    Edges without control points are straight lines.  Returns an array of
    shape ``(2,)`` for scalar ``t`` and ``(n, 2)`` for an array.
    """
    ts = np.atleast_1d(np.asarray(t, dtype=float))[:, None]
    p0 = np.asarray(start, dtype=float)
    p3 = np.asarray(end, dtype=float)

    if len(edge.control_points) != 2:
        out = (1.0 - ts) * p0 + ts * p3
    else:
        p1 = np.array([edge.control_points[0].x, edge.control_points[0].time_ms])
        p2 = np.array([edge.control_points[1].x, edge.control_points[1].time_ms])
        u = 1.0 - ts
        out = u**3 * p0 + 3 * u**2 * ts * p1 + 3 * u * ts**2 * p2 + ts**3 * p3

    if np.ndim(t) == 0:
        return out[0]
    return out


def sample(
    edge: Edge,
    start: tuple[float, float],
    end: tuple[float, float],
    segments: int = 16,
) -> np.ndarray:
    """``segments + 1`` evenly spaced points along the edge."""
    return evaluate(edge, start, end, np.linspace(0.0, 1.0, segments + 1))

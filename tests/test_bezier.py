"""
LZM Chart Compiler - Bezier Edge Tests

Validates edge resolution and evaluation:
- Control point beats resolve against the owning measure (with bar-skip)
- Mirror edges copy their sibling's control points
- Mutual mirroring is rejected
- Curve evaluation hits both anchors and degrades to a line when straight
"""

import numpy as np
import pytest

from lzm_compiler.models import (
    EDGE_EXPLICIT,
    EDGE_MIRROR,
    EDGE_STRAIGHT,
    BeatPosition,
    ControlPoint,
    ControlPointSpec,
    Edge,
    EdgeSpec,
    STRAIGHT_EDGE,
)
from lzm_compiler.services.bezier import EdgeResolutionError, evaluate, resolve_edges, sample
from lzm_compiler.services.timeline import BeatResolutionError
from tests.conftest import timeline_from_body


@pytest.fixture
def timeline(header_120, diagnostics):
    # two 4/4 measures at 120 BPM: 0-2000 ms, 2000-4000 ms
    return timeline_from_body("[B1] (0) |0|\n--\n[B1] (0) |0|\n", header_120, diagnostics)


def _explicit(*points: tuple[float, float, int]) -> EdgeSpec:
    return EdgeSpec(
        EDGE_EXPLICIT, tuple(ControlPointSpec(x, BeatPosition(b, k)) for x, b, k in points)
    )


class TestResolveEdges:
    """Test edge pair resolution."""

    def test_straight_pair(self, timeline):
        left, right = resolve_edges(EdgeSpec(), EdgeSpec(), 0, timeline)
        assert left == STRAIGHT_EDGE
        assert right == STRAIGHT_EDGE

    def test_explicit_points_resolve_to_ms(self, timeline):
        left, _ = resolve_edges(_explicit((-1.0, 1, 0), (-1.0, 3, 0)), EdgeSpec(), 0, timeline)
        assert left.kind == EDGE_EXPLICIT
        assert left.control_points == (ControlPoint(-1.0, 500.0), ControlPoint(-1.0, 1500.0))

    def test_control_point_bar_skip(self, timeline):
        left, _ = resolve_edges(_explicit((0.0, 2, 0), (0.5, 1, 1)), EdgeSpec(), 0, timeline)
        assert left.control_points[1] == ControlPoint(0.5, 2500.0)

    def test_right_mirrors_left(self, timeline):
        left, right = resolve_edges(
            _explicit((-0.5, 1, 0), (0.5, 2, 0)), EdgeSpec(EDGE_MIRROR), 0, timeline
        )
        assert right.kind == EDGE_MIRROR
        assert right.control_points == left.control_points

    def test_left_mirrors_right(self, timeline):
        left, right = resolve_edges(
            EdgeSpec(EDGE_MIRROR), _explicit((1.0, 1, 0), (1.5, 2, 0)), 1, timeline
        )
        assert left.kind == EDGE_MIRROR
        assert left.control_points == right.control_points
        assert left.control_points[0].time_ms == pytest.approx(2500.0)

    def test_mirror_of_straight_is_straight_shape(self, timeline):
        _, right = resolve_edges(EdgeSpec(EDGE_STRAIGHT), EdgeSpec(EDGE_MIRROR), 0, timeline)
        assert right.control_points == ()

    def test_mutual_mirror_rejected(self, timeline):
        with pytest.raises(EdgeResolutionError):
            resolve_edges(EdgeSpec(EDGE_MIRROR), EdgeSpec(EDGE_MIRROR), 0, timeline)

    def test_control_point_past_timeline(self, timeline):
        with pytest.raises(BeatResolutionError):
            resolve_edges(_explicit((0.0, 1, 0), (0.0, 1, 5)), EdgeSpec(), 0, timeline)


class TestEvaluate:
    """Test curve evaluation."""

    def test_anchors(self):
        edge = Edge(EDGE_EXPLICIT, (ControlPoint(-1.0, 500.0), ControlPoint(1.0, 1500.0)))
        start, end = (0.0, 0.0), (0.0, 2000.0)
        np.testing.assert_allclose(evaluate(edge, start, end, 0.0), [0.0, 0.0])
        np.testing.assert_allclose(evaluate(edge, start, end, 1.0), [0.0, 2000.0])

    def test_cubic_midpoint(self):
        edge = Edge(EDGE_EXPLICIT, (ControlPoint(-1.0, 500.0), ControlPoint(1.0, 1500.0)))
        mid = evaluate(edge, (0.0, 0.0), (0.0, 2000.0), 0.5)
        # 0.125*p0 + 0.375*p1 + 0.375*p2 + 0.125*p3
        np.testing.assert_allclose(mid, [0.0, 1000.0])

    def test_straight_edge_is_linear(self):
        point = evaluate(STRAIGHT_EDGE, (1.0, 0.0), (3.0, 1000.0), 0.25)
        np.testing.assert_allclose(point, [1.5, 250.0])

    def test_sample_shape(self):
        points = sample(STRAIGHT_EDGE, (0.0, 0.0), (1.0, 100.0), segments=4)
        assert points.shape == (5, 2)
        np.testing.assert_allclose(points[:, 1], [0.0, 25.0, 50.0, 75.0, 100.0])

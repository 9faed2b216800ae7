"""
LZM Chart Compiler - Animation Inverse-Transform

An animated object is written in the chart at its *final* (hit) position.
Its animations run for ``duration_ms`` and end exactly at the hit time, so
the spawn state is recovered by undoing each animation, last one first:

    translate   spawn = final - end
    rotate      spawn = center + R(rotation)^-1 (final - center)
    scale       spawn = final - end ; spawn scale *= start / end

Rotations are Euler angles in degrees applied X, then Y, then Z.
"""

from __future__ import annotations

import numpy as np

from lzm_compiler.models import (
    AnimatedState,
    AnimationDef,
    AnimationTrack,
    AnimationType,
    Vector3,
)


def rotation_matrix(degrees: Vector3) -> np.ndarray:
    """3x3 rotation matrix for Euler angles (degrees), X then Y then Z."""
    rx, ry, rz = np.radians(degrees.as_tuple())
    cx, sx = np.cos(rx), np.sin(rx)
    cy, sy = np.cos(ry), np.sin(ry)
    cz, sz = np.cos(rz), np.sin(rz)
    mx = np.array([[1.0, 0.0, 0.0], [0.0, cx, -sx], [0.0, sx, cx]])
    my = np.array([[cy, 0.0, sy], [0.0, 1.0, 0.0], [-sy, 0.0, cy]])
    mz = np.array([[cz, -sz, 0.0], [sz, cz, 0.0], [0.0, 0.0, 1.0]])
    return mz @ my @ mx


def _vec(v: np.ndarray) -> Vector3:
    # Round away float noise so identical charts stay byte-identical
    x, y, z = (float(c) for c in np.round(v, 9))
    return Vector3(x + 0.0, y + 0.0, z + 0.0)


def _safe_ratio(start: np.ndarray, end: np.ndarray) -> np.ndarray:
    ratio = np.ones(3)
    nonzero = end != 0.0
    ratio[nonzero] = start[nonzero] / end[nonzero]
    return ratio


def derive_spawn_state(
    position: Vector3,
    hit_time_ms: float,
    animations: list[AnimationDef],
) -> AnimatedState:
    """Compute where and when an animated object appears."""
    final = np.array(position.as_tuple(), dtype=float)
    pos = final.copy()
    base = final.copy()
    scale = np.ones(3)

    for anim in reversed(animations):
        a = np.array(anim.values[0].as_tuple(), dtype=float)
        b = np.array(anim.values[1].as_tuple(), dtype=float)
        if anim.type is AnimationType.TRANSLATE:
            base = base - b
            pos = pos - b
        elif anim.type is AnimationType.ROTATE:
            inverse = rotation_matrix(anim.rotation).T
            pos = b + inverse @ (pos - b)
        elif anim.type is AnimationType.SCALE:
            pos = pos - b
            scale = scale * _safe_ratio(a, b)

    tracks = tuple(
        AnimationTrack(anim.name, hit_time_ms - anim.duration_ms, hit_time_ms)
        for anim in animations
    )
    longest = max((anim.duration_ms for anim in animations), default=0.0)

    return AnimatedState(
        base_position=_vec(base),
        spawn_position=_vec(pos),
        spawn_scale=_vec(scale),
        spawn_time_ms=hit_time_ms - longest,
        hit_time_ms=hit_time_ms,
        tracks=tracks,
    )

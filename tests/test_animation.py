"""
LZM Chart Compiler - Animation Inverse-Transform Tests

Validates spawn-state derivation for animated objects:
- Translate: spawn = final - end
- Rotate: spawn is the final position rotated back around the center
- Scale: spawn = final - end, spawn scale = start / end
- Spawn time is the hit time minus the longest animation
"""

import numpy as np
import pytest

from lzm_compiler.models import AnimationDef, AnimationType, Vector3
from lzm_compiler.services.animation import derive_spawn_state, rotation_matrix


def _anim(name: str, kind: AnimationType, duration: float, v0: Vector3, v1: Vector3) -> AnimationDef:
    return AnimationDef(name, kind, duration, (v0, v1))


class TestRotationMatrix:
    """Test Euler rotation matrices."""

    def test_identity(self):
        np.testing.assert_allclose(rotation_matrix(Vector3(0.0, 0.0, 0.0)), np.eye(3))

    def test_quarter_turn_about_z(self):
        m = rotation_matrix(Vector3(0.0, 0.0, 90.0))
        np.testing.assert_allclose(m @ [1.0, 0.0, 0.0], [0.0, 1.0, 0.0], atol=1e-12)

    def test_orthonormal(self):
        m = rotation_matrix(Vector3(30.0, 45.0, 60.0))
        np.testing.assert_allclose(m @ m.T, np.eye(3), atol=1e-12)


class TestDeriveSpawnState:
    """Test spawn state derivation."""

    def test_translate(self):
        rise = _anim("rise", AnimationType.TRANSLATE, 500.0, Vector3(0, -2, 0), Vector3(0, 0, 0))
        state = derive_spawn_state(Vector3(1.0, 0.0, 2.0), 1500.0, [rise])
        assert state.base_position == Vector3(1.0, 0.0, 2.0)
        assert state.spawn_position == Vector3(1.0, 0.0, 2.0)
        assert state.spawn_time_ms == 1000.0
        assert state.hit_time_ms == 1500.0

    def test_translate_with_nonzero_end(self):
        slide = _anim("slide", AnimationType.TRANSLATE, 100.0, Vector3(0, 0, 0), Vector3(1, 0, 0))
        state = derive_spawn_state(Vector3(3.0), 1000.0, [slide])
        assert state.base_position == Vector3(2.0, 0.0, 0.0)
        assert state.spawn_position == Vector3(2.0, 0.0, 0.0)

    def test_translate_start_does_not_move_spawn(self):
        slide = _anim("slide", AnimationType.TRANSLATE, 100.0, Vector3(0, -2, 0), Vector3(1, 0, 0))
        state = derive_spawn_state(Vector3(3.0), 1000.0, [slide])
        assert state.spawn_position == Vector3(2.0, 0.0, 0.0)

    def test_rotate_about_center(self):
        spin = _anim("spin", AnimationType.ROTATE, 250.0, Vector3(0, 0, 90), Vector3(0, 0, 0))
        state = derive_spawn_state(Vector3(0.0, 1.0, 0.0), 1000.0, [spin])
        # undoing +90 deg about Z takes (0,1,0) back to (1,0,0)
        assert state.spawn_position == Vector3(1.0, 0.0, 0.0)
        assert state.spawn_time_ms == 750.0

    def test_rotate_final_position_round_trips(self):
        rotation = Vector3(20.0, 35.0, -50.0)
        center = Vector3(1.0, 0.5, -2.0)
        spin = _anim("spin", AnimationType.ROTATE, 100.0, rotation, center)
        final = Vector3(2.0, 3.0, 4.0)
        state = derive_spawn_state(final, 500.0, [spin])
        c = np.array(center.as_tuple())
        forward = c + rotation_matrix(rotation) @ (np.array(state.spawn_position.as_tuple()) - c)
        np.testing.assert_allclose(forward, final.as_tuple(), atol=1e-8)

    def test_scale_subtracts_end(self):
        grow = _anim("grow", AnimationType.SCALE, 300.0, Vector3(0.5, 0.5, 0.5), Vector3(1, 1, 1))
        state = derive_spawn_state(Vector3(1.0, 2.0, 3.0), 1000.0, [grow])
        assert state.spawn_position == Vector3(0.0, 1.0, 2.0)
        assert state.spawn_scale == Vector3(0.5, 0.5, 0.5)

    def test_scale_with_zero_end_component(self):
        squash = _anim("squash", AnimationType.SCALE, 300.0, Vector3(2, 2, 2), Vector3(1, 0, 1))
        state = derive_spawn_state(Vector3(0.0), 1000.0, [squash])
        assert state.spawn_scale == Vector3(2.0, 1.0, 2.0)

    def test_longest_animation_sets_spawn_time(self):
        rise = _anim("rise", AnimationType.TRANSLATE, 500.0, Vector3(0, -2, 0), Vector3(0, 0, 0))
        spin = _anim("spin", AnimationType.ROTATE, 800.0, Vector3(0, 90, 0), Vector3(0, 0, 0))
        state = derive_spawn_state(Vector3(0.0), 2000.0, [rise, spin])
        assert state.spawn_time_ms == 1200.0
        assert [t.name for t in state.tracks] == ["rise", "spin"]
        assert state.tracks[0].start_time_ms == 1500.0
        assert all(t.end_time_ms == 2000.0 for t in state.tracks)

    def test_deterministic(self):
        spin = _anim("spin", AnimationType.ROTATE, 100.0, Vector3(10, 20, 30), Vector3(0, 1, 0))
        a = derive_spawn_state(Vector3(1.0, 2.0, 3.0), 100.0, [spin])
        b = derive_spawn_state(Vector3(1.0, 2.0, 3.0), 100.0, [spin])
        assert a == b

    @pytest.mark.parametrize("kind", list(AnimationType))
    def test_zero_animation_keeps_position(self, kind):
        zero = Vector3(0.0, 0.0, 0.0)
        anim = _anim("noop", kind, 100.0, zero, zero)
        state = derive_spawn_state(Vector3(1.0, 2.0, 3.0), 100.0, [anim])
        assert state.spawn_position == Vector3(1.0, 2.0, 3.0)
        assert state.spawn_scale == Vector3(1.0, 1.0, 1.0)

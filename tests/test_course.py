"""
Course preset tests — every authored hole builds and plays sensibly.
"""

import sys
import os
import dataclasses
import numpy as np
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from course import HolePreset
import physics
from physics import (
    PuttEngine, BallState, Boundary, TimeVaryingObstacle, CollisionMode,
)


COURSE = HolePreset.course()


def bounding_box(boundary):
    xs = [v[0] for v in boundary.vertices]
    ys = [v[1] for v in boundary.vertices]
    return min(xs), max(xs), min(ys), max(ys)


class TestCourseLayout:

    def test_five_holes_in_order(self):
        assert [h.name for h in COURSE] == [f"Hole {i}" for i in range(1, 6)]

    @pytest.mark.parametrize("hole", COURSE, ids=lambda h: h.name)
    def test_green_contains_tee_and_goal(self, hole):
        boundary = hole.obstacles[0]
        assert isinstance(boundary, Boundary) and boundary.contains_ball
        x0, x1, y0, y1 = bounding_box(boundary)
        for p in (hole.tee, hole.goal):
            assert x0 < p[0] < x1 and y0 < p[1] < y1

    def test_presets_build_fresh_holes(self):
        assert HolePreset.hole_1_open_green() is not HolePreset.hole_1_open_green()

    def test_windmill_moves(self):
        hole = HolePreset.hole_4_windmill()
        blade = hole.obstacles[1]
        assert isinstance(blade, TimeVaryingObstacle)
        w0 = blade.walls_at(0.0)[0]
        w1 = blade.walls_at(1.0)[0]
        assert not np.allclose(w0.w0, w1.w0)

    def test_slope_only_on_right_half(self):
        hole = HolePreset.hole_5_slope()
        assert np.linalg.norm(hole.surface(np.array([20.0, 50.0])).gravity) == 0.0
        assert hole.surface(np.array([80.0, 50.0])).gravity[1] < 0.0

    def test_slope_reads_live_friction(self, monkeypatch):
        hole = HolePreset.hole_5_slope()
        monkeypatch.setattr(physics, "DEFAULT_FRICTION", 3.5)
        assert hole.surface(np.array([20.0, 50.0])).friction == 3.5
        assert hole.surface(np.array([80.0, 50.0])).friction == 3.5

    @pytest.mark.parametrize("hole", COURSE, ids=lambda h: h.name)
    def test_presets_resolve_earliest_contact_first(self, hole):
        assert hole.collision_mode is CollisionMode.EARLIEST_FIRST


class TestCoursePlay:

    @pytest.mark.parametrize("hole", COURSE, ids=lambda h: h.name)
    def test_one_long_tick_stays_on_green(self, hole):
        """A single tick long enough to cross the green several times."""
        engine = PuttEngine()
        x0, x1, y0, y1 = bounding_box(hole.obstacles[0])
        state = engine.apply_hit(engine.initialize(hole), (170, -130))
        state = engine.step(hole, state, 2.0)
        assert x0 < state.position[0] < x1
        assert y0 < state.position[1] < y1

    def test_hole_1_ace_on_diagonal(self):
        hole = HolePreset.hole_1_open_green()
        engine = PuttEngine()
        state = engine.apply_hit(engine.initialize(hole), (20, 20))
        state, _ = engine.simulate(hole, state, dt=1 / 60)
        assert state.done
        assert state.shot_count == 1

    def test_hole_3_gate_admits_ball_from_below(self):
        hole = HolePreset.hole_3_gate()
        engine = PuttEngine()
        state = engine.apply_hit(engine.initialize(hole), (0, 20))
        state, _ = engine.simulate(hole, state, dt=1 / 60)
        assert state.done

    def test_hole_3_gate_blocks_ball_from_above(self):
        hole = HolePreset.hole_3_gate()
        engine = PuttEngine()
        state = BallState(position=(45, 80), velocity=(0, -30), shot_count=1)
        lowest = state.position[1]
        for k in range(1, 121):
            state = engine.step(hole, state, k / 60)
            lowest = min(lowest, state.position[1])
            if state.done:
                break
        assert lowest >= 71.0 - 1e-9

    @pytest.mark.parametrize("hole", COURSE, ids=lambda h: h.name)
    @pytest.mark.parametrize("v", [(35, 12), (-20, 40), (5, -50)])
    def test_ball_stays_on_green(self, hole, v):
        engine = PuttEngine()
        x0, x1, y0, y1 = bounding_box(hole.obstacles[0])
        state = engine.apply_hit(engine.initialize(hole), v)
        for k in range(1, 30 * 10):
            state = engine.step(hole, state, k / 30)
            assert x0 < state.position[0] < x1
            assert y0 < state.position[1] < y1
            if state.done or engine.is_at_rest(hole, state):
                break

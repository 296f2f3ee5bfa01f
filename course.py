"""
Course presets — authored holes for the putt engine.

Each preset returns a fresh Hole. ``HolePreset.course()`` lists them in play
order. Static wall offsets use BALL_RADIUS as it was when the hole was
built; surfaces read DEFAULT_FRICTION on every query, so live friction edits
apply at once.
"""

import math

from physics import (
    Hole, Boundary, Obstacle, OneWay, Sprite, TimeVaryingObstacle,
    Surface, CollisionMode, uniform_surface,
)
import physics as _phys
from vecmath import vec, rotate_about, translation, ZERO

# Windmill: blade spins about the hub at this rate (rad per unit time)
WINDMILL_SPEED = 0.8
# Sliding gate: amplitude and angular frequency of its sideways motion
GATE_AMPLITUDE = 10.0
GATE_FREQUENCY = 1.0


def _slope_surface(x_from: float, gravity=(0.0, -0.8), friction: float = None):
    """Flat green left of x_from, downhill slope to its right."""
    g = vec(gravity)

    def surface(position) -> Surface:
        f = _phys.DEFAULT_FRICTION if friction is None else friction
        if position[0] >= x_from:
            return Surface(f, g)
        return Surface(f, ZERO)
    return surface


class HolePreset:
    """Each preset builds one hole from scratch."""

    @staticmethod
    def hole_1_open_green() -> Hole:
        """Plain square green, cup in the far corner."""
        return Hole(
            name="Hole 1",
            tee=(10, 10),
            goal=(90, 90),
            goal_radius=2,
            obstacles=[Boundary((0, 0), (0, 100), (100, 100), (100, 0))],
            surface=uniform_surface(),
            collision_mode=CollisionMode.EARLIEST_FIRST,
        )

    @staticmethod
    def hole_2_dogleg() -> Hole:
        """L-shaped green with a rock at the bend; the inner corner is a
        reflex vertex the ball can clip."""
        return Hole(
            name="Hole 2",
            tee=(10, 10),
            goal=(90, 70),
            goal_radius=2,
            obstacles=[
                Boundary((0, 0), (60, 0), (60, 50), (100, 50),
                         (100, 90), (0, 90)),
                Obstacle((30, 55), (40, 70), (50, 55)),
            ],
            surface=uniform_surface(),
            collision_mode=CollisionMode.EARLIEST_FIRST,
        )

    @staticmethod
    def hole_3_gate() -> Hole:
        """A one-way gate: the ball may enter the cup pocket from below but
        cannot roll back out of it."""
        return Hole(
            name="Hole 3",
            tee=(50, 10),
            goal=(50, 85),
            goal_radius=2,
            obstacles=[
                Boundary((0, 0), (100, 0), (100, 100), (0, 100)),
                Sprite(0, 68, 40, 4),
                Sprite(60, 68, 40, 4),
                OneWay((40, 70), (60, 70)),
            ],
            surface=uniform_surface(),
            collision_mode=CollisionMode.EARLIEST_FIRST,
        )

    @staticmethod
    def hole_4_windmill() -> Hole:
        """A blade rotates about the centre of the green, plus a gate that
        slides from side to side."""
        hub = (50, 50)
        blade = Sprite(20, 48, 60, 4)
        gate = Sprite(45, 20, 10, 4)
        return Hole(
            name="Hole 4",
            tee=(50, 5),
            goal=(50, 92),
            goal_radius=2,
            obstacles=[
                Boundary((0, 0), (100, 0), (100, 100), (0, 100)),
                TimeVaryingObstacle(
                    blade, lambda t: rotate_about(hub, WINDMILL_SPEED * t)),
                TimeVaryingObstacle(
                    gate, lambda t: translation(
                        GATE_AMPLITUDE * math.sin(GATE_FREQUENCY * t), 0.0)),
            ],
            surface=uniform_surface(),
            collision_mode=CollisionMode.EARLIEST_FIRST,
        )

    @staticmethod
    def hole_5_slope() -> Hole:
        """The right half of the green tilts toward the bottom edge."""
        return Hole(
            name="Hole 5",
            tee=(10, 80),
            goal=(85, 15),
            goal_radius=3,
            obstacles=[Boundary((0, 0), (100, 0), (100, 100), (0, 100))],
            surface=_slope_surface(50.0),
            collision_mode=CollisionMode.EARLIEST_FIRST,
        )

    @classmethod
    def course(cls) -> list:
        return [
            cls.hole_1_open_green(),
            cls.hole_2_dogleg(),
            cls.hole_3_gate(),
            cls.hole_4_windmill(),
            cls.hole_5_slope(),
        ]

"""
2D Putt Physics Engine
Swept wall/vertex collision, friction + gravity integration, goal capture.
"""

import enum
import math
import numpy as np
from dataclasses import dataclass, field, replace
from typing import Callable, List, Optional, Sequence, Tuple

from vecmath import (
    ZERO, vec, length, unit, dot, cross, reflect, is_finite,
    dist_to_segment, transform_point, is_rigid,
)

# ──────────────────────────────────────────────
# Constants (course units: 1 unit = 1 ball radius)
# ──────────────────────────────────────────────
BALL_RADIUS: float = 1.0
DEFAULT_FRICTION: float = 1.0       # speed lost per unit time on plain green

# ── Runtime-editable behavior constants ───────────────────────────────────────
# Read by name at call time, so the controller/server can mutate them live:
#   import physics as _phys;  _phys.MAX_BOUNCES = 8
MAX_BOUNCES: int = 32               # contacts resolved per tick (EARLIEST_FIRST)
STOP_SPEED: float = 1e-6            # below this the ball counts as at rest
RIGID_TOLERANCE: float = 1e-9       # orthonormality slack for moving obstacles
DISCRIMINANT_TOLERANCE: float = 1e-9  # rounding slack in the vertex root


class CollisionContractError(RuntimeError):
    """Raised when a vertex collision root is requested without a close approach."""


class GoalCapture(enum.Enum):
    BALL_INSIDE = 0     # whole ball inside the cup: threshold = goal_radius - BALL_RADIUS
    CENTER_INSIDE = 1   # ball centre inside the cup: threshold = goal_radius


class CollisionMode(enum.Enum):
    SEQUENTIAL = 0      # one pass, walls in construction order
    EARLIEST_FIRST = 1  # earliest contact first, repeated on the remaining path


Contact = Tuple[float, np.ndarray, np.ndarray]   # (t, contact point, unit normal)


# ──────────────────────────────────────────────
# Walls
# ──────────────────────────────────────────────
class SegmentWall:
    """A wall from p to q, shifted by the ball radius along its left normal.

    The ball collides only when it crosses from the left of p -> q, so a
    counter-clockwise polygon keeps the ball in and a clockwise one keeps it out.
    """
    kind = "segment"

    def __init__(self, p, q, radius: Optional[float] = None):
        r = BALL_RADIUS if radius is None else radius
        self.p = vec(p)
        self.q = vec(q)
        d = self.q - self.p
        len_d = length(d)
        self.normal = vec(-d[1] / len_d, d[0] / len_d) if len_d > 0 else ZERO
        self.w0 = vec(self.p + r * self.normal)
        self.w1 = vec(self.q + r * self.normal)

    def contact(self, p0: np.ndarray, p1: np.ndarray) -> Optional[Contact]:
        dp = p1 - p0
        dw = self.w1 - self.w0
        denom = cross(dp, dw)
        if denom <= 0.0:
            # wrong side, parallel, or zero-length wall/path
            return None

        diff = self.w0 - p0
        t = cross(diff, dw) / denom
        u = cross(diff, dp) / denom
        if not (0.0 <= t <= 1.0 and 0.0 <= u <= 1.0):
            return None
        return t, p0 + t * dp, self.normal

    def collide(self, p0, p1, v):
        """Return (corrected p1, corrected v, collided)."""
        return _bounce(self.contact(p0, p1), p1, v)

    def __repr__(self) -> str:
        return f"SegmentWall(w0={self.w0.tolist()}, w1={self.w1.tolist()})"


class PointWall:
    """A vertex obstruction: the ball collides when its centre comes within
    one ball radius of the point."""
    kind = "point"

    def __init__(self, p, radius: Optional[float] = None):
        self.p = vec(p)
        self.radius = BALL_RADIUS if radius is None else radius

    def contact(self, p0: np.ndarray, p1: np.ndarray) -> Optional[Contact]:
        r = self.radius
        if dist_to_segment(self.p, p0, p1) > r:
            return None

        d = p1 - p0
        v0 = p0 - self.p
        a = dot(d, d)
        b = dot(v0, d)
        if a == 0.0 or b >= 0.0:
            # not moving, or already moving away from the point
            return None
        c = dot(v0, v0) - r * r

        disc = b * b - a * c
        if disc < 0.0:
            if disc < -DISCRIMINANT_TOLERANCE * max(1.0, b * b):
                raise CollisionContractError(
                    f"no circle entry for path {p0.tolist()} -> {p1.tolist()} "
                    f"around {self.p.tolist()} (discriminant {disc:g})"
                )
            disc = 0.0

        # Clamped at 0 for a path that starts inside the circle
        t = max(0.0, (-b - math.sqrt(disc)) / a)
        q = p0 + t * d
        return t, q, unit(q - self.p)

    def collide(self, p0, p1, v):
        """Return (corrected p1, corrected v, collided)."""
        return _bounce(self.contact(p0, p1), p1, v)

    def __repr__(self) -> str:
        return f"PointWall(p={self.p.tolist()}, r={self.radius})"


def _bounce(hit: Optional[Contact], p1, v):
    """Reflect the travel left after the contact point, and v, about the normal."""
    if hit is None:
        return p1, v, False
    _, q, n = hit
    return q + reflect(p1 - q, n), reflect(v, n), True


# ──────────────────────────────────────────────
# Obstacles
# ──────────────────────────────────────────────
def _signed_area(vertices: Sequence[np.ndarray]) -> float:
    n = len(vertices)
    return 0.5 * sum(cross(vertices[i], vertices[(i + 1) % n]) for i in range(n))


class Boundary:
    """Closed polygon that contains the ball.

    Vertices may be given in either winding; they are stored counter-clockwise
    so every edge's left side faces the ball.
    """
    contains_ball = True

    def __init__(self, *vertices, radius: Optional[float] = None):
        verts = [vec(v) for v in vertices]
        if len(verts) < 3:
            raise ValueError(f"{type(self).__name__} needs at least 3 vertices, got {len(verts)}")
        if not all(is_finite(v) for v in verts):
            raise ValueError(f"{type(self).__name__} has non-finite vertices")
        area = _signed_area(verts)
        if area == 0.0:
            raise ValueError(f"{type(self).__name__} has zero area")
        if (area > 0.0) != self.contains_ball:
            verts.reverse()

        self.vertices = tuple(verts)
        self.radius = radius
        self._walls = self.build_walls(self.vertices)

    def build_walls(self, vertices) -> list:
        walls = []
        n = len(vertices)
        for i in range(n):
            j = (i + 1) % n
            walls.append(SegmentWall(vertices[i], vertices[j], self.radius))
            walls.append(PointWall(vertices[i], self.radius))
        return walls

    def vertices_at(self, t: float) -> tuple:
        return self.vertices

    def walls_at(self, t: float) -> list:
        return self._walls


class Obstacle(Boundary):
    """Solid polygon the ball bounces off from outside (stored clockwise)."""
    contains_ball = False


class Sprite(Obstacle):
    """Axis-aligned solid rectangle with lower-left corner (x, y)."""

    def __init__(self, x: float, y: float, width: float, height: float,
                 radius: Optional[float] = None):
        if not (width > 0 and height > 0):
            raise ValueError(f"Sprite size must be positive, got {width}x{height}")
        self.x, self.y = float(x), float(y)
        self.width, self.height = float(width), float(height)
        super().__init__(
            (x, y), (x, y + height), (x + width, y + height), (x + width, y),
            radius=radius,
        )


class OneWay:
    """Single edge p -> q that blocks balls arriving from its left side and
    lets them through from the right. Both endpoints are solid vertices."""
    contains_ball = False

    def __init__(self, p, q, radius: Optional[float] = None):
        self.vertices = (vec(p), vec(q))
        self.radius = radius
        self._walls = self.build_walls(self.vertices)

    def build_walls(self, vertices) -> list:
        p, q = vertices
        return [
            SegmentWall(p, q, self.radius),
            PointWall(p, self.radius),
            PointWall(q, self.radius),
        ]

    def vertices_at(self, t: float) -> tuple:
        return self.vertices

    def walls_at(self, t: float) -> list:
        return self._walls


class TimeVaryingObstacle:
    """Wraps another obstacle and moves it rigidly with transform(t).

    The map is applied to the inner obstacle's authored vertices and the walls
    are rebuilt from them, so the radius offset stays perpendicular to each edge.
    """

    def __init__(self, inner, transform: Callable[[float], np.ndarray]):
        self.inner = inner
        self.transform = transform

    @property
    def contains_ball(self) -> bool:
        return self.inner.contains_ball

    def vertices_at(self, t: float) -> tuple:
        m = np.asarray(self.transform(t), dtype=float)
        if not is_rigid(m, RIGID_TOLERANCE):
            raise ValueError(f"transform at t={t} is not rigid:\n{m}")
        return tuple(transform_point(m, v) for v in self.inner.vertices_at(t))

    def build_walls(self, vertices) -> list:
        return self.inner.build_walls(vertices)

    def walls_at(self, t: float) -> list:
        return self.build_walls(self.vertices_at(t))


# ──────────────────────────────────────────────
# Hole / surface / ball state
# ──────────────────────────────────────────────
@dataclass(frozen=True)
class Surface:
    """Local ground properties under the ball."""
    friction: float
    gravity: np.ndarray = field(default_factory=lambda: ZERO)


def uniform_surface(friction: Optional[float] = None, gravity=(0.0, 0.0)):
    """Surface function with the same friction and gravity everywhere."""
    g = vec(gravity)

    def surface(position) -> Surface:
        return Surface(DEFAULT_FRICTION if friction is None else friction, g)
    return surface


@dataclass
class Hole:
    """One authored hole: tee, cup, obstacles and a surface function."""
    name: str
    tee: np.ndarray
    goal: np.ndarray
    goal_radius: float
    obstacles: Sequence = field(default_factory=tuple)
    surface: Callable = field(default_factory=uniform_surface)
    goal_capture: GoalCapture = GoalCapture.BALL_INSIDE
    collision_mode: CollisionMode = CollisionMode.SEQUENTIAL

    def __post_init__(self):
        self.tee = vec(self.tee)
        self.goal = vec(self.goal)
        self.obstacles = tuple(self.obstacles)
        if not (is_finite(self.tee) and is_finite(self.goal)):
            raise ValueError(f"{self.name}: tee and goal must be finite")
        if not (math.isfinite(self.goal_radius) and self.goal_radius > 0):
            raise ValueError(f"{self.name}: goal_radius must be positive, got {self.goal_radius}")

    @property
    def capture_threshold(self) -> float:
        if self.goal_capture is GoalCapture.CENTER_INSIDE:
            return self.goal_radius
        return self.goal_radius - BALL_RADIUS


@dataclass(frozen=True, eq=False)
class BallState:
    """Immutable ball snapshot; the engine returns a new one every tick."""
    position: np.ndarray
    velocity: np.ndarray = field(default_factory=lambda: ZERO)
    simulated_time: float = 0.0
    start_time: float = 0.0
    shot_count: int = 0
    done: bool = False

    def __post_init__(self):
        object.__setattr__(self, "position", vec(self.position))
        object.__setattr__(self, "velocity", vec(self.velocity))

    @property
    def speed(self) -> float:
        return length(self.velocity)

    @property
    def elapsed(self) -> float:
        """Time since the hole started; moving obstacles are evaluated at this."""
        return self.simulated_time - self.start_time


# ──────────────────────────────────────────────
# Stepper
# ──────────────────────────────────────────────
class PuttEngine:
    """Advances a BallState through a Hole.

    Pull-based: the caller supplies the clock. ``events`` holds the
    collision/goal signals produced by the most recent ``step``.
    """

    def __init__(self):
        self.events: list = []

    @staticmethod
    def initialize(hole: Hole, start_time: float = 0.0) -> BallState:
        return BallState(position=hole.tee, velocity=ZERO,
                         simulated_time=start_time, start_time=start_time)

    @staticmethod
    def apply_hit(state: BallState, velocity) -> BallState:
        """Strike the ball: replace its velocity and count the shot."""
        if state.done:
            return state
        velocity = vec(velocity)
        if not is_finite(velocity):
            raise ValueError(f"hit velocity must be finite, got {velocity.tolist()}")
        return replace(state, velocity=velocity, shot_count=state.shot_count + 1)

    def step(self, hole: Hole, state: BallState, current_time: float) -> BallState:
        """Advance the ball to current_time (one explicit step, swept collisions)."""
        self.events.clear()
        if state.done:
            return state
        dt = current_time - state.simulated_time
        if dt <= 0:
            return state

        p0 = state.position
        surf = hole.surface(p0)

        # Gravity, then friction on speed only
        v = state.velocity + surf.gravity * dt
        speed = max(0.0, length(v) - surf.friction * dt)
        v = speed * unit(v)

        p1 = p0 + v * dt
        path = [p0, p1]
        if length(p1 - p0) > 0:
            hole_t = current_time - state.start_time
            if hole.collision_mode is CollisionMode.EARLIEST_FIRST:
                path, v = self._resolve_earliest(hole, hole_t, p0, p1, v)
            else:
                p1, v = self._resolve_sequential(hole, hole_t, p0, p1, v)
                path = [p0, p1]

        if self._captured(hole, path):
            self.events.append({"type": "goal", "shots": state.shot_count})
            return replace(state, position=hole.goal, velocity=ZERO,
                           simulated_time=current_time, done=True)

        return replace(state, position=path[-1], velocity=v,
                       simulated_time=current_time)

    def _resolve_sequential(self, hole: Hole, t: float, p0, p1, v):
        # Each wall sees the path as corrected by the walls before it
        for i, obstacle in enumerate(hole.obstacles):
            for j, wall in enumerate(obstacle.walls_at(t)):
                p1, v, collided = wall.collide(p0, p1, v)
                if collided:
                    self._wall_event(i, j, wall, v)
        return p1, v

    def _resolve_earliest(self, hole: Hole, t: float, p0, p1, v):
        walls = [(i, j, wall)
                 for i, obstacle in enumerate(hole.obstacles)
                 for j, wall in enumerate(obstacle.walls_at(t))]
        path = [p0]
        start = p0
        for _ in range(MAX_BOUNCES):
            best = None
            for i, j, wall in walls:
                hit = wall.contact(start, p1)
                if hit is not None and (best is None or hit[0] < best[0][0]):
                    best = (hit, i, j, wall)
            if best is None:
                path.append(p1)
                return path, v

            (_, q, n), i, j, wall = best
            p1 = q + reflect(p1 - q, n)
            v = reflect(v, n)
            self._wall_event(i, j, wall, v)
            start = q
            path.append(q)

        # Bounce cap reached: the ball stays at its last contact this tick
        return path, v

    def _wall_event(self, obstacle_index: int, wall_index: int, wall, v) -> None:
        self.events.append({
            "type": "wall", "obstacle": obstacle_index, "wall": wall_index,
            "kind": wall.kind, "speed": length(v),
        })

    @staticmethod
    def _captured(hole: Hole, path: List[np.ndarray]) -> bool:
        threshold = hole.capture_threshold
        return any(dist_to_segment(hole.goal, a, b) < threshold
                   for a, b in zip(path, path[1:]))

    @staticmethod
    def is_at_rest(hole: Hole, state: BallState) -> bool:
        """True when the ball is still and the local slope cannot move it."""
        if state.speed > STOP_SPEED:
            return False
        surf = hole.surface(state.position)
        return length(surf.gravity) <= surf.friction

    def simulate(self, hole: Hole, state: BallState, dt: float = 0.01,
                 max_time: float = 60.0) -> Tuple[BallState, float]:
        """
        Step until the ball is holed, comes to rest, or max_time passes.

        Returns:
            (final state, elapsed simulated seconds)
        """
        t = 0.0
        while t < max_time:
            state = self.step(hole, state, state.simulated_time + dt)
            t += dt
            if state.done or self.is_at_rest(hole, state):
                break
        return state, t

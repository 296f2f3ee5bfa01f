"""
2D vector and affine-map helpers for the putt physics engine.

Vectors are plain numpy arrays of shape (2,); affine maps are 3x3
homogeneous matrices. Nothing here mutates its arguments.
"""

import math
import numpy as np


# ──────────────────────────────────────────────
# Vectors
# ──────────────────────────────────────────────
def vec(x, y=None) -> np.ndarray:
    """Build a read-only 2D vector from (x, y) or from any 2-sequence."""
    if y is None:
        x, y = x
    v = np.array([float(x), float(y)])
    v.flags.writeable = False
    return v


ZERO = vec(0.0, 0.0)


def length(v: np.ndarray) -> float:
    return math.hypot(v[0], v[1])


def unit(v: np.ndarray) -> np.ndarray:
    """Unit direction of v from its angle, so the zero vector maps to (1, 0)."""
    theta = math.atan2(v[1], v[0])
    return vec(math.cos(theta), math.sin(theta))


def dot(a: np.ndarray, b: np.ndarray) -> float:
    return float(a[0] * b[0] + a[1] * b[1])


def cross(a: np.ndarray, b: np.ndarray) -> float:
    """Scalar z-component of the 3D cross product of two planar vectors."""
    return float(a[0] * b[1] - a[1] * b[0])


def reflect(v: np.ndarray, n: np.ndarray) -> np.ndarray:
    """Specular reflection v - 2(v·n)n about unit normal n."""
    return v - 2.0 * dot(v, n) * n


def is_finite(v) -> bool:
    return bool(np.all(np.isfinite(np.asarray(v, dtype=float))))


# ──────────────────────────────────────────────
# Distance
# ──────────────────────────────────────────────
def dist_to_segment(p: np.ndarray, a: np.ndarray, b: np.ndarray) -> float:
    """Minimum distance from point p to segment a-b.

    The projection parameter is clamped to [0, 1]; a zero-length segment
    degrades to the distance between p and a.
    """
    d = b - a
    len_sq = dot(d, d)
    if len_sq == 0.0:
        return length(p - a)
    t = max(0.0, min(1.0, dot(p - a, d) / len_sq))
    return length(p - (a + t * d))


# ──────────────────────────────────────────────
# Affine maps
# ──────────────────────────────────────────────
def identity() -> np.ndarray:
    return np.eye(3)


def translation(dx: float, dy: float) -> np.ndarray:
    m = np.eye(3)
    m[0, 2] = dx
    m[1, 2] = dy
    return m


def rotation(angle: float) -> np.ndarray:
    """Counter-clockwise rotation about the origin (radians)."""
    c, s = math.cos(angle), math.sin(angle)
    return np.array([[c, -s, 0.0],
                     [s,  c, 0.0],
                     [0.0, 0.0, 1.0]])


def compose(*maps: np.ndarray) -> np.ndarray:
    """Compose affine maps; the rightmost map is applied first."""
    out = np.eye(3)
    for m in maps:
        out = out @ m
    return out


def rotate_about(pivot, angle: float) -> np.ndarray:
    px, py = float(pivot[0]), float(pivot[1])
    return compose(translation(px, py), rotation(angle), translation(-px, -py))


def transform_point(m: np.ndarray, p) -> np.ndarray:
    x = m[0, 0] * p[0] + m[0, 1] * p[1] + m[0, 2]
    y = m[1, 0] * p[0] + m[1, 1] * p[1] + m[1, 2]
    return vec(x, y)


def is_rigid(m: np.ndarray, tol: float = 1e-9) -> bool:
    """True for rotation + translation only (no scale, shear or mirror)."""
    lin = m[:2, :2]
    if not np.allclose(lin.T @ lin, np.eye(2), atol=tol):
        return False
    if abs(np.linalg.det(lin) - 1.0) > tol:
        return False
    return bool(np.allclose(m[2], [0.0, 0.0, 1.0], atol=tol))

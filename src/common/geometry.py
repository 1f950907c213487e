"""
Pure geometry helpers.

Everything here is deterministic: no random draws, no logging. The branch
growth and revolution generators call into this module for vector math so
their geometric invariants can be tested without a random source.

Conventions:
- Right-handed model space, Y is up.
- Front faces wind counter-clockwise; (0,0,0),(1,0,0),(0,1,0) faces +Z.
"""

import math
from typing import Sequence, Tuple

import numpy as np

from .errors import DegenerateGeometryError

Vec3 = Tuple[float, float, float]

# Cross-product length below which a triangle counts as degenerate
NORMAL_EPSILON = 1e-12

# Width of the Gaussian falloff used to blend adjacent profile curves
BLEND_SIGMA = 0.25

UP = (0.0, 1.0, 0.0)


def as_vec3(values: Sequence[float]) -> Vec3:
    """Coerce any 3-sequence to a plain float tuple."""
    x, y, z = values
    return (float(x), float(y), float(z))


def compute_normal(v0, v1, v2) -> np.ndarray:
    """
    Unit normal of triangle (v0, v1, v2).

    Returns the zero vector for degenerate triangles instead of dividing
    by a near-zero length. Callers must treat a zero normal as undefined.
    """
    p0 = np.asarray(v0, dtype=np.float64)
    edge1 = np.asarray(v1, dtype=np.float64) - p0
    edge2 = np.asarray(v2, dtype=np.float64) - p0
    normal = np.cross(edge1, edge2)
    length = float(np.linalg.norm(normal))
    if length < NORMAL_EPSILON:
        return np.zeros(3)
    return normal / length


def require_normal(v0, v1, v2) -> np.ndarray:
    """Like compute_normal, but raises DegenerateGeometryError on degenerate input."""
    normal = compute_normal(v0, v1, v2)
    if not normal.any():
        raise DegenerateGeometryError(
            f"Triangle {as_vec3(v0)}, {as_vec3(v1)}, {as_vec3(v2)} has no defined normal"
        )
    return normal


def compute_face_normals(vertices: np.ndarray, faces: np.ndarray) -> np.ndarray:
    """Vectorised compute_normal over an indexed mesh. Degenerate rows are zero."""
    vertices = np.asarray(vertices, dtype=np.float64)
    faces = np.asarray(faces, dtype=np.int64)
    if len(faces) == 0:
        return np.empty((0, 3))
    tris = vertices[faces]
    normals = np.cross(tris[:, 1] - tris[:, 0], tris[:, 2] - tris[:, 0])
    lengths = np.linalg.norm(normals, axis=1)
    valid = lengths >= NORMAL_EPSILON
    result = np.zeros_like(normals)
    result[valid] = normals[valid] / lengths[valid, np.newaxis]
    return result


# ============== Branch growth geometry ==============

def direction_from_angles(angle_deg: float, twist_deg: float) -> Vec3:
    """
    Unit growth direction.

    angle_deg is measured from the vertical axis (0 = straight up,
    90 = horizontal); twist_deg rotates around the vertical axis.
    """
    angle = math.radians(angle_deg)
    twist = math.radians(twist_deg)
    x = math.sin(angle) * math.cos(twist)
    y = math.cos(angle)
    z = math.sin(angle) * math.sin(twist)
    length = math.sqrt(x * x + y * y + z * z)
    return (x / length, y / length, z / length)


def segment_length(size: float, overlap_ratio: float, length_jitter: float) -> float:
    """Distance to the next primitive; shorter than size so neighbours overlap."""
    return size * overlap_ratio * (1.0 + length_jitter)


def advance(position: Vec3, direction: Vec3, length: float) -> Vec3:
    """Step from position along direction by length."""
    return (
        position[0] + direction[0] * length,
        position[1] + direction[1] * length,
        position[2] + direction[2] * length,
    )


def jitter_horizontal(position: Vec3, dx: float, dz: float) -> Vec3:
    """Offset a point in the horizontal (X/Z) plane only."""
    return (position[0] + dx, position[1], position[2] + dz)


def horizontal_jitter_extent(position_variation: float, size: float) -> float:
    return position_variation * size * 0.3


# ============== Revolution profile geometry ==============

def taper_radius(base_radius: float, t: float) -> float:
    """Deterministic vessel silhouette before noise, t in [0, 1] from bottom to top."""
    return base_radius * (1.0 - t * 0.3) + base_radius * t * 0.2


def _raw_blend(u: float, sigma: float) -> float:
    w1 = math.exp(-((u / sigma) ** 2))
    w2 = math.exp(-(((1.0 - u) / sigma) ** 2))
    return w2 / (w1 + w2)


def gaussian_blend_factor(u: float, sigma: float = BLEND_SIGMA) -> float:
    """
    Interpolation factor between two neighbouring curves.

    Each curve gets a Gaussian weight centred on its own angular position;
    the factor is the second curve's share of the total. This stays flat
    near either curve and steepens around the midpoint. The raw share is
    rescaled so that u=0 and u=1 select a curve exactly (the raw value is
    off by exp(-1/sigma^2)).
    """
    low = _raw_blend(0.0, sigma)
    high = _raw_blend(1.0, sigma)
    return (_raw_blend(u, sigma) - low) / (high - low)


def blend_radius(r1: float, r2: float, u: float, sigma: float = BLEND_SIGMA) -> float:
    f = gaussian_blend_factor(u, sigma)
    return r1 * (1.0 - f) + r2 * f


def polar_to_cartesian(angle: float, radius: float, y: float) -> Vec3:
    """Revolution-space point: angle around the Y axis, measured from +X toward +Z."""
    return (math.cos(angle) * radius, y, math.sin(angle) * radius)

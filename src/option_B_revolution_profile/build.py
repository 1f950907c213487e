"""
Option B: Revolution Profile (Vessel)

Revolve several noise-perturbed height profiles around the vertical axis
into a closed, capped vessel.

Algorithm:
B1. Curves: for each of curve_count profiles, sample coherent noise along
    the height and add it to a tapered base radius (clamped to min_radius)
B2. Extrusion: spread the curves evenly around the axis; every angular step
    blends its two neighbouring curves with a Gaussian weight (flat near a
    curve, steep around the midpoint), then applies the optional twist
B3. Assembly: ring grid → side walls + fan caps (common.mesh_ops)

Acceptance criteria:
- (segments+1) x (rotations+1) grid, plus two cap centres
- Closed mesh: every edge shared by exactly two faces
- All normals point outward
"""

import math
import numpy as np
from dataclasses import dataclass, fields
from typing import Optional, Tuple, Dict, Any, List
import logging

from common.config import Config, MeshMetadata
from common.errors import ConfigError
from common.geometry import blend_radius, polar_to_cartesian, taper_radius, BLEND_SIGMA
from common.mesh import Mesh
from common.mesh_ops import assemble_revolution_mesh, compute_mesh_stats
from common.noise_field import NoiseField, NOISE_BASES
from common.normalize import bbox_summary

logger = logging.getLogger(__name__)

# Noise rows of neighbouring curves are this far apart in the noise plane
CURVE_NOISE_SPACING = 10.0


@dataclass
class RevolutionParams:
    """Parameters for Option B generation. Lengths in cm."""
    # Silhouette
    base_radius: float = 3.0
    base_height: float = 0.5  # reserved, not used by the radius formula
    height: float = 8.0

    # Resolution
    segments: int = 24   # height steps; rings = segments + 1
    rotations: int = 48  # angular steps; samples per ring = rotations + 1

    # Noise profiles
    curve_count: int = 6
    noise_scale: float = 2.0
    noise_strength: float = 2.0
    noise_octaves: int = 4
    noise_seed: int = 0
    radius_variation: float = 0.3  # reserved
    min_radius: float = 0.5

    # Full turns of twist from bottom to top
    twist_amount: float = 0.0

    def validate(self) -> "RevolutionParams":
        """Reject out-of-range values before any generation work."""
        if self.segments < 1:
            raise ConfigError(f"segments must be >= 1, got {self.segments}")
        if self.rotations < 1:
            raise ConfigError(f"rotations must be >= 1, got {self.rotations}")
        if self.curve_count < 1:
            raise ConfigError(f"curve_count must be >= 1, got {self.curve_count}")
        if self.noise_octaves < 1:
            raise ConfigError(f"noise_octaves must be >= 1, got {self.noise_octaves}")
        if not 0 <= self.noise_seed < NOISE_BASES:
            raise ConfigError(f"noise_seed must be in [0, {NOISE_BASES}), got {self.noise_seed}")
        for name in ("base_radius", "height", "min_radius"):
            if getattr(self, name) <= 0:
                raise ConfigError(f"{name} must be > 0, got {getattr(self, name)}")
        for name in ("base_height", "noise_scale", "noise_strength", "radius_variation"):
            if getattr(self, name) < 0:
                raise ConfigError(f"{name} must be >= 0, got {getattr(self, name)}")
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RevolutionParams":
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigError(f"Unknown revolution parameters: {sorted(unknown)}")
        return cls(**data).validate()

    def noise_field(self) -> NoiseField:
        return NoiseField(octaves=self.noise_octaves, base=self.noise_seed)


@dataclass(frozen=True)
class NoiseCurve:
    """One height profile: (height, radius) samples from bottom to top."""
    heights: np.ndarray
    radii: np.ndarray

    def __post_init__(self):
        if len(self.heights) != len(self.radii):
            raise ValueError(f"{len(self.heights)} heights for {len(self.radii)} radii")
        for array in (self.heights, self.radii):
            array.flags.writeable = False

    def __len__(self) -> int:
        return len(self.radii)


def generate_noise_curves(
    params: RevolutionParams,
    noise_field: Optional[NoiseField] = None
) -> List[NoiseCurve]:
    """
    B1: one radius profile per curve.

    radius(t) = taper(t) + (noise(t * noise_scale, curve * 10) - 0.5) * noise_strength,
    clamped to min_radius.
    """
    noise_field = noise_field or params.noise_field()
    t = np.arange(params.segments + 1, dtype=np.float64) / params.segments
    heights = t * params.height
    taper = np.array([taper_radius(params.base_radius, ti) for ti in t])

    curves = []
    for c in range(params.curve_count):
        noise_values = noise_field.sample_line(t * params.noise_scale, c * CURVE_NOISE_SPACING)
        radii = taper + (noise_values - 0.5) * params.noise_strength
        radii = np.maximum(radii, params.min_radius)
        curves.append(NoiseCurve(heights=heights.copy(), radii=radii))

    return curves


def locate_curves(angle: float, curve_count: int) -> Tuple[int, int, float]:
    """
    Bracketing curves for an angle in [0, 2*pi].

    Returns:
        (first curve, next curve, fraction u in [0, 1) between them)
    """
    position = angle / (2.0 * math.pi) * curve_count
    # Snap float noise so exact multiples of the span land on a curve
    nearest = round(position)
    if abs(position - nearest) < 1e-9:
        position = float(nearest)
    span_index = math.floor(position)
    c1 = span_index % curve_count
    c2 = (c1 + 1) % curve_count
    return c1, c2, position - span_index


def extrude_curves(
    curves: List[NoiseCurve],
    params: RevolutionParams,
    sigma: float = BLEND_SIGMA
) -> np.ndarray:
    """
    B2: revolve the curves into a ring grid.

    Returns:
        (segments + 1, rotations + 1, 3) array indexed [ring, angular_step];
        step `rotations` duplicates step 0 as a separate vertex.
    """
    n_rings = params.segments + 1
    n_steps = params.rotations + 1
    grid = np.empty((n_rings, n_steps, 3), dtype=np.float64)

    # The closing step reuses the angle of step 0 so the seam is exact
    angles = [(step % params.rotations) / params.rotations * 2.0 * math.pi for step in range(n_steps)]
    brackets = [locate_curves(angle, len(curves)) for angle in angles]

    for ring in range(n_rings):
        y = float(curves[0].heights[ring])
        twist = (y / params.height) * params.twist_amount * 2.0 * math.pi
        for step, (c1, c2, u) in enumerate(brackets):
            angle = angles[step]
            radius = blend_radius(curves[c1].radii[ring], curves[c2].radii[ring], u, sigma)
            grid[ring, step] = polar_to_cartesian(angle + twist, radius, y)

    return grid


def generate_revolution_mesh(
    params: Optional[RevolutionParams] = None,
    noise_field: Optional[NoiseField] = None
) -> Mesh:
    """Curves → ring grid → closed mesh. A new Mesh on every call."""
    params = (params or RevolutionParams()).validate()
    curves = generate_noise_curves(params, noise_field)
    grid = extrude_curves(curves, params)
    return assemble_revolution_mesh(grid)


def build_revolution_profile(
    params: Optional[RevolutionParams] = None,
    config: Optional[Config] = None,
    specimen_id: Optional[str] = None,
    seed: Optional[int] = None
) -> Tuple[Mesh, MeshMetadata]:
    """
    Build Option B: Revolution Profile sculpture.

    Args:
        params: Generation parameters (defaults if None)
        config: Configuration (uses defaults if None)
        specimen_id: Name for the output (derived from the run seed if None)
        seed: Run seed the noise seed was derived from (the noise seed if None)

    Returns:
        Tuple of (mesh, metadata)
    """
    params = (params or RevolutionParams()).validate()
    config = (config or Config()).validate()

    logger.info("=" * 60)
    logger.info("Option B: Revolution Profile (Vessel)")
    logger.info("=" * 60)

    # Step 1: Noise curves
    logger.info(f"\nStep 1: Sampling {params.curve_count} noise curves "
                f"({params.segments + 1} samples each)")
    curves = generate_noise_curves(params)
    all_radii = np.concatenate([c.radii for c in curves])
    logger.info(f"Radius range: {all_radii.min():.2f} - {all_radii.max():.2f}")

    # Step 2: Extrusion
    logger.info(f"\nStep 2: Extruding ({params.rotations} angular steps, twist={params.twist_amount})")
    grid = extrude_curves(curves, params)

    # Step 3: Assembly
    logger.info("\nStep 3: Assembling ring mesh")
    mesh = assemble_revolution_mesh(grid)
    stats = compute_mesh_stats(mesh)
    if not stats["is_watertight"]:
        logger.warning("Revolution mesh is not watertight")

    seed = params.noise_seed if seed is None else seed
    specimen_id = specimen_id or f"revolution_profile_{seed}"
    metadata = MeshMetadata(
        unit_mode=config.unit_mode.value,
        unit_scale=config.effective_unit_scale,
        axis_convention=config.axis_convention.value,
        specimen_id=specimen_id,
        option="B",
        n_triangles=mesh.n_faces,
        n_vertices=mesh.n_vertices,
        seed=seed,
        bbox_model=bbox_summary(mesh.vertices),
        generation_params=params.to_dict()
    )

    logger.info(f"\nResult: {metadata.n_vertices} vertices, {metadata.n_triangles} triangles, "
                f"watertight={stats['is_watertight']}")

    return mesh, metadata


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    print("Option B: Revolution Profile (Vessel)")
    print("Run via: python src/run_all.py --modules B")

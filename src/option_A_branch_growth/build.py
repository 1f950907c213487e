"""
Option A: Branch Growth (Coral)

Grow a coral-like structure from a base slab by stochastic recursive
branching. The output is a flat list of oriented primitives (box, sphere,
cylinder); meshing happens afterwards, either through a boolean union or by
tessellating every primitive on its own.

Algorithm (per growth step, draws consumed in this order):
1. Stop if depth >= max_depth or size < 0.3
2. Segment length = size * U(0.6, 0.8) * (1 ± length_variation)
3. Emitted size = size * (1 ± size_variation)
4. Advance along the growth direction, jitter X/Z only
5. Pick box / sphere / cylinder, rotation and dimensions
6. Emit the primitive
7. Forced split into 2 (after min_cubes_before_split) or 1..max_branches children
8. Per child: accept with branch_probability (always for a split),
   new direction from angle-from-vertical and twist, recurse

The geometry of each step comes from common.geometry; this module only
makes the random decisions.
"""

import numpy as np
from dataclasses import dataclass, fields
from typing import Optional, Tuple, Dict, Any, List
import logging

from common.config import Config, MeshMetadata
from common.combine import SolidCombiner, combine_primitives
from common.errors import ConfigError
from common.geometry import (
    Vec3, UP, advance, direction_from_angles, horizontal_jitter_extent,
    jitter_horizontal, segment_length,
)
from common.mesh import (
    Primitive, PrimitiveKind, Mesh, Solid,
    BoxDimensions, SphereDimensions, CylinderDimensions, Dimensions,
    primitives_summary,
)
from common.normalize import bbox_summary
from common.random_source import RandomDraws, make_rng

logger = logging.getLogger(__name__)

# Absolute size floor; growth below this stops regardless of configuration
MIN_BRANCH_SIZE = 0.3

PRIMITIVE_KINDS = (PrimitiveKind.BOX, PrimitiveKind.SPHERE, PrimitiveKind.CYLINDER)


@dataclass
class BranchGrowthParams:
    """Parameters for Option A generation. Sizes and lengths in cm."""
    # Base slab
    base_width: float = 5.0
    base_height: float = 1.0
    base_depth: float = 5.0

    # Branching
    max_depth: int = 5
    max_branches_per_node: int = 3
    branch_probability: float = 0.7
    min_cubes_before_split: int = 2
    split_probability: float = 0.4

    # Size
    initial_size: float = 3.0
    size_decay: float = 0.9
    size_variation: float = 0.2

    # Growth
    length_variation: float = 0.4

    # Angles (degrees)
    base_angle_deg: float = 35.0
    angle_variation_deg: float = 25.0
    twist_variation_deg: float = 30.0

    # Horizontal jitter
    position_variation: float = 0.0

    # Seed for the default random source (None = fresh entropy, logged)
    seed: Optional[int] = None

    def validate(self) -> "BranchGrowthParams":
        """Reject out-of-range values before any generation work."""
        for name in ("base_width", "base_height", "base_depth", "initial_size"):
            if getattr(self, name) <= 0:
                raise ConfigError(f"{name} must be > 0, got {getattr(self, name)}")
        if self.max_depth < 0:
            raise ConfigError(f"max_depth must be >= 0, got {self.max_depth}")
        if self.max_branches_per_node < 1:
            raise ConfigError(f"max_branches_per_node must be >= 1, got {self.max_branches_per_node}")
        if self.min_cubes_before_split < 0:
            raise ConfigError(f"min_cubes_before_split must be >= 0, got {self.min_cubes_before_split}")
        for name in ("branch_probability", "split_probability", "size_variation", "length_variation"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ConfigError(f"{name} must be in [0, 1], got {value}")
        if not 0.0 < self.size_decay <= 1.0:
            raise ConfigError(f"size_decay must be in (0, 1], got {self.size_decay}")
        for name in ("angle_variation_deg", "twist_variation_deg", "position_variation"):
            if getattr(self, name) < 0:
                raise ConfigError(f"{name} must be >= 0, got {getattr(self, name)}")
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BranchGrowthParams":
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigError(f"Unknown branch growth parameters: {sorted(unknown)}")
        return cls(**data).validate()


@dataclass(frozen=True)
class BranchState:
    """Recursion context for one growth step. Never stored."""
    position: Vec3
    direction: Vec3
    size: float
    depth: int
    base_rotation_deg: float
    cubes_in_branch: int


class BranchGrowthGenerator:
    """
    Stochastic recursive coral growth.

    The result is a pure function of the params and the sequence of values
    drawn from the random source. Each generate() call builds a new list.
    """

    def __init__(self, params: Optional[BranchGrowthParams] = None):
        self.params = (params or BranchGrowthParams()).validate()

    def base_primitive(self) -> Primitive:
        p = self.params
        return Primitive(
            kind=PrimitiveKind.BOX,
            position=(0.0, p.base_height / 2, 0.0),
            rotation_deg=(0.0, 0.0, 0.0),
            dimensions=BoxDimensions(p.base_width, p.base_height, p.base_depth),
            level=0,
            size=0.0
        )

    def initial_state(self) -> BranchState:
        """Growth starts on top of the base slab, pointing straight up."""
        return BranchState(
            position=(0.0, self.params.base_height, 0.0),
            direction=UP,
            size=self.params.initial_size,
            depth=0,
            base_rotation_deg=0.0,
            cubes_in_branch=0
        )

    def generate(self, rng) -> List[Primitive]:
        """
        Grow one structure.

        Args:
            rng: Random source with a random() method (numpy Generator,
                random.Random, ...). Failures propagate as RandomSourceError.

        Returns:
            Base slab followed by the grown primitives, depth-first
        """
        draws = RandomDraws(rng)
        primitives = [self.base_primitive()]
        self._grow(self.initial_state(), draws, primitives)
        logger.debug(f"Consumed {draws.n_draws} random draws")
        return primitives

    def _grow(self, state: BranchState, draws: RandomDraws, out: List[Primitive]) -> None:
        p = self.params

        if state.depth >= p.max_depth or state.size < MIN_BRANCH_SIZE:
            return

        overlap = draws.uniform(0.6, 0.8)
        length = segment_length(state.size, overlap, draws.symmetric(p.length_variation))
        actual_size = state.size * (1.0 + draws.symmetric(p.size_variation))

        position = advance(state.position, state.direction, length)
        spread = horizontal_jitter_extent(p.position_variation, state.size)
        position = jitter_horizontal(position, draws.symmetric(spread), draws.symmetric(spread))

        kind = PRIMITIVE_KINDS[draws.index(len(PRIMITIVE_KINDS))]
        rotation = (
            state.base_rotation_deg + draws.symmetric(p.twist_variation_deg),
            draws.symmetric(p.angle_variation_deg),
            draws.symmetric(p.angle_variation_deg),
        )
        dimensions = self._dimensions(kind, actual_size, draws)

        out.append(Primitive(
            kind=kind,
            position=position,
            rotation_deg=rotation,
            dimensions=dimensions,
            level=state.depth,
            size=state.size
        ))

        cubes = state.cubes_in_branch + 1
        n_children, forced_split = self._branch_count(cubes, draws)

        for _ in range(n_children):
            # The acceptance draw is consumed even for a forced split
            accepted = draws.chance(p.branch_probability)
            if not (accepted or forced_split):
                continue

            angle = p.base_angle_deg + draws.symmetric(p.angle_variation_deg)
            twist = draws.uniform(0.0, 360.0)
            child = BranchState(
                position=position,
                direction=direction_from_angles(angle, twist),
                size=state.size * p.size_decay,
                depth=state.depth + 1,
                base_rotation_deg=state.base_rotation_deg + draws.symmetric(p.twist_variation_deg),
                cubes_in_branch=0 if forced_split else cubes
            )
            self._grow(child, draws, out)

    def _branch_count(self, cubes_in_branch: int, draws: RandomDraws) -> Tuple[int, bool]:
        """Returns (child count, forced split)."""
        p = self.params
        if cubes_in_branch >= p.min_cubes_before_split and draws.chance(p.split_probability):
            return 2, True
        count = int(np.floor(draws.uniform(1.0, p.max_branches_per_node + 1.0)))
        return min(count, p.max_branches_per_node), False

    @staticmethod
    def _dimensions(kind: PrimitiveKind, actual_size: float, draws: RandomDraws) -> Dimensions:
        if kind == PrimitiveKind.BOX:
            return BoxDimensions(actual_size, actual_size, actual_size)
        if kind == PrimitiveKind.SPHERE:
            return SphereDimensions(actual_size / 2)
        # Cylinders may be taller than wide
        return CylinderDimensions(actual_size / 2, actual_size * draws.uniform(1.0, 1.5))


def generate_branch_primitives(params: BranchGrowthParams, rng) -> List[Primitive]:
    """Grow one structure with an explicit random source."""
    return BranchGrowthGenerator(params).generate(rng)


def _solid_counts(solid: Solid) -> Tuple[int, int]:
    if isinstance(solid, Mesh):
        return solid.n_faces, solid.n_vertices
    return solid.n_triangles, sum(len(poly) for poly in solid.polygons)


def _solid_points(solid: Solid) -> np.ndarray:
    if isinstance(solid, Mesh):
        return solid.vertices
    if not solid.polygons:
        return np.empty((0, 3))
    return np.vstack(solid.polygons)


def build_branch_growth(
    params: Optional[BranchGrowthParams] = None,
    config: Optional[Config] = None,
    rng=None,
    combiner: Optional[SolidCombiner] = None,
    specimen_id: Optional[str] = None
) -> Tuple[List[Primitive], Solid, MeshMetadata]:
    """
    Build Option A: Branch Growth sculpture.

    Args:
        params: Generation parameters (defaults if None)
        config: Configuration (uses defaults if None)
        rng: Random source; a numpy Generator seeded from params.seed if None
        combiner: Optional boolean combiner; without one (or if it fails)
            every primitive is tessellated and exported on its own
        specimen_id: Name for the output (derived from the seed if None)

    Returns:
        Tuple of (primitives, solid, metadata)
    """
    params = (params or BranchGrowthParams()).validate()
    config = (config or Config()).validate()

    logger.info("=" * 60)
    logger.info("Option A: Branch Growth (Coral)")
    logger.info("=" * 60)

    seed = params.seed
    if rng is None:
        rng, seed = make_rng(params.seed)

    # Step 1: Grow primitives
    logger.info(f"\nStep 1: Growing (max_depth={params.max_depth}, seed={seed})")
    primitives = generate_branch_primitives(params, rng)
    counts = primitives_summary(primitives)
    max_level = max(p.level for p in primitives)
    logger.info(f"Grew {len(primitives)} primitives {counts}, deepest level {max_level}")

    # Step 2: Combine or tessellate
    logger.info("\nStep 2: Meshing primitives")
    solid, combined = combine_primitives(
        primitives,
        combiner,
        config.sphere_subdivisions,
        config.cylinder_sections
    )
    n_triangles, n_vertices = _solid_counts(solid)

    specimen_id = specimen_id or f"branch_growth_{seed}"

    metadata = MeshMetadata(
        unit_mode=config.unit_mode.value,
        unit_scale=config.effective_unit_scale,
        axis_convention=config.axis_convention.value,
        specimen_id=specimen_id,
        option="A",
        n_triangles=n_triangles,
        n_vertices=n_vertices,
        seed=seed,
        n_primitives=len(primitives),
        combined=combined,
        bbox_model=bbox_summary(_solid_points(solid)),
        generation_params=params.to_dict()
    )

    logger.info(f"\nResult: {len(primitives)} primitives, {n_triangles} triangles "
                f"({'combined' if combined else 'uncombined'})")

    return primitives, solid, metadata


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    print("Option A: Branch Growth (Coral)")
    print("Run via: python src/run_all.py --modules A")

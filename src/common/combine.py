"""
Solid combination (boolean union) of branch growth primitives.

The boolean kernel is an optional collaborator. Generators never depend on
it: combine_primitives falls back to exporting every primitive
independently when no kernel is available or the union fails.
"""

import logging
from typing import List, Optional, Protocol, Tuple

import trimesh

from .errors import CombinerUnavailableError
from .mesh import Mesh, Primitive, Solid
from .mesh_ops import from_trimesh, primitive_to_trimesh, primitives_to_mesh

logger = logging.getLogger(__name__)


class SolidCombiner(Protocol):
    """Anything that can union a list of primitives into one exportable solid."""

    def combine(self, primitives: List[Primitive]) -> Solid:
        ...


class TrimeshBooleanCombiner:
    """
    Union via trimesh.boolean, which needs a backend such as manifold3d.

    Works in model space; unit and axis conventions are applied only at export.
    """

    def __init__(
        self,
        engine: Optional[str] = None,
        sphere_subdivisions: int = 2,
        cylinder_sections: int = 24
    ):
        self.engine = engine
        self.sphere_subdivisions = sphere_subdivisions
        self.cylinder_sections = cylinder_sections

    def combine(self, primitives: List[Primitive]) -> Mesh:
        if not primitives:
            raise ValueError("Nothing to combine")

        parts = [
            primitive_to_trimesh(p, self.sphere_subdivisions, self.cylinder_sections)
            for p in primitives
        ]
        if len(parts) == 1:
            return from_trimesh(parts[0])

        try:
            result = trimesh.boolean.union(parts, engine=self.engine)
        except (ImportError, ValueError) as e:
            raise CombinerUnavailableError(f"Boolean union unavailable: {e}") from e

        logger.info(f"Boolean union of {len(parts)} primitives: "
                    f"{len(result.vertices)} verts, {len(result.faces)} faces")
        return from_trimesh(result)


def combine_primitives(
    primitives: List[Primitive],
    combiner: Optional[SolidCombiner] = None,
    sphere_subdivisions: int = 2,
    cylinder_sections: int = 24
) -> Tuple[Solid, bool]:
    """
    Union primitives if a combiner is given, otherwise (or on failure) merge
    them without combination.

    Returns:
        Tuple of (solid, combined) where combined says whether the union ran
    """
    if combiner is not None:
        try:
            return combiner.combine(primitives), True
        except Exception as e:
            logger.warning(f"Combiner failed, exporting primitives uncombined: {e}")

    merged, _ = primitives_to_mesh(primitives, sphere_subdivisions, cylinder_sections)
    return merged, False

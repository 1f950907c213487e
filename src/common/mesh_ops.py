"""
Mesh operation utilities.

Ring-grid assembly for revolution meshes, primitive tessellation,
merging, closure checks and statistics.
"""

import numpy as np
from collections import Counter
from typing import Dict, Any, List, Tuple
import logging

import trimesh

from .mesh import Mesh, Primitive, PrimitiveKind

logger = logging.getLogger(__name__)


def to_trimesh(mesh: Mesh) -> trimesh.Trimesh:
    """Wrap a Mesh in trimesh without merging or dropping anything."""
    return trimesh.Trimesh(
        vertices=np.array(mesh.vertices),
        faces=np.array(mesh.faces),
        process=False
    )


def from_trimesh(tm: trimesh.Trimesh) -> Mesh:
    return Mesh(vertices=np.array(tm.vertices), faces=np.array(tm.faces))


def compute_mesh_stats(mesh: Mesh) -> Dict[str, Any]:
    """
    Compute comprehensive mesh statistics.

    Args:
        mesh: Mesh object

    Returns:
        Dictionary of mesh statistics
    """
    if mesh.n_faces == 0:
        return {
            "n_vertices": mesh.n_vertices,
            "n_faces": 0,
            "is_watertight": False,
            "is_winding_consistent": False
        }

    tm = to_trimesh(mesh)
    bounds = tm.bounds
    extents = tm.extents

    return {
        "n_vertices": len(tm.vertices),
        "n_faces": len(tm.faces),
        "bounds": {
            "min": bounds[0].tolist(),
            "max": bounds[1].tolist()
        },
        "extents": extents.tolist(),
        "max_extent": float(max(extents)),
        "volume": float(tm.volume) if tm.is_watertight else None,
        "surface_area": float(tm.area),
        "is_watertight": tm.is_watertight,
        "is_winding_consistent": tm.is_winding_consistent,
        "euler_number": tm.euler_number
    }


def edge_incidence(mesh: Mesh) -> Counter:
    """Number of faces incident to each undirected edge, keyed by sorted index pair."""
    counts = Counter()
    for a, b, c in mesh.faces.tolist():
        for u, v in ((a, b), (b, c), (c, a)):
            counts[(u, v) if u < v else (v, u)] += 1
    return counts


def is_closed(mesh: Mesh) -> bool:
    """True if every undirected edge is shared by exactly two faces."""
    counts = edge_incidence(mesh)
    return bool(counts) and all(n == 2 for n in counts.values())


# ============== Revolution assembly ==============

def assemble_revolution_mesh(grid: np.ndarray) -> Mesh:
    """
    Build a closed mesh from a ring grid.

    The grid is indexed [ring, angular_step]; the last step of every ring
    sits on top of the first but is a separate vertex, and the wrap cell
    between them is emitted after the regular cells. Both ends are closed
    by a triangle fan around an injected centre vertex on the Y axis.

    Winding (ring k = a, ring k+1 = b, step s):
        side:   (a_s, b_s, a_s+1), (a_s+1, b_s, b_s+1)   outward
        bottom: (c, a_s, a_s+1)                           -Y
        top:    (c, b_s+1, b_s)                           +Y

    Args:
        grid: (rings, steps, 3) array, rings >= 2, steps >= 2

    Returns:
        Mesh with rings*steps + 2 vertices and 2*steps*rings faces
    """
    grid = np.asarray(grid, dtype=np.float64)
    if grid.ndim != 3 or grid.shape[2] != 3:
        raise ValueError(f"Ring grid must have shape (rings, steps, 3), got {grid.shape}")
    n_rings, n_steps = grid.shape[:2]
    if n_rings < 2 or n_steps < 2:
        raise ValueError(f"Ring grid needs at least 2 rings and 2 steps, got {grid.shape[:2]}")

    def idx(ring: int, step: int) -> int:
        return ring * n_steps + step

    faces = []

    # Side walls
    for k in range(n_rings - 1):
        for s in range(n_steps - 1):
            a0, a1 = idx(k, s), idx(k, s + 1)
            b0, b1 = idx(k + 1, s), idx(k + 1, s + 1)
            faces.append([a0, b0, a1])
            faces.append([a1, b0, b1])

        # Wrap cell: last step back to the first
        a0, a1 = idx(k, n_steps - 1), idx(k, 0)
        b0, b1 = idx(k + 1, n_steps - 1), idx(k + 1, 0)
        faces.append([a0, b0, a1])
        faces.append([a1, b0, b1])

    bottom_center = n_rings * n_steps
    top_center = bottom_center + 1
    bottom_y = float(grid[0, :, 1].mean())
    top_y = float(grid[-1, :, 1].mean())
    top = n_rings - 1

    # Bottom cap
    for s in range(n_steps - 1):
        faces.append([bottom_center, idx(0, s), idx(0, s + 1)])
    faces.append([bottom_center, idx(0, n_steps - 1), idx(0, 0)])

    # Top cap
    for s in range(n_steps - 1):
        faces.append([top_center, idx(top, s + 1), idx(top, s)])
    faces.append([top_center, idx(top, 0), idx(top, n_steps - 1)])

    vertices = np.vstack([
        grid.reshape(-1, 3),
        [[0.0, bottom_y, 0.0]],
        [[0.0, top_y, 0.0]],
    ])

    mesh = Mesh(vertices=vertices, faces=np.array(faces, dtype=np.int64))
    logger.debug(f"Assembled revolution mesh: {n_rings} rings x {n_steps} steps, "
                 f"{mesh.n_vertices} vertices, {mesh.n_faces} faces")
    return mesh


# ============== Primitives ==============

def primitive_transform(primitive: Primitive) -> np.ndarray:
    """
    4x4 model matrix: translate, then rotate X, Y, Z in the object frame.
    """
    rx, ry, rz = np.radians(primitive.rotation_deg)
    rotation = (
        trimesh.transformations.rotation_matrix(rx, [1, 0, 0])
        @ trimesh.transformations.rotation_matrix(ry, [0, 1, 0])
        @ trimesh.transformations.rotation_matrix(rz, [0, 0, 1])
    )
    return trimesh.transformations.translation_matrix(primitive.position) @ rotation


def primitive_to_trimesh(
    primitive: Primitive,
    sphere_subdivisions: int = 2,
    cylinder_sections: int = 24
) -> trimesh.Trimesh:
    """Tessellate one primitive in model space."""
    dims = primitive.dimensions

    if primitive.kind == PrimitiveKind.BOX:
        tm = trimesh.creation.box(extents=[dims.width, dims.height, dims.depth])
    elif primitive.kind == PrimitiveKind.SPHERE:
        tm = trimesh.creation.icosphere(subdivisions=sphere_subdivisions, radius=dims.radius)
    else:
        tm = trimesh.creation.cylinder(
            radius=dims.radius, height=dims.height, sections=cylinder_sections
        )
        # trimesh builds cylinders along Z; model cylinders stand on Y
        tm.apply_transform(trimesh.transformations.rotation_matrix(-np.pi / 2, [1, 0, 0]))

    tm.apply_transform(primitive_transform(primitive))
    return tm


def primitive_to_mesh(
    primitive: Primitive,
    sphere_subdivisions: int = 2,
    cylinder_sections: int = 24
) -> Mesh:
    return from_trimesh(primitive_to_trimesh(primitive, sphere_subdivisions, cylinder_sections))


def merge_meshes(meshes: List[Mesh]) -> Mesh:
    """
    Merge multiple meshes into one (no boolean, overlaps are kept).

    Args:
        meshes: List of meshes

    Returns:
        Combined mesh
    """
    if not meshes:
        return Mesh(vertices=np.empty((0, 3)), faces=np.empty((0, 3), dtype=np.int64))

    if len(meshes) == 1:
        return meshes[0]

    vertices = []
    faces = []
    offset = 0
    for mesh in meshes:
        vertices.append(mesh.vertices)
        faces.append(mesh.faces + offset)
        offset += mesh.n_vertices

    combined = Mesh(vertices=np.vstack(vertices), faces=np.vstack(faces))
    logger.info(f"Merged {len(meshes)} meshes: {combined.n_vertices} verts, {combined.n_faces} faces")

    return combined


def primitives_to_mesh(
    primitives: List[Primitive],
    sphere_subdivisions: int = 2,
    cylinder_sections: int = 24
) -> Tuple[Mesh, List[Mesh]]:
    """Tessellate every primitive independently and merge the results."""
    parts = [primitive_to_mesh(p, sphere_subdivisions, cylinder_sections) for p in primitives]
    return merge_meshes(parts), parts

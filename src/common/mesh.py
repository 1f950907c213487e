"""
Data model shared by the generators, the exporter and the combiner.

- Primitive: one oriented box, sphere or cylinder from the branch growth
  generator. The dimensions object is a tagged shape that must match the kind.
- Mesh: indexed triangle mesh (vertices + faces, optional face normals).
- PolygonSoup: unindexed polygons, the shape a boolean kernel hands back.

All three are immutable once built: dataclasses are frozen and numpy arrays
are flagged read-only. Regenerating always builds new objects.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

import numpy as np

from .errors import IndexOutOfRangeError, MeshTopologyError
from .geometry import Vec3, as_vec3


class PrimitiveKind(Enum):
    BOX = "box"
    SPHERE = "sphere"
    CYLINDER = "cylinder"


@dataclass(frozen=True)
class BoxDimensions:
    width: float
    height: float
    depth: float


@dataclass(frozen=True)
class SphereDimensions:
    radius: float


@dataclass(frozen=True)
class CylinderDimensions:
    """Cylinder along the vertical (Y) axis, centred on its position."""
    radius: float
    height: float


Dimensions = Union[BoxDimensions, SphereDimensions, CylinderDimensions]

_DIMENSIONS_BY_KIND = {
    PrimitiveKind.BOX: BoxDimensions,
    PrimitiveKind.SPHERE: SphereDimensions,
    PrimitiveKind.CYLINDER: CylinderDimensions,
}


@dataclass(frozen=True)
class Primitive:
    """
    Oriented primitive solid.

    rotation_deg is applied about X, then Y, then Z in the object's own frame,
    before translation to position. level is the recursion depth that emitted
    it (0 for the base slab) and size the nominal size that passed the
    termination floor (0 for the base slab).
    """
    kind: PrimitiveKind
    position: Vec3
    rotation_deg: Vec3
    dimensions: Dimensions
    level: int = 0
    size: float = 0.0

    def __post_init__(self):
        expected = _DIMENSIONS_BY_KIND[self.kind]
        if not isinstance(self.dimensions, expected):
            raise ValueError(
                f"{self.kind.value} needs {expected.__name__}, "
                f"got {type(self.dimensions).__name__}"
            )
        object.__setattr__(self, "position", as_vec3(self.position))
        object.__setattr__(self, "rotation_deg", as_vec3(self.rotation_deg))

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "type": self.kind.value,
            "position": list(self.position),
            "rotation_deg": list(self.rotation_deg),
            "level": self.level,
            "size": self.size,
        }
        data.update(vars(self.dimensions))
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Primitive":
        kind = PrimitiveKind(data["type"])
        dims_cls = _DIMENSIONS_BY_KIND[kind]
        dims = dims_cls(**{name: float(data[name]) for name in dims_cls.__dataclass_fields__})
        return cls(
            kind=kind,
            position=data["position"],
            rotation_deg=data["rotation_deg"],
            dimensions=dims,
            level=int(data.get("level", 0)),
            size=float(data.get("size", 0.0)),
        )


def _frozen_array(values, dtype, name: str) -> np.ndarray:
    array = np.array(values, dtype=dtype)
    if array.size == 0:
        array = array.reshape(0, 3)
    if array.ndim != 2 or array.shape[1] != 3:
        raise MeshTopologyError(f"{name} must have shape (N, 3), got {array.shape}")
    array.flags.writeable = False
    return array


@dataclass(frozen=True)
class Mesh:
    """
    Indexed triangle mesh.

    Construction only checks array shapes; call validate_mesh (the exporter
    always does) to check indices.
    """
    vertices: np.ndarray
    faces: np.ndarray
    face_normals: Optional[np.ndarray] = None

    def __post_init__(self):
        object.__setattr__(self, "vertices", _frozen_array(self.vertices, np.float64, "vertices"))
        object.__setattr__(self, "faces", _frozen_array(self.faces, np.int64, "faces"))
        if self.face_normals is not None:
            normals = _frozen_array(self.face_normals, np.float64, "face_normals")
            if len(normals) != len(self.faces):
                raise MeshTopologyError(
                    f"{len(normals)} face normals for {len(self.faces)} faces"
                )
            object.__setattr__(self, "face_normals", normals)

    @property
    def n_vertices(self) -> int:
        return len(self.vertices)

    @property
    def n_faces(self) -> int:
        return len(self.faces)

    def triangles(self) -> np.ndarray:
        """(M, 3, 3) array of face corner coordinates."""
        return self.vertices[self.faces]

    def to_dict(self) -> Dict[str, Any]:
        """Exchange form: vertex triples and zero-based index triples."""
        return {
            "vertices": self.vertices.tolist(),
            "faces": self.faces.tolist(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Mesh":
        return cls(vertices=data["vertices"], faces=data["faces"])


@dataclass(frozen=True)
class PolygonSoup:
    """Unindexed polygons, each a (k, 3) array with k >= 3. May be non-planar."""
    polygons: Tuple[np.ndarray, ...] = field(default_factory=tuple)

    def __post_init__(self):
        frozen = []
        for i, polygon in enumerate(self.polygons):
            array = _frozen_array(polygon, np.float64, f"polygon {i}")
            if len(array) < 3:
                raise MeshTopologyError(f"Polygon {i} has {len(array)} vertices, need at least 3")
            frozen.append(array)
        object.__setattr__(self, "polygons", tuple(frozen))

    @property
    def n_polygons(self) -> int:
        return len(self.polygons)

    @property
    def n_triangles(self) -> int:
        """Triangle count after fan triangulation."""
        return sum(len(p) - 2 for p in self.polygons)

    @classmethod
    def from_mesh(cls, mesh: Mesh) -> "PolygonSoup":
        return cls(tuple(mesh.triangles()))


Solid = Union[Mesh, PolygonSoup]


def validate_mesh(mesh: Mesh) -> None:
    """
    Check the index invariants of an indexed mesh.

    Raises:
        IndexOutOfRangeError: a face points past the vertex array (or below 0)
        MeshTopologyError: a face repeats a vertex
    """
    if mesh.n_faces == 0:
        return

    faces = mesh.faces
    bad = (faces < 0) | (faces >= mesh.n_vertices)
    if bad.any():
        face_idx = int(np.argwhere(bad.any(axis=1))[0][0])
        raise IndexOutOfRangeError(
            f"Face {face_idx} {faces[face_idx].tolist()} references a vertex "
            f"outside [0, {mesh.n_vertices})"
        )

    repeated = (
        (faces[:, 0] == faces[:, 1])
        | (faces[:, 1] == faces[:, 2])
        | (faces[:, 0] == faces[:, 2])
    )
    if repeated.any():
        face_idx = int(np.argmax(repeated))
        raise MeshTopologyError(
            f"Face {face_idx} {faces[face_idx].tolist()} repeats a vertex index"
        )


def primitives_summary(primitives: List[Primitive]) -> Dict[str, int]:
    """Count primitives by kind."""
    counts = {kind.value: 0 for kind in PrimitiveKind}
    for primitive in primitives:
        counts[primitive.kind.value] += 1
    return counts

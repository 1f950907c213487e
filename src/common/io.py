"""
Data I/O utilities.

ASCII STL export with a metadata sidecar, primitive lists as JSON for
renderers, and loading exported meshes back for inspection.

Every coordinate written here goes through coords.ExportTransform first;
nothing in this module decides units or axes on its own.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional, Tuple, Sequence

import numpy as np
import trimesh

from .config import Config, MeshMetadata, DEFAULT_CONFIG
from .coords import ExportTransform
from .errors import ConfigError, DegenerateGeometryError
from .geometry import require_normal
from .mesh import Mesh, PolygonSoup, Primitive, Solid, validate_mesh
from .mesh_ops import primitives_to_mesh

logger = logging.getLogger(__name__)


@dataclass
class ExportReport:
    """What an export actually wrote."""
    n_facets: int = 0
    n_degenerate: int = 0
    n_polygons_fanned: int = 0
    scale: Optional[float] = None
    path: Optional[Path] = None

    def to_dict(self):
        return {
            "n_facets": self.n_facets,
            "n_degenerate": self.n_degenerate,
            "n_polygons_fanned": self.n_polygons_fanned,
            "scale": self.scale,
            "path": str(self.path) if self.path else None
        }


class StlExporter:
    """
    Serializes meshes and polygon soups to ASCII STL.

    Indexed meshes are validated first; an out-of-range index is a bug and
    is never written. Polygons with more than three vertices are split into
    a fan anchored at their first vertex, and each fan triangle gets its own
    normal since combined polygons need not be planar.

    Degenerate triangles (no defined normal) are skipped, or written with
    fallback_normal when one is given.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        name: Optional[str] = None,
        fallback_normal: Optional[Sequence[float]] = None,
        transform: Optional[ExportTransform] = None
    ):
        """
        Initialize exporter.

        Args:
            config: Unit/axis/format configuration (defaults to DEFAULT_CONFIG)
            name: Solid name, overrides config.solid_name
            fallback_normal: Normal written for degenerate triangles instead of skipping
            transform: Explicit export transform, overrides the one config declares
        """
        self.config = (config or DEFAULT_CONFIG).validate()
        self.name = name or self.config.solid_name
        if any(c.isspace() for c in self.name):
            raise ConfigError(f"Solid name must not contain whitespace: {self.name!r}")
        self.fallback_normal = (
            np.asarray(fallback_normal, dtype=np.float64) if fallback_normal is not None else None
        )
        self.transform = transform
        self._fmt = f"{{:.{self.config.float_precision}e}}"

    def export(self, solid: Solid) -> str:
        """Export a Mesh or PolygonSoup to STL text."""
        text, _ = self.export_with_report(solid)
        return text

    def export_with_report(self, solid: Solid) -> Tuple[str, ExportReport]:
        report = ExportReport()
        lines = [f"solid {self.name}"]

        for normal, triangle in self._facets(solid, report):
            lines.extend(self._facet_lines(normal, triangle))
            report.n_facets += 1

        lines.append(f"endsolid {self.name}")

        if report.n_degenerate:
            action = "substituted fallback normal" if self.fallback_normal is not None else "skipped"
            logger.info(f"{report.n_degenerate} degenerate triangles {action}")

        return "\n".join(lines) + "\n", report

    def export_primitives(self, primitives: List[Primitive]) -> str:
        """Export primitives one by one, without any boolean combination."""
        merged, _ = primitives_to_mesh(
            primitives,
            self.config.sphere_subdivisions,
            self.config.cylinder_sections
        )
        return self.export(merged)

    def write(self, solid: Solid, path: Path) -> ExportReport:
        """Export to a file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        text, report = self.export_with_report(solid)
        path.write_text(text)
        report.path = path

        logger.info(f"Saved STL: {path} ({report.n_facets} facets)")
        return report

    # ---- internals ----

    def _transform_for(self, points: np.ndarray) -> ExportTransform:
        if self.transform is not None:
            return self.transform
        return ExportTransform.from_config(self.config, points)

    def _facets(self, solid: Solid, report: ExportReport) -> Iterator[Tuple[np.ndarray, np.ndarray]]:
        if isinstance(solid, Mesh):
            yield from self._mesh_facets(solid, report)
        elif isinstance(solid, PolygonSoup):
            yield from self._soup_facets(solid, report)
        else:
            raise TypeError(f"Cannot export {type(solid).__name__}, expected Mesh or PolygonSoup")

    def _mesh_facets(self, mesh: Mesh, report: ExportReport):
        validate_mesh(mesh)
        if mesh.n_faces == 0:
            return

        transform = self._transform_for(mesh.vertices)
        report.scale = transform.scale
        points = transform.apply_points(mesh.vertices)
        supplied = None
        if mesh.face_normals is not None:
            supplied = transform.apply_normals(mesh.face_normals)

        for i, face in enumerate(mesh.faces):
            triangle = transform.orient(points[face])
            if supplied is not None and supplied[i].any():
                yield supplied[i], triangle
                continue
            normal = self._triangle_normal(triangle, report)
            if normal is not None:
                yield normal, triangle

    def _soup_facets(self, soup: PolygonSoup, report: ExportReport):
        if soup.n_polygons == 0:
            return

        transform = self._transform_for(np.vstack(soup.polygons))
        report.scale = transform.scale

        for polygon in soup.polygons:
            points = transform.apply_points(polygon)
            if len(points) > 3:
                report.n_polygons_fanned += 1
            for j in range(1, len(points) - 1):
                triangle = transform.orient(np.array([points[0], points[j], points[j + 1]]))
                normal = self._triangle_normal(triangle, report)
                if normal is not None:
                    yield normal, triangle

    def _triangle_normal(self, triangle: np.ndarray, report: ExportReport) -> Optional[np.ndarray]:
        try:
            return require_normal(*triangle)
        except DegenerateGeometryError as e:
            report.n_degenerate += 1
            logger.debug(f"Degenerate triangle: {e}")
            return self.fallback_normal

    def _facet_lines(self, normal: np.ndarray, triangle: np.ndarray) -> List[str]:
        fmt = self._fmt
        lines = [f"  facet normal {' '.join(fmt.format(c) for c in normal)}", "    outer loop"]
        for vertex in triangle:
            lines.append(f"      vertex {' '.join(fmt.format(c) for c in vertex)}")
        lines.extend(["    endloop", "  endfacet"])
        return lines


def export_stl(solid: Solid, config: Optional[Config] = None, name: Optional[str] = None) -> str:
    """Convenience wrapper: STL text for a mesh or polygon soup."""
    return StlExporter(config, name=name).export(solid)


def save_mesh(
    solid: Solid,
    path: Path,
    metadata: MeshMetadata,
    config: Optional[Config] = None,
    meta_path: Optional[Path] = None
) -> ExportReport:
    """
    Save mesh to ASCII STL with metadata sidecar.

    Args:
        solid: Mesh or PolygonSoup in model space
        path: Output path (should end in .stl)
        metadata: MeshMetadata object (saved as .json)
        config: Export configuration
        meta_path: Sidecar path, defaults to path with a .json suffix

    Returns:
        ExportReport
    """
    config = config or DEFAULT_CONFIG
    path = Path(path)

    report = StlExporter(config, name=metadata.specimen_id).write(solid, path)

    metadata.export = report.to_dict()
    meta_path = Path(meta_path) if meta_path else path.with_suffix('.json')
    metadata.save(meta_path)
    logger.info(f"Saved metadata: {meta_path}")

    return report


def load_mesh(path: Path, meta_path: Optional[Path] = None) -> Tuple[trimesh.Trimesh, Optional[MeshMetadata]]:
    """
    Load an exported mesh and its metadata sidecar.

    Args:
        path: Path to mesh file
        meta_path: Sidecar path, defaults to path with a .json suffix

    Returns:
        Tuple of (mesh, metadata) - metadata may be None if not found
    """
    path = Path(path)
    mesh = trimesh.load(str(path), force='mesh')

    meta_path = Path(meta_path) if meta_path else path.with_suffix('.json')
    metadata = None
    if meta_path.exists():
        with open(meta_path) as f:
            metadata = MeshMetadata.from_dict(json.load(f))

    return mesh, metadata


def save_primitives(primitives: List[Primitive], path: Path) -> None:
    """Save a primitive list as JSON (model space, for renderers)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w') as f:
        json.dump([p.to_dict() for p in primitives], f, indent=2)
    logger.info(f"Saved {len(primitives)} primitives: {path}")


def load_primitives(path: Path) -> List[Primitive]:
    with open(path) as f:
        return [Primitive.from_dict(d) for d in json.load(f)]

"""
Common modules for both sculpture generators.

Unit Model:
- Generators work in model units (cm, Y up) and return fresh, immutable results
- Export applies one transform: unit scale (cm → mm by default), then axis remap
- The transform lives in coords.py and nowhere else
"""

from .config import Config, UnitMode, AxisConvention, MeshMetadata
from .coords import ExportTransform
from .errors import (
    SculptureError, ConfigError, DegenerateGeometryError, IndexOutOfRangeError,
    MeshTopologyError, RandomSourceError, CombinerUnavailableError,
)
from .geometry import compute_normal, require_normal
from .io import StlExporter, ExportReport, export_stl, save_mesh, load_mesh, save_primitives
from .mesh import Mesh, PolygonSoup, Primitive, PrimitiveKind, validate_mesh
from .mesh_ops import assemble_revolution_mesh, compute_mesh_stats, is_closed, merge_meshes
from .noise_field import NoiseField
from .random_source import RandomDraws, make_rng

__all__ = [
    'Config', 'UnitMode', 'AxisConvention', 'MeshMetadata',
    'ExportTransform',
    'SculptureError', 'ConfigError', 'DegenerateGeometryError', 'IndexOutOfRangeError',
    'MeshTopologyError', 'RandomSourceError', 'CombinerUnavailableError',
    'compute_normal', 'require_normal',
    'StlExporter', 'ExportReport', 'export_stl', 'save_mesh', 'load_mesh', 'save_primitives',
    'Mesh', 'PolygonSoup', 'Primitive', 'PrimitiveKind', 'validate_mesh',
    'assemble_revolution_mesh', 'compute_mesh_stats', 'is_closed', 'merge_meshes',
    'NoiseField',
    'RandomDraws', 'make_rng',
]

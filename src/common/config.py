"""
Configuration and constants for sculpture generation and export.

Unit Model:
- Generators work in model units (centimetres)
- Export applies ONE transform: unit scale, then axis remap (see coords.py)
- Mode MILLIMETERS (default): x10, ready for slicers
- Mode MODEL: model units unchanged
- Mode NORMALIZED: max(bbox dimension) = normalized_max_dim
"""

from enum import Enum
from dataclasses import dataclass, field
from typing import Optional, Dict, Any
import json
from pathlib import Path

from .errors import ConfigError


class UnitMode(Enum):
    """
    Output unit modes.

    MILLIMETERS (default): model centimetres scaled by unit_scale (x10)
    MODEL: coordinates written as generated
    NORMALIZED: uniform scale so the largest extent equals normalized_max_dim
    """
    MILLIMETERS = "millimeters"
    MODEL = "model"
    NORMALIZED = "normalized"


class AxisConvention(Enum):
    """
    Up-axis convention of the exported file.

    Y_UP: identity, same as model space
    Z_UP: proper rotation (x, y, z) -> (x, -z, y)
    Z_UP_MIRRORED: swap Y and Z; a reflection, so triangle winding is reversed
    """
    Y_UP = "y_up"
    Z_UP = "z_up"
    Z_UP_MIRRORED = "z_up_mirrored"


OPTION_NAMES = {
    "A": "branch_growth",
    "B": "revolution_profile",
}


@dataclass
class MeshMetadata:
    """
    Metadata sidecar for every exported mesh.

    Records the unit/axis contract the STL was written with, so a reader
    never has to guess the coordinate system.
    """
    unit_mode: str
    unit_scale: float
    axis_convention: str
    specimen_id: str
    option: str  # A or B
    n_triangles: int
    n_vertices: int
    seed: Optional[int] = None
    n_primitives: Optional[int] = None
    combined: bool = False
    bbox_model: Optional[Dict[str, Any]] = None
    generation_params: Dict[str, Any] = field(default_factory=dict)
    export: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "unit_mode": self.unit_mode,
            "unit_scale": self.unit_scale,
            "axis_convention": self.axis_convention,
            "specimen_id": self.specimen_id,
            "option": self.option,
            "n_triangles": self.n_triangles,
            "n_vertices": self.n_vertices,
            "seed": self.seed,
            "n_primitives": self.n_primitives,
            "combined": self.combined,
            "bbox_model": self.bbox_model,
            "generation_params": self.generation_params,
            "export": self.export
        }

    def save(self, path: Path) -> None:
        """Save metadata to JSON file."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MeshMetadata":
        return cls(**data)


@dataclass
class Config:
    """
    Global configuration for export and orchestration.

    Generator tunables live in each option's params dataclass
    (BranchGrowthParams, RevolutionParams).
    """

    # Unit mode (default: model cm -> mm)
    unit_mode: UnitMode = UnitMode.MILLIMETERS
    unit_scale: float = 10.0

    # Normalization target (only used if unit_mode == NORMALIZED)
    normalized_max_dim: float = 2.0

    # Axis remap applied at export
    axis_convention: AxisConvention = AxisConvention.Z_UP

    # STL settings
    solid_name: str = "sculpture"
    float_precision: int = 6

    # Primitive tessellation (branch growth export)
    sphere_subdivisions: int = 2
    cylinder_sections: int = 24

    # Try a boolean union of primitives before export
    boolean_union: bool = False

    # Paths (relative to project root)
    output_dir: Path = field(default_factory=lambda: Path("outputs"))

    @property
    def effective_unit_scale(self) -> float:
        """Fixed scale for the current unit mode (NORMALIZED is computed per mesh)."""
        if self.unit_mode == UnitMode.MODEL:
            return 1.0
        return self.unit_scale

    def validate(self) -> "Config":
        if self.unit_scale <= 0:
            raise ConfigError(f"unit_scale must be > 0, got {self.unit_scale}")
        if self.normalized_max_dim <= 0:
            raise ConfigError(f"normalized_max_dim must be > 0, got {self.normalized_max_dim}")
        if not 1 <= self.float_precision <= 17:
            raise ConfigError(f"float_precision must be in [1, 17], got {self.float_precision}")
        if self.sphere_subdivisions < 0:
            raise ConfigError(f"sphere_subdivisions must be >= 0, got {self.sphere_subdivisions}")
        if self.cylinder_sections < 3:
            raise ConfigError(f"cylinder_sections must be >= 3, got {self.cylinder_sections}")
        if not self.solid_name or any(c.isspace() for c in self.solid_name):
            raise ConfigError(f"solid_name must be a non-empty word, got {self.solid_name!r}")
        return self

    def get_output_path(self, option: str) -> Path:
        """Get mesh output path for a specific option (A or B)."""
        return self.output_dir / f"option_{option}_{OPTION_NAMES[option]}" / "meshes"

    def get_meta_path(self, option: str) -> Path:
        """Get metadata path for a specific option."""
        return self.output_dir / f"option_{option}_{OPTION_NAMES[option]}" / "meta"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "unit_mode": self.unit_mode.value,
            "unit_scale": self.unit_scale,
            "normalized_max_dim": self.normalized_max_dim,
            "axis_convention": self.axis_convention.value,
            "solid_name": self.solid_name,
            "float_precision": self.float_precision,
            "sphere_subdivisions": self.sphere_subdivisions,
            "cylinder_sections": self.cylinder_sections,
            "boolean_union": self.boolean_union
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        data = dict(data)
        data["unit_mode"] = UnitMode(data.get("unit_mode", "millimeters"))
        data["axis_convention"] = AxisConvention(data.get("axis_convention", "z_up"))
        data["output_dir"] = Path(data.get("output_dir", "outputs"))
        return cls(**data).validate()

    @classmethod
    def from_json(cls, path: Path) -> "Config":
        """Load config from JSON file."""
        with open(path) as f:
            data = json.load(f)
        return cls.from_dict(data)

    def save(self, path: Path) -> None:
        """Save config to JSON file."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)


# Global default config
DEFAULT_CONFIG = Config()

"""
Coordinate transformation utilities.

Unit Flow:
model space (cm, Y up) → unit scale → axis remap → exported file

This is the ONLY place where coordinate transformation should happen.
Generators, the combiner and any renderer work in model space; the
exporter asks this module for the transform and never remaps on its own.
"""

import numpy as np
from typing import Optional
from dataclasses import dataclass
import logging

from .config import Config, UnitMode, AxisConvention
from .normalize import get_mesh_bounds, get_max_dimension

logger = logging.getLogger(__name__)


AXIS_MATRICES = {
    AxisConvention.Y_UP: np.eye(3),
    # Rotate +90 degrees about X: model +Y becomes +Z, model +Z becomes -Y
    AxisConvention.Z_UP: np.array([
        [1.0, 0.0, 0.0],
        [0.0, 0.0, -1.0],
        [0.0, 1.0, 0.0],
    ]),
    # Plain swap of Y and Z (mirror image)
    AxisConvention.Z_UP_MIRRORED: np.array([
        [1.0, 0.0, 0.0],
        [0.0, 0.0, 1.0],
        [0.0, 1.0, 0.0],
    ]),
}


@dataclass(frozen=True)
class ExportTransform:
    """
    Uniform scale followed by an orthogonal axis remap.

    When the remap is a reflection (determinant -1) every triangle must be
    written in reverse order, otherwise its normal would point inward.
    """
    scale: float
    axis_matrix: np.ndarray
    axis_convention: AxisConvention = AxisConvention.Y_UP

    @property
    def flips_handedness(self) -> bool:
        return bool(np.linalg.det(self.axis_matrix) < 0)

    def apply_points(self, points: np.ndarray) -> np.ndarray:
        """Transform an (N, 3) array of positions."""
        points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        return (points * self.scale) @ self.axis_matrix.T

    def apply_normals(self, normals: np.ndarray) -> np.ndarray:
        """
        Transform (N, 3) unit normals.

        Orthogonal matrices map normals like directions; the outward normal
        of a mirrored solid is the mirrored outward normal.
        """
        normals = np.asarray(normals, dtype=np.float64).reshape(-1, 3)
        return normals @ self.axis_matrix.T

    def orient(self, triangle: np.ndarray) -> np.ndarray:
        """Reverse vertex order if the remap flips handedness."""
        if self.flips_handedness:
            return triangle[::-1]
        return triangle

    @classmethod
    def identity(cls) -> "ExportTransform":
        return cls(scale=1.0, axis_matrix=AXIS_MATRICES[AxisConvention.Y_UP])

    @classmethod
    def from_config(
        cls,
        config: Config,
        model_points: Optional[np.ndarray] = None
    ) -> "ExportTransform":
        """
        Build the export transform declared by config.

        Args:
            config: Configuration (unit mode, unit scale, axis convention)
            model_points: Model-space points, only needed for NORMALIZED mode

        Returns:
            ExportTransform
        """
        if config.unit_mode == UnitMode.NORMALIZED:
            scale = compute_normalization_scale(model_points, config.normalized_max_dim)
        else:
            scale = config.effective_unit_scale

        transform = cls(
            scale=scale,
            axis_matrix=AXIS_MATRICES[config.axis_convention],
            axis_convention=config.axis_convention
        )
        logger.debug(f"Export transform: scale={scale:.6g}, axes={config.axis_convention.value}, "
                     f"mirrored={transform.flips_handedness}")
        return transform


def compute_normalization_scale(
    points: Optional[np.ndarray],
    target_max_dim: float
) -> float:
    """
    Uniform scale that fits the largest extent of points to target_max_dim.

    Returns 1.0 for empty or zero-extent input.
    """
    if points is None or len(points) == 0:
        logger.warning("No points to normalize, using scale 1.0")
        return 1.0

    max_dim = get_max_dimension(get_mesh_bounds(np.asarray(points, dtype=np.float64)))
    if max_dim < 1e-10:
        logger.warning("Points have zero extent, cannot normalize")
        return 1.0

    return target_max_dim / max_dim

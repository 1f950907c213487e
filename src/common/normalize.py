"""
Bounding-box and normalization helpers.

CRITICAL: Normalization happens AFTER geometry generation, NEVER before.
The generators always work in model units; NORMALIZED unit mode only
changes the scale applied on the way out (see coords.ExportTransform).
"""

import numpy as np
from typing import Tuple, Dict, Any


def get_mesh_bounds(vertices: np.ndarray) -> Dict[str, Tuple[float, float]]:
    """Get bounding box of vertices."""
    return {
        'x': (float(vertices[:, 0].min()), float(vertices[:, 0].max())),
        'y': (float(vertices[:, 1].min()), float(vertices[:, 1].max())),
        'z': (float(vertices[:, 2].min()), float(vertices[:, 2].max()))
    }


def get_max_dimension(bounds: Dict[str, Tuple[float, float]]) -> float:
    """Get maximum dimension from bounds."""
    extents = [b[1] - b[0] for b in bounds.values()]
    return max(extents) if extents else 0.0


def bbox_summary(vertices: np.ndarray) -> Dict[str, Any]:
    """Bounds and largest extent, as stored in mesh metadata."""
    vertices = np.asarray(vertices, dtype=np.float64)
    if len(vertices) == 0:
        return {"bounds": None, "max_dimension": 0.0}
    bounds = get_mesh_bounds(vertices)
    return {
        "bounds": {axis: list(b) for axis, b in bounds.items()},
        "max_dimension": get_max_dimension(bounds)
    }

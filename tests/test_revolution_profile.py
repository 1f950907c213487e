"""
Tests for Option B: Revolution Profile (Vessel)

Tests cover:
- Parameter dataclass and validation
- Gaussian curve blending
- Noise curves (clamping, determinism)
- Extrusion grid (seam, twist)
- Assembled mesh (counts, closure, outward winding)
- Full build pipeline
"""

import math

import pytest
import numpy as np
from pathlib import Path
import sys

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from option_B_revolution_profile.build import (
    RevolutionParams,
    NoiseCurve,
    generate_noise_curves,
    locate_curves,
    extrude_curves,
    generate_revolution_mesh,
    build_revolution_profile,
)
from common.config import Config
from common.errors import ConfigError
from common.geometry import gaussian_blend_factor, blend_radius, taper_radius, compute_face_normals
from common.mesh_ops import is_closed, compute_mesh_stats
from common.noise_field import NoiseField


# ============== Fixtures ==============

@pytest.fixture
def minimal_params():
    """Two rings of five samples, no noise."""
    return RevolutionParams(segments=1, rotations=4, noise_strength=0.0)


@pytest.fixture
def small_params():
    """Low-res params for fast testing."""
    return RevolutionParams(segments=8, rotations=16, curve_count=4)


def signed_volume(mesh):
    tris = mesh.triangles()
    return float(np.einsum("ij,ij->i", tris[:, 0], np.cross(tris[:, 1], tris[:, 2])).sum() / 6.0)


# ============== RevolutionParams Tests ==============

class TestRevolutionParams:
    """Test parameter dataclass."""

    def test_default_values(self):
        params = RevolutionParams()

        assert params.base_radius == 3.0
        assert params.height == 8.0
        assert params.segments == 24
        assert params.rotations == 48
        assert params.curve_count == 6
        assert params.min_radius == 0.5
        assert params.twist_amount == 0.0

    def test_to_dict_round_trip(self):
        params = RevolutionParams(segments=5, twist_amount=0.5)
        assert RevolutionParams.from_dict(params.to_dict()) == params

    @pytest.mark.parametrize("field,value", [
        ("segments", 0),
        ("rotations", 0),
        ("curve_count", 0),
        ("height", 0.0),
        ("base_radius", -1.0),
        ("min_radius", 0.0),
        ("noise_strength", -0.5),
        ("noise_seed", -1),
        ("noise_seed", 256),
        ("noise_seed", 2**31 - 1),
    ])
    def test_invalid_values(self, field, value):
        with pytest.raises(ConfigError):
            RevolutionParams(**{field: value}).validate()

    def test_validation_before_generation(self):
        with pytest.raises(ConfigError):
            generate_revolution_mesh(RevolutionParams(segments=0))

    def test_large_noise_seed_rejected_before_generation(self):
        with pytest.raises(ConfigError):
            generate_revolution_mesh(RevolutionParams(segments=2, rotations=4, noise_seed=2**31 - 1))

    def test_unknown_key_rejected(self):
        with pytest.raises(ConfigError):
            RevolutionParams.from_dict({"curveCount": 4})


# ============== Blending Tests ==============

class TestGaussianBlend:
    """Test angular interpolation between neighbouring curves."""

    def test_endpoints_exact(self):
        assert gaussian_blend_factor(0.0) == 0.0
        assert gaussian_blend_factor(1.0) == pytest.approx(1.0, abs=1e-15)

    def test_midpoint(self):
        assert gaussian_blend_factor(0.5) == pytest.approx(0.5)

    def test_monotonic(self):
        values = [gaussian_blend_factor(u) for u in np.linspace(0, 1, 101)]
        assert np.all(np.diff(values) >= 0)

    def test_flat_near_curves(self):
        """Steeper around the midpoint than near either curve."""
        near = gaussian_blend_factor(0.05) - gaussian_blend_factor(0.0)
        middle = gaussian_blend_factor(0.525) - gaussian_blend_factor(0.475)
        assert middle > near

    def test_blend_radius_selects_curve(self):
        assert blend_radius(2.0, 4.0, 0.0) == 2.0
        assert blend_radius(2.0, 4.0, 1.0) == pytest.approx(4.0)
        assert blend_radius(2.0, 4.0, 0.5) == pytest.approx(3.0)

    def test_locate_curves(self):
        assert locate_curves(0.0, 4) == (0, 1, 0.0)
        c1, c2, u = locate_curves(math.pi / 4, 4)
        assert (c1, c2) == (0, 1)
        assert u == pytest.approx(0.5)
        c1, c2, u = locate_curves(1.75 * math.pi, 4)
        assert (c1, c2) == (3, 0)
        assert u == pytest.approx(0.5)

    def test_locate_curves_snaps_to_curve(self):
        c1, c2, u = locate_curves(2.0 * math.pi / 3 * 2, 3)
        assert (c1, c2, u) == (2, 0, 0.0)


# ============== Noise Curve Tests ==============

class TestNoiseField:
    """Test the Perlin sampler."""

    def test_range_and_determinism(self):
        field = NoiseField(base=3)
        xs = np.linspace(0.0, 7.5, 40)
        first = field.sample_line(xs, 2.25)
        second = field.sample_line(xs, 2.25)

        assert np.all(first >= 0.0) and np.all(first <= 1.0)
        np.testing.assert_array_equal(first, second)
        assert field(1.3, 2.25) == field.sample(1.3, 2.25)

    @pytest.mark.parametrize("base", [-1, 256, 2**31 - 1])
    def test_base_out_of_range(self, base):
        with pytest.raises(ValueError):
            NoiseField(base=base)

    def test_integer_lattice_is_midpoint(self):
        # gradient noise vanishes on lattice points
        assert NoiseField(octaves=1)(2.0, 5.0) == pytest.approx(0.5)


class TestNoiseCurves:
    """Test radius profiles."""

    def test_curve_shape(self, small_params):
        curves = generate_noise_curves(small_params)

        assert len(curves) == small_params.curve_count
        for curve in curves:
            assert len(curve) == small_params.segments + 1
            assert curve.heights[0] == 0.0
            assert curve.heights[-1] == pytest.approx(small_params.height)

    def test_no_noise_follows_taper(self, minimal_params):
        curves = generate_noise_curves(minimal_params)
        for curve in curves:
            np.testing.assert_allclose(
                curve.radii,
                [taper_radius(3.0, 0.0), taper_radius(3.0, 1.0)]
            )

    def test_min_radius_clamp(self):
        params = RevolutionParams(segments=16, noise_strength=200.0, curve_count=5)
        curves = generate_noise_curves(params)
        radii = np.concatenate([c.radii for c in curves])
        assert radii.min() >= params.min_radius
        # Strong noise must actually hit the clamp
        assert np.any(radii == params.min_radius)

    def test_deterministic(self, small_params):
        a = generate_noise_curves(small_params)
        b = generate_noise_curves(small_params)
        for ca, cb in zip(a, b):
            np.testing.assert_array_equal(ca.radii, cb.radii)

    def test_curves_differ(self, small_params):
        curves = generate_noise_curves(small_params)
        assert not np.allclose(curves[0].radii, curves[1].radii)

    def test_curve_arrays_read_only(self, small_params):
        curve = generate_noise_curves(small_params)[0]
        with pytest.raises(ValueError):
            curve.radii[0] = 1.0

    def test_length_mismatch(self):
        with pytest.raises(ValueError):
            NoiseCurve(heights=np.zeros(3), radii=np.ones(4))


# ============== Extrusion Tests ==============

class TestExtrusion:
    """Test the ring grid."""

    def test_grid_shape(self, small_params):
        grid = extrude_curves(generate_noise_curves(small_params), small_params)
        assert grid.shape == (9, 17, 3)

    def test_seam_is_exact(self, small_params):
        grid = extrude_curves(generate_noise_curves(small_params), small_params)
        np.testing.assert_array_equal(grid[:, 0], grid[:, -1])

    def test_rings_are_level(self, small_params):
        grid = extrude_curves(generate_noise_curves(small_params), small_params)
        for ring in range(grid.shape[0]):
            expected = ring / small_params.segments * small_params.height
            np.testing.assert_allclose(grid[ring, :, 1], expected)

    def test_plain_vessel_positions(self, minimal_params):
        grid = extrude_curves(generate_noise_curves(minimal_params), minimal_params)

        np.testing.assert_allclose(grid[0, 0], [3.0, 0.0, 0.0], atol=1e-12)
        np.testing.assert_allclose(grid[0, 1], [0.0, 0.0, 3.0], atol=1e-12)
        np.testing.assert_allclose(grid[1, 2], [-2.7, 8.0, 0.0], atol=1e-12)

    def test_twist_rotates_top_ring(self, minimal_params):
        minimal_params.twist_amount = 0.25
        grid = extrude_curves(generate_noise_curves(minimal_params), minimal_params)

        # Bottom ring untouched, top ring a quarter turn further
        np.testing.assert_allclose(grid[0, 0], [3.0, 0.0, 0.0], atol=1e-12)
        np.testing.assert_allclose(grid[1, 0], [0.0, 8.0, 2.7], atol=1e-12)

    def test_radius_never_below_minimum(self):
        params = RevolutionParams(segments=12, rotations=24, noise_strength=40.0)
        grid = extrude_curves(generate_noise_curves(params), params)
        radial = np.hypot(grid[..., 0], grid[..., 2])
        assert radial.min() >= params.min_radius - 1e-9


# ============== Mesh Tests ==============

class TestRevolutionMesh:
    """Test the assembled vessel."""

    @pytest.mark.parametrize("curve_count", [1, 6])
    def test_minimal_counts(self, minimal_params, curve_count):
        minimal_params.curve_count = curve_count
        mesh = generate_revolution_mesh(minimal_params)
        assert mesh.n_vertices == 12
        assert mesh.n_faces == 20

    def test_default_counts(self):
        params = RevolutionParams()
        mesh = generate_revolution_mesh(params)
        assert mesh.n_vertices == 25 * 49 + 2
        assert mesh.n_faces == 2 * 49 * 25

    @pytest.mark.parametrize("segments,rotations", [(1, 4), (3, 7), (8, 16), (24, 48)])
    def test_closed(self, segments, rotations):
        mesh = generate_revolution_mesh(RevolutionParams(segments=segments, rotations=rotations))
        assert is_closed(mesh)

    def test_cap_centres(self, small_params):
        mesh = generate_revolution_mesh(small_params)
        np.testing.assert_allclose(mesh.vertices[-2], [0.0, 0.0, 0.0])
        np.testing.assert_allclose(mesh.vertices[-1], [0.0, small_params.height, 0.0])

    def test_outward_winding(self, small_params):
        mesh = generate_revolution_mesh(small_params)
        assert signed_volume(mesh) > 0

    def test_outward_winding_twisted(self):
        params = RevolutionParams(segments=12, rotations=24, twist_amount=0.3)
        mesh = generate_revolution_mesh(params)
        assert signed_volume(mesh) > 0

    def test_cap_normals(self, small_params):
        mesh = generate_revolution_mesh(small_params)
        normals = compute_face_normals(mesh.vertices, mesh.faces)
        n_steps = small_params.rotations + 1

        bottom = normals[-2 * n_steps:-n_steps]
        top = normals[-n_steps:]
        # The closing cap triangle spans the seam and has no normal
        np.testing.assert_allclose(bottom[:-1], np.tile([0.0, -1.0, 0.0], (n_steps - 1, 1)), atol=1e-12)
        np.testing.assert_allclose(top[:-1], np.tile([0.0, 1.0, 0.0], (n_steps - 1, 1)), atol=1e-12)
        assert not bottom[-1].any()
        assert not top[-1].any()

    def test_side_normals_point_away_from_axis(self, minimal_params):
        mesh = generate_revolution_mesh(minimal_params)
        normals = compute_face_normals(mesh.vertices, mesh.faces)
        centroids = mesh.triangles().mean(axis=1)

        n_side = 2 * (minimal_params.rotations + 1)
        for normal, centroid in zip(normals[:n_side], centroids[:n_side]):
            if normal.any():
                assert normal[0] * centroid[0] + normal[2] * centroid[2] > 0

    def test_trimesh_agrees(self, small_params):
        stats = compute_mesh_stats(generate_revolution_mesh(small_params))
        assert stats["is_watertight"]
        assert stats["is_winding_consistent"]

    def test_fresh_mesh_per_call(self, small_params):
        a = generate_revolution_mesh(small_params)
        b = generate_revolution_mesh(small_params)
        assert a is not b
        np.testing.assert_array_equal(a.vertices, b.vertices)
        assert not a.vertices.flags.writeable

    def test_noise_seed_changes_shape(self, small_params):
        a = generate_revolution_mesh(small_params)
        small_params.noise_seed = 7
        b = generate_revolution_mesh(small_params)
        assert not np.allclose(a.vertices, b.vertices)


# ============== Full Pipeline Tests ==============

class TestBuildRevolutionProfile:
    """Test the full build pipeline."""

    def test_metadata(self, small_params):
        mesh, metadata = build_revolution_profile(small_params, Config())

        assert metadata.option == "B"
        assert metadata.specimen_id == "revolution_profile_0"
        assert metadata.n_vertices == mesh.n_vertices == 9 * 17 + 2
        assert metadata.n_triangles == mesh.n_faces
        assert metadata.generation_params["curve_count"] == 4
        assert metadata.bbox_model["bounds"]["y"] == [0.0, small_params.height]

    def test_custom_specimen_id(self, small_params):
        _, metadata = build_revolution_profile(small_params, specimen_id="vessel_01")
        assert metadata.specimen_id == "vessel_01"

    def test_run_seed_recorded(self, small_params):
        small_params.noise_seed = 261 % 256
        _, metadata = build_revolution_profile(small_params, seed=261)

        assert metadata.specimen_id == "revolution_profile_261"
        assert metadata.seed == 261
        assert metadata.generation_params["noise_seed"] == 5

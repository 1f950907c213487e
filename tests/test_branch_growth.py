"""
Tests for Option A: Branch Growth (Coral)

Tests cover:
- Parameter dataclass and validation
- Random draw wrapper
- Termination (depth bound, size floor)
- Draw order with a scripted random source
- Forced splits
- Full build pipeline and combiner fallback
"""

import pytest
import numpy as np
from pathlib import Path
import sys

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from option_A_branch_growth.build import (
    BranchGrowthParams,
    BranchGrowthGenerator,
    generate_branch_primitives,
    build_branch_growth,
    MIN_BRANCH_SIZE,
)
from common.config import Config
from common.errors import ConfigError, RandomSourceError
from common.mesh import (
    Mesh, PolygonSoup, PrimitiveKind, BoxDimensions, SphereDimensions,
)
from common.random_source import RandomDraws, make_rng


class ScriptedSource:
    """Replays a fixed list of values, then runs dry."""

    def __init__(self, values):
        self.values = list(values)
        self.position = 0

    def random(self):
        value = self.values[self.position]
        self.position += 1
        return value


# ============== Fixtures ==============

@pytest.fixture
def shallow_params():
    """One growth step only."""
    return BranchGrowthParams(max_depth=1)


# ============== BranchGrowthParams Tests ==============

class TestBranchGrowthParams:
    """Test parameter dataclass."""

    def test_default_values(self):
        params = BranchGrowthParams()

        assert params.max_depth == 5
        assert params.max_branches_per_node == 3
        assert params.branch_probability == 0.7
        assert params.initial_size == 3.0
        assert params.size_decay == 0.9
        assert params.position_variation == 0.0
        assert params.seed is None

    def test_to_dict_round_trip(self):
        params = BranchGrowthParams(max_depth=3, seed=11)
        restored = BranchGrowthParams.from_dict(params.to_dict())
        assert restored == params

    def test_unknown_key_rejected(self):
        with pytest.raises(ConfigError, match="maxDepth"):
            BranchGrowthParams.from_dict({"maxDepth": 3})

    @pytest.mark.parametrize("field,value", [
        ("max_depth", -1),
        ("max_branches_per_node", 0),
        ("branch_probability", 1.5),
        ("split_probability", -0.1),
        ("size_decay", 0.0),
        ("size_decay", 1.2),
        ("initial_size", 0.0),
        ("base_width", -5.0),
        ("position_variation", -1.0),
    ])
    def test_invalid_values(self, field, value):
        params = BranchGrowthParams(**{field: value})
        with pytest.raises(ConfigError):
            params.validate()

    def test_config_error_is_value_error(self):
        with pytest.raises(ValueError):
            BranchGrowthGenerator(BranchGrowthParams(max_depth=-2))


# ============== RandomDraws Tests ==============

class TestRandomDraws:
    """Test the random draw wrapper."""

    def test_counts_draws(self):
        draws = RandomDraws(ScriptedSource([0.1, 0.2, 0.3]))
        draws.uniform(0, 1)
        draws.chance(0.5)
        draws.index(3)
        assert draws.n_draws == 3

    def test_derived_draws(self):
        draws = RandomDraws(ScriptedSource([0.5, 0.5, 0.25, 0.99]))
        assert draws.uniform(0.6, 0.8) == pytest.approx(0.7)
        assert draws.symmetric(0.4) == pytest.approx(0.0)
        assert draws.chance(0.3) is True
        assert draws.index(3) == 2

    def test_exhausted_source(self):
        draws = RandomDraws(ScriptedSource([0.5]))
        draws.random()
        with pytest.raises(RandomSourceError):
            draws.random()

    @pytest.mark.parametrize("value", [1.0, -0.1, float("nan")])
    def test_out_of_range_value(self, value):
        with pytest.raises(RandomSourceError):
            RandomDraws(ScriptedSource([value])).random()

    def test_source_without_random(self):
        with pytest.raises(RandomSourceError):
            RandomDraws(object())

    def test_make_rng_reports_seed(self):
        rng, seed = make_rng(None)
        assert isinstance(seed, int)
        rng_again, _ = make_rng(seed)
        assert rng.random() == rng_again.random()


# ============== Termination Tests ==============

class TestTermination:
    """Depth bound and size floor."""

    def test_max_depth_zero_gives_base_only(self):
        params = BranchGrowthParams(max_depth=0)
        source = ScriptedSource([])
        primitives = generate_branch_primitives(params, source)

        assert len(primitives) == 1
        assert source.position == 0

    def test_base_slab(self):
        base = BranchGrowthGenerator().base_primitive()

        assert base.kind == PrimitiveKind.BOX
        assert base.dimensions == BoxDimensions(5.0, 1.0, 5.0)
        assert base.position == (0.0, 0.5, 0.0)
        assert base.rotation_deg == (0.0, 0.0, 0.0)
        assert base.level == 0

    @pytest.mark.parametrize("seed", [0, 1, 2, 3, 42])
    def test_depth_bound(self, seed):
        params = BranchGrowthParams(max_depth=4)
        primitives = generate_branch_primitives(params, np.random.default_rng(seed))

        assert all(p.level < params.max_depth for p in primitives[1:])

    @pytest.mark.parametrize("seed", [0, 7, 99])
    def test_size_floor(self, seed):
        params = BranchGrowthParams(max_depth=30, size_decay=0.7)
        primitives = generate_branch_primitives(params, np.random.default_rng(seed))

        assert len(primitives) > 1
        assert all(p.size >= MIN_BRANCH_SIZE for p in primitives[1:])

    def test_size_floor_stops_children(self):
        params = BranchGrowthParams(max_depth=10, initial_size=0.5, size_decay=0.5)
        primitives = generate_branch_primitives(params, np.random.default_rng(5))

        # The first step emits at 0.5; every child would be 0.25
        assert len(primitives) == 2
        assert primitives[1].size == 0.5

    def test_initial_size_below_floor(self):
        params = BranchGrowthParams(initial_size=0.2)
        primitives = generate_branch_primitives(params, ScriptedSource([]))
        assert len(primitives) == 1


# ============== Draw Order Tests ==============

class TestDrawOrder:
    """One growth step driven by a scripted source."""

    def test_single_step_draws(self, shallow_params):
        # overlap, length, size, x, z, kind, 3 rotations, count,
        # then per child: accept, angle, twist, rotation
        source = ScriptedSource([0.5] * 18)
        primitives = generate_branch_primitives(shallow_params, source)

        assert source.position == 18
        assert len(primitives) == 2

        grown = primitives[1]
        # index(3) at 0.5 picks the second kind
        assert grown.kind == PrimitiveKind.SPHERE
        assert grown.dimensions == SphereDimensions(1.5)
        np.testing.assert_allclose(grown.position, (0.0, 1.0 + 3.0 * 0.7, 0.0), atol=1e-12)
        np.testing.assert_allclose(grown.rotation_deg, (0.0, 0.0, 0.0), atol=1e-12)
        assert grown.level == 0
        assert grown.size == 3.0

    def test_cylinder_consumes_height_draw(self, shallow_params):
        # kind draw 0.9 -> cylinder, then one extra draw for its height
        values = [0.5] * 5 + [0.9] + [0.5] * 3 + [0.0] + [0.0] + [0.99]
        source = ScriptedSource(values)
        primitives = generate_branch_primitives(shallow_params, source)

        grown = primitives[1]
        assert grown.kind == PrimitiveKind.CYLINDER
        assert grown.dimensions.radius == pytest.approx(1.5)
        assert grown.dimensions.height == pytest.approx(3.0)
        # count = floor(1 + 0.0 * 3) = 1 child, rejected by 0.99
        assert source.position == 12

    def test_running_dry_raises(self, shallow_params):
        with pytest.raises(RandomSourceError):
            generate_branch_primitives(shallow_params, ScriptedSource([0.5] * 17))

    def test_jitter_draws_consumed_without_spread(self):
        """Horizontal jitter only moves X/Z and never shifts the draw stream."""
        still = BranchGrowthParams(max_depth=3, position_variation=0.0, base_angle_deg=0.0,
                                   angle_variation_deg=0.0)
        jittered = BranchGrowthParams(max_depth=3, position_variation=1.0, base_angle_deg=0.0,
                                      angle_variation_deg=0.0)

        a = generate_branch_primitives(still, np.random.default_rng(3))
        b = generate_branch_primitives(jittered, np.random.default_rng(3))

        assert len(a) == len(b)
        for pa, pb in zip(a[1:], b[1:]):
            assert pa.kind == pb.kind
            assert pa.rotation_deg == pb.rotation_deg
            assert pa.position[1] == pytest.approx(pb.position[1])
            # Straight-up growth without jitter stays on the axis
            assert pa.position[0] == pytest.approx(0.0)
            assert pa.position[2] == pytest.approx(0.0)

    def test_same_seed_same_structure(self):
        params = BranchGrowthParams()
        a = generate_branch_primitives(params, np.random.default_rng(123))
        b = generate_branch_primitives(params, np.random.default_rng(123))
        assert a == b

    def test_fresh_list_per_call(self):
        generator = BranchGrowthGenerator(BranchGrowthParams(max_depth=2))
        a = generator.generate(np.random.default_rng(1))
        b = generator.generate(np.random.default_rng(1))
        assert a == b
        assert a is not b


# ============== Forced Split Tests ==============

class TestForcedSplit:
    """A forced split always accepts both children."""

    def test_split_ignores_branch_probability(self):
        params = BranchGrowthParams(
            max_depth=3,
            min_cubes_before_split=0,
            split_probability=1.0,
            branch_probability=0.0,
        )
        primitives = generate_branch_primitives(params, np.random.default_rng(0))

        levels = [p.level for p in primitives[1:]]
        assert len(primitives) == 1 + 1 + 2 + 4
        assert levels.count(0) == 1
        assert levels.count(1) == 2
        assert levels.count(2) == 4

    def test_no_split_no_acceptance(self):
        params = BranchGrowthParams(
            max_depth=5,
            split_probability=0.0,
            branch_probability=0.0,
        )
        primitives = generate_branch_primitives(params, np.random.default_rng(0))
        assert len(primitives) == 2


# ============== Full Pipeline Tests ==============

class FailingCombiner:
    def combine(self, primitives):
        raise RuntimeError("no kernel")


class SoupCombiner:
    def combine(self, primitives):
        return PolygonSoup((np.array([[0, 0, 0], [1, 0, 0], [1, 1, 0], [0, 1, 0]], dtype=float),))


class TestBuildBranchGrowth:
    """Test the full build pipeline."""

    def test_metadata(self):
        params = BranchGrowthParams(max_depth=3, seed=5)
        primitives, solid, metadata = build_branch_growth(params, Config())

        assert isinstance(solid, Mesh)
        assert metadata.option == "A"
        assert metadata.seed == 5
        assert metadata.specimen_id == "branch_growth_5"
        assert metadata.n_primitives == len(primitives)
        assert metadata.n_triangles == solid.n_faces
        assert metadata.combined is False
        assert metadata.unit_scale == 10.0
        assert metadata.generation_params["max_depth"] == 3

    def test_seed_reproducible(self):
        params = BranchGrowthParams(max_depth=4, seed=9)
        first, _, _ = build_branch_growth(params)
        second, _, _ = build_branch_growth(params)
        assert first == second

    def test_failing_combiner_falls_back(self):
        params = BranchGrowthParams(max_depth=2, seed=1)
        primitives, solid, metadata = build_branch_growth(params, combiner=FailingCombiner())

        assert isinstance(solid, Mesh)
        assert metadata.combined is False
        assert solid.n_faces > 0

    def test_combiner_result_used(self):
        params = BranchGrowthParams(max_depth=2, seed=1)
        _, solid, metadata = build_branch_growth(params, combiner=SoupCombiner())

        assert isinstance(solid, PolygonSoup)
        assert metadata.combined is True
        assert metadata.n_triangles == 2

#!/usr/bin/env python3
"""
Procedural Sculptures - Orchestrator

Run the sculpture generation modules and export every result as ASCII STL.

Usage:
    python src/run_all.py --modules A B --seed 42 --count 3
    python src/run_all.py --modules A --union --unit-mode model --axis y_up
    python src/run_all.py --modules B --params params.json
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional
from datetime import datetime

# Add src to path
sys.path.insert(0, str(Path(__file__).parent))

from common.config import Config, UnitMode, AxisConvention
from common.io import save_mesh, save_primitives

logger = logging.getLogger(__name__)


def load_params(path: Optional[Path]) -> Dict[str, Dict[str, Any]]:
    """
    Load generator parameter overrides.

    The file holds one section per generator:
        {"branch_growth": {...}, "revolution": {...}}
    """
    if path is None:
        return {}
    with open(path) as f:
        data = json.load(f)
    unknown = set(data) - {"branch_growth", "revolution"}
    if unknown:
        logger.warning(f"Ignoring unknown parameter sections: {sorted(unknown)}")
    return data


def run_module_a(
    config: Config,
    overrides: Dict[str, Any],
    seed: Optional[int]
) -> dict:
    """Run Option A: Branch Growth."""
    from option_A_branch_growth.build import build_branch_growth, BranchGrowthParams
    from common.combine import TrimeshBooleanCombiner

    if seed is not None:
        overrides = {**overrides, "seed": seed}
    params = BranchGrowthParams.from_dict(overrides)
    combiner = None
    if config.boolean_union:
        combiner = TrimeshBooleanCombiner(
            sphere_subdivisions=config.sphere_subdivisions,
            cylinder_sections=config.cylinder_sections
        )

    primitives, solid, metadata = build_branch_growth(params, config, combiner=combiner)

    # Save
    specimen_id = metadata.specimen_id
    output_path = config.get_output_path("A") / f"{specimen_id}.stl"
    meta_path = config.get_meta_path("A") / f"{specimen_id}.json"
    save_mesh(solid, output_path, metadata, config, meta_path=meta_path)
    save_primitives(primitives, config.get_meta_path("A") / f"{specimen_id}_primitives.json")

    return metadata.to_dict()


def run_module_b(
    config: Config,
    overrides: Dict[str, Any],
    seed: Optional[int]
) -> dict:
    """Run Option B: Revolution Profile."""
    from option_B_revolution_profile.build import build_revolution_profile, RevolutionParams
    from common.noise_field import NOISE_BASES
    from common.random_source import make_rng

    if seed is None and "noise_seed" not in overrides:
        _, seed = make_rng()
    if seed is not None:
        # the run seed names the specimen, the noise only takes NOISE_BASES offsets
        overrides = {**overrides, "noise_seed": seed % NOISE_BASES}
    params = RevolutionParams.from_dict(overrides)

    mesh, metadata = build_revolution_profile(params, config, seed=seed)

    # Save
    specimen_id = metadata.specimen_id
    output_path = config.get_output_path("B") / f"{specimen_id}.stl"
    meta_path = config.get_meta_path("B") / f"{specimen_id}.json"
    save_mesh(mesh, output_path, metadata, config, meta_path=meta_path)

    return metadata.to_dict()


MODULE_RUNNERS = {
    'A': (run_module_a, "branch_growth"),
    'B': (run_module_b, "revolution"),
}


def run_all(
    modules: List[str],
    config: Config,
    count: int = 1,
    seed: Optional[int] = None,
    params: Optional[Dict[str, Dict[str, Any]]] = None
) -> dict:
    """
    Run specified modules `count` times each.

    Args:
        modules: List of module letters (A, B)
        config: Configuration
        count: Specimens per module
        seed: First seed; specimen i uses seed + i (None = parameter file or defaults)
        params: Parameter overrides per generator section

    Returns:
        Summary dictionary
    """
    params = params or {}
    summary = {
        "timestamp": datetime.now().isoformat(),
        "config": config.to_dict(),
        "modules": modules,
        "seed": seed,
        "count": count,
        "specimens": [],
        "errors": []
    }

    for i in range(count):
        specimen_seed = None if seed is None else seed + i
        logger.info(f"\n{'='*60}")
        logger.info(f"Specimen {i + 1}/{count} (seed={specimen_seed})")
        logger.info(f"{'='*60}")

        specimen_results = {
            "index": i,
            "seed": specimen_seed,
            "modules": {}
        }

        for module in modules:
            module = module.upper()
            if module not in MODULE_RUNNERS:
                logger.warning(f"Unknown module: {module}")
                continue

            runner, section = MODULE_RUNNERS[module]
            logger.info(f"\n--- Module {module} ---")
            try:
                result = runner(config, params.get(section, {}), specimen_seed)
                specimen_results["modules"][module] = {
                    "status": "success",
                    "metadata": result
                }
            except Exception as e:
                logger.error(f"Module {module} failed: {e}")
                specimen_results["modules"][module] = {
                    "status": "error",
                    "error": str(e)
                }
                summary["errors"].append({
                    "specimen": i,
                    "module": module,
                    "error": str(e)
                })

        summary["specimens"].append(specimen_results)

    return summary


def main():
    parser = argparse.ArgumentParser(
        description="Procedural Sculptures - Run sculpture generation modules"
    )
    parser.add_argument(
        "--modules", "-m",
        nargs="+",
        default=["A", "B"],
        help="Modules to run (A, B)"
    )
    parser.add_argument(
        "--seed", "-s",
        type=int,
        default=None,
        help="Seed of the first specimen"
    )
    parser.add_argument(
        "--count", "-n",
        type=int,
        default=1,
        help="Number of specimens per module"
    )
    parser.add_argument(
        "--params", "-p",
        type=Path,
        default=None,
        help="JSON file with 'branch_growth' and 'revolution' parameter sections"
    )
    parser.add_argument(
        "--unit-mode", "-u",
        choices=[m.value for m in UnitMode],
        default=UnitMode.MILLIMETERS.value,
        help="Output unit mode"
    )
    parser.add_argument(
        "--axis", "-a",
        choices=[a.value for a in AxisConvention],
        default=AxisConvention.Z_UP.value,
        help="Up-axis convention of the exported files"
    )
    parser.add_argument(
        "--union",
        action="store_true",
        help="Boolean-union branch growth primitives (needs manifold3d)"
    )
    parser.add_argument(
        "--output", "-o",
        type=Path,
        default=Path("outputs"),
        help="Output directory"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose logging"
    )

    args = parser.parse_args()

    # Setup logging
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )

    if args.count < 1:
        logger.error(f"--count must be >= 1, got {args.count}")
        sys.exit(1)

    # Build config
    config = Config(
        unit_mode=UnitMode(args.unit_mode),
        axis_convention=AxisConvention(args.axis),
        boolean_union=args.union,
        output_dir=args.output
    ).validate()

    # Run
    logger.info(f"Generating {args.count} specimens with modules {args.modules}")
    logger.info(f"Unit mode: {config.unit_mode.value}, axes: {config.axis_convention.value}")
    logger.info(f"Output: {args.output}")

    summary = run_all(
        modules=args.modules,
        config=config,
        count=args.count,
        seed=args.seed,
        params=load_params(args.params)
    )

    # Save summary
    summary_path = args.output / "run_summary.json"
    summary_path.parent.mkdir(parents=True, exist_ok=True)
    with open(summary_path, 'w') as f:
        json.dump(summary, f, indent=2)

    logger.info(f"\nSummary saved to: {summary_path}")

    # Print summary
    n_success = sum(
        1 for s in summary["specimens"]
        for m in s.get("modules", {}).values()
        if m.get("status") == "success"
    )
    n_errors = len(summary["errors"])

    logger.info(f"\n{'='*60}")
    logger.info(f"COMPLETE: {n_success} successful, {n_errors} errors")
    logger.info(f"{'='*60}")

    if n_errors > 0:
        sys.exit(1)


if __name__ == "__main__":
    main()

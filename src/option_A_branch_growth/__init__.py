"""Option A: Branch Growth (Coral) - Stochastic recursive branching of box, sphere and cylinder primitives."""

from .build import build_branch_growth, generate_branch_primitives, BranchGrowthGenerator, BranchGrowthParams

__all__ = ["build_branch_growth", "generate_branch_primitives", "BranchGrowthGenerator", "BranchGrowthParams"]

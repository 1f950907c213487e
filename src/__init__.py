"""
Procedural Sculptures - Module-based solid generation.

Two sculpture generation approaches:
- Option A: Branch Growth (coral grown from oriented primitives)
- Option B: Revolution Profile (vessel revolved from noise curves)

Usage:
    python src/run_all.py --modules A B --seed 42 --count 3
"""

__version__ = "1.0.0"

"""Option B: Revolution Profile (Vessel) - Noise-perturbed profiles revolved into a closed, capped vessel."""

from .build import build_revolution_profile, generate_revolution_mesh, RevolutionParams, NoiseCurve

__all__ = ["build_revolution_profile", "generate_revolution_mesh", "RevolutionParams", "NoiseCurve"]

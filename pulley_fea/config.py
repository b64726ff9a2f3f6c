# pulley_fea/config.py
"""
Solver configuration and defaults.
"""

from dataclasses import dataclass

import numpy as np


@dataclass
class SolverConfig:
    """Numerical settings shared by the integrator, the elements and the assembly."""

    # Transfer-matrix integration
    squarings: int = 12              # M, the exponential is built from 2**M sub-steps
    sample_points: int = 3           # samples along a varying span without load
    loaded_sample_points: int = 10   # samples along a varying span carrying a load
    max_span_growth: float = 2.5     # bound on growth_rate·ℓ for one integrated sub-span

    # Solve
    pivot_tolerance: float = 1e-12   # relative to the largest LU pivot
    workers: int = 1                 # > 1 computes element matrices in threads

    def __post_init__(self):
        if self.squarings < 0:
            raise ValueError(f"squarings must be >= 0, got {self.squarings}")
        if self.sample_points < 1 or self.loaded_sample_points < 1:
            raise ValueError("sample counts must be at least 1")
        if self.pivot_tolerance < 0.0:
            raise ValueError(f"pivot_tolerance must be >= 0, got {self.pivot_tolerance}")
        if not self.max_span_growth > 0.0:
            raise ValueError(f"max_span_growth must be > 0, got {self.max_span_growth}")

    def n_points(self, has_load: bool) -> int:
        """Number of samples used by the varying-H integration path."""
        return self.loaded_sample_points if has_load else self.sample_points

    def n_subspans(self, rate: float, length: float) -> int:
        """Number of equal sub-spans keeping rate·ℓ within max_span_growth."""
        return max(1, int(np.ceil(rate * length / self.max_span_growth)))


# Global config instance
CONFIG = SolverConfig()

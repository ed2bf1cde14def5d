"""
Convergence bookkeeping shared by the iterative algorithms.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class ConvergenceInfo:
    """Outcome of an iterative algorithm."""
    iterations: int      # Iterations used
    last_delta: float    # Last stopping-criterion value
    converged: bool      # Criterion met before the iteration cap?

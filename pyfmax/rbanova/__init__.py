"""
Randomized-block (within-subjects) ANOVA over electrode x time grids.

Public API:
    perm_rbanova(data, n_perm, ...) -> FmaxSolution    # Fmax permutation test
    rbanova(data, effect, ...) -> RBAnovaSolution      # parametric, per cell
    reduce_data(data, effect) -> ndarray               # average out other factors
"""

from pyfmax.rbanova.solvers import perm_rbanova, rbanova, reduce_data
from pyfmax.rbanova.solution import FmaxSolution, RBAnovaSolution

__all__ = [
    "perm_rbanova",
    "rbanova",
    "reduce_data",
    "FmaxSolution",
    "RBAnovaSolution",
]

"""
pyfmax: Fmax permutation tests for within-subjects ANOVA on ERP data.

Tests an effect at every electrode and time point of an
electrode x time x conditions x subject array and controls the
family-wise error rate with the permutation distribution of the maximum F.

Submodules:
    rbanova: Randomized-block ANOVA, parametric and permutation
    core: Result envelope, exceptions, validation, compute helpers
"""

__version__ = "0.1.0"

from pyfmax.rbanova import (
    FmaxSolution,
    RBAnovaSolution,
    perm_rbanova,
    rbanova,
    reduce_data,
)

__all__ = [
    "__version__",
    "perm_rbanova",
    "rbanova",
    "reduce_data",
    "FmaxSolution",
    "RBAnovaSolution",
]

"""
Residuals for approximate permutation tests of interactions.

Raw data are not exchangeable across condition labels when main effects
(or, for a three-way test, two-way interactions) are present, so shuffling
them tests more than the interaction. Removing every lower-order effect
within each subject leaves the highest-order interaction plus noise, which
is exchangeable under the null hypothesis that the interaction is zero.

For factors F = {A, B, ...} and each subset J of F, let M_J be the mean of
the data over the factors NOT in J, taken separately for every electrode,
time point and subject (so M_F is the data itself and M_{} is the subject
mean). The residual is

    sum over J subset of F of (-1)^(|F| - |J|) * M_J

which for two factors is

    y - M_A - M_B + M_{}

i.e. the subject's grand mean and both main-effect deviations removed. For
three factors the two-way interaction deviations are removed as well. Each
removed component is mean-centred within subject, so the order of removal
does not matter.
"""

from itertools import combinations
from typing import Any

import numpy as np
from numpy.typing import NDArray

from pyfmax.rbanova._effects import FIRST_FACTOR_AXIS


def residualize(data: NDArray[np.floating[Any]]) -> NDArray[np.floating[Any]]:
    """
    Remove all lower-order effects within each subject.

    Args:
        data: electrode x time x factor_1 x ... x factor_k x subject

    Returns:
        New array of the same shape holding the highest-order interaction
        component of every subject's data. The input is not modified.
    """
    n_factors = data.ndim - 3
    factor_axes = tuple(range(FIRST_FACTOR_AXIS, FIRST_FACTOR_AXIS + n_factors))

    residual = np.array(data, dtype=np.float64, copy=True)
    for size in range(n_factors):
        sign = -1.0 if (n_factors - size) % 2 else 1.0
        for kept in combinations(factor_axes, size):
            averaged = tuple(ax for ax in factor_axes if ax not in kept)
            residual += sign * data.mean(axis=averaged, keepdims=True)
    return residual

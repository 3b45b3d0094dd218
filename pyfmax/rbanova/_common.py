"""
Common data types for randomized-block ANOVA.

Contains the frozen parameter payloads that go inside Result[P] envelopes.
Each payload is a pure data container, no methods, no computation.
"""

from dataclasses import dataclass
from typing import Any

import numpy as np
from numpy.typing import NDArray


@dataclass(frozen=True)
class FmaxParams:
    """
    Parameter payload for an Fmax permutation test.

    - f_obs: F for the tested effect on the unpermuted data, electrode x time
    - f_dist: max F over the grid for each permutation, shape (n_perm,);
      f_dist[0] is max(f_obs); not sorted
    """
    effect: str
    f_obs: NDArray[np.floating[Any]]
    f_dist: NDArray[np.floating[Any]]
    df_effect: int
    df_error: int
    n_perm: int
    levels: tuple[int, ...]
    n_subjects: int
    seed: int | None


@dataclass(frozen=True)
class RBAnovaParams:
    """
    Parameter payload for a parametric randomized-block ANOVA of one effect.

    All arrays are electrode x time.
    """
    effect: str
    f_values: NDArray[np.floating[Any]]
    p_values: NDArray[np.floating[Any]]
    ss_effect: NDArray[np.floating[Any]]
    ss_error: NDArray[np.floating[Any]]
    df_effect: int
    df_error: int
    levels: tuple[int, ...]
    n_subjects: int

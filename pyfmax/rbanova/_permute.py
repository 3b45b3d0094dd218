"""
Helpers shared by the permutation backends.

Both backends draw permutation orders through draw_orders() from the same
numpy Generator in the same sequence, so a given seed produces the same
null distribution on every backend (up to floating-point precision).
"""

from typing import Any

import numpy as np
from numpy.typing import NDArray

from pyfmax.rbanova._effects import error_label
from pyfmax.rbanova._ss import f_ratio, sums_of_squares
from pyfmax.rbanova.design import RBAnovaDesign


def n_condition_cells(design: RBAnovaDesign) -> int:
    """Number of condition cells each subject contributes."""
    return int(np.prod(design.levels))


def draw_orders(
    rng: np.random.Generator,
    n_cells: int,
    n_subjects: int,
) -> NDArray[np.intp]:
    """
    One random ordering of the condition cells per subject.

    Returns:
        (n_cells, n_subjects) index array; column s is a permutation of
        range(n_cells) drawn independently of every other column
    """
    base = np.tile(np.arange(n_cells)[:, np.newaxis], (1, n_subjects))
    return rng.permuted(base, axis=0)


def permute_within_subjects(
    flat: NDArray[np.floating[Any]],
    orders: NDArray[np.intp],
) -> NDArray[np.floating[Any]]:
    """
    Reorder condition cells separately for every subject.

    Args:
        flat: electrode x time x cells x subject
        orders: (cells, subject) index array from draw_orders

    Returns:
        New array with flat[e, t, orders[c, s], s] at [e, t, c, s]
    """
    return np.take_along_axis(flat, orders[np.newaxis, np.newaxis, :, :], axis=2)


def effect_f(
    data: NDArray[np.floating[Any]],
    design: RBAnovaDesign,
    scale: NDArray[np.floating[Any]],
) -> NDArray[np.floating[Any]]:
    """
    F grid of the design's effect, from the closed-form partition.

    scale is raw_ss(design.data), taken before residualization.
    """
    terms = sums_of_squares(data)
    return f_ratio(
        terms[design.effect_label],
        terms[error_label(design.effect_label)],
        design.df_effect,
        design.df_error,
        scale=scale,
    )


def degeneracy_warnings(
    f_obs: NDArray[np.floating[Any]],
    f_dist: NDArray[np.floating[Any]],
) -> list[str]:
    """Describe NaN cells / NaN null entries, if any."""
    messages = []
    n_bad_cells = int(np.isnan(f_obs).sum())
    if n_bad_cells:
        messages.append(
            f"{n_bad_cells} of {f_obs.size} electrode/time cells have zero error "
            f"variance; their observed F is NaN"
        )
    n_bad_perms = int(np.isnan(f_dist).sum())
    if n_bad_perms:
        messages.append(
            f"{n_bad_perms} of {f_dist.size} permutations produced a NaN maximum F; "
            f"exclude degenerate electrodes/time points before testing"
        )
    return messages

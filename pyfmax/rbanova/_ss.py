"""
Sums of squares for randomized-block (within-subjects) factorial designs.

All functions take a measurement array

    electrode x time x factor_1 x ... x factor_k x subject

and return a dict of sum-of-squares terms, each an electrode x time array.
Reductions only ever collapse factor and subject axes.

Every term follows the same recipe: sum the data over the axes NOT in the
term, square, sum over the term's own cells, divide by the product of the
level counts that were summed over, then subtract every lower-order term
contained in it and the grand-mean correction. With k factors plus the
subject factor this yields 2^(k+1) terms; all of them except 'mean' add up
to the total corrected sum of squares.

The one-, two- and three-factor partitions are written out term by term
(ss_oneway, ss_twoway, ss_threeway) so each can be checked on its own.
ss_factorial builds the same partition for any number of factors by walking
the power set and backs the parametric ANOVA.
"""

from functools import partial
from itertools import combinations
from typing import Any

import numpy as np
from numpy.typing import NDArray

from pyfmax.core.compute.tolerances import SS_CLAMP_TOLERANCE, SS_ERROR_RTOL
from pyfmax.core.exceptions import DimensionError
from pyfmax.rbanova._effects import FIRST_FACTOR_AXIS, term_label

SSTerms = dict[str, NDArray[np.floating[Any]]]


def _uncorrected_ss(
    data: NDArray[np.floating[Any]],
    *keep: int,
) -> NDArray[np.floating[Any]]:
    """
    Uncorrected sum of squares of the marginal totals over the `keep` axes.

    sum over cells of `keep` of (sum over the other condition/subject
    axes)^2, divided by the number of values in each marginal total.
    """
    collapse = tuple(ax for ax in range(FIRST_FACTOR_AXIS, data.ndim) if ax not in keep)
    divisor = 1
    for ax in collapse:
        divisor *= data.shape[ax]
    totals = data.sum(axis=collapse) if collapse else data
    return (totals ** 2).sum(axis=tuple(range(FIRST_FACTOR_AXIS, totals.ndim))) / divisor


def ss_oneway(data: NDArray[np.floating[Any]]) -> SSTerms:
    """
    Partition for one within-subjects factor A.

    Axes: electrode, time, A, S.
    """
    A, S = 2, 3
    q = partial(_uncorrected_ss, data)

    ss_mean = q()
    ss_a = q(A) - ss_mean
    ss_s = q(S) - ss_mean
    ss_axs = q(A, S) - ss_a - ss_s - ss_mean

    return {
        'mean': ss_mean,
        'A': ss_a,
        'S': ss_s,
        'AxS': ss_axs,
    }


def ss_twoway(data: NDArray[np.floating[Any]]) -> SSTerms:
    """
    Partition for two within-subjects factors A and B.

    Axes: electrode, time, A, B, S.
    """
    A, B, S = 2, 3, 4
    q = partial(_uncorrected_ss, data)

    ss_mean = q()
    ss_a = q(A) - ss_mean
    ss_b = q(B) - ss_mean
    ss_s = q(S) - ss_mean
    ss_axb = q(A, B) - ss_a - ss_b - ss_mean
    ss_axs = q(A, S) - ss_a - ss_s - ss_mean
    ss_bxs = q(B, S) - ss_b - ss_s - ss_mean
    ss_axbxs = (q(A, B, S) - ss_a - ss_b - ss_s
                - ss_axb - ss_axs - ss_bxs - ss_mean)

    return {
        'mean': ss_mean,
        'A': ss_a,
        'B': ss_b,
        'S': ss_s,
        'AxB': ss_axb,
        'AxS': ss_axs,
        'BxS': ss_bxs,
        'AxBxS': ss_axbxs,
    }


def ss_threeway(data: NDArray[np.floating[Any]]) -> SSTerms:
    """
    Partition for three within-subjects factors A, B and C.

    Axes: electrode, time, A, B, C, S. Yields the grand-mean term, S,
    the seven effects and their seven error terms.
    """
    A, B, C, S = 2, 3, 4, 5
    q = partial(_uncorrected_ss, data)

    ss_mean = q()

    ss_a = q(A) - ss_mean
    ss_b = q(B) - ss_mean
    ss_c = q(C) - ss_mean
    ss_s = q(S) - ss_mean

    ss_axb = q(A, B) - ss_a - ss_b - ss_mean
    ss_axc = q(A, C) - ss_a - ss_c - ss_mean
    ss_bxc = q(B, C) - ss_b - ss_c - ss_mean
    ss_axs = q(A, S) - ss_a - ss_s - ss_mean
    ss_bxs = q(B, S) - ss_b - ss_s - ss_mean
    ss_cxs = q(C, S) - ss_c - ss_s - ss_mean

    ss_axbxc = (q(A, B, C) - ss_a - ss_b - ss_c
                - ss_axb - ss_axc - ss_bxc - ss_mean)
    ss_axbxs = (q(A, B, S) - ss_a - ss_b - ss_s
                - ss_axb - ss_axs - ss_bxs - ss_mean)
    ss_axcxs = (q(A, C, S) - ss_a - ss_c - ss_s
                - ss_axc - ss_axs - ss_cxs - ss_mean)
    ss_bxcxs = (q(B, C, S) - ss_b - ss_c - ss_s
                - ss_bxc - ss_bxs - ss_cxs - ss_mean)

    ss_axbxcxs = (q(A, B, C, S) - ss_a - ss_b - ss_c - ss_s
                  - ss_axb - ss_axc - ss_bxc - ss_axs - ss_bxs - ss_cxs
                  - ss_axbxc - ss_axbxs - ss_axcxs - ss_bxcxs - ss_mean)

    return {
        'mean': ss_mean,
        'A': ss_a,
        'B': ss_b,
        'C': ss_c,
        'S': ss_s,
        'AxB': ss_axb,
        'AxC': ss_axc,
        'BxC': ss_bxc,
        'AxS': ss_axs,
        'BxS': ss_bxs,
        'CxS': ss_cxs,
        'AxBxC': ss_axbxc,
        'AxBxS': ss_axbxs,
        'AxCxS': ss_axcxs,
        'BxCxS': ss_bxcxs,
        'AxBxCxS': ss_axbxcxs,
    }


_TIER_KERNELS = {
    4: ss_oneway,
    5: ss_twoway,
    6: ss_threeway,
}


def sums_of_squares(data: NDArray[np.floating[Any]]) -> SSTerms:
    """
    Closed-form partition selected by the array's dimensionality.

    Raises:
        DimensionError: If data does not have 4, 5 or 6 dimensions
    """
    kernel = _TIER_KERNELS.get(data.ndim)
    if kernel is None:
        raise DimensionError(
            f"data: closed-form sums of squares need 4, 5 or 6 dimensions, "
            f"got {data.ndim}D with shape {data.shape}",
            shape=data.shape,
            expected="ndim in (4, 5, 6)",
        )
    return kernel(data)


def ss_factorial(data: NDArray[np.floating[Any]]) -> SSTerms:
    """
    Partition for any number of within-subjects factors.

    Terms are built in order of increasing size over the power set of
    (factors + subject), each one subtracting all of its proper subsets.
    Labels follow the closed-form kernels ('AxB', 'AxBxS', ...).
    """
    axes = tuple(range(FIRST_FACTOR_AXIS, data.ndim))
    subject_axis = data.ndim - 1

    def label(subset: tuple[int, ...]) -> str:
        factors = [ax - FIRST_FACTOR_AXIS for ax in subset if ax != subject_axis]
        return term_label(factors, subject=subject_axis in subset)

    terms: dict[tuple[int, ...], NDArray[np.floating[Any]]] = {}
    for size in range(len(axes) + 1):
        for subset in combinations(axes, size):
            ss = _uncorrected_ss(data, *subset)
            for smaller in range(size):
                for part in combinations(subset, smaller):
                    ss = ss - terms[part]
            terms[subset] = ss

    return {label(subset): ss for subset, ss in terms.items()}


def total_ss(data: NDArray[np.floating[Any]]) -> NDArray[np.floating[Any]]:
    """Total corrected sum of squares over all condition and subject cells."""
    axes = tuple(range(FIRST_FACTOR_AXIS, data.ndim))
    centered = data - data.mean(axis=axes, keepdims=True)
    return (centered ** 2).sum(axis=axes)


def raw_ss(data: NDArray[np.floating[Any]]) -> NDArray[np.floating[Any]]:
    """
    Sum of x^2 over all condition and subject cells, electrode x time.

    Bounds every uncorrected term, so it sets the scale of the rounding
    error left in the subtractive partition. Within-subject permutation
    does not change it.
    """
    return _uncorrected_ss(data, *range(FIRST_FACTOR_AXIS, data.ndim))


def f_ratio(
    ss_effect: NDArray[np.floating[Any]],
    ss_error: NDArray[np.floating[Any]],
    df_effect: int,
    df_error: int,
    scale: NDArray[np.floating[Any]] | None = None,
) -> NDArray[np.floating[Any]]:
    """
    F = (SS_effect / df_effect) / (SS_error / df_error), cellwise.

    SS_effect below SS_CLAMP_TOLERANCE is set to zero first (floating-point
    cancellation). Cells with zero error variance are degenerate and come
    out as NaN instead of raising or producing +/-inf or a spurious 0.

    Without `scale`, only a non-positive error SS is zero. With `scale`
    (raw_ss of the original data), an error SS at or below
    SS_ERROR_RTOL * scale is zero too: constant data rarely cancels to an
    exact 0.0.
    """
    ss_effect = np.where(ss_effect < SS_CLAMP_TOLERANCE, 0.0, ss_effect)
    degenerate = ss_error <= 0
    if scale is not None:
        degenerate |= ss_error <= SS_ERROR_RTOL * scale
    with np.errstate(divide='ignore', invalid='ignore'):
        f = (ss_effect / df_effect) / (ss_error / df_error)
    return np.where(degenerate, np.nan, f)

"""
Randomized-block ANOVA design object.

Wraps the validated measurement array and everything that is fixed for a
whole analysis: the design tier, the tested effect, and its degrees of
freedom. Factory methods handle the permutation core (1-3 factors) and the
parametric ANOVA (any number of factors).
"""

import logging
import numbers
from dataclasses import dataclass
from typing import Any

import numpy as np
from numpy.typing import NDArray

from pyfmax.core.exceptions import DimensionError, ValidationError
from pyfmax.core.validation import (
    check_array,
    check_axis_size,
    check_finite,
    check_min_ndim,
    check_ndim_in,
    check_positive_int,
    check_probability,
)
from pyfmax.rbanova._effects import (
    effect_df,
    factor_labels,
    parse_effect,
    term_label,
)

logger = logging.getLogger(__name__)

# ndim -> (tier name, residualize before permuting)
PERMUTATION_TIERS = {
    4: ('oneway', False),
    5: ('twoway', True),
    6: ('threeway', True),
}


@dataclass(frozen=True)
class RBAnovaDesign:
    """
    Validated data container for randomized-block ANOVA.

    Created via factory methods, not directly. `data` is a private float64
    copy of the caller's array, so later changes to the caller's array
    cannot leak into a running analysis.
    """
    data: NDArray[np.floating[Any]]
    levels: tuple[int, ...]
    n_subjects: int
    effect: tuple[int, ...]
    effect_label: str
    df_effect: int
    df_error: int
    tier: str             # 'oneway', 'twoway', 'threeway', 'factorial'
    residualize: bool
    n_perm: int | None
    seed: int | None
    alpha: float

    @property
    def n_factors(self) -> int:
        return len(self.levels)

    @property
    def n_electrodes(self) -> int:
        return self.data.shape[0]

    @property
    def n_time_pts(self) -> int:
        return self.data.shape[1]

    @staticmethod
    def for_permutation(
        data: Any,
        n_perm: int,
        *,
        levels: Any = None,
        seed: int | None = None,
        alpha: float = 0.05,
    ) -> 'RBAnovaDesign':
        """
        Create design for an Fmax permutation test.

        Dimensionality selects the tier and the tested effect:
            4D  one-way, effect A, raw data permuted
            5D  two-way, effect AxB, residuals permuted
            6D  three-way, effect AxBxC, residuals permuted

        Args:
            data: electrode x time x factor levels... x subject
            n_perm: Number of permutations including the observed one (>= 1)
            levels: Optional declared level counts, checked against the array
            seed: Seed for numpy.random.default_rng
            alpha: Family-wise error rate used by the solution's
                critical F and significance mask

        Returns:
            RBAnovaDesign for the permutation core

        Raises:
            DimensionError: Unsupported dimensionality or mismatched levels
            ValidationError: Too few subjects or levels, bad n_perm/seed/alpha,
                non-finite data
        """
        arr = check_array(data, "data")
        check_ndim_in(arr, PERMUTATION_TIERS, "data")
        tier, residualize = PERMUTATION_TIERS[arr.ndim]
        n_perm = check_positive_int(n_perm, "n_perm")

        design_levels, n_subjects = _validate_layout(arr, levels)
        effect = tuple(range(len(design_levels)))
        df_effect, df_error = effect_df(design_levels, effect, n_subjects)

        logger.debug(
            "permutation design: tier=%s levels=%s subjects=%d effect=%s df=(%d, %d)",
            tier, design_levels, n_subjects, term_label(effect), df_effect, df_error,
        )

        return RBAnovaDesign(
            data=arr,
            levels=design_levels,
            n_subjects=n_subjects,
            effect=effect,
            effect_label=term_label(effect),
            df_effect=df_effect,
            df_error=df_error,
            tier=tier,
            residualize=residualize,
            n_perm=n_perm,
            seed=_check_seed(seed),
            alpha=check_probability(alpha, "alpha"),
        )

    @staticmethod
    def for_parametric(
        data: Any,
        effect: Any = None,
        *,
        levels: Any = None,
    ) -> 'RBAnovaDesign':
        """
        Create design for a parametric ANOVA of one effect.

        Args:
            data: electrode x time x factor levels... x subject, with one
                or more factor axes
            effect: Effect label ('A', 'BxC', ...) or factor indices;
                None tests the highest-order interaction
            levels: Optional declared level counts, checked against the array

        Returns:
            RBAnovaDesign for the parametric ANOVA
        """
        arr = check_array(data, "data")
        check_min_ndim(arr, 4, "data")

        design_levels, n_subjects = _validate_layout(arr, levels)
        factors = parse_effect(effect, len(design_levels))
        df_effect, df_error = effect_df(design_levels, factors, n_subjects)

        return RBAnovaDesign(
            data=arr,
            levels=design_levels,
            n_subjects=n_subjects,
            effect=factors,
            effect_label=term_label(factors),
            df_effect=df_effect,
            df_error=df_error,
            tier='factorial',
            residualize=False,
            n_perm=None,
            seed=None,
            alpha=0.05,
        )


def _validate_layout(
    arr: NDArray[np.floating[Any]],
    levels: Any,
) -> tuple[tuple[int, ...], int]:
    """Shared checks on a measurement array; returns (levels, n_subjects)."""
    check_finite(arr, "data")
    check_axis_size(arr, 0, 1, "data: number of electrodes")
    check_axis_size(arr, 1, 1, "data: number of time points")
    check_axis_size(arr, -1, 2, "data: number of subjects")

    shape_levels = tuple(int(n) for n in arr.shape[2:-1])
    factor_labels(len(shape_levels))
    for i, n in enumerate(shape_levels):
        if n < 2:
            raise ValidationError(
                f"data: factor {i} (axis {i + 2}) needs at least 2 levels, got {n}"
            )

    if levels is not None:
        declared = tuple(np.atleast_1d(np.asarray(levels)).tolist())
        if declared != shape_levels:
            raise DimensionError(
                f"levels: declared {declared} but data factor axes have sizes "
                f"{shape_levels} (shape {arr.shape})",
                shape=arr.shape,
                expected=f"factor axes {declared}",
            )

    return shape_levels, int(arr.shape[-1])


def _check_seed(seed: Any) -> int | None:
    if seed is None:
        return None
    if isinstance(seed, bool) or not isinstance(seed, numbers.Integral) or seed < 0:
        raise ValidationError(
            f"seed: expected None or a non-negative integer, got {seed!r}"
        )
    return int(seed)

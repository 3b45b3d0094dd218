"""
Randomized-block ANOVA solver dispatch.

Public API:
    perm_rbanova(data, n_perm, ...) -> FmaxSolution
    rbanova(data, effect, ...) -> RBAnovaSolution
    reduce_data(data, effect) -> ndarray
"""

import logging
import warnings
from typing import Any, Literal

import numpy as np
from scipy import stats

from pyfmax.core.compute.device import select_device
from pyfmax.core.compute.timing import timed
from pyfmax.core.exceptions import ValidationError
from pyfmax.core.protocols import Backend
from pyfmax.core.result import Result
from pyfmax.rbanova._common import FmaxParams, RBAnovaParams
from pyfmax.rbanova._effects import error_label, reduce_data
from pyfmax.rbanova._progress import ProgressCallback
from pyfmax.rbanova._ss import f_ratio, raw_ss, ss_factorial
from pyfmax.rbanova.backends.cpu import CPUPermutationBackend
from pyfmax.rbanova.design import RBAnovaDesign
from pyfmax.rbanova.solution import FmaxSolution, RBAnovaSolution

logger = logging.getLogger(__name__)

BackendChoice = Literal['cpu', 'gpu', 'auto']

__all__ = ["perm_rbanova", "rbanova", "reduce_data"]


def perm_rbanova(
    data: Any,
    n_perm: int,
    *,
    levels: Any = None,
    seed: int | None = None,
    backend: BackendChoice = 'cpu',
    progress: bool | ProgressCallback | None = None,
    alpha: float = 0.05,
) -> FmaxSolution:
    """
    Fmax permutation test for a within-subjects ANOVA with 1-3 factors.

    Tests the highest-order effect of the design at every electrode and
    time point. The null distribution of the maximum F over all cells is
    built by shuffling condition labels independently within each subject;
    for two and three factors the residuals of the lower-order effects are
    shuffled instead of the raw data. Comparing every cell against this one
    distribution controls the family-wise error rate over the whole grid.

    To test a main effect or lower-order interaction, average the other
    factors out first with reduce_data().

    Args:
        data: electrode x time x factor levels... x subject array with
            1, 2 or 3 factor axes (4, 5 or 6 dimensions)
        n_perm: Number of permutations, counting the unpermuted data as the
            first one. 1 returns only the observed statistic.
        levels: Optional level counts per factor, checked against the array
        seed: Seed for numpy.random.default_rng; the same seed gives the
            same null distribution
        backend: 'cpu' (default), 'gpu' (requires PyTorch with CUDA or MPS)
            or 'auto' (GPU if available)
        progress: None/False silent, True for a tqdm progress bar, or a
            callable(completed, total)
        alpha: Family-wise error rate for FmaxSolution.f_crit and
            FmaxSolution.significant

    Returns:
        FmaxSolution with the observed F grid, the null distribution and
        family-wise corrected p-values

    Raises:
        DimensionError: data is not 4-6 dimensional, or levels disagree
            with its shape
        ValidationError: Too few subjects or levels, non-finite data,
            bad n_perm, seed, alpha or backend
        RuntimeError: backend='gpu' but no GPU is available

    Examples:
        >>> res = perm_rbanova(data, 5000, seed=1)
        >>> res.f_crit
        >>> res.significant.sum()
        >>> main_b = perm_rbanova(reduce_data(data, 'B'), 5000, seed=1)
    """
    design = RBAnovaDesign.for_permutation(
        data, n_perm, levels=levels, seed=seed, alpha=alpha,
    )
    backend_impl = _get_backend(backend, progress)
    logger.debug("perm_rbanova: tier=%s backend=%s", design.tier, backend_impl.name)

    result = backend_impl.solve(design)
    for message in result.warnings:
        warnings.warn(message, RuntimeWarning, stacklevel=2)

    return FmaxSolution(_result=result, _design=design)


def rbanova(
    data: Any,
    effect: Any = None,
    *,
    levels: Any = None,
) -> RBAnovaSolution:
    """
    Parametric within-subjects ANOVA of one effect at every cell.

    Uses the full power-set partition of the sums of squares, so any
    number of factors is supported. The error term is the effect x subject
    interaction, as in the permutation test.

    Args:
        data: electrode x time x factor levels... x subject array with at
            least one factor axis
        effect: 'A', 'AxC', ... or a tuple of factor indices; None tests
            the highest-order interaction
        levels: Optional level counts per factor, checked against the array

    Returns:
        RBAnovaSolution with F, uncorrected p-values and sums of squares
    """
    with timed() as timer:
        design = RBAnovaDesign.for_parametric(data, effect, levels=levels)
        terms = ss_factorial(design.data)
        label = design.effect_label
        ss_effect = terms[label]
        ss_error = terms[error_label(label)]
        f_values = f_ratio(
            ss_effect, ss_error, design.df_effect, design.df_error,
            scale=raw_ss(design.data),
        )
        p_values = stats.f.sf(f_values, design.df_effect, design.df_error)

    n_degenerate = int(np.isnan(f_values).sum())
    result_warnings = []
    if n_degenerate:
        result_warnings.append(
            f"{n_degenerate} of {ss_error.size} electrode/time cells have zero "
            f"error variance; their F and p-value are NaN"
        )

    params = RBAnovaParams(
        effect=label,
        f_values=f_values,
        p_values=p_values,
        ss_effect=ss_effect,
        ss_error=ss_error,
        df_effect=design.df_effect,
        df_error=design.df_error,
        levels=design.levels,
        n_subjects=design.n_subjects,
    )

    result = Result(
        params=params,
        info={'tier': design.tier, 'n_factors': design.n_factors},
        timing=timer.result(),
        backend_name='cpu_parametric',
        warnings=tuple(result_warnings),
    )
    for message in result.warnings:
        warnings.warn(message, RuntimeWarning, stacklevel=2)

    return RBAnovaSolution(_result=result)


def _get_backend(
    choice: BackendChoice,
    progress: bool | ProgressCallback | None,
) -> Backend[RBAnovaDesign, FmaxParams]:
    """
    Select and instantiate the permutation backend.

    Raises:
        ValidationError: If unknown backend specified
        RuntimeError: If GPU requested but unavailable
    """
    if choice not in ('cpu', 'gpu', 'auto'):
        raise ValidationError(
            f"backend: expected 'cpu', 'gpu' or 'auto', got {choice!r}"
        )

    if choice == 'cpu':
        return CPUPermutationBackend(progress=progress)

    device = select_device(choice)
    logger.debug("backend %r resolved to %s", choice, device)
    if not device.is_gpu:
        return CPUPermutationBackend(progress=progress)

    from pyfmax.rbanova.backends.gpu import GPUPermutationBackend
    return GPUPermutationBackend(device=device.device_type, progress=progress)

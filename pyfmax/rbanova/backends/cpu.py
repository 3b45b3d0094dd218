"""
CPU backend for the Fmax permutation test.

CPUPermutationBackend: one permutation at a time with NumPy. Only one
permuted working array is alive at any point; the output distribution is
the only thing that grows with n_perm.
"""

from __future__ import annotations

import logging

import numpy as np

from pyfmax.core.result import Result
from pyfmax.core.compute.timing import Timer
from pyfmax.rbanova._common import FmaxParams
from pyfmax.rbanova._permute import (
    degeneracy_warnings,
    draw_orders,
    effect_f,
    n_condition_cells,
    permute_within_subjects,
)
from pyfmax.rbanova._progress import ProgressCallback, ProgressReporter
from pyfmax.rbanova._residuals import residualize
from pyfmax.rbanova._ss import raw_ss
from pyfmax.rbanova.design import RBAnovaDesign

logger = logging.getLogger(__name__)


class CPUPermutationBackend:
    """
    CPU backend for Fmax permutation testing.

    Iteration 1 is the unpermuted data; every later iteration shuffles the
    condition cells independently within each subject, recomputes the
    closed-form partition and keeps the maximum F over electrodes and
    time points.
    """

    def __init__(self, progress: bool | ProgressCallback | None = None):
        self._progress = progress

    @property
    def name(self) -> str:
        return 'cpu_permutation'

    def solve(self, design: RBAnovaDesign) -> Result[FmaxParams]:
        """Run the permutation test and return Result[FmaxParams]."""
        timer = Timer()
        timer.start()

        n_perm = design.n_perm
        rng = np.random.default_rng(design.seed)

        scale = raw_ss(design.data)
        with timer.section('residualize'):
            work = residualize(design.data) if design.residualize else design.data

        f_dist = np.empty(n_perm, dtype=np.float64)

        with timer.section('observed'):
            f_obs = effect_f(work, design, scale)
            f_dist[0] = np.max(f_obs)

        n_cells = n_condition_cells(design)
        flat = work.reshape(design.n_electrodes, design.n_time_pts, n_cells, design.n_subjects)

        logger.debug(
            "%s: %d permutations of %d cells x %d subjects (%s)",
            self.name, n_perm - 1, n_cells, design.n_subjects, design.tier,
        )

        with ProgressReporter(self._progress, n_perm) as reporter, \
                timer.section('permutations'):
            reporter.update(1)
            for i in range(1, n_perm):
                orders = draw_orders(rng, n_cells, design.n_subjects)
                permuted = permute_within_subjects(flat, orders).reshape(work.shape)
                f_dist[i] = np.max(effect_f(permuted, design, scale))
                reporter.update(i + 1)

        timer.stop()

        params = FmaxParams(
            effect=design.effect_label,
            f_obs=f_obs,
            f_dist=f_dist,
            df_effect=design.df_effect,
            df_error=design.df_error,
            n_perm=n_perm,
            levels=design.levels,
            n_subjects=design.n_subjects,
            seed=design.seed,
        )

        return Result(
            params=params,
            info={
                'tier': design.tier,
                'residualized': design.residualize,
                'n_electrodes': design.n_electrodes,
                'n_time_pts': design.n_time_pts,
            },
            timing=timer.result(),
            backend_name=self.name,
            warnings=tuple(degeneracy_warnings(f_obs, f_dist)),
        )

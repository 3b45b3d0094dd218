"""
GPU backend for the Fmax permutation test.

Permutation orders are drawn on the host with the same numpy Generator
sequence as the CPU backend; the permuted sums of squares are evaluated on
the device in batches. For a given seed the null distribution therefore
matches the CPU backend to within the device's floating-point tolerance.

CUDA runs in float64; MPS has no float64 and runs in float32. In float32 the
absolute SS_CLAMP_TOLERANCE on the effect SS is far below rounding noise
and has no practical effect; near-zero effects show up as small positive
F values, within the GPU_FP32 tolerance tier. Zero error variance is
detected relative to the raw sum of squares with a dtype-specific
threshold (SS_ERROR_RTOL or SS_ERROR_RTOL_FP32).
"""

from __future__ import annotations

import logging
from itertools import combinations
from math import prod

import numpy as np

from pyfmax.core.result import Result
from pyfmax.core.compute.timing import Timer
from pyfmax.core.compute.tolerances import (
    SS_CLAMP_TOLERANCE,
    SS_ERROR_RTOL,
    SS_ERROR_RTOL_FP32,
)
from pyfmax.rbanova._common import FmaxParams
from pyfmax.rbanova._permute import (
    degeneracy_warnings,
    draw_orders,
    effect_f,
    n_condition_cells,
)
from pyfmax.rbanova._progress import ProgressCallback, ProgressReporter
from pyfmax.rbanova._residuals import residualize
from pyfmax.rbanova._ss import raw_ss
from pyfmax.rbanova.design import RBAnovaDesign

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 64


class GPUPermutationBackend:
    """
    GPU backend for Fmax permutation testing.

    Each batch holds `batch_size` permuted copies of the data on the
    device, so device memory grows as
    batch_size x electrodes x time x cells x subjects.
    """

    def __init__(
        self,
        device: str = 'auto',
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        progress: bool | ProgressCallback | None = None,
    ):
        import torch

        self._torch = torch

        if device == 'auto':
            if torch.cuda.is_available():
                self._device = 'cuda'
            elif hasattr(torch.backends, 'mps') and torch.backends.mps.is_available():
                self._device = 'mps'
            else:
                raise RuntimeError("No GPU available (need CUDA or MPS)")
        else:
            self._device = device

        self._dtype = torch.float32 if self._device == 'mps' else torch.float64
        self._batch_size = batch_size
        self._progress = progress

    @property
    def name(self) -> str:
        return f'gpu_{self._device}_permutation'

    def solve(self, design: RBAnovaDesign) -> Result[FmaxParams]:
        """Run the permutation test and return Result[FmaxParams]."""
        torch = self._torch
        timer = Timer(sync_cuda=(self._device == 'cuda'))
        timer.start()

        n_perm = design.n_perm
        rng = np.random.default_rng(design.seed)

        scale = raw_ss(design.data)
        with timer.section('residualize'):
            work = residualize(design.data) if design.residualize else design.data

        f_dist = np.empty(n_perm, dtype=np.float64)

        # observed grid always in float64 on the host
        with timer.section('observed'):
            f_obs = effect_f(work, design, scale)
            f_dist[0] = np.max(f_obs)

        n_cells = n_condition_cells(design)
        n_subjects = design.n_subjects
        flat = torch.as_tensor(
            work.reshape(design.n_electrodes, design.n_time_pts, n_cells, n_subjects),
            dtype=self._dtype,
            device=self._device,
        )
        batch_shape = (design.n_electrodes, design.n_time_pts) + design.levels + (n_subjects,)
        rtol = SS_ERROR_RTOL_FP32 if self._dtype == torch.float32 else SS_ERROR_RTOL
        zero_error = torch.as_tensor(rtol * scale, dtype=self._dtype, device=self._device)

        logger.debug(
            "%s: %d permutations in batches of %d (%s)",
            self.name, n_perm - 1, self._batch_size, self._dtype,
        )

        with ProgressReporter(self._progress, n_perm) as reporter, \
                timer.section('permutations'):
            reporter.update(1)
            done = 1
            while done < n_perm:
                size = min(self._batch_size, n_perm - done)
                orders = np.stack([
                    draw_orders(rng, n_cells, n_subjects) for _ in range(size)
                ])
                index = torch.as_tensor(orders, device=self._device)[:, None, None, :, :]
                index = index.expand(size, *flat.shape)
                permuted = torch.gather(
                    flat.unsqueeze(0).expand(size, *flat.shape), 3, index,
                ).reshape((size,) + batch_shape)

                f_batch = self._batched_f(permuted, design, zero_error)
                f_dist[done:done + size] = (
                    f_batch.amax(dim=(1, 2)).cpu().numpy().astype(np.float64)
                )
                done += size
                reporter.update(done)

        timer.stop()

        params = FmaxParams(
            effect=design.effect_label,
            f_obs=f_obs,
            f_dist=f_dist,
            df_effect=design.df_effect,
            df_error=design.df_error,
            n_perm=n_perm,
            levels=design.levels,
            n_subjects=n_subjects,
            seed=design.seed,
        )

        return Result(
            params=params,
            info={
                'tier': design.tier,
                'residualized': design.residualize,
                'n_electrodes': design.n_electrodes,
                'n_time_pts': design.n_time_pts,
                'device': self._device,
                'dtype': str(self._dtype),
                'batch_size': self._batch_size,
            },
            timing=timer.result(),
            backend_name=self.name,
            warnings=tuple(degeneracy_warnings(f_obs, f_dist)),
        )

    def _batched_f(self, batch, design: RBAnovaDesign, zero_error):
        """
        F grid per permutation; batch is perm x electrode x time x levels... x subject.

        Error SS at or below zero_error (electrode x time) counts as zero.
        """
        torch = self._torch
        effect_axes = tuple(3 + i for i in design.effect)
        subject_axis = batch.ndim - 1

        ss_effect = _mobius_ss(batch, effect_axes)
        ss_error = _mobius_ss(batch, effect_axes + (subject_axis,))

        ss_effect = torch.where(
            ss_effect < SS_CLAMP_TOLERANCE, torch.zeros_like(ss_effect), ss_effect,
        )
        f = (ss_effect / design.df_effect) / (ss_error / design.df_error)
        return torch.where(ss_error > zero_error, f, torch.full_like(f, float('nan')))


def _uncorrected_ss(batch, keep: tuple[int, ...]):
    """Sum over kept cells of (sum over the other design axes)^2 / n collapsed."""
    design_axes = range(3, batch.ndim)
    collapse = tuple(ax for ax in design_axes if ax not in keep)
    summed = batch.sum(dim=collapse) if collapse else batch
    squared = summed * summed
    if squared.ndim > 3:
        squared = squared.sum(dim=tuple(range(3, squared.ndim)))
    return squared / prod(batch.shape[ax] for ax in collapse)


def _mobius_ss(batch, axes: tuple[int, ...]):
    """SS of the term spanned by `axes`, by inclusion-exclusion over its subsets."""
    total = None
    for size in range(len(axes) + 1):
        sign = -1.0 if (len(axes) - size) % 2 else 1.0
        for keep in combinations(axes, size):
            term = sign * _uncorrected_ss(batch, keep)
            total = term if total is None else total + term
    return total

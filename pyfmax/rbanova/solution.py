"""
Solution wrappers for randomized-block ANOVA results.

FmaxSolution and RBAnovaSolution wrap Result[P] and provide convenient
accessors and a plain-text summary.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

from pyfmax.core.result import Result
from pyfmax.rbanova._common import FmaxParams, RBAnovaParams

if TYPE_CHECKING:
    from pyfmax.rbanova.design import RBAnovaDesign


@dataclass
class FmaxSolution:
    """
    User-facing Fmax permutation test results.

    f_obs is the electrode x time grid of observed F values; f_dist is the
    null distribution of the maximum F over that grid. Family-wise
    corrected inference compares every cell with the same distribution.
    """
    _result: Result[FmaxParams]
    _design: 'RBAnovaDesign'

    # --- Core fields ---

    @property
    def f_obs(self) -> NDArray[np.floating[Any]]:
        """Observed F for the tested effect, electrode x time."""
        return self._result.params.f_obs

    @property
    def f_dist(self) -> NDArray[np.floating[Any]]:
        """Max F per permutation, shape (n_perm,); entry 0 is the observed max."""
        return self._result.params.f_dist

    @property
    def df_effect(self) -> int:
        return self._result.params.df_effect

    @property
    def df_error(self) -> int:
        return self._result.params.df_error

    @property
    def n_perm(self) -> int:
        """Number of permutations, including the unpermuted data."""
        return self._result.params.n_perm

    @property
    def effect(self) -> str:
        """Label of the tested effect ('A', 'AxB' or 'AxBxC')."""
        return self._result.params.effect

    @property
    def levels(self) -> tuple[int, ...]:
        return self._result.params.levels

    @property
    def n_subjects(self) -> int:
        return self._result.params.n_subjects

    @property
    def seed(self) -> int | None:
        return self._result.params.seed

    @property
    def alpha(self) -> float:
        return self._design.alpha

    # --- Inference ---

    @property
    def p_values(self) -> NDArray[np.floating[Any]]:
        """
        Family-wise corrected p-value per electrode/time cell.

        Fraction of the null distribution at or above the cell's observed F.
        The observed maximum is part of the distribution, so no p-value is
        below 1 / n_perm. NaN where f_obs is NaN; all NaN if the null
        distribution itself contains NaN.
        """
        f_obs = self.f_obs
        f_dist = self.f_dist
        if np.isnan(f_dist).any():
            return np.full(f_obs.shape, np.nan)

        ordered = np.sort(f_dist)
        finite = ~np.isnan(f_obs)
        p = np.full(f_obs.shape, np.nan)
        n_below = np.searchsorted(ordered, f_obs[finite], side='left')
        p[finite] = (f_dist.size - n_below) / f_dist.size
        return p

    @property
    def f_crit(self) -> float:
        """Critical F at family-wise level alpha (1 - alpha quantile of f_dist)."""
        return float(np.quantile(self.f_dist, 1.0 - self.alpha))

    @property
    def significant(self) -> NDArray[np.bool_]:
        """Boolean electrode x time mask of cells with f_obs above f_crit."""
        with np.errstate(invalid='ignore'):
            return self.f_obs > self.f_crit

    # --- Metadata ---

    @property
    def info(self) -> dict[str, Any]:
        return self._result.info

    @property
    def timing(self) -> dict[str, float] | None:
        return self._result.timing

    @property
    def backend_name(self) -> str:
        return self._result.backend_name

    @property
    def warnings(self) -> tuple[str, ...]:
        return self._result.warnings

    # --- Display ---

    def summary(self) -> str:
        """Fmax permutation test summary."""
        n_elec, n_time = self.f_obs.shape
        lines = [
            "\nFMAX PERMUTATION TEST (randomized-block ANOVA)",
            "",
            f"Effect: {self.effect}    levels: {self.levels}    subjects: {self.n_subjects}",
            f"F({self.df_effect}, {self.df_error}) over {n_elec} electrodes x {n_time} time points",
            f"Number of permutations: {self.n_perm}    seed: {self.seed}",
            f"Max observed F: {self.f_dist[0]:.6g}",
            f"Critical F (alpha={self.alpha:g}): {self.f_crit:.6g}",
            f"Significant cells: {int(self.significant.sum())} of {self.f_obs.size}",
        ]
        for w in self.warnings:
            lines.append(f"Warning: {w}")
        lines.append("")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"FmaxSolution(effect={self.effect!r}, "
            f"df=({self.df_effect}, {self.df_error}), "
            f"n_perm={self.n_perm}, "
            f"max_f={self.f_dist[0]:.4g})"
        )


@dataclass
class RBAnovaSolution:
    """
    User-facing parametric randomized-block ANOVA results for one effect.

    Produced by rbanova(). p-values are uncorrected, per cell, from the
    F(df_effect, df_error) distribution.
    """
    _result: Result[RBAnovaParams]

    @property
    def effect(self) -> str:
        return self._result.params.effect

    @property
    def f_values(self) -> NDArray[np.floating[Any]]:
        return self._result.params.f_values

    @property
    def p_values(self) -> NDArray[np.floating[Any]]:
        return self._result.params.p_values

    @property
    def ss_effect(self) -> NDArray[np.floating[Any]]:
        return self._result.params.ss_effect

    @property
    def ss_error(self) -> NDArray[np.floating[Any]]:
        return self._result.params.ss_error

    @property
    def df_effect(self) -> int:
        return self._result.params.df_effect

    @property
    def df_error(self) -> int:
        return self._result.params.df_error

    @property
    def levels(self) -> tuple[int, ...]:
        return self._result.params.levels

    @property
    def n_subjects(self) -> int:
        return self._result.params.n_subjects

    @property
    def info(self) -> dict[str, Any]:
        return self._result.info

    @property
    def timing(self) -> dict[str, float] | None:
        return self._result.timing

    @property
    def backend_name(self) -> str:
        return self._result.backend_name

    @property
    def warnings(self) -> tuple[str, ...]:
        return self._result.warnings

    def summary(self) -> str:
        """Per-cell parametric ANOVA summary."""
        n_elec, n_time = self.f_values.shape
        with np.errstate(invalid='ignore'):
            n_sig = int((self.p_values < 0.05).sum())
        finite = self.f_values[~np.isnan(self.f_values)]
        max_f = float(finite.max()) if finite.size else float('nan')
        lines = [
            "\nRANDOMIZED-BLOCK ANOVA",
            "",
            f"Effect: {self.effect}    levels: {self.levels}    subjects: {self.n_subjects}",
            f"F({self.df_effect}, {self.df_error}) over {n_elec} electrodes x {n_time} time points",
            f"Max F: {max_f:.6g}",
            f"Cells with p < 0.05 (uncorrected): {n_sig} of {self.f_values.size}",
        ]
        for w in self.warnings:
            lines.append(f"Warning: {w}")
        lines.append("")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"RBAnovaSolution(effect={self.effect!r}, "
            f"df=({self.df_effect}, {self.df_error}), "
            f"shape={self.f_values.shape})"
        )

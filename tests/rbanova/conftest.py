"""
Shared fixtures and a reference ANOVA for randomized-block tests.

contrast_anova() is an independent closed-form repeated-measures ANOVA:
the condition cells of every subject are projected onto orthonormal
Helmert contrasts spanning the effect, and the effect and error sums of
squares are read off the projected scores. It shares no code with the
library's sum-of-squares kernels.
"""

from functools import partial

import numpy as np
import pytest


def helmert(k: int) -> np.ndarray:
    """Orthonormal Helmert contrasts, shape (k, k - 1)."""
    c = np.zeros((k, k - 1))
    for j in range(1, k):
        c[:j, j - 1] = 1.0
        c[j, j - 1] = -float(j)
        c[:, j - 1] /= np.sqrt(j * (j + 1.0))
    return c


def contrast_anova(cell: np.ndarray, effect: tuple[int, ...]):
    """
    Reference F for one electrode/time cell.

    Args:
        cell: factor levels... x subject array
        effect: factor indices of the tested effect

    Returns:
        (ss_effect, ss_error, f, df_effect, df_error)
    """
    levels = cell.shape[:-1]
    n = cell.shape[-1]
    y = cell.reshape(-1, n).T  # subjects x conditions, first factor slowest

    contrasts = np.ones((1, 1))
    for i, k in enumerate(levels):
        block = helmert(k) if i in effect else np.ones((k, 1)) / np.sqrt(k)
        contrasts = np.kron(contrasts, block)

    z = y @ contrasts
    z_mean = z.mean(axis=0)
    ss_effect = n * float(np.sum(z_mean ** 2))
    ss_error = float(np.sum((z - z_mean) ** 2))
    df_effect = z.shape[1]
    df_error = df_effect * (n - 1)
    f = (ss_effect / df_effect) / (ss_error / df_error)
    return ss_effect, ss_error, f, df_effect, df_error


def make_data(rng, levels, n_subjects=6, n_electrodes=3, n_time=4, effects=None):
    """
    Random measurement array with optional injected effects.

    effects maps a tuple of factor indices to the size of a fixed random
    pattern added for that effect (same pattern for every subject).
    """
    shape = (n_electrodes, n_time) + tuple(levels) + (n_subjects,)
    data = rng.standard_normal(shape)
    data += rng.standard_normal((1, 1) + (1,) * len(levels) + (n_subjects,)) * 2.0
    for factors, size in (effects or {}).items():
        pattern_shape = [1, 1] + [1] * len(levels) + [1]
        for i in factors:
            pattern_shape[2 + i] = levels[i]
        data += size * rng.standard_normal(pattern_shape)
    return data


@pytest.fixture
def rng():
    return np.random.default_rng(20240611)


@pytest.fixture
def reference_anova():
    """The contrast-based reference ANOVA, see contrast_anova()."""
    return contrast_anova


@pytest.fixture
def data_factory(rng):
    """make_data() bound to the seeded generator."""
    return partial(make_data, rng)


@pytest.fixture
def oneway_data(rng):
    """4 electrodes x 5 time points, 3 conditions, 8 subjects."""
    return make_data(rng, (3,), n_subjects=8, n_electrodes=4, n_time=5)


@pytest.fixture
def twoway_data(rng):
    """2 x 3 design with main effects but no interaction."""
    return make_data(rng, (2, 3), n_subjects=7, effects={(0,): 3.0, (1,): 2.0})


@pytest.fixture
def threeway_data(rng):
    """2 x 2 x 3 design, 5 subjects."""
    return make_data(rng, (2, 2, 3), n_subjects=5, effects={(0, 1): 1.5})


@pytest.fixture
def scenario_data(rng):
    """2 electrodes x 3 time points x 4 conditions x 5 subjects."""
    return rng.standard_normal((2, 3, 4, 5))


# 15 designs with 1-4 factors and 2-5 levels per factor
REFERENCE_DESIGNS = [
    (2,), (3,), (5,),
    (2, 2), (2, 5), (3, 4), (4, 3),
    (2, 2, 2), (2, 3, 4), (3, 2, 5), (4, 2, 2),
    (2, 2, 2, 2), (2, 3, 2, 3), (3, 2, 2, 2), (2, 4, 2, 2),
]


@pytest.fixture(params=REFERENCE_DESIGNS, ids=lambda levels: 'x'.join(map(str, levels)))
def reference_design(request, rng):
    """(levels, data) for one of the reference designs, with mixed effects."""
    levels = request.param
    effects = {(0,): 1.5, tuple(range(len(levels))): 1.0}
    return levels, make_data(rng, levels, n_subjects=6, effects=effects)

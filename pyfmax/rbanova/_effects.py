"""
Effect bookkeeping for within-subjects designs.

Factors are identified by their position among the factor axes of a
measurement array (0 = slowest-varying, i.e. array axis 2) and labelled
with capital letters in that order. The subject (blocking) factor is
always 'S', so the letter S is never used for a within-subjects factor.

Term labels:
    'mean'       grand-mean correction term
    'S'          subjects
    'A', 'B'     main effects
    'AxB'        interaction of A and B
    'AxS'        error term of A (A x subjects)
    'AxBxS'      error term of AxB
"""

from itertools import combinations
from typing import Any, Iterable

import numpy as np
from numpy.typing import NDArray

from pyfmax.core.exceptions import ValidationError
from pyfmax.core.validation import check_array, check_min_ndim

FACTOR_LETTERS = 'ABCDEFGHIJKLMNOPQR'
SUBJECT_LABEL = 'S'
MEAN_LABEL = 'mean'
FIRST_FACTOR_AXIS = 2


def factor_labels(n_factors: int) -> tuple[str, ...]:
    """Letters naming the first n_factors factors."""
    if n_factors > len(FACTOR_LETTERS):
        raise ValidationError(
            f"at most {len(FACTOR_LETTERS)} within-subjects factors are supported, "
            f"got {n_factors}"
        )
    return tuple(FACTOR_LETTERS[:n_factors])


def term_label(factors: Iterable[int], subject: bool = False) -> str:
    """
    Label of the term spanned by the given factors (and optionally S).

    >>> term_label((0, 2))
    'AxC'
    >>> term_label((1,), subject=True)
    'BxS'
    >>> term_label((), subject=False)
    'mean'
    """
    parts = [FACTOR_LETTERS[i] for i in sorted(factors)]
    if subject:
        parts.append(SUBJECT_LABEL)
    if not parts:
        return MEAN_LABEL
    return 'x'.join(parts)


def error_label(effect: str) -> str:
    """Label of the error term paired with an effect ('AxB' -> 'AxBxS')."""
    return f"{effect}x{SUBJECT_LABEL}"


def all_effects(n_factors: int) -> list[tuple[int, ...]]:
    """
    Every main effect and interaction of an n-factor design.

    Ordered by interaction order, then lexicographically:
    A, B, C, AxB, AxC, BxC, AxBxC.
    """
    effects: list[tuple[int, ...]] = []
    for order in range(1, n_factors + 1):
        effects.extend(combinations(range(n_factors), order))
    return effects


def parse_effect(effect: Any, n_factors: int) -> tuple[int, ...]:
    """
    Normalize an effect specification to a sorted tuple of factor indices.

    Args:
        effect: A label such as 'A' or 'BxC' (case-insensitive), or an
            iterable of 0-based factor indices. None selects the
            highest-order interaction.
        n_factors: Number of within-subjects factors in the design

    Raises:
        ValidationError: If the effect names a factor the design lacks,
            names one twice, or is empty
    """
    if effect is None:
        return tuple(range(n_factors))

    if isinstance(effect, str):
        letters = [part.strip().upper() for part in effect.lower().split('x')]
        if any(part == '' for part in letters):
            raise ValidationError(f"effect: malformed label {effect!r}")
        available = factor_labels(n_factors)
        indices = []
        for letter in letters:
            if letter not in available:
                raise ValidationError(
                    f"effect: unknown factor {letter!r} in {effect!r}; "
                    f"design has factors {available}"
                )
            indices.append(available.index(letter))
    else:
        try:
            indices = [int(i) for i in effect]
        except TypeError as e:
            raise ValidationError(
                f"effect: expected a label or iterable of factor indices, got {effect!r}"
            ) from e
        for i in indices:
            if not 0 <= i < n_factors:
                raise ValidationError(
                    f"effect: factor index {i} out of range for {n_factors} factor(s)"
                )

    if not indices:
        raise ValidationError("effect: must name at least one factor")
    if len(set(indices)) != len(indices):
        raise ValidationError(f"effect: factor repeated in {effect!r}")
    return tuple(sorted(indices))


def effect_df(
    levels: tuple[int, ...],
    factors: tuple[int, ...],
    n_subjects: int,
) -> tuple[int, int]:
    """
    Degrees of freedom of an effect and of its error term.

    df_effect = prod(levels_i - 1) over the factors in the effect
    df_error  = df_effect * (n_subjects - 1)
    """
    df_effect = 1
    for i in factors:
        df_effect *= levels[i] - 1
    return df_effect, df_effect * (n_subjects - 1)


def reduce_data(
    data: NDArray[np.floating[Any]],
    effect: Any,
) -> NDArray[np.floating[Any]]:
    """
    Average a measurement array over the factors not involved in an effect.

    Within-subjects error terms are effect-specific, so collapsing the
    other factors leaves the effect's F ratio unchanged while making the
    effect the highest-order one of the reduced array. This is how a main
    effect or lower-order interaction of a larger design is handed to the
    permutation test.

    Args:
        data: electrode x time x factor_1 x ... x factor_k x subject
        effect: Effect label or factor indices (see parse_effect)

    Returns:
        Array with only the effect's factor axes left between the time and
        subject axes, in their original order.

    Examples:
        >>> data.shape
        (32, 100, 2, 3, 4, 20)
        >>> reduce_data(data, 'AxC').shape
        (32, 100, 2, 4, 20)
    """
    arr = check_array(data, "data")
    check_min_ndim(arr, 4, "data")
    n_factors = arr.ndim - 3
    keep = parse_effect(effect, n_factors)
    collapse = tuple(
        FIRST_FACTOR_AXIS + i for i in range(n_factors) if i not in keep
    )
    if not collapse:
        return arr
    return arr.mean(axis=collapse)

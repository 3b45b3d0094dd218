"""
Argument checks run at the public boundary.

Every check raises ValidationError (or DimensionError for shape problems)
with the parameter name and the offending value in the message. Nothing
behind the boundary re-validates, and nothing is silently repaired: the
only conversion performed is to a float64 copy of the measurement array.
"""

import numbers
from typing import Any, Iterable

import numpy as np
from numpy.typing import ArrayLike, NDArray

from pyfmax.core.exceptions import ValidationError, DimensionError


def check_array(
    array: ArrayLike,
    name: str,
) -> NDArray[np.floating[Any]]:
    """
    Validate and convert input to a float64 numpy array.

    Accepts any array-like. Rejects inputs that result in object dtype
    (mixed types) or a non-numeric dtype (strings, datetimes).

    Args:
        array: Input to validate
        name: Parameter name for error messages

    Returns:
        numpy.ndarray of dtype float64

    Raises:
        ValidationError: If input cannot be converted to a numeric array
    """
    try:
        converted = np.asarray(array)
    except (ValueError, TypeError) as e:
        raise ValidationError(f"{name}: cannot convert to array: {e}") from e

    kind = converted.dtype
    if kind == object:
        raise ValidationError(
            f"{name}: converted to object dtype, indicating mixed types or non-numeric data"
        )

    if not np.issubdtype(kind, np.number) or np.issubdtype(kind, np.complexfloating):
        raise ValidationError(
            f"{name}: non-numeric dtype {kind}, expected real-valued data"
        )

    # SS terms are differences of large, nearly equal sums
    return converted.astype(np.float64)


def check_finite(array: NDArray[np.floating[Any]], name: str) -> None:
    """
    Verify array contains no NaN or Inf values.

    Raises:
        ValidationError: If array contains non-finite values
    """
    if not np.all(np.isfinite(array)):
        n_nan = int(np.sum(np.isnan(array)))
        n_inf = int(np.sum(np.isinf(array)))
        raise ValidationError(
            f"{name}: contains non-finite values ({n_nan} NaN, {n_inf} Inf); "
            f"every subject needs a complete cell for every condition"
        )


def check_ndim_in(
    array: NDArray[np.floating[Any]],
    allowed: Iterable[int],
    name: str,
) -> None:
    """
    Verify array dimensionality is one of the allowed values.

    Args:
        array: Array to check
        allowed: Permitted numbers of dimensions
        name: Parameter name for error messages

    Raises:
        DimensionError: If array.ndim is not in allowed
    """
    allowed = tuple(allowed)
    if array.ndim not in allowed:
        raise DimensionError(
            f"{name}: expected one of {allowed} dimensions, got {array.ndim}D "
            f"with shape {array.shape}",
            shape=array.shape,
            expected=f"ndim in {allowed}",
        )


def check_min_ndim(
    array: NDArray[np.floating[Any]],
    min_ndim: int,
    name: str,
) -> None:
    """
    Verify array has at least min_ndim dimensions.

    Raises:
        DimensionError: If array.ndim < min_ndim
    """
    if array.ndim < min_ndim:
        raise DimensionError(
            f"{name}: expected at least {min_ndim} dimensions, got {array.ndim}D "
            f"with shape {array.shape}",
            shape=array.shape,
            expected=f"ndim >= {min_ndim}",
        )


def check_axis_size(
    array: NDArray[np.floating[Any]],
    axis: int,
    min_size: int,
    name: str,
) -> None:
    """
    Verify one axis of an array has at least min_size entries.

    Args:
        array: Array to check
        axis: Axis index (negative values count from the end)
        min_size: Minimum required length along axis
        name: Description of the axis for error messages

    Raises:
        ValidationError: If the axis is too short
    """
    size = array.shape[axis]
    if size < min_size:
        raise ValidationError(
            f"{name}: requires at least {min_size}, got {size}"
        )


def check_positive_int(value: Any, name: str) -> int:
    """
    Verify value is an integer >= 1.

    bool is rejected even though it subclasses int.

    Returns:
        The value as a Python int

    Raises:
        ValidationError: If value is not a positive integer
    """
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise ValidationError(
            f"{name}: expected a positive integer, got {type(value).__name__} {value!r}"
        )
    if value < 1:
        raise ValidationError(f"{name} must be >= 1, got {value}")
    return int(value)


def check_probability(value: Any, name: str) -> float:
    """
    Verify value is a float strictly between 0 and 1.

    Raises:
        ValidationError: If value is outside (0, 1)
    """
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise ValidationError(
            f"{name}: expected a number in (0, 1), got {type(value).__name__} {value!r}"
        )
    if not 0.0 < float(value) < 1.0:
        raise ValidationError(f"{name} must be in (0, 1), got {value}")
    return float(value)

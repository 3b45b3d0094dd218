"""
Exceptions raised by pyfmax.

Everything the library raises on bad input derives from PyFmaxError.
Numerically degenerate data is not an error: affected cells come out as
NaN and a warning is attached to the result.
"""


class PyFmaxError(Exception):
    """Base class for pyfmax errors."""


class ValidationError(PyFmaxError):
    """
    An argument failed validation.

    Covers the measurement array (non-numeric, non-finite, too few
    subjects or levels) as well as n_perm, seed, alpha, effect, backend
    and progress.
    """


class DimensionError(ValidationError):
    """
    The measurement array has the wrong number of axes, or its factor axes
    disagree with the declared levels.

    Attributes:
        shape: Shape of the array that was rejected, if known
        expected: What the caller should have passed, e.g. 'ndim in (4, 5, 6)'
    """

    def __init__(
        self,
        message: str,
        shape: tuple[int, ...] | None = None,
        expected: str | None = None,
    ):
        super().__init__(message)
        self.shape = shape
        self.expected = expected

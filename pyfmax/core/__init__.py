"""
Core infrastructure for pyfmax.

Shared abstractions used by the domain submodules:
    protocols: Backend protocol
    result: Generic Result[P] envelope
    exceptions: Exception hierarchy
    validation: Input validators
    compute: Hardware detection, timing, tolerances
"""

from pyfmax.core.protocols import Backend
from pyfmax.core.result import Result
from pyfmax.core.exceptions import (
    PyFmaxError,
    ValidationError,
    DimensionError,
)

__all__ = [
    # Protocols
    "Backend",
    # Result
    "Result",
    # Exceptions
    "PyFmaxError",
    "ValidationError",
    "DimensionError",
]

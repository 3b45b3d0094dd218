"""
Result envelope shared by every backend.

A backend fills a frozen payload (FmaxParams, RBAnovaParams) and wraps it
together with run metadata. Solutions read from the envelope and never
recompute anything.
"""

from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

P = TypeVar('P')


@dataclass(frozen=True)
class Result(Generic[P]):
    """
    Immutable output of Backend.solve().

    Attributes:
        params: Payload with the statistics (F grids, null distribution, df)
        info: Free-form run details, e.g. {'tier': 'twoway', 'residualized': True}
        timing: Seconds per phase plus 'total_seconds'; None when not timed
        backend_name: Which backend ran, e.g. 'cpu_permutation'
        warnings: Human-readable notes on degenerate data; the solvers
            re-emit them as RuntimeWarning
    """
    params: P
    info: dict[str, Any]
    timing: dict[str, float] | None
    backend_name: str
    warnings: tuple[str, ...] = field(default_factory=tuple)

    def has_warning(self, substring: str) -> bool:
        return any(substring in w for w in self.warnings)

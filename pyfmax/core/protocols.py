"""
Backend interface.

CPUPermutationBackend and GPUPermutationBackend both satisfy Backend
structurally; the solvers pick one at call time.
"""

from typing import TYPE_CHECKING, Protocol, TypeVar, runtime_checkable

if TYPE_CHECKING:
    from pyfmax.core.result import Result

D = TypeVar('D', contravariant=True)
P = TypeVar('P', covariant=True)


@runtime_checkable
class Backend(Protocol[D, P]):
    """Turns a validated design D into a Result[P]."""

    @property
    def name(self) -> str:
        """'{device}_{method}', e.g. 'cpu_permutation', 'gpu_cuda_permutation'."""
        ...

    def solve(self, design: D) -> 'Result[P]':
        ...

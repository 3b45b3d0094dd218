"""
Permutation backends.

Available backends:
    CPUPermutationBackend: NumPy, one permutation at a time
    GPUPermutationBackend: PyTorch, batched (imported on demand, needs torch)
"""

from pyfmax.rbanova.backends.cpu import CPUPermutationBackend

__all__ = [
    "CPUPermutationBackend",
]

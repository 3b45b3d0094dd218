"""
Numerical tolerances.

SS_CLAMP_TOLERANCE is part of the statistic itself. The ToleranceTier
constants say how closely each permutation backend reproduces the float64
CPU results; the GPU tests compare against them.
"""

from dataclasses import dataclass


# Effect SS below this is treated as exactly zero before forming F.
SS_CLAMP_TOLERANCE = 1e-12

# Slack allowed when the partition terms are summed back to the total SS.
SS_PARTITION_ATOL = 1e-9

# Error SS at or below this fraction of the cell's raw sum of squares
# (sum of x^2 over conditions and subjects) counts as zero variance.
SS_ERROR_RTOL = 1e-12

# Same threshold for float32 evaluation (MPS)
SS_ERROR_RTOL_FP32 = 1e-5



@dataclass(frozen=True)
class ToleranceTier:
    """rtol/atol pair for comparing a backend's output with the CPU output."""
    rtol: float
    atol: float
    name: str
    description: str


CPU_FP64 = ToleranceTier(
    rtol=1e-10,
    atol=1e-9,
    name='cpu_fp64',
    description='NumPy float64, the reference path',
)

# CUDA keeps float64; only summation order differs from NumPy
GPU_FP64 = ToleranceTier(
    rtol=1e-8,
    atol=1e-9,
    name='gpu_fp64',
    description='PyTorch float64 on CUDA',
)

# MPS has no float64
GPU_FP32 = ToleranceTier(
    rtol=1e-3,
    atol=1e-4,
    name='gpu_fp32',
    description='PyTorch float32 on MPS',
)


def select_tolerance(backend_name: str) -> ToleranceTier:
    """Tier for a Result.backend_name such as 'gpu_mps_permutation'."""
    if not backend_name.startswith('gpu'):
        return CPU_FP64
    return GPU_FP32 if 'mps' in backend_name else GPU_FP64

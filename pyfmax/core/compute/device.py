"""
Compute device discovery.

backend='auto' and backend='gpu' are resolved here. PyTorch is optional:
it is imported only when a GPU is asked about, and a missing install simply
means no GPU.
"""

import platform
from dataclasses import dataclass
from typing import Literal

DeviceType = Literal['cpu', 'cuda', 'mps']


@dataclass(frozen=True)
class DeviceInfo:
    """
    One compute device.

    device_index is None for the CPU; memory_bytes is None where the
    runtime does not report it (CPU, MPS).
    """
    device_type: DeviceType
    device_index: int | None
    name: str
    memory_bytes: int | None

    @property
    def is_gpu(self) -> bool:
        return self.device_type != 'cpu'

    def __str__(self) -> str:
        if not self.is_gpu:
            return f"CPU ({self.name})"
        label = f"{self.device_type.upper()}:{self.device_index} ({self.name}"
        if self.memory_bytes is not None:
            label += f", {self.memory_bytes / 1024**3:.1f}GB"
        return label + ")"


def detect_gpu() -> DeviceInfo | None:
    """First usable GPU (CUDA before MPS), or None."""
    try:
        import torch
    except ImportError:
        return None

    if torch.cuda.is_available():
        index = torch.cuda.current_device()
        props = torch.cuda.get_device_properties(index)
        return DeviceInfo('cuda', index, props.name, props.total_memory)

    mps = getattr(torch.backends, 'mps', None)
    if mps is not None and mps.is_available():
        return DeviceInfo('mps', 0, 'Apple Silicon GPU', None)

    return None


def get_cpu_info() -> DeviceInfo:
    name = platform.processor() or platform.machine() or "Unknown CPU"
    return DeviceInfo('cpu', None, name, None)


def select_device(prefer: Literal['cpu', 'gpu', 'auto'] = 'auto') -> DeviceInfo:
    """
    Resolve a device preference.

    'cpu' never looks for a GPU, 'gpu' insists on one, and 'auto' takes a
    GPU when present and falls back to the CPU otherwise.

    Raises:
        RuntimeError: prefer='gpu' and no GPU is usable
    """
    if prefer == 'cpu':
        return get_cpu_info()

    gpu = detect_gpu()
    if gpu is not None:
        return gpu
    if prefer == 'gpu':
        raise RuntimeError(
            "GPU requested but none is available; install PyTorch with CUDA "
            "or MPS support, or use backend='cpu'"
        )
    return get_cpu_info()

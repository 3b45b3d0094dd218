"""
Shared compute infrastructure for pyfmax.

Device selection, section timing and numerical tolerances used by the
permutation backends in pyfmax.rbanova.backends.

Submodules:
    device: Hardware detection and device selection
    timing: Execution timing utilities
    tolerances: Clamp tolerance and precision tiers
"""

from pyfmax.core.compute.device import (
    DeviceInfo,
    detect_gpu,
    get_cpu_info,
    select_device,
)
from pyfmax.core.compute.timing import Timer, timed

__all__ = [
    # Device detection
    "DeviceInfo",
    "detect_gpu",
    "get_cpu_info",
    "select_device",
    # Timing
    "Timer",
    "timed",
]

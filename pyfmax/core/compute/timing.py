"""
Wall-clock timing for backends.

Backends time the phases of a run ('residualize', 'observed',
'permutations') and hand the breakdown back in Result.timing. CUDA kernels
run asynchronously, so a timer built with sync_cuda=True waits for the
device at every boundary it measures.
"""

import time
from contextlib import contextmanager
from typing import Iterator


def _cuda_synchronize() -> None:
    import torch

    if torch.cuda.is_available():
        torch.cuda.synchronize()


class Timer:
    """
    Total run time plus accumulated time per named section.

        timer = Timer()
        timer.start()
        with timer.section('observed'):
            ...
        timer.stop()
        timer.result()   # {'total_seconds': ..., 'observed': ...}
    """

    def __init__(self, sync_cuda: bool = False):
        self._sync_cuda = sync_cuda
        self._sections: dict[str, float] = {}
        self._started: float | None = None
        self._elapsed: float | None = None

    def _now(self) -> float:
        if self._sync_cuda:
            _cuda_synchronize()
        return time.perf_counter()

    def start(self) -> None:
        self._started = self._now()

    def stop(self) -> None:
        if self._started is None:
            raise RuntimeError("Timer.stop() called before start()")
        self._elapsed = self._now() - self._started

    @contextmanager
    def section(self, name: str) -> Iterator[None]:
        """Time a block; repeated names add up under one key."""
        begin = self._now()
        try:
            yield
        finally:
            self._sections[name] = self._sections.get(name, 0.0) + (self._now() - begin)

    def result(self) -> dict[str, float]:
        """'total_seconds' followed by the sections in first-use order."""
        if self._elapsed is None:
            raise RuntimeError("Timer.result() called before stop()")
        return {'total_seconds': self._elapsed, **self._sections}


@contextmanager
def timed(sync_cuda: bool = False) -> Iterator[Timer]:
    """Started Timer for the duration of a with-block; stopped on exit."""
    timer = Timer(sync_cuda=sync_cuda)
    timer.start()
    try:
        yield timer
    finally:
        timer.stop()

"""
Progress reporting for long permutation runs.

Progress is a side channel passed in at call time: it never changes
results and there is no process-wide verbosity switch.

    progress=None / False   silent
    progress=True           tqdm progress bar
    progress=callable       progress(completed, total), called every
                            `interval` permutations and once at the end
"""

from typing import Any, Callable

from tqdm import tqdm

from pyfmax.core.exceptions import ValidationError

ProgressCallback = Callable[[int, int], Any]

DEFAULT_INTERVAL = 1000


class ProgressReporter:
    """Context manager that forwards loop progress to the configured sink."""

    def __init__(
        self,
        progress: bool | ProgressCallback | None,
        total: int,
        *,
        interval: int = DEFAULT_INTERVAL,
        desc: str = "Permutations",
    ):
        if progress is not None and not isinstance(progress, bool) and not callable(progress):
            raise ValidationError(
                f"progress: expected None, bool or callable(completed, total), "
                f"got {type(progress).__name__}"
            )
        self._callback = progress if callable(progress) else None
        self._total = total
        self._interval = interval
        self._bar = None
        if progress is True:
            self._bar = tqdm(total=total, desc=desc, unit="perm")

    def update(self, completed: int) -> None:
        """Report that `completed` permutations (including the observed one) are done."""
        if self._bar is not None:
            self._bar.update(completed - self._bar.n)
        if self._callback is not None:
            if completed == self._total or completed % self._interval == 0:
                self._callback(completed, self._total)

    def close(self) -> None:
        if self._bar is not None:
            self._bar.close()
            self._bar = None

    def __enter__(self) -> 'ProgressReporter':
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

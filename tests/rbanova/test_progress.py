"""
Tests for ProgressReporter.
"""

import pytest

from pyfmax.core.exceptions import ValidationError
from pyfmax.rbanova._progress import ProgressReporter


class TestProgressReporter:

    def test_silent(self):
        with ProgressReporter(None, 10) as reporter:
            for i in range(1, 11):
                reporter.update(i)

    def test_false_is_silent(self):
        with ProgressReporter(False, 10) as reporter:
            reporter.update(10)

    def test_callback_interval(self):
        calls = []
        with ProgressReporter(lambda d, t: calls.append((d, t)), 25, interval=10) as reporter:
            for i in range(1, 26):
                reporter.update(i)
        assert calls == [(10, 25), (20, 25), (25, 25)]

    def test_bar_reaches_total(self):
        reporter = ProgressReporter(True, 5)
        for i in range(1, 6):
            reporter.update(i)
        assert reporter._bar.n == 5
        reporter.close()
        assert reporter._bar is None

    def test_batched_updates(self):
        reporter = ProgressReporter(True, 100)
        reporter.update(1)
        reporter.update(65)
        reporter.update(100)
        assert reporter._bar.n == 100
        reporter.close()

    @pytest.mark.parametrize("progress", ["yes", 1, 0.5])
    def test_rejects_other_types(self, progress):
        with pytest.raises(ValidationError, match="progress"):
            ProgressReporter(progress, 10)

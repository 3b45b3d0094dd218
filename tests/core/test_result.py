"""
Tests for the Result[P] envelope.

Validates:
    - Generic type parameter works with arbitrary payload types
    - Frozen immutability
    - Default warnings tuple
    - has_warning() method
"""

from dataclasses import FrozenInstanceError, dataclass

import numpy as np
import pytest

from pyfmax.core.result import Result


@dataclass(frozen=True)
class FakeParams:
    """Minimal payload for testing."""
    f_max: float


@dataclass(frozen=True)
class GridParams:
    """Payload holding an array."""
    f_obs: np.ndarray
    effect: str


# ═══════════════════════════════════════════════════════════════════════
# Construction and field access
# ═══════════════════════════════════════════════════════════════════════


class TestResultConstruction:
    """Result can be created with any payload type."""

    def test_basic_creation(self):
        result = Result(
            params=FakeParams(f_max=4.2),
            info={"tier": "oneway"},
            timing={"total_seconds": 0.01},
            backend_name="cpu_permutation",
        )
        assert result.params.f_max == 4.2
        assert result.info["tier"] == "oneway"
        assert result.timing["total_seconds"] == 0.01
        assert result.backend_name == "cpu_permutation"

    def test_array_payload(self):
        grid = np.ones((2, 3))
        result = Result(
            params=GridParams(f_obs=grid, effect="AxB"),
            info={},
            timing=None,
            backend_name="cpu_permutation",
        )
        assert result.params.f_obs.shape == (2, 3)
        assert result.params.effect == "AxB"

    def test_timing_may_be_none(self):
        result = Result(params=FakeParams(1.0), info={}, timing=None, backend_name="cpu")
        assert result.timing is None

    def test_default_warnings_empty_tuple(self):
        result = Result(params=FakeParams(1.0), info={}, timing=None, backend_name="cpu")
        assert result.warnings == ()


# ═══════════════════════════════════════════════════════════════════════
# Immutability
# ═══════════════════════════════════════════════════════════════════════


class TestResultFrozen:
    """Fields cannot be reassigned."""

    def test_cannot_set_params(self):
        result = Result(params=FakeParams(1.0), info={}, timing=None, backend_name="cpu")
        with pytest.raises(FrozenInstanceError):
            result.params = FakeParams(2.0)

    def test_cannot_set_backend_name(self):
        result = Result(params=FakeParams(1.0), info={}, timing=None, backend_name="cpu")
        with pytest.raises(FrozenInstanceError):
            result.backend_name = "gpu"


# ═══════════════════════════════════════════════════════════════════════
# has_warning
# ═══════════════════════════════════════════════════════════════════════


class TestHasWarning:

    def test_substring_match(self):
        result = Result(
            params=FakeParams(1.0),
            info={},
            timing=None,
            backend_name="cpu",
            warnings=("3 of 40 electrode/time cells have zero error variance",),
        )
        assert result.has_warning("zero error variance")

    def test_no_match(self):
        result = Result(
            params=FakeParams(1.0),
            info={},
            timing=None,
            backend_name="cpu",
            warnings=("something else",),
        )
        assert not result.has_warning("NaN")

    def test_no_warnings(self):
        result = Result(params=FakeParams(1.0), info={}, timing=None, backend_name="cpu")
        assert not result.has_warning("anything")

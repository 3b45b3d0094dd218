"""
Tests for the batched GPU permutation backend.

The device tests compare against the CPU backend with the same seed and
are skipped if no GPU (CUDA or MPS) is available. The batched
inclusion-exclusion kernel is also checked on torch's CPU device, which
only needs PyTorch to be installed.
"""

import numpy as np
import pytest

from pyfmax import perm_rbanova
from pyfmax.core.compute.tolerances import select_tolerance
from pyfmax.rbanova._ss import sums_of_squares
from pyfmax.rbanova.backends.cpu import CPUPermutationBackend
from pyfmax.rbanova.design import RBAnovaDesign


@pytest.fixture
def gpu_available():
    """Skip if no GPU is available."""
    try:
        import torch
        has_cuda = torch.cuda.is_available()
        has_mps = hasattr(torch.backends, 'mps') and torch.backends.mps.is_available()
        if not (has_cuda or has_mps):
            pytest.skip("No GPU available")
        return 'cuda' if has_cuda else 'mps'
    except ImportError:
        pytest.skip("PyTorch not installed")


# ---------------------------------------------------------------------------
# Batched kernel on the CPU device
# ---------------------------------------------------------------------------

class TestMobiusKernel:

    @pytest.mark.parametrize("levels, label", [
        ((3,), 'A'),
        ((2, 3), 'AxB'),
        ((2, 2, 3), 'AxBxC'),
    ])
    def test_matches_closed_form(self, data_factory, levels, label):
        torch = pytest.importorskip("torch")
        from pyfmax.rbanova.backends.gpu import _mobius_ss

        data = data_factory(levels, effects={(0,): 2.0})
        terms = sums_of_squares(data)
        batch = torch.as_tensor(data[None], dtype=torch.float64)

        effect_axes = tuple(range(3, 3 + len(levels)))
        subject_axis = batch.ndim - 1
        ss_effect = _mobius_ss(batch, effect_axes)[0].numpy()
        ss_error = _mobius_ss(batch, effect_axes + (subject_axis,))[0].numpy()

        np.testing.assert_allclose(ss_effect, terms[label], rtol=1e-9, atol=1e-9)
        np.testing.assert_allclose(ss_error, terms[label + 'xS'], rtol=1e-9, atol=1e-9)


# ---------------------------------------------------------------------------
# Device tests
# ---------------------------------------------------------------------------

class TestGPUPermutation:

    @pytest.mark.parametrize("fixture", ['oneway_data', 'twoway_data', 'threeway_data'])
    def test_matches_cpu(self, request, gpu_available, fixture):
        from pyfmax.rbanova.backends.gpu import GPUPermutationBackend

        design = RBAnovaDesign.for_permutation(request.getfixturevalue(fixture), 53, seed=17)
        gpu = GPUPermutationBackend(device=gpu_available, batch_size=10).solve(design)
        cpu = CPUPermutationBackend().solve(design)

        tol = select_tolerance(gpu.backend_name)
        np.testing.assert_array_equal(gpu.params.f_obs, cpu.params.f_obs)
        np.testing.assert_allclose(
            gpu.params.f_dist, cpu.params.f_dist, rtol=tol.rtol, atol=tol.atol,
        )

    def test_backend_name_and_info(self, scenario_data, gpu_available):
        res = perm_rbanova(scenario_data, 20, seed=1, backend='gpu')
        assert res.backend_name == f'gpu_{gpu_available}_permutation'
        assert res.info['device'] == gpu_available
        assert {'observed', 'permutations'} <= set(res.timing)

    def test_single_permutation(self, scenario_data, gpu_available):
        res = perm_rbanova(scenario_data, 1, backend='gpu')
        assert res.f_dist.shape == (1,)
        assert res.f_dist[0] == np.max(res.f_obs)

    def test_progress_callback(self, scenario_data, gpu_available):
        calls = []
        perm_rbanova(scenario_data, 30, seed=0, backend='gpu',
                     progress=lambda done, total: calls.append(done))
        assert calls[-1] == 30

    @pytest.mark.parametrize("value", [3.0, 0.1])
    @pytest.mark.parametrize("shape", [(2, 2, 3, 4), (2, 2, 2, 2, 4)])
    def test_constant_data_nan(self, gpu_available, shape, value):
        with pytest.warns(RuntimeWarning):
            res = perm_rbanova(np.full(shape, value), 12, seed=0, backend='gpu')
        assert np.all(np.isnan(res.f_dist))

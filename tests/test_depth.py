"""Tests for depth measures."""

import numpy as np
import pytest

from bikefda import FData, InsufficientDataError
from bikefda.depth import central_region, depth, depth_bd, depth_mbd, median_curve


@pytest.fixture
def sample_fdata(hours):
    """Noisy daily profiles."""
    np.random.seed(42)
    X = np.zeros((20, 24))
    for i in range(20):
        X[i, :] = np.sin(2 * np.pi * hours / 24) + 0.3 * np.random.randn(24)
    return FData(X, argvals=hours)


class TestDepthFunctions:
    """Tests for depth computation."""

    def test_depth_bd(self, sample_fdata):
        depths = depth_bd(sample_fdata)
        assert depths.shape == (sample_fdata.n_samples,)
        assert np.all(depths >= 0)
        assert np.all(depths <= 1)

    def test_depth_mbd(self, sample_fdata):
        depths = depth_mbd(sample_fdata)
        assert depths.shape == (sample_fdata.n_samples,)
        assert np.all(depths >= 0)
        assert np.all(depths <= 1)

    def test_depth_dispatcher(self, sample_fdata):
        np.testing.assert_array_equal(depth(sample_fdata, method="BD"), depth_bd(sample_fdata))
        np.testing.assert_array_equal(depth(sample_fdata), depth_mbd(sample_fdata))

    def test_unknown_method(self, sample_fdata):
        with pytest.raises(ValueError, match="Unknown depth method"):
            depth(sample_fdata, method="FM")

    def test_step_curves_mbd(self, step_curves):
        """The middle level is deeper than the extremes."""
        depths = depth_mbd(step_curves)
        np.testing.assert_allclose(depths, [0.0, 0.5, 4 / 6, 0.5, 0.0])

    def test_step_curves_bd(self, step_curves):
        """Constant curves have equal band and modified band depth."""
        np.testing.assert_allclose(depth_bd(step_curves), depth_mbd(step_curves))

    @pytest.mark.parametrize("method", ["BD", "MBD"])
    def test_permutation_equivariance(self, sample_fdata, method):
        perm = np.random.RandomState(0).permutation(sample_fdata.n_samples)
        depths = depth(sample_fdata, method=method)
        permuted = depth(sample_fdata[perm], method=method)
        np.testing.assert_allclose(permuted, depths[perm])

    def test_mbd_brute_force(self, sample_fdata):
        """Sorted-rank counting agrees with enumerating pairs."""
        X = sample_fdata.data[:8]
        n = X.shape[0]
        expected = np.zeros(n)
        for i in range(n):
            others = [j for j in range(n) if j != i]
            total = 0.0
            count = 0
            for a in range(len(others)):
                for b in range(a + 1, len(others)):
                    lo = np.minimum(X[others[a]], X[others[b]])
                    hi = np.maximum(X[others[a]], X[others[b]])
                    total += np.mean((lo <= X[i]) & (X[i] <= hi))
                    count += 1
            expected[i] = total / count
        np.testing.assert_allclose(depth_mbd(FData(X)), expected)

    def test_step_channel_matrix(self, step_channel, hours):
        """Days that jump at noon keep the depth order of their levels."""
        fd = FData.from_channel_matrix(step_channel, hours)
        assert fd.data.shape == (5, 24)
        expected = np.array([4 / 6, 0.0, 0.0, 0.5, 0.5])
        np.testing.assert_allclose(depth_mbd(fd), expected)
        np.testing.assert_allclose(depth_bd(fd), expected)
        assert np.argmax(depth_mbd(fd)) == 0

    def test_bd_brute_force(self, sample_fdata):
        """Matrix-product counting agrees with enumerating pairs."""
        X = sample_fdata.data[:9].copy()
        X[3] = X[4]
        X[:, 5] = 0.0
        n = X.shape[0]
        expected = np.zeros(n)
        for i in range(n):
            others = [j for j in range(n) if j != i]
            count = 0
            inside = 0
            for a in range(len(others)):
                for b in range(a + 1, len(others)):
                    lo = np.minimum(X[others[a]], X[others[b]])
                    hi = np.maximum(X[others[a]], X[others[b]])
                    inside += np.all((lo <= X[i]) & (X[i] <= hi))
                    count += 1
            expected[i] = inside / count
        np.testing.assert_allclose(depth_bd(FData(X)), expected)

    def test_ties_count_as_contained(self, hours):
        X = np.vstack([np.zeros(24), np.zeros(24), np.ones(24)])
        np.testing.assert_allclose(depth_bd(FData(X, argvals=hours)), [1.0, 1.0, 0.0])

    def test_basis_input(self, smoothed_counts):
        depths = depth(smoothed_counts, argvals=np.arange(24.0))
        assert depths.shape == (30,)

    def test_too_few_curves(self, step_curves):
        with pytest.raises(InsufficientDataError):
            depth_mbd(step_curves[:2])


class TestMedianAndRegion:
    """Tests for depth-based summaries."""

    def test_median_curve(self, step_curves):
        result = median_curve(step_curves)
        assert result["index"] == 2
        np.testing.assert_array_equal(result["median"], np.full(24, 3.0))

    def test_median_first_on_ties(self, hours):
        X = np.vstack([np.zeros(24), np.ones(24), np.ones(24), 2 * np.ones(24)])
        assert median_curve(FData(X, argvals=hours))["index"] == 1

    def test_central_region(self, step_curves):
        result = central_region(step_curves, 0.5)
        np.testing.assert_array_equal(result["members"], [False, True, True, True, False])
        np.testing.assert_array_equal(result["lower"], np.full(24, 2.0))
        np.testing.assert_array_equal(result["upper"], np.full(24, 4.0))

    def test_region_quantile_range(self, step_curves):
        with pytest.raises(ValueError):
            central_region(step_curves, 1.5)

"""Tests for the FData container."""

import numpy as np
import pytest

from bikefda import DimensionError, FData, fdata


class TestFData:
    """Tests for FData."""

    def test_creation(self):
        X = np.random.randn(5, 24)
        fd = FData(X)
        assert fd.n_samples == 5
        assert fd.n_points == 24
        assert fd.shape == (5, 24)
        np.testing.assert_array_equal(fd.argvals, np.arange(24.0))
        assert fd.rangeval == (0.0, 23.0)

    def test_from_channel_matrix(self, daily_counts, hours):
        """Columns of a channel matrix become rows."""
        fd = FData.from_channel_matrix(daily_counts, hours)
        assert fd.shape == (30, 24)
        np.testing.assert_array_equal(fd.data[3], daily_counts[:, 3])

    def test_argvals_mismatch(self):
        with pytest.raises(DimensionError):
            FData(np.zeros((3, 24)), argvals=np.arange(23.0))

    def test_subsetting(self):
        fd = FData(np.arange(48.0).reshape(4, 12))
        assert len(fd[1:3]) == 2
        assert fd[2].id == ["obs_2"]
        sub = fd[np.array([True, False, True, False])]
        assert sub.id == ["obs_0", "obs_2"]

    def test_mean(self):
        fd = FData(np.array([[1.0, 2.0], [3.0, 4.0]]))
        np.testing.assert_allclose(fd.mean(), [2.0, 3.0])

    def test_copy_is_deep(self):
        fd = FData(np.zeros((2, 3)))
        fd2 = fd.copy()
        fd2.data[0, 0] = 1.0
        assert fd.data[0, 0] == 0.0

    def test_repr(self):
        assert repr(fdata(np.zeros((3, 24)))) == "FData(n_samples=3, n_points=24)"

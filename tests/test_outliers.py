"""Tests for outlier detection and depth comparison."""

import numpy as np
import pytest

from bikefda import DimensionError, FData, InsufficientDataError
from bikefda.outliers import depth_rank_test, outliers_depth


@pytest.fixture
def fdata_with_outlier(hours):
    """Daily profiles with two shifted days."""
    np.random.seed(42)
    n = 20
    X = np.zeros((n, 24))

    # Normal curves
    for i in range(n - 2):
        X[i, :] = np.sin(2 * np.pi * hours / 24) + 0.1 * np.random.randn(24)

    # Outliers (shifted up)
    X[n - 2, :] = np.sin(2 * np.pi * hours / 24) + 5.0
    X[n - 1, :] = np.sin(2 * np.pi * hours / 24) + 5.0

    return FData(X, argvals=hours)


@pytest.fixture
def homogeneous_fdata(hours):
    """Daily profiles without outliers."""
    np.random.seed(42)
    X = np.zeros((20, 24))
    for i in range(20):
        X[i, :] = np.sin(2 * np.pi * hours / 24) + 0.05 * np.random.randn(24)
    return FData(X, argvals=hours)


class TestOutliersDepth:
    """Tests for depth-based outlier detection."""

    def test_returns_dict(self, homogeneous_fdata):
        """Returns expected keys."""
        result = outliers_depth(homogeneous_fdata, 0.05)
        assert "outliers" in result
        assert "depths" in result
        assert "threshold" in result

    def test_shapes(self, homogeneous_fdata):
        result = outliers_depth(homogeneous_fdata, 0.05)
        assert result["outliers"].shape == (homogeneous_fdata.n_samples,)
        assert result["depths"].shape == (homogeneous_fdata.n_samples,)

    def test_finds_obvious_outlier(self, fdata_with_outlier):
        """The shifted days are the least deep."""
        result = outliers_depth(fdata_with_outlier, quantile=0.1)
        assert result["outliers"][-1] and result["outliers"][-2]
        assert not np.any(result["outliers"][:-2])

    def test_depth_methods(self, fdata_with_outlier):
        for method in ["BD", "MBD"]:
            result = outliers_depth(fdata_with_outlier, 0.1, depth_method=method)
            assert result["outliers"].dtype == bool

    def test_quantile_effect(self, homogeneous_fdata):
        """Higher quantile detects more outliers."""
        result_low = outliers_depth(homogeneous_fdata, quantile=0.01)
        result_high = outliers_depth(homogeneous_fdata, quantile=0.2)
        assert np.sum(result_high["outliers"]) >= np.sum(result_low["outliers"])

    def test_quantile_required(self, homogeneous_fdata):
        with pytest.raises(TypeError):
            outliers_depth(homogeneous_fdata)

    def test_quantile_range(self, homogeneous_fdata):
        with pytest.raises(ValueError):
            outliers_depth(homogeneous_fdata, -0.1)


class TestDepthRankTest:
    """Tests for the rank-sum comparison of depths."""

    def test_separated_groups(self):
        depths = np.concatenate([np.linspace(0.6, 0.9, 10), np.linspace(0.1, 0.4, 10)])
        groups = np.array(["weekday"] * 10 + ["weekend"] * 10)
        result = depth_rank_test(depths, groups, "weekday", "weekend")
        assert result["statistic"] == 100.0
        assert result["p_value"] < 0.001
        assert result["n_a"] == result["n_b"] == 10
        assert result["median_a"] > result["median_b"]

    def test_identical_groups(self):
        depths = np.tile([0.1, 0.2, 0.3, 0.4], 2)
        groups = np.repeat([0, 1], 4)
        result = depth_rank_test(depths, groups, 0, 1)
        assert result["p_value"] > 0.9

    def test_length_mismatch(self):
        with pytest.raises(DimensionError):
            depth_rank_test(np.zeros(4), np.zeros(3), 0, 1)

    def test_empty_group(self):
        with pytest.raises(InsufficientDataError):
            depth_rank_test(np.zeros(4), np.zeros(4), 0, 1)

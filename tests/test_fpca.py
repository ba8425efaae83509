"""Tests for functional principal component analysis."""

import numpy as np
import pytest

from bikefda import FDataBasis, InsufficientDataError
from bikefda.fpca import pca_fd, varimax


class TestPcaFd:
    """Tests for pca_fd."""

    def test_shapes(self, smoothed_counts):
        hs = pca_fd(smoothed_counts, nharm=3)
        assert hs.nharm == len(hs) == 3
        assert hs.harmonics.coefs.shape == (12, 3)
        assert hs.values.shape == (12,)
        assert hs.varprop.shape == (3,)
        assert hs.scores.shape == (30, 3)
        assert hs.harmonics.id == ["harmonic_1", "harmonic_2", "harmonic_3"]

    def test_harmonics_orthonormal(self, smoothed_counts):
        """Harmonics are orthonormal under the L2 inner product."""
        hs = pca_fd(smoothed_counts, nharm=4)
        np.testing.assert_allclose(hs.harmonics.inner_product(), np.eye(4), atol=1e-8)

    def test_values_non_increasing(self, smoothed_counts):
        hs = pca_fd(smoothed_counts, nharm=2)
        assert np.all(np.diff(hs.values) <= 1e-10)
        assert np.all(hs.values >= 0)

    def test_proportions_over_all_values(self, smoothed_counts):
        """Proportions of all harmonics sum to one."""
        nbasis = smoothed_counts.basis.nbasis
        hs = pca_fd(smoothed_counts, nharm=nbasis)
        np.testing.assert_allclose(hs.varprop.sum(), 1.0)
        assert pca_fd(smoothed_counts, nharm=2).varprop.sum() < 1.0

    def test_first_harmonic_dominates(self, smoothed_counts):
        """Day-to-day scaling of one profile is a single mode of variation."""
        hs = pca_fd(smoothed_counts, nharm=2)
        assert hs.varprop[0] > 0.7
        assert hs.varprop[0] > 5 * hs.varprop[1]

    def test_score_variance_matches_values(self, smoothed_counts):
        hs = pca_fd(smoothed_counts, nharm=3)
        np.testing.assert_allclose(np.mean(hs.scores**2, axis=0), hs.values[:3], rtol=1e-8)

    def test_reconstruction(self, smoothed_counts):
        """Mean plus all harmonics weighted by their scores recovers the curves."""
        nbasis = smoothed_counts.basis.nbasis
        hs = pca_fd(smoothed_counts, nharm=nbasis)
        coefs = hs.meanfd.coefs + hs.harmonics.coefs @ hs.scores.T
        np.testing.assert_allclose(coefs, smoothed_counts.coefs, atol=1e-6)

    def test_sign_convention(self, smoothed_counts):
        hs = pca_fd(smoothed_counts, nharm=3)
        coefs = hs.harmonics.coefs
        pivot = np.argmax(np.abs(coefs), axis=0)
        assert np.all(coefs[pivot, np.arange(3)] > 0)

    def test_too_few_curves(self, smoothed_counts):
        with pytest.raises(InsufficientDataError):
            pca_fd(smoothed_counts[0], nharm=1)

    def test_too_many_harmonics(self, smoothed_counts):
        with pytest.raises(InsufficientDataError):
            pca_fd(smoothed_counts, nharm=13)

    def test_invalid_nharm(self, smoothed_counts):
        with pytest.raises(ValueError):
            pca_fd(smoothed_counts, nharm=0)

    def test_constant_curves(self, smoothed_counts):
        same = FDataBasis(smoothed_counts.basis, np.repeat(smoothed_counts.coefs[:, :1], 5, axis=1))
        with pytest.raises(InsufficientDataError):
            pca_fd(same)


class TestVarimax:
    """Tests for the varimax rotation."""

    def test_rotation_orthogonal(self, smoothed_counts):
        rotated = varimax(pca_fd(smoothed_counts, nharm=3))
        R = rotated.rotation
        np.testing.assert_allclose(R.T @ R, np.eye(3), atol=1e-10)

    def test_preserves_total_variance(self, smoothed_counts):
        """Rotation redistributes but keeps the explained variance."""
        hs = pca_fd(smoothed_counts, nharm=3)
        rotated = varimax(hs)
        np.testing.assert_allclose(rotated.varprop.sum(), hs.varprop.sum(), rtol=1e-8)
        np.testing.assert_allclose(rotated.harmonics.inner_product(), np.eye(3), atol=1e-8)

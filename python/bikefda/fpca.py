"""Functional principal component analysis of basis-expanded curves."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np
import scipy.linalg
from numpy.typing import NDArray

from .basis import FDataBasis, eval_grid
from .exceptions import InsufficientDataError


@dataclass
class HarmonicSet:
    """Result of a functional PCA.

    Attributes
    ----------
    harmonics : FDataBasis
        Principal component functions, one curve per harmonic, orthonormal
        under the L2 inner product.
    values : ndarray, shape (nbasis,)
        All eigenvalues in non-increasing order.
    varprop : ndarray, shape (nharm,)
        Share of the total variance carried by each retained harmonic.
    scores : ndarray, shape (n_curves, nharm)
        Inner products of the centered curves with the harmonics.
    meanfd : FDataBasis
        Mean function removed before the decomposition.
    rotation : ndarray, shape (nharm, nharm), optional
        Rotation applied to the harmonics, set by :func:`varimax`.
    """

    harmonics: FDataBasis
    values: NDArray[np.float64]
    varprop: NDArray[np.float64]
    scores: NDArray[np.float64]
    meanfd: FDataBasis
    rotation: Optional[NDArray[np.float64]] = None

    def __len__(self) -> int:
        return self.harmonics.n_curves

    def __getitem__(self, k: int) -> FDataBasis:
        """The k-th harmonic (0-based)."""
        return self.harmonics[k]

    @property
    def nharm(self) -> int:
        """Number of retained harmonics."""
        return self.harmonics.n_curves


def pca_fd(fd: FDataBasis, nharm: int = 2) -> HarmonicSet:
    """Functional Principal Component Analysis (FPCA).

    Solves the generalized eigenproblem ``J C J v = mu J v`` where ``C`` is
    the covariance of the centered coefficients and ``J`` the Gram matrix of
    the basis, so the harmonics ``phi' v`` are orthonormal functions.

    Parameters
    ----------
    fd : FDataBasis
        Smoothed curves.
    nharm : int, default=2
        Number of harmonics to keep.

    Returns
    -------
    result : HarmonicSet

    Raises
    ------
    InsufficientDataError
        If there are fewer than two curves, ``nharm`` exceeds the basis
        dimension or the curves do not vary.
    """
    if nharm < 1:
        raise ValueError(f"nharm must be at least 1, got {nharm}")
    if fd.n_curves < 2:
        raise InsufficientDataError(f"FPCA needs at least 2 curves, got {fd.n_curves}")
    nbasis = fd.basis.nbasis
    if nharm > nbasis:
        raise InsufficientDataError(f"nharm={nharm} exceeds the basis dimension {nbasis}")

    meanfd = fd.mean()
    ctemp = fd.coefs - meanfd.coefs
    cov = ctemp @ ctemp.T / fd.n_curves
    gram = fd.basis.gram_matrix()

    jcj = gram @ cov @ gram
    values, vectors = scipy.linalg.eigh((jcj + jcj.T) / 2.0, gram)
    order = np.argsort(values)[::-1]
    values = np.clip(values[order], 0.0, None)
    vectors = vectors[:, order]

    total = values.sum()
    if total <= 0:
        raise InsufficientDataError("the curves do not vary; no principal components exist")

    # fix signs: largest-magnitude coefficient positive
    pivot = np.argmax(np.abs(vectors), axis=0)
    vectors = vectors * np.sign(vectors[pivot, np.arange(nbasis)])

    harmcoefs = vectors[:, :nharm]
    return HarmonicSet(
        harmonics=FDataBasis(fd.basis, harmcoefs, id=[f"harmonic_{k + 1}" for k in range(nharm)]),
        values=values,
        varprop=values[:nharm] / total,
        scores=ctemp.T @ gram @ harmcoefs,
        meanfd=meanfd,
    )


def _varimax_rotation(loadings: NDArray[np.float64], max_iter: int = 500, tol: float = 1e-10) -> NDArray[np.float64]:
    p, k = loadings.shape
    rotation = np.eye(k)
    criterion = 0.0
    for _ in range(max_iter):
        rotated = loadings @ rotation
        target = rotated**3 - rotated * (np.sum(rotated**2, axis=0) / p)
        u, s, vt = np.linalg.svd(loadings.T @ target)
        rotation = u @ vt
        if s.sum() < criterion * (1.0 + tol):
            break
        criterion = s.sum()
    return rotation


def varimax(harmonic_set: HarmonicSet, nx: int = 201) -> HarmonicSet:
    """Varimax rotation of the retained harmonics.

    Parameters
    ----------
    harmonic_set : HarmonicSet
        Result of :func:`pca_fd`.
    nx : int, default=201
        Number of grid points on which the varimax criterion is evaluated.

    Returns
    -------
    rotated : HarmonicSet
        Rotated harmonics and scores; ``varprop`` holds the variance share of
        each rotated harmonic and ``values`` is unchanged.
    """
    harmonics = harmonic_set.harmonics
    loadings = harmonics.evaluate(eval_grid(harmonics.domain, nx))
    rotation = _varimax_rotation(loadings)

    scores = harmonic_set.scores @ rotation
    return HarmonicSet(
        harmonics=FDataBasis(harmonics.basis, harmonics.coefs @ rotation, id=list(harmonics.id)),
        values=harmonic_set.values,
        varprop=np.mean(scores**2, axis=0) / harmonic_set.values.sum(),
        scores=scores,
        meanfd=harmonic_set.meanfd,
        rotation=rotation,
    )

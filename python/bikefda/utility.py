"""Utility functions for functional data analysis."""

from __future__ import annotations

from typing import TYPE_CHECKING, Tuple

import numpy as np
from numpy.typing import ArrayLike, NDArray

if TYPE_CHECKING:
    from .basis import Basis, FDataBasis


def gauss_legendre(
    breaks: ArrayLike,
    npts: int,
) -> Tuple[NDArray[np.float64], NDArray[np.float64]]:
    """Composite Gauss-Legendre nodes and weights.

    Parameters
    ----------
    breaks : array-like
        Increasing breakpoints; ``npts`` nodes are placed in every interval.
    npts : int
        Nodes per interval. Exact for polynomials of degree ``2 * npts - 1``.

    Returns
    -------
    nodes, weights : ndarray
        Quadrature nodes and weights over ``[breaks[0], breaks[-1]]``.
    """
    breaks = np.unique(np.asarray(breaks, dtype=np.float64))
    x, w = np.polynomial.legendre.leggauss(npts)
    lo, hi = breaks[:-1, None], breaks[1:, None]
    half = (hi - lo) / 2.0
    nodes = (lo + hi) / 2.0 + half * x[None, :]
    weights = half * w[None, :]
    return nodes.ravel(), weights.ravel()


def inner_product(
    fd1: FDataBasis,
    fd2: FDataBasis,
    nderiv1: int = 0,
    nderiv2: int = 0,
) -> NDArray[np.float64]:
    """Compute L2 inner products between two sets of basis-expanded curves.

    Parameters
    ----------
    fd1 : FDataBasis
        First functional data set with n1 curves.
    fd2 : FDataBasis
        Second functional data set with n2 curves on the same domain.
    nderiv1, nderiv2 : int, default=0
        Derivative orders applied before integrating.

    Returns
    -------
    inner_prods : ndarray, shape (n1, n2)
        ``inner_prods[i, j] = ∫ D^nderiv1 x_i(t) D^nderiv2 y_j(t) dt``.
    """
    if fd1.basis == fd2.basis and nderiv1 == nderiv2:
        gram = fd1.basis.penalty_matrix(nderiv1)
        return fd1.coefs.T @ gram @ fd2.coefs

    breaks = np.union1d(fd1.basis.breaks(), fd2.basis.breaks())
    nodes, weights = gauss_legendre(breaks, max(fd1.basis.quad_points, fd2.basis.quad_points))
    v1 = fd1.evaluate(nodes, nderiv=nderiv1)
    v2 = fd2.evaluate(nodes, nderiv=nderiv2)
    return v1.T @ (weights[:, None] * v2)


def gram_matrix(
    basis: Basis,
) -> NDArray[np.float64]:
    """Compute the Gram matrix of a basis.

    Parameters
    ----------
    basis : Basis
        Function basis.

    Returns
    -------
    gram : ndarray, shape (nbasis, nbasis)
        Gram matrix where gram[i,j] = <phi_i, phi_j>.
    """
    return basis.penalty_matrix(0)

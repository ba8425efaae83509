"""Roughness-penalized basis smoothing of discretely sampled curves."""

from __future__ import annotations

import functools
import logging
from typing import Dict, Mapping, Sequence, Tuple

import numpy as np
import scipy.linalg
from numpy.typing import ArrayLike, NDArray

from .basis import Basis, FDataBasis, FunctionalParameter
from .exceptions import DimensionError, SingularSystemError
from .fdata import FData

logger = logging.getLogger(__name__)

# residual degrees of freedom below this share of n count as interpolation
_DF_TOL = 1e-8


@functools.lru_cache(maxsize=None)
def _smoothing_matrices(
    basis: Basis,
    argvals: Tuple[float, ...],
    nderiv: int,
) -> Tuple[NDArray[np.float64], NDArray[np.float64]]:
    logger.debug(
        "building %s smoothing matrices: nbasis=%d, n_points=%d, nderiv=%d",
        basis.family,
        basis.nbasis,
        len(argvals),
        nderiv,
    )
    basismat = basis.evaluate(np.asarray(argvals))
    basismat.setflags(write=False)
    return basismat, basis.penalty_matrix(nderiv)


def _as_columns(y: ArrayLike, argvals: ArrayLike) -> Tuple[NDArray[np.float64], NDArray[np.float64]]:
    y = np.asarray(y, dtype=np.float64)
    if y.ndim == 1:
        y = y.reshape(-1, 1)
    argvals = np.asarray(argvals, dtype=np.float64).ravel()
    if y.ndim != 2 or y.shape[0] != argvals.size:
        raise DimensionError(
            f"y must have one row per sampling point ({argvals.size}), got shape {y.shape}"
        )
    if not np.all(np.isfinite(y)):
        raise ValueError("y contains non-finite values")
    return y, argvals


def _solve(
    y: NDArray[np.float64],
    argvals: NDArray[np.float64],
    fdpar: FunctionalParameter,
) -> Tuple[NDArray[np.float64], NDArray[np.float64], NDArray[np.float64]]:
    basismat, penalty = _smoothing_matrices(fdpar.basis, tuple(argvals.tolist()), fdpar.nderiv)
    lhs = basismat.T @ basismat + fdpar.lambda_ * penalty
    if np.linalg.matrix_rank(lhs) < fdpar.basis.nbasis:
        raise SingularSystemError(
            f"B'B + lambda*R is singular for nbasis={fdpar.basis.nbasis}, "
            f"{np.unique(argvals).size} distinct points and lambda={fdpar.lambda_}"
        )
    try:
        coefs = scipy.linalg.solve(lhs, basismat.T @ y, assume_a="pos")
    except np.linalg.LinAlgError as exc:
        raise SingularSystemError(f"cannot solve the smoothing system: {exc}") from exc
    return coefs, lhs, basismat


def smooth(
    y: ArrayLike,
    argvals: ArrayLike,
    fdpar: FunctionalParameter,
) -> FDataBasis:
    """Fit basis expansions to every column of a channel matrix.

    Each column ``y_i`` gets coefficients minimizing
    ``||y_i - B c||^2 + lambda * ∫ (D^m f)^2``, i.e. ``(B'B + lambda R) c = B'y_i``.

    Parameters
    ----------
    y : array-like, shape (n_points, n_curves)
        Channel matrix, one column per curve.
    argvals : array-like, shape (n_points,)
        Sampling grid of the rows, inside the basis domain.
    fdpar : FunctionalParameter
        Basis, penalized derivative order and penalty weight.

    Returns
    -------
    fd : FDataBasis
        Smoothed curves with coefficients of shape (nbasis, n_curves).

    Raises
    ------
    DimensionError
        If ``y`` and ``argvals`` disagree or ``argvals`` leave the domain.
    SingularSystemError
        If ``B'B + lambda R`` is not invertible.
    """
    y, argvals = _as_columns(y, argvals)
    coefs, _, _ = _solve(y, argvals, fdpar)
    return FDataBasis(fdpar.basis, coefs)


def smooth_basis(
    y: ArrayLike,
    argvals: ArrayLike,
    fdpar: FunctionalParameter,
) -> dict:
    """Smooth curves and report fit diagnostics.

    Parameters
    ----------
    y : array-like, shape (n_points, n_curves)
        Channel matrix.
    argvals : array-like, shape (n_points,)
        Sampling grid.
    fdpar : FunctionalParameter
        Smoothing parameter.

    Returns
    -------
    result : dict
        Dictionary with keys:
        - 'fd': Smoothed curves as FDataBasis
        - 'fitted': Smoothed values at ``argvals`` as FData
        - 'df': Equivalent degrees of freedom (trace of the hat matrix)
        - 'sse': Residual sum of squares per curve
        - 'gcv': GCV score per curve (NaN when df >= n_points)
    """
    y, argvals = _as_columns(y, argvals)
    coefs, lhs, basismat = _solve(y, argvals, fdpar)

    fitted = basismat @ coefs
    sse = np.sum((y - fitted) ** 2, axis=0)
    df = float(np.trace(scipy.linalg.solve(lhs, basismat.T @ basismat, assume_a="pos")))
    n = argvals.size
    if n - df > _DF_TOL * n:
        gcv = n * sse / (n - df) ** 2
    else:
        gcv = np.full_like(sse, np.nan)

    return {
        "fd": FDataBasis(fdpar.basis, coefs),
        "fitted": FData(data=fitted.T, argvals=argvals.copy(), rangeval=fdpar.basis.domain),
        "df": df,
        "sse": sse,
        "gcv": gcv,
    }


def smooth_channels(
    channels: Mapping[str, ArrayLike],
    argvals: ArrayLike,
    fdpar: FunctionalParameter,
) -> Dict[str, FDataBasis]:
    """Smooth several channels with one functional parameter.

    Parameters
    ----------
    channels : mapping of str to array-like
        Channel matrices of shape (n_points, n_curves) with equal column counts.
    argvals : array-like, shape (n_points,)
        Shared sampling grid.
    fdpar : FunctionalParameter
        Smoothing parameter applied to every channel.

    Returns
    -------
    fds : dict
        Smoothed curves keyed like ``channels``.
    """
    n_curves = {name: np.shape(m)[1] if np.ndim(m) == 2 else 1 for name, m in channels.items()}
    if len(set(n_curves.values())) > 1:
        raise DimensionError(f"channels have different numbers of curves: {n_curves}")
    return {name: smooth(m, argvals, fdpar) for name, m in channels.items()}


def select_lambda(
    y: ArrayLike,
    argvals: ArrayLike,
    basis: Basis,
    lambdas: Sequence[float],
    nderiv: int = 2,
) -> dict:
    """Choose the penalty weight minimizing the mean GCV score.

    Parameters
    ----------
    y : array-like, shape (n_points, n_curves)
        Channel matrix.
    argvals : array-like, shape (n_points,)
        Sampling grid.
    basis : Basis
        Basis to smooth in.
    lambdas : sequence of float
        Candidate penalty weights.
    nderiv : int, default=2
        Penalized derivative order.

    Returns
    -------
    result : dict
        Dictionary with keys:
        - 'lambda_': Selected penalty weight
        - 'fdpar': FunctionalParameter with the selected weight
        - 'lambdas': Candidates in the order given
        - 'gcv': Mean GCV score per candidate
    """
    lambdas = np.asarray(lambdas, dtype=np.float64).ravel()
    if lambdas.size == 0:
        raise ValueError("lambdas must be non-empty")

    scores = np.empty(lambdas.size)
    for i, lam in enumerate(lambdas):
        result = smooth_basis(y, argvals, FunctionalParameter(basis, nderiv, lam))
        scores[i] = np.mean(result["gcv"])
        logger.debug("lambda=%g mean gcv=%g", lam, scores[i])

    if np.all(np.isnan(scores)):
        raise ValueError("GCV is undefined for every candidate lambda")
    best = int(np.nanargmin(scores))
    return {
        "lambda_": float(lambdas[best]),
        "fdpar": FunctionalParameter(basis, nderiv, lambdas[best]),
        "lambdas": lambdas,
        "gcv": scores,
    }

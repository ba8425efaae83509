"""Curve registration by smooth monotone time warping."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
from numpy.typing import NDArray
from scipy.integrate import cumulative_trapezoid
from scipy.optimize import minimize

from .basis import FDataBasis, FunctionalParameter, eval_grid
from .exceptions import ConvergenceError, DimensionError, InsufficientDataError
from .smoothing import smooth

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITER = 200
DEFAULT_MAX_RETRIES = 3
DEFAULT_PENALTY_GROWTH = 10.0
DEFAULT_GRID_POINTS = 201


@dataclass
class RegisteredResult:
    """Output of :func:`register_fd`.

    Attributes
    ----------
    registered : FDataBasis
        Curves ``x_i(w_i(t))`` expressed in the input basis.
    argvals : ndarray, shape (n_grid,)
        Grid on which the warps were estimated.
    warps : ndarray, shape (n_grid, n_curves)
        Warping functions ``w_i`` on ``argvals``.
    warpfd : FDataBasis
        Warping functions re-expressed in the warp basis.
    wfd : FDataBasis
        Log-derivative ``W_i`` of every warp, ``w_i' ∝ exp(W_i)``.
    lambdas : ndarray, shape (n_curves,)
        Penalty weight the accepted fit of each curve used.
    n_iter : ndarray, shape (n_curves,)
        Optimizer iterations of the accepted fit.
    """

    registered: FDataBasis
    argvals: NDArray[np.float64]
    warps: NDArray[np.float64]
    warpfd: FDataBasis
    wfd: FDataBasis
    lambdas: NDArray[np.float64]
    n_iter: NDArray[np.int64]


class _WarpFit:
    """Penalized squared distance between ``x(w(t))`` and the target, with gradient."""

    def __init__(self, curve: FDataBasis, target: NDArray[np.float64], grid: NDArray[np.float64],
                 weights: NDArray[np.float64], warp_basismat: NDArray[np.float64], penalty: NDArray[np.float64]):
        self.curve = curve
        self.target = target
        self.grid = grid
        self.weights = weights
        self.phi = warp_basismat
        self.penalty = penalty
        self.lambda_ = 0.0

    def warp(self, c: NDArray[np.float64]) -> Tuple[NDArray[np.float64], NDArray[np.float64]]:
        a, b = self.curve.domain
        w_log = self.phi @ c
        dens = np.exp(w_log - w_log.max())
        cum = cumulative_trapezoid(dens, self.grid, initial=0.0)
        cum_k = cumulative_trapezoid(dens[:, None] * self.phi, self.grid, axis=0, initial=0.0)
        total = cum[-1]
        warp = np.clip(a + (b - a) * cum / total, a, b)
        dwarp = (b - a) * (cum_k / total - cum[:, None] * cum_k[-1][None, :] / total**2)
        return warp, dwarp

    def __call__(self, c: NDArray[np.float64]) -> Tuple[float, NDArray[np.float64]]:
        warp, dwarp = self.warp(c)
        resid = self.curve.evaluate(warp)[:, 0] - self.target
        slope = self.curve.evaluate(warp, nderiv=1)[:, 0]
        rc = self.penalty @ c
        value = float(np.sum(self.weights * resid**2) + self.lambda_ * c @ rc)
        grad = 2.0 * (self.weights * resid * slope) @ dwarp + 2.0 * self.lambda_ * rc
        return value, grad


def _trapezoid_weights(grid: NDArray[np.float64]) -> NDArray[np.float64]:
    dt = np.diff(grid)
    weights = np.zeros_like(grid)
    weights[:-1] += dt / 2.0
    weights[1:] += dt / 2.0
    return weights


def register_fd(
    fd: FDataBasis,
    target: Optional[FDataBasis],
    warp_param: FunctionalParameter,
    max_iter: int = DEFAULT_MAX_ITER,
    max_retries: int = DEFAULT_MAX_RETRIES,
    penalty_growth: float = DEFAULT_PENALTY_GROWTH,
    n_grid: int = DEFAULT_GRID_POINTS,
) -> RegisteredResult:
    """Register curves to a target by monotone time warping.

    Each warp is ``w(t) = a + (b - a) ∫_a^t exp(W) / ∫_a^b exp(W)`` with ``W``
    expanded in the warp basis, so ``w`` is strictly increasing and fixes both
    ends of the domain. ``W`` minimizes ``∫ (x(w(t)) - y0(t))^2 dt`` plus the
    roughness penalty of ``warp_param``.

    Parameters
    ----------
    fd : FDataBasis
        Curves to register.
    target : FDataBasis or None
        Single target curve; None uses the mean of ``fd``.
    warp_param : FunctionalParameter
        Basis and penalty for ``W``; its domain must equal that of ``fd``.
    max_iter : int, default=200
        Optimizer iteration budget per attempt.
    max_retries : int, default=3
        Additional attempts per curve, each with the penalty multiplied by
        ``penalty_growth`` (a zero penalty becomes 1).
    penalty_growth : float, default=10.0
        Penalty escalation factor.
    n_grid : int, default=201
        Number of grid points for the fitting criterion.

    Returns
    -------
    result : RegisteredResult

    Raises
    ------
    ConvergenceError
        If a curve does not converge after all retries.
    DimensionError
        If target or warp basis do not match the curves.
    """
    if fd.n_curves < 1:
        raise InsufficientDataError("no curves to register")
    if target is None:
        target = fd.mean()
    if target.n_curves != 1:
        raise DimensionError(f"target must be a single curve, got {target.n_curves}")
    if target.domain != fd.domain or warp_param.basis.domain != fd.domain:
        raise DimensionError("curves, target and warp basis must share one domain")
    if penalty_growth <= 1.0:
        raise ValueError("penalty_growth must exceed 1")

    grid = eval_grid(fd.domain, n_grid)
    warp_basis = warp_param.basis
    fit = _WarpFit(
        curve=fd[0],
        target=target.evaluate(grid)[:, 0],
        grid=grid,
        weights=_trapezoid_weights(grid),
        warp_basismat=warp_basis.evaluate(grid),
        penalty=warp_param.penalty,
    )

    wcoefs = np.zeros((warp_basis.nbasis, fd.n_curves))
    warps = np.zeros((grid.size, fd.n_curves))
    lambdas = np.zeros(fd.n_curves)
    n_iter = np.zeros(fd.n_curves, dtype=np.int64)

    for i in range(fd.n_curves):
        fit.curve = fd[i]
        lam = warp_param.lambda_
        for attempt in range(max_retries + 1):
            fit.lambda_ = lam
            res = minimize(
                fit,
                np.zeros(warp_basis.nbasis),
                jac=True,
                method="L-BFGS-B",
                options={"maxiter": max_iter},
            )
            if res.success:
                break
            if attempt == max_retries:
                raise ConvergenceError(
                    f"registration of curve {i} did not converge after {max_retries + 1} attempts "
                    f"(last lambda={lam:g}): {res.message}",
                    curve=i,
                )
            lam = lam * penalty_growth if lam > 0 else 1.0
            logger.warning("curve %d did not converge (%s); retrying with lambda=%g", i, res.message, lam)

        logger.debug("curve %d registered in %d iterations, objective %.6g", i, res.nit, res.fun)
        wcoefs[:, i] = res.x
        warps[:, i] = fit.warp(res.x)[0]
        lambdas[i] = lam
        n_iter[i] = res.nit

    aligned = np.column_stack([fd[i].evaluate(warps[:, i])[:, 0] for i in range(fd.n_curves)])
    registered = smooth(aligned, grid, FunctionalParameter(fd.basis, 0, 0.0))
    registered.id = list(fd.id)

    return RegisteredResult(
        registered=registered,
        argvals=grid,
        warps=warps,
        warpfd=smooth(warps, grid, FunctionalParameter(warp_basis, 0, 0.0)),
        wfd=FDataBasis(warp_basis, wcoefs, id=list(fd.id)),
        lambdas=lambdas,
        n_iter=n_iter,
    )

"""Functional linear regression with functional responses."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Literal, Mapping, Optional, Union

import numpy as np
import scipy.linalg
from numpy.typing import ArrayLike, NDArray
from scipy import stats

from .basis import (
    DEFAULT_EVAL_POINTS,
    ConstantBasis,
    FDataBasis,
    FunctionalParameter,
    eval_grid,
)
from .exceptions import (
    ConfigMismatchError,
    DimensionError,
    InsufficientDataError,
    RankDeficiencyError,
)
from .smoothing import smooth
from .utility import gauss_legendre

logger = logging.getLogger(__name__)

Predictor = Union[FDataBasis, ArrayLike]
Coding = Literal["indicator", "reference"]

# values below this fraction of the response scale count as exact zeros
_ZERO_TOL = 1e-10

# singular values below this share of the largest make the design singular
_RANK_RTOL = 1e-12


@dataclass
class RegressionResult:
    """Fitted functional linear model.

    Attributes
    ----------
    betas : dict of str to FDataBasis
        Coefficient functions, in predictor order.
    beta_params : dict of str to FunctionalParameter
        Functional parameters the betas were estimated with.
    argvals : ndarray, shape (n_points,)
        Grid on which fitted values, residuals and ``rsq_t`` are evaluated.
    fitted_values : ndarray, shape (n_points, n_curves)
        ``sum_j x_ij(t) beta_j(t)`` on ``argvals``.
    residuals : ndarray, shape (n_points, n_curves)
        Response minus fitted values on ``argvals``.
    yhatfd : FDataBasis
        Fitted curves re-expressed in the response basis.
    residualfd : FDataBasis
        Response minus ``yhatfd``.
    sse, sst : float
        Integrated residual and total sums of squares, ``sum_i ∫ r_i(t)^2 dt``
        and ``sum_i ∫ (y_i(t) - ybar)^2 dt`` with ``ybar`` the grand mean of
        the response over curves and time. Both use the quadrature of the fit.
    r_squared : float
        ``1 - sse / sst``; NaN when the response has no variance.
    f_ratio : float
        ``((sst - sse) / df_model) / (sse / df_resid)``.
    df_model, df_resid : int
        ``p`` free coefficients and ``n - p - 1`` with ``n`` response evaluations.
    p_value : float
        Upper tail probability of ``f_ratio`` under F(df_model, df_resid).
    rsq_t : ndarray, shape (n_points,)
        Pointwise R-squared around the pointwise mean (NaN where undefined).
    """

    betas: Dict[str, FDataBasis]
    beta_params: Dict[str, FunctionalParameter]
    argvals: NDArray[np.float64]
    fitted_values: NDArray[np.float64]
    residuals: NDArray[np.float64]
    yhatfd: FDataBasis
    residualfd: FDataBasis
    sse: float
    sst: float
    r_squared: float
    f_ratio: float
    df_model: int
    df_resid: int
    p_value: float
    rsq_t: NDArray[np.float64]


def _as_predictor_fd(name: str, value: Predictor, response: FDataBasis) -> FDataBasis:
    if isinstance(value, FDataBasis):
        if value.n_curves != response.n_curves:
            raise DimensionError(
                f"predictor {name!r} has {value.n_curves} curves, response has {response.n_curves}"
            )
        if value.domain != response.domain:
            raise DimensionError(f"predictor {name!r} is defined on {value.domain}, response on {response.domain}")
        return value

    x = np.asarray(value, dtype=np.float64).ravel()
    if x.size != response.n_curves:
        raise DimensionError(
            f"scalar predictor {name!r} has {x.size} values, response has {response.n_curves} curves"
        )
    # scalar covariates are constant functions of time
    return FDataBasis(ConstantBasis(response.domain), x.reshape(1, -1))


def _fit_statistics(sse: float, sst: float, n_obs: int, p: int) -> tuple:
    df_resid = n_obs - p - 1
    if sst == 0.0:
        logger.warning("response has no variance; R-squared and F-ratio are undefined")
        return np.nan, np.nan, np.nan
    r_squared = 1.0 - sse / sst
    if df_resid <= 0:
        return r_squared, np.nan, np.nan
    if sse == 0.0:
        return r_squared, np.inf, 0.0
    f_ratio = ((sst - sse) / p) / (sse / df_resid)
    return r_squared, f_ratio, float(stats.f.sf(f_ratio, p, df_resid))


def fregress(
    response: FDataBasis,
    predictors: Mapping[str, Predictor],
    beta_params: Mapping[str, FunctionalParameter],
    argvals: Optional[ArrayLike] = None,
) -> RegressionResult:
    """Fit a concurrent functional linear model.

    The model is ``y_i(t) = sum_j x_ij(t) beta_j(t) + e_i(t)``. Scalar
    predictors are treated as constant functions. The beta coefficients
    minimize ``sum_i ∫ (y_i - sum_j x_ij beta_j)^2 dt`` plus the roughness
    penalty of each beta's functional parameter.

    Parameters
    ----------
    response : FDataBasis
        Response curves.
    predictors : mapping of str to FDataBasis or array-like
        Ordered predictors; arrays hold one scalar per curve. Include a
        predictor of ones for an intercept.
    beta_params : mapping of str to FunctionalParameter
        Basis and penalty of each beta, with the same keys in the same order
        as ``predictors``.
    argvals : array-like, optional
        Grid for fitted values and statistics; defaults to 101 equally spaced
        points on the response domain.

    Returns
    -------
    result : RegressionResult

    Raises
    ------
    ConfigMismatchError
        If predictor and beta names or their order differ.
    DimensionError
        If predictors do not match the response curves.
    RankDeficiencyError
        If the penalized normal equations are singular.
    """
    names = list(predictors)
    if names != list(beta_params):
        raise ConfigMismatchError(
            f"predictors {names} and beta parameters {list(beta_params)} must match in name and order"
        )
    if not names:
        raise ValueError("at least one predictor is required")

    xfds = [_as_predictor_fd(name, predictors[name], response) for name in names]
    params = [beta_params[name] for name in names]
    for name, par in zip(names, params):
        if par.basis.domain != response.domain:
            raise DimensionError(f"beta {name!r} is defined on {par.basis.domain}, response on {response.domain}")

    bases = [response.basis] + [x.basis for x in xfds] + [par.basis for par in params]
    breaks = np.unique(np.concatenate([b.breaks() for b in bases]))
    nodes, weights = gauss_legendre(breaks, 2 * max(b.quad_points for b in bases))

    yvals = response.evaluate(nodes)
    xvals = [x.evaluate(nodes) for x in xfds]
    thetas = [par.basis.evaluate(nodes) for par in params]
    sizes = [par.basis.nbasis for par in params]
    offsets = np.concatenate([[0], np.cumsum(sizes)])
    n_coef = int(offsets[-1])

    argvals = eval_grid(response.domain) if argvals is None else np.asarray(argvals, dtype=np.float64)
    n_obs = argvals.size * response.n_curves
    if n_coef > n_obs:
        raise RankDeficiencyError(f"{n_coef} coefficients exceed {n_obs} response evaluations")

    cmat = np.zeros((n_coef, n_coef))
    dvec = np.zeros(n_coef)
    for j in range(len(names)):
        sj = slice(offsets[j], offsets[j + 1])
        dvec[sj] = thetas[j].T @ (weights * np.sum(xvals[j] * yvals, axis=1))
        for k in range(j, len(names)):
            sk = slice(offsets[k], offsets[k + 1])
            block = thetas[j].T @ ((weights * np.sum(xvals[j] * xvals[k], axis=1))[:, None] * thetas[k])
            cmat[sj, sk] = block
            cmat[sk, sj] = block.T
        cmat[sj, sj] += params[j].lambda_ * params[j].penalty

    if np.linalg.matrix_rank(cmat, tol=_RANK_RTOL * np.linalg.norm(cmat, 2)) < n_coef:
        raise RankDeficiencyError("the combined regression design is singular")
    try:
        bvec = scipy.linalg.solve(cmat, dvec, assume_a="pos")
    except np.linalg.LinAlgError as exc:
        raise RankDeficiencyError(f"cannot solve the regression system: {exc}") from exc

    betas = {
        name: FDataBasis(par.basis, bvec[offsets[j] : offsets[j + 1]], id=[name])
        for j, (name, par) in enumerate(zip(names, params))
    }

    yhat = response.evaluate(argvals)
    fitted = np.zeros_like(yhat)
    for name, xfd in zip(names, xfds):
        fitted += xfd.evaluate(argvals) * betas[name].evaluate(argvals)
    residuals = yhat - fitted

    # sums of squares use the quadrature the coefficients were fitted with
    fitted_nodes = np.zeros_like(yvals)
    for j, xval in enumerate(xvals):
        fitted_nodes += xval * (thetas[j] @ bvec[offsets[j] : offsets[j + 1]])[:, None]
    resid_nodes = yvals - fitted_nodes

    scale = max(float(np.max(np.abs(yvals))), 1.0)
    sse = float(weights @ np.sum(resid_nodes**2, axis=1))
    if np.max(np.abs(resid_nodes)) <= _ZERO_TOL * scale:
        sse = 0.0
    if np.ptp(yvals) <= _ZERO_TOL * scale:
        sst = 0.0
    else:
        grand_mean = float(weights @ yvals.sum(axis=1)) / (weights.sum() * response.n_curves)
        sst = float(weights @ np.sum((yvals - grand_mean) ** 2, axis=1))
        # a fit that only reproduces the grand mean may exceed sst by round-off
        if sst < sse <= sst * (1.0 + _ZERO_TOL):
            sse = sst
    r_squared, f_ratio, p_value = _fit_statistics(sse, sst, n_obs, n_coef)

    sst_t = np.sum((yhat - yhat.mean(axis=1, keepdims=True)) ** 2, axis=1)
    sse_t = np.sum(residuals**2, axis=1)
    rsq_t = np.full(argvals.size, np.nan)
    varies = sst_t > (_ZERO_TOL * scale) ** 2
    rsq_t[varies] = 1.0 - sse_t[varies] / sst_t[varies]

    # project the fitted curves back onto the response basis
    fine = eval_grid(response.domain, max(DEFAULT_EVAL_POINTS, 4 * response.basis.nbasis))
    fitted_fine = np.zeros((fine.size, response.n_curves))
    for name, xfd in zip(names, xfds):
        fitted_fine += xfd.evaluate(fine) * betas[name].evaluate(fine)
    yhatfd = smooth(fitted_fine, fine, FunctionalParameter(response.basis, 0, 0.0))

    return RegressionResult(
        betas=betas,
        beta_params=dict(zip(names, params)),
        argvals=argvals,
        fitted_values=fitted,
        residuals=residuals,
        yhatfd=yhatfd,
        residualfd=response - yhatfd,
        sse=sse,
        sst=sst,
        r_squared=r_squared,
        f_ratio=f_ratio,
        df_model=n_coef,
        df_resid=n_obs - n_coef - 1,
        p_value=p_value,
        rsq_t=rsq_t,
    )


def fanova(
    response: FDataBasis,
    groups: ArrayLike,
    beta_param: FunctionalParameter,
    coding: Coding = "indicator",
    reference=None,
    argvals: Optional[ArrayLike] = None,
) -> RegressionResult:
    """Functional analysis of variance by group.

    Parameters
    ----------
    response : FDataBasis
        Response curves.
    groups : array-like, shape (n_curves,)
        Group label of every curve.
    beta_param : FunctionalParameter
        Functional parameter shared by all group effects.
    coding : {"indicator", "reference"}, default="indicator"
        "indicator" fits one effect per level without intercept; "reference"
        fits an intercept plus effects for every level except ``reference``.
    reference : optional
        Reference level for "reference" coding; defaults to the first sorted
        level.
    argvals : array-like, optional
        Evaluation grid passed to :func:`fregress`.

    Returns
    -------
    result : RegressionResult
        Betas are keyed by ``str(level)`` (and "intercept" for reference
        coding).
    """
    groups = np.asarray(groups).ravel()
    if groups.size != response.n_curves:
        raise DimensionError(f"{groups.size} group labels for {response.n_curves} curves")
    levels = np.unique(groups)
    if levels.size < 2:
        raise InsufficientDataError("FANOVA needs at least two groups")

    predictors: Dict[str, Predictor] = {}
    if coding == "indicator":
        kept = levels
    elif coding == "reference":
        if reference is None:
            reference = levels[0]
        if reference not in levels:
            raise ValueError(f"reference level {reference!r} not among groups {levels.tolist()}")
        predictors["intercept"] = np.ones(groups.size)
        kept = [level for level in levels if level != reference]
    else:
        raise ValueError(f"Unknown coding: {coding}. Choose from: ['indicator', 'reference']")

    for level in kept:
        predictors[str(level)] = (groups == level).astype(np.float64)

    beta_params = {name: beta_param for name in predictors}
    return fregress(response, predictors, beta_params, argvals=argvals)

"""Depth-based outlier detection and group comparison."""

from __future__ import annotations

from typing import Optional

import numpy as np
from numpy.typing import ArrayLike
from scipy import stats

from .depth import Curves, DepthMethod, depth
from .exceptions import DimensionError, InsufficientDataError


def outliers_depth(
    fdataobj: Curves,
    quantile: float,
    depth_method: DepthMethod = "MBD",
    argvals: Optional[ArrayLike] = None,
) -> dict:
    """Depth-based outlier detection.

    Identifies outliers as observations with depth below a threshold
    determined by a quantile of the depth distribution. The quantile is a
    reporting choice of the caller (e.g. 0.05 for the 5% least deep curves).

    Parameters
    ----------
    fdataobj : FData or FDataBasis
        Functional data.
    quantile : float
        Quantile of the depth distribution used as threshold, in [0, 1].
        Lower values detect fewer outliers.
    depth_method : str, default="MBD"
        Depth method to use: "BD" or "MBD".
    argvals : array-like, optional
        Evaluation grid for FDataBasis input.

    Returns
    -------
    result : dict
        Dictionary with keys:
        - 'outliers': Boolean array indicating outliers
        - 'depths': Depth values for all observations
        - 'threshold': Depth threshold used
    """
    if not 0.0 <= quantile <= 1.0:
        raise ValueError(f"quantile must lie in [0, 1], got {quantile}")
    depths = depth(fdataobj, method=depth_method, argvals=argvals)
    threshold = float(np.quantile(depths, quantile))
    return {
        "outliers": depths < threshold,
        "depths": depths,
        "threshold": threshold,
    }


def depth_rank_test(
    depths: ArrayLike,
    groups: ArrayLike,
    group_a,
    group_b,
) -> dict:
    """Compare the depth distributions of two groups with a rank-sum test.

    Parameters
    ----------
    depths : array-like, shape (n_samples,)
        Depth values, e.g. from :func:`bikefda.depth.depth`.
    groups : array-like, shape (n_samples,)
        Group label of every curve.
    group_a, group_b
        Labels of the two groups to compare.

    Returns
    -------
    result : dict
        Dictionary with keys:
        - 'statistic': Mann-Whitney U statistic of group_a
        - 'p_value': Two-sided p-value
        - 'n_a', 'n_b': Group sizes
        - 'median_a', 'median_b': Median depth per group
    """
    depths = np.asarray(depths, dtype=np.float64).ravel()
    groups = np.asarray(groups).ravel()
    if depths.size != groups.size:
        raise DimensionError(f"{depths.size} depths but {groups.size} group labels")

    a = depths[groups == group_a]
    b = depths[groups == group_b]
    if a.size == 0 or b.size == 0:
        raise InsufficientDataError(
            f"both groups need curves, got {a.size} in {group_a!r} and {b.size} in {group_b!r}"
        )

    stat, p = stats.mannwhitneyu(a, b, alternative="two-sided")
    return {
        "statistic": float(stat),
        "p_value": float(p),
        "n_a": int(a.size),
        "n_b": int(b.size),
        "median_a": float(np.median(a)),
        "median_b": float(np.median(b)),
    }

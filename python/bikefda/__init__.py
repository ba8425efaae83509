"""
bikefda - Functional Data Analysis of daily bike-sharing curves

A Python package that treats hourly rental counts and weather channels as
smooth functions of time-of-day, providing tools for:
- Assembling hourly records into daily curve matrices
- Basis representations (B-splines, Fourier, constant)
- Roughness-penalized smoothing
- Functional principal component analysis
- Functional linear regression and FANOVA
- Curve registration by monotone time warping
- Band depth, outlier detection and group comparison
"""

import logging

from bikefda.assemble import assemble_channels, daily_labels, hour_grid, hourly_matrix
from bikefda.basis import (
    Basis,
    BSplineBasis,
    ConstantBasis,
    FDataBasis,
    FourierBasis,
    FunctionalParameter,
    bspline_basis,
    fdpar,
    fourier_basis,
    make_bspline_basis,
    make_constant_basis,
    make_fourier_basis,
)
from bikefda.depth import central_region, depth, depth_bd, depth_mbd, median_curve
from bikefda.exceptions import (
    BasisConfigError,
    ConfigMismatchError,
    ConvergenceError,
    DimensionError,
    FdaError,
    InsufficientDataError,
    RankDeficiencyError,
    SingularSystemError,
)
from bikefda.fdata import FData, fdata
from bikefda.fpca import HarmonicSet, pca_fd, varimax
from bikefda.outliers import depth_rank_test, outliers_depth
from bikefda.registration import RegisteredResult, register_fd
from bikefda.regression import RegressionResult, fanova, fregress
from bikefda.smoothing import select_lambda, smooth, smooth_basis, smooth_channels
from bikefda.utility import gram_matrix, inner_product

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"

__all__ = [
    # Core
    "FData",
    "fdata",
    "FDataBasis",
    # Curve assembly
    "hourly_matrix",
    "assemble_channels",
    "daily_labels",
    "hour_grid",
    # Basis
    "Basis",
    "BSplineBasis",
    "FourierBasis",
    "ConstantBasis",
    "FunctionalParameter",
    "fdpar",
    "make_bspline_basis",
    "make_fourier_basis",
    "make_constant_basis",
    "bspline_basis",
    "fourier_basis",
    # Smoothing
    "smooth",
    "smooth_basis",
    "smooth_channels",
    "select_lambda",
    # FPCA
    "HarmonicSet",
    "pca_fd",
    "varimax",
    # Regression
    "RegressionResult",
    "fregress",
    "fanova",
    # Registration
    "RegisteredResult",
    "register_fd",
    # Depth
    "depth",
    "depth_bd",
    "depth_mbd",
    "median_curve",
    "central_region",
    # Outliers
    "outliers_depth",
    "depth_rank_test",
    # Utility
    "inner_product",
    "gram_matrix",
    # Errors
    "FdaError",
    "DimensionError",
    "BasisConfigError",
    "SingularSystemError",
    "InsufficientDataError",
    "RankDeficiencyError",
    "ConfigMismatchError",
    "ConvergenceError",
]

"""Exceptions raised by bikefda."""

from __future__ import annotations

import numpy as np


class FdaError(Exception):
    """Base class for all bikefda errors."""


class DimensionError(FdaError, ValueError):
    """Shapes or lengths of the inputs do not agree."""


class BasisConfigError(FdaError, ValueError):
    """Invalid basis or functional parameter settings."""


class SingularSystemError(FdaError, np.linalg.LinAlgError):
    """The penalized smoothing system cannot be solved."""


class InsufficientDataError(FdaError, ValueError):
    """Too few curves or observations for the requested statistic."""


class RankDeficiencyError(FdaError, np.linalg.LinAlgError):
    """The regression design has fewer independent equations than coefficients."""


class ConfigMismatchError(FdaError, ValueError):
    """Predictors and beta parameters are not given in the same order."""


class ConvergenceError(FdaError, RuntimeError):
    """Curve registration did not converge within its iteration budget.

    Parameters
    ----------
    message : str
        Description of the failure.
    curve : int, optional
        Index of the curve that failed to register.
    """

    def __init__(self, message: str, curve: int | None = None):
        super().__init__(message)
        self.curve = curve

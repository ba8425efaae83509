"""Test fixtures for bikefda."""

import numpy as np
import pytest


@pytest.fixture
def hours():
    """Hourly sampling grid of one day."""
    return np.arange(24.0)


@pytest.fixture
def daily_counts(hours):
    """Channel matrix of 30 days with a commuter double peak plus noise."""
    np.random.seed(42)
    n_days = 30
    base = 40 + 200 * np.exp(-((hours - 8) ** 2) / 2.0) + 250 * np.exp(-((hours - 17.5) ** 2) / 4.0)
    Y = np.zeros((24, n_days))
    for d in range(n_days):
        Y[:, d] = (0.7 + 0.6 * np.random.rand()) * base + 10 * np.random.randn(24)
    return Y


@pytest.fixture
def bspline24():
    """Cubic B-spline basis over the hours of a day."""
    from bikefda import make_bspline_basis

    return make_bspline_basis((0, 23), 12)


@pytest.fixture
def smoothed_counts(daily_counts, hours, bspline24):
    """Daily counts smoothed with a light roughness penalty."""
    from bikefda import fdpar, smooth

    return smooth(daily_counts, hours, fdpar(bspline24, 2, 0.1))


@pytest.fixture
def shifted_bumps():
    """Gaussian bumps with shifted peaks, expanded in a fine B-spline basis."""
    from bikefda import FDataBasis, make_bspline_basis

    basis = make_bspline_basis((0, 23), 23)
    coefs = []
    for shift in [-2.0, -1.0, 1.0, 2.0]:
        # coefficients of a smooth bump sit at the Greville abscissae
        knots = basis.knots
        greville = np.array([knots[k + 1 : k + 4].mean() for k in range(basis.nbasis)])
        coefs.append(np.exp(-((greville - 11.5 - shift) ** 2) / 8.0))
    return FDataBasis(basis, np.column_stack(coefs))


@pytest.fixture
def step_curves(hours):
    """Five constant curves at levels 1 to 5."""
    from bikefda import FData

    return FData(np.outer(np.arange(1.0, 6.0), np.ones(24)), argvals=hours)


@pytest.fixture
def step_channel(hours):
    """Channel matrix of five days whose counts jump tenfold at noon.

    Columns hold levels 3, 1, 5, 2, 4, so the ordering between days is the
    same at every hour.
    """
    levels = np.array([3.0, 1.0, 5.0, 2.0, 4.0])
    jump = np.where(hours < 12, 1.0, 10.0)
    return np.outer(jump, levels)

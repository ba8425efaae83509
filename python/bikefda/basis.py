"""Basis function representations for functional data."""

from __future__ import annotations

import functools
import warnings
from dataclasses import dataclass, field
from typing import ClassVar, List, Literal, Optional, Tuple

import numpy as np
from numpy.typing import ArrayLike, NDArray
from scipy.interpolate import BSpline

from .exceptions import BasisConfigError, DimensionError
from .fdata import FData
from .utility import gauss_legendre, inner_product

BasisType = Literal["bspline", "fourier", "constant"]

DEFAULT_EVAL_POINTS = 101

# relative slack when checking that evaluation points lie in the domain
_DOMAIN_TOL = 1e-10


def _check_domain(domain) -> Tuple[float, float]:
    try:
        a, b = (float(v) for v in domain)
    except (TypeError, ValueError) as exc:
        raise BasisConfigError(f"domain must be a pair (a, b), got {domain!r}") from exc
    if not (np.isfinite(a) and np.isfinite(b)) or a >= b:
        raise BasisConfigError(f"domain must satisfy a < b, got ({a}, {b})")
    return (a, b)


def eval_grid(domain: Tuple[float, float], n_points: int = DEFAULT_EVAL_POINTS) -> NDArray[np.float64]:
    """Equally spaced evaluation grid covering ``domain``."""
    return np.linspace(domain[0], domain[1], n_points)


@dataclass(frozen=True)
class Basis:
    """Finite set of functions on ``domain``.

    Subclasses implement ``_evaluate`` and ``breaks``. Instances are immutable,
    hashable and compare equal when family, domain and dimension agree.
    """

    domain: Tuple[float, float]
    nbasis: int

    family: ClassVar[str] = ""
    # Gauss-Legendre nodes per break interval used for penalty integrals
    quad_points: ClassVar[int] = 12

    def __post_init__(self):
        object.__setattr__(self, "domain", _check_domain(self.domain))
        if int(self.nbasis) != self.nbasis or self.nbasis < 1:
            raise BasisConfigError(f"nbasis must be a positive integer, got {self.nbasis}")
        object.__setattr__(self, "nbasis", int(self.nbasis))

    def evaluate(self, argvals: ArrayLike, nderiv: int = 0) -> NDArray[np.float64]:
        """Evaluate the basis functions or their derivatives.

        Parameters
        ----------
        argvals : array-like, shape (n_points,)
            Evaluation points inside the domain.
        nderiv : int, default=0
            Derivative order.

        Returns
        -------
        basis : ndarray, shape (n_points, nbasis)
            Basis matrix.
        """
        argvals = np.atleast_1d(np.asarray(argvals, dtype=np.float64))
        if argvals.ndim != 1:
            raise DimensionError("argvals must be one-dimensional")
        if nderiv < 0:
            raise BasisConfigError(f"nderiv must be non-negative, got {nderiv}")
        a, b = self.domain
        slack = _DOMAIN_TOL * (b - a)
        if argvals.size and (argvals.min() < a - slack or argvals.max() > b + slack):
            raise DimensionError(
                f"argvals [{argvals.min()}, {argvals.max()}] fall outside the basis domain [{a}, {b}]"
            )
        return self._evaluate(np.clip(argvals, a, b), int(nderiv))

    def _evaluate(self, x: NDArray[np.float64], nderiv: int) -> NDArray[np.float64]:
        raise NotImplementedError

    def breaks(self) -> NDArray[np.float64]:
        """Breakpoints between which the basis functions are smooth."""
        return np.asarray(self.domain, dtype=np.float64)

    def penalty_matrix(self, nderiv: int = 2) -> NDArray[np.float64]:
        """Roughness penalty matrix ``R[i, j] = ∫ D^m φ_i(t) D^m φ_j(t) dt``.

        The result is cached per (basis, nderiv) and returned read-only.
        """
        return _penalty_matrix(self, int(nderiv))

    def gram_matrix(self) -> NDArray[np.float64]:
        """Inner products of the basis functions."""
        return self.penalty_matrix(0)


@functools.lru_cache(maxsize=None)
def _penalty_matrix(basis: Basis, nderiv: int) -> NDArray[np.float64]:
    nodes, weights = gauss_legendre(basis.breaks(), basis.quad_points)
    deriv = basis.evaluate(nodes, nderiv=nderiv)
    penalty = deriv.T @ (weights[:, None] * deriv)
    penalty = (penalty + penalty.T) / 2.0
    penalty.setflags(write=False)
    return penalty


@dataclass(frozen=True)
class BSplineBasis(Basis):
    """B-spline basis with equally spaced interior knots.

    Parameters
    ----------
    domain : tuple of float
        Interval ``(a, b)``.
    nbasis : int
        Number of basis functions, at least ``order``.
    order : int, default=4
        Spline order (degree + 1); 4 gives cubic splines.
    """

    order: int = 4

    family: ClassVar[str] = "bspline"

    def __post_init__(self):
        super().__post_init__()
        if int(self.order) != self.order or self.order < 1:
            raise BasisConfigError(f"order must be a positive integer, got {self.order}")
        if self.nbasis < self.order:
            raise BasisConfigError(
                f"a B-spline basis of order {self.order} needs at least {self.order} functions, got {self.nbasis}"
            )

    @property
    def quad_points(self) -> int:
        # products of two degree order-1 pieces are integrated exactly
        return self.order

    @property
    def knots(self) -> NDArray[np.float64]:
        """Clamped knot vector."""
        a, b = self.domain
        interior = np.linspace(a, b, self.nbasis - self.order + 2)[1:-1]
        return np.concatenate([np.full(self.order, a), interior, np.full(self.order, b)])

    def breaks(self) -> NDArray[np.float64]:
        return np.unique(self.knots)

    def _evaluate(self, x, nderiv):
        degree = self.order - 1
        if nderiv > degree:
            return np.zeros((x.size, self.nbasis))
        spline = BSpline(self.knots, np.eye(self.nbasis), degree, extrapolate=True)
        if nderiv:
            spline = spline.derivative(nderiv)
        return spline(x)


@dataclass(frozen=True)
class FourierBasis(Basis):
    """Fourier basis, orthonormal over one period.

    The functions are ordered constant, sin, cos, sin, cos, ... An even
    ``nbasis`` is rounded up to the next odd number.

    Parameters
    ----------
    domain : tuple of float
        Interval ``(a, b)``.
    nbasis : int
        Number of basis functions.
    period : float, optional
        Period of the basis. Defaults to the domain width.
    """

    period: Optional[float] = None

    family: ClassVar[str] = "fourier"

    def __post_init__(self):
        super().__post_init__()
        if self.nbasis % 2 == 0:
            warnings.warn(
                f"Fourier basis needs an odd number of functions; using nbasis={self.nbasis + 1}",
                UserWarning,
                stacklevel=3,
            )
            object.__setattr__(self, "nbasis", self.nbasis + 1)
        if self.period is None:
            object.__setattr__(self, "period", self.domain[1] - self.domain[0])
        elif not self.period > 0:
            raise BasisConfigError(f"period must be positive, got {self.period}")
        object.__setattr__(self, "period", float(self.period))

    def breaks(self) -> NDArray[np.float64]:
        return np.linspace(self.domain[0], self.domain[1], 2 * self.nbasis + 1)

    def _evaluate(self, x, nderiv):
        omega = 2.0 * np.pi / self.period
        u = x - self.domain[0]
        out = np.zeros((x.size, self.nbasis))
        out[:, 0] = 1.0 / np.sqrt(self.period) if nderiv == 0 else 0.0

        scale = 1.0 / np.sqrt(self.period / 2.0)
        shift = nderiv * np.pi / 2.0
        for k in range(1, (self.nbasis - 1) // 2 + 1):
            freq = k * omega
            amp = scale * freq**nderiv
            out[:, 2 * k - 1] = amp * np.sin(freq * u + shift)
            out[:, 2 * k] = amp * np.cos(freq * u + shift)
        return out


@dataclass(frozen=True)
class ConstantBasis(Basis):
    """Single basis function equal to one on ``domain``."""

    nbasis: int = 1

    family: ClassVar[str] = "constant"
    quad_points: ClassVar[int] = 1

    def __post_init__(self):
        super().__post_init__()
        if self.nbasis != 1:
            raise BasisConfigError("a constant basis has exactly one function")

    def _evaluate(self, x, nderiv):
        return np.full((x.size, 1), 1.0 if nderiv == 0 else 0.0)


def make_bspline_basis(domain: Tuple[float, float], nbasis: int, order: int = 4) -> BSplineBasis:
    """Create a B-spline basis.

    Parameters
    ----------
    domain : tuple of float
        Interval ``(a, b)`` covering the sampling grid.
    nbasis : int
        Number of basis functions; must be at least ``order``.
    order : int, default=4
        Spline order; 4 gives cubic splines.

    Returns
    -------
    basis : BSplineBasis

    Raises
    ------
    BasisConfigError
        If ``nbasis < order`` or the domain is invalid.
    """
    return BSplineBasis(domain=domain, nbasis=nbasis, order=order)


def make_fourier_basis(
    domain: Tuple[float, float],
    nbasis: int,
    period: Optional[float] = None,
) -> FourierBasis:
    """Create a Fourier basis.

    Parameters
    ----------
    domain : tuple of float
        Interval ``(a, b)``.
    nbasis : int
        Number of basis functions (should be odd; even values are rounded up
        with a warning).
    period : float, optional
        Period of the basis. If None, uses the domain width.

    Returns
    -------
    basis : FourierBasis
    """
    return FourierBasis(domain=domain, nbasis=nbasis, period=period)


def make_constant_basis(domain: Tuple[float, float]) -> ConstantBasis:
    """Create the one-function constant basis on ``domain``."""
    return ConstantBasis(domain=domain)


def bspline_basis(
    argvals: ArrayLike,
    nbasis: int,
) -> NDArray[np.float64]:
    """Compute B-spline basis matrix.

    Parameters
    ----------
    argvals : array-like
        Evaluation points.
    nbasis : int
        Number of basis functions.

    Returns
    -------
    basis : ndarray, shape (n_points, nbasis)
        Cubic B-spline basis matrix on ``(min(argvals), max(argvals))``.
    """
    argvals = np.asarray(argvals, dtype=np.float64)
    return make_bspline_basis((argvals.min(), argvals.max()), nbasis).evaluate(argvals)


def fourier_basis(
    argvals: ArrayLike,
    nbasis: int,
    period: float | None = None,
) -> NDArray[np.float64]:
    """Compute Fourier basis matrix.

    Parameters
    ----------
    argvals : array-like
        Evaluation points.
    nbasis : int
        Number of basis functions (should be odd).
    period : float, optional
        Period of the Fourier basis. If None, uses the range of argvals.

    Returns
    -------
    basis : ndarray, shape (n_points, nbasis)
        Fourier basis matrix.
    """
    argvals = np.asarray(argvals, dtype=np.float64)
    return make_fourier_basis((argvals.min(), argvals.max()), nbasis, period).evaluate(argvals)


@dataclass(frozen=True)
class FunctionalParameter:
    """Basis together with a roughness penalty.

    Parameters
    ----------
    basis : Basis
        Basis in which the function is expanded.
    nderiv : int, default=2
        Order of the derivative whose squared integral is penalized.
    lambda_ : float, default=0.0
        Non-negative penalty weight.
    """

    basis: Basis
    nderiv: int = 2
    lambda_: float = 0.0

    def __post_init__(self):
        if not isinstance(self.basis, Basis):
            raise BasisConfigError(f"basis must be a Basis instance, got {type(self.basis).__name__}")
        if int(self.nderiv) != self.nderiv or self.nderiv < 0:
            raise BasisConfigError(f"nderiv must be a non-negative integer, got {self.nderiv}")
        if not np.isfinite(self.lambda_) or self.lambda_ < 0:
            raise BasisConfigError(f"lambda_ must be a non-negative number, got {self.lambda_}")
        object.__setattr__(self, "nderiv", int(self.nderiv))
        object.__setattr__(self, "lambda_", float(self.lambda_))

    @property
    def penalty(self) -> NDArray[np.float64]:
        """Penalty matrix of the basis for ``nderiv``."""
        return self.basis.penalty_matrix(self.nderiv)

    def with_lambda(self, lambda_: float) -> FunctionalParameter:
        """Copy with a different penalty weight."""
        return FunctionalParameter(self.basis, self.nderiv, lambda_)


def fdpar(basis: Basis, nderiv: int = 2, lambda_: float = 0.0) -> FunctionalParameter:
    """Create a functional parameter (convenience function mirroring R's fdPar)."""
    return FunctionalParameter(basis=basis, nderiv=nderiv, lambda_=lambda_)


@dataclass
class FDataBasis:
    """Curves represented by coefficients in a basis.

    Parameters
    ----------
    basis : Basis
        Shared basis of all curves.
    coefs : array-like, shape (nbasis, n_curves)
        One column of coefficients per curve. A 1D array is a single curve.
    id : list of str, optional
        Curve identifiers.

    Examples
    --------
    >>> import numpy as np
    >>> from bikefda import FDataBasis, make_constant_basis
    >>> fd = FDataBasis(make_constant_basis((0, 23)), np.array([[1.0, 2.0]]))
    >>> fd.evaluate([0.0, 12.0])
    array([[1., 2.],
           [1., 2.]])
    """

    basis: Basis
    coefs: NDArray[np.float64]
    id: Optional[List[str]] = field(default=None)

    def __post_init__(self):
        coefs = np.asarray(self.coefs, dtype=np.float64)
        if coefs.ndim == 1:
            coefs = coefs.reshape(-1, 1)
        if coefs.ndim != 2 or coefs.shape[0] != self.basis.nbasis:
            raise DimensionError(
                f"coefs must have shape ({self.basis.nbasis}, n_curves), got {coefs.shape}"
            )
        self.coefs = coefs
        if self.id is None:
            self.id = [f"obs_{i}" for i in range(self.n_curves)]
        elif len(self.id) != self.n_curves:
            raise DimensionError(f"{len(self.id)} ids given for {self.n_curves} curves")

    def __len__(self) -> int:
        return self.coefs.shape[1]

    def __repr__(self) -> str:
        return f"FDataBasis(basis={self.basis.family}, nbasis={self.basis.nbasis}, n_curves={self.n_curves})"

    def __getitem__(self, key) -> FDataBasis:
        """Select a subset of curves."""
        if isinstance(key, (int, np.integer)):
            key = [key]
        indices = np.arange(self.n_curves)[key]
        return FDataBasis(self.basis, self.coefs[:, indices], id=[self.id[i] for i in indices])

    def _check_compatible(self, other: FDataBasis) -> None:
        if other.basis != self.basis:
            raise DimensionError("functional objects are expanded in different bases")

    def __add__(self, other: FDataBasis) -> FDataBasis:
        self._check_compatible(other)
        return FDataBasis(self.basis, self.coefs + other.coefs)

    def __sub__(self, other: FDataBasis) -> FDataBasis:
        self._check_compatible(other)
        return FDataBasis(self.basis, self.coefs - other.coefs)

    @property
    def n_curves(self) -> int:
        """Number of curves."""
        return self.coefs.shape[1]

    @property
    def domain(self) -> Tuple[float, float]:
        """Domain of the basis."""
        return self.basis.domain

    def evaluate(self, argvals: ArrayLike, nderiv: int = 0) -> NDArray[np.float64]:
        """Evaluate the curves.

        Parameters
        ----------
        argvals : array-like, shape (n_points,)
            Evaluation points.
        nderiv : int, default=0
            Derivative order.

        Returns
        -------
        values : ndarray, shape (n_points, n_curves)
            One column per curve.
        """
        return self.basis.evaluate(argvals, nderiv=nderiv) @ self.coefs

    def to_fdata(self, argvals: Optional[ArrayLike] = None, nderiv: int = 0) -> FData:
        """Evaluate on a grid and return discretized curves.

        Parameters
        ----------
        argvals : array-like, optional
            Evaluation grid; defaults to 101 equally spaced points.
        nderiv : int, default=0
            Derivative order.

        Returns
        -------
        fdataobj : FData
        """
        if argvals is None:
            argvals = eval_grid(self.domain)
        argvals = np.asarray(argvals, dtype=np.float64)
        return FData(
            data=self.evaluate(argvals, nderiv=nderiv).T,
            argvals=argvals,
            rangeval=self.domain,
            id=list(self.id),
        )

    def mean(self) -> FDataBasis:
        """Mean function as a single-curve object."""
        return FDataBasis(self.basis, self.coefs.mean(axis=1, keepdims=True), id=["mean"])

    def center(self) -> FDataBasis:
        """Subtract the mean function from every curve."""
        return FDataBasis(
            self.basis,
            self.coefs - self.coefs.mean(axis=1, keepdims=True),
            id=list(self.id),
        )

    def inner_product(self, other: Optional[FDataBasis] = None, nderiv: int = 0) -> NDArray[np.float64]:
        """Matrix of L2 inner products with ``other`` (or with itself)."""
        return inner_product(self, self if other is None else other, nderiv, nderiv)

    def copy(self) -> FDataBasis:
        """Create a deep copy."""
        return FDataBasis(self.basis, self.coefs.copy(), id=list(self.id))

"""Discretely evaluated functional data."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import numpy as np
from numpy.typing import ArrayLike, NDArray

from .exceptions import DimensionError


@dataclass
class FData:
    """Container for curves evaluated on a common grid.

    Parameters
    ----------
    data : array-like, shape (n_samples, n_points)
        The functional data matrix, one curve per row.
    argvals : array-like, shape (n_points,), optional
        Evaluation points. Defaults to ``0, 1, ..., n_points - 1``.
    rangeval : tuple, optional
        Range of argument values. Defaults to ``(argvals.min(), argvals.max())``.
    id : list of str, optional
        Sample identifiers.

    Attributes
    ----------
    data : ndarray
        The data matrix in row-major order (n_samples, n_points).
    argvals : ndarray
        Evaluation points.
    rangeval : tuple
        (min, max) of argument domain.

    Examples
    --------
    >>> import numpy as np
    >>> from bikefda import FData
    >>> t = np.arange(24.0)
    >>> fd = FData(np.sin(2 * np.pi * t / 24).reshape(1, -1), argvals=t)
    >>> print(fd)
    FData(n_samples=1, n_points=24)
    """

    data: NDArray[np.float64]
    argvals: NDArray[np.float64] = field(default=None)
    rangeval: Tuple[float, float] = field(default=None)
    id: Optional[List[str]] = None

    def __post_init__(self):
        self.data = np.atleast_2d(np.asarray(self.data, dtype=np.float64))
        if self.data.ndim != 2:
            raise DimensionError(f"data must be 2D (n_samples, n_points), got {self.data.ndim}D")

        if self.argvals is None:
            self.argvals = np.arange(self.data.shape[1], dtype=np.float64)
        else:
            self.argvals = np.asarray(self.argvals, dtype=np.float64)
        if self.argvals.shape != (self.data.shape[1],):
            raise DimensionError(
                f"argvals has {self.argvals.size} points but data has {self.data.shape[1]} columns"
            )

        if self.rangeval is None:
            self.rangeval = (float(self.argvals.min()), float(self.argvals.max()))

        if self.id is None:
            self.id = [f"obs_{i}" for i in range(len(self))]

    @classmethod
    def from_channel_matrix(
        cls,
        matrix: ArrayLike,
        argvals: Optional[ArrayLike] = None,
        **kwargs,
    ) -> FData:
        """Build from a channel matrix with one column per curve.

        Parameters
        ----------
        matrix : array-like, shape (n_points, n_curves)
            Channel matrix as produced by :func:`bikefda.assemble.hourly_matrix`.
        argvals : array-like, optional
            Sampling grid of the rows.

        Returns
        -------
        fd : FData
            Curves in row orientation.
        """
        matrix = np.asarray(matrix, dtype=np.float64)
        if matrix.ndim != 2:
            raise DimensionError("channel matrix must be 2D (n_points, n_curves)")
        return cls(data=matrix.T, argvals=argvals, **kwargs)

    def __len__(self) -> int:
        return self.data.shape[0]

    def __repr__(self) -> str:
        n, m = self.data.shape
        return f"FData(n_samples={n}, n_points={m})"

    def __getitem__(self, key) -> FData:
        """Subset the functional data."""
        if isinstance(key, (int, np.integer)):
            key = [key]
        new_data = self.data[key]

        if isinstance(key, slice):
            indices = range(*key.indices(len(self)))
        elif isinstance(key, np.ndarray) and key.dtype == bool:
            indices = np.flatnonzero(key)
        else:
            indices = key

        return FData(
            data=new_data,
            argvals=self.argvals.copy(),
            rangeval=self.rangeval,
            id=[self.id[i] for i in indices],
        )

    @property
    def n_samples(self) -> int:
        """Number of samples."""
        return self.data.shape[0]

    @property
    def n_points(self) -> int:
        """Number of evaluation points."""
        return self.data.shape[1]

    @property
    def shape(self) -> Tuple[int, int]:
        """Shape of the data matrix."""
        return self.data.shape

    def mean(self) -> NDArray[np.float64]:
        """Compute the pointwise mean function.

        Returns
        -------
        mean : ndarray, shape (n_points,)
            Mean function across all samples.
        """
        return self.data.mean(axis=0)

    def copy(self) -> FData:
        """Create a deep copy of the FData object."""
        return FData(
            data=self.data.copy(),
            argvals=self.argvals.copy(),
            rangeval=self.rangeval,
            id=list(self.id),
        )


def fdata(
    data: ArrayLike,
    argvals: Optional[ArrayLike] = None,
    rangeval: Optional[Tuple[float, float]] = None,
    **kwargs,
) -> FData:
    """Create a functional data object (convenience function).

    This mirrors R's fdata() constructor.

    Parameters
    ----------
    data : array-like
        The functional data matrix.
    argvals : array-like, optional
        Evaluation points.
    rangeval : tuple, optional
        Range of argument values.
    **kwargs
        Additional arguments passed to FData.

    Returns
    -------
    fd : FData
        Functional data object.
    """
    return FData(data=data, argvals=argvals, rangeval=rangeval, **kwargs)

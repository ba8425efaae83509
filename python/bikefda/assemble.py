"""Reshape flat hourly records into per-day curve matrices."""

from __future__ import annotations

import logging
from typing import Dict, Mapping

import numpy as np
from numpy.typing import ArrayLike, NDArray

from .exceptions import DimensionError

logger = logging.getLogger(__name__)

DEFAULT_SAMPLES_PER_DAY = 24


def _check_samples_per_day(samples_per_day: int) -> None:
    if isinstance(samples_per_day, bool) or not isinstance(samples_per_day, (int, np.integer)):
        raise DimensionError(f"samples_per_day must be an integer, got {samples_per_day!r}")
    if samples_per_day <= 0:
        raise DimensionError(f"samples_per_day must be positive, got {samples_per_day}")


def hour_grid(samples_per_day: int = DEFAULT_SAMPLES_PER_DAY) -> NDArray[np.float64]:
    """Sampling grid ``0, 1, ..., samples_per_day - 1`` of a daily curve."""
    _check_samples_per_day(samples_per_day)
    return np.arange(samples_per_day, dtype=np.float64)


def hourly_matrix(
    values: ArrayLike,
    samples_per_day: int = DEFAULT_SAMPLES_PER_DAY,
) -> NDArray[np.float64]:
    """Arrange a flat per-hour sequence as a channel matrix.

    Parameters
    ----------
    values : array-like, shape (n_records,)
        Consecutive hourly values, day after day.
    samples_per_day : int, default=24
        Number of samples making up one daily curve.

    Returns
    -------
    matrix : ndarray, shape (samples_per_day, n_days)
        ``matrix[r, d] == values[d * samples_per_day + r]``. Records of a
        trailing partial day are dropped.

    Raises
    ------
    DimensionError
        If ``values`` is empty, ``samples_per_day`` is not a positive integer or fewer
        than ``samples_per_day`` values are given.
    """
    _check_samples_per_day(samples_per_day)
    values = np.asarray(values, dtype=np.float64).ravel()
    if values.size == 0:
        raise DimensionError("cannot assemble curves from an empty sequence")

    n_days = values.size // samples_per_day
    if n_days == 0:
        raise DimensionError(
            f"{values.size} values do not fill a single day of {samples_per_day} samples"
        )
    leftover = values.size - n_days * samples_per_day
    if leftover:
        logger.debug("dropping %d records of a trailing partial day", leftover)

    return values[: n_days * samples_per_day].reshape(n_days, samples_per_day).T.copy()


def assemble_channels(
    channels: Mapping[str, ArrayLike],
    samples_per_day: int = DEFAULT_SAMPLES_PER_DAY,
) -> Dict[str, NDArray[np.float64]]:
    """Assemble several hourly channels that are analysed together.

    Parameters
    ----------
    channels : mapping of str to array-like
        Flat hourly sequences, e.g. ``{"cnt": ..., "temp": ..., "hum": ...}``.
    samples_per_day : int, default=24
        Number of samples per daily curve.

    Returns
    -------
    matrices : dict
        Channel matrices keyed like ``channels``, all with the same number of
        columns.

    Raises
    ------
    DimensionError
        If the channels do not yield the same number of days.
    """
    matrices = {name: hourly_matrix(values, samples_per_day) for name, values in channels.items()}
    n_days = {name: m.shape[1] for name, m in matrices.items()}
    if len(set(n_days.values())) > 1:
        raise DimensionError(f"channels cover different numbers of days: {n_days}")
    return matrices


def daily_labels(
    labels: ArrayLike,
    samples_per_day: int = DEFAULT_SAMPLES_PER_DAY,
) -> NDArray:
    """Reduce a per-hour grouping sequence to one label per day.

    Parameters
    ----------
    labels : array-like, shape (n_records,)
        Group label of every hourly record (weekday, season, ...).
    samples_per_day : int, default=24
        Number of samples per daily curve.

    Returns
    -------
    day_labels : ndarray, shape (n_days,)
        Label of each complete day.

    Raises
    ------
    DimensionError
        If a label changes within a day or no complete day is present.
    """
    _check_samples_per_day(samples_per_day)
    labels = np.asarray(labels).ravel()
    n_days = labels.size // samples_per_day
    if n_days == 0:
        raise DimensionError(
            f"{labels.size} labels do not fill a single day of {samples_per_day} samples"
        )
    per_day = labels[: n_days * samples_per_day].reshape(n_days, samples_per_day)
    changed = np.any(per_day != per_day[:, :1], axis=1)
    if np.any(changed):
        raise DimensionError(f"group label changes within day {int(np.argmax(changed))}")
    return per_day[:, 0].copy()

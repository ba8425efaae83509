"""Tests for curve assembly."""

import logging

import numpy as np
import pytest

from bikefda import DimensionError
from bikefda.assemble import assemble_channels, daily_labels, hour_grid, hourly_matrix


class TestHourlyMatrix:
    """Tests for hourly_matrix."""

    def test_layout(self):
        """Element [r, d] holds record d * samples_per_day + r."""
        values = np.arange(72.0)
        m = hourly_matrix(values)
        assert m.shape == (24, 3)
        for d in range(3):
            for r in (0, 7, 23):
                assert m[r, d] == values[d * 24 + r]

    def test_custom_samples_per_day(self):
        """Shorter curves for sub-daily resolution."""
        m = hourly_matrix(np.arange(12.0), samples_per_day=4)
        assert m.shape == (4, 3)
        np.testing.assert_array_equal(m[:, 1], [4, 5, 6, 7])

    def test_drops_partial_day(self, caplog):
        """Trailing records of an incomplete day are dropped and logged."""
        with caplog.at_level(logging.DEBUG, logger="bikefda.assemble"):
            m = hourly_matrix(np.arange(50.0))
        assert m.shape == (24, 2)
        assert "dropping 2 records" in caplog.text

    def test_result_is_independent(self):
        """Modifying the matrix does not touch the input."""
        values = np.arange(24.0)
        m = hourly_matrix(values)
        m[0, 0] = -1
        assert values[0] == 0

    def test_empty_raises(self):
        with pytest.raises(DimensionError):
            hourly_matrix([])

    def test_short_raises(self):
        """Fewer values than one day."""
        with pytest.raises(DimensionError):
            hourly_matrix(np.arange(23.0))

    def test_nonpositive_samples_per_day(self):
        with pytest.raises(DimensionError):
            hourly_matrix(np.arange(24.0), samples_per_day=0)

    @pytest.mark.parametrize("samples_per_day", [24.0, 12.5, "24", True])
    def test_non_integer_samples_per_day(self, samples_per_day):
        with pytest.raises(DimensionError, match="integer"):
            hourly_matrix(np.arange(48.0), samples_per_day)


class TestAssembleChannels:
    """Tests for multi-channel assembly."""

    def test_shared_columns(self):
        """All channels get the same column count."""
        out = assemble_channels({"cnt": np.arange(48.0), "temp": np.ones(48)})
        assert set(out) == {"cnt", "temp"}
        assert out["cnt"].shape == out["temp"].shape == (24, 2)

    def test_mismatch_raises(self):
        """Channels covering a different number of days are rejected."""
        with pytest.raises(DimensionError):
            assemble_channels({"cnt": np.arange(48.0), "temp": np.ones(24)})


class TestDailyLabels:
    """Tests for per-day grouping labels."""

    def test_one_label_per_day(self):
        labels = np.repeat(["mon", "tue", "wed"], 24)
        np.testing.assert_array_equal(daily_labels(labels), ["mon", "tue", "wed"])

    def test_changing_label_raises(self):
        """A label switching inside a day is inconsistent."""
        labels = np.repeat([1, 2], 24)
        labels[30] = 1
        with pytest.raises(DimensionError):
            daily_labels(labels)


def test_hour_grid():
    np.testing.assert_array_equal(hour_grid(), np.arange(24.0))
    assert hour_grid(6).shape == (6,)

from __future__ import annotations

import math

import numpy as np
import pytest

from hrvsense.analysis.hrv import compute_hrv, rmssd, sdnn
from hrvsense.core.models import INSUFFICIENT_HRV


def test_reference_series_has_positive_finite_metrics() -> None:
    metrics = compute_hrv([800, 810, 790, 805, 795])
    assert metrics.sample_count == 5
    assert 0 < metrics.sdnn and math.isfinite(metrics.sdnn)
    assert 0 < metrics.rmssd and math.isfinite(metrics.rmssd)


def test_matches_textbook_definitions() -> None:
    rr = np.array([800.0, 810.0, 790.0, 805.0, 795.0])
    expected_sdnn = math.sqrt(np.mean((rr - rr.mean()) ** 2))
    expected_rmssd = math.sqrt(np.mean(np.diff(rr) ** 2))
    assert sdnn(rr) == pytest.approx(expected_sdnn)
    assert rmssd(rr) == pytest.approx(expected_rmssd)
    # Population, not sample, standard deviation.
    assert sdnn(rr) == pytest.approx(float(np.std(rr, ddof=0)))


def test_constant_series_is_zero() -> None:
    metrics = compute_hrv([800] * 5)
    assert metrics.sdnn == 0.0
    assert metrics.rmssd == 0.0
    assert metrics.sample_count == 5


@pytest.mark.parametrize("values", [[], [800], [800, 810, 790, 805]])
def test_fewer_than_five_is_insufficient(values) -> None:
    assert compute_hrv(values) == INSUFFICIENT_HRV
    assert not compute_hrv(values).is_available


def test_rejects_multidimensional_input() -> None:
    with pytest.raises(ValueError):
        compute_hrv([[800, 810], [790, 805]])


"""Time-domain heart-rate-variability metrics (SDNN, RMSSD)."""

from __future__ import annotations

import numpy as np
from numpy.typing import ArrayLike

from ..core.models import INSUFFICIENT_HRV, HRVMetrics

# Fewer RR intervals than this yields the all-zero "insufficient data" result.
MIN_HRV_SAMPLES = 5


def _to_1d_array(rr_ms: ArrayLike) -> np.ndarray:
    arr = np.asarray(rr_ms, dtype=np.float64)
    if arr.ndim != 1:
        raise ValueError(f"RR series must be 1-D, got shape {arr.shape}")
    return arr


def sdnn(rr_ms: ArrayLike) -> float:
    """
    Population standard deviation of RR intervals.

    Parameters
    ----------
    rr_ms:
        1-D array-like of RR intervals in milliseconds.
    """
    arr = _to_1d_array(rr_ms)
    if arr.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(np.square(arr - arr.mean()))))


def rmssd(rr_ms: ArrayLike) -> float:
    """Root mean square of successive RR differences (0 for < 2 values)."""
    arr = _to_1d_array(rr_ms)
    if arr.size < 2:
        return 0.0
    return float(np.sqrt(np.mean(np.square(np.diff(arr)))))


def compute_hrv(rr_ms: ArrayLike, *, min_samples: int = MIN_HRV_SAMPLES) -> HRVMetrics:
    """
    Compute SDNN and RMSSD over an ordered RR series.

    Returns :data:`INSUFFICIENT_HRV` (all zeros) when fewer than
    ``min_samples`` values are supplied.
    """
    arr = _to_1d_array(rr_ms)
    if arr.size < max(1, int(min_samples)):
        return INSUFFICIENT_HRV
    return HRVMetrics(sdnn=sdnn(arr), rmssd=rmssd(arr), sample_count=int(arr.size))


__all__ = ["MIN_HRV_SAMPLES", "sdnn", "rmssd", "compute_hrv"]

"""Heart-rate variability analysis.

:mod:`hrv` holds pure functions over NumPy arrays of RR intervals (SDNN,
RMSSD). Windowing lives in :meth:`SampleBuffer.window_values
<hrvsense.core.sample_buffer.SampleBuffer.window_values>`. Nothing here keeps
state or touches I/O, so the same helpers serve live sessions, tests and
offline scripts.
"""

from .hrv import MIN_HRV_SAMPLES, compute_hrv, rmssd, sdnn

__all__ = ["MIN_HRV_SAMPLES", "compute_hrv", "rmssd", "sdnn"]

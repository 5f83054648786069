"""Development tools and standalone helpers.

This package contains the opt-in debug instrumentation used across the
engine (:mod:`debug`) and the :mod:`simulate` command-line runner that drives
a multi-sensor session against the simulated transport.
"""

"""
Startup benchmark for tracer agent releases.

This package launches a fresh JVM per trial with each cached agent attached,
times how long it takes to load every class of a target jar, and reports
per-release statistics as CSV, optionally with charts.
"""

from .main import main

__all__ = ["main"]

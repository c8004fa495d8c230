"""Kepler drift of all bodies about a fixed central mass.

- :func:`drift_body`: one body, one attempt (fast elliptic path or
  universal solver).
- :func:`drift`: every non-central body in parallel, with substep retry.
- :func:`report_drift_failures`: logging and optional raising on failed
  bodies, outside of traced code.
"""

from keplerdrift.drift._types import (
    BodyDriftResult,
    DriftConvergenceError,
    DriftResult,
    DriftStatus,
    ParticleState,
)
from keplerdrift.drift.body import drift_body
from keplerdrift.drift.scheduler import drift, report_drift_failures

__all__ = [
    "BodyDriftResult",
    "DriftConvergenceError",
    "DriftResult",
    "DriftStatus",
    "ParticleState",
    "drift_body",
    "drift",
    "report_drift_failures",
]

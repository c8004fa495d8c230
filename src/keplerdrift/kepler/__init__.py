"""Universal-variable Kepler solver.

This sub-module provides the numerical machinery of the drift step:

- **Stumpff functions**: :func:`stumpff` with range reduction and the
  doubling recurrence.
- **Direct elliptic solver**: a fixed-cost fast path for short steps on
  bound orbits (:func:`drift_direct_elliptic`).
- **Initial guesses**: :func:`initial_guess` and the Cardano-based
  :func:`cubic_hyperbolic_guess`.
- **Root finders**: :func:`newton_solve` (Halley-family Newton-Raphson)
  and :func:`laguerre_conway_solve` (robust fallback).
- **Orchestration**: :func:`kepler_solve`, which chains guess, Newton and
  fallback and reports a :class:`SolveStatus`.
"""

from keplerdrift.kepler._types import (
    KeplerSolution,
    NewtonResult,
    RelativeOrbit,
    SolverConfig,
    SolveStatus,
    StumpffCoefficients,
)
from keplerdrift.kepler.elliptic import (
    direct_elliptic_applicable,
    drift_direct_elliptic,
    reduce_elliptic_step,
    solve_elliptic_increment,
    wrap_mean_anomaly,
)
from keplerdrift.kepler.guess import cubic_hyperbolic_guess, initial_guess
from keplerdrift.kepler.laguerre import laguerre_conway_solve
from keplerdrift.kepler.newton import newton_solve
from keplerdrift.kepler.solver import kepler_residual, kepler_solve, relative_orbit
from keplerdrift.kepler.stumpff import stumpff, stumpff_double

__all__ = [
    "KeplerSolution",
    "NewtonResult",
    "RelativeOrbit",
    "SolverConfig",
    "SolveStatus",
    "StumpffCoefficients",
    "stumpff",
    "stumpff_double",
    "direct_elliptic_applicable",
    "drift_direct_elliptic",
    "reduce_elliptic_step",
    "solve_elliptic_increment",
    "wrap_mean_anomaly",
    "cubic_hyperbolic_guess",
    "initial_guess",
    "newton_solve",
    "laguerre_conway_solve",
    "kepler_residual",
    "kepler_solve",
    "relative_orbit",
]

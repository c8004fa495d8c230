"""Type definitions for the universal-variable Kepler solver.

Provides the data types shared by the Kepler solver components:

- :class:`RelativeOrbit`: Two-body quantities of one body relative to the
  central mass, derived once per solve.
- :class:`StumpffCoefficients`: The four Stumpff functions ``c0..c3``.
- :class:`NewtonResult`: Outcome of one root-finding iteration
  (Newton-Raphson or Laguerre-Conway).
- :class:`KeplerSolution`: Outcome of the orchestrated solve, used to
  build the Lagrange coefficients.
- :class:`SolveStatus`: Convergence flag of a solve.
- :class:`SolverConfig`: Iteration budgets of the solver.

The record types are :class:`~typing.NamedTuple` instances, which JAX
treats as pytrees automatically, so they pass through ``jax.jit``,
``jax.vmap`` and ``jax.lax`` control flow primitives unchanged.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import NamedTuple

from jax import Array

from keplerdrift.constants import LAGUERRE_MAX_ITER, NEWTON_MAX_ITER, SUBSTEP_COUNT


class SolveStatus(enum.IntEnum):
    """Convergence flag of a universal Kepler solve.

    Attributes:
        CONVERGED: Newton-Raphson converged.
        FALLBACK_CONVERGED: Newton-Raphson did not converge and the
            Laguerre-Conway fallback did.
        FALLBACK_NOT_CONVERGED: Neither solver converged. Fatal for the
            current solve attempt.
    """

    CONVERGED = 0
    FALLBACK_CONVERGED = 1
    FALLBACK_NOT_CONVERGED = 2


class RelativeOrbit(NamedTuple):
    """Two-body state of a body relative to the central mass.

    Attributes:
        r0: Separation from the central body.
        v0s: Speed squared.
        u: Dot product of relative position and velocity.
        mu: Combined gravitational parameter ``G * (m_central + m_body)``.
        alpha: Vis-viva energy parameter ``2 mu / r0 - v0s``. Positive for
            bound (elliptic) orbits, zero or negative for parabolic and
            hyperbolic ones.
    """

    r0: Array
    v0s: Array
    u: Array
    mu: Array
    alpha: Array


class StumpffCoefficients(NamedTuple):
    """Stumpff functions ``c0, c1, c2, c3`` of one argument."""

    c0: Array
    c1: Array
    c2: Array
    c3: Array


class NewtonResult(NamedTuple):
    """Result of a universal-variable root-finding iteration.

    ``c1``, ``c2``, ``c3`` and ``fp`` are evaluated at the last iterate
    whose residual was checked, i.e. the one that met the tolerance when
    ``converged`` is ``True``.

    Attributes:
        s: Universal variable after the final correction.
        c1: ``c1(x) * s``.
        c2: ``c2(x) * s**2``.
        c3: ``c3(x) * s**3``.
        fp: Derivative of the Kepler function, equal to the final radius.
        converged: Whether the residual tolerance was met.
    """

    s: Array
    c1: Array
    c2: Array
    c3: Array
    fp: Array
    converged: Array


class KeplerSolution(NamedTuple):
    """Result of :func:`~keplerdrift.kepler.solver.kepler_solve`.

    Attributes:
        s: Universal variable.
        c1: ``c1(x) * s``.
        c2: ``c2(x) * s**2``.
        c3: ``c3(x) * s**3``.
        fp: Derivative of the Kepler function (final radius).
        status: :class:`SolveStatus` value as an integer array.
    """

    s: Array
    c1: Array
    c2: Array
    c3: Array
    fp: Array
    status: Array


@dataclass(frozen=True)
class SolverConfig:
    """Iteration budgets of the drift solvers.

    Configuration is static: the values are read at JAX trace time, so a
    change triggers a retrace rather than a runtime branch.

    Args:
        newton_max_iter: Iteration cap of the Newton-Raphson solver.
        laguerre_max_iter: Iteration cap of the Laguerre-Conway solver.
        substeps: Number of equal substeps tried after a failed full step.

    Examples:
        ```python
        from keplerdrift.kepler import SolverConfig
        config = SolverConfig()
        config.newton_max_iter
        ```
    """

    newton_max_iter: int = NEWTON_MAX_ITER
    laguerre_max_iter: int = LAGUERRE_MAX_ITER
    substeps: int = SUBSTEP_COUNT

    def __post_init__(self) -> None:
        if self.newton_max_iter < 0:
            raise ValueError(
                f"newton_max_iter must be non-negative, got {self.newton_max_iter}"
            )
        if self.laguerre_max_iter < 0:
            raise ValueError(
                f"laguerre_max_iter must be non-negative, got {self.laguerre_max_iter}"
            )
        if self.substeps < 1:
            raise ValueError(f"substeps must be at least 1, got {self.substeps}")

"""Type definitions for the drift step.

- :class:`ParticleState`: Positions, velocities and masses of all bodies,
  with the central body in row 0.
- :class:`BodyDriftResult`: Outcome of one drift attempt for one body.
- :class:`DriftResult`: Outcome of a drift pass over all bodies.
- :class:`DriftStatus`: Per-body outcome code of a drift pass.
- :class:`DriftConvergenceError`: Raised on request when bodies could not
  be drifted.
"""

from __future__ import annotations

import enum
from typing import NamedTuple

from jax import Array


class DriftStatus(enum.IntEnum):
    """Per-body outcome of a drift pass.

    Attributes:
        CONVERGED: The full step converged.
        SUBSTEPPED: The full step failed and every substep converged.
        FAILED: A substep failed. The body is left at the end of its last
            successful substep and is behind the rest of the system.
    """

    CONVERGED = 0
    SUBSTEPPED = 1
    FAILED = 2


class ParticleState(NamedTuple):
    """State of a system orbiting a dominant central mass.

    Row 0 holds the central body, which the drift never moves.

    Attributes:
        position: Positions, shape ``(N, 3)``.
        velocity: Velocities, shape ``(N, 3)``.
        mass: Masses, shape ``(N,)``.
    """

    position: Array
    velocity: Array
    mass: Array


class BodyDriftResult(NamedTuple):
    """Result of one drift attempt for a single body.

    Attributes:
        position: New absolute position, shape ``(3,)``.
        velocity: New velocity, shape ``(3,)``.
        status: :class:`~keplerdrift.kepler.SolveStatus` code of the
            attempt. The fast path reports ``CONVERGED``.
        fast_path: Whether the direct elliptic solver produced the result.
    """

    position: Array
    velocity: Array
    status: Array
    fast_path: Array


class DriftResult(NamedTuple):
    """Result of a drift pass over every body.

    Attributes:
        state: New particle state. Masses and the central row are unchanged.
        status: :class:`DriftStatus` code per body, shape ``(N,)``.
        substeps: Completed substeps per body, shape ``(N,)``. Zero when
            the full step converged.
    """

    state: ParticleState
    status: Array
    substeps: Array


class DriftConvergenceError(RuntimeError):
    """Raised when bodies could not be advanced by a full drift step.

    Attributes:
        indices: Indices of the failed bodies.
    """

    def __init__(self, indices: list[int]) -> None:
        self.indices = indices
        super().__init__(
            f"Kepler drift did not converge for {len(indices)} "
            f"bod{'y' if len(indices) == 1 else 'ies'}: {indices}"
        )

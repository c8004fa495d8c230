"""Type definitions for the Wisdom-Holman integrator.

- :class:`WisdomHolmanConfig`: Static configuration of a step.
- :class:`WHStepResult`: Output of a step or of a multi-step integration.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import NamedTuple

from jax import Array

from keplerdrift.drift import ParticleState
from keplerdrift.kepler import SolverConfig


@dataclass(frozen=True)
class WisdomHolmanConfig:
    """Configuration of the Wisdom-Holman drift-kick-drift step.

    Configuration is static: Python ``if`` branches on the toggles are
    resolved at JAX trace time.

    Args:
        G: Gravitational constant in the units of the particle state.
        self_gravity: Apply the interaction kick between two half drifts.
            When ``False`` a single full-length drift replaces the
            drift-kick-drift sequence.
        indirect_term: Subtract the central body's acceleration from every
            kick, as required in a frame centred on the central body.
        solver: Iteration budgets of the drift solvers.

    Examples:
        ```python
        from keplerdrift.integrators import WisdomHolmanConfig
        config = WisdomHolmanConfig(self_gravity=False)
        config.G
        ```
    """

    G: float = 1.0
    self_gravity: bool = True
    indirect_term: bool = True
    solver: SolverConfig = field(default_factory=SolverConfig)

    def __post_init__(self) -> None:
        if not self.G > 0.0:
            raise ValueError(f"G must be positive, got {self.G}")


class WHStepResult(NamedTuple):
    """Result of :func:`wisdom_holman_step` or :func:`integrate`.

    Attributes:
        state: Particle state after the step(s).
        status: Worst :class:`~keplerdrift.drift.DriftStatus` seen per
            body, shape ``(N,)``.
        substeps: Total completed drift substeps per body, shape ``(N,)``.
    """

    state: ParticleState
    status: Array
    substeps: Array

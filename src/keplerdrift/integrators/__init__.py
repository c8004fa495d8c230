"""Wisdom-Holman integrator built on the Kepler drift.

- :func:`wisdom_holman_step` -- one drift-kick-drift step
- :func:`integrate` -- many steps inside ``jax.lax.scan``

Both share the interface::

    result = step_fn(state, dt, accel_fn, config)

where ``accel_fn(state) -> (N, 3)`` supplies the interaction
accelerations and the result is a :class:`WHStepResult` named tuple.
"""

from keplerdrift.integrators._types import WHStepResult, WisdomHolmanConfig
from keplerdrift.integrators.wisdom_holman import integrate, wisdom_holman_step

__all__ = [
    "WHStepResult",
    "WisdomHolmanConfig",
    "wisdom_holman_step",
    "integrate",
]

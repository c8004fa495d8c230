"""Wisdom-Holman symplectic integrator in heliocentric coordinates.

The Hamiltonian of a system dominated by a central mass is split into a
Keplerian part, integrated exactly by :func:`~keplerdrift.drift.drift`,
and an interaction part, integrated by a velocity kick.  One step is the
second-order leapfrog

.. math::

    D(h/2)\\, K(h)\\, D(h/2),

where the kick applies ``dt * (a_i - a_0)`` to every non-central body.
The accelerations ``a`` are supplied by the caller; the subtraction of
``a_0`` is the indirect term of the non-inertial frame centred on the
central body.

References:
    J. Wisdom and M. Holman, "Symplectic maps for the N-body problem",
    *Astronomical Journal* 102, 1528-1538, 1991.
"""

from __future__ import annotations

from collections.abc import Callable

import jax
import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from keplerdrift.config import get_dtype
from keplerdrift.drift import ParticleState, drift
from keplerdrift.integrators._types import WHStepResult, WisdomHolmanConfig


def _kick(state: ParticleState, dt: Array, accel_fn: Callable[[ParticleState], Array], indirect_term: bool) -> ParticleState:
    acc = jnp.asarray(accel_fn(state), dtype=get_dtype())
    if indirect_term:
        acc = acc - acc[0]
    acc = acc.at[0].set(0.0)
    return state._replace(velocity=state.velocity + dt * acc)


def wisdom_holman_step(
    state: ParticleState,
    dt: ArrayLike,
    accel_fn: Callable[[ParticleState], Array] | None,
    config: WisdomHolmanConfig | None = None,
) -> WHStepResult:
    """Advance a system by one Wisdom-Holman step.

    Compatible with ``jax.jit`` when ``accel_fn`` and ``config`` are
    closed over or static.

    Args:
        state: Particle state with the central body in row 0.
        dt: Step size. May be negative.
        accel_fn: Function ``accel_fn(state) -> (N, 3)`` returning the
            interaction accelerations. Never called when
            ``config.self_gravity`` is ``False`` and may then be ``None``.
        config: Step configuration. Uses the default
            :class:`WisdomHolmanConfig` if ``None``.

    Returns:
        WHStepResult: New state, worst drift status per body and total
            completed drift substeps per body.

    Raises:
        ValueError: If self gravity is enabled and ``accel_fn`` is ``None``.

    Examples:
        ```python
        import jax.numpy as jnp
        from keplerdrift.drift import ParticleState
        from keplerdrift.integrators import WisdomHolmanConfig, wisdom_holman_step
        state = ParticleState(
            position=jnp.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0]]),
            velocity=jnp.array([[0.0, 0.0, 0.0], [0.0, 1.0, 0.0]]),
            mass=jnp.array([1.0, 0.0]),
        )
        res = wisdom_holman_step(state, 0.01, None, WisdomHolmanConfig(self_gravity=False))
        ```
    """
    if config is None:
        config = WisdomHolmanConfig()
    dt = jnp.asarray(dt, dtype=get_dtype())

    if not config.self_gravity:
        res = drift(state, dt, config.G, config.solver)
        return WHStepResult(res.state, res.status, res.substeps)

    if accel_fn is None:
        raise ValueError("accel_fn is required when self_gravity is enabled")

    first = drift(state, 0.5 * dt, config.G, config.solver)
    kicked = _kick(first.state, dt, accel_fn, config.indirect_term)
    second = drift(kicked, 0.5 * dt, config.G, config.solver)

    return WHStepResult(
        state=second.state,
        status=jnp.maximum(first.status, second.status),
        substeps=first.substeps + second.substeps,
    )


def integrate(
    state: ParticleState,
    dt: ArrayLike,
    n_steps: int,
    accel_fn: Callable[[ParticleState], Array] | None,
    config: WisdomHolmanConfig | None = None,
) -> WHStepResult:
    """Take ``n_steps`` Wisdom-Holman steps of size ``dt``.

    The steps run inside ``jax.lax.scan``; ``n_steps`` must be a Python
    integer.

    Args:
        state: Initial particle state with the central body in row 0.
        dt: Step size. May be negative.
        n_steps: Number of steps.
        accel_fn: Interaction accelerations, see :func:`wisdom_holman_step`.
        config: Step configuration. Uses the default
            :class:`WisdomHolmanConfig` if ``None``.

    Returns:
        WHStepResult: Final state, worst drift status per body over all
            steps and total completed drift substeps per body.

    Raises:
        ValueError: If ``n_steps`` is negative.
    """
    if n_steps < 0:
        raise ValueError(f"n_steps must be non-negative, got {n_steps}")
    if config is None:
        config = WisdomHolmanConfig()

    dtype = get_dtype()
    state = ParticleState(
        position=jnp.asarray(state.position, dtype=dtype),
        velocity=jnp.asarray(state.velocity, dtype=dtype),
        mass=jnp.asarray(state.mass, dtype=dtype),
    )
    n = state.mass.shape[0]

    def step(carry, _):
        st, status, substeps = carry
        res = wisdom_holman_step(st, dt, accel_fn, config)
        return (res.state, jnp.maximum(status, res.status), substeps + res.substeps), None

    init = (state, jnp.zeros((n,), dtype=jnp.int32), jnp.zeros((n,), dtype=jnp.int32))
    (final, status, substeps), _ = jax.lax.scan(step, init, None, length=n_steps)
    return WHStepResult(state=final, status=status, substeps=substeps)

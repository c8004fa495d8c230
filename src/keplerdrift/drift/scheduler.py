"""Drift pass over every body of a system.

Bodies are advanced independently of each other with ``jax.vmap``; the
central body's position and mass are broadcast read-only.  A body whose
full-length solve fails is retried with ``SolverConfig.substeps`` equal
substeps.  If a substep fails too, the body stays at the end of its last
successful substep and is reported as
:attr:`~keplerdrift.drift.DriftStatus.FAILED`.

:func:`drift` is pure and jittable.  :func:`report_drift_failures`
inspects a concrete :class:`~keplerdrift.drift.DriftResult` outside of
traced code, logs the affected bodies and optionally raises.
"""

from __future__ import annotations

import logging
from functools import partial

import jax
import jax.numpy as jnp
import numpy as np
from jax import Array
from jax.typing import ArrayLike

from keplerdrift.config import get_dtype
from keplerdrift.drift._types import (
    DriftConvergenceError,
    DriftResult,
    DriftStatus,
    ParticleState,
)
from keplerdrift.drift.body import drift_body
from keplerdrift.kepler import SolverConfig, SolveStatus

logger = logging.getLogger(__name__)


def _drift_with_retry(
    position: Array,
    velocity: Array,
    central_position: Array,
    mu: Array,
    dt: Array,
    config: SolverConfig,
) -> tuple[Array, Array, Array, Array]:
    """Drift one body, retrying with substeps if the full step fails."""
    full = drift_body(position, velocity, central_position, mu, dt, config)
    full_ok = full.status != SolveStatus.FALLBACK_NOT_CONVERGED.value

    def _accept(_):
        return (
            full.position,
            full.velocity,
            jnp.asarray(DriftStatus.CONVERGED.value, dtype=jnp.int32),
            jnp.asarray(0, dtype=jnp.int32),
        )

    def _retry(_):
        h = dt / config.substeps

        def substep(carry, _):
            pos, vel, ok, done = carry
            res = drift_body(pos, vel, central_position, mu, h, config)
            step_ok = ok & (res.status != SolveStatus.FALLBACK_NOT_CONVERGED.value)
            pos = jnp.where(step_ok, res.position, pos)
            vel = jnp.where(step_ok, res.velocity, vel)
            return (pos, vel, step_ok, done + step_ok.astype(jnp.int32)), None

        init = (position, velocity, jnp.asarray(True), jnp.asarray(0, dtype=jnp.int32))
        (pos, vel, ok, done), _ = jax.lax.scan(substep, init, None, length=config.substeps)
        status = jnp.where(ok, DriftStatus.SUBSTEPPED.value, DriftStatus.FAILED.value)
        return pos, vel, status.astype(jnp.int32), done

    return jax.lax.cond(full_ok, _accept, _retry, None)


def drift(
    state: ParticleState,
    dt: ArrayLike,
    G: float = 1.0,
    config: SolverConfig | None = None,
) -> DriftResult:
    """Drift every non-central body along its two-body orbit.

    Each body ``i >= 1`` is propagated about the central body (row 0)
    with gravitational parameter ``G * (m_0 + m_i)``.  The central body is
    never moved.  Bodies are independent, so the pass is a ``jax.vmap``
    over rows.

    Compatible with ``jax.jit``; pass ``config`` as a static argument or
    close over it.

    Args:
        state: Particle state with the central body in row 0.
        dt: Time step. May be negative.
        G: Gravitational constant in the units of ``state``.
        config: Solver iteration budgets and substep count. Uses the
            default :class:`~keplerdrift.kepler.SolverConfig` if ``None``.

    Returns:
        DriftResult: New state, per-body :class:`DriftStatus` and
            completed substep counts.

    Raises:
        ValueError: If the arrays of ``state`` have inconsistent shapes.

    Examples:
        ```python
        import jax.numpy as jnp
        from keplerdrift.drift import ParticleState, drift
        state = ParticleState(
            position=jnp.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0]]),
            velocity=jnp.array([[0.0, 0.0, 0.0], [0.0, 1.0, 0.0]]),
            mass=jnp.array([1.0, 0.0]),
        )
        result = drift(state, 0.1)
        result.status  # [0, 0]
        ```
    """
    if config is None:
        config = SolverConfig()

    dtype = get_dtype()
    position = jnp.asarray(state.position, dtype=dtype)
    velocity = jnp.asarray(state.velocity, dtype=dtype)
    mass = jnp.asarray(state.mass, dtype=dtype)
    dt = jnp.asarray(dt, dtype=dtype)

    n = mass.shape[0] if mass.ndim == 1 else -1
    if n < 1 or position.shape != (n, 3) or velocity.shape != (n, 3):
        raise ValueError(
            f"state must hold position (N, 3), velocity (N, 3) and mass (N,) "
            f"with N >= 1, got {position.shape}, {velocity.shape}, {mass.shape}"
        )

    zero = jnp.zeros((1,), dtype=jnp.int32)
    if n == 1:
        return DriftResult(ParticleState(position, velocity, mass), zero, zero)

    central_position = position[0]
    mu = G * (mass[0] + mass[1:])

    body_pos, body_vel, body_status, body_substeps = jax.vmap(
        partial(_drift_with_retry, config=config), in_axes=(0, 0, None, 0, None)
    )(position[1:], velocity[1:], central_position, mu, dt)

    new_state = ParticleState(
        position=jnp.concatenate([position[:1], body_pos], axis=0),
        velocity=jnp.concatenate([velocity[:1], body_vel], axis=0),
        mass=mass,
    )
    return DriftResult(
        state=new_state,
        status=jnp.concatenate([zero, body_status]),
        substeps=jnp.concatenate([zero, body_substeps]),
    )


def report_drift_failures(result: DriftResult, raise_on_failure: bool = False) -> int:
    """Log bodies that needed substeps or failed in a drift pass.

    Not jittable: it reads the concrete status array.  Failed bodies are
    logged at ``WARNING`` level, substepped bodies at ``DEBUG`` level.

    Args:
        result: Result of :func:`drift` or of a Wisdom-Holman step.
        raise_on_failure: Raise instead of returning when any body failed.

    Returns:
        int: Number of failed bodies.

    Raises:
        DriftConvergenceError: If ``raise_on_failure`` is ``True`` and at
            least one body failed.
    """
    status = np.asarray(result.status)
    substeps = np.asarray(result.substeps)

    for i in np.flatnonzero(status == DriftStatus.SUBSTEPPED):
        logger.debug("Body %d converged only after %d substeps", i, substeps[i])

    failed = [int(i) for i in np.flatnonzero(status == DriftStatus.FAILED)]
    for i in failed:
        logger.warning(
            "Kepler drift failed for body %d after %d completed substeps; "
            "body is left behind the rest of the system",
            i,
            substeps[i],
        )

    if failed and raise_on_failure:
        raise DriftConvergenceError(failed)
    return len(failed)

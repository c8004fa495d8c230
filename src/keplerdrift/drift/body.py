"""Two-body drift of a single body about a fixed central mass.

The body's state relative to the central body is advanced along its
osculating Kepler orbit and mapped back with the Lagrange coefficients

.. math::

    \\mathbf{r} = f \\mathbf{r}_0 + g \\mathbf{v}_0, \\qquad
    \\mathbf{v} = \\dot f \\mathbf{r}_0 + \\dot g \\mathbf{v}_0,

which define a symplectic map.  Short steps on moderately eccentric bound
orbits use the direct elliptic solver; everything else goes through the
universal-variable :func:`~keplerdrift.kepler.kepler_solve`.
"""

from __future__ import annotations

import jax
import jax.numpy as jnp
from jax.typing import ArrayLike

from keplerdrift.config import get_dtype
from keplerdrift.drift._types import BodyDriftResult
from keplerdrift.kepler import (
    SolverConfig,
    SolveStatus,
    drift_direct_elliptic,
    kepler_solve,
    reduce_elliptic_step,
    relative_orbit,
)


def drift_body(
    position: ArrayLike,
    velocity: ArrayLike,
    central_position: ArrayLike,
    mu: ArrayLike,
    dt: ArrayLike,
    config: SolverConfig | None = None,
) -> BodyDriftResult:
    """Drift one body along its two-body orbit for a time ``dt``.

    The velocity is used as given; the central body is assumed to be at
    rest in the frame of the drift.  Steps on bound orbits are first
    reduced modulo the orbital period.  A step that reduces to zero
    returns the input unchanged.

    Compatible with ``jax.jit`` and ``jax.vmap``.

    Args:
        position: Absolute position of the body, shape ``(3,)``.
        velocity: Velocity of the body, shape ``(3,)``.
        central_position: Position of the central body, shape ``(3,)``.
        mu: Combined gravitational parameter ``G * (m_central + m_body)``.
        dt: Time step. May be negative.
        config: Solver iteration budgets. Uses the default
            :class:`~keplerdrift.kepler.SolverConfig` if ``None``.

    Returns:
        BodyDriftResult: New position and velocity, the
            :class:`~keplerdrift.kepler.SolveStatus` code and whether the
            fast path was taken.  On ``FALLBACK_NOT_CONVERGED`` the
            position and velocity are not meaningful.

    Examples:
        ```python
        import jax.numpy as jnp
        from keplerdrift.drift import drift_body
        res = drift_body(jnp.array([1.0, 0.0, 0.0]), jnp.array([0.0, 1.0, 0.0]),
                         jnp.zeros(3), 1.0, 2.0 * jnp.pi)
        res.position  # ~[1, 0, 0]
        ```
    """
    dtype = get_dtype()
    position = jnp.asarray(position, dtype=dtype)
    velocity = jnp.asarray(velocity, dtype=dtype)
    central_position = jnp.asarray(central_position, dtype=dtype)
    mu = jnp.asarray(mu, dtype=dtype)
    dt = jnp.asarray(dt, dtype=dtype)

    r = position - central_position
    v = velocity
    orbit = relative_orbit(r, v, mu)
    dt1 = reduce_elliptic_step(orbit, dt)
    converged = jnp.asarray(SolveStatus.CONVERGED.value, dtype=jnp.int32)

    def _unchanged(_):
        return BodyDriftResult(position, velocity, converged, jnp.asarray(False))

    def _fast(ops):
        r_fast, v_fast = ops
        return BodyDriftResult(r_fast + central_position, v_fast, converged, jnp.asarray(True))

    def _general(_):
        sol = kepler_solve(dt1, orbit, config)
        f = 1.0 - (mu / orbit.r0) * sol.c2
        g = dt1 - mu * sol.c3
        fdot = -(mu / (sol.fp * orbit.r0)) * sol.c1
        gdot = 1.0 - (mu / sol.fp) * sol.c2
        r_new = f * r + g * v + central_position
        v_new = fdot * r + gdot * v
        return BodyDriftResult(r_new, v_new, sol.status, jnp.asarray(False))

    def _step(_):
        r_fast, v_fast, fast_ok = drift_direct_elliptic(r, v, orbit, dt)
        return jax.lax.cond(fast_ok, _fast, _general, (r_fast, v_fast))

    return jax.lax.cond(dt1 == 0.0, _unchanged, _step, None)

"""Universal-variable Kepler solver.

Orchestrates the solver components for one body and one step:

1. :func:`~keplerdrift.kepler.guess.initial_guess` produces a starting
   point from the orbit type.
2. :func:`~keplerdrift.kepler.newton.newton_solve` refines it.
3. If Newton fails, the better of the guess and the failed Newton iterate
   (smaller ``|f|``) seeds
   :func:`~keplerdrift.kepler.laguerre.laguerre_conway_solve`.

The solution carries the scaled Stumpff products from which the caller
builds the Lagrange coefficients

.. math::

    f = 1 - \\frac{\\mu}{r_0} c_2, \\quad g = \\Delta t - \\mu c_3, \\quad
    \\dot f = -\\frac{\\mu}{f' r_0} c_1, \\quad \\dot g = 1 - \\frac{\\mu}{f'} c_2.
"""

from __future__ import annotations

import jax
import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from keplerdrift.config import get_dtype
from keplerdrift.kepler._types import (
    KeplerSolution,
    NewtonResult,
    RelativeOrbit,
    SolverConfig,
    SolveStatus,
)
from keplerdrift.kepler.guess import initial_guess
from keplerdrift.kepler.laguerre import laguerre_conway_solve
from keplerdrift.kepler.newton import newton_solve
from keplerdrift.kepler.stumpff import stumpff


def relative_orbit(r: ArrayLike, v: ArrayLike, mu: ArrayLike) -> RelativeOrbit:
    """Derive the two-body quantities of a relative state.

    Args:
        r: Position relative to the central body, shape ``(3,)``.
        v: Velocity, shape ``(3,)``.
        mu: Combined gravitational parameter ``G * (m_central + m_body)``.

    Returns:
        RelativeOrbit: ``(r0, v0s, u, mu, alpha)``.

    Examples:
        ```python
        from keplerdrift.kepler import relative_orbit
        orbit = relative_orbit([1.0, 0.0, 0.0], [0.0, 1.0, 0.0], 1.0)
        orbit.alpha  # 1.0, bound
        ```
    """
    dtype = get_dtype()
    r = jnp.asarray(r, dtype=dtype)
    v = jnp.asarray(v, dtype=dtype)
    mu = jnp.asarray(mu, dtype=dtype)

    r0 = jnp.sqrt(jnp.sum(r * r))
    v0s = jnp.sum(v * v)
    u = jnp.sum(r * v)
    alpha = 2.0 * mu / r0 - v0s
    return RelativeOrbit(r0=r0, v0s=v0s, u=u, mu=mu, alpha=alpha)


def kepler_residual(s: ArrayLike, dt: ArrayLike, orbit: RelativeOrbit) -> Array:
    """Evaluate the universal Kepler function ``f(s)``.

    .. math::

        f(s) = r_0 s c_1 + u s^2 c_2 + \\mu s^3 c_3 - \\Delta t

    Args:
        s: Universal variable.
        dt: Time step.
        orbit: Two-body quantities of the body.

    Returns:
        Residual of the universal Kepler equation, in time units.
    """
    dtype = get_dtype()
    s = jnp.asarray(s, dtype=dtype)
    dt = jnp.asarray(dt, dtype=dtype)

    _c0, c1, c2, c3 = stumpff(s * s * orbit.alpha)
    return orbit.r0 * c1 * s + orbit.u * c2 * s * s + orbit.mu * c3 * s * s * s - dt


def kepler_solve(
    dt: ArrayLike,
    orbit: RelativeOrbit,
    config: SolverConfig | None = None,
    s_guess: ArrayLike | None = None,
) -> KeplerSolution:
    """Solve the universal Kepler equation for one body and one step.

    Compatible with ``jax.jit`` and ``jax.vmap``.  Under ``vmap`` the
    fallback branch is evaluated for every lane and selected per lane.

    Args:
        dt: Time step. A zero step returns ``s = 0`` and ``fp = r0`` with
            status ``CONVERGED`` without running either solver.
        orbit: Two-body quantities of the body.
        config: Iteration budgets. Uses the default :class:`SolverConfig`
            if ``None``.
        s_guess: Optional starting point replacing the generated guess.

    Returns:
        KeplerSolution: Universal variable, scaled Stumpff products,
            ``fp`` and a :class:`SolveStatus` code.

    Examples:
        ```python
        from keplerdrift.kepler import kepler_solve, relative_orbit
        orbit = relative_orbit([1.0, 0.0, 0.0], [0.0, 1.5, 0.0], 1.0)
        sol = kepler_solve(10.0, orbit)
        int(sol.status)  # 0, converged
        ```
    """
    if config is None:
        config = SolverConfig()

    dt = jnp.asarray(dt, dtype=get_dtype())
    if s_guess is None:
        st = initial_guess(dt, orbit)
    else:
        st = jnp.asarray(s_guess, dtype=get_dtype())

    def _fallback(newton: NewtonResult) -> tuple[NewtonResult, Array]:
        fo = kepler_residual(st, dt, orbit)
        fn = kepler_residual(newton.s, dt, orbit)
        s = jnp.where(jnp.abs(fn) <= jnp.abs(fo), newton.s, st)
        lag = laguerre_conway_solve(s, dt, orbit, max_iter=config.laguerre_max_iter)
        status = jnp.where(
            lag.converged,
            SolveStatus.FALLBACK_CONVERGED.value,
            SolveStatus.FALLBACK_NOT_CONVERGED.value,
        ).astype(jnp.int32)
        return lag, status

    def _accept(newton: NewtonResult) -> tuple[NewtonResult, Array]:
        return newton, jnp.asarray(SolveStatus.CONVERGED.value, dtype=jnp.int32)

    def _solve(_: None) -> KeplerSolution:
        newton = newton_solve(st, dt, orbit, max_iter=config.newton_max_iter)
        result, status = jax.lax.cond(newton.converged, _accept, _fallback, newton)
        return KeplerSolution(
            s=result.s,
            c1=result.c1,
            c2=result.c2,
            c3=result.c3,
            fp=result.fp,
            status=status,
        )

    def _zero_step(_: None) -> KeplerSolution:
        zero = jnp.zeros_like(st)
        return KeplerSolution(
            s=zero,
            c1=zero,
            c2=zero,
            c3=zero,
            fp=jnp.broadcast_to(orbit.r0, st.shape).astype(st.dtype),
            status=jnp.asarray(SolveStatus.CONVERGED.value, dtype=jnp.int32),
        )

    # f / dt is undefined for a zero step
    return jax.lax.cond(dt == 0.0, _zero_step, _solve, None)

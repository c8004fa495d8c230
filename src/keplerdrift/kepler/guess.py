"""Initial guesses for the universal Kepler variable.

Bound orbits use either a truncated series in ``dt / r0`` (short steps) or
a trigonometric estimate built from the mean anomaly (long steps).
Parabolic and hyperbolic orbits truncate the universal Kepler equation at
third order in ``s`` and solve the resulting cubic with Cardano's formula.
"""

from __future__ import annotations

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from keplerdrift.config import get_dtype
from keplerdrift.constants import GUESS_ECC_FACTOR, SERIES_GUESS_LIMIT
from keplerdrift.kepler._types import RelativeOrbit
from keplerdrift.kepler.elliptic import _elliptic_elements


def cubic_hyperbolic_guess(dt: ArrayLike, orbit: RelativeOrbit) -> tuple[Array, Array]:
    """Solve the cubic truncation of the universal Kepler equation.

    With ``c1 ~ 1``, ``c2 ~ 1/2`` and ``c3 ~ 1/6`` the Kepler equation
    becomes

    .. math::

        \\frac{\\mu - \\alpha r_0}{6} s^3 + \\frac{u}{2} s^2 + r_0 s - \\Delta t = 0,

    which is reduced to a depressed cubic and solved for its real root.

    Args:
        dt: Time step.
        orbit: Two-body quantities of the body.

    Returns:
        tuple: ``(s, ok)``.  ``ok`` is ``False`` when the discriminant
            ``q**3 + r**2`` is negative (three real roots, no unique
            guess); ``s`` is then ``0``.
    """
    dt = jnp.asarray(dt, dtype=get_dtype())

    denom = (orbit.mu - orbit.alpha * orbit.r0) / 6.0
    a2 = 0.5 * orbit.u / denom
    a1 = orbit.r0 / denom
    a0 = -dt / denom

    q = (a1 - a2 * a2 / 3.0) / 3.0
    r = (a1 * a2 - 3.0 * a0) / 6.0 - a2 * a2 * a2 / 27.0
    sq2 = q * q * q + r * r

    ok = sq2 >= 0.0
    sq = jnp.sqrt(jnp.where(ok, sq2, 0.0))
    p1 = jnp.cbrt(r + sq)
    p2 = jnp.cbrt(r - sq)
    s = jnp.where(ok, p1 + p2 - a2 / 3.0, 0.0)
    return s, ok


def initial_guess(dt: ArrayLike, orbit: RelativeOrbit) -> Array:
    """Orbit-type-aware starting point for the universal Kepler solvers.

    - ``alpha > 0`` and ``|dt| / r0 <= 0.4``: ``dt/r0 - dt**2 u / (2 r0**3)``.
    - ``alpha > 0`` otherwise: ``(y + sigma 0.85 e) / sqrt(alpha)`` with
      ``y = en dt - es`` and ``sigma`` the sign of ``es cos y + ec sin y``.
    - ``alpha <= 0``: :func:`cubic_hyperbolic_guess`, or ``dt / r0`` when
      the cubic has no unique real root.

    Args:
        dt: Time step.
        orbit: Two-body quantities of the body.

    Returns:
        Initial universal variable ``s``.
    """
    dt = jnp.asarray(dt, dtype=get_dtype())
    r0 = orbit.r0
    bound = orbit.alpha > 0.0

    series = dt / r0 - (dt * dt * orbit.u) / (2.0 * r0 * r0 * r0)

    alpha = jnp.where(bound, orbit.alpha, 1.0)
    _a, en, ec, es = _elliptic_elements(orbit)
    e = jnp.sqrt(ec * ec + es * es)
    y = en * dt - es
    sigma = jnp.where(es * jnp.cos(y) + ec * jnp.sin(y) >= 0.0, 1.0, -1.0)
    trig = (y + sigma * GUESS_ECC_FACTOR * e) / jnp.sqrt(alpha)

    elliptic = jnp.where(jnp.abs(dt) / r0 <= SERIES_GUESS_LIMIT, series, trig)

    cubic, ok = cubic_hyperbolic_guess(dt, orbit)
    unbound = jnp.where(ok, cubic, dt / r0)

    return jnp.where(bound, elliptic, unbound)

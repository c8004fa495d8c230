"""Direct elliptic Kepler solver for short, bounded steps.

For bound orbits whose step is short relative to the orbital period, the
elliptic Kepler equation in the eccentric anomaly increment ``x``

.. math::

    x - e_c \\sin x + e_s (1 - \\cos x) = \\Delta M

is solved directly from a closed-form series guess followed by two
Newton-Halley corrections, with no Stumpff evaluation and no variable
iteration count.  Here ``e_c = e cos E0`` and ``e_s = e sin E0`` are the
eccentricity components at the start of the step and ``dM`` is the mean
anomaly increment.

The fast path is gated by :func:`direct_elliptic_applicable`; when the
gate fails, or the final residual check fails, the caller falls back to
the universal-variable solver.
"""

from __future__ import annotations

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from keplerdrift.config import get_dtype
from keplerdrift.constants import (
    DANBYB,
    FAST_PATH_DM2_LIMIT,
    FAST_PATH_ESQ_DM2_LIMIT,
    FAST_PATH_ESQ_LIMIT,
    KEPMD_A0,
    KEPMD_A1,
    KEPMD_A2,
    KEPMD_A3,
    KEPMD_A4,
    PI,
    TWO_PI,
)
from keplerdrift.kepler._types import RelativeOrbit


def _sin_cos_series(x: Array) -> tuple[Array, Array]:
    """Degree-11 sine series and the matching positive cosine."""
    y = x * x
    s = x * (KEPMD_A0 - y * (KEPMD_A1 - y * (KEPMD_A2 - y * (KEPMD_A3 - y * (KEPMD_A4 - y))))) / KEPMD_A0
    c = jnp.sqrt(1.0 - s * s)
    return s, c


def _halley_correction(x, s, c, dm, es, ec):
    f = x - ec * s + es * (1.0 - c) - dm
    fp = 1.0 - ec * c + es * s
    fpp = ec * s + es * c
    fppp = ec * c - es * s
    dx = -f / fp
    dx = -f / (fp + 0.5 * dx * fpp)
    dx = -f / (fp + 0.5 * dx * fpp + dx * dx * fppp / 6.0)
    return x + dx


def _elliptic_elements(orbit: RelativeOrbit) -> tuple[Array, Array, Array, Array]:
    """Semi-major axis, mean motion and eccentricity components ``(a, en, ec, es)``.

    Unbound orbits are evaluated on a dummy ``alpha = 1`` so the results
    stay finite; callers must mask them out.
    """
    alpha = jnp.where(orbit.alpha > 0.0, orbit.alpha, 1.0)
    a = orbit.mu / alpha
    asq = a * a
    en = jnp.sqrt(orbit.mu / (a * asq))
    ec = 1.0 - orbit.r0 / a
    es = orbit.u / (en * asq)
    return a, en, ec, es


def wrap_mean_anomaly(dm: ArrayLike) -> Array:
    """Wrap a mean anomaly increment into ``[-pi, pi)``.

    Args:
        dm: Mean anomaly increment. Units: *rad*

    Returns:
        Equivalent increment in ``[-pi, pi)``. Units: *rad*
    """
    dm = jnp.asarray(dm, dtype=get_dtype())
    return dm - jnp.floor((dm + PI) / TWO_PI) * TWO_PI


def reduce_elliptic_step(orbit: RelativeOrbit, dt: ArrayLike) -> Array:
    """Reduce a step on a bound orbit modulo the orbital period.

    The mean anomaly increment ``en * dt`` is wrapped into ``[-pi, pi)``
    and converted back to time, so both solver paths work on at most half
    a period.  Unbound orbits keep ``dt`` unchanged.

    Args:
        orbit: Two-body quantities of the body.
        dt: Time step.

    Returns:
        Equivalent time step.
    """
    dt = jnp.asarray(dt, dtype=get_dtype())
    _a, en, _ec, _es = _elliptic_elements(orbit)
    dt1 = wrap_mean_anomaly(dt * en) / en
    return jnp.where(orbit.alpha > 0.0, dt1, dt)


def direct_elliptic_applicable(alpha: ArrayLike, dm: ArrayLike, esq: ArrayLike) -> Array:
    """Return whether the direct elliptic solver may be used.

    The gate is a joint smallness condition on eccentricity and step:
    the orbit must be bound, ``esq * dm**2 < 0.0016``, ``dm**2 <= 0.16``
    and ``esq <= 0.36``.  Parabolic orbits (``alpha == 0``) never pass.

    Args:
        alpha: Vis-viva energy parameter.
        dm: Wrapped mean anomaly increment. Units: *rad*
        esq: Eccentricity squared.

    Returns:
        Boolean array.
    """
    dtype = get_dtype()
    alpha = jnp.asarray(alpha, dtype=dtype)
    dm = jnp.asarray(dm, dtype=dtype)
    esq = jnp.asarray(esq, dtype=dtype)

    dm2 = dm * dm
    return (
        (alpha > 0.0)
        & (esq * dm2 < FAST_PATH_ESQ_DM2_LIMIT)
        & ~((dm2 > FAST_PATH_DM2_LIMIT) | (esq > FAST_PATH_ESQ_LIMIT))
    )


def solve_elliptic_increment(dm: ArrayLike, es: ArrayLike, ec: ArrayLike) -> tuple[Array, Array, Array]:
    """Solve the elliptic Kepler equation for a small anomaly increment.

    Starts from the quintic-order series guess

    .. math::

        x_0 = q \\left(1 - \\tfrac{1}{2} f_1 q (e_s - q f_2)\\right),
        \\quad q = f_1 \\Delta M,\\ f_1 = \\frac{1}{1 - e_c},\\
        f_2 = e_s^2 f_1 - \\frac{e_c}{3}

    and applies exactly two third-order Newton-Halley corrections.

    Args:
        dm: Mean anomaly increment. Units: *rad*
        es: ``e sin E0``. Dimensionless.
        ec: ``e cos E0``. Dimensionless.

    Returns:
        tuple: ``(x, sin(x), cos(x))`` with the sine and cosine taken from
            the same series used during the corrections.

    References:
        J. M. A. Danby, *Fundamentals of Celestial Mechanics*, 2nd ed., 1988.
    """
    dtype = get_dtype()
    dm = jnp.asarray(dm, dtype=dtype)
    es = jnp.asarray(es, dtype=dtype)
    ec = jnp.asarray(ec, dtype=dtype)

    fac1 = 1.0 / (1.0 - ec)
    q = fac1 * dm
    fac2 = es * es * fac1 - ec / 3.0
    x = q * (1.0 - 0.5 * fac1 * q * (es - q * fac2))

    for _ in range(2):
        s, c = _sin_cos_series(x)
        x = _halley_correction(x, s, c, dm, es, ec)

    s, c = _sin_cos_series(x)
    return x, s, c


def drift_direct_elliptic(
    r: ArrayLike, v: ArrayLike, orbit: RelativeOrbit, dt: ArrayLike
) -> tuple[Array, Array, Array]:
    """Propagate a bound relative state with the direct elliptic solver.

    Args:
        r: Position relative to the central body, shape ``(3,)``.
        v: Velocity, shape ``(3,)``.
        orbit: Two-body quantities of ``(r, v)``.
        dt: Time step. May be negative.

    Returns:
        tuple: ``(r_new, v_new, ok)``.  ``r_new`` is relative to the
            central body.  ``ok`` is ``False`` when the fast path does not
            apply or its residual check fails, in which case ``r_new`` and
            ``v_new`` must be discarded.
    """
    dtype = get_dtype()
    r = jnp.asarray(r, dtype=dtype)
    v = jnp.asarray(v, dtype=dtype)
    dt = jnp.asarray(dt, dtype=dtype)

    a, en, ec, es = _elliptic_elements(orbit)
    esq = ec * ec + es * es
    dm = wrap_mean_anomaly(dt * en)
    dt1 = dm / en

    applicable = direct_elliptic_applicable(orbit.alpha, dm, esq)

    # Out-of-gate inputs would take the series far outside its range.
    dm_safe = jnp.where(applicable, dm, 0.0)
    es_safe = jnp.where(applicable, es, 0.0)
    ec_safe = jnp.where(applicable, ec, 0.0)
    x, s, c = solve_elliptic_increment(dm_safe, es_safe, ec_safe)

    fchk = x - ec_safe * s + es_safe * (1.0 - c) - dm_safe
    ok = applicable & (fchk * fchk <= DANBYB)

    fp = 1.0 - ec * c + es * s
    f = (a / orbit.r0) * (c - 1.0) + 1.0
    g = dt1 + (s - x) / en
    fdot = -(a / (orbit.r0 * fp)) * en * s
    gdot = (c - 1.0) / fp + 1.0

    r_new = f * r + g * v
    v_new = fdot * r + gdot * v
    return r_new, v_new, ok

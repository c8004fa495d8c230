"""Laguerre-Conway fallback solver for the universal Kepler equation.

The Laguerre-Conway iteration of order ``n``

.. math::

    \\Delta s = -\\frac{n f}{f' \\pm \\sqrt{\\left|(n-1)^2 f'^2 - n(n-1) f f''\\right|}}

has a much wider convergence basin than Newton's method and is used when
:func:`~keplerdrift.kepler.newton.newton_solve` fails.  The sign in the
denominator follows the sign of ``f'`` so that the denominator is as
large as possible.  The second derivative replaces ``r0`` by a fixed
scale of 40, which keeps the iteration stable for large steps.

References:
    B. A. Conway, "An improved algorithm due to Laguerre for the solution
    of Kepler's equation", *Celestial Mechanics* 39, 199-211, 1986.
"""

from __future__ import annotations

import jax
import jax.numpy as jnp
from jax.typing import ArrayLike

from keplerdrift.config import get_dtype
from keplerdrift.constants import DANBYB, LAGUERRE_FPP_SCALE, LAGUERRE_MAX_ITER, LAGUERRE_ORDER
from keplerdrift.kepler._types import NewtonResult, RelativeOrbit
from keplerdrift.kepler.stumpff import stumpff


def laguerre_conway_solve(
    s: ArrayLike,
    dt: ArrayLike,
    orbit: RelativeOrbit,
    max_iter: int = LAGUERRE_MAX_ITER,
) -> NewtonResult:
    """Solve the universal Kepler equation with the Laguerre-Conway method.

    Uses the same convergence test as the Newton solver,
    ``(f / dt)**2 < DANBYB**2``.  Not converging within ``max_iter``
    iterations is fatal for the solve.

    Args:
        s: Starting universal variable.
        dt: Time step. Must be non-zero.
        orbit: Two-body quantities of the body.
        max_iter: Maximum number of iterations.

    Returns:
        NewtonResult: Final iterate, scaled Stumpff products and
            convergence flag.

    Examples:
        ```python
        from keplerdrift.kepler import initial_guess, laguerre_conway_solve, relative_orbit
        orbit = relative_orbit([1.0, 0.0, 0.0], [0.0, 1.2, 0.0], 1.0)
        result = laguerre_conway_solve(initial_guess(3.0, orbit), 3.0, orbit)
        result.converged
        ```
    """
    dtype = get_dtype()
    s = jnp.asarray(s, dtype=dtype)
    dt = jnp.asarray(dt, dtype=dtype)
    r0, _v0s, u, mu, alpha = orbit
    ln = LAGUERRE_ORDER
    zero = jnp.zeros_like(s)

    def cond_fn(carry):
        it, result = carry
        return (~result.converged) & (it < max_iter)

    def body_fn(carry):
        it, result = carry
        s = result.s
        c0, c1, c2, c3 = stumpff(s * s * alpha)
        c1 = c1 * s
        c2 = c2 * s * s
        c3 = c3 * s * s * s

        f = r0 * c1 + u * c2 + mu * c3 - dt
        fp = r0 * c0 + u * c1 + mu * c2
        fpp = (-LAGUERRE_FPP_SCALE * alpha + mu) * c1 + u * c0

        sign = jnp.where(fp > 0.0, 1.0, -1.0)
        disc = jnp.abs((ln - 1.0) * (ln - 1.0) * fp * fp - (ln - 1.0) * ln * f * fpp)
        ds = -ln * f / (fp + sign * jnp.sqrt(disc))

        fdt = f / dt
        converged = fdt * fdt < DANBYB * DANBYB
        return it + 1, NewtonResult(s + ds, c1, c2, c3, fp, converged)

    init = NewtonResult(s, zero, zero, zero, zero, jnp.asarray(False))
    _it, result = jax.lax.while_loop(
        cond_fn, body_fn, (jnp.asarray(0, dtype=jnp.int32), init)
    )
    return result

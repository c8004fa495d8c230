"""Newton-Raphson solver for the universal Kepler equation.

Solves

.. math::

    f(s) = r_0 s c_1(x) + u s^2 c_2(x) + \\mu s^3 c_3(x) - \\Delta t = 0,
    \\qquad x = \\alpha s^2,

using the analytic derivatives

.. math::

    f' = r_0 c_0 + u s c_1 + \\mu s^2 c_2, \\quad
    f'' = (\\mu - \\alpha r_0) s c_1 + u c_0, \\quad
    f''' = (\\mu - \\alpha r_0) c_0 - \\alpha u s c_1.

Each iteration applies a third-order (Halley family) correction obtained
by refining the Newton step through the second and third derivatives.
The iteration is bounded with ``jax.lax.while_loop`` so it stays
traceable under ``jax.jit`` and ``jax.vmap``.
"""

from __future__ import annotations

import jax
import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from keplerdrift.config import get_dtype
from keplerdrift.constants import DANBYB, NEWTON_MAX_ITER
from keplerdrift.kepler._types import NewtonResult, RelativeOrbit
from keplerdrift.kepler.stumpff import stumpff


def newton_solve(
    s: ArrayLike,
    dt: ArrayLike,
    orbit: RelativeOrbit,
    max_iter: int = NEWTON_MAX_ITER,
) -> NewtonResult:
    """Refine a universal variable with Halley-family Newton iterations.

    Converged when ``(f / dt)**2 < DANBYB**2`` at the start of an
    iteration; the correction of that iteration is still applied to the
    returned ``s``, while ``c1..c3`` and ``fp`` belong to the checked
    iterate.

    Args:
        s: Starting universal variable.
        dt: Time step. Must be non-zero.
        orbit: Two-body quantities of the body.
        max_iter: Maximum number of iterations.

    Returns:
        NewtonResult: Final iterate, scaled Stumpff products and
            convergence flag.  When not converged, ``s`` and ``fp`` are
            the last computed values.
    """
    dtype = get_dtype()
    s = jnp.asarray(s, dtype=dtype)
    dt = jnp.asarray(dt, dtype=dtype)
    r0, _v0s, u, mu, alpha = orbit
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
        fpp = (-r0 * alpha + mu) * c1 + u * c0
        fppp = (-r0 * alpha + mu) * c0 - u * alpha * c1

        ds = -f / fp
        ds = -f / (fp + ds * fpp / 2.0)
        ds = -f / (fp + ds * fpp / 2.0 + ds * ds * fppp / 6.0)

        fdt = f / dt
        converged = fdt * fdt < DANBYB * DANBYB
        return it + 1, NewtonResult(s + ds, c1, c2, c3, fp, converged)

    init = NewtonResult(s, zero, zero, zero, zero, jnp.asarray(False))
    _it, result = jax.lax.while_loop(
        cond_fn, body_fn, (jnp.asarray(0, dtype=jnp.int32), init)
    )
    return result

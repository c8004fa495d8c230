"""Stumpff functions with argument range reduction.

The Stumpff functions

.. math::

    c_k(x) = \\sum_{j \\ge 0} \\frac{(-x)^j}{(2j + k)!}

reduce to ``cos``/``sin`` like forms for ``x > 0``, ``cosh``/``sinh`` like
forms for ``x < 0`` and to ``1/k!`` at ``x = 0``.  They are evaluated
without branching on the sign of ``x``: the argument is divided by four
until ``|x| < 0.1``, ``c2`` and ``c3`` are computed from a truncated
nested series, ``c0`` and ``c1`` follow from

.. math::

    c_0 = 1 - x c_2, \\qquad c_1 = 1 - x c_3,

and the half-angle doubling identities restore the original argument.
"""

from __future__ import annotations

import jax
import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from keplerdrift.config import get_dtype
from keplerdrift.constants import STUMPFF_REDUCTION_LIMIT
from keplerdrift.kepler._types import StumpffCoefficients


def stumpff_double(c: StumpffCoefficients) -> StumpffCoefficients:
    """Map Stumpff values at ``x`` to their values at ``4 x``.

    Args:
        c: Stumpff functions evaluated at ``x``.

    Returns:
        StumpffCoefficients: Stumpff functions evaluated at ``4 x``.
    """
    c0, c1, c2, c3 = c
    return StumpffCoefficients(
        c0=2.0 * c0 * c0 - 1.0,
        c1=c0 * c1,
        c2=0.5 * c1 * c1,
        c3=0.25 * (c2 + c0 * c3),
    )


def stumpff(x: ArrayLike) -> StumpffCoefficients:
    """Evaluate the Stumpff functions ``c0, c1, c2, c3`` at ``x``.

    Accurate to the series truncation error (about ``1e-13`` relative)
    for every finite real argument.  Never fails; a non-finite argument
    skips range reduction and yields non-finite values.

    Compatible with ``jax.jit`` and ``jax.vmap``.

    Args:
        x: Stumpff argument ``s**2 * alpha``. Dimensionless.

    Returns:
        StumpffCoefficients: Named tuple ``(c0, c1, c2, c3)``.

    Examples:
        ```python
        from keplerdrift.kepler import stumpff
        c = stumpff(0.0)
        c.c2  # 0.5
        ```
    """
    x = jnp.asarray(x, dtype=get_dtype())

    def reduce_cond(carry):
        xr, _n = carry
        return (jnp.abs(xr) >= STUMPFF_REDUCTION_LIMIT) & jnp.isfinite(xr)

    def reduce_body(carry):
        xr, n = carry
        return (0.25 * xr, n + 1)

    xr, n = jax.lax.while_loop(
        reduce_cond, reduce_body, (x, jnp.asarray(0, dtype=jnp.int32))
    )

    c2 = (
        1.0
        - xr
        * (
            1.0
            - xr
            * (
                1.0
                - xr
                * (1.0 - xr * (1.0 - xr * (1.0 - xr / 182.0) / 132.0) / 90.0)
                / 56.0
            )
            / 30.0
        )
        / 12.0
    ) / 2.0
    c3 = (
        1.0
        - xr
        * (
            1.0
            - xr
            * (
                1.0
                - xr
                * (1.0 - xr * (1.0 - xr * (1.0 - xr / 210.0) / 156.0) / 110.0)
                / 72.0
            )
            / 42.0
        )
        / 20.0
    ) / 6.0
    c1 = 1.0 - xr * c3
    c0 = 1.0 - xr * c2

    return jax.lax.fori_loop(
        0,
        n,
        lambda _, c: stumpff_double(c),
        StumpffCoefficients(c0, c1, c2, c3),
    )

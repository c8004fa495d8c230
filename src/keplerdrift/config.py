"""Module-wide floating-point precision configuration.

Provides ``set_dtype`` and ``get_dtype`` to control the float dtype used
throughout keplerdrift.  The default is ``jnp.float64``: the Kepler
solver's convergence tolerance (``DANBYB = 1e-13``) lies below single
precision, so JAX's 64-bit mode (``jax_enable_x64``) is switched on when
this module is imported.

Call ``set_dtype`` **before** any JIT compilation, just like JAX's own
``jax.config.update("jax_enable_x64", True)``.  Under JIT, ``get_dtype()``
runs during tracing and its result is baked into the compiled program.
"""

from __future__ import annotations

import jax
import jax.numpy as jnp

from keplerdrift.constants import DANBYB

_VALID_DTYPES = (jnp.float32, jnp.float64)

_dtype = jnp.float64
jax.config.update("jax_enable_x64", True)


def set_dtype(dtype) -> None:
    """Set the module-wide float dtype for keplerdrift.

    Must be called **before** any ``jax.jit`` compilation.  In eager mode
    the change takes effect immediately.

    If *dtype* is ``jnp.float64``, JAX's 64-bit mode is enabled via
    ``jax.config.update("jax_enable_x64", True)``.  Selecting
    ``jnp.float32`` is allowed for experimentation, but the universal
    Kepler solver will then report most solves as unconverged.

    Args:
        dtype: One of ``jnp.float32`` or ``jnp.float64``.

    Raises:
        ValueError: If *dtype* is not a supported float type.
    """
    global _dtype
    if dtype not in _VALID_DTYPES:
        raise ValueError(
            f"Unsupported dtype {dtype}. Must be one of: "
            f"jnp.float32, jnp.float64"
        )
    if dtype == jnp.float64:
        jax.config.update("jax_enable_x64", True)
    _dtype = dtype


def get_dtype():
    """Return the current module-wide float dtype.

    Returns:
        The active float dtype (default ``jnp.float64``).
    """
    return _dtype


def get_solver_tolerance() -> float:
    """Return the scale-normalized residual tolerance of the Kepler solvers.

    A solve is accepted once ``(f / dt)**2 < tol**2``, where ``f`` is the
    universal Kepler residual.  The direct elliptic path compares its
    squared residual against the same constant.

    Returns:
        float: The tolerance ``DANBYB``.
    """
    return DANBYB

import jax.numpy as jnp
import pytest

from keplerdrift.config import set_dtype


@pytest.fixture(autouse=True)
def _ensure_float64():
    """Set float64 precision before every test.

    With pytest-xdist, each worker process imports keplerdrift fresh, but a
    test that switches to float32 (test_config.py) must not leak into the
    next one.  This fixture ensures all tests get float64 unless they
    explicitly override it.
    """
    set_dtype(jnp.float64)

"""Tests for keplerdrift.kepler.guess."""

import math

import jax
import jax.numpy as jnp
import pytest

from keplerdrift.kepler import (
    cubic_hyperbolic_guess,
    initial_guess,
    kepler_residual,
    relative_orbit,
)


@pytest.fixture
def circular_orbit():
    return relative_orbit([1.0, 0.0, 0.0], [0.0, 1.0, 0.0], 1.0)


@pytest.fixture
def hyperbolic_orbit():
    """alpha = -2, u = 0: cubic reduces to 0.5 s**3 + s - dt = 0."""
    return relative_orbit([1.0, 0.0, 0.0], [0.0, 2.0, 0.0], 1.0)


@pytest.fixture
def parabolic_orbit():
    """alpha = 0 exactly, u = 1."""
    return relative_orbit([1.0, 0.0, 0.0], [1.0, 1.0, 0.0], 1.0)


class TestCubicHyperbolicGuess:
    def test_exact_root(self, hyperbolic_orbit):
        s, ok = cubic_hyperbolic_guess(1.5, hyperbolic_orbit)
        assert bool(ok)
        assert float(s) == pytest.approx(1.0, abs=1e-12)

    def test_negative_step(self, hyperbolic_orbit):
        """The cubic is odd when u = 0, so the root flips sign."""
        s, ok = cubic_hyperbolic_guess(-1.5, hyperbolic_orbit)
        assert bool(ok)
        assert float(s) == pytest.approx(-1.0, abs=1e-12)

    def test_root_satisfies_cubic(self, hyperbolic_orbit):
        dt = 4.0
        s, ok = cubic_hyperbolic_guess(dt, hyperbolic_orbit)
        assert bool(ok)
        s = float(s)
        assert 0.5 * s**3 + s - dt == pytest.approx(0.0, abs=1e-11)

    def test_parabolic_guess_is_exact(self, parabolic_orbit):
        """With alpha = 0 the Stumpff functions are constants and the cubic is exact."""
        dt = 2.0
        s, ok = cubic_hyperbolic_guess(dt, parabolic_orbit)
        assert bool(ok)
        assert float(kepler_residual(s, dt, parabolic_orbit)) == pytest.approx(0.0, abs=1e-11)

    def test_negative_discriminant_flagged(self):
        """A bound radial orbit gives three real roots and no unique guess."""
        orbit = relative_orbit([1.0, 0.0, 0.0], [0.1, 0.0, 0.0], 1.0)
        s, ok = cubic_hyperbolic_guess(0.1, orbit)
        assert not bool(ok)
        assert float(s) == 0.0


class TestInitialGuess:
    def test_series_guess_short_step(self, circular_orbit):
        """On a circular orbit with mu = r0 = 1, s equals dt exactly."""
        assert float(initial_guess(0.3, circular_orbit)) == pytest.approx(0.3, abs=1e-15)

    def test_series_guess_negative_step(self, circular_orbit):
        assert float(initial_guess(-0.3, circular_orbit)) == pytest.approx(-0.3, abs=1e-15)

    def test_series_guess_includes_radial_term(self):
        orbit = relative_orbit([1.0, 0.0, 0.0], [0.1, 1.0, 0.0], 1.0)
        dt = 0.2
        expected = dt - dt * dt * 0.1 / 2.0
        assert float(initial_guess(dt, orbit)) == pytest.approx(expected, abs=1e-15)

    def test_trigonometric_guess_long_step(self, circular_orbit):
        """For e = 0 the trigonometric guess is y / sqrt(alpha) = dt."""
        assert float(initial_guess(2.0, circular_orbit)) == pytest.approx(2.0, abs=1e-14)

    def test_trigonometric_guess_eccentric(self):
        """The guess lands within the bracket of the true root."""
        orbit = relative_orbit([1.0, 0.0, 0.0], [0.0, math.sqrt(1.5), 0.0], 1.0)
        dt = 3.0
        s = initial_guess(dt, orbit)
        assert bool(jnp.isfinite(s))
        assert abs(float(kepler_residual(s, dt, orbit))) < dt

    def test_trigonometric_guess_with_radial_velocity(self):
        """alpha = 0.7, u = 0.3: every orbital element enters the guess."""
        orbit = relative_orbit([1.0, 0.0, 0.0], [0.3, 1.1, 0.0], 1.0)
        dt = 2.5
        alpha, u = 0.7, 0.3
        a = 1.0 / alpha
        en = math.sqrt(1.0 / a**3)
        ec = 1.0 - 1.0 / a
        es = u / (en * a * a)
        y = en * dt - es
        sigma = 1.0 if es * math.cos(y) + ec * math.sin(y) >= 0.0 else -1.0
        expected = (y + sigma * 0.85 * math.hypot(ec, es)) / math.sqrt(alpha)
        assert float(initial_guess(dt, orbit)) == pytest.approx(expected, rel=1e-13)

    def test_hyperbolic_uses_cubic(self, hyperbolic_orbit):
        assert float(initial_guess(1.5, hyperbolic_orbit)) == pytest.approx(1.0, abs=1e-12)

    def test_parabolic_uses_cubic(self, parabolic_orbit):
        s = initial_guess(2.0, parabolic_orbit)
        assert float(kepler_residual(s, 2.0, parabolic_orbit)) == pytest.approx(0.0, abs=1e-11)


class TestGuessTransforms:
    def test_jit(self, hyperbolic_orbit):
        s = jax.jit(initial_guess)(1.5, hyperbolic_orbit)
        assert float(s) == pytest.approx(1.0, abs=1e-12)

    def test_vmap_over_steps(self, circular_orbit):
        dts = jnp.array([0.1, 0.3, 2.0, -2.0])
        s = jax.vmap(initial_guess, in_axes=(0, None))(dts, circular_orbit)
        assert jnp.allclose(s, dts, atol=1e-14)

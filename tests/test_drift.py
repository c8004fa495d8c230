"""Tests for the drift step (keplerdrift.drift).

Tests cover:
- Single-body drift against analytic circular motion
- Fast-path and general-path agreement at the classification boundary
- Forward/backward round trips on every orbit type
- Conservation of two-body energy and angular momentum
- The drift pass over all bodies, including substep retry and failures
- report_drift_failures logging and raising
- JIT compatibility
"""

import logging
import math

import jax
import jax.numpy as jnp
import numpy as np
import pytest

from keplerdrift.drift import (
    BodyDriftResult,
    DriftConvergenceError,
    DriftResult,
    DriftStatus,
    ParticleState,
    drift,
    drift_body,
    report_drift_failures,
)
from keplerdrift.kepler import SolverConfig, SolveStatus

ORIGIN = jnp.zeros(3)

# (position, velocity, mu) relative to a central body at the origin
ECCENTRIC = ([1.0, 0.0, 0.0], [0.0, math.sqrt(1.5), 0.0], 1.0)
INCLINED = ([0.6, -0.7, 0.2], [0.5, 0.6, -0.3], 1.3)
HYPERBOLIC = ([1.0, 0.0, 0.0], [0.0, 2.0, 0.0], 1.0)
OUTBOUND_HYPERBOLIC = ([1.0, 0.5, 0.0], [1.5, 1.0, 0.2], 1.0)
NEAR_PARABOLIC_BOUND = ([1.0, 0.0, 0.0], [0.0, math.sqrt(2.0) * (1.0 - 1e-9), 0.0], 1.0)
NEAR_PARABOLIC_UNBOUND = ([1.0, 0.0, 0.0], [0.0, math.sqrt(2.0) * (1.0 + 1e-9), 0.0], 1.0)
HIGH_ECCENTRICITY = ([0.01, 0.0, 0.0], [0.0, math.sqrt(199.0), 0.0], 1.0)

NO_ITERATIONS = SolverConfig(newton_max_iter=0, laguerre_max_iter=0)


def _energy(r, v, mu):
    return 0.5 * jnp.dot(v, v) - mu / jnp.linalg.norm(r)


def _two_body_state(r, v, m_central=1.0, m_body=0.0):
    return ParticleState(
        position=jnp.array([[0.0, 0.0, 0.0], r]),
        velocity=jnp.array([[0.0, 0.0, 0.0], v]),
        mass=jnp.array([m_central, m_body]),
    )


# ──────────────────────────────────────────────
# drift_body
# ──────────────────────────────────────────────


class TestDriftBodyCircular:
    def test_returns_body_result(self):
        res = drift_body([1.0, 0.0, 0.0], [0.0, 1.0, 0.0], ORIGIN, 1.0, 0.1)
        assert isinstance(res, BodyDriftResult)
        assert int(res.status) == SolveStatus.CONVERGED

    @pytest.mark.parametrize("dt", [0.1, -0.1, 0.39, 0.41, 1.0, 2.5, -3.0])
    def test_matches_rotation(self, dt):
        """A circular orbit with mu = r = 1 rotates by dt radians."""
        res = drift_body([1.0, 0.0, 0.0], [0.0, 1.0, 0.0], ORIGIN, 1.0, dt)
        assert jnp.allclose(res.position, jnp.array([math.cos(dt), math.sin(dt), 0.0]), atol=1e-12)
        assert jnp.allclose(res.velocity, jnp.array([-math.sin(dt), math.cos(dt), 0.0]), atol=1e-12)

    def test_classification_boundary(self):
        """Steps just inside and outside the fast-path gate agree with each other."""
        inside = drift_body([1.0, 0.0, 0.0], [0.0, 1.0, 0.0], ORIGIN, 1.0, 0.39)
        outside = drift_body([1.0, 0.0, 0.0], [0.0, 1.0, 0.0], ORIGIN, 1.0, 0.41)
        assert bool(inside.fast_path)
        assert not bool(outside.fast_path)
        assert int(outside.status) == SolveStatus.CONVERGED

    def test_full_period_returns_input(self):
        """A step of exactly one period reduces to zero and leaves the body untouched."""
        position = jnp.array([1.0, 0.0, 0.0])
        velocity = jnp.array([0.0, 1.0, 0.0])
        res = drift_body(position, velocity, ORIGIN, 1.0, 2.0 * math.pi)
        assert jnp.array_equal(res.position, position)
        assert jnp.array_equal(res.velocity, velocity)
        assert not bool(res.fast_path)

    def test_seven_steps_close_the_orbit(self):
        position = jnp.array([1.0, 0.0, 0.0])
        velocity = jnp.array([0.0, 1.0, 0.0])
        pos, vel = position, velocity
        for _ in range(7):
            res = drift_body(pos, vel, ORIGIN, 1.0, 2.0 * math.pi / 7.0)
            assert not bool(res.fast_path)
            pos, vel = res.position, res.velocity
        assert jnp.allclose(pos, position, atol=1e-9)
        assert jnp.allclose(vel, velocity, atol=1e-9)

    def test_central_offset(self):
        """Only the position relative to the central body matters."""
        offset = jnp.array([5.0, -3.0, 2.0])
        base = drift_body([1.0, 0.0, 0.0], [0.0, 1.0, 0.0], ORIGIN, 1.0, 1.3)
        moved = drift_body(jnp.array([1.0, 0.0, 0.0]) + offset, [0.0, 1.0, 0.0], offset, 1.0, 1.3)
        assert jnp.allclose(moved.position - offset, base.position, atol=1e-12)
        assert jnp.allclose(moved.velocity, base.velocity, atol=1e-12)

    def test_central_offset_fast_path(self):
        offset = jnp.array([5.0, -3.0, 2.0])
        res = drift_body(jnp.array([1.0, 0.0, 0.0]) + offset, [0.0, 1.0, 0.0], offset, 1.0, 0.2)
        assert bool(res.fast_path)
        assert jnp.allclose(res.position - offset, jnp.array([math.cos(0.2), math.sin(0.2), 0.0]), atol=1e-13)


class TestDriftBodyOrbitTypes:
    @pytest.mark.parametrize(
        "state, dt",
        [
            (ECCENTRIC, 0.05),
            (ECCENTRIC, 3.0),
            (INCLINED, 0.9),
            (INCLINED, -2.2),
            (HYPERBOLIC, 8.0),
            (OUTBOUND_HYPERBOLIC, 0.1),
            (OUTBOUND_HYPERBOLIC, -0.7),
            (NEAR_PARABOLIC_BOUND, 5.0),
            (NEAR_PARABOLIC_UNBOUND, 5.0),
            (HIGH_ECCENTRICITY, 0.001),
        ],
    )
    def test_round_trip(self, state, dt):
        """Drifting forward then backward by the same time restores the state."""
        r, v, mu = state
        fwd = drift_body(r, v, ORIGIN, mu, dt)
        back = drift_body(fwd.position, fwd.velocity, ORIGIN, mu, -dt)
        assert int(fwd.status) != SolveStatus.FALLBACK_NOT_CONVERGED
        assert int(back.status) != SolveStatus.FALLBACK_NOT_CONVERGED
        assert jnp.allclose(back.position, jnp.asarray(r), rtol=1e-9, atol=1e-10)
        assert jnp.allclose(back.velocity, jnp.asarray(v), rtol=1e-9, atol=1e-10)

    @pytest.mark.parametrize(
        "state, dt",
        [
            (ECCENTRIC, 3.0),
            (INCLINED, 0.9),
            (HYPERBOLIC, 8.0),
            (NEAR_PARABOLIC_UNBOUND, 5.0),
        ],
    )
    def test_conserves_integrals(self, state, dt):
        r, v, mu = state
        res = drift_body(r, v, ORIGIN, mu, dt)
        r0, v0 = jnp.asarray(r), jnp.asarray(v)
        assert float(_energy(res.position, res.velocity, mu)) == pytest.approx(
            float(_energy(r0, v0, mu)), rel=1e-10, abs=1e-12
        )
        assert jnp.allclose(jnp.cross(res.position, res.velocity), jnp.cross(r0, v0), atol=1e-11)

    def test_parabolic_takes_general_path(self):
        """alpha == 0 exactly is never handled by the elliptic fast path."""
        r, v = jnp.array([1.0, 0.0, 0.0]), jnp.array([1.0, 1.0, 0.0])
        res = drift_body(r, v, ORIGIN, 1.0, 0.01)
        assert not bool(res.fast_path)
        assert int(res.status) == SolveStatus.CONVERGED
        assert float(_energy(res.position, res.velocity, 1.0)) == pytest.approx(0.0, abs=1e-12)
        assert jnp.allclose(jnp.cross(res.position, res.velocity), jnp.cross(r, v), atol=1e-12)

    def test_hyperbolic_never_fast_path(self):
        r, v, mu = HYPERBOLIC
        assert not bool(drift_body(r, v, ORIGIN, mu, 0.01).fast_path)

    def test_long_bound_step_is_reduced(self):
        """Steps longer than a period give the same result as the remainder."""
        r, v, mu = ECCENTRIC
        period = 2.0 * math.pi * 2.0**1.5
        long = drift_body(r, v, ORIGIN, mu, 3.0 * period + 1.0)
        short = drift_body(r, v, ORIGIN, mu, 1.0)
        assert jnp.allclose(long.position, short.position, atol=1e-10)
        assert jnp.allclose(long.velocity, short.velocity, atol=1e-10)

    def test_failed_solve_reports_status(self):
        r, v, mu = HYPERBOLIC
        res = drift_body(r, v, ORIGIN, mu, 8.0, NO_ITERATIONS)
        assert int(res.status) == SolveStatus.FALLBACK_NOT_CONVERGED


class TestDriftBodyConservation:
    def test_long_integration(self):
        """Energy and angular momentum hold over many mixed fast/general steps."""
        r, v, mu = INCLINED
        r0, v0 = jnp.asarray(r), jnp.asarray(v)

        @jax.jit
        def run(r, v):
            def body(i, carry):
                pos, vel = carry
                dt = jnp.where(i % 2 == 0, 0.02, 0.7)
                res = drift_body(pos, vel, ORIGIN, mu, dt)
                return res.position, res.velocity

            return jax.lax.fori_loop(0, 2000, body, (r, v))

        pos, vel = run(r0, v0)
        e0 = float(_energy(r0, v0, mu))
        e1 = float(_energy(pos, vel, mu))
        assert abs((e1 - e0) / e0) < 1e-11
        h0 = jnp.cross(r0, v0)
        h1 = jnp.cross(pos, vel)
        assert float(jnp.linalg.norm(h1 - h0) / jnp.linalg.norm(h0)) < 1e-11


# ──────────────────────────────────────────────
# drift over a system
# ──────────────────────────────────────────────


class TestDrift:
    def test_returns_drift_result(self):
        result = drift(_two_body_state([1.0, 0.0, 0.0], [0.0, 1.0, 0.0]), 0.1)
        assert isinstance(result, DriftResult)
        assert isinstance(result.state, ParticleState)
        assert result.status.shape == (2,)
        assert result.substeps.shape == (2,)

    def test_central_body_untouched(self):
        state = ParticleState(
            position=jnp.array([[0.1, 0.2, 0.3], [1.1, 0.2, 0.3]]),
            velocity=jnp.array([[0.5, 0.0, 0.0], [0.0, 1.0, 0.0]]),
            mass=jnp.array([1.0, 1e-3]),
        )
        result = drift(state, 0.4)
        assert jnp.array_equal(result.state.position[0], state.position[0])
        assert jnp.array_equal(result.state.velocity[0], state.velocity[0])
        assert jnp.array_equal(result.state.mass, state.mass)
        assert int(result.status[0]) == DriftStatus.CONVERGED

    def test_mu_includes_body_mass(self):
        """A body of mass 0.5 on a circular orbit of radius 1 needs mu = 1.5."""
        speed = math.sqrt(1.5)
        state = _two_body_state([1.0, 0.0, 0.0], [0.0, speed, 0.0], m_central=1.0, m_body=0.5)
        quarter = 0.5 * math.pi / speed
        result = drift(state, quarter)
        assert jnp.allclose(result.state.position[1], jnp.array([0.0, 1.0, 0.0]), atol=1e-12)

    def test_gravitational_constant(self):
        speed = math.sqrt(4.0)
        state = _two_body_state([1.0, 0.0, 0.0], [0.0, speed, 0.0], m_central=1.0)
        result = drift(state, 0.25 * math.pi, G=4.0)
        assert jnp.allclose(result.state.position[1], jnp.array([0.0, 1.0, 0.0]), atol=1e-12)

    def test_matches_drift_body(self):
        bodies = [ECCENTRIC, INCLINED, HYPERBOLIC, HIGH_ECCENTRICITY]
        central = jnp.array([0.3, -0.2, 0.1])
        state = ParticleState(
            position=jnp.array([central.tolist()] + [[c + o for c, o in zip(b[0], central.tolist())] for b in bodies]),
            velocity=jnp.array([[0.0, 0.0, 0.0]] + [b[1] for b in bodies]),
            mass=jnp.array([1.0, 0.0, 0.0, 0.0, 0.0]),
        )
        dt = 0.8
        result = drift(state, dt)
        for i in range(1, len(bodies) + 1):
            single = drift_body(state.position[i], state.velocity[i], central, 1.0, dt)
            assert jnp.allclose(result.state.position[i], single.position, atol=1e-13)
            assert jnp.allclose(result.state.velocity[i], single.velocity, atol=1e-13)
        np.testing.assert_array_equal(np.asarray(result.status), np.zeros(5, dtype=np.int32))
        np.testing.assert_array_equal(np.asarray(result.substeps), np.zeros(5, dtype=np.int32))

    def test_single_body_system(self):
        state = ParticleState(
            position=jnp.array([[1.0, 2.0, 3.0]]),
            velocity=jnp.array([[0.1, 0.2, 0.3]]),
            mass=jnp.array([1.0]),
        )
        result = drift(state, 1.0)
        assert jnp.array_equal(result.state.position, state.position)
        assert jnp.array_equal(result.state.velocity, state.velocity)
        assert result.status.shape == (1,)

    def test_invalid_position_shape_raises(self):
        state = ParticleState(
            position=jnp.zeros((2, 2)),
            velocity=jnp.zeros((2, 3)),
            mass=jnp.ones(2),
        )
        with pytest.raises(ValueError, match="state must hold"):
            drift(state, 0.1)

    def test_mismatched_mass_raises(self):
        state = ParticleState(
            position=jnp.zeros((3, 3)),
            velocity=jnp.zeros((3, 3)),
            mass=jnp.ones(2),
        )
        with pytest.raises(ValueError, match="state must hold"):
            drift(state, 0.1)

    def test_jit(self):
        state = _two_body_state(*INCLINED[:2], m_central=1.3)
        eager = drift(state, 0.9)
        jitted = jax.jit(drift, static_argnames=("config",))(state, 0.9)
        assert jnp.allclose(eager.state.position, jitted.state.position, atol=1e-13)
        assert jnp.allclose(eager.state.velocity, jitted.state.velocity, atol=1e-13)


class TestDriftRetry:
    def test_substepped_body(self):
        """The full step needs the general solver; the substeps take the fast path."""
        state = _two_body_state([1.0, 0.0, 0.0], [0.0, 1.0, 0.0])
        result = drift(state, 1.0, config=NO_ITERATIONS)
        assert int(result.status[1]) == DriftStatus.SUBSTEPPED
        assert int(result.substeps[1]) == NO_ITERATIONS.substeps
        assert jnp.allclose(result.state.position[1], jnp.array([math.cos(1.0), math.sin(1.0), 0.0]), atol=1e-12)

    def test_failed_body_left_in_place(self):
        r, v, _mu = HYPERBOLIC
        state = _two_body_state(r, v)
        result = drift(state, 8.0, config=NO_ITERATIONS)
        assert int(result.status[1]) == DriftStatus.FAILED
        assert int(result.substeps[1]) == 0
        assert jnp.array_equal(result.state.position[1], jnp.asarray(r))
        assert jnp.array_equal(result.state.velocity[1], jnp.asarray(v))

    def test_failure_is_per_body(self):
        """One failing body does not affect the others."""
        state = ParticleState(
            position=jnp.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [1.0, 0.0, 0.0]]),
            velocity=jnp.array([[0.0, 0.0, 0.0], [0.0, 1.0, 0.0], [0.0, 2.0, 0.0]]),
            mass=jnp.array([1.0, 0.0, 0.0]),
        )
        result = drift(state, 0.2, config=NO_ITERATIONS)
        assert int(result.status[1]) == DriftStatus.CONVERGED
        assert int(result.status[2]) == DriftStatus.FAILED
        assert jnp.allclose(result.state.position[1], jnp.array([math.cos(0.2), math.sin(0.2), 0.0]), atol=1e-13)


class TestReportDriftFailures:
    @pytest.fixture
    def mixed_result(self):
        state = ParticleState(jnp.zeros((3, 3)), jnp.zeros((3, 3)), jnp.ones(3))
        return DriftResult(
            state=state,
            status=jnp.array([0, 1, 2], dtype=jnp.int32),
            substeps=jnp.array([0, 10, 3], dtype=jnp.int32),
        )

    def test_counts_failures(self, mixed_result):
        assert report_drift_failures(mixed_result) == 1

    def test_logs_failures(self, mixed_result, caplog):
        with caplog.at_level(logging.DEBUG, logger="keplerdrift.drift.scheduler"):
            report_drift_failures(mixed_result)
        records = [r for r in caplog.records if r.name == "keplerdrift.drift.scheduler"]
        warnings = [r for r in records if r.levelno == logging.WARNING]
        debugs = [r for r in records if r.levelno == logging.DEBUG]
        assert len(warnings) == 1
        assert "body 2" in warnings[0].getMessage()
        assert "3 completed substeps" in warnings[0].getMessage()
        assert len(debugs) == 1
        assert "Body 1" in debugs[0].getMessage()

    def test_raises_on_request(self, mixed_result):
        with pytest.raises(DriftConvergenceError, match="1 body") as excinfo:
            report_drift_failures(mixed_result, raise_on_failure=True)
        assert excinfo.value.indices == [2]

    def test_clean_result_is_silent(self, caplog):
        result = drift(_two_body_state([1.0, 0.0, 0.0], [0.0, 1.0, 0.0]), 0.1)
        with caplog.at_level(logging.DEBUG, logger="keplerdrift.drift.scheduler"):
            assert report_drift_failures(result, raise_on_failure=True) == 0
        assert not [r for r in caplog.records if r.name == "keplerdrift.drift.scheduler"]

    def test_reports_real_failure(self, caplog):
        r, v, _mu = HYPERBOLIC
        result = drift(_two_body_state(r, v), 8.0, config=NO_ITERATIONS)
        with caplog.at_level(logging.WARNING, logger="keplerdrift.drift.scheduler"):
            assert report_drift_failures(result) == 1
        assert any("body 1" in rec.getMessage() for rec in caplog.records)

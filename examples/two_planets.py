# /// script
# requires-python = ">=3.11"
# dependencies = ["typer>=0.9.0", "keplerdrift"]
#
# [tool.uv.sources]
# keplerdrift = { path = ".." }
# ///
"""Integrate a star with two mutually interacting planets.

Sets up a Jupiter/Saturn-like pair around a solar-mass star, integrates it
with the Wisdom-Holman drift-kick-drift map and reports the relative drift
of the total energy together with any bodies whose Kepler drift needed
substeps or failed.

Requires keplerdrift to be installed (``uv pip install -e .`` from the repo
root).

Usage:
    uv run examples/two_planets.py [OPTIONS]

Examples:
    # 1000 years at a 0.5 year step
    uv run examples/two_planets.py --years 1000 --step 0.5

    # Show substepped bodies
    uv run examples/two_planets.py --verbose
"""

import logging
import math
import time
from typing import Annotated

import jax
import jax.numpy as jnp
import typer

from keplerdrift import (
    ParticleState,
    WisdomHolmanConfig,
    integrate,
    report_drift_failures,
    set_dtype,
)

set_dtype(jnp.float64)  # Must be before any JIT compilation

# Units: AU, years, solar masses
G = 4.0 * math.pi**2


def mutual_accel(state: ParticleState) -> jax.Array:
    """Planet-planet gravity; the star's pull is handled by the drift."""
    m = state.mass.at[0].set(0.0)
    n = m.shape[0]
    d = state.position[None, :, :] - state.position[:, None, :]
    r2 = jnp.sum(d * d, axis=-1)
    eye = jnp.eye(n, dtype=bool)
    inv_r3 = jnp.where(eye, 0.0, 1.0 / jnp.where(eye, 1.0, r2 * jnp.sqrt(r2)))
    return G * jnp.sum((m[None, :] * inv_r3)[:, :, None] * d, axis=1)


def total_energy(state: ParticleState) -> float:
    """Barycentric kinetic plus pairwise potential energy."""
    m = state.mass
    v_cm = jnp.sum(m[:, None] * state.velocity, axis=0) / jnp.sum(m)
    v = state.velocity - v_cm
    kinetic = 0.5 * jnp.sum(m * jnp.sum(v * v, axis=1))
    d = state.position[None, :, :] - state.position[:, None, :]
    r = jnp.sqrt(jnp.sum(d * d, axis=-1))
    iu = jnp.triu_indices(m.shape[0], k=1)
    potential = -G * jnp.sum((m[:, None] * m[None, :])[iu] / r[iu])
    return float(kinetic + potential)


def initial_state() -> ParticleState:
    m_star, m_jup, m_sat = 1.0, 9.54e-4, 2.86e-4
    a_jup, a_sat = 5.20, 9.58
    v_jup = math.sqrt(G * (m_star + m_jup) / a_jup)
    v_sat = math.sqrt(G * (m_star + m_sat) / a_sat)
    return ParticleState(
        position=jnp.array([[0.0, 0.0, 0.0], [a_jup, 0.0, 0.0], [0.0, a_sat, 0.02]]),
        velocity=jnp.array([[0.0, 0.0, 0.0], [0.0, v_jup, 0.0], [-v_sat, 0.0, 0.0]]),
        mass=jnp.array([m_star, m_jup, m_sat]),
    )


def main(
    years: Annotated[float, typer.Option(help="Integration time in years")] = 100.0,
    step: Annotated[float, typer.Option(help="Step size in years")] = 0.5,
    verbose: Annotated[bool, typer.Option(help="Log substepped bodies")] = False,
) -> None:
    """Integrate the system and report energy error and drift failures."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    state = initial_state()
    config = WisdomHolmanConfig(G=G)
    n_steps = int(years / step)
    print(f"Integrating {state.mass.shape[0] - 1} planets for {n_steps} steps of {step} yr")

    run = jax.jit(integrate, static_argnames=("n_steps", "accel_fn", "config"))

    t0 = time.perf_counter()
    result = run(state, step, n_steps=n_steps, accel_fn=mutual_accel, config=config)
    result.state.position.block_until_ready()
    print(f"  Finished in {time.perf_counter() - t0:.2f}s (including compilation)")

    e0 = total_energy(state)
    e1 = total_energy(result.state)
    print(f"  Relative energy error: {abs((e1 - e0) / e0):.3e}")

    n_failed = report_drift_failures(result)
    print(f"  Bodies with failed drifts: {n_failed}")


if __name__ == "__main__":
    typer.run(main)

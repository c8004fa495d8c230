"""
keplerdrift is the Kepler drift step of a Wisdom-Holman symplectic N-body integrator, implemented in JAX.
"""

from .constants import (
    DANBYB,
    NEWTON_MAX_ITER,
    LAGUERRE_MAX_ITER,
    LAGUERRE_ORDER,
    SUBSTEP_COUNT,
)

from .config import set_dtype, get_dtype, get_solver_tolerance

from .kepler import (
    SolveStatus,
    SolverConfig,
    stumpff,
    relative_orbit,
    kepler_residual,
    kepler_solve,
)

from .drift import (
    ParticleState,
    DriftResult,
    DriftStatus,
    DriftConvergenceError,
    drift_body,
    drift,
    report_drift_failures,
)

from .integrators import (
    WHStepResult,
    WisdomHolmanConfig,
    wisdom_holman_step,
    integrate,
)

__all__ = [
    # Constants
    "DANBYB",
    "NEWTON_MAX_ITER",
    "LAGUERRE_MAX_ITER",
    "LAGUERRE_ORDER",
    "SUBSTEP_COUNT",
    # Config
    "set_dtype",
    "get_dtype",
    "get_solver_tolerance",
    # Kepler solver
    "SolveStatus",
    "SolverConfig",
    "stumpff",
    "relative_orbit",
    "kepler_residual",
    "kepler_solve",
    # Drift
    "ParticleState",
    "DriftResult",
    "DriftStatus",
    "DriftConvergenceError",
    "drift_body",
    "drift",
    "report_drift_failures",
    # Integrators
    "WHStepResult",
    "WisdomHolmanConfig",
    "wisdom_holman_step",
    "integrate",
]

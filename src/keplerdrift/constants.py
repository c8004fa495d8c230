"""
The `constants` module collects the numerical constants of the universal-variable
drift. They are empirically tuned stability margins of the reference
Danby-Stumpff algorithm and are not meant to be re-derived.
"""

from jax.numpy import pi as PI

# Convergence
"""
Residual tolerance of every Kepler solve. Newton and Laguerre-Conway accept
when ``(f/dt)**2 < DANBYB**2``; the direct elliptic path rejects when its
squared residual exceeds ``DANBYB``. Dimensionless.
"""
DANBYB = 1.0e-13

"""
Iteration cap of the Newton-Raphson (Halley-family) universal solver.
"""
NEWTON_MAX_ITER = 6

"""
Iteration cap of the Laguerre-Conway fallback solver.
"""
LAGUERRE_MAX_ITER = 400

"""
Order parameter ``n`` of the Laguerre-Conway iteration.
"""
LAGUERRE_ORDER = 5.0

"""
Fixed scale replacing ``r0`` in the Laguerre-Conway second-derivative estimate.
"""
LAGUERRE_FPP_SCALE = 40.0

# Stumpff functions
"""
Stumpff arguments are divided by four until ``|x|`` drops below this value.
"""
STUMPFF_REDUCTION_LIMIT = 0.1

# Direct elliptic fast path
"""
Upper bound on ``esq * dm**2`` for the direct elliptic solver.
"""
FAST_PATH_ESQ_DM2_LIMIT = 0.0016

"""
Upper bound on ``dm**2`` (mean anomaly increment squared) for the direct elliptic solver.
"""
FAST_PATH_DM2_LIMIT = 0.16

"""
Upper bound on ``esq`` (eccentricity squared) for the direct elliptic solver.
"""
FAST_PATH_ESQ_LIMIT = 0.36

"""
Taylor coefficients of ``11! * sin(x)`` used by the direct elliptic solver.
"""
KEPMD_A0 = 39916800.0
KEPMD_A1 = 6652800.0
KEPMD_A2 = 332640.0
KEPMD_A3 = 7920.0
KEPMD_A4 = 110.0

# Initial guess
"""
Elliptic steps with ``|dt|/r0`` at or below this value use the series guess.
"""
SERIES_GUESS_LIMIT = 0.4

"""
Eccentricity factor of the trigonometric elliptic guess.
"""
GUESS_ECC_FACTOR = 0.85

# Scheduling
"""
Number of equal substeps tried when a full-length drift fails to converge.
"""
SUBSTEP_COUNT = 10

"""
Full turn in radians, used to wrap mean anomaly increments. Units: *rad*
"""
TWO_PI = 2.0 * PI

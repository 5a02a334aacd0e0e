"""Useful constants used throughout the code"""

import numpy as np

# Precision of real numbers
REAL_TYPE = np.float64

# time integrator defaults
THETA_DEFAULT = 1.0
MAX_ITER_DEFAULT = 50
REL_RES_TOL_DEFAULT = 1.0e-10
ABS_RES_TOL_DEFAULT = 1.0e-14
DT_DEFAULT = 1.0e-2
VERBOSITY_DEFAULT = 0

# Newton divergence: consecutive residual increases before giving up
MAX_RES_INCREASES = 2

# linear solver defaults
LIN_SOLVER_DEFAULT = "direct"
KRYLOV_TOL_DEFAULT = 1.0e-12
KRYLOV_MAX_ITER_DEFAULT = 1000

# time scheme names
SCHEME_IMPLICIT_LINEAR = "implicit_linear"
SCHEME_IMPLICIT_NONLINEAR = "implicit_nonlinear"
SCHEME_IMEX_ALE = "imex_ale"
SCHEMES = [SCHEME_IMPLICIT_LINEAR, SCHEME_IMPLICIT_NONLINEAR, SCHEME_IMEX_ALE]

# explicit convective state for IMEX steps
EXTRAP_PREVIOUS = "previous"
EXTRAP_LINEAR = "linear"
EXTRAPOLATIONS = [EXTRAP_PREVIOUS, EXTRAP_LINEAR]

# integrator lifecycle states
STATE_UNINITIALIZED = "uninitialized"
STATE_INITIALIZED = "initialized"
STATE_STEPPING = "stepping"
STATE_CONVERGED = "converged"
STATE_FAILED = "failed"

# linear solver failure reasons
FAIL_SINGULAR = "singular"
FAIL_NOT_CONVERGED = "not_converged"
FAIL_NON_FINITE = "non_finite"

# input files
PARAM_INPUTS = "scheme_params.inp"

import numpy as np

import alestep.constants as const
from alestep.errors import DimensionError, SolverFailure


class LinearSolver:
    """Base class for linear solve services.

    Child classes must implement the solve_system() member function, which either returns the solution
    or raises SolverFailure.

    Args:
        param_dict: Dictionary of solver parameters.

    Attributes:
        solver_type: String name of the solver family.
        num_solves: Number of successful solves so far.
    """

    def __init__(self, param_dict=None):

        self.solver_type = None
        self.num_solves = 0

    def solve(self, matrix, rhs):
        """Solve matrix @ x = rhs.

        Args:
            matrix: Square SciPy sparse matrix.
            rhs: 1D NumPy array.

        Returns:
            NumPy array solution of the system.
        """

        if matrix.shape[0] != matrix.shape[1] or matrix.shape[0] != rhs.shape[0]:
            raise DimensionError(
                "Linear system shape mismatch: matrix " + str(matrix.shape) + ", rhs " + str(rhs.shape)
            )

        sol = self.solve_system(matrix.tocsc(), np.asarray(rhs, dtype=const.REAL_TYPE))

        if not np.all(np.isfinite(sol)):
            raise SolverFailure(const.FAIL_NON_FINITE, "solution contains NaN or Inf")

        self.num_solves += 1
        return sol

    def solve_system(self, matrix, rhs):
        raise NotImplementedError("solve_system() must be implemented by child classes")

from scipy.sparse.linalg import splu

import alestep.constants as const
from alestep.errors import SolverFailure
from alestep.linear_solver.linear_solver import LinearSolver


class DirectSolver(LinearSolver):
    """Sparse LU factorization via SuperLU.

    Exactly singular matrices are reported as SolverFailure("singular").
    """

    def __init__(self, param_dict=None):

        super().__init__(param_dict)

        self.solver_type = "direct"

    def solve_system(self, matrix, rhs):

        if matrix.shape[0] == 0:
            return rhs.copy()

        try:
            lu = splu(matrix)
        except RuntimeError as err:
            # SuperLU reports "Factor is exactly singular"
            raise SolverFailure(const.FAIL_SINGULAR, str(err)) from err

        return lu.solve(rhs)

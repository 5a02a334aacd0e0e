import numpy as np
import scipy
from packaging import version
from scipy.sparse.linalg import LinearOperator, bicgstab, cg, gmres, spilu

import alestep.constants as const
from alestep.errors import SolverFailure
from alestep.input_funcs import catch_input
from alestep.linear_solver.linear_solver import LinearSolver

# SciPy 1.12 renamed the Krylov "tol" keyword to "rtol"
KRYLOV_TOL_KEY = "rtol" if version.parse(scipy.__version__) >= version.parse("1.12") else "tol"


class IterativeSolver(LinearSolver):
    """Preconditioned Krylov solvers from scipy.sparse.linalg.

    Args:
        param_dict: Dictionary of solver parameters.

    Attributes:
        krylov_method: "gmres", "bicgstab", or "cg".
        krylov_tol: Relative residual tolerance of the Krylov solve.
        krylov_max_iter: Maximum number of Krylov iterations.
        use_ilu: Whether to precondition with an incomplete LU factorization.
        num_krylov_iters: Number of Krylov iterations of the most recent solve.
    """

    def __init__(self, param_dict=None):

        super().__init__(param_dict)

        if param_dict is None:
            param_dict = {}

        self.solver_type = "iterative"
        self.krylov_method = catch_input(param_dict, "krylov_method", "gmres")
        self.krylov_tol = catch_input(param_dict, "krylov_tol", const.KRYLOV_TOL_DEFAULT)
        self.krylov_max_iter = catch_input(param_dict, "krylov_max_iter", const.KRYLOV_MAX_ITER_DEFAULT)
        self.use_ilu = catch_input(param_dict, "use_ilu", True)
        self.num_krylov_iters = 0

        if self.krylov_method == "gmres":
            self.krylov_func = gmres
        elif self.krylov_method == "bicgstab":
            self.krylov_func = bicgstab
        elif self.krylov_method == "cg":
            self.krylov_func = cg
        else:
            raise ValueError("Invalid choice of krylov_method: " + str(self.krylov_method))

    def solve_system(self, matrix, rhs):

        if matrix.shape[0] == 0:
            return rhs.copy()

        precon = None
        if self.use_ilu:
            try:
                ilu = spilu(matrix)
            except RuntimeError as err:
                raise SolverFailure(const.FAIL_SINGULAR, str(err)) from err
            precon = LinearOperator(matrix.shape, ilu.solve)

        self.num_krylov_iters = 0

        def count_iter(_):
            self.num_krylov_iters += 1

        kwargs = {KRYLOV_TOL_KEY: self.krylov_tol, "maxiter": self.krylov_max_iter, "M": precon, "atol": 0.0}
        if self.krylov_method == "gmres":
            kwargs["callback_type"] = "pr_norm"

        sol, info = self.krylov_func(matrix, rhs, callback=count_iter, **kwargs)

        if info > 0:
            raise SolverFailure(
                const.FAIL_NOT_CONVERGED,
                self.krylov_method + " did not converge in " + str(self.num_krylov_iters) + " iterations",
            )
        if info < 0:
            raise SolverFailure(const.FAIL_SINGULAR, self.krylov_method + " breakdown (info=" + str(info) + ")")

        return np.asarray(sol)

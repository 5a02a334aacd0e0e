from alestep.linear_solver.direct_solver import DirectSolver
from alestep.linear_solver.iterative_solver import IterativeSolver


def get_linear_solver(lin_solver_name, param_dict=None):
    """Helper function to get linear solve service object.

    Args:
        lin_solver_name: String name of the requested linear solver.
        param_dict: Dictionary of solver parameters, e.g. read from an input file.

    Returns:
        LinearSolver object of the requested type.
    """

    if param_dict is None:
        param_dict = {}

    if lin_solver_name == "direct":
        lin_solver = DirectSolver(param_dict)
    elif lin_solver_name in ["gmres", "bicgstab", "cg"]:
        lin_solver = IterativeSolver(dict(param_dict, krylov_method=lin_solver_name))
    else:
        raise ValueError("Invalid choice of lin_solver: " + lin_solver_name)

    return lin_solver

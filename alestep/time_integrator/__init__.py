from alestep.input_funcs import catch_input
from alestep.linear_solver import get_linear_solver
from alestep.scheme_config import SchemeConfig
from alestep.time_integrator.time_integrator import TimeIntegrator
import alestep.constants as const


def get_time_integrator(stiff_op, mass_op, param_dict):
    """Helper function to build a TimeIntegrator from a parameter dictionary.

    Args:
        stiff_op: Stiffness operator.
        mass_op: Mass operator.
        param_dict: Dictionary of parameters, e.g. read from scheme_params.inp.

    Returns:
        TimeIntegrator with its SchemeConfig and linear solver set from param_dict. Not yet initialized.
    """

    config = SchemeConfig.from_param_dict(param_dict)
    lin_solver = get_linear_solver(catch_input(param_dict, "lin_solver", const.LIN_SOLVER_DEFAULT), param_dict)

    return TimeIntegrator(stiff_op, mass_op, config, lin_solver=lin_solver)

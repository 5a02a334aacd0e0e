from dataclasses import dataclass

import alestep.constants as const
from alestep.errors import ConfigurationError
from alestep.input_funcs import catch_input, read_input_file


@dataclass(frozen=True)
class SchemeConfig:
    """Time stepping parameters of a TimeIntegrator.

    Values are range-checked on construction and cannot be changed afterwards.

    Attributes:
        scheme: One of "implicit_linear", "implicit_nonlinear", "imex_ale".
        theta: Implicit blending factor, 1.0 is backward Euler and 0.5 is Crank-Nicolson.
        tol: Relative residual reduction at which Newton's method is considered converged.
        abs_tol: Absolute residual 2-norm below which Newton's method is considered converged.
        max_iter: Maximum number of Newton iterations per time step.
        dt: Time step size used by TimeIntegrator.assemble() before the first time step.
        extrapolation:
            Convective state of IMEX steps, "previous" uses the last time level,
            "linear" extrapolates from the two most recent ones.
        reassemble_mass_corrector: Whether the IMEX corrector pass rebuilds the mass matrix.
        verbosity: 0 prints nothing, 1 prints one line per step, 2 also prints Newton residuals.
    """

    scheme: str = const.SCHEME_IMPLICIT_LINEAR
    theta: float = const.THETA_DEFAULT
    tol: float = const.REL_RES_TOL_DEFAULT
    abs_tol: float = const.ABS_RES_TOL_DEFAULT
    max_iter: int = const.MAX_ITER_DEFAULT
    dt: float = const.DT_DEFAULT
    extrapolation: str = const.EXTRAP_PREVIOUS
    reassemble_mass_corrector: bool = False
    verbosity: int = const.VERBOSITY_DEFAULT

    def __post_init__(self):

        if self.scheme not in const.SCHEMES:
            raise ConfigurationError("Invalid choice of scheme: " + str(self.scheme))
        if not (0.0 <= self.theta <= 1.0):
            raise ConfigurationError("theta must lie in [0, 1], got " + str(self.theta))
        if not (self.tol > 0.0):
            raise ConfigurationError("tol must be positive, got " + str(self.tol))
        if not (self.abs_tol >= 0.0):
            raise ConfigurationError("abs_tol must be non-negative, got " + str(self.abs_tol))
        if self.max_iter < 1:
            raise ConfigurationError("max_iter must be at least 1, got " + str(self.max_iter))
        if not (self.dt > 0.0):
            raise ConfigurationError("dt must be positive, got " + str(self.dt))
        if self.extrapolation not in const.EXTRAPOLATIONS:
            raise ConfigurationError("Invalid choice of extrapolation: " + str(self.extrapolation))

    @property
    def is_nonlinear(self):
        return self.scheme == const.SCHEME_IMPLICIT_NONLINEAR

    @property
    def is_ale(self):
        return self.scheme == const.SCHEME_IMEX_ALE

    @classmethod
    def from_param_dict(cls, param_dict):
        """Build a SchemeConfig from a parameter dictionary, filling in defaults for missing keys.

        Args:
            param_dict: Dictionary of parameters, e.g. read by read_input_file().

        Returns:
            Validated SchemeConfig.
        """

        try:
            return cls(
                scheme=catch_input(param_dict, "scheme", const.SCHEME_IMPLICIT_LINEAR),
                theta=catch_input(param_dict, "theta", const.THETA_DEFAULT),
                tol=catch_input(param_dict, "tol", const.REL_RES_TOL_DEFAULT),
                abs_tol=catch_input(param_dict, "abs_tol", const.ABS_RES_TOL_DEFAULT),
                max_iter=catch_input(param_dict, "max_iter", const.MAX_ITER_DEFAULT),
                dt=catch_input(param_dict, "dt", const.DT_DEFAULT),
                extrapolation=catch_input(param_dict, "extrapolation", const.EXTRAP_PREVIOUS),
                reassemble_mass_corrector=catch_input(param_dict, "reassemble_mass_corrector", False),
                verbosity=catch_input(param_dict, "verbosity", const.VERBOSITY_DEFAULT),
            )
        except ConfigurationError:
            raise
        except (TypeError, ValueError) as err:
            raise ConfigurationError("Could not read scheme parameters: " + str(err)) from err

    @classmethod
    def from_file(cls, param_file):
        """Build a SchemeConfig from a "key = value" input file."""

        return cls.from_param_dict(read_input_file(param_file))

"""Exceptions raised by the time integration engine.

Configuration and dimension errors are raised before any state is modified.
NonlinearDivergence and SolverFailure leave the TimeIntegrator in the "failed" state
with its solution vectors at their pre-step values.
"""


class AlestepError(Exception):
    """Base class for all package exceptions."""


class ConfigurationError(AlestepError, ValueError):
    """Inconsistent operators or invalid scheme parameters."""


class DimensionError(AlestepError, ValueError):
    """Vector or fixed degree of freedom container of the wrong size."""


class IntegratorStateError(AlestepError, RuntimeError):
    """Operation requested in a lifecycle state which does not permit it."""


class NoCheckpointError(AlestepError, RuntimeError):
    """Recovery requested with no saved checkpoint."""


class NonlinearDivergence(AlestepError, RuntimeError):
    """Newton iteration exceeded the iteration limit or the residual kept growing.

    Args:
        message: Description of the divergence criterion that was hit.
        iters: Number of Newton iterations executed.
        res_norms: List of residual 2-norms, starting with the initial residual.
    """

    def __init__(self, message, iters=0, res_norms=None):
        super().__init__(message)
        self.iters = iters
        self.res_norms = [] if res_norms is None else list(res_norms)


class SolverFailure(AlestepError, RuntimeError):
    """Linear solve failed.

    Args:
        reason: One of "singular", "not_converged", "non_finite".
        message: Optional extra description.
    """

    def __init__(self, reason, message=""):
        text = "Linear solve failed (" + str(reason) + ")"
        if message:
            text += ": " + message
        super().__init__(text)
        self.reason = reason

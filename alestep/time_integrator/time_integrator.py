import numpy as np

import alestep.constants as const
from alestep.checkpoint import CheckpointStore
from alestep.constants import REAL_TYPE
from alestep.errors import (
    ConfigurationError,
    DimensionError,
    IntegratorStateError,
    NonlinearDivergence,
    SolverFailure,
)
from alestep.fixed_dofs import FixedDofSet
from alestep.linear_solver import DirectSolver
from alestep.system_operator import SystemOperator

# integrator-owned buffers which make up one time level; restored on failure and saved in checkpoints
STATE_BUFFERS = [
    "sol_vec",
    "sol_vec_old",
    "system",
    "stiff_matrix",
    "stiff_rhs",
    "stiff_matrix_old",
    "stiff_rhs_old",
    "mass_matrix",
    "mass_rhs",
    "mass_matrix_old",
    "mass_rhs_old",
    "const_rhs",
    "t_step",
    "sol_time",
    "time_iter",
    "hist_valid",
    "fsi_predicted",
]


class TimeIntegrator:
    """Theta-scheme time integrator combining a stiffness operator and a mass operator.

    Advances M du/dt + S(u) = 0, where S(u) is the spatial residual of the stiffness operator, with the theta scheme
    M (u_{n+1} - u_n) / dt + theta S(u_{n+1}) + (1 - theta) S(u_n) = 0.
    Every step is solved as a correction system for the increment of u, assembled by assemble():

        (M / dt + theta A(u)) du = -R(u),
        R(u) = (M u - b_M) / dt + theta (A(u) u - b(u)) - const_rhs,
        const_rhs = (M_n u_n - b_M,n) / dt - (1 - theta) (A_n u_n - b_n),

    where (A, b) and (M, b_M) are the outputs of the stiffness and mass operators. The linear scheme takes a single
    correction, the nonlinear scheme iterates with Newton's method, and the IMEX scheme freezes the stiffness
    linearization at an explicit convective state, with the mass matrix rebuilt on the moving mesh every step.

    A step either completes or leaves every buffer at its pre-step value and moves the integrator to "failed".
    The integrator is not thread-safe; callers must not step one instance concurrently.

    Args:
        stiff_op: Stiffness operator, see alestep.operators.operator.Operator.
        mass_op: Mass operator with the same num_dofs().
        config: SchemeConfig.
        lin_solver: Linear solve service, defaults to DirectSolver.
        fixed_dofs: FixedDofSet, defaults to the stiffness operator's initial fixed degrees of freedom.

    Attributes:
        state: Lifecycle state, one of the STATE_* names in constants.
        theta: Implicit blending factor.
        t_step: Size of the most recent time step, config.dt before the first step.
        sol_time: Physical time of the current solution, accumulated over steps.
        time_iter: Number of completed time steps.
        sol_vec: NumPy array of the current solution.
        sol_vec_old: NumPy array of the solution at the previous time level.
        system: SystemOperator of the most recent assembly.
        const_rhs: History right-hand side of the current step.
        residual_norms: List of residual 2-norms of the most recent step.
        num_iters: Number of linear solves of the most recent step.
        hist_valid: Whether sol_vec_old is a genuine previous time level of sol_vec.
        fsi_predicted: Whether the most recent step was an IMEX step that a corrector pass may refine.
    """

    def __init__(self, stiff_op, mass_op, config, lin_solver=None, fixed_dofs=None):

        self.stiff_op = stiff_op
        self.mass_op = mass_op
        self.config = config
        self.lin_solver = DirectSolver() if lin_solver is None else lin_solver

        if fixed_dofs is None:
            fixed_dofs = FixedDofSet(getattr(stiff_op, "initial_fixed_dofs", list)())
        elif not isinstance(fixed_dofs, FixedDofSet):
            fixed_dofs = FixedDofSet(fixed_dofs)
        self.fixed_dofs = fixed_dofs

        self.state = const.STATE_UNINITIALIZED
        self.theta = config.theta
        self.verbosity = config.verbosity
        self.static_mass = not config.is_ale

        self.checkpoints = CheckpointStore()
        self.residual_norms = []
        self.num_iters = 0

        self.velocity_ale = None
        self.patches = None

        for name in STATE_BUFFERS:
            setattr(self, name, None)

    # ----- Lifecycle -----

    def num_dofs(self):
        return self.stiff_op.num_dofs()

    def check_dimensions(self):
        """Raise ConfigurationError if the two operators disagree on the number of degrees of freedom."""

        num_stiff = self.stiff_op.num_dofs()
        num_mass = self.mass_op.num_dofs()
        if num_stiff != num_mass:
            raise ConfigurationError(
                "Stiffness operator has " + str(num_stiff) + " DoFs, mass operator has " + str(num_mass)
            )

    def initialize(self):
        """Allocate solution vectors and assemble the initial history terms; call before any time step."""

        self.check_dimensions()
        num_dofs = self.num_dofs()

        self.sol_vec = np.zeros(num_dofs, dtype=REAL_TYPE)
        self.sol_vec_old = np.zeros(num_dofs, dtype=REAL_TYPE)
        self.system = SystemOperator()
        self.stiff_matrix = None
        self.stiff_rhs = None
        self.stiff_matrix_old = None
        self.stiff_rhs_old = None
        self.const_rhs = np.zeros(num_dofs, dtype=REAL_TYPE)
        self.t_step = self.config.dt
        self.sol_time = 0.0
        self.time_iter = 0
        self.hist_valid = False
        self.fsi_predicted = False

        # for a moving mesh, this only provides the mass at the initial time level
        self.assemble_mass()
        self.mass_matrix_old = self.mass_matrix
        self.mass_rhs_old = self.mass_rhs
        self.stiff_matrix_old, self.stiff_rhs_old = self.calc_history_stiffness(self.sol_vec)

        self.state = const.STATE_INITIALIZED

        if self.verbosity >= 1:
            print(
                "Initialized " + self.config.scheme + " time integrator with " + str(num_dofs) + " DoFs"
                + (", mass reassembled every step" if not self.static_mass else "")
            )

    def set_solution_vector(self, sol_vec):
        """Replace the current solution, e.g. with an initial condition or a known good state after a failure.

        The fixed degrees of freedom in effect are taken to belong to sol_vec; both history terms of the next step
        are rebuilt from them. Refresh fixed degrees of freedom for the new time level after this call.

        Args:
            sol_vec: Array-like of num_dofs() values.
        """

        self.require_state(
            [const.STATE_INITIALIZED, const.STATE_CONVERGED, const.STATE_FAILED], "set_solution_vector"
        )
        self.check_dimensions()

        sol_vec = np.asarray(sol_vec, dtype=REAL_TYPE)
        if sol_vec.ndim != 1 or sol_vec.shape[0] != self.num_dofs():
            raise DimensionError(
                "Wrong size of the solution vector: "
                + str(sol_vec.size)
                + ". Must be: "
                + str(self.num_dofs())
            )

        stiff_matrix_old, stiff_rhs_old = self.calc_history_stiffness(sol_vec)
        _, mass_rhs_old = self.mass_op.assemble(sol_vec, self.fixed_dofs, False)

        self.sol_vec = sol_vec.copy()
        self.stiff_matrix_old = stiff_matrix_old
        self.stiff_rhs_old = stiff_rhs_old
        self.mass_rhs_old = mass_rhs_old
        self.hist_valid = False
        self.fsi_predicted = False

        if self.state != const.STATE_INITIALIZED:
            self.state = const.STATE_CONVERGED

    def set_fixed_dofs(self, values):
        """Refresh prescribed boundary values in place, e.g. for time-dependent boundary conditions."""

        self.fixed_dofs.set_fixed_dofs(values)

    def set_mesh_velocity(self, velocity_ale, patches=None):
        """Register the mesh velocity used by IMEX steps.

        Args:
            velocity_ale: List of nodal mesh velocity arrays, one per ALE patch, or None for a static mesh.
            patches: List of (ale_patch, flow_patch) index pairs.
        """

        set_vel = getattr(self.stiff_op, "set_mesh_velocity", None)
        if set_vel is None:
            if velocity_ale is not None and any(np.any(np.asarray(vel) != 0.0) for vel in velocity_ale):
                raise ConfigurationError(type(self.stiff_op).__name__ + " does not support mesh motion")
        else:
            set_vel(velocity_ale, patches)

        self.velocity_ale = velocity_ale
        self.patches = patches

    def require_state(self, allowed, op_name):

        if self.state not in allowed:
            raise IntegratorStateError(op_name + "() is not allowed in state '" + self.state + "'")

    def solution_vector(self):
        return self.sol_vec.copy()

    def solution_vector_old(self):
        return self.sol_vec_old.copy()

    # ----- Assembly -----

    def assemble_mass(self):
        """Rebuild the mass matrix on the current mesh geometry."""

        self.mass_matrix, self.mass_rhs = self.mass_op.assemble(self.sol_vec, self.fixed_dofs, True)

    def assemble(self, state, fixed_dofs=None, assemble_matrix=True):
        """Assemble the correction system at state into self.system.

        Solution vectors are not modified. With assemble_matrix=False, the system matrix object of the previous
        assembly is left untouched and only the right-hand side is rebuilt. The right-hand side is always the
        residual at state, so iterating with the frozen matrix converges to the same solution as Newton's method.

        Args:
            state: NumPy array of num_dofs() values at which the system is linearized.
            fixed_dofs: FixedDofSet, defaults to the integrator's own.
            assemble_matrix: Whether to rebuild the matrix.

        Returns:
            True once the system is assembled.
        """

        self.require_state(
            [const.STATE_INITIALIZED, const.STATE_STEPPING, const.STATE_CONVERGED, const.STATE_FAILED], "assemble"
        )
        if fixed_dofs is None:
            fixed_dofs = self.fixed_dofs

        state = np.asarray(state, dtype=REAL_TYPE)
        if state.shape != (self.num_dofs(),):
            raise DimensionError(
                "Wrong size of the state vector: " + str(state.size) + ". Must be: " + str(self.num_dofs())
            )

        if assemble_matrix or (self.stiff_matrix is None):
            self.stiff_matrix, self.stiff_rhs = self.stiff_op.assemble(state, fixed_dofs, True)
            stiff_res = self.stiff_matrix @ state - self.stiff_rhs
            assemble_matrix = True
        else:
            # cached tangent belongs to an earlier state
            stiff_res = self.stiff_residual(state, fixed_dofs)

        self.combine(state, fixed_dofs, self.stiff_matrix, stiff_res, assemble_matrix)
        return True

    def stiff_residual(self, state, fixed_dofs):
        """Spatial residual S(state) of the stiffness operator.

        Operators may provide residual(state, fixed_dofs) to skip building the tangent matrix.
        """

        calc_residual = getattr(self.stiff_op, "residual", None)
        if calc_residual is not None:
            return calc_residual(state, fixed_dofs)

        stiff_matrix, stiff_rhs = self.stiff_op.assemble(state, fixed_dofs, True)
        return stiff_matrix @ state - stiff_rhs

    def combine(self, state, fixed_dofs, stiff_matrix, stiff_res, assemble_matrix=True):
        """Form the correction system at state from a stiffness tangent and residual with the cached mass matrix.

        Args:
            state: NumPy array at which the system is formed.
            fixed_dofs: FixedDofSet.
            stiff_matrix: Stiffness tangent entering the system matrix.
            stiff_res: Stiffness residual entering the right-hand side.
            assemble_matrix: Whether to rebuild the system matrix.
        """

        _, mass_rhs = self.mass_op.assemble(state, fixed_dofs, False)
        dt = self.t_step

        residual = (self.mass_matrix @ state - mass_rhs) / dt - self.const_rhs
        if self.theta > 0.0:
            residual += self.theta * stiff_res

        if assemble_matrix or (self.system.matrix is None):
            matrix = self.mass_matrix / dt
            if self.theta > 0.0:
                matrix = matrix + self.theta * stiff_matrix
            self.system.matrix = matrix.tocsr()
        self.system.rhs = -residual
        self.mass_rhs = mass_rhs

    def calc_history_stiffness(self, sol):
        """Stiffness linearization at a time level, needed as (1 - theta) history only if theta < 1."""

        if self.theta < 1.0:
            return self.stiff_op.assemble(sol, self.fixed_dofs, True)
        return None, None

    def calc_history_rhs(self):
        """Right-hand side contribution of the previous time level, at the start of a step."""

        sol_old = self.sol_vec
        const_rhs = (self.mass_matrix_old @ sol_old - self.mass_rhs_old) / self.t_step

        if self.theta < 1.0:
            const_rhs -= (1.0 - self.theta) * (self.stiff_matrix_old @ sol_old - self.stiff_rhs_old)

        return const_rhs

    # ----- Time schemes -----

    def implicit_linear(self):
        """Single correction of the theta scheme for a linear stiffness operator.

        Returns:
            NumPy array of the new solution.
        """

        sol_old = self.sol_vec
        self.assemble(sol_old)
        self.residual_norms = [np.linalg.norm(self.system.rhs)]
        d_sol = self.lin_solver.solve(self.system.matrix, self.system.rhs)
        self.num_iters = 1

        return sol_old + d_sol

    def implicit_nonlinear(self):
        """Newton iteration of the theta scheme for a nonlinear stiffness operator.

        Converges once the residual norm relative to the initial one drops below config.tol, or the
        absolute residual norm drops below config.abs_tol.
        Fails with NonlinearDivergence after config.max_iter iterations, if the residual grows on
        consecutive iterations, or if it becomes non-finite.

        Returns:
            NumPy array of the new solution.
        """

        sol = self.sol_vec.copy()
        self.assemble(sol)
        res_norm = np.linalg.norm(self.system.rhs)
        res_norm_init = res_norm
        self.residual_norms = [res_norm]
        self.num_iters = 0

        if res_norm <= self.config.abs_tol:
            return sol

        num_increases = 0
        for self.num_iters in range(1, self.config.max_iter + 1):

            d_sol = self.lin_solver.solve(self.system.matrix, self.system.rhs)
            sol += d_sol

            self.assemble(sol)
            res_norm_prev = res_norm
            res_norm = np.linalg.norm(self.system.rhs)
            self.residual_norms.append(res_norm)

            if self.verbosity >= 2:
                print(
                    "Newton iteration "
                    + str(self.num_iters)
                    + ", residual norm %.8e, relative %.8e" % (res_norm, res_norm / res_norm_init)
                )

            if not np.isfinite(res_norm):
                raise NonlinearDivergence(
                    "Newton residual became non-finite", iters=self.num_iters, res_norms=self.residual_norms
                )

            if (res_norm / res_norm_init < self.config.tol) or (res_norm < self.config.abs_tol):
                return sol

            if res_norm > res_norm_prev:
                num_increases += 1
                if num_increases >= const.MAX_RES_INCREASES:
                    raise NonlinearDivergence(
                        "Newton residual increased on "
                        + str(num_increases)
                        + " consecutive iterations",
                        iters=self.num_iters,
                        res_norms=self.residual_norms,
                    )
            else:
                num_increases = 0

        raise NonlinearDivergence(
            "Newton iteration did not converge in " + str(self.config.max_iter) + " iterations",
            iters=self.num_iters,
            res_norms=self.residual_norms,
        )

    def imex_solve(self, sol_old, sol_conv):
        """Solve the theta system with the stiffness linearization frozen at an explicit convective state.

        Args:
            sol_old: NumPy array of the solution at the previous time level.
            sol_conv: NumPy array of the state at which the stiffness operator is linearized.

        Returns:
            NumPy array of the new solution.
        """

        self.stiff_matrix, self.stiff_rhs = self.stiff_op.assemble(sol_conv, self.fixed_dofs, True)
        self.combine(sol_old, self.fixed_dofs, self.stiff_matrix, self.stiff_matrix @ sol_old - self.stiff_rhs)
        self.residual_norms = [np.linalg.norm(self.system.rhs)]
        d_sol = self.lin_solver.solve(self.system.matrix, self.system.rhs)
        self.num_iters = 1

        return sol_old + d_sol

    def explicit_conv_state(self):
        """Convective state of an IMEX predictor: last time level, or linear extrapolation of the last two."""

        if (self.config.extrapolation == const.EXTRAP_LINEAR) and self.hist_valid:
            return 2.0 * self.sol_vec - self.sol_vec_old
        return self.sol_vec.copy()

    # ----- Stepping -----

    def check_step(self, dt, op_name):

        self.require_state([const.STATE_INITIALIZED, const.STATE_CONVERGED, const.STATE_FAILED], op_name)
        if not (dt > 0.0):
            raise ValueError("Time step must be positive, got " + str(dt))

    def run_step(self, step_func, dt, new_level=True):
        """Execute step_func transactionally.

        On NonlinearDivergence or SolverFailure, every buffer is restored, the integrator is moved to "failed",
        and the exception propagates.

        Args:
            step_func: Callable returning the new solution.
            dt: Time step size.
            new_level: Whether the step advances to a new time level, or refines the current one.
        """

        saved = {name: getattr(self, name) for name in STATE_BUFFERS}
        saved["system"] = self.system.copy()
        state_prev = self.state
        self.state = const.STATE_STEPPING

        try:
            sol_new = step_func()
            stiff_matrix_new, stiff_rhs_new = self.calc_history_stiffness(sol_new)
        except (NonlinearDivergence, SolverFailure) as err:
            self.restore_buffers(saved)
            self.state = const.STATE_FAILED
            if self.verbosity >= 1:
                print("Time step failed: " + str(err))
            raise
        except Exception:
            # errors raised by the operators themselves are not numerical failures
            self.restore_buffers(saved)
            self.state = state_prev
            raise

        if new_level:
            self.sol_vec_old = self.sol_vec
            self.hist_valid = True
            self.sol_time += dt
            self.time_iter += 1
        self.sol_vec = sol_new

        # values at the new level become history for the next step
        self.stiff_matrix_old = stiff_matrix_new
        self.stiff_rhs_old = stiff_rhs_new
        self.mass_matrix_old = self.mass_matrix
        self.mass_rhs_old = self.mass_rhs

        self.state = const.STATE_CONVERGED

        if self.verbosity >= 1:
            print(
                "Iteration "
                + str(self.time_iter)
                + ", time %.8e, dt %.8e, linear solves " % (self.sol_time, dt)
                + str(self.num_iters)
            )

    def restore_buffers(self, buffers):
        for name, val in buffers.items():
            setattr(self, name, val)

    def make_time_step(self, dt):
        """Advance one time step with the configured scheme.

        Args:
            dt: Positive time step size.
        """

        self.check_step(dt, "make_time_step")

        def step_func():
            self.t_step = dt
            if not self.static_mass:
                self.assemble_mass()
            self.const_rhs = self.calc_history_rhs()
            self.fsi_predicted = False

            if self.config.scheme == const.SCHEME_IMPLICIT_LINEAR:
                return self.implicit_linear()
            elif self.config.scheme == const.SCHEME_IMPLICIT_NONLINEAR:
                return self.implicit_nonlinear()
            else:
                return self.imex_solve(self.sol_vec, self.explicit_conv_state())

        self.run_step(step_func, dt)
        self.fsi_predicted = self.config.is_ale

    def make_time_step_fsi(self, dt, velocity_ale=None, patches=None):
        """Advance one IMEX time step in ALE formulation.

        The mass matrix is rebuilt on the current mesh geometry, and the stiffness operator is linearized once at
        the explicit convective state with the given mesh velocity.

        Args:
            dt: Positive time step size.
            velocity_ale: List of nodal mesh velocity arrays, one per ALE patch. None keeps the registered one.
            patches: List of (ale_patch, flow_patch) index pairs.

        Returns:
            Copies of the new solution and of the solution at the previous time level.
        """

        self.check_step(dt, "make_time_step_fsi")
        if velocity_ale is not None:
            self.set_mesh_velocity(velocity_ale, patches)

        def step_func():
            self.t_step = dt
            self.assemble_mass()
            self.const_rhs = self.calc_history_rhs()
            self.fsi_predicted = False
            return self.imex_solve(self.sol_vec, self.explicit_conv_state())

        self.run_step(step_func, dt)
        self.fsi_predicted = True

        return self.solution_vector(), self.solution_vector_old()

    def make_time_step_fsi2(self, dt, velocity_ale=None, patches=None):
        """Corrector pass refining the most recent IMEX step.

        Relinearizes the stiffness operator at the just-computed solution with the updated mesh velocity and
        re-solves from the previous time level. The history right-hand side and the mass matrix of the predictor are
        reused; the mass matrix is rebuilt only if config.reassemble_mass_corrector is set.

        Args:
            dt: Time step size of the predictor.
            velocity_ale: List of updated nodal mesh velocity arrays, one per ALE patch. None keeps the registered one.
            patches: List of (ale_patch, flow_patch) index pairs.

        Returns:
            Copies of the corrected solution and of the solution at the previous time level.
        """

        self.require_state([const.STATE_CONVERGED], "make_time_step_fsi2")
        if not self.fsi_predicted:
            raise IntegratorStateError("make_time_step_fsi2() requires a preceding make_time_step_fsi()")
        if dt != self.t_step:
            raise ValueError("Corrector time step " + str(dt) + " differs from predictor time step " + str(self.t_step))
        if velocity_ale is not None:
            self.set_mesh_velocity(velocity_ale, patches)

        def step_func():
            if self.config.reassemble_mass_corrector:
                self.assemble_mass()
            return self.imex_solve(self.sol_vec_old, self.sol_vec)

        self.run_step(step_func, dt, new_level=False)

        return self.solution_vector(), self.solution_vector_old()

    # ----- Checkpointing -----

    def save_state(self):
        """Snapshot integrator-owned buffers and the registered mesh velocity, overwriting any previous snapshot."""

        self.require_state(
            [const.STATE_INITIALIZED, const.STATE_CONVERGED, const.STATE_FAILED], "save_state"
        )
        buffers = {name: getattr(self, name) for name in STATE_BUFFERS}
        self.checkpoints.save(
            fixed_dofs=self.fixed_dofs,
            state=self.state,
            velocity_ale=self.velocity_ale,
            patches=self.patches,
            **buffers,
        )

    def recover_state(self, discard=True):
        """Restore the snapshot taken by save_state(), discarding all steps taken since.

        Args:
            discard: If True, the snapshot is consumed and a new save_state() is needed before the next recovery.
        """

        self.require_state(
            [const.STATE_INITIALIZED, const.STATE_CONVERGED, const.STATE_FAILED], "recover_state"
        )
        buffers = self.checkpoints.recover(discard=discard)

        self.fixed_dofs.set_fixed_dofs(buffers.pop("fixed_dofs").ddofs)
        self.set_mesh_velocity(buffers.pop("velocity_ale"), buffers.pop("patches"))
        self.state = buffers.pop("state")
        for name, val in buffers.items():
            setattr(self, name, val)

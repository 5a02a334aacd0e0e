import numpy as np

from alestep.constants import REAL_TYPE
from alestep.errors import DimensionError
from alestep.input_funcs import catch_input
from alestep.operators.operator import FEOperator


class ConvectionDiffusionOperator(FEOperator):
    """Stiffness operator of the 1D convection-diffusion equation in ALE form.

    Discretizes c(u) du/dx - d(w u)/dx - nu d2u/dx2 - f with linear finite elements, where w is the mesh velocity
    and c(u) is either the constant velocity a (linear) or u itself (viscous Burgers). The mesh velocity term is in
    conservative form, so a constant state is preserved on a mesh moving with w over a backward Euler step.
    Element integrals of the convective terms are exact for piecewise linear c and w.

    Args:
        mesh: Mesh on which the operator is integrated.
        param_dict: Dictionary of operator parameters.

    Attributes:
        diffusivity: Diffusion coefficient nu.
        velocity: Constant convective velocity a, used if nonlinear is False.
        source: Constant source term f.
        nonlinear: Whether the convective velocity is the solution itself.
        linearization:
            "newton" for the exact Jacobian of the nonlinear convective term,
            "picard" to freeze the convective velocity at the linearization state.
        u_left: Initial Dirichlet value at the left end.
        u_right: Initial Dirichlet value at the right end.
        mesh_vel: NumPy array of nodal mesh velocities.
    """

    def __init__(self, mesh, param_dict=None):

        super().__init__(mesh)

        if param_dict is None:
            param_dict = {}

        self.diffusivity = catch_input(param_dict, "diffusivity", 1.0)
        self.velocity = catch_input(param_dict, "velocity", 0.0)
        self.source = catch_input(param_dict, "source", 0.0)
        self.nonlinear = catch_input(param_dict, "nonlinear", False)
        self.linearization = catch_input(param_dict, "linearization", "newton")
        self.u_left = catch_input(param_dict, "u_left", 0.0)
        self.u_right = catch_input(param_dict, "u_right", 0.0)

        assert self.diffusivity >= 0.0, "diffusivity must be non-negative"
        if self.linearization not in ["newton", "picard"]:
            raise ValueError("Invalid choice of linearization: " + str(self.linearization))

        self.mesh_vel = np.zeros(mesh.num_nodes, dtype=REAL_TYPE)

    def initial_fixed_dofs(self):
        return [np.array([self.u_left, self.u_right], dtype=REAL_TYPE)]

    def set_mesh_velocity(self, velocity_ale, patches=None):
        """Map ALE mesh velocities onto the nodes of the flow mesh.

        Args:
            velocity_ale: List of nodal velocity arrays, one per ALE patch, or None for a static mesh.
            patches:
                List of (ale_patch, flow_patch) index pairs. If None, ALE patch i drives flow patch i.
        """

        self.mesh_vel[:] = 0.0
        if velocity_ale is None:
            return

        if patches is None:
            patches = [(patch, patch) for patch in range(len(velocity_ale))]

        for ale_patch, flow_patch in patches:
            patch_nodes = self.mesh.patch_nodes[flow_patch]
            patch_vel = np.asarray(velocity_ale[ale_patch], dtype=REAL_TYPE).ravel()
            if patch_vel.shape[0] != patch_nodes.shape[0]:
                raise DimensionError(
                    "Mesh velocity of ALE patch "
                    + str(ale_patch)
                    + " has "
                    + str(patch_vel.shape[0])
                    + " entries, flow patch "
                    + str(flow_patch)
                    + " has "
                    + str(patch_nodes.shape[0])
                    + " nodes"
                )
            self.mesh_vel[patch_nodes] = patch_vel

    def calc_elem_terms(self, vec_full):
        """Element tangent matrices and element residuals at a nodal vector.

        Returns:
            NumPy array of element tangent matrices of shape (num_elems, 2, 2),
            and NumPy array of element residuals of shape (num_elems, 2).
        """

        mesh = self.mesh
        h = mesh.elem_lengths
        n_0, n_1 = mesh.elem_nodes[:, 0], mesh.elem_nodes[:, 1]
        u_0, u_1 = vec_full[n_0], vec_full[n_1]

        if self.nonlinear:
            c_0 = u_0 - self.mesh_vel[n_0]
            c_1 = u_1 - self.mesh_vel[n_1]
        else:
            c_0 = self.velocity - self.mesh_vel[n_0]
            c_1 = self.velocity - self.mesh_vel[n_1]

        # frozen-velocity operator: diffusion plus convection with c fixed
        elem_mats = np.empty((mesh.num_elems, 2, 2), dtype=REAL_TYPE)
        diff = self.diffusivity / h
        g_0 = (2.0 * c_0 + c_1) / 6.0
        g_1 = (c_0 + 2.0 * c_1) / 6.0
        elem_mats[:, 0, 0] = diff - g_0
        elem_mats[:, 0, 1] = -diff + g_0
        elem_mats[:, 1, 0] = -diff - g_1
        elem_mats[:, 1, 1] = diff + g_1

        # -u dw/dx part of the conservative mesh velocity term
        dw = (self.mesh_vel[n_1] - self.mesh_vel[n_0]) / 6.0
        elem_mats[:, 0, 0] -= 2.0 * dw
        elem_mats[:, 0, 1] -= dw
        elem_mats[:, 1, 0] -= dw
        elem_mats[:, 1, 1] -= 2.0 * dw

        elem_res = np.einsum("eij,ej->ei", elem_mats, np.stack((u_0, u_1), axis=1))
        elem_res -= (self.source * h / 2.0)[:, None]

        if self.nonlinear and (self.linearization == "newton"):
            du = (u_1 - u_0) / 6.0
            elem_mats[:, 0, 0] += 2.0 * du
            elem_mats[:, 0, 1] += du
            elem_mats[:, 1, 0] += du
            elem_mats[:, 1, 1] += 2.0 * du

        return elem_mats, elem_res

    def assemble(self, state, fixed_dofs, compute_matrix=True):

        vec_full = self.full_vector(state, fixed_dofs)
        elem_mats, elem_res = self.calc_elem_terms(vec_full)

        res = self.elem_scatter(elem_res)[self.free_nodes]

        # tangent applied to the free part of the state
        tang_state = self.elem_matvec(elem_mats, vec_full) - self.elem_matvec(elem_mats, self.fixed_vector(fixed_dofs))
        rhs = tang_state[self.free_nodes] - res

        matrix = self.free_matrix(elem_mats) if compute_matrix else None
        return matrix, rhs

    def residual(self, state, fixed_dofs):

        elem_res = self.calc_elem_terms(self.full_vector(state, fixed_dofs))[1]
        return self.elem_scatter(elem_res)[self.free_nodes]

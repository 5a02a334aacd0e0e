import numpy as np

from alestep.constants import REAL_TYPE
from alestep.input_funcs import catch_input
from alestep.operators.operator import FEOperator


class MassOperator(FEOperator):
    """Mass matrix of linear finite elements on the current mesh geometry.

    The right-hand side is the contribution of the fixed degrees of freedom, so that
    M @ state - rhs equals the free rows of the mass matrix applied to the full nodal vector.

    Args:
        mesh: Mesh on which the operator is integrated.
        param_dict: Dictionary with optional keys "density" and "lumped".
    """

    def __init__(self, mesh, param_dict=None):

        super().__init__(mesh)

        if param_dict is None:
            param_dict = {}

        self.density = catch_input(param_dict, "density", 1.0)
        self.lumped = catch_input(param_dict, "lumped", False)
        assert self.density > 0.0, "density must be positive"

    def calc_elem_mats(self):

        h = self.mesh.elem_lengths
        elem_mats = np.zeros((self.mesh.num_elems, 2, 2), dtype=REAL_TYPE)
        if self.lumped:
            elem_mats[:, 0, 0] = self.density * h / 2.0
            elem_mats[:, 1, 1] = self.density * h / 2.0
        else:
            elem_mats[:, 0, 0] = self.density * h / 3.0
            elem_mats[:, 0, 1] = self.density * h / 6.0
            elem_mats[:, 1, 0] = self.density * h / 6.0
            elem_mats[:, 1, 1] = self.density * h / 3.0
        return elem_mats

    def assemble(self, state, fixed_dofs, compute_matrix=True):

        elem_mats = self.calc_elem_mats()
        rhs = -self.elem_matvec(elem_mats, self.fixed_vector(fixed_dofs))[self.free_nodes]

        matrix = self.free_matrix(elem_mats) if compute_matrix else None
        return matrix, rhs

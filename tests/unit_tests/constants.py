import os
import shutil

import numpy as np
import scipy.sparse as sp

from alestep.constants import REAL_TYPE


# Constants to use throughout testing

TEST_DIR = "test_dir"


def del_test_dir():
    if os.path.isdir(TEST_DIR):
        shutil.rmtree(TEST_DIR)


class DiagonalOperator:
    """Linear operator diag(coeffs) u - load, with no fixed DoFs."""

    def __init__(self, coeffs, load=None):

        self.coeffs = np.asarray(coeffs, dtype=REAL_TYPE)
        if load is None:
            load = np.zeros(self.coeffs.shape[0], dtype=REAL_TYPE)
        self.load = np.asarray(load, dtype=REAL_TYPE)
        self.num_assemblies = 0

    def num_dofs(self):
        return self.coeffs.shape[0]

    def initial_fixed_dofs(self):
        return []

    def assemble(self, state, fixed_dofs, compute_matrix=True):
        self.num_assemblies += 1
        matrix = sp.diags(self.coeffs, format="csr") if compute_matrix else None
        return matrix, self.load.copy()


class BoundaryLoadOperator(DiagonalOperator):
    """Diagonal operator whose load is the sum of the fixed DoFs of component 0."""

    def initial_fixed_dofs(self):
        return [np.array([1.0, 2.0])]

    def assemble(self, state, fixed_dofs, compute_matrix=True):
        matrix, load = super().assemble(state, fixed_dofs, compute_matrix)
        return matrix, load + np.sum(fixed_dofs[0])


class CubicOperator:
    """Nonlinear operator with residual u**3 - target, linearized with its exact Jacobian."""

    def __init__(self, target):

        self.target = np.asarray(target, dtype=REAL_TYPE)

    def num_dofs(self):
        return self.target.shape[0]

    def initial_fixed_dofs(self):
        return []

    def assemble(self, state, fixed_dofs, compute_matrix=True):
        jacob = 3.0 * state ** 2
        matrix = sp.diags(jacob, format="csr") if compute_matrix else None
        rhs = jacob * state - (state ** 3 - self.target)
        return matrix, rhs


class ZeroMassOperator:
    """Zero mass matrix, turning a time step into a stationary solve."""

    def __init__(self, num_dofs):

        self.size = num_dofs

    def num_dofs(self):
        return self.size

    def assemble(self, state, fixed_dofs, compute_matrix=True):
        matrix = sp.csr_matrix((self.size, self.size), dtype=REAL_TYPE) if compute_matrix else None
        return matrix, np.zeros(self.size, dtype=REAL_TYPE)


class IdentityMassOperator(ZeroMassOperator):
    def assemble(self, state, fixed_dofs, compute_matrix=True):
        matrix = sp.identity(self.size, dtype=REAL_TYPE, format="csr") if compute_matrix else None
        return matrix, np.zeros(self.size, dtype=REAL_TYPE)

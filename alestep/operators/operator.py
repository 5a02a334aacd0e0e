import numpy as np
import scipy.sparse as sp

from alestep.constants import REAL_TYPE
from alestep.errors import ConfigurationError


class Operator:
    """Base class for spatial operators consumed by a TimeIntegrator.

    An operator maps a solution estimate and the fixed (Dirichlet) degrees of freedom to the linearization
    of its spatial term at that estimate: a sparse tangent matrix A and a right-hand side b such that the
    spatial residual at the estimate equals A @ state - b. Linear operators return their stiffness matrix and load.

    Child classes must implement num_dofs() and assemble(). They must not modify or keep references to the
    state passed to assemble().
    """

    def num_dofs(self):
        raise NotImplementedError("num_dofs() must be implemented by child classes")

    def assemble(self, state, fixed_dofs, compute_matrix=True):
        """Linearize the operator at state.

        Args:
            state: 1D NumPy array of free degree of freedom values.
            fixed_dofs: FixedDofSet of prescribed values.
            compute_matrix: If False, the matrix is not built and None is returned in its place.

        Returns:
            Tuple of the SciPy sparse matrix (or None) and the right-hand side NumPy array.
        """

        raise NotImplementedError("assemble() must be implemented by child classes")

    def residual(self, state, fixed_dofs):
        """Spatial residual at state, A @ state - b with A and b linearized at state.

        Child classes may override this with a matrix-free evaluation.
        """

        matrix, rhs = self.assemble(state, fixed_dofs, True)
        return matrix @ state - rhs

    def initial_fixed_dofs(self):
        """List of arrays of initial fixed degree of freedom values, one per component."""

        return []

    def set_mesh_velocity(self, velocity_ale, patches=None):
        """Register the mesh velocity of a moving domain.

        Operators without a convective term ignore a zero mesh velocity and reject anything else.
        """

        if velocity_ale is not None and any(np.any(np.asarray(vel) != 0.0) for vel in velocity_ale):
            raise ConfigurationError(type(self).__name__ + " does not support mesh motion")


class FEOperator(Operator):
    """Base class for operators discretized with linear finite elements on a Mesh.

    Both end nodes of the mesh are Dirichlet nodes and are eliminated; the free degrees of freedom are the
    interior nodes. Component 0 of the FixedDofSet holds the left and right boundary values.

    Args:
        mesh: Mesh on which the operator is integrated. Node movement is picked up on the next assembly.

    Attributes:
        mesh: Associated Mesh.
        fixed_nodes: Integer array of eliminated node indices.
        free_nodes: Integer array of free node indices.
    """

    def __init__(self, mesh):

        self.mesh = mesh
        self.fixed_nodes = np.array([0, mesh.num_nodes - 1])
        self.free_nodes = np.arange(1, mesh.num_nodes - 1)

    def num_dofs(self):
        return self.free_nodes.shape[0]

    def full_vector(self, state, fixed_dofs):
        """Nodal vector holding state at free nodes and the prescribed values at fixed nodes."""

        vec_full = np.zeros(self.mesh.num_nodes, dtype=REAL_TYPE)
        vec_full[self.free_nodes] = state
        if len(fixed_dofs) > 0:
            vec_full[self.fixed_nodes] = fixed_dofs[0]
        return vec_full

    def fixed_vector(self, fixed_dofs):
        """Nodal vector holding only the prescribed values, zero at free nodes."""

        return self.full_vector(np.zeros(self.num_dofs(), dtype=REAL_TYPE), fixed_dofs)

    def elem_matvec(self, elem_mats, vec_full):
        """Product of the global matrix assembled from elem_mats with a nodal vector, without assembling it."""

        elem_nodes = self.mesh.elem_nodes
        elem_prod = np.einsum("eij,ej->ei", elem_mats, vec_full[elem_nodes])
        out = np.zeros(self.mesh.num_nodes, dtype=REAL_TYPE)
        np.add.at(out, elem_nodes, elem_prod)
        return out

    def elem_scatter(self, elem_vecs):
        """Assemble element vectors of shape (num_elems, 2) into a nodal vector."""

        out = np.zeros(self.mesh.num_nodes, dtype=REAL_TYPE)
        np.add.at(out, self.mesh.elem_nodes, elem_vecs)
        return out

    def free_matrix(self, elem_mats):
        """Assemble element matrices and restrict the result to free rows and columns."""

        elem_nodes = self.mesh.elem_nodes
        rows = np.repeat(elem_nodes, 2, axis=1).ravel()
        cols = np.tile(elem_nodes, (1, 2)).ravel()
        num_nodes = self.mesh.num_nodes
        mat_full = sp.coo_matrix((elem_mats.ravel(), (rows, cols)), shape=(num_nodes, num_nodes)).tocsr()
        return mat_full[self.free_nodes, :][:, self.free_nodes]

import numpy as np

from alestep.constants import REAL_TYPE
from alestep.input_funcs import catch_input


class Mesh:
    """One-dimensional mesh of linear finite elements, split into patches.

    Patches are contiguous groups of elements sharing their end nodes with their neighbours.
    Node coordinates may be moved between time steps to represent a deforming domain.

    Args:
        mesh_dict: Dictionary with keys "x_left", "x_right", "num_elems" and optionally "num_patches".

    Attributes:
        x_left: Initial coordinate of the left-most node.
        x_right: Initial coordinate of the right-most node.
        num_elems: Total number of elements, divisible by num_patches.
        num_patches: Number of patches.
        num_nodes: Number of nodes, num_elems + 1.
        x_node: NumPy array of current node coordinates.
        elem_nodes: Integer array of shape (num_elems, 2) of element node indices.
        elem_patch: Integer array of the patch index of each element.
        patch_nodes: List of integer arrays of the node indices of each patch.
    """

    def __init__(self, mesh_dict):

        self.x_left = float(mesh_dict["x_left"])
        self.x_right = float(mesh_dict["x_right"])
        self.num_elems = int(mesh_dict["num_elems"])
        self.num_patches = catch_input(mesh_dict, "num_patches", 1)
        assert self.x_right > self.x_left, "x_right must be greater than x_left"
        assert self.num_patches >= 1, "num_patches must be a positive integer"
        assert self.num_elems % self.num_patches == 0, "num_elems must be divisible by num_patches"

        self.num_nodes = self.num_elems + 1
        self.x_node = np.linspace(self.x_left, self.x_right, self.num_nodes, dtype=REAL_TYPE)

        node_idxs = np.arange(self.num_nodes)
        self.elem_nodes = np.stack((node_idxs[:-1], node_idxs[1:]), axis=1)

        elems_per_patch = self.num_elems // self.num_patches
        self.elem_patch = np.arange(self.num_elems) // elems_per_patch
        self.patch_nodes = [
            node_idxs[patch * elems_per_patch : (patch + 1) * elems_per_patch + 1] for patch in range(self.num_patches)
        ]

    @property
    def elem_lengths(self):
        return self.x_node[self.elem_nodes[:, 1]] - self.x_node[self.elem_nodes[:, 0]]

    def set_node_coords(self, x_node):
        """Overwrite node coordinates, e.g. with a deformed configuration.

        Args:
            x_node: Array-like of num_nodes strictly increasing coordinates.
        """

        x_node = np.asarray(x_node, dtype=REAL_TYPE)
        if x_node.shape != self.x_node.shape:
            raise ValueError("Expected " + str(self.num_nodes) + " node coordinates, got " + str(x_node.shape[0]))
        if np.any(np.diff(x_node) <= 0.0):
            raise ValueError("Mesh movement would invert an element")
        self.x_node[:] = x_node

    def move(self, displacement):
        """Displace all nodes by the given nodal displacement."""

        self.set_node_coords(self.x_node + np.asarray(displacement, dtype=REAL_TYPE))

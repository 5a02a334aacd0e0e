import numpy as np

from alestep.constants import REAL_TYPE
from alestep.errors import DimensionError


class FixedDofSet:
    """Prescribed values of eliminated (Dirichlet) degrees of freedom.

    Holds one NumPy array per vector component of the unknown. The arrays are allocated once;
    set_fixed_dofs() overwrites their values in place, so operators holding a reference to this
    object always see the current boundary data.

    Args:
        values: List of array-likes, one per component.

    Attributes:
        ddofs: List of 1D NumPy arrays of fixed degree of freedom values.
    """

    def __init__(self, values=None):

        if values is None:
            values = []
        self.ddofs = [np.array(val, dtype=REAL_TYPE).ravel() for val in values]

    def __len__(self):
        return len(self.ddofs)

    def __getitem__(self, comp):
        return self.ddofs[comp]

    def set_fixed_dofs(self, values):
        """Refresh fixed degree of freedom values without reallocation.

        Extra components in values beyond those held are ignored.

        Args:
            values: List of array-likes, at least one per held component, each of matching length.
        """

        if len(values) < len(self.ddofs):
            raise DimensionError(
                "Wrong size of the container with fixed DoFs: "
                + str(len(values))
                + ". Must be at least: "
                + str(len(self.ddofs))
            )

        new_vals = [np.asarray(values[comp], dtype=REAL_TYPE).ravel() for comp in range(len(self.ddofs))]
        for comp, (ddof, new_val) in enumerate(zip(self.ddofs, new_vals)):
            if new_val.shape[0] != ddof.shape[0]:
                raise DimensionError(
                    "Wrong number of fixed DoFs for component "
                    + str(comp)
                    + ": "
                    + str(new_val.shape[0])
                    + ". Must be: "
                    + str(ddof.shape[0])
                )

        for ddof, new_val in zip(self.ddofs, new_vals):
            ddof[:] = new_val

    def copy(self):
        """Independent deep copy."""

        return FixedDofSet([ddof.copy() for ddof in self.ddofs])

    def equals(self, other):
        """Check for bit-identical values."""

        if len(self) != len(other):
            return False
        return all(np.array_equal(mine, theirs) for mine, theirs in zip(self.ddofs, other.ddofs))

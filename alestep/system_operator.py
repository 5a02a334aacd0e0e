class SystemOperator:
    """Sparse matrix and right-hand side vector of one linear system.

    Attributes:
        matrix: SciPy sparse matrix, or None before the first assembly.
        rhs: 1D NumPy array, or None before the first assembly.
    """

    def __init__(self, matrix=None, rhs=None):

        self.matrix = matrix
        self.rhs = rhs

    def copy(self):
        """Independent deep copy."""

        matrix = None if self.matrix is None else self.matrix.copy()
        rhs = None if self.rhs is None else self.rhs.copy()
        return SystemOperator(matrix, rhs)

import unittest

import numpy as np

from alestep.errors import DimensionError
from alestep.fixed_dofs import FixedDofSet


class FixedDofSetTestCase(unittest.TestCase):
    def setUp(self):

        self.fixed_dofs = FixedDofSet([[1.0, 2.0], [3.0, 4.0, 5.0]])

    def test_init(self):

        self.assertEqual(len(self.fixed_dofs), 2)
        self.assertTrue(np.array_equal(self.fixed_dofs[0], [1.0, 2.0]))
        self.assertTrue(np.array_equal(self.fixed_dofs[1], [3.0, 4.0, 5.0]))
        self.assertEqual(len(FixedDofSet()), 0)

    def test_set_fixed_dofs_in_place(self):

        comp_0 = self.fixed_dofs[0]
        self.fixed_dofs.set_fixed_dofs([[10.0, 20.0], [30.0, 40.0, 50.0]])

        # same buffer, new values
        self.assertIs(self.fixed_dofs[0], comp_0)
        self.assertTrue(np.array_equal(comp_0, [10.0, 20.0]))

    def test_set_fixed_dofs_wrong_size(self):

        with self.assertRaises(DimensionError):
            self.fixed_dofs.set_fixed_dofs([[10.0, 20.0]])
        with self.assertRaises(DimensionError):
            self.fixed_dofs.set_fixed_dofs([[10.0, 20.0], [30.0, 40.0]])

        # failed refresh changes nothing
        self.assertTrue(np.array_equal(self.fixed_dofs[0], [1.0, 2.0]))

    def test_copy(self):

        fixed_copy = self.fixed_dofs.copy()
        self.assertTrue(fixed_copy.equals(self.fixed_dofs))

        fixed_copy.set_fixed_dofs([[0.0, 0.0], [0.0, 0.0, 0.0]])
        self.assertFalse(fixed_copy.equals(self.fixed_dofs))
        self.assertTrue(np.array_equal(self.fixed_dofs[0], [1.0, 2.0]))


if __name__ == "__main__":
    unittest.main()

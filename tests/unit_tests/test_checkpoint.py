import unittest

import numpy as np
import scipy.sparse as sp

from alestep.checkpoint import CheckpointStore, copy_buffer
from alestep.errors import NoCheckpointError
from alestep.fixed_dofs import FixedDofSet
from alestep.system_operator import SystemOperator


class CheckpointStoreTestCase(unittest.TestCase):
    def setUp(self):

        self.vec = np.array([1.0, 2.0, 3.0])
        self.matrix = sp.diags([1.0, 2.0, 3.0], format="csr")
        self.system = SystemOperator(self.matrix, self.vec)
        self.fixed_dofs = FixedDofSet([[0.5, 0.25]])
        self.store = CheckpointStore()

    def test_copy_buffer(self):

        vec_copy = copy_buffer(self.vec)
        self.assertIsNot(vec_copy, self.vec)
        self.assertTrue(np.array_equal(vec_copy, self.vec))

        mat_copy = copy_buffer(self.matrix)
        self.assertIsNot(mat_copy, self.matrix)
        self.assertEqual((mat_copy != self.matrix).nnz, 0)

        sys_copy = copy_buffer(self.system)
        self.assertIsNot(sys_copy.rhs, self.system.rhs)
        self.assertIsNot(sys_copy.matrix, self.system.matrix)

        self.assertIsNone(copy_buffer(None))
        self.assertEqual(copy_buffer(2.5), 2.5)
        self.assertEqual(copy_buffer("converged"), "converged")

    def test_save_recover(self):

        self.assertFalse(self.store.has_checkpoint)
        self.store.save(sol_vec=self.vec, system=self.system, fixed_dofs=self.fixed_dofs, t_step=0.1)
        self.assertTrue(self.store.has_checkpoint)

        # modifying the originals must not reach the snapshot
        self.vec[0] = -1.0
        self.fixed_dofs.set_fixed_dofs([[9.0, 9.0]])

        buffers = self.store.recover()
        self.assertTrue(np.array_equal(buffers["sol_vec"], [1.0, 2.0, 3.0]))
        self.assertTrue(np.array_equal(buffers["fixed_dofs"][0], [0.5, 0.25]))
        self.assertEqual(buffers["t_step"], 0.1)
        self.assertFalse(self.store.has_checkpoint)

    def test_recover_keep(self):

        self.store.save(sol_vec=self.vec)
        first = self.store.recover(discard=False)
        first["sol_vec"][:] = 0.0

        second = self.store.recover()
        self.assertTrue(np.array_equal(second["sol_vec"], [1.0, 2.0, 3.0]))

    def test_overwrite(self):

        self.store.save(sol_vec=self.vec)
        self.store.save(sol_vec=2.0 * self.vec)
        buffers = self.store.recover()
        self.assertTrue(np.array_equal(buffers["sol_vec"], [2.0, 4.0, 6.0]))

    def test_no_checkpoint(self):

        with self.assertRaises(NoCheckpointError):
            self.store.recover()

        self.store.save(sol_vec=self.vec)
        self.store.clear()
        with self.assertRaises(NoCheckpointError):
            self.store.recover()


if __name__ == "__main__":
    unittest.main()

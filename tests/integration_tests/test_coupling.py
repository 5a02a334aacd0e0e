import unittest

import numpy as np

from problem_setup import BURGERS_DICT, CONV_DIFF_DICT, patch_velocities, problem_setup, sine_state
import alestep.constants as constants
from alestep.errors import NonlinearDivergence, NoCheckpointError


class CouplingLoopTestCase(unittest.TestCase):
    def setUp(self):

        self.dt = 0.01
        self.mesh, _, _, self.time_int = problem_setup({"scheme": "imex_ale"}, BURGERS_DICT)
        self.sol_init = sine_state(self.mesh)
        self.time_int.set_solution_vector(self.sol_init)
        self.node_vel = 0.1 * np.sin(np.pi * self.mesh.x_node)

    def test_rollback_iterations(self):

        # outer iterations converge the mesh velocity, rolling the flow back before each retry
        self.time_int.save_state()
        vel_guesses = [0.0, 0.5, 0.9, 1.0]
        for coup_iter, guess in enumerate(vel_guesses):
            if coup_iter > 0:
                self.time_int.recover_state(discard=False)
            vel = patch_velocities(self.mesh, guess * self.node_vel)
            sol, sol_old = self.time_int.make_time_step_fsi(self.dt, vel)
            self.assertTrue(np.array_equal(sol_old, self.sol_init))

        self.assertEqual(self.time_int.time_iter, 1)
        self.assertTrue(self.time_int.checkpoints.has_checkpoint)

        # identical to a single step with the converged velocity
        _, _, _, ref_int = problem_setup({"scheme": "imex_ale"}, BURGERS_DICT)
        ref_int.set_solution_vector(self.sol_init)
        sol_ref, _ = ref_int.make_time_step_fsi(self.dt, patch_velocities(self.mesh, self.node_vel))
        self.assertTrue(np.array_equal(sol, sol_ref))

    def test_rollback_multiple_steps(self):

        for _ in range(2):
            self.time_int.make_time_step_fsi(self.dt)
        self.time_int.save_state()
        sol_saved = self.time_int.solution_vector()
        sol_old_saved = self.time_int.solution_vector_old()

        for _ in range(3):
            self.time_int.make_time_step_fsi(self.dt, patch_velocities(self.mesh, self.node_vel))
        self.time_int.recover_state()

        self.assertTrue(np.array_equal(self.time_int.solution_vector(), sol_saved))
        self.assertTrue(np.array_equal(self.time_int.solution_vector_old(), sol_old_saved))
        self.assertEqual(self.time_int.time_iter, 2)
        with self.assertRaises(NoCheckpointError):
            self.time_int.recover_state()

    def test_recover_restores_mesh_velocity(self):

        vel_saved = patch_velocities(self.mesh, self.node_vel)
        self.time_int.set_mesh_velocity(vel_saved)
        self.time_int.save_state()

        # rejected trial velocity must not leak into the retried step
        self.time_int.make_time_step_fsi(self.dt, patch_velocities(self.mesh, -2.0 * self.node_vel))
        self.time_int.recover_state()
        self.assertTrue(np.allclose(self.time_int.stiff_op.mesh_vel, self.node_vel))
        self.assertTrue(np.array_equal(self.time_int.velocity_ale[0], vel_saved[0]))
        sol, _ = self.time_int.make_time_step_fsi(self.dt)

        _, _, _, ref_int = problem_setup({"scheme": "imex_ale"}, BURGERS_DICT)
        ref_int.set_solution_vector(self.sol_init)
        sol_ref, _ = ref_int.make_time_step_fsi(self.dt, patch_velocities(self.mesh, self.node_vel))
        self.assertTrue(np.allclose(sol, sol_ref))

    def test_recover_static_mesh_velocity(self):

        self.time_int.save_state()
        self.time_int.make_time_step_fsi(self.dt, patch_velocities(self.mesh, self.node_vel))
        self.time_int.recover_state()

        self.assertIsNone(self.time_int.velocity_ale)
        self.assertTrue(np.array_equal(self.time_int.stiff_op.mesh_vel, np.zeros(self.mesh.num_nodes)))

    def test_corrector_in_loop(self):

        self.time_int.save_state()
        self.time_int.make_time_step_fsi(self.dt, patch_velocities(self.mesh, self.node_vel))
        sol_corr, _ = self.time_int.make_time_step_fsi2(self.dt, patch_velocities(self.mesh, 0.5 * self.node_vel))

        # corrector result is discarded with the rest of the step
        self.time_int.recover_state()
        self.assertTrue(np.array_equal(self.time_int.solution_vector(), self.sol_init))
        self.assertFalse(np.array_equal(self.time_int.solution_vector(), sol_corr))
        self.assertFalse(self.time_int.fsi_predicted)


class StepRetryTestCase(unittest.TestCase):
    def test_reduced_step_retry(self):

        scheme_dict = {"scheme": "implicit_nonlinear", "max_iter": 2}
        mesh, _, _, time_int = problem_setup(scheme_dict, BURGERS_DICT)
        time_int.set_solution_vector(sine_state(mesh, 2.0))

        # driver policy: halve the step after a failure
        dt = 0.2
        dt_taken = []
        while len(dt_taken) < 3:
            try:
                time_int.make_time_step(dt)
            except NonlinearDivergence:
                self.assertEqual(time_int.state, constants.STATE_FAILED)
                dt /= 2.0
                self.assertGreater(dt, 1e-6)
                continue
            dt_taken.append(dt)

        self.assertLess(dt_taken[0], 0.2)
        self.assertEqual(time_int.time_iter, 3)
        self.assertAlmostEqual(time_int.sol_time, sum(dt_taken))
        self.assertEqual(time_int.state, constants.STATE_CONVERGED)

    def test_failed_step_keeps_history(self):

        scheme_dict = {"scheme": "implicit_nonlinear", "theta": 0.5, "max_iter": 2}
        mesh, _, _, time_int = problem_setup(scheme_dict, dict(CONV_DIFF_DICT, nonlinear=True))
        time_int.set_solution_vector(sine_state(mesh))
        time_int.make_time_step(0.001)

        stiff_matrix_old = time_int.stiff_matrix_old
        const_rhs = time_int.const_rhs.copy()
        sol_old = time_int.solution_vector_old()

        with self.assertRaises(NonlinearDivergence):
            time_int.make_time_step(1.0)

        self.assertIs(time_int.stiff_matrix_old, stiff_matrix_old)
        self.assertTrue(np.array_equal(time_int.const_rhs, const_rhs))
        self.assertTrue(np.array_equal(time_int.solution_vector_old(), sol_old))


if __name__ == "__main__":
    unittest.main()

import dataclasses
import os
import unittest

from constants import TEST_DIR, del_test_dir
import alestep.constants as constants
from alestep.errors import ConfigurationError
from alestep.scheme_config import SchemeConfig


class SchemeConfigInitTestCase(unittest.TestCase):
    def setUp(self):

        self.param_dict = {}
        self.param_dict["scheme"] = "implicit_nonlinear"
        self.param_dict["theta"] = 0.5
        self.param_dict["tol"] = 1e-9
        self.param_dict["max_iter"] = 10
        self.param_dict["dt"] = 1e-3
        self.param_dict["verbosity"] = 2

    def test_defaults(self):

        config = SchemeConfig()
        self.assertEqual(config.scheme, constants.SCHEME_IMPLICIT_LINEAR)
        self.assertEqual(config.theta, constants.THETA_DEFAULT)
        self.assertEqual(config.max_iter, constants.MAX_ITER_DEFAULT)
        self.assertEqual(config.extrapolation, constants.EXTRAP_PREVIOUS)
        self.assertFalse(config.reassemble_mass_corrector)
        self.assertFalse(config.is_nonlinear)
        self.assertFalse(config.is_ale)

    def test_from_param_dict(self):

        config = SchemeConfig.from_param_dict(self.param_dict)
        self.assertEqual(config.scheme, "implicit_nonlinear")
        self.assertEqual(config.theta, 0.5)
        self.assertEqual(config.tol, 1e-9)
        self.assertEqual(config.max_iter, 10)
        self.assertEqual(config.dt, 1e-3)
        self.assertEqual(config.verbosity, 2)
        self.assertEqual(config.abs_tol, constants.ABS_RES_TOL_DEFAULT)
        self.assertTrue(config.is_nonlinear)

    def test_immutable(self):

        config = SchemeConfig()
        with self.assertRaises(dataclasses.FrozenInstanceError):
            config.theta = 0.5

    def test_range_checks(self):

        with self.assertRaises(ConfigurationError):
            SchemeConfig(theta=1.5)
        with self.assertRaises(ConfigurationError):
            SchemeConfig(theta=-0.1)
        with self.assertRaises(ConfigurationError):
            SchemeConfig(tol=0.0)
        with self.assertRaises(ConfigurationError):
            SchemeConfig(max_iter=0)
        with self.assertRaises(ConfigurationError):
            SchemeConfig(dt=-1.0)
        with self.assertRaises(ConfigurationError):
            SchemeConfig(scheme="explicit_euler")
        with self.assertRaises(ConfigurationError):
            SchemeConfig(extrapolation="quadratic")

    def test_bad_param_type(self):

        with self.assertRaises(ConfigurationError):
            SchemeConfig.from_param_dict({"theta": "half"})


class SchemeConfigFileTestCase(unittest.TestCase):
    def setUp(self):

        del_test_dir()
        os.mkdir(TEST_DIR)

        self.test_file = os.path.join(TEST_DIR, constants.PARAM_INPUTS)
        with open(self.test_file, "w") as f:
            f.write('scheme = "imex_ale"\n')
            f.write("theta = 1.0\n")
            f.write("dt = 1e-4\n")
            f.write('extrapolation = "linear"\n')
            f.write("reassemble_mass_corrector = True\n")

    def tearDown(self):

        del_test_dir()

    def test_from_file(self):

        config = SchemeConfig.from_file(self.test_file)
        self.assertTrue(config.is_ale)
        self.assertEqual(config.dt, 1e-4)
        self.assertEqual(config.extrapolation, "linear")
        self.assertTrue(config.reassemble_mass_corrector)


if __name__ == "__main__":
    unittest.main()

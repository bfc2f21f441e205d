import unittest

import numpy as np

from looseins.core.constants import D2R
from looseins.sensors.imu import ImuNoise, ImuSample


class TestImuSample(unittest.TestCase):

    def test_init_valid(self):
        sample = ImuSample(1000.0, [0.0, 0.0, 1e-6], [0.0, 0.0, -0.098])
        self.assertEqual(sample.time, 1000.0)
        np.testing.assert_array_equal(sample.dtheta, [0.0, 0.0, 1e-6])
        np.testing.assert_array_equal(sample.dvel, [0.0, 0.0, -0.098])

    def test_init_invalid_dimensions(self):
        with self.assertRaises(ValueError) as context:
            ImuSample(1000.0, [0.0, 0.0], [0.0, 0.0, -0.098])
        self.assertIn("dtheta", str(context.exception))

    def test_init_non_finite(self):
        with self.assertRaises(ValueError):
            ImuSample(1000.0, [0.0, 0.0, 0.0], [0.0, np.nan, -0.098])

    def test_immutable(self):
        sample = ImuSample(1000.0, np.zeros(3), np.zeros(3))
        with self.assertRaises(AttributeError):
            sample.time = 1.0

    def test_from_rates(self):
        sample = ImuSample.from_rates(1.0, [0.1, 0.0, 0.0], [0.0, 0.0, -9.8], 0.01)
        np.testing.assert_allclose(sample.dtheta, [1e-3, 0.0, 0.0])
        np.testing.assert_allclose(sample.dvel, [0.0, 0.0, -0.098])

        with self.assertRaises(ValueError):
            ImuSample.from_rates(1.0, np.zeros(3), np.zeros(3), 0.0)

    def test_compensated(self):
        sample = ImuSample(1.0, [0.011, 0.0, 0.0], [0.0, 0.0, -0.1])
        out = sample.compensated(gyro_bias=np.array([0.1, 0.0, 0.0]),
                                 acc_bias=np.array([0.0, 0.0, 0.1]),
                                 gyro_scale=np.zeros(3),
                                 acc_scale=np.array([0.0, 0.0, 0.1]),
                                 dt=0.01)
        np.testing.assert_allclose(out.dtheta, [0.01, 0.0, 0.0])
        np.testing.assert_allclose(out.dvel, [0.0, 0.0, -0.101 / 1.1])
        self.assertEqual(out.time, 1.0)


class TestImuNoise(unittest.TestCase):

    def test_from_datasheet(self):
        noise = ImuNoise.from_datasheet(arw_deg_sqrt_h=0.6, vrw_m_s_sqrt_h=0.3,
                                        gyro_bias_deg_h=36.0, acc_bias_mg=2.0,
                                        gyro_scale_ppm=500.0, acc_scale_ppm=250.0,
                                        lever_arm=(0.1, 0.2, -0.3))
        self.assertAlmostEqual(noise.arw, 0.01 * D2R)
        self.assertAlmostEqual(noise.vrw, 0.005)
        self.assertAlmostEqual(noise.gyro_bias_std, 0.01 * D2R)
        self.assertAlmostEqual(noise.acc_bias_std, 2e-3 * 9.8)
        self.assertAlmostEqual(noise.gyro_scale_std, 5e-4)
        self.assertAlmostEqual(noise.acc_scale_std, 2.5e-4)
        np.testing.assert_array_equal(noise.lever_arm, [0.1, 0.2, -0.3])

    def test_defaults(self):
        noise = ImuNoise()
        self.assertEqual(noise.correlation_time, 3600.0)
        np.testing.assert_array_equal(noise.lever_arm, np.zeros(3))

    def test_invalid_correlation_time(self):
        with self.assertRaises(ValueError):
            ImuNoise(correlation_time=0.0)

    def test_invalid_lever_arm(self):
        with self.assertRaises(ValueError):
            ImuNoise(lever_arm=[1.0, 2.0])


if __name__ == '__main__':
    unittest.main()
